#!/usr/bin/env python3
"""
DocxCleaner - OOXML Package Metadata Cleaner

CLI tool that strips metadata and custom data from Word documents,
normalizes language tags and recompresses images, writing the result to
<input>.updated.zip.

Options can come from a YAML file (--config) and/or the command line;
command-line values win.
"""

import argparse
import sys
from pathlib import Path

from errors import DocxCleanerError, InvalidConfigurationError
from options import CleanerOptions, load_config
from pipeline import PipelineResult, clean_document


def print_result(result: PipelineResult, verbose: bool = False):
    """Print processing result summary."""
    print()
    print("=" * 60)
    print("DocxCleaner Processing Report")
    print("=" * 60)
    print()
    print(f"Input:  {result.input_path}")
    print(f"Output: {result.output_path}")
    print()

    if result.warnings:
        print("WARNINGS:")
        for warning in result.warnings:
            print(f"  ! {warning}")
        print()

    if not result.reports:
        print("No passes enabled - package copied unchanged.")
    else:
        print("Passes:")
        for report in result.reports:
            status = "✓" if report.success else "✗"
            print(f"  {status} {report.name:<26} {len(report.changed_parts)} part(s) changed")

    changed = [(r.name, p) for r in result.reports for p in r.changed_parts]
    if verbose and changed:
        print()
        print("-" * 60)
        print("CHANGED PARTS:")
        print("-" * 60)
        for name, part in changed:
            print(f"  [{name}] {part}")

    if verbose:
        notes = [(r.name, n) for r in result.reports for n in r.notes]
        if notes:
            print()
            print("-" * 60)
            print("Details:")
            print("-" * 60)
            for name, note in notes:
                print(f"  [{name}] {note}")

    if result.errors:
        print()
        print("ERRORS:")
        for error in result.errors:
            print(f"  ✗ {error}")

    if result.dangling is not None:
        print()
        if result.dangling:
            print("DANGLING REFERENCES:")
            for ref in result.dangling:
                print(f"  ✗ {ref.source}: '{ref.reference}' -> missing '{ref.resolved}'")
        else:
            print("Reference check: no dangling references.")

    print()
    if result.success and not result.dangling:
        print("✓ Processing completed successfully!")
    else:
        print("✗ Processing completed with errors.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docxcleaner",
        description="Strip metadata and custom data from Word documents.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Remove personal information and set the language everywhere
  docxcleaner report.docx --privacy --lang en-GB

  # Convert all images to JPEG at quality 60
  docxcleaner report.docx --convert-images --compress-quality 60

  # Clear the title, set the company, drop customXml
  docxcleaner report.docx --title "" --company "ACME" --remove-custom-xml

  # Take options from a YAML file, override one on the command line
  docxcleaner report.docx -c cleaner.yaml --lang de-DE

Passes (run in this order when enabled):
  • Settings privacy   (--privacy / --settings-file)
  • App/core props     (--title, --company, --creator, --privacy)
  • customXml refs     (--remove-custom-xml)
  • customXml folder   (--remove-custom-xml)
  • Custom properties  (--remove-custom-properties)
  • Styles             (--styles, not supported yet)
  • Content types      (--remove-custom-xml)
  • Language           (--lang)
  • Images             (--convert-images)
        """
    )

    parser.add_argument("input", type=Path, help="Input DOCX file to process")

    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="YAML file with cleaning options"
    )

    parser.add_argument("-v", "--verbose", action="store_true", help="Show every step")
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress all output except errors")

    parser.add_argument(
        "--check",
        action="store_true",
        help="After cleaning, report relationships/overrides naming missing parts"
    )

    # Flags default to None so an options file value is not overridden
    # unless the flag is actually given.
    group = parser.add_argument_group("Cleaning options")
    group.add_argument("--lang", help="Language tag to set on every w:lang (e.g. en-GB)")
    group.add_argument("--privacy", action="store_true", default=None,
                       help="Remove personal information and timestamps")
    group.add_argument("--settings-file", type=Path,
                       help="Replace word/settings.xml with this file")
    group.add_argument("--convert-images", action="store_true", default=None,
                       help="Recompress all images as JPEG")
    group.add_argument("--compress-quality",
                       help="JPEG quality for --convert-images (default: 75)")
    group.add_argument("--remove-custom-xml", action="store_true", default=None,
                       help="Remove the customXml folder and every reference to it")
    group.add_argument("--remove-custom-properties", action="store_true", default=None,
                       help="Remove docProps/custom.xml")
    group.add_argument("--styles", type=Path, dest="styles_file",
                       help="Apply styles from this file (not supported yet)")
    group.add_argument("--title", help="Set the document title (empty string clears it)")
    group.add_argument("--company", help="Set the company property (empty string clears it)")
    group.add_argument("--creator", help="Set the creator property (empty string clears it)")

    parser.add_argument("--version", action="version", version="%(prog)s 1.0.0")

    return parser


def build_options(args: argparse.Namespace) -> CleanerOptions:
    """Defaults < options file < command line."""
    base = CleanerOptions.from_mapping(load_config(args.config) if args.config else {})
    return base.merged({
        "file": args.input,
        "lang": args.lang,
        "privacy": args.privacy,
        "settings_file": args.settings_file,
        "convert_images": args.convert_images,
        "compress_quality": args.compress_quality,
        "remove_custom_xml": args.remove_custom_xml,
        "remove_custom_properties": args.remove_custom_properties,
        "styles_file": args.styles_file,
        "title": args.title,
        "company": args.company,
        "creator": args.creator,
    })


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        options = build_options(args)
    except InvalidConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if not options.file.exists():
        print(f"Error: Input file not found: {options.file}", file=sys.stderr)
        sys.exit(1)

    if options.file.suffix.lower() != ".docx":
        print(f"Warning: Input file does not have .docx extension: {options.file}",
              file=sys.stderr)

    if not args.quiet:
        print(f"\nCLEANING: {options.file}")

    try:
        result = clean_document(options, verbose=args.verbose and not args.quiet, check=args.check)
    except DocxCleanerError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if not args.quiet:
        print_result(result, verbose=args.verbose)
    else:
        for warning in result.warnings:
            print(f"Warning: {warning}", file=sys.stderr)
        for error in result.errors:
            print(f"Error: {error}", file=sys.stderr)

    sys.exit(0 if result.success and not result.dangling else 1)


if __name__ == "__main__":
    main()
