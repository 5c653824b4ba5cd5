#!/usr/bin/env python3
"""
DocxCleaner Diagnostic Tool

Inspects a DOCX package: which parts it holds, how content types and
relationships are declared, which languages are tagged where, and whether
anything points at a part that is not there. Useful before and after a
cleaning run.
"""

import argparse
import sys
from pathlib import Path

from errors import DocxCleanerError, MalformedPartError
from package_store import PartStore
from passes import language_parts
from references import CONTENT_TYPES, find_dangling_references
from xml_editor import W, XmlPartEditor, namespaces_for


def collect_languages(store: PartStore) -> dict[str, list[str]]:
    """Distinct w:lang/@w:val values per document/header/footer part."""
    editor = XmlPartEditor(store)
    languages = {}
    for path in language_parts(store):
        try:
            fragment = editor.parse(store.get(path), namespaces_for("w"))
        except MalformedPartError:
            languages[path] = ["(malformed)"]
            continue
        values = {node.get(f"{W}val") or "(none)" for node in fragment.select("//w:lang")}
        languages[path] = sorted(values)
    return languages


def collect_relationships(store: PartStore) -> dict[str, list[tuple[str, str, str]]]:
    """(Id, Target, TargetMode) per .rels part."""
    editor = XmlPartEditor(store)
    relationships = {}
    for part in store.list_by_pattern("", ".rels"):
        try:
            fragment = editor.parse(part, namespaces_for("rel"))
        except MalformedPartError:
            relationships[part.path] = []
            continue
        relationships[part.path] = [
            (rel.get("Id", ""), rel.get("Target", ""), rel.get("TargetMode", "Internal"))
            for rel in fragment.select("//rel:Relationship")
        ]
    return relationships


def collect_content_types(store: PartStore) -> tuple[dict[str, str], dict[str, str]]:
    """(defaults by extension, overrides by part name)."""
    part = store.get(CONTENT_TYPES)
    if part is None:
        return {}, {}
    fragment = XmlPartEditor(store).parse(part, namespaces_for("ct"))
    defaults = {d.get("Extension"): d.get("ContentType") for d in fragment.select("//ct:Default")}
    overrides = {o.get("PartName"): o.get("ContentType") for o in fragment.select("//ct:Override")}
    return defaults, overrides


def analyze_package(docx_path: Path, show_parts: bool = True, show_rels: bool = False):
    """Print a report on one package."""
    store = PartStore.open(docx_path)

    try:
        print(f"\nAnalyzing: {docx_path}")
        print("=" * 70)

        if show_parts:
            print("\nParts:")
            for name in store.names():
                part = store.get(name)
                print(f"  {part.kind.value:<7} {part.size:>10,}  {name}")

        defaults, overrides = collect_content_types(store)
        print("\nContent types:")
        for ext, content_type in sorted(defaults.items()):
            print(f"  Default  .{ext:<10} {content_type}")
        if show_rels:
            for part_name, content_type in overrides.items():
                print(f"  Override {part_name}  {content_type}")
        else:
            print(f"  {len(overrides)} override(s)")

        if show_rels:
            print("\nRelationships:")
            for rels_path, rels in collect_relationships(store).items():
                print(f"  {rels_path}")
                for rid, target, mode in rels:
                    suffix = " (external)" if mode == "External" else ""
                    print(f"    {rid:<8} {target}{suffix}")

        print("\nLanguages:")
        languages = collect_languages(store)
        if not languages:
            print("  (no document, header or footer parts)")
        for path, values in languages.items():
            print(f"  {path}: {', '.join(values) or '(no w:lang)'}")

        dangling = find_dangling_references(store)
        print()
        if dangling:
            print(f"⚠️  {len(dangling)} dangling reference(s):")
            for ref in dangling:
                print(f"  {ref.source}: '{ref.reference}' -> missing '{ref.resolved}'")
        else:
            print("No dangling references.")
    finally:
        store.close()

    return dangling


def main():
    parser = argparse.ArgumentParser(
        description="Inspect a DOCX package before or after DocxCleaner"
    )
    parser.add_argument("input", type=Path, help="Input DOCX (or .updated.zip) file")
    parser.add_argument(
        "-r", "--rels",
        action="store_true",
        help="List every relationship and content-type override"
    )
    parser.add_argument(
        "--no-parts",
        action="store_true",
        help="Do not list the parts"
    )

    args = parser.parse_args()

    if not args.input.exists():
        print(f"Error: File not found: {args.input}", file=sys.stderr)
        sys.exit(1)

    try:
        dangling = analyze_package(args.input, show_parts=not args.no_parts, show_rels=args.rels)
    except DocxCleanerError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    sys.exit(1 if dangling else 0)


if __name__ == "__main__":
    main()
