"""
DocxCleaner Pipeline Module

Runs the enabled transformation passes, in their fixed order, against one
open package.

Strategy:
1. Check the input really is a zip archive (nothing is written if not)
2. Copy it to <name>.updated.zip
3. Open the copy as a PartStore
4. Run each enabled pass; a pass that fails is recorded and the next one runs
5. Persist the copy (also when passes failed)
"""

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from errors import (
    ArchiveOpenError,
    ArchivePersistError,
    InvalidConfigurationError,
    MalformedPartError,
    MissingCapabilityError,
    UnsupportedOperationError,
)
from options import CleanerOptions
from package_store import PartStore
from passes import PASSES, PassReport, TransformationPass
from references import DanglingReference, find_dangling_references

OUTPUT_SUFFIX = ".updated.zip"

# Errors that cost one pass, not the run
RECOVERABLE_ERRORS = (
    MalformedPartError,
    UnsupportedOperationError,
    MissingCapabilityError,
    InvalidConfigurationError,
)


@dataclass
class PipelineResult:
    """Results from cleaning one package."""
    input_path: Path
    output_path: Path
    reports: list[PassReport] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    dangling: Optional[list[DanglingReference]] = None

    @property
    def errors(self) -> list[str]:
        return [f"[{r.name}] {e}" for r in self.reports for e in r.errors]

    @property
    def success(self) -> bool:
        return not self.errors


class PipelineDriver:
    """Runs passes against an open PartStore."""

    def __init__(self, options: CleanerOptions, passes: Sequence[TransformationPass] = PASSES,
                 verbose: bool = False):
        self.options = options
        self.passes = tuple(passes)
        self.verbose = verbose

    def enabled_passes(self) -> list[TransformationPass]:
        return [p for p in self.passes if p.enabled(self.options)]

    def run(self, store: PartStore) -> list[PassReport]:
        reports = []

        for transformation in self.enabled_passes():
            report = PassReport(name=transformation.name)
            if self.verbose:
                print(f"  Running {transformation.name}...")

            try:
                transformation.run(store, self.options, report)
            except RECOVERABLE_ERRORS as e:
                report.fail(str(e))

            if self.verbose:
                for note in report.notes:
                    print(f"    {note}")
                for error in report.errors:
                    print(f"    ✗ {error}")

            reports.append(report)

        return reports


def output_path_for(input_path: Path) -> Path:
    """report.docx -> report.updated.zip"""
    return Path(input_path).with_suffix(OUTPUT_SUFFIX)


def clean_document(options: CleanerOptions, verbose: bool = False, check: bool = False) -> PipelineResult:
    """
    Clean options.file into a sibling .updated.zip.

    Args:
        options: Run configuration; options.file is the input package
        verbose: Print progress for every pass
        check: After the passes, scan the package for dangling references

    Returns:
        PipelineResult with one PassReport per pass that ran

    Raises:
        ArchiveOpenError: input missing or not a zip archive (nothing written)
        ArchivePersistError: the output could not be written
    """
    if options.file is None:
        raise ArchiveOpenError("(none)", "no input file given")

    input_path = Path(options.file)
    output_path = output_path_for(input_path)

    # Validate before anything touches the disk
    PartStore.open(input_path).close()

    result = PipelineResult(input_path=input_path, output_path=output_path,
                            warnings=list(options.warnings))

    try:
        shutil.copyfile(input_path, output_path)
    except OSError as e:
        raise ArchivePersistError(output_path, str(e)) from e

    driver = PipelineDriver(options, verbose=verbose)
    with PartStore.open(output_path) as store:
        if verbose:
            print(f"  Opened '{output_path}' as a zip archive.")
        result.reports = driver.run(store)
        if check:
            result.dangling = find_dangling_references(store)

    return result
