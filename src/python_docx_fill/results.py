"""
Result classes for scan, validation, backup and replace operations.

Results are produced fresh per invocation and are read-only once returned.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from .errors import DocxFillError, ErrorKind
from .models.placeholder import Placeholder

if TYPE_CHECKING:
    from .backup import FileState


# =============================================================================
# Scanning
# =============================================================================


@dataclass(frozen=True)
class ScanError:
    """A file that could not be scanned.

    Attributes:
        file_path: The file that failed
        message: Human-readable error message
        kind: Classification of the failure
    """

    file_path: str
    message: str
    kind: ErrorKind = ErrorKind.UNEXPECTED

    @property
    def display_message(self) -> str:
        return f"{Path(self.file_path).name}: {self.message}"


@dataclass
class PlaceholderScanResult:
    """Result of scanning a batch of files for placeholders.

    Attributes:
        placeholders: Distinct placeholders ordered by first occurrence
        total_files_scanned: Number of files in the batch
        duration: Elapsed seconds
        files_with_placeholders: Files that contained at least one match
        failed_files: Files that could not be scanned
        errors: One ScanError per failed file
    """

    placeholders: list[Placeholder]
    total_files_scanned: int
    duration: float
    files_with_placeholders: int
    failed_files: int = 0
    errors: list[ScanError] = field(default_factory=list)

    @property
    def total_occurrences(self) -> int:
        return sum(p.total_occurrences for p in self.placeholders)

    @property
    def unique_placeholder_count(self) -> int:
        return len(self.placeholders)

    @property
    def is_successful(self) -> bool:
        """True when at least one file scanned cleanly (or there was nothing to scan)."""
        if self.total_files_scanned == 0:
            return True
        return self.failed_files < self.total_files_scanned

    @property
    def has_errors(self) -> bool:
        return self.failed_files > 0

    @property
    def average_per_file(self) -> float:
        """Occurrences per file that contained at least one placeholder."""
        if not self.files_with_placeholders:
            return 0.0
        return self.total_occurrences / self.files_with_placeholders

    def statistics(self, top: int = 10) -> PlaceholderStatistics:
        """Summarize the scan: most common placeholders and per-file distribution.

        Args:
            top: How many of the most frequent placeholders to keep

        Returns:
            PlaceholderStatistics for this result
        """
        per_file: dict[str, int] = {}
        for placeholder in self.placeholders:
            for loc in placeholder.locations:
                per_file[loc.file_path] = per_file.get(loc.file_path, 0) + loc.occurrences

        distribution: dict[int, int] = {}
        for count in sorted(per_file.values()):
            distribution[count] = distribution.get(count, 0) + 1

        most_common = sorted(self.placeholders, key=lambda p: -p.total_occurrences)[:top]
        return PlaceholderStatistics(
            total_unique_placeholders=self.unique_placeholder_count,
            total_occurrences=self.total_occurrences,
            files_scanned=self.total_files_scanned,
            files_with_placeholders=self.files_with_placeholders,
            average_per_file=self.average_per_file,
            most_common=most_common,
            distribution=distribution,
            scan_duration=self.duration,
        )

    def get(self, name: str) -> Placeholder | None:
        for placeholder in self.placeholders:
            if placeholder.name == name:
                return placeholder
        return None

    def __str__(self) -> str:
        msg = (
            f"Scanned {self.total_files_scanned} files in {self.duration * 1000:.0f}ms. "
            f"Found {self.unique_placeholder_count} unique placeholders with "
            f"{self.total_occurrences} total occurrences across "
            f"{self.files_with_placeholders} files."
        )
        if self.failed_files:
            msg += f" {self.failed_files} files failed to scan."
        return msg


@dataclass
class PlaceholderStatistics:
    """Aggregate figures for a scan.

    Attributes:
        most_common: Placeholders by descending occurrence count; ties keep
            first-occurrence order
        distribution: Maps a per-file occurrence count to the number of files
            with that count, in ascending count order
    """

    total_unique_placeholders: int
    total_occurrences: int
    files_scanned: int
    files_with_placeholders: int
    average_per_file: float
    most_common: list[Placeholder]
    distribution: dict[int, int]
    scan_duration: float


# =============================================================================
# Validation
# =============================================================================


class ValidationSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class ValidationIssueKind(str, Enum):
    UNMAPPED = "unmapped"
    UNUSED_MAPPING = "unused_mapping"
    INVALID_NAME = "invalid_name"


@dataclass(frozen=True)
class ValidationIssue:
    """A single problem found while validating a replacement map."""

    name: str
    kind: ValidationIssueKind
    severity: ValidationSeverity
    message: str


@dataclass
class ReplacementValidationResult:
    """Every issue found when checking a replacement map against a scan.

    Unmapped placeholders and invalid map keys are errors; mapped names that
    never appear in the scanned files are warnings.
    """

    issues: list[ValidationIssue] = field(default_factory=list)
    placeholders_validated: int = 0
    mappings_validated: int = 0

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity is ValidationSeverity.ERROR]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity is ValidationSeverity.WARNING]

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def unmapped_names(self) -> list[str]:
        return [i.name for i in self.issues if i.kind is ValidationIssueKind.UNMAPPED]

    @property
    def unused_names(self) -> list[str]:
        return [i.name for i in self.issues if i.kind is ValidationIssueKind.UNUSED_MAPPING]

    def __str__(self) -> str:
        status = "Valid" if self.is_valid else "Invalid"
        return (
            f"Validation: {status}. {len(self.errors)} errors, "
            f"{len(self.warnings)} warnings ({self.placeholders_validated} placeholders, "
            f"{self.mappings_validated} mappings)"
        )


# =============================================================================
# Backups
# =============================================================================


@dataclass(frozen=True)
class BackupError:
    source_path: str
    message: str


@dataclass
class BackupResult:
    """Result of creating backups for a batch of files.

    Attributes:
        backups: Mapping of source path to backup path
        failures: Files whose backup could not be created
        duration: Elapsed seconds
    """

    backups: dict[str, str] = field(default_factory=dict)
    failures: list[BackupError] = field(default_factory=list)
    duration: float = 0.0

    @property
    def is_successful(self) -> bool:
        return not self.failures

    def __str__(self) -> str:
        msg = f"Created {len(self.backups)} backups"
        if self.failures:
            msg += f", {len(self.failures)} failed"
        return msg


# =============================================================================
# Replacement
# =============================================================================


@dataclass
class FileReplaceResult:
    """Outcome of replacing placeholders in one file.

    Attributes:
        file_path: The processed file
        success: Whether the file was committed (or would be, in dry-run)
        replacements: Number of placeholder occurrences replaced
        backup_path: Backup file retained or used during the operation
        error: The captured error when success is False
        duration: Elapsed seconds
        state: Final state of the per-file state machine
    """

    file_path: str
    success: bool
    replacements: int = 0
    backup_path: str | None = None
    error: DocxFillError | None = None
    duration: float = 0.0
    state: FileState | None = None

    @property
    def file_name(self) -> str:
        return Path(self.file_path).name

    @property
    def error_message(self) -> str | None:
        return str(self.error) if self.error is not None else None

    def __str__(self) -> str:
        if self.success:
            plural = "" if self.replacements == 1 else "s"
            msg = f"✓ {self.file_name}: {self.replacements} replacement{plural}"
            if self.backup_path:
                msg += " (backup kept)"
            return msg
        return f"✗ {self.file_name}: {self.error_message or 'Unknown error'}"


@dataclass
class ReplaceResult:
    """Aggregate outcome of a replace batch.

    Attributes:
        file_results: One FileReplaceResult per input file, in sorted path order
        duration: Elapsed seconds
        dry_run: True when no file was mutated
    """

    file_results: list[FileReplaceResult] = field(default_factory=list)
    duration: float = 0.0
    dry_run: bool = False

    @property
    def files_processed(self) -> int:
        return len(self.file_results)

    @property
    def total_replacements(self) -> int:
        return sum(r.replacements for r in self.file_results)

    @property
    def successful_files(self) -> int:
        return sum(1 for r in self.file_results if r.success)

    @property
    def failed_files(self) -> int:
        return sum(1 for r in self.file_results if not r.success)

    @property
    def is_successful(self) -> bool:
        """True when every file succeeded."""
        return self.failed_files == 0

    @property
    def is_partially_successful(self) -> bool:
        return self.successful_files > 0 and self.failed_files > 0

    @property
    def errors(self) -> list[DocxFillError]:
        return [r.error for r in self.file_results if r.error is not None]

    def __str__(self) -> str:
        msg = (
            f"Processed {self.files_processed} files in {self.duration * 1000:.0f}ms. "
            f"Made {self.total_replacements} replacements across "
            f"{self.successful_files} files."
        )
        if self.failed_files:
            msg += f" {self.failed_files} files failed."
        if self.dry_run:
            msg += " (dry run, no files changed)"
        return msg


# =============================================================================
# Preview
# =============================================================================


@dataclass(frozen=True)
class ReplacementDetail:
    """What would happen to one placeholder in one file."""

    placeholder: str
    current_value: str
    new_value: str | None
    occurrences: int

    @property
    def will_replace(self) -> bool:
        return self.new_value is not None


@dataclass
class FileReplacementPreview:
    file_path: str
    replacements: int = 0
    can_process: bool = True
    error: DocxFillError | None = None
    details: list[ReplacementDetail] = field(default_factory=list)


@dataclass
class ReplacementPreview:
    """What a replace batch would change, computed without mutation."""

    files: list[FileReplacementPreview] = field(default_factory=list)
    duration: float = 0.0
    mutated: bool = False

    @property
    def total_replacements(self) -> int:
        return sum(f.replacements for f in self.files)

    @property
    def files_that_can_process(self) -> int:
        return sum(1 for f in self.files if f.can_process)
