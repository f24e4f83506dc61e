"""
Placeholder scanning across a batch of .docx files.

Scanning opens each package read-only, indexes every paragraph of every
text-bearing part and matches the placeholder pattern against the logical
text, so tokens split across runs are found. Files are scanned on a bounded
worker pool; results are merged by a single collector in sorted file order,
which makes the placeholder list independent of completion order.
"""

from __future__ import annotations

import logging
import re
import threading
import time
from collections.abc import Iterable, Iterator
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path

from .config import EngineConfig
from .constants import IMAGE_TOKEN_PATTERN, PLACEHOLDER_DELIMITERS
from .errors import (
    InvalidPatternError,
    OperationCancelledError,
    OperationTimeoutError,
    UnexpectedError,
    is_critical,
    wrap_exception,
)
from .models.placeholder import Placeholder, PlaceholderKind, PlaceholderLocation
from .models.template_file import TemplateFile
from .package import OOXMLPackage, TextPart
from .results import PlaceholderScanResult, ScanError
from .text_index import LogicalText, context_snippet, index_paragraph, iter_paragraphs

logger = logging.getLogger(__name__)

_IMAGE_TOKEN = re.compile(IMAGE_TOKEN_PATTERN)


@dataclass(frozen=True)
class ResolvedName:
    """The placeholder a matched token stands for."""

    name: str
    kind: PlaceholderKind = PlaceholderKind.TEXT
    max_width: int | None = None
    max_height: int | None = None


@dataclass(frozen=True)
class CompiledPattern:
    """A validated placeholder pattern.

    Attributes:
        source: The pattern string as configured
        regex: The compiled regular expression
        case_sensitive: Whether names are matched and grouped case-sensitively
    """

    source: str
    regex: re.Pattern[str]
    case_sensitive: bool = True

    def resolve(self, match: re.Match[str]) -> ResolvedName | None:
        """Derive the placeholder name from a match.

        With one capturing group the name is the group; otherwise it is the
        whole match with the delimiters stripped. Returns None for empty names.
        """
        if self.regex.groups == 1:
            raw = match.group(1) or ""
        else:
            raw = match.group(0).strip(PLACEHOLDER_DELIMITERS)
        name = raw.strip()
        if not name:
            return None

        image = _IMAGE_TOKEN.match(name)
        if image:
            width, height = int(image.group(2)), int(image.group(3))
            image_name = image.group(1).strip()
            if image_name and width > 0 and height > 0:
                return ResolvedName(image_name, PlaceholderKind.IMAGE, width, height)
        return ResolvedName(name)

    def group_key(self, name: str) -> str:
        return name if self.case_sensitive else name.casefold()


def compile_pattern(pattern: str, case_sensitive: bool = True) -> CompiledPattern:
    """Validate and compile a placeholder pattern.

    Raises:
        InvalidPatternError: If the pattern is empty, does not compile, has
            more than one capturing group, or can match the empty string
    """
    if not pattern:
        raise InvalidPatternError("Placeholder pattern cannot be empty", pattern=pattern)

    flags = 0 if case_sensitive else re.IGNORECASE
    try:
        regex = re.compile(pattern, flags)
    except re.error as e:
        raise InvalidPatternError(f"Invalid regex pattern '{pattern}': {e}", pattern=pattern) from e

    if regex.groups > 1:
        raise InvalidPatternError(
            f"Pattern '{pattern}' has {regex.groups} capturing groups; at most one is allowed",
            pattern=pattern,
        )
    if regex.match("") is not None:
        raise InvalidPatternError(
            f"Pattern '{pattern}' matches the empty string", pattern=pattern
        )

    return CompiledPattern(pattern, regex, case_sensitive)


@dataclass(frozen=True)
class TokenMatch:
    """One placeholder token inside a paragraph's logical text."""

    start: int
    end: int
    token: str
    resolved: ResolvedName


def find_tokens(logical: LogicalText, compiled: CompiledPattern) -> list[TokenMatch]:
    """Find every placeholder token in a paragraph, in offset order."""
    tokens = []
    for match in compiled.regex.finditer(logical.text):
        if match.end() == match.start():
            continue
        resolved = compiled.resolve(match)
        if resolved is None:
            continue
        tokens.append(TokenMatch(match.start(), match.end(), match.group(0), resolved))
    return tokens


def iter_paragraph_tokens(
    part: TextPart, compiled: CompiledPattern
) -> Iterator[tuple[LogicalText, list[TokenMatch]]]:
    """Yield each paragraph of a part that holds at least one token."""
    for paragraph in iter_paragraphs(part.root):
        logical = index_paragraph(paragraph)
        if not logical.text:
            continue
        tokens = find_tokens(logical, compiled)
        if tokens:
            yield logical, tokens


@dataclass(frozen=True)
class PlaceholderMatch:
    """A single occurrence of a placeholder in a file."""

    resolved: ResolvedName
    token: str
    part_name: str
    section: str
    context: str


@dataclass
class FileScan:
    """All matches found in one file, in document order."""

    file_path: str
    matches: list[PlaceholderMatch] = field(default_factory=list)


def scan_package(
    package: OOXMLPackage, compiled: CompiledPattern, context_chars: int
) -> list[PlaceholderMatch]:
    """Scan an open package: body first, then headers, then footers."""
    matches = []
    for part in package.text_parts():
        for logical, tokens in iter_paragraph_tokens(part, compiled):
            for token in tokens:
                snippet = context_snippet(logical.text, token.start, token.end, context_chars)
                matches.append(
                    PlaceholderMatch(
                        resolved=token.resolved,
                        token=token.token,
                        part_name=part.part_name,
                        section=part.label,
                        context=f"{part.label}: {snippet}",
                    )
                )
    return matches


def scan_file(path: str | Path, compiled: CompiledPattern, context_chars: int) -> FileScan:
    """Open a file and collect its placeholder matches."""
    file_path = str(path)
    with OOXMLPackage.open(file_path) as package:
        matches = scan_package(package, compiled, context_chars)
    logger.debug(f"Scanned {file_path}: {len(matches)} matches")
    return FileScan(file_path, matches)


def normalize_files(files: Iterable[TemplateFile | str | Path]) -> list[str]:
    """Turn a batch of file references into unique absolute paths, sorted."""
    paths = set()
    for item in files:
        path = item.path if isinstance(item, TemplateFile) else Path(item)
        paths.add(str(path.absolute()))
    return sorted(paths)


def merge_scans(
    scans: list[FileScan], compiled: CompiledPattern
) -> tuple[list[Placeholder], int]:
    """Merge per-file matches into placeholders ordered by first occurrence.

    Args:
        scans: Per-file scans, already in sorted file order

    Returns:
        (placeholders, number of files with at least one match)
    """
    # group key -> (first match, {file_path: [matches]})
    groups: dict[str, tuple[PlaceholderMatch, dict[str, list[PlaceholderMatch]]]] = {}
    files_with_matches = 0

    for scan in scans:
        if scan.matches:
            files_with_matches += 1
        for match in scan.matches:
            key = compiled.group_key(match.resolved.name)
            if key not in groups:
                groups[key] = (match, {})
            groups[key][1].setdefault(scan.file_path, []).append(match)

    placeholders = []
    for first, per_file in groups.values():
        locations = tuple(
            PlaceholderLocation(
                file_path=file_path,
                file_name=Path(file_path).name,
                occurrences=len(file_matches),
                context=file_matches[0].context,
            )
            for file_path, file_matches in per_file.items()
        )
        placeholders.append(
            Placeholder(
                name=first.resolved.name,
                pattern=compiled.source,
                total_occurrences=sum(loc.occurrences for loc in locations),
                locations=locations,
                kind=first.resolved.kind,
                max_width=first.resolved.max_width,
                max_height=first.resolved.max_height,
            )
        )
    return placeholders, files_with_matches


class PlaceholderScanner:
    """Scans batches of files for placeholders on a bounded worker pool.

    Example:
        >>> scanner = PlaceholderScanner(EngineConfig())
        >>> result = scanner.scan(["offer.docx", "contract.docx"])
        >>> [p.name for p in result.placeholders]
        ['NAME', 'DATE']
    """

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or EngineConfig()
        self.compiled = compile_pattern(
            self.config.placeholder_pattern, self.config.case_sensitive
        )

    def _scan_one(self, file_path: str, cancel_event: threading.Event | None) -> FileScan:
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelledError(
                "Scan cancelled before the file was opened",
                context="placeholder scanning",
                file_path=file_path,
            )
        return scan_file(file_path, self.compiled, self.config.context_chars)

    def scan(
        self,
        files: Iterable[TemplateFile | str | Path],
        cancel_event: threading.Event | None = None,
    ) -> PlaceholderScanResult:
        """Scan a batch of files.

        A file that fails to open or parse is reported as a ScanError and
        the rest of the batch continues.

        Raises:
            UnexpectedError: On a critical error (memory exhaustion, recursion)
        """
        start = time.perf_counter()
        paths = normalize_files(files)
        if not paths:
            return PlaceholderScanResult([], 0, time.perf_counter() - start, 0)

        scans: list[FileScan] = []
        errors: list[ScanError] = []

        executor = ThreadPoolExecutor(
            max_workers=min(self.config.max_concurrency, len(paths)),
            thread_name_prefix="docx-scan",
        )
        try:
            futures: dict[str, Future[FileScan]] = {
                path: executor.submit(self._scan_one, path, cancel_event) for path in paths
            }
            wait(futures.values(), timeout=self.config.io_timeout)

            for path in paths:
                future = futures[path]
                if not future.done():
                    future.cancel()
                    timeout = OperationTimeoutError(
                        f"Timed out after {self.config.io_timeout}s",
                        context="placeholder scanning",
                        file_path=path,
                    )
                    logger.warning(str(timeout))
                    errors.append(ScanError(path, timeout.message, timeout.kind))
                    continue
                try:
                    scans.append(future.result())
                except Exception as e:
                    if is_critical(e):
                        raise UnexpectedError(e, "placeholder scanning", path, critical=True) from e
                    error = wrap_exception(e, "placeholder scanning", path)
                    logger.warning(f"Failed to scan {path}: {error}")
                    errors.append(ScanError(path, error.message, error.kind))
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        placeholders, files_with_matches = merge_scans(scans, self.compiled)
        result = PlaceholderScanResult(
            placeholders=placeholders,
            total_files_scanned=len(paths),
            duration=time.perf_counter() - start,
            files_with_placeholders=files_with_matches,
            failed_files=len(errors),
            errors=errors,
        )
        logger.info(str(result))
        return result

