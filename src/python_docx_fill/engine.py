"""
PlaceholderEngine: the public entry point for scanning and filling templates.

The engine fans the per-file pipeline (open, plan, apply, commit) out over a
bounded worker pool and collects results on the calling thread. Each file is
isolated: a failure rolls that file back and the rest of the batch continues.
Only strict validation and critical errors stop a whole batch.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import TypeVar

from .applier import ReplacementApplier
from .backup import BackupCoordinator, FileJob, FileState
from .config import EngineConfig, ReplaceOptions
from .errors import (
    DocxFillError,
    FileOperation,
    OperationCancelledError,
    OperationTimeoutError,
    UnexpectedError,
    UnmappedPlaceholderError,
    is_critical,
    wrap_exception,
)
from .models.replacement import ReplacementMap
from .models.template_file import TemplateFile
from .package import OOXMLPackage
from .planner import FileEditPlan, ReplacementPlanner
from .results import (
    BackupResult,
    FileReplacementPreview,
    FileReplaceResult,
    PlaceholderScanResult,
    PlaceholderStatistics,
    ReplaceResult,
    ReplacementDetail,
    ReplacementPreview,
    ReplacementValidationResult,
    ValidationIssue,
    ValidationIssueKind,
    ValidationSeverity,
)
from .scanner import PlaceholderScanner, compile_pattern, normalize_files

logger = logging.getLogger(__name__)

T = TypeVar("T")

FileRefs = Iterable[TemplateFile | str | Path]


class PlaceholderEngine:
    """Scans, previews and fills placeholders across batches of .docx files.

    The placeholder pattern is validated when the engine is created, so an
    invalid pattern fails before any file is opened.

    Example:
        >>> engine = PlaceholderEngine(EngineConfig(max_concurrency=4))
        >>> scan = engine.scan(["offer.docx", "contract.docx"])
        >>> rmap = ReplacementMap({"NAME": "Alice", "DATE": "2024-05-01"})
        >>> engine.validate(scan, rmap).is_valid
        True
        >>> engine.replace(["offer.docx", "contract.docx"], rmap).total_replacements
        6
    """

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or EngineConfig()
        self.compiled = compile_pattern(
            self.config.placeholder_pattern, self.config.case_sensitive
        )

    # ------------------------------------------------------------------
    # Scanning and validation
    # ------------------------------------------------------------------

    def scan(
        self, files: FileRefs, cancel_event: threading.Event | None = None
    ) -> PlaceholderScanResult:
        """Find every placeholder in a batch of files."""
        return PlaceholderScanner(self.config).scan(files, cancel_event=cancel_event)

    def statistics(
        self, scan_result: PlaceholderScanResult, top: int = 10
    ) -> PlaceholderStatistics:
        """Summarize a scan: most common placeholders and per-file distribution."""
        return scan_result.statistics(top=top)

    def validate(
        self, scan_result: PlaceholderScanResult, replacement_map: ReplacementMap
    ) -> ReplacementValidationResult:
        """Check a replacement map against a scan, collecting every issue.

        Unmapped placeholders and invalid map keys are errors; mappings for
        names that never appeared are warnings.
        """
        issues: list[ValidationIssue] = []
        case_sensitive = self.config.case_sensitive

        for key in replacement_map.invalid_names():
            issues.append(
                ValidationIssue(
                    name=key,
                    kind=ValidationIssueKind.INVALID_NAME,
                    severity=ValidationSeverity.ERROR,
                    message=f"Invalid placeholder name in replacement map: {key!r}",
                )
            )

        found = set()
        for placeholder in scan_result.placeholders:
            found.add(self.compiled.group_key(placeholder.name))
            if replacement_map.lookup(placeholder.name, case_sensitive=case_sensitive) is None:
                issues.append(
                    ValidationIssue(
                        name=placeholder.name,
                        kind=ValidationIssueKind.UNMAPPED,
                        severity=ValidationSeverity.ERROR,
                        message=(
                            f"No replacement provided for '{placeholder.name}' "
                            f"({placeholder.total_occurrences} occurrences)"
                        ),
                    )
                )

        for key in replacement_map:
            if self.compiled.group_key(key) not in found:
                issues.append(
                    ValidationIssue(
                        name=key,
                        kind=ValidationIssueKind.UNUSED_MAPPING,
                        severity=ValidationSeverity.WARNING,
                        message=f"Mapping '{key}' does not match any placeholder",
                    )
                )

        result = ReplacementValidationResult(
            issues=issues,
            placeholders_validated=len(scan_result.placeholders),
            mappings_validated=len(replacement_map),
        )
        logger.info(str(result))
        return result

    def _validate_strict(self, paths: list[str], replacement_map: ReplacementMap) -> None:
        """Scan and validate once for the batch; raise before anything is touched."""
        validation = self.validate(self.scan(paths), replacement_map)
        if not validation.is_valid:
            names = [issue.name for issue in validation.errors]
            raise UnmappedPlaceholderError(names, validation=validation)

    # ------------------------------------------------------------------
    # Worker pool
    # ------------------------------------------------------------------

    def _run_batch(
        self,
        paths: list[str],
        worker: Callable[[str], T],
        on_timeout: Callable[[str], T],
        io_timeout: float | None,
        context: str,
    ) -> list[T]:
        """Run a worker per file and collect results in path order.

        Files not started by the deadline are cancelled and reported through
        ``on_timeout``; files already running are waited for.

        Raises:
            UnexpectedError: When a worker hits a critical error; pending
                files are cancelled first
        """
        if not paths:
            return []

        executor = ThreadPoolExecutor(
            max_workers=min(self.config.max_concurrency, len(paths)),
            thread_name_prefix="docx-fill",
        )
        try:
            futures: list[Future[T]] = [executor.submit(worker, path) for path in paths]
            _, not_done = wait(futures, timeout=io_timeout)
            cancelled = [future for future in not_done if future.cancel()]
            if cancelled:
                logger.warning(
                    f"{context}: {len(cancelled)} files not started within {io_timeout}s"
                )

            results = []
            for path, future in zip(paths, futures):
                if future.cancelled():
                    results.append(on_timeout(path))
                    continue
                try:
                    results.append(future.result())
                except Exception as e:
                    if is_critical(e):
                        for pending in futures:
                            pending.cancel()
                        logger.error(f"Critical error while processing {path}: {e}")
                        raise UnexpectedError(e, context, path, critical=True) from e
                    raise
            return results
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

    # ------------------------------------------------------------------
    # Preview
    # ------------------------------------------------------------------

    def _plan_one(
        self, path: str, replacement_map: ReplacementMap, cancel_event: threading.Event | None
    ) -> FileEditPlan:
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelledError(
                "Operation cancelled before the file was opened",
                context="replacement preview",
                file_path=path,
            )
        planner = ReplacementPlanner(self.compiled)
        with OOXMLPackage.open(path) as package:
            return planner.plan_file(package, replacement_map)

    def _preview_one(
        self, path: str, replacement_map: ReplacementMap, cancel_event: threading.Event | None
    ) -> FileReplacementPreview:
        try:
            plan = self._plan_one(path, replacement_map, cancel_event)
        except Exception as e:
            if is_critical(e):
                raise
            error = wrap_exception(e, "replacement preview", path)
            logger.warning(f"Cannot preview {path}: {error}")
            return FileReplacementPreview(path, can_process=False, error=error)

        details = [
            ReplacementDetail(
                placeholder=p.name,
                current_value=p.token,
                new_value=p.new_value,
                occurrences=p.occurrences,
            )
            for p in plan.placeholders.values()
        ]
        return FileReplacementPreview(path, replacements=plan.edit_count, details=details)

    def preview(
        self,
        files: FileRefs,
        replacement_map: ReplacementMap,
        cancel_event: threading.Event | None = None,
    ) -> ReplacementPreview:
        """Report what a replace would change without touching any file."""
        start = time.perf_counter()
        paths = normalize_files(files)

        def timed_out(path: str) -> FileReplacementPreview:
            error = OperationTimeoutError(
                "Timed out waiting for the file", context="replacement preview", file_path=path
            )
            return FileReplacementPreview(path, can_process=False, error=error)

        previews = self._run_batch(
            paths,
            lambda path: self._preview_one(path, replacement_map, cancel_event),
            timed_out,
            self.config.io_timeout,
            "replacement preview",
        )
        preview = ReplacementPreview(previews, time.perf_counter() - start)
        logger.info(
            f"Preview: {preview.total_replacements} replacements in "
            f"{preview.files_that_can_process}/{len(previews)} files"
        )
        return preview

    # ------------------------------------------------------------------
    # Replacement
    # ------------------------------------------------------------------

    def _dry_run_one(
        self,
        path: str,
        replacement_map: ReplacementMap,
        cancel_event: threading.Event | None,
    ) -> FileReplaceResult:
        start = time.perf_counter()
        try:
            plan = self._plan_one(path, replacement_map, cancel_event)
        except Exception as e:
            if is_critical(e):
                raise
            error = wrap_exception(e, "placeholder replacement", path)
            return FileReplaceResult(path, False, error=error, duration=time.perf_counter() - start)
        return FileReplaceResult(
            path, True, replacements=plan.edit_count, duration=time.perf_counter() - start
        )

    def _replace_one(
        self,
        path: str,
        replacement_map: ReplacementMap,
        config: EngineConfig,
        coordinator: BackupCoordinator,
        cancel_event: threading.Event | None,
    ) -> FileReplaceResult:
        """Run one file through backup, apply, commit or rollback, and cleanup."""
        start = time.perf_counter()
        job = FileJob(path)

        def failed(error: DocxFillError, backup_path: str | None = None) -> FileReplaceResult:
            logger.error(f"Replacement failed for {path}: {error}")
            return FileReplaceResult(
                path,
                False,
                backup_path=backup_path,
                error=error,
                duration=time.perf_counter() - start,
                state=job.state,
            )

        if cancel_event is not None and cancel_event.is_set():
            return failed(
                OperationCancelledError(
                    "Operation cancelled before the file was started",
                    context="placeholder replacement",
                    file_path=path,
                )
            )

        try:
            if coordinator.backup(path) is not None:
                job.advance(FileState.BACKED_UP)
        except Exception as e:
            if is_critical(e):
                raise
            return failed(wrap_exception(e, "backup creation", path, FileOperation.CREATE))

        job.advance(FileState.APPLYING)
        try:
            planner = ReplacementPlanner(self.compiled)
            with OOXMLPackage.open(path) as package:
                plan = planner.plan_file(package, replacement_map, strict=config.strict)
                replacements = ReplacementApplier().apply(package, plan, target=path)
        except Exception as e:
            error = wrap_exception(e, "placeholder replacement", path, FileOperation.WRITE)
            try:
                coordinator.restore(path)
            except DocxFillError as restore_error:
                logger.error(f"Rollback of {path} failed: {restore_error}")
            job.advance(FileState.ROLLED_BACK)
            if is_critical(e):
                raise
            kept = coordinator.cleanup(path)
            job.advance(FileState.CLEANED)
            return failed(error, kept)

        job.advance(FileState.COMMITTED)
        kept = coordinator.cleanup(path)
        job.advance(FileState.CLEANED)
        logger.debug(f"Replaced {replacements} placeholders in {path}")
        return FileReplaceResult(
            path,
            True,
            replacements=replacements,
            backup_path=kept,
            duration=time.perf_counter() - start,
            state=job.state,
        )

    def replace(
        self,
        files: FileRefs,
        replacement_map: ReplacementMap,
        options: ReplaceOptions | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ReplaceResult:
        """Fill placeholders in a batch of files.

        Files are processed independently; the result lists one outcome per
        file in sorted path order.

        Raises:
            UnmappedPlaceholderError: In strict mode, before any file is backed up
            UnexpectedError: On a critical error
        """
        options = options or ReplaceOptions()
        config = options.resolve(self.config)
        start = time.perf_counter()
        paths = normalize_files(files)

        if config.strict:
            self._validate_strict(paths, replacement_map)

        def timed_out(path: str) -> FileReplaceResult:
            error = OperationTimeoutError(
                f"Not started within {config.io_timeout}s",
                context="placeholder replacement",
                file_path=path,
            )
            return FileReplaceResult(path, False, error=error, state=FileState.PENDING)

        if options.dry_run:
            results = self._run_batch(
                paths,
                lambda path: self._dry_run_one(path, replacement_map, cancel_event),
                timed_out,
                config.io_timeout,
                "placeholder replacement",
            )
        else:
            coordinator = BackupCoordinator(
                suffix=config.backup_suffix,
                enabled=config.create_backups,
                retain=config.retain_backups,
            )
            results = self._run_batch(
                paths,
                lambda path: self._replace_one(
                    path, replacement_map, config, coordinator, cancel_event
                ),
                timed_out,
                config.io_timeout,
                "placeholder replacement",
            )

        result = ReplaceResult(results, time.perf_counter() - start, dry_run=options.dry_run)
        logger.info(str(result))
        return result

    def replace_in_single_file(
        self,
        file: TemplateFile | str | Path,
        replacement_map: ReplacementMap,
        options: ReplaceOptions | None = None,
    ) -> FileReplaceResult:
        """Fill placeholders in one file."""
        return self.replace([file], replacement_map, options).file_results[0]

    def create_backups(self, files: FileRefs) -> BackupResult:
        """Create retained sibling backups for a batch of files."""
        coordinator = BackupCoordinator(suffix=self.config.backup_suffix, retain=True)
        return coordinator.backup_all(normalize_files(files))
