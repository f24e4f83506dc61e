"""
Backups and the per-file replacement state machine.

Each file in a replace batch moves through:

    PENDING -> BACKED_UP -> APPLYING -> COMMITTED   -> CLEANED
                                     -> ROLLED_BACK -> CLEANED

Files without a backup skip BACKED_UP. Any other transition is a
programming error.
"""

from __future__ import annotations

import logging
import shutil
import threading
import time
from collections.abc import Iterable
from enum import Enum
from pathlib import Path

from .constants import DEFAULT_BACKUP_SUFFIX
from .errors import FileOperation, wrap_exception
from .results import BackupError, BackupResult

logger = logging.getLogger(__name__)


class FileState(str, Enum):
    PENDING = "pending"
    BACKED_UP = "backed_up"
    APPLYING = "applying"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    CLEANED = "cleaned"


TRANSITIONS: dict[FileState, frozenset[FileState]] = {
    FileState.PENDING: frozenset({FileState.BACKED_UP, FileState.APPLYING}),
    FileState.BACKED_UP: frozenset({FileState.APPLYING}),
    FileState.APPLYING: frozenset({FileState.COMMITTED, FileState.ROLLED_BACK}),
    FileState.COMMITTED: frozenset({FileState.CLEANED}),
    FileState.ROLLED_BACK: frozenset({FileState.CLEANED}),
    FileState.CLEANED: frozenset(),
}


class FileJob:
    """Tracks one file through the replacement state machine."""

    def __init__(self, file_path: str) -> None:
        self.file_path = file_path
        self.state = FileState.PENDING
        self.backup_path: str | None = None
        self.history: list[FileState] = [FileState.PENDING]

    def advance(self, new_state: FileState) -> None:
        """Move to a new state.

        Raises:
            RuntimeError: If the transition is not allowed
        """
        if new_state not in TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Illegal state transition for {self.file_path}: "
                f"{self.state.value} -> {new_state.value}"
            )
        logger.debug(f"{self.file_path}: {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.history.append(new_state)

    def __repr__(self) -> str:
        return f"FileJob({self.file_path!r}, state={self.state.value})"


def backup_path_for(path: Path, suffix: str) -> Path:
    """Pick a sibling backup path that does not exist yet.

    ``report.docx`` -> ``report.docx.backup``; if taken, ``report.docx.backup.1``
    and so on.
    """
    candidate = path.with_name(path.name + suffix)
    counter = 1
    while candidate.exists():
        candidate = path.with_name(f"{path.name}{suffix}.{counter}")
        counter += 1
    return candidate


class BackupCoordinator:
    """Creates, restores and cleans up byte-identical sibling backups.

    A coordinator lives for one operation: backing up the same file twice
    returns the same backup path.

    Example:
        >>> coordinator = BackupCoordinator(suffix=".backup")
        >>> backup = coordinator.backup("offer.docx")
        >>> coordinator.restore("offer.docx")
        >>> coordinator.cleanup("offer.docx")
    """

    def __init__(
        self,
        suffix: str = DEFAULT_BACKUP_SUFFIX,
        enabled: bool = True,
        retain: bool = False,
    ) -> None:
        self.suffix = suffix
        self.enabled = enabled
        self.retain = retain
        self._backups: dict[str, str] = {}
        self._lock = threading.Lock()

    def backup_for(self, path: str | Path) -> str | None:
        with self._lock:
            return self._backups.get(str(path))

    def backup(self, path: str | Path) -> str | None:
        """Back up a file; returns the backup path, or None when disabled.

        Raises:
            DocxFillError: If the file cannot be read or the backup cannot be written
        """
        if not self.enabled:
            return None

        source = Path(path)
        key = str(source)
        with self._lock:
            if key in self._backups:
                return self._backups[key]

            target = backup_path_for(source, self.suffix)
            try:
                shutil.copyfile(source, target)
            except OSError as e:
                raise wrap_exception(e, "backup creation", key, FileOperation.CREATE) from e
            self._backups[key] = str(target)

        logger.debug(f"Backed up {source} to {target}")
        return str(target)

    def restore(self, path: str | Path) -> bool:
        """Overwrite a file with its backup's bytes.

        Returns:
            True if a backup existed and was restored
        """
        backup = self.backup_for(path)
        if backup is None:
            return False
        try:
            shutil.copyfile(backup, path)
        except OSError as e:
            raise wrap_exception(e, "backup restore", str(path), FileOperation.WRITE) from e
        logger.info(f"Restored {path} from {backup}")
        return True

    def cleanup(self, path: str | Path) -> str | None:
        """Delete a file's backup unless retention is requested.

        Returns:
            The backup path if it was retained, otherwise None
        """
        backup = self.backup_for(path)
        if backup is None:
            return None
        if self.retain:
            return backup

        try:
            Path(backup).unlink(missing_ok=True)
        except OSError as e:
            # The replacement itself succeeded; a stale backup is only reported
            logger.warning(f"Could not delete backup {backup}: {e}")
            return backup
        with self._lock:
            self._backups.pop(str(path), None)
        return None

    def backup_all(self, paths: Iterable[str | Path]) -> BackupResult:
        """Back up a batch of files, collecting failures instead of raising."""
        start = time.perf_counter()
        result = BackupResult()
        for path in paths:
            try:
                backup = self.backup(path)
            except Exception as e:
                error = wrap_exception(e, "backup creation", str(path), FileOperation.CREATE)
                logger.warning(f"Failed to back up {path}: {error}")
                result.failures.append(BackupError(str(path), error.message))
                continue
            if backup is not None:
                result.backups[str(path)] = backup
        result.duration = time.perf_counter() - start
        logger.info(str(result))
        return result
