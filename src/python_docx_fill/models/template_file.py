"""
TemplateFile model: an immutable snapshot of a .docx file on disk.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from ..errors import TemplateNotFoundError


@dataclass(frozen=True)
class TemplateFile:
    """A document package identified at discovery time.

    Attributes:
        path: Absolute path to the file
        name: Display name (file name)
        size: Size in bytes when the snapshot was taken
        last_modified: Last modification time (UTC) when the snapshot was taken
    """

    path: Path
    name: str
    size: int
    last_modified: datetime

    @classmethod
    def from_path(cls, path: str | Path) -> TemplateFile:
        """Snapshot a file on disk.

        Raises:
            TemplateNotFoundError: If the path does not exist or is not a file
        """
        resolved = Path(path).resolve()
        if not resolved.is_file():
            raise TemplateNotFoundError(
                f"Template file not found: {resolved}",
                context="template discovery",
                file_path=str(resolved),
            )
        stat = resolved.stat()
        return cls(
            path=resolved,
            name=resolved.name,
            size=stat.st_size,
            last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        )

    @property
    def path_str(self) -> str:
        return str(self.path)
