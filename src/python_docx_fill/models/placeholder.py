"""
Placeholder and PlaceholderLocation models produced by the scanner.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class PlaceholderKind(str, Enum):
    """Whether a placeholder token stands for text or an image."""

    TEXT = "text"
    IMAGE = "image"


@dataclass(frozen=True)
class PlaceholderLocation:
    """Where a placeholder was found, aggregated per file.

    Attributes:
        file_path: Absolute path of the file
        file_name: File name for display
        occurrences: Number of matches of the placeholder in this file
        context: "<Section>: <snippet>" around the first match in the file
    """

    file_path: str
    file_name: str
    occurrences: int
    context: str = ""

    @property
    def display_location(self) -> str:
        plural = "" if self.occurrences == 1 else "s"
        return f"{self.file_name} ({self.occurrences} occurrence{plural})"


@dataclass(frozen=True)
class Placeholder:
    """A distinct placeholder name found across a batch of files.

    Attributes:
        name: Placeholder name (first-seen spelling in case-insensitive mode)
        pattern: The pattern that matched it
        total_occurrences: Total matches across all locations
        locations: One PlaceholderLocation per file, in scan order
        kind: TEXT or IMAGE
        max_width: Bounding width in pixels declared by an image token
        max_height: Bounding height in pixels declared by an image token
    """

    name: str
    pattern: str
    total_occurrences: int
    locations: tuple[PlaceholderLocation, ...] = field(default_factory=tuple)
    kind: PlaceholderKind = PlaceholderKind.TEXT
    max_width: int | None = None
    max_height: int | None = None

    @property
    def unique_file_count(self) -> int:
        return len({loc.file_path for loc in self.locations})

    def is_valid(self) -> bool:
        """Check the occurrence invariant and location sanity."""
        if self.total_occurrences != sum(loc.occurrences for loc in self.locations):
            return False
        return all(loc.occurrences >= 1 and loc.file_path for loc in self.locations)
