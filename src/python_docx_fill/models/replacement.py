"""
ReplacementMap: caller-supplied values for placeholder names.

Values are either literal text (TextValue) or an image reference
(ImageValue). The map is read-only to the engine once replacement starts.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from ..errors import ConfigurationError, TemplateNotFoundError

MAX_PLACEHOLDER_NAME_LENGTH = 200

# Characters that are not allowed in XML 1.0 text
_XML_INVALID_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f]")


def sanitize_text(value: str) -> str:
    """Replace characters that cannot be stored in a w:t element with spaces."""
    return _XML_INVALID_CHARS.sub(" ", value)


def is_valid_placeholder_name(name: str) -> bool:
    """Check that a map key can name a placeholder."""
    if not isinstance(name, str) or not name.strip():
        return False
    if len(name) > MAX_PLACEHOLDER_NAME_LENGTH:
        return False
    return not any(ord(c) < 32 and c != "\t" for c in name)


@dataclass(frozen=True)
class TextValue:
    """A literal replacement string."""

    text: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "text", sanitize_text(str(self.text)))

    @property
    def display(self) -> str:
        return self.text


@dataclass(frozen=True)
class ImageValue:
    """An image to insert in place of a placeholder.

    Attributes:
        path: Path to a PNG, JPEG, GIF or BMP file
        width: Target (bounding) width in pixels, optional
        height: Target (bounding) height in pixels, optional
    """

    path: Path
    width: int | None = None
    height: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", Path(self.path))
        for label, value in (("width", self.width), ("height", self.height)):
            if value is not None and (not isinstance(value, int) or value <= 0):
                raise ConfigurationError(
                    f"Image {label} must be a positive integer, got {value!r}",
                    context="replacement map",
                )

    @property
    def display(self) -> str:
        size = ""
        if self.width or self.height:
            size = f" ({self.width or '?'}x{self.height or '?'})"
        return f"[image: {self.path.name}{size}]"


ReplacementValue = TextValue | ImageValue


def _coerce_value(name: str, value: Any) -> ReplacementValue:
    if isinstance(value, TextValue | ImageValue):
        return value
    if isinstance(value, Mapping):
        if "image" not in value:
            raise ConfigurationError(
                f"Mapping value for '{name}' must contain an 'image' key",
                context="replacement map",
            )
        return ImageValue(
            path=Path(value["image"]),
            width=value.get("width"),
            height=value.get("height"),
        )
    if value is None:
        return TextValue("")
    return TextValue(str(value))


class ReplacementMap(Mapping[str, ReplacementValue]):
    """Read-only mapping from placeholder name to replacement value.

    Plain strings are wrapped in TextValue; mappings with an ``image`` key
    become ImageValue.

    Example:
        >>> rmap = ReplacementMap({"NAME": "Alice", "LOGO": ImageValue("logo.png", width=120)})
        >>> rmap["NAME"]
        TextValue(text='Alice')
    """

    def __init__(
        self,
        mappings: Mapping[str, Any] | None = None,
        source_path: str | Path | None = None,
    ) -> None:
        self._mappings: dict[str, ReplacementValue] = {
            key: _coerce_value(key, value) for key, value in (mappings or {}).items()
        }
        self._folded: dict[str, str] = {}
        for key in self._mappings:
            self._folded.setdefault(key.casefold(), key)
        self.source_path = Path(source_path) if source_path is not None else None

    def __getitem__(self, key: str) -> ReplacementValue:
        return self._mappings[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._mappings)

    def __len__(self) -> int:
        return len(self._mappings)

    def __repr__(self) -> str:
        return f"ReplacementMap({self._mappings!r})"

    def lookup(self, name: str, case_sensitive: bool = True) -> ReplacementValue | None:
        """Find the value for a placeholder name.

        Args:
            name: Placeholder name as found by the scanner
            case_sensitive: When False, keys are compared after casefolding

        Returns:
            The replacement value, or None if the name is unmapped
        """
        if name in self._mappings:
            return self._mappings[name]
        if not case_sensitive:
            key = self._folded.get(name.casefold())
            if key is not None:
                return self._mappings[key]
        return None

    def invalid_names(self) -> list[str]:
        """Return keys that cannot name a placeholder."""
        return [key for key in self._mappings if not is_valid_placeholder_name(key)]

    @classmethod
    def from_file(cls, path: str | Path) -> ReplacementMap:
        """Load a replacement map from a YAML or JSON file.

        The file is a mapping of names to values. A top-level ``replacements``
        key is also accepted. Image values are written as mappings:

            ```yaml
            NAME: Alice
            LOGO:
              image: logo.png
              width: 200
            ```

        Relative image paths are resolved against the map file's directory.

        Raises:
            TemplateNotFoundError: If the file does not exist
            ConfigurationError: If the file cannot be parsed or has invalid shape
        """
        file_path = Path(path)
        if not file_path.exists():
            raise TemplateNotFoundError(
                f"Replacement map not found: {file_path}",
                context="replacement map loading",
                file_path=str(file_path),
            )

        try:
            with open(file_path, encoding="utf-8") as f:
                if file_path.suffix.lower() == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                f"Failed to parse replacement map: {e}",
                context="replacement map loading",
                file_path=str(file_path),
            ) from e

        if isinstance(data, dict) and isinstance(data.get("replacements"), dict):
            data = data["replacements"]
        if not isinstance(data, dict):
            raise ConfigurationError(
                "Replacement map file must contain a mapping",
                context="replacement map loading",
                file_path=str(file_path),
            )

        base_dir = file_path.parent
        resolved: dict[str, Any] = {}
        for key, value in data.items():
            if isinstance(value, Mapping) and "image" in value:
                image_path = Path(value["image"])
                if not image_path.is_absolute():
                    image_path = base_dir / image_path
                value = {**value, "image": image_path}
            resolved[str(key)] = value

        return cls(resolved, source_path=file_path)
