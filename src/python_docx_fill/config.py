"""
Engine configuration.

EngineConfig enumerates every option the engine recognizes. It can be built
in code or loaded from a YAML/JSON file:

    ```yaml
    placeholder_pattern: '\\{\\{(.*?)\\}\\}'
    case_sensitive: true
    max_concurrency: 4
    create_backups: true
    backup_suffix: .backup
    retain_backups: false
    strict: false
    io_timeout: 30
    ```
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from .constants import (
    CONTEXT_CHARS_DEFAULT,
    DEFAULT_BACKUP_SUFFIX,
    DEFAULT_IO_TIMEOUT_SECONDS,
    DEFAULT_PLACEHOLDER_PATTERN,
)
from .errors import ConfigurationError, TemplateNotFoundError


def _default_concurrency() -> int:
    return os.cpu_count() or 1


@dataclass(frozen=True)
class EngineConfig:
    """Options shared by every engine operation.

    Attributes:
        placeholder_pattern: Regex matching a placeholder; zero or one capturing group
        case_sensitive: Match and group placeholder names case-sensitively
        max_concurrency: Worker pool size for scanning and replacing
        create_backups: Back up each file before it is modified
        backup_suffix: Suffix appended to the original path for backups
        retain_backups: Keep backups after a successful operation
        strict: Refuse to replace when any placeholder is unmapped
        io_timeout: Seconds to wait for a batch before reporting a timeout (None = no limit)
        context_chars: Characters of context captured on each side of a match
    """

    placeholder_pattern: str = DEFAULT_PLACEHOLDER_PATTERN
    case_sensitive: bool = True
    max_concurrency: int = _default_concurrency()
    create_backups: bool = True
    backup_suffix: str = DEFAULT_BACKUP_SUFFIX
    retain_backups: bool = False
    strict: bool = False
    io_timeout: float | None = DEFAULT_IO_TIMEOUT_SECONDS
    context_chars: int = CONTEXT_CHARS_DEFAULT

    def __post_init__(self) -> None:
        if self.max_concurrency < 1:
            raise ConfigurationError(
                f"max_concurrency must be at least 1, got {self.max_concurrency}",
                context="configuration",
            )
        if not self.backup_suffix or any(sep in self.backup_suffix for sep in "/\\"):
            raise ConfigurationError(
                f"Invalid backup suffix: {self.backup_suffix!r}", context="configuration"
            )
        if self.io_timeout is not None and self.io_timeout <= 0:
            raise ConfigurationError(
                f"io_timeout must be positive, got {self.io_timeout}", context="configuration"
            )
        if self.context_chars < 0:
            raise ConfigurationError(
                f"context_chars must be non-negative, got {self.context_chars}",
                context="configuration",
            )

    def with_overrides(self, **overrides: Any) -> EngineConfig:
        """Return a copy with the given non-None fields replaced."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EngineConfig:
        """Build a config from a dictionary, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration keys: {', '.join(unknown)}", context="configuration"
            )
        try:
            return cls(**data)
        except TypeError as e:
            raise ConfigurationError(str(e), context="configuration") from e

    @classmethod
    def from_file(cls, path: str | Path) -> EngineConfig:
        """Load a config from a YAML or JSON file."""
        file_path = Path(path)
        if not file_path.exists():
            raise TemplateNotFoundError(
                f"Configuration file not found: {file_path}",
                context="configuration loading",
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
                f"Failed to parse configuration: {e}",
                context="configuration loading",
                file_path=str(file_path),
            ) from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                "Configuration file must contain a mapping",
                context="configuration loading",
                file_path=str(file_path),
            )
        return cls.from_dict(data)


@dataclass(frozen=True)
class ReplaceOptions:
    """Per-call overrides for replace operations.

    Fields left as None inherit the engine's EngineConfig.
    """

    strict: bool | None = None
    create_backups: bool | None = None
    backup_suffix: str | None = None
    retain_backups: bool | None = None
    dry_run: bool = False
    io_timeout: float | None = None

    def resolve(self, config: EngineConfig) -> EngineConfig:
        return config.with_overrides(
            strict=self.strict,
            create_backups=self.create_backups,
            backup_suffix=self.backup_suffix,
            retain_backups=self.retain_backups,
            io_timeout=self.io_timeout,
        )
