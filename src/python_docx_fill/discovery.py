"""
Template discovery: expanding files and directories into .docx templates.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from .constants import DEFAULT_BACKUP_SUFFIX
from .errors import TemplateNotFoundError
from .models.template_file import TemplateFile

logger = logging.getLogger(__name__)

TEMPLATE_EXTENSIONS = frozenset({".docx", ".docm", ".dotx", ".dotm"})


def is_template_candidate(path: Path, backup_suffix: str = DEFAULT_BACKUP_SUFFIX) -> bool:
    """Check whether a file looks like a Word template worth processing.

    Word lock files (``~$report.docx``) and engine backups are skipped.
    """
    name = path.name
    if name.startswith("~$"):
        return False
    if backup_suffix in name:
        return False
    return path.suffix.lower() in TEMPLATE_EXTENSIONS


def discover_templates(
    paths: Iterable[str | Path],
    recursive: bool = True,
    backup_suffix: str = DEFAULT_BACKUP_SUFFIX,
) -> list[TemplateFile]:
    """Expand files and directories into a sorted list of templates.

    Files named explicitly are kept even if their extension is unusual;
    directories are searched for template candidates.

    Raises:
        TemplateNotFoundError: If a named path does not exist
    """
    found: dict[Path, TemplateFile] = {}
    for item in paths:
        path = Path(item)
        if path.is_dir():
            pattern = "**/*" if recursive else "*"
            for candidate in path.glob(pattern):
                if candidate.is_file() and is_template_candidate(candidate, backup_suffix):
                    template = TemplateFile.from_path(candidate)
                    found[template.path] = template
        elif path.is_file():
            template = TemplateFile.from_path(path)
            found[template.path] = template
        else:
            raise TemplateNotFoundError(
                f"Path not found: {path}", context="template discovery", file_path=str(path)
            )

    templates = sorted(found.values(), key=lambda t: str(t.path))
    logger.debug(f"Discovered {len(templates)} templates")
    return templates
