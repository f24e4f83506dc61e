"""
ContentTypeManager class for managing [Content_Types].xml in OOXML packages.

Content types in OOXML use two mechanisms:
- Default: Maps file extensions to content types (e.g., png -> image/png)
- Override: Maps specific part names to content types (e.g., /word/header1.xml)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from lxml import etree

from .constants import CONTENT_TYPES_NAMESPACE

if TYPE_CHECKING:
    from .package import OOXMLPackage

logger = logging.getLogger(__name__)

CONTENT_TYPES_PART = "[Content_Types].xml"


class ContentTypeManager:
    """Reads and extends [Content_Types].xml.

    Example:
        >>> ct_mgr = ContentTypeManager(package)
        >>> ct_mgr.content_type_for("word/document.xml")
        'application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml'
        >>> ct_mgr.add_default("png", "image/png")
        >>> ct_mgr.save()
    """

    def __init__(self, package: OOXMLPackage) -> None:
        self._package = package
        self._path = package.get_part_path(CONTENT_TYPES_PART)
        self._root: etree._Element | None = None
        self._modified = False

    def _ensure_loaded(self) -> None:
        """Ensure the content types XML is loaded into memory."""
        if self._root is not None:
            return

        if self._path.exists():
            self._root = self._package.parse_file(self._path)
        else:
            # Shouldn't happen for a valid docx
            self._root = etree.Element(
                f"{{{CONTENT_TYPES_NAMESPACE}}}Types",
                nsmap={None: CONTENT_TYPES_NAMESPACE},
            )
            self._modified = True

    def content_type_for(self, part_name: str) -> str | None:
        """Resolve a part's content type from its Override or extension Default."""
        self._ensure_loaded()
        assert self._root is not None

        wanted = "/" + part_name.lstrip("/")
        for override in self._root.iter(f"{{{CONTENT_TYPES_NAMESPACE}}}Override"):
            if override.get("PartName", "").lower() == wanted.lower():
                return override.get("ContentType")

        extension = part_name.rsplit(".", 1)[-1].lower() if "." in part_name else ""
        for default in self._root.iter(f"{{{CONTENT_TYPES_NAMESPACE}}}Default"):
            if default.get("Extension", "").lower() == extension:
                return default.get("ContentType")

        return None

    def has_default(self, extension: str) -> bool:
        self._ensure_loaded()
        assert self._root is not None

        ext = extension.lower()
        return any(
            default.get("Extension", "").lower() == ext
            for default in self._root.iter(f"{{{CONTENT_TYPES_NAMESPACE}}}Default")
        )

    def add_default(self, extension: str, content_type: str) -> bool:
        """Register a content type for a file extension.

        Returns:
            True if a new Default was added, False if one already existed
        """
        self._ensure_loaded()
        assert self._root is not None

        if self.has_default(extension):
            return False

        default = etree.Element(f"{{{CONTENT_TYPES_NAMESPACE}}}Default")
        default.set("Extension", extension.lower())
        default.set("ContentType", content_type)
        # Defaults conventionally precede Overrides
        self._root.insert(0, default)

        self._modified = True
        logger.debug(f"Added content type default: {extension} -> {content_type}")
        return True

    def save(self) -> None:
        """Persist changes; only writes if modifications were made."""
        if not self._modified or self._root is None:
            return

        self._root.getroottree().write(
            str(self._path),
            encoding="utf-8",
            xml_declaration=True,
            standalone=True,
        )
        self._modified = False
        logger.debug(f"Saved content types file: {self._path}")
