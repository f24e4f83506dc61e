"""
RelationshipManager class for managing .rels files in OOXML packages.

Relationships link the main document part to its headers and footers, and
any text-bearing part to the images it embeds.
"""

from __future__ import annotations

import logging
import posixpath
from pathlib import Path
from typing import TYPE_CHECKING

from lxml import etree

from .constants import PACKAGE_RELATIONSHIPS_NAMESPACE as RELS_NAMESPACE

if TYPE_CHECKING:
    from .package import OOXMLPackage

logger = logging.getLogger(__name__)


def rels_part_name(part_name: str) -> str:
    """Return the .rels part name for a part.

    For example:
    - "word/document.xml" -> "word/_rels/document.xml.rels"
    - "" (the package itself) -> "_rels/.rels"
    """
    parent, filename = posixpath.split(part_name)
    return posixpath.join(parent, "_rels", f"{filename}.rels")


class RelationshipManager:
    """Manages the .rels file belonging to one package part.

    A relationship links one part to another using a unique ID (rId),
    a relationship type URI, and a target path.

    Example:
        >>> rel_mgr = RelationshipManager(package, "word/header1.xml")
        >>> rel_id = rel_mgr.add_unique_relationship(REL_TYPE_IMAGE, "media/image1.png")
        >>> rel_mgr.save()
    """

    def __init__(self, package: OOXMLPackage, part_name: str) -> None:
        """Initialize a RelationshipManager for a specific part.

        Args:
            package: The OOXMLPackage containing the relationship file
            part_name: The part this relationship file is for; "" for the package root
        """
        self._package = package
        self._part_name = part_name
        self.rels_part_name = rels_part_name(part_name)
        self._rels_path: Path = package.get_part_path(self.rels_part_name)
        self._root: etree._Element | None = None
        self._tree: etree._ElementTree | None = None
        self._modified = False

    def _ensure_loaded(self) -> None:
        """Ensure the relationship XML is loaded into memory."""
        if self._root is not None:
            return

        if self._rels_path.exists():
            self._root = self._package.parse_file(self._rels_path)
            self._tree = self._root.getroottree()
        else:
            self._root = etree.Element(
                f"{{{RELS_NAMESPACE}}}Relationships",
                nsmap={None: RELS_NAMESPACE},
            )
            self._tree = etree.ElementTree(self._root)

    def targets(self, rel_type: str) -> list[str]:
        """Return the package part names of all internal targets of a type.

        Targets are resolved relative to the owning part's directory.
        """
        self._ensure_loaded()
        assert self._root is not None

        base = posixpath.dirname(self._part_name)
        result = []
        for rel in self._root:
            if rel.get("Type") != rel_type or rel.get("TargetMode") == "External":
                continue
            target = rel.get("Target", "")
            if target.startswith("/"):
                result.append(target.lstrip("/"))
            else:
                result.append(posixpath.normpath(posixpath.join(base, target)))
        return result

    def add_unique_relationship(self, rel_type: str, target: str) -> str:
        """Add a new relationship, always creating a new ID.

        Args:
            rel_type: The relationship type URI
            target: The target path (relative to the part's directory)

        Returns:
            The new relationship ID (e.g., "rId3")
        """
        self._ensure_loaded()
        assert self._root is not None

        next_id = self._next_available_id()

        rel_elem = etree.SubElement(self._root, f"{{{RELS_NAMESPACE}}}Relationship")
        rel_elem.set("Id", f"rId{next_id}")
        rel_elem.set("Type", rel_type)
        rel_elem.set("Target", target)

        self._modified = True
        logger.debug(f"Added relationship rId{next_id} on {self._part_name}: -> {target}")

        return f"rId{next_id}"

    def _next_available_id(self) -> int:
        """Find the next available relationship ID number."""
        assert self._root is not None

        existing_ids: set[int] = set()
        for rel in self._root:
            rel_id = rel.get("Id", "")
            if rel_id.startswith("rId") and rel_id[3:].isdigit():
                existing_ids.add(int(rel_id[3:]))

        next_id = 1
        while next_id in existing_ids:
            next_id += 1

        return next_id

    def save(self) -> None:
        """Persist changes to the .rels file.

        Only writes if modifications were made.
        """
        if not self._modified or self._tree is None:
            return

        self._rels_path.parent.mkdir(parents=True, exist_ok=True)
        self._tree.write(
            str(self._rels_path),
            encoding="utf-8",
            xml_declaration=True,
            standalone=True,
        )

        self._modified = False
        logger.debug(f"Saved relationship file: {self._rels_path}")
