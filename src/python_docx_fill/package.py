"""
OOXMLPackage class for managing Word document ZIP structure.

This module provides a clean abstraction for the OOXML package format,
separating ZIP handling from XML manipulation concerns. Parts are parsed once
and cached, so edits made to a part's element tree are the edits written back
on commit.
"""

from __future__ import annotations

import io
import logging
import os
import posixpath
import shutil
import tempfile
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO

from lxml import etree

from .constants import (
    CT_FOOTER,
    CT_HEADER,
    IMAGE_CONTENT_TYPES,
    REL_TYPE_FOOTER,
    REL_TYPE_HEADER,
    REL_TYPE_IMAGE,
    REL_TYPE_OFFICE_DOCUMENT,
    SUPPORTED_MAIN_CONTENT_TYPES,
    w,
)
from .content_types import CONTENT_TYPES_PART, ContentTypeManager
from .errors import (
    FileAccessError,
    FileOperation,
    PackageCorruptError,
    TemplateNotFoundError,
    UnsupportedPartError,
)
from .relationships import RelationshipManager

logger = logging.getLogger(__name__)

DEFAULT_MAIN_PART = "word/document.xml"


@dataclass
class TextPart:
    """A text-bearing part of the package.

    Attributes:
        part_name: Path within the package (e.g., "word/header1.xml")
        kind: "body", "header" or "footer"
        label: Section label used in placeholder context ("Body", "Header0", ...)
        root: The parsed root element, shared with the package's part cache
    """

    part_name: str
    kind: str
    label: str
    root: Any  # lxml Element


class OOXMLPackage:
    """Manages the OOXML ZIP package structure.

    This class handles the low-level operations of:
    - Extracting .docx ZIP archives to temporary directories
    - Providing access to the text-bearing parts (body, headers, footers)
    - Adding image parts with their relationships and content types
    - Atomically repacking modified content over the original file
    - Cleaning up temporary resources

    Example:
        >>> with OOXMLPackage.open("letter.docx") as pkg:
        ...     for part in pkg.text_parts():
        ...         ...  # edit part.root in place
        ...         pkg.mark_modified(part.part_name)
        ...     pkg.commit("letter.docx")
    """

    def __init__(
        self,
        temp_dir: Path,
        source_path: Path | None = None,
        entry_order: list[str] | None = None,
    ) -> None:
        """Initialize package with an already-extracted directory.

        Use the class methods `open()` or `from_bytes()` instead of
        calling this constructor directly.

        Args:
            temp_dir: Path to the extracted package contents
            source_path: Original source file path
            entry_order: Archive member names in their original order
        """
        self._temp_dir = temp_dir
        self._source_path = source_path
        self._entry_order = list(entry_order or [])
        self._parts: dict[str, Any] = {}
        self._modified: set[str] = set()
        self._relationships: dict[str, RelationshipManager] = {}
        self._content_types: ContentTypeManager | None = None
        self._closed = False

    @classmethod
    def open(cls, source: str | Path | BinaryIO) -> OOXMLPackage:
        """Open an OOXML package from a file path or file-like object.

        Args:
            source: Path to .docx file or file-like object containing it

        Returns:
            OOXMLPackage instance with extracted contents

        Raises:
            TemplateNotFoundError: If the path does not exist
            PackageCorruptError: If the source is not a valid ZIP file
        """
        source_path: Path | None = None
        display = "<stream>"

        if isinstance(source, str | Path):
            source_path = Path(source)
            display = str(source_path)
            if not source_path.is_file():
                raise TemplateNotFoundError(
                    f"Document not found: {source_path}",
                    context="file reading",
                    file_path=display,
                )
            zip_source: Path | BinaryIO = source_path
        else:
            zip_source = source

        if not zipfile.is_zipfile(zip_source):
            raise PackageCorruptError(
                "Source is not a valid .docx (ZIP) file",
                context="file reading",
                file_path=display,
            )

        # Reset stream position if it was checked by is_zipfile
        if hasattr(zip_source, "seek"):
            zip_source.seek(0)

        temp_dir = Path(tempfile.mkdtemp(prefix="python_docx_fill_"))
        try:
            with zipfile.ZipFile(zip_source, "r") as zip_ref:
                entry_order = [info.filename for info in zip_ref.infolist() if not info.is_dir()]
                zip_ref.extractall(temp_dir)
        except PermissionError as e:
            shutil.rmtree(temp_dir, ignore_errors=True)
            raise FileAccessError(
                f"Access denied: {e}",
                operation=FileOperation.READ,
                context="file reading",
                file_path=display,
            ) from e
        except (zipfile.BadZipFile, zipfile.LargeZipFile, EOFError, ValueError) as e:
            shutil.rmtree(temp_dir, ignore_errors=True)
            raise PackageCorruptError(
                f"Failed to extract .docx file: {e}",
                context="file reading",
                file_path=display,
            ) from e

        logger.debug(f"Extracted {len(entry_order)} parts from {display} to {temp_dir}")
        return cls(temp_dir, source_path, entry_order)

    @classmethod
    def from_bytes(cls, data: bytes) -> OOXMLPackage:
        """Open an OOXML package from bytes."""
        return cls.open(io.BytesIO(data))

    @property
    def temp_dir(self) -> Path:
        """Get the temporary directory containing extracted package contents."""
        return self._temp_dir

    @property
    def source_path(self) -> Path | None:
        """Get the original source file path, if available."""
        return self._source_path

    @property
    def display_path(self) -> str:
        return str(self._source_path) if self._source_path else "<stream>"

    @property
    def content_types(self) -> ContentTypeManager:
        if self._content_types is None:
            self._content_types = ContentTypeManager(self)
        return self._content_types

    def relationships(self, part_name: str) -> RelationshipManager:
        """Get the (cached) relationship manager for a part."""
        if part_name not in self._relationships:
            self._relationships[part_name] = RelationshipManager(self, part_name)
        return self._relationships[part_name]

    def get_part_path(self, part_name: str) -> Path:
        """Get the filesystem path to a package part.

        Args:
            part_name: Relative path within the package (e.g., "word/document.xml")

        Returns:
            Path to the part in the temp directory
        """
        return self._temp_dir / part_name

    def part_exists(self, part_name: str) -> bool:
        return self.get_part_path(part_name).is_file()

    def parse_file(self, path: Path) -> Any:
        """Parse an extracted XML file, reporting malformed XML as corruption."""
        parser = etree.XMLParser(remove_blank_text=False, resolve_entities=False)
        try:
            return etree.parse(str(path), parser).getroot()
        except etree.XMLSyntaxError as e:
            part_name = path.relative_to(self._temp_dir).as_posix()
            raise PackageCorruptError(
                f"Malformed XML in part '{part_name}': {e}",
                context="file reading",
                file_path=self.display_path,
            ) from e

    def get_part(self, part_name: str) -> Any | None:
        """Get a package part as a parsed XML element.

        The parsed tree is cached: repeated calls return the same element.

        Returns:
            Parsed root element, or None if the part doesn't exist
        """
        if part_name in self._parts:
            return self._parts[part_name]

        part_path = self.get_part_path(part_name)
        if not part_path.is_file():
            return None

        root = self.parse_file(part_path)
        self._parts[part_name] = root
        return root

    def set_part(self, part_name: str, element: Any) -> None:
        """Replace a part's XML; written on the next commit."""
        self._parts[part_name] = element
        self._modified.add(part_name)

    def mark_modified(self, part_name: str) -> None:
        """Flag a cached part whose tree was edited in place."""
        if part_name not in self._parts:
            raise KeyError(f"Part not loaded: {part_name}")
        self._modified.add(part_name)

    @property
    def modified_parts(self) -> set[str]:
        return set(self._modified)

    # ------------------------------------------------------------------
    # Text-bearing parts
    # ------------------------------------------------------------------

    def main_part_name(self) -> str:
        """Locate the main document part via the package relationships."""
        targets = self.relationships("").targets(REL_TYPE_OFFICE_DOCUMENT)
        return targets[0] if targets else DEFAULT_MAIN_PART

    def text_parts(self) -> list[TextPart]:
        """Return the main body, then headers, then footers.

        Headers and footers are those related from the main part, each group
        sorted by part name.

        Raises:
            PackageCorruptError: If the main part is missing or malformed
            UnsupportedPartError: If a part is not a WordprocessingML document part
        """
        main_name = self.main_part_name()
        main_root = self.get_part(main_name)
        if main_root is None:
            raise PackageCorruptError(
                f"Main document part '{main_name}' is missing",
                context="file reading",
                file_path=self.display_path,
            )

        content_type = self.content_types.content_type_for(main_name)
        if main_root.tag != w("document") or content_type not in SUPPORTED_MAIN_CONTENT_TYPES:
            raise UnsupportedPartError(
                f"Main part '{main_name}' is not a Word document (content type: {content_type})",
                context="file reading",
                file_path=self.display_path,
            )

        parts = [TextPart(main_name, "body", "Body", main_root)]
        main_rels = self.relationships(main_name)
        for kind, rel_type, root_tag, expected_ct in (
            ("header", REL_TYPE_HEADER, w("hdr"), CT_HEADER),
            ("footer", REL_TYPE_FOOTER, w("ftr"), CT_FOOTER),
        ):
            for index, part_name in enumerate(sorted(set(main_rels.targets(rel_type)))):
                root = self.get_part(part_name)
                if root is None:
                    logger.warning(
                        f"{self.display_path}: {kind} part '{part_name}' is referenced but missing"
                    )
                    continue
                part_ct = self.content_types.content_type_for(part_name)
                if root.tag != root_tag or (part_ct is not None and part_ct != expected_ct):
                    raise UnsupportedPartError(
                        f"Part '{part_name}' is not a supported {kind} part",
                        context="file reading",
                        file_path=self.display_path,
                    )
                parts.append(TextPart(part_name, kind, f"{kind.capitalize()}{index}", root))

        logger.debug(f"{self.display_path}: {len(parts)} text-bearing parts")
        return parts

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def _next_media_name(self, extension: str) -> str:
        index = 1
        while True:
            candidate = f"word/media/image{index}.{extension}"
            if not self.part_exists(candidate):
                return candidate
            index += 1

    def add_image_part(self, data: bytes, extension: str, owner_part: str) -> str:
        """Add an image to the package and relate it to the owning part.

        Args:
            data: Raw image bytes
            extension: File extension without dot (png, jpg, ...)
            owner_part: The part that will reference the image

        Returns:
            The relationship ID on the owner part
        """
        ext = extension.lower().lstrip(".")
        content_type = IMAGE_CONTENT_TYPES.get(ext)
        if content_type is None:
            raise UnsupportedPartError(
                f"Unsupported image format: .{ext}",
                context="image insertion",
                file_path=self.display_path,
            )

        media_part = self._next_media_name(ext)
        media_path = self.get_part_path(media_part)
        media_path.parent.mkdir(parents=True, exist_ok=True)
        media_path.write_bytes(data)
        self._entry_order.append(media_part)

        self.content_types.add_default(ext, content_type)
        target = posixpath.relpath(media_part, posixpath.dirname(owner_part) or ".")
        rel_id = self.relationships(owner_part).add_unique_relationship(REL_TYPE_IMAGE, target)

        logger.debug(f"Added image part {media_part} ({len(data)} bytes) as {rel_id}")
        return rel_id

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    def _flush(self) -> None:
        """Write modified parts, relationships and content types to the temp dir."""
        for part_name in sorted(self._modified):
            part_path = self.get_part_path(part_name)
            part_path.parent.mkdir(parents=True, exist_ok=True)
            self._parts[part_name].getroottree().write(
                str(part_path),
                encoding="utf-8",
                xml_declaration=True,
                standalone=True,
            )
            if part_name not in self._entry_order:
                self._entry_order.append(part_name)
        self._modified.clear()

        for part_name, rel_mgr in self._relationships.items():
            rel_mgr.save()
            rels_name = rel_mgr.rels_part_name
            if self.part_exists(rels_name) and rels_name not in self._entry_order:
                self._entry_order.append(rels_name)

        if self._content_types is not None:
            self._content_types.save()

    def _write_zip(self, target: BinaryIO | Path) -> None:
        names = [n for n in self._entry_order if self.part_exists(n)]
        for file in sorted(self._temp_dir.rglob("*")):
            if file.is_file():
                arcname = file.relative_to(self._temp_dir).as_posix()
                if arcname not in names:
                    names.append(arcname)
        # [Content_Types].xml is conventionally the first entry
        if CONTENT_TYPES_PART in names:
            names.remove(CONTENT_TYPES_PART)
            names.insert(0, CONTENT_TYPES_PART)

        with zipfile.ZipFile(target, "w", zipfile.ZIP_DEFLATED) as zip_ref:
            for arcname in names:
                zip_ref.write(self.get_part_path(arcname), arcname)

    def commit(self, output_path: str | Path) -> None:
        """Atomically write the package to a .docx file.

        The archive is packed into a sibling temporary file which then replaces
        the target, so the target is never left half-written.
        """
        output_path = Path(output_path)
        self._flush()

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{output_path.name}.", suffix=".tmp", dir=output_path.parent
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as f:
                self._write_zip(f)
            os.replace(tmp_path, output_path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

        logger.debug(f"Committed package to {output_path}")

    def save_to_bytes(self) -> bytes:
        """Save the package to bytes."""
        self._flush()
        buffer = io.BytesIO()
        self._write_zip(buffer)
        return buffer.getvalue()

    def close(self) -> None:
        """Clean up temporary directory."""
        if not self._closed and self._temp_dir and self._temp_dir.exists():
            shutil.rmtree(self._temp_dir, ignore_errors=True)
        self._closed = True

    def __enter__(self) -> OOXMLPackage:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def __del__(self) -> None:
        self.close()
