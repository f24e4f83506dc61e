"""
Replacement planning: turning placeholder matches into concrete run edits.

The planner reads an open package and a replacement map and produces a
FileEditPlan without mutating anything. Each edit carries the logical span it
replaces plus the run coordinates (from the paragraph's character map) that
span covers, so the applier can work directly on element references.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from .errors import UnmappedPlaceholderError
from .images import ImageInfo, fit_dimensions, get_image_info, pixels_to_emu
from .models.placeholder import PlaceholderKind
from .models.replacement import ImageValue, ReplacementMap, ReplacementValue, TextValue
from .package import OOXMLPackage, TextPart
from .scanner import CompiledPattern, TokenMatch, iter_paragraph_tokens
from .text_index import LogicalText

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextSplice:
    """Replace a token's text with a string.

    Attributes:
        start: Logical start offset of the token in the paragraph
        end: Logical end offset (exclusive)
        first_run: Index of the first run touched
        first_offset: Offset of the token start inside the first run
        last_run: Index of the last run touched
        last_end: Offset (exclusive) of the token end inside the last run
        placeholder: Placeholder name
        token: The matched token text
        text: Replacement text
    """

    start: int
    end: int
    first_run: int
    first_offset: int
    last_run: int
    last_end: int
    placeholder: str
    token: str
    text: str


@dataclass(frozen=True)
class ImageInsertion:
    """Replace a token with an inline image.

    The token's text is removed and a drawing run is placed where the token
    began, next to the first touched run.
    """

    start: int
    end: int
    first_run: int
    first_offset: int
    last_run: int
    last_end: int
    placeholder: str
    token: str
    data: bytes
    extension: str
    width_emu: int
    height_emu: int
    image_name: str = "Picture"


Edit = TextSplice | ImageInsertion


@dataclass
class ParagraphEditPlan:
    logical: LogicalText
    edits: list[Edit] = field(default_factory=list)


@dataclass
class PartEditPlan:
    part: TextPart
    paragraphs: list[ParagraphEditPlan] = field(default_factory=list)


@dataclass
class PlannedPlaceholder:
    """Per-file summary of what happens to one placeholder."""

    name: str
    token: str
    new_value: str | None
    occurrences: int = 0


@dataclass
class FileEditPlan:
    """Every edit needed for one file, grouped by part and paragraph.

    Attributes:
        file_path: The file the plan was built for
        parts: Parts with at least one edit, in traversal order
        placeholders: Per-placeholder summary, in order of first occurrence
    """

    file_path: str
    parts: list[PartEditPlan] = field(default_factory=list)
    placeholders: dict[str, PlannedPlaceholder] = field(default_factory=dict)

    @property
    def edit_count(self) -> int:
        return sum(len(p.edits) for part in self.parts for p in part.paragraphs)

    @property
    def unmapped_names(self) -> list[str]:
        return [p.name for p in self.placeholders.values() if p.new_value is None]

    @property
    def is_empty(self) -> bool:
        return self.edit_count == 0


class ReplacementPlanner:
    """Builds FileEditPlans for open packages.

    Example:
        >>> planner = ReplacementPlanner(compile_pattern(r"\\{\\{.*?\\}\\}"))
        >>> with OOXMLPackage.open("letter.docx") as pkg:
        ...     plan = planner.plan_file(pkg, ReplacementMap({"NAME": "Alice"}))
        >>> plan.edit_count
        1
    """

    def __init__(self, compiled: CompiledPattern) -> None:
        self.compiled = compiled
        self._images: dict[Path, tuple[ImageInfo, bytes]] = {}

    def _load_image(self, path: Path) -> tuple[ImageInfo, bytes]:
        if path not in self._images:
            info = get_image_info(path)
            self._images[path] = (info, path.read_bytes())
        return self._images[path]

    def _image_source(
        self, token: TokenMatch, value: ReplacementValue, replacement_map: ReplacementMap
    ) -> tuple[Path, int | None, int | None] | None:
        """Return (path, max_width, max_height) when the token becomes an image."""
        resolved = token.resolved
        if isinstance(value, ImageValue):
            width = value.width if value.width is not None else resolved.max_width
            height = value.height if value.height is not None else resolved.max_height
            return value.path, width, height
        if resolved.kind is PlaceholderKind.IMAGE and value.text.strip():
            # Image tokens mapped to plain text name the image file
            path = Path(value.text.strip())
            if not path.is_absolute() and replacement_map.source_path is not None:
                path = replacement_map.source_path.parent / path
            return path, resolved.max_width, resolved.max_height
        return None

    def _plan_edit(
        self,
        logical: LogicalText,
        token: TokenMatch,
        value: ReplacementValue,
        replacement_map: ReplacementMap,
    ) -> Edit:
        first_run, first_offset, last_run, last_end = logical.locate(token.start, token.end)
        coords = {
            "start": token.start,
            "end": token.end,
            "first_run": first_run,
            "first_offset": first_offset,
            "last_run": last_run,
            "last_end": last_end,
            "placeholder": token.resolved.name,
            "token": token.token,
        }

        source = self._image_source(token, value, replacement_map)
        if source is None:
            assert isinstance(value, TextValue)
            return TextSplice(**coords, text=value.text)

        path, max_width, max_height = source
        info, data = self._load_image(path)
        width_px, height_px = fit_dimensions(info.width, info.height, max_width, max_height)
        return ImageInsertion(
            **coords,
            data=data,
            extension=info.extension,
            width_emu=pixels_to_emu(width_px),
            height_emu=pixels_to_emu(height_px),
            image_name=token.resolved.name,
        )

    def plan_file(
        self,
        package: OOXMLPackage,
        replacement_map: ReplacementMap,
        strict: bool = False,
    ) -> FileEditPlan:
        """Build the edit plan for one package.

        Args:
            package: An open package; it is not modified
            replacement_map: Values to substitute
            strict: Raise instead of skipping unmapped placeholders

        Raises:
            UnmappedPlaceholderError: In strict mode, if any placeholder is unmapped
        """
        plan = FileEditPlan(package.display_path)
        case_sensitive = self.compiled.case_sensitive

        for part in package.text_parts():
            part_plan = PartEditPlan(part)
            for logical, tokens in iter_paragraph_tokens(part, self.compiled):
                para_plan = ParagraphEditPlan(logical)
                for token in tokens:
                    name = token.resolved.name
                    key = self.compiled.group_key(name)
                    value = replacement_map.lookup(name, case_sensitive=case_sensitive)

                    summary = plan.placeholders.get(key)
                    if summary is None:
                        new_value = None
                        if value is not None:
                            new_value = value.display if isinstance(value, ImageValue) else value.text
                        summary = PlannedPlaceholder(name, token.token, new_value)
                        plan.placeholders[key] = summary
                    summary.occurrences += 1

                    if value is None:
                        continue
                    para_plan.edits.append(self._plan_edit(logical, token, value, replacement_map))

                if para_plan.edits:
                    part_plan.paragraphs.append(para_plan)
            if part_plan.paragraphs:
                plan.parts.append(part_plan)

        unmapped = plan.unmapped_names
        if unmapped:
            if strict:
                raise UnmappedPlaceholderError(unmapped, file_path=plan.file_path)
            logger.debug(f"{plan.file_path}: leaving unmapped placeholders {unmapped}")

        logger.debug(f"Planned {plan.edit_count} edits for {plan.file_path}")
        return plan
