"""
Applying edit plans to an open package.

Paragraphs are edited in document order and, within a paragraph, edits are
applied from the highest offset down so that the run coordinates recorded by
the planner stay valid for every edit still pending. Runs emptied by an edit
are removed once the whole paragraph is done, unless they still hold
non-text content.
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any

from .constants import w
from .images import create_inline_drawing, max_docpr_id
from .package import OOXMLPackage
from .planner import FileEditPlan, ImageInsertion, ParagraphEditPlan, TextSplice
from .text_index import RunSlot

logger = logging.getLogger(__name__)

_RUN_PROPERTIES = w("rPr")


def _new_run_like(slot: RunSlot) -> Any:
    """Create an empty run that copies another run's formatting."""
    run = slot.run.makeelement(w("r"), {})
    rpr = slot.run.find(_RUN_PROPERTIES)
    if rpr is not None:
        run.append(copy.deepcopy(rpr))
    return run


def split_run(slot: RunSlot, offset: int) -> RunSlot:
    """Split a run so its text from ``offset`` on moves to a new sibling run.

    Every child after the split point (text, tabs, breaks) moves with the
    text; the new run copies the original's run properties.

    Returns:
        The slot for the new run, inserted right after the original
    """
    new_run = _new_run_like(slot)
    children = [child for child in slot.run if child.tag != _RUN_PROPERTIES]

    move_from = len(children)
    seg_offset = 0
    for seg in slot.segments:
        seg_text = seg.text or ""
        seg_end = seg_offset + len(seg_text)
        if seg_offset < offset < seg_end:
            # Split inside this segment: the tail becomes a new w:t
            cut = offset - seg_offset
            tail = seg.makeelement(w("t"), {})
            tail.text = seg_text[cut:]
            seg.text = seg_text[:cut]
            for attr, value in seg.attrib.items():
                tail.set(attr, value)
            seg.addnext(tail)
            children = [child for child in slot.run if child.tag != _RUN_PROPERTIES]
            move_from = children.index(tail)
            break
        if offset <= seg_offset:
            move_from = children.index(seg)
            break
        if offset == seg_end:
            move_from = children.index(seg) + 1
            break
        seg_offset = seg_end

    moved = children[move_from:]
    for child in moved:
        new_run.append(child)
    slot.run.addnext(new_run)

    new_segments = [seg for seg in new_run if seg.tag == w("t")]
    slot.segments = [seg for seg in slot.run if seg.tag == w("t")]
    return RunSlot(new_run, new_segments)


class ReplacementApplier:
    """Mutates an open package according to a FileEditPlan.

    Example:
        >>> applier = ReplacementApplier()
        >>> count = applier.apply(package, plan, target="letter.docx")
    """

    def _remove_token_text(
        self,
        para: ParagraphEditPlan,
        edit: TextSplice | ImageInsertion,
        replacement: str,
        touched: set[int],
    ) -> None:
        """Replace the token's text; the first touched run receives ``replacement``."""
        runs = para.logical.runs
        if edit.first_run == edit.last_run:
            runs[edit.first_run].splice(edit.first_offset, edit.last_end, replacement)
        else:
            first = runs[edit.first_run]
            first.splice(edit.first_offset, len(first.text), replacement)
            for index in range(edit.first_run + 1, edit.last_run):
                runs[index].clear()
                touched.add(index)
            runs[edit.last_run].splice(0, edit.last_end)
            touched.add(edit.last_run)
        touched.add(edit.first_run)

    def _insert_image(
        self,
        package: OOXMLPackage,
        part_name: str,
        para: ParagraphEditPlan,
        edit: ImageInsertion,
        doc_pr_id: int,
        touched: set[int],
    ) -> None:
        anchor = para.logical.runs[edit.first_run]
        has_suffix = edit.first_run == edit.last_run and edit.last_end < len(anchor.text)

        self._remove_token_text(para, edit, "", touched)

        rel_id = package.add_image_part(edit.data, edit.extension, part_name)
        drawing_run = _new_run_like(anchor)
        drawing_run.append(
            create_inline_drawing(
                rel_id, edit.width_emu, edit.height_emu, doc_pr_id, name=edit.image_name
            )
        )

        if edit.first_offset == 0 and has_suffix:
            anchor.run.addprevious(drawing_run)
        else:
            if has_suffix:
                split_run(anchor, edit.first_offset)
            anchor.run.addnext(drawing_run)

    def apply_paragraph(
        self,
        package: OOXMLPackage,
        part_name: str,
        para: ParagraphEditPlan,
        next_doc_pr_id: int,
    ) -> tuple[int, int]:
        """Apply one paragraph's edits.

        Returns:
            (edits applied, next free docPr id)
        """
        touched: set[int] = set()
        applied = 0

        for edit in sorted(para.edits, key=lambda e: e.start, reverse=True):
            if isinstance(edit, ImageInsertion):
                self._insert_image(package, part_name, para, edit, next_doc_pr_id, touched)
                next_doc_pr_id += 1
            else:
                self._remove_token_text(para, edit, edit.text, touched)
            applied += 1

        for index in sorted(touched):
            slot = para.logical.runs[index]
            parent = slot.run.getparent()
            if parent is not None and slot.is_removable():
                parent.remove(slot.run)

        return applied, next_doc_pr_id

    def apply(
        self,
        package: OOXMLPackage,
        plan: FileEditPlan,
        target: str | Path | None = None,
    ) -> int:
        """Apply a plan and, when a target is given, commit atomically.

        Any exception propagates before the commit, leaving the target
        untouched.

        Returns:
            Number of replacements made
        """
        replacements = 0
        next_doc_pr_id = max_docpr_id(part.root for part in package.text_parts()) + 1

        for part_plan in plan.parts:
            part_name = part_plan.part.part_name
            for para in part_plan.paragraphs:
                applied, next_doc_pr_id = self.apply_paragraph(
                    package, part_name, para, next_doc_pr_id
                )
                replacements += applied
            package.mark_modified(part_name)
            logger.debug(
                f"{plan.file_path}: edited {len(part_plan.paragraphs)} paragraphs in {part_name}"
            )

        if target is not None and replacements:
            package.commit(target)
        return replacements
