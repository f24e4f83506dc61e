"""
Logical text indexing for paragraphs whose text is split across runs.

Word frequently fragments a visible string across several <w:r> (run)
elements, so a token like ``{{NAME}}`` may live in three runs with different
formatting. This module flattens a paragraph into a single logical string and
builds a character map from each logical character back to the run (and the
offset inside that run) it came from.

Algorithm Note:
    Character map: char_map[i] = (run_index, offset_in_run), monotonic in i.
    Runs that contribute no characters (breaks, drawings, empty runs) still
    occupy a slot in the run list so indices stay stable while editing.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from .constants import XML_NAMESPACE, w

_PARAGRAPH = w("p")
_RUN = w("r")
_TEXT = w("t")
_RUN_PROPERTIES = w("rPr")
_DELETION_WRAPPERS = frozenset({w("del"), w("moveFrom")})
_XML_SPACE = f"{{{XML_NAMESPACE}}}space"


def _owning_paragraph(run: Any) -> Any | None:
    """Return the nearest w:p ancestor of a run."""
    parent = run.getparent()
    while parent is not None:
        if parent.tag == _PARAGRAPH:
            return parent
        parent = parent.getparent()
    return None


def _is_run_in_deletion(run: Any, paragraph: Any) -> bool:
    """Check if a run sits inside a tracked deletion (w:del or w:moveFrom)."""
    parent = run.getparent()
    while parent is not None and parent is not paragraph:
        if parent.tag in _DELETION_WRAPPERS:
            return True
        parent = parent.getparent()
    return False


def set_text(t_elem: Any, text: str) -> None:
    """Set a w:t element's text, preserving significant whitespace."""
    t_elem.text = text
    if text and (text[0].isspace() or text[-1].isspace()):
        t_elem.set(_XML_SPACE, "preserve")


@dataclass
class RunSlot:
    """One run of a paragraph and the w:t segments that carry its text.

    Attributes:
        run: The w:r element
        segments: The run's direct w:t children, in order
    """

    run: Any  # lxml Element
    segments: list[Any] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(seg.text or "" for seg in self.segments)

    def splice(self, start: int, end: int, replacement: str = "") -> None:
        """Replace run text [start, end) with a string.

        The replacement lands in the segment holding ``start``; text of other
        segments touched by the range is dropped. Non-text children (tabs,
        breaks, drawings) are never moved or removed. Segments emptied by
        the edit are removed from the run.
        """
        if start >= end:
            raise ValueError(f"Empty splice range [{start}, {end})")

        inserted = False
        touched = []
        offset = 0
        for seg in self.segments:
            seg_text = seg.text or ""
            seg_start = offset
            seg_end = offset + len(seg_text)
            offset = seg_end
            if seg_end <= start or seg_start >= end:
                continue

            head = seg_text[: start - seg_start] if start > seg_start else ""
            tail = seg_text[end - seg_start :] if end < seg_end else ""
            if inserted:
                set_text(seg, head + tail)
            else:
                set_text(seg, head + replacement + tail)
                inserted = True
            touched.append(seg)

        for seg in touched:
            if not seg.text:
                self.run.remove(seg)
                self.segments.remove(seg)

    def clear(self) -> None:
        """Remove all of the run's text."""
        for seg in self.segments:
            self.run.remove(seg)
        self.segments = []

    def is_removable(self) -> bool:
        """True when the run has no content left besides its properties."""
        return all(child.tag == _RUN_PROPERTIES for child in self.run)


@dataclass
class LogicalText:
    """A paragraph's logical text with its character map.

    Attributes:
        paragraph: The w:p element
        runs: Owned runs in document order
        text: Concatenated text of all runs
        char_map: For each character of text, (run_index, offset_in_run)
    """

    paragraph: Any  # lxml Element
    runs: list[RunSlot]
    text: str
    char_map: list[tuple[int, int]]

    def locate(self, start: int, end: int) -> tuple[int, int, int, int]:
        """Map a logical span [start, end) back onto runs.

        Returns:
            (first_run, first_offset, last_run, last_end_offset); the end
            offset is exclusive within the last run
        """
        if not 0 <= start < end <= len(self.text):
            raise IndexError(
                f"Span [{start}, {end}) outside paragraph text of length {len(self.text)}"
            )
        first_run, first_offset = self.char_map[start]
        last_run, last_offset = self.char_map[end - 1]
        return first_run, first_offset, last_run, last_offset + 1


def index_paragraph(paragraph: Any) -> LogicalText:
    """Build the logical text of one paragraph.

    Only runs owned by the paragraph are indexed: runs whose nearest w:p
    ancestor is a nested paragraph (text boxes) belong to that paragraph.
    Runs inside hyperlinks, smart tags, fields and insertions are included;
    runs inside tracked deletions are not.
    """
    slots: list[RunSlot] = []
    chars: list[str] = []
    char_map: list[tuple[int, int]] = []

    for run in paragraph.iter(_RUN):
        if _owning_paragraph(run) is not paragraph:
            continue
        if _is_run_in_deletion(run, paragraph):
            continue

        slot = RunSlot(run, run.findall(_TEXT))
        run_index = len(slots)
        slots.append(slot)
        for offset, char in enumerate(slot.text):
            char_map.append((run_index, offset))
            chars.append(char)

    return LogicalText(paragraph, slots, "".join(chars), char_map)


def iter_paragraphs(root: Any) -> Iterator[Any]:
    """Yield every paragraph of a part in document order.

    Table cells and text boxes are reached through normal tree traversal.
    """
    yield from root.iter(_PARAGRAPH)


def context_snippet(text: str, start: int, end: int, chars: int) -> str:
    """Return the match with up to ``chars`` characters on each side.

    Ellipses mark where the paragraph text was truncated.
    """
    lo = max(0, start - chars)
    hi = min(len(text), end + chars)
    snippet = text[lo:hi]
    if lo > 0:
        snippet = "..." + snippet
    if hi < len(text):
        snippet = snippet + "..."
    return snippet.strip()
