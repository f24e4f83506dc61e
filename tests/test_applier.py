"""Tests for applying edit plans to paragraphs."""

from lxml import etree

from python_docx_fill import OOXMLPackage, ReplacementMap
from python_docx_fill.applier import ReplacementApplier, split_run
from python_docx_fill.planner import ReplacementPlanner
from python_docx_fill.scanner import compile_pattern
from python_docx_fill.text_index import index_paragraph

WORD_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"


def w(tag: str) -> str:
    return f"{{{WORD_NS}}}{tag}"


def run_texts(paragraph):
    return [run.findtext(w("t")) or "" for run in paragraph.findall(w("r"))]


class TestSplitRun:
    """Tests for splitting a run at a text offset."""

    def _slot(self, inner):
        p = etree.fromstring(f'<w:p xmlns:w="{WORD_NS}"><w:r>{inner}</w:r></w:p>')
        return p, index_paragraph(p).runs[0]

    def test_split_inside_segment(self):
        p, slot = self._slot("<w:rPr><w:i/></w:rPr><w:t>abcdef</w:t>")
        new_slot = split_run(slot, 2)
        assert run_texts(p) == ["ab", "cdef"]
        assert new_slot.run.find(f"{w('rPr')}/{w('i')}") is not None
        assert slot.text == "ab"
        assert new_slot.text == "cdef"

    def test_split_at_segment_boundary_moves_following_children(self):
        p, slot = self._slot("<w:t>ab</w:t><w:tab/><w:t>cd</w:t>")
        split_run(slot, 2)
        first, second = p.findall(w("r"))
        assert [c.tag for c in first] == [w("t")]
        assert [c.tag for c in second] == [w("tab"), w("t")]


class TestReplacementApplier:
    """Tests for ReplacementApplier.apply."""

    def _apply(self, path, mappings, target=None):
        planner = ReplacementPlanner(compile_pattern(r"\{\{.*?\}\}"))
        with OOXMLPackage.open(path) as package:
            file_plan = planner.plan_file(package, ReplacementMap(mappings))
            count = ReplacementApplier().apply(package, file_plan, target=target)
            body = package.get_part("word/document.xml")
            return count, etree.fromstring(etree.tostring(body)), package.modified_parts

    def test_edits_applied_right_to_left(self, docx):
        """Test that several tokens spanning shared runs all land correctly."""
        path = docx.create(
            body=[docx.paragraph("{{A}} mid {{", docx.run("B}} and {{A", bold=True), "}} end")]
        )
        count, body, _ = self._apply(path, {"A": "1", "B": "2"})
        assert count == 3
        p = body.find(f".//{w('p')}")
        assert "".join(run_texts(p)) == "1 mid 2 and 1 end"

    def test_apply_without_target_leaves_file(self, docx):
        path = docx.create(body=[docx.paragraph("{{A}}")])
        original = path.read_bytes()
        count, _, modified = self._apply(path, {"A": "x"})
        assert count == 1
        assert modified == {"word/document.xml"}
        assert path.read_bytes() == original

    def test_apply_with_target_commits(self, docx):
        path = docx.create(body=[docx.paragraph("{{A}}")])
        self._apply(path, {"A": "x"}, target=path)
        assert docx.paragraph_texts(path) == ["x"]

    def test_empty_replacement_removes_run(self, docx):
        path = docx.create(body=[docx.paragraph("keep ", docx.run("{{A}}", bold=True))])
        _, body, _ = self._apply(path, {"A": ""})
        p = body.find(f".//{w('p')}")
        assert run_texts(p) == ["keep "]
