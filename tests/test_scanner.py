"""Tests for placeholder pattern compilation and batch scanning."""

import threading
import time

import pytest

from python_docx_fill import EngineConfig, InvalidPatternError, PlaceholderKind
from python_docx_fill import scanner as scanner_module
from python_docx_fill.errors import ErrorKind
from python_docx_fill.scanner import PlaceholderScanner, compile_pattern, normalize_files


class TestCompilePattern:
    """Tests for pattern validation."""

    def test_default_pattern(self):
        compiled = compile_pattern(r"\{\{.*?\}\}")
        assert compiled.regex.groups == 0

    def test_empty_pattern_rejected(self):
        with pytest.raises(InvalidPatternError):
            compile_pattern("")

    def test_invalid_regex_rejected(self):
        """Test that a regex that does not compile is reported with the pattern."""
        with pytest.raises(InvalidPatternError) as exc_info:
            compile_pattern(r"\{\{(.*?\}\}")
        assert exc_info.value.pattern == r"\{\{(.*?\}\}"

    def test_two_groups_rejected(self):
        with pytest.raises(InvalidPatternError, match="capturing groups"):
            compile_pattern(r"\{\{(\w+)-(\w+)\}\}")

    def test_empty_match_rejected(self):
        with pytest.raises(InvalidPatternError, match="empty string"):
            compile_pattern(r"\w*")

    def test_name_from_capture_group(self):
        """Test that one capturing group yields the name."""
        compiled = compile_pattern(r"\[\[(\w+)\]\]")
        match = compiled.regex.search("Hi [[USER]]!")
        assert compiled.resolve(match).name == "USER"

    def test_name_strips_delimiters_and_whitespace(self):
        compiled = compile_pattern(r"\{\{.*?\}\}")
        match = compiled.regex.search("{{ NAME }}")
        assert compiled.resolve(match).name == "NAME"

    def test_blank_name_ignored(self):
        compiled = compile_pattern(r"\{\{.*?\}\}")
        match = compiled.regex.search("{{  }}")
        assert compiled.resolve(match) is None

    def test_image_token(self):
        """Test that image tokens carry their bounding box."""
        compiled = compile_pattern(r"\{\{.*?\}\}")
        match = compiled.regex.search("{{image:LOGO|width:120|height:60}}")
        resolved = compiled.resolve(match)
        assert resolved.name == "LOGO"
        assert resolved.kind is PlaceholderKind.IMAGE
        assert (resolved.max_width, resolved.max_height) == (120, 60)

    def test_image_token_with_zero_size_is_text(self):
        """Test that a malformed image token is treated as plain text."""
        compiled = compile_pattern(r"\{\{.*?\}\}")
        match = compiled.regex.search("{{image:LOGO|width:0|height:60}}")
        resolved = compiled.resolve(match)
        assert resolved.kind is PlaceholderKind.TEXT
        assert resolved.name == "image:LOGO|width:0|height:60"


class TestScan:
    """Tests for scanning batches of files."""

    def test_finds_placeholders_in_body_headers_footers(self, docx):
        """Test that every text-bearing part is scanned."""
        path = docx.create(
            body=[docx.paragraph("Dear {{NAME}},")],
            headers=[docx.paragraph("{{COMPANY}}")],
            footers=[docx.paragraph("Page for {{NAME}}")],
        )
        result = PlaceholderScanner().scan([path])

        assert [p.name for p in result.placeholders] == ["NAME", "COMPANY"]
        name = result.get("NAME")
        assert name.total_occurrences == 2
        assert name.locations[0].context == "Body: Dear {{NAME}},"
        assert result.get("COMPANY").locations[0].context == "Header0: {{COMPANY}}"

    def test_split_run_token(self, docx):
        """Test that a token split across three runs is found once."""
        path = docx.create(
            body=[docx.paragraph("Dear {{", docx.run("NA", bold=True), "ME}}")]
        )
        result = PlaceholderScanner().scan([path])
        assert [p.name for p in result.placeholders] == ["NAME"]
        assert result.total_occurrences == 1

    def test_table_cells_scanned(self, docx):
        path = docx.create(body=[docx.table(["{{A}}", "{{B}}"], ["{{A}}", "x"])])
        result = PlaceholderScanner().scan([path])
        assert result.get("A").total_occurrences == 2
        assert result.get("B").total_occurrences == 1

    def test_occurrence_sum_matches_locations(self, docx):
        """Test that totals equal the sum of per-file counts."""
        paths = [
            docx.create("a.docx", body=[docx.paragraph("{{X}} {{X}} {{Y}}")]),
            docx.create("b.docx", body=[docx.paragraph("{{X}}")]),
        ]
        result = PlaceholderScanner().scan(paths)
        for placeholder in result.placeholders:
            assert placeholder.is_valid()
            assert placeholder.total_occurrences == sum(
                loc.occurrences for loc in placeholder.locations
            )
        assert result.get("X").total_occurrences == 3
        assert result.get("X").unique_file_count == 2

    def test_result_independent_of_input_order(self, docx):
        """Test that the same files in any order give the same placeholder list."""
        a = docx.create("a.docx", body=[docx.paragraph("{{FIRST}}")])
        b = docx.create("b.docx", body=[docx.paragraph("{{SECOND}} {{FIRST}}")])
        config = EngineConfig(max_concurrency=2)

        forward = PlaceholderScanner(config).scan([a, b])
        backward = PlaceholderScanner(config).scan([b, a])

        assert forward.placeholders == backward.placeholders
        assert [p.name for p in forward.placeholders] == ["FIRST", "SECOND"]

    def test_case_insensitive_grouping(self, docx):
        """Test that names differing only by case group under the first spelling."""
        path = docx.create(body=[docx.paragraph("{{Name}} and {{NAME}}")])
        config = EngineConfig(case_sensitive=False)
        result = PlaceholderScanner(config).scan([path])
        assert [p.name for p in result.placeholders] == ["Name"]
        assert result.placeholders[0].total_occurrences == 2

    def test_case_sensitive_keeps_names_apart(self, docx):
        path = docx.create(body=[docx.paragraph("{{Name}} and {{NAME}}")])
        result = PlaceholderScanner().scan([path])
        assert [p.name for p in result.placeholders] == ["Name", "NAME"]

    def test_corrupt_file_reported(self, docx, tmp_path):
        """Test that a broken file fails alone and the batch continues."""
        good = docx.create(body=[docx.paragraph("{{OK}}")])
        bad = tmp_path / "broken.docx"
        bad.write_bytes(b"not a zip file")

        result = PlaceholderScanner().scan([good, bad])

        assert result.failed_files == 1
        assert result.errors[0].kind is ErrorKind.PACKAGE_CORRUPT
        assert result.is_successful
        assert [p.name for p in result.placeholders] == ["OK"]

    def test_all_files_failing_is_unsuccessful(self, tmp_path):
        bad = tmp_path / "broken.docx"
        bad.write_bytes(b"garbage")
        result = PlaceholderScanner().scan([bad])
        assert not result.is_successful

    def test_missing_file_reported(self, tmp_path):
        result = PlaceholderScanner().scan([tmp_path / "missing.docx"])
        assert result.errors[0].kind is ErrorKind.FILE_NOT_FOUND

    def test_empty_batch(self):
        result = PlaceholderScanner().scan([])
        assert result.total_files_scanned == 0
        assert result.placeholders == []
        assert result.is_successful

    def test_cancelled_scan(self, docx):
        """Test that a set cancel event reports files as cancelled."""
        path = docx.create(body=[docx.paragraph("{{X}}")])
        cancel = threading.Event()
        cancel.set()
        result = PlaceholderScanner().scan([path], cancel_event=cancel)
        assert result.errors[0].kind is ErrorKind.CANCELLED
        assert result.placeholders == []

    def test_scan_deadline(self, docx, monkeypatch):
        """Test that files not scanned by the deadline are reported as timed out."""
        paths = [docx.create(f"{name}.docx", body=[docx.paragraph("{{X}}")]) for name in "ab"]
        real_scan_file = scanner_module.scan_file

        def slow_scan_file(*args):
            time.sleep(0.5)
            return real_scan_file(*args)

        monkeypatch.setattr(scanner_module, "scan_file", slow_scan_file)
        config = EngineConfig(max_concurrency=1, io_timeout=0.1)
        result = PlaceholderScanner(config).scan(paths)

        assert result.failed_files == 2
        assert [e.kind for e in result.errors] == [ErrorKind.TIMEOUT, ErrorKind.TIMEOUT]
        assert result.placeholders == []

    def test_files_with_placeholders_count(self, docx):
        a = docx.create("a.docx", body=[docx.paragraph("{{X}}")])
        b = docx.create("b.docx", body=[docx.paragraph("nothing here")])
        result = PlaceholderScanner().scan([a, b])
        assert result.total_files_scanned == 2
        assert result.files_with_placeholders == 1

    def test_custom_pattern(self, docx):
        path = docx.create(body=[docx.paragraph("Hello [[who]] and {{NOT}}")])
        config = EngineConfig(placeholder_pattern=r"\[\[(\w+)\]\]")
        result = PlaceholderScanner(config).scan([path])
        assert [p.name for p in result.placeholders] == ["who"]


class TestNormalizeFiles:
    def test_sorted_and_unique(self, tmp_path):
        a = tmp_path / "a.docx"
        b = tmp_path / "b.docx"
        assert normalize_files([b, a, str(b)]) == [str(a), str(b)]


class TestStatistics:
    """Tests for scan statistics."""

    def test_statistics(self, docx):
        a = docx.create("a.docx", body=[docx.paragraph("{{B}} {{A}} {{A}}")])
        b = docx.create("b.docx", body=[docx.paragraph("{{A}}")])
        c = docx.create("c.docx", body=[docx.paragraph("none")])
        result = PlaceholderScanner().scan([a, b, c])

        stats = result.statistics()

        assert stats.total_unique_placeholders == 2
        assert stats.total_occurrences == 4
        assert stats.files_scanned == 3
        assert stats.files_with_placeholders == 2
        assert stats.average_per_file == 2.0
        assert [p.name for p in stats.most_common] == ["A", "B"]
        assert stats.distribution == {1: 1, 3: 1}
        assert stats.scan_duration == result.duration

    def test_most_common_limited_and_ties_keep_order(self, docx):
        path = docx.create(body=[docx.paragraph("{{C}} {{A}} {{B}} {{B}}")])
        stats = PlaceholderScanner().scan([path]).statistics(top=2)
        assert [p.name for p in stats.most_common] == ["B", "C"]

    def test_empty_scan(self):
        stats = PlaceholderScanner().scan([]).statistics()
        assert stats.average_per_file == 0.0
        assert stats.most_common == []
        assert stats.distribution == {}
