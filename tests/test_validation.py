"""Tests for validating replacement maps against scan results."""

from python_docx_fill import EngineConfig, PlaceholderEngine, ReplacementMap
from python_docx_fill.results import ValidationIssueKind, ValidationSeverity


class TestValidate:
    """Tests for PlaceholderEngine.validate."""

    def test_fully_mapped_is_valid(self, docx):
        path = docx.create(body=[docx.paragraph("{{A}} {{B}}")])
        engine = PlaceholderEngine()
        result = engine.validate(engine.scan([path]), ReplacementMap({"A": "1", "B": "2"}))
        assert result.is_valid
        assert result.issues == []
        assert result.placeholders_validated == 2
        assert result.mappings_validated == 2

    def test_collects_every_issue(self, docx):
        """Test that validation reports all problems, not just the first."""
        path = docx.create(body=[docx.paragraph("{{A}} {{B}} {{C}}")])
        engine = PlaceholderEngine()
        rmap = ReplacementMap({"A": "1", "EXTRA": "x", "   ": "blank"})

        result = engine.validate(engine.scan([path]), rmap)

        assert not result.is_valid
        assert result.unmapped_names == ["B", "C"]
        assert result.unused_names == ["EXTRA", "   "]
        kinds = {issue.kind for issue in result.errors}
        assert kinds == {ValidationIssueKind.UNMAPPED, ValidationIssueKind.INVALID_NAME}

    def test_unused_mapping_is_warning(self, docx):
        path = docx.create(body=[docx.paragraph("{{A}}")])
        engine = PlaceholderEngine()
        result = engine.validate(engine.scan([path]), ReplacementMap({"A": "1", "B": "2"}))
        assert result.is_valid
        assert [w.name for w in result.warnings] == ["B"]
        assert result.warnings[0].severity is ValidationSeverity.WARNING

    def test_unmapped_message_mentions_occurrences(self, docx):
        path = docx.create(body=[docx.paragraph("{{A}} {{A}}")])
        engine = PlaceholderEngine()
        result = engine.validate(engine.scan([path]), ReplacementMap({}))
        assert "2 occurrences" in result.errors[0].message

    def test_case_insensitive_matching(self, docx):
        path = docx.create(body=[docx.paragraph("{{Name}}")])
        engine = PlaceholderEngine(EngineConfig(case_sensitive=False))
        result = engine.validate(engine.scan([path]), ReplacementMap({"NAME": "x"}))
        assert result.is_valid
        assert result.warnings == []

    def test_str_summary(self, docx):
        path = docx.create(body=[docx.paragraph("{{A}}")])
        engine = PlaceholderEngine()
        result = engine.validate(engine.scan([path]), ReplacementMap({}))
        assert str(result).startswith("Validation: Invalid. 1 errors")
