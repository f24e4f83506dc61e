"""Tests for ReplacementMap and replacement values."""

from pathlib import Path

import pytest

from python_docx_fill import (
    ConfigurationError,
    ImageValue,
    ReplacementMap,
    TemplateNotFoundError,
    TextValue,
)


class TestReplacementValues:
    def test_strings_become_text_values(self):
        rmap = ReplacementMap({"NAME": "Alice", "COUNT": 3, "EMPTY": None})
        assert rmap["NAME"] == TextValue("Alice")
        assert rmap["COUNT"] == TextValue("3")
        assert rmap["EMPTY"] == TextValue("")

    def test_control_characters_sanitized(self):
        """Test that characters XML cannot store are replaced."""
        assert TextValue("a\x00b\x1fc").text == "a b c"
        assert TextValue("tab\there").text == "tab\there"

    def test_image_mapping(self):
        rmap = ReplacementMap({"LOGO": {"image": "logo.png", "width": 120}})
        value = rmap["LOGO"]
        assert isinstance(value, ImageValue)
        assert value.path == Path("logo.png")
        assert value.width == 120
        assert value.height is None
        assert value.display == "[image: logo.png (120x?)]"

    def test_mapping_without_image_key(self):
        with pytest.raises(ConfigurationError, match="image"):
            ReplacementMap({"LOGO": {"width": 120}})

    @pytest.mark.parametrize("width", [0, -5, "wide"])
    def test_invalid_image_size(self, width):
        with pytest.raises(ConfigurationError):
            ImageValue("logo.png", width=width)


class TestLookup:
    """Tests for name lookup."""

    def test_exact(self):
        rmap = ReplacementMap({"Name": "x"})
        assert rmap.lookup("Name") == TextValue("x")
        assert rmap.lookup("NAME") is None

    def test_case_insensitive(self):
        rmap = ReplacementMap({"Name": "x"})
        assert rmap.lookup("NAME", case_sensitive=False) == TextValue("x")

    def test_exact_match_preferred(self):
        rmap = ReplacementMap({"name": "lower", "NAME": "upper"})
        assert rmap.lookup("NAME", case_sensitive=False) == TextValue("upper")

    def test_invalid_names(self):
        rmap = ReplacementMap({"ok": "1", "": "2", "  ": "3", "x" * 201: "4"})
        assert rmap.invalid_names() == ["", "  ", "x" * 201]

    def test_mapping_protocol(self):
        rmap = ReplacementMap({"A": "1", "B": "2"})
        assert len(rmap) == 2
        assert list(rmap) == ["A", "B"]
        assert "A" in rmap


class TestFromFile:
    """Tests for loading maps from YAML and JSON."""

    def test_yaml(self, tmp_path):
        path = tmp_path / "values.yaml"
        path.write_text("NAME: Alice\nLOGO:\n  image: images/logo.png\n  height: 40\n")
        rmap = ReplacementMap.from_file(path)
        assert rmap["NAME"] == TextValue("Alice")
        assert rmap["LOGO"].path == tmp_path / "images" / "logo.png"
        assert rmap["LOGO"].height == 40
        assert rmap.source_path == path

    def test_json_with_replacements_key(self, tmp_path):
        path = tmp_path / "values.json"
        path.write_text('{"replacements": {"NAME": "Bob"}}')
        assert ReplacementMap.from_file(path)["NAME"] == TextValue("Bob")

    def test_missing(self, tmp_path):
        with pytest.raises(TemplateNotFoundError):
            ReplacementMap.from_file(tmp_path / "nope.yaml")

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "values.yaml"
        path.write_text("just a string")
        with pytest.raises(ConfigurationError):
            ReplacementMap.from_file(path)

    def test_unparseable(self, tmp_path):
        path = tmp_path / "values.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError):
            ReplacementMap.from_file(path)
