from pathlib import Path

import pytest

from errors import InvalidConfigurationError
from options import CleanerOptions, load_config, parse_quality


class TestFromMapping:

    def test_defaults(self):
        options = CleanerOptions.from_mapping({})
        assert options.compress_quality == 75
        assert options.lang is None
        assert options.privacy is False
        assert options.warnings == ()

    def test_camel_case_keys(self):
        options = CleanerOptions.from_mapping({
            "file": "doc.docx",
            "convertImages": True,
            "compressQuality": "60",
            "removeCustomXml": "yes",
        })
        assert options.file == Path("doc.docx")
        assert options.convert_images is True
        assert options.compress_quality == 60
        assert options.remove_custom_xml is True

    @pytest.mark.parametrize("value", ["abc", "", "0", "101", 12.5, True])
    def test_bad_quality_falls_back(self, value):
        options = CleanerOptions.from_mapping({"compress_quality": value})
        assert options.compress_quality == 75
        assert len(options.warnings) == 1
        assert "compress_quality" in options.warnings[0]

    def test_empty_text_kept_none_dropped(self):
        options = CleanerOptions.from_mapping({"title": "", "company": None})
        assert options.title == ""
        assert options.company is None

    def test_unknown_keys_ignored(self):
        assert CleanerOptions.from_mapping({"colour": "red"}) == CleanerOptions()

    def test_options_are_immutable(self):
        options = CleanerOptions()
        with pytest.raises(AttributeError):
            options.lang = "en-GB"


class TestMerged:

    def test_overrides_win(self):
        base = CleanerOptions.from_mapping({"lang": "de-DE", "privacy": True})
        merged = base.merged({"lang": "en-GB", "privacy": None})
        assert merged.lang == "en-GB"
        assert merged.privacy is True

    def test_warnings_accumulate(self):
        base = CleanerOptions.from_mapping({"compress_quality": "bad"})
        merged = base.merged({"compress_quality": "worse"})
        assert merged.compress_quality == 75
        assert len(merged.warnings) == 2


class TestParseQuality:

    def test_valid(self):
        assert parse_quality(" 40 ") == 40

    def test_invalid(self):
        with pytest.raises(InvalidConfigurationError) as exc_info:
            parse_quality("high")
        assert exc_info.value.option == "compress_quality"
        assert exc_info.value.fallback == 75


class TestLoadConfig:

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "cleaner.yaml"
        path.write_text("lang: en-GB\nprivacy: true\ncompress_quality: 50\n")
        options = CleanerOptions.from_mapping(load_config(path))
        assert options.lang == "en-GB"
        assert options.privacy is True
        assert options.compress_quality == 50

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(InvalidConfigurationError):
            load_config(tmp_path / "missing.yaml")

    def test_unparsable_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("lang: [en-GB\nprivacy: true\n")
        with pytest.raises(InvalidConfigurationError) as exc_info:
            load_config(path)
        assert exc_info.value.option == "config"

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(InvalidConfigurationError):
            load_config(path)

    def test_shipped_example_loads(self):
        path = Path(__file__).parent.parent / "cleaner.yaml"
        options = CleanerOptions.from_mapping(load_config(path))
        assert options.lang == "en-GB"
        assert options.warnings == ()
