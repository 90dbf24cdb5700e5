"""Tests for diffengine.config.load_utils module."""

from pathlib import Path

import pytest

from diffengine.config.load_utils import load_json_file, load_json_file_optional
from diffengine.core.errors import DiffEngineError, LoadError


class TestLoadJsonFile:
    """Tests for load_json_file function."""

    def test_load_valid_json_file(self, tmp_path: Path) -> None:
        """Should load an object with nested sections."""
        json_file = tmp_path / "config.json"
        json_file.write_text('{"locate": {"fuzzy": false}, "log_level": "info"}', encoding="utf-8")

        result = load_json_file(json_file)

        assert result == {"locate": {"fuzzy": False}, "log_level": "info"}

    def test_byte_order_mark_is_accepted(self, tmp_path: Path) -> None:
        """Files saved by editors that write a UTF-8 BOM still load."""
        json_file = tmp_path / "config.json"
        json_file.write_bytes(b'\xef\xbb\xbf{"apply": {"save": false}}')

        assert load_json_file(json_file) == {"apply": {"save": False}}

    def test_whitespace_only_file_returns_empty_dict(self, tmp_path: Path) -> None:
        json_file = tmp_path / "config.json"
        json_file.write_text("   \n\t  \n  ", encoding="utf-8")

        assert load_json_file(json_file) == {}

    def test_nonexistent_file_raises_load_error(self, tmp_path: Path) -> None:
        nonexistent = tmp_path / "does_not_exist.json"

        with pytest.raises(LoadError) as exc_info:
            load_json_file(nonexistent, error_context="config")

        assert "config: File not found" in exc_info.value.message
        assert str(nonexistent) in exc_info.value.message

    def test_invalid_json_raises_load_error(self, tmp_path: Path) -> None:
        invalid_file = tmp_path / "config.json"
        invalid_file.write_text('{"locate": ', encoding="utf-8")

        with pytest.raises(LoadError) as exc_info:
            load_json_file(invalid_file)

        assert "Invalid JSON" in exc_info.value.message

    def test_non_object_json_raises_load_error(self, tmp_path: Path) -> None:
        """A top-level array is not a config."""
        array_file = tmp_path / "config.json"
        array_file.write_text('["fuzzy"]', encoding="utf-8")

        with pytest.raises(LoadError) as exc_info:
            load_json_file(array_file)

        assert "Expected object" in exc_info.value.message
        assert "list" in exc_info.value.message

    def test_load_error_is_diffengine_error(self, tmp_path: Path) -> None:
        with pytest.raises(DiffEngineError):
            load_json_file(tmp_path / "missing.json")


class TestLoadJsonFileOptional:
    """Tests for load_json_file_optional function."""

    def test_returns_none_for_missing_file(self, tmp_path: Path) -> None:
        assert load_json_file_optional(tmp_path / "missing.json") is None

    def test_returns_none_for_directory(self, tmp_path: Path) -> None:
        """A directory where the config file should be is treated as absent."""
        (tmp_path / "config.json").mkdir()

        assert load_json_file_optional(tmp_path / "config.json") is None

    def test_loads_existing_file(self, tmp_path: Path) -> None:
        config = tmp_path / "config.json"
        config.write_text('{"refine": {"nonmodified": true}}')

        assert load_json_file_optional(config) == {"refine": {"nonmodified": True}}

    def test_raises_for_invalid_json(self, tmp_path: Path) -> None:
        config = tmp_path / "config.json"
        config.write_text("not json")

        with pytest.raises(LoadError):
            load_json_file_optional(config, error_context="config")
