"""Tests for layered config loading."""

import json
from pathlib import Path

import pytest

from diffengine.config.loader import DEFAULT_CONFIG, load_config
from diffengine.config.schema import Config
from diffengine.core.errors import ConfigError
from diffengine.core.utils import deep_merge


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the global config directory into tmp_path."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setattr(
        "diffengine.config.loader.get_diffengine_dir", lambda: home / ".diffengine"
    )
    return home


def _write_config(directory: Path, data: dict) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / "config.json"
    path.write_text(json.dumps(data))
    return path


class TestDeepMerge:
    """Tests for deep_merge function."""

    def test_nested_merge_keeps_base_keys(self) -> None:
        base = {"locate": {"fuzzy": True, "fuzzy_max_chars": 10}}
        override = {"locate": {"fuzzy": False}}

        assert deep_merge(base, override) == {"locate": {"fuzzy": False, "fuzzy_max_chars": 10}}

    def test_lists_are_replaced(self) -> None:
        assert deep_merge({"items": [1, 2]}, {"items": [3]}) == {"items": [3]}

    def test_inputs_are_not_modified(self) -> None:
        base = {"apply": {"save": True}}

        deep_merge(base, {"apply": {"save": False}})

        assert base == {"apply": {"save": True}}


class TestLayeredConfigLoading:
    """Tests for load_config without an explicit path."""

    def test_shipped_defaults_without_global_config(self, home: Path, tmp_path: Path) -> None:
        config = load_config(cwd=tmp_path)

        assert config == Config.model_validate(json.loads(DEFAULT_CONFIG.read_text()))

    def test_local_overrides_global(self, home: Path, tmp_path: Path) -> None:
        _write_config(home / ".diffengine", {"log_level": "info", "locate": {"fuzzy": False}})
        project = tmp_path / "project"
        _write_config(project / ".diffengine", {"locate": {"prefer_old_side": True}})

        config = load_config(cwd=project)

        assert config.log_level == "INFO"
        assert config.locate.fuzzy is False
        assert config.locate.prefer_old_side is True

    def test_global_config_replaces_defaults(self, home: Path, tmp_path: Path) -> None:
        """Keys missing from the global config fall back to model defaults."""
        _write_config(home / ".diffengine", {"apply": {"save": False}})

        config = load_config(cwd=tmp_path)

        assert config.apply.save is False
        assert config.apply.delete_files is True

    def test_cwd_defaults_to_current_directory(
        self, home: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _write_config(tmp_path / ".diffengine", {"refine": {"nonmodified": True}})
        monkeypatch.chdir(tmp_path)

        assert load_config().refine.nonmodified is True

    def test_invalid_json_in_layer(self, home: Path, tmp_path: Path) -> None:
        local = tmp_path / ".diffengine"
        local.mkdir()
        (local / "config.json").write_text("{not json")

        with pytest.raises(ConfigError) as exc_info:
            load_config(cwd=tmp_path)

        assert "Invalid JSON" in exc_info.value.message

    def test_merged_validation_failure_names_sources(self, home: Path, tmp_path: Path) -> None:
        local = _write_config(tmp_path / ".diffengine", {"locate": {"unknown": 1}})

        with pytest.raises(ConfigError) as exc_info:
            load_config(cwd=tmp_path)

        assert "Config validation failed (merged from" in exc_info.value.message
        assert str(local) in exc_info.value.message


class TestExplicitConfigPath:
    """Tests for load_config with an explicit path."""

    def test_layers_are_skipped(self, home: Path, tmp_path: Path) -> None:
        _write_config(tmp_path / ".diffengine", {"log_level": "error"})
        path = _write_config(tmp_path / "custom", {"fixup": {"on_edit": False}})

        config = load_config(path, cwd=tmp_path)

        assert config.fixup.on_edit is False
        assert config.log_level == "WARNING"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError) as exc_info:
            load_config(tmp_path / "missing.json")

        assert "config: File not found" in exc_info.value.message

    def test_validation_failure(self, tmp_path: Path) -> None:
        path = _write_config(tmp_path, {"log_level": "loud"})

        with pytest.raises(ConfigError) as exc_info:
            load_config(path)

        assert f"Config validation failed for {path}" in exc_info.value.message
