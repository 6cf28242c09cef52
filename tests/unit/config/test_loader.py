"""Unit tests for TOML configuration loader."""

import tomllib
from pathlib import Path

import pytest

from changetrail.config.loader import (
    config_layers,
    deep_merge,
    get_config_dir,
    get_environment,
    load_config,
    load_toml,
)


class TestDeepMerge:
    def test_merge_flat_dicts(self) -> None:
        assert deep_merge({"a": 1, "b": 2}, {"b": 3, "c": 4}) == {"a": 1, "b": 3, "c": 4}

    def test_merge_nested_dicts(self) -> None:
        base = {"audit": {"table_name": "audit_logs", "capture_old_values": False}}
        override = {"audit": {"capture_old_values": True}}
        assert deep_merge(base, override) == {
            "audit": {"table_name": "audit_logs", "capture_old_values": True}
        }

    def test_override_replaces_non_dict(self) -> None:
        assert deep_merge({"a": {"x": 1}}, {"a": "replaced"}) == {"a": "replaced"}

    def test_base_unmodified(self) -> None:
        base = {"a": 1}
        deep_merge(base, {"b": 2})
        assert base == {"a": 1}


class TestLoadToml:
    def test_loads_file(self, tmp_path: Path) -> None:
        path = tmp_path / "x.toml"
        path.write_text('[audit]\ntable_name = "trail"\n')
        assert load_toml(path) == {"audit": {"table_name": "trail"}}

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_toml(tmp_path / "missing.toml")

    def test_invalid_syntax(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.toml"
        path.write_text("[audit\n")
        with pytest.raises(tomllib.TOMLDecodeError):
            load_toml(path)


class TestEnvironment:
    def test_default_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("CHANGETRAIL_ENV", raising=False)
        assert get_environment() == "development"

    def test_environment_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHANGETRAIL_ENV", "production")
        assert get_environment() == "production"

    def test_config_dir_override(
        self, test_config_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("CHANGETRAIL_CONFIG_DIR", str(test_config_dir))
        assert get_config_dir() == test_config_dir

    def test_config_dir_override_must_exist(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("CHANGETRAIL_CONFIG_DIR", str(tmp_path / "nope"))
        with pytest.raises(FileNotFoundError):
            get_config_dir()


class TestLoadConfig:
    def test_explicit_directory_and_environment(self, tmp_path: Path) -> None:
        (tmp_path / "default.toml").write_text("app_name = 'base'\n")
        (tmp_path / "ci.toml").write_text("app_name = 'ci'\n")

        assert load_config(tmp_path, "ci") == {"app_name": "ci"}
        assert load_config(tmp_path, "prod") == {"app_name": "base"}

    def test_layers_in_merge_order(self, tmp_path: Path) -> None:
        (tmp_path / "staging.toml").write_text("")
        (tmp_path / "default.toml").write_text("")

        assert config_layers(tmp_path, "staging") == [
            tmp_path / "default.toml",
            tmp_path / "staging.toml",
        ]
        assert config_layers(tmp_path, "missing") == [tmp_path / "default.toml"]

    def test_environment_file_overrides_default(
        self, test_config_dir: Path, mock_toml_files, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        mock_toml_files({
            "default.toml": "[audit]\ncapture_old_values = false\ntable_name = 'audit_logs'\n",
            "staging.toml": "[audit]\ncapture_old_values = true\n",
        })
        monkeypatch.setenv("CHANGETRAIL_CONFIG_DIR", str(test_config_dir))
        monkeypatch.setenv("CHANGETRAIL_ENV", "staging")

        assert load_config() == {
            "audit": {"capture_old_values": True, "table_name": "audit_logs"}
        }

    def test_no_files_gives_empty_config(
        self, test_config_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("CHANGETRAIL_CONFIG_DIR", str(test_config_dir))
        assert load_config() == {}
