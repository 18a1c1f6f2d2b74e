"""Tests for config loading and environment overrides."""

import json
import logging
from pathlib import Path

import pytest

from skillsmanager.config import (
    DEFAULT_PORT,
    Config,
    default_config_path,
    get_data_dir,
    get_home_dir,
    load_config,
)


class TestDirectories:
    def test_home_env_override(self, tmp_path: Path):
        assert get_home_dir() == tmp_path / "home"

    def test_home_default(self, monkeypatch):
        monkeypatch.delenv("SKILLSMANAGER_HOME")
        assert get_home_dir() == Path.home()

    def test_data_dir_under_home_by_default(self, monkeypatch, tmp_path: Path):
        monkeypatch.delenv("SKILLSMANAGER_DATA_DIR")
        assert get_data_dir() == tmp_path / "home" / ".skillsmanager"

    def test_config_path(self, tmp_path: Path):
        assert default_config_path() == tmp_path / "data" / "config.json"


class TestConfigDefaults:
    def test_defaults(self, tmp_path: Path):
        config = Config()
        assert config.port == DEFAULT_PORT
        assert config.remote_backend == "api"
        assert config.github_token is None
        assert config.cache_dir == tmp_path / "data" / "cache"
        assert config.registry_path == tmp_path / "data" / "catalogs.json"


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path: Path):
        config = load_config(tmp_path / "nope.json")
        assert config.remote_backend == "api"
        assert config.port == DEFAULT_PORT

    def test_reads_section(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text(
            json.dumps(
                {
                    "skillsmanager": {
                        "remote_backend": "git",
                        "port": 5000,
                        "http_timeout": 3,
                        "github_api_url": "https://ghe.example/api/v3",
                        "log_level": "debug",
                    }
                }
            )
        )
        config = load_config(path)
        assert config.remote_backend == "git"
        assert config.port == 5000
        assert config.http_timeout == 3.0
        assert config.github_api_url == "https://ghe.example/api/v3"
        assert config.log_level == "DEBUG"

    def test_flat_file_accepted(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"port": 6000}))
        assert load_config(path).port == 6000

    def test_unknown_backend_ignored(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"remote_backend": "svn"}))
        assert load_config(path).remote_backend == "api"

    def test_env_data_dir_beats_file(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"data_dir": str(tmp_path / "other")}))
        assert load_config(path).data_dir == tmp_path / "data"

    def test_invalid_json_logged(self, tmp_path: Path, caplog: pytest.LogCaptureFixture):
        path = tmp_path / "config.json"
        path.write_text("{broken")
        with caplog.at_level(logging.WARNING, logger="skillsmanager.config"):
            config = load_config(path)
        assert config.port == DEFAULT_PORT
        assert "Failed to load config" in caplog.text


class TestEnvOverrides:
    def test_env_beats_file(self, tmp_path: Path, monkeypatch):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"port": 5000, "remote_backend": "api"}))
        monkeypatch.setenv("SKILLSMANAGER_PORT", "7000")
        monkeypatch.setenv("SKILLSMANAGER_REMOTE_BACKEND", "git")
        monkeypatch.setenv("GITHUB_TOKEN", "secret")
        config = load_config(path)
        assert config.port == 7000
        assert config.remote_backend == "git"
        assert config.github_token == "secret"

    def test_bad_timeout_falls_back(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("SKILLSMANAGER_HTTP_TIMEOUT", "soon")
        assert load_config(tmp_path / "nope.json").http_timeout == 15.0

    def test_log_level_upper_cased(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("SKILLSMANAGER_LOG_LEVEL", "warning")
        assert load_config(tmp_path / "nope.json").log_level == "WARNING"
