"""Configuration defaults, config file loading, and environment overrides."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

# Server defaults
DEFAULT_PORT = 41787

# Remote catalog backends
REMOTE_BACKENDS = ("api", "git")

DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_GITHUB_RAW_URL = "https://raw.githubusercontent.com"


def _safe_float(value: str, default: float) -> float:
    try:
        return float(value)
    except ValueError:
        return default


def get_home_dir() -> Path:
    env = os.environ.get("SKILLSMANAGER_HOME")
    if env:
        return Path(env)
    return Path.home()


def get_data_dir() -> Path:
    env = os.environ.get("SKILLSMANAGER_DATA_DIR")
    if env:
        return Path(env)
    return get_home_dir() / ".skillsmanager"


@dataclass
class Config:
    home: Path = field(default_factory=get_home_dir)
    data_dir: Path = field(default_factory=get_data_dir)
    remote_backend: str = "api"
    github_token: str | None = None
    github_api_url: str = DEFAULT_GITHUB_API_URL
    github_raw_url: str = DEFAULT_GITHUB_RAW_URL
    http_timeout: float = 15.0
    port: int = DEFAULT_PORT
    log_level: str = "INFO"

    @property
    def cache_dir(self) -> Path:
        return self.data_dir / "cache"

    @property
    def registry_path(self) -> Path:
        return self.data_dir / "catalogs.json"


def default_config_path() -> Path:
    return get_data_dir() / "config.json"


def load_config(path: Path | None = None) -> Config:
    """Load config from the ``skillsmanager`` section of a JSON file with env overrides."""
    config = Config()
    if path is None:
        path = default_config_path()

    if path.exists():
        try:
            data = json.loads(path.read_text())
            section = data.get("skillsmanager", data)
            if isinstance(section, dict):
                _apply(config, section)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Failed to load config from {path}: {e}")

    if backend := os.environ.get("SKILLSMANAGER_REMOTE_BACKEND"):
        if backend in REMOTE_BACKENDS:
            config.remote_backend = backend
    if token := os.environ.get("GITHUB_TOKEN"):
        config.github_token = token
    if port_env := os.environ.get("SKILLSMANAGER_PORT"):
        config.port = int(port_env)
    if timeout_env := os.environ.get("SKILLSMANAGER_HTTP_TIMEOUT"):
        config.http_timeout = _safe_float(timeout_env, config.http_timeout)
    if level := os.environ.get("SKILLSMANAGER_LOG_LEVEL"):
        config.log_level = level.upper()
    return config


def _apply(config: Config, data: dict[str, object]) -> None:
    if isinstance(data.get("home"), str):
        config.home = Path(data["home"]).expanduser()  # type: ignore[arg-type]
    if isinstance(data.get("data_dir"), str) and not os.environ.get("SKILLSMANAGER_DATA_DIR"):
        config.data_dir = Path(data["data_dir"]).expanduser()  # type: ignore[arg-type]
    if data.get("remote_backend") in REMOTE_BACKENDS:
        config.remote_backend = data["remote_backend"]  # type: ignore[assignment]
    if isinstance(data.get("github_token"), str):
        config.github_token = data["github_token"]  # type: ignore[assignment]
    if isinstance(data.get("github_api_url"), str):
        config.github_api_url = data["github_api_url"]  # type: ignore[assignment]
    if isinstance(data.get("github_raw_url"), str):
        config.github_raw_url = data["github_raw_url"]  # type: ignore[assignment]
    if isinstance(data.get("http_timeout"), (int, float)):
        config.http_timeout = float(data["http_timeout"])  # type: ignore[arg-type]
    if isinstance(data.get("port"), int):
        config.port = data["port"]  # type: ignore[assignment]
    if isinstance(data.get("log_level"), str):
        config.log_level = data["log_level"].upper()  # type: ignore[union-attr]
