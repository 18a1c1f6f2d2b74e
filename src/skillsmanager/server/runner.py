"""Uvicorn launcher that advertises its address in a server.lock file."""

from __future__ import annotations

import json
import os
import signal
from pathlib import Path

from skillsmanager.config import Config, load_config

LOCK_FILENAME = "server.lock"


def lock_path_for(config: Config) -> Path:
    return config.data_dir / LOCK_FILENAME


def write_server_lock(config: Config, host: str) -> Path:
    """Record where the API is listening so other tools can find it."""
    lock_path = lock_path_for(config)
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    lock_path.write_text(json.dumps({"host": host, "port": config.port, "pid": os.getpid()}))
    return lock_path


def remove_server_lock(config: Config) -> None:
    lock_path_for(config).unlink(missing_ok=True)


def run_server(config: Config | None = None, host: str = "127.0.0.1") -> None:
    """Serve the skill library API with uvicorn until interrupted."""
    import uvicorn

    from skillsmanager.server.app import create_app

    if config is None:
        config = load_config()

    write_server_lock(config, host)

    def cleanup(signum, frame):
        remove_server_lock(config)
        raise SystemExit(0)

    signal.signal(signal.SIGTERM, cleanup)
    signal.signal(signal.SIGINT, cleanup)

    try:
        uvicorn.run(
            create_app(config),
            host=host,
            port=config.port,
            log_level=config.log_level.lower(),
        )
    finally:
        remove_server_lock(config)
