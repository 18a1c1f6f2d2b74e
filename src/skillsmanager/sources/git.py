"""Git CLI wrapper used to mirror remote catalogs locally.

All git calls go through _run_git(), which is the single mock target in tests.
"""

from __future__ import annotations

import asyncio
import subprocess
from enum import StrEnum
from pathlib import Path
from typing import Protocol


class GitErrorKind(StrEnum):
    NOT_INSTALLED = "not_installed"
    CLONE_FAILED = "clone_failed"
    PULL_FAILED = "pull_failed"
    INVALID_URL = "invalid_url"
    DIRECTORY_NOT_FOUND = "directory_not_found"


class GitError(Exception):
    """Raised when a git operation fails."""

    def __init__(self, kind: GitErrorKind, detail: str = "") -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(f"{kind}: {detail}" if detail else str(kind))


def _run_git(
    args: list[str],
    *,
    cwd: str | Path | None = None,
    timeout: int = 120,
) -> subprocess.CompletedProcess[str]:
    """Run a git command. Raises GitError only when git itself is unavailable."""
    try:
        return subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            timeout=timeout,
            cwd=cwd,
        )
    except FileNotFoundError:
        raise GitError(GitErrorKind.NOT_INSTALLED, "git binary not found")
    except subprocess.TimeoutExpired:
        raise GitError(
            GitErrorKind.CLONE_FAILED if "clone" in args else GitErrorKind.PULL_FAILED,
            f"git {' '.join(args[:3])} timed out",
        )


class GitClient(Protocol):
    async def clone(self, url: str, to: Path) -> None: ...

    async def pull(self, at: Path) -> None: ...

    def is_git_repository(self, at: Path) -> bool: ...


class GitCLIClient:
    async def clone(self, url: str, to: Path) -> None:
        if not url.strip() or " " in url.strip():
            raise GitError(GitErrorKind.INVALID_URL, url)
        clone_url = url if url.endswith(".git") else f"{url}.git"
        to.parent.mkdir(parents=True, exist_ok=True)
        result = await asyncio.to_thread(
            _run_git, ["clone", "--depth", "1", clone_url, str(to)]
        )
        if result.returncode != 0:
            raise GitError(GitErrorKind.CLONE_FAILED, result.stderr.strip())

    async def pull(self, at: Path) -> None:
        if not at.is_dir():
            raise GitError(GitErrorKind.DIRECTORY_NOT_FOUND, str(at))
        result = await asyncio.to_thread(_run_git, ["-C", str(at), "pull", "--ff-only"])
        if result.returncode != 0:
            raise GitError(GitErrorKind.PULL_FAILED, result.stderr.strip())

    def is_git_repository(self, at: Path) -> bool:
        return (at / ".git").is_dir()
