"""Filesystem skill sources: provider install roots and arbitrary directories.

Both walk every subdirectory below their root. A directory holding a SKILL.md
is a skill and is not descended into; the relative path from the root to its
parent becomes the skill's ``path``.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from skillsmanager.skills.models import (
    MANIFEST_FILENAME,
    LocalSource,
    Provider,
    RemoteSource,
    Skill,
    sort_by_name,
)
from skillsmanager.skills.parser import SkillParseError, parse_skill
from skillsmanager.sources.base import FetchError, FetchErrorKind

logger = logging.getLogger(__name__)

SKILL_ID_FILENAME = ".skill-id"

# Hidden directories that commonly hold skills inside a checked-out repo
_ALLOWED_HIDDEN = frozenset({".claude", ".codex", ".agent", ".gemini"})


@dataclass(frozen=True)
class SkillDir:
    directory: Path
    folder: str
    parent_path: str
    manifest: str


def _count_files(directory: Path) -> int:
    if not directory.is_dir():
        return 0
    return sum(len(files) for _, _, files in os.walk(directory))


def walk_skill_dirs(
    root: Path,
    *,
    allow_hidden: frozenset[str] = frozenset(),
) -> list[SkillDir]:
    """Collect every directory below ``root`` that contains a manifest.

    Raises FetchError if ``root`` itself cannot be listed. Unreadable
    subdirectories and symlink cycles are skipped.
    """
    try:
        entries = sorted(os.listdir(root))
    except FileNotFoundError:
        raise FetchError(FetchErrorKind.NOT_FOUND, f"Directory not found: {root}")
    except PermissionError:
        raise FetchError(FetchErrorKind.PERMISSION, f"Permission denied: {root}")
    except OSError as e:
        raise FetchError(FetchErrorKind.TRANSPORT, f"Cannot list {root}: {e}")

    found: list[SkillDir] = []
    visited = {os.path.realpath(root)}
    _walk(root, entries, "", found, visited, allow_hidden)
    return found


def _walk(
    directory: Path,
    entries: list[str],
    relative: str,
    found: list[SkillDir],
    visited: set[str],
    allow_hidden: frozenset[str],
) -> None:
    for item in entries:
        if item.startswith(".") and item not in allow_hidden:
            continue
        item_path = directory / item
        if not item_path.is_dir():
            continue
        real = os.path.realpath(item_path)
        if real in visited:
            continue
        visited.add(real)

        manifest_path = item_path / MANIFEST_FILENAME
        if manifest_path.is_file():
            try:
                text = manifest_path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.debug(f"Skipping unreadable manifest {manifest_path}: {e}")
                continue
            found.append(SkillDir(item_path, item, relative, text))
            continue

        try:
            children = sorted(os.listdir(item_path))
        except OSError as e:
            logger.debug(f"Skipping unwalkable directory {item_path}: {e}")
            continue
        child_relative = f"{relative}/{item}" if relative else item
        _walk(item_path, children, child_relative, found, visited, allow_hidden)


def read_skill_identity(skill_dir: Path) -> tuple[str, str] | None:
    """Read the ``(path, id)`` recorded by the installer, if any."""
    try:
        stored = (skill_dir / SKILL_ID_FILENAME).read_text(encoding="utf-8").strip()
    except OSError:
        return None
    if not stored:
        return None
    path, _, skill_id = stored.rpartition("/")
    return path, skill_id


def _build(entry: SkillDir, skill_id: str, path: str, source: LocalSource | RemoteSource) -> Skill:
    skill = parse_skill(
        entry.manifest,
        skill_id,
        source,
        path=path,
        directory=str(entry.directory),
    )
    return skill.model_copy(
        update={
            "reference_count": _count_files(entry.directory / "references"),
            "script_count": _count_files(entry.directory / "scripts"),
        }
    )


class LocalSkillRepository:
    """Skills installed in one provider's skills directory."""

    def __init__(self, provider: Provider, root: Path) -> None:
        self.provider = provider
        self.root = root

    async def fetch_all(self) -> list[Skill]:
        return await asyncio.to_thread(self._fetch_all)

    async def fetch(self, id: str) -> Skill | None:
        skills = await self.fetch_all()
        return next((s for s in skills if s.unique_key == id or s.id == id), None)

    def _fetch_all(self) -> list[Skill]:
        if not self.root.exists():
            return []
        source = LocalSource(provider=self.provider)
        skills: list[Skill] = []
        for entry in walk_skill_dirs(self.root):
            identity = read_skill_identity(entry.directory)
            path, skill_id = identity if identity else (entry.parent_path, entry.folder)
            try:
                skill = _build(entry, skill_id, path, source)
            except SkillParseError as e:
                logger.debug(f"Skipping {entry.directory}: {e}")
                continue
            skills.append(skill.installing(self.provider))
        return sort_by_name(skills)


def normalize_directory(directory: str | Path) -> Path:
    text = str(directory)
    if text.startswith("file://"):
        text = text[len("file://") :]
    return Path(text).expanduser()


def directory_url(directory: str | Path) -> str:
    return f"file://{normalize_directory(directory)}"


class LocalDirectorySkillRepository:
    """Skills found anywhere below an arbitrary folder (``file://`` URLs accepted)."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = normalize_directory(directory)
        self.url = directory_url(self.directory)

    async def fetch_all(self) -> list[Skill]:
        return await asyncio.to_thread(self._fetch_all)

    async def fetch(self, id: str) -> Skill | None:
        skills = await self.fetch_all()
        return next((s for s in skills if s.unique_key == id or s.id == id), None)

    def _fetch_all(self) -> list[Skill]:
        source = RemoteSource(repo_url=self.url)
        skills: list[Skill] = []
        for entry in walk_skill_dirs(self.directory, allow_hidden=_ALLOWED_HIDDEN):
            try:
                skills.append(_build(entry, entry.folder, entry.parent_path, source))
            except SkillParseError as e:
                logger.debug(f"Skipping {entry.directory}: {e}")
        return sort_by_name(skills)
