"""Remote catalog backed by a shallow local git clone."""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path

from skillsmanager.skills.models import MANIFEST_FILENAME, RemoteSource, Skill, sort_by_name
from skillsmanager.skills.parser import SkillParseError, parse_skill
from skillsmanager.sources.git import GitClient, GitCLIClient, GitError, GitErrorKind
from skillsmanager.sources.github import SKILLS_DIR, parse_github_url
from skillsmanager.sources.local import SkillDir, walk_skill_dirs

logger = logging.getLogger(__name__)


def clone_dir(cache_dir: Path, repo_url: str) -> Path:
    """Convention: <cache_dir>/<owner>_<repo>"""
    owner, repo = parse_github_url(repo_url)
    return cache_dir / f"{owner}_{repo}"


def delete_clone_for(repo_url: str, cache_dir: Path) -> bool:
    """Remove the cached clone of ``repo_url``. Returns whether anything was removed."""
    path = clone_dir(cache_dir, repo_url)
    if not path.is_dir():
        return False
    shutil.rmtree(path)
    return True


class ClonedRepoSkillRepository:
    """Walks a mirrored clone recursively, from ``skills/`` when present."""

    def __init__(
        self,
        repo_url: str,
        cache_dir: Path,
        git: GitClient | None = None,
    ) -> None:
        self.repo_url = repo_url
        self.owner, self.repo = parse_github_url(repo_url)
        self.cache_dir = cache_dir
        self.local_path = clone_dir(cache_dir, repo_url)
        self._git = git or GitCLIClient()

    async def fetch_all(self) -> list[Skill]:
        await self._ensure_cloned()
        search_root = self._search_root()
        entries = await asyncio.to_thread(walk_skill_dirs, search_root)
        return sort_by_name([s for s in map(self._build, entries) if s is not None])

    async def fetch(self, id: str) -> Skill | None:
        try:
            await self._ensure_cloned()
        except GitError as e:
            logger.warning(f"Cannot refresh {self.repo_url}: {e}")
            return None
        for base in (self.local_path, self.local_path / SKILLS_DIR):
            skill_dir = base / id
            manifest = skill_dir / MANIFEST_FILENAME
            if not manifest.is_file():
                continue
            entry = SkillDir(skill_dir, id, "", manifest.read_text(encoding="utf-8"))
            return self._build(entry)
        return None

    def delete_clone(self) -> bool:
        return delete_clone_for(self.repo_url, self.cache_dir)

    async def _ensure_cloned(self) -> None:
        if not self.owner:
            raise GitError(GitErrorKind.INVALID_URL, self.repo_url)
        if self._git.is_git_repository(self.local_path):
            await self._git.pull(self.local_path)
        else:
            await self._git.clone(self.repo_url, self.local_path)

    def _search_root(self) -> Path:
        skills_dir = self.local_path / SKILLS_DIR
        return skills_dir if skills_dir.is_dir() else self.local_path

    def _build(self, entry: SkillDir) -> Skill | None:
        try:
            return parse_skill(
                entry.manifest,
                entry.folder,
                RemoteSource(repo_url=self.repo_url),
                path=entry.parent_path,
                directory=str(entry.directory),
            )
        except SkillParseError as e:
            logger.debug(f"Skipping {entry.directory}: {e}")
            return None
