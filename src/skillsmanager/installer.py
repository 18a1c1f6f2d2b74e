"""Installs skills into provider skill directories.

Every provider copy is staged in a hidden temporary sibling of the target and
renamed into place only after all requested providers have been staged. A
failure while committing rolls back the providers already committed by the
same call, so callers never observe a partial install.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Protocol

from skillsmanager.paths import ProviderPathResolver
from skillsmanager.skills.models import MANIFEST_FILENAME, Provider, RemoteSource, Skill
from skillsmanager.skills.parser import serialize_skill
from skillsmanager.sources.base import FetchError, FetchErrorKind
from skillsmanager.sources.cloned import clone_dir
from skillsmanager.sources.github import SKILLS_DIR, RepositoryClient, parse_github_url
from skillsmanager.sources.local import SKILL_ID_FILENAME, read_skill_identity

logger = logging.getLogger(__name__)

_SKIP_ON_COPY = frozenset({MANIFEST_FILENAME, SKILL_ID_FILENAME, ".git"})


class InstallErrorKind(StrEnum):
    PERMISSION = "permission"
    PATH_CONFLICT = "path_conflict"
    PROVIDER_ROOT_MISSING = "provider_root_missing"
    WRITE_FAILED = "write_failed"
    FETCH_FAILED = "fetch_failed"


class InstallError(Exception):
    """Raised when installing or uninstalling a skill fails."""

    def __init__(self, kind: InstallErrorKind, message: str) -> None:
        self.kind = kind
        super().__init__(message)


class SkillInstaller(Protocol):
    async def install(self, skill: Skill, providers: set[Provider]) -> Skill:
        """Return ``skill`` with ``providers`` added to its installed set."""
        ...

    async def uninstall(self, skill: Skill, provider: Provider) -> Skill:
        """Return ``skill`` with ``provider`` removed from its installed set."""
        ...


@dataclass
class _Staged:
    provider: Provider
    staging: Path
    target: Path
    backup: Path | None = None
    committed: bool = False


def _os_error(e: OSError, action: str) -> InstallError:
    if isinstance(e, PermissionError):
        return InstallError(InstallErrorKind.PERMISSION, f"Permission denied while {action}: {e}")
    return InstallError(InstallErrorKind.WRITE_FAILED, f"Failed {action}: {e}")


def _installed_key(directory: Path, root: Path) -> str:
    """Unique key of an existing skill directory below ``root``."""
    identity = read_skill_identity(directory)
    if identity is not None:
        path, skill_id = identity
        return f"{path}/{skill_id}" if path else skill_id
    return directory.relative_to(root).as_posix()


def _copy_tree(source: Path, target: Path) -> None:
    for item in source.iterdir():
        if item.name in _SKIP_ON_COPY:
            continue
        if item.is_dir():
            shutil.copytree(item, target / item.name, dirs_exist_ok=True)
        else:
            shutil.copy2(item, target / item.name)


class FileSystemSkillInstaller:
    def __init__(
        self,
        resolver: ProviderPathResolver,
        *,
        github: RepositoryClient | None = None,
        cache_dir: Path | None = None,
    ) -> None:
        self._resolver = resolver
        self._github = github
        self._cache_dir = cache_dir

    async def install(self, skill: Skill, providers: set[Provider]) -> Skill:
        pending = [p for p in Provider if p in providers and not skill.is_installed_for(p)]
        staged: list[_Staged] = []
        try:
            for provider in pending:
                staged.append(await self._stage(skill, provider))
            await asyncio.to_thread(self._commit_all, staged)
        finally:
            for item in staged:
                if item.staging.exists():
                    shutil.rmtree(item.staging, ignore_errors=True)

        logger.info(
            f"Installed {skill.unique_key} for {', '.join(p.value for p in pending) or 'no new providers'}"
        )
        return skill.with_installed_providers(skill.installed_providers | providers)

    async def uninstall(self, skill: Skill, provider: Provider) -> Skill:
        await asyncio.to_thread(self._remove, skill, provider)
        logger.info(f"Uninstalled {skill.unique_key} from {provider.value}")
        return skill.uninstalling(provider)

    # -- staging -------------------------------------------------------------

    async def _stage(self, skill: Skill, provider: Provider) -> _Staged:
        root = self._resolver.skills_path(provider)
        try:
            root.mkdir(parents=True, exist_ok=True)
        except PermissionError as e:
            raise InstallError(InstallErrorKind.PERMISSION, f"Cannot create {root}: {e}")
        except OSError as e:
            raise InstallError(
                InstallErrorKind.PROVIDER_ROOT_MISSING, f"Provider directory unavailable {root}: {e}"
            )

        target = root / skill.id
        if target.exists():
            existing = _installed_key(target, root)
            if existing != skill.unique_key:
                raise InstallError(
                    InstallErrorKind.PATH_CONFLICT,
                    f"{target} already holds '{existing}', cannot install '{skill.unique_key}'",
                )

        try:
            staging = Path(tempfile.mkdtemp(dir=root, prefix=f".{skill.id}.staging-"))
        except OSError as e:
            raise _os_error(e, f"staging {skill.id} in {root}")
        item = _Staged(provider=provider, staging=staging, target=target)
        try:
            (staging / MANIFEST_FILENAME).write_text(serialize_skill(skill), encoding="utf-8")
            (staging / SKILL_ID_FILENAME).write_text(skill.unique_key, encoding="utf-8")
            await self._copy_extras(skill, staging)
        except OSError as e:
            shutil.rmtree(staging, ignore_errors=True)
            raise _os_error(e, f"writing {skill.id}")
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise
        return item

    async def _copy_extras(self, skill: Skill, staging: Path) -> None:
        """Copy references, scripts and assets alongside the manifest."""
        if skill.directory and Path(skill.directory).is_dir():
            await asyncio.to_thread(_copy_tree, Path(skill.directory), staging)
            return
        if not isinstance(skill.source, RemoteSource):
            return

        relative = skill.unique_key
        if self._cache_dir is not None:
            clone = clone_dir(self._cache_dir, skill.source.repo_url)
            for base in (clone, clone / SKILLS_DIR):
                candidate = base / relative
                if candidate.is_dir():
                    await asyncio.to_thread(_copy_tree, candidate, staging)
                    return

        if self._github is None:
            return
        owner, repo = parse_github_url(skill.source.repo_url)
        if not owner:
            return
        bases = [relative] if skill.path else [relative, f"{SKILLS_DIR}/{relative}"]
        for remote_path in bases:
            try:
                await self._download_dir(owner, repo, remote_path, staging, top=True)
                return
            except FetchError as e:
                if e.kind is FetchErrorKind.NOT_FOUND:
                    continue
                raise InstallError(InstallErrorKind.FETCH_FAILED, f"Cannot fetch {remote_path}: {e}")

    async def _download_dir(
        self, owner: str, repo: str, remote_path: str, local: Path, *, top: bool = False
    ) -> None:
        assert self._github is not None
        for item in await self._github.get_contents(owner, repo, remote_path):
            if top and item.name in _SKIP_ON_COPY:
                continue
            item_path = item.path or f"{remote_path}/{item.name}"
            if item.type == "dir":
                (local / item.name).mkdir(exist_ok=True)
                await self._download_dir(owner, repo, item_path, local / item.name)
            elif item.type == "file":
                data = await self._github.get_file_bytes(owner, repo, item_path)
                (local / item.name).write_bytes(data)

    # -- commit / rollback ---------------------------------------------------

    def _commit_all(self, staged: list[_Staged]) -> None:
        try:
            for item in staged:
                if item.target.exists():
                    item.backup = item.target.with_name(f".{item.target.name}.old-{os.getpid()}")
                    os.rename(item.target, item.backup)
                os.rename(item.staging, item.target)
                item.committed = True
        except OSError as e:
            self._rollback(staged)
            raise _os_error(e, "committing install")

        for item in staged:
            if item.backup is not None:
                shutil.rmtree(item.backup, ignore_errors=True)

    def _rollback(self, staged: list[_Staged]) -> None:
        for item in staged:
            if item.committed:
                shutil.rmtree(item.target, ignore_errors=True)
            if item.backup is not None and item.backup.exists():
                os.rename(item.backup, item.target)
            logger.warning(f"Rolled back install of {item.target.name} for {item.provider.value}")

    # -- removal ---------------------------------------------------------------

    def _remove(self, skill: Skill, provider: Provider) -> None:
        root = self._resolver.skills_path(provider)
        candidates = [root / skill.id]
        if skill.path:
            candidates.append(root / skill.path / skill.id)

        conflict: str | None = None
        for candidate in candidates:
            if not candidate.is_dir():
                continue
            existing = _installed_key(candidate, root)
            if existing != skill.unique_key:
                conflict = existing
                continue
            doomed = candidate.with_name(f".{candidate.name}.removing-{os.getpid()}")
            try:
                os.rename(candidate, doomed)
            except OSError as e:
                raise _os_error(e, f"removing {candidate}")
            shutil.rmtree(doomed, ignore_errors=True)
            return

        if conflict is not None:
            raise InstallError(
                InstallErrorKind.PATH_CONFLICT,
                f"{root / skill.id} holds '{conflict}', not '{skill.unique_key}'",
            )
