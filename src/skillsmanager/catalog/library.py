"""The skill library: one local catalog, any number of remote catalogs.

The local catalog is the record of what is installed. Install and uninstall
update it first and then push the resulting installed set to every remote
catalog that shows the same skill, so all copies of a unique key agree.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable, Iterable
from pathlib import Path

from skillsmanager.catalog.catalog import SkillsCatalog
from skillsmanager.catalog.registry import LOCAL_CATALOG_ID, CatalogRecord, CatalogRegistry
from skillsmanager.config import Config
from skillsmanager.installer import FileSystemSkillInstaller, SkillInstaller
from skillsmanager.paths import ProviderPathResolver
from skillsmanager.skills.editor import (
    LocalSkillWriter,
    SkillEditor,
    SkillEditorError,
    SkillWriteError,
    SkillWriter,
)
from skillsmanager.skills.models import LocalSource, Provider, RemoteSource, Skill
from skillsmanager.sources.base import FetchError, SkillRepository
from skillsmanager.sources.cloned import ClonedRepoSkillRepository, delete_clone_for
from skillsmanager.sources.github import GitHubClient, GitHubSkillRepository
from skillsmanager.sources.local import LocalDirectorySkillRepository, LocalSkillRepository
from skillsmanager.sources.merged import MergedSkillRepository

logger = logging.getLogger(__name__)

RepositoryFactory = Callable[[str], SkillRepository]


def _matches(skill: Skill, query: str) -> bool:
    q = query.casefold()
    return q in skill.name.casefold() or q in skill.description.casefold()


class SkillLibrary:
    def __init__(
        self,
        local_catalog: SkillsCatalog,
        installer: SkillInstaller,
        repository_factory: RepositoryFactory,
        *,
        registry: CatalogRegistry | None = None,
        writer: SkillWriter | None = None,
        cache_dir: Path | None = None,
        github: GitHubClient | None = None,
    ) -> None:
        self.local_catalog = local_catalog
        self.remote_catalogs: list[SkillsCatalog] = []
        self._installer = installer
        self._repository_factory = repository_factory
        self._registry = registry
        self._writer = writer or LocalSkillWriter()
        self._cache_dir = cache_dir
        self._github = github
        self._lock = asyncio.Lock()

        self.selected_skill: Skill | None = None
        # LOCAL_CATALOG_ID, a remote catalog id, or None for every catalog
        self.selected_source: uuid.UUID | None = LOCAL_CATALOG_ID
        self.search_query = ""
        self.error_message: str | None = None
        self.editor: SkillEditor | None = None

        if registry is not None:
            for record in registry.load():
                self.remote_catalogs.append(
                    SkillsCatalog.from_record(record, repository_factory(record.url or ""))
                )

    # -- catalogs --------------------------------------------------------------

    @property
    def catalogs(self) -> list[SkillsCatalog]:
        return [self.local_catalog, *self.remote_catalogs]

    def get_catalog(self, catalog_id: uuid.UUID) -> SkillsCatalog | None:
        return next((c for c in self.catalogs if c.id == catalog_id), None)

    async def load_all(self) -> None:
        """Load the local catalog, then every remote concurrently, then sync badges."""
        await self.local_catalog.load_skills()
        await asyncio.gather(*(c.load_skills() for c in self.remote_catalogs))
        self._sync_remotes()

    async def refresh(self) -> None:
        await self.load_all()

    def _sync_remotes(self) -> None:
        installed = self.local_catalog.skills
        for catalog in self.remote_catalogs:
            catalog.sync_installation_status(installed)

    async def add_catalog(self, url: str, name: str | None = None) -> SkillsCatalog | None:
        url = url.strip()
        if url.startswith("file://") or url.startswith("/"):
            url = LocalDirectorySkillRepository(url).url
        record = CatalogRecord(url=url, name=name or SkillsCatalog.extract_name(url))
        catalog = SkillsCatalog.from_record(record, self._repository_factory(url))
        if not catalog.is_valid:
            self.error_message = "Invalid repository URL"
            return None
        if any(c.url == url for c in self.remote_catalogs):
            self.error_message = "Repository already added"
            return None

        self.remote_catalogs.append(catalog)
        self._persist()
        logger.info(f"Added catalog '{catalog.name}' ({url})")

        self.selected_source = catalog.id
        await catalog.load_skills()
        catalog.sync_installation_status(self.local_catalog.skills)
        return catalog

    def remove_catalog(self, catalog_id: uuid.UUID) -> bool:
        catalog = next((c for c in self.remote_catalogs if c.id == catalog_id), None)
        if catalog is None:
            return False
        self.remote_catalogs.remove(catalog)
        self._persist()

        if self._cache_dir is not None and catalog.url and not catalog.url.startswith("file://"):
            try:
                if delete_clone_for(catalog.url, self._cache_dir):
                    logger.info(f"Deleted cached clone for {catalog.name}")
            except OSError as e:
                logger.warning(f"Failed to delete cached clone for {catalog.name}: {e}")

        if self.selected_source == catalog_id:
            self.selected_source = LOCAL_CATALOG_ID
        selected = self.selected_skill
        if (
            selected is not None
            and isinstance(selected.source, RemoteSource)
            and selected.source.repo_url == catalog.url
        ):
            self.selected_skill = None
        logger.info(f"Removed catalog '{catalog.name}'")
        return True

    def _persist(self) -> None:
        if self._registry is None:
            return
        try:
            self._registry.save([c.to_record() for c in self.remote_catalogs])
        except OSError as e:
            logger.warning(f"Failed to save catalog registry: {e}")

    # -- views -----------------------------------------------------------------

    @property
    def skills(self) -> list[Skill]:
        """Every skill across catalogs, first occurrence of each unique key (local first)."""
        seen: set[str] = set()
        result: list[Skill] = []
        for catalog in self.catalogs:
            for skill in catalog.skills:
                if skill.unique_key not in seen:
                    seen.add(skill.unique_key)
                    result.append(skill)
        return result

    @property
    def filtered_skills(self) -> list[Skill]:
        return self.filter_skills(self.selected_source, self.search_query)

    def filter_skills(self, source: uuid.UUID | None, query: str = "") -> list[Skill]:
        """Skills of one catalog (or all when ``source`` is None) matching ``query``."""
        if source is None:
            pool: Iterable[Skill] = self.skills
        else:
            catalog = self.get_catalog(source)
            pool = catalog.skills if catalog is not None else ()
        if not query:
            return list(pool)
        return [s for s in pool if _matches(s, query)]

    def find(self, unique_key: str, catalog_id: uuid.UUID | None = None) -> Skill | None:
        if catalog_id is not None:
            catalog = self.get_catalog(catalog_id)
            return catalog.get(unique_key) if catalog is not None else None
        for catalog in self.catalogs:
            skill = catalog.get(unique_key)
            if skill is not None:
                return skill
        return None

    def select(self, skill: Skill | None) -> None:
        self.selected_skill = skill

    # -- install / uninstall -----------------------------------------------------

    async def install(self, providers: Iterable[Provider], skill: Skill | None = None) -> Skill | None:
        """Install ``skill`` (default: the selected skill) for ``providers``.

        Failures are recorded in ``error_message`` and leave every catalog
        untouched. Once started the operation runs to completion even if the
        caller is cancelled.
        """
        target = skill or self.selected_skill
        if target is None:
            return None
        return await asyncio.shield(self._locked(self._install(target, set(providers))))

    async def uninstall(self, provider: Provider, skill: Skill | None = None) -> Skill | None:
        target = skill or self.selected_skill
        if target is None:
            return None
        return await asyncio.shield(self._locked(self._uninstall(target, provider)))

    async def _locked(self, operation: Awaitable[Skill | None]) -> Skill | None:
        async with self._lock:
            return await operation

    async def _install(self, skill: Skill, providers: set[Provider]) -> Skill | None:
        if not providers:
            self.error_message = "Installation failed: no provider selected"
            return None
        try:
            updated = await self._installer.install(skill, providers)
        except Exception as e:
            self.error_message = f"Installation failed: {e}"
            logger.warning(self.error_message)
            return None

        key = skill.unique_key
        existing = self.local_catalog.get(key)
        if existing is None:
            self.local_catalog.add_skill(self._as_local(updated))
            installed = updated.installed_providers
        else:
            installed = existing.installed_providers | updated.installed_providers
            self.local_catalog.update_installation_status(key, installed)

        self._propagate(key, installed)
        result = updated.with_installed_providers(installed)
        self.selected_skill = result
        self.error_message = None
        return result

    async def _uninstall(self, skill: Skill, provider: Provider) -> Skill | None:
        try:
            updated = await self._installer.uninstall(skill, provider)
        except Exception as e:
            self.error_message = f"Uninstall failed: {e}"
            logger.warning(self.error_message)
            return None

        key = skill.unique_key
        existing = self.local_catalog.get(key)
        if existing is not None:
            remaining = existing.installed_providers - {provider}
        else:
            remaining = updated.installed_providers

        result = updated.with_installed_providers(remaining)
        if not remaining:
            self.local_catalog.remove_skill(key)
        elif existing is not None and existing.source == LocalSource(provider=provider):
            moved = (await self._reowned(existing, remaining)).with_installed_providers(remaining)
            self.local_catalog.update_skill(moved)
            if skill.source.is_local:
                result = moved
        else:
            self.local_catalog.update_installation_status(key, remaining)

        self._propagate(key, remaining)
        self.selected_skill = result
        self.error_message = None
        return result

    async def _reowned(self, skill: Skill, remaining: frozenset[Provider]) -> Skill:
        """The local copy of ``skill`` held by a provider still in ``remaining``."""
        key = skill.unique_key
        try:
            reloaded = await self.local_catalog.loader.fetch(key)
        except FetchError as e:
            logger.warning(f"Could not reload {key} after uninstall: {e}")
            reloaded = None
        if (
            reloaded is not None
            and reloaded.unique_key == key
            and isinstance(reloaded.source, LocalSource)
            and reloaded.source.provider in remaining
        ):
            return reloaded
        owner = next(p for p in Provider if p in remaining)
        return skill.model_copy(update={"source": LocalSource(provider=owner), "directory": None})

    def _propagate(self, unique_key: str, installed: frozenset[Provider]) -> None:
        for catalog in self.remote_catalogs:
            if catalog.get(unique_key) is not None:
                catalog.update_installation_status(unique_key, installed)

    @staticmethod
    def _as_local(skill: Skill) -> Skill:
        if skill.source.is_local:
            return skill
        provider = next(p for p in Provider if p in skill.installed_providers)
        return skill.model_copy(update={"source": LocalSource(provider=provider), "directory": None})

    # -- editing -----------------------------------------------------------------

    @property
    def is_editing(self) -> bool:
        return self.editor is not None

    def start_editing(self) -> SkillEditor | None:
        skill = self.selected_skill
        if skill is None or not skill.is_editable:
            return None
        self.editor = SkillEditor(skill, self._writer)
        return self.editor

    def cancel_editing(self) -> None:
        self.editor = None

    async def save_editing(self) -> Skill | None:
        if self.editor is None:
            return None
        try:
            saved = await self.editor.save()
        except (SkillEditorError, SkillWriteError, ValueError) as e:
            self.error_message = f"Save failed: {e}"
            logger.warning(self.error_message)
            return None

        self.local_catalog.update_skill(saved)
        self.selected_skill = saved
        self.editor = None
        return saved

    async def aclose(self) -> None:
        if self._github is not None:
            await self._github.close()


def create_library(config: Config) -> SkillLibrary:
    """Wire a SkillLibrary from config: provider roots, remote backend, registry."""
    resolver = ProviderPathResolver(config.home)
    github = GitHubClient(
        token=config.github_token,
        api_url=config.github_api_url,
        raw_url=config.github_raw_url,
        timeout=config.http_timeout,
    )

    local_repo = MergedSkillRepository(
        [LocalSkillRepository(p, resolver.skills_path(p)) for p in Provider]
    )

    def repository_for(url: str) -> SkillRepository:
        if url.startswith("file://"):
            return LocalDirectorySkillRepository(url)
        if config.remote_backend == "git":
            return ClonedRepoSkillRepository(url, config.cache_dir)
        return GitHubSkillRepository(url, github)

    return SkillLibrary(
        SkillsCatalog.local(local_repo),
        FileSystemSkillInstaller(resolver, github=github, cache_dir=config.cache_dir),
        repository_for,
        registry=CatalogRegistry(config.registry_path),
        writer=LocalSkillWriter(resolver),
        cache_dir=config.cache_dir,
        github=github,
    )
