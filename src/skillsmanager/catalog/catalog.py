"""A named collection of skills loaded from one source."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from datetime import UTC, datetime

from skillsmanager.catalog.registry import LOCAL_CATALOG_ID, OFFICIAL_CATALOG_ID, CatalogRecord
from skillsmanager.skills.models import Provider, Skill, sort_by_name
from skillsmanager.sources.base import SkillRepository
from skillsmanager.sources.git import GitError, GitErrorKind
from skillsmanager.sources.github import parse_github_url

logger = logging.getLogger(__name__)

LOCAL_CATALOG_NAME = "Installed"


def _format_error(error: Exception) -> str:
    if isinstance(error, GitError):
        if error.kind is GitErrorKind.CLONE_FAILED:
            return f"Clone failed: {error.detail}"
        if error.kind is GitErrorKind.PULL_FAILED:
            return f"Pull failed: {error.detail}"
        if error.kind is GitErrorKind.NOT_INSTALLED:
            return "Git is not installed"
        return f"Git error: {error}"
    return str(error) or type(error).__name__


class SkillsCatalog:
    """Skills from one source plus load state.

    ``skills`` is an immutable tuple; every mutation swaps in a new tuple so
    readers holding the previous snapshot never see a half-applied change.
    A catalog without ``url`` is the local catalog.
    """

    def __init__(
        self,
        loader: SkillRepository,
        *,
        url: str | None = None,
        name: str | None = None,
        id: uuid.UUID | None = None,
        added_at: datetime | None = None,
    ) -> None:
        self.id = id or uuid.uuid4()
        self.url = url
        if name:
            self.name = name
        elif url is not None:
            self.name = self.extract_name(url)
        else:
            self.name = LOCAL_CATALOG_NAME
        self.added_at = added_at or datetime.now(UTC)
        self.loader = loader

        self.skills: tuple[Skill, ...] = ()
        self.is_loading = False
        self.error_message: str | None = None

    @classmethod
    def local(cls, loader: SkillRepository, name: str = LOCAL_CATALOG_NAME) -> SkillsCatalog:
        return cls(loader, name=name, id=LOCAL_CATALOG_ID)

    @classmethod
    def from_record(cls, record: CatalogRecord, loader: SkillRepository) -> SkillsCatalog:
        if record.url is None:
            raise ValueError(f"Catalog record {record.id} has no URL")
        return cls(
            loader,
            url=record.url,
            name=record.name,
            id=record.id,
            added_at=record.added_at,
        )

    def to_record(self) -> CatalogRecord:
        return CatalogRecord(id=self.id, url=self.url, name=self.name, added_at=self.added_at)

    # -- loading ---------------------------------------------------------------

    async def load_skills(self) -> None:
        """Replace the skill list from the loader.

        Failures are kept in ``error_message``. A cancelled load keeps the
        previous list.
        """
        self.is_loading = True
        self.error_message = None
        try:
            skills = await self.loader.fetch_all()
            self.skills = tuple(skills)
            logger.debug(f"Loaded {len(skills)} skills into catalog '{self.name}'")
        except Exception as e:
            self.error_message = _format_error(e)
            logger.warning(f"Failed to load catalog '{self.name}': {self.error_message}")
        finally:
            self.is_loading = False

    # -- reconciliation --------------------------------------------------------

    def update_installation_status(self, unique_key: str, providers: Iterable[Provider]) -> None:
        installed = frozenset(providers)
        self.skills = tuple(
            s.with_installed_providers(installed) if s.unique_key == unique_key else s
            for s in self.skills
        )

    def sync_installation_status(self, installed_skills: Iterable[Skill]) -> None:
        by_key = {s.unique_key: s.installed_providers for s in installed_skills}
        self.skills = tuple(
            s.with_installed_providers(by_key[s.unique_key]) if s.unique_key in by_key else s
            for s in self.skills
        )

    def add_skill(self, skill: Skill) -> None:
        if self.get(skill.unique_key) is not None:
            return
        self.skills = tuple(sort_by_name([*self.skills, skill]))

    def remove_skill(self, unique_key: str) -> None:
        self.skills = tuple(s for s in self.skills if s.unique_key != unique_key)

    def update_skill(self, skill: Skill) -> None:
        if self.get(skill.unique_key) is None:
            return
        self.skills = tuple(
            sort_by_name([skill if s.unique_key == skill.unique_key else s for s in self.skills])
        )

    def get(self, unique_key: str) -> Skill | None:
        return next((s for s in self.skills if s.unique_key == unique_key), None)

    # -- properties ------------------------------------------------------------

    @property
    def is_local(self) -> bool:
        return self.url is None

    @property
    def is_valid(self) -> bool:
        if self.url is None or self.url.startswith("file://"):
            return True
        return "github.com" in self.url and parse_github_url(self.url)[0] != ""

    @property
    def is_official(self) -> bool:
        return self.id == OFFICIAL_CATALOG_ID

    @property
    def skill_count(self) -> int:
        return len(self.skills)

    @staticmethod
    def extract_name(url: str) -> str:
        """Repo name from a GitHub URL, capitalized; ``Unknown`` when empty."""
        if url.startswith("file://"):
            return url.rstrip("/").rpartition("/")[2] or "Unknown"
        clean = url
        for prefix in ("https://github.com/", "http://github.com/"):
            clean = clean.replace(prefix, "")
        clean = clean.rstrip("/")
        if clean.endswith(".git"):
            clean = clean[: -len(".git")]
        parts = [p for p in clean.split("/") if p]
        if len(parts) >= 2:
            return parts[1].title()
        return clean or "Unknown"

    def __repr__(self) -> str:
        return f"SkillsCatalog(id={self.id}, name={self.name!r}, skills={len(self.skills)})"
