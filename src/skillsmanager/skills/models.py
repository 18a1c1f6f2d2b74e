"""Pydantic models for skills: providers, sources and the Skill entity."""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Literal
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field

MANIFEST_FILENAME = "SKILL.md"
DEFAULT_VERSION = "1.0.0"


class Provider(StrEnum):
    CODEX = "codex"
    CLAUDE = "claude"

    @property
    def display_name(self) -> str:
        return _PROVIDER_NAMES[self]


_PROVIDER_NAMES: dict[Provider, str] = {
    Provider.CODEX: "Codex",
    Provider.CLAUDE: "Claude Code",
}


class LocalSource(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["local"] = "local"
    provider: Provider

    @property
    def is_local(self) -> bool:
        return True

    @property
    def is_remote(self) -> bool:
        return False

    @property
    def display_name(self) -> str:
        return self.provider.display_name


class RemoteSource(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["remote"] = "remote"
    repo_url: str

    @property
    def is_local(self) -> bool:
        return False

    @property
    def is_remote(self) -> bool:
        return True

    @property
    def display_name(self) -> str:
        last = urlparse(self.repo_url).path.rstrip("/").rpartition("/")[2]
        return last or "Remote"


SkillSource = Annotated[LocalSource | RemoteSource, Field(discriminator="kind")]


class Skill(BaseModel):
    """A parsed skill plus the providers it is installed to.

    Identity is ``unique_key``: the folder id qualified by the discovery
    path. Name and description can be edited and never take part in matching.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    version: str = DEFAULT_VERSION
    content: str = ""
    source: SkillSource
    path: str | None = None
    installed_providers: frozenset[Provider] = frozenset()
    # Header fields other than name, description and version
    metadata: dict[str, str] = Field(default_factory=dict)
    reference_count: int = 0
    script_count: int = 0
    # Absolute directory for skills read from disk
    directory: str | None = None

    @property
    def unique_key(self) -> str:
        if self.path:
            return f"{self.path}/{self.id}"
        return self.id

    @property
    def display_name(self) -> str:
        if self.path:
            return f"{self.name} ({self.path})"
        return self.name

    @property
    def is_installed(self) -> bool:
        return bool(self.installed_providers)

    @property
    def is_editable(self) -> bool:
        return self.source.is_local

    @property
    def has_references(self) -> bool:
        return self.reference_count > 0

    @property
    def has_scripts(self) -> bool:
        return self.script_count > 0

    def is_installed_for(self, provider: Provider) -> bool:
        return provider in self.installed_providers

    def installing(self, provider: Provider) -> Skill:
        return self.with_installed_providers(self.installed_providers | {provider})

    def uninstalling(self, provider: Provider) -> Skill:
        return self.with_installed_providers(self.installed_providers - {provider})

    def with_installed_providers(self, providers: set[Provider] | frozenset[Provider]) -> Skill:
        return self.model_copy(update={"installed_providers": frozenset(providers)})

    def updating(self, **fields: object) -> Skill:
        """Return a copy with editable manifest fields replaced."""
        unknown = set(fields) - _EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Not editable: {', '.join(sorted(unknown))}")
        return self.model_copy(update=fields)


_EDITABLE_FIELDS = frozenset({"name", "description", "version", "content", "metadata"})


def sort_by_name(skills: list[Skill]) -> list[Skill]:
    """Case-insensitive ascending sort by name."""
    return sorted(skills, key=lambda s: s.name.casefold())
