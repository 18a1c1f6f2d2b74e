"""Provider install roots on disk."""

from __future__ import annotations

from pathlib import Path

from skillsmanager.config import get_home_dir
from skillsmanager.skills.models import Provider

_PROVIDER_SUBDIRS: dict[Provider, tuple[str, ...]] = {
    Provider.CODEX: (".codex", "skills", "public"),
    Provider.CLAUDE: (".claude", "skills"),
}


class ProviderPathResolver:
    """Maps each provider to its skills directory under a home directory."""

    def __init__(self, home: Path | None = None) -> None:
        self._home = home if home is not None else get_home_dir()

    @property
    def home(self) -> Path:
        return self._home

    def skills_path(self, provider: Provider) -> Path:
        return self._home.joinpath(*_PROVIDER_SUBDIRS[provider])

    def skill_dir(self, provider: Provider, skill_id: str) -> Path:
        return self.skills_path(provider) / skill_id
