"""Repository that merges several sources by unique key."""

from __future__ import annotations

from collections.abc import Callable, Sequence

from skillsmanager.skills.models import Skill, sort_by_name
from skillsmanager.sources.base import SkillRepository

Merger = Callable[[list[Skill], list[Skill]], list[Skill]]


def merge_by_unique_key(first: list[Skill], second: list[Skill]) -> list[Skill]:
    """Keep the first occurrence of each key, unioning installed providers."""
    by_key: dict[str, Skill] = {}
    for skill in [*first, *second]:
        existing = by_key.get(skill.unique_key)
        if existing is None:
            by_key[skill.unique_key] = skill
        else:
            by_key[skill.unique_key] = existing.with_installed_providers(
                existing.installed_providers | skill.installed_providers
            )
    return sort_by_name(list(by_key.values()))


class MergedSkillRepository:
    def __init__(
        self,
        repositories: Sequence[SkillRepository],
        merger: Merger = merge_by_unique_key,
    ) -> None:
        self._repositories = list(repositories)
        self._merger = merger

    async def fetch_all(self) -> list[Skill]:
        merged: list[Skill] = []
        for repo in self._repositories:
            merged = self._merger(merged, await repo.fetch_all())
        return merged

    async def fetch(self, id: str) -> Skill | None:
        for repo in self._repositories:
            skill = await repo.fetch(id)
            if skill is not None:
                return skill
        return None
