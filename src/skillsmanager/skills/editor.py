"""Editing of locally installed skills.

SkillEditor holds the draft; LocalSkillWriter persists it. Writes go to a
temp file next to the manifest and are swapped in with os.replace, so a failed
save leaves the previous manifest intact.
"""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path
from typing import Protocol

from skillsmanager.fileio import atomic_write
from skillsmanager.paths import ProviderPathResolver
from skillsmanager.skills.models import MANIFEST_FILENAME, LocalSource, Skill
from skillsmanager.skills.parser import serialize_skill


class SkillWriteErrorKind(StrEnum):
    NOT_LOCAL = "not_local"
    NOT_FOUND = "not_found"
    WRITE_FAILED = "write_failed"


class SkillWriteError(Exception):
    def __init__(self, kind: SkillWriteErrorKind, message: str) -> None:
        self.kind = kind
        super().__init__(message)


class SkillEditorError(Exception):
    """Raised when editing is attempted on a skill that cannot be edited."""


class SkillWriter(Protocol):
    async def save(self, skill: Skill) -> Skill: ...


class LocalSkillWriter:
    def __init__(self, resolver: ProviderPathResolver | None = None) -> None:
        self._resolver = resolver or ProviderPathResolver()

    def manifest_path(self, skill: Skill) -> Path:
        if skill.directory:
            return Path(skill.directory) / MANIFEST_FILENAME
        if not isinstance(skill.source, LocalSource):
            raise SkillWriteError(SkillWriteErrorKind.NOT_LOCAL, f"{skill.unique_key} is not local")
        return self._resolver.skill_dir(skill.source.provider, skill.id) / MANIFEST_FILENAME

    async def save(self, skill: Skill) -> Skill:
        if not isinstance(skill.source, LocalSource):
            raise SkillWriteError(SkillWriteErrorKind.NOT_LOCAL, f"{skill.unique_key} is not local")

        path = self.manifest_path(skill)
        if not path.is_file():
            raise SkillWriteError(SkillWriteErrorKind.NOT_FOUND, f"Manifest not found: {path}")

        try:
            atomic_write(path, serialize_skill(skill))
        except OSError as e:
            raise SkillWriteError(SkillWriteErrorKind.WRITE_FAILED, f"Cannot write {path}: {e}")
        return skill


class SkillEditor:
    def __init__(self, skill: Skill, writer: SkillWriter) -> None:
        self._writer = writer
        self.original = skill
        self.draft = skill.content
        self.name = skill.name
        self.description = skill.description
        self.version = skill.version

    @property
    def can_edit(self) -> bool:
        return self.original.is_editable

    @property
    def is_dirty(self) -> bool:
        return (
            self.draft != self.original.content
            or self.name != self.original.name
            or self.description != self.original.description
            or self.version != self.original.version
        )

    def reset(self) -> None:
        self.draft = self.original.content
        self.name = self.original.name
        self.description = self.original.description
        self.version = self.original.version

    async def save(self) -> Skill:
        if not self.can_edit:
            raise SkillEditorError(f"{self.original.unique_key} is not editable")

        updated = self.original.updating(
            content=self.draft,
            name=self.name,
            description=self.description,
            version=self.version,
        )
        saved = await self._writer.save(updated)
        self.original = saved
        return saved
