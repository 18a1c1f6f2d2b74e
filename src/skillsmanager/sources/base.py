"""Fetch contract shared by every skill source."""

from __future__ import annotations

from enum import StrEnum
from typing import Protocol, runtime_checkable

from skillsmanager.skills.models import Skill


class FetchErrorKind(StrEnum):
    NOT_FOUND = "not_found"
    TRANSPORT = "transport"
    PERMISSION = "permission"


class FetchError(Exception):
    """Raised when a source cannot enumerate or read its content."""

    def __init__(self, kind: FetchErrorKind, message: str) -> None:
        self.kind = kind
        super().__init__(message)


@runtime_checkable
class SkillRepository(Protocol):
    async def fetch_all(self) -> list[Skill]:
        """Return every skill this source can discover.

        Candidates without a valid manifest are skipped; only a failure to
        enumerate the root raises.
        """
        ...

    async def fetch(self, id: str) -> Skill | None: ...
