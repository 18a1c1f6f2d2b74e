"""Skill entity and manifest parsing."""

from skillsmanager.skills.models import (
    LocalSource,
    Provider,
    RemoteSource,
    Skill,
    SkillSource,
)
from skillsmanager.skills.parser import SkillParseError, parse_skill, serialize_skill

__all__ = [
    "Provider",
    "LocalSource",
    "RemoteSource",
    "SkillSource",
    "Skill",
    "SkillParseError",
    "parse_skill",
    "serialize_skill",
]
