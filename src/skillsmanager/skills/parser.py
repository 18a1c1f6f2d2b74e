"""SKILL.md parsing and serialization.

The header is a simple ``key: value`` block between ``---`` markers at the top
of the file. A value of ``|`` starts a block whose indented lines are joined
with newlines, keeping any indentation past that of the first line. A value
in double quotes is read as a JSON string, so any text can be written back
unchanged. Everything after the closing marker is the skill body.
"""

from __future__ import annotations

import json
from enum import StrEnum

from skillsmanager.skills.models import DEFAULT_VERSION, LocalSource, RemoteSource, Skill

_DELIMITER = "---"
_BLOCK_MARKER = "|"
_BLOCK_INDENT = "  "
_QUOTES = ("'", '"')
_CORE_FIELDS = ("name", "description", "version")


class ParseErrorReason(StrEnum):
    MISSING_NAME = "missing_name"
    UNTERMINATED_FRONTMATTER = "unterminated_frontmatter"


class SkillParseError(Exception):
    """Raised when a manifest cannot produce a Skill."""

    def __init__(self, reason: ParseErrorReason, skill_id: str = "") -> None:
        self.reason = reason
        self.skill_id = skill_id
        detail = f" ({skill_id})" if skill_id else ""
        super().__init__(f"Invalid manifest{detail}: {reason}")


def _is_delimiter(line: str) -> bool:
    # Indented "---" inside a block value is content, not a marker
    return line.rstrip() == _DELIMITER


def split_manifest(content: str) -> tuple[dict[str, str], str]:
    """Split manifest text into (header fields, body).

    A document without a leading ``---`` line has no header and is all body.
    """
    lines = content.split("\n")
    if not lines or not _is_delimiter(lines[0]):
        return {}, content

    for i, line in enumerate(lines[1:], start=1):
        if _is_delimiter(line):
            return _parse_header(lines[1:i]), "\n".join(lines[i + 1 :])
    raise SkillParseError(ParseErrorReason.UNTERMINATED_FRONTMATTER)


def _join_block(lines: list[str]) -> str:
    """Join block lines, removing the first non-blank line's indentation."""
    first = next((line for line in lines if line.strip()), "")
    indent = first[: len(first) - len(first.lstrip())]
    body = [line[len(indent) :] if line.startswith(indent) else line.lstrip() for line in lines]
    return "\n".join(body).strip()


def _parse_header(lines: list[str]) -> dict[str, str]:
    result: dict[str, str] = {}
    block_key: str | None = None
    block: list[str] = []

    for line in lines:
        line = line.rstrip("\r")
        if block_key is not None:
            if line[:1] in (" ", "\t") or ":" not in line:
                block.append(line)
                continue
            result[block_key] = _join_block(block)
            block_key = None
            block = []

        if ":" not in line:
            continue
        key, _, value = line.partition(":")
        key = key.strip()
        value = value.strip()
        if value == _BLOCK_MARKER:
            block_key = key
        elif value:
            result[key] = _unquote(value)

    if block_key is not None:
        result[block_key] = _join_block(block)
    return result


def _unquote(value: str) -> str:
    if len(value) < 2 or value[0] != value[-1] or value[0] not in _QUOTES:
        return value
    if value[0] == '"':
        try:
            decoded = json.loads(value)
        except json.JSONDecodeError:
            return value[1:-1]
        if isinstance(decoded, str):
            return decoded
        return value[1:-1]
    return value[1:-1].replace("''", "'")


def parse_skill(
    content: str,
    id: str,
    source: LocalSource | RemoteSource,
    *,
    path: str | None = None,
    directory: str | None = None,
) -> Skill:
    """Build a Skill from raw manifest text. Pure: no I/O."""
    try:
        header, body = split_manifest(content)
    except SkillParseError as e:
        raise SkillParseError(e.reason, id) from None

    name = header.get("name", "")
    if not name:
        raise SkillParseError(ParseErrorReason.MISSING_NAME, id)

    return Skill(
        id=id,
        name=name,
        description=header.get("description", ""),
        version=header.get("version", DEFAULT_VERSION),
        content=body,
        source=source,
        metadata={k: v for k, v in header.items() if k not in _CORE_FIELDS},
        path=path or None,
        directory=directory,
    )


def _reads_back_plain(value: str) -> bool:
    return (
        value == value.strip()
        and value != _BLOCK_MARKER
        and value[:1] not in _QUOTES
        and "\r" not in value
    )


def _header_line(key: str, value: str) -> list[str]:
    """Header lines for one field; ``_parse_header`` returns ``value`` unchanged."""
    if value and _reads_back_plain(value):
        if "\n" not in value:
            return [f"{key}: {value}"]
        return [f"{key}: {_BLOCK_MARKER}", *(f"{_BLOCK_INDENT}{part}" for part in value.split("\n"))]
    return [f"{key}: {json.dumps(value, ensure_ascii=False)}"]


def serialize_skill(skill: Skill) -> str:
    """Render the manifest fields of a skill back into manifest text."""
    lines = [_DELIMITER, *_header_line("name", skill.name)]
    if skill.description:
        lines.extend(_header_line("description", skill.description))
    lines.extend(_header_line("version", skill.version))
    for key, value in skill.metadata.items():
        lines.extend(_header_line(key, value))
    lines.append(_DELIMITER)
    return "\n".join(lines) + "\n" + skill.content
