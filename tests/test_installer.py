"""Tests for installer.py: staged install, rollback and uninstall."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from skillsmanager.installer import FileSystemSkillInstaller, InstallError, InstallErrorKind
from skillsmanager.paths import ProviderPathResolver
from skillsmanager.skills.models import LocalSource, Provider, RemoteSource, Skill
from skillsmanager.skills.parser import parse_skill
from skillsmanager.sources.base import FetchError, FetchErrorKind
from skillsmanager.sources.github import GitHubContent
from skillsmanager.sources.local import SKILL_ID_FILENAME

_URL = "https://github.com/acme/skills"


def _source_skill(tmp_path: Path, rel: str = "pdf", path: str | None = None) -> Skill:
    """A remote-sourced skill read from a directory with extra files."""
    skill_dir = tmp_path / "src" / rel
    (skill_dir / "references").mkdir(parents=True)
    (skill_dir / "references" / "guide.md").write_text("guide")
    (skill_dir / "run.sh").write_text("echo hi")
    text = "---\nname: PDF\ndescription: PDF tools\nlicense: MIT\n---\nBody\n"
    (skill_dir / "SKILL.md").write_text(text)
    return parse_skill(
        text,
        rel.rsplit("/", 1)[-1],
        RemoteSource(repo_url=_URL),
        path=path,
        directory=str(skill_dir),
    )


def _hidden_entries(root: Path) -> list[str]:
    return [p.name for p in root.iterdir() if p.name.startswith(".")] if root.exists() else []


class FakeGitHub:
    def __init__(self, tree: dict[str, str | bytes]) -> None:
        self.tree = tree

    async def get_contents(self, owner: str, repo: str, path: str) -> list[GitHubContent]:
        prefix = f"{path}/"
        children: dict[str, str] = {}
        for file_path in self.tree:
            if file_path.startswith(prefix):
                head, sep, _ = file_path[len(prefix) :].partition("/")
                children[head] = "dir" if sep else "file"
        if not children:
            raise FetchError(FetchErrorKind.NOT_FOUND, path)
        return [
            GitHubContent(name=n, type=t, path=f"{prefix}{n}")  # type: ignore[arg-type]
            for n, t in children.items()
        ]

    async def get_file_content(self, owner: str, repo: str, path: str) -> str:
        data = self.tree[path]
        return data.decode() if isinstance(data, bytes) else data

    async def get_file_bytes(self, owner: str, repo: str, path: str) -> bytes:
        data = self.tree[path]
        return data if isinstance(data, bytes) else data.encode()


class TestInstall:
    @pytest.mark.asyncio
    async def test_installs_to_each_provider(self, tmp_path, resolver: ProviderPathResolver):
        skill = _source_skill(tmp_path)
        result = await FileSystemSkillInstaller(resolver).install(
            skill, {Provider.CLAUDE, Provider.CODEX}
        )
        assert result.installed_providers == {Provider.CLAUDE, Provider.CODEX}
        for provider in Provider:
            target = resolver.skill_dir(provider, "pdf")
            assert (target / "SKILL.md").is_file()
            assert (target / "references" / "guide.md").read_text() == "guide"
            assert (target / "run.sh").is_file()
            assert (target / SKILL_ID_FILENAME).read_text() == "pdf"

    @pytest.mark.asyncio
    async def test_manifest_round_trips(self, tmp_path, resolver):
        skill = _source_skill(tmp_path)
        await FileSystemSkillInstaller(resolver).install(skill, {Provider.CLAUDE})
        text = (resolver.skill_dir(Provider.CLAUDE, "pdf") / "SKILL.md").read_text()
        reparsed = parse_skill(text, "pdf", skill.source)
        assert (reparsed.name, reparsed.description, reparsed.content) == (
            skill.name,
            skill.description,
            skill.content,
        )
        assert reparsed.metadata == {"license": "MIT"}

    @pytest.mark.asyncio
    async def test_union_is_monotonic(self, tmp_path, resolver):
        skill = _source_skill(tmp_path).installing(Provider.CODEX)
        result = await FileSystemSkillInstaller(resolver).install(skill, {Provider.CLAUDE})
        assert result.installed_providers == {Provider.CODEX, Provider.CLAUDE}
        assert not resolver.skill_dir(Provider.CODEX, "pdf").exists()

    @pytest.mark.asyncio
    async def test_nested_skill_records_unique_key(self, tmp_path, resolver):
        skill = _source_skill(tmp_path, rel="document/docx", path="document")
        await FileSystemSkillInstaller(resolver).install(skill, {Provider.CLAUDE})
        target = resolver.skill_dir(Provider.CLAUDE, "docx")
        assert (target / SKILL_ID_FILENAME).read_text() == "document/docx"

    @pytest.mark.asyncio
    async def test_no_staging_left_behind(self, tmp_path, resolver):
        await FileSystemSkillInstaller(resolver).install(_source_skill(tmp_path), {Provider.CLAUDE})
        assert _hidden_entries(resolver.skills_path(Provider.CLAUDE)) == []

    @pytest.mark.asyncio
    async def test_reinstall_same_key_replaces(self, tmp_path, resolver, claude_root):
        stale = claude_root / "pdf"
        stale.mkdir()
        (stale / SKILL_ID_FILENAME).write_text("pdf")
        (stale / "old.txt").write_text("old")
        await FileSystemSkillInstaller(resolver).install(_source_skill(tmp_path), {Provider.CLAUDE})
        assert not (stale / "old.txt").exists()
        assert (stale / "SKILL.md").is_file()
        assert _hidden_entries(claude_root) == []

    @pytest.mark.asyncio
    async def test_path_conflict(self, tmp_path, resolver, claude_root):
        taken = claude_root / "pdf"
        taken.mkdir()
        (taken / SKILL_ID_FILENAME).write_text("other/pdf")
        skill = _source_skill(tmp_path)
        with pytest.raises(InstallError) as exc_info:
            await FileSystemSkillInstaller(resolver).install(skill, {Provider.CODEX, Provider.CLAUDE})
        assert exc_info.value.kind is InstallErrorKind.PATH_CONFLICT
        # Nothing committed for the provider staged before the conflict
        assert not resolver.skill_dir(Provider.CODEX, "pdf").exists()
        assert _hidden_entries(resolver.skills_path(Provider.CODEX)) == []

    @pytest.mark.asyncio
    async def test_rolls_back_committed_providers(self, tmp_path, resolver):
        skill = _source_skill(tmp_path)
        claude_target = resolver.skill_dir(Provider.CLAUDE, "pdf")
        real_rename = os.rename

        def flaky_rename(src, dst):
            if Path(dst) == claude_target:
                raise PermissionError("read-only")
            return real_rename(src, dst)

        with patch("skillsmanager.installer.os.rename", side_effect=flaky_rename):
            with pytest.raises(InstallError) as exc_info:
                await FileSystemSkillInstaller(resolver).install(
                    skill, {Provider.CODEX, Provider.CLAUDE}
                )
        assert exc_info.value.kind is InstallErrorKind.PERMISSION
        assert not resolver.skill_dir(Provider.CODEX, "pdf").exists()
        assert not claude_target.exists()
        assert _hidden_entries(resolver.skills_path(Provider.CODEX)) == []
        assert _hidden_entries(resolver.skills_path(Provider.CLAUDE)) == []

    @pytest.mark.asyncio
    async def test_downloads_extras_from_github(self, resolver):
        text = "---\nname: PDF\n---\nBody\n"
        github = FakeGitHub(
            {
                "skills/pdf/SKILL.md": text,
                "skills/pdf/scripts/fill.py": "print('x')",
                "skills/pdf/reference.md": "ref",
            }
        )
        skill = parse_skill(text, "pdf", RemoteSource(repo_url=_URL))
        await FileSystemSkillInstaller(resolver, github=github).install(skill, {Provider.CLAUDE})
        target = resolver.skill_dir(Provider.CLAUDE, "pdf")
        assert (target / "scripts" / "fill.py").read_text() == "print('x')"
        assert (target / "reference.md").read_text() == "ref"

    @pytest.mark.asyncio
    async def test_github_extras_keep_binary_bytes(self, resolver):
        text = "---\nname: PDF\n---\nBody\n"
        image = b"\x89PNG\r\n\x1a\n\x00\xff\xfe"
        github = FakeGitHub({"pdf/SKILL.md": text, "pdf/assets/logo.png": image})
        skill = parse_skill(text, "pdf", RemoteSource(repo_url=_URL))
        await FileSystemSkillInstaller(resolver, github=github).install(skill, {Provider.CODEX})
        logo = resolver.skill_dir(Provider.CODEX, "pdf") / "assets" / "logo.png"
        assert logo.read_bytes() == image

    @pytest.mark.asyncio
    async def test_copies_extras_from_clone(self, tmp_path, resolver):
        cache = tmp_path / "cache"
        clone_skill = cache / "acme_skills" / "skills" / "pdf"
        (clone_skill / "scripts").mkdir(parents=True)
        (clone_skill / "scripts" / "a.py").write_text("a")
        skill = parse_skill("---\nname: PDF\n---\n", "pdf", RemoteSource(repo_url=_URL))
        await FileSystemSkillInstaller(resolver, cache_dir=cache).install(skill, {Provider.CODEX})
        assert (resolver.skill_dir(Provider.CODEX, "pdf") / "scripts" / "a.py").is_file()


class TestUninstall:
    @pytest.mark.asyncio
    async def test_removes_only_one_provider(self, tmp_path, resolver):
        installer = FileSystemSkillInstaller(resolver)
        installed = await installer.install(_source_skill(tmp_path), {Provider.CLAUDE, Provider.CODEX})
        result = await installer.uninstall(installed, Provider.CLAUDE)
        assert result.installed_providers == {Provider.CODEX}
        assert not resolver.skill_dir(Provider.CLAUDE, "pdf").exists()
        assert resolver.skill_dir(Provider.CODEX, "pdf").exists()

    @pytest.mark.asyncio
    async def test_inverse_of_install(self, tmp_path, resolver):
        installer = FileSystemSkillInstaller(resolver)
        before = _source_skill(tmp_path)
        after = await installer.uninstall(await installer.install(before, {Provider.CLAUDE}), Provider.CLAUDE)
        assert after.installed_providers == before.installed_providers

    @pytest.mark.asyncio
    async def test_missing_directory_is_not_an_error(self, resolver):
        skill = Skill(
            id="ghost",
            name="Ghost",
            source=LocalSource(provider=Provider.CLAUDE),
            installed_providers=frozenset({Provider.CLAUDE}),
        )
        result = await FileSystemSkillInstaller(resolver).uninstall(skill, Provider.CLAUDE)
        assert result.installed_providers == frozenset()

    @pytest.mark.asyncio
    async def test_nested_local_skill(self, resolver, claude_root):
        nested = claude_root / "tools" / "b"
        nested.mkdir(parents=True)
        (nested / "SKILL.md").write_text("---\nname: b\n---\n")
        skill = Skill(
            id="b",
            name="b",
            path="tools",
            source=LocalSource(provider=Provider.CLAUDE),
            installed_providers=frozenset({Provider.CLAUDE}),
        )
        await FileSystemSkillInstaller(resolver).uninstall(skill, Provider.CLAUDE)
        assert not nested.exists()
        assert (claude_root / "tools").is_dir()

    @pytest.mark.asyncio
    async def test_conflict_when_directory_belongs_to_other_key(self, resolver, claude_root):
        other = claude_root / "pdf"
        other.mkdir()
        (other / SKILL_ID_FILENAME).write_text("other/pdf")
        skill = Skill(id="pdf", name="PDF", source=RemoteSource(repo_url=_URL))
        with pytest.raises(InstallError) as exc_info:
            await FileSystemSkillInstaller(resolver).uninstall(skill, Provider.CLAUDE)
        assert exc_info.value.kind is InstallErrorKind.PATH_CONFLICT
        assert other.exists()
