"""Shared fixtures for skillsmanager tests."""

from pathlib import Path

import pytest

from skillsmanager.catalog.registry import CatalogRecord, CatalogRegistry
from skillsmanager.config import Config
from skillsmanager.paths import ProviderPathResolver
from skillsmanager.skills.models import Provider
from skillsmanager.sources.local import directory_url


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep every test away from the real home directory and env overrides."""
    for var in (
        "SKILLSMANAGER_REMOTE_BACKEND",
        "SKILLSMANAGER_PORT",
        "SKILLSMANAGER_HTTP_TIMEOUT",
        "SKILLSMANAGER_LOG_LEVEL",
        "GITHUB_TOKEN",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("SKILLSMANAGER_HOME", str(tmp_path / "home"))
    monkeypatch.setenv("SKILLSMANAGER_DATA_DIR", str(tmp_path / "data"))


@pytest.fixture
def home(tmp_path: Path) -> Path:
    path = tmp_path / "home"
    path.mkdir(exist_ok=True)
    return path


@pytest.fixture
def resolver(home: Path) -> ProviderPathResolver:
    return ProviderPathResolver(home)


@pytest.fixture
def claude_root(resolver: ProviderPathResolver) -> Path:
    root = resolver.skills_path(Provider.CLAUDE)
    root.mkdir(parents=True, exist_ok=True)
    return root


@pytest.fixture
def codex_root(resolver: ProviderPathResolver) -> Path:
    root = resolver.skills_path(Provider.CODEX)
    root.mkdir(parents=True, exist_ok=True)
    return root


@pytest.fixture
def library_dir(tmp_path: Path) -> Path:
    """A plain folder of skills: ``pdf`` at the top, ``docx`` nested under ``tools``."""
    root = tmp_path / "library"
    (root / "pdf").mkdir(parents=True)
    (root / "pdf" / "SKILL.md").write_text(
        "---\nname: PDF\ndescription: Alpha tools for PDF files\n---\nFill forms.\n"
    )
    (root / "pdf" / "reference.md").write_text("ref")
    (root / "tools" / "docx").mkdir(parents=True)
    (root / "tools" / "docx" / "SKILL.md").write_text("---\nname: DOCX\ndescription: Word files\n---\n")
    return root


@pytest.fixture
def app_config(tmp_path: Path, library_dir: Path) -> Config:
    """Config whose only remote catalog is ``library_dir``."""
    config = Config(home=tmp_path / "home", data_dir=tmp_path / "data")
    CatalogRegistry(config.registry_path).save(
        [CatalogRecord(url=directory_url(library_dir), name="Library")]
    )
    return config
