"""Tests for catalog HTTP API routes."""

from __future__ import annotations

import uuid
from pathlib import Path

import pytest
from starlette.testclient import TestClient

from skillsmanager.catalog.registry import LOCAL_CATALOG_ID, CatalogRegistry
from skillsmanager.config import Config
from skillsmanager.server.app import create_app


@pytest.fixture
def client(app_config: Config):
    with TestClient(create_app(app_config)) as c:
        yield c


@pytest.fixture
def second_dir(tmp_path: Path) -> Path:
    root = tmp_path / "second"
    (root / "xlsx").mkdir(parents=True)
    (root / "xlsx" / "SKILL.md").write_text("---\nname: XLSX\n---\n")
    return root


class TestListCatalogs:
    def test_local_first(self, client: TestClient):
        data = client.get("/api/catalogs").json()
        assert data["count"] == 2
        local, remote = data["catalogs"]
        assert local["id"] == str(LOCAL_CATALOG_ID)
        assert local["is_local"] is True
        assert local["url"] is None
        assert remote["name"] == "Library"
        assert remote["skill_count"] == 2
        assert remote["error_message"] is None


class TestAddCatalog:
    def test_add_directory(self, client: TestClient, second_dir: Path, app_config: Config):
        resp = client.post("/api/catalogs", json={"url": str(second_dir)})
        assert resp.status_code == 201
        data = resp.json()
        assert data["url"] == f"file://{second_dir}"
        assert data["name"] == "second"
        assert data["skill_count"] == 1

        urls = [r.url for r in CatalogRegistry(app_config.registry_path).load()]
        assert f"file://{second_dir}" in urls

    def test_duplicate(self, client: TestClient, library_dir: Path):
        resp = client.post("/api/catalogs", json={"url": f"file://{library_dir}"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Repository already added"

    def test_invalid_url(self, client: TestClient):
        resp = client.post("/api/catalogs", json={"url": "https://example.com/x"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid repository URL"

    def test_missing_url(self, client: TestClient):
        resp = client.post("/api/catalogs", json={})
        assert resp.status_code == 400

    def test_missing_directory_reports_load_error(self, client: TestClient, tmp_path: Path):
        resp = client.post("/api/catalogs", json={"url": str(tmp_path / "nowhere")})
        assert resp.status_code == 201
        assert resp.json()["error_message"]


class TestRemoveCatalog:
    def test_remove(self, client: TestClient, app_config: Config):
        remote_id = client.get("/api/catalogs").json()["catalogs"][1]["id"]
        resp = client.delete(f"/api/catalogs/{remote_id}")
        assert resp.status_code == 200
        assert client.get("/api/catalogs").json()["count"] == 1
        assert CatalogRegistry(app_config.registry_path).load() == []

    def test_local_catalog_cannot_be_removed(self, client: TestClient):
        resp = client.delete(f"/api/catalogs/{LOCAL_CATALOG_ID}")
        assert resp.status_code == 404

    def test_unknown(self, client: TestClient):
        resp = client.delete(f"/api/catalogs/{uuid.uuid4()}")
        assert resp.status_code == 404

    def test_bad_id(self, client: TestClient):
        resp = client.delete("/api/catalogs/not-a-uuid")
        assert resp.status_code == 400


class TestRefresh:
    def test_picks_up_new_skills(self, client: TestClient, library_dir: Path):
        (library_dir / "pptx").mkdir()
        (library_dir / "pptx" / "SKILL.md").write_text("---\nname: PPTX\n---\n")
        resp = client.post("/api/catalogs/refresh")
        assert resp.status_code == 200
        remote = resp.json()["catalogs"][1]
        assert remote["skill_count"] == 3
