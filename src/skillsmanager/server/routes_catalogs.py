"""Catalog routes: list, add, remove, refresh."""

from __future__ import annotations

import uuid

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from skillsmanager.catalog.catalog import SkillsCatalog
from skillsmanager.catalog.library import SkillLibrary
from skillsmanager.server.routes_skills import read_body


def catalog_to_json(catalog: SkillsCatalog) -> dict[str, object]:
    return {
        "id": str(catalog.id),
        "url": catalog.url,
        "name": catalog.name,
        "added_at": catalog.added_at.isoformat(),
        "is_local": catalog.is_local,
        "is_official": catalog.is_official,
        "skill_count": catalog.skill_count,
        "is_loading": catalog.is_loading,
        "error_message": catalog.error_message,
    }


async def list_catalogs(request: Request) -> JSONResponse:
    library: SkillLibrary = request.app.state.library
    catalogs = library.catalogs
    return JSONResponse(
        {
            "catalogs": [catalog_to_json(c) for c in catalogs],
            "count": len(catalogs),
        }
    )


async def add_catalog(request: Request) -> JSONResponse:
    """POST /api/catalogs, body: {"url", "name"?}."""
    library: SkillLibrary = request.app.state.library
    body = await read_body(request)
    url = body.get("url")
    if not isinstance(url, str) or not url.strip():
        return JSONResponse({"error": "url is required"}, status_code=400)
    name = body.get("name")

    catalog = await library.add_catalog(url, name if isinstance(name, str) else None)
    if catalog is None:
        return JSONResponse({"error": library.error_message}, status_code=400)
    return JSONResponse(catalog_to_json(catalog), status_code=201)


async def remove_catalog(request: Request) -> JSONResponse:
    library: SkillLibrary = request.app.state.library
    try:
        catalog_id = uuid.UUID(request.path_params["catalog_id"])
    except ValueError:
        return JSONResponse({"error": "Invalid catalog id"}, status_code=400)
    if not library.remove_catalog(catalog_id):
        return JSONResponse({"error": "Catalog not found"}, status_code=404)
    return JSONResponse({"removed": str(catalog_id)})


async def refresh_catalogs(request: Request) -> JSONResponse:
    library: SkillLibrary = request.app.state.library
    await library.load_all()
    return JSONResponse({"catalogs": [catalog_to_json(c) for c in library.catalogs]})


routes = [
    Route("/api/catalogs", list_catalogs, methods=["GET"]),
    Route("/api/catalogs", add_catalog, methods=["POST"]),
    Route("/api/catalogs/refresh", refresh_catalogs, methods=["POST"]),
    Route("/api/catalogs/{catalog_id}", remove_catalog, methods=["DELETE"]),
]
