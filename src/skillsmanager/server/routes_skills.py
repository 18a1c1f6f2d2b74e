"""Skill routes: list, show, install, uninstall, save."""

from __future__ import annotations

import json
import uuid

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from skillsmanager.catalog.library import SkillLibrary
from skillsmanager.catalog.registry import LOCAL_CATALOG_ID
from skillsmanager.skills.models import Provider, Skill


def skill_to_json(skill: Skill) -> dict[str, object]:
    data = skill.model_dump(mode="json")
    data["installed_providers"] = [p.value for p in Provider if p in skill.installed_providers]
    data["unique_key"] = skill.unique_key
    data["display_name"] = skill.display_name
    data["is_editable"] = skill.is_editable
    return data


def parse_source(value: str | None) -> uuid.UUID | None:
    """``local`` or empty is the local catalog, ``all`` is every catalog, else a catalog id."""
    if not value or value == "local":
        return LOCAL_CATALOG_ID
    if value == "all":
        return None
    return uuid.UUID(value)


def parse_providers(values: object) -> set[Provider]:
    if isinstance(values, str):
        values = [values]
    if not isinstance(values, list) or not values:
        raise ValueError("providers must be a non-empty list")
    return {Provider(v) for v in values}


async def read_body(request: Request) -> dict[str, object]:
    try:
        body = await request.json()
    except json.JSONDecodeError:
        return {}
    return body if isinstance(body, dict) else {}


def _find(library: SkillLibrary, body: dict[str, object]) -> Skill | None:
    key = body.get("key")
    if not isinstance(key, str) or not key:
        return None
    catalog = body.get("catalog")
    catalog_id = uuid.UUID(catalog) if isinstance(catalog, str) and catalog else None
    return library.find(key, catalog_id)


async def list_skills(request: Request) -> JSONResponse:
    """GET /api/skills?source=local|all|<catalog id>&q=<search>."""
    library: SkillLibrary = request.app.state.library
    try:
        source = parse_source(request.query_params.get("source"))
    except ValueError:
        return JSONResponse({"error": "Invalid source"}, status_code=400)
    query = request.query_params.get("q", "")
    skills = library.filter_skills(source, query)
    return JSONResponse(
        {
            "skills": [skill_to_json(s) for s in skills],
            "count": len(skills),
        }
    )


async def get_skill(request: Request) -> JSONResponse:
    """GET /api/skills/{key}: first catalog holding the unique key, local first."""
    library: SkillLibrary = request.app.state.library
    key = request.path_params["key"]
    try:
        catalog = request.query_params.get("catalog")
        skill = library.find(key, uuid.UUID(catalog) if catalog else None)
    except ValueError:
        return JSONResponse({"error": "Invalid catalog id"}, status_code=400)
    if skill is None:
        return JSONResponse({"error": f"Skill '{key}' not found"}, status_code=404)
    return JSONResponse(skill_to_json(skill))


async def install_skill(request: Request) -> JSONResponse:
    """POST /api/skills/install, body: {"key", "providers", "catalog"?}."""
    library: SkillLibrary = request.app.state.library
    body = await read_body(request)
    try:
        skill = _find(library, body)
        providers = parse_providers(body.get("providers"))
    except ValueError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    if skill is None:
        return JSONResponse({"error": "Skill not found"}, status_code=404)

    result = await library.install(providers, skill=skill)
    if result is None:
        return JSONResponse({"error": library.error_message}, status_code=500)
    return JSONResponse(skill_to_json(result))


async def uninstall_skill(request: Request) -> JSONResponse:
    """POST /api/skills/uninstall, body: {"key", "provider", "catalog"?}."""
    library: SkillLibrary = request.app.state.library
    body = await read_body(request)
    try:
        skill = _find(library, body)
        provider = Provider(body.get("provider"))
    except ValueError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    if skill is None:
        return JSONResponse({"error": "Skill not found"}, status_code=404)

    result = await library.uninstall(provider, skill=skill)
    if result is None:
        return JSONResponse({"error": library.error_message}, status_code=500)
    return JSONResponse(skill_to_json(result))


async def save_skill(request: Request) -> JSONResponse:
    """POST /api/skills/save, body: {"key", "content"?, "name"?, "description"?, "version"?}."""
    library: SkillLibrary = request.app.state.library
    body = await read_body(request)
    key = body.get("key")
    skill = library.find(key, LOCAL_CATALOG_ID) if isinstance(key, str) else None
    if skill is None:
        return JSONResponse({"error": "Local skill not found"}, status_code=404)

    library.select(skill)
    editor = library.start_editing()
    if editor is None:
        return JSONResponse({"error": "Skill is not editable"}, status_code=400)
    for field in ("name", "description", "version"):
        value = body.get(field)
        if isinstance(value, str):
            setattr(editor, field, value)
    if isinstance(body.get("content"), str):
        editor.draft = body["content"]  # type: ignore[assignment]

    saved = await library.save_editing()
    if saved is None:
        library.cancel_editing()
        return JSONResponse({"error": library.error_message}, status_code=500)
    return JSONResponse(skill_to_json(saved))


routes = [
    Route("/api/skills", list_skills),
    Route("/api/skills/install", install_skill, methods=["POST"]),
    Route("/api/skills/uninstall", uninstall_skill, methods=["POST"]),
    Route("/api/skills/save", save_skill, methods=["POST"]),
    Route("/api/skills/{key:path}", get_skill),
]
