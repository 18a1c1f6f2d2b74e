"""Starlette app factory with lifespan for the skill library."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from starlette.applications import Starlette

from skillsmanager.catalog.library import SkillLibrary, create_library
from skillsmanager.config import Config, load_config
from skillsmanager.server.routes_catalogs import routes as catalog_routes
from skillsmanager.server.routes_skills import routes as skill_routes
from skillsmanager.server.routes_system import routes as system_routes


def create_app(
    config: Config | None = None,
    library: SkillLibrary | None = None,
) -> Starlette:
    """Create a Starlette app serving ``library`` (built from config when omitted)."""

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncGenerator[None, None]:
        app.state.library = library or create_library(config or load_config())
        await app.state.library.load_all()

        yield

        await app.state.library.aclose()

    return Starlette(
        routes=system_routes + skill_routes + catalog_routes,
        lifespan=lifespan,
    )
