"""Catalogs, the persisted catalog registry, and the reconciling library."""

from skillsmanager.catalog.catalog import SkillsCatalog
from skillsmanager.catalog.library import SkillLibrary, create_library
from skillsmanager.catalog.registry import (
    LOCAL_CATALOG_ID,
    OFFICIAL_CATALOG_ID,
    OFFICIAL_CATALOG_URL,
    CatalogRecord,
    CatalogRegistry,
)

__all__ = [
    "SkillsCatalog",
    "SkillLibrary",
    "create_library",
    "CatalogRecord",
    "CatalogRegistry",
    "LOCAL_CATALOG_ID",
    "OFFICIAL_CATALOG_ID",
    "OFFICIAL_CATALOG_URL",
]
