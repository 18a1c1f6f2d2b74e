"""Persisted list of remote catalogs (JSON file, written atomically)."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from skillsmanager.fileio import atomic_write

logger = logging.getLogger(__name__)

LOCAL_CATALOG_ID = uuid.UUID("00000000-0000-0000-0000-000000000000")
OFFICIAL_CATALOG_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
OFFICIAL_CATALOG_URL = "https://github.com/anthropics/skills"
OFFICIAL_CATALOG_NAME = "Anthropic Skills"


class CatalogRecord(BaseModel):
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    url: str | None = None
    name: str
    added_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


def default_records() -> list[CatalogRecord]:
    return [
        CatalogRecord(
            id=OFFICIAL_CATALOG_ID,
            url=OFFICIAL_CATALOG_URL,
            name=OFFICIAL_CATALOG_NAME,
        )
    ]


class CatalogRegistry:
    """Reads and writes ``{"catalogs": [...]}``. Missing or corrupt files yield defaults."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> list[CatalogRecord]:
        try:
            data = json.loads(self.path.read_text())
        except FileNotFoundError:
            return default_records()
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Failed to read catalog registry {self.path}: {e}")
            return default_records()

        raw = data.get("catalogs") if isinstance(data, dict) else None
        if not isinstance(raw, list):
            logger.warning(f"Catalog registry {self.path} has no catalog list, using defaults")
            return default_records()

        records: list[CatalogRecord] = []
        for item in raw:
            try:
                record = CatalogRecord.model_validate(item)
            except ValidationError as e:
                logger.warning(f"Skipping invalid catalog record in {self.path}: {e}")
                continue
            if record.url is not None:
                records.append(record)
        return records

    def save(self, records: list[CatalogRecord]) -> None:
        payload = {
            "catalogs": [r.model_dump(mode="json") for r in records if r.url is not None],
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        atomic_write(self.path, json.dumps(payload, indent=2))
