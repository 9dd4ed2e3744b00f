from __future__ import annotations

import logging
from pathlib import Path

import yaml

from ..domain.models import Record
from ..domain.repositories import DataService

logger = logging.getLogger(__name__)


def load_seed_records(path: str) -> list[Record]:
    p = Path(path)
    if not p.exists():
        raise RuntimeError(f"seed file not found: {path}")

    with p.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict) or "records" not in data:
        raise RuntimeError("Invalid seed file format: expected a 'records' key")

    records = data["records"]
    if not isinstance(records, list):
        raise RuntimeError("records must be a list")

    normalized: list[Record] = []
    for entry in records:
        if not isinstance(entry, dict) or not entry:
            raise RuntimeError(f"Invalid seed record: {entry!r}")
        normalized.append(
            {str(key).strip(): value.strip() if isinstance(value, str) else value for key, value in entry.items()}
        )
    return normalized


async def seed_collection(service: DataService, table: str, path: str) -> int:
    """Inserts every seed record whose id is not stored yet. Returns the number inserted."""
    records = load_seed_records(path)
    inserted = 0
    for record in records:
        record_id = record.get("id")
        if record_id is not None:
            existing = await service.select(table, filters={"id": record_id}, limit=1)
            if existing.is_success and existing.data:
                continue
        result = await service.insert(table, record)
        if not result.is_success:
            raise RuntimeError(f"Failed to seed {table}: {result.error}")
        inserted += 1
    logger.info("Seeded %s of %s records into %s", inserted, len(records), table)
    return inserted
