from __future__ import annotations

import json
import uuid
from typing import Any, Mapping

from ..domain.models import Record


def record_from_row(row: Mapping[str, Any]) -> Record:
    data = json.loads(row["data"] or "{}")
    if not isinstance(data, dict):
        raise ValueError(f"Stored record {row['id']} is not an object")
    data.setdefault("id", row["id"])
    return data


def prepare_record(record: Mapping[str, Any]) -> tuple[str, Record]:
    """Returns the storage id and a copy of the record carrying it."""
    prepared = dict(record)
    record_id = prepared.get("id")
    if record_id is None or record_id == "":
        record_id = str(uuid.uuid4())
        prepared["id"] = record_id
    return str(record_id), prepared


def serialize_record(record: Mapping[str, Any]) -> str:
    return json.dumps(record, ensure_ascii=False, sort_keys=True)
