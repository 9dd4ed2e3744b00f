from __future__ import annotations

import json
import logging
import re
from typing import Any, Mapping, Optional, Sequence

import aiosqlite

from ...domain.models import Filter, FilterOperator, Record, ServiceResult
from ...domain.repositories import DataService
from ..mappers import prepare_record, record_from_row, serialize_record
from .database import SQLiteDatabase

logger = logging.getLogger(__name__)

_FIELD_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")

_COMPARISONS = {
    FilterOperator.EQUALS: "=",
    FilterOperator.NOT_EQUALS: "!=",
    FilterOperator.GREATER_THAN: ">",
    FilterOperator.GREATER_THAN_OR_EQUAL: ">=",
    FilterOperator.LESS_THAN: "<",
    FilterOperator.LESS_THAN_OR_EQUAL: "<=",
}

_STORAGE_ERRORS = (aiosqlite.Error, ValueError, TypeError)


def _field_expr(field: str) -> tuple[str, list[Any]]:
    if field == "id":
        return "id", []
    if not _FIELD_RE.match(field):
        raise ValueError(f"Invalid field name: {field!r}")
    return "json_extract(data, ?)", [f"$.{field}"]


def _bind(value: Any) -> Any:
    # must match the compact, key-sorted text json_extract yields for stored records
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, ensure_ascii=False, sort_keys=True, separators=(",", ":"))
    return value


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def compile_filter(flt: Filter) -> tuple[str, list[Any]]:
    expr, params = _field_expr(flt.field)
    op = flt.operator
    if op in (FilterOperator.EQUALS, FilterOperator.NOT_EQUALS) and flt.value is None:
        return f"{expr} IS {'NOT ' if op is FilterOperator.NOT_EQUALS else ''}NULL", params
    if op in _COMPARISONS:
        value = str(flt.value) if flt.field == "id" else _bind(flt.value)
        return f"{expr} {_COMPARISONS[op]} ?", [*params, value]
    if op is FilterOperator.CONTAINS:
        return f"{expr} LIKE ? ESCAPE '\\'", [*params, f"%{_escape_like(str(flt.value))}%"]
    if op in (FilterOperator.IN_LIST, FilterOperator.NOT_IN_LIST):
        values = list(flt.value or ())
        if not values:
            return ("0" if op is FilterOperator.IN_LIST else "1"), []
        if flt.field == "id":
            values = [str(value) for value in values]
        placeholders = ",".join("?" for _ in values)
        negate = "NOT " if op is FilterOperator.NOT_IN_LIST else ""
        return f"{expr} {negate}IN ({placeholders})", [*params, *(_bind(v) for v in values)]
    raise ValueError(f"Unsupported filter operator: {op}")


def build_where(
    table: str,
    filters: Sequence[Filter] = (),
    exclude_ids: Optional[Sequence[str]] = None,
) -> tuple[str, list[Any]]:
    clauses = ["collection = ?"]
    params: list[Any] = [table]
    for flt in filters:
        clause, clause_params = compile_filter(flt)
        clauses.append(clause)
        params.extend(clause_params)
    if exclude_ids:
        clause, clause_params = compile_filter(Filter.not_in_list("id", exclude_ids))
        clauses.append(clause)
        params.extend(clause_params)
    return " AND ".join(clauses), params


def equality_filters(filters: Optional[Mapping[str, Any]]) -> list[Filter]:
    return [Filter.equals(field, value) for field, value in (filters or {}).items()]


class SQLiteDataService(DataService):
    """
    Document store over a single `records` table.

    Each table name is a collection; records are JSON objects addressed by
    their `id`, which is generated when missing.
    """

    def __init__(self, db: SQLiteDatabase):
        self._db = db

    async def select(
        self,
        table: str,
        *,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        ascending: bool = True,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> ServiceResult:
        return await self.select_with_filters(
            table,
            equality_filters(filters),
            order_by=order_by,
            ascending=ascending,
            limit=limit,
            offset=offset,
        )

    async def select_with_filters(
        self,
        table: str,
        filters: Sequence[Filter],
        *,
        order_by: Optional[str] = None,
        ascending: bool = True,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> ServiceResult:
        try:
            where, params = build_where(table, filters)
            query = f"SELECT id, data FROM records WHERE {where}"
            if order_by:
                expr, order_params = _field_expr(order_by)
                query += f" ORDER BY {expr} {'ASC' if ascending else 'DESC'}, rowid ASC"
                params.extend(order_params)
            else:
                query += " ORDER BY rowid ASC"
            if limit is not None or offset is not None:
                query += " LIMIT ? OFFSET ?"
                params.extend([limit if limit is not None else -1, offset or 0])
            async with self._db.connect() as conn:
                cur = await conn.execute(query, params)
                rows = await cur.fetchall()
            return ServiceResult.ok([record_from_row(dict(row)) for row in rows])
        except _STORAGE_ERRORS as exc:
            logger.warning("select from %s failed: %s", table, exc)
            return ServiceResult.fail(f"Failed to fetch records: {exc}")

    async def insert(self, table: str, record: Record) -> ServiceResult:
        try:
            record_id, prepared = prepare_record(record)
            async with self._db.connect() as conn:
                await conn.execute(
                    "INSERT INTO records(collection, id, data) VALUES(?, ?, ?)",
                    (table, record_id, serialize_record(prepared)),
                )
                await conn.commit()
            return ServiceResult.ok([prepared])
        except _STORAGE_ERRORS as exc:
            logger.warning("insert into %s failed: %s", table, exc)
            return ServiceResult.fail(f"Failed to insert record: {exc}")

    async def update(self, table: str, record_id: str, record: Record) -> ServiceResult:
        try:
            async with self._db.connect() as conn:
                cur = await conn.execute(
                    "SELECT id, data FROM records WHERE collection = ? AND id = ?",
                    (table, str(record_id)),
                )
                row = await cur.fetchone()
                if not row:
                    return ServiceResult.fail(f"Record {record_id} not found in {table}")
                existing = record_from_row(dict(row))
                merged = {**existing, **record, "id": existing["id"]}
                await conn.execute(
                    """
                    UPDATE records
                    SET data = ?, updated_at = datetime('now')
                    WHERE collection = ? AND id = ?
                    """,
                    (serialize_record(merged), table, str(record_id)),
                )
                await conn.commit()
            return ServiceResult.ok([merged])
        except _STORAGE_ERRORS as exc:
            logger.warning("update of %s/%s failed: %s", table, record_id, exc)
            return ServiceResult.fail(f"Failed to update record: {exc}")

    async def delete(self, table: str, record_id: str) -> ServiceResult:
        try:
            async with self._db.connect() as conn:
                await conn.execute(
                    "DELETE FROM records WHERE collection = ? AND id = ?",
                    (table, str(record_id)),
                )
                await conn.commit()
            return ServiceResult.ok()
        except _STORAGE_ERRORS as exc:
            logger.warning("delete of %s/%s failed: %s", table, record_id, exc)
            return ServiceResult.fail(f"Failed to delete record: {exc}")

    async def select_random(
        self,
        table: str,
        *,
        filters: Optional[Mapping[str, Any]] = None,
        exclude_ids: Optional[Sequence[str]] = None,
        limit: int = 1,
    ) -> ServiceResult:
        try:
            where, params = build_where(table, equality_filters(filters), exclude_ids)
            async with self._db.connect() as conn:
                cur = await conn.execute(
                    f"SELECT id, data FROM records WHERE {where} ORDER BY RANDOM() LIMIT ?",
                    [*params, limit],
                )
                rows = await cur.fetchall()
            return ServiceResult.ok([record_from_row(dict(row)) for row in rows])
        except _STORAGE_ERRORS as exc:
            logger.warning("random select from %s failed: %s", table, exc)
            return ServiceResult.fail(f"Failed to fetch random records: {exc}")

    async def select_by_id(self, table: str, record_id: str) -> ServiceResult:
        try:
            async with self._db.connect() as conn:
                cur = await conn.execute(
                    "SELECT id, data FROM records WHERE collection = ? AND id = ?",
                    (table, str(record_id)),
                )
                row = await cur.fetchone()
            return ServiceResult.ok([record_from_row(dict(row))] if row else [])
        except _STORAGE_ERRORS as exc:
            logger.warning("lookup of %s/%s failed: %s", table, record_id, exc)
            return ServiceResult.fail(f"Failed to fetch record: {exc}")

    async def exists(self, table: str, record_id: str) -> bool:
        result = await self.select_by_id(table, record_id)
        return result.is_success and bool(result.data)

    async def count(self, table: str, *, filters: Optional[Mapping[str, Any]] = None) -> ServiceResult:
        try:
            where, params = build_where(table, equality_filters(filters))
            async with self._db.connect() as conn:
                cur = await conn.execute(f"SELECT COUNT(*) AS total FROM records WHERE {where}", params)
                row = await cur.fetchone()
            return ServiceResult.counted(int(row["total"]) if row else 0)
        except _STORAGE_ERRORS as exc:
            logger.warning("count of %s failed: %s", table, exc)
            return ServiceResult.fail(f"Failed to count records: {exc}")
