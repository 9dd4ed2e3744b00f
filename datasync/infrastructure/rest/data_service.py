from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence

from ...domain.models import Filter, FilterOperator, Record, ServiceResult
from ...domain.repositories import DataService, Randomizer
from ...network import NetworkClient, NetworkException, Response
from ..random import SystemRandomizer

logger = logging.getLogger(__name__)

RETURN_REPRESENTATION = {"Prefer": "return=representation"}
RESERVED_PARAMS = frozenset({"select", "order", "limit", "offset"})
COUNT_EXACT = {"Prefer": "count=exact"}


def format_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _format_list(values: Sequence[Any]) -> str:
    parts = []
    for value in values:
        text = format_value(value)
        if any(ch in text for ch in ',()"'):
            text = '"' + text.replace('"', '\\"') + '"'
        parts.append(text)
    return f"({','.join(parts)})"


def filter_param(flt: Filter) -> str:
    op = flt.operator
    if op is FilterOperator.EQUALS and flt.value is None:
        return "is.null"
    if op is FilterOperator.NOT_EQUALS and flt.value is None:
        return "not.is.null"
    if op is FilterOperator.CONTAINS:
        return f"ilike.*{flt.value}*"
    if op in (FilterOperator.IN_LIST, FilterOperator.NOT_IN_LIST):
        return f"{op.value}.{_format_list(list(flt.value or ()))}"
    return f"{op.value}.{format_value(flt.value)}"


def build_query(
    filters: Sequence[Filter] = (),
    *,
    order_by: Optional[str] = None,
    ascending: bool = True,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> dict[str, Any]:
    """PostgREST-style query: one `field=op.value` pair per filter."""
    query: dict[str, Any] = {"select": "*"}
    for flt in filters:
        if flt.field in RESERVED_PARAMS:
            raise ValueError(f"Cannot filter on reserved query parameter: {flt.field!r}")
        query.setdefault(flt.field, [])
        query[flt.field].append(filter_param(flt))
    if order_by:
        query["order"] = f"{order_by}.{'asc' if ascending else 'desc'}"
    if limit is not None:
        query["limit"] = limit
    if offset is not None:
        query["offset"] = offset
    return query


def _records(response: Response) -> list[Record]:
    data = response.data
    if data is None:
        return []
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list) and all(isinstance(item, dict) for item in data):
        return list(data)
    raise ValueError(f"Unexpected response payload: {type(data).__name__}")


def content_range_total(response: Response) -> Optional[int]:
    """Total from a `Content-Range: 0-24/3573` header, None when absent or unknown."""
    for name, value in response.headers.items():
        if name.lower() == "content-range":
            _, _, total = value.rpartition("/")
            return int(total) if total.isdigit() else None
    return None


def _failure(prefix: str, exc: NetworkException) -> ServiceResult:
    detail = exc.message
    if exc.response is not None and isinstance(exc.response.raw_data, dict):
        detail = str(exc.response.raw_data.get("message") or detail)
    return ServiceResult.fail(f"{prefix}: {detail}")


class RestDataService(DataService):
    """DataService backed by a PostgREST-compatible HTTP endpoint."""

    def __init__(
        self,
        client: NetworkClient,
        *,
        prefix: str = "",
        id_column: str = "id",
        randomizer: Randomizer | None = None,
    ):
        self._client = client
        self._prefix = prefix.rstrip("/")
        self._id_column = id_column
        self._randomizer = randomizer or SystemRandomizer()

    def _path(self, table: str) -> str:
        return f"{self._prefix}/{table}"

    def _id_query(self, record_id: str) -> dict[str, str]:
        return {self._id_column: f"eq.{record_id}"}

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
            [Filter.equals(field, value) for field, value in (filters or {}).items()],
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
            query = build_query(filters, order_by=order_by, ascending=ascending, limit=limit, offset=offset)
            response = await self._client.get(self._path(table), query_params=query)
            return ServiceResult.ok(_records(response))
        except NetworkException as exc:
            logger.warning("select from %s failed: %s", table, exc)
            return _failure("Failed to fetch records", exc)
        except ValueError as exc:
            return ServiceResult.fail(f"Failed to fetch records: {exc}")

    async def insert(self, table: str, record: Record) -> ServiceResult:
        try:
            response = await self._client.post(self._path(table), headers=RETURN_REPRESENTATION, body=record)
            return ServiceResult.ok(_records(response))
        except NetworkException as exc:
            logger.warning("insert into %s failed: %s", table, exc)
            return _failure("Failed to insert record", exc)
        except ValueError as exc:
            return ServiceResult.fail(f"Failed to insert record: {exc}")

    async def update(self, table: str, record_id: str, record: Record) -> ServiceResult:
        try:
            response = await self._client.patch(
                self._path(table),
                headers=RETURN_REPRESENTATION,
                query_params=self._id_query(record_id),
                body=record,
            )
            return ServiceResult.ok(_records(response))
        except NetworkException as exc:
            logger.warning("update of %s/%s failed: %s", table, record_id, exc)
            return _failure("Failed to update record", exc)
        except ValueError as exc:
            return ServiceResult.fail(f"Failed to update record: {exc}")

    async def delete(self, table: str, record_id: str) -> ServiceResult:
        try:
            await self._client.delete(self._path(table), query_params=self._id_query(record_id))
            return ServiceResult.ok()
        except NetworkException as exc:
            logger.warning("delete of %s/%s failed: %s", table, record_id, exc)
            return _failure("Failed to delete record", exc)

    async def select_random(
        self,
        table: str,
        *,
        filters: Optional[Mapping[str, Any]] = None,
        exclude_ids: Optional[Sequence[str]] = None,
        limit: int = 1,
    ) -> ServiceResult:
        conditions = [Filter.equals(field, value) for field, value in (filters or {}).items()]
        if exclude_ids:
            conditions.append(Filter.not_in_list(self._id_column, exclude_ids))
        result = await self.select_with_filters(table, conditions)
        if not result.is_success:
            return ServiceResult.fail(result.error or "Failed to fetch random records")
        candidates = result.data or []
        return ServiceResult.ok(self._randomizer.sample(candidates, limit))

    async def select_by_id(self, table: str, record_id: str) -> ServiceResult:
        query = {"select": "*", **self._id_query(record_id), "limit": 1}
        try:
            response = await self._client.get(self._path(table), query_params=query)
            return ServiceResult.ok(_records(response)[:1])
        except NetworkException as exc:
            logger.warning("lookup of %s/%s failed: %s", table, record_id, exc)
            return _failure("Failed to fetch record", exc)
        except ValueError as exc:
            return ServiceResult.fail(f"Failed to fetch record: {exc}")

    async def exists(self, table: str, record_id: str) -> bool:
        result = await self.select_by_id(table, record_id)
        return result.is_success and bool(result.data)

    async def count(self, table: str, *, filters: Optional[Mapping[str, Any]] = None) -> ServiceResult:
        try:
            query = build_query([Filter.equals(field, value) for field, value in (filters or {}).items()])
            query["select"] = self._id_column
            response = await self._client.get(self._path(table), headers=COUNT_EXACT, query_params=query)
            total = content_range_total(response)
            return ServiceResult.counted(total if total is not None else len(_records(response)))
        except NetworkException as exc:
            logger.warning("count of %s failed: %s", table, exc)
            return _failure("Failed to count records", exc)
        except ValueError as exc:
            return ServiceResult.fail(f"Failed to count records: {exc}")
