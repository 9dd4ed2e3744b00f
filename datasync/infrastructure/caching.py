from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Mapping, Optional, Sequence

from ..domain.models import Filter, Record, ServiceResult
from ..domain.repositories import DataService

logger = logging.getLogger(__name__)

DEFAULT_TTL = 600.0
DEFAULT_MAX_SIZE = 1000

CacheKey = tuple[Hashable, ...]


@dataclass(frozen=True)
class CacheEntry:
    data: list[Record]
    stored_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.stored_at > self.ttl


def _copy(records: list[Record]) -> list[Record]:
    return [dict(record) for record in records]


class CachingDataService(DataService):
    """
    Read-through cache in front of another DataService.

    Query results and single-record lookups are kept per table for `ttl`
    seconds. A successful write drops every cached query of its table and
    the written record. Each cache holds at most `max_cache_size` entries;
    the oldest are evicted first. Random selections and counts always go to
    the wrapped service, and failed results are never cached.
    """

    def __init__(
        self,
        service: DataService,
        *,
        default_ttl: float = DEFAULT_TTL,
        max_cache_size: int = DEFAULT_MAX_SIZE,
        clock: Callable[[], float] = time.monotonic,
    ):
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        if max_cache_size < 1:
            raise ValueError("max_cache_size must be at least 1")
        self._service = service
        self.default_ttl = default_ttl
        self.max_cache_size = max_cache_size
        self._clock = clock
        self._queries: dict[CacheKey, CacheEntry] = {}
        self._items: dict[CacheKey, CacheEntry] = {}

    def _lookup(self, cache: dict[CacheKey, CacheEntry], key: CacheKey, force_refresh: bool) -> Optional[list[Record]]:
        entry = cache.get(key)
        if entry is None or force_refresh:
            logger.debug("cache miss: %s", key)
            return None
        if entry.is_expired(self._clock()):
            del cache[key]
            logger.debug("cache expired: %s", key)
            return None
        logger.debug("cache hit: %s", key)
        return _copy(entry.data)

    def _store(
        self,
        cache: dict[CacheKey, CacheEntry],
        key: CacheKey,
        data: list[Record],
        ttl: Optional[float],
    ) -> None:
        cache.pop(key, None)
        cache[key] = CacheEntry(_copy(data), self._clock(), ttl if ttl is not None else self.default_ttl)
        self._drop_expired()
        overflow = len(cache) - self.max_cache_size
        if overflow > 0:
            for old_key in sorted(cache, key=lambda k: cache[k].stored_at)[:overflow]:
                del cache[old_key]
            logger.debug("evicted %s cache entries", overflow)

    def _drop_expired(self) -> None:
        now = self._clock()
        for cache in (self._queries, self._items):
            for key in [key for key, entry in cache.items() if entry.is_expired(now)]:
                del cache[key]

    def _forget_queries(self, table: str) -> None:
        for key in [key for key in self._queries if key[0] == table]:
            del self._queries[key]

    def _forget_item(self, table: str, record_id: str) -> None:
        self._items.pop((table, str(record_id)), None)

    async def select(
        self,
        table: str,
        *,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        ascending: bool = True,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        cache_ttl: Optional[float] = None,
        force_refresh: bool = False,
    ) -> ServiceResult:
        key = (table, "select", repr(sorted((filters or {}).items())), order_by, ascending, limit, offset)
        cached = self._lookup(self._queries, key, force_refresh)
        if cached is not None:
            return ServiceResult.ok(cached)
        result = await self._service.select(
            table,
            filters=filters,
            order_by=order_by,
            ascending=ascending,
            limit=limit,
            offset=offset,
        )
        if result.is_success and result.data is not None:
            self._store(self._queries, key, result.data, cache_ttl)
        return result

    async def select_with_filters(
        self,
        table: str,
        filters: Sequence[Filter],
        *,
        order_by: Optional[str] = None,
        ascending: bool = True,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        cache_ttl: Optional[float] = None,
        force_refresh: bool = False,
    ) -> ServiceResult:
        key = (table, "filters", repr(tuple(filters)), order_by, ascending, limit, offset)
        cached = self._lookup(self._queries, key, force_refresh)
        if cached is not None:
            return ServiceResult.ok(cached)
        result = await self._service.select_with_filters(
            table,
            filters,
            order_by=order_by,
            ascending=ascending,
            limit=limit,
            offset=offset,
        )
        if result.is_success and result.data is not None:
            self._store(self._queries, key, result.data, cache_ttl)
        return result

    async def select_by_id(
        self,
        table: str,
        record_id: str,
        *,
        cache_ttl: Optional[float] = None,
        force_refresh: bool = False,
    ) -> ServiceResult:
        key = (table, str(record_id))
        cached = self._lookup(self._items, key, force_refresh)
        if cached is not None:
            return ServiceResult.ok(cached)
        result = await self._service.select_by_id(table, record_id)
        if result.is_success and result.data:
            self._store(self._items, key, result.data, cache_ttl)
        return result

    async def exists(self, table: str, record_id: str) -> bool:
        result = await self.select_by_id(table, record_id)
        return result.is_success and bool(result.data)

    async def count(self, table: str, *, filters: Optional[Mapping[str, Any]] = None) -> ServiceResult:
        return await self._service.count(table, filters=filters)

    async def select_random(
        self,
        table: str,
        *,
        filters: Optional[Mapping[str, Any]] = None,
        exclude_ids: Optional[Sequence[str]] = None,
        limit: int = 1,
    ) -> ServiceResult:
        return await self._service.select_random(table, filters=filters, exclude_ids=exclude_ids, limit=limit)

    async def insert(self, table: str, record: Record) -> ServiceResult:
        result = await self._service.insert(table, record)
        if result.is_success:
            self._forget_queries(table)
            logger.debug("invalidated %s after insert", table)
        return result

    async def update(self, table: str, record_id: str, record: Record) -> ServiceResult:
        result = await self._service.update(table, record_id, record)
        if result.is_success:
            self._forget_queries(table)
            self._forget_item(table, record_id)
            logger.debug("invalidated %s and %s after update", table, record_id)
        return result

    async def delete(self, table: str, record_id: str) -> ServiceResult:
        result = await self._service.delete(table, record_id)
        if result.is_success:
            self._forget_queries(table)
            self._forget_item(table, record_id)
            logger.debug("invalidated %s and %s after delete", table, record_id)
        return result

    def invalidate_table_cache(self, table: str) -> None:
        self._forget_queries(table)
        for key in [key for key in self._items if key[0] == table]:
            del self._items[key]

    def clear_cache(self) -> None:
        self._queries.clear()
        self._items.clear()

    def get_cache_stats(self) -> dict[str, Any]:
        self._drop_expired()
        return {
            "list_cache_size": len(self._queries),
            "item_cache_size": len(self._items),
            "total_cache_size": len(self._queries) + len(self._items),
            "max_cache_size": self.max_cache_size,
            "default_ttl": self.default_ttl,
        }

    def dispose(self) -> None:
        self.clear_cache()
