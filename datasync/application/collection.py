from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Generic, Mapping, Optional, Sequence, TypeVar

from ..domain.models import CollectionState, Filter, Record, ServiceResult
from ..domain.repositories import DataService
from .observable import ObservableValue, Subscriber

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class PageQuery:
    filters: Optional[Mapping[str, Any]] = None
    order_by: Optional[str] = None
    ascending: bool = True
    page_size: int = 20


class CollectionController(Generic[T]):
    """
    Keeps a remote table in sync with an observable CollectionState.

    Every operation publishes a new snapshot; failures are reported through
    `error` and never raised. Items are only changed after the service
    confirms the operation, and records returned by the service replace the
    caller's copies.

    Overlapping calls are not serialized: whichever completes last publishes
    the final snapshot.
    """

    def __init__(
        self,
        service: DataService,
        table: str,
        *,
        decode: Callable[[Record], T],
        encode: Callable[[T], Record],
        id_of: Callable[[T], str],
    ):
        self._service = service
        self.table = table
        self._decode = decode
        self._encode = encode
        self._id_of = id_of
        self._state: ObservableValue[CollectionState[T]] = ObservableValue(CollectionState())
        self._page_query = PageQuery()

    @property
    def state(self) -> ObservableValue[CollectionState[T]]:
        return self._state

    @property
    def snapshot(self) -> CollectionState[T]:
        return self._state.value

    def subscribe(self, subscriber: Subscriber) -> None:
        self._state.subscribe(subscriber)

    def _publish(self, state: CollectionState[T]) -> None:
        self._state.value = state

    def _fail(self, message: str) -> None:
        logger.warning("%s: %s", self.table, message)
        self._publish(self.snapshot.failed(message))

    def _decode_all(self, result: ServiceResult) -> tuple[T, ...]:
        return tuple(self._decode(record) for record in result.data or [])

    async def load_all(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        ascending: bool = True,
        limit: Optional[int] = None,
    ) -> None:
        self._publish(self.snapshot.started())
        try:
            result = await self._service.select(
                self.table,
                filters=filters,
                order_by=order_by,
                ascending=ascending,
                limit=limit,
            )
            if not result.is_success or result.data is None:
                self._fail(result.error or "Failed to load data")
                return
            items = self._decode_all(result)
        except Exception as exc:
            self._fail(str(exc))
            return
        self._publish(
            self.snapshot.succeeded(
                items=items,
                has_more=limit is None or len(items) < limit,
            )
        )

    async def load_paginated(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        ascending: bool = True,
        page_size: int = 20,
        append: bool = False,
    ) -> None:
        self._page_query = PageQuery(filters, order_by, ascending, page_size)
        if append:
            self._publish(self.snapshot.started())
        else:
            self._publish(self.snapshot.started(current_page=1))
        offset = (self.snapshot.current_page - 1) * page_size if append else 0

        try:
            result = await self._service.select(
                self.table,
                filters=filters,
                order_by=order_by,
                ascending=ascending,
                limit=page_size,
                offset=offset,
            )
            if not result.is_success or result.data is None:
                self._fail(result.error or "Failed to load data")
                return
            page = self._decode_all(result)
        except Exception as exc:
            self._fail(str(exc))
            return

        current = self.snapshot
        self._publish(
            current.succeeded(
                items=current.items + page if append else page,
                has_more=len(page) == page_size,
                current_page=current.current_page + 1 if append else 1,
            )
        )

    async def load_next_page(self) -> None:
        current = self.snapshot
        if current.is_loading or not current.has_more:
            return
        query = self._page_query
        await self.load_paginated(
            filters=query.filters,
            order_by=query.order_by,
            ascending=query.ascending,
            page_size=query.page_size,
            append=True,
        )

    async def add(self, item: T) -> bool:
        self._publish(self.snapshot.started())
        try:
            result = await self._service.insert(self.table, self._encode(item))
            if not result.is_success or not result.data:
                self._fail(result.error or "Failed to add record")
                return False
            created = self._decode(result.data[0])
        except Exception as exc:
            self._fail(str(exc))
            return False
        current = self.snapshot
        self._publish(current.succeeded(items=current.items + (created,)))
        return True

    async def update(self, item: T) -> bool:
        self._publish(self.snapshot.started())
        try:
            record_id = self._id_of(item)
            result = await self._service.update(self.table, record_id, self._encode(item))
            if not result.is_success or not result.data:
                self._fail(result.error or "Failed to update record")
                return False
            updated = self._decode(result.data[0])
        except Exception as exc:
            self._fail(str(exc))
            return False
        current = self.snapshot
        items = tuple(updated if self._id_of(existing) == record_id else existing for existing in current.items)
        self._publish(current.succeeded(items=items))
        return True

    async def delete(self, record_id: str) -> bool:
        self._publish(self.snapshot.started())
        try:
            result = await self._service.delete(self.table, record_id)
            if not result.is_success:
                self._fail(result.error or "Failed to delete record")
                return False
        except Exception as exc:
            self._fail(str(exc))
            return False
        current = self.snapshot
        items = tuple(existing for existing in current.items if self._id_of(existing) != record_id)
        self._publish(current.succeeded(items=items))
        return True

    async def search(
        self,
        filters: Sequence[Filter],
        order_by: Optional[str] = None,
        ascending: bool = True,
        limit: Optional[int] = None,
    ) -> None:
        self._publish(self.snapshot.started())
        try:
            result = await self._service.select_with_filters(
                self.table,
                filters,
                order_by=order_by,
                ascending=ascending,
                limit=limit,
            )
            if not result.is_success or result.data is None:
                self._fail(result.error or "Search failed")
                return
            items = self._decode_all(result)
        except Exception as exc:
            self._fail(str(exc))
            return
        self._publish(
            self.snapshot.succeeded(
                items=items,
                has_more=limit is None or len(items) < limit,
            )
        )

    async def load_random(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        exclude_ids: Optional[Sequence[str]] = None,
        limit: int = 1,
    ) -> None:
        self._publish(self.snapshot.started())
        try:
            result = await self._service.select_random(
                self.table,
                filters=filters,
                exclude_ids=exclude_ids,
                limit=limit,
            )
            if not result.is_success or result.data is None:
                self._fail(result.error or "Failed to load random records")
                return
            items = self._decode_all(result)
        except Exception as exc:
            self._fail(str(exc))
            return
        self._publish(self.snapshot.succeeded(items=items))

    async def refresh(self) -> None:
        await self.load_all()

    def clear(self) -> None:
        self._page_query = PageQuery()
        self._publish(CollectionState())

    def clear_error(self) -> None:
        self._publish(replace(self.snapshot, error=None))

    def get_by_id(self, record_id: str) -> Optional[T]:
        for item in self.snapshot.items:
            if self._id_of(item) == record_id:
                return item
        return None

    def exists(self, record_id: str) -> bool:
        return self.get_by_id(record_id) is not None

    @property
    def count(self) -> int:
        return self.snapshot.item_count
