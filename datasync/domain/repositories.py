from __future__ import annotations

from typing import Any, Mapping, MutableSequence, Optional, Protocol, Sequence, TypeVar

from .models import ApiResult, Filter, Record, ServiceResult

T = TypeVar("T")


class DataService(Protocol):
    async def select(
        self,
        table: str,
        *,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        ascending: bool = True,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> ServiceResult: ...

    async def insert(self, table: str, record: Record) -> ServiceResult: ...

    async def update(self, table: str, record_id: str, record: Record) -> ServiceResult: ...

    async def delete(self, table: str, record_id: str) -> ServiceResult: ...

    async def select_with_filters(
        self,
        table: str,
        filters: Sequence[Filter],
        *,
        order_by: Optional[str] = None,
        ascending: bool = True,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> ServiceResult: ...

    async def select_random(
        self,
        table: str,
        *,
        filters: Optional[Mapping[str, Any]] = None,
        exclude_ids: Optional[Sequence[str]] = None,
        limit: int = 1,
    ) -> ServiceResult: ...

    async def select_by_id(self, table: str, record_id: str) -> ServiceResult: ...

    async def exists(self, table: str, record_id: str) -> bool: ...

    async def count(self, table: str, *, filters: Optional[Mapping[str, Any]] = None) -> ServiceResult: ...


class ItemsApi(Protocol[T]):
    async def get_items(self, query_params: Optional[Mapping[str, Any]] = None) -> ApiResult[list[T]]: ...

    async def get_item(self, uuid: str) -> ApiResult[T]: ...

    async def create_item(self, item: T) -> ApiResult[T]: ...

    async def update_item(self, uuid: str, item: T) -> ApiResult[T]: ...

    async def delete_item(self, uuid: str) -> ApiResult[None]: ...


class Randomizer(Protocol):
    def choice(self, seq: Sequence[T]) -> T: ...

    def sample(self, population: Sequence[T], k: int) -> list[T]: ...

    def shuffle(self, seq: MutableSequence[T]) -> None: ...
