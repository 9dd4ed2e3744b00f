from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Generic, Optional, Sequence, TypeVar

T = TypeVar("T")

Record = dict[str, Any]


class FilterOperator(Enum):
    EQUALS = "eq"
    NOT_EQUALS = "neq"
    GREATER_THAN = "gt"
    GREATER_THAN_OR_EQUAL = "gte"
    LESS_THAN = "lt"
    LESS_THAN_OR_EQUAL = "lte"
    CONTAINS = "ilike"
    IN_LIST = "in"
    NOT_IN_LIST = "not.in"


@dataclass(frozen=True)
class Filter:
    field: str
    operator: FilterOperator
    value: Any

    @classmethod
    def equals(cls, field: str, value: Any) -> "Filter":
        return cls(field, FilterOperator.EQUALS, value)

    @classmethod
    def not_equals(cls, field: str, value: Any) -> "Filter":
        return cls(field, FilterOperator.NOT_EQUALS, value)

    @classmethod
    def greater_than(cls, field: str, value: Any) -> "Filter":
        return cls(field, FilterOperator.GREATER_THAN, value)

    @classmethod
    def greater_than_or_equal(cls, field: str, value: Any) -> "Filter":
        return cls(field, FilterOperator.GREATER_THAN_OR_EQUAL, value)

    @classmethod
    def less_than(cls, field: str, value: Any) -> "Filter":
        return cls(field, FilterOperator.LESS_THAN, value)

    @classmethod
    def less_than_or_equal(cls, field: str, value: Any) -> "Filter":
        return cls(field, FilterOperator.LESS_THAN_OR_EQUAL, value)

    @classmethod
    def contains(cls, field: str, value: str) -> "Filter":
        return cls(field, FilterOperator.CONTAINS, value)

    @classmethod
    def in_list(cls, field: str, values: Sequence[Any]) -> "Filter":
        return cls(field, FilterOperator.IN_LIST, tuple(values))

    @classmethod
    def not_in_list(cls, field: str, values: Sequence[Any]) -> "Filter":
        return cls(field, FilterOperator.NOT_IN_LIST, tuple(values))


@dataclass(frozen=True)
class ServiceResult:
    """Outcome of a data-service call: raw records (or a total) on success, a message otherwise."""

    is_success: bool
    data: Optional[list[Record]] = None
    error: Optional[str] = None
    total: Optional[int] = None

    @classmethod
    def ok(cls, data: Optional[list[Record]] = None) -> "ServiceResult":
        return cls(is_success=True, data=data)

    @classmethod
    def counted(cls, total: int) -> "ServiceResult":
        return cls(is_success=True, total=total)

    @classmethod
    def fail(cls, message: str) -> "ServiceResult":
        return cls(is_success=False, error=message)


@dataclass(frozen=True)
class ApiResult(Generic[T]):
    is_success: bool
    data: Optional[T] = None
    message: Optional[str] = None
    status_code: Optional[int] = None

    @classmethod
    def ok(cls, data: Optional[T] = None, *, status_code: int = 200) -> "ApiResult[T]":
        return cls(is_success=True, data=data, status_code=status_code)

    @classmethod
    def fail(cls, message: str, *, status_code: Optional[int] = None) -> "ApiResult[T]":
        return cls(is_success=False, message=message, status_code=status_code)


@dataclass(frozen=True)
class CollectionState(Generic[T]):
    items: tuple[T, ...] = ()
    is_loading: bool = False
    error: Optional[str] = None
    has_more: bool = True
    current_page: int = 1

    def started(self, **changes: Any) -> "CollectionState[T]":
        return replace(self, is_loading=True, error=None, **changes)

    def succeeded(self, **changes: Any) -> "CollectionState[T]":
        return replace(self, is_loading=False, **changes)

    def failed(self, message: str) -> "CollectionState[T]":
        return replace(self, is_loading=False, error=message)

    @property
    def has_data(self) -> bool:
        return bool(self.items)

    @property
    def has_error(self) -> bool:
        return self.error is not None

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def first_item(self) -> Optional[T]:
        return self.items[0] if self.items else None

    @property
    def last_item(self) -> Optional[T]:
        return self.items[-1] if self.items else None


class LoadingState(Enum):
    INITIAL = "initial"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"
