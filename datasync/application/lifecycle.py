from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Mapping, Optional, TypeVar

from ..domain.models import LoadingState
from ..domain.repositories import ItemsApi
from .observable import ObservableValue

logger = logging.getLogger(__name__)

T = TypeVar("T")

QueryParams = Optional[Mapping[str, Any]]


def default_uuid_of(item: Any) -> str:
    if isinstance(item, Mapping):
        if "uuid" not in item:
            raise TypeError("record has no 'uuid' key; pass id_of for this record shape")
        return str(item["uuid"])
    if hasattr(item, "uuid"):
        return str(item.uuid)
    raise TypeError(f"{type(item).__name__} has no uuid; pass id_of for this record shape")


@dataclass(frozen=True)
class LifecycleHooks(Generic[T]):
    before_load_items: Optional[Callable[[QueryParams], Awaitable[None]]] = None
    after_load_items: Optional[Callable[[tuple[T, ...], QueryParams], Awaitable[None]]] = None
    before_load_item: Optional[Callable[[str], Awaitable[None]]] = None
    after_load_item: Optional[Callable[[T, str], Awaitable[None]]] = None
    before_create: Optional[Callable[[T], Awaitable[None]]] = None
    after_create: Optional[Callable[[T], Awaitable[None]]] = None
    before_update: Optional[Callable[[str, T], Awaitable[None]]] = None
    after_update: Optional[Callable[[T, str], Awaitable[None]]] = None
    before_delete: Optional[Callable[[str], Awaitable[None]]] = None
    after_delete: Optional[Callable[[str], Awaitable[None]]] = None


async def _run(hook: Optional[Callable[..., Awaitable[None]]], *args: Any) -> None:
    if hook is not None:
        await hook(*args)


class LifecycleController(Generic[T]):
    """
    List plus selected-item controller over an ItemsApi.

    A call made while another one is loading returns without touching the api.
    Side effects are injected through LifecycleHooks; a failing hook is
    reported like a failing api call.
    """

    def __init__(
        self,
        api: ItemsApi[T],
        *,
        id_of: Callable[[T], str] = default_uuid_of,
        hooks: LifecycleHooks[T] | None = None,
    ):
        self._api = api
        self._id_of = id_of
        self._hooks: LifecycleHooks[T] = hooks or LifecycleHooks()
        self._items: list[T] = []
        self._selected: Optional[T] = None
        self._last_error: Optional[str] = None
        self.state: ObservableValue[LoadingState] = ObservableValue(LoadingState.INITIAL)

    @property
    def items(self) -> tuple[T, ...]:
        return tuple(self._items)

    @property
    def selected_item(self) -> Optional[T]:
        return self._selected

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def is_loading(self) -> bool:
        return self.state.value is LoadingState.LOADING

    async def load_items(self, query_params: QueryParams = None) -> None:
        if self.is_loading:
            return
        self._set_loading()
        try:
            await _run(self._hooks.before_load_items, query_params)
            result = await self._api.get_items(query_params)
            if not result.is_success or result.data is None:
                self._handle_error(f"Failed to load items: {result.message}")
                return
            self._items = list(result.data)
            self._loaded()
            await _run(self._hooks.after_load_items, self.items, query_params)
        except Exception as exc:
            self._handle_error(f"Error loading items: {exc}")

    async def load_item(self, uuid: str) -> None:
        if self.is_loading:
            return
        self._set_loading()
        try:
            await _run(self._hooks.before_load_item, uuid)
            result = await self._api.get_item(uuid)
            if not result.is_success or result.data is None:
                self._handle_error(f"Failed to load item: {result.message}")
                return
            self._selected = result.data
            self._loaded()
            await _run(self._hooks.after_load_item, result.data, uuid)
        except Exception as exc:
            self._handle_error(f"Error loading item: {exc}")

    async def create_item(self, item: T) -> bool:
        if self.is_loading:
            return False
        self._set_loading()
        try:
            await _run(self._hooks.before_create, item)
            result = await self._api.create_item(item)
            if not result.is_success or result.data is None:
                self._handle_error(f"Failed to create item: {result.message}")
                return False
            self._items.append(result.data)
            self._loaded()
            await _run(self._hooks.after_create, result.data)
            return True
        except Exception as exc:
            self._handle_error(f"Error creating item: {exc}")
            return False

    async def update_item(self, uuid: str, item: T) -> bool:
        if self.is_loading:
            return False
        self._set_loading()
        try:
            await _run(self._hooks.before_update, uuid, item)
            result = await self._api.update_item(uuid, item)
            if not result.is_success or result.data is None:
                self._handle_error(f"Failed to update item: {result.message}")
                return False
            updated = result.data
            for index, existing in enumerate(self._items):
                if self._id_of(existing) == uuid:
                    self._items[index] = updated
                    break
            if self._selected is not None and self._id_of(self._selected) == uuid:
                self._selected = updated
            self._loaded()
            await _run(self._hooks.after_update, updated, uuid)
            return True
        except Exception as exc:
            self._handle_error(f"Error updating item: {exc}")
            return False

    async def delete_item(self, uuid: str) -> bool:
        if self.is_loading:
            return False
        self._set_loading()
        try:
            await _run(self._hooks.before_delete, uuid)
            result = await self._api.delete_item(uuid)
            if not result.is_success:
                self._handle_error(f"Failed to delete item: {result.message}")
                return False
            self._items = [existing for existing in self._items if self._id_of(existing) != uuid]
            if self._selected is not None and self._id_of(self._selected) == uuid:
                self._selected = None
            self._loaded()
            await _run(self._hooks.after_delete, uuid)
            return True
        except Exception as exc:
            self._handle_error(f"Error deleting item: {exc}")
            return False

    async def refresh(self, query_params: QueryParams = None) -> None:
        await self.load_items(query_params)

    def clear(self) -> None:
        self._items = []
        self._selected = None
        self._last_error = None
        self.state.value = LoadingState.INITIAL

    def select_item(self, item: T) -> None:
        self._selected = item
        self.state.value = LoadingState.LOADED

    def clear_selection(self) -> None:
        self._selected = None
        self.state.value = LoadingState.LOADED

    def clear_error(self) -> None:
        self._last_error = None
        self.state.value = LoadingState.LOADED if self._items else LoadingState.INITIAL

    def _set_loading(self) -> None:
        self._last_error = None
        self.state.value = LoadingState.LOADING

    def _loaded(self) -> None:
        self._last_error = None
        self.state.value = LoadingState.LOADED

    def _handle_error(self, message: str) -> None:
        logger.warning("Lifecycle controller error: %s", message)
        self._last_error = message
        self.state.value = LoadingState.ERROR
