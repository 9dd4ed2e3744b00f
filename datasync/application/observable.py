from __future__ import annotations

import logging
from typing import Any, Callable, Generic, Iterable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

VoidListener = Callable[[], Any]
ValueListener = Callable[[Optional[T]], Any]
Subscriber = Callable[["ObservableValue[T]"], Any]


class ObservableValue(Generic[T]):
    """
    Single-value container that notifies on assignment.

    Three independent registries are dispatched on every assignment, in this
    order: subscribers (receive the container), custom listeners (no
    arguments) and value listeners (receive the new value). A failing
    listener is logged and the remaining ones are still called.
    """

    def __init__(self, initial: Optional[T] = None):
        self._value = initial
        self._subscribers: list[Subscriber] = []
        self._custom_listeners: list[VoidListener] = []
        self._value_listeners: list[ValueListener] = []

    @property
    def value(self) -> Optional[T]:
        return self._value

    @value.setter
    def value(self, new_value: Optional[T]) -> None:
        self._value = new_value
        self.notify_listeners()

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: Subscriber) -> None:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)

    def add_custom_listener(self, listener: VoidListener) -> int:
        self._custom_listeners.append(listener)
        return len(self._custom_listeners) - 1

    def add_value_listener(self, listener: ValueListener) -> int:
        self._value_listeners.append(listener)
        return len(self._value_listeners) - 1

    def remove_custom_listener_at(self, index: int) -> None:
        if 0 <= index < len(self._custom_listeners):
            del self._custom_listeners[index]

    def remove_value_listener_at(self, index: int) -> None:
        if 0 <= index < len(self._value_listeners):
            del self._value_listeners[index]

    def remove_all_custom_listeners(self) -> None:
        self._custom_listeners.clear()

    def remove_all_value_listeners(self) -> None:
        self._value_listeners.clear()

    def remove_all_listeners(self) -> None:
        self._custom_listeners.clear()
        self._value_listeners.clear()

    def update_value(self, new_value: Optional[T], *, notify: bool = True) -> None:
        if notify:
            self.value = new_value
        else:
            self._value = new_value

    def update_value_if_changed(self, new_value: Optional[T]) -> None:
        if self._value != new_value:
            self.value = new_value

    def notify_listeners(self) -> None:
        current = self._value
        for subscriber in list(self._subscribers):
            try:
                subscriber(self)
            except Exception:
                logger.exception("Subscriber failed")
        for listener in list(self._custom_listeners):
            try:
                listener()
            except Exception:
                logger.exception("Custom listener failed")
        for value_listener in list(self._value_listeners):
            try:
                value_listener(current)
            except Exception:
                logger.exception("Value listener failed")

    def notify_listeners_where(self, predicate: Callable[[Optional[T]], bool]) -> None:
        if predicate(self._value):
            self.notify_listeners()

    def notify_listeners_if_not_none(self) -> None:
        if self._value is not None:
            self.notify_listeners()

    def reset(self) -> None:
        self.value = None

    @property
    def is_none(self) -> bool:
        return self._value is None

    def value_or(self, default: T) -> T:
        return default if self._value is None else self._value

    def transform(self, transformer: Callable[[Optional[T]], Optional[T]]) -> None:
        self.value = transformer(self._value)

    def copy(self) -> "ObservableValue[T]":
        return ObservableValue(self._value)

    def mirror(self) -> "ObservableValue[T]":
        mirrored: ObservableValue[T] = ObservableValue(self._value)

        def forward(new_value: Optional[T]) -> None:
            mirrored.value = new_value

        self.add_value_listener(forward)
        return mirrored

    def dispose(self) -> None:
        self._subscribers.clear()
        self.remove_all_listeners()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"


class ObservableList(ObservableValue[list[T]]):
    """List container; every mutation assigns a fresh list."""

    def __init__(self, initial: Iterable[T] | None = None):
        super().__init__(list(initial) if initial is not None else [])

    @property
    def items(self) -> list[T]:
        return self._value if self._value is not None else []

    @property
    def is_empty(self) -> bool:
        return not self.items

    def __len__(self) -> int:
        return len(self.items)

    def add(self, item: T) -> None:
        self.value = [*self.items, item]

    def add_all(self, items: Iterable[T]) -> None:
        self.value = [*self.items, *items]

    def remove(self, item: T) -> bool:
        current = list(self.items)
        try:
            current.remove(item)
        except ValueError:
            return False
        self.value = current
        return True

    def remove_at(self, index: int) -> Optional[T]:
        if not 0 <= index < len(self.items):
            return None
        current = list(self.items)
        removed = current.pop(index)
        self.value = current
        return removed

    def clear(self) -> None:
        self.value = []

    def filter(self, predicate: Callable[[T], bool]) -> None:
        self.value = [item for item in self.items if predicate(item)]

    def sort(self, *, key: Callable[[T], Any] | None = None, reverse: bool = False) -> None:
        self.value = sorted(self.items, key=key, reverse=reverse)

    def insert_at(self, index: int, item: T) -> None:
        current = list(self.items)
        current.insert(index, item)
        self.value = current

    def update_at(self, index: int, item: T) -> None:
        if 0 <= index < len(self.items):
            current = list(self.items)
            current[index] = item
            self.value = current

    def make_unique(self) -> None:
        unique: list[T] = []
        for item in self.items:
            if item not in unique:
                unique.append(item)
        self.value = unique

    def filtered_view(self, predicate: Callable[[T], bool]) -> list[T]:
        return [item for item in self.items if predicate(item)]

    def clone(self) -> "ObservableList[T]":
        return ObservableList(self.items)
