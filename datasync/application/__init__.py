from .collection import CollectionController, PageQuery
from .lifecycle import LifecycleController, LifecycleHooks, default_uuid_of
from .observable import ObservableList, ObservableValue

__all__ = [
    "CollectionController",
    "PageQuery",
    "LifecycleController",
    "LifecycleHooks",
    "default_uuid_of",
    "ObservableList",
    "ObservableValue",
]
