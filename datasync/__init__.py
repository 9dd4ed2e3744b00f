"""Asynchronous data-access layer: request pipeline, observable state and collection sync."""

from .application import (
    CollectionController,
    LifecycleController,
    LifecycleHooks,
    ObservableList,
    ObservableValue,
)
from .domain import ApiResult, CollectionState, Filter, FilterOperator, LoadingState, ServiceResult
from .network import NetworkClient, NetworkErrorKind, NetworkException, Request, Response

__all__ = [
    "CollectionController",
    "LifecycleController",
    "LifecycleHooks",
    "ObservableList",
    "ObservableValue",
    "ApiResult",
    "CollectionState",
    "Filter",
    "FilterOperator",
    "LoadingState",
    "ServiceResult",
    "NetworkClient",
    "NetworkErrorKind",
    "NetworkException",
    "Request",
    "Response",
]
