from .models import (
    ApiResult,
    CollectionState,
    Filter,
    FilterOperator,
    LoadingState,
    Record,
    ServiceResult,
)
from .repositories import DataService, ItemsApi, Randomizer

__all__ = [
    "ApiResult",
    "CollectionState",
    "Filter",
    "FilterOperator",
    "LoadingState",
    "Record",
    "ServiceResult",
    "DataService",
    "ItemsApi",
    "Randomizer",
]
