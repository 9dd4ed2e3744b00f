from .data_service import RestDataService, build_query, content_range_total, filter_param
from .items_api import RestItemsApi, unwrap

__all__ = [
    "RestDataService",
    "RestItemsApi",
    "build_query",
    "content_range_total",
    "filter_param",
    "unwrap",
]
