from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional, TypeVar

from ...domain.models import ApiResult, Record
from ...domain.repositories import ItemsApi
from ...network import NetworkClient, NetworkException

logger = logging.getLogger(__name__)

T = TypeVar("T")


def unwrap(payload: Any) -> Any:
    """Accepts both bare payloads and `{"data": ...}` envelopes."""
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def _error_message(exc: NetworkException) -> str:
    if exc.response is not None and isinstance(exc.response.raw_data, dict):
        message = exc.response.raw_data.get("message")
        if message:
            return str(message)
    return exc.message


class RestItemsApi(ItemsApi[T]):
    """REST resource at `endpoint` with items addressed as `endpoint/<uuid>`."""

    def __init__(
        self,
        client: NetworkClient,
        endpoint: str,
        *,
        decode: Callable[[Record], T],
        encode: Callable[[T], Record],
    ):
        self._client = client
        self.endpoint = endpoint.rstrip("/")
        self._decode = decode
        self._encode = encode

    def _decode_one(self, payload: Any) -> T:
        data = unwrap(payload)
        if not isinstance(data, dict):
            raise ValueError("Unexpected response format for single item")
        return self._decode(data)

    async def get_items(self, query_params: Optional[Mapping[str, Any]] = None) -> ApiResult[list[T]]:
        try:
            response = await self._client.get(self.endpoint, query_params=query_params)
            data = unwrap(response.data)
            if not isinstance(data, list):
                raise ValueError("Unexpected response format for items list")
            items = [self._decode(record) for record in data]
            logger.debug("Loaded %s items from %s", len(items), self.endpoint)
            return ApiResult.ok(items, status_code=response.status_code)
        except NetworkException as exc:
            return ApiResult.fail(_error_message(exc), status_code=exc.status_code)
        except ValueError as exc:
            return ApiResult.fail(str(exc))

    async def get_item(self, uuid: str) -> ApiResult[T]:
        try:
            response = await self._client.get(f"{self.endpoint}/{uuid}")
            return ApiResult.ok(self._decode_one(response.data), status_code=response.status_code)
        except NetworkException as exc:
            return ApiResult.fail(_error_message(exc), status_code=exc.status_code)
        except ValueError as exc:
            return ApiResult.fail(str(exc))

    async def create_item(self, item: T) -> ApiResult[T]:
        try:
            response = await self._client.post(self.endpoint, body=self._encode(item))
            return ApiResult.ok(self._decode_one(response.data), status_code=response.status_code)
        except NetworkException as exc:
            return ApiResult.fail(_error_message(exc), status_code=exc.status_code)
        except ValueError as exc:
            return ApiResult.fail(str(exc))

    async def update_item(self, uuid: str, item: T) -> ApiResult[T]:
        try:
            response = await self._client.put(f"{self.endpoint}/{uuid}", body=self._encode(item))
            return ApiResult.ok(self._decode_one(response.data), status_code=response.status_code)
        except NetworkException as exc:
            return ApiResult.fail(_error_message(exc), status_code=exc.status_code)
        except ValueError as exc:
            return ApiResult.fail(str(exc))

    async def delete_item(self, uuid: str) -> ApiResult[None]:
        try:
            response = await self._client.delete(f"{self.endpoint}/{uuid}")
            return ApiResult.ok(None, status_code=response.status_code)
        except NetworkException as exc:
            return ApiResult.fail(_error_message(exc), status_code=exc.status_code)
