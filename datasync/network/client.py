from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Iterable, Mapping, Optional
from urllib.parse import urlencode

import aiohttp

from .models import (
    NetworkErrorKind,
    NetworkException,
    NetworkInterceptor,
    Request,
    Response,
    ResponseParser,
)

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _query_pairs(query_params: Mapping[str, Any]) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    for key, value in query_params.items():
        if isinstance(value, (list, tuple)):
            pairs.extend((key, _stringify(item)) for item in value)
        else:
            pairs.append((key, _stringify(value)))
    return pairs


class NetworkClient:
    """
    Request pipeline over aiohttp.

    Request interceptors run in registration order before the transport call,
    response interceptors run in the same order after the body is decoded.
    Non-2xx responses raise NetworkException(kind=RESPONSE) carrying the
    decoded Response.
    """

    def __init__(
        self,
        base_url: str = "",
        *,
        default_headers: Mapping[str, str] | None = None,
        timeout: float = 30.0,
        session: aiohttp.ClientSession | None = None,
        interceptors: Iterable[NetworkInterceptor] | None = None,
    ):
        self.base_url = base_url
        self.default_headers = dict(default_headers or {})
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None
        self._interceptors: list[NetworkInterceptor] = list(interceptors or [])

    @property
    def interceptors(self) -> tuple[NetworkInterceptor, ...]:
        return tuple(self._interceptors)

    def add_interceptor(self, interceptor: NetworkInterceptor) -> None:
        self._interceptors.append(interceptor)

    def remove_interceptor(self, interceptor: NetworkInterceptor) -> None:
        if interceptor in self._interceptors:
            self._interceptors.remove(interceptor)

    async def get(
        self,
        path: str,
        *,
        headers: Mapping[str, str] | None = None,
        query_params: Mapping[str, Any] | None = None,
        parser: Optional[ResponseParser] = None,
    ) -> Response:
        return await self.request("GET", path, headers=headers, query_params=query_params, parser=parser)

    async def post(
        self,
        path: str,
        *,
        headers: Mapping[str, str] | None = None,
        query_params: Mapping[str, Any] | None = None,
        body: Any = None,
        parser: Optional[ResponseParser] = None,
    ) -> Response:
        return await self.request(
            "POST", path, headers=headers, query_params=query_params, body=body, parser=parser
        )

    async def put(
        self,
        path: str,
        *,
        headers: Mapping[str, str] | None = None,
        query_params: Mapping[str, Any] | None = None,
        body: Any = None,
        parser: Optional[ResponseParser] = None,
    ) -> Response:
        return await self.request(
            "PUT", path, headers=headers, query_params=query_params, body=body, parser=parser
        )

    async def patch(
        self,
        path: str,
        *,
        headers: Mapping[str, str] | None = None,
        query_params: Mapping[str, Any] | None = None,
        body: Any = None,
        parser: Optional[ResponseParser] = None,
    ) -> Response:
        return await self.request(
            "PATCH", path, headers=headers, query_params=query_params, body=body, parser=parser
        )

    async def delete(
        self,
        path: str,
        *,
        headers: Mapping[str, str] | None = None,
        query_params: Mapping[str, Any] | None = None,
        body: Any = None,
        parser: Optional[ResponseParser] = None,
    ) -> Response:
        return await self.request(
            "DELETE", path, headers=headers, query_params=query_params, body=body, parser=parser
        )

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: Mapping[str, str] | None = None,
        query_params: Mapping[str, Any] | None = None,
        body: Any = None,
        parser: Optional[ResponseParser] = None,
    ) -> Response:
        request = Request(
            method=method.upper(),
            url=self.build_url(path, query_params),
            headers=self._merge_headers(headers, body),
            body=body,
        )

        try:
            for interceptor in self._interceptors:
                request = await interceptor.on_request(request)
            response = await self._send(request)
        except NetworkException:
            raise
        except asyncio.TimeoutError as exc:
            raise NetworkException("Request timeout", kind=NetworkErrorKind.TIMEOUT) from exc
        except (aiohttp.ClientConnectionError, OSError) as exc:
            raise NetworkException(f"Network error: {exc}", kind=NetworkErrorKind.NETWORK) from exc
        except Exception as exc:
            raise NetworkException(f"Unknown error: {exc}", kind=NetworkErrorKind.UNKNOWN) from exc

        # parser failures are the caller's to handle
        response = self._decode(response, parser)

        try:
            for interceptor in self._interceptors:
                response = await interceptor.on_response(response)
        except NetworkException:
            raise
        except Exception as exc:
            raise NetworkException(f"Unknown error: {exc}", kind=NetworkErrorKind.UNKNOWN) from exc

        if not response.is_success:
            raise NetworkException(
                f"Request failed with status {response.status_code}",
                kind=NetworkErrorKind.RESPONSE,
                status_code=response.status_code,
                response=response,
            )
        return response

    def build_url(self, path: str, query_params: Mapping[str, Any] | None = None) -> str:
        url = f"{self.base_url}{path}" if self.base_url else path
        if query_params:
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}{urlencode(_query_pairs(query_params))}"
        return url

    def _merge_headers(self, headers: Mapping[str, str] | None, body: Any) -> dict[str, str]:
        merged = dict(self.default_headers)
        if headers:
            merged.update(headers)
        if body is not None and not isinstance(body, (str, bytes)):
            merged["Content-Type"] = JSON_CONTENT_TYPE
        return merged

    async def _send(self, request: Request) -> Response:
        payload: Any = None
        if request.body is not None:
            payload = request.body if isinstance(request.body, (str, bytes)) else json.dumps(request.body)

        session = self._get_session()
        logger.debug("%s %s", request.method, request.url)
        async with session.request(
            request.method,
            request.url,
            headers=request.headers,
            data=payload,
            timeout=aiohttp.ClientTimeout(total=self.timeout),
        ) as resp:
            text = await resp.text(errors="replace")
            return Response(
                status_code=resp.status,
                headers=dict(resp.headers),
                body=text,
            )

    @staticmethod
    def _decode(response: Response, parser: Optional[ResponseParser]) -> Response:
        if not response.body:
            return response
        try:
            decoded = json.loads(response.body)
        except ValueError:
            return response.copy_with(raw_data=response.body)
        data = parser(decoded) if parser is not None else decoded
        return response.copy_with(data=data, raw_data=decoded)

    def _get_session(self) -> aiohttp.ClientSession:
        if not self._session or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if not self._owns_session:
            return
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "NetworkClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
