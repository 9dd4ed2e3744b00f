from __future__ import annotations

import logging
import time
from contextvars import ContextVar
from typing import Awaitable, Callable, Optional

from ..infrastructure.metrics import MetricsClient
from .models import Request, Response

TokenProvider = Callable[[], Awaitable[Optional[str]]]

_request_started: ContextVar[tuple[str, float] | None] = ContextVar("datasync_request_started", default=None)


class AuthInterceptor:
    """Attaches `<prefix> <token>` to every outgoing request when a token is available."""

    def __init__(
        self,
        token_provider: TokenProvider,
        *,
        header_name: str = "Authorization",
        token_prefix: str = "Bearer",
        logger: logging.Logger | None = None,
    ):
        self._token_provider = token_provider
        self.header_name = header_name
        self.token_prefix = token_prefix
        self._logger = logger or logging.getLogger(__name__)

    async def on_request(self, request: Request) -> Request:
        token = await self._token_provider()
        if not token:
            return request
        value = f"{self.token_prefix} {token}" if self.token_prefix else token
        return request.with_header(self.header_name, value)

    async def on_response(self, response: Response) -> Response:
        if response.status_code == 401:
            self._logger.warning("Request was rejected as unauthorized (401)")
        return response


class LoggingInterceptor:
    def __init__(
        self,
        *,
        log_request: bool = True,
        log_response: bool = True,
        log_headers: bool = False,
        log_body: bool = False,
        logger: logging.Logger | None = None,
    ):
        self.log_request = log_request
        self.log_response = log_response
        self.log_headers = log_headers
        self.log_body = log_body
        self._logger = logger or logging.getLogger("datasync.network")

    async def on_request(self, request: Request) -> Request:
        if self.log_request:
            self._logger.info("REQUEST %s %s", request.method, request.url)
            if self.log_headers and request.headers:
                self._logger.info("Headers: %s", request.headers)
            if self.log_body and request.body is not None:
                self._logger.info("Body: %s", request.body)
        return request

    async def on_response(self, response: Response) -> Response:
        if self.log_response:
            self._logger.info(
                "RESPONSE %s %s",
                response.status_code,
                "ok" if response.is_success else "failed",
            )
            if self.log_headers and response.headers:
                self._logger.info("Headers: %s", response.headers)
            if self.log_body:
                if response.raw_data is not None:
                    self._logger.info("Data: %s", response.raw_data)
                elif response.body:
                    self._logger.info("Body: %s", response.body)
        return response


class MetricsInterceptor:
    """
    Emits one metrics record per response.

    The start of a call is kept in a context variable, so concurrent requests
    issued from separate tasks are timed independently.
    """

    def __init__(self, metrics: MetricsClient):
        self._metrics = metrics

    async def on_request(self, request: Request) -> Request:
        _request_started.set((request.method, time.perf_counter()))
        return request

    async def on_response(self, response: Response) -> Response:
        started = _request_started.get()
        if started is None:
            method, duration_ms = "UNKNOWN", 0.0
        else:
            method, start = started
            duration_ms = (time.perf_counter() - start) * 1000
            _request_started.set(None)
        self._metrics.record(
            f"http.{method}",
            duration_ms,
            response.is_success,
            source="network",
            extra={"status": response.status_code},
        )
        return response
