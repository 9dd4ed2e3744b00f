from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Optional, Protocol, TypeVar

T = TypeVar("T")

ResponseParser = Callable[[Any], T]


@dataclass(frozen=True)
class Request:
    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None

    def with_header(self, name: str, value: str) -> "Request":
        return replace(self, headers={**self.headers, name: value})

    def copy_with(self, **changes: Any) -> "Request":
        return replace(self, **changes)


@dataclass(frozen=True)
class Response:
    status_code: int
    headers: dict[str, str]
    body: str
    data: Any = None
    raw_data: Any = None

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    def copy_with(self, **changes: Any) -> "Response":
        return replace(self, **changes)


class NetworkInterceptor(Protocol):
    async def on_request(self, request: Request) -> Request: ...

    async def on_response(self, response: Response) -> Response: ...


class NetworkErrorKind(Enum):
    NETWORK = "network"
    TIMEOUT = "timeout"
    RESPONSE = "response"
    UNKNOWN = "unknown"


class NetworkException(Exception):
    def __init__(
        self,
        message: str,
        *,
        kind: NetworkErrorKind = NetworkErrorKind.UNKNOWN,
        status_code: Optional[int] = None,
        response: Optional[Response] = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.status_code = status_code
        self.response = response

    def __str__(self) -> str:
        return f"NetworkException({self.kind.value}): {self.message}"
