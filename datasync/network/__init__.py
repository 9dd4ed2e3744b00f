from .client import NetworkClient
from .interceptors import AuthInterceptor, LoggingInterceptor, MetricsInterceptor
from .models import (
    NetworkErrorKind,
    NetworkException,
    NetworkInterceptor,
    Request,
    Response,
    ResponseParser,
)

__all__ = [
    "NetworkClient",
    "AuthInterceptor",
    "LoggingInterceptor",
    "MetricsInterceptor",
    "NetworkErrorKind",
    "NetworkException",
    "NetworkInterceptor",
    "Request",
    "Response",
    "ResponseParser",
]
