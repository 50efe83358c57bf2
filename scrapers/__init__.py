"""
Scrapers Module
Google Trends 数据获取协议客户端
"""
from .base import BaseSessionProvider, RateLimitedSessionProvider, HttpRequest, HttpResponse
from .session import HttpxSessionProvider
from .codec import decode_response, strip_security_prefix, SECURITY_PREFIXES
from .backoff import BackoffPolicy, DelaySpec, FailureKind, failure_kind
from .transport import RetryingTransport
from .widget_resolver import WidgetResolver, build_explore_payload
from .widget_fetcher import WidgetFetcher, FetchedWidgets

__all__ = [
    # Session
    "BaseSessionProvider",
    "RateLimitedSessionProvider",
    "HttpxSessionProvider",
    "HttpRequest",
    "HttpResponse",
    # Codec
    "decode_response",
    "strip_security_prefix",
    "SECURITY_PREFIXES",
    # Backoff / transport
    "BackoffPolicy",
    "DelaySpec",
    "FailureKind",
    "failure_kind",
    "RetryingTransport",
    # Widgets
    "WidgetResolver",
    "build_explore_payload",
    "WidgetFetcher",
    "FetchedWidgets",
]
