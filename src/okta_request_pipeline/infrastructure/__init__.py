"""Concrete infrastructure implementations and shared helpers."""

from .cache import CacheContext, MemoryStore, default_cache_middleware
from .http import RequestsTransport, RetryingRequestExecutor, error_filter
from .resilience import (
    RateLimitRetryPolicy,
    get_rate_limit_reset,
    get_request_id,
    get_response_date,
)

__all__ = [
    "CacheContext",
    "MemoryStore",
    "RateLimitRetryPolicy",
    "RequestsTransport",
    "RetryingRequestExecutor",
    "default_cache_middleware",
    "error_filter",
    "get_rate_limit_reset",
    "get_request_id",
    "get_response_date",
]
