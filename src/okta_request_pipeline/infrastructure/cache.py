"""Cache implementations for infrastructure.

Usage example:
    from okta_request_pipeline.infrastructure.cache import MemoryStore

    store = MemoryStore(default_ttl_seconds=300)
    store.set("https://example.okta.com/api/v1/users/00u1", '{"id": "00u1"}')
    cached = store.get("https://example.okta.com/api/v1/users/00u1")
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass, field
from typing_extensions import override

import requests
from requests.structures import CaseInsensitiveDict

from ..domain.request import Request
from ..protocols import CacheStore


@dataclass
class CacheContext:
    """Per-call state shared between the client and its cache middleware."""

    url: str
    request: Request
    cache_store: CacheStore
    is_collection: bool = False
    resources: tuple[str, ...] = ()
    response: requests.Response | None = None


@dataclass
class _Entry:
    value: str
    expires_at: float | None


@dataclass
class MemoryStore(CacheStore):
    """In-memory store with per-entry TTL and a key limit.

    Expired entries are dropped when read. Once ``key_limit`` keys are held the
    oldest entry is evicted to make room.
    """

    default_ttl_seconds: float | None = 300.0
    key_limit: int = 100_000
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    _entries: OrderedDict[str, _Entry] = field(default_factory=OrderedDict, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.key_limit < 1:
            raise ValueError("key_limit must be >= 1")

    @override
    def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at is not None and self.clock() >= entry.expires_at:
                del self._entries[key]
                return None
            return entry.value

    @override
    def set(self, key: str, value: str, ttl_seconds: float | None = None) -> None:
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        expires_at = None if ttl is None else self.clock() + ttl
        with self._lock:
            self._entries.pop(key, None)
            while len(self._entries) >= self.key_limit:
                self._entries.popitem(last=False)
            self._entries[key] = _Entry(value=value, expires_at=expires_at)

    @override
    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    @override
    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def _cached_response(url: str, body: str) -> requests.Response:
    response = requests.Response()
    response.status_code = 200
    response.url = url
    response.encoding = "utf-8"
    response.headers = CaseInsensitiveDict({"Content-Type": "application/json"})
    response._content = body.encode("utf-8")
    return response


def _is_cacheable(response: requests.Response) -> bool:
    return response.status_code == 200 and "json" in response.headers.get("Content-Type", "")


def default_cache_middleware(ctx: CacheContext, next_: Callable[[], None]) -> None:
    """Serve single-resource GETs from the store and invalidate on writes.

    GET requests for a single resource are answered from the store when a body
    is cached under the request URL; otherwise the exchange runs and a 200 JSON
    body is stored. Any other method runs the exchange, then evicts the request
    URL and every resource URL named in the context.
    """
    key = ctx.request.url
    if ctx.request.method == "GET":
        if not ctx.is_collection:
            cached = ctx.cache_store.get(key)
            if cached is not None:
                ctx.response = _cached_response(key, cached)
                return
        next_()
        response = ctx.response
        if not ctx.is_collection and response is not None and _is_cacheable(response):
            ctx.cache_store.set(key, response.text)
        return

    next_()
    ctx.cache_store.delete(key)
    for resource in ctx.resources:
        ctx.cache_store.delete(resource)
