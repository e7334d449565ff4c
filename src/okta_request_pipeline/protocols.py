"""Protocol definitions for dependency injection.

These protocols define the collaborators the request pipeline consults, enabling
isolated unit testing with fake implementations.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import requests

from .domain.request import Request

if TYPE_CHECKING:
    from .events import BackoffEvent, ResumeEvent
    from .infrastructure.cache import CacheContext


@dataclass(frozen=True)
class AccessToken:
    """Bearer token issued by an auth provider."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int | None = None


@dataclass(frozen=True)
class TokenIntrospection:
    """Result of introspecting the cached access token."""

    active: bool


@runtime_checkable
class Transport(Protocol):
    """Abstract executor performing a single HTTP exchange."""

    def fetch(self, request: Request) -> requests.Response:
        """Send the request and return the response.

        Raises:
            requests.RequestException: On network failures.
        """
        ...


@runtime_checkable
class AuthProvider(Protocol):
    """Abstract OAuth token source."""

    def get_access_token(self) -> AccessToken:
        """Return a (possibly cached) access token."""
        ...

    def introspect_access_token(self) -> TokenIntrospection:
        """Report whether the cached access token is still active."""
        ...

    def clear_cached_access_token(self) -> None:
        """Drop the cached access token so the next call acquires a new one."""
        ...


@runtime_checkable
class CacheStore(Protocol):
    """Abstract key/value store for cached response bodies."""

    def get(self, key: str) -> str | None:
        """Retrieve a cached value by key, or None if absent or expired."""
        ...

    def set(self, key: str, value: str, ttl_seconds: float | None = None) -> None:
        """Store a value under key."""
        ...

    def delete(self, key: str) -> None:
        """Remove a key if present."""
        ...

    def has(self, key: str) -> bool:
        """Check if a live value exists for key."""
        ...


class CacheMiddleware(Protocol):
    """Wraps an exchange with cache lookups and writes.

    Implementations either leave a stored response in ``ctx.response`` or call
    ``next_`` to run the real exchange, which populates ``ctx.response``.
    """

    def __call__(self, ctx: CacheContext, next_: Callable[[], None]) -> None: ...


@runtime_checkable
class RetryPolicy(Protocol):
    """Abstract decision engine for rate-limited responses."""

    def should_retry(self, response: requests.Response, request: Request) -> bool:
        """Return True if the exchange should be retried."""
        ...

    def compute_delay(self, response: requests.Response) -> float:
        """Return the delay in seconds before the retry."""
        ...

    def build_retry_request(self, request: Request, response: requests.Response) -> Request:
        """Return an independent copy of request tagged for the retry chain."""
        ...

    def get_request_id(self, response: requests.Response) -> str | None:
        """Return the correlation id of the response."""
        ...


@runtime_checkable
class RetryListener(Protocol):
    """Observer notified about backoff and resume in a retry chain."""

    def on_backoff(self, event: BackoffEvent) -> None:
        """Called when a retry has been scheduled."""
        ...

    def on_resume(self, event: ResumeEvent) -> None:
        """Called immediately before the retried request is sent."""
        ...
