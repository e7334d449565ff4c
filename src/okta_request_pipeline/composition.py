"""Composition root for wiring the client and the CLI."""

from __future__ import annotations

import time
from collections.abc import Callable

import requests

from . import __version__
from .cli import create_app
from .client import HttpClient
from .config import ClientConfig
from .events import LoggingRetryListener
from .infrastructure import (
    MemoryStore,
    RateLimitRetryPolicy,
    RequestsTransport,
    RetryingRequestExecutor,
    default_cache_middleware,
)
from .protocols import AuthProvider

USER_AGENT = f"okta-request-pipeline/{__version__}"


def default_headers(config: ClientConfig, *, oauth: AuthProvider | None = None) -> dict[str, str]:
    """Return the headers sent with every request."""
    headers = {"User-Agent": USER_AGENT}
    if oauth is None and config.api_token:
        headers["Authorization"] = f"SSWS {config.api_token}"
    return headers


def build_client(
    *,
    config: ClientConfig,
    session: requests.Session | None = None,
    oauth: AuthProvider | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> HttpClient:
    """Build a fully wired client from configuration.

    Args:
        config: Client configuration.
        session: Optional requests session (a new one is created when omitted).
        oauth: Optional auth provider; replaces API-token auth when given.
        sleep: Backoff sleeper, injectable for tests.
    """
    transport = RequestsTransport(
        session=session,
        timeout_seconds=config.connection_timeout_seconds,
    )
    policy = RateLimitRetryPolicy(
        max_retries=config.max_retries,
        request_timeout_ms=config.request_timeout_ms,
    )
    executor = RetryingRequestExecutor(
        transport=transport,
        policy=policy,
        sleep=sleep,
        listeners=[LoggingRetryListener()],
    )
    cache_store = MemoryStore(
        default_ttl_seconds=config.cache_default_ttl_seconds,
        key_limit=config.cache_key_limit,
    )
    return HttpClient(
        executor=executor,
        default_headers=default_headers(config, oauth=oauth),
        oauth=oauth,
        cache_store=cache_store,
        cache_middleware=default_cache_middleware if config.cache_enabled else None,
        max_token_refreshes=config.max_token_refreshes,
        base_url=config.org_url,
    )


def build_cli_client(*, config: ClientConfig) -> HttpClient:
    """Build the client used by CLI commands."""
    return build_client(config=config)


app = create_app(build_cli_client)
