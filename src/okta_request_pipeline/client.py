"""Request orchestration: auth, retrying fetch, error classification and caching.

Usage example:
    from okta_request_pipeline.client import HttpClient
    from okta_request_pipeline.infrastructure import RequestsTransport, RetryingRequestExecutor

    client = HttpClient(
        executor=RetryingRequestExecutor(transport=RequestsTransport()),
        base_url="https://example.okta.com",
    )
    user = client.get_json("/api/v1/users/me")
"""

from __future__ import annotations

import json
from collections.abc import Mapping

import requests
from requests.structures import CaseInsensitiveDict

from .domain.request import Body, Request, RequestContext
from .exceptions import EmptyCacheResultError, HttpError, MissingOrgUrlError, OktaApiError
from .infrastructure.cache import CacheContext, MemoryStore, default_cache_middleware
from .infrastructure.http import error_filter
from .protocols import AuthProvider, CacheMiddleware, CacheStore, Transport

_JSON_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}


class HttpClient:
    """Issue requests through a fixed, ordered pipeline.

    For one logical call the steps run in this order:
    - inject a bearer token when an auth provider is configured
    - fetch through the executor, which retries rate-limited exchanges
    - raise ``OktaApiError``/``HttpError`` for non-2xx responses
    - on 401 with an inactive token, clear it and run the steps again
    - wrap all of the above in the cache middleware, if one is configured

    Token refreshes are bounded by ``max_token_refreshes`` per logical call.
    """

    def __init__(
        self,
        *,
        executor: Transport,
        default_headers: Mapping[str, str] | None = None,
        oauth: AuthProvider | None = None,
        cache_store: CacheStore | None = None,
        cache_middleware: CacheMiddleware | None = default_cache_middleware,
        max_token_refreshes: int = 1,
        base_url: str = "",
    ) -> None:
        if max_token_refreshes < 0:
            raise ValueError("max_token_refreshes must be >= 0")
        self.executor = executor
        self.default_headers: dict[str, str] = dict(default_headers or {})
        self.oauth = oauth
        self.cache_store = cache_store if cache_store is not None else MemoryStore()
        self.cache_middleware = cache_middleware
        self.max_token_refreshes = max_token_refreshes
        self.base_url = base_url.rstrip("/")

    def http(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        body: Body = None,
        context: RequestContext | None = None,
    ) -> requests.Response:
        """Execute one logical request and return its successful response.

        Raises:
            OktaApiError: Non-2xx response with a JSON error document.
            HttpError: Non-2xx response with any other body.
            requests.RequestException: Transport failures, unchanged.
        """
        context = context or RequestContext()
        resolved = self.resolve_url(url)
        merged: CaseInsensitiveDict[str] = CaseInsensitiveDict(self.default_headers)
        merged.update(headers or {})
        template = Request.build(resolved, method=method, headers=merged, body=body)

        if self.cache_middleware is None:
            return self._exchange(template)

        ctx = CacheContext(
            url=resolved,
            request=template,
            cache_store=self.cache_store,
            is_collection=context.is_collection,
            resources=context.resources,
        )

        def run_exchange() -> None:
            if ctx.response is not None:
                return
            ctx.response = self._exchange(template)

        self.cache_middleware(ctx, run_exchange)
        if ctx.response is None:
            raise EmptyCacheResultError(resolved)
        return ctx.response

    def json(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        body: Body = None,
        context: RequestContext | None = None,
    ) -> object:
        """Execute a request with JSON headers and return the decoded body."""
        merged: CaseInsensitiveDict[str] = CaseInsensitiveDict(_JSON_HEADERS)
        merged.update(headers or {})
        response = self.http(url, method=method, headers=merged, body=body, context=context)
        if not response.content:
            return None
        return response.json()

    def get_json(
        self,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        context: RequestContext | None = None,
    ) -> object:
        return self.json(url, method="GET", headers=headers, context=context)

    def post(
        self,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: Body = None,
        context: RequestContext | None = None,
    ) -> requests.Response:
        return self.http(url, method="POST", headers=headers, body=body, context=context)

    def post_json(
        self,
        url: str,
        *,
        body: object = None,
        headers: Mapping[str, str] | None = None,
        context: RequestContext | None = None,
    ) -> object:
        return self.json(url, method="POST", headers=headers, body=_dump(body), context=context)

    def put(
        self,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: Body = None,
        context: RequestContext | None = None,
    ) -> requests.Response:
        return self.http(url, method="PUT", headers=headers, body=body, context=context)

    def put_json(
        self,
        url: str,
        *,
        body: object = None,
        headers: Mapping[str, str] | None = None,
        context: RequestContext | None = None,
    ) -> object:
        return self.json(url, method="PUT", headers=headers, body=_dump(body), context=context)

    def delete(
        self,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        context: RequestContext | None = None,
    ) -> requests.Response:
        return self.http(url, method="DELETE", headers=headers, context=context)

    def resolve_url(self, url: str) -> str:
        """Join an org-relative URL to the base URL; absolute URLs pass through."""
        if url.startswith(("http://", "https://")):
            return url
        if not self.base_url:
            raise MissingOrgUrlError(url)
        return f"{self.base_url}/{url.lstrip('/')}"

    def _prepare_request(self, template: Request) -> Request:
        request = template.clone()
        if self.oauth is not None:
            token = self.oauth.get_access_token()
            request.headers["Authorization"] = f"Bearer {token.access_token}"
        return request

    def _exchange(self, template: Request) -> requests.Response:
        refreshes = 0
        while True:
            request = self._prepare_request(template)
            try:
                return error_filter(self.executor.fetch(request))
            except (OktaApiError, HttpError) as error:
                oauth = self.oauth
                if oauth is None or not self._token_expired(oauth, error, refreshes):
                    raise
                oauth.clear_cached_access_token()
                refreshes += 1

    def _token_expired(
        self, oauth: AuthProvider, error: OktaApiError | HttpError, refreshes: int
    ) -> bool:
        if error.status != 401 or refreshes >= self.max_token_refreshes:
            return False
        return oauth.introspect_access_token().active is False


def _dump(body: object) -> str | None:
    if body is None:
        return None
    return json.dumps(body)
