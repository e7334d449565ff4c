"""Builders for real requests.Response objects used across tests."""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import UTC, datetime
from email.utils import format_datetime

import requests
from requests.structures import CaseInsensitiveDict

ORG_URL = "https://example.okta.com"
USERS_URL = f"{ORG_URL}/api/v1/users"
SERVER_NOW = datetime(2026, 10, 19, 9, 30, 0, tzinfo=UTC)


def make_response(
    status: int = 200,
    *,
    body: str = "",
    headers: Mapping[str, str] | None = None,
    url: str = USERS_URL,
) -> requests.Response:
    """Build a response the way requests would hand it back from a session."""
    response = requests.Response()
    response.status_code = status
    response.url = url
    response.encoding = "utf-8"
    response.headers = CaseInsensitiveDict(headers or {})
    response._content = body.encode("utf-8")
    return response


def json_response(
    status: int,
    payload: object,
    *,
    headers: Mapping[str, str] | None = None,
    url: str = USERS_URL,
) -> requests.Response:
    merged = {"Content-Type": "application/json", **(headers or {})}
    return make_response(status, body=json.dumps(payload), headers=merged, url=url)


def http_date(moment: datetime) -> str:
    return format_datetime(moment, usegmt=True)


def rate_limited(
    *,
    reset_in_seconds: int = 5,
    server_now: datetime = SERVER_NOW,
    request_id: str = "req-original",
    reset_header: str | None = None,
    url: str = USERS_URL,
) -> requests.Response:
    """Build a 429 carrying the rate-limit headers the retry engine reads."""
    reset = reset_header
    if reset is None:
        reset = str(int(server_now.timestamp()) + reset_in_seconds)
    return json_response(
        429,
        {"errorCode": "E0000047", "errorSummary": "API call exceeded rate limit due to too many requests."},
        headers={
            "x-okta-request-id": request_id,
            "x-rate-limit-reset": reset,
            "Date": http_date(server_now),
        },
        url=url,
    )
