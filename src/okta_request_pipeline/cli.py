"""CLI for the Okta request pipeline.

Commands:
- get: Fetch a resource
- post: Create a resource from a JSON body
- put: Replace a resource from a JSON body
- delete: Delete a resource

URLs may be absolute or relative to OKTA_CLIENT_ORGURL. Rate-limited requests are
retried transparently; backoff and resume are logged.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Protocol

import requests
import typer
from rich import print as rprint
from rich import print_json
from rich.markup import escape

from .client import HttpClient
from .config import ClientConfig
from .config_file import load_client_config_file
from .exceptions import ClientError, HttpError, OktaApiError
from .observability import set_log_level

_JSON_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}


class ClientBuilder(Protocol):
    """Protocol for constructing the HTTP client used by commands."""

    def __call__(self, *, config: ClientConfig) -> HttpClient:
        """Build a client for the given configuration."""
        ...


@dataclass(frozen=True)
class CliContext:
    """Runtime CLI context for a single command invocation."""

    config: ClientConfig
    client_builder: ClientBuilder

    def build_client(self, config: ClientConfig | None = None) -> HttpClient:
        """Return a client using the configured builder."""
        return self.client_builder(config=config or self.config)


class InvalidJsonBodyError(typer.BadParameter):
    """Raised when --data is not valid JSON."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"--data must be valid JSON: {detail}")


class CliContextNotInitialisedError(typer.BadParameter):
    """Raised when CLI context is missing."""

    def __init__(self) -> None:
        super().__init__("CLI context is not initialised. Use the okta-request entry point.")


MaxRetriesOption = Annotated[
    int | None,
    typer.Option("--max-retries", min=0, help="Override rate-limit retries (default: 2)"),
]
RequestTimeoutOption = Annotated[
    int | None,
    typer.Option(
        "--request-timeout-ms",
        min=0,
        help="Give up retrying once this many ms have passed (0 = never)",
    ),
]
NoCacheOption = Annotated[
    bool,
    typer.Option("--no-cache", help="Bypass the response cache"),
]
DataOption = Annotated[
    str | None,
    typer.Option("--data", "-d", help="JSON request body"),
]


def _get_context(ctx: typer.Context) -> CliContext:
    if not isinstance(ctx.obj, CliContext):
        raise CliContextNotInitialisedError()
    return ctx.obj


def _parse_body(data: str | None) -> str | None:
    if data is None:
        return None
    try:
        return json.dumps(json.loads(data))
    except json.JSONDecodeError as exc:
        raise InvalidJsonBodyError(exc.msg) from exc


def _is_json_document(text: str) -> bool:
    try:
        json.loads(text)
    except json.JSONDecodeError:
        return False
    return True


def _render(method: str, response: requests.Response) -> None:
    rprint(f"[green]✓ {response.status_code}[/green] {method} {escape(response.url or '')}")
    if not response.content:
        return
    content_type = response.headers.get("Content-Type", "")
    if "json" in content_type and _is_json_document(response.text):
        print_json(response.text)
        return
    rprint(escape(response.text))


def _render_error(error: ClientError) -> None:
    if isinstance(error, OktaApiError):
        summary = escape(f"{error.error_code or ''} {error.error_summary or ''}")
        rprint(f"[red]✗ {error.status}[/red] {summary}")
        for cause in error.error_causes:
            rprint(f"  - {escape(cause)}")
        if error.error_id:
            rprint(f"  Error id: {escape(error.error_id)}")
    elif isinstance(error, HttpError):
        rprint(f"[red]✗ {error.status}[/red] {escape(error.body)}")
    else:
        rprint(f"[red]✗[/red] {escape(str(error))}")


def _execute(
    ctx: typer.Context,
    *,
    method: str,
    url: str,
    data: str | None,
    max_retries: int | None,
    request_timeout_ms: int | None,
    no_cache: bool,
) -> None:
    state = _get_context(ctx)
    config = state.config.with_overrides(
        max_retries=max_retries,
        request_timeout_ms=request_timeout_ms,
        cache_enabled=False if no_cache else None,
    )
    body = _parse_body(data)
    client = state.build_client(config)
    try:
        response = client.http(url, method=method, headers=_JSON_HEADERS, body=body)
    except ClientError as error:
        _render_error(error)
        raise typer.Exit(code=1) from error
    except requests.RequestException as error:
        rprint(f"[red]✗ Request failed:[/red] {escape(str(error))}")
        raise typer.Exit(code=1) from error
    _render(method, response)


def create_app(client_builder: ClientBuilder) -> typer.Typer:
    """Create a Typer app wired with the provided client builder."""
    app = typer.Typer(
        add_completion=False,
        help="Okta API requests with transparent rate-limit retries",
    )

    @app.callback()
    def main(
        ctx: typer.Context,
        config_path: Annotated[
            Path | None,
            typer.Option(
                "--config",
                "-c",
                help="TOML config file overriding environment values",
            ),
        ] = None,
        quiet: Annotated[
            bool,
            typer.Option("--quiet", "-q", help="Only log warnings and errors"),
        ] = False,
    ) -> None:
        """Initialise CLI context."""
        try:
            config = ClientConfig.from_env()
        except ValueError as error:
            raise typer.BadParameter(str(error)) from error
        if config_path is not None:
            try:
                config = config.with_file_overrides(load_client_config_file(config_path))
            except ClientError as error:
                raise typer.BadParameter(str(error), param_hint="--config") from error
        if quiet:
            set_log_level(logging.WARNING)
        ctx.obj = CliContext(config=config, client_builder=client_builder)

    @app.command()
    def get(
        ctx: typer.Context,
        url: Annotated[str, typer.Argument(help="Absolute or org-relative URL")],
        max_retries: MaxRetriesOption = None,
        request_timeout_ms: RequestTimeoutOption = None,
        no_cache: NoCacheOption = False,
    ) -> None:
        """Fetch a resource."""
        _execute(
            ctx,
            method="GET",
            url=url,
            data=None,
            max_retries=max_retries,
            request_timeout_ms=request_timeout_ms,
            no_cache=no_cache,
        )

    @app.command()
    def post(
        ctx: typer.Context,
        url: Annotated[str, typer.Argument(help="Absolute or org-relative URL")],
        data: DataOption = None,
        max_retries: MaxRetriesOption = None,
        request_timeout_ms: RequestTimeoutOption = None,
    ) -> None:
        """Create a resource from a JSON body."""
        _execute(
            ctx,
            method="POST",
            url=url,
            data=data,
            max_retries=max_retries,
            request_timeout_ms=request_timeout_ms,
            no_cache=False,
        )

    @app.command()
    def put(
        ctx: typer.Context,
        url: Annotated[str, typer.Argument(help="Absolute or org-relative URL")],
        data: DataOption = None,
        max_retries: MaxRetriesOption = None,
        request_timeout_ms: RequestTimeoutOption = None,
    ) -> None:
        """Replace a resource from a JSON body."""
        _execute(
            ctx,
            method="PUT",
            url=url,
            data=data,
            max_retries=max_retries,
            request_timeout_ms=request_timeout_ms,
            no_cache=False,
        )

    @app.command()
    def delete(
        ctx: typer.Context,
        url: Annotated[str, typer.Argument(help="Absolute or org-relative URL")],
        max_retries: MaxRetriesOption = None,
        request_timeout_ms: RequestTimeoutOption = None,
    ) -> None:
        """Delete a resource."""
        _execute(
            ctx,
            method="DELETE",
            url=url,
            data=None,
            max_retries=max_retries,
            request_timeout_ms=request_timeout_ms,
            no_cache=False,
        )

    return app
