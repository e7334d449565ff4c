"""Centralised, injectable configuration for the request pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Self

from dotenv import load_dotenv

from .config_file import ClientConfigFile


class NonNegativeIntegerEnvVarError(ValueError):
    """Raised when an environment variable must be a non-negative integer."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"{env_name} must be a non-negative integer.")


class PositiveIntegerEnvVarError(ValueError):
    """Raised when an environment variable must be a positive integer."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"{env_name} must be a positive integer.")


class PositiveNumberEnvVarError(ValueError):
    """Raised when an environment variable must be a positive number."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"{env_name} must be a positive number.")


class BooleanEnvVarError(ValueError):
    """Raised when an environment variable must be a supported boolean."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"{env_name} must be a boolean value (true/false, 1/0, yes/no, on/off).")


@dataclass(frozen=True)
class ClientConfig:
    """Immutable configuration for the HTTP client and its retry executor.

    Load from environment with `ClientConfig.from_env()` or construct directly for testing.
    """

    # Org
    org_url: str = ""
    api_token: str = ""

    # Rate-limit retries
    request_timeout_ms: int = 0  # 0 disables the timeout
    max_retries: int = 2
    connection_timeout_seconds: float = 30.0

    # Cache
    cache_enabled: bool = True
    cache_default_ttl_seconds: float = 300.0
    cache_key_limit: int = 100_000

    # OAuth
    max_token_refreshes: int = 1

    @classmethod
    def from_env(cls, dotenv_path: str | None = None) -> Self:
        """Load configuration from environment variables.

        Args:
            dotenv_path: Optional path to .env file. If None, uses default .env discovery.

        Returns:
            ClientConfig instance populated from environment.
        """
        load_dotenv(dotenv_path)

        return cls(
            org_url=os.getenv("OKTA_CLIENT_ORGURL", "").strip().rstrip("/"),
            api_token=os.getenv("OKTA_CLIENT_TOKEN", "").strip(),
            request_timeout_ms=_parse_non_negative_int(
                os.getenv("OKTA_CLIENT_REQUESTTIMEOUT", "0"),
                env_name="OKTA_CLIENT_REQUESTTIMEOUT",
            ),
            max_retries=_parse_non_negative_int(
                os.getenv("OKTA_CLIENT_RATELIMIT_MAXRETRIES", "2"),
                env_name="OKTA_CLIENT_RATELIMIT_MAXRETRIES",
            ),
            connection_timeout_seconds=_parse_positive_float(
                os.getenv("OKTA_CLIENT_CONNECTIONTIMEOUT", "30"),
                env_name="OKTA_CLIENT_CONNECTIONTIMEOUT",
            ),
            cache_enabled=_parse_bool(
                os.getenv("OKTA_CLIENT_CACHE_ENABLED", "true"),
                env_name="OKTA_CLIENT_CACHE_ENABLED",
            ),
            cache_default_ttl_seconds=_parse_positive_float(
                os.getenv("OKTA_CLIENT_CACHE_DEFAULTTTL", "300"),
                env_name="OKTA_CLIENT_CACHE_DEFAULTTTL",
            ),
            cache_key_limit=_parse_positive_int(
                os.getenv("OKTA_CLIENT_CACHE_KEYLIMIT", "100000"),
                env_name="OKTA_CLIENT_CACHE_KEYLIMIT",
            ),
            max_token_refreshes=_parse_non_negative_int(
                os.getenv("OKTA_CLIENT_MAXTOKENREFRESHES", "1"),
                env_name="OKTA_CLIENT_MAXTOKENREFRESHES",
            ),
        )

    def with_overrides(
        self,
        *,
        max_retries: int | None = None,
        request_timeout_ms: int | None = None,
        cache_enabled: bool | None = None,
    ) -> Self:
        """Return a new config with specified overrides (for CLI options)."""
        return replace(
            self,
            max_retries=self.max_retries if max_retries is None else max_retries,
            request_timeout_ms=self.request_timeout_ms
            if request_timeout_ms is None
            else request_timeout_ms,
            cache_enabled=self.cache_enabled if cache_enabled is None else cache_enabled,
        )

    def with_file_overrides(self, file_config: ClientConfigFile) -> Self:
        """Return a new config with config-file values overriding env/default values."""
        return replace(
            self,
            org_url=self.org_url if file_config.org_url is None else file_config.org_url,
            request_timeout_ms=self.request_timeout_ms
            if file_config.request_timeout_ms is None
            else file_config.request_timeout_ms,
            max_retries=self.max_retries
            if file_config.max_retries is None
            else file_config.max_retries,
            connection_timeout_seconds=self.connection_timeout_seconds
            if file_config.connection_timeout_seconds is None
            else file_config.connection_timeout_seconds,
            cache_enabled=self.cache_enabled
            if file_config.cache_enabled is None
            else file_config.cache_enabled,
            cache_default_ttl_seconds=self.cache_default_ttl_seconds
            if file_config.cache_default_ttl_seconds is None
            else file_config.cache_default_ttl_seconds,
            cache_key_limit=self.cache_key_limit
            if file_config.cache_key_limit is None
            else file_config.cache_key_limit,
            max_token_refreshes=self.max_token_refreshes
            if file_config.max_token_refreshes is None
            else file_config.max_token_refreshes,
        )


def _parse_non_negative_int(value: str, *, env_name: str) -> int:
    """Parse a non-negative integer from an environment variable."""
    try:
        parsed = int(value.strip())
    except ValueError as exc:
        raise NonNegativeIntegerEnvVarError(env_name) from exc
    if parsed < 0:
        raise NonNegativeIntegerEnvVarError(env_name)
    return parsed


def _parse_positive_int(value: str, *, env_name: str) -> int:
    """Parse a positive integer from an environment variable."""
    try:
        parsed = int(value.strip())
    except ValueError as exc:
        raise PositiveIntegerEnvVarError(env_name) from exc
    if parsed < 1:
        raise PositiveIntegerEnvVarError(env_name)
    return parsed


def _parse_positive_float(value: str, *, env_name: str) -> float:
    """Parse a positive number from an environment variable."""
    try:
        parsed = float(value.strip())
    except ValueError as exc:
        raise PositiveNumberEnvVarError(env_name) from exc
    if parsed <= 0:
        raise PositiveNumberEnvVarError(env_name)
    return parsed


def _parse_bool(value: str, *, env_name: str) -> bool:
    """Parse a boolean from an environment variable."""
    text = value.strip().lower()
    if text in {"1", "true", "yes", "y", "on"}:
        return True
    if text in {"0", "false", "no", "n", "off"}:
        return False
    raise BooleanEnvVarError(env_name)
