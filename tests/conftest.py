"""Pytest fixtures shared by all tests.

All tests are network-isolated - socket connections are blocked by default.
"""

from __future__ import annotations

import os
import socket

import pytest

from tests.fakes import FakeAuthProvider, InMemoryCacheStore, RecordingListener, RecordingSleeper
from tests.support.errors import NetworkIsolationError


def _blocked_socket_connect(self: socket.socket, *args: object, **kwargs: object) -> None:
    """Raise an error if any test tries to make a real network connection."""
    raise NetworkIsolationError(repr(args))


@pytest.fixture(autouse=True)
def block_network_access(monkeypatch: pytest.MonkeyPatch) -> None:
    """Block all network access in tests.

    Tests that need HTTP should use ScriptedTransport or MagicMock.
    """
    monkeypatch.setattr(socket.socket, "connect", _blocked_socket_connect)


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep OKTA_CLIENT_* variables from the developer shell out of tests."""
    for name in list(os.environ):
        if name.startswith("OKTA_CLIENT_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def sleeper() -> RecordingSleeper:
    return RecordingSleeper()


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def auth_provider() -> FakeAuthProvider:
    return FakeAuthProvider()


@pytest.fixture
def cache_store() -> InMemoryCacheStore:
    return InMemoryCacheStore()
