"""Test that network access is properly blocked in tests."""

import socket

import pytest

from okta_request_pipeline.domain.request import Request
from okta_request_pipeline.infrastructure import RequestsTransport
from tests.support.errors import NetworkIsolationError


class TestNetworkBlocking:
    """Verify that the network blocking fixture works."""

    def test_socket_connect_is_blocked(self) -> None:
        """Attempting to connect a socket should raise NetworkIsolationError."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            with pytest.raises(NetworkIsolationError) as exc_info:
                sock.connect(("127.0.0.1", 80))
            assert "Tests must not make network connections" in str(exc_info.value)
        finally:
            sock.close()

    def test_requests_transport_fails_without_fake(self) -> None:
        """A real transport cannot reach the network from tests."""
        transport = RequestsTransport(timeout_seconds=1.0)

        with pytest.raises(NetworkIsolationError) as exc_info:
            transport.fetch(Request("http://127.0.0.1:9/api/v1/users"))
        assert "Tests must not make network connections" in str(exc_info.value)
