"""
Centralized pytest fixtures for the PortProwler test suite.

Loopback servers, canned results and probe stubs shared across test files.
"""

import logging
import socket
import threading
from unittest.mock import MagicMock

import pytest

from portprowler.core.models import PortResult
from portprowler.utils.constants import STATE_OPEN


# ==============================================================================
# Environment isolation
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_config_dir(tmp_path, monkeypatch):
    """Keep persisted defaults and logs out of the real home directory."""
    config_dir = tmp_path / "portprowler-config"
    monkeypatch.setenv("PORTPROWLER_CONFIG_DIR", str(config_dir))
    return config_dir


# ==============================================================================
# Result factories
# ==============================================================================


@pytest.fixture
def make_result():
    """Factory fixture for PortResult with sensible defaults."""

    def _factory(**kwargs):
        base = {
            "target": "host.test",
            "ip": "127.0.0.1",
            "port": 80,
            "protocol": "tcp",
            "state": STATE_OPEN,
        }
        base.update(kwargs)
        return PortResult(**base)

    return _factory


@pytest.fixture
def mock_logger():
    """Mock logger instance."""
    return MagicMock(spec=logging.Logger)


# ==============================================================================
# Loopback servers
# ==============================================================================


@pytest.fixture
def tcp_listener():
    """Listening TCP socket on 127.0.0.1; yields the port number."""
    srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    srv.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    srv.bind(("127.0.0.1", 0))
    srv.listen(16)
    try:
        yield srv.getsockname()[1]
    finally:
        srv.close()


@pytest.fixture
def closed_tcp_port():
    """A loopback port that was bound and released, so nothing listens on it."""
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return port


@pytest.fixture
def banner_server():
    """
    Factory for a one-shot TCP server that sends ``banner`` on accept.

    Returns the port; the server thread exits after one connection.
    """
    servers = []

    def _factory(banner: bytes):
        srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        srv.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        srv.bind(("127.0.0.1", 0))
        srv.listen(1)
        srv.settimeout(5.0)
        servers.append(srv)

        def _serve():
            try:
                conn, _ = srv.accept()
            except OSError:
                return
            with conn:
                conn.sendall(banner)

        threading.Thread(target=_serve, daemon=True).start()
        return srv.getsockname()[1]

    yield _factory
    for srv in servers:
        srv.close()


@pytest.fixture
def udp_responder():
    """
    Factory for a UDP socket on 127.0.0.1 that answers one datagram with ``reply``.

    With ``reply=None`` the socket stays silent (datagrams are never read).
    """
    socks = []

    def _factory(reply=b"pong"):
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.bind(("127.0.0.1", 0))
        sock.settimeout(5.0)
        socks.append(sock)

        if reply is not None:

            def _serve():
                try:
                    _, addr = sock.recvfrom(2048)
                    sock.sendto(reply, addr)
                except OSError:
                    return

            threading.Thread(target=_serve, daemon=True).start()
        return sock.getsockname()[1]

    yield _factory
    for sock in socks:
        sock.close()


# ==============================================================================
# Test Data Constants
# ==============================================================================

SAMPLE_PORTS = [22, 53, 80, 443, 3389, 8080]
