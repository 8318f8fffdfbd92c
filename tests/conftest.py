"""
Shared fixtures: a live echo server on an ephemeral loopback port.
"""

import threading

import pytest

from sockecho.config import ServerConfig
from sockecho.server import EchoServer


@pytest.fixture
def echo_server():
    """Echo server running serve_forever() in a background thread."""
    server = EchoServer(ServerConfig(port=0, bind_address="127.0.0.1", poll_interval=0.05))
    server.start()
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    yield server

    server.stop(timeout=5)
    thread.join(timeout=5)


@pytest.fixture
def server_port(echo_server):
    return echo_server.address[1]
