"""
sockecho - A sequential TCP echo server and a matching client.

This package demonstrates the plain BSD socket calls behind a TCP service:
creating a listening socket, accepting clients one at a time, echoing bytes
back, and on the client side sending one message and reading back exactly as
many bytes as were sent.
"""

from .config import ServerConfig, ClientConfig
from .states import ServerState, ServerStateMachine
from .buffer import EchoBuffer, ResponseBuffer
from .server import EchoServer, ServerStats
from .client import EchoClient, echo_once
from .errors import (
    EchoError, ServerStartError, AcceptError, ClientIOError,
    HostLookupError, ConnectError, ShortSendError, ShortReadError,
    ConnectionClosedError
)

__version__ = "1.0.0"

__all__ = [
    "ServerConfig",
    "ClientConfig",
    "ServerState",
    "ServerStateMachine",
    "EchoBuffer",
    "ResponseBuffer",
    "EchoServer",
    "ServerStats",
    "EchoClient",
    "echo_once",
    "EchoError",
    "ServerStartError",
    "AcceptError",
    "ClientIOError",
    "HostLookupError",
    "ConnectError",
    "ShortSendError",
    "ShortReadError",
    "ConnectionClosedError",
]
