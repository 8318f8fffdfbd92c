"""
Echo Configuration - Settings for the echo server and client.

Both programs share the same handful of defaults: they talk to "localhost",
the server reads at most 512 bytes per call, and the kernel is allowed to
queue 5 pending connections while the server is busy with a client.
"""

from dataclasses import dataclass
from typing import Optional


DEFAULT_HOSTNAME = "localhost"
DEFAULT_MESSAGE = "hello world"

# Size of the server's echo buffer (bytes read per recv call)
ECHO_BUFFER_SIZE = 512

# Pending connections the OS queues while a client is being served
LISTEN_BACKLOG = 5

MAX_PORT = 65535


def _check_port(port: int, allow_ephemeral: bool):
    low = 0 if allow_ephemeral else 1
    if not low <= port <= MAX_PORT:
        raise ValueError(f"Invalid port number: {port}")


@dataclass
class ServerConfig:
    """Configuration options for the echo server."""

    # Port to listen on (0 picks an ephemeral port)
    port: int

    # Only used for display; the server always binds to bind_address
    hostname: str = DEFAULT_HOSTNAME

    # "" is INADDR_ANY
    bind_address: str = ""

    backlog: int = LISTEN_BACKLOG
    buffer_size: int = ECHO_BUFFER_SIZE
    reuse_address: bool = True

    # Keep listening after a client I/O error instead of shutting down
    isolate_client_errors: bool = True

    # How often serve_forever() checks for a stop request, in seconds
    poll_interval: float = 0.5

    def __post_init__(self):
        _check_port(self.port, allow_ephemeral=True)
        if self.backlog < 0:
            raise ValueError(f"Invalid backlog: {self.backlog}")
        if self.buffer_size <= 0:
            raise ValueError(f"Invalid buffer size: {self.buffer_size}")
        if self.poll_interval <= 0:
            raise ValueError(f"Invalid poll interval: {self.poll_interval}")


@dataclass
class ClientConfig:
    """Configuration options for the echo client."""

    port: int
    hostname: str = DEFAULT_HOSTNAME
    message: str = DEFAULT_MESSAGE

    # Upper bound for a single recv call; matches the server's echo buffer
    recv_size: int = ECHO_BUFFER_SIZE

    # Ask the kernel to fill each request completely (MSG_WAITALL)
    wait_all: bool = True

    # Blocking by default
    timeout: Optional[float] = None

    encoding: str = "utf-8"

    def __post_init__(self):
        _check_port(self.port, allow_ephemeral=False)
        if self.recv_size <= 0:
            raise ValueError(f"Invalid receive size: {self.recv_size}")

    @property
    def payload(self) -> bytes:
        """
        The message as it goes on the wire.

        Undecodable argv bytes (surrogate escapes) are sent back out unchanged.
        """
        return self.message.encode(self.encoding, errors="surrogateescape")

    @property
    def display_message(self) -> str:
        """The message with undecodable bytes replaced, safe to print."""
        return self.payload.decode(self.encoding, errors="replace")
