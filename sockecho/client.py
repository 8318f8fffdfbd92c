"""
Echo Client - Sends one message and reads back exactly as many bytes.

    with EchoClient(ClientConfig(port=42310)) as client:
        client.connect()
        echoed = client.echo(b"hello world")

The client is deliberately strict. The message goes out in a single send()
call and a short write is an error. The echo is read with receives of at most
recv_size bytes, each asking for exactly what is still missing, and any
receive that returns a different count than requested is an error too. With
wait_all enabled (the default) the kernel fills each request completely, so a
short read only happens when the server goes away mid-echo.
"""

import socket
import logging
from typing import Iterator, Optional

from .config import ClientConfig
from .buffer import ResponseBuffer
from .errors import (
    HostLookupError, ConnectError, ShortSendError,
    ShortReadError, ConnectionClosedError
)


logger = logging.getLogger(__name__)


class EchoClient:
    """
    Echo client for a single connection.

    Args:
        config: Client configuration
        sock: An already-connected socket to use instead of connecting
    """

    def __init__(self, config: ClientConfig, sock: Optional[socket.socket] = None):
        self.config = config
        self._sock = sock
        if sock is not None and config.timeout is not None:
            sock.settimeout(config.timeout)

        # Sizes of the receive calls made by the last iter_echo()
        self.recv_calls: list[int] = []

    @property
    def connected(self) -> bool:
        return self._sock is not None

    def resolve(self) -> str:
        """
        Resolve the configured hostname to an IPv4 address.

        Raises:
            HostLookupError: If the name does not resolve
        """
        try:
            return socket.gethostbyname(self.config.hostname)
        except OSError as e:
            raise HostLookupError(f"no such host: {self.config.hostname}") from e

    def connect(self):
        """
        Resolve the server and connect to it.

        Raises:
            HostLookupError: If the hostname does not resolve
            ConnectError: If the connection fails
        """
        if self._sock is not None:
            raise RuntimeError("Client is already connected")

        ip = self.resolve()
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(self.config.timeout)
        try:
            sock.connect((ip, self.config.port))
        except OSError as e:
            sock.close()
            raise ConnectError(
                f"failed to connect to {self.config.hostname}:{self.config.port}: {e}"
            ) from e

        self._sock = sock
        logger.info(f"Connected to {ip}:{self.config.port}")

    def send_message(self, payload: bytes) -> int:
        """
        Send the whole payload in one call.

        Returns:
            Number of bytes sent (always len(payload))

        Raises:
            ShortSendError: If the OS took fewer bytes than len(payload)
            ConnectionClosedError: If the socket fails
        """
        sock = self._require_socket()
        try:
            sent = sock.send(payload)
        except OSError as e:
            raise ConnectionClosedError(f"failed to send message: {e}") from e

        if sent != len(payload):
            raise ShortSendError(len(payload), sent)

        logger.debug(f"Sent {sent} bytes")
        return sent

    def iter_echo(self, expected: int) -> Iterator[bytes]:
        """
        Receive exactly `expected` bytes, yielding each chunk as it arrives.

        Raises:
            ConnectionClosedError: If the server closes before everything arrived
            ShortReadError: If a receive returns fewer bytes than requested
        """
        sock = self._require_socket()
        buffer = ResponseBuffer(expected)
        flags = socket.MSG_WAITALL if self.config.wait_all else 0
        self.recv_calls = []

        while not buffer.is_complete():
            request = buffer.next_request(self.config.recv_size)
            start = buffer.received
            try:
                count = self._receive_chunk(sock, buffer, request, flags)
            except OSError as e:
                raise ConnectionClosedError(f"failed to receive message: {e}") from e

            self.recv_calls.append(count)
            if count == 0:
                raise ConnectionClosedError(
                    f"server closed the connection after {buffer.received} of {expected} bytes"
                )
            if count != request:
                raise ShortReadError(request, count)

            logger.debug(f"Received {count} bytes ({buffer.received}/{expected})")
            yield buffer.chunk(start)

    def _receive_chunk(self, sock: socket.socket, buffer: ResponseBuffer,
                       request: int, flags: int) -> int:
        count = buffer.receive_from(sock, request, flags)
        if not self.config.wait_all or sock.gettimeout() is None:
            return count

        # A socket with a timeout is non-blocking underneath, where
        # MSG_WAITALL only returns what is already queued
        while 0 < count < request:
            more = buffer.receive_from(sock, request - count)
            if more == 0:
                break
            count += more
        return count

    def receive_echo(self, expected: int) -> bytes:
        """Receive exactly `expected` bytes."""
        return b"".join(self.iter_echo(expected))

    def echo(self, payload: Optional[bytes] = None) -> bytes:
        """
        Send a message and read back its echo.

        Args:
            payload: Bytes to send (defaults to the configured message)

        Returns:
            The echoed bytes
        """
        if payload is None:
            payload = self.config.payload
        self.send_message(payload)
        return self.receive_echo(len(payload))

    def close(self):
        if self._sock is not None:
            self._sock.close()
            self._sock = None

    def _require_socket(self) -> socket.socket:
        if self._sock is None:
            raise RuntimeError("Client is not connected")
        return self._sock

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def __repr__(self):
        state = "connected" if self.connected else "closed"
        return f"EchoClient({self.config.hostname}:{self.config.port}, {state})"


def echo_once(hostname: str, port: int, message: str) -> bytes:
    """
    Connect, echo one message and disconnect.

    This is a convenience wrapper around EchoClient.
    """
    config = ClientConfig(port=port, hostname=hostname, message=message)
    with EchoClient(config) as client:
        client.connect()
        return client.echo()
