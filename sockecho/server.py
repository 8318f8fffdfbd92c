"""
Echo Server - A sequential TCP echo server.

The server owns one listening socket for its whole life and serves clients
strictly one after another:

    server = EchoServer(ServerConfig(port=42310))
    server.start()
    server.serve_forever()

For each client it reads up to 512 bytes at a time and immediately sends
exactly those bytes back, until the client closes its end. While a client is
being served, further connection attempts wait in the kernel's listen backlog.

A failed read or send on a client connection either drops just that client
(the default) or takes the whole server down, depending on
ServerConfig.isolate_client_errors.
"""

import socket
import selectors
import threading
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from .config import ServerConfig
from .buffer import EchoBuffer
from .states import ServerState, ServerStateMachine
from .errors import ServerStartError, AcceptError, ClientIOError


logger = logging.getLogger(__name__)


@dataclass
class ServerStats:
    """Statistics about the clients a server has handled."""
    clients_served: int = 0
    bytes_echoed: int = 0
    client_errors: int = 0

    def __str__(self) -> str:
        return (
            f"Server Stats:\n"
            f"  Clients served: {self.clients_served}\n"
            f"  Bytes echoed: {self.bytes_echoed}\n"
            f"  Client errors: {self.client_errors}\n"
        )


class EchoServer:
    """
    Single-threaded echo server.

    Only stop() may be called from another thread; everything else runs on
    the thread that calls serve_forever() or serve_one().
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self.stats = ServerStats()

        self._sock: Optional[socket.socket] = None
        self._state = ServerStateMachine()

        # serve_forever() coordination, as in socketserver
        self._shutdown_request = threading.Event()
        self._is_shut_down = threading.Event()
        self._is_shut_down.set()

    @property
    def state(self) -> ServerState:
        return self._state.state

    @property
    def address(self) -> Tuple[str, int]:
        """The address the listening socket is bound to."""
        if self._sock is None:
            raise RuntimeError("Server is not started")
        return self._sock.getsockname()[:2]

    def start(self):
        """
        Open the listening socket.

        Raises:
            ServerStartError: If the socket cannot be created, bound or listened on
        """
        if self._sock is not None:
            raise RuntimeError("Server is already started")

        cfg = self.config
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        except OSError as e:
            raise ServerStartError(f"failed to open listening socket: {e}") from e

        try:
            if cfg.reuse_address:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((cfg.bind_address, cfg.port))
            sock.listen(cfg.backlog)
        except OSError as e:
            sock.close()
            raise ServerStartError(
                f"failed to listen on port {cfg.port}: {e}"
            ) from e

        self._sock = sock
        self._fire("start")
        host, port = self.address
        logger.info(f"Listening on {host}:{port} (backlog {cfg.backlog})")

    def _fire(self, event: str):
        success, action = self._state.transition(event)
        if success and action:
            logger.debug(f"{event} -> {self.state.name}: {action}")

    def serve_one(self) -> int:
        """
        Accept the next client and echo until it disconnects.

        Blocks in accept() if no client is pending.

        Returns:
            Number of bytes echoed to this client

        Raises:
            AcceptError: If accept() fails
            ClientIOError: If a client read/send fails and errors are not isolated
        """
        if not self._state.is_listening():
            raise RuntimeError(f"Cannot accept in state {self.state.name}")

        try:
            conn, client_addr = self._sock.accept()
        except ConnectionAbortedError as e:
            # The client reset before we got to it; only that client is gone
            if not self.config.isolate_client_errors:
                self._fire("fatal_error")
                raise AcceptError(f"failed to accept the client: {e}") from e
            self.stats.client_errors += 1
            logger.warning(f"Pending client aborted before accept: {e}")
            return 0
        except OSError as e:
            self._fire("fatal_error")
            logger.error(f"Failed to accept the client: {e}")
            raise AcceptError(f"failed to accept the client: {e}") from e

        self._fire("accept")
        logger.info(f"Connected to client {client_addr[0]}:{client_addr[1]}")

        with conn:
            try:
                echoed = self._echo(conn)
            except OSError as e:
                self.stats.client_errors += 1
                if self.config.isolate_client_errors:
                    self._fire("client_error")
                    logger.warning(f"Dropping client {client_addr[0]}:{client_addr[1]}: {e}")
                    return 0
                self._fire("fatal_error")
                logger.error(f"I/O error with client {client_addr[0]}:{client_addr[1]}: {e}")
                raise ClientIOError(
                    f"failed to echo to client {client_addr[0]}:{client_addr[1]}: {e}"
                ) from e

        self.stats.clients_served += 1
        self._fire("peer_closed")
        logger.info("Connection to client closed, waiting for next connection")
        return echoed

    def _echo(self, conn: socket.socket) -> int:
        buffer = EchoBuffer(self.config.buffer_size)
        total = 0
        while True:
            count = buffer.fill_from(conn)
            if count == 0:
                return total

            self._fire("recv_data")
            logger.debug(f"Received {count} bytes: {bytes(buffer.view()[:50])!r}")
            conn.sendall(buffer.view())
            total += count
            self.stats.bytes_echoed += count

    def serve_forever(self):
        """
        Serve clients one at a time until stop() is called.

        Fatal errors propagate; the listening socket stays open for the
        caller to close.
        """
        if self._sock is None or not self.state.is_running():
            raise RuntimeError("Server is not started")

        self._is_shut_down.clear()
        try:
            with selectors.DefaultSelector() as selector:
                selector.register(self._sock, selectors.EVENT_READ)
                while not self._shutdown_request.is_set():
                    ready = selector.select(self.config.poll_interval)
                    if self._shutdown_request.is_set():
                        break
                    if ready:
                        self.serve_one()
        finally:
            self._shutdown_request.clear()
            self._is_shut_down.set()

    def stop(self, timeout: Optional[float] = None):
        """
        Stop serve_forever() and close the listening socket.

        Waits for the client being served, if any, to finish.
        """
        self._shutdown_request.set()
        if self.state.has_client():
            logger.info("Waiting for the current client to disconnect")
        if not self._is_shut_down.wait(timeout):
            logger.warning("serve_forever() did not stop in time")
            return
        self._shutdown_request.clear()
        self._fire("stop")
        self.close()

    def close(self):
        """Close the listening socket."""
        sock, self._sock = self._sock, None
        if sock is not None:
            sock.close()
            logger.info("Server closed")

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *args):
        self.stop()

    def __repr__(self):
        where = f"port {self.config.port}"
        if self._sock is not None:
            where = "{}:{}".format(*self.address)
        return f"EchoServer({where}, {self.state.name})"
