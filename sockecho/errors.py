"""
Echo Errors - Exceptions raised by the echo server and client.

Every failure in this package is fatal to whoever hits it: there are no
retries. The exceptions carry enough context for the command line tools to
print a one-line message, and chain the underlying OSError where there is one.
"""


class EchoError(RuntimeError):
    """Base class for all echo server and client errors."""


# ========== Server ==========

class ServerStartError(EchoError):
    """The listening socket could not be created, bound or put in listen mode."""


class AcceptError(EchoError):
    """accept() failed on the listening socket."""


class ClientIOError(EchoError):
    """Reading from or writing to a connected client failed."""


# ========== Client ==========

class HostLookupError(EchoError):
    """The server hostname could not be resolved."""


class ConnectError(EchoError):
    """The connection to the server could not be established."""


class ShortSendError(EchoError):
    """The OS accepted fewer bytes than the message length."""

    def __init__(self, expected: int, sent: int):
        super().__init__(
            f"expected to send {expected} bytes but actually sent {sent} bytes"
        )
        self.expected = expected
        self.sent = sent


class ShortReadError(EchoError):
    """A receive call returned a different count than was requested."""

    def __init__(self, requested: int, received: int):
        super().__init__(
            f"expected to read {requested} bytes but actually read {received}"
        )
        self.requested = requested
        self.received = received


class ConnectionClosedError(EchoError):
    """The server closed the connection before the whole echo arrived."""
