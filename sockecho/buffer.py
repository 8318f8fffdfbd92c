"""
Echo Buffers - Fixed-size byte buffers for the server and the client.

Both sides of the echo read straight into preallocated memory with
recv_into(), so no call can ever write past the end of a buffer:

Echo Buffer (server):
- A fixed 512-byte scratch area reused for every read of a session
- Tracks how many bytes of the last read are valid

Response Buffer (client):
- Sized exactly to the message that was sent
- Tracks how many bytes have arrived and how many are still expected

    [   received   |      remaining      ]
    ^              ^                     ^
    0           received              expected
"""

import socket
from typing import Optional


class EchoBuffer:
    """
    Server-side echo buffer.

    One read fills at most `capacity` bytes; view() exposes exactly the bytes
    that read produced, ready to be sent back.
    """

    def __init__(self, capacity: int = 512):
        if capacity <= 0:
            raise ValueError(f"Invalid buffer capacity: {capacity}")
        self.capacity = capacity
        self._buffer = bytearray(capacity)
        self._view = memoryview(self._buffer)
        self._length = 0

    @property
    def length(self) -> int:
        """Number of valid bytes from the last read."""
        return self._length

    def fill_from(self, sock: socket.socket) -> int:
        """
        Read once from the socket into the buffer.

        Returns:
            Number of bytes read (0 means the peer closed the connection)
        """
        self._length = sock.recv_into(self._view, self.capacity)
        return self._length

    def view(self) -> memoryview:
        """The valid bytes of the last read."""
        return self._view[:self._length]

    def __len__(self) -> int:
        return self._length


class ResponseBuffer:
    """
    Client-side response buffer with explicit length tracking.

    Each receive lands right after the bytes already received, so the
    buffer holds the full echo once is_complete() is true.
    """

    def __init__(self, expected: int):
        if expected < 0:
            raise ValueError(f"Invalid expected length: {expected}")
        self.expected = expected
        self._buffer = bytearray(expected)
        self._view = memoryview(self._buffer)
        self._received = 0

    @property
    def received(self) -> int:
        """Bytes received so far."""
        return self._received

    @property
    def remaining(self) -> int:
        """Bytes still expected."""
        return self.expected - self._received

    def next_request(self, max_bytes: int) -> int:
        """How many bytes the next receive should ask for."""
        return min(self.remaining, max_bytes)

    def receive_from(self, sock: socket.socket, nbytes: int, flags: int = 0) -> int:
        """
        Receive up to nbytes from the socket at the current offset.

        Args:
            sock: Connected socket
            nbytes: Bytes to request, capped at remaining
            flags: recv flags (e.g. socket.MSG_WAITALL)

        Returns:
            Number of bytes received (0 means the peer closed the connection)
        """
        nbytes = min(nbytes, self.remaining)
        start = self._received
        count = sock.recv_into(self._view[start:start + nbytes], nbytes, flags)
        self._received += count
        return count

    def chunk(self, start: int, end: Optional[int] = None) -> bytes:
        """Copy of received bytes in [start, end)."""
        if end is None or end > self._received:
            end = self._received
        return bytes(self._view[start:end])

    def is_complete(self) -> bool:
        return self._received == self.expected

    @property
    def data(self) -> bytes:
        """Everything received so far."""
        return bytes(self._view[:self._received])

    def __len__(self) -> int:
        return self._received
