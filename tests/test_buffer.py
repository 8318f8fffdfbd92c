"""
Tests for the echo buffers.
"""

import socket

import pytest
from sockecho.buffer import EchoBuffer, ResponseBuffer


@pytest.fixture
def sock_pair():
    a, b = socket.socketpair()
    yield a, b
    a.close()
    b.close()


class TestEchoBuffer:
    """Test server-side echo buffer."""

    def test_fill_and_view(self, sock_pair):
        """A read exposes exactly the bytes it produced."""
        a, b = sock_pair
        buf = EchoBuffer(capacity=512)

        a.sendall(b"hello world")
        count = buf.fill_from(b)
        assert count == 11
        assert buf.length == 11
        assert len(buf) == 11
        assert bytes(buf.view()) == b"hello world"

    def test_capacity_limits_read(self, sock_pair):
        """A single read never exceeds the buffer capacity."""
        a, b = sock_pair
        buf = EchoBuffer(capacity=4)

        a.sendall(b"abcdefgh")
        assert buf.fill_from(b) == 4
        assert bytes(buf.view()) == b"abcd"
        assert buf.fill_from(b) == 4
        assert bytes(buf.view()) == b"efgh"

    def test_reuse_shows_only_last_read(self, sock_pair):
        """A shorter second read does not expose stale bytes."""
        a, b = sock_pair
        buf = EchoBuffer(capacity=16)

        a.sendall(b"long message")
        buf.fill_from(b)
        a.sendall(b"hi")
        buf.fill_from(b)
        assert bytes(buf.view()) == b"hi"

    def test_peer_closed(self, sock_pair):
        a, b = sock_pair
        buf = EchoBuffer()

        a.close()
        assert buf.fill_from(b) == 0
        assert bytes(buf.view()) == b""

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            EchoBuffer(capacity=0)


class TestResponseBuffer:
    """Test client-side response buffer."""

    def test_initial_state(self):
        buf = ResponseBuffer(11)
        assert buf.expected == 11
        assert buf.received == 0
        assert buf.remaining == 11
        assert not buf.is_complete()
        assert buf.data == b""

    def test_next_request(self):
        """Requests never exceed what is still missing."""
        buf = ResponseBuffer(1000)
        assert buf.next_request(512) == 512
        assert buf.next_request(2000) == 1000

    def test_receive_in_chunks(self, sock_pair):
        """Chunks land one after another."""
        a, b = sock_pair
        buf = ResponseBuffer(11)

        a.sendall(b"hello world")
        assert buf.receive_from(b, 5) == 5
        assert buf.received == 5
        assert buf.remaining == 6
        assert buf.chunk(0) == b"hello"

        assert buf.receive_from(b, buf.next_request(512)) == 6
        assert buf.is_complete()
        assert buf.chunk(5) == b" world"
        assert buf.data == b"hello world"

    def test_request_capped_at_remaining(self, sock_pair):
        """Never reads past the expected length, even if more is pending."""
        a, b = sock_pair
        buf = ResponseBuffer(3)

        a.sendall(b"abcdef")
        assert buf.receive_from(b, 100) == 3
        assert buf.data == b"abc"
        assert buf.remaining == 0

        # The rest is still in the socket
        assert b.recv(10) == b"def"

    def test_wait_all_flag(self, sock_pair):
        a, b = sock_pair
        buf = ResponseBuffer(6)

        a.sendall(b"abc")
        a.sendall(b"def")
        assert buf.receive_from(b, 6, socket.MSG_WAITALL) == 6
        assert buf.data == b"abcdef"

    def test_peer_closed(self, sock_pair):
        a, b = sock_pair
        buf = ResponseBuffer(5)

        a.close()
        assert buf.receive_from(b, 5) == 0
        assert buf.received == 0

    def test_empty_message(self):
        buf = ResponseBuffer(0)
        assert buf.is_complete()
        assert buf.next_request(512) == 0

    def test_chunk_clamped_to_received(self, sock_pair):
        a, b = sock_pair
        buf = ResponseBuffer(10)

        a.sendall(b"abcd")
        buf.receive_from(b, 4)
        assert buf.chunk(2, 10) == b"cd"
        assert len(buf) == 4

    def test_invalid_expected(self):
        with pytest.raises(ValueError):
            ResponseBuffer(-1)
