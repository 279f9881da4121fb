"""
Tests for the length-prefixed framed channel.
"""

import os
import socket
import threading

import pytest

from shared.config import MAX_FRAME_SIZE
from shared.errors import TransportError
from shared.framing import LENGTH_PREFIX, recv_blob, recv_exact, send_blob


@pytest.fixture
def pair():
    a, b = socket.socketpair()
    yield a, b
    a.close()
    b.close()


class TestRoundTrip:
    """Payloads come out exactly as they went in."""

    def test_zero_length_payload(self, pair):
        a, b = pair
        send_blob(a, b"")
        assert recv_blob(b) == b""

    def test_payload_larger_than_socket_buffer(self, pair):
        a, b = pair
        payload = os.urandom(3 * 1024 * 1024 + 17)
        sender = threading.Thread(target=send_blob, args=(a, payload))
        sender.start()
        received = recv_blob(b)
        sender.join()
        assert received == payload

    def test_messages_keep_their_order(self, pair):
        a, b = pair
        for blob in (b"params", b"", b"public key"):
            send_blob(a, blob)
        assert [recv_blob(b) for _ in range(3)] == [b"params", b"", b"public key"]

    def test_prefix_is_eight_byte_little_endian(self, pair):
        a, b = pair
        send_blob(a, b"abc")
        raw = recv_exact(b, 11)
        assert raw[:8] == (3).to_bytes(8, "little")
        assert raw[8:] == b"abc"


class TestTransportFailures:
    """Short reads/writes abort with TransportError."""

    def test_peer_closes_inside_length_prefix(self, pair):
        a, b = pair
        a.sendall(b"\x05\x00")
        a.close()
        with pytest.raises(TransportError, match="2 of 8"):
            recv_blob(b)

    def test_peer_closes_inside_payload(self, pair):
        a, b = pair
        a.sendall(LENGTH_PREFIX.pack(10) + b"abc")
        a.close()
        with pytest.raises(TransportError, match="3 of 10"):
            recv_blob(b)

    def test_oversized_length_prefix_rejected(self, pair):
        a, b = pair
        a.sendall(LENGTH_PREFIX.pack(MAX_FRAME_SIZE + 1))
        with pytest.raises(TransportError, match="exceeds limit"):
            recv_blob(b)

    def test_send_on_closed_socket(self, pair):
        a, _ = pair
        a.close()
        with pytest.raises(TransportError):
            send_blob(a, b"payload")

    def test_send_to_vanished_peer(self, pair):
        a, b = pair
        b.close()
        with pytest.raises(TransportError):
            # more than the socket buffer, so the broken pipe surfaces
            send_blob(a, os.urandom(4 * 1024 * 1024))

    def test_receive_timeout(self, pair):
        _, b = pair
        b.settimeout(0.05)
        with pytest.raises(TransportError):
            recv_blob(b)
