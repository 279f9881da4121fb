# shared/framing.py
"""
Length-prefixed framing over a stream socket.

Each message on the wire is:

    [8-byte unsigned length, little-endian][length bytes of opaque payload]

The prefix matches what a native ``size_t`` looks like on x86-64, so the
framing stays byte-compatible with peers that write the raw integer.
"""

import logging
import socket
import struct

from shared.config import MAX_FRAME_SIZE
from shared.errors import TransportError

logger = logging.getLogger(__name__)

LENGTH_PREFIX = struct.Struct("<Q")


def send_blob(conn: socket.socket, payload: bytes) -> None:
    """Send one framed message; raise TransportError unless it fully went out."""
    payload = bytes(payload)
    try:
        conn.sendall(LENGTH_PREFIX.pack(len(payload)))
        if payload:
            conn.sendall(payload)
    except OSError as e:
        raise TransportError(f"send of {len(payload)}-byte frame failed: {e}") from e
    logger.debug("sent frame of %d bytes", len(payload))


def recv_exact(conn: socket.socket, size: int) -> bytes:
    """Block until exactly ``size`` bytes arrived (read-until-full)."""
    buf = bytearray(size)
    view = memoryview(buf)
    got = 0
    while got < size:
        try:
            n = conn.recv_into(view[got:], size - got)
        except OSError as e:
            raise TransportError(f"receive failed after {got} of {size} bytes: {e}") from e
        if n == 0:
            raise TransportError(f"connection closed after {got} of {size} bytes")
        got += n
    return bytes(buf)


def recv_blob(conn: socket.socket) -> bytes:
    """Receive one framed message and return its payload."""
    (size,) = LENGTH_PREFIX.unpack(recv_exact(conn, LENGTH_PREFIX.size))
    if size > MAX_FRAME_SIZE:
        raise TransportError(
            f"declared frame length {size} exceeds limit of {MAX_FRAME_SIZE} bytes"
        )
    logger.debug("receiving frame of %d bytes", size)
    if size == 0:
        return b""
    return recv_exact(conn, size)
