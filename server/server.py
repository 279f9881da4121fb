# server/server.py
import enum
import logging
import os
import socket
import sys

# ------------------------------------------------------------------
# Ensure project root is on sys.path (for shared.config etc.)
# ------------------------------------------------------------------
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from server.fhe_logic import (
    adopt_context,
    adopt_keys,
    evaluate_budget,
    load_ciphertext,
    load_plaintext,
    serialize_results,
)
from shared.config import (
    FHE_PARAMS,
    HOST,
    LOG_FORMAT,
    LOG_LEVEL,
    PORT,
    SAVINGS_RATE,
    SCALE_FACTOR,
    SOCKET_TIMEOUT,
)
from shared.console import print_banner
from shared.errors import BudgetSessionError
from shared.fixed_point import Scaled, to_scaled_integer
from shared.framing import recv_blob, send_blob
from shared.protocol import INPUT_FIELDS, key_blob_names

logger = logging.getLogger(__name__)


class ServerState(enum.Enum):
    LISTENING = "listening"
    CONTEXT_ADOPTED = "context_adopted"
    KEYS_ADOPTED = "keys_adopted"
    INPUTS_RECEIVED = "inputs_received"
    EVALUATED = "evaluated"
    RESULTS_SENT = "results_sent"
    DONE = "done"
    FAILED = "failed"


class ServerSession:
    """
    One encrypted budget session on an accepted connection.

    Owns its adopted context and keys; nothing cryptographic is shared
    between sessions, so separate sessions may run on separate threads.
    Any error moves the session to FAILED and is re-raised: there is no
    resuming half-received key or ciphertext state.
    """

    def __init__(self, conn, params=None, scale_factor=SCALE_FACTOR, savings_rate=SAVINGS_RATE):
        if to_scaled_integer(savings_rate, scale_factor) == 0:
            raise ValueError(f"savings rate {savings_rate} scales to zero at factor {scale_factor}")
        self.conn = conn
        self.params = dict(FHE_PARAMS if params is None else params)
        self.scale_factor = scale_factor
        self.savings_rate = savings_rate
        self.state = ServerState.LISTENING
        self.failed_in = None
        self.adopted = None

    def _advance(self, state: ServerState) -> None:
        logger.debug("server session %s -> %s", self.state.value, state.value)
        self.state = state

    def serve(self) -> int:
        """Run the session to completion; returns the number of result blobs sent."""
        try:
            return self._serve()
        except BudgetSessionError as e:
            logger.error("Session aborted in state %s: %s", self.state.value, e)
            self.failed_in = self.state
            self.state = ServerState.FAILED
            raise

    def _serve(self) -> int:
        parameter_bytes = recv_blob(self.conn)
        self.adopted = adopt_context(parameter_bytes)
        self._advance(ServerState.CONTEXT_ADOPTED)

        key_blobs = {}
        for name in key_blob_names(self.params.get("rotation_keys", False)):
            key_blobs[name] = recv_blob(self.conn)
            logger.info("Received %s (%d bytes)", name, len(key_blobs[name]))
        adopt_keys(
            self.adopted,
            key_blobs["public_key"],
            key_blobs["relin_keys"],
            key_blobs.get("galois_keys"),
        )
        self._advance(ServerState.KEYS_ADOPTED)

        inputs = {}
        for field in INPUT_FIELDS:
            blob = recv_blob(self.conn)
            if field.encrypted:
                payload = load_ciphertext(self.adopted, blob, field.name)
            else:
                payload = load_plaintext(self.adopted, blob, field.name)
            # every input leaves the client at scale order 1
            inputs[field.name] = Scaled(payload, 1)
            logger.info("Received %s (%d bytes)", field.name, len(blob))
        self._advance(ServerState.INPUTS_RECEIVED)

        results = evaluate_budget(self.adopted, inputs, self.scale_factor, self.savings_rate)
        blobs = serialize_results(results)
        self._advance(ServerState.EVALUATED)

        for (field, _), blob in zip(results, blobs):
            send_blob(self.conn, blob)
            logger.info("Sent encrypted %s (%d bytes)", field.name, len(blob))
        self._advance(ServerState.RESULTS_SENT)

        self._advance(ServerState.DONE)
        return len(blobs)


def serve_session(conn, **kwargs) -> int:
    return ServerSession(conn, **kwargs).serve()


def main() -> int:
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
    print_banner("Encrypted Financial Planning Tool - Server")

    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    with listener:
        try:
            listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            listener.bind((HOST, PORT))
            listener.listen(1)
        except OSError as e:
            logger.error("Could not listen on %s:%d: %s", HOST, PORT, e)
            return 1

        print(f"Server listening on {HOST}:{PORT}")
        print("Waiting for client connection...")
        try:
            conn, addr = listener.accept()
        except OSError as e:
            logger.error("accept failed: %s", e)
            return 1
        with conn:
            conn.settimeout(SOCKET_TIMEOUT)
            print(f"Client connected from {addr[0]}:{addr[1]}")
            try:
                sent = serve_session(conn)
            except BudgetSessionError as e:
                print(f"Session failed: {e}")
                return 1

    print(f"\nServer-side operations complete. {sent} encrypted results sent to client.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
