# client/client.py
import enum
import logging
import os
import socket
import sys

import tenseal.sealapi as sealapi

# ------------------------------------------------------------------
# Ensure project root is on sys.path (for shared.config etc.)
# ------------------------------------------------------------------
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

# Local imports (since this file lives in client/)
from client.compare_fhe_plain import print_verification
from client.data_utils import BudgetInputs, collect_inputs
from client.fhe_encrypt import create_session, serialize_parameters, serialize_public_keys
from client.plain_budget import check_headroom
from client.report import BudgetReport, build_recommendation, render_report
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
from shared.errors import BudgetSessionError, InputValidationError
from shared.fixed_point import ensure_fits, from_scaled_integer, to_scaled_integer
from shared.framing import recv_blob, send_blob
from shared.protocol import INPUT_FIELDS, RESULT_FIELDS, key_blob_names
from shared.seal_io import seal_from_bytes, seal_to_bytes

logger = logging.getLogger(__name__)


class ClientState(enum.Enum):
    INIT = "init"
    CONTEXT_READY = "context_ready"
    KEYS_SENT = "keys_sent"
    INPUTS_ENCRYPTED = "inputs_encrypted"
    INPUTS_SENT = "inputs_sent"
    AWAITING_RESULTS = "awaiting_results"
    RESULTS_RECEIVED = "results_received"
    DECODED = "decoded"
    DONE = "done"
    FAILED = "failed"


class ClientSession:
    """
    Client half of one encrypted budget session.

    This is the only place a secret key lives. The session runs linearly from
    INIT to DONE; any transport, context or codec failure moves it to FAILED
    and is re-raised, and a new session has to start again from INIT.
    """

    def __init__(self, conn, params=None, scale_factor=SCALE_FACTOR, savings_rate=SAVINGS_RATE):
        self.conn = conn
        self.params = dict(FHE_PARAMS if params is None else params)
        self.scale_factor = scale_factor
        self.savings_rate = savings_rate
        self.state = ClientState.INIT
        self.failed_in = None
        self.crypto = None
        self.inputs = None
        self.warnings = []

    def _advance(self, state: ClientState) -> None:
        logger.debug("client session %s -> %s", self.state.value, state.value)
        self.state = state

    def run(self, inputs: BudgetInputs) -> BudgetReport:
        try:
            return self._run(inputs)
        except BudgetSessionError as e:
            logger.error("Session aborted in state %s: %s", self.state.value, e)
            self.failed_in = self.state
            self.state = ClientState.FAILED
            raise

    def _fit_to_slots(self, inputs: BudgetInputs) -> BudgetInputs:
        entries = list(inputs.income_entries) or [0]
        if len(entries) > self.crypto.slot_count:
            msg = (
                f"{len(entries)} income entries exceed {self.crypto.slot_count} plaintext slots; "
                f"only the first {self.crypto.slot_count} are included"
            )
            logger.warning(msg)
            self.warnings.append(msg)
            entries = entries[: self.crypto.slot_count]
        return BudgetInputs(
            income_entries=entries,
            essential_total=inputs.essential_total,
            non_essential_total=inputs.non_essential_total,
            savings_goal=inputs.savings_goal,
        )

    def _scaled(self, value) -> int:
        return ensure_fits(to_scaled_integer(value, self.scale_factor), self.crypto.plain_modulus)

    def _encode_inputs(self, inputs: BudgetInputs):
        """Serialized input blobs in INPUT_FIELDS order."""
        crypto = self.crypto
        income = [self._scaled(v) for v in inputs.income_entries]
        if crypto.rotation_keys:
            income_slots = income  # server sums the slots
        else:
            income_slots = crypto.broadcast(sum(income))

        slots = {
            "income": income_slots,
            "essential": crypto.broadcast(self._scaled(inputs.essential_total)),
            "non_essential": crypto.broadcast(self._scaled(inputs.non_essential_total)),
            "savings_goal": crypto.broadcast(self._scaled(inputs.savings_goal)),
        }
        blobs = []
        for field in INPUT_FIELDS:
            plaintext = crypto.encode(slots[field.name])
            payload = crypto.encrypt(plaintext) if field.encrypted else plaintext
            blobs.append(seal_to_bytes(payload))
        return blobs

    def _run(self, inputs: BudgetInputs) -> BudgetReport:
        self.crypto = create_session(self.params)
        inputs = self.inputs = self._fit_to_slots(inputs)
        # nothing goes on the wire unless every step of the computation fits
        check_headroom(inputs, self.crypto.plain_modulus, self.scale_factor, self.savings_rate)
        self._advance(ClientState.CONTEXT_READY)

        send_blob(self.conn, serialize_parameters(self.crypto))
        logger.info("Encryption parameters sent to server.")
        names = key_blob_names(self.crypto.rotation_keys)
        for name, blob in zip(names, serialize_public_keys(self.crypto)):
            send_blob(self.conn, blob)
            logger.info("Sent %s (%d bytes)", name, len(blob))
        self._advance(ClientState.KEYS_SENT)

        blobs = self._encode_inputs(inputs)
        self._advance(ClientState.INPUTS_ENCRYPTED)

        for field, blob in zip(INPUT_FIELDS, blobs):
            send_blob(self.conn, blob)
            logger.info("Sent %s %s (%d bytes)", "encrypted" if field.encrypted else "encoded", field.name, len(blob))
        self._advance(ClientState.INPUTS_SENT)
        self._advance(ClientState.AWAITING_RESULTS)

        received = []
        for field in RESULT_FIELDS:
            blob = recv_blob(self.conn)
            received.append(
                seal_from_bytes(sealapi.Ciphertext, self.crypto.seal_context, blob, field.name)
            )
            logger.info("Received encrypted %s (%d bytes)", field.name, len(blob))
        self._advance(ClientState.RESULTS_RECEIVED)

        values = {}
        for field, ct in zip(RESULT_FIELDS, received):
            slot0 = self.crypto.decrypt(ct)[0]
            values[field.name] = from_scaled_integer(slot0, self.scale_factor, field.scale_order)
        self._advance(ClientState.DECODED)

        report = BudgetReport(warnings=list(self.warnings), **values)
        report.recommendation = build_recommendation(report, inputs.non_essential_total, self.savings_rate)
        self._advance(ClientState.DONE)
        return report


def run_session(conn, inputs: BudgetInputs, **kwargs) -> BudgetReport:
    return ClientSession(conn, **kwargs).run(inputs)


def main() -> int:
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
    print_banner("Encrypted Financial Planning Tool - Client")

    try:
        inputs = collect_inputs()
    except InputValidationError as e:
        print(f"Input aborted: {e}")
        return 1

    print(f"\nAttempting to connect to server at {HOST}:{PORT}...")
    try:
        conn = socket.create_connection((HOST, PORT), timeout=SOCKET_TIMEOUT)
    except OSError as e:
        print(f"Connection failed ({e}). Ensure the server is running first.")
        return 1

    with conn:
        print("Connected to server!")
        session = ClientSession(conn)
        try:
            report = session.run(inputs)
        except BudgetSessionError as e:
            print(f"Session failed: {e}")
            return 1

    render_report(report)
    print_verification(report, session.inputs)
    print("\nClient-side decryption complete. Full FHE cycle demonstrated!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
