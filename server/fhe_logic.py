# server/fhe_logic.py
"""
Homomorphic evaluation logic for encrypted budget metrics.

The server rebuilds the client's BFV context from the received parameters,
loads the evaluation keys against it and evaluates:

    total_income         = sum of income slots (rotate-and-add)
    total_expenses       = essential + non_essential
    net_income           = total_income - total_expenses
    goal_difference      = net_income - savings_goal          (plaintext goal)
    savings_contribution = total_income * savings_rate        (scale order 2)

It never holds a secret key and never decodes anything it receives.
"""

import logging
from typing import Dict, List, Optional, Tuple

import tenseal as ts
import tenseal.sealapi as sealapi

from shared.config import SAVINGS_RATE, SCALE_FACTOR
from shared.errors import ContextMismatchError, ScaleMismatchError
from shared.fixed_point import Scaled, product_order, sum_order, to_scaled_integer
from shared.protocol import RESULT_FIELDS, ResultField
from shared.seal_io import seal_from_bytes, seal_to_bytes

logger = logging.getLogger(__name__)


class AdoptedContext:
    """Server-side view of one session: public parameters and evaluation keys."""

    def __init__(self, ts_ctx):
        self.ts_ctx = ts_ctx
        self.seal_context = ts_ctx.seal_context().data
        self.evaluator = sealapi.Evaluator(self.seal_context)
        self.encoder = sealapi.BatchEncoder(self.seal_context)
        self.slot_count = self.encoder.slot_count()
        self.public_key = None
        self.relin_keys = None
        self.galois_keys = None


def adopt_context(parameter_bytes: bytes) -> AdoptedContext:
    """Rebuild the client's context from serialized parameters."""
    if not parameter_bytes:
        raise ContextMismatchError("empty encryption parameter blob")
    try:
        ts_ctx = ts.context_from(parameter_bytes)
    except (ValueError, RuntimeError, TypeError) as e:
        raise ContextMismatchError(f"could not load encryption parameters: {e}") from e

    if ts_ctx.has_secret_key():
        raise ContextMismatchError("received parameters carry a secret key; refusing them")
    if not ts_ctx.seal_context().data.parameters_set():
        raise ContextMismatchError("received encryption parameters are not valid")

    try:
        adopted = AdoptedContext(ts_ctx)
    except (ValueError, RuntimeError) as e:
        raise ContextMismatchError(f"received parameters do not support batching: {e}") from e

    logger.info("Context adopted from %d parameter bytes (%d slots)", len(parameter_bytes), adopted.slot_count)
    return adopted


def adopt_keys(
    adopted: AdoptedContext,
    public_key_bytes: bytes,
    relin_key_bytes: bytes,
    galois_key_bytes: Optional[bytes] = None,
) -> AdoptedContext:
    """Load each public key against the adopted context; mismatches are fatal."""
    adopted.public_key = seal_from_bytes(
        sealapi.PublicKey, adopted.seal_context, public_key_bytes, "public key"
    )
    adopted.relin_keys = seal_from_bytes(
        sealapi.RelinKeys, adopted.seal_context, relin_key_bytes, "relinearization keys"
    )
    if galois_key_bytes is not None:
        adopted.galois_keys = seal_from_bytes(
            sealapi.GaloisKeys, adopted.seal_context, galois_key_bytes, "galois keys"
        )
    return adopted


def adopt_session(
    parameter_bytes: bytes,
    public_key_bytes: bytes,
    relin_key_bytes: bytes,
    galois_key_bytes: Optional[bytes] = None,
) -> AdoptedContext:
    adopted = adopt_context(parameter_bytes)
    return adopt_keys(adopted, public_key_bytes, relin_key_bytes, galois_key_bytes)


def load_ciphertext(adopted: AdoptedContext, data: bytes, what: str = "ciphertext"):
    return seal_from_bytes(sealapi.Ciphertext, adopted.seal_context, data, what)


def load_plaintext(adopted: AdoptedContext, data: bytes, what: str = "plaintext"):
    return seal_from_bytes(sealapi.Plaintext, adopted.seal_context, data, what)


class FixedPointEvaluator:
    """sealapi.Evaluator with scale-order bookkeeping on every operation.

    Order checks run before the SEAL call: the scheme itself happily adds
    values at different scales and returns a meaningless plaintext.
    """

    def __init__(self, adopted: AdoptedContext, scale_factor: int = SCALE_FACTOR):
        self.adopted = adopted
        self.evaluator = adopted.evaluator
        self.scale_factor = scale_factor

    def add(self, lhs: Scaled, rhs: Scaled) -> Scaled:
        order = sum_order(lhs, rhs)
        out = sealapi.Ciphertext()
        self.evaluator.add(lhs.payload, rhs.payload, out)
        return Scaled(out, order)

    def sub(self, lhs: Scaled, rhs: Scaled) -> Scaled:
        order = sum_order(lhs, rhs)
        out = sealapi.Ciphertext()
        self.evaluator.sub(lhs.payload, rhs.payload, out)
        return Scaled(out, order)

    def add_plain(self, lhs: Scaled, rhs: Scaled) -> Scaled:
        order = sum_order(lhs, rhs)
        out = sealapi.Ciphertext()
        self.evaluator.add_plain(lhs.payload, rhs.payload, out)
        return Scaled(out, order)

    def sub_plain(self, lhs: Scaled, rhs: Scaled) -> Scaled:
        order = sum_order(lhs, rhs)
        out = sealapi.Ciphertext()
        self.evaluator.sub_plain(lhs.payload, rhs.payload, out)
        return Scaled(out, order)

    def multiply_plain(self, lhs: Scaled, rhs: Scaled) -> Scaled:
        order = product_order(lhs, rhs)
        out = sealapi.Ciphertext()
        self.evaluator.multiply_plain(lhs.payload, rhs.payload, out)
        return Scaled(out, order)

    def relinearize(self, value: Scaled) -> Scaled:
        # multiply_plain keeps size 2; only ciphertext products grow it
        if value.payload.size() <= 2:
            return value
        out = sealapi.Ciphertext()
        self.evaluator.relinearize(value.payload, self.adopted.relin_keys, out)
        return Scaled(out, value.order)

    def sum_slots(self, value: Scaled) -> Scaled:
        """Total of all slots, broadcast to every slot.

        BFV batching lays slots out as a 2 x (N/2) matrix: log2(N/2) row
        rotations by powers of two sum each row, one column swap adds the rows.
        """
        gk = self.adopted.galois_keys
        if gk is None:
            raise ContextMismatchError("summing slots requires galois keys")
        acc = value.payload
        row_size = self.adopted.slot_count // 2
        step = 1
        while step < row_size:
            rotated = sealapi.Ciphertext()
            self.evaluator.rotate_rows(acc, step, gk, rotated)
            summed = sealapi.Ciphertext()
            self.evaluator.add(acc, rotated, summed)
            acc = summed
            step *= 2
        swapped = sealapi.Ciphertext()
        self.evaluator.rotate_columns(acc, gk, swapped)
        total = sealapi.Ciphertext()
        self.evaluator.add(acc, swapped, total)
        return Scaled(total, value.order)

    def encode_constant(self, value) -> Scaled:
        """Encode a public decimal constant into every slot at scale order 1."""
        scaled = to_scaled_integer(value, self.scale_factor)
        pt = sealapi.Plaintext()
        self.adopted.encoder.encode([scaled] * self.adopted.slot_count, pt)
        return Scaled(pt, 1)


def evaluate_budget(
    adopted: AdoptedContext,
    inputs: Dict[str, Scaled],
    scale_factor: int = SCALE_FACTOR,
    savings_rate=SAVINGS_RATE,
) -> List[Tuple[ResultField, Scaled]]:
    """
    Evaluate the agreed budget expression on encrypted inputs.

    Args:
        adopted: context with keys loaded (galois keys optional)
        inputs: "income", "essential", "non_essential" ciphertexts and the
            "savings_goal" plaintext, all at scale order 1

    Returns:
        (field, value) pairs in RESULT_FIELDS order
    """
    ev = FixedPointEvaluator(adopted, scale_factor)

    if adopted.galois_keys is not None:
        total_income = ev.sum_slots(inputs["income"])
    else:
        # client already packed its income total into every slot
        total_income = inputs["income"]

    total_expenses = ev.add(inputs["essential"], inputs["non_essential"])
    net_income = ev.sub(total_income, total_expenses)
    goal_difference = ev.sub_plain(net_income, inputs["savings_goal"])

    rate = ev.encode_constant(savings_rate)
    savings_contribution = ev.relinearize(ev.multiply_plain(total_income, rate))

    computed = {
        "total_income": total_income,
        "total_expenses": total_expenses,
        "net_income": net_income,
        "goal_difference": goal_difference,
        "savings_contribution": savings_contribution,
    }
    results = []
    for field in RESULT_FIELDS:
        value = computed[field.name]
        if value.order != field.scale_order:
            raise ScaleMismatchError(
                f"{field.name} evaluated at scale order {value.order}, "
                f"protocol declares {field.scale_order}"
            )
        results.append((field, value))
    logger.info("Evaluated %d encrypted budget metrics", len(results))
    return results


def serialize_results(results: List[Tuple[ResultField, Scaled]]) -> List[bytes]:
    return [seal_to_bytes(value.payload) for _, value in results]
