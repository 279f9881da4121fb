# shared/fixed_point.py
"""
Fixed-point encoding of money values for the integer (BFV) plaintext space.

A decimal amount v is carried as round(v * f) where f is the scale factor.
Every value also has a *scale order*: how many times f has been applied.

    encode(v)            -> order 1
    a + b, a - b         -> orders must match, result keeps that order
    a * b                -> order(a) + order(b)

Decoding divides by f ** order, so the order has to be tracked explicitly
through every homomorphic step; the scheme itself cannot tell 1500.75 at
order 1 apart from 15.0075 at order 2.

Rounding is half away from zero (decimal.ROUND_HALF_UP), e.g. 0.125 -> 13
and -0.125 -> -13 at f=100.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, DecimalException, InvalidOperation
from typing import Any

from shared.config import SCALE_FACTOR
from shared.errors import PlaintextOverflowError, ScaleMismatchError

ROUNDING = ROUND_HALF_UP


def _as_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # str() keeps 0.15 as 0.15 instead of 0.1499999999999999944...
        return Decimal(str(value))
    return Decimal(value)


def _check_scale_factor(scale_factor: int) -> int:
    if int(scale_factor) != scale_factor or scale_factor < 1:
        raise ValueError(f"scale factor must be a positive integer, got {scale_factor!r}")
    return int(scale_factor)


def to_scaled_integer(value, scale_factor: int = SCALE_FACTOR) -> int:
    """Return round(value * scale_factor) as an int (half away from zero)."""
    scale_factor = _check_scale_factor(scale_factor)
    try:
        d = _as_decimal(value)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise ValueError(f"cannot scale non-numeric value {value!r}") from e
    if not d.is_finite():
        raise ValueError(f"cannot scale non-finite value {value!r}")
    try:
        return int((d * scale_factor).to_integral_value(rounding=ROUNDING))
    except DecimalException as e:
        # e.g. 1e999999 is finite but its scaled form exceeds the decimal context
        raise PlaintextOverflowError(f"{value!r} is too large to scale by {scale_factor}") from e


def from_scaled_integer(integer: int, scale_factor: int = SCALE_FACTOR, scale_order: int = 1) -> float:
    """Undo the scaling: integer / scale_factor ** scale_order (float division)."""
    scale_factor = _check_scale_factor(scale_factor)
    if scale_order < 0:
        raise ScaleMismatchError(f"scale order cannot be negative: {scale_order}")
    return int(integer) / float(scale_factor ** scale_order)


def max_slot_magnitude(plain_modulus: int) -> int:
    """Largest |v| a batched slot can hold without wrapping (signed encoding)."""
    return (plain_modulus - 1) // 2


def ensure_fits(scaled: int, plain_modulus: int, what: str = "value") -> int:
    """Reject scaled integers that would silently wrap modulo the plain modulus."""
    limit = max_slot_magnitude(plain_modulus)
    if abs(scaled) > limit:
        raise PlaintextOverflowError(
            f"{what} scales to {scaled}, outside the plaintext range +/-{limit}"
        )
    return scaled


@dataclass(frozen=True)
class Scaled:
    """A payload (ciphertext, plaintext or int) tagged with its scale order."""

    payload: Any
    order: int = 1


def encode_scaled(value, scale_factor: int = SCALE_FACTOR) -> Scaled:
    return Scaled(to_scaled_integer(value, scale_factor), 1)


def sum_order(lhs: Scaled, rhs: Scaled) -> int:
    """Scale order of lhs +/- rhs; the operands must agree."""
    if lhs.order != rhs.order:
        raise ScaleMismatchError(
            f"cannot add/subtract scale order {lhs.order} and scale order {rhs.order}"
        )
    return lhs.order


def product_order(lhs: Scaled, rhs: Scaled) -> int:
    return lhs.order + rhs.order


def decode_scaled(value: Scaled, scale_factor: int = SCALE_FACTOR) -> float:
    return from_scaled_integer(value.payload, scale_factor, value.order)
