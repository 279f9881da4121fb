# client/plain_budget.py
from typing import Dict, List

from shared.config import SAVINGS_RATE, SCALE_FACTOR
from shared.fixed_point import (
    Scaled,
    decode_scaled,
    encode_scaled,
    ensure_fits,
    product_order,
    sum_order,
)


def _add(a: Scaled, b: Scaled) -> Scaled:
    return Scaled(a.payload + b.payload, sum_order(a, b))


def _sub(a: Scaled, b: Scaled) -> Scaled:
    return Scaled(a.payload - b.payload, sum_order(a, b))


def plain_budget(inputs, scale_factor: int = SCALE_FACTOR, savings_rate=SAVINGS_RATE) -> Dict[str, Scaled]:
    """
    The server's expression evaluated on plaintext scaled integers.

    Mirrors evaluate_budget step for step (same rounding, same scale orders),
    so it predicts the decrypted slot values exactly.
    """
    income = [encode_scaled(v, scale_factor) for v in inputs.income_entries]
    total_income = Scaled(0, 1)
    for v in income:
        total_income = _add(total_income, v)

    essential = encode_scaled(inputs.essential_total, scale_factor)
    non_essential = encode_scaled(inputs.non_essential_total, scale_factor)
    goal = encode_scaled(inputs.savings_goal, scale_factor)
    rate = encode_scaled(savings_rate, scale_factor)

    total_expenses = _add(essential, non_essential)
    net_income = _sub(total_income, total_expenses)
    return {
        "total_income": total_income,
        "total_expenses": total_expenses,
        "net_income": net_income,
        "goal_difference": _sub(net_income, goal),
        "savings_contribution": Scaled(total_income.payload * rate.payload, product_order(total_income, rate)),
    }


def plain_values(inputs, scale_factor: int = SCALE_FACTOR, savings_rate=SAVINGS_RATE) -> Dict[str, float]:
    return {
        name: decode_scaled(value, scale_factor)
        for name, value in plain_budget(inputs, scale_factor, savings_rate).items()
    }


def check_headroom(inputs, plain_modulus: int, scale_factor: int = SCALE_FACTOR, savings_rate=SAVINGS_RATE) -> None:
    """
    Refuse inputs whose scaled values, or any intermediate of the server's
    computation, would wrap around the plaintext modulus.
    """
    income: List[int] = [encode_scaled(v, scale_factor).payload for v in inputs.income_entries]
    for v in income:
        ensure_fits(v, plain_modulus, "income entry")
    # rotate-and-add partial sums are bounded by the absolute total
    ensure_fits(sum(abs(v) for v in income), plain_modulus, "absolute income total")
    ensure_fits(encode_scaled(inputs.essential_total, scale_factor).payload, plain_modulus, "essential total")
    ensure_fits(encode_scaled(inputs.non_essential_total, scale_factor).payload, plain_modulus, "non-essential total")
    ensure_fits(encode_scaled(inputs.savings_goal, scale_factor).payload, plain_modulus, "savings goal")
    for name, value in plain_budget(inputs, scale_factor, savings_rate).items():
        ensure_fits(value.payload, plain_modulus, name.replace("_", " "))
