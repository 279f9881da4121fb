# client/data_utils.py
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import List

from shared.errors import InputValidationError

DONE = "done"


@dataclass
class BudgetInputs:
    income_entries: List[Decimal] = field(default_factory=list)
    essential_total: Decimal = Decimal("0")
    non_essential_total: Decimal = Decimal("0")
    savings_goal: Decimal = Decimal("0")


def parse_decimal(text) -> Decimal:
    """
    Parse a money amount typed by the user.
    Raises InputValidationError for empty, non-numeric, NaN or infinite text.
    """
    cleaned = str(text).strip().replace(",", "")
    if not cleaned:
        raise InputValidationError("empty amount")
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        raise InputValidationError(f"not a number: {text!r}") from None
    if not value.is_finite():
        raise InputValidationError(f"amount must be finite: {text!r}")
    return value


def prompt_entries(label: str, input_fn=input, output_fn=print) -> List[Decimal]:
    """Read amounts until the user types 'done' (or input ends)."""
    entries = []
    while True:
        try:
            text = input_fn(f"{label} amount (or '{DONE}'): ")
        except EOFError:
            break
        if text.strip().lower() == DONE:
            break
        try:
            entries.append(parse_decimal(text))
        except InputValidationError as e:
            output_fn(f"Invalid input ({e}). Please enter a number or '{DONE}'.")
    return entries


def prompt_amount(label: str, input_fn=input, output_fn=print) -> Decimal:
    """Read a single amount, re-prompting until it parses."""
    while True:
        try:
            text = input_fn(f"{label}: ")
        except EOFError:
            raise InputValidationError(f"no value entered for {label}") from None
        try:
            return parse_decimal(text)
        except InputValidationError as e:
            output_fn(f"Invalid input ({e}). Please enter a number.")


def collect_inputs(input_fn=input, output_fn=print) -> BudgetInputs:
    output_fn("\n--- Enter your financial data ---")
    output_fn("Enter income sources (e.g., 1500.75, 250.00, 75.20). Type 'done' when finished:")
    income = prompt_entries("Income", input_fn, output_fn)

    output_fn("\nEnter essential expenses (rent, groceries, ...). Type 'done' when finished:")
    essential = prompt_entries("Essential expense", input_fn, output_fn)

    output_fn("\nEnter non-essential expenses (dining out, ...). Type 'done' when finished:")
    non_essential = prompt_entries("Non-essential expense", input_fn, output_fn)

    goal = prompt_amount("\nSavings goal for this period", input_fn, output_fn)

    return BudgetInputs(
        income_entries=income or [Decimal("0")],
        essential_total=sum(essential, Decimal("0")),
        non_essential_total=sum(non_essential, Decimal("0")),
        savings_goal=goal,
    )
