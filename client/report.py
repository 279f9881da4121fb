# client/report.py
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List

from shared.config import SAVINGS_RATE


@dataclass
class BudgetReport:
    total_income: float
    total_expenses: float
    net_income: float
    goal_difference: float
    savings_contribution: float
    recommendation: str = ""
    warnings: List[str] = field(default_factory=list)


def build_recommendation(report: BudgetReport, non_essential_total=Decimal("0"), savings_rate=SAVINGS_RATE) -> str:
    """Plain-language advice derived from the decrypted metrics (client-side only)."""
    rate_pct = f"{Decimal(str(savings_rate)) * 100:.0f}%"
    lines = []
    if report.net_income < 0:
        lines.append(
            f"Your expenses exceed your income by {-report.net_income:,.2f}; "
            "there is nothing left to save this period."
        )
    if report.goal_difference >= 0:
        lines.append(
            f"On track: your net income covers the savings goal with {report.goal_difference:,.2f} to spare."
        )
    else:
        shortfall = -report.goal_difference
        lines.append(f"Savings shortfall: you are {shortfall:,.2f} short of your goal.")
        if float(non_essential_total) >= shortfall:
            lines.append(
                f"Cutting non-essential spending ({float(non_essential_total):,.2f}) "
                f"by {shortfall:,.2f} would close the gap."
            )
        else:
            lines.append("Non-essential cuts alone cannot close the gap; consider lowering the goal.")
    lines.append(f"Setting aside {rate_pct} of income would save {report.savings_contribution:,.2f}.")
    return "\n".join(lines)


def render_report(report: BudgetReport, output_fn=print) -> None:
    output_fn("\n--- Decrypted budget results ---")
    output_fn(f"  Total income         : {report.total_income:>14,.2f}")
    output_fn(f"  Total expenses       : {report.total_expenses:>14,.2f}")
    output_fn(f"  Net income           : {report.net_income:>14,.2f}")
    output_fn(f"  Goal difference      : {report.goal_difference:>14,.2f}")
    output_fn(f"  Savings contribution : {report.savings_contribution:>14,.4f}")
    for warning in report.warnings:
        output_fn(f"Warning: {warning}")
    if report.recommendation:
        output_fn("\n--- Recommendation ---")
        output_fn(report.recommendation)
