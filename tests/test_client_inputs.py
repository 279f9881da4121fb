"""
Tests for interactive input handling, plaintext budget math and the report.
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from client.data_utils import (
    BudgetInputs,
    collect_inputs,
    parse_decimal,
    prompt_amount,
    prompt_entries,
)
from client.plain_budget import check_headroom, plain_budget, plain_values
from client.report import BudgetReport, build_recommendation, render_report
from shared.console import print_banner
from shared.errors import InputValidationError, PlaintextOverflowError


def scripted(*answers):
    """input() replacement that replays answers, then signals EOF."""
    queue = list(answers)

    def _input(prompt=""):
        if not queue:
            raise EOFError
        return queue.pop(0)

    return _input


class TestParsing:
    def test_accepts_plain_and_grouped_numbers(self):
        assert parse_decimal("1500.75") == Decimal("1500.75")
        assert parse_decimal(" 1,250.00 ") == Decimal("1250.00")
        assert parse_decimal("-3") == Decimal("-3")

    @pytest.mark.parametrize("text", ["", "   ", "abc", "12.3.4", "nan", "Infinity"])
    def test_rejects_unusable_text(self, text):
        with pytest.raises(InputValidationError):
            parse_decimal(text)


class TestPrompts:
    def test_entries_until_done_skipping_invalid(self):
        messages = []
        entries = prompt_entries("Income", scripted("100", "oops", "25.5", "DONE", "999"), messages.append)
        assert entries == [Decimal("100"), Decimal("25.5")]
        assert len(messages) == 1 and "Invalid input" in messages[0]

    def test_entries_end_at_eof(self):
        assert prompt_entries("Income", scripted("7"), lambda *_: None) == [Decimal("7")]

    def test_amount_reprompts_until_valid(self):
        assert prompt_amount("Goal", scripted("", "x", "500"), lambda *_: None) == Decimal("500")

    def test_amount_without_input_aborts(self):
        with pytest.raises(InputValidationError):
            prompt_amount("Goal", scripted(), lambda *_: None)

    def test_collect_inputs_totals_expenses(self):
        answers = scripted(
            "1500.75", "250", "done",
            "400", "50.50", "done",
            "120", "done",
            "500",
        )
        inputs = collect_inputs(answers, lambda *_: None)
        assert inputs.income_entries == [Decimal("1500.75"), Decimal("250")]
        assert inputs.essential_total == Decimal("450.50")
        assert inputs.non_essential_total == Decimal("120")
        assert inputs.savings_goal == Decimal("500")

    def test_no_income_means_zero_income(self):
        inputs = collect_inputs(scripted("done", "done", "done", "0"), lambda *_: None)
        assert inputs.income_entries == [Decimal("0")]
        assert inputs.essential_total == 0


class TestPlainBudget:
    def test_reference_values(self):
        inputs = BudgetInputs([Decimal("1500.75")], Decimal("450.50"), Decimal("120.00"), Decimal("500"))
        values = plain_values(inputs)
        assert values["total_income"] == pytest.approx(1500.75)
        assert values["net_income"] == pytest.approx(930.25)
        assert values["goal_difference"] == pytest.approx(430.25)
        assert values["savings_contribution"] == pytest.approx(225.1125)
        assert plain_budget(inputs)["savings_contribution"].order == 2

    def test_headroom_rejects_products_that_wrap(self):
        inputs = BudgetInputs([Decimal("100")], Decimal("0"), Decimal("0"), Decimal("0"))
        # 10000 fits a modulus of 40001, 10000 * 15 does not
        check_headroom(inputs, 10 ** 9)
        with pytest.raises(PlaintextOverflowError, match="savings contribution"):
            check_headroom(inputs, 40001)


class TestSlotTruncation:
    def test_extra_income_entries_are_dropped_with_warning(self):
        pytest.importorskip("tenseal")
        from client.client import ClientSession

        session = ClientSession(None)
        session.crypto = SimpleNamespace(slot_count=4)
        inputs = BudgetInputs([Decimal(i) for i in range(6)], Decimal("1"), Decimal("2"), Decimal("3"))
        fitted = session._fit_to_slots(inputs)
        assert fitted.income_entries == [Decimal(i) for i in range(4)]
        assert fitted.savings_goal == Decimal("3")
        assert len(session.warnings) == 1
        assert "6 income entries" in session.warnings[0]


class TestRecommendation:
    def _report(self, net, diff, savings=150.0):
        return BudgetReport(
            total_income=1000.0,
            total_expenses=1000.0 - net,
            net_income=net,
            goal_difference=diff,
            savings_contribution=savings,
        )

    def test_on_track(self):
        text = build_recommendation(self._report(930.25, 430.25))
        assert text.startswith("On track")
        assert "430.25 to spare" in text
        assert "Setting aside 15% of income would save 150.00" in text

    def test_shortfall_closable_by_cuts(self):
        text = build_recommendation(self._report(100, -50), Decimal("120"))
        assert "50.00 short of your goal" in text
        assert "Cutting non-essential spending (120.00) by 50.00" in text

    def test_overspending_and_unclosable_gap(self):
        text = build_recommendation(self._report(-200, -400), Decimal("300"))
        assert text.startswith("Your expenses exceed your income by 200.00")
        assert "cannot close the gap" in text

    def test_render_includes_warnings(self):
        report = self._report(10, 5)
        report.warnings = ["only the first 4 are included"]
        report.recommendation = "On track"
        lines = []
        render_report(report, lines.append)
        assert any(line.startswith("Warning: only the first 4") for line in lines)
        assert lines[-1] == "On track"


class TestBanner:
    def test_banner_frames_the_title(self):
        lines = []
        print_banner("Encrypted Financial Planning Tool - Client", lambda *a: lines.append(a[0] if a else ""))
        assert lines == ["", "=" * 79, "= Encrypted Financial Planning Tool - Client", "-" * 79]
