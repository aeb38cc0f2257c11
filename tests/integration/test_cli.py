"""Integration tests for the CLI — full pipeline from inputs to comparison."""
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation

import pytest
from click.testing import CliRunner

from mortgage_compare.calculator import round_cents
from mortgage_compare.cli import _fmt_years, main, parse_horizon, parse_strategy_spec
from mortgage_compare.comparison import build_overview, build_schedule_comparison
from mortgage_compare.strategies import StrategyInputs, StrategySession


# ──────────────────────────────────────────────────────────────────────────────
# Full pipeline tests (no CLI runner — direct function call)
# ──────────────────────────────────────────────────────────────────────────────

class TestRefinanceVsBuydownPipeline:
    """$300,000 at 6 % over 30 years: fixed refinance vs. 2-1 buydown costing $6,000."""

    def _session(self) -> StrategySession:
        session = StrategySession()
        session.add(StrategyInputs(
            kind="fixed", loan_amount=Decimal("300000"), annual_rate=Decimal("6"),
        ))
        session.add(StrategyInputs(
            kind="buydown-2-1", loan_amount=Decimal("300000"), annual_rate=Decimal("6"),
            buydown_cost=Decimal("6000"),
        ))
        return session

    def test_overview_payments(self):
        fixed, buydown = build_overview(self._session().strategies).entries
        assert round_cents(fixed.display_payment) == Decimal("1798.65")
        assert round_cents(buydown.display_payment) == Decimal("1432.25")

    def test_buydown_total_cost_includes_fee(self):
        _, buydown = build_overview(self._session().strategies).entries
        assert buydown.totals.total_cost == buydown.totals.total_payments + Decimal("6000")

    def test_monthly_savings_shrink_as_rate_steps_up(self):
        comparison = build_schedule_comparison(self._session().strategies, 36)
        savings = [row.cells[1].savings for row in comparison.rows]
        assert all(s > 0 for s in savings)
        assert savings[0] > savings[12] > savings[24]


class TestParsing:
    def test_fixed_spec(self):
        inputs = parse_strategy_spec("fixed:300,000:6.5")
        assert inputs.kind == "fixed"
        assert inputs.loan_amount == Decimal("300000")
        assert inputs.annual_rate == Decimal("6.5")
        assert inputs.term_years == 30

    def test_buydown_spec_with_cost(self):
        inputs = parse_strategy_spec("buydown-2-1:300000:6:30:125:6000")
        assert inputs.monthly_pmi == Decimal("125")
        assert inputs.buydown_cost == Decimal("6000")

    def test_current_spec_with_start_date(self):
        inputs = parse_strategy_spec("current:250000:3.25:30:0:2019-04-15")
        assert inputs.loan_start_date == date(2019, 4, 15)

    @pytest.mark.parametrize("spec", [
        "fixed:300000",
        "balloon:300000:6",
        "fixed:abc:6",
        "current:300000:6:30:0:not-a-date",
    ])
    def test_invalid_spec(self, spec):
        with pytest.raises(ValueError):
            parse_strategy_spec(spec)

    def test_horizon(self):
        assert parse_horizon("FULL") == "full"
        assert parse_horizon(" 36 ") == 36
        with pytest.raises(ValueError):
            parse_horizon("0")
        with pytest.raises(ValueError):
            parse_horizon("forever")


class TestCLIRunner:
    """Smoke tests via Click test runner."""

    def test_help(self):
        runner = CliRunner()
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "--strategy" in result.output

    def test_once_prints_comparison(self):
        runner = CliRunner()
        result = runner.invoke(
            main,
            [
                "--strategy", "fixed:300000:6",
                "--strategy", "buydown-2-1:300000:6:30:0:6000",
                "--months", "12",
                "--once",
            ],
        )
        assert result.exit_code == 0
        assert "Lifetime Overview" in result.output
        assert "Payment Schedule" in result.output

    def test_once_with_current_loan(self):
        start = (date.today() - timedelta(days=5 * 365)).isoformat()
        runner = CliRunner()
        result = runner.invoke(
            main,
            [
                "--strategy", "fixed:250000:5.5:30",
                "--strategy", f"current:300000:7:30:0:{start}",
                "--once",
            ],
        )
        assert result.exit_code == 0
        assert "Added Current Loan #2" in result.output

    def test_once_needs_two_strategies(self):
        runner = CliRunner()
        result = runner.invoke(main, ["--strategy", "fixed:300000:6", "--once"])
        assert result.exit_code == 1
        assert "at least 2" in result.output

    def test_validation_errors_reported(self):
        runner = CliRunner()
        result = runner.invoke(main, ["--strategy", "fixed:500:75", "--once"])
        assert result.exit_code == 1
        assert "Loan amount must be at least" in result.output
        assert "Interest rate must be between" in result.output

    @pytest.mark.parametrize("amount", ["nan", "inf"])
    def test_non_finite_amount_reported(self, amount):
        runner = CliRunner()
        result = runner.invoke(
            main,
            ["--strategy", f"fixed:{amount}:6", "--strategy", "fixed:300000:5", "--once"],
        )
        assert result.exit_code == 1
        assert not isinstance(result.exception, InvalidOperation)
        assert "Loan amount must be a number" in result.output

    def test_invalid_months(self):
        runner = CliRunner()
        result = runner.invoke(main, ["--months", "soon", "--once"])
        assert result.exit_code == 1
        assert "--months" in result.output

    def test_interactive_add_and_exit(self):
        runner = CliRunner()
        # add → type 2 (fixed) → amount → rate → default term → default PMI → exit
        result = runner.invoke(main, [], input="add\n2\n300000\n6\n\n\nexit\n")
        assert result.exit_code == 0
        assert "Added Fixed Term #1" in result.output
        assert "Goodbye." in result.output

    def test_interactive_rejects_invalid_strategy(self):
        runner = CliRunner()
        result = runner.invoke(main, [], input="add\nfixed\n0\n6\n\n\nexit\n")
        assert result.exit_code == 0
        assert "Loan amount is required" in result.output

    def test_interactive_remove_and_months(self):
        runner = CliRunner()
        result = runner.invoke(
            main,
            ["--strategy", "fixed:300000:6"],
            input="remove\n1\nmonths\nfull\nexit\n",
        )
        assert result.exit_code == 0
        assert "Removed strategy #1" in result.output
        assert "Comparing over the full term" in result.output

    def test_end_of_input_ends_session(self):
        runner = CliRunner()
        result = runner.invoke(main, [], input="list\n")
        assert result.exit_code == 0
        assert "Session ended." in result.output


class TestFormatting:
    @pytest.mark.parametrize("years,expected", [
        (Decimal("9.96"), "10.0 years"),
        (Decimal("29.75"), "29.8 years"),
        (Decimal("20.0438056125"), "20.0 years"),
    ])
    def test_years(self, years, expected):
        assert _fmt_years(years) == expected
