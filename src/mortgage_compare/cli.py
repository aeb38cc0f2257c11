"""Interactive CLI — click entry point + interactive strategy loop.

Session startup:
  1. Add any strategies given with --strategy.
  2. With --once, print the comparison and exit.
  3. Otherwise enter the interactive loop.

Interactive loop:
  - Add, remove or clear strategies, list them.
  - Show the overview + month-by-month comparison (2+ strategies).
  - Show one strategy's amortization schedule, change the comparison horizon, or exit.
"""
from __future__ import annotations

import logging
import sys
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

import click
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .calculator import compute_schedule, round_cents
from .comparison import (
    ComparisonError,
    Overview,
    ScheduleComparison,
    build_overview,
    build_schedule_comparison,
    resolve_horizon,
)
from .config import (
    DEFAULT_SCHEDULE_MONTHS,
    DEFAULT_TERM_YEARS,
    FULL_TERM,
    SCHEDULE_HORIZON_CHOICES,
    STRATEGY_KINDS,
    STRATEGY_LABELS,
    Horizon,
    ZERO,
)
from .strategies import LoanStrategy, StrategyInputs, StrategySession, StrategyValidationError

console = Console()
err_console = Console(stderr=True, style="bold red")

# ──────────────────────────────────────────────────────────────────────────────
# Formatting helpers
# ──────────────────────────────────────────────────────────────────────────────

def _fmt_money(value: Decimal) -> str:
    amount = round_cents(value)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def _fmt_savings(value: Optional[Decimal]) -> str:
    if value is None:
        return "-"
    sign = "+" if round_cents(value) >= 0 else ""
    return sign + _fmt_money(value)


def _styled_savings(value: Optional[Decimal]) -> str:
    text = _fmt_savings(value)
    if value is None or round_cents(value) == 0:
        return text
    return f"[green]{text}[/]" if value > 0 else f"[red]{text}[/]"


def _fmt_rate(value: Decimal) -> str:
    return f"{value.normalize():f}%"


def _fmt_years(value: Decimal) -> str:
    return f"{value.quantize(Decimal('0.1'), rounding=ROUND_HALF_UP):f} years"


def _column_title(strategy: LoanStrategy) -> str:
    return f"{strategy.label} #{strategy.id}"


# ──────────────────────────────────────────────────────────────────────────────
# Result display
# ──────────────────────────────────────────────────────────────────────────────

def display_strategies(session: StrategySession) -> None:
    if not len(session):
        console.print(Panel(
            "[bold]No strategies added yet[/bold]\n"
            "Add your first loan strategy to begin comparison",
            expand=False,
        ))
        return

    t = Table(title="Strategies", box=box.SIMPLE, show_header=True, padding=(0, 2))
    for col in ("ID", "Type", "Amount", "Rate", "Term", "Payment", "PMI", "Details"):
        t.add_column(col, justify="left" if col in ("Type", "Details") else "right")

    for s in session:
        if s.is_current:
            amount, term = s.remaining_balance, _fmt_years(s.remaining_term_years)
            payment = s.current_monthly_payment
            details = f"Started {s.loan_start_date.isoformat()}"
        else:
            amount, term = s.principal, f"{s.term_years} years"
            payment = s.nominal_payment
            details = f"Buydown cost {_fmt_money(s.buydown_cost)}" if s.buydown_cost else ""
        t.add_row(
            str(s.id),
            s.label,
            _fmt_money(amount),
            _fmt_rate(s.annual_rate),
            term,
            _fmt_money(payment),
            _fmt_money(s.monthly_pmi),
            details,
        )
    console.print(t)


def display_overview(overview: Overview) -> None:
    entries = overview.entries
    console.print()
    console.print(Panel("[bold green]Lifetime Overview[/bold green] — savings vs. first strategy entered", expand=False))

    t = Table(box=box.SIMPLE, show_header=True, padding=(0, 2))
    t.add_column("Metric", style="cyan")
    for e in entries:
        t.add_column(_column_title(e.strategy), justify="right")

    def row(label: str, values: list[str]) -> None:
        t.add_row(label, *values)

    any_current = any(e.strategy.is_current for e in entries)
    any_buydown = any(e.strategy.buydown_cost for e in entries)

    row("Original loan amount", [_fmt_money(e.strategy.principal) for e in entries])
    if any_current:
        row("Current balance", [_fmt_money(e.current_balance) if e.current_balance is not None else "" for e in entries])
    row("Interest rate", [_fmt_rate(e.strategy.annual_rate) for e in entries])
    row("P&I (original / first year / monthly)", [_fmt_money(e.display_payment) for e in entries])
    if any_current:
        row("Current P&I", [_fmt_money(e.current_payment) if e.current_payment is not None else "" for e in entries])
    row("Monthly PMI", [_fmt_money(e.strategy.monthly_pmi) for e in entries])
    row("Total monthly", [_fmt_money(e.total_monthly) for e in entries])
    row("Total interest", [_fmt_money(e.totals.total_interest) for e in entries])
    if any_buydown:
        row("Buydown cost", [_fmt_money(e.strategy.buydown_cost) if e.strategy.buydown_cost else "" for e in entries])
    row("Total cost", [_fmt_money(e.totals.total_cost) for e in entries])
    row("Total savings", [_styled_savings(e.savings_vs_baseline) for e in entries])
    console.print(t)


def display_schedule_comparison(comparison: ScheduleComparison) -> None:
    t = Table(
        title=f"Payment Schedule — {comparison.horizon_months} months",
        box=box.MINIMAL_HEAVY_HEAD,
    )
    t.add_column("Month", justify="right", style="bold")
    for s in comparison.strategies:
        title = _column_title(s)
        t.add_column(f"{title}\nPayment", justify="right")
        t.add_column("Balance", justify="right")
        t.add_column("Savings", justify="right")

    for r in comparison.rows:
        if r.year_start:
            t.add_section()
        values = [str(r.month)]
        for cell in r.cells:
            values += [_fmt_money(cell.payment), _fmt_money(cell.balance), _styled_savings(cell.savings)]
        t.add_row(*values)

    t.add_section()
    totals = ["TOTALS"]
    for total in comparison.totals:
        totals += [
            _fmt_money(total.total_paid),
            _fmt_money(total.final_balance),
            _fmt_savings(total.total_savings),
        ]
    t.add_row(*totals, style="bold")
    console.print(t)


def display_schedule(strategy: LoanStrategy, months: int) -> None:
    schedule = compute_schedule(strategy, months)

    t = Table(title=f"Amortization Schedule — {_column_title(strategy)}", box=box.MINIMAL_HEAVY_HEAD)
    for col in ("Month", "Rate", "Payment", "Principal", "Interest", "Balance"):
        t.add_column(col, justify="right")

    for row in schedule:
        t.add_row(
            str(row.month),
            _fmt_rate(row.rate),
            _fmt_money(row.payment),
            _fmt_money(row.principal),
            _fmt_money(row.interest),
            _fmt_money(row.balance),
        )
    console.print(t)


def display_errors(errors: list[str]) -> None:
    err_console.print("Please correct the following:")
    for error in errors:
        err_console.print(f"  • {error}")


# ──────────────────────────────────────────────────────────────────────────────
# Parsing helpers
# ──────────────────────────────────────────────────────────────────────────────

def _parse_decimal(raw: str) -> Decimal:
    return Decimal(raw.replace(",", "").replace("$", "").replace(" ", ""))


def parse_horizon(raw: str) -> Horizon:
    """Parse a comparison horizon: a positive number of months or 'full'."""
    value = raw.strip().lower()
    if value == FULL_TERM:
        return FULL_TERM
    try:
        months = int(value)
    except ValueError:
        raise ValueError(f"Invalid horizon '{raw}'. Use a number of months or '{FULL_TERM}'.")
    if months < 1:
        raise ValueError("Horizon must be at least 1 month.")
    return months


def parse_strategy_spec(spec: str) -> StrategyInputs:
    """Parse ``kind:amount:rate[:term[:pmi[:extra]]]``.

    ``extra`` is the buydown cost for buydowns and the loan start date
    (YYYY-MM-DD) for a current loan.
    """
    parts = [p.strip() for p in spec.split(":")]
    if len(parts) < 3 or len(parts) > 6:
        raise ValueError(f"Strategy must be kind:amount:rate[:term[:pmi[:extra]]]; got '{spec}'")

    kind = parts[0].lower()
    if kind not in STRATEGY_KINDS:
        raise ValueError(f"Unknown strategy type '{parts[0]}' (choose from {', '.join(STRATEGY_KINDS)})")

    try:
        inputs = StrategyInputs(
            kind=kind,  # type: ignore[arg-type]
            loan_amount=_parse_decimal(parts[1]),
            annual_rate=_parse_decimal(parts[2].rstrip("%")),
        )
        if len(parts) > 3 and parts[3]:
            inputs.term_years = int(parts[3])
        if len(parts) > 4 and parts[4]:
            inputs.monthly_pmi = _parse_decimal(parts[4])
    except (InvalidOperation, ValueError):
        raise ValueError(f"Invalid number in strategy '{spec}'")

    if len(parts) > 5 and parts[5]:
        if kind == "current":
            try:
                inputs.loan_start_date = date.fromisoformat(parts[5])
            except ValueError:
                raise ValueError(f"Invalid loan start date '{parts[5]}' (expected YYYY-MM-DD)")
        else:
            try:
                inputs.buydown_cost = _parse_decimal(parts[5])
            except InvalidOperation:
                raise ValueError(f"Invalid buydown cost '{parts[5]}'")
    return inputs


# ──────────────────────────────────────────────────────────────────────────────
# Input helpers
# ──────────────────────────────────────────────────────────────────────────────

def _prompt_decimal(prompt: str, *, default: Optional[Decimal] = None) -> Decimal:
    hint = f" [dim](Enter for {default})[/dim]" if default is not None else ""
    while True:
        raw = console.input(f"[bold]{prompt}[/bold]{hint} ").strip()
        if not raw and default is not None:
            return default
        try:
            return _parse_decimal(raw)
        except InvalidOperation:
            err_console.print(f"  Invalid number: '{raw}'")


def _prompt_int(prompt: str, *, default: Optional[int] = None) -> int:
    hint = f" [dim](Enter for {default})[/dim]" if default is not None else ""
    while True:
        raw = console.input(f"[bold]{prompt}[/bold]{hint} ").strip()
        if not raw and default is not None:
            return default
        try:
            return int(raw)
        except ValueError:
            err_console.print(f"  Invalid integer: '{raw}'")


def _prompt_kind() -> str:
    for i, kind in enumerate(STRATEGY_KINDS, start=1):
        console.print(f"  {i}. {STRATEGY_LABELS[kind]} [dim]({kind})[/dim]")
    while True:
        raw = console.input("[bold]Strategy type: [/bold]").strip().lower()
        if raw in STRATEGY_KINDS:
            return raw
        if raw.isdigit() and 1 <= int(raw) <= len(STRATEGY_KINDS):
            return STRATEGY_KINDS[int(raw) - 1]
        err_console.print(f"  Unknown strategy type '{raw}'.")


def _prompt_date(prompt: str) -> date:
    today = date.today()
    while True:
        raw = console.input(f"[bold]{prompt}[/bold] [dim](YYYY-MM-DD, Enter for {today})[/dim] ").strip()
        if not raw:
            return today
        try:
            return date.fromisoformat(raw)
        except ValueError:
            err_console.print(f"  Invalid date: '{raw}'")


def _prompt_horizon() -> Horizon:
    console.print(f"  Horizons: {', '.join(SCHEDULE_HORIZON_CHOICES)} (or any number of months)")
    while True:
        raw = console.input("[bold]Months to compare: [/bold]").strip()
        try:
            return parse_horizon(raw)
        except ValueError as exc:
            err_console.print(f"  {exc}")


def prompt_strategy_inputs() -> StrategyInputs:
    kind = _prompt_kind()
    inputs = StrategyInputs(
        kind=kind,  # type: ignore[arg-type]
        loan_amount=_prompt_decimal("Loan amount ($):"),
        annual_rate=_prompt_decimal("Interest rate (%):"),
        term_years=_prompt_int("Loan term (years):", default=DEFAULT_TERM_YEARS),
        monthly_pmi=_prompt_decimal("Monthly PMI ($):", default=ZERO),
    )
    if kind == "current":
        inputs.loan_start_date = _prompt_date("Loan start date:")
    elif kind.startswith("buydown"):
        inputs.buydown_cost = _prompt_decimal("Buydown cost ($):", default=ZERO)
    return inputs


# ──────────────────────────────────────────────────────────────────────────────
# Comparison runner
# ──────────────────────────────────────────────────────────────────────────────

def run_comparison(session: StrategySession, horizon: Horizon) -> bool:
    """Build and print the overview and month table. Prints errors and returns False on failure."""
    try:
        overview = build_overview(session.strategies)
        comparison = build_schedule_comparison(session.strategies, horizon)
    except ComparisonError as exc:
        err_console.print(str(exc))
        return False

    display_overview(overview)
    display_schedule_comparison(comparison)
    return True


def add_strategy(session: StrategySession, inputs: StrategyInputs) -> Optional[LoanStrategy]:
    try:
        strategy = session.add(inputs)
    except StrategyValidationError as exc:
        display_errors(exc.errors)
        return None
    console.print(f"  [green]Added {strategy.label} #{strategy.id}[/green]")
    return strategy


# ──────────────────────────────────────────────────────────────────────────────
# Interactive loop
# ──────────────────────────────────────────────────────────────────────────────

def interactive_loop(session: StrategySession, horizon: Horizon) -> None:
    display_strategies(session)

    while True:
        console.print()
        actions = ["add", "remove", "clear", "list", "schedule", "months", "exit"]
        if len(session) >= 2:
            actions.insert(4, "compare")
        console.print("[bold]Actions:[/bold] " + " · ".join(f"[cyan]{a}[/cyan]" for a in actions))
        action = console.input("[bold]> [/bold]").strip().lower()

        if action in ("exit", "quit", "q"):
            console.print("Goodbye.")
            break

        elif action == "add":
            if add_strategy(session, prompt_strategy_inputs()):
                display_strategies(session)

        elif action == "remove":
            strategy_id = _prompt_int("Strategy ID to remove:")
            if session.remove(strategy_id):
                console.print(f"  [green]Removed strategy #{strategy_id}[/green]")
                display_strategies(session)
            else:
                err_console.print(f"  No strategy with ID {strategy_id}.")

        elif action == "clear":
            session.clear()
            display_strategies(session)

        elif action == "list":
            display_strategies(session)

        elif action == "compare":
            run_comparison(session, horizon)

        elif action == "schedule":
            if not len(session):
                err_console.print("Add a strategy first.")
                continue
            strategy_id = _prompt_int("Strategy ID:")
            try:
                strategy = session.get(strategy_id)
            except KeyError:
                err_console.print(f"  No strategy with ID {strategy_id}.")
                continue
            display_schedule(strategy, resolve_horizon([strategy], horizon))

        elif action == "months":
            horizon = _prompt_horizon()
            span = "the full term" if horizon == FULL_TERM else f"{horizon} months"
            console.print(f"  [green]Comparing over {span}[/green]")

        else:
            err_console.print(f"  Unknown action '{action}'.")


# ──────────────────────────────────────────────────────────────────────────────
# Click entry point
# ──────────────────────────────────────────────────────────────────────────────

def _configure_logging(verbose: bool) -> None:
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


@click.command()
@click.option(
    "--strategy", "strategy_specs", multiple=True, metavar="SPEC",
    help="Add a strategy: kind:amount:rate[:term[:pmi[:extra]]] where extra is the "
         "buydown cost or the current loan's start date (YYYY-MM-DD). Repeatable.",
)
@click.option(
    "--months", type=str, default=str(DEFAULT_SCHEDULE_MONTHS), show_default=True,
    help=f"Months in the schedule comparison, or '{FULL_TERM}' for the longest term.",
)
@click.option("--once", is_flag=True, help="Print the comparison for the given strategies and exit.")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr.")
def main(strategy_specs: tuple[str, ...], months: str, once: bool, verbose: bool) -> None:
    """Compare current-loan, refinance and buydown mortgage strategies."""
    _configure_logging(verbose)
    console.print(Panel("[bold blue]Mortgage Strategy Comparison[/bold blue]", expand=False))

    try:
        horizon = parse_horizon(months)
    except ValueError as exc:
        err_console.print(f"Invalid value for --months: {exc}")
        sys.exit(1)

    session = StrategySession()
    for spec in strategy_specs:
        try:
            inputs = parse_strategy_spec(spec)
        except ValueError as exc:
            err_console.print(f"Invalid value for --strategy: {exc}")
            sys.exit(1)
        if add_strategy(session, inputs) is None:
            sys.exit(1)

    if once:
        display_strategies(session)
        if not run_comparison(session, horizon):
            sys.exit(1)
        return

    try:
        interactive_loop(session, horizon)
    except (KeyboardInterrupt, EOFError):
        console.print("\nSession ended.")
