"""Cross-strategy comparison: lifetime overview and month-by-month table.

Baseline = the first strategy in entry order, whatever its kind.  The month
table shows the current loan first, so the savings baseline and the display
order are tracked separately and always matched by strategy id.

Sign convention: savings = baseline - this, so a positive figure means this
strategy is cheaper than the baseline.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence

from .calculator import ScheduleEntry, StrategyTotals, compute_schedule, compute_totals
from .config import FULL_TERM, MONTHS_PER_YEAR, Horizon, ZERO
from .strategies import LoanStrategy, display_order

logger = logging.getLogger(__name__)

MIN_STRATEGIES = 2


class ComparisonError(ValueError):
    """Raised when a comparison is requested for fewer than two strategies."""


def _require_comparable(strategies: Sequence[LoanStrategy]) -> None:
    if len(strategies) < MIN_STRATEGIES:
        raise ComparisonError(
            f"Please add at least {MIN_STRATEGIES} strategies to compare "
            f"(have {len(strategies)})."
        )


# ── Overview ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class OverviewEntry:
    strategy: LoanStrategy
    display_payment: Decimal     # P&I shown for comparison (first-year P&I for buydowns)
    total_monthly: Decimal       # display_payment + PMI
    totals: StrategyTotals
    savings_vs_baseline: Optional[Decimal]   # None for the baseline itself

    @property
    def is_baseline(self) -> bool:
        return self.savings_vs_baseline is None

    @property
    def current_balance(self) -> Optional[Decimal]:
        return self.strategy.remaining_balance if self.strategy.is_current else None

    @property
    def current_payment(self) -> Optional[Decimal]:
        return self.strategy.current_monthly_payment if self.strategy.is_current else None


@dataclass(frozen=True)
class Overview:
    baseline_id: int
    entries: tuple[OverviewEntry, ...]   # entry order

    def entry_for(self, strategy_id: int) -> OverviewEntry:
        for entry in self.entries:
            if entry.strategy.id == strategy_id:
                return entry
        raise KeyError(strategy_id)


def display_payment(strategy: LoanStrategy) -> Decimal:
    """Monthly P&I used in the overview.

    Buydowns show their first (discounted) month; current and fixed loans show
    the nominal payment of the original loan.
    """
    if strategy.is_buydown:
        first_year = compute_schedule(strategy, MONTHS_PER_YEAR)
        return first_year[0].payment if first_year else ZERO
    return strategy.nominal_payment


def build_overview(strategies: Sequence[LoanStrategy]) -> Overview:
    _require_comparable(strategies)

    baseline = strategies[0]
    all_totals = [compute_totals(s) for s in strategies]
    baseline_cost = all_totals[0].total_cost

    entries = []
    for strategy, totals in zip(strategies, all_totals):
        payment = display_payment(strategy)
        savings = None if strategy.id == baseline.id else baseline_cost - totals.total_cost
        entries.append(
            OverviewEntry(
                strategy=strategy,
                display_payment=payment,
                total_monthly=payment + strategy.monthly_pmi,
                totals=totals,
                savings_vs_baseline=savings,
            )
        )

    logger.debug("Built overview for %d strategies (baseline %d)", len(entries), baseline.id)
    return Overview(baseline_id=baseline.id, entries=tuple(entries))


# ── Month-by-month comparison ─────────────────────────────────────────────────

@dataclass(frozen=True)
class ComparisonCell:
    strategy_id: int
    payment: Decimal             # P&I + PMI, as displayed
    balance: Decimal
    savings: Optional[Decimal]   # None is shown as "-"


@dataclass(frozen=True)
class ComparisonRow:
    month: int
    cells: tuple[ComparisonCell, ...]   # display order

    @property
    def year_start(self) -> bool:
        """True on the first month of year 2, 3, …"""
        return self.month > 1 and self.month % MONTHS_PER_YEAR == 1

    @property
    def year(self) -> int:
        return (self.month - 1) // MONTHS_PER_YEAR + 1


@dataclass(frozen=True)
class ComparisonTotals:
    strategy_id: int
    total_paid: Decimal          # sum of displayed payments (PMI included)
    final_balance: Decimal
    total_savings: Optional[Decimal]   # sum of the displayed monthly savings; None for baseline


@dataclass(frozen=True)
class ScheduleComparison:
    horizon_months: int
    baseline_id: int
    strategies: tuple[LoanStrategy, ...]   # display order
    rows: tuple[ComparisonRow, ...]
    totals: tuple[ComparisonTotals, ...]   # display order


def resolve_horizon(strategies: Sequence[LoanStrategy], horizon: Horizon) -> int:
    """Number of months to compare; ``"full"`` means the longest term among ``strategies``."""
    if horizon == FULL_TERM:
        if not strategies:
            raise ValueError("a full-term horizon needs at least one strategy")
        return max(s.term_months for s in strategies)
    if isinstance(horizon, bool) or not isinstance(horizon, int) or horizon < 1:
        raise ValueError(f"horizon must be a positive number of months or '{FULL_TERM}', got {horizon!r}")
    return horizon


def monthly_savings(baseline_row: ScheduleEntry, row: ScheduleEntry) -> Optional[Decimal]:
    """Savings for one month, or None once the baseline loan has ended."""
    if baseline_row.payment <= ZERO:
        return None
    return baseline_row.payment - row.payment


def build_schedule_comparison(
    strategies: Sequence[LoanStrategy],
    horizon: Horizon,
) -> ScheduleComparison:
    _require_comparable(strategies)

    months = resolve_horizon(strategies, horizon)
    baseline_id = strategies[0].id
    ordered = display_order(strategies)
    schedules = {s.id: compute_schedule(s, months) for s in ordered}
    baseline_schedule = schedules[baseline_id]

    rows = []
    for index in range(months):
        cells = []
        for strategy in ordered:
            entry = schedules[strategy.id][index]
            savings = (
                None
                if strategy.id == baseline_id
                else monthly_savings(baseline_schedule[index], entry)
            )
            cells.append(
                ComparisonCell(
                    strategy_id=strategy.id,
                    payment=entry.payment + strategy.monthly_pmi,
                    balance=entry.balance,
                    savings=savings,
                )
            )
        rows.append(ComparisonRow(month=index + 1, cells=tuple(cells)))

    totals = []
    for column, strategy in enumerate(ordered):
        column_cells = [row.cells[column] for row in rows]
        if strategy.id == baseline_id:
            total_savings = None
        else:
            total_savings = sum((c.savings for c in column_cells if c.savings is not None), ZERO)
        totals.append(
            ComparisonTotals(
                strategy_id=strategy.id,
                total_paid=sum((c.payment for c in column_cells), ZERO),
                final_balance=column_cells[-1].balance,
                total_savings=total_savings,
            )
        )

    logger.debug(
        "Built %d-month schedule comparison for %d strategies (baseline %d)",
        months, len(ordered), baseline_id,
    )
    return ScheduleComparison(
        horizon_months=months,
        baseline_id=baseline_id,
        strategies=tuple(ordered),
        rows=tuple(rows),
        totals=tuple(totals),
    )
