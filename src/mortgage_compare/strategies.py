"""Loan strategies: input validation and the session list.

A strategy is built from raw user inputs once, validated as a whole (every
violated rule is reported together), then frozen.  For a current loan the
position in the loan (years paid, remaining balance, remaining term) is
derived against an explicit ``today`` at creation and never recomputed.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_CEILING, Decimal
from typing import Iterator, Optional, Sequence

from .calculator import balance_after_payments, monthly_payment
from .config import (
    BUYDOWN_KINDS,
    DAYS_PER_YEAR,
    DEFAULT_TERM_YEARS,
    MAX_ANNUAL_RATE,
    MIN_ANNUAL_RATE,
    MIN_LOAN_AMOUNT,
    MONTHS_PER_YEAR,
    STRATEGY_KINDS,
    STRATEGY_LABELS,
    StrategyKind,
    ZERO,
)

logger = logging.getLogger(__name__)


@dataclass
class StrategyInputs:
    """Raw user-supplied values.  None means 'not provided'."""
    kind: StrategyKind
    loan_amount: Optional[Decimal] = None
    annual_rate: Optional[Decimal] = None   # percent, e.g. Decimal("6.5")
    term_years: int = DEFAULT_TERM_YEARS
    monthly_pmi: Decimal = ZERO
    # Buydown only
    buydown_cost: Decimal = ZERO
    # Current loan only
    loan_start_date: Optional[date] = None


@dataclass(frozen=True)
class LoanStrategy:
    id: int
    kind: StrategyKind
    principal: Decimal
    annual_rate: Decimal
    term_years: int
    monthly_pmi: Decimal = ZERO
    buydown_cost: Decimal = ZERO
    # Current loan only, frozen at creation
    loan_start_date: Optional[date] = None
    years_paid: Decimal = ZERO
    remaining_balance: Optional[Decimal] = None
    remaining_term_years: Optional[Decimal] = None
    current_monthly_payment: Optional[Decimal] = None

    @property
    def label(self) -> str:
        return STRATEGY_LABELS[self.kind]

    @property
    def is_current(self) -> bool:
        return self.kind == "current"

    @property
    def is_buydown(self) -> bool:
        return self.kind in BUYDOWN_KINDS

    @property
    def term_months(self) -> int:
        return self.term_years * MONTHS_PER_YEAR

    @property
    def starting_balance(self) -> Decimal:
        if self.is_current and self.remaining_balance is not None:
            return self.remaining_balance
        return self.principal

    @property
    def starting_term_months(self) -> Decimal:
        """Months left to amortize at month 1 of the schedule (fractional for a current loan)."""
        if self.is_current and self.remaining_term_years is not None:
            return self.remaining_term_years * MONTHS_PER_YEAR
        return Decimal(self.term_months)

    @property
    def nominal_payment(self) -> Decimal:
        """Payment of the original loan at the nominal rate over the full term."""
        return monthly_payment(self.principal, self.annual_rate, self.term_months)


class StrategyValidationError(ValueError):
    """Raised when strategy inputs break one or more rules; ``errors`` lists them all."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


def years_between(start: date, today: date) -> Decimal:
    """Elapsed time in years, on a 365.25-day year."""
    return Decimal((today - start).days) / DAYS_PER_YEAR


def validate_inputs(inputs: StrategyInputs, today: date) -> list[str]:
    """Return every rule ``inputs`` violates (empty list when valid)."""
    errors: list[str] = []

    if inputs.kind not in STRATEGY_KINDS:
        errors.append(f"Unknown strategy type '{inputs.kind}'")

    amount = inputs.loan_amount
    if amount is None:
        errors.append("Loan amount is required")
    elif not amount.is_finite():
        errors.append("Loan amount must be a number")
    elif amount == ZERO:
        errors.append("Loan amount is required")
    elif amount < MIN_LOAN_AMOUNT:
        errors.append(f"Loan amount must be at least ${MIN_LOAN_AMOUNT:,.0f}")

    rate = inputs.annual_rate
    if rate is None:
        errors.append("Interest rate is required")
    elif not rate.is_finite():
        errors.append("Interest rate must be a number")
    elif rate == ZERO:
        errors.append("Interest rate is required")
    elif rate < MIN_ANNUAL_RATE or rate > MAX_ANNUAL_RATE:
        errors.append(f"Interest rate must be between {MIN_ANNUAL_RATE}% and {MAX_ANNUAL_RATE}%")

    if inputs.term_years < 1:
        errors.append("Loan term must be at least 1 year")

    if not inputs.monthly_pmi.is_finite():
        errors.append("PMI must be a number")
    elif inputs.monthly_pmi < ZERO:
        errors.append("PMI cannot be negative")

    if inputs.kind == "current":
        start = inputs.loan_start_date
        if start is None:
            errors.append("Loan start date is required")
        else:
            if start > today:
                errors.append("Loan start date cannot be in the future")
            if years_between(start, today) >= inputs.term_years:
                errors.append("Loan start date indicates the loan should be paid off already")
    elif inputs.kind in BUYDOWN_KINDS:
        if not inputs.buydown_cost.is_finite():
            errors.append("Buydown cost must be a number")
        elif inputs.buydown_cost < ZERO:
            errors.append("Buydown cost cannot be negative")

    return errors


def build_strategy(inputs: StrategyInputs, strategy_id: int, today: Optional[date] = None) -> LoanStrategy:
    """Validate ``inputs`` and return the frozen strategy.

    Raises StrategyValidationError listing every violated rule.
    """
    today = today or date.today()
    errors = validate_inputs(inputs, today)
    if errors:
        raise StrategyValidationError(errors)

    principal = inputs.loan_amount
    rate = inputs.annual_rate
    buydown_cost = inputs.buydown_cost if inputs.kind in BUYDOWN_KINDS else ZERO

    if inputs.kind != "current":
        return LoanStrategy(
            id=strategy_id,
            kind=inputs.kind,
            principal=principal,
            annual_rate=rate,
            term_years=inputs.term_years,
            monthly_pmi=inputs.monthly_pmi,
            buydown_cost=buydown_cost,
        )

    term_months = inputs.term_years * MONTHS_PER_YEAR
    years_paid = max(ZERO, years_between(inputs.loan_start_date, today))
    # A partly elapsed month counts as a payment made.
    payments_made = int((years_paid * MONTHS_PER_YEAR).to_integral_value(rounding=ROUND_CEILING))

    return LoanStrategy(
        id=strategy_id,
        kind="current",
        principal=principal,
        annual_rate=rate,
        term_years=inputs.term_years,
        monthly_pmi=inputs.monthly_pmi,
        loan_start_date=inputs.loan_start_date,
        years_paid=years_paid,
        remaining_balance=balance_after_payments(principal, rate, term_months, payments_made),
        remaining_term_years=Decimal(inputs.term_years) - years_paid,
        current_monthly_payment=monthly_payment(principal, rate, term_months),
    )


class StrategySession:
    """Ordered, session-scoped list of strategies owned by the caller.

    Entry order decides the savings baseline (index 0); display order puts the
    current loan first.  Both are resolved by strategy id.
    """

    def __init__(self) -> None:
        self._strategies: list[LoanStrategy] = []
        self._next_id = 1

    def __len__(self) -> int:
        return len(self._strategies)

    def __iter__(self) -> Iterator[LoanStrategy]:
        return iter(self._strategies)

    @property
    def strategies(self) -> tuple[LoanStrategy, ...]:
        return tuple(self._strategies)

    @property
    def baseline_id(self) -> Optional[int]:
        return self._strategies[0].id if self._strategies else None

    def get(self, strategy_id: int) -> LoanStrategy:
        for strategy in self._strategies:
            if strategy.id == strategy_id:
                return strategy
        raise KeyError(strategy_id)

    def add(self, inputs: StrategyInputs, today: Optional[date] = None) -> LoanStrategy:
        strategy = build_strategy(inputs, self._next_id, today)
        self._next_id += 1
        self._strategies.append(strategy)
        logger.debug("Added strategy %d (%s)", strategy.id, strategy.kind)
        return strategy

    def remove(self, strategy_id: int) -> bool:
        """Remove the strategy with ``strategy_id``; return False if there was none."""
        before = len(self._strategies)
        self._strategies = [s for s in self._strategies if s.id != strategy_id]
        removed = len(self._strategies) < before
        if removed:
            logger.debug("Removed strategy %d", strategy_id)
        return removed

    def clear(self) -> None:
        self._strategies.clear()
        logger.debug("Cleared all strategies")

    def display_order(self) -> list[LoanStrategy]:
        return display_order(self._strategies)


def display_order(strategies: Sequence[LoanStrategy]) -> list[LoanStrategy]:
    """Current loans first; everything else keeps its relative order."""
    return sorted(strategies, key=lambda s: 0 if s.is_current else 1)
