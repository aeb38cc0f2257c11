"""Core financial calculation functions.

All monetary values use decimal.Decimal — float is forbidden.
Full precision is kept through schedules and totals; rounding to cents
(ROUND_HALF_UP) is applied only when presenting a value.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Union

from .config import BUYDOWN_STEPS, CENT, MONTHS_PER_YEAR, PAYOFF_THRESHOLD, ZERO

if TYPE_CHECKING:
    from .strategies import LoanStrategy

_HUNDRED = Decimal("100")
_TWELVE = Decimal(MONTHS_PER_YEAR)


def round_cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def monthly_payment(
    principal: Decimal,
    annual_rate: Decimal,
    term_months: Union[int, Decimal],
) -> Decimal:
    """Return the fixed monthly P&I payment, unrounded.

    Uses the standard reducing-balance formula:
        payment = P * r * (1 + r)^n / ((1 + r)^n - 1)

    ``annual_rate`` is a percent (6 means 6 %), so r = annual_rate / 100 / 12.
    ``term_months`` may be fractional for a loan already in progress.

    Special case: if annual_rate == 0, payment = P / n.
    """
    n = Decimal(term_months)
    if n <= ZERO:
        raise ValueError("term_months must be > 0")
    if principal < ZERO:
        raise ValueError("principal must be >= 0")

    if annual_rate == ZERO:
        return principal / n

    r = annual_rate / _HUNDRED / _TWELVE
    factor = (1 + r) ** n
    return principal * (r * factor) / (factor - 1)


def balance_after_payments(
    principal: Decimal,
    annual_rate: Decimal,
    term_months: int,
    payments_made: int,
) -> Decimal:
    """Outstanding balance after ``payments_made`` scheduled payments of an original loan."""
    payment = monthly_payment(principal, annual_rate, term_months)
    r = annual_rate / _HUNDRED / _TWELVE
    balance = principal
    for _ in range(payments_made):
        balance -= payment - balance * r
    return max(ZERO, balance)


def effective_annual_rate(strategy: LoanStrategy, month: int) -> Decimal:
    """Annual percent rate in force for ``month`` (1-based), after any buydown discount."""
    steps = BUYDOWN_STEPS.get(strategy.kind, ())
    year_index = (month - 1) // MONTHS_PER_YEAR
    if year_index < len(steps):
        return max(ZERO, strategy.annual_rate - steps[year_index])
    return strategy.annual_rate


@dataclass(frozen=True)
class ScheduleEntry:
    month: int
    payment: Decimal
    principal: Decimal
    interest: Decimal
    balance: Decimal   # after this month's payment
    rate: Decimal      # effective annual percent

    @classmethod
    def paid_off(cls, month: int, rate: Decimal) -> "ScheduleEntry":
        return cls(month=month, payment=ZERO, principal=ZERO, interest=ZERO, balance=ZERO, rate=rate)


@dataclass(frozen=True)
class StrategyTotals:
    total_payments: Decimal
    total_interest: Decimal
    total_principal: Decimal
    total_cost: Decimal   # total_payments + buydown cost


def compute_schedule(strategy: LoanStrategy, months: int) -> list[ScheduleEntry]:
    """Build the month-by-month schedule for ``strategy``, exactly ``months`` rows long.

    A current loan starts from its frozen remaining balance and keeps paying its
    original installment. Every other kind re-amortizes each month against the
    balance and remaining term, so a buydown rate step recasts the payment.
    Once the balance reaches PAYOFF_THRESHOLD (or the term runs out) every later
    row is a zero row.
    """
    if months < 0:
        raise ValueError("months must be >= 0")

    balance = strategy.starting_balance
    term_months = strategy.starting_term_months
    payment = strategy.current_monthly_payment if strategy.is_current else ZERO

    rows: list[ScheduleEntry] = []
    paid_off = False

    for month in range(1, months + 1):
        rate = effective_annual_rate(strategy, month)
        remaining = term_months - (month - 1)

        if paid_off or remaining <= ZERO or balance <= PAYOFF_THRESHOLD:
            paid_off = True
            rows.append(ScheduleEntry.paid_off(month, rate))
            continue

        if not strategy.is_current:
            payment = monthly_payment(balance, rate, remaining)

        interest = balance * (rate / _HUNDRED / _TWELVE)
        # A last small balance is not overpaid.
        principal = min(payment - interest, balance)
        balance = max(ZERO, balance - principal)

        rows.append(
            ScheduleEntry(
                month=month,
                payment=payment,
                principal=principal,
                interest=interest,
                balance=balance,
                rate=rate,
            )
        )
        if balance <= PAYOFF_THRESHOLD:
            paid_off = True

    return rows


def compute_totals(strategy: LoanStrategy) -> StrategyTotals:
    """Lifetime totals over the strategy's own full term.

    A current loan is costed over its entire original term at its original
    payment, already-paid months included, so it compares fairly against a
    fresh loan.
    """
    if strategy.is_current:
        total_payments = strategy.nominal_payment * Decimal(strategy.term_months)
        return StrategyTotals(
            total_payments=total_payments,
            total_interest=total_payments - strategy.principal,
            total_principal=strategy.principal,
            total_cost=total_payments + strategy.buydown_cost,
        )

    schedule = compute_schedule(strategy, strategy.term_months)
    total_payments = sum((row.payment for row in schedule), ZERO)
    total_interest = sum((row.interest for row in schedule), ZERO)
    total_principal = sum((row.principal for row in schedule), ZERO)

    return StrategyTotals(
        total_payments=total_payments,
        total_interest=total_interest,
        total_principal=total_principal,
        total_cost=total_payments + strategy.buydown_cost,
    )
