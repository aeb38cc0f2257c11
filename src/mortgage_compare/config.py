"""Application-wide constants and configuration defaults.

All tuneable defaults live here so there is a single place to adjust them.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Literal, Union

# ── Type aliases ──────────────────────────────────────────────────────────────

StrategyKind = Literal["current", "fixed", "buydown-1-0", "buydown-2-1"]
Horizon = Union[int, Literal["full"]]

# ── Strategy kinds ────────────────────────────────────────────────────────────

STRATEGY_KINDS: tuple[str, ...] = ("current", "fixed", "buydown-1-0", "buydown-2-1")
STRATEGY_LABELS: dict[str, str] = {
    "current": "Current Loan",
    "fixed": "Fixed Term",
    "buydown-1-0": "1-0 Buydown",
    "buydown-2-1": "2-1 Buydown",
}
BUYDOWN_KINDS: frozenset[str] = frozenset({"buydown-1-0", "buydown-2-1"})

# Rate reduction (percentage points) for each discounted year, first year first.
BUYDOWN_STEPS: dict[str, tuple[Decimal, ...]] = {
    "buydown-1-0": (Decimal("1"),),
    "buydown-2-1": (Decimal("2"), Decimal("1")),
}

# ── Input limits and defaults ─────────────────────────────────────────────────

MIN_LOAN_AMOUNT = Decimal("1000")
MIN_ANNUAL_RATE = Decimal("0.1")   # percent
MAX_ANNUAL_RATE = Decimal("50")    # percent
DEFAULT_TERM_YEARS: int = 30

# ── Amortization ──────────────────────────────────────────────────────────────

PAYOFF_THRESHOLD = Decimal("0.01")  # balance at or below this counts as paid off
DAYS_PER_YEAR = Decimal("365.25")
MONTHS_PER_YEAR: int = 12

# ── Schedule comparison ───────────────────────────────────────────────────────

FULL_TERM: Literal["full"] = "full"
DEFAULT_SCHEDULE_MONTHS: int = 24
SCHEDULE_HORIZON_CHOICES: tuple[str, ...] = ("12", "24", "36", "60", "120", "180", "360", FULL_TERM)

# ── Numeric convenience ───────────────────────────────────────────────────────

ZERO = Decimal("0")
CENT = Decimal("0.01")
