"""
Global constants for familyplan.

Purpose
-------
Centralizes default values and magic numbers used throughout the
projection engine. Using constants instead of hardcoded values keeps the
engine, the pydantic configs and the CLI consistent.

Usage
-----
>>> from familyplan.constants import MONTHS_PER_YEAR, DEFAULT_INFLATION_RATE
>>> params = SimulationParams(start_date=date(2025, 1, 1),
...                           inflation_rate=DEFAULT_INFLATION_RATE)

Categories
----------
- Time: months per year, default horizon, end-age bounds
- Inflation: default annual rate and accepted range
- Expenses: default month for yearly expenses, asset liquidity order
- Allocation: policies for deposits/withdrawals without a target asset
- Currency: default currency code
"""

from typing import Dict, Tuple

__all__ = [
    # Time
    "MONTHS_PER_YEAR",
    "DEFAULT_HORIZON_YEARS",
    "MIN_END_AGE",
    "MAX_END_AGE",
    # Inflation
    "DEFAULT_INFLATION_RATE",
    "MAX_INFLATION_RATE",
    # Expenses
    "DEFAULT_YEARLY_EXPENSE_MONTH",
    "FREQUENCY_MONTHS",
    "LIQUIDITY_ORDER",
    # Allocation
    "ALLOCATION_POLICIES",
    "DEFAULT_ALLOCATION_POLICY",
    # Currency / assets
    "DEFAULT_CURRENCY",
    "ASSET_TYPES",
    "MEMBER_TYPES",
    "INCOME_MEMBER_TYPES",
]


# =============================================================================
# Time
# =============================================================================

MONTHS_PER_YEAR: int = 12
"""Number of months in a year (used for rate and age conversions)."""

DEFAULT_HORIZON_YEARS: int = 30
"""Horizon used when a scenario specifies neither end_date nor end_age."""

MIN_END_AGE: int = 20
"""Smallest accepted end_age (age of the target member at horizon end)."""

MAX_END_AGE: int = 120
"""Largest accepted end_age."""


# =============================================================================
# Inflation
# =============================================================================

DEFAULT_INFLATION_RATE: float = 2.5
"""Default annual inflation rate, in percent."""

MAX_INFLATION_RATE: float = 20.0
"""Largest accepted annual inflation rate, in percent."""


# =============================================================================
# Expenses
# =============================================================================

DEFAULT_YEARLY_EXPENSE_MONTH: int = 7
"""Calendar month (July) used for yearly expenses without an explicit month."""

FREQUENCY_MONTHS: Dict[str, int] = {
    "monthly": 1,
    "quarterly": 3,
    "yearly": 12,
}
"""Period length in months for recurring child-expense frequencies."""

LIQUIDITY_ORDER: Tuple[str, ...] = (
    "savings",
    "investment",
    "child_savings",
    "other",
    "study_fund",
    "provident",
    "pension",
    "real_estate",
)
"""Asset types from most to least liquid.

Expenses are drawn from assets in this order; assets of the same type keep
their declared order.
"""


# =============================================================================
# Allocation
# =============================================================================

ALLOCATION_POLICIES: Tuple[str, ...] = ("pro_rata", "first_asset", "liquidity_order")
"""How deposits/withdrawals without an asset_id are spread across assets.

- pro_rata: proportional to current balances (equal split if all are zero)
- first_asset: entirely to/from the first declared asset
- liquidity_order: the most liquid asset first (see LIQUIDITY_ORDER)
"""

DEFAULT_ALLOCATION_POLICY: str = "pro_rata"


# =============================================================================
# Currency / assets / members
# =============================================================================

DEFAULT_CURRENCY: str = "ILS"
"""Default currency code for assets."""

ASSET_TYPES: Tuple[str, ...] = LIQUIDITY_ORDER

MEMBER_TYPES: Tuple[str, ...] = ("self", "spouse", "child", "planned_child")

INCOME_MEMBER_TYPES: Tuple[str, ...] = ("self", "spouse")
"""Member types whose income is summed into the timeline's monthly_income."""
