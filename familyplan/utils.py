"""General utilities for familyplan

Contents
--------
- Validation helpers (raise InvalidParameterError)
- Calendar helpers (month stepping, month offsets, horizon length)
- Index helpers (pandas DatetimeIndex for timeline exports)
"""

from __future__ import annotations

import calendar
from datetime import date
from typing import Iterable, Optional

import pandas as pd

from .constants import MONTHS_PER_YEAR
from .exceptions import InvalidParameterError

__all__ = [
    # Validation
    "check_non_negative",
    "check_positive",
    "check_fraction",
    # Calendar
    "add_months",
    "add_years",
    "month_offset",
    "months_spanned",
    "simulated_month",
    # Index
    "to_datetime_index",
]

# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

def check_non_negative(name: str, value: float) -> None:
    """Raise if *value* is negative (strict)."""
    if value < 0:
        raise InvalidParameterError(f"{name} must be non-negative (got {value}).")


def check_positive(name: str, value: float) -> None:
    """Raise if *value* is zero or negative."""
    if value <= 0:
        raise InvalidParameterError(f"{name} must be positive (got {value}).")


def check_fraction(name: str, value: float) -> None:
    """Raise if *value* is outside [0, 1]. Rates are fractions, not percents."""
    if not (0.0 <= value <= 1.0):
        raise InvalidParameterError(
            f"{name} must be in [0, 1] (got {value}). "
            f"Rates are fractions: 0.005 means 0.5%."
        )


# ---------------------------------------------------------------------------
# Calendar helpers
# ---------------------------------------------------------------------------

def add_months(d: date, months: int) -> date:
    """
    Shift *d* by a whole number of calendar months.

    The day is clamped to the last day of the target month, so
    ``add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)``.
    """
    total = d.year * MONTHS_PER_YEAR + (d.month - 1) + int(months)
    year, month0 = divmod(total, MONTHS_PER_YEAR)
    last_day = calendar.monthrange(year, month0 + 1)[1]
    return date(year, month0 + 1, min(d.day, last_day))


def add_years(d: date, years: int) -> date:
    """Shift *d* by whole years (Feb 29 falls back to Feb 28)."""
    return add_months(d, int(years) * MONTHS_PER_YEAR)


def month_offset(start: date, target: date) -> int:
    """
    Calendar-month offset from *start* to *target*, ignoring days.

    Examples
    --------
    >>> month_offset(date(2025, 1, 15), date(2025, 6, 1))
    5
    >>> month_offset(date(2025, 1, 1), date(2024, 11, 30))
    -2
    """
    return (target.year - start.year) * MONTHS_PER_YEAR + (target.month - start.month)


def simulated_month(start: date, when: date) -> int:
    """
    Simulated month (1-based) whose interval contains *when*.

    Month k covers ``[add_months(start, k - 1), add_months(start, k))`` and
    ends on the timeline point dated ``add_months(start, k)``. Dates before
    *start* resolve to month 1.

    Examples
    --------
    >>> simulated_month(date(2025, 1, 1), date(2025, 1, 15))
    1
    >>> simulated_month(date(2025, 1, 1), date(2025, 2, 1))
    2
    >>> simulated_month(date(2025, 1, 15), date(2025, 2, 10))
    1
    """
    if when < start:
        return 1
    k = month_offset(start, when)
    if add_months(start, k) <= when:
        k += 1
    return k


def months_spanned(start: date, end: date) -> int:
    """
    Whole months needed to reach *end* from *start*, rounded up.

    A partial trailing month counts as a full month:
    ``months_spanned(date(2025, 1, 1), date(2025, 3, 2)) == 3``.
    """
    months = month_offset(start, end)
    if end.day > start.day:
        months += 1
    return months


# ---------------------------------------------------------------------------
# Index helpers
# ---------------------------------------------------------------------------

def to_datetime_index(dates: Iterable[date], name: Optional[str] = "date") -> pd.DatetimeIndex:
    """Build a DatetimeIndex from calendar dates (used for timeline exports)."""
    return pd.DatetimeIndex([pd.Timestamp(d) for d in dates], name=name)
