"""
Inflation tracking for familyplan.

Cumulative inflation factor per elapsed month and nominal ↔ real
conversion. The factor compounds the simple monthly rate:

    F_m = (1 + π / 12) ** m,   F_0 = 1

where π is the annual inflation rate as a fraction. Real values are
nominal values divided by F_m (today's purchasing power).
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .constants import MONTHS_PER_YEAR
from .exceptions import InvalidParameterError

__all__ = ["InflationTracker"]


@dataclass(frozen=True)
class InflationTracker:
    """
    Cumulative inflation factors for a fixed annual rate.

    Parameters
    ----------
    annual_rate : float
        Annual inflation as a fraction (0.025 = 2.5%). Must be > -1.

    Examples
    --------
    >>> tracker = InflationTracker.from_percent(2.4)
    >>> tracker.factor_at(0)
    1.0
    >>> round(tracker.factor_at(12), 6)
    1.024266
    >>> round(tracker.to_real(tracker.to_nominal(1_000.0, 36), 36), 9)
    1000.0
    """
    annual_rate: float = 0.0

    def __post_init__(self):
        if self.annual_rate <= -1.0:
            raise InvalidParameterError(
                f"annual inflation rate must be > -1.0, got {self.annual_rate}"
            )

    @classmethod
    def from_percent(cls, percent: float) -> "InflationTracker":
        """Build from an annual rate in percent (scenario units)."""
        return cls(annual_rate=percent / 100.0)

    @property
    def monthly_rate(self) -> float:
        return self.annual_rate / MONTHS_PER_YEAR

    def factor_at(self, month_index: int) -> float:
        """Cumulative factor after *month_index* months (1.0 at month 0)."""
        if month_index < 0:
            raise InvalidParameterError(f"month_index must be >= 0, got {month_index}")
        return float((1.0 + self.monthly_rate) ** month_index)

    def factors(self, months: int) -> np.ndarray:
        """Factors for months 0..months inclusive, shape (months + 1,)."""
        if months < 0:
            raise InvalidParameterError(f"months must be >= 0, got {months}")
        return (1.0 + self.monthly_rate) ** np.arange(months + 1, dtype=float)

    def to_real(self, nominal_value: float, month_index: int) -> float:
        """Deflate a nominal value to today's purchasing power."""
        return nominal_value / self.factor_at(month_index)

    def to_nominal(self, real_value: float, month_index: int) -> float:
        """Inflate a value in today's money to the nominal value at *month_index*."""
        return real_value * self.factor_at(month_index)
