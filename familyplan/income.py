"""
Income modeling module for familyplan.

Purpose
-------
Resolves a family member's effective monthly income at an arbitrary date
from a dated, append-only income history. The timeline engine sums the
resolved income of the earning members (self, spouse) at each simulated
month.

Key components
--------------
- IncomeRecord:
    One dated income entry for a member. Immutable.

- IncomeResolver:
    Index over many members' histories. `income_at(member_id, date)`
    returns the amount of the latest record with effective_date <= date,
    or 0 if the member has no record in effect yet.

Design principles
-----------------
- Histories are sorted once at construction; lookups bisect on the
  sorted effective dates, so each query is O(log n).
- Ties on effective_date resolve to the record appended last, matching
  the append-only semantics of the history.
- Resolution is monotone in date for a fixed history: no record is ever
  removed mid-simulation.

Example
-------
>>> from datetime import date
>>> resolver = IncomeResolver([
...     IncomeRecord("dana", 18_000, date(2024, 1, 1)),
...     IncomeRecord("dana", 21_000, date(2025, 7, 1)),
... ])
>>> resolver.income_at("dana", date(2025, 6, 30))
18000.0
>>> resolver.income_at("dana", date(2025, 7, 1))
21000.0
>>> resolver.income_at("dana", date(2023, 12, 31))
0.0
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional

from .utils import check_non_negative

__all__ = [
    "IncomeRecord",
    "IncomeResolver",
]


# ---------------------------------------------------------------------------
# Income Record
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class IncomeRecord:
    """
    Monthly income of one member, in effect from a given date.

    Parameters
    ----------
    member_id : str
        Family member the record belongs to.
    amount : float
        Monthly income amount (non-negative).
    effective_date : datetime.date
        First date on which this amount applies.
    description : str, optional
        Free text (e.g., "Promotion").
    """
    member_id: str
    amount: float
    effective_date: date
    description: str = ""

    def __post_init__(self):
        check_non_negative(f"income amount for member {self.member_id!r}", self.amount)

    def __repr__(self) -> str:
        return (
            f"IncomeRecord(member={self.member_id!r}, amount={self.amount:,.0f}, "
            f"from={self.effective_date.isoformat()})"
        )


# ---------------------------------------------------------------------------
# Income Resolver
# ---------------------------------------------------------------------------

class IncomeResolver:
    """
    Effective-income lookup over dated income histories.

    Parameters
    ----------
    records : Iterable[IncomeRecord]
        Records of any number of members, in append order.

    Methods
    -------
    income_at(member_id, at) -> float
        Income in effect for one member.
    total_income_at(at, member_ids=None) -> float
        Sum over members (all known members if member_ids is None).
    history(member_id) -> List[IncomeRecord]
        The member's records sorted by effective date.
    """

    def __init__(self, records: Iterable[IncomeRecord] = ()):
        grouped: Dict[str, List[IncomeRecord]] = {}
        for record in records:
            grouped.setdefault(record.member_id, []).append(record)

        self._records: Dict[str, List[IncomeRecord]] = {}
        self._dates: Dict[str, List[date]] = {}
        for member_id, member_records in grouped.items():
            # sorted() is stable: same-date records keep their append order
            ordered = sorted(member_records, key=lambda r: r.effective_date)
            self._records[member_id] = ordered
            self._dates[member_id] = [r.effective_date for r in ordered]

    @property
    def member_ids(self) -> List[str]:
        return list(self._records)

    def income_at(self, member_id: str, at: date) -> float:
        """Amount of the latest record with effective_date <= *at* (0 if none)."""
        dates = self._dates.get(member_id)
        if not dates:
            return 0.0
        pos = bisect_right(dates, at)
        if pos == 0:
            return 0.0
        return float(self._records[member_id][pos - 1].amount)

    def total_income_at(self, at: date, member_ids: Optional[Iterable[str]] = None) -> float:
        """Sum of income_at over *member_ids*."""
        ids = self._records.keys() if member_ids is None else member_ids
        return float(sum(self.income_at(member_id, at) for member_id in ids))

    def history(self, member_id: str) -> List[IncomeRecord]:
        return list(self._records.get(member_id, []))

    def __len__(self) -> int:
        return sum(len(v) for v in self._records.values())

    def __repr__(self) -> str:
        return f"IncomeResolver(n_members={len(self._records)}, n_records={len(self)})"
