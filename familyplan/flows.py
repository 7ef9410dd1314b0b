"""
Scenario cash-flow overrides for familyplan.

Purpose
-------
Models the user-specified overrides of a scenario: one-off extra deposits,
withdrawal events and recurring yearly expenses. Resolves their calendar
dates to month offsets of the simulation and distributes amounts that do
not name an asset across the portfolio.

Month resolution
----------------
A dated override belongs to month k = calendar months between the
simulation start and its date. Point 0 is the opening snapshot, so flows
dated in the start month (or earlier) are applied in month 1. Overrides
beyond the horizon are ignored with a UserWarning.

Allocation policies
-------------------
Amounts without an `asset_id` are distributed by a configurable policy:

- "pro_rata"        : proportional to current balances (equal split if all
                      balances are zero)
- "first_asset"     : entirely to/from the first declared asset; withdrawals
                      cascade to the next asset once it is exhausted
- "liquidity_order" : to/from the most liquid asset first (LIQUIDITY_ORDER,
                      ties by declared order), cascading for withdrawals

Withdrawals are never allowed to exceed the available balances: the
unfunded remainder is returned to the caller, which reports it as a
partial withdrawal.

Example
-------
>>> from datetime import date
>>> ev = WithdrawalEvent(date(2025, 6, 15), 40_000, description="Car")
>>> ev.resolve_month(date(2025, 1, 1))
6
>>> split_pro_rata(900.0, {"a": 100.0, "b": 200.0})
{'a': 300.0, 'b': 600.0}
>>> draw_in_order(500.0, {"a": 100.0, "b": 200.0}, ["b", "a"])
({'b': 200.0, 'a': 100.0}, 200.0)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, TypeVar
import warnings

from .assets import AssetState, liquidity_rank
from .constants import ALLOCATION_POLICIES, DEFAULT_YEARLY_EXPENSE_MONTH
from .exceptions import InvalidParameterError
from .utils import check_positive, simulated_month

__all__ = [
    "ExtraDeposit",
    "WithdrawalEvent",
    "YearlyExpense",
    "bucket_by_month",
    "liquidity_sorted",
    "split_pro_rata",
    "draw_in_order",
    "allocate_deposit",
    "allocate_withdrawal",
]


# ---------------------------------------------------------------------------
# Override Events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExtraDeposit:
    """
    One-off deposit on top of the recurring deposits.

    Parameters
    ----------
    date : datetime.date
        Calendar date of the deposit.
    amount : float
        Deposit amount (must be positive).
    asset_id : str, optional
        Target asset. When None the amount is distributed by the scenario's
        allocation policy.
    description : str, optional
        Human-readable label (e.g., "Bonus").
    """
    date: date
    amount: float
    asset_id: Optional[str] = None
    description: str = ""

    def __post_init__(self):
        check_positive("extra deposit amount", self.amount)

    def resolve_month(self, start_date: date) -> int:
        """Simulated month (1-based) this event falls in; see utils.simulated_month."""
        return simulated_month(start_date, self.date)

    def __repr__(self) -> str:
        desc = f", {self.description!r}" if self.description else ""
        return (
            f"ExtraDeposit(asset={self.asset_id!r}, amount={self.amount:,.0f}, "
            f"date={self.date.isoformat()}{desc})"
        )


@dataclass(frozen=True)
class WithdrawalEvent:
    """
    Single scheduled withdrawal.

    The withdrawal is taken at the start of its month, before that month's
    deposits land and before returns accrue, so the withdrawn amount earns
    nothing that month.

    Parameters
    ----------
    date : datetime.date
        Calendar date of the withdrawal.
    amount : float
        Requested amount (must be positive). Clamped to what is available.
    asset_id : str, optional
        Source asset. When None the amount is drawn by the allocation policy.
    description : str, optional
        Human-readable label (e.g., "New car").

    Examples
    --------
    >>> WithdrawalEvent(date(2026, 3, 1), 100_000, "savings").resolve_month(date(2025, 1, 1))
    15
    """
    date: date
    amount: float
    asset_id: Optional[str] = None
    description: str = ""

    def __post_init__(self):
        check_positive("withdrawal amount", self.amount)

    def resolve_month(self, start_date: date) -> int:
        """Simulated month (1-based) this event falls in; see utils.simulated_month."""
        return simulated_month(start_date, self.date)

    def __repr__(self) -> str:
        desc = f", {self.description!r}" if self.description else ""
        return (
            f"WithdrawalEvent(asset={self.asset_id!r}, amount={self.amount:,.0f}, "
            f"date={self.date.isoformat()}{desc})"
        )


@dataclass(frozen=True)
class YearlyExpense:
    """
    Expense recurring every year in a fixed calendar month.

    Parameters
    ----------
    name : str
        Label (e.g., "Summer vacation").
    amount : float
        Amount in today's money (must be positive).
    month : int, default 7
        Calendar month 1..12 in which the expense is paid.
    adjust_for_inflation : bool, default True
        Multiply by the cumulative inflation factor of the payment month.
    """
    name: str
    amount: float
    month: int = DEFAULT_YEARLY_EXPENSE_MONTH
    adjust_for_inflation: bool = True

    def __post_init__(self):
        check_positive(f"amount of yearly expense {self.name!r}", self.amount)
        if not (1 <= self.month <= 12):
            raise InvalidParameterError(
                f"month of yearly expense {self.name!r} must be in 1..12, got {self.month}"
            )

    def amount_at(self, inflation_factor: float) -> float:
        """Nominal amount due given the month's cumulative inflation factor."""
        if self.adjust_for_inflation:
            return self.amount * inflation_factor
        return float(self.amount)


# ---------------------------------------------------------------------------
# Month resolution
# ---------------------------------------------------------------------------

_Dated = TypeVar("_Dated", ExtraDeposit, WithdrawalEvent)


def bucket_by_month(
    events: Iterable[_Dated],
    start_date: date,
    horizon_months: int,
) -> Dict[int, List[_Dated]]:
    """
    Group dated overrides by simulated month (1..horizon_months).

    Month k covers [add_months(start, k - 1), add_months(start, k)). Events
    keep their input order within a month. Events dated before the start
    land in month 1.

    Warns
    -----
    UserWarning
        If an event falls beyond the horizon (the event is ignored).
    """
    buckets: Dict[int, List[_Dated]] = {}
    for event in events:
        month = event.resolve_month(start_date)
        if month > horizon_months:
            label = event.description or type(event).__name__
            warnings.warn(
                f"{label} at {event.date} (month {month}) is beyond horizon "
                f"of {horizon_months} months. Ignoring.",
                UserWarning,
            )
            continue
        buckets.setdefault(month, []).append(event)
    return buckets


# ---------------------------------------------------------------------------
# Allocation
# ---------------------------------------------------------------------------

def liquidity_sorted(assets: Sequence[AssetState]) -> List[AssetState]:
    """Assets most liquid first; sorted() keeps declared order on ties."""
    return sorted(assets, key=liquidity_rank)


def split_pro_rata(amount: float, balances: Mapping[str, float]) -> Dict[str, float]:
    """
    Split *amount* proportionally to *balances*.

    All-zero (or empty-positive) balances split equally. Returns an empty
    dict when there is no asset to split across.
    """
    if not balances:
        return {}
    total = sum(max(b, 0.0) for b in balances.values())
    if total <= 0:
        share = amount / len(balances)
        return {asset_id: share for asset_id in balances}
    return {
        asset_id: amount * max(b, 0.0) / total
        for asset_id, b in balances.items()
    }


def draw_in_order(
    amount: float,
    balances: Mapping[str, float],
    order: Sequence[str],
) -> Tuple[Dict[str, float], float]:
    """
    Draw *amount* from assets in *order*, each up to its balance.

    Returns
    -------
    (Dict[str, float], float)
        Amount drawn per asset (only non-zero draws) and the unfunded
        remainder.
    """
    draws: Dict[str, float] = {}
    remaining = amount
    for asset_id in order:
        if remaining <= 0:
            break
        available = max(balances.get(asset_id, 0.0), 0.0)
        take = min(available, remaining)
        if take > 0:
            draws[asset_id] = take
            remaining -= take
    return draws, max(remaining, 0.0)


def _order_for(policy: str, assets: Sequence[AssetState]) -> List[str]:
    if policy == "liquidity_order":
        return [a.id for a in liquidity_sorted(assets)]
    return [a.id for a in assets]


def _check_policy(policy: str) -> None:
    if policy not in ALLOCATION_POLICIES:
        raise InvalidParameterError(
            f"allocation policy must be one of {ALLOCATION_POLICIES}, got {policy!r}"
        )


def allocate_deposit(
    amount: float,
    assets: Sequence[AssetState],
    policy: str = "pro_rata",
) -> Dict[str, float]:
    """
    Distribute an unassigned deposit across *assets*.

    Examples
    --------
    >>> assets = [AssetState("a", balance=0.0), AssetState("b", balance=0.0)]
    >>> allocate_deposit(1_000.0, assets)
    {'a': 500.0, 'b': 500.0}
    """
    _check_policy(policy)
    if not assets or amount <= 0:
        return {}
    if policy == "pro_rata":
        return split_pro_rata(amount, {a.id: a.balance for a in assets})
    return {_order_for(policy, assets)[0]: amount}


_Allocator = Callable[[float, Sequence[AssetState], Mapping[str, float]], Tuple[Dict[str, float], float]]


def _withdraw_pro_rata(amount, assets, balances):
    available = {a.id: max(balances.get(a.id, 0.0), 0.0) for a in assets}
    total = sum(available.values())
    if total <= 0:
        return {}, amount
    if amount >= total:
        return {k: v for k, v in available.items() if v > 0}, amount - total
    shares = split_pro_rata(amount, available)
    return {k: v for k, v in shares.items() if v > 0}, 0.0


def _withdraw_first_asset(amount, assets, balances):
    return draw_in_order(amount, balances, _order_for("first_asset", assets))


def _withdraw_liquidity_order(amount, assets, balances):
    return draw_in_order(amount, balances, _order_for("liquidity_order", assets))


_WITHDRAWAL_ALLOCATORS: Dict[str, _Allocator] = {
    "pro_rata": _withdraw_pro_rata,
    "first_asset": _withdraw_first_asset,
    "liquidity_order": _withdraw_liquidity_order,
}


def allocate_withdrawal(
    amount: float,
    assets: Sequence[AssetState],
    balances: Mapping[str, float],
    policy: str = "pro_rata",
) -> Tuple[Dict[str, float], float]:
    """
    Draw an unassigned withdrawal from *assets* given remaining *balances*.

    Parameters
    ----------
    amount : float
        Requested amount.
    assets : Sequence[AssetState]
        Assets in declared order.
    balances : Mapping[str, float]
        Balances still available this month (after earlier requests).
    policy : str
        One of ALLOCATION_POLICIES.

    Returns
    -------
    (Dict[str, float], float)
        Draw per asset and the unfunded remainder (0 when fully funded).
    """
    _check_policy(policy)
    return _WITHDRAWAL_ALLOCATORS[policy](amount, assets, balances)
