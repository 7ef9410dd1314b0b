"""Timeline engine for familyplan

Iterates month by month over the scenario horizon, composing the asset
growth model (`assets.py`), inflation tracking (`inflation.py`), income
resolution (`income.py`) and child-expense milestones (`children.py`), and
applies the scenario overrides (`flows.py`). Emits one TimelinePoint per
month plus a SimulationSummary.

Design goals
------------
- Pure: a run never mutates its inputs. Working copies of the assets are
  new AssetState objects each month.
- Fail fast: every validation happens in the constructor, before the
  first month is simulated. No partial timeline is ever returned.
- Deterministic: identical inputs give bit-identical timelines.

Month structure
---------------
Point 0 is the opening snapshot (no flows). Month k = 1..H covers the
dates [start + (k - 1) months, start + k months) and ends on the point
dated start + k months. Every dated item (deposit, withdrawal, milestone)
and every yearly expense is applied in the month whose interval holds it:

1. deposits      : scheduled + one-off extra deposits + extra_monthly_deposit
2. withdrawals   : withdrawal events in input order, then yearly expenses
                   whose calendar month opens this interval (liquidity
                   order). Requests are clamped to the remaining balances.
3. growth        : advance_month per asset
4. milestones    : child expenses due this month, drawn in liquidity order
5. income, inflation factor, real values, event strings

Typical usage
-------------
>>> from datetime import date
>>> params = SimulationParams(start_date=date(2025, 1, 1),
...                           end_date=date(2026, 1, 1), inflation_rate=0.0)
>>> engine = TimelineEngine(params, [AssetState("fund", balance=100_000,
...                                             monthly_deposit=1_000,
...                                             annual_return_rate=0.06)])
>>> results = engine.run()
>>> results.summary.horizon_months
12
>>> results.to_dataframe()[["total_assets", "total_deposits"]].tail()
"""
from __future__ import annotations

import logging
import warnings
from collections import defaultdict
from dataclasses import asdict, dataclass, field, replace
from datetime import date
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .assets import AssetState, advance_month
from .children import ChildExpenseProjector, ChildExpenseTemplate, ChildProjection, Milestone
from .constants import (
    ALLOCATION_POLICIES,
    DEFAULT_ALLOCATION_POLICY,
    DEFAULT_HORIZON_YEARS,
    DEFAULT_INFLATION_RATE,
    MAX_END_AGE,
    MAX_INFLATION_RATE,
    MIN_END_AGE,
)
from .exceptions import ClampedWithdrawalWarning, InvalidParameterError
from .family import FamilyMember
from .flows import (
    ExtraDeposit,
    WithdrawalEvent,
    YearlyExpense,
    allocate_deposit,
    allocate_withdrawal,
    bucket_by_month,
    draw_in_order,
    liquidity_sorted,
)
from .income import IncomeResolver
from .inflation import InflationTracker
from .utils import (
    add_months,
    add_years,
    check_non_negative,
    months_spanned,
    simulated_month,
    to_datetime_index,
)

logger = logging.getLogger(__name__)

__all__ = [
    "SimulationParams",
    "TimelinePoint",
    "SimulationSummary",
    "SimulationResults",
    "TimelineEngine",
    "resolve_horizon",
]

# Amounts below this are treated as fully funded (float noise).
_EPS = 1e-9


# ---------------------------------------------------------------------------
# Scenario parameters
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SimulationParams:
    """
    One scenario.

    Parameters
    ----------
    start_date : datetime.date
        Simulation start (point 0).
    end_date : datetime.date, optional
        Horizon end. Takes precedence over end_age.
    end_age : int, optional
        Age of the target member at which the horizon ends (20..120).
    target_member_id : str, optional
        Member whose age end_age refers to. Defaults to the "self" member.
    inflation_rate : float, default 2.5
        Annual inflation in percent (0..20).
    include_planned_children : bool, default True
        Project milestones of planned (not yet born) children.
    extra_monthly_deposit : float, default 0.0
        Extra deposit every month, distributed by unassigned_allocation.
    extra_deposits, withdrawal_events : tuple
        Dated one-off overrides.
    yearly_expenses : tuple of YearlyExpense
    unassigned_allocation : {"pro_rata", "first_asset", "liquidity_order"}
        Policy for flows without an asset_id.
    inflate_child_expenses : bool, default True
        Multiply milestone costs by the month's inflation factor.
    event_dates : Mapping[str, Mapping[str, date]]
        Dates of event-triggered child expenses, {member_id: {item_id: date}}.
    event_age_fallback : bool, default False
        Resolve undated event items at birth + trigger_value years.
    """
    start_date: date
    end_date: Optional[date] = None
    end_age: Optional[int] = None
    target_member_id: Optional[str] = None
    inflation_rate: float = DEFAULT_INFLATION_RATE
    include_planned_children: bool = True
    extra_monthly_deposit: float = 0.0
    extra_deposits: Tuple[ExtraDeposit, ...] = ()
    withdrawal_events: Tuple[WithdrawalEvent, ...] = ()
    yearly_expenses: Tuple[YearlyExpense, ...] = ()
    unassigned_allocation: str = DEFAULT_ALLOCATION_POLICY
    inflate_child_expenses: bool = True
    event_dates: Mapping[str, Mapping[str, date]] = field(default_factory=dict)
    event_age_fallback: bool = False

    def __post_init__(self):
        """Validate scenario parameters."""
        if not (0.0 <= self.inflation_rate <= MAX_INFLATION_RATE):
            raise InvalidParameterError(
                f"inflation_rate must be in [0, {MAX_INFLATION_RATE}] percent, "
                f"got {self.inflation_rate}"
            )
        if self.end_age is not None and not (MIN_END_AGE <= self.end_age <= MAX_END_AGE):
            raise InvalidParameterError(
                f"end_age must be in [{MIN_END_AGE}, {MAX_END_AGE}], got {self.end_age}"
            )
        if self.end_date is not None and self.end_date <= self.start_date:
            raise InvalidParameterError(
                f"end_date ({self.end_date}) must be after start_date ({self.start_date})"
            )
        check_non_negative("extra_monthly_deposit", self.extra_monthly_deposit)
        if self.unassigned_allocation not in ALLOCATION_POLICIES:
            raise InvalidParameterError(
                f"unassigned_allocation must be one of {ALLOCATION_POLICIES}, "
                f"got {self.unassigned_allocation!r}"
            )


def resolve_horizon(params: SimulationParams, members: Sequence[FamilyMember] = ()) -> int:
    """
    Number of simulated months.

    end_date wins; else end_age against the target member's birth date;
    else DEFAULT_HORIZON_YEARS. Partial trailing months round up.

    Raises
    ------
    InvalidParameterError
        If the end is not after the start, or end_age is set but the
        target member (or its birth date) is unknown.
    """
    if params.end_date is not None:
        end = params.end_date
    elif params.end_age is not None:
        member = _target_member(params, members)
        if member is None or member.birth_date is None:
            who = params.target_member_id or "self"
            raise InvalidParameterError(
                f"end_age={params.end_age} requires a birth date for member {who!r}"
            )
        end = add_years(member.birth_date, params.end_age)
    else:
        end = add_years(params.start_date, DEFAULT_HORIZON_YEARS)

    if end <= params.start_date:
        raise InvalidParameterError(
            f"horizon end ({end}) must be after start_date ({params.start_date})"
        )
    return months_spanned(params.start_date, end)


def _target_member(params: SimulationParams, members: Sequence[FamilyMember]) -> Optional[FamilyMember]:
    for member in members:
        if params.target_member_id is not None:
            if member.id == params.target_member_id:
                return member
        elif member.member_type == "self":
            return member
    return None


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TimelinePoint:
    """State of the family's finances at the end of one simulated month.

    monthly_income_real is monthly_income deflated to start-date money.
    assets_breakdown is a read-only view (declared asset order), so a
    cached result cannot be altered through its points.
    """
    month_index: int
    date: date
    total_assets: float
    total_assets_real: float
    total_deposits: float
    total_withdrawals: float
    total_returns: float
    total_fees: float
    total_child_expenses: float
    monthly_income: float
    monthly_income_real: float
    inflation_factor: float
    assets_breakdown: Mapping[str, float]
    events: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "month_index": self.month_index,
            "date": self.date.isoformat(),
            "total_assets": self.total_assets,
            "total_assets_real": self.total_assets_real,
            "total_deposits": self.total_deposits,
            "total_withdrawals": self.total_withdrawals,
            "total_returns": self.total_returns,
            "total_fees": self.total_fees,
            "total_child_expenses": self.total_child_expenses,
            "monthly_income": self.monthly_income,
            "monthly_income_real": self.monthly_income_real,
            "inflation_factor": self.inflation_factor,
            "assets_breakdown": dict(self.assets_breakdown),
            "events": list(self.events),
        }


@dataclass(frozen=True)
class SimulationSummary:
    """Aggregate metrics of a run.

    effective_return_rate is the nominal growth of the portfolio over the
    horizon in percent, ``(final / initial - 1) * 100`` (0 when the initial
    balance is 0); the real variant uses the deflated final balance.
    """
    start_date: date
    end_date: date
    horizon_months: int
    initial_balance: float
    final_balance: float
    final_balance_real: float
    total_deposited: float
    total_withdrawals: float
    total_returns: float
    total_returns_real: float
    total_fees: float
    total_child_expenses: float
    total_unfunded_expenses: float
    effective_return_rate: float
    effective_return_rate_real: float
    total_inflation_factor: float

    def to_dict(self) -> dict:
        out = asdict(self)
        out["start_date"] = self.start_date.isoformat()
        out["end_date"] = self.end_date.isoformat()
        return out


@dataclass(frozen=True)
class SimulationResults:
    """
    Output of one run.

    Attributes
    ----------
    timeline : tuple of TimelinePoint
        Points for months 0..H.
    summary : SimulationSummary
    goals_analysis : tuple
        GoalAnalysis per goal (filled by run_simulation).
    child_projections : tuple of ChildProjection
    asset_ids : tuple of str
        Declared asset order (column order of breakdown_dataframe).
    """
    timeline: Tuple[TimelinePoint, ...]
    summary: SimulationSummary
    goals_analysis: Tuple = ()
    child_projections: Tuple[ChildProjection, ...] = ()
    asset_ids: Tuple[str, ...] = ()

    @property
    def final(self) -> TimelinePoint:
        return self.timeline[-1]

    def to_dataframe(self) -> pd.DataFrame:
        """Scalar timeline columns indexed by point date."""
        rows = []
        for p in self.timeline:
            row = p.to_dict()
            del row["assets_breakdown"], row["date"]
            row["events"] = "; ".join(p.events)
            rows.append(row)
        return pd.DataFrame(rows, index=to_datetime_index(p.date for p in self.timeline))

    def breakdown_dataframe(self, real: bool = False) -> pd.DataFrame:
        """Per-asset balances (columns in declared asset order)."""
        data = np.array(
            [[p.assets_breakdown[a] for a in self.asset_ids] for p in self.timeline],
            dtype=float,
        ).reshape(len(self.timeline), len(self.asset_ids))
        if real:
            factors = np.array([p.inflation_factor for p in self.timeline], dtype=float)
            data = data / factors[:, None]
        return pd.DataFrame(
            data,
            index=to_datetime_index(p.date for p in self.timeline),
            columns=list(self.asset_ids),
        )

    def to_dict(self) -> dict:
        return {
            "timeline": [p.to_dict() for p in self.timeline],
            "summary": self.summary.to_dict(),
            "goals_analysis": [g.to_dict() for g in self.goals_analysis],
            "child_projections": [c.to_dict() for c in self.child_projections],
        }


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class TimelineEngine:
    """Month-by-month orchestrator over one scenario.

    All inputs are validated, child milestones projected and dated
    overrides bucketed by month in the constructor, so `run` can be called
    repeatedly (the goal back-solve does) at the cost of the month loop only.
    """

    def __init__(
        self,
        params: SimulationParams,
        assets: Sequence[AssetState],
        members: Sequence[FamilyMember] = (),
        templates: Sequence[ChildExpenseTemplate] = (),
    ):
        self.params = params
        self.assets: Tuple[AssetState, ...] = tuple(assets)
        self.members: Tuple[FamilyMember, ...] = tuple(members)
        self.templates: Tuple[ChildExpenseTemplate, ...] = tuple(templates)
        self._validate()

        self.start_date = params.start_date
        self.horizon_months = resolve_horizon(params, self.members)
        self.end_date = add_months(self.start_date, self.horizon_months)
        self.inflation = InflationTracker.from_percent(params.inflation_rate)

        earners = [m for m in self.members if m.earns_income]
        self._earner_ids = [m.id for m in earners]
        self.income = IncomeResolver(r for m in earners for r in m.income_history)

        self.child_projections = self._project_children()
        self._milestones = self._bucket_milestones()
        self._deposits = bucket_by_month(params.extra_deposits, self.start_date, self.horizon_months)
        self._withdrawals = bucket_by_month(params.withdrawal_events, self.start_date, self.horizon_months)

    # -------------------- Setup --------------------
    def _validate(self) -> None:
        if not self.assets:
            raise InvalidParameterError("at least one asset is required")
        ids = [a.id for a in self.assets]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise InvalidParameterError(f"duplicate asset ids: {duplicates}")
        for event in (*self.params.extra_deposits, *self.params.withdrawal_events):
            if event.asset_id is not None and event.asset_id not in ids:
                raise InvalidParameterError(
                    f"{event!r} targets unknown asset {event.asset_id!r}. "
                    f"Available assets: {ids}"
                )

    def _project_children(self) -> Tuple[ChildProjection, ...]:
        projector = ChildExpenseProjector(self.start_date)
        projections: List[ChildProjection] = []
        for member in self.members:
            if not member.is_child:
                continue
            if member.is_planned and not self.params.include_planned_children:
                continue
            projection = projector.project_member(
                member,
                self.templates,
                self.end_date,
                event_dates=self.params.event_dates.get(member.id, {}),
                event_age_fallback=self.params.event_age_fallback,
            )
            if projection is not None:
                projections.append(projection)
        return tuple(projections)

    def _bucket_milestones(self) -> Dict[int, List[Tuple[ChildProjection, Milestone]]]:
        buckets: Dict[int, List[Tuple[ChildProjection, Milestone]]] = {}
        for projection in self.child_projections:
            for milestone in projection.milestones:
                if milestone.is_past:
                    continue
                month = simulated_month(self.start_date, milestone.date)
                if month <= self.horizon_months:
                    buckets.setdefault(month, []).append((projection, milestone))
        return buckets

    # -------------------- Run --------------------
    def run(
        self,
        extra_contribution: float = 0.0,
        contribution_asset_id: Optional[str] = None,
        horizon_months: Optional[int] = None,
        warn: bool = True,
    ) -> SimulationResults:
        """
        Simulate months 0..horizon_months.

        Parameters
        ----------
        extra_contribution : float, default 0.0
            Additional uniform monthly deposit (used by the goal back-solve).
        contribution_asset_id : str, optional
            Asset receiving extra_contribution; distributed by the scenario's
            allocation policy when None.
        horizon_months : int, optional
            Stop early (<= the scenario horizon).
        warn : bool, default True
            Emit ClampedWithdrawalWarning for partial withdrawals.

        Returns
        -------
        SimulationResults
            Timeline and summary; goals_analysis is left empty.
        """
        check_non_negative("extra_contribution", extra_contribution)
        ids = [a.id for a in self.assets]
        if contribution_asset_id is not None and contribution_asset_id not in ids:
            raise InvalidParameterError(
                f"contribution asset {contribution_asset_id!r} not found. Available assets: {ids}"
            )
        H = self.horizon_months if horizon_months is None else horizon_months
        if not (0 <= H <= self.horizon_months):
            raise InvalidParameterError(
                f"horizon_months must be in [0, {self.horizon_months}], got {H}"
            )

        logger.debug(
            "Running timeline: start=%s months=%d assets=%d extra=%.2f",
            self.start_date, H, len(self.assets), extra_contribution,
        )

        params = self.params
        state: List[AssetState] = list(self.assets)
        liquidity_ids = [a.id for a in liquidity_sorted(self.assets)]

        totals = defaultdict(float)
        returns_real = 0.0
        timeline = [self._point(0, state, totals, ())]

        for k in range(1, H + 1):
            factor = self.inflation.factor_at(k)
            events: List[str] = []
            balances = {a.id: a.balance for a in state}

            # 1. Deposits
            extra_in: Dict[str, float] = defaultdict(float)
            for ev in self._deposits.get(k, []):
                target = self._deposit_split(ev.amount, ev.asset_id, state)
                for asset_id, amount in target.items():
                    extra_in[asset_id] += amount
                events.append(f"Deposit: {ev.description or ev.asset_id or 'unassigned'} +{ev.amount:,.0f}")
            for asset_id, part in self._deposit_split(
                params.extra_monthly_deposit, None, state
            ).items():
                extra_in[asset_id] += part
            for asset_id, part in self._deposit_split(
                extra_contribution, contribution_asset_id, state
            ).items():
                extra_in[asset_id] += part

            # 2. Withdrawals, then yearly expenses
            extra_out: Dict[str, float] = defaultdict(float)
            for ev in self._withdrawals.get(k, []):
                if ev.asset_id is not None:
                    take = min(ev.amount, balances[ev.asset_id])
                    draws = {ev.asset_id: take} if take > 0 else {}
                    unfunded = ev.amount - take
                else:
                    draws, unfunded = allocate_withdrawal(
                        ev.amount, state, balances, params.unassigned_allocation
                    )
                self._take(draws, balances, extra_out)
                label = ev.description or ev.asset_id or "unassigned"
                if unfunded > _EPS:
                    funded = ev.amount - unfunded
                    events.append(
                        f"partial_withdrawal: {label} requested {ev.amount:,.0f}, "
                        f"withdrew {funded:,.0f}"
                    )
                    if warn:
                        warnings.warn(
                            f"Withdrawal {label} on {ev.date} requested {ev.amount:,.2f} "
                            f"but only {funded:,.2f} was available. Clamped.",
                            ClampedWithdrawalWarning,
                        )
                else:
                    events.append(f"Withdrawal: {label} -{ev.amount:,.0f}")

            month_start = add_months(self.start_date, k - 1)
            for expense in params.yearly_expenses:
                if expense.month != month_start.month:
                    continue
                due = expense.amount_at(factor)
                draws, unfunded = draw_in_order(due, balances, liquidity_ids)
                self._take(draws, balances, extra_out)
                totals["unfunded"] += unfunded
                note = f" (unfunded {unfunded:,.0f})" if unfunded > _EPS else ""
                events.append(f"Yearly expense: {expense.name} -{due:,.0f}{note}")

            # 3. Growth
            new_state: List[AssetState] = []
            for asset in state:
                nxt, flows = advance_month(
                    asset, k,
                    extra_deposit=extra_in.get(asset.id, 0.0),
                    extra_withdrawal=extra_out.get(asset.id, 0.0),
                )
                totals["deposits"] += flows.deposit
                totals["returns"] += flows.return_
                totals["fees"] += flows.fee
                totals["withdrawals"] += flows.withdrawal
                returns_real += flows.return_ / factor
                new_state.append(nxt)
            state = new_state

            # 4. Child milestones
            for projection, milestone in self._milestones.get(k, []):
                cost = milestone.total_cost * (factor if params.inflate_child_expenses else 1.0)
                post = {a.id: a.balance for a in state}
                draws, unfunded = draw_in_order(cost, post, liquidity_ids)
                state = [
                    replace(a, balance=max(a.balance - draws[a.id], 0.0)) if a.id in draws else a
                    for a in state
                ]
                funded = cost - unfunded
                totals["child_expenses"] += funded
                totals["unfunded"] += unfunded
                note = f" (unfunded {unfunded:,.0f})" if unfunded > _EPS else ""
                events.append(
                    f"{projection.child_name or projection.child_id}: {milestone.name} -{cost:,.0f}{note}"
                )

            timeline.append(self._point(k, state, totals, tuple(events)))

        summary = self._summary(timeline, totals, returns_real)
        logger.debug("Timeline done: final_balance=%.2f", summary.final_balance)
        return SimulationResults(
            timeline=tuple(timeline),
            summary=summary,
            child_projections=self.child_projections,
            asset_ids=tuple(ids),
        )

    # -------------------- Helpers --------------------
    def _deposit_split(
        self,
        amount: float,
        asset_id: Optional[str],
        state: Sequence[AssetState],
    ) -> Dict[str, float]:
        if amount <= 0:
            return {}
        if asset_id is not None:
            return {asset_id: amount}
        return allocate_deposit(amount, state, self.params.unassigned_allocation)

    @staticmethod
    def _take(draws: Mapping[str, float], balances: Dict[str, float], out: Dict[str, float]) -> None:
        for asset_id, amount in draws.items():
            balances[asset_id] -= amount
            out[asset_id] += amount

    def _point(
        self,
        k: int,
        state: Sequence[AssetState],
        totals: Mapping[str, float],
        events: Tuple[str, ...],
    ) -> TimelinePoint:
        point_date = add_months(self.start_date, k)
        factor = self.inflation.factor_at(k)
        total = float(sum(a.balance for a in state))
        income = self.income.total_income_at(point_date, self._earner_ids)
        return TimelinePoint(
            month_index=k,
            date=point_date,
            total_assets=total,
            total_assets_real=total / factor,
            total_deposits=totals.get("deposits", 0.0),
            total_withdrawals=totals.get("withdrawals", 0.0),
            total_returns=totals.get("returns", 0.0),
            total_fees=totals.get("fees", 0.0),
            total_child_expenses=totals.get("child_expenses", 0.0),
            monthly_income=income,
            monthly_income_real=income / factor,
            inflation_factor=factor,
            assets_breakdown=MappingProxyType({a.id: a.balance for a in state}),
            events=events,
        )

    def _summary(
        self,
        timeline: Sequence[TimelinePoint],
        totals: Mapping[str, float],
        returns_real: float,
    ) -> SimulationSummary:
        first, last = timeline[0], timeline[-1]
        initial = first.total_assets
        final_real = last.total_assets_real
        if initial > 0:
            effective = (last.total_assets / initial - 1.0) * 100.0
            effective_real = (final_real / initial - 1.0) * 100.0
        else:
            effective = effective_real = 0.0
        return SimulationSummary(
            start_date=first.date,
            end_date=last.date,
            horizon_months=last.month_index,
            initial_balance=initial,
            final_balance=last.total_assets,
            final_balance_real=final_real,
            total_deposited=last.total_deposits,
            total_withdrawals=last.total_withdrawals,
            total_returns=last.total_returns,
            total_returns_real=returns_real,
            total_fees=last.total_fees,
            total_child_expenses=last.total_child_expenses,
            total_unfunded_expenses=totals.get("unfunded", 0.0),
            effective_return_rate=effective,
            effective_return_rate_real=effective_real,
            total_inflation_factor=last.inflation_factor,
        )
