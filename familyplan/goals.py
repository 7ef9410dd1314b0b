"""
Goal analysis module for familyplan.

Purpose
-------
Evaluates each financial goal against a produced timeline: projected
amount at the goal's date, achievability, the date the target is first
reached, the shortfall and the extra uniform monthly contribution that
would close it (back-solved by re-running the timeline engine).

Evaluation rule
---------------
For a goal with target b, the evaluation month is

    t* = clip(months(start → target_date), 0, H)     (H if no target_date)

and the projected amount is W_{t*} of the linked asset, or total assets
if the goal has no linked asset. The goal is achievable iff

    W_{t*} >= b   or   current_amount >= b

Required contribution
---------------------
If not achievable and the goal has a target date with at least one month
to contribute (t* >= 1), find the minimal whole currency unit c such that

    W_{t*}(c) >= b

where W(c) is the engine's trajectory with c added every month (to the
linked asset, else distributed by the scenario's allocation policy).
W_{t*}(c) is non-decreasing in c, so an exponential bracket followed by
integer bisection finds c in O(log c) engine runs.

Example
-------
>>> analyzer = GoalAnalyzer(engine)
>>> results = engine.run()
>>> for ga in analyzer.analyze(goals, results.timeline):
...     print(ga.goal_name, ga.is_achievable, ga.required_extra_monthly)
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import List, Literal, Optional, Sequence, Tuple

from .exceptions import InvalidParameterError
from .simulation import TimelineEngine, TimelinePoint
from .utils import check_non_negative, check_positive, month_offset

logger = logging.getLogger(__name__)

__all__ = [
    "GoalType",
    "FinancialGoal",
    "GoalAnalysis",
    "GoalAnalyzer",
    "summarize",
]

GoalType = Literal[
    "retirement", "child_event", "purchase", "education", "travel", "emergency", "custom"
]
_GOAL_TYPES = ("retirement", "child_event", "purchase", "education", "travel", "emergency", "custom")

# Doublings of the contribution bracket before the gap is declared unclosable.
_MAX_DOUBLINGS = 48


# ---------------------------------------------------------------------------
# Goal Specification
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FinancialGoal:
    """
    A savings target.

    Parameters
    ----------
    id : str
    name : str
    target_amount : float
        Amount to reach (must be positive).
    current_amount : float, default 0.0
        Amount already set aside. A goal whose current amount meets the
        target is achievable regardless of the projection.
    target_date : datetime.date, optional
        Date by which the target should be reached. Without it the goal
        is evaluated at the end of the horizon and no contribution is
        back-solved.
    linked_asset_id : str, optional
        Asset whose balance funds the goal. Total assets when None.
    goal_type : str, default "custom"
    priority : int, default 5
        1 (highest) .. 10; analyses are reported in priority order.

    Examples
    --------
    >>> FinancialGoal("home", "Apartment", 500_000, target_date=date(2027, 1, 1))
    FinancialGoal('Apartment': 500,000 by 2027-01-01)
    """
    id: str
    name: str
    target_amount: float
    current_amount: float = 0.0
    target_date: Optional[date] = None
    linked_asset_id: Optional[str] = None
    goal_type: GoalType = "custom"
    priority: int = 5

    def __post_init__(self):
        """Validate goal parameters."""
        check_positive(f"target_amount of goal {self.name!r}", self.target_amount)
        check_non_negative(f"current_amount of goal {self.name!r}", self.current_amount)
        if self.goal_type not in _GOAL_TYPES:
            raise InvalidParameterError(
                f"goal_type must be one of {_GOAL_TYPES}, got {self.goal_type!r}"
            )
        if not (1 <= self.priority <= 10):
            raise InvalidParameterError(
                f"priority of goal {self.name!r} must be in 1..10, got {self.priority}"
            )

    def resolve_month(self, start_date: date, horizon_months: int) -> int:
        """Evaluation month: target-date offset clipped to [0, H], else H."""
        if self.target_date is None:
            return horizon_months
        return min(max(month_offset(start_date, self.target_date), 0), horizon_months)

    def __repr__(self) -> str:
        when = f" by {self.target_date.isoformat()}" if self.target_date else ""
        return f"FinancialGoal({self.name!r}: {self.target_amount:,.0f}{when})"


@dataclass(frozen=True)
class GoalAnalysis:
    """Outcome of evaluating one goal against a timeline."""
    goal_id: str
    goal_name: str
    target_amount: float
    projected_amount: float
    is_achievable: bool
    evaluation_date: date
    achievement_date: Optional[date] = None
    shortfall: Optional[float] = None
    required_extra_monthly: Optional[float] = None

    @property
    def progress(self) -> float:
        """projected_amount / target_amount, capped at 1."""
        return min(self.projected_amount / self.target_amount, 1.0)

    def to_dict(self) -> dict:
        return {
            "goal_id": self.goal_id,
            "goal_name": self.goal_name,
            "target_amount": self.target_amount,
            "projected_amount": self.projected_amount,
            "is_achievable": self.is_achievable,
            "evaluation_date": self.evaluation_date.isoformat(),
            "achievement_date": (
                self.achievement_date.isoformat() if self.achievement_date else None
            ),
            "shortfall": self.shortfall,
            "required_extra_monthly": self.required_extra_monthly,
        }


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------

class GoalAnalyzer:
    """
    Post-processes a timeline against a set of goals.

    Parameters
    ----------
    engine : TimelineEngine
        Engine that produced the timeline. Re-run (truncated at the goal's
        evaluation month) to back-solve required contributions.
    """

    def __init__(self, engine: TimelineEngine):
        self.engine = engine

    def analyze(
        self,
        goals: Sequence[FinancialGoal],
        timeline: Sequence[TimelinePoint],
    ) -> Tuple[GoalAnalysis, ...]:
        """
        Analyze every goal, ordered by priority then target date.

        Raises
        ------
        InvalidParameterError
            If a goal links an asset that is not part of the scenario, or
            the timeline does not cover the engine's horizon.
        """
        if len(timeline) != self.engine.horizon_months + 1:
            raise InvalidParameterError(
                f"timeline has {len(timeline)} points, expected "
                f"{self.engine.horizon_months + 1}"
            )
        asset_ids = {a.id for a in self.engine.assets}
        for goal in goals:
            if goal.linked_asset_id is not None and goal.linked_asset_id not in asset_ids:
                raise InvalidParameterError(
                    f"goal {goal.name!r} links unknown asset {goal.linked_asset_id!r}"
                )

        ordered = sorted(
            goals,
            key=lambda g: (g.priority, g.target_date is None, g.target_date or date.max),
        )
        return tuple(self.analyze_goal(goal, timeline) for goal in ordered)

    def analyze_goal(self, goal: FinancialGoal, timeline: Sequence[TimelinePoint]) -> GoalAnalysis:
        index = goal.resolve_month(self.engine.start_date, self.engine.horizon_months)
        point = timeline[index]
        projected = _amount(point, goal.linked_asset_id)
        target = goal.target_amount

        if goal.current_amount >= target:
            return GoalAnalysis(
                goal_id=goal.id,
                goal_name=goal.name,
                target_amount=target,
                projected_amount=projected,
                is_achievable=True,
                evaluation_date=point.date,
                achievement_date=self.engine.start_date,
            )

        if projected >= target:
            reached = next(
                p.date for p in timeline[: index + 1]
                if _amount(p, goal.linked_asset_id) >= target
            )
            return GoalAnalysis(
                goal_id=goal.id,
                goal_name=goal.name,
                target_amount=target,
                projected_amount=projected,
                is_achievable=True,
                evaluation_date=point.date,
                achievement_date=reached,
            )

        required = None
        if goal.target_date is not None:
            required = self.required_extra_monthly(goal, index)
        return GoalAnalysis(
            goal_id=goal.id,
            goal_name=goal.name,
            target_amount=target,
            projected_amount=projected,
            is_achievable=False,
            evaluation_date=point.date,
            shortfall=target - projected,
            required_extra_monthly=required,
        )

    def required_extra_monthly(self, goal: FinancialGoal, index: int) -> Optional[float]:
        """
        Minimal whole-unit monthly contribution reaching the goal at *index*.

        Returns None when there is no month to contribute (index 0) or no
        contribution closes the gap (e.g., the funding asset loses 100% a
        year).
        """
        if index <= 0:
            logger.warning(
                "Goal %r is evaluated at the start date; no month left to contribute",
                goal.name,
            )
            return None

        def reaches(contribution: int) -> bool:
            results = self.engine.run(
                extra_contribution=float(contribution),
                contribution_asset_id=goal.linked_asset_id,
                horizon_months=index,
                warn=False,
            )
            return _amount(results.final, goal.linked_asset_id) >= goal.target_amount

        projected = _amount(self.engine.run(horizon_months=index, warn=False).final, goal.linked_asset_id)
        low = 0
        high = max(1, math.ceil((goal.target_amount - projected) / index))
        for _ in range(_MAX_DOUBLINGS):
            if reaches(high):
                break
            low, high = high, high * 2
        else:
            logger.warning(
                "Goal %r cannot be reached by %s with any monthly contribution",
                goal.name, goal.target_date,
            )
            return None

        while high - low > 1:
            mid = (low + high) // 2
            if reaches(mid):
                high = mid
            else:
                low = mid
        return float(high)


def _amount(point: TimelinePoint, asset_id: Optional[str]) -> float:
    if asset_id is None:
        return point.total_assets
    return point.assets_breakdown[asset_id]


def summarize(analyses: Sequence[GoalAnalysis]) -> List[str]:
    """One status line per goal (used by the CLI)."""
    lines = []
    for ga in analyses:
        if ga.is_achievable:
            when = ga.achievement_date.isoformat() if ga.achievement_date else "-"
            lines.append(f"{ga.goal_name}: achievable (reached {when})")
        else:
            extra = (
                f", needs {ga.required_extra_monthly:,.0f}/month"
                if ga.required_extra_monthly is not None else ""
            )
            lines.append(f"{ga.goal_name}: short by {ga.shortfall:,.0f}{extra}")
    return lines
