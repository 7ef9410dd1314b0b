"""
Type definitions for familyplan.

Purpose
-------
TypedDict definitions for the serialized form of simulation results (the
JSON written by `save_results` and the `to_dict` methods). Using
TypedDicts documents the payload shape for consumers such as charting or
persistence layers.

Type Definitions
----------------
TimelinePointDict
    One month of the timeline.
SummaryDict
    Aggregate metrics of a run.
GoalAnalysisDict
    Outcome of one goal.
MilestoneDict, ChildProjectionDict
    Child-expense projection of one child.
SimulationResultsDict
    Whole results payload (with schema_version when saved).
"""

from typing import Dict, List, Optional
from typing_extensions import NotRequired, TypedDict

__all__ = [
    "TimelinePointDict",
    "SummaryDict",
    "GoalAnalysisDict",
    "MilestoneDict",
    "UnscheduledItemDict",
    "ChildProjectionDict",
    "SimulationResultsDict",
]


class TimelinePointDict(TypedDict):
    """
    One simulated month. Dates are ISO strings; cumulative totals start at
    0 on the opening point (month_index 0).
    """

    month_index: int
    date: str
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
    assets_breakdown: Dict[str, float]
    events: List[str]


class SummaryDict(TypedDict):
    """Aggregate metrics (rates in percent)."""

    start_date: str
    end_date: str
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


class GoalAnalysisDict(TypedDict):
    goal_id: str
    goal_name: str
    target_amount: float
    projected_amount: float
    is_achievable: bool
    evaluation_date: str
    achievement_date: Optional[str]
    shortfall: Optional[float]
    required_extra_monthly: Optional[float]


class MilestoneDict(TypedDict):
    name: str
    item_id: str
    child_id: str
    date: str
    expected_age: float
    months_until: int
    total_cost: float
    monthly_saving_needed: float
    is_past: bool
    frequency: str


class UnscheduledItemDict(TypedDict):
    item_id: str
    name: str
    amount: float


class ChildProjectionDict(TypedDict):
    child_id: str
    child_name: str
    birth_date: str
    is_planned: bool
    template_id: str
    milestones: List[MilestoneDict]
    unscheduled: List[UnscheduledItemDict]
    total_cost: float
    total_monthly_needed: float


class SimulationResultsDict(TypedDict):
    """Whole results payload; schema_version is present in saved files."""

    schema_version: NotRequired[str]
    timeline: List[TimelinePointDict]
    summary: SummaryDict
    goals_analysis: List[GoalAnalysisDict]
    child_projections: List[ChildProjectionDict]
