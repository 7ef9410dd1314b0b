"""Scenario entry point for familyplan

`run_simulation` is the single function the rest of a product needs: it
builds a TimelineEngine from snapshot inputs, runs the timeline, analyzes
the goals and bundles everything into SimulationResults.

Typical usage
-------------
>>> results = run_simulation(params, assets, members, goals, templates)
>>> results.summary.final_balance
>>> [ga.is_achievable for ga in results.goals_analysis]
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional, Sequence, Tuple

from .assets import AssetState
from .cache import SimulationCache, scenario_key
from .children import ChildExpenseTemplate
from .family import FamilyMember
from .goals import FinancialGoal, GoalAnalyzer
from .simulation import SimulationParams, SimulationResults, TimelineEngine

logger = logging.getLogger(__name__)

__all__ = [
    "ScenarioInputs",
    "run_simulation",
]


@dataclass(frozen=True)
class ScenarioInputs:
    """Everything one run needs (the domain form of a scenario file)."""
    name: str
    params: SimulationParams
    assets: Tuple[AssetState, ...]
    members: Tuple[FamilyMember, ...] = ()
    goals: Tuple[FinancialGoal, ...] = ()
    templates: Tuple[ChildExpenseTemplate, ...] = ()
    description: str = ""

    def run(self, cache: Optional[SimulationCache] = None) -> SimulationResults:
        return run_simulation(
            self.params, self.assets, self.members, self.goals, self.templates, cache=cache
        )


def run_simulation(
    params: SimulationParams,
    assets: Sequence[AssetState],
    members: Sequence[FamilyMember] = (),
    goals: Sequence[FinancialGoal] = (),
    templates: Sequence[ChildExpenseTemplate] = (),
    *,
    cache: Optional[SimulationCache] = None,
) -> SimulationResults:
    """
    Project the family's finances and evaluate the goals.

    Parameters
    ----------
    params : SimulationParams
    assets : Sequence[AssetState]
        Declared order defines the breakdown order.
    members : Sequence[FamilyMember]
    goals : Sequence[FinancialGoal]
    templates : Sequence[ChildExpenseTemplate]
    cache : SimulationCache, optional
        When given, identical inputs return the stored results object.

    Returns
    -------
    SimulationResults
        timeline, summary, goals_analysis and child_projections.

    Raises
    ------
    InvalidParameterError
        On invalid inputs, before any month is simulated.
    """
    key = None
    if cache is not None:
        key = scenario_key(params, assets, members, goals, templates)
        hit = cache.get(key)
        if hit is not None:
            return hit

    engine = TimelineEngine(params, assets, members, templates)
    results = engine.run()
    analyses = GoalAnalyzer(engine).analyze(goals, results.timeline)
    results = replace(results, goals_analysis=analyses)
    logger.info(
        "Simulated %d months: final balance %.2f, %d goal(s), %d child projection(s)",
        engine.horizon_months, results.summary.final_balance,
        len(analyses), len(results.child_projections),
    )

    if cache is not None:
        cache.put(key, results)
    return results
