"""
Serialization module for familyplan scenario files and results.

Purpose
-------
Loads a JSON scenario file, validates it with the pydantic models of
`config.py` and converts it into the engine's frozen dataclasses. Writes
simulation results as JSON with a schema version.

Design Principles
-----------------
- Type-safe: every file goes through ScenarioConfig validation
- Human-readable: indented JSON, ISO dates
- Versioned: files carry schema_version; a mismatch warns, never fails

Example
-------
>>> from pathlib import Path
>>> inputs = load_scenario(Path("scenario.json"))
>>> results = inputs.run()
>>> save_results(results, Path("results.json"))
"""

from __future__ import annotations
from typing import Any, Dict, Union
from pathlib import Path
import json
import warnings

from pydantic import ValidationError as PydanticValidationError

from .assets import AssetState
from .children import ChildExpenseItem, ChildExpenseTemplate
from .config import (
    AssetConfig,
    ChildExpenseTemplateConfig,
    FamilyMemberConfig,
    GoalConfig,
    ScenarioConfig,
    SimulationParamsConfig,
)
from .exceptions import ConfigurationError
from .family import FamilyMember
from .flows import ExtraDeposit, WithdrawalEvent, YearlyExpense
from .goals import FinancialGoal
from .income import IncomeRecord
from .scenario import ScenarioInputs
from .simulation import SimulationParams, SimulationResults
from .types import SimulationResultsDict

__all__ = [
    "SCHEMA_VERSION",
    "asset_from_config",
    "asset_to_dict",
    "member_from_config",
    "template_from_config",
    "goal_from_config",
    "params_from_config",
    "scenario_from_config",
    "load_scenario_config",
    "load_scenario",
    "save_scenario",
    "results_to_dict",
    "save_results",
    "load_results",
]

SCHEMA_VERSION = "0.1.0"

PathLike = Union[str, Path]


# ---------------------------------------------------------------------------
# Config -> domain
# ---------------------------------------------------------------------------

def asset_from_config(config: AssetConfig) -> AssetState:
    return AssetState(
        id=config.id,
        name=config.name,
        balance=config.balance,
        monthly_deposit=config.monthly_deposit,
        employer_deposit=config.employer_deposit,
        annual_return_rate=config.annual_return_rate,
        fee_on_balance_rate=config.fee_on_balance_rate,
        fee_on_deposit_rate=config.fee_on_deposit_rate,
        currency=config.currency,
        asset_type=config.asset_type,
    )


def asset_to_dict(asset: AssetState) -> Dict[str, Any]:
    """
    Convert an AssetState to its AssetConfig dictionary form.

    Examples
    --------
    >>> asset_from_config(AssetConfig.model_validate(asset_to_dict(a))) == a
    True
    """
    return {
        "id": asset.id,
        "name": asset.name,
        "asset_type": asset.asset_type,
        "balance": asset.balance,
        "monthly_deposit": asset.monthly_deposit,
        "employer_deposit": asset.employer_deposit,
        "annual_return_rate": asset.annual_return_rate,
        "fee_on_balance_rate": asset.fee_on_balance_rate,
        "fee_on_deposit_rate": asset.fee_on_deposit_rate,
        "currency": asset.currency,
    }


def member_from_config(config: FamilyMemberConfig) -> FamilyMember:
    return FamilyMember(
        id=config.id,
        name=config.name,
        member_type=config.member_type,
        birth_date=config.birth_date,
        expected_birth_date=config.expected_birth_date,
        template_id=config.template_id,
        income_history=tuple(
            IncomeRecord(config.id, r.amount, r.effective_date, r.description)
            for r in config.income_history
        ),
    )


def template_from_config(config: ChildExpenseTemplateConfig) -> ChildExpenseTemplate:
    return ChildExpenseTemplate(
        id=config.id,
        name=config.name,
        description=config.description,
        is_default=config.is_default,
        items=tuple(
            ChildExpenseItem(
                id=item.id,
                name=item.name,
                trigger_type=item.trigger_type,
                trigger_value=item.trigger_value,
                amount=item.amount,
                frequency=item.frequency,
                trigger_value_end=item.trigger_value_end,
                sort_order=item.sort_order,
            )
            for item in config.items
        ),
    )


def goal_from_config(config: GoalConfig) -> FinancialGoal:
    return FinancialGoal(**config.model_dump())


def params_from_config(config: SimulationParamsConfig) -> SimulationParams:
    return SimulationParams(
        start_date=config.start_date,
        end_date=config.end_date,
        end_age=config.end_age,
        target_member_id=config.target_member_id,
        inflation_rate=config.inflation_rate,
        include_planned_children=config.include_planned_children,
        extra_monthly_deposit=config.extra_monthly_deposit,
        extra_deposits=tuple(ExtraDeposit(**d.model_dump()) for d in config.extra_deposits),
        withdrawal_events=tuple(WithdrawalEvent(**w.model_dump()) for w in config.withdrawal_events),
        yearly_expenses=tuple(YearlyExpense(**y.model_dump()) for y in config.yearly_expenses),
        unassigned_allocation=config.unassigned_allocation,
        inflate_child_expenses=config.inflate_child_expenses,
        event_dates={m: dict(items) for m, items in config.event_dates.items()},
        event_age_fallback=config.event_age_fallback,
    )


def scenario_from_config(config: ScenarioConfig) -> ScenarioInputs:
    """Convert a validated ScenarioConfig into engine inputs."""
    return ScenarioInputs(
        name=config.name,
        description=config.description,
        params=params_from_config(config.params),
        assets=tuple(asset_from_config(a) for a in config.assets),
        members=tuple(member_from_config(m) for m in config.members),
        goals=tuple(goal_from_config(g) for g in config.goals),
        templates=tuple(template_from_config(t) for t in config.templates),
    )


# ---------------------------------------------------------------------------
# Scenario files
# ---------------------------------------------------------------------------

def _check_schema_version(data: Dict[str, Any], path: Path) -> None:
    schema_version = data.get("schema_version", SCHEMA_VERSION)
    if schema_version != SCHEMA_VERSION:
        warnings.warn(
            f"{path} schema version {schema_version} differs from current "
            f"version {SCHEMA_VERSION}. May encounter compatibility issues.",
            UserWarning,
        )


def load_scenario_config(path: PathLike) -> ScenarioConfig:
    """
    Read and validate a scenario JSON file.

    Raises
    ------
    ConfigurationError
        If the file is missing, is not valid JSON, or fails validation.
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"scenario file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"{path} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a JSON object")
    _check_schema_version(data, path)
    data.pop("schema_version", None)

    try:
        return ScenarioConfig.model_validate(data)
    except PydanticValidationError as e:
        raise ConfigurationError(f"invalid scenario {path}:\n{e}") from e


def load_scenario(path: PathLike) -> ScenarioInputs:
    """
    Load a scenario file into engine inputs.

    Examples
    --------
    >>> inputs = load_scenario("scenario.json")
    >>> inputs.params.start_date
    """
    return scenario_from_config(load_scenario_config(path))


def save_scenario(config: ScenarioConfig, path: PathLike) -> None:
    """Write a ScenarioConfig as JSON (with schema_version)."""
    path = Path(path)
    data = {"schema_version": SCHEMA_VERSION, **config.model_dump(mode="json")}
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

def results_to_dict(results: SimulationResults) -> SimulationResultsDict:
    payload = results.to_dict()
    payload["schema_version"] = SCHEMA_VERSION
    return payload


def save_results(results: SimulationResults, path: PathLike) -> None:
    """
    Save simulation results to a JSON file.

    Examples
    --------
    >>> save_results(results, Path("out/results.json"))
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(results_to_dict(results), f, indent=2)


def load_results(path: PathLike) -> SimulationResultsDict:
    """Read a results file written by save_results (as plain dicts)."""
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    _check_schema_version(data, path)
    return data
