"""
Configuration management module for familyplan.

Purpose
-------
Pydantic models describing a scenario file (assets, family members,
child-expense templates, goals and simulation parameters) plus the
application settings read from the environment. The models validate
ranges and cross-field rules at the boundary; `serialization.py` turns a
validated ScenarioConfig into the engine's frozen dataclasses.

Design Principles
-----------------
- Type-safe: Pydantic enforces types and validates ranges
- Immutable: Frozen models prevent accidental mutation
- Strict: Unknown keys are rejected (extra="forbid")
- Environment-aware: AppSettings reads FAMILYPLAN_* variables and .env

Example
-------
>>> from datetime import date
>>> asset = AssetConfig(id="fund", name="Index fund", balance=100_000,
...                     annual_return_rate=0.06)
>>> params = SimulationParamsConfig(start_date=date(2025, 1, 1), end_age=67)
>>> scenario = ScenarioConfig(name="Base", assets=[asset], params=params)
>>> ScenarioConfig.model_validate_json(scenario.model_dump_json()) == scenario
True
"""

from __future__ import annotations
from typing import Dict, List, Literal, Optional
import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    ALLOCATION_POLICIES,
    DEFAULT_ALLOCATION_POLICY,
    DEFAULT_CURRENCY,
    DEFAULT_INFLATION_RATE,
    DEFAULT_YEARLY_EXPENSE_MONTH,
    MAX_END_AGE,
    MAX_INFLATION_RATE,
    MIN_END_AGE,
)

__all__ = [
    "AssetConfig",
    "IncomeRecordConfig",
    "FamilyMemberConfig",
    "ChildExpenseItemConfig",
    "ChildExpenseTemplateConfig",
    "GoalConfig",
    "ExtraDepositConfig",
    "WithdrawalEventConfig",
    "YearlyExpenseConfig",
    "SimulationParamsConfig",
    "ScenarioConfig",
    "AppSettings",
]

AssetType = Literal[
    "savings", "investment", "child_savings", "other",
    "study_fund", "provident", "pension", "real_estate",
]
AllocationPolicy = Literal["pro_rata", "first_asset", "liquidity_order"]


# ---------------------------------------------------------------------------
# Assets
# ---------------------------------------------------------------------------

class AssetConfig(BaseModel):
    """
    Configuration for one financial account.

    Rates are fractions (0.05 = 5%), matching AssetState.

    Examples
    --------
    >>> AssetConfig(id="pension", name="Pension", asset_type="pension",
    ...             balance=250_000, monthly_deposit=1_800,
    ...             employer_deposit=2_100, annual_return_rate=0.05,
    ...             fee_on_balance_rate=0.0022, fee_on_deposit_rate=0.015)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1, max_length=64, description="Stable asset identifier")
    name: str = Field(default="", max_length=100, description="Display name")
    asset_type: AssetType = Field(default="savings", description="Drives liquidity order")
    balance: float = Field(default=0.0, ge=0, description="Current balance")
    monthly_deposit: float = Field(default=0.0, ge=0, description="Own monthly deposit")
    employer_deposit: float = Field(default=0.0, ge=0, description="Employer monthly deposit")
    annual_return_rate: float = Field(
        default=0.0, ge=-1.0, le=1.0, description="Expected annual return (fraction)"
    )
    fee_on_balance_rate: float = Field(
        default=0.0, ge=0, le=1.0, description="Annual management fee on balance (fraction)"
    )
    fee_on_deposit_rate: float = Field(
        default=0.0, ge=0, le=1.0, description="Fee on each deposit (fraction)"
    )
    currency: str = Field(default=DEFAULT_CURRENCY, min_length=3, max_length=3)


# ---------------------------------------------------------------------------
# Family
# ---------------------------------------------------------------------------

class IncomeRecordConfig(BaseModel):
    """Dated monthly income entry (the owning member is implied)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    amount: float = Field(ge=0, description="Monthly income")
    effective_date: datetime.date = Field(description="First date the amount applies")
    description: str = Field(default="", max_length=200)


class FamilyMemberConfig(BaseModel):
    """
    Configuration for one family member.

    Planned children need an expected_birth_date; born children a
    birth_date.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=100)
    member_type: Literal["self", "spouse", "child", "planned_child"]
    birth_date: Optional[datetime.date] = None
    expected_birth_date: Optional[datetime.date] = None
    template_id: Optional[str] = Field(
        default=None, description="Child-expense template (default template when None)"
    )
    income_history: List[IncomeRecordConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_birth_dates(self):
        """Planned children need an expected date, born children a birth date."""
        if self.member_type == "planned_child" and self.expected_birth_date is None:
            raise ValueError(f"planned child {self.id!r} requires expected_birth_date")
        if self.member_type == "child" and self.birth_date is None and self.expected_birth_date is None:
            raise ValueError(f"child {self.id!r} requires birth_date")
        return self


# ---------------------------------------------------------------------------
# Child expense templates
# ---------------------------------------------------------------------------

class ChildExpenseItemConfig(BaseModel):
    """
    One expense rule of a template.

    Examples
    --------
    >>> ChildExpenseItemConfig(id="tuition", name="Tuition",
    ...                        trigger_type="age_years", trigger_value=6,
    ...                        trigger_value_end=18, frequency="yearly",
    ...                        amount=10_000)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=100)
    trigger_type: Literal["age_months", "age_years", "event"]
    trigger_value: float = Field(ge=0)
    trigger_value_end: Optional[float] = Field(default=None, ge=0)
    amount: float = Field(ge=0)
    frequency: Literal["once", "monthly", "quarterly", "yearly"] = "once"
    sort_order: int = 0

    @field_validator("trigger_value_end")
    @classmethod
    def validate_range(cls, v, info):
        """Range end must not precede its start."""
        start = info.data.get("trigger_value")
        if v is not None and start is not None and v < start:
            raise ValueError(f"trigger_value_end ({v}) must be >= trigger_value ({start})")
        return v


class ChildExpenseTemplateConfig(BaseModel):
    """Named list of child-expense items."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    is_default: bool = False
    items: List[ChildExpenseItemConfig] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Goals
# ---------------------------------------------------------------------------

class GoalConfig(BaseModel):
    """
    Configuration for a financial goal.

    Examples
    --------
    >>> GoalConfig(id="home", name="Apartment", target_amount=500_000,
    ...            target_date=datetime.date(2027, 1, 1))
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=100)
    target_amount: float = Field(gt=0)
    current_amount: float = Field(default=0.0, ge=0)
    target_date: Optional[datetime.date] = None
    linked_asset_id: Optional[str] = None
    goal_type: Literal[
        "retirement", "child_event", "purchase", "education", "travel", "emergency", "custom"
    ] = "custom"
    priority: int = Field(default=5, ge=1, le=10)


# ---------------------------------------------------------------------------
# Scenario overrides
# ---------------------------------------------------------------------------

class ExtraDepositConfig(BaseModel):
    """One-off deposit; distributed by the allocation policy when asset_id is None."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    date: datetime.date
    amount: float = Field(gt=0)
    asset_id: Optional[str] = None
    description: str = Field(default="", max_length=200)


class WithdrawalEventConfig(BaseModel):
    """
    Configuration for a single scheduled withdrawal.

    Examples
    --------
    >>> WithdrawalEventConfig(date=datetime.date(2026, 6, 1), amount=80_000,
    ...                       asset_id="savings", description="Car")
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    date: datetime.date
    amount: float = Field(gt=0, description="Requested amount (clamped to balances)")
    asset_id: Optional[str] = None
    description: str = Field(default="", max_length=200)


class YearlyExpenseConfig(BaseModel):
    """Expense paid every year in one calendar month."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1, max_length=100)
    amount: float = Field(gt=0)
    month: int = Field(default=DEFAULT_YEARLY_EXPENSE_MONTH, ge=1, le=12)
    adjust_for_inflation: bool = True


class SimulationParamsConfig(BaseModel):
    """
    Configuration for the scenario parameters.

    inflation_rate is an annual percent (2.5 = 2.5%).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    start_date: datetime.date
    end_date: Optional[datetime.date] = None
    end_age: Optional[int] = Field(default=None, ge=MIN_END_AGE, le=MAX_END_AGE)
    target_member_id: Optional[str] = None
    inflation_rate: float = Field(default=DEFAULT_INFLATION_RATE, ge=0, le=MAX_INFLATION_RATE)
    include_planned_children: bool = True
    extra_monthly_deposit: float = Field(default=0.0, ge=0)
    extra_deposits: List[ExtraDepositConfig] = Field(default_factory=list)
    withdrawal_events: List[WithdrawalEventConfig] = Field(default_factory=list)
    yearly_expenses: List[YearlyExpenseConfig] = Field(default_factory=list)
    unassigned_allocation: AllocationPolicy = Field(
        default=DEFAULT_ALLOCATION_POLICY,
        description=f"One of {ALLOCATION_POLICIES}",
    )
    inflate_child_expenses: bool = True
    event_dates: Dict[str, Dict[str, datetime.date]] = Field(
        default_factory=dict,
        description="Dates of event-triggered child expenses: {member_id: {item_id: date}}",
    )
    event_age_fallback: bool = False

    @field_validator("end_date")
    @classmethod
    def validate_end_after_start(cls, v, info):
        """end_date must be after start_date."""
        start = info.data.get("start_date")
        if v is not None and start is not None and v <= start:
            raise ValueError(f"end_date ({v}) must be after start_date ({start})")
        return v


# ---------------------------------------------------------------------------
# Scenario (whole input file)
# ---------------------------------------------------------------------------

class ScenarioConfig(BaseModel):
    """
    Configuration for a complete projection scenario.

    A scenario bundles the snapshot inputs (assets, members, templates,
    goals) with the simulation parameters, so a "what-if" can be saved,
    reloaded and compared.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    assets: List[AssetConfig] = Field(min_length=1)
    members: List[FamilyMemberConfig] = Field(default_factory=list)
    templates: List[ChildExpenseTemplateConfig] = Field(default_factory=list)
    goals: List[GoalConfig] = Field(default_factory=list)
    params: SimulationParamsConfig

    @field_validator("assets")
    @classmethod
    def validate_unique_asset_ids(cls, v):
        """Asset ids key the timeline breakdown and must be unique."""
        ids = [a.id for a in v]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f"duplicate asset ids: {duplicates}")
        return v


# ---------------------------------------------------------------------------
# Application Settings (Environment Variables)
# ---------------------------------------------------------------------------

class AppSettings(BaseSettings):
    """
    Global application settings loaded from environment variables.

    Supports .env files for local development. Environment variables are
    prefixed with FAMILYPLAN_ (e.g., FAMILYPLAN_LOG_LEVEL=DEBUG).

    Examples
    --------
    >>> settings = AppSettings()
    >>> settings.log_level
    'WARNING'
    """

    model_config = SettingsConfigDict(
        env_prefix="FAMILYPLAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging level",
    )
    default_inflation_rate: float = Field(
        default=DEFAULT_INFLATION_RATE,
        ge=0,
        le=MAX_INFLATION_RATE,
        description="Inflation percent used by `config create`",
    )
    default_currency: str = Field(default=DEFAULT_CURRENCY, min_length=3, max_length=3)
    cache_enabled: bool = Field(
        default=True,
        description="Memoize simulation results by input hash",
    )
    cache_max_entries: int = Field(default=128, ge=1, le=10_000)
