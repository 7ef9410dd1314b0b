"""
Pytest configuration and fixtures for the familyplan test suite.

Fixtures follow the principle of "arrange-act-assert" with clear separation.
"""

from datetime import date
from typing import List

import pytest

from familyplan.assets import AssetState
from familyplan.children import ChildExpenseItem, ChildExpenseTemplate
from familyplan.family import FamilyMember
from familyplan.income import IncomeRecord
from familyplan.simulation import SimulationParams


# ---------------------------------------------------------------------------
# Date Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def start_date() -> date:
    """Standard start date for tests."""
    return date(2025, 1, 1)


@pytest.fixture
def params_12m(start_date) -> SimulationParams:
    """Twelve-month scenario without inflation."""
    return SimulationParams(
        start_date=start_date,
        end_date=date(2026, 1, 1),
        inflation_rate=0.0,
    )


# ---------------------------------------------------------------------------
# Asset Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def fund() -> AssetState:
    """
    Investment fund: 100,000 balance, 1,000/month, 6% annual, no fees.
    """
    return AssetState(
        id="fund",
        name="Index fund",
        balance=100_000,
        monthly_deposit=1_000,
        annual_return_rate=0.06,
        asset_type="investment",
    )


@pytest.fixture
def cash() -> AssetState:
    """Zero-return savings account."""
    return AssetState(id="cash", name="Savings", balance=20_000, asset_type="savings")


@pytest.fixture
def pension() -> AssetState:
    """Pension with employer deposit and both fee types."""
    return AssetState(
        id="pension",
        name="Pension",
        balance=250_000,
        monthly_deposit=1_800,
        employer_deposit=2_100,
        annual_return_rate=0.05,
        fee_on_balance_rate=0.0022,
        fee_on_deposit_rate=0.015,
        asset_type="pension",
    )


@pytest.fixture
def portfolio(cash, fund, pension) -> List[AssetState]:
    """Three assets in declared order (cash, fund, pension)."""
    return [cash, fund, pension]


# ---------------------------------------------------------------------------
# Family Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def parent() -> FamilyMember:
    """The 'self' member, born 1990-03-01, with a raise in mid 2025."""
    return FamilyMember(
        id="me",
        name="Alex",
        member_type="self",
        birth_date=date(1990, 3, 1),
        income_history=(
            IncomeRecord("me", 18_000, date(2024, 1, 1)),
            IncomeRecord("me", 21_000, date(2025, 7, 1)),
        ),
    )


@pytest.fixture
def spouse() -> FamilyMember:
    return FamilyMember(
        id="partner",
        name="Sam",
        member_type="spouse",
        birth_date=date(1992, 8, 1),
        income_history=(IncomeRecord("partner", 15_000, date(2023, 1, 1)),),
    )


@pytest.fixture
def tuition_template() -> ChildExpenseTemplate:
    """Default template with one yearly tuition item from age 6 to 18."""
    return ChildExpenseTemplate(
        id="tuition",
        name="Tuition only",
        is_default=True,
        items=(
            ChildExpenseItem(
                "tuition", "Tuition", "age_years", 6,
                amount=10_000, frequency="yearly", trigger_value_end=18,
            ),
        ),
    )


@pytest.fixture
def planned_child() -> FamilyMember:
    """Planned child expected one year after the start date."""
    return FamilyMember(
        id="baby",
        name="Baby",
        member_type="planned_child",
        expected_birth_date=date(2026, 1, 1),
    )
