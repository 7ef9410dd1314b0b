"""
Unit tests for simulation module (TimelineEngine).

Tests:
- SimulationParams validation and horizon resolution
- Timeline structure, cumulative totals, income and inflation
- Overrides: extra deposits, withdrawals (clamping), yearly expenses
- Child milestones drawn from assets
- Determinism and exports
"""

import warnings
from datetime import date

import pandas as pd
import pytest

from familyplan.assets import AssetState
from familyplan.children import ChildExpenseItem, ChildExpenseTemplate
from familyplan.exceptions import ClampedWithdrawalWarning, InvalidParameterError
from familyplan.family import FamilyMember
from familyplan.flows import ExtraDeposit, WithdrawalEvent, YearlyExpense
from familyplan.simulation import SimulationParams, TimelineEngine, resolve_horizon


# ---------------------------------------------------------------------------
# Parameters and horizon
# ---------------------------------------------------------------------------

class TestSimulationParams:
    """Tests for SimulationParams validation."""

    def test_defaults(self, start_date):
        """Test default inflation and allocation policy."""
        params = SimulationParams(start_date=start_date)
        assert params.inflation_rate == 2.5
        assert params.unassigned_allocation == "pro_rata"
        assert params.include_planned_children

    @pytest.mark.parametrize("rate", [-0.1, 20.5])
    def test_inflation_range(self, start_date, rate):
        """Test inflation must be within 0..20 percent."""
        with pytest.raises(InvalidParameterError, match="inflation_rate"):
            SimulationParams(start_date=start_date, inflation_rate=rate)

    @pytest.mark.parametrize("age", [19, 121])
    def test_end_age_range(self, start_date, age):
        """Test end_age must be within 20..120."""
        with pytest.raises(InvalidParameterError, match="end_age"):
            SimulationParams(start_date=start_date, end_age=age)

    def test_end_before_start(self, start_date):
        """Test end_date on or before start raises."""
        with pytest.raises(InvalidParameterError, match="end_date"):
            SimulationParams(start_date=start_date, end_date=start_date)

    def test_unknown_allocation_policy(self, start_date):
        """Test unknown allocation policy raises."""
        with pytest.raises(InvalidParameterError):
            SimulationParams(start_date=start_date, unassigned_allocation="largest")

    def test_negative_extra_monthly_deposit(self, start_date):
        """Test negative extra_monthly_deposit raises."""
        with pytest.raises(InvalidParameterError):
            SimulationParams(start_date=start_date, extra_monthly_deposit=-1)


class TestResolveHorizon:
    """Tests for resolve_horizon."""

    def test_end_date(self, params_12m):
        """Test whole-month horizon from end_date."""
        assert resolve_horizon(params_12m) == 12

    def test_partial_month_rounds_up(self, start_date):
        """Test a partial trailing month counts."""
        params = SimulationParams(start_date=start_date, end_date=date(2025, 3, 2))
        assert resolve_horizon(params) == 3

    def test_end_age_of_self(self, start_date, parent, spouse):
        """Test end_age resolves against the 'self' member by default."""
        params = SimulationParams(start_date=start_date, end_age=67)
        # 1990-03-01 + 67 years = 2057-03-01
        assert resolve_horizon(params, [spouse, parent]) == (2057 - 2025) * 12 + 2

    def test_end_age_of_target_member(self, start_date, parent, spouse):
        """Test target_member_id selects whose age ends the horizon."""
        params = SimulationParams(start_date=start_date, end_age=67, target_member_id="partner")
        assert resolve_horizon(params, [parent, spouse]) == (2059 - 2025) * 12 + 7

    def test_end_date_wins_over_end_age(self, start_date, parent):
        """Test end_date has precedence."""
        params = SimulationParams(start_date=start_date, end_date=date(2026, 1, 1), end_age=67)
        assert resolve_horizon(params, [parent]) == 12

    def test_default_thirty_years(self, start_date):
        """Test 30-year default horizon."""
        assert resolve_horizon(SimulationParams(start_date=start_date)) == 360

    def test_end_age_without_birth_date(self, start_date):
        """Test end_age without a known birth date raises."""
        params = SimulationParams(start_date=start_date, end_age=67)
        with pytest.raises(InvalidParameterError, match="birth date"):
            resolve_horizon(params, [FamilyMember("me", "Me", "self")])

    def test_end_age_already_passed(self, start_date):
        """Test an end_age reached before the start raises."""
        old = FamilyMember("me", "Me", "self", birth_date=date(1940, 1, 1))
        params = SimulationParams(start_date=start_date, end_age=70)
        with pytest.raises(InvalidParameterError, match="after start_date"):
            resolve_horizon(params, [old])


# ---------------------------------------------------------------------------
# Engine validation
# ---------------------------------------------------------------------------

class TestEngineValidation:
    """Tests for fail-fast validation in TimelineEngine."""

    def test_requires_assets(self, params_12m):
        """Test an empty portfolio raises."""
        with pytest.raises(InvalidParameterError, match="at least one asset"):
            TimelineEngine(params_12m, [])

    def test_duplicate_asset_ids(self, params_12m, fund):
        """Test duplicate asset ids raise."""
        with pytest.raises(InvalidParameterError, match="duplicate"):
            TimelineEngine(params_12m, [fund, fund])

    def test_unknown_override_asset(self, start_date, fund):
        """Test overrides naming a missing asset raise before running."""
        params = SimulationParams(
            start_date=start_date,
            end_date=date(2026, 1, 1),
            withdrawal_events=(WithdrawalEvent(date(2025, 3, 1), 100, asset_id="nope"),),
        )
        with pytest.raises(InvalidParameterError, match="unknown asset"):
            TimelineEngine(params, [fund])

    def test_run_horizon_bounds(self, params_12m, fund):
        """Test truncated runs must stay within the horizon."""
        engine = TimelineEngine(params_12m, [fund])
        with pytest.raises(InvalidParameterError):
            engine.run(horizon_months=13)
        assert len(engine.run(horizon_months=5).timeline) == 6


# ---------------------------------------------------------------------------
# Timeline
# ---------------------------------------------------------------------------

class TestTimeline:
    """Tests for timeline structure and totals."""

    def test_twelve_month_scenario(self, params_12m, fund):
        """Test 100k + 1k/month at 6% over 12 months, zero fees and inflation."""
        results = TimelineEngine(params_12m, [fund]).run()

        expected = 100_000.0
        for _ in range(12):
            expected = (expected + 1_000.0) * 1.005

        assert len(results.timeline) == 13
        assert results.final.total_assets == pytest.approx(expected, rel=1e-12)
        assert results.final.total_deposits == 12_000
        assert results.final.total_returns == pytest.approx(expected - 112_000)
        assert results.final.total_assets_real == results.final.total_assets
        assert results.summary.horizon_months == 12
        assert results.summary.end_date == date(2026, 1, 1)

    def test_opening_point(self, params_12m, portfolio):
        """Test point 0 is the unmodified snapshot."""
        results = TimelineEngine(params_12m, portfolio).run()
        p0 = results.timeline[0]
        assert p0.month_index == 0 and p0.date == date(2025, 1, 1)
        assert p0.total_assets == 370_000
        assert p0.total_deposits == p0.total_returns == p0.total_fees == 0
        assert p0.inflation_factor == 1.0
        assert p0.events == ()

    def test_breakdown_in_declared_order(self, params_12m, portfolio):
        """Test assets_breakdown keeps the declared asset order."""
        results = TimelineEngine(params_12m, portfolio).run()
        for point in results.timeline:
            assert list(point.assets_breakdown) == ["cash", "fund", "pension"]
            assert sum(point.assets_breakdown.values()) == pytest.approx(point.total_assets)

    def test_zero_rates_linear(self, params_12m):
        """Test zero return/fees gives initial + N * deposits exactly."""
        asset = AssetState("a", balance=5_000, monthly_deposit=700, employer_deposit=300)
        results = TimelineEngine(params_12m, [asset]).run()
        for point in results.timeline:
            assert point.total_assets == 5_000 + point.month_index * 1_000

    def test_cumulative_totals_non_decreasing(self, params_12m, portfolio):
        """Test cumulative deposits, returns and fees never decrease."""
        timeline = TimelineEngine(params_12m, portfolio).run().timeline
        for prev, cur in zip(timeline, timeline[1:]):
            assert cur.total_deposits >= prev.total_deposits
            assert cur.total_returns >= prev.total_returns
            assert cur.total_fees >= prev.total_fees

    def test_monthly_dates(self, start_date, fund):
        """Test points step one calendar month, day clamped."""
        params = SimulationParams(start_date=date(2025, 1, 31), end_date=date(2025, 4, 30), inflation_rate=0)
        dates = [p.date for p in TimelineEngine(params, [fund]).run().timeline]
        assert dates == [date(2025, 1, 31), date(2025, 2, 28), date(2025, 3, 31), date(2025, 4, 30)]

    def test_income(self, params_12m, fund, parent, spouse, planned_child):
        """Test income sums earning members and follows the raise."""
        results = TimelineEngine(params_12m, [fund], [parent, spouse, planned_child]).run()
        incomes = {p.date: p.monthly_income for p in results.timeline}
        assert incomes[date(2025, 1, 1)] == 33_000
        assert incomes[date(2025, 6, 1)] == 33_000
        assert incomes[date(2025, 7, 1)] == 36_000

    def test_inflation_and_real_values(self, start_date, fund, parent):
        """Test inflation factor and deflated values per point."""
        params = SimulationParams(start_date=start_date, end_date=date(2027, 1, 1), inflation_rate=3.0)
        results = TimelineEngine(params, [fund], [parent]).run()
        for p in results.timeline:
            assert p.inflation_factor == pytest.approx(1.0025 ** p.month_index)
            assert p.total_assets_real == pytest.approx(p.total_assets / p.inflation_factor)
            assert p.monthly_income_real == pytest.approx(p.monthly_income / p.inflation_factor)
        assert results.summary.total_inflation_factor == pytest.approx(1.0025 ** 24)
        assert results.summary.total_returns_real < results.summary.total_returns

    def test_extra_monthly_deposit_pro_rata(self, start_date):
        """Test extra monthly deposit splits by balance."""
        assets = [AssetState("a", balance=100.0), AssetState("b", balance=300.0)]
        params = SimulationParams(
            start_date=start_date, end_date=date(2025, 2, 1),
            inflation_rate=0, extra_monthly_deposit=400,
        )
        final = TimelineEngine(params, assets).run().final
        assert final.assets_breakdown == {"a": 200.0, "b": 600.0}
        assert final.total_deposits == 400

    def test_extra_contribution_to_asset(self, params_12m, portfolio):
        """Test run(extra_contribution) adds to the named asset only."""
        engine = TimelineEngine(params_12m, portfolio)
        base = engine.run().final.assets_breakdown
        more = engine.run(extra_contribution=100, contribution_asset_id="cash").final.assets_breakdown
        assert more["cash"] == pytest.approx(base["cash"] + 1_200)
        assert more["fund"] == base["fund"]

    def test_unknown_contribution_asset(self, params_12m, fund):
        """Test run() rejects an unknown contribution asset."""
        with pytest.raises(InvalidParameterError):
            TimelineEngine(params_12m, [fund]).run(extra_contribution=1, contribution_asset_id="x")


# ---------------------------------------------------------------------------
# Overrides
# ---------------------------------------------------------------------------

class TestOverrides:
    """Tests for deposits, withdrawals and yearly expenses."""

    def test_extra_deposit(self, start_date, cash):
        """Test a one-off deposit lands in its month."""
        params = SimulationParams(
            start_date=start_date, end_date=date(2025, 6, 1), inflation_rate=0,
            extra_deposits=(ExtraDeposit(date(2025, 3, 15), 5_000, "cash", "Bonus"),),
        )
        timeline = TimelineEngine(params, [cash]).run().timeline
        assert timeline[1].total_assets == 20_000
        assert timeline[3].total_assets == 25_000
        assert timeline[3].events == ("Deposit: Bonus +5,000",)

    def test_withdrawal_clamped(self, start_date, cash):
        """Test an excessive withdrawal empties the asset and is reported."""
        params = SimulationParams(
            start_date=start_date, end_date=date(2025, 6, 1), inflation_rate=0,
            withdrawal_events=(WithdrawalEvent(date(2025, 3, 1), 50_000, "cash", "Car"),),
        )
        with pytest.warns(ClampedWithdrawalWarning):
            results = TimelineEngine(params, [cash]).run()
        point = results.timeline[3]
        assert point.assets_breakdown["cash"] == 0.0
        assert point.total_withdrawals == 20_000
        assert len(point.events) == 1
        assert point.events[0].startswith("partial_withdrawal: Car")
        assert all(p.total_assets >= 0 for p in results.timeline)

    def test_full_withdrawal_event(self, start_date, cash):
        """Test a funded withdrawal is reported plainly."""
        params = SimulationParams(
            start_date=start_date, end_date=date(2025, 6, 1), inflation_rate=0,
            withdrawal_events=(WithdrawalEvent(date(2025, 2, 1), 5_000, "cash", "Laptop"),),
        )
        timeline = TimelineEngine(params, [cash]).run().timeline
        assert timeline[1].events == ()
        point = timeline[2]
        assert point.total_assets == 15_000
        assert point.events == ("Withdrawal: Laptop -5,000",)

    def test_unassigned_withdrawal_exceeding_total(self, start_date):
        """Test an unassigned withdrawal above total assets is clamped."""
        assets = [AssetState("a", balance=1_000.0), AssetState("b", balance=3_000.0)]
        params = SimulationParams(
            start_date=start_date, end_date=date(2025, 3, 1), inflation_rate=0,
            withdrawal_events=(WithdrawalEvent(date(2025, 2, 1), 10_000),),
        )
        with pytest.warns(ClampedWithdrawalWarning):
            point = TimelineEngine(params, assets).run().timeline[2]
        assert point.assets_breakdown == {"a": 0.0, "b": 0.0}
        assert "partial_withdrawal" in point.events[0]

    def test_sequential_withdrawals_share_balance(self, start_date, cash):
        """Test later requests see what earlier ones left."""
        params = SimulationParams(
            start_date=start_date, end_date=date(2025, 3, 1), inflation_rate=0,
            withdrawal_events=(
                WithdrawalEvent(date(2025, 2, 1), 15_000, "cash", "First"),
                WithdrawalEvent(date(2025, 2, 20), 15_000, "cash", "Second"),
            ),
        )
        with pytest.warns(ClampedWithdrawalWarning):
            point = TimelineEngine(params, [cash]).run().timeline[2]
        assert point.events[0] == "Withdrawal: First -15,000"
        assert point.events[1].startswith("partial_withdrawal: Second requested 15,000, withdrew 5,000")
        assert point.total_assets == 0.0

    def test_consecutive_month_withdrawals_not_clamped(self, start_date):
        """Test withdrawals in consecutive calendar months land in their own months."""
        cash = AssetState("cash", balance=20_000, monthly_deposit=10_000, asset_type="savings")
        params = SimulationParams(
            start_date=start_date, end_date=date(2025, 4, 1), inflation_rate=0,
            withdrawal_events=(
                WithdrawalEvent(date(2025, 1, 15), 15_000, "cash", "Jan"),
                WithdrawalEvent(date(2025, 2, 15), 15_000, "cash", "Feb"),
            ),
        )
        with warnings.catch_warnings():
            warnings.simplefilter("error", ClampedWithdrawalWarning)
            timeline = TimelineEngine(params, [cash]).run().timeline
        assert timeline[1].events == ("Withdrawal: Jan -15,000",)
        assert timeline[2].events == ("Withdrawal: Feb -15,000",)
        assert timeline[1].total_assets == 15_000
        assert timeline[2].total_assets == 10_000
        assert timeline[3].events == ()

    def test_month_interval_follows_start_day(self):
        """Test a mid-month start shifts each month's interval with it."""
        cash = AssetState("cash", balance=20_000, asset_type="savings")
        params = SimulationParams(
            start_date=date(2025, 1, 15), end_date=date(2025, 4, 15), inflation_rate=0,
            extra_deposits=(
                ExtraDeposit(date(2025, 2, 10), 100, "cash", "Early"),
                ExtraDeposit(date(2025, 2, 15), 200, "cash", "Late"),
            ),
        )
        timeline = TimelineEngine(params, [cash]).run().timeline
        assert timeline[1].events == ("Deposit: Early +100",)
        assert timeline[2].events == ("Deposit: Late +200",)

    def test_out_of_horizon_override_warns(self, params_12m, cash):
        """Test overrides beyond the horizon are ignored with a warning."""
        params = SimulationParams(
            start_date=params_12m.start_date, end_date=params_12m.end_date, inflation_rate=0,
            extra_deposits=(ExtraDeposit(date(2030, 1, 1), 1_000, "cash"),),
        )
        with pytest.warns(UserWarning, match="beyond horizon"):
            results = TimelineEngine(params, [cash]).run()
        assert results.final.total_assets == 20_000

    def test_yearly_expense_drawn_in_liquidity_order(self, start_date, cash, fund):
        """Test a yearly expense is paid in its calendar month from savings first."""
        params = SimulationParams(
            start_date=start_date, end_date=date(2026, 1, 1), inflation_rate=0,
            yearly_expenses=(YearlyExpense("Vacation", 12_000, month=7),),
        )
        results = TimelineEngine(params, [fund, cash]).run()
        july = results.timeline[7]
        assert july.date == date(2025, 8, 1)
        assert results.timeline[6].events == ()
        assert july.assets_breakdown["cash"] == 8_000
        assert july.events == ("Yearly expense: Vacation -12,000",)
        assert results.final.total_withdrawals == 12_000

    def test_yearly_expense_inflated(self, start_date, cash):
        """Test inflation adjustment uses the month's factor."""
        params = SimulationParams(
            start_date=start_date, end_date=date(2025, 8, 1), inflation_rate=12.0,
            yearly_expenses=(YearlyExpense("Vacation", 1_000, month=7),),
        )
        july = TimelineEngine(params, [cash]).run().timeline[7]
        assert july.total_withdrawals == pytest.approx(1_000 * 1.01 ** 7)

    def test_unfunded_yearly_expense(self, start_date):
        """Test an unaffordable expense is reported, never negative."""
        params = SimulationParams(
            start_date=start_date, end_date=date(2025, 8, 1), inflation_rate=0,
            yearly_expenses=(YearlyExpense("Roof", 5_000, month=7),),
        )
        results = TimelineEngine(params, [AssetState("a", balance=1_000)]).run()
        assert results.timeline[7].total_assets == 0.0
        assert "unfunded 4,000" in results.timeline[7].events[0]
        assert results.summary.total_unfunded_expenses == pytest.approx(4_000)

    def test_event_order_within_month(self, start_date, cash):
        """Test deposits, withdrawals, yearly expenses, then milestones."""
        template = ChildExpenseTemplate(
            "t", "T", is_default=True,
            items=(ChildExpenseItem("birth", "Birth", "age_months", 0, amount=10_000),),
        )
        baby = FamilyMember("baby", "Baby", "planned_child", expected_birth_date=date(2025, 7, 1))
        params = SimulationParams(
            start_date=start_date, end_date=date(2025, 12, 1), inflation_rate=0,
            extra_deposits=(ExtraDeposit(date(2025, 7, 10), 5_000, "cash", "Bonus"),),
            withdrawal_events=(WithdrawalEvent(date(2025, 7, 5), 1_000, "cash", "Car"),),
            yearly_expenses=(YearlyExpense("Vacation", 2_000, month=7),),
        )
        july = TimelineEngine(params, [cash], [baby], [template]).run().timeline[7]
        assert july.events == (
            "Deposit: Bonus +5,000",
            "Withdrawal: Car -1,000",
            "Yearly expense: Vacation -2,000",
            "Baby: Birth -10,000",
        )
        assert july.total_assets == 20_000 + 5_000 - 1_000 - 2_000 - 10_000


# ---------------------------------------------------------------------------
# Child milestones
# ---------------------------------------------------------------------------

class TestChildMilestones:
    """Tests for milestone expenses on the timeline."""

    def test_thirteen_tuition_events(self, start_date, fund, planned_child, tuition_template):
        """Test 13 yearly tuition events, 12 months apart, over 20 years."""
        params = SimulationParams(start_date=start_date, end_date=date(2045, 1, 1), inflation_rate=0)
        results = TimelineEngine(params, [fund], [planned_child], [tuition_template]).run()

        months = [p.month_index for p in results.timeline if any("Tuition" in e for e in p.events)]
        assert len(months) == 13
        assert all(b - a == 12 for a, b in zip(months, months[1:]))
        assert results.final.total_child_expenses == pytest.approx(130_000)
        (proj,) = results.child_projections
        assert len(proj.milestones) == 13

    def test_planned_children_excluded(self, start_date, fund, planned_child, tuition_template):
        """Test include_planned_children=False drops planned children."""
        params = SimulationParams(
            start_date=start_date, end_date=date(2045, 1, 1), inflation_rate=0,
            include_planned_children=False,
        )
        results = TimelineEngine(params, [fund], [planned_child], [tuition_template]).run()
        assert results.child_projections == ()
        assert results.final.total_child_expenses == 0

    def test_milestones_inflated(self, start_date, fund, planned_child, tuition_template):
        """Test milestone costs follow the inflation factor by default."""
        params = SimulationParams(start_date=start_date, end_date=date(2045, 1, 1), inflation_rate=2.4)
        results = TimelineEngine(params, [fund], [planned_child], [tuition_template]).run()
        first = next(p for p in results.timeline if p.total_child_expenses > 0)
        assert first.total_child_expenses == pytest.approx(10_000 * first.inflation_factor)

    def test_milestones_drawn_from_liquid_asset_first(self, start_date, tuition_template):
        """Test savings pay before the pension."""
        assets = [
            AssetState("pension", balance=500_000, asset_type="pension"),
            AssetState("cash", balance=15_000, asset_type="savings"),
        ]
        child = FamilyMember("kid", "Kid", "child", birth_date=date(2019, 2, 1))
        params = SimulationParams(start_date=start_date, end_date=date(2026, 6, 1), inflation_rate=0)
        results = TimelineEngine(params, assets, [child], [tuition_template]).run()
        feb_2025 = results.timeline[2]
        assert feb_2025.assets_breakdown == {"pension": 500_000, "cash": 5_000}
        feb_2026 = results.timeline[14]
        assert feb_2026.assets_breakdown == {"pension": 495_000, "cash": 0.0}

    def test_past_milestones_not_charged(self, start_date, cash, tuition_template):
        """Test milestones before the start never hit the timeline."""
        child = FamilyMember("kid", "Kid", "child", birth_date=date(2010, 6, 1))
        params = SimulationParams(start_date=start_date, end_date=date(2025, 4, 1), inflation_rate=0)
        results = TimelineEngine(params, [cash], [child], [tuition_template]).run()
        assert results.final.total_child_expenses == 0
        assert any(m.is_past for m in results.child_projections[0].milestones)

    def test_unfunded_milestone(self, start_date, tuition_template):
        """Test a milestone larger than all assets is partly unfunded."""
        child = FamilyMember("kid", "Kid", "child", birth_date=date(2019, 2, 1))
        params = SimulationParams(start_date=start_date, end_date=date(2025, 3, 1), inflation_rate=0)
        results = TimelineEngine(params, [AssetState("a", balance=4_000)], [child], [tuition_template]).run()
        assert results.final.total_child_expenses == 4_000
        assert results.summary.total_unfunded_expenses == 6_000
        assert results.final.total_assets == 0.0

    def test_event_dates_scheduled(self, start_date, cash):
        """Test event_dates place an event item on the timeline."""
        template = ChildExpenseTemplate(
            "t", "T", is_default=True,
            items=(ChildExpenseItem("party", "Party", "event", 13, amount=3_000),),
        )
        child = FamilyMember("kid", "Kid", "child", birth_date=date(2012, 5, 1))
        params = SimulationParams(
            start_date=start_date, end_date=date(2025, 12, 1), inflation_rate=0,
            event_dates={"kid": {"party": date(2025, 5, 20)}},
        )
        results = TimelineEngine(params, [cash], [child], [template]).run()
        assert results.timeline[5].events == ("Kid: Party -3,000",)
        assert results.child_projections[0].unscheduled == ()


# ---------------------------------------------------------------------------
# Determinism, summary and exports
# ---------------------------------------------------------------------------

class TestResults:
    """Tests for determinism, summary and DataFrame exports."""

    def test_identical_runs(self, start_date, portfolio, parent, planned_child, tuition_template):
        """Test two runs with identical inputs give identical timelines."""
        params = SimulationParams(
            start_date=start_date, end_age=67,
            yearly_expenses=(YearlyExpense("Vacation", 12_000),),
            extra_monthly_deposit=250,
        )
        members = [parent, planned_child]
        first = TimelineEngine(params, portfolio, members, [tuition_template]).run()
        second = TimelineEngine(params, portfolio, members, [tuition_template]).run()
        assert first.timeline == second.timeline
        assert first.summary == second.summary

    def test_summary(self, params_12m, fund):
        """Test summary metrics."""
        s = TimelineEngine(params_12m, [fund]).run().summary
        assert s.initial_balance == 100_000
        assert s.total_deposited == 12_000
        assert s.effective_return_rate == pytest.approx((s.final_balance / 100_000 - 1) * 100)
        assert s.effective_return_rate_real == pytest.approx(s.effective_return_rate)
        assert s.total_fees == 0

    def test_summary_zero_initial_balance(self, params_12m):
        """Test effective return is 0 when starting from nothing."""
        s = TimelineEngine(params_12m, [AssetState("a", monthly_deposit=100)]).run().summary
        assert s.effective_return_rate == 0.0

    def test_to_dataframe(self, params_12m, portfolio):
        """Test the timeline DataFrame has a DatetimeIndex."""
        results = TimelineEngine(params_12m, portfolio).run()
        df = results.to_dataframe()
        assert isinstance(df.index, pd.DatetimeIndex)
        assert len(df) == 13
        assert df["total_assets"].iloc[-1] == pytest.approx(results.final.total_assets)

    def test_breakdown_dataframe(self, start_date, portfolio):
        """Test per-asset DataFrame, nominal and real."""
        params = SimulationParams(start_date=start_date, end_date=date(2026, 1, 1), inflation_rate=5)
        results = TimelineEngine(params, portfolio).run()
        nominal = results.breakdown_dataframe()
        real = results.breakdown_dataframe(real=True)
        assert list(nominal.columns) == ["cash", "fund", "pension"]
        assert nominal.shape == (13, 3)
        assert real["fund"].iloc[-1] == pytest.approx(
            nominal["fund"].iloc[-1] / results.final.inflation_factor
        )

    def test_to_dict(self, params_12m, fund):
        """Test dict export uses ISO dates."""
        payload = TimelineEngine(params_12m, [fund]).run().to_dict()
        assert payload["timeline"][0]["date"] == "2025-01-01"
        assert payload["summary"]["end_date"] == "2026-01-01"
        assert payload["goals_analysis"] == []
