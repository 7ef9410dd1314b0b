"""
Unit tests for cache module.
"""

from dataclasses import replace
from datetime import date
from types import MappingProxyType

import pytest

from familyplan.cache import SimulationCache, scenario_key
from familyplan.exceptions import InvalidParameterError
from familyplan.goals import FinancialGoal
from familyplan.scenario import run_simulation


class TestScenarioKey:
    """Tests for scenario_key."""

    def test_stable(self, params_12m, portfolio, parent):
        """Test identical inputs give the same key."""
        a = scenario_key(params_12m, portfolio, [parent], (), ())
        b = scenario_key(params_12m, list(portfolio), (parent,), [], [])
        assert a == b
        assert len(a) == 64

    def test_any_change_changes_key(self, params_12m, portfolio, parent):
        """Test a change to any input changes the key."""
        base = scenario_key(params_12m, portfolio, [parent], (), ())
        richer = [replace(portfolio[0], balance=portfolio[0].balance + 1), *portfolio[1:]]
        assert scenario_key(params_12m, richer, [parent], (), ()) != base
        assert scenario_key(replace(params_12m, inflation_rate=3.0), portfolio, [parent], (), ()) != base
        goal = FinancialGoal("g", "G", 1_000)
        assert scenario_key(params_12m, portfolio, [parent], [goal], ()) != base

    def test_read_only_event_dates(self, params_12m, portfolio):
        """Test event_dates given as a read-only mapping are keyed like a dict."""
        plain = replace(params_12m, event_dates={"kid": {"party": date(2025, 5, 1)}})
        proxied = replace(
            params_12m,
            event_dates=MappingProxyType({"kid": MappingProxyType({"party": date(2025, 5, 1)})}),
        )
        assert scenario_key(proxied, portfolio, (), (), ()) == scenario_key(plain, portfolio, (), (), ())


class TestSimulationCache:
    """Tests for SimulationCache."""

    def test_hit_returns_same_object(self, params_12m, portfolio):
        """Test a repeated run is served from the cache."""
        cache = SimulationCache()
        first = run_simulation(params_12m, portfolio, cache=cache)
        second = run_simulation(params_12m, portfolio, cache=cache)
        assert second is first
        assert (cache.hits, cache.misses) == (1, 1)
        assert len(cache) == 1

    def test_hit_cannot_be_modified(self, params_12m, portfolio):
        """Test a caller cannot alter the stored results through a hit."""
        cache = SimulationCache()
        first = run_simulation(params_12m, portfolio, cache=cache)
        expected = dict(first.final.assets_breakdown)
        with pytest.raises(TypeError):
            first.final.assets_breakdown["cash"] = -5.0
        second = run_simulation(params_12m, portfolio, cache=cache)
        assert dict(second.final.assets_breakdown) == expected

    def test_changed_input_misses(self, params_12m, portfolio):
        """Test a different scenario is simulated again."""
        cache = SimulationCache()
        run_simulation(params_12m, portfolio, cache=cache)
        other = replace(params_12m, end_date=date(2026, 6, 1))
        results = run_simulation(other, portfolio, cache=cache)
        assert results.summary.horizon_months == 17
        assert len(cache) == 2

    def test_lru_eviction(self):
        """Test least recently used entries are evicted."""
        cache = SimulationCache(max_entries=2)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.get("a")
        cache.put("c", 3)
        assert "a" in cache and "c" in cache
        assert "b" not in cache

    def test_clear(self):
        """Test clear empties the store and counters."""
        cache = SimulationCache()
        cache.put("a", 1)
        cache.get("a")
        cache.clear()
        assert len(cache) == 0 and cache.hits == 0

    def test_invalid_size(self):
        """Test max_entries must be positive."""
        with pytest.raises(InvalidParameterError):
            SimulationCache(max_entries=0)
