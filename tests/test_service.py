"""Tests for ProjectionService: collaborator resolution, fallbacks, caching."""

from datetime import date

import pytest

from core.config import SimulationSettings
from core.errors import InvalidConfiguration, UpstreamDataUnavailable
from data_prep.providers import (
    AccountRecord,
    GoalRecord,
    InMemoryAccountProvider,
    InMemoryGoalProvider,
    InMemoryRecurringProvider,
    RecurringRecord,
)
from services.projection_service import ProjectionService

BASE = {"projectionYears": 30, "currentAge": 40, "retirementAge": 65}


@pytest.fixture
def service():
    accounts = InMemoryAccountProvider({"home": [
        AccountRecord("a1", "Checking", "checking", 15_000),
        AccountRecord("a2", "IRA", "ira", 120_000),
        AccountRecord("a3", "Auto loan", "auto_loan", 12_000, interest_rate=0.06,
                      remaining_term_months=36),
    ]})
    recurring = InMemoryRecurringProvider({"home": [
        RecurringRecord("r1", "Payroll", 3_000, frequency="biweekly"),
        RecurringRecord("r2", "Rent", -2_000, category="housing"),
        RecurringRecord("r3", "Groceries", -600),
    ]})
    goals = InMemoryGoalProvider([
        GoalRecord("g1", "Emergency fund", 20_000, date(2028, 6, 1), current_balance=5_000,
                   monthly_contribution=400, volatility=0.05, expected_return=0.04),
    ])
    return ProjectionService(accounts, recurring, goals, cache={}, as_of=date(2026, 6, 1))


def test_seeded_projection_uses_collaborator_data(service):
    result = service.generate_projection("home", dict(BASE, includeAccounts=True,
                                                      includeRecurring=True))
    first = result.yearly_snapshots[0]
    assert {"Checking", "IRA"} <= set(first.asset_breakdown)
    assert "Payroll" in first.income_breakdown
    assert first.expense_breakdown["Rent"] == pytest.approx(24_000)
    assert first.debt_service > 0
    assert not any("unavailable" in w for w in result.warnings)


def test_missing_collaborator_data_degrades_to_a_warning(service):
    result = service.generate_projection("elsewhere", dict(BASE, includeAccounts=True))
    assert any("Account data unavailable" in w for w in result.warnings)
    assert len(result.yearly_snapshots) == 30


def test_strict_mode_propagates_upstream_failures(service):
    with pytest.raises(UpstreamDataUnavailable):
        service.generate_projection("elsewhere", dict(BASE, includeRecurring=True), strict=True)


def test_missing_provider_counts_as_unavailable():
    bare = ProjectionService()
    result = bare.generate_projection("home", dict(BASE, includeAccounts=True))
    assert any("unavailable" in w for w in result.warnings)
    with pytest.raises(UpstreamDataUnavailable):
        bare.get_goal_probability("g1")


def test_results_are_cached_per_space_and_config(service):
    first = service.generate_projection("home", BASE)
    assert service.generate_projection("home", BASE) is first
    assert service.generate_projection("home", dict(BASE, inflationRate=0.04)) is not first
    assert len(service.cache) == 2


def test_quick_projection(service):
    quick = service.get_quick_projection("home", current_age=40, retirement_age=65)
    assert quick.years_until_retirement == 25
    assert quick.net_worth_at_retirement > 0
    assert quick.monthly_retirement_income > 0
    assert 0 <= quick.risk_score <= 100


def test_simulation_and_comparison_through_the_service(service):
    settings = SimulationSettings(iterations=200, batch_size=200)
    sim = service.simulate_projection("home", dict(BASE, includeAccounts=True), settings)
    assert sim.net_worth_paths.shape == (200, 30)

    comparison = service.compare_scenarios("home", BASE, [
        {"name": "Later", "adjustments": {"retirementAge": 3}},
    ])
    assert comparison.get("Later").result.config.retirement_age == 68
    with pytest.raises(InvalidConfiguration):
        service.compare_scenarios("home", BASE, [{"name": "Bad", "adjustments": {"salary": 1}}])


def test_scenario_templates_through_the_service(service):
    templates = service.get_scenario_templates("home", BASE)
    assert len(templates) == 13


def test_goal_probability_and_what_if(service):
    result = service.get_goal_probability("g1", iterations=500)
    assert result.goal_id == "g1"
    assert 0 <= result.probability <= 100
    assert result.current_progress == pytest.approx(25.0)

    what_if = service.run_what_if_scenario("g1", {"monthlyContribution": 800}, iterations=500)
    assert what_if.recommended_monthly_contribution == 800
    assert what_if.probability >= result.probability

    with pytest.raises(UpstreamDataUnavailable):
        service.get_goal_probability("nope")
    with pytest.raises(InvalidConfiguration):
        service.run_what_if_scenario("g1", {"targetDate": "2020-01-01"})
