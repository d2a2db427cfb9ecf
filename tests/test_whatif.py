"""Tests for scenario merging, comparison and the predefined templates."""

import pytest

from core.config import (
    AssetConfig,
    ConfigOverrides,
    LifeEvent,
    Shock,
    SimulationSettings,
    WhatIfScenario,
)
from core.errors import InvalidConfiguration
from engine.montecarlo import SimulationResult
from engine.whatif import apply_scenario, compare_scenarios
from planning.templates import (
    PLAN_TEMPLATES,
    SCENARIO_TEMPLATES,
    STRESS_TEMPLATES,
    get_template,
    scenario_templates,
)


# --- merging ---

def test_adjustments_shift_numeric_fields_without_touching_baseline(household_config):
    scenario = WhatIfScenario(name="early", adjustments={"retirementAge": -5, "inflationRate": 0.01})
    merged = apply_scenario(household_config, scenario)
    assert merged.retirement_age == 60
    assert isinstance(merged.retirement_age, int)
    assert merged.inflation_rate == pytest.approx(0.04)
    assert household_config.retirement_age == 65
    assert household_config.inflation_rate == pytest.approx(0.03)


def test_modifications_replace_lists_and_added_events_are_appended(household_config):
    scenario = WhatIfScenario(
        name="new plan",
        modifications=ConfigOverrides(
            life_events=[LifeEvent(type="wedding", name="Wedding", year=2, amount=-30_000)],
        ),
        added_life_events=[LifeEvent(type="car_purchase", name="Car", year=4, amount=-25_000)],
        added_shocks=[Shock(kind="income", start_year=1, duration_years=1, magnitude=0.5)],
    )
    merged = apply_scenario(household_config, scenario)
    assert [e.name for e in merged.life_events] == ["Wedding", "Car"]
    assert len(merged.shocks) == 1
    assert merged.assets == household_config.assets
    assert household_config.life_events == []


def test_added_life_events_keep_baseline_events(household_config):
    base = household_config.model_copy(update={
        "life_events": [LifeEvent(type="college", name="Tuition", year=10, annual_impact=-20_000,
                                  impact_duration=4)],
    })
    scenario = WhatIfScenario(
        name="new car",
        added_life_events=[LifeEvent(type="car_purchase", name="Car", year=3, amount=-35_000)],
    )
    merged = apply_scenario(base, scenario)
    assert [e.name for e in merged.life_events] == ["Tuition", "Car"]
    assert [e.name for e in base.life_events] == ["Tuition"]


def test_unset_override_fields_keep_baseline_values(household_config):
    scenario = WhatIfScenario.model_validate({
        "name": "cheaper",
        "modifications": {"expenses": [{"name": "Living", "annualAmount": 30_000}]},
    })
    merged = apply_scenario(household_config, scenario)
    assert [e.name for e in merged.expenses] == ["Living"]
    assert merged.income_streams == household_config.income_streams
    assert merged.social_security == household_config.social_security


def test_invalid_merge_raises(household_config):
    scenario = WhatIfScenario(name="impossible", adjustments={"retirementAge": -40})
    with pytest.raises(InvalidConfiguration):
        apply_scenario(household_config, scenario)


# --- comparison ---

def test_deterministic_comparison(household_config):
    comparison = compare_scenarios(household_config, [
        get_template("retire_later", household_config),
        get_template("market_crash", household_config),
    ])
    table = comparison.to_dataframe()
    assert list(table["Scenario"]) == ["Baseline", "Retire 5 years later", "Market Crash (-30%)"]

    baseline_final = comparison.baseline.yearly_snapshots[-1].net_worth
    later = comparison.get("Retire 5 years later").result.yearly_snapshots[-1].net_worth
    crash = comparison.get("Market Crash (-30%)").result.yearly_snapshots[-1].net_worth
    assert later > baseline_final
    assert crash < baseline_final
    with pytest.raises(KeyError, match="Available"):
        comparison.get("Lottery win")


def test_monte_carlo_comparison_uses_shared_settings(flat_config):
    base = flat_config.model_copy(update={
        "assets": [AssetConfig(name="Brokerage", current_value=50_000, type="taxable")],
    })
    settings = SimulationSettings(iterations=200, batch_size=200, seed=3)
    comparison = compare_scenarios(base, [get_template("job_loss", base)], settings)
    assert isinstance(comparison.baseline, SimulationResult)
    job_loss = comparison.scenarios[0].result
    assert job_loss.final_net_worth.mean() == pytest.approx(
        comparison.baseline.final_net_worth.mean() - 30_000
    )
    assert "Success Probability" in comparison.to_dataframe().columns


# --- templates ---

def test_template_registry():
    assert len(SCENARIO_TEMPLATES) == len(PLAN_TEMPLATES) + len(STRESS_TEMPLATES) == 13
    assert all(s.category == "plan" for s in scenario_templates(category="plan"))
    stress = scenario_templates(category="stress")
    assert all(s.category == "stress" and s.severity for s in stress)
    with pytest.raises(KeyError, match="Available"):
        get_template("alien_invasion")
    with pytest.raises(KeyError):
        scenario_templates(category="fun")


def test_every_template_applies_to_a_baseline(household_config):
    for scenario in scenario_templates(household_config):
        merged = apply_scenario(household_config, scenario)
        assert merged.projection_years == household_config.projection_years


def test_aggressive_savings_covers_the_baseline_horizon(household_config):
    scenario = get_template("aggressive_savings", household_config)
    assert scenario.added_shocks[0].duration_years == household_config.projection_years
    assert scenario.added_shocks[0].magnitude == pytest.approx(-0.20)


def test_inflation_templates_respect_pinned_market_inflation(household_config):
    pinned = household_config.model_copy(update={
        "market": household_config.market.model_copy(update={"inflation_mean": 0.025}),
    })
    merged = apply_scenario(pinned, get_template("higher_inflation", pinned))
    assert merged.inflation_mean == pytest.approx(0.04)


def test_lower_returns_keeps_baseline_inflation(household_config):
    merged = apply_scenario(household_config, get_template("lower_returns", household_config))
    assert merged.market.expected_return == pytest.approx(0.05)
    assert merged.inflation_mean == pytest.approx(household_config.inflation_mean)
