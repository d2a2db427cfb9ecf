"""Tests for the deterministic projection runner and its summary."""

import pandas as pd
import pytest

from core.config import load_projection_config
from core.errors import InvalidConfiguration
from engine.runner import run_deterministic
from planning.summary import RISK_WEIGHTS


def test_one_snapshot_per_year_with_ages(household_config):
    result = run_deterministic(household_config)
    assert len(result.yearly_snapshots) == 40
    assert [s.year for s in result.yearly_snapshots] == list(range(40))
    assert result.yearly_snapshots[0].age == 35
    assert result.yearly_snapshots[-1].age == 74
    assert result.execution_time_ms >= 0


def test_identical_configs_give_identical_results(household_config):
    first = run_deterministic(household_config)
    second = run_deterministic(household_config.model_dump())
    pd.testing.assert_frame_equal(first.to_dataframe(), second.to_dataframe())
    assert first.summary == second.summary


def test_invalid_mapping_raises_before_running():
    with pytest.raises(InvalidConfiguration):
        run_deterministic({"projectionYears": 10, "currentAge": 60, "retirementAge": 50})


def test_hand_checked_flat_projection(flat_config):
    result = run_deterministic(flat_config)
    first, last = result.yearly_snapshots[0], result.yearly_snapshots[-1]
    assert first.net_cashflow == pytest.approx(20_000)
    assert first.taxes_paid == 0.0
    assert last.net_worth == pytest.approx(200_000)
    assert result.summary.average_savings_rate == pytest.approx(1 / 3)
    assert result.summary.total_lifetime_earnings == pytest.approx(600_000)


def test_starter_household_first_year(starter_config):
    result = run_deterministic(starter_config)
    first = result.yearly_snapshots[0]
    # 65,400 taxable: 1,160 + 4,266 + 22% of 18,250
    assert first.taxes_paid == pytest.approx(9_441)
    assert first.net_cashflow == pytest.approx(80_000 - 9_441 - 50_000)
    assert result.summary.debt_free_year == 0
    fi_year = result.summary.financial_independence_year
    assert fi_year is None or fi_year > 0


def test_home_purchase_hits_only_its_year():
    base = {
        "projectionYears": 10, "currentAge": 30, "retirementAge": 65,
        "incomeStreams": [{"name": "Salary", "annualAmount": 90_000}],
        "expenses": [{"name": "Living", "annualAmount": 40_000, "isEssential": True}],
        "assets": [{"name": "Brokerage", "currentValue": 100_000, "type": "taxable"}],
    }
    with_house = dict(base, lifeEvents=[
        {"type": "home_purchase", "name": "House", "year": 5, "amount": -60_000},
    ])
    baseline = run_deterministic(base).yearly_snapshots
    event = run_deterministic(with_house).yearly_snapshots

    for year in range(5):
        assert event[year].total_assets == pytest.approx(baseline[year].total_assets)
        assert event[year].net_cashflow == pytest.approx(baseline[year].net_cashflow)
    assert event[5].total_assets - baseline[5].total_assets == pytest.approx(-60_000)
    assert event[5].life_event_net_worth_impact == pytest.approx(-60_000)
    assert event[5].net_cashflow == pytest.approx(baseline[5].net_cashflow)
    assert event[5].life_events_this_year[0].name == "House"


def test_loan_payoff_sets_debt_free_year():
    result = run_deterministic({
        "projectionYears": 5, "currentAge": 30, "retirementAge": 65,
        "incomeStreams": [{"name": "Salary", "annualAmount": 50_000, "isTaxable": False}],
        "loans": [{"name": "Car", "balance": 3_000, "monthlyPayment": 100, "type": "auto"}],
    })
    summary = result.summary
    assert summary.debt_free_year == 2
    assert result.yearly_snapshots[0].loan_breakdown == {"Car": pytest.approx(1_800)}
    assert result.yearly_snapshots[2].loan_breakdown == {}


def test_social_security_and_retirement_income(household_config):
    result = run_deterministic(household_config)
    snapshots = result.yearly_snapshots
    claim_year = 67 - 35
    assert snapshots[claim_year - 1].social_security_income == 0.0
    assert snapshots[claim_year].social_security_income == pytest.approx(2_500 * 12)
    assert snapshots[claim_year + 1].social_security_income == pytest.approx(2_500 * 12 * 1.03)
    assert snapshots[30].income_breakdown.get("Salary") is None
    assert result.summary.years_until_retirement == 30
    assert result.summary.projected_retirement_income > 0
    assert result.summary.total_social_security == pytest.approx(
        sum(s.social_security_income for s in snapshots)
    )


def test_risk_score_is_bounded_and_attributed(household_config):
    summary = run_deterministic(household_config).summary
    assert 0 <= summary.risk_score <= 100
    assert set(summary.risk_components) == set(RISK_WEIGHTS)
    for name, points in summary.risk_components.items():
        assert 0 <= points <= RISK_WEIGHTS[name]


def test_plausibility_and_outcome_warnings():
    result = run_deterministic({
        "projectionYears": 10, "currentAge": 40, "retirementAge": 70,
        "incomeStreams": [{"name": "Salary", "annualAmount": 50_000, "isTaxable": False}],
        "expenses": [{"name": "Living", "annualAmount": 48_000}],
        "lifeEvents": [{"name": "Sabbatical", "year": 15, "amount": -20_000}],
    })
    text = "\n".join(result.warnings)
    assert "beyond the 10-year horizon" in text
    assert "life event(s) fall beyond" in text
    assert "No Social Security" in text
    assert "Low savings rate" in text


def test_real_dollar_view_deflates_by_inflation_index(household_config):
    result = run_deterministic(household_config)
    nominal = result.to_dataframe()
    real = result.to_dataframe(real=True)
    assert real.loc[0, "net_worth"] == pytest.approx(nominal.loc[0, "net_worth"])
    assert real.loc[20, "net_worth"] == pytest.approx(
        nominal.loc[20, "net_worth"] / nominal.loc[20, "inflation_index"]
    )
    assert nominal.loc[20, "inflation_index"] == pytest.approx(1.03 ** 20)


def test_calendar_year_labels():
    config = load_projection_config({"projectionYears": 3, "currentAge": 30,
                                     "retirementAge": 65, "startYear": 2026})
    snapshots = run_deterministic(config).yearly_snapshots
    assert [s.calendar_year for s in snapshots] == [2026, 2027, 2028]


def test_breakdown_frame_has_one_column_per_asset(household_config):
    frame = run_deterministic(household_config).breakdown_frame("asset")
    assert {"year", "Checking", "401k"} <= set(frame.columns)
