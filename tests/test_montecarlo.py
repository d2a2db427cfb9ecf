"""Tests for the Monte Carlo engine and the safe withdrawal rate search."""

import threading

import numpy as np
import pytest

from core.config import MarketAssumptions, SimulationSettings, load_projection_config
from core.errors import ComputationTimeout, InvalidConfiguration
from engine.montecarlo import _batch_sizes, find_safe_withdrawal_rate, run_monte_carlo
from engine.runner import run_deterministic


@pytest.fixture
def small_config():
    return load_projection_config({
        "projectionYears": 12,
        "currentAge": 55,
        "retirementAge": 60,
        "incomeStreams": [{"name": "Salary", "annualAmount": 70_000, "stopsAtRetirement": True}],
        "expenses": [{"name": "Living", "annualAmount": 45_000, "growthRate": 0.03,
                      "isEssential": True}],
        "assets": [{"name": "Brokerage", "currentValue": 300_000, "type": "taxable"}],
        "taxes": {"country": "US", "annualDeductions": 14_600},
    })


def _settings(**overrides):
    values = {"iterations": 400, "seed": 7, "batch_size": 100}
    values.update(overrides)
    return SimulationSettings(**values)


def test_percentile_bands_are_ordered(small_config):
    result = run_monte_carlo(small_config, _settings())
    bands = result.timelines["net_worth"]
    assert len(bands) == 12
    for band in bands:
        assert band.p10 <= band.median <= band.p90
    assert bands[0].age == 55
    assert 0.0 <= result.success_probability <= 1.0
    assert result.depletion_probability == pytest.approx(1.0 - result.success_probability)


def test_same_seed_is_reproducible(small_config):
    a = run_monte_carlo(small_config, _settings())
    b = run_monte_carlo(small_config, _settings())
    np.testing.assert_array_equal(a.final_net_worth, b.final_net_worth)
    c = run_monte_carlo(small_config, _settings(seed=8))
    assert not np.array_equal(a.final_net_worth, c.final_net_worth)


def test_worker_count_does_not_change_results(small_config):
    inline = run_monte_carlo(small_config, _settings(max_workers=1))
    pooled = run_monte_carlo(small_config, _settings(max_workers=2))
    np.testing.assert_array_equal(inline.final_net_worth, pooled.final_net_worth)
    np.testing.assert_array_equal(inline.insolvent_paths, pooled.insolvent_paths)


def test_zero_variance_collapses_to_the_deterministic_path():
    config = load_projection_config({
        "currentAge": 30, "retirementAge": 65, "projectionYears": 35, "inflationRate": 0.03,
        "incomeStreams": [{"name": "salary", "annualAmount": 80_000, "growthRate": 0.02}],
        "expenses": [{"name": "living", "annualAmount": 50_000, "growthRate": 0.03,
                      "isEssential": True}],
        "market": {"returnVolatility": 0.0, "inflationVolatility": 0.0},
    })
    result = run_monte_carlo(config, SimulationSettings(iterations=10_000))
    deterministic = run_deterministic(config)
    for band, snapshot in zip(result.timelines["net_worth"], deterministic.yearly_snapshots):
        assert band.p10 == pytest.approx(band.median)
        assert band.p90 == pytest.approx(band.median)
        assert band.median == pytest.approx(snapshot.net_worth)


def test_tracked_metrics_and_frames(small_config):
    result = run_monte_carlo(
        small_config, _settings(tracked_metrics=("total_assets", "taxes_paid"))
    )
    assert set(result.timelines) == {"total_assets", "taxes_paid"}
    frame = result.timeline_frame("taxes_paid")
    assert {"year", "age", "mean", "p10", "p50", "p90"} <= set(frame.columns)
    with pytest.raises(KeyError, match="Available"):
        result.timeline_frame("net_worth")
    assert result.net_worth_paths.shape == (400, 12)


def test_unknown_tracked_metric_is_rejected(small_config):
    with pytest.raises(InvalidConfiguration):
        run_monte_carlo(small_config, _settings(tracked_metrics=("happiness",)))


def test_probability_of_reaching(small_config):
    result = run_monte_carlo(small_config, _settings())
    assert result.probability_of_reaching(0.0, year=0) == pytest.approx(1.0)
    assert result.probability_of_reaching(1e12) == 0.0
    with pytest.raises(IndexError):
        result.probability_of_reaching(1.0, year=12)


def test_summary_table(small_config):
    table = run_monte_carlo(small_config, _settings()).summary()
    assert "Final Net Worth" in set(table["Metric"])
    assert {"Mean", "P50", "Success Probability"} <= set(table.columns)


def test_low_iteration_count_warns(small_config):
    result = run_monte_carlo(small_config, _settings())
    assert any("tail percentiles will be noisy" in w for w in result.warnings)
    quiet = run_monte_carlo(small_config, _settings(iterations=1_000, batch_size=500))
    assert quiet.warnings == []


def test_work_budget_is_checked_before_running(small_config):
    with pytest.raises(ComputationTimeout):
        run_monte_carlo(small_config, _settings(max_work_units=1_000))


def test_cancel_event_aborts_the_run(small_config):
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(ComputationTimeout) as exc:
        run_monte_carlo(small_config, _settings(), cancel_event=cancel)
    assert exc.value.completed_iterations == 0


def test_insolvency_is_counted_per_path():
    config = load_projection_config({
        "projectionYears": 10, "currentAge": 70, "retirementAge": 70,
        "expenses": [{"name": "Care", "annualAmount": 50_000, "isEssential": True}],
        "assets": [{"name": "Brokerage", "currentValue": 100_000, "type": "taxable"}],
    })
    result = run_monte_carlo(config, _settings())
    assert result.success_probability == 0.0
    assert np.all(result.first_insolvent_year >= 0)
    assert np.all(result.first_insolvent_year <= 4)


def test_batch_sizes_cover_all_iterations():
    assert _batch_sizes(1_050, 500) == [500, 500, 50]
    assert _batch_sizes(100, 1_000) == [100]


def test_safe_withdrawal_rate_search():
    calm = MarketAssumptions(expected_return=0.06, return_volatility=0.0)
    rate = find_safe_withdrawal_rate(1_000_000, 30, market=calm, iterations=100)
    assert 0.01 <= rate <= 0.10
    volatile = MarketAssumptions(expected_return=0.06, return_volatility=0.20)
    risky = find_safe_withdrawal_rate(1_000_000, 30, market=volatile, iterations=500)
    assert risky <= rate + 0.005
    with pytest.raises(InvalidConfiguration):
        find_safe_withdrawal_rate(1_000_000, 30, target_success=1.5)
