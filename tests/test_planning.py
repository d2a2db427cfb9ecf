"""Tests for percentile aggregation and the projection summary / risk score."""

import numpy as np
import pytest

from core.config import LoanConfig
from engine.runner import run_deterministic
from planning.aggregator import bands_to_dataframe, percentile_bands, summarize_distribution
from planning.summary import RISK_WEIGHTS, RiskAssessment, retirement_income


def test_percentile_bands_per_year():
    values = np.array([[float(i), 10.0 * i] for i in range(1, 101)])
    bands = percentile_bands(values, percentiles=(0.9, 0.1, 0.5), start_age=60, years=[2026, 2027])
    assert [b.year for b in bands] == [2026, 2027]
    assert [b.age for b in bands] == [60, 61]
    assert list(bands[0].percentiles) == ["p10", "p50", "p90"]
    assert bands[0].median == pytest.approx(50.5)
    assert bands[1].mean == pytest.approx(505.0)
    assert bands[0].p10 < bands[0].median < bands[0].p90

    frame = bands_to_dataframe(bands)
    assert list(frame.columns) == ["year", "age", "mean", "p10", "p50", "p90"]


def test_percentile_bands_reject_flat_input():
    with pytest.raises(ValueError):
        percentile_bands(np.arange(10.0))


def test_summarize_distribution_skips_empty_metrics():
    table = summarize_distribution({
        "Final": np.array([1.0, 2.0, 3.0, np.nan]),
        "Depletion": np.array([]),
    })
    assert list(table["Metric"]) == ["Final"]
    assert table.loc[0, "Mean"] == pytest.approx(2.0)
    assert table.loc[0, "Max"] == pytest.approx(3.0)


def test_risk_assessment_caps_total():
    risk = RiskAssessment(components=dict(RISK_WEIGHTS))
    assert risk.score == 100.0
    frame = risk.to_dataframe()
    assert frame.iloc[-1]["Component"] == "total"
    assert frame.iloc[-1]["Points"] == 100.0


def test_heavy_debt_raises_the_risk_score(flat_config):
    light = run_deterministic(flat_config).summary
    indebted = flat_config.model_copy(update={
        "loans": [LoanConfig(name="Loan", balance=80_000, interest_rate=0.05,
                             remaining_term_months=240)],
    })
    heavy = run_deterministic(indebted).summary
    assert heavy.risk_components["debt_load"] > light.risk_components["debt_load"]
    assert heavy.risk_score > light.risk_score
    assert heavy.debt_free_year is None


def test_retirement_outside_horizon_has_no_income_figures(flat_config):
    result = run_deterministic(flat_config)
    income = retirement_income(result.config, result.yearly_snapshots,
                               [s.total_assets for s in result.yearly_snapshots])
    assert not income.in_horizon
    assert income.projected_income == 0.0
    assert result.summary.income_replacement_ratio == 0.0
    assert result.summary.risk_components["income_replacement"] == 0.0


def test_peak_and_minimum_net_worth(flat_config):
    summary = run_deterministic(flat_config).summary
    assert summary.peak_net_worth.year == 9
    assert summary.peak_net_worth.amount == pytest.approx(200_000)
    assert summary.min_net_worth.year == 0
    assert summary.min_net_worth.amount == pytest.approx(20_000)
