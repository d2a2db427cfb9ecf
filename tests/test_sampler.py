"""Tests for the economic samplers and market regimes."""

import numpy as np
import pytest

from core.config import MarketAssumptions, Shock
from distributions.benchmarks import get_market_regime, regime_assumptions
from distributions.correlation import return_inflation_matrix
from distributions.sampler import ExpectedValueSampler, MonteCarloSampler


def test_expected_value_sampler_repeats_the_means():
    paths = ExpectedValueSampler(MarketAssumptions(), inflation_mean=0.025).sample(3, 4)
    assert paths.market_return.shape == (3, 4)
    assert np.all(paths.market_return == 0.07)
    assert np.all(paths.inflation == 0.025)


def test_expected_value_sampler_applies_shocks():
    shocks = [
        Shock(kind="market_return", start_year=1, duration_years=1, magnitude=-0.30),
        Shock(kind="inflation", start_year=0, duration_years=0.5, magnitude=0.02),
    ]
    paths = ExpectedValueSampler(MarketAssumptions(), 0.03, shocks).sample(1, 3)
    np.testing.assert_allclose(paths.market_return[0], [0.07, -0.23, 0.07])
    np.testing.assert_allclose(paths.inflation[0], [0.04, 0.03, 0.03])


def test_same_seed_gives_same_paths():
    market = MarketAssumptions(distribution="student_t")
    a = MonteCarloSampler(market, 0.03, seed=11).sample(50, 10)
    b = MonteCarloSampler(market, 0.03, seed=11).sample(50, 10)
    c = MonteCarloSampler(market, 0.03, seed=12).sample(50, 10)
    np.testing.assert_array_equal(a.market_return, b.market_return)
    assert not np.array_equal(a.market_return, c.market_return)


@pytest.mark.parametrize("shape", ["normal", "lognormal", "student_t"])
def test_zero_volatility_reproduces_expected_values(shape):
    market = MarketAssumptions(distribution=shape, return_volatility=0.0, inflation_volatility=0.0)
    stochastic = MonteCarloSampler(market, 0.03, seed=1).sample(20, 5)
    expected = ExpectedValueSampler(market, 0.03).sample(20, 5)
    np.testing.assert_allclose(stochastic.market_return, expected.market_return)
    np.testing.assert_allclose(stochastic.inflation, expected.inflation)


@pytest.mark.parametrize("shape", ["normal", "lognormal", "student_t"])
def test_returns_are_clipped_and_centred(shape):
    market = MarketAssumptions(distribution=shape, return_volatility=0.30,
                               min_return=-0.5, max_return=0.8)
    paths = MonteCarloSampler(market, 0.03, seed=3).sample(20_000, 2)
    assert paths.market_return.min() >= -0.5
    assert paths.market_return.max() <= 0.8
    assert paths.market_return.mean() == pytest.approx(0.07, abs=0.02)


def test_return_inflation_correlation_is_respected():
    market = MarketAssumptions(return_inflation_correlation=-0.5)
    paths = MonteCarloSampler(market, 0.03, seed=5).sample(20_000, 1)
    rho = np.corrcoef(paths.market_return[:, 0], paths.inflation[:, 0])[0, 1]
    assert rho == pytest.approx(-0.5, abs=0.05)


def test_volatility_shock_widens_the_distribution():
    shock = Shock(kind="market_volatility", start_year=1, duration_years=1, magnitude=0.25)
    paths = MonteCarloSampler(MarketAssumptions(), 0.03, [shock], seed=9).sample(10_000, 2)
    assert paths.market_return[:, 1].std() > paths.market_return[:, 0].std() * 1.5


def test_paths_to_dataframe_and_summary():
    paths = MonteCarloSampler(MarketAssumptions(), 0.03, seed=2).sample(4, 3)
    frame = paths.to_dataframe()
    assert len(frame) == 12
    assert list(frame.columns) == ["path_id", "year", "market_return", "inflation"]
    assert list(paths.summary()["Variable"]) == ["Market Return", "Inflation"]


def test_singular_correlation_stays_usable():
    matrix = return_inflation_matrix(1.0)
    assert np.all(np.linalg.eigvalsh(matrix) > 0)
    assert matrix[0, 0] == pytest.approx(1.0)


def test_market_regimes():
    conservative = regime_assumptions("conservative")
    assert conservative.expected_return == pytest.approx(0.05)
    assert conservative.return_volatility == pytest.approx(0.10)
    with pytest.raises(KeyError, match="Available"):
        get_market_regime("boom")
