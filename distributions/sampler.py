"""
Economic samplers: annual market return and inflation for every path and year.

The projection kernel never draws random numbers itself; it is fed an
``EconomicPaths`` table by whichever sampler is injected:

  ExpectedValueSampler  mean return and inflation (plus any shocks), no randomness
  MonteCarloSampler     correlated stochastic draws from an explicit seed

Method (MonteCarloSampler):
  1. Draw correlated standard normals for (return, inflation), shape (n_paths, n_years, 2)
  2. Transform the return marginal to the configured shape:
     - normal:    mean + vol * z
     - lognormal: gross return (1 + r) lognormal with matching mean and std
     - student_t: Gaussian copula onto a unit-variance t with fat tails (scipy.stats)
  3. Inflation: normal around its mean
  4. Clip returns to [min_return, max_return]

Year-targeted shocks shift the mean return, the volatility and the inflation mean
for the years they cover. A zero volatility reproduces the expected-value path exactly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np
import pandas as pd
from scipy import stats

from core.config import MarketAssumptions, ProjectionConfig, Shock
from economics.streams import shock_shift

from .correlation import return_inflation_matrix

SeedLike = Union[int, np.random.SeedSequence, np.random.Generator]


@dataclass
class EconomicPaths:
    """
    Sampled economy: one row per path, one column per simulation year.
    """
    market_return: np.ndarray  # shape (n_paths, n_years)
    inflation: np.ndarray      # shape (n_paths, n_years)

    @property
    def n_paths(self) -> int:
        return self.market_return.shape[0]

    @property
    def n_years(self) -> int:
        return self.market_return.shape[1]

    def year(self, year: int):
        """(market_return, inflation) columns for one year."""
        return self.market_return[:, year], self.inflation[:, year]

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame({
            "path_id": np.repeat(np.arange(self.n_paths), self.n_years),
            "year": np.tile(np.arange(self.n_years), self.n_paths),
            "market_return": self.market_return.reshape(-1),
            "inflation": self.inflation.reshape(-1),
        })

    def summary(self) -> pd.DataFrame:
        """Percentile summary across all path-years."""
        pcts = [0.01, 0.05, 0.25, 0.50, 0.75, 0.95, 0.99]
        rows = []
        for name, arr in [("Market Return", self.market_return), ("Inflation", self.inflation)]:
            row = {"Variable": name, "Mean": np.mean(arr), "Std": np.std(arr)}
            for p in pcts:
                row[f"P{int(p*100):02d}"] = np.percentile(arr, p * 100)
            rows.append(row)
        return pd.DataFrame(rows)


class EconomicSampler:
    """Interface for producing market return / inflation paths."""

    def sample(self, n_paths: int, n_years: int) -> EconomicPaths:
        raise NotImplementedError


def _yearly_shifts(shocks: Sequence[Shock], kind: str, n_years: int) -> np.ndarray:
    return np.array([shock_shift(shocks, kind, y) for y in range(n_years)], dtype=float)


class ExpectedValueSampler(EconomicSampler):
    """Deterministic economy: every path gets the expected return and inflation."""

    def __init__(
        self,
        market: MarketAssumptions,
        inflation_mean: float,
        shocks: Sequence[Shock] = (),
    ):
        self.market = market
        self.inflation_mean = inflation_mean
        self.shocks = tuple(shocks)

    @classmethod
    def from_config(cls, config: ProjectionConfig) -> "ExpectedValueSampler":
        return cls(config.market, config.inflation_mean, config.shocks)

    def sample(self, n_paths: int, n_years: int) -> EconomicPaths:
        m = self.market
        returns = m.expected_return + _yearly_shifts(self.shocks, "market_return", n_years)
        returns = np.clip(returns, m.min_return, m.max_return)
        inflation = self.inflation_mean + _yearly_shifts(self.shocks, "inflation", n_years)
        return EconomicPaths(
            market_return=np.tile(returns, (n_paths, 1)),
            inflation=np.tile(inflation, (n_paths, 1)),
        )


class MonteCarloSampler(EconomicSampler):
    """
    Correlated stochastic market return / inflation paths.

    Usage:
        sampler = MonteCarloSampler.from_config(config, seed=42)
        paths = sampler.sample(n_paths=1000, n_years=30)
        # paths.market_return -> (1000, 30) array
        # paths.summary()     -> percentile table
    """

    def __init__(
        self,
        market: MarketAssumptions,
        inflation_mean: float,
        shocks: Sequence[Shock] = (),
        seed: SeedLike = 42,
    ):
        self.market = market
        self.inflation_mean = inflation_mean
        self.shocks = tuple(shocks)
        self.rng = np.random.default_rng(seed)

    @classmethod
    def from_config(cls, config: ProjectionConfig, seed: SeedLike = 42) -> "MonteCarloSampler":
        return cls(config.market, config.inflation_mean, config.shocks, seed=seed)

    def _transform_returns(self, z: np.ndarray, mean: np.ndarray, vol: np.ndarray) -> np.ndarray:
        m = self.market
        if m.distribution == "lognormal":
            gross_mean = 1.0 + mean
            sigma_ln = np.sqrt(np.log1p((vol / gross_mean) ** 2))
            mu_ln = np.log(gross_mean) - 0.5 * sigma_ln ** 2
            return np.where(vol > 0, np.exp(mu_ln + sigma_ln * z) - 1.0, mean)
        if m.distribution == "student_t":
            dof = m.degrees_of_freedom
            u = np.clip(stats.norm.cdf(z), 1e-12, 1.0 - 1e-12)
            t = stats.t.ppf(u, dof) * np.sqrt((dof - 2.0) / dof)
            return mean + vol * t
        return mean + vol * z

    def sample(self, n_paths: int, n_years: int) -> EconomicPaths:
        m = self.market

        # Step 1: correlated standard normals, (n_paths, n_years, 2)
        corr = return_inflation_matrix(m.return_inflation_correlation)
        z = self.rng.multivariate_normal(mean=np.zeros(2), cov=corr, size=(n_paths, n_years))

        # Step 2: returns, with per-year shock adjustments broadcast over paths
        mean = m.expected_return + _yearly_shifts(self.shocks, "market_return", n_years)
        vol = np.maximum(
            m.return_volatility + _yearly_shifts(self.shocks, "market_volatility", n_years), 0.0
        )
        returns = self._transform_returns(z[:, :, 0], mean[None, :], vol[None, :])
        returns = np.clip(returns, m.min_return, m.max_return)

        # Step 3: inflation
        infl_mean = self.inflation_mean + _yearly_shifts(self.shocks, "inflation", n_years)
        inflation = infl_mean[None, :] + m.inflation_volatility * z[:, :, 1]

        return EconomicPaths(market_return=returns, inflation=inflation)
