"""
Distributions package: market return / inflation assumptions and samplers.

  1. benchmarks.py:   named market regimes
  2. correlation.py:  return/inflation correlation structure
  3. sampler.py:      expected-value and Monte Carlo economic paths
"""

from .benchmarks import MARKET_REGIMES, get_market_regime, regime_assumptions
from .correlation import return_inflation_matrix
from .sampler import EconomicPaths, EconomicSampler, ExpectedValueSampler, MonteCarloSampler

__all__ = [
    "MARKET_REGIMES",
    "get_market_regime",
    "regime_assumptions",
    "return_inflation_matrix",
    "EconomicPaths",
    "EconomicSampler",
    "ExpectedValueSampler",
    "MonteCarloSampler",
]
