"""
Named market regimes: long-run return / inflation assumptions to seed MarketAssumptions.

The figures are planning conventions for a diversified portfolio, not forecasts:
  - base:         7% nominal, 15% volatility, 3% inflation
  - conservative: 5% nominal, 10% volatility
  - aggressive:   9% nominal, 20% volatility
  - stagflation:  low returns, high and volatile inflation
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from core.config import MarketAssumptions


@dataclass(frozen=True)
class MarketRegime:
    name: str
    expected_return: float
    return_volatility: float
    inflation_mean: float
    inflation_volatility: float
    description: str


MARKET_REGIMES: Dict[str, MarketRegime] = {
    "base": MarketRegime(
        name="base",
        expected_return=0.07,
        return_volatility=0.15,
        inflation_mean=0.03,
        inflation_volatility=0.01,
        description="Balanced equity/bond portfolio, long-run averages",
    ),
    "conservative": MarketRegime(
        name="conservative",
        expected_return=0.05,
        return_volatility=0.10,
        inflation_mean=0.03,
        inflation_volatility=0.01,
        description="Bond-heavy allocation",
    ),
    "aggressive": MarketRegime(
        name="aggressive",
        expected_return=0.09,
        return_volatility=0.20,
        inflation_mean=0.03,
        inflation_volatility=0.01,
        description="Equity-heavy allocation",
    ),
    "stagflation": MarketRegime(
        name="stagflation",
        expected_return=0.03,
        return_volatility=0.18,
        inflation_mean=0.06,
        inflation_volatility=0.02,
        description="1970s-style low real returns with persistent inflation",
    ),
}


def get_market_regime(name: str) -> MarketRegime:
    """
    Return a named market regime.

    Parameters
    ----------
    name : str
        One of: "base", "conservative", "aggressive", "stagflation"
    """
    if name not in MARKET_REGIMES:
        raise KeyError(
            f"Unknown market regime '{name}'. "
            f"Available: {list(MARKET_REGIMES.keys())}"
        )
    return MARKET_REGIMES[name]


def regime_assumptions(
    name: str, base: Optional[MarketAssumptions] = None
) -> MarketAssumptions:
    """``base`` (or defaults) with the regime's return and inflation parameters."""
    regime = get_market_regime(name)
    base = base if base is not None else MarketAssumptions()
    return base.model_copy(update={
        "expected_return": regime.expected_return,
        "return_volatility": regime.return_volatility,
        "inflation_mean": regime.inflation_mean,
        "inflation_volatility": regime.inflation_volatility,
    })
