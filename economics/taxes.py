"""
Tax functions: pluggable ``TaxFunction(taxable_income, TaxConfig) -> taxes``.

The kernel calls the tax function with taxable income expressed in start-of-projection
dollars and re-inflates the result, which is the same as indexing every bracket
threshold by the simulated inflation path.

Bracket tables are plain data keyed by (country, filing_status):
  - US 2024 federal, single and married filing jointly
  - MX ISR 2024 (annualized, individual filing only)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import numpy as np

from core.config import TaxConfig


@dataclass(frozen=True)
class TaxBracket:
    lower: float
    upper: float
    rate: float


def _table(rows) -> Tuple[TaxBracket, ...]:
    return tuple(TaxBracket(lower, upper, rate) for lower, upper, rate in rows)


US_2024_SINGLE = _table([
    (0.0, 11_600.0, 0.10),
    (11_600.0, 47_150.0, 0.12),
    (47_150.0, 100_525.0, 0.22),
    (100_525.0, 191_950.0, 0.24),
    (191_950.0, 243_725.0, 0.32),
    (243_725.0, 609_350.0, 0.35),
    (609_350.0, np.inf, 0.37),
])

US_2024_MARRIED_JOINT = _table([
    (0.0, 23_200.0, 0.10),
    (23_200.0, 94_300.0, 0.12),
    (94_300.0, 201_050.0, 0.22),
    (201_050.0, 383_900.0, 0.24),
    (383_900.0, 487_450.0, 0.32),
    (487_450.0, 731_200.0, 0.35),
    (731_200.0, np.inf, 0.37),
])

MX_2024_ISR = _table([
    (0.0, 8_952.49, 0.0192),
    (8_952.49, 75_984.55, 0.064),
    (75_984.55, 133_536.07, 0.1088),
    (133_536.07, 155_229.80, 0.16),
    (155_229.80, 185_852.57, 0.1792),
    (185_852.57, 374_837.88, 0.2136),
    (374_837.88, 590_795.99, 0.2352),
    (590_795.99, 1_127_926.84, 0.30),
    (1_127_926.84, 1_503_902.46, 0.32),
    (1_503_902.46, 4_511_707.37, 0.34),
    (4_511_707.37, np.inf, 0.35),
])

TAX_TABLES: Dict[Tuple[str, str], Tuple[TaxBracket, ...]] = {
    ("US", "single"): US_2024_SINGLE,
    ("US", "married_joint"): US_2024_MARRIED_JOINT,
    ("MX", "single"): MX_2024_ISR,
    ("MX", "married_joint"): MX_2024_ISR,
}


def progressive_tax(income, brackets: Tuple[TaxBracket, ...]):
    """Marginal-rate tax on ``income`` (scalar or array)."""
    x = np.asarray(income, dtype=float)
    tax = np.zeros_like(x)
    for b in brackets:
        tax = tax + b.rate * np.clip(x - b.lower, 0.0, b.upper - b.lower)
    return float(tax) if tax.ndim == 0 else tax


class TaxFunction:
    """Interface for mapping taxable income to taxes paid."""

    def __call__(self, taxable_income, tax_config: TaxConfig):
        raise NotImplementedError


@dataclass(frozen=True)
class BracketTaxFunction(TaxFunction):
    """
    Progressive brackets by (country, filing_status) plus a flat state rate, both
    applied to ``max(0, taxable_income - annual_deductions)``.
    """

    tables: Dict[Tuple[str, str], Tuple[TaxBracket, ...]] = field(
        default_factory=lambda: dict(TAX_TABLES)
    )

    def brackets_for(self, tax_config: TaxConfig) -> Tuple[TaxBracket, ...]:
        key = (tax_config.country, tax_config.filing_status)
        if key not in self.tables:
            available = ", ".join(f"{c}/{f}" for c, f in self.tables)
            raise KeyError(f"No tax table for {key[0]}/{key[1]}. Available: {available}")
        return self.tables[key]

    def __call__(self, taxable_income, tax_config: TaxConfig):
        base = np.maximum(np.asarray(taxable_income, dtype=float) - tax_config.annual_deductions, 0.0)
        tax = progressive_tax(base, self.brackets_for(tax_config)) + tax_config.state_tax_rate * base
        return float(tax) if np.ndim(tax) == 0 else tax


@dataclass(frozen=True)
class FlatTaxFunction(TaxFunction):
    """Single effective rate on income above deductions."""

    rate: float = 0.20

    def __call__(self, taxable_income, tax_config: TaxConfig):
        base = np.maximum(np.asarray(taxable_income, dtype=float) - tax_config.annual_deductions, 0.0)
        tax = (self.rate + tax_config.state_tax_rate) * base
        return float(tax) if np.ndim(tax) == 0 else tax


def taxes_for_year(
    taxable_income: np.ndarray,
    tax_config: Optional[TaxConfig],
    tax_function: TaxFunction,
    inflation_index: np.ndarray,
) -> np.ndarray:
    """Nominal taxes with bracket thresholds indexed to ``inflation_index``."""
    if tax_config is None:
        return np.zeros_like(np.asarray(taxable_income, dtype=float))
    real_income = np.asarray(taxable_income, dtype=float) / inflation_index
    return np.asarray(tax_function(real_income, tax_config), dtype=float) * inflation_index
