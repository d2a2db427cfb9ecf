"""
Projection summary: scalar answers derived from a full snapshot sequence.

  When is the household debt free?         → debt_free_year
  When do passive sources cover essentials? → financial_independence_year
  How well does retirement income hold up? → projected_retirement_income, replacement ratio
  How fragile is the plan?                 → risk_score (0 = robust, 100 = fragile)

Risk score components (points, capped per component):
  debt load           25  peak debt / assets
  low savings         20  average savings rate under 10% (20) or 20% (10)
  savings volatility  15  std of the working-years savings rate, in points of percent
  income replacement  20  only when retirement falls inside the horizon
  insolvency          20  5 points per insolvent year
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from core.config import ProjectionConfig
from core.errors import InsolvencyWarning
from core.schema import NetWorthPoint, ProjectionSummary, YearlySnapshot

RISK_WEIGHTS = {
    "debt_load": 25.0,
    "low_savings": 20.0,
    "savings_volatility": 15.0,
    "income_replacement": 20.0,
    "insolvency": 20.0,
}


@dataclass
class RiskAssessment:
    """Risk score with its per-component attribution."""
    components: Dict[str, float]

    @property
    def score(self) -> float:
        return float(min(100.0, round(sum(self.components.values()), 1)))

    def to_dataframe(self) -> pd.DataFrame:
        rows = [
            {"Component": name, "Points": pts, "Max": RISK_WEIGHTS[name]}
            for name, pts in self.components.items()
        ]
        rows.append({"Component": "total", "Points": self.score, "Max": 100.0})
        return pd.DataFrame(rows)


@dataclass(frozen=True)
class RetirementIncome:
    projected_income: float
    pre_retirement_income: float
    replacement_ratio: float
    in_horizon: bool


def retirement_income(
    config: ProjectionConfig,
    snapshots: Sequence[YearlySnapshot],
    market_linked_end: Sequence[float],
) -> RetirementIncome:
    """
    Income-equivalent in the first retirement year: gross income that year plus the
    withdrawal-rate draw on market-linked assets held when retirement begins.
    """
    r = config.retirement_year
    if r >= len(snapshots) or r < 1:
        return RetirementIncome(0.0, 0.0, 0.0, in_horizon=False)
    invested = market_linked_end[r - 1]
    projected = snapshots[r].gross_income + config.market.withdrawal_rate * invested
    pre = snapshots[r - 1].gross_income
    ratio = projected / pre if pre > 0 else 0.0
    return RetirementIncome(projected, pre, ratio, in_horizon=True)


def assess_risk(
    config: ProjectionConfig,
    snapshots: Sequence[YearlySnapshot],
    average_savings_rate: float,
    income: RetirementIncome,
    n_insolvent_years: int,
) -> RiskAssessment:
    components: Dict[str, float] = {}

    # --- debt load ---
    ratios = []
    for s in snapshots:
        if s.total_debt <= 0:
            ratios.append(0.0)
        elif s.total_assets <= 0:
            ratios.append(1.0)
        else:
            ratios.append(s.total_debt / s.total_assets)
    peak_ratio = max(ratios) if ratios else 0.0
    components["debt_load"] = min(RISK_WEIGHTS["debt_load"], RISK_WEIGHTS["debt_load"] * peak_ratio)

    # --- savings level ---
    if average_savings_rate < 0.10:
        components["low_savings"] = 20.0
    elif average_savings_rate < 0.20:
        components["low_savings"] = 10.0
    else:
        components["low_savings"] = 0.0

    # --- savings volatility over working years ---
    working = [s.savings_rate for s in snapshots if s.year < config.retirement_year]
    vol = float(np.std(working)) if len(working) > 1 else 0.0
    components["savings_volatility"] = min(RISK_WEIGHTS["savings_volatility"], vol * 100.0)

    # --- income replacement ---
    if income.in_horizon:
        if income.replacement_ratio < 0.5:
            components["income_replacement"] = 20.0
        elif income.replacement_ratio < 0.7:
            components["income_replacement"] = 12.0
        elif income.replacement_ratio < 0.8:
            components["income_replacement"] = 4.0
        else:
            components["income_replacement"] = 0.0
    else:
        components["income_replacement"] = 0.0

    # --- insolvency ---
    components["insolvency"] = min(RISK_WEIGHTS["insolvency"], 5.0 * n_insolvent_years)

    return RiskAssessment(components=components)


def _first_year(snapshots: Sequence[YearlySnapshot], predicate) -> Optional[int]:
    for s in snapshots:
        if predicate(s):
            return s.year
    return None


def summarize(
    config: ProjectionConfig,
    snapshots: Sequence[YearlySnapshot],
    *,
    market_linked_end: Sequence[float],
    n_insolvent_years: int = 0,
) -> ProjectionSummary:
    """
    Derive ProjectionSummary from a deterministic snapshot sequence.

    Parameters
    ----------
    config : ProjectionConfig
    snapshots : sequence of YearlySnapshot
        Full-horizon, chronologically ordered.
    market_linked_end : sequence of float
        End-of-year market-linked asset totals, one per snapshot.
    n_insolvent_years : int
        Years with an unfunded shortfall.
    """
    gross = np.array([s.gross_income for s in snapshots], dtype=float)
    cashflow = np.array([s.net_cashflow for s in snapshots], dtype=float)
    net_worth = np.array([s.net_worth for s in snapshots], dtype=float)

    total_gross = float(gross.sum())
    average_savings = float(np.maximum(cashflow, 0.0).sum() / total_gross) if total_gross > 0 else 0.0

    peak_idx = int(np.argmax(net_worth))
    min_idx = int(np.argmin(net_worth))

    income = retirement_income(config, snapshots, market_linked_end)
    risk = assess_risk(config, snapshots, average_savings, income, n_insolvent_years)

    return ProjectionSummary(
        debt_free_year=_first_year(snapshots, lambda s: s.total_debt <= 0.0),
        financial_independence_year=_first_year(snapshots, lambda s: s.fi_ratio >= 1.0),
        peak_net_worth=NetWorthPoint(snapshots[peak_idx].year, float(net_worth[peak_idx])),
        min_net_worth=NetWorthPoint(snapshots[min_idx].year, float(net_worth[min_idx])),
        total_lifetime_earnings=total_gross,
        total_lifetime_taxes=float(sum(s.taxes_paid for s in snapshots)),
        total_social_security=float(sum(s.social_security_income for s in snapshots)),
        average_savings_rate=average_savings,
        years_until_retirement=max(0, config.retirement_year),
        projected_retirement_income=income.projected_income,
        income_replacement_ratio=income.replacement_ratio,
        risk_score=risk.score,
        risk_components=dict(risk.components),
    )


def outcome_warnings(
    config: ProjectionConfig,
    snapshots: Sequence[YearlySnapshot],
    summary: ProjectionSummary,
    insolvencies: Sequence[InsolvencyWarning],
) -> List[str]:
    """Non-fatal notices about what the projection produced."""
    warnings: List[str] = []
    retirement_year = config.retirement_year

    if config.income_streams and summary.average_savings_rate < 0.10:
        warnings.append(
            f"Low savings rate ({summary.average_savings_rate:.1%}). "
            "Consider saving at least 15% of income."
        )

    # retirement outside the horizon is reported by data_prep.validators
    if 1 <= retirement_year < len(snapshots) and summary.income_replacement_ratio < 0.70:
        warnings.append(
            f"Projected retirement income replaces {summary.income_replacement_ratio:.0%} "
            "of pre-retirement income (70% is a common target)."
        )

    negative_retired = [
        s for s in snapshots if s.year >= retirement_year and s.net_cashflow < 0
    ]
    if len(negative_retired) > 3:
        warnings.append(
            f"Negative cashflow in {len(negative_retired)} retirement years; "
            "savings are being drawn down."
        )

    if config.social_security is None:
        warnings.append("No Social Security benefits configured; retirement income may be understated.")

    negative = [s for s in snapshots if s.net_worth < 0]
    if negative:
        warnings.append(
            f"Net worth is negative in {len(negative)} year(s), first in year {negative[0].year}."
        )

    warnings.extend(str(w) for w in insolvencies)
    return warnings
