from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import pandas as pd

from .config import LifeEvent, ProjectionConfig

# Scalar snapshot columns, in display order. Breakdowns are exported separately.
SNAPSHOT_COLUMNS: Tuple[str, ...] = (
    "year",
    "calendar_year",
    "age",
    "gross_income",
    "social_security_income",
    "taxes_paid",
    "net_income",
    "total_expenses",
    "net_cashflow",
    "debt_service",
    "debt_interest",
    "asset_growth",
    "life_event_net_worth_impact",
    "unfunded_shortfall",
    "total_debt",
    "total_assets",
    "net_worth",
    "savings_rate",
    "fi_ratio",
    "inflation_index",
)

# Columns deflated by the inflation index when a real-dollar view is requested
MONETARY_COLUMNS: Tuple[str, ...] = SNAPSHOT_COLUMNS[3:17]

# Metrics the Monte Carlo engine can collect per path and year
TRACKED_METRICS: Tuple[str, ...] = (
    "net_worth",
    "total_assets",
    "total_debt",
    "net_cashflow",
    "gross_income",
    "taxes_paid",
    "social_security_income",
)


@dataclass(frozen=True)
class YearlySnapshot:
    """State of the household at the end of one simulated year (nominal dollars)."""
    year: int
    age: int
    calendar_year: Optional[int]

    gross_income: float
    social_security_income: float
    taxes_paid: float
    net_income: float
    total_expenses: float
    net_cashflow: float

    debt_service: float
    debt_interest: float
    asset_growth: float
    life_event_net_worth_impact: float
    unfunded_shortfall: float

    total_debt: float
    total_assets: float
    net_worth: float

    savings_rate: float
    fi_ratio: float
    inflation_index: float

    life_events_this_year: Tuple[LifeEvent, ...] = ()
    income_breakdown: Dict[str, float] = field(default_factory=dict)
    expense_breakdown: Dict[str, float] = field(default_factory=dict)
    asset_breakdown: Dict[str, float] = field(default_factory=dict)
    loan_breakdown: Dict[str, float] = field(default_factory=dict)

    def to_row(self) -> Dict[str, float]:
        return {col: getattr(self, col) for col in SNAPSHOT_COLUMNS}


@dataclass(frozen=True)
class NetWorthPoint:
    year: int
    amount: float


@dataclass(frozen=True)
class ProjectionSummary:
    debt_free_year: Optional[int]
    financial_independence_year: Optional[int]
    peak_net_worth: NetWorthPoint
    min_net_worth: NetWorthPoint
    total_lifetime_earnings: float
    total_lifetime_taxes: float
    total_social_security: float
    average_savings_rate: float
    years_until_retirement: int
    projected_retirement_income: float
    income_replacement_ratio: float
    risk_score: float
    risk_components: Dict[str, float] = field(default_factory=dict)


@dataclass
class ProjectionResult:
    config: ProjectionConfig
    yearly_snapshots: List[YearlySnapshot]
    summary: ProjectionSummary
    warnings: List[str] = field(default_factory=list)
    execution_time_ms: float = 0.0

    def to_dataframe(self, *, real: bool = False) -> pd.DataFrame:
        """
        One row per year. With ``real=True`` monetary columns are deflated to
        start-of-projection dollars using each year's inflation index.
        """
        df = pd.DataFrame([s.to_row() for s in self.yearly_snapshots], columns=list(SNAPSHOT_COLUMNS))
        if real and not df.empty:
            for col in MONETARY_COLUMNS:
                df[col] = df[col] / df["inflation_index"]
        return df

    def breakdown_frame(self, kind: str = "asset") -> pd.DataFrame:
        """Wide per-item table (one column per income/expense/asset/loan name)."""
        attr = f"{kind}_breakdown"
        rows = [{"year": s.year, **getattr(s, attr)} for s in self.yearly_snapshots]
        return pd.DataFrame(rows).fillna(0.0)


@dataclass(frozen=True)
class PercentileBand:
    """Distribution of one metric across all Monte Carlo paths for one year."""
    year: int
    age: int
    mean: float
    percentiles: Dict[str, float]

    @property
    def p10(self) -> float:
        return self.percentiles["p10"]

    @property
    def median(self) -> float:
        return self.percentiles["p50"]

    @property
    def p90(self) -> float:
        return self.percentiles["p90"]
