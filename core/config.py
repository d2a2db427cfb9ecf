"""
Projection configuration.

Input contracts are pydantic models: frozen, camelCase aliases on the wire,
snake_case in Python. Engine run settings stay a plain frozen dataclass.
Market distribution parameters live on ``MarketAssumptions`` and are consumed by
distributions/sampler.py.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel, to_snake

from .errors import InvalidConfiguration

Country = Literal["US", "MX"]
FilingStatus = Literal["single", "married_joint"]
AssetType = Literal["cash", "taxable", "tax_deferred", "tax_free", "real_estate", "other"]
LoanType = Literal["mortgage", "auto", "student", "credit_card", "personal", "other"]
LifeEventType = Literal[
    "retirement",
    "college",
    "home_purchase",
    "car_purchase",
    "wedding",
    "child_birth",
    "inheritance",
    "business_sale",
    "custom",
]
ShockKind = Literal["income", "expense", "market_return", "market_volatility", "inflation"]
ReturnShape = Literal["normal", "lognormal", "student_t"]

# Top-level numeric fields a WhatIfScenario may shift relative to the baseline
ADJUSTABLE_FIELDS = (
    "projection_years",
    "inflation_rate",
    "current_age",
    "retirement_age",
    "life_expectancy",
)


class _ConfigModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


def _check_window(start: Optional[int], end: Optional[int], name: str) -> None:
    if start is not None and end is not None and end < start:
        raise ValueError(f"{name}: end_year ({end}) is before start_year ({start})")


class IncomeStream(_ConfigModel):
    name: str
    annual_amount: float = Field(..., ge=0)
    growth_rate: float = Field(0.0, ge=-1.0)
    start_year: Optional[int] = Field(None, ge=0)
    end_year: Optional[int] = Field(None, ge=0)
    is_taxable: bool = True
    # employment income ends the year before retirement
    stops_at_retirement: bool = False

    @model_validator(mode="after")
    def _window(self) -> "IncomeStream":
        _check_window(self.start_year, self.end_year, self.name)
        return self


class ExpenseCategory(_ConfigModel):
    name: str
    annual_amount: float = Field(..., ge=0)
    growth_rate: float = Field(0.0, ge=-1.0)
    is_essential: bool = False
    start_year: Optional[int] = Field(None, ge=0)
    end_year: Optional[int] = Field(None, ge=0)

    @model_validator(mode="after")
    def _window(self) -> "ExpenseCategory":
        _check_window(self.start_year, self.end_year, self.name)
        return self


class LoanConfig(_ConfigModel):
    name: str
    balance: float = Field(..., ge=0)
    interest_rate: float = Field(0.0, ge=0, le=1.0)
    monthly_payment: Optional[float] = Field(None, ge=0)
    remaining_term_months: Optional[int] = Field(None, ge=1)
    type: LoanType = "other"

    @model_validator(mode="after")
    def _payment_terms(self) -> "LoanConfig":
        if self.monthly_payment is None and self.remaining_term_months is None:
            raise ValueError(
                f"loan '{self.name}' needs monthly_payment or remaining_term_months"
            )
        return self


class AssetConfig(_ConfigModel):
    name: str
    current_value: float = Field(..., ge=0)
    type: AssetType = "taxable"
    expected_return: Optional[float] = Field(None, ge=-1.0)


class SocialSecurityConfig(_ConfigModel):
    country: Country = "US"
    monthly_benefit: float = Field(..., ge=0)
    claim_year: Optional[int] = Field(None, ge=0)
    claim_age: Optional[int] = Field(None, ge=62, le=70)
    spouse_monthly_benefit: Optional[float] = Field(None, ge=0)
    spouse_claim_year: Optional[int] = Field(None, ge=0)
    # None: COLA tracks the simulated inflation path
    cola_rate: Optional[float] = Field(None, ge=-0.1, le=0.5)

    @model_validator(mode="after")
    def _claim_timing(self) -> "SocialSecurityConfig":
        if self.claim_year is None and self.claim_age is None:
            raise ValueError("social security needs claim_year or claim_age")
        return self


class TaxConfig(_ConfigModel):
    country: Country = "US"
    filing_status: FilingStatus = "single"
    state: Optional[str] = None
    state_tax_rate: float = Field(0.0, ge=0, le=1.0)
    annual_deductions: float = Field(0.0, ge=0)
    social_security_taxable_share: Optional[float] = Field(None, ge=0, le=1.0)

    @property
    def taxable_social_security_share(self) -> float:
        if self.social_security_taxable_share is not None:
            return self.social_security_taxable_share
        return 0.85 if self.country == "US" else 0.0


class LifeEvent(_ConfigModel):
    """
    A one-off or recurring financial shock.

    Sign convention: negative amounts are outflows, positive amounts are inflows.
    ``impact_duration == 0`` keeps a recurring impact running to the end of the
    projection.
    """
    type: LifeEventType = "custom"
    name: str
    year: int = Field(..., ge=0)
    amount: float = 0.0
    annual_impact: Optional[float] = None
    impact_duration: Optional[int] = Field(None, ge=0)
    inflation_adjusted: bool = False

    @model_validator(mode="after")
    def _recurring_shape(self) -> "LifeEvent":
        if self.annual_impact is not None and self.impact_duration is None:
            raise ValueError(
                f"life event '{self.name}': annual_impact requires impact_duration"
            )
        return self

    @property
    def is_recurring(self) -> bool:
        return self.impact_duration is not None


class Shock(_ConfigModel):
    """
    Time-boxed stress adjustment over ``[start_year, start_year + duration_years)``.

    income:            income streams scaled by (1 - magnitude)
    expense:           expenses scaled by (1 + magnitude)
    market_return:     additive shift on the annual market return
    market_volatility: additive increase of the return volatility
    inflation:         additive shift on annual inflation
    """
    kind: ShockKind
    start_year: float = Field(0.0, ge=0)
    duration_years: float = Field(1.0, gt=0)
    magnitude: float


class MarketAssumptions(_ConfigModel):
    expected_return: float = Field(0.07, ge=-0.5, le=0.5)
    return_volatility: float = Field(0.15, ge=0, le=1.0)
    inflation_mean: Optional[float] = Field(None, ge=-0.1, le=0.5)
    inflation_volatility: float = Field(0.01, ge=0, le=0.5)
    return_inflation_correlation: float = Field(0.0, ge=-1.0, le=1.0)
    distribution: ReturnShape = "normal"
    degrees_of_freedom: float = Field(5.0, gt=2.0)
    min_return: float = Field(-0.95, ge=-1.0)
    max_return: float = Field(1.5, gt=0)
    cash_return: float = 0.02
    real_estate_return: float = 0.03
    other_return: float = 0.04
    withdrawal_rate: float = Field(0.04, gt=0, le=0.2)

    @model_validator(mode="after")
    def _bounds(self) -> "MarketAssumptions":
        if not self.min_return < self.expected_return < self.max_return:
            raise ValueError("expected_return must lie strictly inside [min_return, max_return]")
        return self


class ProjectionConfig(_ConfigModel):
    projection_years: int = Field(..., gt=0, le=100)
    inflation_rate: float = Field(0.03, ge=0, le=0.5)
    current_age: int = Field(..., ge=0, le=120)
    retirement_age: int = Field(..., ge=0, le=120)
    life_expectancy: int = Field(90, ge=0, le=130)
    start_year: Optional[int] = None

    income_streams: List[IncomeStream] = Field(default_factory=list)
    expenses: List[ExpenseCategory] = Field(default_factory=list)
    loans: List[LoanConfig] = Field(default_factory=list)
    assets: List[AssetConfig] = Field(default_factory=list)
    social_security: Optional[SocialSecurityConfig] = None
    taxes: Optional[TaxConfig] = None
    life_events: List[LifeEvent] = Field(default_factory=list)
    shocks: List[Shock] = Field(default_factory=list)
    market: MarketAssumptions = Field(default_factory=MarketAssumptions)

    include_accounts: bool = False
    include_recurring: bool = False

    @model_validator(mode="after")
    def _consistency(self) -> "ProjectionConfig":
        if self.retirement_age < self.current_age:
            raise ValueError(
                f"retirement_age ({self.retirement_age}) is below current_age ({self.current_age})"
            )
        for label, items in (("asset", self.assets), ("loan", self.loans)):
            names = [item.name for item in items]
            dupes = sorted({n for n in names if names.count(n) > 1})
            if dupes:
                raise ValueError(f"duplicate {label} names: {dupes}")
        ss = self.social_security
        if ss is not None and ss.country == "US" and ss.claim_age is None:
            age = self.current_age + ss.claim_year
            if age < 62:
                raise ValueError(
                    f"social security claim_year {ss.claim_year} is age {age}; "
                    "US benefits cannot be claimed before 62"
                )
        return self

    @property
    def retirement_year(self) -> int:
        """Simulation year index of the first retirement year."""
        return self.retirement_age - self.current_age

    @property
    def inflation_mean(self) -> float:
        if self.market.inflation_mean is not None:
            return self.market.inflation_mean
        return self.inflation_rate


class ConfigOverrides(_ConfigModel):
    """Sparse ProjectionConfig: only explicitly set fields take part in a merge."""
    projection_years: Optional[int] = Field(None, gt=0, le=100)
    inflation_rate: Optional[float] = Field(None, ge=0, le=0.5)
    current_age: Optional[int] = Field(None, ge=0, le=120)
    retirement_age: Optional[int] = Field(None, ge=0, le=120)
    life_expectancy: Optional[int] = Field(None, ge=0, le=130)
    start_year: Optional[int] = None
    income_streams: Optional[List[IncomeStream]] = None
    expenses: Optional[List[ExpenseCategory]] = None
    loans: Optional[List[LoanConfig]] = None
    assets: Optional[List[AssetConfig]] = None
    social_security: Optional[SocialSecurityConfig] = None
    taxes: Optional[TaxConfig] = None
    life_events: Optional[List[LifeEvent]] = None
    shocks: Optional[List[Shock]] = None
    market: Optional[MarketAssumptions] = None
    include_accounts: Optional[bool] = None
    include_recurring: Optional[bool] = None

    def as_update(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class WhatIfScenario(_ConfigModel):
    name: str
    description: str = ""
    category: Literal["plan", "stress"] = "plan"
    severity: Optional[Literal["mild", "moderate", "severe"]] = None
    modifications: ConfigOverrides = Field(default_factory=ConfigOverrides)
    adjustments: Dict[str, float] = Field(default_factory=dict)
    added_life_events: List[LifeEvent] = Field(default_factory=list)
    added_shocks: List[Shock] = Field(default_factory=list)

    @field_validator("adjustments")
    @classmethod
    def _known_fields(cls, value: Dict[str, float]) -> Dict[str, float]:
        normalized = {to_snake(k): v for k, v in value.items()}
        unknown = sorted(set(normalized) - set(ADJUSTABLE_FIELDS))
        if unknown:
            raise ValueError(f"cannot adjust {unknown}; adjustable: {list(ADJUSTABLE_FIELDS)}")
        return normalized


class GoalWhatIf(_ConfigModel):
    monthly_contribution: Optional[float] = Field(None, ge=0)
    target_amount: Optional[float] = Field(None, gt=0)
    target_date: Optional[date] = None
    expected_return: Optional[float] = Field(None, ge=-0.5, le=0.5)
    volatility: Optional[float] = Field(None, ge=0, le=1.0)


def load_projection_config(
    data: Union[ProjectionConfig, Mapping[str, Any]],
) -> ProjectionConfig:
    """Validate raw input into a ProjectionConfig, raising InvalidConfiguration."""
    if isinstance(data, ProjectionConfig):
        return data
    try:
        return ProjectionConfig.model_validate(dict(data))
    except ValidationError as exc:
        raise InvalidConfiguration.from_validation_error(exc) from exc


@dataclass(frozen=True)
class SimulationSettings:
    iterations: int = 10_000
    seed: int = 42
    batch_size: int = 1_000
    max_workers: int = 1

    # runtime ceiling: iterations * projection_years, and wall clock
    max_work_units: int = 5_000_000
    timeout_seconds: Optional[float] = None

    tracked_metrics: Tuple[str, ...] = ("net_worth", "total_assets")
    percentiles: Tuple[float, ...] = (0.10, 0.25, 0.50, 0.75, 0.90)

    def __post_init__(self) -> None:
        if not 100 <= self.iterations <= 100_000:
            raise InvalidConfiguration(
                "iterations must be between 100 and 100,000",
                [{"field": "iterations", "message": f"got {self.iterations}"}],
            )
        if self.batch_size < 1 or self.max_workers < 1:
            raise InvalidConfiguration(
                "batch_size and max_workers must be positive",
                [{"field": "batch_size/max_workers",
                  "message": f"got {self.batch_size}/{self.max_workers}"}],
            )
        missing = [p for p in (0.10, 0.50, 0.90) if p not in self.percentiles]
        if missing:
            raise InvalidConfiguration(
                "percentiles must include 0.10, 0.50 and 0.90",
                [{"field": "percentiles", "message": f"missing {missing}"}],
            )
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise InvalidConfiguration(
                "timeout_seconds must be positive",
                [{"field": "timeout_seconds", "message": f"got {self.timeout_seconds}"}],
            )
