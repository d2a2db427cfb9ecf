"""
Predefined what-if scenarios.

Plan templates change a decision or an assumption:
  retire_early, retire_later, higher_inflation, lower_inflation,
  lower_returns, aggressive_savings

Stress templates apply time-boxed shocks from the first projection year:

  | template           | shocks                                                  |
  |--------------------|---------------------------------------------------------|
  | job_loss           | income -100% for 6 months                               |
  | market_crash       | return -30% (1y), volatility +25% (2y), return -10% (2y) |
  | recession          | income -20% (1.5y), return -8% (2y), volatility +15% (2y) |
  | medical_emergency  | one-off $50,000 expense                                 |
  | high_inflation     | inflation +3%, return -4%, volatility +8% (5y)          |
  | disability         | income -60% (3y), expenses +20% (3y)                    |
  | market_correction  | return -15% (1y), volatility +10% (1y)                  |
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

from core.config import ConfigOverrides, LifeEvent, ProjectionConfig, Shock, WhatIfScenario
from distributions.benchmarks import regime_assumptions

TemplateBuilder = Callable[[Optional[ProjectionConfig]], WhatIfScenario]

# horizon used for open-ended shocks when no baseline is known
_DEFAULT_HORIZON = 100


def _inflation_overrides(rate: float, base: Optional[ProjectionConfig]) -> ConfigOverrides:
    # an explicit market inflation mean would shadow inflation_rate
    if base is not None and base.market.inflation_mean is not None:
        return ConfigOverrides(
            inflation_rate=rate,
            market=base.market.model_copy(update={"inflation_mean": rate}),
        )
    return ConfigOverrides(inflation_rate=rate)


# --- plan ---

def retire_early(base: Optional[ProjectionConfig] = None) -> WhatIfScenario:
    return WhatIfScenario(
        name="Retire 5 years early",
        description="Stop working five years before the planned retirement age",
        category="plan",
        adjustments={"retirement_age": -5},
    )


def retire_later(base: Optional[ProjectionConfig] = None) -> WhatIfScenario:
    return WhatIfScenario(
        name="Retire 5 years later",
        description="Keep working five more years before retiring",
        category="plan",
        adjustments={"retirement_age": 5},
    )


def higher_inflation(base: Optional[ProjectionConfig] = None) -> WhatIfScenario:
    return WhatIfScenario(
        name="Higher inflation (4%)",
        description="Long-run inflation of 4% instead of the baseline assumption",
        category="plan",
        modifications=_inflation_overrides(0.04, base),
    )


def lower_inflation(base: Optional[ProjectionConfig] = None) -> WhatIfScenario:
    return WhatIfScenario(
        name="Lower inflation (2%)",
        description="Long-run inflation of 2% instead of the baseline assumption",
        category="plan",
        modifications=_inflation_overrides(0.02, base),
    )


def lower_returns(base: Optional[ProjectionConfig] = None) -> WhatIfScenario:
    market = regime_assumptions("conservative", base.market if base is not None else None)
    if base is not None:
        # keep the baseline's inflation assumption
        market = market.model_copy(update={
            "inflation_mean": base.market.inflation_mean,
            "inflation_volatility": base.market.inflation_volatility,
        })
    return WhatIfScenario(
        name="Lower market returns (5%)",
        description="Conservative market: 5% expected return, 10% volatility",
        category="plan",
        modifications=ConfigOverrides(market=market),
    )


def aggressive_savings(base: Optional[ProjectionConfig] = None) -> WhatIfScenario:
    horizon = base.projection_years if base is not None else _DEFAULT_HORIZON
    return WhatIfScenario(
        name="Aggressive savings",
        description="Cut spending by 20% across the whole projection",
        category="plan",
        added_shocks=[Shock(kind="expense", start_year=0, duration_years=horizon, magnitude=-0.20)],
    )


# --- stress ---

def job_loss(base: Optional[ProjectionConfig] = None) -> WhatIfScenario:
    return WhatIfScenario(
        name="Job Loss (6 months)",
        description="Complete loss of income for 6 months, simulating unemployment",
        category="stress",
        severity="severe",
        added_shocks=[Shock(kind="income", start_year=0, duration_years=0.5, magnitude=1.0)],
    )


def market_crash(base: Optional[ProjectionConfig] = None) -> WhatIfScenario:
    return WhatIfScenario(
        name="Market Crash (-30%)",
        description="Severe market downturn similar to the 2008 financial crisis",
        category="stress",
        severity="severe",
        added_shocks=[
            Shock(kind="market_return", start_year=0, duration_years=1, magnitude=-0.30),
            Shock(kind="market_volatility", start_year=0, duration_years=2, magnitude=0.25),
            Shock(kind="market_return", start_year=1, duration_years=2, magnitude=-0.10),
        ],
    )


def recession(base: Optional[ProjectionConfig] = None) -> WhatIfScenario:
    return WhatIfScenario(
        name="Economic Recession",
        description="Economic downturn with income reduction and lower returns",
        category="stress",
        severity="moderate",
        added_shocks=[
            Shock(kind="income", start_year=0, duration_years=1.5, magnitude=0.20),
            Shock(kind="market_return", start_year=0, duration_years=2, magnitude=-0.08),
            Shock(kind="market_volatility", start_year=0, duration_years=2, magnitude=0.15),
        ],
    )


def medical_emergency(base: Optional[ProjectionConfig] = None) -> WhatIfScenario:
    return WhatIfScenario(
        name="Medical Emergency ($50k)",
        description="Unexpected major medical expense not covered by insurance",
        category="stress",
        severity="moderate",
        added_life_events=[
            LifeEvent(type="custom", name="Medical emergency", year=0, amount=-50_000.0)
        ],
    )


def high_inflation(base: Optional[ProjectionConfig] = None) -> WhatIfScenario:
    return WhatIfScenario(
        name="High Inflation (5 years)",
        description="Sustained period of high inflation reducing real returns",
        category="stress",
        severity="moderate",
        added_shocks=[
            Shock(kind="inflation", start_year=0, duration_years=5, magnitude=0.03),
            Shock(kind="market_return", start_year=0, duration_years=5, magnitude=-0.04),
            Shock(kind="market_volatility", start_year=0, duration_years=5, magnitude=0.08),
        ],
    )


def disability(base: Optional[ProjectionConfig] = None) -> WhatIfScenario:
    return WhatIfScenario(
        name="Long-term Disability",
        description="Extended inability to work with 40% income replacement",
        category="stress",
        severity="severe",
        added_shocks=[
            Shock(kind="income", start_year=0, duration_years=3, magnitude=0.60),
            Shock(kind="expense", start_year=0, duration_years=3, magnitude=0.20),
        ],
    )


def market_correction(base: Optional[ProjectionConfig] = None) -> WhatIfScenario:
    return WhatIfScenario(
        name="Market Correction (-15%)",
        description="Mild market downturn with quick recovery",
        category="stress",
        severity="mild",
        added_shocks=[
            Shock(kind="market_return", start_year=0, duration_years=1, magnitude=-0.15),
            Shock(kind="market_volatility", start_year=0, duration_years=1, magnitude=0.10),
        ],
    )


PLAN_TEMPLATES: Dict[str, TemplateBuilder] = {
    "retire_early": retire_early,
    "retire_later": retire_later,
    "higher_inflation": higher_inflation,
    "lower_inflation": lower_inflation,
    "lower_returns": lower_returns,
    "aggressive_savings": aggressive_savings,
}

STRESS_TEMPLATES: Dict[str, TemplateBuilder] = {
    "job_loss": job_loss,
    "market_crash": market_crash,
    "recession": recession,
    "medical_emergency": medical_emergency,
    "high_inflation": high_inflation,
    "disability": disability,
    "market_correction": market_correction,
}

SCENARIO_TEMPLATES: Dict[str, TemplateBuilder] = {**PLAN_TEMPLATES, **STRESS_TEMPLATES}


def get_template(name: str, base: Optional[ProjectionConfig] = None) -> WhatIfScenario:
    """
    Build one named template, tailored to ``base`` where it matters.

    Parameters
    ----------
    name : str
        Key of SCENARIO_TEMPLATES, e.g. "retire_early" or "market_crash".
    base : ProjectionConfig, optional
        Baseline; used for the horizon of open-ended shocks and to keep
        market assumptions the template does not change.
    """
    if name not in SCENARIO_TEMPLATES:
        raise KeyError(
            f"Unknown scenario template '{name}'. "
            f"Available: {list(SCENARIO_TEMPLATES.keys())}"
        )
    return SCENARIO_TEMPLATES[name](base)


def scenario_templates(
    base: Optional[ProjectionConfig] = None,
    *,
    category: Optional[str] = None,
) -> List[WhatIfScenario]:
    """All templates, optionally only "plan" or "stress"."""
    registry = {
        None: SCENARIO_TEMPLATES,
        "plan": PLAN_TEMPLATES,
        "stress": STRESS_TEMPLATES,
    }
    if category not in registry:
        raise KeyError(f"Unknown template category '{category}'. Available: ['plan', 'stress']")
    return [builder(base) for builder in registry[category].values()]
