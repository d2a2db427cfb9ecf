"""
What-if comparator: re-run the projection under modified configs.

Merge order for one scenario, on a fresh copy of the baseline:
  1. modifications: explicitly set fields replace the baseline's (lists and nested
     models are replaced wholesale, never merged element-wise)
  2. adjustments:   numeric deltas on top-level fields (e.g. retirement_age: -5)
  3. added_life_events / added_shocks: appended to whatever step 1 left
  4. re-validation of the merged config

The baseline config is never mutated; each scenario starts from the same copy.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

import pandas as pd
from loguru import logger

from core.config import (
    ProjectionConfig,
    SimulationSettings,
    WhatIfScenario,
    load_projection_config,
)
from core.schema import ProjectionResult
from economics.taxes import TaxFunction

from .montecarlo import SimulationResult, run_monte_carlo
from .runner import run_deterministic

RunResult = Union[ProjectionResult, SimulationResult]


def apply_scenario(base: ProjectionConfig, scenario: WhatIfScenario) -> ProjectionConfig:
    """
    Build the config a scenario describes.

    Raises
    ------
    InvalidConfiguration
        The merged config fails validation (e.g. retirement before current age).
    """
    data: Dict[str, Any] = base.model_dump()

    # --- 1. modifications ---
    data.update(scenario.modifications.as_update())

    # --- 2. adjustments ---
    for name, delta in scenario.adjustments.items():
        current = data[name]
        data[name] = int(round(current + delta)) if isinstance(current, int) else current + delta

    # --- 3. appended events / shocks ---
    if scenario.added_life_events:
        data["life_events"] = list(data["life_events"]) + [
            e.model_dump() for e in scenario.added_life_events
        ]
    if scenario.added_shocks:
        data["shocks"] = list(data["shocks"]) + [s.model_dump() for s in scenario.added_shocks]

    # --- 4. re-validate ---
    return load_projection_config(data)


@dataclass
class ScenarioOutcome:
    scenario: WhatIfScenario
    result: RunResult


@dataclass
class ScenarioComparison:
    """Baseline and per-scenario results, side by side."""
    baseline: RunResult
    scenarios: List[ScenarioOutcome] = field(default_factory=list)

    def get(self, name: str) -> ScenarioOutcome:
        for outcome in self.scenarios:
            if outcome.scenario.name == name:
                return outcome
        raise KeyError(
            f"Unknown scenario '{name}'. Available: {[o.scenario.name for o in self.scenarios]}"
        )

    def to_dataframe(self) -> pd.DataFrame:
        """Headline figures per run (absolute values; no deltas are computed)."""
        rows = [_headline("Baseline", self.baseline)]
        rows += [_headline(o.scenario.name, o.result) for o in self.scenarios]
        return pd.DataFrame(rows)


def _headline(name: str, result: RunResult) -> Dict[str, Any]:
    if isinstance(result, SimulationResult):
        return {
            "Scenario": name,
            "Median Final Net Worth": float(pd.Series(result.final_net_worth).median()),
            "Success Probability": result.success_probability,
        }
    final = result.yearly_snapshots[-1]
    return {
        "Scenario": name,
        "Final Net Worth": final.net_worth,
        "Peak Net Worth": result.summary.peak_net_worth.amount,
        "FI Year": result.summary.financial_independence_year,
        "Replacement Ratio": result.summary.income_replacement_ratio,
        "Risk Score": result.summary.risk_score,
    }


def compare_scenarios(
    base: Union[ProjectionConfig, Dict[str, Any]],
    scenarios: Sequence[WhatIfScenario],
    settings: Optional[SimulationSettings] = None,
    *,
    tax_function: Optional[TaxFunction] = None,
) -> ScenarioComparison:
    """
    Run the baseline and every scenario.

    Deterministic by default; with ``settings`` every run is a Monte Carlo run
    using the same seed, so differences come from the configs alone.
    """
    base = load_projection_config(base)

    def run(config: ProjectionConfig) -> RunResult:
        if settings is None:
            return run_deterministic(config, tax_function=tax_function)
        return run_monte_carlo(config, settings, tax_function=tax_function)

    logger.info(f"Comparing {len(scenarios)} scenario(s) against baseline")
    comparison = ScenarioComparison(baseline=run(base))
    for scenario in scenarios:
        logger.debug(f"Scenario '{scenario.name}'")
        comparison.scenarios.append(
            ScenarioOutcome(scenario=scenario, result=run(apply_scenario(base, scenario)))
        )
    return comparison
