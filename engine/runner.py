"""
Deterministic projection runner: one expected-value path through the yearly kernel.

The runner is a batch of one: the expected-value sampler supplies mean market return
and inflation (plus shocks) for every year, and ``advance_year`` is called once per
year. Identical configs give bit-identical snapshots and summaries.

Warnings gathered on the way:
  1. config plausibility (data_prep.validators)
  2. insolvency per year, from the kernel's unfunded shortfall
  3. outcome notices from the finished sequence (planning.summary)
"""

from __future__ import annotations

import time
from typing import Any, List, Mapping, Optional, Union

from loguru import logger

from core.config import ProjectionConfig, load_projection_config
from core.errors import InsolvencyWarning
from core.schema import ProjectionResult, YearlySnapshot
from data_prep.validators import validate_config
from distributions.sampler import EconomicSampler, ExpectedValueSampler
from economics.taxes import TaxFunction
from planning.summary import outcome_warnings, summarize

from .cashflow import PathState, ProjectionModel, advance_year


def run_deterministic(
    config: Union[ProjectionConfig, Mapping[str, Any]],
    *,
    tax_function: Optional[TaxFunction] = None,
    sampler: Optional[EconomicSampler] = None,
) -> ProjectionResult:
    """
    Project a single expected-value trajectory.

    Parameters
    ----------
    config : ProjectionConfig or mapping
        Raw mappings are validated first (InvalidConfiguration on failure).
    tax_function : TaxFunction, optional
        Defaults to progressive brackets for the configured country/filing status.
    sampler : EconomicSampler, optional
        Defaults to ExpectedValueSampler; only path 0 of its sample is used.

    Returns
    -------
    ProjectionResult with one snapshot per projection year
    """
    started = time.perf_counter()
    config = load_projection_config(config)
    logger.info(
        f"Deterministic projection: {config.projection_years} years, "
        f"age {config.current_age} -> retirement {config.retirement_age}"
    )

    model = ProjectionModel.from_config(config, tax_function=tax_function)
    sampler = sampler if sampler is not None else ExpectedValueSampler.from_config(config)
    paths = sampler.sample(n_paths=1, n_years=config.projection_years)

    state = PathState.initial(model, n_paths=1)
    snapshots: List[YearlySnapshot] = []
    market_linked_end: List[float] = []
    insolvencies: List[InsolvencyWarning] = []

    for year in range(config.projection_years):
        market_return, inflation = paths.year(year)
        state, outcome = advance_year(state, model, year, market_return[:1], inflation[:1])
        snapshot = outcome.snapshot(model)
        snapshots.append(snapshot)
        market_linked_end.append(float(outcome.market_linked_assets[0]))
        if outcome.insolvent[0]:
            warning = InsolvencyWarning(year=year, shortfall=snapshot.unfunded_shortfall)
            logger.warning(str(warning))
            insolvencies.append(warning)

    summary = summarize(
        config,
        snapshots,
        market_linked_end=market_linked_end,
        n_insolvent_years=len(insolvencies),
    )
    warnings = validate_config(config).warnings
    warnings += outcome_warnings(config, snapshots, summary, insolvencies)

    elapsed_ms = (time.perf_counter() - started) * 1000.0
    logger.info(
        f"Projection complete in {elapsed_ms:.1f} ms: final net worth "
        f"{snapshots[-1].net_worth:,.0f}, risk score {summary.risk_score:.0f}"
    )
    return ProjectionResult(
        config=config,
        yearly_snapshots=snapshots,
        summary=summary,
        warnings=warnings,
        execution_time_ms=elapsed_ms,
    )
