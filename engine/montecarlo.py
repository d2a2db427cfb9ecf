"""
Monte Carlo simulation engine: many stochastic paths through the yearly kernel.

Flow:
  1. Check the work budget (iterations x years) before any work starts
  2. Split iterations into batches; batch k gets child k of SeedSequence(seed)
  3. Each batch: sample (return, inflation), run ``advance_year`` for every year,
     collect tracked metrics as (batch_size, years) arrays
  4. Batches run inline (max_workers=1) or in a ProcessPoolExecutor; results are
     reassembled in batch order, so output does not depend on the worker count
  5. Aggregate per-year percentile bands (planning.aggregator)

The deadline and an optional ``threading.Event`` are checked between batches.
Exceeding either raises ComputationTimeout; partial results are discarded.
"""

from __future__ import annotations

import math
import time
from concurrent.futures import FIRST_COMPLETED, ProcessPoolExecutor, wait
from dataclasses import dataclass, field
from threading import Event
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from loguru import logger

from core.config import (
    AssetConfig,
    ExpenseCategory,
    MarketAssumptions,
    ProjectionConfig,
    SimulationSettings,
    load_projection_config,
)
from core.errors import ComputationTimeout, InvalidConfiguration
from core.schema import TRACKED_METRICS, PercentileBand
from distributions.sampler import MonteCarloSampler
from economics.taxes import TaxFunction
from planning.aggregator import bands_to_dataframe, percentile_bands, summarize_distribution

from .cashflow import PathState, ProjectionModel, advance_year

NOISY_ITERATIONS = 1_000


@dataclass
class BatchResult:
    """Output of one batch of paths."""
    index: int
    metrics: Dict[str, np.ndarray]   # metric -> (batch_size, years)
    insolvent: np.ndarray            # (batch_size,) bool, insolvent in any year
    first_insolvent_year: np.ndarray # (batch_size,) int, -1 when never insolvent


@dataclass
class SimulationResult:
    """
    Distribution of outcomes across Monte Carlo paths.

    Usage:
        result = run_monte_carlo(config, SimulationSettings(iterations=5000))
        result.success_probability          -> share of paths never insolvent
        result.timelines["net_worth"]       -> [PercentileBand per year]
        result.probability_of_reaching(1e6, year=20)
        result.summary()                    -> distribution table
    """
    config: ProjectionConfig
    iterations: int
    seed: int
    timelines: Dict[str, List[PercentileBand]]
    final_net_worth: np.ndarray
    net_worth_paths: np.ndarray
    insolvent_paths: np.ndarray
    first_insolvent_year: np.ndarray
    execution_time_ms: float = 0.0
    warnings: List[str] = field(default_factory=list)

    @property
    def success_probability(self) -> float:
        return float(1.0 - self.insolvent_paths.mean())

    @property
    def depletion_probability(self) -> float:
        return 1.0 - self.success_probability

    def probability_of_reaching(self, amount: float, year: Optional[int] = None) -> float:
        """Share of paths whose net worth is at least ``amount`` in ``year`` (default: last)."""
        year = self.config.projection_years - 1 if year is None else year
        if not 0 <= year < self.config.projection_years:
            raise IndexError(f"year {year} outside 0..{self.config.projection_years - 1}")
        return float((self.net_worth_paths[:, year] >= amount).mean())

    def timeline_frame(self, metric: str = "net_worth") -> pd.DataFrame:
        if metric not in self.timelines:
            raise KeyError(f"Metric '{metric}' not tracked. Available: {list(self.timelines)}")
        return bands_to_dataframe(self.timelines[metric])

    def summary(self) -> pd.DataFrame:
        depleted = self.first_insolvent_year[self.first_insolvent_year >= 0]
        table = summarize_distribution({
            "Final Net Worth": self.final_net_worth,
            "Years Until Depletion": depleted.astype(float),
        })
        table["Success Probability"] = self.success_probability
        return table


def _collected_metrics(settings: SimulationSettings) -> Tuple[str, ...]:
    unknown = [m for m in settings.tracked_metrics if m not in TRACKED_METRICS]
    if unknown:
        raise InvalidConfiguration(
            f"Unknown tracked metrics {unknown}. Available: {list(TRACKED_METRICS)}",
            [{"field": "tracked_metrics", "message": f"unknown {unknown}"}],
        )
    metrics = list(settings.tracked_metrics)
    if "net_worth" not in metrics:
        metrics.append("net_worth")
    return tuple(metrics)


def simulate_batch(
    model: ProjectionModel,
    seed: np.random.SeedSequence,
    n_paths: int,
    metrics: Sequence[str],
    index: int = 0,
) -> BatchResult:
    """Run one batch of ``n_paths`` through every projection year."""
    config = model.config
    years = config.projection_years
    paths = MonteCarloSampler.from_config(config, seed=seed).sample(n_paths, years)

    state = PathState.initial(model, n_paths)
    collected = {m: np.zeros((n_paths, years), dtype=float) for m in metrics}
    insolvent = np.zeros(n_paths, dtype=bool)
    first_insolvent = np.full(n_paths, -1, dtype=int)

    for year in range(years):
        market_return, inflation = paths.year(year)
        state, outcome = advance_year(state, model, year, market_return, inflation)
        for m in metrics:
            collected[m][:, year] = outcome.metric(m)
        newly = outcome.insolvent & ~insolvent
        first_insolvent[newly] = year
        insolvent |= outcome.insolvent

    return BatchResult(index=index, metrics=collected, insolvent=insolvent,
                       first_insolvent_year=first_insolvent)


def _batch_sizes(iterations: int, batch_size: int) -> List[int]:
    n_batches = math.ceil(iterations / batch_size)
    sizes = [batch_size] * n_batches
    sizes[-1] = iterations - batch_size * (n_batches - 1)
    return sizes


def _check_interrupt(deadline: Optional[float], cancel_event: Optional[Event], done: int) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise ComputationTimeout("Simulation cancelled", completed_iterations=done)
    if deadline is not None and time.monotonic() > deadline:
        raise ComputationTimeout("Simulation exceeded its time limit", completed_iterations=done)


def _run_inline(model, seeds, sizes, metrics, deadline, cancel_event) -> List[BatchResult]:
    results = []
    done = 0
    for k, (seed, size) in enumerate(zip(seeds, sizes)):
        _check_interrupt(deadline, cancel_event, done)
        results.append(simulate_batch(model, seed, size, metrics, index=k))
        done += size
        logger.debug(f"Batch {k + 1}/{len(sizes)} done ({done} paths)")
    return results


def _run_pool(model, seeds, sizes, metrics, deadline, cancel_event, max_workers) -> List[BatchResult]:
    executor = ProcessPoolExecutor(max_workers=max_workers)
    pending = {
        executor.submit(simulate_batch, model, seed, size, metrics, k)
        for k, (seed, size) in enumerate(zip(seeds, sizes))
    }
    results = []
    done = 0
    try:
        while pending:
            _check_interrupt(deadline, cancel_event, done)
            remaining = None if deadline is None else max(deadline - time.monotonic(), 0.0)
            # short waits so a cancel request is noticed while batches are in flight
            wait_for = 0.5 if remaining is None else min(remaining, 0.5)
            finished, pending = wait(pending, timeout=wait_for, return_when=FIRST_COMPLETED)
            for future in finished:
                batch = future.result()
                results.append(batch)
                done += len(batch.insolvent)
                logger.debug(f"Batch {batch.index + 1}/{len(sizes)} done ({done} paths)")
    except BaseException:
        executor.shutdown(wait=False, cancel_futures=True)
        raise
    executor.shutdown(wait=True)
    return sorted(results, key=lambda b: b.index)


def run_monte_carlo(
    config: Union[ProjectionConfig, Mapping[str, Any]],
    settings: Optional[SimulationSettings] = None,
    *,
    cancel_event: Optional[Event] = None,
    tax_function: Optional[TaxFunction] = None,
) -> SimulationResult:
    """
    Simulate ``settings.iterations`` stochastic paths of the projection.

    Parameters
    ----------
    config : ProjectionConfig or mapping
    settings : SimulationSettings, optional
        Defaults to 10,000 iterations, seed 42, inline execution.
    cancel_event : threading.Event, optional
        Setting it aborts the run at the next batch boundary.
    tax_function : TaxFunction, optional

    Raises
    ------
    InvalidConfiguration
        Invalid config or unknown tracked metric.
    ComputationTimeout
        Work budget exceeded, deadline passed, or cancelled.
    """
    started = time.perf_counter()
    config = load_projection_config(config)
    settings = settings if settings is not None else SimulationSettings()
    metrics = _collected_metrics(settings)

    work = settings.iterations * config.projection_years
    if work > settings.max_work_units:
        raise ComputationTimeout(
            f"Simulation needs {work:,} path-years, budget is {settings.max_work_units:,}"
        )

    warnings: List[str] = []
    if settings.iterations < NOISY_ITERATIONS:
        message = (
            f"Only {settings.iterations} iterations; tail percentiles will be noisy "
            f"(use at least {NOISY_ITERATIONS:,})"
        )
        logger.warning(message)
        warnings.append(message)

    deadline = (
        time.monotonic() + settings.timeout_seconds
        if settings.timeout_seconds is not None else None
    )
    sizes = _batch_sizes(settings.iterations, settings.batch_size)
    seeds = np.random.SeedSequence(settings.seed).spawn(len(sizes))
    model = ProjectionModel.from_config(config, tax_function=tax_function)

    logger.info(
        f"Monte Carlo: {settings.iterations:,} paths x {config.projection_years} years, "
        f"{len(sizes)} batches, {settings.max_workers} worker(s), seed {settings.seed}"
    )
    if settings.max_workers > 1 and len(sizes) > 1:
        batches = _run_pool(model, seeds, sizes, metrics, deadline, cancel_event,
                            settings.max_workers)
    else:
        batches = _run_inline(model, seeds, sizes, metrics, deadline, cancel_event)

    paths = {m: np.vstack([b.metrics[m] for b in batches]) for m in metrics}
    insolvent = np.concatenate([b.insolvent for b in batches])
    first_insolvent = np.concatenate([b.first_insolvent_year for b in batches])

    timelines = {
        m: percentile_bands(paths[m], percentiles=settings.percentiles,
                            start_age=config.current_age)
        for m in settings.tracked_metrics
    }

    elapsed_ms = (time.perf_counter() - started) * 1000.0
    result = SimulationResult(
        config=config,
        iterations=settings.iterations,
        seed=settings.seed,
        timelines=timelines,
        final_net_worth=paths["net_worth"][:, -1].copy(),
        net_worth_paths=paths["net_worth"],
        insolvent_paths=insolvent,
        first_insolvent_year=first_insolvent,
        execution_time_ms=elapsed_ms,
        warnings=warnings,
    )
    logger.info(
        f"Monte Carlo complete in {elapsed_ms:.0f} ms: success "
        f"{result.success_probability:.1%}, median final net worth "
        f"{np.median(result.final_net_worth):,.0f}"
    )
    return result


def find_safe_withdrawal_rate(
    portfolio_value: float,
    years_in_retirement: int,
    target_success: float = 0.95,
    *,
    market: Optional[MarketAssumptions] = None,
    inflation_rate: float = 0.03,
    iterations: int = 1_000,
    seed: int = 42,
    low: float = 0.01,
    high: float = 0.10,
    tolerance: float = 0.001,
    max_steps: int = 20,
) -> float:
    """
    Highest initial withdrawal rate whose inflation-grown withdrawals survive
    ``years_in_retirement`` with at least ``target_success`` probability.

    Binary search on the rate; every probe reuses ``seed`` so success is monotone
    in the rate. Returns ``low`` when even the lowest rate misses the target.
    """
    if not 0.0 < target_success < 1.0:
        raise InvalidConfiguration(
            "target_success must be in (0, 1)",
            [{"field": "target_success", "message": f"got {target_success}"}],
        )
    market = market if market is not None else MarketAssumptions()
    market = market.model_copy(update={"inflation_mean": inflation_rate, "inflation_volatility": 0.0})
    settings = SimulationSettings(
        iterations=iterations, seed=seed, batch_size=iterations, tracked_metrics=("net_worth",)
    )

    def success_at(rate: float) -> float:
        config = ProjectionConfig(
            projection_years=years_in_retirement,
            inflation_rate=inflation_rate,
            current_age=65,
            retirement_age=65,
            life_expectancy=65 + years_in_retirement,
            assets=[AssetConfig(name="Portfolio", current_value=portfolio_value, type="taxable")],
            expenses=[ExpenseCategory(
                name="Withdrawal",
                annual_amount=portfolio_value * rate,
                growth_rate=inflation_rate,
                is_essential=True,
            )],
            market=market,
        )
        return run_monte_carlo(config, settings).success_probability

    best = low
    for _ in range(max_steps):
        rate = (low + high) / 2.0
        success = success_at(rate)
        if abs(success - target_success) < tolerance:
            best = rate
            break
        if success < target_success:
            high = rate
        else:
            low = rate
            best = rate
    logger.info(f"Safe withdrawal rate at {target_success:.0%} success: {best:.2%}")
    return best
