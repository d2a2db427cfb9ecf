"""
Goal probability: chance of reaching a savings target by its date.

A goal is one balance stepped month by month until the target date:

  balance[m] = max(0, balance[m-1] * (1 + r[m]) + monthly_contribution)
  r[m] ~ Normal((1 + expected_return) ** (1/12) - 1, volatility / sqrt(12))

  probability              = 100 * share of paths with balance[months] >= target
  confidence_low / _high   = P10 / P90 of balance[months]
  projected_completion     = first month whose median balance reaches the target
  expected_shortfall       = mean(max(0, target - balance[months]))

The timeline is reported every 12 months and at the target month itself.
Below 50% probability a binary search (1,000 iterations per probe, same seed)
looks for the monthly contribution that reaches 75%.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import List, Optional

import numpy as np
import pandas as pd
from loguru import logger

from core.config import GoalWhatIf
from core.errors import InvalidConfiguration
from core.utils import add_months, months_between
from data_prep.providers import GoalRecord

LOW_PROBABILITY = 50.0
TARGET_SUCCESS = 0.75
PROBE_ITERATIONS = 1_000
MAX_GOAL_MONTHS = 1_200
TIMELINE_STEP = 12


@dataclass(frozen=True)
class GoalTimelinePoint:
    month: int
    median: float
    p10: float
    p90: float


@dataclass
class GoalProbabilityResult:
    goal_id: str
    probability: float
    confidence_low: float
    confidence_high: float
    current_progress: float
    projected_completion: Optional[date]
    recommended_monthly_contribution: Optional[float]
    expected_shortfall: float
    timeline: List[GoalTimelinePoint] = field(default_factory=list)

    def timeline_frame(self) -> pd.DataFrame:
        return pd.DataFrame([vars(p) for p in self.timeline], columns=["month", "median", "p10", "p90"])


@dataclass(frozen=True)
class GoalInputs:
    """Goal parameters after any what-if overrides."""
    balance: float
    target_amount: float
    monthly_contribution: float
    months: int
    expected_return: float
    volatility: float


@dataclass
class GoalPaths:
    """Terminal balances plus the statistics needed for the timeline."""
    terminal: np.ndarray
    monthly_median: np.ndarray
    timeline: List[GoalTimelinePoint]


def check_goal_inputs(inputs: GoalInputs, iterations: int) -> None:
    """Raise InvalidConfiguration for goals the simulation cannot run."""
    errors = []
    if not 100 <= iterations <= 100_000:
        errors.append({"field": "iterations", "message": f"must be 100..100,000, got {iterations}"})
    if inputs.months > MAX_GOAL_MONTHS:
        errors.append({"field": "target_date",
                       "message": f"{inputs.months} months away, limit is {MAX_GOAL_MONTHS}"})
    if inputs.target_amount <= 0:
        errors.append({"field": "target_amount", "message": f"must be positive, got {inputs.target_amount}"})
    if inputs.monthly_contribution < 0:
        errors.append({"field": "monthly_contribution",
                       "message": f"must be non-negative, got {inputs.monthly_contribution}"})
    if inputs.volatility < 0:
        errors.append({"field": "volatility", "message": f"must be non-negative, got {inputs.volatility}"})
    if errors:
        raise InvalidConfiguration("Goal cannot be simulated", errors)


def _timeline_point(month: int, balances: np.ndarray) -> GoalTimelinePoint:
    p10, p50, p90 = np.percentile(balances, [10, 50, 90])
    return GoalTimelinePoint(month, float(p50), float(p10), float(p90))


def simulate_goal(inputs: GoalInputs, iterations: int, seed: int) -> GoalPaths:
    """
    Step ``iterations`` balances forward ``inputs.months`` months.

    Only one month of balances is held at a time; the median is kept for every
    month so the completion date is resolved to the month.
    """
    rng = np.random.default_rng(seed)
    drift = (1.0 + inputs.expected_return) ** (1.0 / 12.0) - 1.0
    sigma = inputs.volatility / np.sqrt(12.0)

    balances = np.full(iterations, float(inputs.balance))
    medians = np.empty(inputs.months + 1)
    medians[0] = inputs.balance
    timeline = [_timeline_point(0, balances)]
    for month in range(1, inputs.months + 1):
        returns = drift + sigma * rng.standard_normal(iterations)
        balances = np.maximum(0.0, balances * (1.0 + returns) + inputs.monthly_contribution)
        medians[month] = np.median(balances)
        if month % TIMELINE_STEP == 0 or month == inputs.months:
            timeline.append(_timeline_point(month, balances))
    return GoalPaths(terminal=balances, monthly_median=medians, timeline=timeline)


def find_required_contribution(
    inputs: GoalInputs,
    desired_success: float = TARGET_SUCCESS,
    *,
    seed: int = 42,
    tolerance: float = 0.01,
    max_steps: int = 20,
) -> float:
    """
    Monthly contribution giving ``desired_success`` probability of reaching the target.

    Binary search on [0, target / months]; stops when the bracket is under 10 or the
    probe lands within ``tolerance`` of the desired rate.
    """
    low, high = 0.0, inputs.target_amount / max(inputs.months, 1)
    for _ in range(max_steps):
        if high - low <= 10.0:
            break
        mid = (low + high) / 2.0
        paths = simulate_goal(replace(inputs, monthly_contribution=mid), PROBE_ITERATIONS, seed)
        success = float((paths.terminal >= inputs.target_amount).mean())
        if abs(success - desired_success) < tolerance:
            return mid
        if success < desired_success:
            low = mid
        else:
            high = mid
    return (low + high) / 2.0


def _progress(balance: float, target: float) -> float:
    return float(min(100.0, balance / target * 100.0)) if target > 0 else 100.0


def evaluate_goal(
    goal_id: str,
    inputs: GoalInputs,
    *,
    as_of: date,
    iterations: int = 10_000,
    seed: int = 42,
    recommend: bool = True,
) -> GoalProbabilityResult:
    """Run the goal simulation for already-resolved inputs."""
    check_goal_inputs(inputs, iterations)
    target = inputs.target_amount
    if inputs.months <= 0:
        # past due: the balance either made it or it did not
        reached = inputs.balance >= target
        return GoalProbabilityResult(
            goal_id=goal_id,
            probability=100.0 if reached else 0.0,
            confidence_low=inputs.balance,
            confidence_high=inputs.balance,
            current_progress=_progress(inputs.balance, target),
            projected_completion=None,
            recommended_monthly_contribution=None,
            expected_shortfall=max(0.0, target - inputs.balance),
            timeline=[],
        )

    paths = simulate_goal(inputs, iterations, seed)
    terminal = paths.terminal
    probability = float(np.clip(100.0 * np.mean(terminal >= target), 0.0, 100.0))

    reached = np.flatnonzero(paths.monthly_median >= target)
    completion = int(reached[0]) if reached.size else None
    recommended = None
    if recommend and probability < LOW_PROBABILITY:
        recommended = find_required_contribution(inputs, seed=seed)
        logger.info(
            f"Goal {goal_id}: {probability:.1f}% likely, "
            f"{recommended:,.0f}/month needed for {TARGET_SUCCESS:.0%}"
        )

    return GoalProbabilityResult(
        goal_id=goal_id,
        probability=probability,
        confidence_low=float(np.percentile(terminal, 10)),
        confidence_high=float(np.percentile(terminal, 90)),
        current_progress=_progress(inputs.balance, target),
        projected_completion=add_months(as_of, completion) if completion is not None else None,
        recommended_monthly_contribution=recommended,
        expected_shortfall=float(np.mean(np.maximum(0.0, target - terminal))),
        timeline=paths.timeline,
    )


def goal_probability(
    goal: GoalRecord,
    *,
    as_of: Optional[date] = None,
    iterations: int = 10_000,
    seed: int = 42,
) -> GoalProbabilityResult:
    """
    Probability of reaching ``goal`` by its target date.

    Parameters
    ----------
    goal : GoalRecord
    as_of : date, optional
        Valuation date; defaults to today.
    iterations : int
        Monte Carlo paths (100..100,000).
    seed : int
    """
    as_of = as_of or date.today()
    inputs = GoalInputs(
        balance=goal.current_balance,
        target_amount=goal.target_amount,
        monthly_contribution=goal.monthly_contribution,
        months=months_between(as_of, goal.target_date),
        expected_return=goal.expected_return,
        volatility=goal.volatility,
    )
    logger.info(f"Goal {goal.id}: {inputs.months} months to target {goal.target_amount:,.0f}")
    return evaluate_goal(goal.id, inputs, as_of=as_of, iterations=iterations, seed=seed)


def goal_what_if(
    goal: GoalRecord,
    what_if: GoalWhatIf,
    *,
    as_of: Optional[date] = None,
    iterations: int = 10_000,
    seed: int = 42,
) -> GoalProbabilityResult:
    """
    Goal probability with ``what_if`` overrides applied.

    The recommended contribution is the (possibly overridden) contribution itself.

    Raises
    ------
    InvalidConfiguration
        The resulting target date is not in the future.
    """
    as_of = as_of or date.today()
    target_date = what_if.target_date or goal.target_date
    months = months_between(as_of, target_date)
    if months <= 0:
        raise InvalidConfiguration(
            "Target date must be in the future",
            [{"field": "target_date", "message": f"{target_date.isoformat()} is not after {as_of.isoformat()}"}],
        )

    def pick(override, default):
        return override if override is not None else default

    inputs = GoalInputs(
        balance=goal.current_balance,
        target_amount=pick(what_if.target_amount, goal.target_amount),
        monthly_contribution=pick(what_if.monthly_contribution, goal.monthly_contribution),
        months=months,
        expected_return=pick(what_if.expected_return, goal.expected_return),
        volatility=pick(what_if.volatility, goal.volatility),
    )
    result = evaluate_goal(goal.id, inputs, as_of=as_of, iterations=iterations, seed=seed,
                           recommend=False)
    result.recommended_monthly_contribution = inputs.monthly_contribution
    return result
