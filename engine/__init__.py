"""
Projection engine: yearly state transition, deterministic runner, Monte Carlo, what-if.
"""

from .cashflow import PathState, ProjectionModel, YearOutcome, advance_year
from .events import events_for_year, schedule_year
from .montecarlo import SimulationResult, find_safe_withdrawal_rate, run_monte_carlo
from .runner import run_deterministic
from .whatif import ScenarioComparison, ScenarioOutcome, apply_scenario, compare_scenarios

__all__ = [
    "PathState",
    "ProjectionModel",
    "YearOutcome",
    "advance_year",
    "events_for_year",
    "schedule_year",
    "SimulationResult",
    "find_safe_withdrawal_rate",
    "run_monte_carlo",
    "run_deterministic",
    "ScenarioComparison",
    "ScenarioOutcome",
    "apply_scenario",
    "compare_scenarios",
]
