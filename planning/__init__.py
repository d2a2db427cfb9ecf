"""
Planning outputs: summaries, percentile aggregation, goal probability, scenario templates.
"""

from .aggregator import percentile_bands, summarize_distribution
from .goals import GoalProbabilityResult, goal_probability, goal_what_if
from .summary import RiskAssessment, assess_risk, outcome_warnings, summarize
from .templates import SCENARIO_TEMPLATES, get_template, scenario_templates

__all__ = [
    "percentile_bands",
    "summarize_distribution",
    "GoalProbabilityResult",
    "goal_probability",
    "goal_what_if",
    "RiskAssessment",
    "assess_risk",
    "outcome_warnings",
    "summarize",
    "SCENARIO_TEMPLATES",
    "get_template",
    "scenario_templates",
]
