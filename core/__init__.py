"""
Core package: input configuration, result types, error taxonomy, and shared utilities.
No business logic lives here.
"""

from .config import (
    ProjectionConfig,
    SimulationSettings,
    WhatIfScenario,
    load_projection_config,
)
from .errors import (
    ComputationTimeout,
    InsolvencyWarning,
    InvalidConfiguration,
    ProjectionError,
    UpstreamDataUnavailable,
)
from .schema import ProjectionResult, ProjectionSummary, YearlySnapshot
from .utils import config_fingerprint, level_payment

__all__ = [
    "ProjectionConfig",
    "SimulationSettings",
    "WhatIfScenario",
    "load_projection_config",
    "ComputationTimeout",
    "InsolvencyWarning",
    "InvalidConfiguration",
    "ProjectionError",
    "UpstreamDataUnavailable",
    "ProjectionResult",
    "ProjectionSummary",
    "YearlySnapshot",
    "config_fingerprint",
    "level_payment",
]
