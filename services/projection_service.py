"""
Application-layer entry points over the projection engine.

The service resolves collaborator data (accounts, recurring transactions, goals)
before any engine work starts, then hands a fully-built ProjectionConfig to the
engine. Upstream failures are downgraded to warnings unless ``strict=True``.

Results of deterministic projections can be memoised in any mutable mapping
keyed by space id and config fingerprint.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from threading import Event
from typing import Any, List, Mapping, MutableMapping, Optional, Sequence, Tuple, Union

from loguru import logger
from pydantic import ValidationError

from core.config import (
    GoalWhatIf,
    ProjectionConfig,
    SimulationSettings,
    WhatIfScenario,
    load_projection_config,
)
from core.errors import InvalidConfiguration, UpstreamDataUnavailable
from core.schema import ProjectionResult
from core.utils import config_fingerprint
from data_prep.providers import AccountProvider, GoalProvider, RecurringTransactionProvider
from data_prep.seeding import CurrencyConverter, seed_config
from economics.taxes import TaxFunction
from engine.montecarlo import SimulationResult, run_monte_carlo
from engine.runner import run_deterministic
from engine.whatif import ScenarioComparison
from engine.whatif import compare_scenarios as run_comparison
from planning.goals import GoalProbabilityResult, goal_probability, goal_what_if
from planning.templates import scenario_templates

ConfigInput = Union[ProjectionConfig, Mapping[str, Any]]


@dataclass(frozen=True)
class QuickProjection:
    net_worth_at_retirement: float
    monthly_retirement_income: float
    years_until_retirement: int
    risk_score: float
    income_replacement_ratio: float


class ProjectionService:
    """
    Usage:
        service = ProjectionService(accounts, recurring, goals)
        result = service.generate_projection("space-1", {"projectionYears": 30, ...})
        quick = service.get_quick_projection("space-1", current_age=35, retirement_age=65)
        odds = service.get_goal_probability("goal-1")
    """

    def __init__(
        self,
        account_provider: Optional[AccountProvider] = None,
        recurring_provider: Optional[RecurringTransactionProvider] = None,
        goal_provider: Optional[GoalProvider] = None,
        *,
        cache: Optional[MutableMapping[str, ProjectionResult]] = None,
        tax_function: Optional[TaxFunction] = None,
        converter: Optional[CurrencyConverter] = None,
        as_of: Optional[date] = None,
    ):
        self.account_provider = account_provider
        self.recurring_provider = recurring_provider
        self.goal_provider = goal_provider
        self.cache = cache
        self.tax_function = tax_function
        self.converter = converter
        self._as_of = as_of

    @property
    def as_of(self) -> date:
        return self._as_of or date.today()

    # --- collaborator resolution ---

    def _fetch(self, source: str, fetch, strict: bool, warnings: List[str]):
        try:
            return fetch()
        except UpstreamDataUnavailable as exc:
            if strict:
                raise
            message = f"{source.capitalize()} data unavailable ({exc}); projecting without it"
            logger.warning(message)
            warnings.append(message)
            return []

    def resolve_config(
        self, space_id: str, config: ConfigInput, *, strict: bool = False
    ) -> Tuple[ProjectionConfig, List[str]]:
        """Validate ``config`` and merge in seeded account / recurring data."""
        config = load_projection_config(config)
        warnings: List[str] = []
        accounts, recurring = [], []

        if config.include_accounts:
            def get_accounts():
                if self.account_provider is None:
                    raise UpstreamDataUnavailable("accounts", "no account provider configured")
                return self.account_provider.get_accounts(space_id)
            accounts = self._fetch("account", get_accounts, strict, warnings)

        if config.include_recurring:
            def get_recurring():
                if self.recurring_provider is None:
                    raise UpstreamDataUnavailable("recurring", "no recurring provider configured")
                return self.recurring_provider.get_recurring(space_id)
            recurring = self._fetch("recurring transaction", get_recurring, strict, warnings)

        seeded = seed_config(config, accounts=accounts, recurring=recurring, converter=self.converter)
        return seeded, warnings

    # --- projections ---

    def generate_projection(
        self, space_id: str, config: ConfigInput, *, strict: bool = False
    ) -> ProjectionResult:
        resolved, fallback = self.resolve_config(space_id, config, strict=strict)
        key = f"{space_id}:{config_fingerprint(resolved)}"
        if self.cache is not None and key in self.cache:
            logger.debug(f"Projection cache hit for space {space_id}")
            return self.cache[key]

        result = run_deterministic(resolved, tax_function=self.tax_function)
        result.warnings = fallback + result.warnings
        if self.cache is not None:
            self.cache[key] = result
        return result

    def simulate_projection(
        self,
        space_id: str,
        config: ConfigInput,
        settings: Optional[SimulationSettings] = None,
        *,
        strict: bool = False,
        cancel_event: Optional[Event] = None,
    ) -> SimulationResult:
        resolved, fallback = self.resolve_config(space_id, config, strict=strict)
        result = run_monte_carlo(
            resolved, settings, cancel_event=cancel_event, tax_function=self.tax_function
        )
        result.warnings = fallback + result.warnings
        return result

    def compare_scenarios(
        self,
        space_id: str,
        base_config: ConfigInput,
        scenarios: Sequence[Union[WhatIfScenario, Mapping[str, Any]]],
        settings: Optional[SimulationSettings] = None,
        *,
        strict: bool = False,
    ) -> ScenarioComparison:
        resolved, fallback = self.resolve_config(space_id, base_config, strict=strict)
        parsed = [_parse(WhatIfScenario, s) for s in scenarios]
        comparison = run_comparison(resolved, parsed, settings, tax_function=self.tax_function)
        comparison.baseline.warnings = fallback + comparison.baseline.warnings
        return comparison

    def get_quick_projection(
        self, space_id: str, current_age: int, retirement_age: int
    ) -> QuickProjection:
        """Single deterministic run seeded from accounts and recurring data."""
        result = self.generate_projection(space_id, {
            "projection_years": max(30, retirement_age - current_age + 25),
            "current_age": current_age,
            "retirement_age": retirement_age,
            "include_accounts": True,
            "include_recurring": True,
        })
        r = result.config.retirement_year
        at_retirement = (
            result.yearly_snapshots[r] if r < len(result.yearly_snapshots) else None
        )
        return QuickProjection(
            net_worth_at_retirement=at_retirement.net_worth if at_retirement else 0.0,
            monthly_retirement_income=result.summary.projected_retirement_income / 12.0,
            years_until_retirement=result.summary.years_until_retirement,
            risk_score=result.summary.risk_score,
            income_replacement_ratio=result.summary.income_replacement_ratio,
        )

    def get_scenario_templates(
        self, space_id: str, base_config: Optional[ConfigInput] = None
    ) -> List[WhatIfScenario]:
        base = load_projection_config(base_config) if base_config is not None else None
        return scenario_templates(base)

    # --- goals ---

    def _goal(self, goal_id: str):
        if self.goal_provider is None:
            raise UpstreamDataUnavailable("goals", "no goal provider configured")
        return self.goal_provider.get_goal(goal_id)

    def get_goal_probability(self, goal_id: str, *, iterations: int = 10_000) -> GoalProbabilityResult:
        return goal_probability(self._goal(goal_id), as_of=self.as_of, iterations=iterations)

    def run_what_if_scenario(
        self,
        goal_id: str,
        scenario: Union[GoalWhatIf, Mapping[str, Any]],
        *,
        iterations: int = 10_000,
    ) -> GoalProbabilityResult:
        what_if = _parse(GoalWhatIf, scenario)
        return goal_what_if(self._goal(goal_id), what_if, as_of=self.as_of, iterations=iterations)


def _parse(model, value):
    if isinstance(value, model):
        return value
    try:
        return model.model_validate(dict(value))
    except ValidationError as exc:
        raise InvalidConfiguration.from_validation_error(exc) from exc
