"""
Life event scheduling: which events touch a simulation year and how.

Each year's impact is split three ways:
  - cash debits   (outflows paid from this year's cashflow, counted in total_expenses)
  - cash credits  (inflows reported as non-taxable income)
  - capital       (net-worth-only transfers applied straight against assets)

One-off amounts of capital event types (home/car purchase, inheritance, business sale)
are capital; every other amount, and every recurring annual impact, flows through
cashflow.

Sign convention: negative = outflow, positive = inflow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

import numpy as np

from core.config import LifeEvent

CAPITAL_EVENT_TYPES = frozenset({"home_purchase", "car_purchase", "inheritance", "business_sale"})


@dataclass
class LifeEventImpact:
    """Impact of all active life events on one year, per path."""
    events: Tuple[LifeEvent, ...]
    capital: np.ndarray
    cash_debits: Dict[str, np.ndarray] = field(default_factory=dict)
    cash_credits: Dict[str, np.ndarray] = field(default_factory=dict)

    @property
    def total_debits(self) -> np.ndarray:
        return sum(self.cash_debits.values(), np.zeros_like(self.capital))

    @property
    def total_credits(self) -> np.ndarray:
        return sum(self.cash_credits.values(), np.zeros_like(self.capital))


def recurring_end(event: LifeEvent, projection_years: int) -> int:
    """Exclusive end year of a recurring impact (duration 0 runs to the horizon)."""
    if not event.impact_duration:
        return projection_years
    return event.year + event.impact_duration


def is_active(event: LifeEvent, year: int, projection_years: int) -> bool:
    if year == event.year:
        return True
    if event.is_recurring and event.annual_impact:
        return event.year <= year < recurring_end(event, projection_years)
    return False


def events_for_year(
    events: Sequence[LifeEvent], year: int, projection_years: int
) -> List[LifeEvent]:
    return [e for e in events if is_active(e, year, projection_years)]


def _add(bucket: Dict[str, np.ndarray], name: str, values: np.ndarray) -> None:
    bucket[name] = bucket[name] + values if name in bucket else values


def schedule_year(
    events: Sequence[LifeEvent],
    year: int,
    projection_years: int,
    inflation_history: np.ndarray,
) -> LifeEventImpact:
    """
    Resolve life events for ``year``.

    Parameters
    ----------
    events : sequence of LifeEvent
    year : int
        Simulation year index.
    projection_years : int
        Horizon, used for open-ended recurring impacts.
    inflation_history : np.ndarray
        Shape (n_paths, year + 1), start-of-year inflation index per path.
        Inflation-adjusted amounts scale by index[year] / index[event.year].
    """
    n_paths = inflation_history.shape[0]
    active = events_for_year(events, year, projection_years)
    impact = LifeEventImpact(events=tuple(active), capital=np.zeros(n_paths, dtype=float))

    for event in active:
        if event.inflation_adjusted:
            scale = inflation_history[:, year] / inflation_history[:, event.year]
        else:
            scale = np.ones(n_paths, dtype=float)

        # --- one-off amount ---
        if year == event.year and event.amount != 0.0:
            if event.type in CAPITAL_EVENT_TYPES:
                impact.capital = impact.capital + event.amount * scale
            elif event.amount < 0:
                _add(impact.cash_debits, event.name, -event.amount * scale)
            else:
                _add(impact.cash_credits, event.name, event.amount * scale)

        # --- recurring impact ---
        if event.is_recurring and event.annual_impact:
            if event.year <= year < recurring_end(event, projection_years):
                if event.annual_impact < 0:
                    _add(impact.cash_debits, event.name, -event.annual_impact * scale)
                else:
                    _add(impact.cash_credits, event.name, event.annual_impact * scale)

    return impact
