"""
Income and expense growth for a single simulation year.

amount(year) = annual_amount * (1 + growth_rate) ** (year - start_year)

inside the inclusive window [start_year, end_year], zero outside it. Income and
expense shocks scale the compounded amounts by the fraction of the year they cover.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable

from core.config import ProjectionConfig, Shock
from core.utils import window_coverage


@dataclass(frozen=True)
class StreamAmounts:
    """Per-item nominal amounts for one year."""
    amounts: Dict[str, float] = field(default_factory=dict)
    taxable: float = 0.0
    essential: float = 0.0

    @property
    def total(self) -> float:
        return float(sum(self.amounts.values()))


def compounded_amount(
    annual_amount: float,
    growth_rate: float,
    year: int,
    *,
    start_year: int,
    end_year: int,
) -> float:
    """Compounded amount for ``year``, or 0.0 outside ``[start_year, end_year]``."""
    if year < start_year or year > end_year:
        return 0.0
    return annual_amount * (1.0 + growth_rate) ** (year - start_year)


def shock_shift(shocks: Iterable[Shock], kind: str, year: int) -> float:
    """Sum of ``magnitude * coverage`` over shocks of ``kind`` touching ``year``."""
    return float(sum(
        s.magnitude * window_coverage(s.start_year, s.duration_years, year)
        for s in shocks
        if s.kind == kind
    ))


def income_factor(shocks: Iterable[Shock], year: int) -> float:
    return max(0.0, 1.0 - shock_shift(shocks, "income", year))


def expense_factor(shocks: Iterable[Shock], year: int) -> float:
    return max(0.0, 1.0 + shock_shift(shocks, "expense", year))


def income_for_year(config: ProjectionConfig, year: int) -> StreamAmounts:
    factor = income_factor(config.shocks, year)
    amounts: Dict[str, float] = {}
    taxable = 0.0
    for stream in config.income_streams:
        start = stream.start_year or 0
        end = stream.end_year if stream.end_year is not None else config.projection_years
        if stream.stops_at_retirement:
            end = min(end, config.retirement_year - 1)
        amount = factor * compounded_amount(
            stream.annual_amount, stream.growth_rate, year, start_year=start, end_year=end
        )
        if amount == 0.0:
            continue
        amounts[stream.name] = amounts.get(stream.name, 0.0) + amount
        if stream.is_taxable:
            taxable += amount
    return StreamAmounts(amounts=amounts, taxable=taxable)


def expenses_for_year(config: ProjectionConfig, year: int) -> StreamAmounts:
    factor = expense_factor(config.shocks, year)
    amounts: Dict[str, float] = {}
    essential = 0.0
    for expense in config.expenses:
        start = expense.start_year or 0
        end = expense.end_year if expense.end_year is not None else config.projection_years
        amount = factor * compounded_amount(
            expense.annual_amount, expense.growth_rate, year, start_year=start, end_year=end
        )
        if amount == 0.0:
            continue
        amounts[expense.name] = amounts.get(expense.name, 0.0) + amount
        if expense.is_essential:
            essential += amount
    return StreamAmounts(amounts=amounts, essential=essential)
