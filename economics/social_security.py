"""
Social Security benefit timing and cost-of-living adjustments.

US benefits are scaled by claiming age relative to a full retirement age of 67:
  - early: 5/9 of 1% per month for the first 36 months, 5/12 of 1% beyond that
  - delayed: 2/3 of 1% per month, capped at age 70 (factor 1.24)
MX benefits are taken as quoted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from core.config import ProjectionConfig, SocialSecurityConfig

FULL_RETIREMENT_AGE = 67


def claim_adjustment(claim_age: int, full_retirement_age: int = FULL_RETIREMENT_AGE) -> float:
    """Benefit multiplier for claiming at ``claim_age`` (US rules)."""
    if claim_age < 62:
        return 0.0
    if claim_age >= 70:
        return 1.24
    if claim_age < full_retirement_age:
        months_early = (full_retirement_age - claim_age) * 12
        first = min(months_early, 36)
        extra = max(0, months_early - 36)
        return 1.0 - (first * 5.0 / 900.0 + extra * 5.0 / 1200.0)
    months_delayed = (claim_age - full_retirement_age) * 12
    return 1.0 + months_delayed * 8.0 / 1200.0


@dataclass(frozen=True)
class SocialSecuritySchedule:
    """Resolved claim years and first-year annual benefits for filer and spouse."""
    claim_year: int
    annual_benefit: float
    spouse_claim_year: Optional[int]
    spouse_annual_benefit: float
    cola_rate: Optional[float]

    @classmethod
    def from_config(cls, ss: SocialSecurityConfig, current_age: int) -> "SocialSecuritySchedule":
        if ss.claim_year is not None:
            claim_year = ss.claim_year
        else:
            claim_year = ss.claim_age - current_age
        claim_year = max(claim_year, 0)

        adjustment = 1.0
        if ss.country == "US":
            claim_age = ss.claim_age if ss.claim_age is not None else current_age + claim_year
            adjustment = claim_adjustment(claim_age)

        spouse_year = None
        spouse_benefit = 0.0
        if ss.spouse_monthly_benefit:
            spouse_year = ss.spouse_claim_year if ss.spouse_claim_year is not None else claim_year
            spouse_benefit = ss.spouse_monthly_benefit * 12.0

        return cls(
            claim_year=claim_year,
            annual_benefit=ss.monthly_benefit * 12.0 * adjustment,
            spouse_claim_year=spouse_year,
            spouse_annual_benefit=spouse_benefit,
            cola_rate=ss.cola_rate,
        )

    def _cola(self, year: int, start: int, inflation_history: np.ndarray) -> np.ndarray:
        if self.cola_rate is not None:
            return np.full(inflation_history.shape[0], (1.0 + self.cola_rate) ** (year - start))
        return inflation_history[:, year] / inflation_history[:, start]

    def benefit_for_year(self, year: int, inflation_history: np.ndarray) -> np.ndarray:
        """
        Combined nominal benefit in ``year`` for each path.

        ``inflation_history`` has shape (n_paths, year + 1): the start-of-year inflation
        index for every year simulated so far.
        """
        total = np.zeros(inflation_history.shape[0], dtype=float)
        if year >= self.claim_year:
            total += self.annual_benefit * self._cola(year, self.claim_year, inflation_history)
        if self.spouse_claim_year is not None and year >= self.spouse_claim_year:
            total += self.spouse_annual_benefit * self._cola(year, self.spouse_claim_year, inflation_history)
        return total


def build_schedule(config: ProjectionConfig) -> Optional[SocialSecuritySchedule]:
    if config.social_security is None:
        return None
    return SocialSecuritySchedule.from_config(config.social_security, config.current_age)
