"""
Data quality checks on a validated ProjectionConfig before it enters the engine.

Structural problems are rejected earlier by pydantic (InvalidConfiguration).
These checks catch inputs that are legal but probably not what the user meant:
- Retirement after life expectancy
- Projection horizon running past life expectancy
- Retirement outside the projection horizon
- Life events scheduled beyond the horizon
- Loans whose payment does not cover interest
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from core.config import ProjectionConfig
from core.utils import level_payment


@dataclass
class ValidationResult:
    """Collects the plausibility warnings for a config."""
    warnings: List[str] = field(default_factory=list)

    def summary(self) -> str:
        lines = []
        if self.warnings:
            lines.append(f"WARNINGS ({len(self.warnings)}):")
            for w in self.warnings:
                lines.append(f"  ⚠ {w}")
        if not lines:
            lines.append("✓ All checks passed.")
        return "\n".join(lines)


def validate_config(config: ProjectionConfig) -> ValidationResult:
    """
    Run all plausibility checks on a projection config.
    Returns a ValidationResult; only warnings are produced, the config is already valid.
    """
    result = ValidationResult()
    horizon = config.projection_years

    # --- Ages ---
    if config.retirement_age > config.life_expectancy:
        result.warnings.append(
            f"Retirement age ({config.retirement_age}) exceeds life expectancy "
            f"({config.life_expectancy})."
        )
    final_age = config.current_age + horizon - 1
    if final_age > config.life_expectancy:
        result.warnings.append(
            f"Projection runs to age {final_age}, past life expectancy ({config.life_expectancy})."
        )
    if config.retirement_year >= horizon:
        result.warnings.append(
            f"Retirement at age {config.retirement_age} is beyond the {horizon}-year horizon."
        )

    # --- Life events ---
    late = [e.name for e in config.life_events if e.year >= horizon]
    if late:
        result.warnings.append(
            f"{len(late)} life event(s) fall beyond the projection horizon and are ignored: {late}"
        )

    # --- Loans ---
    for loan in config.loans:
        if loan.balance <= 0 or loan.interest_rate <= 0:
            continue
        payment = (
            loan.monthly_payment if loan.monthly_payment is not None
            else level_payment(loan.balance, loan.interest_rate / 12.0, loan.remaining_term_months)
        )
        if payment <= loan.balance * loan.interest_rate / 12.0:
            result.warnings.append(
                f"Loan '{loan.name}': monthly payment {payment:,.2f} does not cover interest; "
                "the balance will grow."
            )

    # --- Social Security ---
    ss = config.social_security
    if ss is not None and ss.claim_year is not None and ss.claim_year >= horizon:
        result.warnings.append(
            f"Social Security claim year {ss.claim_year} is beyond the projection horizon."
        )

    return result
