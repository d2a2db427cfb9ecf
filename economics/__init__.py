"""
Economic model: per-year income/expense growth, taxes, and Social Security.
"""

from .streams import StreamAmounts, income_for_year, expenses_for_year, shock_shift
from .taxes import TAX_TABLES, TaxFunction, BracketTaxFunction, FlatTaxFunction, taxes_for_year
from .social_security import SocialSecuritySchedule, claim_adjustment, build_schedule

__all__ = [
    "StreamAmounts",
    "income_for_year",
    "expenses_for_year",
    "shock_shift",
    "TAX_TABLES",
    "TaxFunction",
    "BracketTaxFunction",
    "FlatTaxFunction",
    "taxes_for_year",
    "SocialSecuritySchedule",
    "claim_adjustment",
    "build_schedule",
]
