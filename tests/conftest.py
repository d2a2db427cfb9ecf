"""Shared fixtures for the projection test suite."""

import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from core.config import load_projection_config


@pytest.fixture
def household_config():
    """Working household: salary, essential and discretionary spending, a mortgage."""
    return load_projection_config({
        "projectionYears": 40,
        "currentAge": 35,
        "retirementAge": 65,
        "lifeExpectancy": 90,
        "inflationRate": 0.03,
        "incomeStreams": [
            {"name": "Salary", "annualAmount": 100_000, "growthRate": 0.03,
             "stopsAtRetirement": True},
        ],
        "expenses": [
            {"name": "Living", "annualAmount": 35_000, "growthRate": 0.03, "isEssential": True},
            {"name": "Travel", "annualAmount": 10_000, "growthRate": 0.03},
        ],
        "loans": [
            {"name": "Mortgage", "balance": 200_000, "interestRate": 0.06,
             "remainingTermMonths": 300, "type": "mortgage"},
        ],
        "assets": [
            {"name": "Checking", "currentValue": 20_000, "type": "cash"},
            {"name": "401k", "currentValue": 150_000, "type": "tax_deferred"},
        ],
        "socialSecurity": {"monthlyBenefit": 2_500, "claimAge": 67},
        "taxes": {"country": "US", "filingStatus": "single", "annualDeductions": 14_600},
    })


@pytest.fixture
def flat_config():
    """No growth, no taxes, no market returns: every figure can be checked by hand."""
    return load_projection_config({
        "projectionYears": 10,
        "currentAge": 40,
        "retirementAge": 60,
        "inflationRate": 0.0,
        "incomeStreams": [
            {"name": "Salary", "annualAmount": 60_000, "isTaxable": False},
        ],
        "expenses": [
            {"name": "Living", "annualAmount": 40_000, "isEssential": True},
        ],
        "market": {"expectedReturn": 0.0, "returnVolatility": 0.0,
                   "inflationVolatility": 0.0},
    })


@pytest.fixture
def starter_config():
    """The basic single-earner case: salary, essential living costs, no debt."""
    return load_projection_config({
        "currentAge": 30,
        "retirementAge": 65,
        "projectionYears": 35,
        "inflationRate": 0.03,
        "incomeStreams": [{"name": "salary", "annualAmount": 80_000, "growthRate": 0.02}],
        "expenses": [{"name": "living", "annualAmount": 50_000, "growthRate": 0.03,
                      "isEssential": True}],
        "taxes": {"country": "US", "filingStatus": "single", "annualDeductions": 14_600},
    })
