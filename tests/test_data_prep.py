"""Tests for collaborator providers, seeding adapters and plausibility checks."""

from datetime import date

import pytest

from core.config import LoanConfig, load_projection_config
from core.errors import UpstreamDataUnavailable
from data_prep.providers import (
    AccountRecord,
    GoalRecord,
    InMemoryAccountProvider,
    InMemoryGoalProvider,
    InMemoryRecurringProvider,
    RecurringRecord,
)
from data_prep.seeding import (
    DEFAULT_PAYOFF_MONTHS,
    annualize,
    seed_config,
    seed_from_accounts,
    seed_from_recurring,
)
from data_prep.validators import validate_config


# --- providers ---

def test_in_memory_providers_raise_for_unknown_keys():
    accounts = InMemoryAccountProvider({"s1": [AccountRecord("a1", "Checking", "checking", 100)]})
    assert len(accounts.get_accounts("s1")) == 1
    with pytest.raises(UpstreamDataUnavailable):
        accounts.get_accounts("s2")
    with pytest.raises(UpstreamDataUnavailable):
        InMemoryRecurringProvider().get_recurring("s1")
    goals = InMemoryGoalProvider([GoalRecord("g1", "Car", 20_000, date(2030, 1, 1))])
    assert goals.get_goal("g1").name == "Car"
    with pytest.raises(UpstreamDataUnavailable, match="Available"):
        goals.get_goal("g9")


# --- accounts ---

def test_accounts_map_to_assets_and_loans():
    assets, loans = seed_from_accounts([
        AccountRecord("a1", "Everyday", "checking", 5_000),
        AccountRecord("a2", "Retirement", "401k", 80_000),
        AccountRecord("a3", "Collectibles", "art", 3_000),
        AccountRecord("a4", "Visa", "credit_card", -2_500),
        AccountRecord("a5", "Home loan", "mortgage", 250_000, interest_rate=0.065,
                      monthly_payment=1_800),
    ])
    assert [(a.name, a.type, a.expected_return) for a in assets] == [
        ("Everyday", "cash", 0.02),
        ("Retirement", "tax_deferred", 0.07),
        ("Collectibles", "other", 0.04),
    ]
    card, mortgage = loans
    assert card.type == "credit_card"
    assert card.balance == 2_500
    assert card.interest_rate == pytest.approx(0.05)
    assert card.remaining_term_months == DEFAULT_PAYOFF_MONTHS
    assert mortgage.type == "mortgage"
    assert mortgage.monthly_payment == 1_800
    assert mortgage.remaining_term_months is None


def test_account_names_are_made_unique():
    assets, _ = seed_from_accounts(
        [AccountRecord("a1", "Savings", "savings", 1_000),
         AccountRecord("a2", "Savings", "savings", 2_000)],
        taken_names=["Savings"],
    )
    assert [a.name for a in assets] == ["Savings (a1)", "Savings (a2)"]


def test_balances_are_converted_to_base_currency():
    def to_usd(amount, currency):
        return amount / 20.0 if currency == "MXN" else amount

    assets, _ = seed_from_accounts(
        [AccountRecord("a1", "Cuenta", "checking", 100_000, currency="MXN")], converter=to_usd
    )
    assert assets[0].current_value == pytest.approx(5_000)


# --- recurring ---

def test_annualize_by_frequency():
    assert annualize(RecurringRecord("r1", "Paycheck", 2_000, frequency="biweekly")) == 52_000
    assert annualize(RecurringRecord("r2", "Gym", -50, frequency="monthly")) == 600
    with pytest.raises(KeyError, match="Available"):
        annualize(RecurringRecord("r3", "Odd", 10, frequency="daily"))


def test_recurring_records_become_streams():
    income, expenses = seed_from_recurring([
        RecurringRecord("r1", "Paycheck", 4_000, frequency="monthly"),
        RecurringRecord("r2", "Rent", -1_500, category="Housing"),
        RecurringRecord("r3", "Streaming", -15, category="Entertainment"),
        RecurringRecord("r4", "Old gym", -40, is_active=False),
    ])
    assert len(income) == 1
    assert income[0].annual_amount == 48_000
    assert income[0].stops_at_retirement
    assert income[0].growth_rate == pytest.approx(0.02)
    assert [(e.name, e.is_essential) for e in expenses] == [("Rent", True), ("Streaming", False)]
    assert expenses[0].growth_rate == pytest.approx(0.03)


def test_seed_config_appends_to_explicit_items():
    config = load_projection_config({
        "projectionYears": 20, "currentAge": 40, "retirementAge": 65,
        "assets": [{"name": "Brokerage", "currentValue": 10_000}],
    })
    seeded = seed_config(
        config,
        accounts=[AccountRecord("a1", "Brokerage", "brokerage", 7_000)],
        recurring=[RecurringRecord("r1", "Salary", 5_000)],
    )
    assert [a.name for a in seeded.assets] == ["Brokerage", "Brokerage (a1)"]
    assert [s.name for s in seeded.income_streams] == ["Salary"]
    assert seed_config(config) is config


# --- plausibility checks ---

def test_validator_flags_questionable_inputs():
    config = load_projection_config({
        "projectionYears": 50, "currentAge": 50, "retirementAge": 95, "lifeExpectancy": 90,
        "loans": [{"name": "Card", "balance": 10_000, "interestRate": 0.24,
                   "monthlyPayment": 150}],
        "lifeEvents": [{"name": "Boat", "year": 60, "amount": -40_000}],
        "socialSecurity": {"monthlyBenefit": 1_800, "claimYear": 55},
    })
    result = validate_config(config)
    text = "\n".join(result.warnings)
    assert "exceeds life expectancy" in text
    assert "past life expectancy" in text
    assert "does not cover interest" in text
    assert "life event(s) fall beyond" in text
    assert "Social Security claim year 55" in text
    assert result.summary().splitlines()[0] == f"WARNINGS ({len(result.warnings)}):"


def test_validator_is_quiet_for_sensible_config(household_config):
    result = validate_config(household_config)
    assert result.warnings == []
    assert result.summary() == "✓ All checks passed."


def test_level_payment_loan_covers_interest():
    loan = LoanConfig(name="Auto", balance=20_000, interest_rate=0.07, remaining_term_months=48)
    config = load_projection_config({"projectionYears": 5, "currentAge": 30, "retirementAge": 65,
                                     "loans": [loan.model_dump()]})
    assert validate_config(config).warnings == []
