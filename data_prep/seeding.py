"""
Seeding adapters: turn collaborator records into ProjectionConfig inputs.

Accounts (include_accounts):
  checking / savings      → cash          2%
  brokerage / investment  → taxable       7%
  401k / ira              → tax_deferred  7%
  roth                    → tax_free      7%
  real_estate             → real_estate   3%
  anything else           → other         4%
  credit card / loan / mortgage → LoanConfig (5% and a 60-month payoff when terms are unknown)

Recurring transactions (include_recurring), annualized by frequency:
  positive → taxable IncomeStream, 2% growth, ends at retirement
  negative → ExpenseCategory, 3% growth, essential for housing/utilities/insurance/healthcare
"""

from __future__ import annotations

from typing import Callable, Iterable, List, Optional, Sequence, Set, Tuple

from loguru import logger

from core.config import (
    AssetConfig,
    ExpenseCategory,
    IncomeStream,
    LoanConfig,
    ProjectionConfig,
    load_projection_config,
)

from .providers import AccountRecord, RecurringRecord

# (amount, from_currency) -> amount in the projection's base currency
CurrencyConverter = Callable[[float, str], float]

ASSET_TYPE_MAP = {
    "checking": ("cash", 0.02),
    "savings": ("cash", 0.02),
    "brokerage": ("taxable", 0.07),
    "investment": ("taxable", 0.07),
    "401k": ("tax_deferred", 0.07),
    "ira": ("tax_deferred", 0.07),
    "roth": ("tax_free", 0.07),
    "roth_ira": ("tax_free", 0.07),
    "real_estate": ("real_estate", 0.03),
}
OTHER_ASSET = ("other", 0.04)

LIABILITY_TYPES = ("credit_card", "credit", "loan", "mortgage")
DEFAULT_LOAN_RATE = 0.05
DEFAULT_PAYOFF_MONTHS = 60

FREQUENCY_MULTIPLIERS = {
    "weekly": 52,
    "biweekly": 26,
    "monthly": 12,
    "quarterly": 4,
    "yearly": 1,
}

INCOME_GROWTH = 0.02
EXPENSE_GROWTH = 0.03
ESSENTIAL_KEYWORDS = ("housing", "utilities", "insurance", "healthcare")


def _convert(amount: float, currency: str, converter: Optional[CurrencyConverter]) -> float:
    return converter(amount, currency) if converter is not None else amount


def _unique(name: str, taken: Set[str], record_id: str) -> str:
    candidate = name if name not in taken else f"{name} ({record_id})"
    taken.add(candidate)
    return candidate


def is_liability(account_type: str) -> bool:
    t = account_type.lower()
    return any(key in t for key in LIABILITY_TYPES)


def _loan_type(account_type: str) -> str:
    t = account_type.lower()
    if "credit" in t:
        return "credit_card"
    if "mortgage" in t:
        return "mortgage"
    if "auto" in t:
        return "auto"
    if "student" in t:
        return "student"
    return "personal"


def account_to_asset(record: AccountRecord, balance: float, name: str) -> AssetConfig:
    asset_type, rate = ASSET_TYPE_MAP.get(record.account_type.lower(), OTHER_ASSET)
    return AssetConfig(name=name, current_value=max(balance, 0.0), type=asset_type,
                       expected_return=rate)


def account_to_loan(record: AccountRecord, balance: float, name: str) -> LoanConfig:
    term = record.remaining_term_months
    if record.monthly_payment is None and term is None:
        term = DEFAULT_PAYOFF_MONTHS
    return LoanConfig(
        name=name,
        balance=abs(balance),
        interest_rate=record.interest_rate if record.interest_rate is not None else DEFAULT_LOAN_RATE,
        monthly_payment=record.monthly_payment,
        remaining_term_months=term,
        type=_loan_type(record.account_type),
    )


def seed_from_accounts(
    accounts: Iterable[AccountRecord],
    *,
    converter: Optional[CurrencyConverter] = None,
    taken_names: Sequence[str] = (),
) -> Tuple[List[AssetConfig], List[LoanConfig]]:
    """Split account records into assets and loans, converting balances to the base currency."""
    assets: List[AssetConfig] = []
    loans: List[LoanConfig] = []
    taken_assets = set(taken_names)
    taken_loans = set(taken_names)
    for record in accounts:
        balance = _convert(record.balance, record.currency, converter)
        if is_liability(record.account_type):
            if abs(balance) > 0:
                loans.append(account_to_loan(record, balance, _unique(record.name, taken_loans, record.id)))
        else:
            assets.append(account_to_asset(record, balance, _unique(record.name, taken_assets, record.id)))
    return assets, loans


def annualize(record: RecurringRecord) -> float:
    """Absolute annual amount of a recurring record."""
    if record.frequency not in FREQUENCY_MULTIPLIERS:
        raise KeyError(
            f"Unknown frequency '{record.frequency}'. "
            f"Available: {list(FREQUENCY_MULTIPLIERS.keys())}"
        )
    return abs(record.amount) * FREQUENCY_MULTIPLIERS[record.frequency]


def _is_essential(record: RecurringRecord) -> bool:
    category = (record.category or "").lower()
    return any(word in category for word in ESSENTIAL_KEYWORDS)


def seed_from_recurring(
    records: Iterable[RecurringRecord],
    *,
    converter: Optional[CurrencyConverter] = None,
) -> Tuple[List[IncomeStream], List[ExpenseCategory]]:
    """Turn active recurring records into income streams and expense categories."""
    income: List[IncomeStream] = []
    expenses: List[ExpenseCategory] = []
    for record in records:
        if not record.is_active or record.amount == 0:
            continue
        annual = _convert(annualize(record), record.currency, converter)
        if record.amount > 0:
            income.append(IncomeStream(
                name=record.description,
                annual_amount=annual,
                growth_rate=INCOME_GROWTH,
                is_taxable=True,
                stops_at_retirement=True,
            ))
        else:
            expenses.append(ExpenseCategory(
                name=record.description,
                annual_amount=annual,
                growth_rate=EXPENSE_GROWTH,
                is_essential=_is_essential(record),
            ))
    return income, expenses


def seed_config(
    config: ProjectionConfig,
    *,
    accounts: Optional[Sequence[AccountRecord]] = None,
    recurring: Optional[Sequence[RecurringRecord]] = None,
    converter: Optional[CurrencyConverter] = None,
) -> ProjectionConfig:
    """
    Append seeded items to the user's explicit config.

    Seeded assets and loans get unique names (suffixed with the record id on clash).
    """
    update = {}
    if accounts:
        taken = [a.name for a in config.assets] + [loan.name for loan in config.loans]
        assets, loans = seed_from_accounts(accounts, converter=converter, taken_names=taken)
        update["assets"] = list(config.assets) + assets
        update["loans"] = list(config.loans) + loans
        logger.debug(f"Seeded {len(assets)} asset(s) and {len(loans)} loan(s) from accounts")
    if recurring:
        income, expenses = seed_from_recurring(recurring, converter=converter)
        update["income_streams"] = list(config.income_streams) + income
        update["expenses"] = list(config.expenses) + expenses
        logger.debug(f"Seeded {len(income)} income stream(s) and {len(expenses)} expense(s)")
    if not update:
        return config
    data = config.model_dump()
    data.update({k: [item.model_dump() for item in v] for k, v in update.items()})
    return load_projection_config(data)
