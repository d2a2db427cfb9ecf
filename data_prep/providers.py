"""
Read-only collaborator interfaces: accounts, recurring transactions, goals.

The engine never talks to a database or an aggregator; the service layer resolves
everything through these providers before a run starts. A provider that cannot
answer raises UpstreamDataUnavailable.

In-memory implementations back the tests and the dashboard.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Literal, Optional

from core.errors import UpstreamDataUnavailable

Frequency = Literal["weekly", "biweekly", "monthly", "quarterly", "yearly"]


@dataclass(frozen=True)
class AccountRecord:
    """
    One account balance as reported upstream.

    ``balance`` is positive for assets and for amounts owed on liability accounts;
    ``account_type`` decides which side it lands on.
    """
    id: str
    name: str
    account_type: str
    balance: float
    currency: str = "USD"
    interest_rate: Optional[float] = None
    monthly_payment: Optional[float] = None
    remaining_term_months: Optional[int] = None


@dataclass(frozen=True)
class RecurringRecord:
    """A detected recurring transaction. Positive amounts are income, negative are spending."""
    id: str
    description: str
    amount: float
    frequency: Frequency = "monthly"
    category: Optional[str] = None
    currency: str = "USD"
    is_active: bool = True


@dataclass(frozen=True)
class GoalRecord:
    id: str
    name: str
    target_amount: float
    target_date: date
    current_balance: float = 0.0
    monthly_contribution: float = 0.0
    expected_return: float = 0.07
    volatility: float = 0.15


class AccountProvider:
    """Interface: current balances and loan terms for a space."""

    def get_accounts(self, space_id: str) -> List[AccountRecord]:
        raise NotImplementedError


class RecurringTransactionProvider:
    """Interface: detected recurring income/expense patterns for a space."""

    def get_recurring(self, space_id: str) -> List[RecurringRecord]:
        raise NotImplementedError


class GoalProvider:
    """Interface: goal definitions by id."""

    def get_goal(self, goal_id: str) -> GoalRecord:
        raise NotImplementedError


class InMemoryAccountProvider(AccountProvider):
    def __init__(self, accounts: Optional[Dict[str, Iterable[AccountRecord]]] = None):
        self._accounts = {k: list(v) for k, v in (accounts or {}).items()}

    def get_accounts(self, space_id: str) -> List[AccountRecord]:
        if space_id not in self._accounts:
            raise UpstreamDataUnavailable("accounts", f"no accounts for space '{space_id}'")
        return list(self._accounts[space_id])


class InMemoryRecurringProvider(RecurringTransactionProvider):
    def __init__(self, recurring: Optional[Dict[str, Iterable[RecurringRecord]]] = None):
        self._recurring = {k: list(v) for k, v in (recurring or {}).items()}

    def get_recurring(self, space_id: str) -> List[RecurringRecord]:
        if space_id not in self._recurring:
            raise UpstreamDataUnavailable(
                "recurring", f"no recurring transactions for space '{space_id}'"
            )
        return list(self._recurring[space_id])


class InMemoryGoalProvider(GoalProvider):
    def __init__(self, goals: Iterable[GoalRecord] = ()):
        self._goals = {g.id: g for g in goals}

    def get_goal(self, goal_id: str) -> GoalRecord:
        if goal_id not in self._goals:
            raise UpstreamDataUnavailable(
                "goals", f"Unknown goal '{goal_id}'. Available: {list(self._goals)}"
            )
        return self._goals[goal_id]
