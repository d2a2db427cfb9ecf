"""
Data preparation: collaborator providers, seeding adapters, config validation.
"""

from .providers import (
    AccountProvider,
    AccountRecord,
    GoalProvider,
    GoalRecord,
    InMemoryAccountProvider,
    InMemoryGoalProvider,
    InMemoryRecurringProvider,
    RecurringRecord,
    RecurringTransactionProvider,
)
from .seeding import seed_config, seed_from_accounts, seed_from_recurring
from .validators import ValidationResult, validate_config

__all__ = [
    "AccountProvider",
    "AccountRecord",
    "GoalProvider",
    "GoalRecord",
    "InMemoryAccountProvider",
    "InMemoryGoalProvider",
    "InMemoryRecurringProvider",
    "RecurringRecord",
    "RecurringTransactionProvider",
    "seed_config",
    "seed_from_accounts",
    "seed_from_recurring",
    "ValidationResult",
    "validate_config",
]
