"""
Pure domain layer.

Frozen value objects and lookup snapshots with NO dependencies on the ORM,
the database or I/O.
"""

from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.currency import CurrencyRegistry, IsoCurrency
from ledger_kernel.domain.reference_snapshot import ReferenceSnapshot
from ledger_kernel.domain.values import (
    NEW_ACCOUNT_PLACEHOLDER_ID,
    UNCATEGORIZED_ID,
    UNCATEGORIZED_NAME,
    AccountInfo,
    CategoryInfo,
    CurrencyInfo,
    Money,
    Transfer,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "CurrencyRegistry",
    "IsoCurrency",
    "ReferenceSnapshot",
    "AccountInfo",
    "CategoryInfo",
    "CurrencyInfo",
    "Money",
    "Transfer",
    "NEW_ACCOUNT_PLACEHOLDER_ID",
    "UNCATEGORIZED_ID",
    "UNCATEGORIZED_NAME",
]
