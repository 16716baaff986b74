"""ORM models for the ledger kernel."""

from ledger_kernel.models.account import Account, Category
from ledger_kernel.models.currency import Currency
from ledger_kernel.models.transfer import AttributeType, TransferAttribute, TransferModel

__all__ = [
    "Account",
    "Category",
    "Currency",
    "TransferModel",
    "AttributeType",
    "TransferAttribute",
]
