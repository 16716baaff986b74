"""Selectors for the ledger kernel (read side)."""

from ledger_kernel.selectors.reference_selector import ReferenceSelector

__all__ = [
    "ReferenceSelector",
]
