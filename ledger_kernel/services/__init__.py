"""Services for the ledger kernel (write side)."""

from ledger_kernel.services.reference_service import ReferenceDataService
from ledger_kernel.services.transfer_writer import TransferWriter

__all__ = [
    "ReferenceDataService",
    "TransferWriter",
]
