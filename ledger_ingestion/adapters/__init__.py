"""Source adapters for CSV import (file I/O only, no DB)."""

from ledger_ingestion.adapters.csv_adapter import CsvSourceAdapter

__all__ = ["CsvSourceAdapter"]
