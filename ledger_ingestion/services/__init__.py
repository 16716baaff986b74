"""CSV import services (strategy store, export/resolution, import)."""

from ledger_ingestion.services.export_service import StrategyExportService
from ledger_ingestion.services.import_service import CsvImportService, ImportRun, ImportStage
from ledger_ingestion.services.strategy_store import StrategyStore

__all__ = [
    "CsvImportService",
    "ImportRun",
    "ImportStage",
    "StrategyExportService",
    "StrategyStore",
]
