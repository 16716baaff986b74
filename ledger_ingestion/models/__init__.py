"""CSV import ORM models (strategies and saved account routing)."""

from ledger_ingestion.models.strategy import CsvAccountMappingModel, CsvImportStrategyModel

__all__ = ["CsvAccountMappingModel", "CsvImportStrategyModel"]
