"""
ledger_ingestion.domain -- Pure types and value objects for CSV import.

ZERO I/O. Imports only from ledger_kernel/domain/ and ledger_kernel/exceptions.
"""

from ledger_ingestion.domain.export import (
    AccountLookupExport,
    AmountParsingExport,
    CreateNew,
    CsvStrategyExport,
    CurrencyLookupExport,
    DateTimeParsingExport,
    DirectColumnExport,
    FieldMappingExport,
    HardCodedAccountExport,
    HardCodedCurrencyExport,
    HardCodedTimezoneExport,
    ImportParseResult,
    MapToExisting,
    ReferenceType,
    RegexAccountExport,
    Resolution,
    TimezoneLookupExport,
    UnresolvedReference,
)
from ledger_ingestion.domain.types import (
    DEFAULT_TIME,
    REQUIRED_FIELDS,
    AccountLookupMapping,
    AmountMode,
    AmountParsingMapping,
    AttributeColumnMapping,
    CsvAccountMapping,
    CsvColumn,
    CsvImportStrategy,
    CsvRow,
    CsvTable,
    CurrencyLookupMapping,
    DateTimeParsingMapping,
    DirectColumnMapping,
    FieldMapping,
    HardCodedAccountMapping,
    HardCodedCurrencyMapping,
    HardCodedTimezoneMapping,
    MappingKind,
    RegexAccountMapping,
    RegexRule,
    TimezoneLookupMapping,
    TransferField,
)

__all__ = [
    "DEFAULT_TIME",
    "REQUIRED_FIELDS",
    "AccountLookupExport",
    "AccountLookupMapping",
    "AmountMode",
    "AmountParsingExport",
    "AmountParsingMapping",
    "AttributeColumnMapping",
    "CreateNew",
    "CsvAccountMapping",
    "CsvColumn",
    "CsvImportStrategy",
    "CsvRow",
    "CsvStrategyExport",
    "CsvTable",
    "CurrencyLookupExport",
    "CurrencyLookupMapping",
    "DateTimeParsingExport",
    "DateTimeParsingMapping",
    "DirectColumnExport",
    "DirectColumnMapping",
    "FieldMapping",
    "FieldMappingExport",
    "HardCodedAccountExport",
    "HardCodedAccountMapping",
    "HardCodedCurrencyExport",
    "HardCodedCurrencyMapping",
    "HardCodedTimezoneExport",
    "HardCodedTimezoneMapping",
    "ImportParseResult",
    "MapToExisting",
    "MappingKind",
    "ReferenceType",
    "RegexAccountExport",
    "RegexAccountMapping",
    "RegexRule",
    "Resolution",
    "TimezoneLookupExport",
    "TimezoneLookupMapping",
    "TransferField",
    "UnresolvedReference",
]
