"""Mapping engine: strategy matching and pure row-to-transfer mapping."""

from ledger_ingestion.mapping.datetime_parser import parse_timestamp
from ledger_ingestion.mapping.mapper import (
    CsvTransferMapper,
    ImportPreparation,
    MappingError,
    MappingResult,
    MappingSuccess,
    NewAccount,
    TransferWithAttributes,
    parse_amount_value,
)
from ledger_ingestion.mapping.matcher import (
    find_all_matching_strategies,
    find_matching_strategy,
)

__all__ = [
    "CsvTransferMapper",
    "ImportPreparation",
    "MappingError",
    "MappingResult",
    "MappingSuccess",
    "NewAccount",
    "TransferWithAttributes",
    "find_all_matching_strategies",
    "find_matching_strategy",
    "parse_amount_value",
    "parse_timestamp",
]
