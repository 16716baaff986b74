"""
ledger_ingestion.domain.export -- Portable, id-free strategy export model.

Each export variant mirrors a field mapping variant without its ``id`` and
with every database identifier replaced by a human-readable name or code:
account name for account id, ISO code for currency id, category name for
category id.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Union

from ledger_ingestion.domain.types import (
    DEFAULT_TIME,
    AmountMode,
    AttributeColumnMapping,
    MappingKind,
    RegexRule,
    TransferField,
)
from ledger_kernel.domain.values import UNCATEGORIZED_NAME


# -----------------------------------------------------------------------------
# Export variants
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class HardCodedAccountExport:
    kind: ClassVar[MappingKind] = MappingKind.HARD_CODED_ACCOUNT

    field_type: TransferField
    account_name: str


@dataclass(frozen=True)
class AccountLookupExport:
    kind: ClassVar[MappingKind] = MappingKind.ACCOUNT_LOOKUP

    field_type: TransferField
    column_name: str
    fallback_columns: tuple[str, ...] = ()
    create_if_missing: bool = True
    default_category_name: str = UNCATEGORIZED_NAME


@dataclass(frozen=True)
class RegexAccountExport:
    kind: ClassVar[MappingKind] = MappingKind.REGEX_ACCOUNT

    field_type: TransferField
    column_name: str
    rules: tuple[RegexRule, ...] = ()
    fallback_columns: tuple[str, ...] = ()
    default_category_name: str = UNCATEGORIZED_NAME


@dataclass(frozen=True)
class DateTimeParsingExport:
    kind: ClassVar[MappingKind] = MappingKind.DATE_TIME_PARSING

    field_type: TransferField
    date_column_name: str
    date_format: str
    time_column_name: str | None = None
    time_format: str | None = None
    default_time: str = DEFAULT_TIME


@dataclass(frozen=True)
class DirectColumnExport:
    kind: ClassVar[MappingKind] = MappingKind.DIRECT_COLUMN

    field_type: TransferField
    column_name: str
    fallback_columns: tuple[str, ...] = ()


@dataclass(frozen=True)
class AmountParsingExport:
    kind: ClassVar[MappingKind] = MappingKind.AMOUNT_PARSING

    field_type: TransferField
    mode: AmountMode
    amount_column_name: str | None = None
    credit_column_name: str | None = None
    debit_column_name: str | None = None
    negate_values: bool = False
    flip_accounts_on_positive: bool = False


@dataclass(frozen=True)
class HardCodedCurrencyExport:
    kind: ClassVar[MappingKind] = MappingKind.HARD_CODED_CURRENCY

    field_type: TransferField
    currency_code: str


@dataclass(frozen=True)
class CurrencyLookupExport:
    kind: ClassVar[MappingKind] = MappingKind.CURRENCY_LOOKUP

    field_type: TransferField
    column_name: str


@dataclass(frozen=True)
class HardCodedTimezoneExport:
    kind: ClassVar[MappingKind] = MappingKind.HARD_CODED_TIMEZONE

    field_type: TransferField
    timezone_id: str


@dataclass(frozen=True)
class TimezoneLookupExport:
    kind: ClassVar[MappingKind] = MappingKind.TIMEZONE_LOOKUP

    field_type: TransferField
    column_name: str


FieldMappingExport = Union[
    HardCodedAccountExport,
    AccountLookupExport,
    RegexAccountExport,
    DateTimeParsingExport,
    DirectColumnExport,
    AmountParsingExport,
    HardCodedCurrencyExport,
    CurrencyLookupExport,
    HardCodedTimezoneExport,
    TimezoneLookupExport,
]

EXPORT_TYPES_BY_KIND: dict[MappingKind, type] = {
    t.kind: t
    for t in (
        HardCodedAccountExport,
        AccountLookupExport,
        RegexAccountExport,
        DateTimeParsingExport,
        DirectColumnExport,
        AmountParsingExport,
        HardCodedCurrencyExport,
        CurrencyLookupExport,
        HardCodedTimezoneExport,
        TimezoneLookupExport,
    )
}


@dataclass(frozen=True)
class CsvStrategyExport:
    """Version-tagged, self-describing strategy document."""

    version: str
    name: str
    identification_columns: frozenset[str] = frozenset()
    field_mappings: dict[TransferField, FieldMappingExport] = field(default_factory=dict)
    attribute_mappings: tuple[AttributeColumnMapping, ...] = ()


# -----------------------------------------------------------------------------
# Reference resolution
# -----------------------------------------------------------------------------


class ReferenceType(str, Enum):
    """Kind of entity an export refers to by name or code."""

    ACCOUNT = "account"
    CURRENCY = "currency"
    CATEGORY = "category"


@dataclass(frozen=True)
class UnresolvedReference:
    """A name or code in an export with no matching entity in this database."""

    type: ReferenceType
    name: str
    field_type: TransferField


@dataclass(frozen=True)
class MapToExisting:
    """Bind the unresolved name to an existing entity id."""

    entity_id: int


@dataclass(frozen=True)
class CreateNew:
    """Create a new entity under ``name`` (a currency code for currencies)."""

    name: str


Resolution = Union[MapToExisting, CreateNew]


@dataclass(frozen=True)
class ImportParseResult:
    strategy_name: str
    export: CsvStrategyExport
    unresolved_references: tuple[UnresolvedReference, ...] = ()

    @property
    def is_fully_resolved(self) -> bool:
        return not self.unresolved_references
