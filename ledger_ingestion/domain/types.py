"""
ledger_ingestion.domain.types -- Pure frozen dataclasses for CSV import strategies.

ZERO I/O. Imports only from ledger_kernel.domain and ledger_kernel.exceptions.

The field mapping model is a closed union: every conversion point (row
mapper, export service, codec) dispatches on the concrete variant type and
fails explicitly on anything else.  Mode-specific required fields are
checked in ``__post_init__`` so an invalid mapping can never be built.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import ClassVar, Union
from uuid import UUID, uuid4

from ledger_kernel.domain.values import UNCATEGORIZED_ID
from ledger_kernel.exceptions import InvalidFieldMappingError, InvalidStrategyError


# =============================================================================
# Enums
# =============================================================================


class TransferField(str, Enum):
    """Transfer attribute a field mapping populates."""

    SOURCE_ACCOUNT = "SOURCE_ACCOUNT"
    TARGET_ACCOUNT = "TARGET_ACCOUNT"
    TIMESTAMP = "TIMESTAMP"
    DESCRIPTION = "DESCRIPTION"
    AMOUNT = "AMOUNT"
    CURRENCY = "CURRENCY"
    TIMEZONE = "TIMEZONE"  # Optional


REQUIRED_FIELDS: tuple[TransferField, ...] = (
    TransferField.SOURCE_ACCOUNT,
    TransferField.TARGET_ACCOUNT,
    TransferField.TIMESTAMP,
    TransferField.DESCRIPTION,
    TransferField.AMOUNT,
    TransferField.CURRENCY,
)


class AmountMode(str, Enum):
    """How the signed amount is laid out in the file."""

    SINGLE_COLUMN = "SINGLE_COLUMN"  # One signed amount column
    CREDIT_DEBIT_COLUMNS = "CREDIT_DEBIT_COLUMNS"  # Separate credit and debit columns


class MappingKind(str, Enum):
    """Serialization tag for each field mapping variant."""

    HARD_CODED_ACCOUNT = "HardCodedAccount"
    ACCOUNT_LOOKUP = "AccountLookup"
    REGEX_ACCOUNT = "RegexAccount"
    DATE_TIME_PARSING = "DateTimeParsing"
    DIRECT_COLUMN = "DirectColumn"
    AMOUNT_PARSING = "AmountParsing"
    HARD_CODED_CURRENCY = "HardCodedCurrency"
    CURRENCY_LOOKUP = "CurrencyLookup"
    HARD_CODED_TIMEZONE = "HardCodedTimezone"
    TIMEZONE_LOOKUP = "TimezoneLookup"


# =============================================================================
# Construction-time validation helpers
# =============================================================================


def _require_text(kind: MappingKind, label: str, value: str | None) -> None:
    if value is None or not str(value).strip():
        raise InvalidFieldMappingError(kind.value, f"{label} is required")


def _require_columns(kind: MappingKind, label: str, columns: Iterable[str]) -> None:
    for column in columns:
        _require_text(kind, label, column)


def _coerce_field_type(kind: MappingKind, value: TransferField | str) -> TransferField:
    try:
        return TransferField(value)
    except ValueError as e:
        raise InvalidFieldMappingError(kind.value, f"unknown field type {value!r}") from e


# =============================================================================
# Field mapping variants
# =============================================================================


@dataclass(frozen=True)
class HardCodedAccountMapping:
    """Always resolves to one fixed account."""

    kind: ClassVar[MappingKind] = MappingKind.HARD_CODED_ACCOUNT

    field_type: TransferField
    account_id: int
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        object.__setattr__(self, "field_type", _coerce_field_type(self.kind, self.field_type))


@dataclass(frozen=True)
class AccountLookupMapping:
    """Resolves an account by the name in a column, falling back to other columns when blank."""

    kind: ClassVar[MappingKind] = MappingKind.ACCOUNT_LOOKUP

    field_type: TransferField
    column_name: str
    fallback_columns: tuple[str, ...] = ()
    create_if_missing: bool = True
    default_category_id: int = UNCATEGORIZED_ID
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        object.__setattr__(self, "field_type", _coerce_field_type(self.kind, self.field_type))
        object.__setattr__(self, "fallback_columns", tuple(self.fallback_columns))
        _require_text(self.kind, "column_name", self.column_name)
        _require_columns(self.kind, "fallback column", self.fallback_columns)

    @property
    def all_columns(self) -> tuple[str, ...]:
        """Primary column followed by the fallbacks, in lookup order."""
        return (self.column_name, *self.fallback_columns)


@dataclass(frozen=True)
class RegexRule:
    """A pattern that, when it matches the whole column value, names the account."""

    pattern: str
    account_name: str

    def compiled(self) -> re.Pattern[str]:
        return re.compile(self.pattern, re.IGNORECASE)


@dataclass(frozen=True)
class RegexAccountMapping:
    """
    Resolves an account by testing ordered regex rules against a column.

    The first rule whose pattern full-matches the primary column value
    (case-insensitive) gives the account name; with no match the name is the
    first non-blank value of the primary and fallback columns.
    """

    kind: ClassVar[MappingKind] = MappingKind.REGEX_ACCOUNT

    field_type: TransferField
    column_name: str
    rules: tuple[RegexRule, ...] = ()
    fallback_columns: tuple[str, ...] = ()
    default_category_id: int = UNCATEGORIZED_ID
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        object.__setattr__(self, "field_type", _coerce_field_type(self.kind, self.field_type))
        object.__setattr__(self, "rules", tuple(self.rules))
        object.__setattr__(self, "fallback_columns", tuple(self.fallback_columns))
        _require_text(self.kind, "column_name", self.column_name)
        _require_columns(self.kind, "fallback column", self.fallback_columns)
        for rule in self.rules:
            _require_text(self.kind, "rule account_name", rule.account_name)
            try:
                rule.compiled()
            except re.error as e:
                raise InvalidFieldMappingError(
                    self.kind.value, f"invalid pattern {rule.pattern!r}: {e}"
                ) from e

    @property
    def all_columns(self) -> tuple[str, ...]:
        return (self.column_name, *self.fallback_columns)


DEFAULT_TIME = "12:00:00"


@dataclass(frozen=True)
class DateTimeParsingMapping:
    """Derives a timestamp from a date column and an optional time column."""

    kind: ClassVar[MappingKind] = MappingKind.DATE_TIME_PARSING

    field_type: TransferField
    date_column_name: str
    date_format: str
    time_column_name: str | None = None
    time_format: str | None = None
    default_time: str = DEFAULT_TIME
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        object.__setattr__(self, "field_type", _coerce_field_type(self.kind, self.field_type))
        _require_text(self.kind, "date_column_name", self.date_column_name)
        _require_text(self.kind, "date_format", self.date_format)
        if self.time_column_name is not None:
            _require_text(self.kind, "time_column_name", self.time_column_name)


@dataclass(frozen=True)
class DirectColumnMapping:
    """Copies a column value verbatim (first non-blank of primary and fallbacks)."""

    kind: ClassVar[MappingKind] = MappingKind.DIRECT_COLUMN

    field_type: TransferField
    column_name: str
    fallback_columns: tuple[str, ...] = ()
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        object.__setattr__(self, "field_type", _coerce_field_type(self.kind, self.field_type))
        object.__setattr__(self, "fallback_columns", tuple(self.fallback_columns))
        _require_text(self.kind, "column_name", self.column_name)
        _require_columns(self.kind, "fallback column", self.fallback_columns)

    @property
    def all_columns(self) -> tuple[str, ...]:
        return (self.column_name, *self.fallback_columns)


@dataclass(frozen=True)
class AmountParsingMapping:
    """
    Derives a signed amount.

    SINGLE_COLUMN requires ``amount_column_name``; CREDIT_DEBIT_COLUMNS
    requires both ``credit_column_name`` and ``debit_column_name``.
    """

    kind: ClassVar[MappingKind] = MappingKind.AMOUNT_PARSING

    field_type: TransferField
    mode: AmountMode
    amount_column_name: str | None = None
    credit_column_name: str | None = None
    debit_column_name: str | None = None
    negate_values: bool = False
    flip_accounts_on_positive: bool = False
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        object.__setattr__(self, "field_type", _coerce_field_type(self.kind, self.field_type))
        try:
            object.__setattr__(self, "mode", AmountMode(self.mode))
        except ValueError as e:
            raise InvalidFieldMappingError(self.kind.value, f"unknown mode {self.mode!r}") from e

        if self.mode == AmountMode.SINGLE_COLUMN:
            _require_text(self.kind, "amount_column_name for SINGLE_COLUMN mode", self.amount_column_name)
        else:
            _require_text(self.kind, "credit_column_name for CREDIT_DEBIT_COLUMNS mode", self.credit_column_name)
            _require_text(self.kind, "debit_column_name for CREDIT_DEBIT_COLUMNS mode", self.debit_column_name)


@dataclass(frozen=True)
class HardCodedCurrencyMapping:
    kind: ClassVar[MappingKind] = MappingKind.HARD_CODED_CURRENCY

    field_type: TransferField
    currency_id: int
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        object.__setattr__(self, "field_type", _coerce_field_type(self.kind, self.field_type))


@dataclass(frozen=True)
class CurrencyLookupMapping:
    """Reads an ISO currency code from a column."""

    kind: ClassVar[MappingKind] = MappingKind.CURRENCY_LOOKUP

    field_type: TransferField
    column_name: str
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        object.__setattr__(self, "field_type", _coerce_field_type(self.kind, self.field_type))
        _require_text(self.kind, "column_name", self.column_name)


@dataclass(frozen=True)
class HardCodedTimezoneMapping:
    kind: ClassVar[MappingKind] = MappingKind.HARD_CODED_TIMEZONE

    field_type: TransferField
    timezone_id: str
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        object.__setattr__(self, "field_type", _coerce_field_type(self.kind, self.field_type))
        _require_text(self.kind, "timezone_id", self.timezone_id)


@dataclass(frozen=True)
class TimezoneLookupMapping:
    kind: ClassVar[MappingKind] = MappingKind.TIMEZONE_LOOKUP

    field_type: TransferField
    column_name: str
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        object.__setattr__(self, "field_type", _coerce_field_type(self.kind, self.field_type))
        _require_text(self.kind, "column_name", self.column_name)


FieldMapping = Union[
    HardCodedAccountMapping,
    AccountLookupMapping,
    RegexAccountMapping,
    DateTimeParsingMapping,
    DirectColumnMapping,
    AmountParsingMapping,
    HardCodedCurrencyMapping,
    CurrencyLookupMapping,
    HardCodedTimezoneMapping,
    TimezoneLookupMapping,
]

FIELD_MAPPING_TYPES: tuple[type, ...] = (
    HardCodedAccountMapping,
    AccountLookupMapping,
    RegexAccountMapping,
    DateTimeParsingMapping,
    DirectColumnMapping,
    AmountParsingMapping,
    HardCodedCurrencyMapping,
    CurrencyLookupMapping,
    HardCodedTimezoneMapping,
    TimezoneLookupMapping,
)


# =============================================================================
# Strategy
# =============================================================================


@dataclass(frozen=True)
class AttributeColumnMapping:
    """Captures a leftover column as a free-form transfer attribute."""

    column_name: str
    attribute_type_name: str


@dataclass(frozen=True)
class CsvImportStrategy:
    """
    A named, reusable CSV-to-Transfer mapping configuration.

    Invariant: one mapping per TransferField key, and each mapping's
    ``field_type`` equals its key.
    """

    name: str
    identification_columns: frozenset[str] = frozenset()
    field_mappings: Mapping[TransferField, FieldMapping] = field(default_factory=dict)
    attribute_mappings: tuple[AttributeColumnMapping, ...] = ()
    id: UUID = field(default_factory=uuid4)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise InvalidStrategyError(repr(self.name), "name is required")
        object.__setattr__(self, "identification_columns", frozenset(self.identification_columns))
        object.__setattr__(self, "attribute_mappings", tuple(self.attribute_mappings))

        mappings: dict[TransferField, FieldMapping] = {}
        for key, mapping in dict(self.field_mappings).items():
            try:
                key = TransferField(key)
            except ValueError as e:
                raise InvalidStrategyError(self.name, f"unknown field {key!r}") from e
            if not isinstance(mapping, FIELD_MAPPING_TYPES):
                raise InvalidStrategyError(
                    self.name, f"{key.value} mapping has unsupported type {type(mapping).__name__}"
                )
            if mapping.field_type != key:
                raise InvalidStrategyError(
                    self.name,
                    f"mapping keyed under {key.value} populates {mapping.field_type.value}",
                )
            mappings[key] = mapping
        object.__setattr__(self, "field_mappings", mappings)

    def mapping_for(self, transfer_field: TransferField) -> FieldMapping | None:
        return self.field_mappings.get(transfer_field)

    def missing_fields(self) -> list[TransferField]:
        """Required fields with no mapping, in declaration order."""
        return [f for f in REQUIRED_FIELDS if f not in self.field_mappings]

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields()

    def matches_columns(self, headings: Iterable[str]) -> bool:
        """Exact, order-independent, case-sensitive heading set equality."""
        return self.identification_columns == frozenset(headings)


# =============================================================================
# CSV input
# =============================================================================


@dataclass(frozen=True)
class CsvColumn:
    """One column of a CSV file (0-based index, literal header text)."""

    column_index: int
    original_name: str
    id: UUID = field(default_factory=uuid4)


@dataclass(frozen=True)
class CsvRow:
    """One data row (1-based index) with its raw string cells."""

    row_index: int
    values: tuple[str, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(self.values))


@dataclass(frozen=True)
class CsvTable:
    """Headings plus rows, as handed over by the CSV reader."""

    headings: tuple[str, ...]
    rows: tuple[CsvRow, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "headings", tuple(self.headings))
        object.__setattr__(self, "rows", tuple(self.rows))

    @property
    def columns(self) -> tuple[CsvColumn, ...]:
        return tuple(CsvColumn(column_index=i, original_name=h) for i, h in enumerate(self.headings))


# =============================================================================
# Persisted account routing
# =============================================================================


@dataclass(frozen=True)
class CsvAccountMapping:
    """
    User-saved rule routing a column value straight to an existing account.

    Applied before name lookup.  ``value_pattern`` is matched against the
    whole trimmed value of ``column_name``, case-insensitively.
    """

    strategy_id: UUID
    column_name: str
    value_pattern: str
    account_id: int
    id: UUID = field(default_factory=uuid4)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.column_name or not self.column_name.strip():
            raise InvalidFieldMappingError("CsvAccountMapping", "column_name is required")
        try:
            re.compile(self.value_pattern, re.IGNORECASE)
        except re.error as e:
            raise InvalidFieldMappingError(
                "CsvAccountMapping", f"invalid pattern {self.value_pattern!r}: {e}"
            ) from e

    def matches(self, value: str) -> bool:
        return re.fullmatch(self.value_pattern, value.strip(), re.IGNORECASE) is not None
