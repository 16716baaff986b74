"""
Row mapper: one CSV row plus a strategy plus a reference snapshot gives a
Transfer or a row error.

Pure over its inputs (the snapshot is taken by the caller), so a batch can be
mapped, accounts created, a fresh snapshot taken and the batch mapped again.
``map_row`` never raises for bad data: every data problem becomes a
``MappingError`` carrying the row index and a message.

Step order matters and is part of the contract:

    1. required mappings present        5. accounts (then flip)
    2. signed raw amount                6. timestamp
    3. currency                         7. description
    4. flip decision                    8. Money from abs(raw amount)

after which the new-account name and the attributes are collected.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Union

from ledger_ingestion.domain.types import (
    REQUIRED_FIELDS,
    AccountLookupMapping,
    AmountMode,
    AmountParsingMapping,
    CsvAccountMapping,
    CsvColumn,
    CsvImportStrategy,
    CsvRow,
    CurrencyLookupMapping,
    DateTimeParsingMapping,
    DirectColumnMapping,
    FieldMapping,
    HardCodedAccountMapping,
    HardCodedCurrencyMapping,
    RegexAccountMapping,
    TransferField,
)
from ledger_ingestion.mapping.datetime_parser import parse_timestamp
from ledger_kernel.domain.reference_snapshot import ReferenceSnapshot
from ledger_kernel.domain.values import (
    NEW_ACCOUNT_PLACEHOLDER_ID,
    UNCATEGORIZED_ID,
    CurrencyInfo,
    Money,
    Transfer,
)
from ledger_kernel.exceptions import LedgerKernelError
from ledger_kernel.logging_config import get_logger

logger = get_logger("ingestion.mapper")

# Characters removed from an amount cell before it is parsed.
_AMOUNT_NOISE = str.maketrans("", "", ", $€£")

Attributes = tuple[tuple[str, str], ...]


# -----------------------------------------------------------------------------
# Result types
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class MappingSuccess:
    """A mapped row.  ``new_account_name`` is set when the target account must be created."""

    transfer: Transfer
    new_account_name: str | None = None
    attributes: Attributes = ()


@dataclass(frozen=True)
class MappingError:
    row_index: int
    message: str


MappingResult = Union[MappingSuccess, MappingError]


@dataclass(frozen=True)
class NewAccount:
    name: str
    category_id: int = UNCATEGORIZED_ID


@dataclass(frozen=True)
class TransferWithAttributes:
    transfer: Transfer
    attributes: Attributes
    row_index: int


@dataclass(frozen=True)
class ImportPreparation:
    """
    Outcome of mapping a whole batch.

    ``existing_account_matches`` maps the name of every existing account
    used as source or target by a valid transfer to its id.
    """

    valid_transfers: tuple[TransferWithAttributes, ...] = ()
    error_rows: tuple[MappingError, ...] = ()
    new_accounts: frozenset[NewAccount] = frozenset()
    existing_account_matches: Mapping[str, int] = field(default_factory=dict)

    @property
    def error_count(self) -> int:
        return len(self.error_rows)

    def error_summary(self, limit: int = 5) -> str:
        """Error count plus the first ``limit`` row messages, one per line."""
        if not self.error_rows:
            return "0 rows failed"
        lines = [f"{self.error_count} row(s) failed"]
        for error in self.error_rows[:limit]:
            lines.append(f"  row {error.row_index}: {error.message}")
        if self.error_count > limit:
            lines.append(f"  ... and {self.error_count - limit} more")
        return "\n".join(lines)


class _RowMappingError(Exception):
    """Internal: aborts mapping of one row with a user-facing message."""


# -----------------------------------------------------------------------------
# Pure helpers
# -----------------------------------------------------------------------------


def parse_amount_value(value: str) -> Decimal:
    """
    Parse a display amount such as ``" 1,234.56 "`` or ``"-$12.00"``.

    Thousands separators, spaces and the symbols $, € and £ are removed.

    Raises:
        ValueError: ``Invalid amount: '<value>'`` when nothing numeric remains.
    """
    cleaned = value.strip().translate(_AMOUNT_NOISE)
    try:
        amount = Decimal(cleaned)
    except InvalidOperation as e:
        raise ValueError(f"Invalid amount: '{value}'") from e
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: '{value}'")
    return amount


# -----------------------------------------------------------------------------
# Mapper
# -----------------------------------------------------------------------------


class CsvTransferMapper:
    """
    Maps CSV rows to transfers using one strategy.

    Args:
        strategy: The import strategy.
        columns: Columns of the file being imported.
        snapshot: Accounts, currencies and categories as of now.
        account_mappings: Saved routing rules for this strategy, applied
            before any name lookup.
    """

    def __init__(
        self,
        strategy: CsvImportStrategy,
        columns: Iterable[CsvColumn],
        snapshot: ReferenceSnapshot,
        account_mappings: Sequence[CsvAccountMapping] = (),
    ):
        self.strategy = strategy
        self.snapshot = snapshot
        self.account_mappings = tuple(account_mappings)
        self._column_index = {c.original_name: c.column_index for c in columns}

    # -- batch ---------------------------------------------------------------

    def prepare_import(self, rows: Iterable[CsvRow]) -> ImportPreparation:
        """Map every row independently and collect accounts to create."""
        valid: list[TransferWithAttributes] = []
        errors: list[MappingError] = []
        new_accounts: dict[str, NewAccount] = {}
        category_id = self._new_account_category()

        for row in rows:
            result = self.map_row(row)
            if isinstance(result, MappingError):
                logger.debug(
                    "row_mapping_failed",
                    extra={"row_index": result.row_index, "error": result.message},
                )
                errors.append(result)
                continue
            valid.append(
                TransferWithAttributes(
                    transfer=result.transfer,
                    attributes=result.attributes,
                    row_index=row.row_index,
                )
            )
            if result.new_account_name is not None:
                new_accounts.setdefault(
                    result.new_account_name,
                    NewAccount(name=result.new_account_name, category_id=category_id),
                )

        used_ids = set()
        for item in valid:
            used_ids.add(item.transfer.source_account_id)
            used_ids.add(item.transfer.target_account_id)
        matches = {
            name: account.id
            for name, account in self.snapshot.accounts_by_name.items()
            if account.id in used_ids
        }

        return ImportPreparation(
            valid_transfers=tuple(valid),
            error_rows=tuple(errors),
            new_accounts=frozenset(new_accounts.values()),
            existing_account_matches=matches,
        )

    def _new_account_category(self) -> int:
        target = self.strategy.mapping_for(TransferField.TARGET_ACCOUNT)
        if isinstance(target, (AccountLookupMapping, RegexAccountMapping)):
            return target.default_category_id
        return UNCATEGORIZED_ID

    # -- single row ----------------------------------------------------------

    def map_row(self, row: CsvRow) -> MappingResult:
        """Map one row.  Never raises for bad data."""
        try:
            return self._map_row(row)
        except (_RowMappingError, ValueError, ArithmeticError, LedgerKernelError) as e:
            return MappingError(row_index=row.row_index, message=str(e) or type(e).__name__)

    def _map_row(self, row: CsvRow) -> MappingResult:
        values = row.values
        mappings = self.strategy.field_mappings
        for required in REQUIRED_FIELDS:
            if required not in mappings:
                return MappingError(row.row_index, f"Missing {required.value} mapping")

        amount_mapping = mappings[TransferField.AMOUNT]
        raw_amount = self._parse_amount(amount_mapping, values)

        currency = self._parse_currency(mappings[TransferField.CURRENCY], values)
        if currency is None:
            return MappingError(row.row_index, "Currency not found")

        flip = (
            isinstance(amount_mapping, AmountParsingMapping)
            and amount_mapping.flip_accounts_on_positive
            and raw_amount > 0
        )

        target_mapping = mappings[TransferField.TARGET_ACCOUNT]
        source_id, _ = self._resolve_account(mappings[TransferField.SOURCE_ACCOUNT], values)
        target_id, new_account_name = self._resolve_account(target_mapping, values)
        if flip:
            source_id, target_id = target_id, source_id

        timestamp_mapping = mappings[TransferField.TIMESTAMP]
        if not isinstance(timestamp_mapping, DateTimeParsingMapping):
            raise _RowMappingError(_wrong_type(TransferField.TIMESTAMP, timestamp_mapping))
        date_value = self._value(timestamp_mapping.date_column_name, values)
        time_value = (
            self._value(timestamp_mapping.time_column_name, values)
            if timestamp_mapping.time_column_name
            else None
        )
        try:
            timestamp = parse_timestamp(timestamp_mapping, date_value, time_value)
        except ValueError:
            return MappingError(row.row_index, "Failed to parse timestamp")

        description = self._parse_description(mappings[TransferField.DESCRIPTION], values)

        transfer = Transfer(
            timestamp=timestamp,
            description=description,
            source_account_id=source_id,
            target_account_id=target_id,
            amount=Money.from_display_value(abs(raw_amount), currency),
        )
        return MappingSuccess(
            transfer=transfer,
            new_account_name=new_account_name,
            attributes=self._extract_attributes(values),
        )

    # -- field parsers -------------------------------------------------------

    def _parse_amount(self, mapping: FieldMapping, values: Sequence[str]) -> Decimal:
        if not isinstance(mapping, AmountParsingMapping):
            raise _RowMappingError(_wrong_type(TransferField.AMOUNT, mapping))

        if mapping.mode == AmountMode.SINGLE_COLUMN:
            amount = parse_amount_value(self._value(mapping.amount_column_name, values))
            return -amount if mapping.negate_values else amount

        credit_value = self._value(mapping.credit_column_name, values)
        debit_value = self._value(mapping.debit_column_name, values)
        credit = parse_amount_value(credit_value) if credit_value.strip() else Decimal(0)
        debit = parse_amount_value(debit_value) if debit_value.strip() else Decimal(0)
        return credit - debit

    def _parse_currency(self, mapping: FieldMapping, values: Sequence[str]) -> CurrencyInfo | None:
        if isinstance(mapping, HardCodedCurrencyMapping):
            return self.snapshot.currencies_by_id.get(mapping.currency_id)
        if isinstance(mapping, CurrencyLookupMapping):
            return self.snapshot.currency_by_code(self._value(mapping.column_name, values))
        raise _RowMappingError(_wrong_type(TransferField.CURRENCY, mapping))

    def _parse_description(self, mapping: FieldMapping, values: Sequence[str]) -> str:
        if not isinstance(mapping, DirectColumnMapping):
            raise _RowMappingError(_wrong_type(TransferField.DESCRIPTION, mapping))
        return self._first_non_blank(mapping.all_columns, values)

    def _resolve_account(
        self,
        mapping: FieldMapping,
        values: Sequence[str],
    ) -> tuple[int, str | None]:
        """
        Return (account id, name of an account still to be created).

        An unknown name resolves to NEW_ACCOUNT_PLACEHOLDER_ID.
        """
        if isinstance(mapping, HardCodedAccountMapping):
            return mapping.account_id, None

        if isinstance(mapping, AccountLookupMapping):
            routed = self._route(mapping.all_columns, values)
            if routed is not None:
                return routed, None
            name = self._first_non_blank(mapping.all_columns, values).strip()
            create_if_missing = mapping.create_if_missing
        elif isinstance(mapping, RegexAccountMapping):
            routed = self._route(mapping.all_columns, values)
            if routed is not None:
                return routed, None
            name = self._regex_account_name(mapping, values)
            create_if_missing = True
        else:
            raise _RowMappingError(f"Invalid account mapping type: {type(mapping).__name__}")

        account = self.snapshot.account_named(name)
        if account is not None:
            return account.id, None
        if not name:
            return NEW_ACCOUNT_PLACEHOLDER_ID, None
        if not create_if_missing:
            raise _RowMappingError(f"Account not found: {name}")
        return NEW_ACCOUNT_PLACEHOLDER_ID, name

    def _regex_account_name(self, mapping: RegexAccountMapping, values: Sequence[str]) -> str:
        primary = self._value(mapping.column_name, values).strip()
        for rule in mapping.rules:
            if rule.compiled().fullmatch(primary):
                return rule.account_name.strip()
        return self._first_non_blank(mapping.all_columns, values).strip()

    def _route(self, columns: Sequence[str], values: Sequence[str]) -> int | None:
        """First saved account mapping on one of ``columns`` whose pattern matches."""
        for account_mapping in self.account_mappings:
            if account_mapping.column_name not in columns:
                continue
            if account_mapping.column_name not in self._column_index:
                continue
            if account_mapping.matches(self._value(account_mapping.column_name, values)):
                return account_mapping.account_id
        return None

    def _extract_attributes(self, values: Sequence[str]) -> Attributes:
        attributes = []
        for attribute_mapping in self.strategy.attribute_mappings:
            if attribute_mapping.column_name not in self._column_index:
                continue
            value = self._value(attribute_mapping.column_name, values).strip()
            if value:
                attributes.append((attribute_mapping.attribute_type_name, value))
        return tuple(attributes)

    # -- cell access ---------------------------------------------------------

    def _value(self, column_name: str | None, values: Sequence[str]) -> str:
        index = self._column_index.get(column_name) if column_name else None
        if index is None:
            raise _RowMappingError(f"Column not found: {column_name}")
        return values[index] if index < len(values) else ""

    def _first_non_blank(self, columns: Iterable[str], values: Sequence[str]) -> str:
        for column in columns:
            value = self._value(column, values)
            if value.strip():
                return value
        return ""


def _wrong_type(transfer_field: TransferField, mapping: FieldMapping) -> str:
    return f"Invalid {transfer_field.value} mapping type: {type(mapping).__name__}"
