"""
StrategyExportService -- converts strategies to and from the portable format.

Responsibility:
    ``to_export`` swaps database ids for names and codes.  ``parse_export``
    lists the names and codes this database cannot resolve.
    ``create_strategy_from_export`` applies the caller's resolutions
    (creating entities first) and rebuilds a strategy with fresh ids.

Architecture position:
    Ingestion > Services -- imperative shell.  Reads through
    ReferenceSelector, writes through ReferenceDataService and StrategyStore.
    Flushes, never commits.

Invariants enforced:
    - A rebuilt strategy never holds a dangling or defaulted reference: any
      name still unresolved after resolutions raises UnresolvedReferenceError.
    - CreateNew resolutions run before any lookup, and the lookup uses a
      fresh snapshot, so created entities are visible.
    - The Uncategorized category name always resolves: to a stored category
      of that name when one exists, otherwise to UNCATEGORIZED_ID.

Failure modes:
    - UnresolvedReferenceError for an account, currency or category name
      with no entity and no resolution.
    - AccountNotFoundError / CurrencyNotFoundError / CategoryNotFoundError
      for a MapToExisting naming an unknown id.
    - DuplicateStrategyNameError from import_strategy.
"""

from __future__ import annotations

from collections.abc import Mapping
from uuid import uuid4

from sqlalchemy.orm import Session

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
    AccountLookupMapping,
    AmountParsingMapping,
    CsvImportStrategy,
    CurrencyLookupMapping,
    DateTimeParsingMapping,
    DirectColumnMapping,
    FieldMapping,
    HardCodedAccountMapping,
    HardCodedCurrencyMapping,
    HardCodedTimezoneMapping,
    RegexAccountMapping,
    TimezoneLookupMapping,
)
from ledger_ingestion.services.strategy_store import StrategyStore
from ledger_kernel.config import LedgerSettings
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.reference_snapshot import ReferenceSnapshot
from ledger_kernel.domain.values import UNCATEGORIZED_ID, UNCATEGORIZED_NAME
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    CategoryNotFoundError,
    CurrencyNotFoundError,
    UnresolvedReferenceError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.selectors.reference_selector import ReferenceSelector
from ledger_kernel.services.reference_service import ReferenceDataService

logger = get_logger("ingestion.export_service")

UNKNOWN_ACCOUNT_NAME = "Unknown Account"
UNKNOWN_CURRENCY_CODE = "XXX"

Resolutions = Mapping[UnresolvedReference, Resolution]


class StrategyExportService:
    """Export, parse and re-create strategies against this database."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        app_version: str | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._app_version = app_version or LedgerSettings().app_version
        self._selector = ReferenceSelector(session)
        self._reference_service = ReferenceDataService(session, clock=self._clock)

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    def to_export(self, strategy: CsvImportStrategy) -> CsvStrategyExport:
        """Portable copy of ``strategy``: ids replaced by names and codes."""
        snapshot = self._selector.snapshot()
        with LogContext.bind(strategy_name=strategy.name):
            export = CsvStrategyExport(
                version=self._app_version,
                name=strategy.name,
                identification_columns=strategy.identification_columns,
                field_mappings={
                    key: self._mapping_to_export(mapping, snapshot)
                    for key, mapping in strategy.field_mappings.items()
                },
                attribute_mappings=strategy.attribute_mappings,
            )
            logger.info(
                "strategy_exported",
                extra={
                    "strategy_id": str(strategy.id),
                    "version": export.version,
                    "mapped_fields": sorted(f.value for f in export.field_mappings),
                },
            )
        return export

    def _category_name(self, category_id: int, snapshot: ReferenceSnapshot, mapping: FieldMapping) -> str:
        if category_id != UNCATEGORIZED_ID and category_id not in snapshot.categories_by_id:
            self._log_dangling(mapping, "category", category_id)
        return snapshot.category_name(category_id)

    def _log_dangling(self, mapping: FieldMapping, reference_type: str, entity_id: int) -> None:
        logger.warning(
            "strategy_export_dangling_reference",
            extra={
                "field_type": mapping.field_type.value,
                "reference_type": reference_type,
                "entity_id": entity_id,
            },
        )

    def _mapping_to_export(self, mapping: FieldMapping, snapshot: ReferenceSnapshot) -> FieldMappingExport:
        if isinstance(mapping, HardCodedAccountMapping):
            account = snapshot.accounts_by_id.get(mapping.account_id)
            if account is None:
                self._log_dangling(mapping, "account", mapping.account_id)
            return HardCodedAccountExport(
                field_type=mapping.field_type,
                account_name=account.name if account is not None else UNKNOWN_ACCOUNT_NAME,
            )
        if isinstance(mapping, AccountLookupMapping):
            return AccountLookupExport(
                field_type=mapping.field_type,
                column_name=mapping.column_name,
                fallback_columns=mapping.fallback_columns,
                create_if_missing=mapping.create_if_missing,
                default_category_name=self._category_name(mapping.default_category_id, snapshot, mapping),
            )
        if isinstance(mapping, RegexAccountMapping):
            return RegexAccountExport(
                field_type=mapping.field_type,
                column_name=mapping.column_name,
                rules=mapping.rules,
                fallback_columns=mapping.fallback_columns,
                default_category_name=self._category_name(mapping.default_category_id, snapshot, mapping),
            )
        if isinstance(mapping, DateTimeParsingMapping):
            return DateTimeParsingExport(
                field_type=mapping.field_type,
                date_column_name=mapping.date_column_name,
                date_format=mapping.date_format,
                time_column_name=mapping.time_column_name,
                time_format=mapping.time_format,
                default_time=mapping.default_time,
            )
        if isinstance(mapping, DirectColumnMapping):
            return DirectColumnExport(
                field_type=mapping.field_type,
                column_name=mapping.column_name,
                fallback_columns=mapping.fallback_columns,
            )
        if isinstance(mapping, AmountParsingMapping):
            return AmountParsingExport(
                field_type=mapping.field_type,
                mode=mapping.mode,
                amount_column_name=mapping.amount_column_name,
                credit_column_name=mapping.credit_column_name,
                debit_column_name=mapping.debit_column_name,
                negate_values=mapping.negate_values,
                flip_accounts_on_positive=mapping.flip_accounts_on_positive,
            )
        if isinstance(mapping, HardCodedCurrencyMapping):
            currency = snapshot.currencies_by_id.get(mapping.currency_id)
            if currency is None:
                self._log_dangling(mapping, "currency", mapping.currency_id)
            return HardCodedCurrencyExport(
                field_type=mapping.field_type,
                currency_code=currency.code if currency is not None else UNKNOWN_CURRENCY_CODE,
            )
        if isinstance(mapping, CurrencyLookupMapping):
            return CurrencyLookupExport(field_type=mapping.field_type, column_name=mapping.column_name)
        if isinstance(mapping, HardCodedTimezoneMapping):
            return HardCodedTimezoneExport(field_type=mapping.field_type, timezone_id=mapping.timezone_id)
        if isinstance(mapping, TimezoneLookupMapping):
            return TimezoneLookupExport(field_type=mapping.field_type, column_name=mapping.column_name)
        raise TypeError(f"Unsupported field mapping type: {type(mapping).__name__}")

    # -------------------------------------------------------------------------
    # Parse
    # -------------------------------------------------------------------------

    def parse_export(self, export: CsvStrategyExport) -> ImportParseResult:
        """
        List the references in ``export`` that this database cannot resolve.

        Checked: hard-coded account names, hard-coded currency codes, and the
        default category of account lookup and regex mappings (Uncategorized
        always resolves).  Duplicates by (type, name) keep the first
        occurrence.
        """
        snapshot = self._selector.snapshot()
        seen: set[tuple[ReferenceType, str]] = set()
        unresolved: list[UnresolvedReference] = []

        for field_type, mapping in export.field_mappings.items():
            ref = self._unresolved_in(mapping, snapshot)
            if ref is None:
                continue
            key = (ref[0], ref[1])
            if key in seen:
                continue
            seen.add(key)
            unresolved.append(UnresolvedReference(type=ref[0], name=ref[1], field_type=field_type))

        result = ImportParseResult(
            strategy_name=export.name,
            export=export,
            unresolved_references=tuple(unresolved),
        )
        logger.info(
            "strategy_export_parsed",
            extra={
                "strategy_name": export.name,
                "version": export.version,
                "unresolved_count": len(unresolved),
            },
        )
        return result

    @staticmethod
    def _unresolved_in(
        mapping: FieldMappingExport,
        snapshot: ReferenceSnapshot,
    ) -> tuple[ReferenceType, str] | None:
        if isinstance(mapping, HardCodedAccountExport):
            if snapshot.account_named(mapping.account_name) is None:
                return ReferenceType.ACCOUNT, mapping.account_name
        elif isinstance(mapping, (AccountLookupExport, RegexAccountExport)):
            name = mapping.default_category_name
            if name != UNCATEGORIZED_NAME and name not in snapshot.categories_by_name:
                return ReferenceType.CATEGORY, name
        elif isinstance(mapping, HardCodedCurrencyExport):
            if snapshot.currency_by_code(mapping.currency_code) is None:
                return ReferenceType.CURRENCY, mapping.currency_code
        return None

    # -------------------------------------------------------------------------
    # Rebuild
    # -------------------------------------------------------------------------

    def create_strategy_from_export(
        self,
        export: CsvStrategyExport,
        resolutions: Resolutions | None = None,
    ) -> CsvImportStrategy:
        """
        Rebuild an (unsaved) strategy from ``export``.

        Every CreateNew resolution is performed first.  A fresh snapshot is
        then taken and MapToExisting resolutions bind names to ids.  Mapping
        ids and the strategy id are new.

        Raises:
            UnresolvedReferenceError: A referenced name is still unknown.
            AccountNotFoundError, CategoryNotFoundError, CurrencyNotFoundError:
                A MapToExisting id does not exist.
        """
        resolutions = resolutions or {}
        accounts: dict[str, int] = {}
        categories: dict[str, int] = {}
        currencies: dict[str, int] = {}
        targets = {
            ReferenceType.ACCOUNT: accounts,
            ReferenceType.CATEGORY: categories,
            ReferenceType.CURRENCY: currencies,
        }

        with LogContext.bind(strategy_name=export.name):
            for ref, resolution in resolutions.items():
                if isinstance(resolution, CreateNew):
                    targets[ref.type][ref.name] = self._create(ref, resolution)

            snapshot = self._selector.snapshot()
            for ref, resolution in resolutions.items():
                if isinstance(resolution, MapToExisting):
                    targets[ref.type][ref.name] = self._existing_id(ref.type, resolution.entity_id, snapshot)

            def account_id(name: str) -> int:
                if name in accounts:
                    return accounts[name]
                account = snapshot.account_named(name)
                if account is None:
                    raise UnresolvedReferenceError(ReferenceType.ACCOUNT.value, name)
                return account.id

            def category_id(name: str) -> int:
                if name in categories:
                    return categories[name]
                # A stored category named Uncategorized wins over the sentinel
                category = snapshot.categories_by_name.get(name)
                if category is not None:
                    return category.id
                if name == UNCATEGORIZED_NAME:
                    return UNCATEGORIZED_ID
                raise UnresolvedReferenceError(ReferenceType.CATEGORY.value, name)

            def currency_id(code: str) -> int:
                if code in currencies:
                    return currencies[code]
                currency = snapshot.currency_by_code(code)
                if currency is None:
                    raise UnresolvedReferenceError(ReferenceType.CURRENCY.value, code)
                return currency.id

            field_mappings = {
                key: _export_to_mapping(mapping, account_id, category_id, currency_id)
                for key, mapping in export.field_mappings.items()
            }
            now = self._clock.now()
            strategy = CsvImportStrategy(
                id=uuid4(),
                name=export.name,
                identification_columns=export.identification_columns,
                field_mappings=field_mappings,
                attribute_mappings=export.attribute_mappings,
                created_at=now,
                updated_at=now,
            )
            logger.info(
                "strategy_rebuilt_from_export",
                extra={
                    "strategy_id": str(strategy.id),
                    "resolution_count": len(resolutions),
                },
            )
        return strategy

    def _create(self, ref: UnresolvedReference, resolution: CreateNew) -> int:
        if ref.type == ReferenceType.ACCOUNT:
            return self._reference_service.get_or_create_account(resolution.name).id
        if ref.type == ReferenceType.CATEGORY:
            return self._reference_service.create_category(resolution.name).id
        return self._reference_service.upsert_currency_by_code(resolution.name).id

    @staticmethod
    def _existing_id(reference_type: ReferenceType, entity_id: int, snapshot: ReferenceSnapshot) -> int:
        if reference_type == ReferenceType.ACCOUNT:
            if entity_id not in snapshot.accounts_by_id:
                raise AccountNotFoundError(str(entity_id))
        elif reference_type == ReferenceType.CATEGORY:
            if entity_id != UNCATEGORIZED_ID and entity_id not in snapshot.categories_by_id:
                raise CategoryNotFoundError(str(entity_id))
        elif entity_id not in snapshot.currencies_by_id:
            raise CurrencyNotFoundError(str(entity_id))
        return entity_id

    def import_strategy(
        self,
        export: CsvStrategyExport,
        resolutions: Resolutions | None = None,
    ) -> CsvImportStrategy:
        """Rebuild ``export`` and save it.  Raises DuplicateStrategyNameError on a taken name."""
        strategy = self.create_strategy_from_export(export, resolutions)
        return StrategyStore(self._session).save(strategy)


def _export_to_mapping(mapping, account_id, category_id, currency_id) -> FieldMapping:
    """Domain mapping (fresh id) for an export variant, using the given name resolvers."""
    if isinstance(mapping, HardCodedAccountExport):
        return HardCodedAccountMapping(field_type=mapping.field_type, account_id=account_id(mapping.account_name))
    if isinstance(mapping, AccountLookupExport):
        return AccountLookupMapping(
            field_type=mapping.field_type,
            column_name=mapping.column_name,
            fallback_columns=mapping.fallback_columns,
            create_if_missing=mapping.create_if_missing,
            default_category_id=category_id(mapping.default_category_name),
        )
    if isinstance(mapping, RegexAccountExport):
        return RegexAccountMapping(
            field_type=mapping.field_type,
            column_name=mapping.column_name,
            rules=mapping.rules,
            fallback_columns=mapping.fallback_columns,
            default_category_id=category_id(mapping.default_category_name),
        )
    if isinstance(mapping, DateTimeParsingExport):
        return DateTimeParsingMapping(
            field_type=mapping.field_type,
            date_column_name=mapping.date_column_name,
            date_format=mapping.date_format,
            time_column_name=mapping.time_column_name,
            time_format=mapping.time_format,
            default_time=mapping.default_time,
        )
    if isinstance(mapping, DirectColumnExport):
        return DirectColumnMapping(
            field_type=mapping.field_type,
            column_name=mapping.column_name,
            fallback_columns=mapping.fallback_columns,
        )
    if isinstance(mapping, AmountParsingExport):
        return AmountParsingMapping(
            field_type=mapping.field_type,
            mode=mapping.mode,
            amount_column_name=mapping.amount_column_name,
            credit_column_name=mapping.credit_column_name,
            debit_column_name=mapping.debit_column_name,
            negate_values=mapping.negate_values,
            flip_accounts_on_positive=mapping.flip_accounts_on_positive,
        )
    if isinstance(mapping, HardCodedCurrencyExport):
        return HardCodedCurrencyMapping(field_type=mapping.field_type, currency_id=currency_id(mapping.currency_code))
    if isinstance(mapping, CurrencyLookupExport):
        return CurrencyLookupMapping(field_type=mapping.field_type, column_name=mapping.column_name)
    if isinstance(mapping, HardCodedTimezoneExport):
        return HardCodedTimezoneMapping(field_type=mapping.field_type, timezone_id=mapping.timezone_id)
    if isinstance(mapping, TimezoneLookupExport):
        return TimezoneLookupMapping(field_type=mapping.field_type, column_name=mapping.column_name)
    raise TypeError(f"Unsupported field mapping export type: {type(mapping).__name__}")
