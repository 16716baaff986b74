"""Tests for StrategyExportService: export, parse, resolve, rebuild."""

from dataclasses import replace

import pytest

from ledger_ingestion.codec.json_codec import decode_export, encode_export
from ledger_ingestion.domain.export import (
    CreateNew,
    CsvStrategyExport,
    HardCodedAccountExport,
    HardCodedCurrencyExport,
    MapToExisting,
    ReferenceType,
    UnresolvedReference,
)
from ledger_ingestion.domain.types import (
    AccountLookupMapping,
    HardCodedAccountMapping,
    HardCodedCurrencyMapping,
    TransferField,
)
from ledger_ingestion.services.export_service import (
    UNKNOWN_ACCOUNT_NAME,
    UNKNOWN_CURRENCY_CODE,
    StrategyExportService,
)
from ledger_ingestion.services.strategy_store import StrategyStore
from ledger_kernel.domain.values import UNCATEGORIZED_ID
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    CurrencyNotFoundError,
    DuplicateStrategyNameError,
    UnresolvedReferenceError,
)
from ledger_kernel.selectors.reference_selector import ReferenceSelector
from ledger_kernel.services.reference_service import ReferenceDataService


@pytest.fixture
def export_service(session, deterministic_clock):
    return StrategyExportService(session, clock=deterministic_clock, app_version="9.9.9")


@pytest.fixture
def grocery_strategy(make_strategy, reference_data):
    return make_strategy(
        reference_data.checking.id,
        reference_data.eur.id,
        **{
            TransferField.TARGET_ACCOUNT: AccountLookupMapping(
                field_type=TransferField.TARGET_ACCOUNT,
                column_name="Payee",
                default_category_id=reference_data.groceries.id,
            )
        },
    )


def _foreign_export(account="Joint Account", currency="CHF") -> CsvStrategyExport:
    """An export produced by some other database."""
    return CsvStrategyExport(
        version="0.1.0",
        name="Swiss Bank",
        identification_columns=frozenset({"Date", "Amount"}),
        field_mappings={
            TransferField.SOURCE_ACCOUNT: HardCodedAccountExport(
                field_type=TransferField.SOURCE_ACCOUNT, account_name=account
            ),
            TransferField.TARGET_ACCOUNT: HardCodedAccountExport(
                field_type=TransferField.TARGET_ACCOUNT, account_name=account
            ),
            TransferField.CURRENCY: HardCodedCurrencyExport(
                field_type=TransferField.CURRENCY, currency_code=currency
            ),
        },
    )


class TestToExport:
    def test_ids_become_names(self, export_service, grocery_strategy):
        export = export_service.to_export(grocery_strategy)

        assert export.version == "9.9.9"
        assert export.name == "My Bank"
        source = export.field_mappings[TransferField.SOURCE_ACCOUNT]
        assert source.account_name == "Checking"
        assert export.field_mappings[TransferField.CURRENCY].currency_code == "EUR"
        assert export.field_mappings[TransferField.TARGET_ACCOUNT].default_category_name == "Groceries"

    def test_export_document_has_no_ids(self, export_service, grocery_strategy):
        text = encode_export(export_service.to_export(grocery_strategy))
        assert str(grocery_strategy.id) not in text
        for mapping in grocery_strategy.field_mappings.values():
            assert str(mapping.id) not in text

    def test_dangling_ids_export_as_placeholders(self, export_service, make_strategy, captured_logs):
        strategy = make_strategy(source_account_id=4242, currency_id=4343)
        export = export_service.to_export(strategy)

        assert export.field_mappings[TransferField.SOURCE_ACCOUNT].account_name == UNKNOWN_ACCOUNT_NAME
        assert export.field_mappings[TransferField.CURRENCY].currency_code == UNKNOWN_CURRENCY_CODE
        warnings = [r for r in captured_logs() if r["message"] == "strategy_export_dangling_reference"]
        assert {w["reference_type"] for w in warnings} == {"account", "currency"}

    def test_logs_export(self, export_service, grocery_strategy, captured_logs):
        export_service.to_export(grocery_strategy)
        record = next(r for r in captured_logs() if r["message"] == "strategy_exported")
        assert record["strategy_name"] == "My Bank"
        assert record["version"] == "9.9.9"


class TestParseExport:
    def test_own_export_is_fully_resolved(self, export_service, grocery_strategy):
        exported = decode_export(encode_export(export_service.to_export(grocery_strategy)))
        result = export_service.parse_export(exported)
        assert result.is_fully_resolved
        assert result.strategy_name == "My Bank"

    def test_foreign_names_are_listed_once(self, export_service, reference_data):
        result = export_service.parse_export(_foreign_export())
        assert result.unresolved_references == (
            UnresolvedReference(ReferenceType.ACCOUNT, "Joint Account", TransferField.SOURCE_ACCOUNT),
            UnresolvedReference(ReferenceType.CURRENCY, "CHF", TransferField.CURRENCY),
        )

    def test_currency_codes_match_case_insensitively(self, export_service, reference_data):
        result = export_service.parse_export(_foreign_export(account="Checking", currency="usd"))
        assert result.is_fully_resolved

    def test_unknown_category_is_unresolved(self, export_service, grocery_strategy):
        export = export_service.to_export(grocery_strategy)
        target = export.field_mappings[TransferField.TARGET_ACCOUNT]
        export = replace(
            export,
            field_mappings={
                **export.field_mappings,
                TransferField.TARGET_ACCOUNT: replace(target, default_category_name="Fuel"),
            },
        )
        result = export_service.parse_export(export)
        assert result.unresolved_references == (
            UnresolvedReference(ReferenceType.CATEGORY, "Fuel", TransferField.TARGET_ACCOUNT),
        )


class TestCreateStrategyFromExport:
    def test_rebuild_own_export_with_fresh_ids(self, export_service, grocery_strategy, deterministic_clock):
        rebuilt = export_service.create_strategy_from_export(export_service.to_export(grocery_strategy))

        assert rebuilt.id != grocery_strategy.id
        assert rebuilt.name == grocery_strategy.name
        assert rebuilt.identification_columns == grocery_strategy.identification_columns
        assert rebuilt.created_at == deterministic_clock.now()
        for key, mapping in grocery_strategy.field_mappings.items():
            assert rebuilt.field_mappings[key].id != mapping.id
        assert rebuilt.field_mappings[TransferField.SOURCE_ACCOUNT] == HardCodedAccountMapping(
            field_type=TransferField.SOURCE_ACCOUNT,
            account_id=grocery_strategy.field_mappings[TransferField.SOURCE_ACCOUNT].account_id,
            id=rebuilt.field_mappings[TransferField.SOURCE_ACCOUNT].id,
        )
        target = rebuilt.field_mappings[TransferField.TARGET_ACCOUNT]
        assert target.default_category_id == grocery_strategy.field_mappings[TransferField.TARGET_ACCOUNT].default_category_id

    def test_default_category_falls_back_to_uncategorized(self, export_service, make_strategy, reference_data):
        strategy = make_strategy(reference_data.checking.id, reference_data.eur.id)
        rebuilt = export_service.create_strategy_from_export(export_service.to_export(strategy))
        assert rebuilt.field_mappings[TransferField.TARGET_ACCOUNT].default_category_id == UNCATEGORIZED_ID

    def test_stored_uncategorized_category_keeps_its_id(
        self, export_service, make_strategy, reference_data, session
    ):
        stored = ReferenceDataService(session).create_category("Uncategorized")
        strategy = make_strategy(
            reference_data.checking.id,
            reference_data.eur.id,
            **{
                TransferField.TARGET_ACCOUNT: AccountLookupMapping(
                    field_type=TransferField.TARGET_ACCOUNT,
                    column_name="Payee",
                    default_category_id=stored.id,
                )
            },
        )
        rebuilt = export_service.create_strategy_from_export(export_service.to_export(strategy))
        assert rebuilt.field_mappings[TransferField.TARGET_ACCOUNT].default_category_id == stored.id

    def test_unresolved_without_resolution_raises(self, export_service, reference_data):
        with pytest.raises(UnresolvedReferenceError) as exc:
            export_service.create_strategy_from_export(_foreign_export())
        assert exc.value.code == "UNRESOLVED_REFERENCE"
        assert exc.value.name == "Joint Account"

    def test_create_new_and_map_to_existing(self, export_service, reference_data, session):
        parsed = export_service.parse_export(_foreign_export())
        account_ref, currency_ref = parsed.unresolved_references
        strategy = export_service.create_strategy_from_export(
            parsed.export,
            {
                account_ref: MapToExisting(reference_data.savings.id),
                currency_ref: CreateNew("CHF"),
            },
        )
        snapshot = ReferenceSelector(session).snapshot()
        chf = snapshot.currency_by_code("CHF")

        assert chf is not None
        assert strategy.field_mappings[TransferField.SOURCE_ACCOUNT].account_id == reference_data.savings.id
        assert strategy.field_mappings[TransferField.TARGET_ACCOUNT].account_id == reference_data.savings.id
        assert strategy.field_mappings[TransferField.CURRENCY] == HardCodedCurrencyMapping(
            field_type=TransferField.CURRENCY,
            currency_id=chf.id,
            id=strategy.field_mappings[TransferField.CURRENCY].id,
        )

    def test_create_new_account(self, export_service, reference_data, session):
        parsed = export_service.parse_export(_foreign_export(currency="USD"))
        (account_ref,) = parsed.unresolved_references
        strategy = export_service.create_strategy_from_export(
            parsed.export, {account_ref: CreateNew("Joint Account")}
        )
        joint = ReferenceSelector(session).find_account_by_name("Joint Account")
        assert joint is not None
        assert joint.category_id == UNCATEGORIZED_ID
        assert strategy.field_mappings[TransferField.SOURCE_ACCOUNT].account_id == joint.id

    def test_map_to_unknown_id_raises(self, export_service, reference_data):
        parsed = export_service.parse_export(_foreign_export(currency="USD"))
        (account_ref,) = parsed.unresolved_references
        with pytest.raises(AccountNotFoundError):
            export_service.create_strategy_from_export(parsed.export, {account_ref: MapToExisting(987654)})

    def test_map_currency_to_unknown_id_raises(self, export_service, reference_data):
        parsed = export_service.parse_export(_foreign_export(account="Checking"))
        (currency_ref,) = parsed.unresolved_references
        with pytest.raises(CurrencyNotFoundError):
            export_service.create_strategy_from_export(parsed.export, {currency_ref: MapToExisting(987654)})


class TestImportStrategy:
    def test_import_saves(self, export_service, grocery_strategy, session):
        export = export_service.to_export(grocery_strategy)
        renamed = CsvStrategyExport(
            version=export.version,
            name="My Bank (copy)",
            identification_columns=export.identification_columns,
            field_mappings=export.field_mappings,
            attribute_mappings=export.attribute_mappings,
        )
        saved = export_service.import_strategy(renamed)
        assert StrategyStore(session).get_by_name("My Bank (copy)").id == saved.id

    def test_duplicate_name_rejected(self, export_service, grocery_strategy, session):
        StrategyStore(session).save(grocery_strategy)
        with pytest.raises(DuplicateStrategyNameError):
            export_service.import_strategy(export_service.to_export(grocery_strategy))
