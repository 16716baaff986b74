"""Tests for StrategyStore persistence."""

from dataclasses import replace
from uuid import uuid4

import pytest

from ledger_ingestion.domain.types import (
    AttributeColumnMapping,
    CsvAccountMapping,
    RegexAccountMapping,
    RegexRule,
    TransferField,
)
from ledger_ingestion.services.strategy_store import StrategyStore
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    DuplicateStrategyNameError,
    StrategyNotFoundError,
)


@pytest.fixture
def store(session):
    return StrategyStore(session)


@pytest.fixture
def strategy(make_strategy, reference_data):
    base = make_strategy(
        reference_data.checking.id,
        reference_data.usd.id,
        **{
            TransferField.TARGET_ACCOUNT: RegexAccountMapping(
                field_type=TransferField.TARGET_ACCOUNT,
                column_name="Payee",
                rules=(RegexRule(pattern="TESCO.*", account_name="Supermarket"),),
                fallback_columns=("Description",),
            )
        },
    )
    return replace(
        base,
        attribute_mappings=(AttributeColumnMapping(column_name="Ref", attribute_type_name="reference"),),
    )


class TestSaveAndLoad:
    def test_saved_strategy_loads_back_equal(self, store, strategy):
        saved = store.save(strategy)
        loaded = store.get(strategy.id)

        assert loaded.created_at is not None
        assert saved.id == strategy.id
        assert loaded.name == strategy.name
        assert loaded.identification_columns == strategy.identification_columns
        assert loaded.field_mappings == strategy.field_mappings
        assert loaded.attribute_mappings == strategy.attribute_mappings

    def test_update_in_place(self, store, strategy):
        store.save(strategy)
        store.save(replace(strategy, name="Renamed", identification_columns=frozenset({"X"})))

        assert store.get_by_name("My Bank") is None
        renamed = store.get(strategy.id)
        assert renamed.name == "Renamed"
        assert renamed.identification_columns == frozenset({"X"})
        assert len(store.list_all()) == 1

    def test_duplicate_name_rejected(self, store, strategy):
        store.save(strategy)
        with pytest.raises(DuplicateStrategyNameError) as exc:
            store.save(replace(strategy, id=uuid4()))
        assert exc.value.code == "DUPLICATE_STRATEGY_NAME"

    def test_unknown_id(self, store, db_engine):
        with pytest.raises(StrategyNotFoundError):
            store.get(uuid4())

    def test_list_all_ordered_by_name(self, store, strategy):
        store.save(replace(strategy, id=uuid4(), name="Zeta"))
        store.save(replace(strategy, id=uuid4(), name="Alpha"))
        assert [s.name for s in store.list_all()] == ["Alpha", "Zeta"]

    def test_save_logs(self, store, strategy, captured_logs):
        store.save(strategy)
        record = next(r for r in captured_logs() if r["message"] == "strategy_saved")
        assert record["is_new"] is True
        assert record["strategy_name"] == "My Bank"


class TestAccountMappings:
    def test_add_and_list_in_insertion_order(self, store, strategy, reference_data):
        store.save(strategy)
        first = store.add_account_mapping(
            CsvAccountMapping(
                strategy_id=strategy.id, column_name="Payee", value_pattern="amzn.*",
                account_id=reference_data.savings.id,
            )
        )
        second = store.add_account_mapping(
            CsvAccountMapping(
                strategy_id=strategy.id, column_name="Payee", value_pattern=".*",
                account_id=reference_data.supermarket.id,
            )
        )
        listed = store.list_account_mappings(strategy.id)
        assert {m.id for m in listed} == {first.id, second.id}
        assert all(m.strategy_id == strategy.id for m in listed)

    def test_unknown_strategy_or_account(self, store, strategy, reference_data):
        with pytest.raises(StrategyNotFoundError):
            store.add_account_mapping(
                CsvAccountMapping(strategy_id=uuid4(), column_name="Payee", value_pattern="x", account_id=1)
            )
        store.save(strategy)
        with pytest.raises(AccountNotFoundError):
            store.add_account_mapping(
                CsvAccountMapping(strategy_id=strategy.id, column_name="Payee", value_pattern="x", account_id=999)
            )

    def test_delete_removes_mappings(self, store, strategy, reference_data):
        store.save(strategy)
        store.add_account_mapping(
            CsvAccountMapping(
                strategy_id=strategy.id, column_name="Payee", value_pattern="x",
                account_id=reference_data.savings.id,
            )
        )
        store.delete(strategy.id)

        assert store.list_all() == []
        assert store.list_account_mappings(strategy.id) == []
        with pytest.raises(StrategyNotFoundError):
            store.delete(strategy.id)
