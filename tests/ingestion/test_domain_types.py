"""Tests for field mapping variants, strategies and CSV value types."""

from uuid import UUID

import pytest

from ledger_ingestion.domain.types import (
    AccountLookupMapping,
    AmountMode,
    AmountParsingMapping,
    CsvAccountMapping,
    CsvImportStrategy,
    CsvRow,
    CsvTable,
    DateTimeParsingMapping,
    DirectColumnMapping,
    HardCodedAccountMapping,
    HardCodedCurrencyMapping,
    MappingKind,
    RegexAccountMapping,
    RegexRule,
    TransferField,
)
from ledger_kernel.domain.values import UNCATEGORIZED_ID
from ledger_kernel.exceptions import InvalidFieldMappingError, InvalidStrategyError


class TestAmountParsingMapping:
    def test_single_column_without_amount_column_fails_at_construction(self):
        with pytest.raises(InvalidFieldMappingError) as exc:
            AmountParsingMapping(field_type=TransferField.AMOUNT, mode=AmountMode.SINGLE_COLUMN)
        assert exc.value.code == "INVALID_FIELD_MAPPING"
        assert "amount_column_name" in str(exc.value)

    def test_credit_debit_requires_both_columns(self):
        with pytest.raises(InvalidFieldMappingError):
            AmountParsingMapping(
                field_type=TransferField.AMOUNT,
                mode=AmountMode.CREDIT_DEBIT_COLUMNS,
                credit_column_name="Credit",
            )
        mapping = AmountParsingMapping(
            field_type=TransferField.AMOUNT,
            mode=AmountMode.CREDIT_DEBIT_COLUMNS,
            credit_column_name="Credit",
            debit_column_name="Debit",
        )
        assert mapping.amount_column_name is None

    def test_mode_and_field_type_coerced_from_strings(self):
        mapping = AmountParsingMapping(field_type="AMOUNT", mode="SINGLE_COLUMN", amount_column_name="Amt")
        assert mapping.field_type is TransferField.AMOUNT
        assert mapping.mode is AmountMode.SINGLE_COLUMN

    def test_unknown_mode_rejected(self):
        with pytest.raises(InvalidFieldMappingError, match="unknown mode"):
            AmountParsingMapping(field_type=TransferField.AMOUNT, mode="THREE_COLUMNS")


class TestOtherVariants:
    def test_each_mapping_gets_a_fresh_id(self):
        a = HardCodedAccountMapping(field_type=TransferField.SOURCE_ACCOUNT, account_id=1)
        b = HardCodedAccountMapping(field_type=TransferField.SOURCE_ACCOUNT, account_id=1)
        assert isinstance(a.id, UUID)
        assert a.id != b.id

    def test_account_lookup_defaults(self):
        mapping = AccountLookupMapping(field_type=TransferField.TARGET_ACCOUNT, column_name="Payee")
        assert mapping.create_if_missing is True
        assert mapping.default_category_id == UNCATEGORIZED_ID
        assert mapping.kind is MappingKind.ACCOUNT_LOOKUP

    def test_all_columns_lists_primary_then_fallbacks(self):
        mapping = DirectColumnMapping(
            field_type=TransferField.DESCRIPTION,
            column_name="Memo",
            fallback_columns=["Details", "Reference"],
        )
        assert mapping.fallback_columns == ("Details", "Reference")
        assert mapping.all_columns == ("Memo", "Details", "Reference")

    def test_blank_column_name_rejected(self):
        with pytest.raises(InvalidFieldMappingError):
            DirectColumnMapping(field_type=TransferField.DESCRIPTION, column_name="  ")

    def test_blank_date_format_rejected(self):
        with pytest.raises(InvalidFieldMappingError, match="date_format"):
            DateTimeParsingMapping(field_type=TransferField.TIMESTAMP, date_column_name="Date", date_format="")

    def test_regex_mapping_rejects_bad_pattern(self):
        with pytest.raises(InvalidFieldMappingError, match="invalid pattern"):
            RegexAccountMapping(
                field_type=TransferField.TARGET_ACCOUNT,
                column_name="Payee",
                rules=[RegexRule(pattern="(unclosed", account_name="X")],
            )

    def test_unknown_field_type_rejected(self):
        with pytest.raises(InvalidFieldMappingError, match="unknown field type"):
            HardCodedCurrencyMapping(field_type="FEES", currency_id=1)


class TestCsvImportStrategy:
    def _mappings(self):
        return {
            TransferField.SOURCE_ACCOUNT: HardCodedAccountMapping(
                field_type=TransferField.SOURCE_ACCOUNT, account_id=1
            ),
            TransferField.DESCRIPTION: DirectColumnMapping(
                field_type=TransferField.DESCRIPTION, column_name="Memo"
            ),
        }

    def test_missing_fields_in_declaration_order(self):
        strategy = CsvImportStrategy(name="Partial", field_mappings=self._mappings())
        assert strategy.missing_fields() == [
            TransferField.TARGET_ACCOUNT,
            TransferField.TIMESTAMP,
            TransferField.AMOUNT,
            TransferField.CURRENCY,
        ]
        assert not strategy.is_complete

    def test_mapping_keyed_under_wrong_field_rejected(self):
        wrong = {
            TransferField.TARGET_ACCOUNT: HardCodedAccountMapping(
                field_type=TransferField.SOURCE_ACCOUNT, account_id=1
            )
        }
        with pytest.raises(InvalidStrategyError, match="populates SOURCE_ACCOUNT"):
            CsvImportStrategy(name="Wrong", field_mappings=wrong)

    def test_non_mapping_value_rejected(self):
        with pytest.raises(InvalidStrategyError, match="unsupported type"):
            CsvImportStrategy(name="Bad", field_mappings={TransferField.AMOUNT: "Amount"})

    def test_blank_name_rejected(self):
        with pytest.raises(InvalidStrategyError):
            CsvImportStrategy(name=" ")

    def test_string_keys_are_coerced(self):
        strategy = CsvImportStrategy(name="S", field_mappings={"DESCRIPTION": self._mappings()[TransferField.DESCRIPTION]})
        assert TransferField.DESCRIPTION in strategy.field_mappings

    def test_matches_columns_is_exact_and_order_independent(self):
        strategy = CsvImportStrategy(name="S", identification_columns={"A", "B"})
        assert strategy.matches_columns(["B", "A"])
        assert not strategy.matches_columns(["A", "B", "C"])
        assert not strategy.matches_columns(["a", "B"])


class TestCsvValues:
    def test_table_columns_are_zero_based(self):
        table = CsvTable(headings=["Date", "Amount"], rows=[CsvRow(row_index=1, values=["01/01/2024", "1"])])
        assert [(c.column_index, c.original_name) for c in table.columns] == [(0, "Date"), (1, "Amount")]
        assert table.rows[0].values == ("01/01/2024", "1")

    def test_account_mapping_matches_whole_value_case_insensitively(self):
        from uuid import uuid4

        rule = CsvAccountMapping(strategy_id=uuid4(), column_name="Payee", value_pattern="tesco.*", account_id=3)
        assert rule.matches("  TESCO STORES 123 ")
        assert not rule.matches("Big Tesco")

    def test_account_mapping_rejects_bad_pattern(self):
        from uuid import uuid4

        with pytest.raises(InvalidFieldMappingError):
            CsvAccountMapping(strategy_id=uuid4(), column_name="Payee", value_pattern="[", account_id=3)
