"""Tests for the strategy export JSON/YAML codec."""

import json

import pytest
import yaml

from ledger_ingestion.codec.json_codec import (
    decode_export,
    encode_export,
    export_from_dict,
    export_to_dict,
    field_mappings_from_json,
    field_mappings_to_json,
    load_export_file,
)
from ledger_ingestion.domain.export import (
    AccountLookupExport,
    AmountParsingExport,
    CsvStrategyExport,
    DateTimeParsingExport,
    HardCodedAccountExport,
    HardCodedCurrencyExport,
    RegexAccountExport,
)
from ledger_ingestion.domain.types import (
    AmountMode,
    AttributeColumnMapping,
    DirectColumnMapping,
    RegexAccountMapping,
    RegexRule,
    TransferField,
)
from ledger_kernel.exceptions import ExportFormatError


def _export() -> CsvStrategyExport:
    return CsvStrategyExport(
        version="0.1.0",
        name="My Bank",
        identification_columns=frozenset({"Payee", "Date", "Amount"}),
        field_mappings={
            TransferField.SOURCE_ACCOUNT: HardCodedAccountExport(
                field_type=TransferField.SOURCE_ACCOUNT, account_name="Checking"
            ),
            TransferField.TARGET_ACCOUNT: RegexAccountExport(
                field_type=TransferField.TARGET_ACCOUNT,
                column_name="Payee",
                rules=(RegexRule(pattern="TESCO.*", account_name="Supermarket"),),
                default_category_name="Groceries",
            ),
            TransferField.TIMESTAMP: DateTimeParsingExport(
                field_type=TransferField.TIMESTAMP, date_column_name="Date", date_format="dd/MM/yyyy"
            ),
            TransferField.AMOUNT: AmountParsingExport(
                field_type=TransferField.AMOUNT,
                mode=AmountMode.SINGLE_COLUMN,
                amount_column_name="Amount",
            ),
            TransferField.CURRENCY: HardCodedCurrencyExport(
                field_type=TransferField.CURRENCY, currency_code="EUR"
            ),
        },
        attribute_mappings=(AttributeColumnMapping(column_name="Ref", attribute_type_name="reference"),),
    )


class TestEncode:
    def test_document_shape(self):
        data = json.loads(encode_export(_export()))

        assert data["version"] == "0.1.0"
        assert data["identificationColumns"] == ["Amount", "Date", "Payee"]
        assert data["fieldMappings"]["SOURCE_ACCOUNT"] == {
            "type": "HardCodedAccount",
            "fieldType": "SOURCE_ACCOUNT",
            "accountName": "Checking",
        }
        assert data["fieldMappings"]["TARGET_ACCOUNT"]["rules"] == [
            {"pattern": "TESCO.*", "accountName": "Supermarket"}
        ]
        assert data["fieldMappings"]["TARGET_ACCOUNT"]["fallbackColumns"] == []
        assert data["attributeMappings"] == [{"columnName": "Ref", "attributeTypeName": "reference"}]

    def test_defaults_are_written_and_ids_are_not(self):
        amount = json.loads(encode_export(_export()))["fieldMappings"]["AMOUNT"]
        assert amount["negateValues"] is False
        assert amount["flipAccountsOnPositive"] is False
        assert amount["creditColumnName"] is None
        assert "id" not in amount

    def test_pretty_printed(self):
        assert encode_export(_export()).startswith("{\n  ")


class TestDecode:
    def test_decoded_document_equals_original(self):
        assert decode_export(encode_export(_export())) == _export()

    def test_unknown_keys_are_ignored(self):
        data = export_to_dict(_export())
        data["exportedBy"] = "someone"
        data["fieldMappings"]["CURRENCY"]["legacyFlag"] = True
        assert export_from_dict(data) == _export()

    def test_missing_field_type_defaults_to_key(self):
        data = {
            "version": "1",
            "name": "S",
            "fieldMappings": {"SOURCE_ACCOUNT": {"type": "HardCodedAccount", "accountName": "Cash"}},
        }
        export = export_from_dict(data)
        assert export.field_mappings[TransferField.SOURCE_ACCOUNT].field_type is TransferField.SOURCE_ACCOUNT

    def test_account_lookup_defaults_apply(self):
        data = {
            "name": "S",
            "fieldMappings": {"TARGET_ACCOUNT": {"type": "AccountLookup", "columnName": "Payee"}},
        }
        mapping = export_from_dict(data).field_mappings[TransferField.TARGET_ACCOUNT]
        assert mapping == AccountLookupExport(field_type=TransferField.TARGET_ACCOUNT, column_name="Payee")

    @pytest.mark.parametrize(
        "data, message",
        [
            ([], "must be an object"),
            ({"version": "1"}, "name is required"),
            ({"name": "S", "fieldMappings": {"AMOUNT": {"type": "Mystery"}}}, "unknown type"),
            ({"name": "S", "fieldMappings": {"FEES": {"type": "DirectColumn", "columnName": "x"}}}, "FEES"),
            (
                {
                    "name": "S",
                    "fieldMappings": {
                        "DESCRIPTION": {"type": "DirectColumn", "fieldType": "AMOUNT", "columnName": "x"}
                    },
                },
                "declares fieldType AMOUNT",
            ),
            ({"name": "S", "fieldMappings": {"AMOUNT": {"type": "AmountParsing", "mode": "X"}}}, "AMOUNT"),
            ({"name": "S", "attributeMappings": [{"columnName": "x"}]}, "attributeMappings"),
            ({"name": "S", "identificationColumns": "Date"}, "identificationColumns"),
            ({"name": "S", "identificationColumns": 5}, "identificationColumns"),
            ({"name": "S", "identificationColumns": ["Date", 3]}, "identificationColumns"),
            ({"name": "S", "attributeMappings": {"columnName": "x"}}, "attributeMappings must be a list"),
        ],
    )
    def test_malformed_documents_raise(self, data, message):
        with pytest.raises(ExportFormatError, match=message):
            export_from_dict(data)

    @pytest.mark.parametrize(
        "field_key, raw, message",
        [
            (
                "DESCRIPTION",
                {"type": "DirectColumn", "columnName": "Memo", "fallbackColumns": "Payee"},
                "fallbackColumns must be a list of strings",
            ),
            (
                "TARGET_ACCOUNT",
                {"type": "AccountLookup", "columnName": "Payee", "createIfMissing": "false"},
                "createIfMissing must be true or false",
            ),
            (
                "AMOUNT",
                {"type": "AmountParsing", "mode": "SINGLE_COLUMN", "amountColumnName": "A", "negateValues": 1},
                "negateValues must be true or false",
            ),
            (
                "AMOUNT",
                {
                    "type": "AmountParsing",
                    "mode": "SINGLE_COLUMN",
                    "amountColumnName": "A",
                    "flipAccountsOnPositive": "yes",
                },
                "flipAccountsOnPositive must be true or false",
            ),
            (
                "AMOUNT",
                {"type": "AmountParsing", "mode": "SINGLE_COLUMN", "amountColumnName": 7},
                "amountColumnName must be a string",
            ),
            (
                "TIMESTAMP",
                {"type": "DateTimeParsing", "dateColumnName": "Date", "dateFormat": "dd/MM/yyyy", "defaultTime": 720},
                "defaultTime must be a string",
            ),
            (
                "DESCRIPTION",
                {"type": "DirectColumn", "columnName": None},
                "columnName must be a string",
            ),
            (
                "TARGET_ACCOUNT",
                {"type": "RegexAccount", "columnName": "Payee", "rules": "TESCO.*"},
                "rules must be a list",
            ),
        ],
    )
    def test_wrongly_typed_mapping_fields_raise(self, field_key, raw, message):
        data = {"name": "S", "fieldMappings": {field_key: raw}}
        with pytest.raises(ExportFormatError, match=message) as excinfo:
            export_from_dict(data)
        assert field_key in str(excinfo.value)

    def test_explicit_false_flags_are_kept(self):
        data = {
            "name": "S",
            "fieldMappings": {
                "TARGET_ACCOUNT": {"type": "AccountLookup", "columnName": "Payee", "createIfMissing": False},
                "DESCRIPTION": {"type": "DirectColumn", "columnName": "Memo", "fallbackColumns": ["Payee"]},
            },
        }
        export = export_from_dict(data)
        assert export.field_mappings[TransferField.TARGET_ACCOUNT].create_if_missing is False
        assert export.field_mappings[TransferField.DESCRIPTION].fallback_columns == ("Payee",)

    def test_persisted_ids_must_be_integers(self):
        raw = {"SOURCE_ACCOUNT": {"type": "HardCodedAccount", "accountId": "3"}}
        with pytest.raises(ExportFormatError, match="accountId must be an integer"):
            field_mappings_from_json(raw)

    def test_invalid_json_text(self):
        with pytest.raises(ExportFormatError, match="not valid JSON"):
            decode_export("{not json")


class TestFiles:
    def test_json_file(self, tmp_path):
        path = tmp_path / "bank.json"
        path.write_text(encode_export(_export()), encoding="utf-8")
        assert load_export_file(path) == _export()

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "bank.yaml"
        path.write_text(yaml.safe_dump(export_to_dict(_export()), sort_keys=False), encoding="utf-8")
        assert load_export_file(path) == _export()

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bank.yml"
        path.write_text("name: [unclosed", encoding="utf-8")
        with pytest.raises(ExportFormatError, match="not valid YAML"):
            load_export_file(path)


class TestPersistedFieldMappings:
    def test_ids_survive(self):
        mappings = {
            TransferField.DESCRIPTION: DirectColumnMapping(
                field_type=TransferField.DESCRIPTION, column_name="Memo", fallback_columns=("Payee",)
            ),
            TransferField.TARGET_ACCOUNT: RegexAccountMapping(
                field_type=TransferField.TARGET_ACCOUNT,
                column_name="Payee",
                rules=(RegexRule(pattern="A.*", account_name="Alpha"),),
            ),
        }
        data = field_mappings_to_json(mappings)
        assert data["DESCRIPTION"]["id"] == str(mappings[TransferField.DESCRIPTION].id)

        restored = field_mappings_from_json(json.loads(json.dumps(data)))
        assert restored == mappings
