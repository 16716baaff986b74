"""
JSON codec for strategy exports and persisted field mappings.

Export documents are pretty-printed JSON with camelCase keys; every field is
written (defaults included) and each mapping carries an explicit ``type`` tag
plus its ``fieldType``.  Decoding ignores unknown keys so newer documents
still load.  YAML documents with the same shape load through PyYAML.

The ``field_mappings_*`` pair serializes domain mappings WITH their ids for
the strategy store; export documents never contain ids.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import fields
from pathlib import Path
from typing import Any
from uuid import UUID

import yaml

from ledger_ingestion.domain.export import (
    EXPORT_TYPES_BY_KIND,
    CsvStrategyExport,
    FieldMappingExport,
)
from ledger_ingestion.domain.types import (
    FIELD_MAPPING_TYPES,
    AmountMode,
    AttributeColumnMapping,
    FieldMapping,
    MappingKind,
    RegexRule,
    TransferField,
)
from ledger_kernel.exceptions import ExportFormatError, InvalidFieldMappingError

_MAPPING_TYPES_BY_KIND: dict[MappingKind, type] = {t.kind: t for t in FIELD_MAPPING_TYPES}

_TUPLE_FIELDS = frozenset({"fallback_columns"})
_BOOL_FIELDS = frozenset({"create_if_missing", "negate_values", "flip_accounts_on_positive"})
_INT_FIELDS = frozenset({"account_id", "currency_id", "default_category_id"})


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _is_string_list(value: Any) -> bool:
    return isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value)


# -----------------------------------------------------------------------------
# Mapping <-> dict
# -----------------------------------------------------------------------------


def _mapping_to_dict(mapping: Any, include_id: bool) -> dict[str, Any]:
    data: dict[str, Any] = {"type": mapping.kind.value}
    for f in fields(mapping):
        if f.name == "id" and not include_id:
            continue
        value = getattr(mapping, f.name)
        if f.name == "rules":
            value = [{"pattern": r.pattern, "accountName": r.account_name} for r in value]
        elif isinstance(value, (TransferField, AmountMode)):
            value = value.value
        elif isinstance(value, UUID):
            value = str(value)
        elif isinstance(value, tuple):
            value = list(value)
        data[_camel(f.name)] = value
    return data


def _mapping_from_dict(cls: type, data: Mapping[str, Any]) -> Any:
    kwargs: dict[str, Any] = {}
    for f in fields(cls):
        key = _camel(f.name)
        if key not in data:
            continue
        value = data[key]
        if f.name == "rules":
            if value is not None and not isinstance(value, (list, tuple)):
                raise ExportFormatError(f"{key} must be a list")
            value = tuple(
                RegexRule(pattern=r["pattern"], account_name=r["accountName"]) for r in value or ()
            )
        elif f.name in _TUPLE_FIELDS:
            if value is not None and not _is_string_list(value):
                raise ExportFormatError(f"{key} must be a list of strings")
            value = tuple(value or ())
        elif f.name in _BOOL_FIELDS:
            if not isinstance(value, bool):
                raise ExportFormatError(f"{key} must be true or false, got {value!r}")
        elif f.name in _INT_FIELDS:
            if isinstance(value, bool) or not isinstance(value, int):
                raise ExportFormatError(f"{key} must be an integer, got {value!r}")
        elif f.name == "field_type":
            value = TransferField(value)
        elif f.name == "mode":
            value = AmountMode(value)
        elif f.name == "id":
            value = UUID(str(value))
        elif not isinstance(value, str) and not (value is None and f.default is None):
            raise ExportFormatError(f"{key} must be a string, got {value!r}")
        kwargs[f.name] = value
    return cls(**kwargs)


def _decode_mapping_dict(
    types_by_kind: Mapping[MappingKind, type],
    key: str,
    data: Any,
) -> Any:
    if not isinstance(data, Mapping):
        raise ExportFormatError(f"field mapping {key!r} must be an object")
    try:
        kind = MappingKind(data.get("type"))
    except ValueError as e:
        raise ExportFormatError(f"field mapping {key!r} has unknown type {data.get('type')!r}") from e
    try:
        TransferField(key)
    except ValueError as e:
        raise ExportFormatError(f"unknown transfer field {key!r}") from e
    if "fieldType" not in data:
        data = {**data, "fieldType": key}
    try:
        return _mapping_from_dict(types_by_kind[kind], data)
    except ExportFormatError as e:
        raise ExportFormatError(f"field mapping {key!r}: {e.reason}") from e
    except (KeyError, TypeError, ValueError, InvalidFieldMappingError) as e:
        raise ExportFormatError(f"field mapping {key!r}: {e}") from e


# -----------------------------------------------------------------------------
# Export documents
# -----------------------------------------------------------------------------


def export_to_dict(export: CsvStrategyExport) -> dict[str, Any]:
    return {
        "version": export.version,
        "name": export.name,
        "identificationColumns": sorted(export.identification_columns),
        "fieldMappings": {
            key.value: _mapping_to_dict(mapping, include_id=False)
            for key, mapping in export.field_mappings.items()
        },
        "attributeMappings": [
            {"columnName": a.column_name, "attributeTypeName": a.attribute_type_name}
            for a in export.attribute_mappings
        ],
    }


def export_from_dict(data: Any) -> CsvStrategyExport:
    """
    Build a CsvStrategyExport from a decoded document.

    Raises:
        ExportFormatError: On a missing name, unknown mapping type or
            malformed section.
    """
    if not isinstance(data, Mapping):
        raise ExportFormatError("document must be an object")
    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ExportFormatError("name is required")

    raw_mappings = data.get("fieldMappings") or {}
    if not isinstance(raw_mappings, Mapping):
        raise ExportFormatError("fieldMappings must be an object")
    field_mappings: dict[TransferField, FieldMappingExport] = {}
    for key, raw in raw_mappings.items():
        mapping = _decode_mapping_dict(EXPORT_TYPES_BY_KIND, key, raw)
        if mapping.field_type != TransferField(key):
            raise ExportFormatError(
                f"field mapping {key!r} declares fieldType {mapping.field_type.value}"
            )
        field_mappings[TransferField(key)] = mapping

    raw_attributes = data.get("attributeMappings") or []
    if not isinstance(raw_attributes, (list, tuple)):
        raise ExportFormatError("attributeMappings must be a list")
    try:
        attribute_mappings = tuple(
            AttributeColumnMapping(
                column_name=a["columnName"],
                attribute_type_name=a["attributeTypeName"],
            )
            for a in raw_attributes
        )
    except (KeyError, TypeError) as e:
        raise ExportFormatError(f"attributeMappings: {e}") from e

    columns = data.get("identificationColumns") or []
    if not _is_string_list(columns):
        raise ExportFormatError("identificationColumns must be a list of strings")

    return CsvStrategyExport(
        version=str(data.get("version", "")),
        name=name,
        identification_columns=frozenset(columns),
        field_mappings=field_mappings,
        attribute_mappings=attribute_mappings,
    )


def encode_export(export: CsvStrategyExport) -> str:
    """Pretty-printed JSON document for ``export``."""
    return json.dumps(export_to_dict(export), indent=2, ensure_ascii=False)


def decode_export(text: str) -> CsvStrategyExport:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ExportFormatError(f"not valid JSON: {e}") from e
    return export_from_dict(data)


def load_export_file(path: Path | str) -> CsvStrategyExport:
    """Load an export from a ``.json``, ``.yaml`` or ``.yml`` file."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in (".yaml", ".yml"):
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ExportFormatError(f"not valid YAML: {e}") from e
        return export_from_dict(data)
    return decode_export(text)


# -----------------------------------------------------------------------------
# Persisted field mappings (with ids)
# -----------------------------------------------------------------------------


def field_mappings_to_json(mappings: Mapping[TransferField, FieldMapping]) -> dict[str, Any]:
    return {
        key.value: _mapping_to_dict(mapping, include_id=True)
        for key, mapping in mappings.items()
    }


def field_mappings_from_json(data: Mapping[str, Any]) -> dict[TransferField, FieldMapping]:
    return {
        TransferField(key): _decode_mapping_dict(_MAPPING_TYPES_BY_KIND, key, raw)
        for key, raw in (data or {}).items()
    }
