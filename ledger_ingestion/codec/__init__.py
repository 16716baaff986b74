"""Serialization of strategy exports (JSON, YAML) and persisted field mappings."""

from ledger_ingestion.codec.json_codec import (
    decode_export,
    encode_export,
    export_from_dict,
    export_to_dict,
    field_mappings_from_json,
    field_mappings_to_json,
    load_export_file,
)

__all__ = [
    "decode_export",
    "encode_export",
    "export_from_dict",
    "export_to_dict",
    "field_mappings_from_json",
    "field_mappings_to_json",
    "load_export_file",
]
