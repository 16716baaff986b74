"""
Settings loader (``ledger_kernel.config``).

Responsibility
--------------
Loads runtime settings from an optional YAML file and applies environment
overrides.  The result is a frozen ``LedgerSettings``; nothing downstream
reads the environment or the file directly.

Precedence (last wins): built-in defaults, YAML file, environment
(``LEDGER_DATABASE_URL``, ``LEDGER_LOG_LEVEL``).

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Top-level YAML value that is not a mapping  -> ``ValueError``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

DEFAULT_DATABASE_URL = "sqlite:///ledger.db"

ENV_DATABASE_URL = "LEDGER_DATABASE_URL"
ENV_LOG_LEVEL = "LEDGER_LOG_LEVEL"


@dataclass(frozen=True)
class LedgerSettings:
    """Runtime settings for the CLI and services."""

    database_url: str = DEFAULT_DATABASE_URL
    log_level: str = "INFO"
    csv_delimiter: str = ","
    csv_encoding: str = "utf-8"
    # Written into every strategy export as its "version"
    app_version: str = "0.1.0"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its top-level mapping (empty file -> {})."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a mapping, got {type(data).__name__}")
    return data


def load_settings(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> LedgerSettings:
    """
    Build settings from defaults, an optional YAML file and the environment.

    Unknown YAML keys are ignored so older binaries can read newer files.
    """
    settings = LedgerSettings()

    if path is not None:
        data = load_yaml_file(Path(path))
        known = {f.name for f in fields(LedgerSettings)}
        settings = replace(
            settings,
            **{k: str(v) for k, v in data.items() if k in known and v is not None},
        )

    env = os.environ if environ is None else environ
    if env.get(ENV_DATABASE_URL):
        settings = replace(settings, database_url=env[ENV_DATABASE_URL])
    if env.get(ENV_LOG_LEVEL):
        settings = replace(settings, log_level=env[ENV_LOG_LEVEL].upper())

    return settings
