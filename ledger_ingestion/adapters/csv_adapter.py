"""
CSV source adapter.

Uses csv.reader.  Configurable: delimiter, encoding, quoting, skip_rows.
Handles BOM via utf-8-sig when encoding is utf-8.  The first row read after
``skip_rows`` is the heading row; data rows are numbered from 1 and padded
or truncated to the heading count.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any

from ledger_ingestion.domain.types import CsvRow, CsvTable
from ledger_kernel.logging_config import get_logger

logger = get_logger("ingestion.csv_adapter")

_QUOTING = {
    "minimal": csv.QUOTE_MINIMAL,
    "all": csv.QUOTE_ALL,
    "nonnumeric": csv.QUOTE_NONNUMERIC,
    "none": csv.QUOTE_NONE,
}


def _get_encoding(options: dict[str, Any]) -> str:
    enc = options.get("encoding", "utf-8")
    if enc.lower() in ("utf-8", "utf8"):
        return "utf-8-sig"  # Strip BOM if present
    return enc


def _get_quoting(options: dict[str, Any]) -> int:
    q = options.get("quoting", "minimal")
    if isinstance(q, int):
        return q
    return _QUOTING.get(str(q).lower(), csv.QUOTE_MINIMAL)


def _fit(values: list[str], width: int) -> tuple[str, ...]:
    if len(values) < width:
        values = values + [""] * (width - len(values))
    return tuple(values[:width])


class CsvSourceAdapter:
    """Read a whole CSV file into a CsvTable."""

    def read_table(self, source_path: Path | str, options: dict[str, Any] | None = None) -> CsvTable:
        options = options or {}
        source_path = Path(source_path)
        encoding = _get_encoding(options)
        delimiter = options.get("delimiter", ",")
        skip_rows = int(options.get("skip_rows", 0))
        quoting = _get_quoting(options)

        with source_path.open("r", encoding=encoding, newline="") as f:
            for _ in range(skip_rows):
                next(f, None)
            reader = csv.reader(f, delimiter=delimiter, quoting=quoting)
            headings = next(reader, None)
            if headings is None:
                return CsvTable(headings=())
            width = len(headings)
            rows = []
            for row in reader:
                if not any(cell.strip() for cell in row):
                    continue
                rows.append(CsvRow(row_index=len(rows) + 1, values=_fit(row, width)))

        logger.info(
            "csv_read",
            extra={"path": str(source_path), "columns": width, "rows": len(rows)},
        )
        return CsvTable(headings=tuple(headings), rows=tuple(rows))
