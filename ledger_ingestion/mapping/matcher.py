"""
Strategy matcher: pick the strategy whose identification columns equal a
file's headings.

Matching is exact set equality: case-sensitive, order-independent, no
trimming, no partial or superset matches.  Pure; never raises.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from ledger_ingestion.domain.types import CsvImportStrategy


def find_matching_strategy(
    headings: Iterable[str],
    strategies: Iterable[CsvImportStrategy],
) -> CsvImportStrategy | None:
    """First strategy, in iteration order, whose identification set equals the headings."""
    heading_set = frozenset(headings)
    for strategy in strategies:
        if strategy.identification_columns == heading_set:
            return strategy
    return None


def find_all_matching_strategies(
    headings: Iterable[str],
    strategies: Iterable[CsvImportStrategy],
) -> Sequence[CsvImportStrategy]:
    """Every matching strategy, in iteration order (for "pick one" UIs)."""
    heading_set = frozenset(headings)
    return [s for s in strategies if s.identification_columns == heading_set]
