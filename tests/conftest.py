"""
Pytest fixtures for the ledger CSV import test suite.

Provides:
- In-memory SQLite sessions (fresh database per test)
- Seeded reference data (currencies, categories, accounts)
- Strategy and table builders
- Structured log capture
"""

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy.orm import Session

from ledger_ingestion.domain.types import (
    AccountLookupMapping,
    AmountMode,
    AmountParsingMapping,
    CsvImportStrategy,
    CsvRow,
    CsvTable,
    DateTimeParsingMapping,
    DirectColumnMapping,
    HardCodedAccountMapping,
    HardCodedCurrencyMapping,
    TransferField,
)
from ledger_kernel.db.engine import create_tables, get_session, init_engine_from_url, reset_engine
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.domain.values import AccountInfo, CategoryInfo, CurrencyInfo
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ledger_kernel.services.reference_service import ReferenceDataService


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture ledger logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, import_service):
            import_service.prepare(table, strategy)
            logs = captured_logs()
            assert any(r["message"] == "import_prepared" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("ledger")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def db_engine():
    """Fresh in-memory SQLite database with every table created."""
    engine = init_engine_from_url("sqlite://")
    create_tables()
    yield engine
    reset_engine()


@pytest.fixture
def session(db_engine) -> Generator[Session, None, None]:
    """Session on the test database; never committed, closed at teardown."""
    sess = get_session()
    yield sess
    try:
        sess.rollback()
    finally:
        sess.close()


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 6, 1, 9, 30, 0, tzinfo=timezone.utc))


@dataclass(frozen=True)
class SeededReferenceData:
    usd: CurrencyInfo
    eur: CurrencyInfo
    jpy: CurrencyInfo
    groceries: CategoryInfo
    checking: AccountInfo
    savings: AccountInfo
    supermarket: AccountInfo


@pytest.fixture
def reference_data(session, deterministic_clock) -> SeededReferenceData:
    """USD, EUR, JPY; a Groceries category; Checking, Savings and Supermarket accounts."""
    service = ReferenceDataService(session, clock=deterministic_clock)
    groceries = service.create_category("Groceries")
    return SeededReferenceData(
        usd=service.upsert_currency_by_code("USD"),
        eur=service.upsert_currency_by_code("EUR"),
        jpy=service.upsert_currency_by_code("JPY"),
        groceries=groceries,
        checking=service.create_account("Checking", opening_date=date(2020, 1, 1)),
        savings=service.create_account("Savings"),
        supermarket=service.create_account("Supermarket", category_id=groceries.id),
    )


# =============================================================================
# Strategy and table builders
# =============================================================================

BANK_HEADINGS = ("Date", "Description", "Amount", "Payee")


@pytest.fixture
def make_strategy():
    """
    Build a single-column bank strategy:
    Checking (hard-coded) -> Payee (lookup), dd/MM/yyyy dates.
    """

    def _make(
        source_account_id: int,
        currency_id: int,
        name: str = "My Bank",
        flip: bool = False,
        negate: bool = False,
        **overrides,
    ) -> CsvImportStrategy:
        mappings = {
            TransferField.SOURCE_ACCOUNT: HardCodedAccountMapping(
                field_type=TransferField.SOURCE_ACCOUNT, account_id=source_account_id
            ),
            TransferField.TARGET_ACCOUNT: AccountLookupMapping(
                field_type=TransferField.TARGET_ACCOUNT, column_name="Payee"
            ),
            TransferField.TIMESTAMP: DateTimeParsingMapping(
                field_type=TransferField.TIMESTAMP, date_column_name="Date", date_format="dd/MM/yyyy"
            ),
            TransferField.DESCRIPTION: DirectColumnMapping(
                field_type=TransferField.DESCRIPTION, column_name="Description"
            ),
            TransferField.AMOUNT: AmountParsingMapping(
                field_type=TransferField.AMOUNT,
                mode=AmountMode.SINGLE_COLUMN,
                amount_column_name="Amount",
                negate_values=negate,
                flip_accounts_on_positive=flip,
            ),
            TransferField.CURRENCY: HardCodedCurrencyMapping(
                field_type=TransferField.CURRENCY, currency_id=currency_id
            ),
        }
        mappings.update(overrides)
        return CsvImportStrategy(
            name=name,
            identification_columns=frozenset(BANK_HEADINGS),
            field_mappings=mappings,
        )

    return _make


@pytest.fixture
def make_table():
    """Build a CsvTable from headings and plain row lists (rows numbered from 1)."""

    def _make(rows, headings=BANK_HEADINGS) -> CsvTable:
        return CsvTable(
            headings=tuple(headings),
            rows=tuple(CsvRow(row_index=i, values=tuple(r)) for i, r in enumerate(rows, start=1)),
        )

    return _make
