"""
Import service: prepare -> create accounts -> remap -> commit.

The two-phase protocol as an explicit state machine.  Each step takes an
immutable ImportRun and returns the next one; calling a step from the wrong
stage raises ImportStateError.  Uses structured logging (LogContext,
get_logger("ingestion.*")).  Flushes, never commits; the caller owns the
transaction.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from ledger_ingestion.domain.types import CsvImportStrategy, CsvTable
from ledger_ingestion.mapping.mapper import (
    CsvTransferMapper,
    ImportPreparation,
    MappingError,
    TransferWithAttributes,
)
from ledger_ingestion.mapping.matcher import find_matching_strategy
from ledger_ingestion.services.strategy_store import StrategyStore
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.values import NEW_ACCOUNT_PLACEHOLDER_ID
from ledger_kernel.exceptions import ImportStateError, StrategyNotFoundError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.selectors.reference_selector import ReferenceSelector
from ledger_kernel.services.reference_service import ReferenceDataService
from ledger_kernel.services.transfer_writer import TransferWriter

logger = get_logger("ingestion.import_service")

UNRESOLVED_ACCOUNT_MESSAGE = "Account could not be resolved"


class ImportStage(str, Enum):
    PREPARED = "prepared"
    ACCOUNTS_CREATED = "accounts_created"
    REMAPPED = "remapped"
    COMMITTED = "committed"


@dataclass(frozen=True)
class ImportRun:
    """Snapshot of one import at one stage."""

    import_id: UUID
    strategy: CsvImportStrategy
    table: CsvTable
    stage: ImportStage
    preparation: ImportPreparation
    created_accounts: Mapping[str, int] = field(default_factory=dict)
    committed_transfer_ids: tuple[UUID, ...] = ()

    @property
    def valid_count(self) -> int:
        return len(self.preparation.valid_transfers)

    @property
    def error_count(self) -> int:
        return self.preparation.error_count


def _has_placeholder(item: TransferWithAttributes) -> bool:
    t = item.transfer
    return NEW_ACCOUNT_PLACEHOLDER_ID in (t.source_account_id, t.target_account_id)


class CsvImportService:
    """Runs CSV imports against the reference data in ``session``."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._store = StrategyStore(session)
        self._selector = ReferenceSelector(session)
        self._reference_service = ReferenceDataService(session, clock=self._clock)

    @staticmethod
    def _require(run: ImportRun, operation: str, *stages: ImportStage) -> None:
        if run.stage not in stages:
            raise ImportStateError(operation, run.stage.value)

    def _mapper(self, strategy: CsvImportStrategy, table: CsvTable) -> CsvTransferMapper:
        return CsvTransferMapper(
            strategy=strategy,
            columns=table.columns,
            snapshot=self._selector.snapshot(),
            account_mappings=self._store.list_account_mappings(strategy.id),
        )

    def select_strategy(self, headings) -> CsvImportStrategy | None:
        """First saved strategy (by name) whose identification columns equal ``headings``."""
        strategy = find_matching_strategy(headings, self._store.list_all())
        logger.info(
            "strategy_selected" if strategy else "strategy_not_matched",
            extra={
                "headings": list(headings),
                "strategy_name": strategy.name if strategy else None,
            },
        )
        return strategy

    def prepare(self, table: CsvTable, strategy: CsvImportStrategy) -> ImportRun:
        """Map every row against the current reference data."""
        import_id = uuid4()
        with LogContext.bind(import_id=str(import_id), strategy_name=strategy.name, producer="ingestion"):
            preparation = self._mapper(strategy, table).prepare_import(table.rows)
            logger.info(
                "import_prepared",
                extra={
                    "row_count": len(table.rows),
                    "valid_count": len(preparation.valid_transfers),
                    "error_count": preparation.error_count,
                    "new_account_count": len(preparation.new_accounts),
                },
            )
        return ImportRun(
            import_id=import_id,
            strategy=strategy,
            table=table,
            stage=ImportStage.PREPARED,
            preparation=preparation,
        )

    def create_accounts(self, run: ImportRun) -> ImportRun:
        """Create (or reuse, by name) every account the preparation asked for."""
        self._require(run, "create accounts for", ImportStage.PREPARED)
        created: dict[str, int] = {}
        with LogContext.bind(import_id=str(run.import_id), strategy_name=run.strategy.name):
            for new_account in sorted(run.preparation.new_accounts, key=lambda a: a.name):
                account = self._reference_service.get_or_create_account(
                    new_account.name, category_id=new_account.category_id
                )
                created[new_account.name] = account.id
            logger.info("import_accounts_created", extra={"account_count": len(created)})
        return replace(run, stage=ImportStage.ACCOUNTS_CREATED, created_accounts=created)

    def remap(self, run: ImportRun) -> ImportRun:
        """
        Map the rows again with a fresh snapshot.

        Rows that still point at the new-account placeholder (e.g. a blank
        account name) become error rows.
        """
        self._require(run, "remap", ImportStage.ACCOUNTS_CREATED)
        with LogContext.bind(import_id=str(run.import_id), strategy_name=run.strategy.name):
            preparation = self._mapper(run.strategy, run.table).prepare_import(run.table.rows)
            valid = tuple(v for v in preparation.valid_transfers if not _has_placeholder(v))
            unresolved = tuple(
                MappingError(row_index=v.row_index, message=UNRESOLVED_ACCOUNT_MESSAGE)
                for v in preparation.valid_transfers
                if _has_placeholder(v)
            )
            errors = tuple(sorted(preparation.error_rows + unresolved, key=lambda e: e.row_index))
            preparation = replace(preparation, valid_transfers=valid, error_rows=errors)
            logger.info(
                "import_remapped",
                extra={
                    "valid_count": len(valid),
                    "error_count": len(errors),
                    "unresolved_count": len(unresolved),
                },
            )
        return replace(run, stage=ImportStage.REMAPPED, preparation=preparation)

    def commit(self, run: ImportRun) -> ImportRun:
        """Persist the valid transfers and their attributes."""
        self._require(run, "commit", ImportStage.REMAPPED)
        pending = [v for v in run.preparation.valid_transfers if _has_placeholder(v)]
        if pending:
            raise ImportStateError(
                "commit",
                run.stage.value,
                f"{len(pending)} transfer(s) still reference an account that does not exist",
            )

        writer = TransferWriter(self._session)
        ids: list[UUID] = []
        with LogContext.bind(import_id=str(run.import_id), strategy_name=run.strategy.name):
            for item in run.preparation.valid_transfers:
                ids.append(
                    writer.write(
                        item.transfer,
                        attributes=item.attributes,
                        import_id=run.import_id,
                        source_row=item.row_index,
                    )
                )
            logger.info(
                "import_committed",
                extra={"transfer_count": len(ids), "error_count": run.error_count},
            )
        return replace(run, stage=ImportStage.COMMITTED, committed_transfer_ids=tuple(ids))

    def run_import(self, table: CsvTable, strategy: CsvImportStrategy | None = None) -> ImportRun:
        """
        Run every step in order.

        Raises:
            StrategyNotFoundError: No strategy given and none matches the headings.
        """
        if strategy is None:
            strategy = self.select_strategy(table.headings)
            if strategy is None:
                raise StrategyNotFoundError(f"no strategy matches columns {sorted(table.headings)}")
        run = self.prepare(table, strategy)
        run = self.create_accounts(run)
        run = self.remap(run)
        return self.commit(run)
