"""
StrategyStore -- persistence for import strategies and saved account routing.

Responsibility:
    Save, load, list and delete CsvImportStrategy values, and the
    CsvAccountMapping rules that belong to them.

Architecture position:
    Ingestion > Services -- imperative shell.  Flushes, never commits.

Invariants enforced:
    - Strategy names are unique (checked here, backed by uq_csv_import_strategy_name).
    - Loaded strategies are rebuilt through the domain constructors, so a
      stored row that no longer validates fails loudly on load.

Failure modes:
    - DuplicateStrategyNameError when saving under a name another strategy uses.
    - StrategyNotFoundError from get / delete / add_account_mapping on an
      unknown id.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_ingestion.domain.types import CsvAccountMapping, CsvImportStrategy
from ledger_ingestion.models.strategy import CsvAccountMappingModel, CsvImportStrategyModel
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    DuplicateStrategyNameError,
    StrategyNotFoundError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.services.base import BaseService

logger = get_logger("ingestion.strategy_store")


class StrategyStore(BaseService[CsvImportStrategyModel]):
    """Reads and writes strategies within the caller's transaction."""

    def _model(self, strategy_id: UUID) -> CsvImportStrategyModel:
        model = self.session.get(CsvImportStrategyModel, strategy_id)
        if model is None:
            raise StrategyNotFoundError(str(strategy_id))
        return model

    def save(self, strategy: CsvImportStrategy) -> CsvImportStrategy:
        """
        Insert or update ``strategy`` (matched by id).

        Raises:
            DuplicateStrategyNameError: If another strategy has the same name.
        """
        clash = self.session.execute(
            select(CsvImportStrategyModel).where(
                CsvImportStrategyModel.name == strategy.name,
                CsvImportStrategyModel.id != strategy.id,
            )
        ).scalar_one_or_none()
        if clash is not None:
            raise DuplicateStrategyNameError(strategy.name)

        model = self.session.get(CsvImportStrategyModel, strategy.id)
        created = model is None
        if created:
            model = CsvImportStrategyModel.from_dto(strategy)
            self.session.add(model)
        else:
            model.apply_dto(strategy)
        self.session.flush()
        self.session.refresh(model)
        logger.info(
            "strategy_saved",
            extra={
                "strategy_id": str(strategy.id),
                "strategy_name": strategy.name,
                "is_new": created,
                "mapped_fields": sorted(f.value for f in strategy.field_mappings),
            },
        )
        return model.to_dto()

    def get(self, strategy_id: UUID) -> CsvImportStrategy:
        return self._model(strategy_id).to_dto()

    def get_by_name(self, name: str) -> CsvImportStrategy | None:
        model = self.session.execute(
            select(CsvImportStrategyModel).where(CsvImportStrategyModel.name == name)
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def list_all(self) -> list[CsvImportStrategy]:
        """All strategies ordered by name (the matcher's iteration order)."""
        models = self.session.execute(
            select(CsvImportStrategyModel).order_by(CsvImportStrategyModel.name)
        ).scalars().all()
        return [m.to_dto() for m in models]

    def delete(self, strategy_id: UUID) -> None:
        model = self._model(strategy_id)
        for mapping in self.session.execute(
            select(CsvAccountMappingModel).where(CsvAccountMappingModel.strategy_id == strategy_id)
        ).scalars():
            self.session.delete(mapping)
        self.session.delete(model)
        self.session.flush()
        logger.info(
            "strategy_deleted",
            extra={"strategy_id": str(strategy_id), "strategy_name": model.name},
        )

    def add_account_mapping(self, mapping: CsvAccountMapping) -> CsvAccountMapping:
        """
        Save a routing rule for an existing strategy and account.

        Raises:
            StrategyNotFoundError: If the strategy does not exist.
            AccountNotFoundError: If the account does not exist.
        """
        self._model(mapping.strategy_id)
        if self.session.get(Account, mapping.account_id) is None:
            raise AccountNotFoundError(str(mapping.account_id))
        model = CsvAccountMappingModel.from_dto(mapping)
        self.session.add(model)
        self.session.flush()
        self.session.refresh(model)
        logger.info(
            "account_mapping_added",
            extra={
                "strategy_id": str(mapping.strategy_id),
                "column_name": mapping.column_name,
                "value_pattern": mapping.value_pattern,
                "account_id": mapping.account_id,
            },
        )
        return model.to_dto()

    def list_account_mappings(self, strategy_id: UUID) -> list[CsvAccountMapping]:
        """Routing rules for a strategy, oldest first (first match wins)."""
        models = self.session.execute(
            select(CsvAccountMappingModel)
            .where(CsvAccountMappingModel.strategy_id == strategy_id)
            .order_by(CsvAccountMappingModel.created_at, CsvAccountMappingModel.id)
        ).scalars().all()
        return [m.to_dto() for m in models]
