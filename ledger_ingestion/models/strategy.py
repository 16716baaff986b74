"""
Strategy ORM models.

Contract:
    CsvImportStrategyModel persists one strategy: identification columns,
    field mappings (with their ids) and attribute mappings as JSON.
    CsvAccountMappingModel persists saved account routing rules per strategy.

Architecture: ledger_ingestion/models. Imports from ledger_kernel.db.base and
the codec only.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import JSON, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_ingestion.codec.json_codec import field_mappings_from_json, field_mappings_to_json
from ledger_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from ledger_ingestion.domain.types import CsvAccountMapping, CsvImportStrategy


class CsvImportStrategyModel(TrackedBase):
    """One named import strategy (unique name)."""

    __tablename__ = "csv_import_strategies"

    __table_args__ = (
        UniqueConstraint("name", name="uq_csv_import_strategy_name"),
    )

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    identification_columns: Mapped[list] = mapped_column(JSON, nullable=False)
    field_mappings: Mapped[dict] = mapped_column(JSON, nullable=False)
    attribute_mappings: Mapped[list] = mapped_column(JSON, nullable=False)

    def to_dto(self) -> CsvImportStrategy:
        from ledger_ingestion.domain.types import AttributeColumnMapping, CsvImportStrategy

        return CsvImportStrategy(
            id=self.id,
            name=self.name,
            identification_columns=frozenset(self.identification_columns or ()),
            field_mappings=field_mappings_from_json(self.field_mappings or {}),
            attribute_mappings=tuple(
                AttributeColumnMapping(
                    column_name=a["columnName"],
                    attribute_type_name=a["attributeTypeName"],
                )
                for a in self.attribute_mappings or ()
            ),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def apply_dto(self, dto: CsvImportStrategy) -> None:
        """Copy every persisted field of ``dto`` onto this row."""
        self.name = dto.name
        self.identification_columns = sorted(dto.identification_columns)
        self.field_mappings = field_mappings_to_json(dto.field_mappings)
        self.attribute_mappings = [
            {"columnName": a.column_name, "attributeTypeName": a.attribute_type_name}
            for a in dto.attribute_mappings
        ]

    @classmethod
    def from_dto(cls, dto: CsvImportStrategy) -> CsvImportStrategyModel:
        model = cls(id=dto.id)
        model.apply_dto(dto)
        return model


class CsvAccountMappingModel(TrackedBase):
    """Saved rule: value of ``column_name`` matching ``value_pattern`` routes to ``account_id``."""

    __tablename__ = "csv_account_mappings"

    __table_args__ = (
        Index("ix_csv_account_mappings_strategy", "strategy_id"),
    )

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)
    strategy_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("csv_import_strategies.id", ondelete="CASCADE"),
        nullable=False,
    )
    column_name: Mapped[str] = mapped_column(String(255), nullable=False)
    value_pattern: Mapped[str] = mapped_column(String(1000), nullable=False)
    account_id: Mapped[int] = mapped_column(ForeignKey("accounts.id"), nullable=False)

    def to_dto(self) -> CsvAccountMapping:
        from ledger_ingestion.domain.types import CsvAccountMapping

        return CsvAccountMapping(
            id=self.id,
            strategy_id=self.strategy_id,
            column_name=self.column_name,
            value_pattern=self.value_pattern,
            account_id=self.account_id,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_dto(cls, dto: CsvAccountMapping) -> CsvAccountMappingModel:
        return cls(
            id=dto.id,
            strategy_id=dto.strategy_id,
            column_name=dto.column_name,
            value_pattern=dto.value_pattern,
            account_id=dto.account_id,
        )
