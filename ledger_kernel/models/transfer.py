"""
Module: ledger_kernel.models.transfer
Responsibility: ORM persistence for transfers and their free-form attributes.
Architecture position: Kernel > Models.  May import from db/base.py and models/.

Invariants enforced:
    - amount is a non-negative integer in the currency's minor unit.
    - source and target accounts must exist (FK); the placeholder id is
      never written.
    - An attribute type name is unique; each transfer attribute points at one.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString


class TransferModel(TrackedBase):
    """A persisted transfer between two accounts."""

    __tablename__ = "transfers"

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_transfer_amount_non_negative"),
        Index("idx_transfer_timestamp", "timestamp"),
    )

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)

    timestamp: Mapped[datetime] = mapped_column(nullable=False)

    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    source_account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id"),
        nullable=False,
    )

    target_account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id"),
        nullable=False,
    )

    currency_id: Mapped[int] = mapped_column(
        ForeignKey("currencies.id"),
        nullable=False,
    )

    # Minor units (cents for USD)
    amount: Mapped[int] = mapped_column(nullable=False)

    # Import run that produced this transfer, if any
    import_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    source_row: Mapped[int | None] = mapped_column(nullable=True)

    attributes: Mapped[list["TransferAttribute"]] = relationship(
        back_populates="transfer",
        cascade="all, delete-orphan",
    )


class AttributeType(TrackedBase):
    """A named kind of free-form transfer attribute (e.g. "Reference")."""

    __tablename__ = "attribute_types"

    __table_args__ = (
        UniqueConstraint("name", name="uq_attribute_type_name"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)


class TransferAttribute(TrackedBase):
    """One captured key/value attribute of a transfer."""

    __tablename__ = "transfer_attributes"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    transfer_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("transfers.id", ondelete="CASCADE"),
        nullable=False,
    )

    attribute_type_id: Mapped[int] = mapped_column(
        ForeignKey("attribute_types.id"),
        nullable=False,
    )

    value: Mapped[str] = mapped_column(Text, nullable=False)

    transfer: Mapped[TransferModel] = relationship(back_populates="attributes")

    attribute_type: Mapped[AttributeType] = relationship()
