"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for accounts and categories -- the source and
    target of every transfer.
Architecture position: Kernel > Models.  May import from db/base.py and domain/.

Invariants enforced:
    - Account names and category names are unique; the row mapper and the
      export format both address them by name.
    - A NULL category_id means "Uncategorized"; the domain layer sees the
      UNCATEGORIZED_ID sentinel instead.

Failure modes:
    - IntegrityError on a duplicate name (services check first and raise
      DuplicateAccountError).
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import Date, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.domain.values import UNCATEGORIZED_ID, AccountInfo, CategoryInfo


class Category(TrackedBase):
    """A node in the account category tree."""

    __tablename__ = "categories"

    __table_args__ = (
        UniqueConstraint("name", name="uq_category_name"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("categories.id"),
        nullable=True,
    )

    def to_dto(self) -> CategoryInfo:
        return CategoryInfo(id=self.id, name=self.name, parent_id=self.parent_id)


class Account(TrackedBase):
    """
    A ledger account that transfers move money between.

    Contract:
        Account.name is globally unique (uq_account_name).
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("name", name="uq_account_name"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # NULL means Uncategorized
    category_id: Mapped[int | None] = mapped_column(
        ForeignKey("categories.id"),
        nullable=True,
    )

    opening_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    def to_dto(self) -> AccountInfo:
        return AccountInfo(
            id=self.id,
            name=self.name,
            category_id=self.category_id if self.category_id is not None else UNCATEGORIZED_ID,
            opening_date=self.opening_date,
        )
