"""
Module: ledger_kernel.models.currency
Responsibility: ORM persistence for currencies and their minor-unit scale.
Architecture position: Kernel > Models.  May import from db/base.py and domain/.

Invariants enforced:
    - code is unique and stored upper-case.
    - scale_factor is stored per currency; Money never assumes 100.
"""

from __future__ import annotations

from sqlalchemy import CheckConstraint, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.domain.values import CurrencyInfo


class Currency(TrackedBase):
    """A currency known to the ledger."""

    __tablename__ = "currencies"

    __table_args__ = (
        UniqueConstraint("code", name="uq_currency_code"),
        CheckConstraint("scale_factor > 0", name="ck_currency_scale_positive"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    code: Mapped[str] = mapped_column(String(10), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    scale_factor: Mapped[int] = mapped_column(nullable=False, default=100)

    def to_dto(self) -> CurrencyInfo:
        return CurrencyInfo(
            id=self.id,
            code=self.code,
            name=self.name,
            scale_factor=self.scale_factor,
        )
