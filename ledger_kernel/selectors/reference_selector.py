"""
Module: ledger_kernel.selectors.reference_selector
Responsibility: Read-only access to accounts, categories and currencies, and
    the one place a ReferenceSnapshot is built from the database.
Architecture position: Kernel > Selectors.  May import from models/, domain/
    and selectors/base.py.

Invariants enforced:
    - Read-only: No mutations performed on any queried data.
    - Deterministic ordering: every list is ordered by id, so "first by name"
      in a snapshot is the oldest entity.
"""

from sqlalchemy import select

from ledger_kernel.domain.reference_snapshot import ReferenceSnapshot
from ledger_kernel.domain.values import AccountInfo, CategoryInfo, CurrencyInfo
from ledger_kernel.models.account import Account, Category
from ledger_kernel.models.currency import Currency
from ledger_kernel.selectors.base import BaseSelector


class ReferenceSelector(BaseSelector[Account]):
    """Queries for reference data, returning frozen DTOs."""

    def all_accounts(self) -> list[AccountInfo]:
        rows = self.session.execute(select(Account).order_by(Account.id)).scalars().all()
        return [a.to_dto() for a in rows]

    def all_categories(self) -> list[CategoryInfo]:
        rows = self.session.execute(select(Category).order_by(Category.id)).scalars().all()
        return [c.to_dto() for c in rows]

    def all_currencies(self) -> list[CurrencyInfo]:
        rows = self.session.execute(select(Currency).order_by(Currency.id)).scalars().all()
        return [c.to_dto() for c in rows]

    def find_account_by_name(self, name: str) -> AccountInfo | None:
        account = self.session.execute(
            select(Account).where(Account.name == name)
        ).scalar_one_or_none()
        return account.to_dto() if account is not None else None

    def find_currency_by_code(self, code: str) -> CurrencyInfo | None:
        currency = self.session.execute(
            select(Currency).where(Currency.code == code.strip().upper())
        ).scalar_one_or_none()
        return currency.to_dto() if currency is not None else None

    def snapshot(self) -> ReferenceSnapshot:
        """
        Capture accounts, currencies and categories as immutable lookup maps.

        Call again after creating entities; an old snapshot never sees them.
        """
        return ReferenceSnapshot.from_entities(
            accounts=self.all_accounts(),
            currencies=self.all_currencies(),
            categories=self.all_categories(),
        )
