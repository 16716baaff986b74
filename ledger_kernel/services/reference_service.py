"""
ReferenceDataService -- creates accounts, categories and currencies.

Responsibility:
    The write side for reference data.  Used by the import service to create
    accounts discovered in a CSV, and by the strategy export service to honor
    ``CreateNew`` resolutions.

Architecture position:
    Kernel > Services -- imperative shell.  Flushes, never commits.

Invariants enforced:
    - Account names are unique: ``create_account`` raises on a duplicate,
      ``get_or_create_account`` returns the existing row instead.
    - A new currency takes its scale factor from the ISO 4217 registry
      unless the caller supplies one.

Failure modes:
    - DuplicateAccountError from create_account on a taken name.
    - CategoryNotFoundError when an account names a category that does not
      exist (the UNCATEGORIZED_ID sentinel is always accepted).
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.currency import CurrencyRegistry
from ledger_kernel.domain.values import (
    UNCATEGORIZED_ID,
    AccountInfo,
    CategoryInfo,
    CurrencyInfo,
)
from ledger_kernel.exceptions import CategoryNotFoundError, DuplicateAccountError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account, Category
from ledger_kernel.models.currency import Currency
from ledger_kernel.services.base import BaseService

logger = get_logger("services.reference")


class ReferenceDataService(BaseService[Account]):
    """Creates reference data within the caller's transaction."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def _find_account(self, name: str) -> Account | None:
        return self.session.execute(
            select(Account).where(Account.name == name)
        ).scalar_one_or_none()

    def _category_fk(self, category_id: int) -> int | None:
        if category_id == UNCATEGORIZED_ID:
            return None
        if self.session.get(Category, category_id) is None:
            raise CategoryNotFoundError(str(category_id))
        return category_id

    def create_account(
        self,
        name: str,
        category_id: int = UNCATEGORIZED_ID,
        opening_date: date | None = None,
    ) -> AccountInfo:
        """
        Create a new account.

        Args:
            name: Unique account name (surrounding whitespace is stripped).
            category_id: Category id, or UNCATEGORIZED_ID.
            opening_date: Defaults to the clock's current date.

        Raises:
            ValueError: If the name is blank.
            DuplicateAccountError: If an account with this name exists.
            CategoryNotFoundError: If category_id does not exist.
        """
        name = name.strip()
        if not name:
            raise ValueError("Account name must not be blank")
        if self._find_account(name) is not None:
            raise DuplicateAccountError(name)

        account = Account(
            name=name,
            category_id=self._category_fk(category_id),
            opening_date=opening_date or self._clock.today(),
        )
        self.session.add(account)
        self.session.flush()
        logger.info(
            "account_created",
            extra={"account_id": account.id, "account_name": name, "category_id": category_id},
        )
        return account.to_dto()

    def get_or_create_account(
        self,
        name: str,
        category_id: int = UNCATEGORIZED_ID,
    ) -> AccountInfo:
        """Return the account called ``name``, creating it if needed."""
        existing = self._find_account(name.strip())
        if existing is not None:
            return existing.to_dto()
        return self.create_account(name, category_id=category_id)

    def create_category(self, name: str, parent_id: int | None = None) -> CategoryInfo:
        """
        Create a category, or return the existing one with the same name.

        Raises:
            ValueError: If the name is blank.
            CategoryNotFoundError: If parent_id does not exist.
        """
        name = name.strip()
        if not name:
            raise ValueError("Category name must not be blank")
        existing = self.session.execute(
            select(Category).where(Category.name == name)
        ).scalar_one_or_none()
        if existing is not None:
            return existing.to_dto()
        if parent_id is not None and self.session.get(Category, parent_id) is None:
            raise CategoryNotFoundError(str(parent_id))

        category = Category(name=name, parent_id=parent_id)
        self.session.add(category)
        self.session.flush()
        logger.info(
            "category_created",
            extra={"category_id": category.id, "category_name": name},
        )
        return category.to_dto()

    def upsert_currency_by_code(
        self,
        code: str,
        name: str | None = None,
        scale_factor: int | None = None,
    ) -> CurrencyInfo:
        """
        Return the currency with ``code``, creating it if needed.

        A new currency gets its name and scale factor from the ISO 4217
        registry unless given; codes outside the registry default to the
        code itself as name and two decimal places.
        """
        normalized = CurrencyRegistry.normalize(code)
        if not normalized:
            raise ValueError("Currency code must not be blank")
        existing = self.session.execute(
            select(Currency).where(Currency.code == normalized)
        ).scalar_one_or_none()
        if existing is not None:
            return existing.to_dto()

        iso = CurrencyRegistry.get_info(normalized)
        currency = Currency(
            code=normalized,
            name=name or (iso.name if iso else normalized),
            scale_factor=scale_factor or CurrencyRegistry.get_scale_factor(normalized),
        )
        self.session.add(currency)
        self.session.flush()
        logger.info(
            "currency_created",
            extra={
                "currency_id": currency.id,
                "currency_code": normalized,
                "scale_factor": currency.scale_factor,
            },
        )
        return currency.to_dto()
