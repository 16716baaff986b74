"""ReferenceSnapshot -- Frozen view of accounts, currencies and categories."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from ledger_kernel.domain.values import (
    UNCATEGORIZED_ID,
    UNCATEGORIZED_NAME,
    AccountInfo,
    CategoryInfo,
    CurrencyInfo,
)


def _freeze(d: dict) -> Mapping:
    return MappingProxyType(d)


@dataclass(frozen=True)
class ReferenceSnapshot:
    """
    Immutable lookup maps built once per batch.

    The row mapper and the export service read only from a snapshot; after
    accounts are created a fresh snapshot must be taken before re-mapping.
    Account and category names are matched exactly (case-sensitive).
    Currency codes are upper-case.
    """

    accounts_by_name: Mapping[str, AccountInfo] = field(default_factory=lambda: _freeze({}))
    accounts_by_id: Mapping[int, AccountInfo] = field(default_factory=lambda: _freeze({}))
    currencies_by_id: Mapping[int, CurrencyInfo] = field(default_factory=lambda: _freeze({}))
    currencies_by_code: Mapping[str, CurrencyInfo] = field(default_factory=lambda: _freeze({}))
    categories_by_id: Mapping[int, CategoryInfo] = field(default_factory=lambda: _freeze({}))
    categories_by_name: Mapping[str, CategoryInfo] = field(default_factory=lambda: _freeze({}))

    @classmethod
    def from_entities(
        cls,
        accounts: Iterable[AccountInfo] = (),
        currencies: Iterable[CurrencyInfo] = (),
        categories: Iterable[CategoryInfo] = (),
    ) -> ReferenceSnapshot:
        """Build the lookup maps. On duplicate names the first entity wins."""
        accounts_by_name: dict[str, AccountInfo] = {}
        accounts_by_id: dict[int, AccountInfo] = {}
        for account in accounts:
            accounts_by_name.setdefault(account.name, account)
            accounts_by_id[account.id] = account

        currencies_by_id: dict[int, CurrencyInfo] = {}
        currencies_by_code: dict[str, CurrencyInfo] = {}
        for currency in currencies:
            currencies_by_id[currency.id] = currency
            currencies_by_code.setdefault(currency.code.upper(), currency)

        categories_by_id: dict[int, CategoryInfo] = {}
        categories_by_name: dict[str, CategoryInfo] = {}
        for category in categories:
            categories_by_id[category.id] = category
            categories_by_name.setdefault(category.name, category)

        return cls(
            accounts_by_name=_freeze(accounts_by_name),
            accounts_by_id=_freeze(accounts_by_id),
            currencies_by_id=_freeze(currencies_by_id),
            currencies_by_code=_freeze(currencies_by_code),
            categories_by_id=_freeze(categories_by_id),
            categories_by_name=_freeze(categories_by_name),
        )

    def account_named(self, name: str) -> AccountInfo | None:
        return self.accounts_by_name.get(name)

    def currency_by_code(self, code: str) -> CurrencyInfo | None:
        return self.currencies_by_code.get(code.strip().upper())

    def category_name(self, category_id: int) -> str:
        """Name for ``category_id``; the sentinel and unknown ids read as Uncategorized."""
        if category_id == UNCATEGORIZED_ID:
            return UNCATEGORIZED_NAME
        category = self.categories_by_id.get(category_id)
        return category.name if category is not None else UNCATEGORIZED_NAME
