"""
Values -- Immutable, self-validating domain value objects.

Responsibility:
    Provides the value types shared by the mapping engine and the
    persistence layer: CurrencyInfo, Money, AccountInfo, CategoryInfo and
    Transfer, plus the sentinel ids used before an entity exists.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Money amounts are integers in the currency's minor unit.  The minor
      unit comes from CurrencyInfo.scale_factor, never from a constant.
    - Transfer amounts are non-negative; direction is carried by which
      account is the source and which is the target.

Failure modes:
    - TypeError when Money is built with a non-integer amount.
    - ValueError on a non-positive scale factor or a negative transfer amount.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID, uuid4

# Sentinel category id meaning "no category assigned".
UNCATEGORIZED_ID = -1
UNCATEGORIZED_NAME = "Uncategorized"

# Account id used by the row mapper for an account that does not exist yet.
NEW_ACCOUNT_PLACEHOLDER_ID = -1


@dataclass(frozen=True, slots=True)
class CurrencyInfo:
    """
    A currency as stored in the ledger.

    Contract:
        ``scale_factor`` is the number of minor units in one major unit
        (100 for USD, 1 for JPY, 1000 for BHD).
    """

    id: int
    code: str
    name: str
    scale_factor: int = 100

    def __post_init__(self) -> None:
        if self.scale_factor <= 0:
            raise ValueError(f"scale_factor must be positive, got {self.scale_factor}")

    def __str__(self) -> str:
        return self.code


@dataclass(frozen=True, slots=True)
class Money:
    """
    Monetary amount value object.

    Contract:
        Pairs an integer minor-unit amount with its CurrencyInfo.

    Guarantees:
        - Immutable and hashable (frozen dataclass with slots)
        - amount is always an int (never float or Decimal)

    Non-goals:
        - Does NOT perform currency conversion.
    """

    amount: int
    currency: CurrencyInfo

    def __post_init__(self) -> None:
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise TypeError(f"Money amount must be int minor units, got {type(self.amount).__name__}")

    @classmethod
    def from_display_value(cls, value: Decimal | str | int, currency: CurrencyInfo) -> Money:
        """
        Convert a display value (``12.34``) to minor units using the
        currency's own scale factor, rounding half-up.
        """
        if not isinstance(value, Decimal):
            value = Decimal(str(value))
        minor = (value * currency.scale_factor).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return cls(amount=int(minor), currency=currency)

    def to_display_value(self) -> Decimal:
        """Minor units back to a Decimal display value."""
        return Decimal(self.amount) / Decimal(self.currency.scale_factor)

    @property
    def is_zero(self) -> bool:
        return self.amount == 0

    def __abs__(self) -> Money:
        return Money(abs(self.amount), self.currency)

    def __neg__(self) -> Money:
        return Money(-self.amount, self.currency)

    def __str__(self) -> str:
        return f"{self.to_display_value()} {self.currency.code}"


@dataclass(frozen=True, slots=True)
class CategoryInfo:
    id: int
    name: str
    parent_id: int | None = None


@dataclass(frozen=True, slots=True)
class AccountInfo:
    id: int
    name: str
    category_id: int = UNCATEGORIZED_ID
    opening_date: date | None = None


@dataclass(frozen=True)
class Transfer:
    """
    A single movement of money from one account to another.

    Guarantees:
        - ``amount.amount`` is never negative.
        - ``timestamp`` is timezone-aware.
    """

    timestamp: datetime
    description: str
    source_account_id: int
    target_account_id: int
    amount: Money
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        if self.amount.amount < 0:
            raise ValueError(f"Transfer amount must not be negative: {self.amount}")
        if self.timestamp.tzinfo is None:
            raise ValueError("Transfer timestamp must be timezone-aware")

    @property
    def currency(self) -> CurrencyInfo:
        return self.amount.currency

