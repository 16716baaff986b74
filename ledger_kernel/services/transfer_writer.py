"""
TransferWriter -- persists mapped transfers and their attributes.

Responsibility:
    Turns domain ``Transfer`` values into ``TransferModel`` rows, resolving
    attribute type names to ``AttributeType`` rows (created on first use).

Architecture position:
    Kernel > Services -- imperative shell.  Flushes, never commits.

Invariants enforced:
    - A transfer pointing at NEW_ACCOUNT_PLACEHOLDER_ID is never written.
    - Attribute types are unique by name; one row per name per database.

Failure modes:
    - AccountNotFoundError for a placeholder or unknown account id.
    - CurrencyNotFoundError for an unknown currency id.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.values import NEW_ACCOUNT_PLACEHOLDER_ID, Transfer
from ledger_kernel.exceptions import AccountNotFoundError, CurrencyNotFoundError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.currency import Currency
from ledger_kernel.models.transfer import AttributeType, TransferAttribute, TransferModel
from ledger_kernel.services.base import BaseService

logger = get_logger("services.transfer_writer")


class TransferWriter(BaseService[TransferModel]):
    """Writes transfers within the caller's transaction."""

    def __init__(self, session: Session):
        super().__init__(session)
        self._attribute_types: dict[str, AttributeType] = {}

    def _attribute_type(self, name: str) -> AttributeType:
        cached = self._attribute_types.get(name)
        if cached is not None:
            return cached
        attr_type = self.session.execute(
            select(AttributeType).where(AttributeType.name == name)
        ).scalar_one_or_none()
        if attr_type is None:
            attr_type = AttributeType(name=name)
            self.session.add(attr_type)
            self.session.flush()
            logger.info("attribute_type_created", extra={"attribute_type": name})
        self._attribute_types[name] = attr_type
        return attr_type

    def _check_account(self, account_id: int) -> None:
        if account_id == NEW_ACCOUNT_PLACEHOLDER_ID:
            raise AccountNotFoundError("<new account placeholder>")
        if self.session.get(Account, account_id) is None:
            raise AccountNotFoundError(str(account_id))

    def write(
        self,
        transfer: Transfer,
        attributes: Iterable[tuple[str, str]] = (),
        import_id: UUID | None = None,
        source_row: int | None = None,
    ) -> UUID:
        """
        Persist one transfer and its (attribute_type_name, value) pairs.

        Returns:
            The transfer id.
        """
        self._check_account(transfer.source_account_id)
        self._check_account(transfer.target_account_id)
        if self.session.get(Currency, transfer.currency.id) is None:
            raise CurrencyNotFoundError(str(transfer.currency.id))

        model = TransferModel(
            id=transfer.id,
            timestamp=transfer.timestamp,
            description=transfer.description,
            source_account_id=transfer.source_account_id,
            target_account_id=transfer.target_account_id,
            currency_id=transfer.currency.id,
            amount=transfer.amount.amount,
            import_id=import_id,
            source_row=source_row,
        )
        for type_name, value in attributes:
            model.attributes.append(
                TransferAttribute(attribute_type=self._attribute_type(type_name), value=value)
            )
        self.session.add(model)
        self.session.flush()
        logger.debug(
            "transfer_written",
            extra={
                "transfer_id": str(transfer.id),
                "source_account_id": transfer.source_account_id,
                "target_account_id": transfer.target_account_id,
                "amount": transfer.amount.amount,
                "source_row": source_row,
            },
        )
        return transfer.id
