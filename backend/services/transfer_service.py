"""Transfer service - moves money between two linked accounts through Dwolla."""

import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from integrations.dwolla_client import DwollaClient
from integrations.exceptions import ProviderError
from models import BankLink, Transfer
from services.errors import TransferError
from services.transaction_service import TransactionService
from utils.shareable_id import decode_shareable_id

logger = logging.getLogger(__name__)


class TransferService:
    """Service for creating and listing internal transfers."""

    def __init__(self, dwolla_client: DwollaClient | None = None):
        self._dwolla = dwolla_client

    @property
    def dwolla(self) -> DwollaClient:
        if self._dwolla is None:
            self._dwolla = DwollaClient()
        return self._dwolla

    @staticmethod
    def resolve_shareable_id(db: Session, shareable_id: str) -> BankLink:
        """Find the BankLink a shareable id points to.

        Raises:
            TransferError: The id is malformed or does not name exactly one link.
        """
        account_id = decode_shareable_id(shareable_id)
        if not account_id:
            raise TransferError("Invalid shareable id")

        links = db.query(BankLink).filter(BankLink.account_id == account_id).all()
        if len(links) != 1:
            logger.warning("Shareable id resolved to %d bank links", len(links))
            raise TransferError("Receiver account not found")
        return links[0]

    def create_transfer(
        self,
        db: Session,
        *,
        sender_bank_link_id: str,
        receiver_shareable_id: str,
        amount: Decimal,
        name: str = "Transfer",
        email: str | None = None,
    ) -> Transfer:
        """Send ``amount`` from the sender's funding source to the receiver's.

        The Dwolla transfer is created first; the internal Transfer row is
        recorded only once Dwolla has accepted it.

        Raises:
            TransferError: Invalid request, unknown links or Dwolla failure.
        """
        amount = Decimal(amount)
        if amount <= 0:
            raise TransferError("Amount must be positive")

        sender = db.query(BankLink).filter(BankLink.id == sender_bank_link_id).first()
        if not sender:
            raise TransferError("Sender account not found")

        receiver = self.resolve_shareable_id(db, receiver_shareable_id)
        if receiver.id == sender.id:
            raise TransferError("Sender and receiver must be different accounts")

        try:
            transfer_url = self.dwolla.create_transfer(
                sender.funding_source_url,
                receiver.funding_source_url,
                amount,
            )
        except ProviderError as e:
            logger.error(
                "Dwolla transfer from bank link %s to %s failed: %s",
                sender.id, receiver.id, e,
            )
            raise TransferError(f"Transfer failed: {e}") from e

        transfer = TransactionService.record_transfer(
            db,
            name=name,
            amount=amount,
            sender_bank_link_id=sender.id,
            receiver_bank_link_id=receiver.id,
            email=email,
            transfer_url=transfer_url,
        )
        logger.info("Transfer %s recorded: %s from %s to %s", transfer.id, amount, sender.id, receiver.id)
        return transfer

    @staticmethod
    def list_for_bank_link(db: Session, bank_link_id: str) -> list[Transfer]:
        """All transfers sent or received by a BankLink, oldest first."""
        return TransactionService.list_transfers_for_bank_link(db, bank_link_id)
