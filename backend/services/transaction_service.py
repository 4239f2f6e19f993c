"""Transaction service - internal transfers, external sync and the merged history."""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from itertools import chain

from sqlalchemy import or_
from sqlalchemy.orm import Session

from config import settings
from integrations.exceptions import ProviderConsentError
from integrations.plaid_client import PlaidClient
from integrations.provider_protocol import ProviderTransaction
from models import BankLink, SyncedTransaction, Transfer
from models.bank_link import CONSENT_ACTIVE, CONSENT_REQUIRED

logger = logging.getLogger(__name__)


@dataclass
class TransactionView:
    """A transaction as shown in an account's history."""

    id: str
    name: str
    amount: Decimal
    date: datetime  # timezone-aware UTC
    source: str  # "external" | "internal"
    payment_channel: str | None = None
    category: str | None = None
    pending: bool = False
    type: str | None = None
    image: str | None = None


def _as_utc(value: datetime | date) -> datetime:
    """Normalize a date or naive/aware datetime to an aware UTC datetime."""
    if isinstance(value, datetime):
        return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value.astimezone(timezone.utc)
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)


def merge_transactions(
    external: list[TransactionView],
    internal: list[TransactionView],
) -> list[TransactionView]:
    """Merge both sources newest-first.

    The sort is stable, so rows with the same date keep their source order
    (external before internal, each in the order given).
    """
    return sorted(chain(external, internal), key=lambda txn: txn.date, reverse=True)


class TransactionService:
    """Reads and writes the two transaction sources of a BankLink."""

    def __init__(self, plaid_client: PlaidClient | None = None):
        self._plaid = plaid_client

    @property
    def plaid(self) -> PlaidClient:
        if self._plaid is None:
            self._plaid = PlaidClient()
        return self._plaid

    # ------------------------------------------------------------------
    # Internal ledger
    # ------------------------------------------------------------------

    @staticmethod
    def list_transfers_for_bank_link(db: Session, bank_link_id: str) -> list[Transfer]:
        """All transfers where the link is sender or receiver."""
        if not bank_link_id:
            return []
        return (
            db.query(Transfer)
            .filter(
                or_(
                    Transfer.sender_bank_link_id == bank_link_id,
                    Transfer.receiver_bank_link_id == bank_link_id,
                )
            )
            .order_by(Transfer.created_at)
            .all()
        )

    @staticmethod
    def record_transfer(
        db: Session,
        *,
        name: str,
        amount: Decimal,
        sender_bank_link_id: str,
        receiver_bank_link_id: str,
        email: str | None = None,
        transfer_url: str | None = None,
        channel: str = "online",
        category: str = "Transfer",
    ) -> Transfer:
        transfer = Transfer(
            name=name,
            amount=amount,
            channel=channel,
            category=category,
            sender_bank_link_id=sender_bank_link_id,
            receiver_bank_link_id=receiver_bank_link_id,
            email=email,
            transfer_url=transfer_url,
        )
        db.add(transfer)
        db.flush()
        return transfer

    def internal_views(self, db: Session, bank_link: BankLink) -> list[TransactionView]:
        """Transfers touching the link, tagged debit (sender) or credit."""
        return [
            TransactionView(
                id=transfer.id,
                name=transfer.name,
                amount=Decimal(transfer.amount),
                date=_as_utc(transfer.created_at),
                source="internal",
                payment_channel=transfer.channel,
                category=transfer.category,
                type="debit" if transfer.sender_bank_link_id == bank_link.id else "credit",
            )
            for transfer in self.list_transfers_for_bank_link(db, bank_link.id)
        ]

    # ------------------------------------------------------------------
    # External transactions
    # ------------------------------------------------------------------

    def sync_external(self, db: Session, bank_link: BankLink) -> None:
        """Advance the link's sync cursor and apply the changes locally.

        Only transactions of the link's own account are kept; an Item can
        expose several accounts.

        Raises:
            ProviderError: Propagated from the Plaid client (consent included).
        """
        page = self.plaid.sync_transactions(
            bank_link.access_token,
            cursor=bank_link.transactions_cursor,
        )

        existing = {
            row.transaction_id: row
            for row in db.query(SyncedTransaction)
            .filter(SyncedTransaction.bank_link_id == bank_link.id)
            .all()
        }

        applied = 0
        for txn in chain(page.added, page.modified):
            if txn.account_id and txn.account_id != bank_link.account_id:
                continue
            row = existing.get(txn.id)
            if row is None:
                row = SyncedTransaction(bank_link_id=bank_link.id, transaction_id=txn.id)
                db.add(row)
                existing[txn.id] = row
            self._apply(row, txn)
            applied += 1

        removed = 0
        for transaction_id in page.removed:
            row = existing.pop(transaction_id, None)
            if row is None:
                continue
            # Added and removed within the same sync: never persisted
            if row in db.new:
                db.expunge(row)
            else:
                db.delete(row)
            removed += 1

        bank_link.transactions_cursor = page.next_cursor
        bank_link.consent_status = CONSENT_ACTIVE
        db.flush()
        logger.debug(
            "Bank link %s: %d transactions applied, %d removed",
            bank_link.id, applied, removed,
        )

    @staticmethod
    def _apply(row: SyncedTransaction, txn: ProviderTransaction) -> None:
        row.account_id = txn.account_id
        row.name = txn.name
        row.amount = txn.amount
        row.payment_channel = txn.payment_channel
        row.category = txn.category
        row.date = txn.date
        row.pending = txn.pending
        row.logo_url = txn.logo_url

    @staticmethod
    def external_views(
        db: Session,
        bank_link: BankLink,
        window_days: int | None = None,
    ) -> list[TransactionView]:
        """Stored external transactions within the trailing window."""
        days = window_days or settings.TRANSACTION_WINDOW_DAYS
        since = datetime.now(timezone.utc).date() - timedelta(days=days)
        rows = (
            db.query(SyncedTransaction)
            .filter(
                SyncedTransaction.bank_link_id == bank_link.id,
                SyncedTransaction.date >= since,
            )
            .order_by(SyncedTransaction.date.desc())
            .all()
        )
        return [
            TransactionView(
                id=row.transaction_id,
                name=row.name,
                amount=Decimal(row.amount),
                date=_as_utc(row.date),
                source="external",
                payment_channel=row.payment_channel,
                category=row.category,
                pending=row.pending,
                type=row.payment_channel,
                image=row.logo_url,
            )
            for row in rows
        ]

    def refresh_external(self, db: Session, bank_link: BankLink) -> list[TransactionView]:
        """Sync, then return the link's external transactions.

        Missing consent is the normal state of a link awaiting relink: the
        link is flagged and no external transactions are returned.

        Raises:
            ProviderError: Any provider failure other than missing consent.
        """
        try:
            self.sync_external(db, bank_link)
        except ProviderConsentError:
            logger.info("Bank link %s needs relinking: transaction consent missing", bank_link.id)
            bank_link.consent_status = CONSENT_REQUIRED
            db.flush()
            return []
        return self.external_views(db, bank_link)

    @staticmethod
    def clear_external(db: Session, bank_link: BankLink) -> None:
        """Forget the sync state tied to the link's current credential."""
        db.query(SyncedTransaction).filter(
            SyncedTransaction.bank_link_id == bank_link.id
        ).delete(synchronize_session=False)
        bank_link.transactions_cursor = None
