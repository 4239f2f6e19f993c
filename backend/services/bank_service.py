"""Bank service - live account views and merged transaction history."""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy.orm import Session

from integrations.exceptions import ProviderDataError, ProviderError
from integrations.plaid_client import PlaidClient
from integrations.provider_protocol import ProviderAccount
from models import BankLink
from services.transaction_service import (
    TransactionService,
    TransactionView,
    merge_transactions,
)

logger = logging.getLogger(__name__)


@dataclass
class AccountView:
    """A linked account with balances fetched live from Plaid."""

    id: str
    name: str
    bank_link_id: str
    shareable_id: str
    available_balance: Decimal | None = None
    current_balance: Decimal | None = None
    institution_id: str | None = None
    institution_name: str | None = None
    official_name: str | None = None
    mask: str | None = None
    type: str | None = None
    subtype: str | None = None


@dataclass
class AccountsSummary:
    accounts: list[AccountView] = field(default_factory=list)
    total_accounts: int = 0
    total_current_balance: Decimal = Decimal("0")
    failed_bank_link_ids: list[str] = field(default_factory=list)


@dataclass
class AccountDetail:
    account: AccountView
    transactions: list[TransactionView]
    needs_relink: bool = False


@dataclass
class _LinkRef:
    """Plain copy of the BankLink fields a worker thread needs.

    ORM instances stay on the request thread; workers only see these.
    """

    id: str
    access_token: str
    account_id: str
    shareable_id: str


def _select_account(accounts: list[ProviderAccount], account_id: str) -> ProviderAccount:
    """Pick the link's own account from an Item's account list.

    Raises:
        ProviderDataError: If the Item no longer exposes that account.
    """
    for account in accounts:
        if account.id == account_id:
            return account
    raise ProviderDataError(
        f"Account {account_id} not found on Item",
        provider_name="Plaid",
    )


class BankService:
    """Builds account views for linked banks.

    The Plaid client and the transaction service are injected so tests and
    callers can substitute their own.
    """

    def __init__(
        self,
        plaid_client: PlaidClient | None = None,
        transaction_service: TransactionService | None = None,
    ):
        self._plaid = plaid_client
        self._transactions = transaction_service

    @property
    def plaid(self) -> PlaidClient:
        if self._plaid is None:
            self._plaid = PlaidClient()
        return self._plaid

    @property
    def transactions(self) -> TransactionService:
        if self._transactions is None:
            self._transactions = TransactionService(self.plaid)
        return self._transactions

    # ------------------------------------------------------------------
    # Account views
    # ------------------------------------------------------------------

    def _institution_name(self, institution_id: str | None) -> str | None:
        """Resolve an institution's display name; failures leave it empty."""
        if not institution_id:
            return None
        try:
            return self.plaid.get_institution(institution_id).name
        except ProviderError as e:
            logger.warning("Institution lookup failed for %s: %s", institution_id, e)
            return None

    def _build_view(self, link: _LinkRef) -> AccountView:
        """Fetch the live snapshot for one link.

        Raises:
            ProviderError: If the account snapshot cannot be fetched.
        """
        account = _select_account(self.plaid.get_accounts(link.access_token), link.account_id)
        return AccountView(
            id=account.id,
            name=account.name,
            bank_link_id=link.id,
            shareable_id=link.shareable_id,
            available_balance=account.available_balance,
            current_balance=account.current_balance,
            institution_id=account.institution_id,
            institution_name=self._institution_name(account.institution_id),
            official_name=account.official_name,
            mask=account.mask,
            type=account.type,
            subtype=account.subtype,
        )

    @staticmethod
    def _ref(link: BankLink) -> _LinkRef:
        return _LinkRef(
            id=link.id,
            access_token=link.access_token,
            account_id=link.account_id,
            shareable_id=link.shareable_id,
        )

    def get_accounts(self, db: Session, user_id: str) -> AccountsSummary:
        """Live account views for every BankLink of a user.

        Links are fetched concurrently, one worker per link. A link whose
        provider call fails is logged and reported in
        ``failed_bank_link_ids``; the other links are still returned.

        Args:
            db: Database session
            user_id: Owner of the links

        Returns:
            AccountsSummary; empty with zero totals when the user has no links.
        """
        if not user_id:
            return AccountsSummary()

        refs = [
            self._ref(link)
            for link in db.query(BankLink)
            .filter(BankLink.user_id == user_id)
            .order_by(BankLink.created_at)
            .all()
        ]
        if not refs:
            return AccountsSummary()

        summary = AccountsSummary()
        with ThreadPoolExecutor(max_workers=len(refs)) as pool:
            futures = [(ref, pool.submit(self._build_view, ref)) for ref in refs]
            for ref, future in futures:
                try:
                    view = future.result()
                except ProviderError as e:
                    logger.error("Failed to fetch account for bank link %s: %s", ref.id, e)
                    summary.failed_bank_link_ids.append(ref.id)
                    continue
                summary.accounts.append(view)
                summary.total_current_balance += view.current_balance or Decimal("0")

        summary.total_accounts = len(summary.accounts)
        logger.info(
            "User %s: %d accounts loaded, %d bank links failed",
            user_id, summary.total_accounts, len(summary.failed_bank_link_ids),
        )
        return summary

    def get_account(self, db: Session, bank_link_id: str) -> AccountDetail | None:
        """One account with its merged transaction history.

        External transactions are synced and read from the local store;
        internal transfers come from the ledger. Missing consent yields an
        empty external list and ``needs_relink=True``.

        Returns:
            AccountDetail, or None when the link is unknown or Plaid fails
            for any reason other than missing consent.
        """
        if not bank_link_id:
            return None

        link = db.query(BankLink).filter(BankLink.id == bank_link_id).first()
        if not link:
            return None

        try:
            account = self._build_view(self._ref(link))
            external = self.transactions.refresh_external(db, link)
        except ProviderError as e:
            logger.error("Failed to load bank link %s: %s", bank_link_id, e)
            return None

        internal = self.transactions.internal_views(db, link)
        return AccountDetail(
            account=account,
            transactions=merge_transactions(external, internal),
            needs_relink=link.needs_relink,
        )
