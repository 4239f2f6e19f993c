"""Linking service - attaches Plaid accounts to Dwolla and rotates credentials.

Linking spans two providers and the local database, none of which share a
transaction. Steps run in order; when one fails after Dwolla or Plaid
resources were created, the partial state is written to the reconciliation
queue before the error is raised.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from integrations.dwolla_client import DwollaClient, resource_id
from integrations.exceptions import ProviderError
from integrations.plaid_client import PlaidClient
from models import BankLink, User
from models.bank_link import CONSENT_ACTIVE
from schemas.user import CustomerProfile
from services.errors import BankLinkNotFoundError, LinkingError
from services.reconciliation_service import ReconciliationService
from services.transaction_service import TransactionService
from services.user_service import create_customer_for
from utils.shareable_id import encode_shareable_id

logger = logging.getLogger(__name__)


class LinkingService:
    """Bank linking and relinking flows."""

    def __init__(
        self,
        plaid_client: PlaidClient | None = None,
        dwolla_client: DwollaClient | None = None,
    ):
        self._plaid = plaid_client
        self._dwolla = dwolla_client

    @property
    def plaid(self) -> PlaidClient:
        if self._plaid is None:
            self._plaid = PlaidClient()
        return self._plaid

    @property
    def dwolla(self) -> DwollaClient:
        if self._dwolla is None:
            self._dwolla = DwollaClient()
        return self._dwolla

    def create_link_token(self, user: User) -> str:
        """Link token for a first link or a relink of an existing BankLink."""
        return self.plaid.create_link_token(client_user_id=user.id)

    # ------------------------------------------------------------------
    # First-time linking
    # ------------------------------------------------------------------

    def _ensure_customer(
        self,
        db: Session,
        user: User,
        profile: CustomerProfile | None,
    ) -> str:
        """Return the user's Dwolla customer URL, creating the customer if needed.

        The reference is committed immediately so that a failure later in the
        linking flow cannot lose it.
        """
        if user.dwolla_customer_url:
            return user.dwolla_customer_url

        try:
            url = create_customer_for(self.dwolla, user, profile)
        except ProviderError as e:
            logger.error("Dwolla customer creation failed for user %s: %s", user.id, e)
            raise LinkingError(f"Failed to create payment customer: {e}", step="create_customer") from e

        try:
            db.commit()
        except SQLAlchemyError as e:
            ReconciliationService.record(
                db,
                operation="link_bank",
                failed_step="persist_customer",
                user_id=user.id,
                dwolla_customer_url=url,
                error=str(e),
            )
            raise LinkingError("Failed to save payment customer", step="persist_customer") from e

        logger.info("Dwolla customer %s attached to user %s", user.dwolla_customer_id, user.id)
        return url

    def _revoke_unused_item(self, db: Session, item_id: str, access_token: str) -> bool:
        """Revoke a freshly exchanged Item that no BankLink refers to.

        Returns:
            True if the Item was removed at Plaid.
        """
        if db.query(BankLink).filter(BankLink.item_id == item_id).first():
            return False
        try:
            self.plaid.remove_item(access_token)
        except ProviderError as e:
            logger.warning("Could not revoke Plaid item %s after failed link: %s", item_id, e)
            return False
        logger.info("Revoked Plaid item %s after failed link", item_id)
        return True

    def exchange_public_token(
        self,
        db: Session,
        public_token: str,
        user: User,
        customer_profile: CustomerProfile | None = None,
    ) -> BankLink:
        """Link the account behind a Plaid Link public token.

        Exchanges the token, creates a Dwolla processor token and funding
        source for the Item's first account, and stores the BankLink. Calling
        this again for the same account updates the existing BankLink.

        Args:
            db: Database session
            public_token: Token from the Plaid Link on-success callback
            user: The linking user
            customer_profile: Identity fields, required only if the user has
                no Dwolla customer yet

        Returns:
            The created or updated BankLink (flushed, not committed).

        Raises:
            CustomerValidationError: Customer fields failed local validation.
            LinkingError: Any provider or persistence step failed.
        """
        customer_url = self._ensure_customer(db, user, customer_profile)

        step = "exchange_public_token"
        item_id = None
        access_token = None
        account_id = None
        funding_source_url = None
        try:
            exchange = self.plaid.exchange_public_token(public_token)
            item_id = exchange["item_id"]
            access_token = exchange["access_token"]

            step = "get_accounts"
            account = self.plaid.get_accounts(access_token)[0]
            account_id = account.id

            step = "create_processor_token"
            processor_token = self.plaid.create_processor_token(access_token, account.id, "dwolla")

            step = "create_funding_source"
            authorization_url = self.dwolla.create_on_demand_authorization()
            funding_source_url = self.dwolla.create_funding_source(
                user.dwolla_customer_id or resource_id(customer_url),
                name=account.name,
                plaid_token=processor_token,
                on_demand_authorization_url=authorization_url,
            )

            step = "persist_bank_link"
            link = (
                db.query(BankLink)
                .filter(BankLink.user_id == user.id, BankLink.account_id == account.id)
                .first()
            )
            if link:
                link.item_id = item_id
                link.access_token = access_token
                link.funding_source_url = funding_source_url
                link.institution_id = account.institution_id
                link.consent_status = CONSENT_ACTIVE
                logger.info("Updated bank link %s for user %s", link.id, user.id)
            else:
                link = BankLink(
                    user_id=user.id,
                    item_id=item_id,
                    account_id=account.id,
                    access_token=access_token,
                    funding_source_url=funding_source_url,
                    shareable_id=encode_shareable_id(account.id),
                    institution_id=account.institution_id,
                    consent_status=CONSENT_ACTIVE,
                )
                db.add(link)
            db.flush()
        except (ProviderError, SQLAlchemyError) as e:
            logger.error("Bank linking failed at %s for user %s: %s", step, user.id, e)
            revoked = (
                funding_source_url is None
                and access_token is not None
                and self._revoke_unused_item(db, item_id, access_token)
            )
            if (item_id and not revoked) or funding_source_url:
                ReconciliationService.record(
                    db,
                    operation="link_bank",
                    failed_step=step,
                    user_id=user.id,
                    dwolla_customer_url=customer_url,
                    funding_source_url=funding_source_url,
                    item_id=item_id,
                    account_id=account_id,
                    error=str(e),
                )
            raise LinkingError(f"Bank linking failed at {step}: {e}", step=step) from e

        logger.info("Bank link %s ready for user %s (item %s)", link.id, user.id, item_id)
        return link

    # ------------------------------------------------------------------
    # Relinking
    # ------------------------------------------------------------------

    def relink(self, db: Session, bank_link_id: str, public_token: str) -> BankLink:
        """Rotate a BankLink's credential after the user relinks in Plaid Link.

        Only the credential and the sync state change; the BankLink id,
        funding source, shareable id, account id and item id are kept. The
        cached external transactions belonged to the old credential and are
        discarded so the next read performs a full sync.

        Raises:
            BankLinkNotFoundError: Unknown BankLink.
            ProviderError: The token exchange failed; the record is unchanged.
        """
        link = db.query(BankLink).filter(BankLink.id == bank_link_id).first()
        if not link:
            raise BankLinkNotFoundError(f"Bank link not found: {bank_link_id}")

        exchange = self.plaid.exchange_public_token(public_token)
        if exchange["item_id"] != link.item_id:
            logger.warning(
                "Relink of bank link %s returned item %s (stored %s)",
                link.id, exchange["item_id"], link.item_id,
            )

        link.access_token = exchange["access_token"]
        link.consent_status = CONSENT_ACTIVE
        TransactionService.clear_external(db, link)
        db.flush()
        logger.info("Bank link %s relinked, credential rotated", link.id)
        return link
