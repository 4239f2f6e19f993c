"""Reconciliation service - records partial state left by failed multi-step writes."""

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import ReconciliationItem
from models.reconciliation_item import STATUS_OPEN, STATUS_RESOLVED

logger = logging.getLogger(__name__)


class ReconciliationService:
    """Compensating record-keeping for the linking and sign-up flows.

    Dwolla and Plaid resources cannot be created inside a local database
    transaction. When a later step fails, the references that already exist
    are written here so an operator (or a retry) can finish or clean up.
    """

    @staticmethod
    def record(
        db: Session,
        *,
        operation: str,
        failed_step: str,
        user_id: str | None = None,
        dwolla_customer_url: str | None = None,
        funding_source_url: str | None = None,
        item_id: str | None = None,
        account_id: str | None = None,
        error: str | None = None,
    ) -> ReconciliationItem | None:
        """Roll back the failed unit of work and commit a reconciliation row.

        Returns:
            The stored item, or None if it could not be written (logged).
        """
        db.rollback()
        item = ReconciliationItem(
            user_id=user_id,
            operation=operation,
            failed_step=failed_step,
            dwolla_customer_url=dwolla_customer_url,
            funding_source_url=funding_source_url,
            item_id=item_id,
            account_id=account_id,
            error=error,
        )
        db.add(item)
        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.error(
                "Could not record reconciliation for %s at %s "
                "(user=%s customer=%s funding_source=%s item=%s)",
                operation, failed_step, user_id, dwolla_customer_url,
                funding_source_url, item_id,
                exc_info=True,
            )
            return None

        logger.warning(
            "Recorded reconciliation item %s: %s failed at %s",
            item.id, operation, failed_step,
        )
        return item

    @staticmethod
    def list_open(db: Session) -> list[ReconciliationItem]:
        """Open items, oldest first."""
        return (
            db.query(ReconciliationItem)
            .filter(ReconciliationItem.status == STATUS_OPEN)
            .order_by(ReconciliationItem.created_at)
            .all()
        )

    @staticmethod
    def resolve(db: Session, item_id: str) -> ReconciliationItem | None:
        """Mark an item as reconciled."""
        item = db.query(ReconciliationItem).filter(ReconciliationItem.id == item_id).first()
        if not item:
            return None
        if item.status != STATUS_RESOLVED:
            item.status = STATUS_RESOLVED
            item.resolved_at = datetime.now(timezone.utc)
            db.flush()
            logger.info("Reconciliation item %s resolved", item.id)
        return item
