"""BankLink model - binds a user to one linked bank account and its credential."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid

CONSENT_ACTIVE = "active"
CONSENT_REQUIRED = "consent_required"


class BankLink(Base):
    """A bank account linked through Plaid and attached to Dwolla.

    ``access_token`` is always the most recently issued Plaid credential.
    Relinking rotates it in place; ``id``, ``funding_source_url`` and
    ``shareable_id`` never change for the life of the record.
    """

    __tablename__ = "bank_links"
    __table_args__ = (
        UniqueConstraint("user_id", "account_id", name="uix_bank_link_user_account"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    item_id = Column(String, nullable=False, index=True)  # Plaid Item ID
    account_id = Column(String, nullable=False, index=True)  # Plaid account ID
    access_token = Column(String, nullable=False)
    funding_source_url = Column(String, nullable=False)
    shareable_id = Column(String, nullable=False, index=True)
    institution_id = Column(String, nullable=True)
    consent_status = Column(String, nullable=False, default=CONSENT_ACTIVE)
    transactions_cursor = Column(String, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    user = relationship("User", back_populates="bank_links")
    synced_transactions = relationship(
        "SyncedTransaction",
        back_populates="bank_link",
        cascade="all, delete-orphan",
    )

    @property
    def needs_relink(self) -> bool:
        return self.consent_status == CONSENT_REQUIRED
