"""SyncedTransaction model - external transactions pulled via cursor sync."""

from sqlalchemy import Boolean, Column, Date, ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid


class SyncedTransaction(Base):
    """A Plaid transaction stored from ``/transactions/sync``.

    Rows are added, updated and removed as the sync cursor advances and are
    wiped whenever the owning BankLink's credential is rotated.
    """

    __tablename__ = "synced_transactions"
    __table_args__ = (
        UniqueConstraint(
            "bank_link_id", "transaction_id",
            name="uix_synced_transaction_link_txn",
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    bank_link_id = Column(
        String(36), ForeignKey("bank_links.id", ondelete="CASCADE"), nullable=False, index=True
    )
    transaction_id = Column(String, nullable=False)
    account_id = Column(String, nullable=False)
    name = Column(String, nullable=False)
    amount = Column(Numeric(18, 2), nullable=False)
    payment_channel = Column(String, nullable=True)
    category = Column(String, nullable=True)
    date = Column(Date, nullable=False)
    pending = Column(Boolean, default=False, nullable=False)
    logo_url = Column(String, nullable=True)

    # Relationships
    bank_link = relationship("BankLink", back_populates="synced_transactions")
