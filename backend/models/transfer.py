"""Transfer model - internal ledger of money moved between bank links."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String

from database import Base
from models.utils import generate_uuid


class Transfer(Base):
    """A transfer recorded in the internal ledger.

    Each transfer touches two BankLinks. Relative to a given link it is a
    debit when that link is the sender and a credit otherwise.
    """

    __tablename__ = "transfers"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String, nullable=False)
    amount = Column(Numeric(18, 2), nullable=False)
    channel = Column(String, nullable=False, default="online")
    category = Column(String, nullable=False, default="Transfer")
    sender_bank_link_id = Column(String(36), ForeignKey("bank_links.id"), nullable=False, index=True)
    receiver_bank_link_id = Column(String(36), ForeignKey("bank_links.id"), nullable=False, index=True)
    email = Column(String, nullable=True)
    transfer_url = Column(String, nullable=True)  # Dwolla transfer location
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
