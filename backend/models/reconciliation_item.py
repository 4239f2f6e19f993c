"""ReconciliationItem model - partial state left by a failed multi-step write."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text

from database import Base
from models.utils import generate_uuid

STATUS_OPEN = "open"
STATUS_RESOLVED = "resolved"


class ReconciliationItem(Base):
    """External resources created before a later step failed.

    Linking and sign-up create Dwolla resources before local rows are
    written. When a later step fails, the references that already exist
    are recorded here so they can be reconciled instead of orphaned.
    """

    __tablename__ = "reconciliation_items"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=True, index=True)
    operation = Column(String, nullable=False)  # "link_bank" | "create_user"
    failed_step = Column(String, nullable=False)
    dwolla_customer_url = Column(String, nullable=True)
    funding_source_url = Column(String, nullable=True)
    item_id = Column(String, nullable=True)
    account_id = Column(String, nullable=True)
    error = Column(Text, nullable=True)
    status = Column(String, nullable=False, default=STATUS_OPEN)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    resolved_at = Column(DateTime, nullable=True)
