"""Pydantic schemas for reconciliation items."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ReconciliationItemResponse(BaseModel):
    """Partial state left behind by a failed linking or sign-up attempt."""

    id: str
    user_id: Optional[str] = None
    operation: str
    failed_step: str
    dwolla_customer_url: Optional[str] = None
    funding_source_url: Optional[str] = None
    item_id: Optional[str] = None
    account_id: Optional[str] = None
    error: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
