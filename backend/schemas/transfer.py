"""Pydantic schemas for transfers between linked accounts."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TransferCreate(BaseModel):
    """Request to move money from one of the user's links to a shared link."""

    sender_bank_link_id: str
    receiver_shareable_id: str
    amount: Decimal = Field(gt=0, decimal_places=2)
    name: str = "Transfer"
    email: Optional[str] = None


class TransferResponse(BaseModel):
    id: str
    name: str
    amount: Decimal
    channel: str
    category: str
    sender_bank_link_id: str
    receiver_bank_link_id: str
    email: Optional[str] = None
    transfer_url: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
