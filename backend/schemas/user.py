"""Pydantic schemas for users and their payment-rail customer profile."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class CustomerProfile(BaseModel):
    """Identity fields Dwolla requires for a personal verified customer."""

    address1: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    date_of_birth: Optional[str] = None  # YYYY-MM-DD
    ssn: Optional[str] = None  # 9 digits, never stored


class UserCreate(CustomerProfile):
    """Sign-up request. The Dwolla customer is created when an SSN is given."""

    email: str
    first_name: str
    last_name: str


class UserResponse(BaseModel):
    """A user as returned by the API (no SSN material)."""

    id: str
    email: str
    first_name: str
    last_name: str
    address1: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    dwolla_customer_id: Optional[str] = None
    dwolla_customer_url: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
