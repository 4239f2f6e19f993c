"""Pydantic schemas for linked accounts, transactions and Plaid Link flows."""

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.user import CustomerProfile


class AccountResponse(BaseModel):
    """Live view of one linked account."""

    id: str
    available_balance: Optional[Decimal] = None
    current_balance: Optional[Decimal] = None
    institution_id: Optional[str] = None
    institution_name: Optional[str] = None
    name: str
    official_name: Optional[str] = None
    mask: Optional[str] = None
    type: Optional[str] = None
    subtype: Optional[str] = None
    bank_link_id: str
    shareable_id: str


class TransactionResponse(BaseModel):
    """One row of the merged transaction history."""

    id: str
    name: str
    amount: Decimal
    payment_channel: Optional[str] = None
    category: Optional[str] = None
    date: datetime
    pending: bool = False
    type: Optional[str] = None  # "debit" / "credit" for transfers
    source: Literal["external", "internal"]
    image: Optional[str] = None


class AccountsSummaryResponse(BaseModel):
    """All linked accounts for a user with their combined balance."""

    accounts: list[AccountResponse]
    total_accounts: int
    total_current_balance: Decimal
    failed_bank_link_ids: list[str] = []


class AccountDetailResponse(BaseModel):
    """One account with its merged, newest-first transaction history."""

    account: AccountResponse
    transactions: list[TransactionResponse]
    needs_relink: bool = False
    total_transactions: int = 0


class LinkTokenRequest(BaseModel):
    user_id: str


class LinkTokenResponse(BaseModel):
    link_token: str


class LinkBankRequest(BaseModel):
    """Body for linking a new bank account after Plaid Link succeeds."""

    user_id: str
    public_token: str
    customer: Optional[CustomerProfile] = None  # Needed only before the first link


class LinkBankResponse(BaseModel):
    public_token_exchange: Literal["complete"] = "complete"
    bank_link_id: str


class RelinkRequest(BaseModel):
    """Body for rotating a BankLink's credential after relinking.

    Both fields are optional at the schema level so a missing one yields
    the 400 response rather than a validation error.
    """

    model_config = ConfigDict(populate_by_name=True)

    public_token: Optional[str] = Field(default=None, alias="publicToken")
    bank_id: Optional[str] = Field(default=None, alias="bankId")
