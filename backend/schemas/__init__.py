"""Pydantic schemas for API request/response validation."""

from schemas.bank import (
    AccountDetailResponse,
    AccountResponse,
    AccountsSummaryResponse,
    LinkBankRequest,
    LinkBankResponse,
    LinkTokenRequest,
    LinkTokenResponse,
    RelinkRequest,
    TransactionResponse,
)
from schemas.reconciliation import ReconciliationItemResponse
from schemas.transfer import TransferCreate, TransferResponse
from schemas.user import CustomerProfile, UserCreate, UserResponse

__all__ = [
    "AccountDetailResponse",
    "AccountResponse",
    "AccountsSummaryResponse",
    "CustomerProfile",
    "LinkBankRequest",
    "LinkBankResponse",
    "LinkTokenRequest",
    "LinkTokenResponse",
    "ReconciliationItemResponse",
    "RelinkRequest",
    "TransactionResponse",
    "TransferCreate",
    "TransferResponse",
    "UserCreate",
    "UserResponse",
]
