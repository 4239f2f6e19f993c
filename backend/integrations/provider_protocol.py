"""Normalized data returned by the provider clients.

The Plaid client maps SDK responses into these dataclasses so the services
never touch provider-specific response shapes.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal


@dataclass
class ProviderAccount:
    """Live snapshot of one bank account from the aggregation provider."""

    id: str  # Plaid account_id
    name: str
    institution_id: str | None = None  # From the Item, shared by all its accounts
    official_name: str | None = None
    mask: str | None = None
    type: str | None = None  # e.g., "depository"
    subtype: str | None = None  # e.g., "checking"
    available_balance: Decimal | None = None
    current_balance: Decimal | None = None


@dataclass
class ProviderInstitution:
    """Institution metadata for a linked Item."""

    institution_id: str
    name: str


@dataclass
class ProviderTransaction:
    """A single bank transaction from the aggregation provider."""

    id: str  # Plaid transaction_id
    account_id: str
    name: str
    amount: Decimal  # Plaid convention: positive = money out of the account
    date: date
    payment_channel: str | None = None
    category: str | None = None
    pending: bool = False
    logo_url: str | None = None


@dataclass
class TransactionSyncPage:
    """Accumulated result of following a sync cursor until ``has_more`` is false."""

    added: list[ProviderTransaction] = field(default_factory=list)
    modified: list[ProviderTransaction] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)  # transaction_ids
    next_cursor: str | None = None
