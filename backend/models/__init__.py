"""SQLAlchemy ORM models."""

from .bank_link import BankLink
from .reconciliation_item import ReconciliationItem
from .synced_transaction import SyncedTransaction
from .transfer import Transfer
from .user import User
from .utils import generate_uuid

__all__ = ["BankLink", "ReconciliationItem", "SyncedTransaction", "Transfer", "User", "generate_uuid"]
