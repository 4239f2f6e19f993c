"""API route handlers."""
from . import bank_links, plaid, reconciliation, transfers, users

__all__ = ["bank_links", "plaid", "reconciliation", "transfers", "users"]
