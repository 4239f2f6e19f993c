"""External API integrations.

This package contains:
- Plaid client: account aggregation, transactions and processor tokens
- Dwolla client: payment-rail customers, funding sources and transfers
- Typed provider exceptions shared by both clients
"""

from integrations.dwolla_client import DwollaClient
from integrations.plaid_client import PlaidClient

__all__ = [
    "DwollaClient",
    "PlaidClient",
]
