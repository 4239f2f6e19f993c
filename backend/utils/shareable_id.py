"""Shareable ids let one user address another user's bank link for transfers."""

import base64
import binascii


def encode_shareable_id(account_id: str) -> str:
    """Encode a Plaid account id as an opaque, URL-safe shareable id."""
    return base64.urlsafe_b64encode(account_id.encode()).decode()


def decode_shareable_id(shareable_id: str) -> str | None:
    """Decode a shareable id back to the account id, or None if malformed."""
    try:
        account_id = base64.b64decode(shareable_id.encode(), altchars=b"-_", validate=True).decode()
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None
    return account_id or None
