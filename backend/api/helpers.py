"""Shared API helpers for route handlers.

Lookup helpers and the provider client dependencies, which tests replace
through ``app.dependency_overrides``.
"""

from collections.abc import Iterator
from typing import TypeVar

from fastapi import HTTPException
from sqlalchemy.orm import Session

from database import Base
from integrations.dwolla_client import DwollaClient
from integrations.plaid_client import PlaidClient

T = TypeVar("T", bound=Base)


def get_or_404(db: Session, model: type[T], entity_id: str, detail: str = "Not found") -> T:
    """Fetch a single entity by primary key or raise 404.

    Args:
        db: Database session.
        model: SQLAlchemy model class.
        entity_id: Primary key value.
        detail: Error message for the 404 response.

    Returns:
        The entity instance.

    Raises:
        HTTPException: 404 if the entity doesn't exist.
    """
    entity = db.query(model).filter(model.id == entity_id).first()
    if not entity:
        raise HTTPException(status_code=404, detail=detail)
    return entity


def get_plaid_client() -> PlaidClient:
    """Dependency for injecting the Plaid client (overridable in tests)."""
    return PlaidClient()


def get_dwolla_client() -> Iterator[DwollaClient]:
    """Dependency for injecting the Dwolla client (overridable in tests)."""
    client = DwollaClient()
    try:
        yield client
    finally:
        client.close()


def require_configured(client: PlaidClient | DwollaClient) -> None:
    """Raise 400 when a provider has no credentials."""
    if not client.is_configured():
        raise HTTPException(status_code=400, detail=f"{client.provider_name} is not configured")
