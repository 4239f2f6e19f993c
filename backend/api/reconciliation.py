"""Reconciliation API endpoints - the queue of partially completed operations."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from database import get_db
from schemas import ReconciliationItemResponse
from services.reconciliation_service import ReconciliationService

router = APIRouter(prefix="/api/reconciliation", tags=["reconciliation"])


@router.get("", response_model=list[ReconciliationItemResponse])
def list_open_items(db: Session = Depends(get_db)):
    """Open reconciliation items, oldest first."""
    return ReconciliationService.list_open(db)


@router.post("/{item_id}/resolve", response_model=ReconciliationItemResponse)
def resolve_item(item_id: str, db: Session = Depends(get_db)):
    """Mark an item as handled."""
    item = ReconciliationService.resolve(db, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Reconciliation item not found")
    db.commit()
    db.refresh(item)
    return item
