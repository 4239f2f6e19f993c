"""Bank link API endpoints - account detail and transfer history."""

import logging
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from api.helpers import get_or_404, get_plaid_client, require_configured
from database import get_db
from integrations.plaid_client import PlaidClient
from models import BankLink
from schemas import AccountDetailResponse, TransferResponse
from services.bank_service import BankService
from services.transfer_service import TransferService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bank-links", tags=["bank-links"])


@router.get("/{bank_link_id}", response_model=AccountDetailResponse)
def get_bank_link(
    bank_link_id: str,
    page: Optional[int] = Query(default=None, ge=1),
    page_size: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
    plaid: PlaidClient = Depends(get_plaid_client),
):
    """Account snapshot plus merged transaction history, newest first.

    ``needs_relink`` is true when Plaid withdrew transaction consent; the
    client should offer the relink flow. Without ``page`` the whole history
    is returned; with it, only that 1-based page of ``page_size`` rows.
    ``total_transactions`` always counts the whole history.
    """
    get_or_404(db, BankLink, bank_link_id, "Bank link not found")
    require_configured(plaid)

    detail = BankService(plaid).get_account(db, bank_link_id)
    if detail is None:
        raise HTTPException(status_code=503, detail="Account data is temporarily unavailable")

    # Persist the advanced sync cursor and consent status
    db.commit()

    response = asdict(detail)
    response["total_transactions"] = len(detail.transactions)
    if page is not None:
        start = (page - 1) * page_size
        response["transactions"] = response["transactions"][start:start + page_size]
    return response


@router.get("/{bank_link_id}/transfers", response_model=list[TransferResponse])
def list_bank_link_transfers(bank_link_id: str, db: Session = Depends(get_db)):
    """Transfers sent or received by a bank link."""
    get_or_404(db, BankLink, bank_link_id, "Bank link not found")
    return TransferService.list_for_bank_link(db, bank_link_id)
