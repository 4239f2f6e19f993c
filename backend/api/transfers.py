"""Transfers API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from api.helpers import get_dwolla_client, require_configured
from database import get_db
from integrations.dwolla_client import DwollaClient
from schemas import TransferCreate, TransferResponse
from services.errors import TransferError
from services.transfer_service import TransferService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/transfers", tags=["transfers"])


@router.post("", response_model=TransferResponse, status_code=201)
def create_transfer(
    body: TransferCreate,
    db: Session = Depends(get_db),
    dwolla: DwollaClient = Depends(get_dwolla_client),
):
    """Send money from a linked account to another user's shared account."""
    require_configured(dwolla)

    try:
        transfer = TransferService(dwolla).create_transfer(
            db,
            sender_bank_link_id=body.sender_bank_link_id,
            receiver_shareable_id=body.receiver_shareable_id,
            amount=body.amount,
            name=body.name,
            email=body.email,
        )
    except TransferError as e:
        raise HTTPException(status_code=400, detail=str(e))

    db.commit()
    db.refresh(transfer)
    return transfer
