"""Plaid Link API endpoints.

Provides the server-side endpoints for the Plaid Link browser-based flow:
creating link tokens, linking a new bank account (Plaid exchange plus
Dwolla funding source), and relinking an existing BankLink after Plaid
withdrew transaction consent.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from api.helpers import get_dwolla_client, get_or_404, get_plaid_client, require_configured
from database import get_db
from integrations.dwolla_client import DwollaClient
from integrations.exceptions import ProviderError
from integrations.plaid_client import PlaidClient
from models import User
from schemas import (
    LinkBankRequest,
    LinkBankResponse,
    LinkTokenRequest,
    LinkTokenResponse,
    RelinkRequest,
)
from services.errors import BankLinkNotFoundError, CustomerValidationError, LinkingError
from services.linking_service import LinkingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/plaid", tags=["plaid"])


@router.post("/link-token", response_model=LinkTokenResponse)
def create_link_token(
    body: LinkTokenRequest,
    db: Session = Depends(get_db),
    plaid: PlaidClient = Depends(get_plaid_client),
):
    """Create a Plaid Link token for linking or relinking."""
    user = get_or_404(db, User, body.user_id, "User not found")
    require_configured(plaid)

    try:
        link_token = LinkingService(plaid_client=plaid).create_link_token(user)
        return LinkTokenResponse(link_token=link_token)
    except ProviderError as e:
        error_detail = str(e)
        # Surface actionable hint for the most common error
        if "INVALID_API_KEYS" in error_detail:
            hint = (
                "Plaid rejected the credentials. Check that PLAID_ENVIRONMENT "
                "matches your keys (sandbox or production). "
                "Each environment has different secrets."
            )
            logger.error("Plaid INVALID_API_KEYS: %s", hint)
            raise HTTPException(status_code=400, detail=hint)
        logger.error("Failed to create Plaid link token: %s", e)
        raise HTTPException(status_code=500, detail="Failed to create link token")


@router.post("/link", response_model=LinkBankResponse)
def link_bank(
    body: LinkBankRequest,
    db: Session = Depends(get_db),
    plaid: PlaidClient = Depends(get_plaid_client),
    dwolla: DwollaClient = Depends(get_dwolla_client),
):
    """Link the account behind a public token and attach it to Dwolla."""
    user = get_or_404(db, User, body.user_id, "User not found")
    require_configured(plaid)
    require_configured(dwolla)

    service = LinkingService(plaid_client=plaid, dwolla_client=dwolla)
    try:
        link = service.exchange_public_token(db, body.public_token, user, body.customer)
    except CustomerValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors)
    except LinkingError as e:
        raise HTTPException(status_code=502, detail=str(e))

    db.commit()
    return LinkBankResponse(bank_link_id=link.id)


@router.post("/exchange-token")
def relink_bank(
    body: RelinkRequest,
    db: Session = Depends(get_db),
    plaid: PlaidClient = Depends(get_plaid_client),
):
    """Rotate a BankLink's access token after the user relinked in Plaid Link.

    Body: ``{"publicToken": ..., "bankId": ...}``. The BankLink keeps its
    id, funding source and shareable id.
    """
    if not body.public_token or not body.bank_id:
        return JSONResponse(status_code=400, content={"error": "Missing required parameters"})
    require_configured(plaid)

    try:
        LinkingService(plaid_client=plaid).relink(db, body.bank_id, body.public_token)
    except ProviderError as e:
        logger.error("Failed to exchange Plaid token for bank link %s: %s", body.bank_id, e)
        return JSONResponse(status_code=500, content={"error": "Failed to exchange token"})
    except BankLinkNotFoundError as e:
        logger.error("Failed to update bank account: %s", e)
        return JSONResponse(status_code=500, content={"error": "Failed to update bank account"})

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to update bank account %s: %s", body.bank_id, e)
        return JSONResponse(status_code=500, content={"error": "Failed to update bank account"})

    return {"success": True}
