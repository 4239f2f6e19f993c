"""Users API endpoints."""

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from api.helpers import get_dwolla_client, get_or_404, get_plaid_client, require_configured
from database import get_db
from integrations.dwolla_client import DwollaClient
from integrations.plaid_client import PlaidClient
from models import User
from schemas import AccountsSummaryResponse, UserCreate, UserResponse
from services.bank_service import BankService
from services.errors import CustomerValidationError, UserCreationError
from services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("", response_model=UserResponse, status_code=201)
def create_user(
    body: UserCreate,
    db: Session = Depends(get_db),
    dwolla: DwollaClient = Depends(get_dwolla_client),
):
    """Sign up a user; the Dwolla customer is created when an SSN is supplied."""
    if body.ssn:
        require_configured(dwolla)

    try:
        user = UserService(dwolla).create_user(db, body)
    except CustomerValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors)
    except UserCreationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    db.commit()
    db.refresh(user)
    return user


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: str, db: Session = Depends(get_db)):
    """Get a specific user."""
    return get_or_404(db, User, user_id, "User not found")


@router.get("/{user_id}/accounts", response_model=AccountsSummaryResponse)
def get_user_accounts(
    user_id: str,
    db: Session = Depends(get_db),
    plaid: PlaidClient = Depends(get_plaid_client),
):
    """Live balances for every bank the user has linked."""
    get_or_404(db, User, user_id, "User not found")
    require_configured(plaid)
    return asdict(BankService(plaid).get_accounts(db, user_id))
