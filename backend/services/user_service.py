"""User service - sign-up and the payment-rail customer profile."""

import logging
import re
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from integrations.dwolla_client import DwollaClient, resource_id
from integrations.exceptions import ProviderError
from models import User
from schemas.user import CustomerProfile, UserCreate
from services.errors import CustomerValidationError, UserCreationError
from services.reconciliation_service import ReconciliationService

logger = logging.getLogger(__name__)

_REQUIRED_CUSTOMER_FIELDS = (
    "firstName",
    "lastName",
    "email",
    "type",
    "address1",
    "city",
    "state",
    "postalCode",
    "dateOfBirth",
    "ssn",
)

_STATE_RE = re.compile(r"^[A-Za-z]{2}$")
_SSN_RE = re.compile(r"^\d{9}$")


def validate_customer_data(customer: dict) -> list[str]:
    """Check a Dwolla customer payload before it is submitted.

    Returns:
        Human-readable problems; empty when the payload is acceptable.
    """
    errors = [
        f"{key} is required"
        for key in _REQUIRED_CUSTOMER_FIELDS
        if not str(customer.get(key) or "").strip()
    ]

    state = customer.get("state")
    if state and not _STATE_RE.match(state):
        errors.append("state must be a two-letter code")

    dob = customer.get("dateOfBirth")
    if dob:
        try:
            datetime.strptime(dob, "%Y-%m-%d")
        except ValueError:
            errors.append("dateOfBirth must be YYYY-MM-DD")

    ssn = customer.get("ssn")
    if ssn and not _SSN_RE.match(ssn.replace("-", "")):
        errors.append("ssn must be 9 digits")

    return errors


def build_customer_payload(user: User, profile: CustomerProfile | None = None) -> dict:
    """Dwolla personal-customer payload from a user, overlaid with a profile.

    The SSN is never stored, so it can only come from ``profile``.
    """
    profile = profile or CustomerProfile()
    ssn = (profile.ssn or "").replace("-", "")
    return {
        "firstName": user.first_name,
        "lastName": user.last_name,
        "email": user.email,
        "type": "personal",
        "address1": profile.address1 or user.address1,
        "city": profile.city or user.city,
        "state": (profile.state or user.state or "").upper(),
        "postalCode": profile.postal_code or user.postal_code,
        "dateOfBirth": profile.date_of_birth or user.date_of_birth,
        "ssn": ssn,
    }


def create_customer_for(dwolla: DwollaClient, user: User, profile: CustomerProfile | None) -> str:
    """Validate and create (or reuse) the user's Dwolla customer.

    Sets ``dwolla_customer_url`` / ``dwolla_customer_id`` on the user but
    does not flush.

    Raises:
        CustomerValidationError: The payload failed local validation.
        ProviderError: Dwolla rejected the request.
    """
    payload = build_customer_payload(user, profile)
    errors = validate_customer_data(payload)
    if errors:
        raise CustomerValidationError(errors)

    url = dwolla.create_customer(payload)
    user.dwolla_customer_url = url
    user.dwolla_customer_id = resource_id(url)
    if payload["ssn"]:
        user.ssn_last4 = payload["ssn"][-4:]
    return url


class UserService:
    """Service for user sign-up and lookup."""

    def __init__(self, dwolla_client: DwollaClient | None = None):
        self._dwolla = dwolla_client

    @property
    def dwolla(self) -> DwollaClient:
        if self._dwolla is None:
            self._dwolla = DwollaClient()
        return self._dwolla

    @staticmethod
    def get_user(db: Session, user_id: str) -> User | None:
        """Get a specific user by ID."""
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> User | None:
        return db.query(User).filter(User.email == email).first()

    def create_user(self, db: Session, data: UserCreate) -> User:
        """Create a user and, when identity data is complete, their Dwolla customer.

        The customer is created only when an SSN is supplied; otherwise it is
        deferred to the first bank link. If the local insert fails after the
        customer exists, a reconciliation item keeps the customer URL.

        Raises:
            UserCreationError: Email already registered, Dwolla failure or
                database failure.
            CustomerValidationError: Identity fields are malformed.
        """
        email = data.email.strip().lower()
        if self.get_user_by_email(db, email):
            raise UserCreationError(f"A user with email {email} already exists")

        user = User(
            email=email,
            first_name=data.first_name.strip(),
            last_name=data.last_name.strip(),
            address1=data.address1,
            city=data.city,
            state=data.state.upper() if data.state else None,
            postal_code=data.postal_code,
            date_of_birth=data.date_of_birth,
        )

        if data.ssn:
            try:
                create_customer_for(self.dwolla, user, data)
            except ProviderError as e:
                logger.error("Dwolla customer creation failed for %s: %s", email, e)
                raise UserCreationError(f"Could not create payment customer: {e}") from e

        db.add(user)
        try:
            db.flush()
        except SQLAlchemyError as e:
            if user.dwolla_customer_url:
                ReconciliationService.record(
                    db,
                    operation="create_user",
                    failed_step="persist_user",
                    dwolla_customer_url=user.dwolla_customer_url,
                    error=str(e),
                )
            raise UserCreationError("Could not save user") from e

        logger.info("User created: %s (id=%s)", user.email, user.id)
        return user
