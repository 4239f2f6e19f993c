"""Test fixtures and sample data."""
import pytest
from datetime import datetime, timezone
from decimal import Decimal

from models import BankLink, Transfer, User
from sqlalchemy.orm import Session
from utils.shareable_id import encode_shareable_id

FUNDING_SOURCE_BASE = "https://api-sandbox.dwolla.com/funding-sources"


def create_bank_link(
    db: Session,
    user: User,
    account_id: str,
    access_token: str = "access-sandbox-001",
    item_id: str = "item-sandbox-001",
    **kwargs,
) -> BankLink:
    """Create and flush a BankLink for ``user``."""
    link = BankLink(
        user_id=user.id,
        item_id=item_id,
        account_id=account_id,
        access_token=access_token,
        funding_source_url=kwargs.pop("funding_source_url", f"{FUNDING_SOURCE_BASE}/fs-{account_id}"),
        shareable_id=encode_shareable_id(account_id),
        **kwargs,
    )
    db.add(link)
    db.flush()
    return link


def create_transfer(
    db: Session,
    sender: BankLink,
    receiver: BankLink,
    amount: str,
    created_at: datetime,
    name: str = "Rent share",
) -> Transfer:
    transfer = Transfer(
        name=name,
        amount=Decimal(amount),
        sender_bank_link_id=sender.id,
        receiver_bank_link_id=receiver.id,
        created_at=created_at,
    )
    db.add(transfer)
    db.flush()
    return transfer


@pytest.fixture
def user(db: Session) -> User:
    """A user without a Dwolla customer yet."""
    u = User(
        email="jane.doe@example.com",
        first_name="Jane",
        last_name="Doe",
        address1="123 Main St",
        city="Springfield",
        state="IL",
        postal_code="62701",
        date_of_birth="1990-04-12",
    )
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


@pytest.fixture
def customer_user(db: Session) -> User:
    """A user who already has a Dwolla customer."""
    u = User(
        email="sam.roe@example.com",
        first_name="Sam",
        last_name="Roe",
        address1="9 Elm Ave",
        city="Madison",
        state="WI",
        postal_code="53703",
        date_of_birth="1985-11-30",
        ssn_last4="6789",
        dwolla_customer_id="cust-sam",
        dwolla_customer_url="https://api-sandbox.dwolla.com/customers/cust-sam",
    )
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


@pytest.fixture
def bank_link(db: Session, customer_user: User) -> BankLink:
    """A linked checking account matching SAMPLE_PLAID_ACCOUNT."""
    link = create_bank_link(db, customer_user, "acc_checking_001", institution_id="ins_109508")
    db.commit()
    return link


@pytest.fixture
def other_bank_link(db: Session, user: User) -> BankLink:
    """A second user's account, used as a transfer counterparty."""
    link = create_bank_link(
        db,
        user,
        "acc_savings_002",
        access_token="access-sandbox-002",
        item_id="item-sandbox-002",
    )
    db.commit()
    return link


@pytest.fixture
def transfer_history(db: Session, bank_link: BankLink, other_bank_link: BankLink) -> list[Transfer]:
    """One outgoing and one incoming transfer for ``bank_link``."""
    transfers = [
        create_transfer(
            db, bank_link, other_bank_link, "25.00",
            datetime(2026, 10, 10, 15, 0, tzinfo=timezone.utc), name="Dinner split",
        ),
        create_transfer(
            db, other_bank_link, bank_link, "40.00",
            datetime(2026, 10, 12, 9, 30, tzinfo=timezone.utc), name="Concert tickets",
        ),
    ]
    db.commit()
    return transfers
