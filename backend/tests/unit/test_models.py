"""Unit tests for SQLAlchemy models."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from models import BankLink, ReconciliationItem, SyncedTransaction, User
from models.bank_link import CONSENT_ACTIVE, CONSENT_REQUIRED
from models.reconciliation_item import STATUS_OPEN
from tests.fixtures import create_bank_link


def test_user_creation(user):
    """Test User model creation."""
    assert user.email == "jane.doe@example.com"
    assert user.full_name == "Jane Doe"
    assert user.dwolla_customer_url is None
    assert user.created_at is not None


def test_user_email_is_unique(db, user):
    db.add(User(email=user.email, first_name="Other", last_name="Person"))
    with pytest.raises(IntegrityError):
        db.flush()


def test_bank_link_defaults(bank_link):
    """A new BankLink has active consent and no sync cursor."""
    assert bank_link.consent_status == CONSENT_ACTIVE
    assert bank_link.needs_relink is False
    assert bank_link.transactions_cursor is None
    assert bank_link.created_at is not None
    assert bank_link.updated_at is not None


def test_bank_link_needs_relink(db, bank_link):
    bank_link.consent_status = CONSENT_REQUIRED
    db.flush()
    assert bank_link.needs_relink is True


def test_bank_link_user_relationship(bank_link, customer_user):
    assert bank_link.user_id == customer_user.id
    assert bank_link in customer_user.bank_links


def test_bank_link_unique_per_user_account(db, bank_link, customer_user):
    with pytest.raises(IntegrityError):
        create_bank_link(db, customer_user, bank_link.account_id, access_token="access-other")


def test_same_account_for_different_users(db, bank_link, user):
    other = create_bank_link(db, user, bank_link.account_id, access_token="access-other")
    assert other.id != bank_link.id


def test_synced_transactions_deleted_with_bank_link(db, bank_link):
    db.add(SyncedTransaction(
        bank_link_id=bank_link.id,
        transaction_id="txn-1",
        account_id=bank_link.account_id,
        name="Coffee Shop",
        amount=Decimal("4.50"),
        date=date(2026, 10, 1),
    ))
    db.flush()

    db.delete(bank_link)
    db.flush()

    assert db.query(SyncedTransaction).count() == 0
    assert db.query(BankLink).count() == 0


def test_synced_transaction_unique_per_link(db, bank_link):
    for _ in range(2):
        db.add(SyncedTransaction(
            bank_link_id=bank_link.id,
            transaction_id="txn-dup",
            account_id=bank_link.account_id,
            name="Coffee Shop",
            amount=Decimal("4.50"),
            date=date(2026, 10, 1),
        ))
    with pytest.raises(IntegrityError):
        db.flush()


def test_reconciliation_item_defaults(db):
    item = ReconciliationItem(operation="link_bank", failed_step="persist_bank_link")
    db.add(item)
    db.flush()

    assert item.id is not None
    assert item.status == STATUS_OPEN
    assert item.resolved_at is None
