"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api.helpers import get_dwolla_client, get_plaid_client
from database import Base, get_db
from main import app
# Pytest fixtures - imported to make them available to tests
from tests.fixtures import (  # noqa: F401
    bank_link,
    customer_user,
    other_bank_link,
    transfer_history,
    user,
)
from tests.fixtures.mocks import MockDwollaClient, MockPlaidClient


@pytest.fixture(name="db")
def db_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def mock_plaid_client():
    """Mock Plaid client returning SAMPLE_PLAID_ACCOUNT for every token."""
    return MockPlaidClient()


@pytest.fixture
def mock_dwolla_client():
    """Mock Dwolla client that accepts every request."""
    return MockDwollaClient()


@pytest.fixture(name="client")
def client_fixture(db, mock_plaid_client, mock_dwolla_client):
    """Create a test client with the test database and mock providers."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_plaid_client] = lambda: mock_plaid_client
    app.dependency_overrides[get_dwolla_client] = lambda: mock_dwolla_client
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
