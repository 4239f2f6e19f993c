"""Integration tests for bank link endpoints."""

from datetime import datetime, timedelta, timezone

from api.helpers import get_plaid_client
from integrations.exceptions import ProviderAPIError, ProviderConsentError
from integrations.provider_protocol import TransactionSyncPage
from main import app
from models import BankLink
from models.bank_link import CONSENT_REQUIRED
from tests.fixtures import create_transfer
from tests.fixtures.mocks import MockPlaidClient, make_transaction


def _days_ago(days: int):
    return datetime.now(timezone.utc) - timedelta(days=days)


class TestGetBankLink:
    def test_merges_external_and_internal_newest_first(self, client, db, bank_link, other_bank_link):
        create_transfer(db, bank_link, other_bank_link, "20.00", _days_ago(3), name="Lunch")
        create_transfer(db, other_bank_link, bank_link, "60.00", _days_ago(45), name="Old refund")
        db.commit()
        page = TransactionSyncPage(
            added=[
                make_transaction("ext-recent", _days_ago(1).date()),
                make_transaction("ext-older", _days_ago(5).date(), amount="8.00"),
            ],
            next_cursor="cursor-1",
        )
        app.dependency_overrides[get_plaid_client] = lambda: MockPlaidClient(
            sync_pages={bank_link.access_token: page},
        )

        response = client.get(f"/api/bank-links/{bank_link.id}")

        assert response.status_code == 200
        data = response.json()
        assert data["needs_relink"] is False
        assert data["account"]["id"] == "acc_checking_001"
        assert data["account"]["shareable_id"] == bank_link.shareable_id
        names = [t["name"] for t in data["transactions"]]
        assert names == ["Coffee Shop", "Lunch", "Coffee Shop", "Old refund"]
        sources = [t["source"] for t in data["transactions"]]
        assert sources == ["external", "internal", "external", "internal"]
        types = [t["type"] for t in data["transactions"]]
        assert types == ["in store", "debit", "in store", "credit"]

    def test_persists_sync_cursor(self, client, db, bank_link):
        page = TransactionSyncPage(
            added=[make_transaction("ext-1", _days_ago(2).date())],
            next_cursor="cursor-after-first-sync",
        )
        app.dependency_overrides[get_plaid_client] = lambda: MockPlaidClient(
            sync_pages={bank_link.access_token: page},
        )

        client.get(f"/api/bank-links/{bank_link.id}")

        db.expire_all()
        assert db.get(BankLink, bank_link.id).transactions_cursor == "cursor-after-first-sync"

    def test_consent_required_flags_relink(self, client, db, bank_link, transfer_history):
        app.dependency_overrides[get_plaid_client] = lambda: MockPlaidClient(errors={
            "sync_transactions": ProviderConsentError(
                "consent", "Plaid", error_code="ADDITIONAL_CONSENT_REQUIRED"
            ),
        })

        response = client.get(f"/api/bank-links/{bank_link.id}")

        assert response.status_code == 200
        data = response.json()
        assert data["needs_relink"] is True
        assert {t["source"] for t in data["transactions"]} == {"internal"}
        assert len(data["transactions"]) == 2
        db.expire_all()
        assert db.get(BankLink, bank_link.id).consent_status == CONSENT_REQUIRED

    def test_provider_failure_returns_503(self, client, bank_link):
        app.dependency_overrides[get_plaid_client] = lambda: MockPlaidClient(errors={
            "get_accounts": ProviderAPIError("down", "Plaid", status_code=500),
        })

        response = client.get(f"/api/bank-links/{bank_link.id}")

        assert response.status_code == 503

    def test_unknown_bank_link(self, client):
        assert client.get("/api/bank-links/missing").status_code == 404

    def test_pages_merged_history(self, client, bank_link):
        page = TransactionSyncPage(
            added=[make_transaction(f"ext-{d}", _days_ago(d).date(), name=f"day{d}") for d in range(1, 13)],
            next_cursor="cursor-1",
        )
        app.dependency_overrides[get_plaid_client] = lambda: MockPlaidClient(
            sync_pages={bank_link.access_token: page},
        )

        first = client.get(f"/api/bank-links/{bank_link.id}", params={"page": 1}).json()
        second = client.get(f"/api/bank-links/{bank_link.id}", params={"page": 2}).json()

        assert [t["name"] for t in first["transactions"]] == [f"day{d}" for d in range(1, 11)]
        assert [t["name"] for t in second["transactions"]] == ["day11", "day12"]
        assert first["total_transactions"] == second["total_transactions"] == 12

    def test_without_page_returns_whole_history(self, client, bank_link):
        page = TransactionSyncPage(
            added=[make_transaction(f"ext-{d}", _days_ago(d).date()) for d in range(1, 13)],
            next_cursor="cursor-1",
        )
        app.dependency_overrides[get_plaid_client] = lambda: MockPlaidClient(
            sync_pages={bank_link.access_token: page},
        )

        data = client.get(f"/api/bank-links/{bank_link.id}").json()

        assert len(data["transactions"]) == 12
        assert data["total_transactions"] == 12

    def test_page_size_and_page_past_end(self, client, bank_link):
        page = TransactionSyncPage(
            added=[make_transaction(f"ext-{d}", _days_ago(d).date()) for d in range(1, 6)],
            next_cursor="cursor-1",
        )
        app.dependency_overrides[get_plaid_client] = lambda: MockPlaidClient(
            sync_pages={bank_link.access_token: page},
        )

        sized = client.get(f"/api/bank-links/{bank_link.id}", params={"page": 2, "page_size": 2}).json()
        past_end = client.get(f"/api/bank-links/{bank_link.id}", params={"page": 4, "page_size": 2}).json()

        assert [t["id"] for t in sized["transactions"]] == ["ext-3", "ext-4"]
        assert past_end["transactions"] == []
        assert past_end["total_transactions"] == 5

    def test_invalid_page_rejected(self, client, bank_link):
        assert client.get(f"/api/bank-links/{bank_link.id}", params={"page": 0}).status_code == 422
        assert client.get(f"/api/bank-links/{bank_link.id}", params={"page_size": 101}).status_code == 422


class TestListBankLinkTransfers:
    def test_lists_transfers(self, client, bank_link, transfer_history):
        response = client.get(f"/api/bank-links/{bank_link.id}/transfers")

        assert response.status_code == 200
        data = response.json()
        assert [t["name"] for t in data] == ["Dinner split", "Concert tickets"]
        assert data[0]["sender_bank_link_id"] == bank_link.id

    def test_unknown_bank_link(self, client):
        assert client.get("/api/bank-links/missing/transfers").status_code == 404
