"""Tests for BankService account aggregation and the single-account resolver."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from integrations.exceptions import (
    ProviderAPIError,
    ProviderAuthError,
    ProviderConnectionError,
    ProviderConsentError,
)
from integrations.provider_protocol import ProviderAccount, TransactionSyncPage
from models.bank_link import CONSENT_REQUIRED
from services.bank_service import BankService
from tests.fixtures import create_bank_link, create_transfer
from tests.fixtures.mocks import SAMPLE_PLAID_ACCOUNT, MockPlaidClient, make_transaction

SAVINGS = ProviderAccount(
    id="acc_savings_009",
    name="Plaid Saving",
    institution_id="ins_109508",
    type="depository",
    subtype="savings",
    available_balance=Decimal("200.00"),
    current_balance=Decimal("210.00"),
)


class TestGetAccounts:
    def test_user_without_links(self, db, user):
        summary = BankService(MockPlaidClient()).get_accounts(db, user.id)

        assert summary.accounts == []
        assert summary.total_accounts == 0
        assert summary.total_current_balance == Decimal("0")
        assert summary.failed_bank_link_ids == []

    def test_account_missing_from_item_is_reported_not_fatal(self, db, customer_user, bank_link):
        plaid = MockPlaidClient(accounts=[SAVINGS])

        summary = BankService(plaid).get_accounts(db, customer_user.id)

        assert summary.accounts == []
        assert summary.failed_bank_link_ids == [bank_link.id]
        assert summary.total_current_balance == Decimal("0")

    def test_empty_user_id(self, db):
        summary = BankService(MockPlaidClient()).get_accounts(db, "")
        assert summary.total_accounts == 0

    def test_aggregates_all_links(self, db, customer_user, bank_link):
        create_bank_link(db, customer_user, SAVINGS.id, access_token="access-savings")
        plaid = MockPlaidClient(accounts={
            bank_link.access_token: [SAMPLE_PLAID_ACCOUNT],
            "access-savings": [SAVINGS],
        })

        summary = BankService(plaid).get_accounts(db, customer_user.id)

        assert summary.total_accounts == 2
        assert summary.total_current_balance == Decimal("320.00")
        assert {a.id for a in summary.accounts} == {SAMPLE_PLAID_ACCOUNT.id, SAVINGS.id}
        assert all(a.institution_name == "First Platypus Bank" for a in summary.accounts)

    def test_view_carries_link_identity(self, db, customer_user, bank_link):
        summary = BankService(MockPlaidClient()).get_accounts(db, customer_user.id)

        view = summary.accounts[0]
        assert view.bank_link_id == bank_link.id
        assert view.shareable_id == bank_link.shareable_id
        assert view.mask == "0000"

    def test_selects_the_links_own_account_from_the_item(self, db, customer_user):
        link = create_bank_link(db, customer_user, SAVINGS.id, access_token="access-multi")
        plaid = MockPlaidClient(accounts={"access-multi": [SAMPLE_PLAID_ACCOUNT, SAVINGS]})

        summary = BankService(plaid).get_accounts(db, customer_user.id)

        assert summary.accounts[0].id == SAVINGS.id
        assert summary.accounts[0].bank_link_id == link.id

    def test_failing_link_is_reported_not_fatal(self, db, customer_user, bank_link):
        broken = create_bank_link(db, customer_user, SAVINGS.id, access_token="access-broken")
        plaid = MockPlaidClient(
            accounts={bank_link.access_token: [SAMPLE_PLAID_ACCOUNT]},
            errors={"get_accounts": {"access-broken": ProviderAuthError("expired", "Plaid")}},
        )

        summary = BankService(plaid).get_accounts(db, customer_user.id)

        assert [a.bank_link_id for a in summary.accounts] == [bank_link.id]
        assert summary.failed_bank_link_ids == [broken.id]
        assert summary.total_current_balance == Decimal("110.00")

    def test_institution_lookup_failure_leaves_name_empty(self, db, customer_user, bank_link):
        plaid = MockPlaidClient(
            errors={"get_institution": ProviderConnectionError("timeout", "Plaid")},
        )

        summary = BankService(plaid).get_accounts(db, customer_user.id)

        assert summary.total_accounts == 1
        assert summary.accounts[0].institution_name is None
        assert summary.accounts[0].institution_id == "ins_109508"

    def test_missing_balance_counts_as_zero(self, db, customer_user, bank_link):
        no_balance = ProviderAccount(id=SAMPLE_PLAID_ACCOUNT.id, name="Pending")
        summary = BankService(MockPlaidClient(accounts=[no_balance])).get_accounts(db, customer_user.id)

        assert summary.total_current_balance == Decimal("0")


class TestGetAccount:
    def test_unknown_link_returns_none(self, db):
        assert BankService(MockPlaidClient()).get_account(db, "missing") is None

    def test_empty_id_returns_none(self, db):
        assert BankService(MockPlaidClient()).get_account(db, "") is None

    def test_merges_external_and_internal_newest_first(self, db, bank_link, other_bank_link):
        today = datetime.now(timezone.utc).date()
        now = datetime.now(timezone.utc)
        create_transfer(db, bank_link, other_bank_link, "10.00", now - timedelta(days=3), name="day3")
        create_transfer(db, other_bank_link, bank_link, "20.00", now - timedelta(days=1), name="day1")
        page = TransactionSyncPage(
            added=[make_transaction("ext-day2", today - timedelta(days=2), name="day2")],
            next_cursor="c1",
        )
        plaid = MockPlaidClient(sync_pages={bank_link.access_token: page})

        detail = BankService(plaid).get_account(db, bank_link.id)

        assert [t.name for t in detail.transactions] == ["day1", "day2", "day3"]
        assert [t.source for t in detail.transactions] == ["internal", "external", "internal"]
        assert detail.transactions[0].type == "credit"
        assert detail.transactions[2].type == "debit"
        assert detail.needs_relink is False

    def test_account_view(self, db, bank_link):
        detail = BankService(MockPlaidClient()).get_account(db, bank_link.id)

        assert detail.account.id == SAMPLE_PLAID_ACCOUNT.id
        assert detail.account.current_balance == Decimal("110.00")
        assert detail.account.bank_link_id == bank_link.id

    def test_consent_missing_gives_internal_only_and_needs_relink(
        self, db, bank_link, transfer_history
    ):
        plaid = MockPlaidClient(errors={
            "sync_transactions": ProviderConsentError(
                "consent", "Plaid", error_code="ADDITIONAL_CONSENT_REQUIRED"
            ),
        })

        detail = BankService(plaid).get_account(db, bank_link.id)

        assert detail is not None
        assert detail.needs_relink is True
        assert {t.source for t in detail.transactions} == {"internal"}
        assert bank_link.consent_status == CONSENT_REQUIRED

    def test_consent_missing_without_transfers_is_empty(self, db, bank_link):
        plaid = MockPlaidClient(errors={
            "sync_transactions": ProviderConsentError("consent", "Plaid"),
        })

        detail = BankService(plaid).get_account(db, bank_link.id)

        assert detail.transactions == []
        assert detail.needs_relink is True

    def test_other_sync_errors_return_none(self, db, bank_link):
        plaid = MockPlaidClient(errors={
            "sync_transactions": ProviderAPIError("server error", "Plaid", status_code=500),
        })

        assert BankService(plaid).get_account(db, bank_link.id) is None

    def test_account_snapshot_failure_returns_none(self, db, bank_link):
        plaid = MockPlaidClient(errors={"get_accounts": ProviderAuthError("bad token", "Plaid")})

        assert BankService(plaid).get_account(db, bank_link.id) is None

    def test_account_missing_from_item_returns_none(self, db, bank_link):
        plaid = MockPlaidClient(accounts=[SAVINGS])

        assert BankService(plaid).get_account(db, bank_link.id) is None
