"""Plaid API client.

Wraps the plaid-python SDK for everything the application needs from the
aggregation provider: Link tokens, public token exchange, account balances,
institution metadata, cursor-based transaction sync and Dwolla processor
tokens.

Unlike a process-wide SDK singleton, each PlaidClient carries its own
credentials so services and tests can inject a differently configured
(or fake) client.
"""

import json
import logging
from collections.abc import Callable
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

import urllib3
from plaid import ApiException, Environment
from plaid.api.plaid_api import PlaidApi
from plaid.api_client import ApiClient
from plaid.configuration import Configuration
from plaid.model.accounts_get_request import AccountsGetRequest
from plaid.model.country_code import CountryCode
from plaid.model.institutions_get_by_id_request import InstitutionsGetByIdRequest
from plaid.model.item_public_token_exchange_request import ItemPublicTokenExchangeRequest
from plaid.model.item_remove_request import ItemRemoveRequest
from plaid.model.link_token_create_request import LinkTokenCreateRequest
from plaid.model.link_token_create_request_user import LinkTokenCreateRequestUser
from plaid.model.processor_token_create_request import ProcessorTokenCreateRequest
from plaid.model.products import Products
from plaid.model.transactions_sync_request import TransactionsSyncRequest

from config import settings
from integrations.exceptions import (
    ProviderAPIError,
    ProviderAuthError,
    ProviderConnectionError,
    ProviderConsentError,
    ProviderDataError,
)
from integrations.provider_protocol import (
    ProviderAccount,
    ProviderInstitution,
    ProviderTransaction,
    TransactionSyncPage,
)

logger = logging.getLogger(__name__)

PROVIDER_NAME = "Plaid"

CONSENT_REQUIRED_CODE = "ADDITIONAL_CONSENT_REQUIRED"
SYNC_MUTATION_CODE = "TRANSACTIONS_SYNC_MUTATION_DURING_PAGINATION"

_AUTH_ERROR_CODES = frozenset({"INVALID_ACCESS_TOKEN", "ITEM_LOGIN_REQUIRED", "INVALID_API_KEYS"})

# Restarts allowed when Plaid reports the data changed mid-pagination
_MAX_SYNC_RESTARTS = 3

# Map PLAID_ENVIRONMENT setting to SDK host URLs.
# Plaid's Development environment is deprecated; only sandbox and production
# are supported.
_ENVIRONMENT_MAP: dict[str, str] = {
    "sandbox": Environment.Sandbox,
    "production": Environment.Production,
}


def _as_dict(response) -> dict:
    """Return an SDK response model as a plain dict."""
    if hasattr(response, "to_dict"):
        return response.to_dict()
    return response


def _as_str(value) -> str | None:
    """Unwrap SDK enum wrappers (AccountType, PaymentChannel, ...) to plain strings."""
    if value is None:
        return None
    return str(getattr(value, "value", value))


def _to_decimal(value) -> Decimal | None:
    """Convert a value to Decimal, returning None on failure."""
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


class PlaidClient:
    """Wrapper around the Plaid API."""

    def __init__(
        self,
        client_id: str | None = None,
        secret: str | None = None,
        environment: str | None = None,
        client_name: str | None = None,
    ):
        self._client_id = client_id or settings.PLAID_CLIENT_ID
        self._secret = secret or settings.PLAID_SECRET
        self._environment = environment or settings.PLAID_ENVIRONMENT
        self._client_name = client_name or settings.PLAID_CLIENT_NAME

        # Lazily created on first use
        self._api: PlaidApi | None = None

    def _get_api(self) -> PlaidApi:
        """Return (and cache) a PlaidApi instance."""
        if self._api is None:
            env_key = self._environment.lower()
            host = _ENVIRONMENT_MAP.get(env_key)
            if host is None:
                logger.warning(
                    "Unknown PLAID_ENVIRONMENT=%r, falling back to sandbox. "
                    "Valid values: sandbox, production",
                    self._environment,
                )
                host = Environment.Sandbox
            logger.info(
                "Plaid API client: environment=%s, host=%s, client_id=<configured>",
                env_key,
                host,
            )
            configuration = Configuration(
                host=host,
                api_key={
                    "clientId": self._client_id,
                    "secret": self._secret,
                },
            )
            api_client = ApiClient(configuration)
            self._api = PlaidApi(api_client)
        return self._api

    @property
    def provider_name(self) -> str:
        return PROVIDER_NAME

    def is_configured(self) -> bool:
        """Check if Plaid credentials are configured."""
        return bool(self._client_id) and bool(self._secret)

    def _call(self, operation: str, endpoint: Callable, request) -> dict:
        """Invoke an SDK endpoint, translating failures to provider exceptions."""
        try:
            return _as_dict(endpoint(request))
        except ApiException as exc:
            raise self._map_plaid_error(exc, operation) from exc
        except urllib3.exceptions.HTTPError as exc:
            raise ProviderConnectionError(
                f"Plaid {operation} failed: {exc}",
                provider_name=PROVIDER_NAME,
            ) from exc

    # ------------------------------------------------------------------
    # Link Token & Token Exchange
    # ------------------------------------------------------------------

    def create_link_token(self, client_user_id: str, client_name: str | None = None) -> str:
        """Create a Plaid Link token for the browser-based linking widget.

        Used both for first-time linking and for relinking an existing
        BankLink whose transaction consent has lapsed.

        Args:
            client_user_id: Stable id of the application user.
            client_name: Name shown inside Plaid Link.

        Returns:
            The link_token string to be passed to Plaid Link.
        """
        api = self._get_api()
        request = LinkTokenCreateRequest(
            user=LinkTokenCreateRequestUser(client_user_id=client_user_id),
            client_name=client_name or self._client_name,
            products=[Products("auth"), Products("transactions")],
            country_codes=[CountryCode("US")],
            language="en",
        )
        response = self._call("link token create", api.link_token_create, request)
        return response["link_token"]

    def exchange_public_token(self, public_token: str) -> dict:
        """Exchange a Plaid Link public_token for a permanent access_token.

        Args:
            public_token: The public_token from the Plaid Link on-success callback.

        Returns:
            Dict with ``access_token`` and ``item_id``.
        """
        api = self._get_api()
        request = ItemPublicTokenExchangeRequest(public_token=public_token)
        response = self._call("public token exchange", api.item_public_token_exchange, request)
        return {
            "access_token": response["access_token"],
            "item_id": response["item_id"],
        }

    def create_processor_token(
        self,
        access_token: str,
        account_id: str,
        processor: str = "dwolla",
    ) -> str:
        """Create a processor token so Dwolla can address a Plaid account."""
        api = self._get_api()
        request = ProcessorTokenCreateRequest(
            access_token=access_token,
            account_id=account_id,
            processor=processor,
        )
        response = self._call("processor token create", api.processor_token_create, request)
        return response["processor_token"]

    def remove_item(self, access_token: str) -> None:
        """Revoke an access token by calling Plaid's /item/remove endpoint.

        Args:
            access_token: The Item's access token to revoke.
        """
        api = self._get_api()
        self._call("item remove", api.item_remove, ItemRemoveRequest(access_token=access_token))

    # ------------------------------------------------------------------
    # Accounts & institutions
    # ------------------------------------------------------------------

    def get_accounts(self, access_token: str) -> list[ProviderAccount]:
        """Fetch a live snapshot of every account on an Item.

        Returns:
            List of ProviderAccount objects, in Plaid's order.

        Raises:
            ProviderDataError: If the Item reports no accounts.
        """
        api = self._get_api()
        response = self._call(
            "accounts get",
            api.accounts_get,
            AccountsGetRequest(access_token=access_token),
        )

        institution_id = (response.get("item") or {}).get("institution_id")
        accounts = [
            self._map_account(acct, institution_id)
            for acct in response.get("accounts") or []
            if acct.get("account_id")
        ]
        if not accounts:
            raise ProviderDataError("Plaid returned no accounts for Item", provider_name=PROVIDER_NAME)
        return accounts

    @staticmethod
    def _map_account(acct: dict, institution_id: str | None) -> ProviderAccount:
        balances = acct.get("balances") or {}
        return ProviderAccount(
            id=acct["account_id"],
            name=acct.get("name") or acct.get("official_name") or "Bank Account",
            institution_id=institution_id,
            official_name=acct.get("official_name"),
            mask=acct.get("mask"),
            type=_as_str(acct.get("type")),
            subtype=_as_str(acct.get("subtype")),
            available_balance=_to_decimal(balances.get("available")),
            current_balance=_to_decimal(balances.get("current")),
        )

    def get_institution(self, institution_id: str) -> ProviderInstitution:
        """Fetch institution metadata by Plaid institution id."""
        api = self._get_api()
        request = InstitutionsGetByIdRequest(
            institution_id=institution_id,
            country_codes=[CountryCode("US")],
        )
        response = self._call("institution get", api.institutions_get_by_id, request)
        institution = response.get("institution") or {}
        return ProviderInstitution(
            institution_id=institution.get("institution_id") or institution_id,
            name=institution.get("name") or "",
        )

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def sync_transactions(
        self,
        access_token: str,
        cursor: str | None = None,
        count: int | None = None,
    ) -> TransactionSyncPage:
        """Pull every transaction change since ``cursor``.

        Follows ``has_more`` until the cursor is caught up. If Plaid reports
        that the data changed mid-pagination, the whole pass restarts from
        the original cursor.

        Args:
            access_token: The Item's access token.
            cursor: Cursor stored from the previous sync, or None for a full sync.
            count: Page size (defaults to TRANSACTION_PAGE_SIZE).

        Returns:
            TransactionSyncPage with added/modified/removed and the next cursor.

        Raises:
            ProviderConsentError: The user must relink to grant transaction access.
        """
        api = self._get_api()
        page_size = count or settings.TRANSACTION_PAGE_SIZE
        restarts = 0

        while True:
            page = TransactionSyncPage(next_cursor=cursor)
            try:
                has_more = True
                while has_more:
                    request_params = {"access_token": access_token, "count": page_size}
                    if page.next_cursor:
                        request_params["cursor"] = page.next_cursor
                    response = self._call(
                        "transactions sync",
                        api.transactions_sync,
                        TransactionsSyncRequest(**request_params),
                    )

                    page.added.extend(self._map_transactions(response.get("added")))
                    page.modified.extend(self._map_transactions(response.get("modified")))
                    page.removed.extend(
                        r["transaction_id"]
                        for r in response.get("removed") or []
                        if r.get("transaction_id")
                    )
                    page.next_cursor = response.get("next_cursor")
                    has_more = bool(response.get("has_more"))

                logger.info(
                    "Plaid sync: %d added, %d modified, %d removed",
                    len(page.added), len(page.modified), len(page.removed),
                )
                return page
            except ProviderAPIError as exc:
                if exc.error_code != SYNC_MUTATION_CODE or restarts >= _MAX_SYNC_RESTARTS:
                    raise
                restarts += 1
                logger.info("Plaid sync mutated during pagination, restarting (%d)", restarts)

    def _map_transactions(self, raw: list | None) -> list[ProviderTransaction]:
        mapped = (self._map_transaction(txn) for txn in raw or [])
        return [txn for txn in mapped if txn is not None]

    @staticmethod
    def _map_transaction(txn: dict) -> ProviderTransaction | None:
        """Map a Plaid transaction dict, skipping rows without id, date or amount."""
        transaction_id = txn.get("transaction_id")
        if not transaction_id:
            return None

        txn_date = txn.get("date")
        if isinstance(txn_date, datetime):
            txn_date = txn_date.date()
        elif isinstance(txn_date, str):
            try:
                txn_date = date.fromisoformat(txn_date)
            except ValueError:
                return None
        if not isinstance(txn_date, date):
            return None

        amount = _to_decimal(txn.get("amount"))
        if amount is None:
            return None

        category = ""
        pfc = txn.get("personal_finance_category")
        if isinstance(pfc, dict) and pfc.get("primary"):
            category = pfc["primary"]
        elif txn.get("category"):
            category = txn["category"][0]

        return ProviderTransaction(
            id=transaction_id,
            account_id=txn.get("account_id", ""),
            name=txn.get("name") or txn.get("merchant_name") or "",
            amount=amount,
            date=txn_date,
            payment_channel=_as_str(txn.get("payment_channel")),
            category=category,
            pending=bool(txn.get("pending")),
            logo_url=txn.get("logo_url"),
        )

    # ------------------------------------------------------------------
    # Error mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _map_plaid_error(exc: ApiException, operation: str = "request") -> Exception:
        """Map a Plaid ApiException to a typed provider exception."""
        status = exc.status or 0
        message = f"Plaid {operation} failed (HTTP {status})"

        error_code = ""
        body: dict = {}
        try:
            body = json.loads(exc.body) if exc.body else {}
            error_code = body.get("error_code", "") or ""
            error_message = body.get("error_message", "")
            if error_message:
                message = f"Plaid error ({error_code}): {error_message}"
        except (TypeError, ValueError, AttributeError):
            logger.debug("Unparseable Plaid error body for %s", operation)

        if error_code == CONSENT_REQUIRED_CODE:
            return ProviderConsentError(message, provider_name=PROVIDER_NAME, error_code=error_code)
        if status in (401, 403) or error_code in _AUTH_ERROR_CODES:
            return ProviderAuthError(message, provider_name=PROVIDER_NAME)
        return ProviderAPIError(
            message,
            provider_name=PROVIDER_NAME,
            status_code=status or None,
            error_code=error_code,
            body=body if isinstance(body, dict) else None,
        )
