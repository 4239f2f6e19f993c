"""Dwolla API client.

Talks to the Dwolla HAL+JSON REST API directly over httpx: customers,
on-demand authorizations, funding sources backed by Plaid processor tokens,
and transfers between funding sources.

Created resources are identified by the URL Dwolla returns in the
``Location`` header. Creating something that already exists is treated as
success: the existing resource URL is recovered from the error payload.
"""

import logging
import time
from decimal import Decimal

import httpx

from config import settings
from integrations.exceptions import (
    ProviderAPIError,
    ProviderAuthError,
    ProviderConfigurationError,
    ProviderConnectionError,
    ProviderDataError,
)

logger = logging.getLogger(__name__)

PROVIDER_NAME = "Dwolla"

_ENVIRONMENT_URLS: dict[str, str] = {
    "sandbox": "https://api-sandbox.dwolla.com",
    "production": "https://api.dwolla.com",
}

_HAL_JSON = "application/vnd.dwolla.v1.hal+json"

# Refresh the OAuth token slightly before Dwolla expires it
_TOKEN_EXPIRY_MARGIN_SECONDS = 60


def existing_resource_url(body: dict | None) -> str | None:
    """Return the ``about`` link of a ``DuplicateResource`` error body, if any."""
    if not body or body.get("code") != "DuplicateResource":
        return None
    about = (body.get("_links") or {}).get("about") or {}
    return about.get("href")


def _is_duplicate_email(body: dict | None) -> bool:
    """Check a ValidationError body for a duplicate ``/email`` entry."""
    errors = ((body or {}).get("_embedded") or {}).get("errors") or []
    return any(
        err.get("code") == "Duplicate" and err.get("path") == "/email"
        for err in errors
    )


def resource_id(url: str) -> str:
    """Extract the trailing id from a Dwolla resource URL."""
    return url.rstrip("/").rsplit("/", 1)[-1]


class DwollaClient:
    """Wrapper around the Dwolla API."""

    def __init__(
        self,
        key: str | None = None,
        secret: str | None = None,
        environment: str | None = None,
    ):
        self._key = key or settings.DWOLLA_KEY
        self._secret = secret or settings.DWOLLA_SECRET
        self._environment = (environment or settings.DWOLLA_ENVIRONMENT).lower()

        base_url = _ENVIRONMENT_URLS.get(self._environment)
        if base_url is None:
            raise ProviderConfigurationError(
                "Dwolla environment should either be set to `sandbox` or "
                f"`production`, got {self._environment!r}",
                provider_name=PROVIDER_NAME,
            )
        self._base_url = base_url
        self._client = httpx.Client(
            base_url=base_url,
            headers={"Accept": _HAL_JSON},
            timeout=30.0,
        )
        self._access_token: str | None = None
        self._token_expires_at = 0.0

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    @property
    def provider_name(self) -> str:
        return PROVIDER_NAME

    @property
    def base_url(self) -> str:
        return self._base_url

    def is_configured(self) -> bool:
        """Check if Dwolla credentials are configured."""
        return bool(self._key) and bool(self._secret)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _get_access_token(self) -> str:
        """Return a cached client-credentials token, fetching a new one when stale."""
        if self._access_token and time.monotonic() < self._token_expires_at:
            return self._access_token

        try:
            response = self._client.post(
                "/token",
                auth=(self._key, self._secret),
                data={"grant_type": "client_credentials"},
            )
        except httpx.TransportError as exc:
            raise ProviderConnectionError(
                f"Dwolla token request failed: {exc}",
                provider_name=PROVIDER_NAME,
            ) from exc

        if response.status_code >= 400:
            raise ProviderAuthError(
                f"Dwolla authentication failed (HTTP {response.status_code})",
                provider_name=PROVIDER_NAME,
            )

        payload = response.json()
        self._access_token = payload["access_token"]
        expires_in = int(payload.get("expires_in", 3600))
        self._token_expires_at = time.monotonic() + max(expires_in - _TOKEN_EXPIRY_MARGIN_SECONDS, 0)
        logger.debug("Dwolla access token refreshed (expires in %ds)", expires_in)
        return self._access_token

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict | None = None,
        params: dict | None = None,
    ) -> httpx.Response:
        """Send an authenticated request and raise typed errors for failures.

        ``path`` may be relative to the environment host or a full resource URL.
        A 401 triggers one token refresh and retry.
        """
        for attempt in range(2):
            headers = {"Authorization": f"Bearer {self._get_access_token()}"}
            if json is not None:
                headers["Content-Type"] = _HAL_JSON
            try:
                response = self._client.request(
                    method, path, json=json, params=params, headers=headers
                )
            except httpx.TransportError as exc:
                raise ProviderConnectionError(
                    f"Dwolla {method} {path} failed: {exc}",
                    provider_name=PROVIDER_NAME,
                ) from exc

            if response.status_code == 401 and attempt == 0:
                self._access_token = None
                continue
            break

        if response.status_code < 400:
            return response

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        status = response.status_code
        error_code = body.get("code", "")
        message = body.get("message") or f"Dwolla API error (HTTP {status})"
        if status in (401, 403):
            raise ProviderAuthError(message, provider_name=PROVIDER_NAME)
        raise ProviderAPIError(
            message,
            provider_name=PROVIDER_NAME,
            status_code=status,
            error_code=error_code,
            body=body,
        )

    @staticmethod
    def _location(response: httpx.Response) -> str:
        location = response.headers.get("location")
        if not location:
            raise ProviderDataError(
                "Dwolla response is missing the Location header",
                provider_name=PROVIDER_NAME,
            )
        return location

    # ------------------------------------------------------------------
    # Customers
    # ------------------------------------------------------------------

    def create_customer(self, customer: dict) -> str:
        """Create a personal verified customer, or return the existing one.

        Args:
            customer: Dwolla customer payload (firstName, lastName, email,
                type, address1, city, state, postalCode, dateOfBirth, ssn).

        Returns:
            The customer resource URL.
        """
        try:
            response = self._request("POST", "/customers", json=customer)
        except ProviderAPIError as exc:
            if exc.status_code != 400:
                raise
            existing = existing_resource_url(exc.body)
            if existing:
                logger.info("Dwolla customer already exists, reusing %s", existing)
                return existing
            if _is_duplicate_email(exc.body):
                found = self.find_customer_by_email(customer.get("email", ""))
                if found:
                    url = self._self_href(found) or f"{self._base_url}/customers/{found['id']}"
                    logger.info("Dwolla customer with this email exists, reusing %s", url)
                    return url
            raise

        location = self._location(response)
        logger.info("Dwolla customer created: %s", location)
        return location

    def get_customer(self, customer_id: str) -> dict:
        """Fetch a customer by id."""
        return self._request("GET", f"/customers/{customer_id}").json()

    def list_customers(self, email: str | None = None, limit: int = 25) -> list[dict]:
        """List customers, optionally filtered by exact email."""
        params: dict = {"limit": limit}
        if email:
            params["email"] = email
        body = self._request("GET", "/customers", params=params).json()
        return (body.get("_embedded") or {}).get("customers") or []

    def find_customer_by_email(self, email: str) -> dict | None:
        """Return the customer whose email matches, or None."""
        if not email:
            return None
        for customer in self.list_customers(email=email):
            if (customer.get("email") or "").lower() == email.lower():
                return customer
        return None

    @staticmethod
    def _self_href(resource: dict) -> str | None:
        return ((resource.get("_links") or {}).get("self") or {}).get("href")

    # ------------------------------------------------------------------
    # Funding sources & transfers
    # ------------------------------------------------------------------

    def create_on_demand_authorization(self) -> str:
        """Create an on-demand authorization and return its URL."""
        body = self._request("POST", "/on-demand-authorizations", json={}).json()
        href = self._self_href(body)
        if not href:
            raise ProviderDataError(
                "Dwolla on-demand authorization response has no self link",
                provider_name=PROVIDER_NAME,
            )
        return href

    def create_funding_source(
        self,
        customer_id: str,
        name: str,
        plaid_token: str,
        on_demand_authorization_url: str | None = None,
    ) -> str:
        """Attach a Plaid processor token as a funding source under a customer.

        Returns:
            The funding source URL; the existing one if Dwolla reports a duplicate.
        """
        payload: dict = {"name": name, "plaidToken": plaid_token}
        if on_demand_authorization_url:
            payload["_links"] = {
                "on-demand-authorization": {"href": on_demand_authorization_url},
            }

        try:
            response = self._request(
                "POST", f"/customers/{customer_id}/funding-sources", json=payload
            )
        except ProviderAPIError as exc:
            existing = existing_resource_url(exc.body) if exc.status_code == 400 else None
            if existing:
                logger.info("Dwolla funding source already exists, reusing %s", existing)
                return existing
            raise

        location = self._location(response)
        logger.info("Dwolla funding source created for customer %s", customer_id)
        return location

    def create_transfer(
        self,
        source_funding_source_url: str,
        destination_funding_source_url: str,
        amount: Decimal,
        currency: str = "USD",
    ) -> str:
        """Move money between two funding sources and return the transfer URL."""
        payload = {
            "_links": {
                "source": {"href": source_funding_source_url},
                "destination": {"href": destination_funding_source_url},
            },
            "amount": {"currency": currency, "value": f"{Decimal(amount):.2f}"},
        }
        response = self._request("POST", "/transfers", json=payload)
        location = self._location(response)
        logger.info("Dwolla transfer created: %s", location)
        return location
