"""
HubSpot API Client with OAuth2 Refresh Token Flow.
Handles token exchange, CRM search and association lookups.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

import httpx

from hubsync.models.credentials import AccessGrant
from hubsync.utils.timestamps import utcnow

logger = logging.getLogger(__name__)


class HubSpotAuthError(Exception):
    """Raised when the HubSpot token exchange fails."""
    pass


class HubSpotAPIError(Exception):
    """Raised when HubSpot API returns an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class HubSpotClient:
    """
    HubSpot CRM API Client.

    The access token is set per account after a refresh; one client
    instance serves accounts sequentially.
    """

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        api_base_url: str = "https://api.hubapi.com",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize HubSpot client.

        Args:
            client_id: HubSpot OAuth client ID
            client_secret: HubSpot OAuth client secret
            api_base_url: HubSpot API base URL
            timeout: HTTP request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.api_base_url = api_base_url.rstrip("/")

        self._access_token: Optional[str] = None

        # HTTP client
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

        logger.info(f"HubSpotClient initialized (url: {self.api_base_url})")

    def set_access_token(self, access_token: str) -> None:
        """Uses the given token for all following API calls."""
        self._access_token = access_token

    async def refresh_access_token(self, refresh_token: str) -> AccessGrant:
        """
        Exchanges a refresh token for a short-lived access token.

        Args:
            refresh_token: Long-lived refresh token of the account

        Returns:
            AccessGrant with the new token and its absolute expiry

        Raises:
            HubSpotAuthError: If the exchange fails
        """
        logger.info("Refreshing HubSpot access token...")

        try:
            response = await self._client.post(
                f"{self.api_base_url}/oauth/v1/token",
                data={
                    "grant_type": "refresh_token",
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "refresh_token": refresh_token,
                },
            )
        except httpx.RequestError as e:
            raise HubSpotAuthError(f"Network error during token refresh: {e}") from e

        if response.status_code != 200:
            raise HubSpotAuthError(f"Token refresh failed: {response.status_code} - {response.text}")

        data = response.json()
        if "access_token" not in data:
            raise HubSpotAuthError(f"No access_token in response: {data}")

        expires_in = int(data.get("expires_in", 1800))
        grant = AccessGrant(
            access_token=data["access_token"],
            expires_at=utcnow() + timedelta(seconds=expires_in),
        )
        self.set_access_token(grant.access_token)

        logger.info(f"Access token refreshed (valid for {expires_in}s)")
        return grant

    async def request(
        self,
        method: str,
        endpoint: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Makes an authenticated request to HubSpot API.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint (e.g., "/crm/v3/objects/contacts/search")
            json: JSON body for POST
            params: Query parameters

        Returns:
            API response as dictionary

        Raises:
            HubSpotAPIError: If API returns an error
        """
        url = f"{self.api_base_url}{endpoint}"

        try:
            response = await self._client.request(
                method=method,
                url=url,
                params=params,
                json=json,
                headers={"Authorization": f"Bearer {self._access_token}"},
            )
        except httpx.RequestError as e:
            raise HubSpotAPIError(f"Network error: {e}") from e

        if response.status_code >= 400:
            error_msg = f"HubSpot API error: {response.status_code} - {response.text}"
            logger.error(error_msg)
            raise HubSpotAPIError(error_msg, status_code=response.status_code)

        if not response.text or response.text.strip() == "":
            return {}

        return response.json()

    async def search(self, object_type: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Runs a CRM search for one object type.

        Args:
            object_type: HubSpot object type (contacts, companies, meetings)
            body: {filterGroups, sorts, properties, limit, after}

        Returns:
            {"results": [...], "paging": {"next": {"after": ...}}}

        Raises:
            HubSpotAPIError: On API errors or a response without results
        """
        response = await self.request("POST", f"/crm/v3/objects/{object_type}/search", json=body)
        if "results" not in response:
            raise HubSpotAPIError(f"Search for {object_type} returned no results field")
        return response

    async def read_company_associations(self, contact_ids: List[str]) -> Dict[str, str]:
        """
        Resolves the first associated company of each contact.

        Args:
            contact_ids: Contact record IDs

        Returns:
            Dict mapping contact ID -> company ID; contacts without an
            association are absent
        """
        if not contact_ids:
            return {}

        response = await self.request(
            "POST",
            "/crm/v3/associations/CONTACTS/COMPANIES/batch/read",
            json={"inputs": [{"id": contact_id} for contact_id in contact_ids]},
        )

        associations = {}
        for result in response.get("results") or []:
            source = result.get("from") or {}
            targets = result.get("to") or []
            if source.get("id") and targets and targets[0].get("id"):
                associations[str(source["id"])] = str(targets[0]["id"])

        return associations

    async def close(self):
        """Closes the HTTP client."""
        await self._client.aclose()
        logger.info("HubSpotClient closed")

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
