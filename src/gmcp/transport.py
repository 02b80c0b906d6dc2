"""Authorized HTTP transport for Google REST APIs.

Wraps a shared ``httpx.AsyncClient`` and attaches the session's bearer token
to every request. Expired tokens are refreshed before the request is sent; a
401 answer triggers one refresh and one replay of the same request.
"""

import logging
from typing import Any

import httpx

from gmcp.auth.session import AuthSession
from gmcp.errors import TokenSaveError

logger = logging.getLogger(__name__)


class AuthorizedTransport:
    """HTTP client bound to an authenticated session.

    Attributes:
        session: Session providing (and refreshing) the access token.
    """

    def __init__(self, session: AuthSession, client: httpx.AsyncClient | None = None) -> None:
        """Initialize the transport.

        Args:
            session: Authenticated session.
            client: HTTP client to use. A pooled HTTP/2 client is created
                lazily when not provided.
        """
        self.session = session
        self._http_client = client

    def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP client with connection pooling."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                http2=True,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
                timeout=httpx.Timeout(30.0, connect=10.0),
            )
        return self._http_client

    async def close(self) -> None:
        """Close the shared HTTP client and release resources."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def _access_token(self) -> str:
        try:
            return await self.session.get_access_token()
        except TokenSaveError:
            # The refreshed token is already installed in memory; only the
            # write failed, so the call can proceed.
            logger.exception("Refreshed token could not be saved; continuing with in-memory token")
            return self.session.access_token

    async def _refresh_after_rejection(self, stale_token: str) -> str:
        try:
            await self.session.refresh(stale_token=stale_token)
        except TokenSaveError:
            logger.exception("Refreshed token could not be saved; continuing with in-memory token")
        return self.session.access_token

    async def _send(
        self,
        method: str,
        url: str,
        access_token: str,
        params: dict[str, Any] | None,
        json_data: dict[str, Any] | None,
    ) -> httpx.Response:
        client = self._get_http_client()
        return await client.request(
            method=method,
            url=url,
            params=params,
            json=json_data,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/json",
            },
        )

    async def request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        json_data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make an authenticated request to a Google API.

        Args:
            method: HTTP method (GET, POST, etc.).
            url: Full URL to request.
            params: Optional query parameters; None values are dropped and
                list values are sent as repeated keys.
            json_data: Optional JSON body data.

        Returns:
            JSON response as a dictionary (empty for bodiless responses).

        Raises:
            httpx.HTTPStatusError: If the request fails.
            TokenInvalidError: If the token cannot be refreshed.
        """
        if params is not None:
            params = {key: value for key, value in params.items() if value is not None}

        access_token = await self._access_token()
        response = await self._send(method, url, access_token, params, json_data)

        if response.status_code == 401:
            logger.info("Access token rejected by %s, refreshing", url)
            access_token = await self._refresh_after_rejection(access_token)
            response = await self._send(method, url, access_token, params, json_data)

        response.raise_for_status()
        if not response.content:
            return {}
        result: dict[str, Any] = response.json()
        return result
