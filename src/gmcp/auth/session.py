"""Authenticated session: the installed OAuth credential and its refresh hook.

A session owns the only mutable state in the server, the current token.
The authorized transport asks the session for an access token before every
API call. When the installed credential has expired, or the provider rejected
it, the session refreshes it through google-auth and then runs its refresh
hook, which merges the new fields into the last known token and writes the
result through to the token store before the triggering call continues.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials

from gmcp.auth.models import OAuthCredentials, StoredToken
from gmcp.auth.oauth_manager import load_credentials
from gmcp.auth.token_storage import TokenStorage
from gmcp.errors import TokenInvalidError, TokenMissingError

logger = logging.getLogger(__name__)

TokenListener = Callable[[StoredToken], None]


def _expiry_from_ms(expiry_date: int) -> datetime:
    # google-auth compares against naive UTC
    return datetime.fromtimestamp(expiry_date / 1000, tz=timezone.utc).replace(tzinfo=None)


def _ms_from_expiry(expiry: datetime | None) -> int | None:
    if expiry is None:
        return None
    return int(expiry.replace(tzinfo=timezone.utc).timestamp() * 1000)


def merge_tokens(current: StoredToken, new_tokens: dict[str, Any]) -> StoredToken:
    """Merge a refresh response into the last known token.

    Fields missing from ``new_tokens`` (or empty) keep their previous value.
    In particular a refresh response without a refresh token keeps the old
    one, since Google issues refresh tokens only on first consent.

    Args:
        current: Last known token.
        new_tokens: Fields reported by the refresh.

    Returns:
        A new StoredToken; ``current`` is not modified.
    """
    merged = current.model_dump()
    for field in ("access_token", "refresh_token", "scope", "token_type", "expiry_date"):
        value = new_tokens.get(field)
        if value:
            merged[field] = value
    return StoredToken.model_validate(merged)


class AuthSession:
    """OAuth session shared by all API-calling code.

    Attributes:
        credentials: OAuth client identity.
        storage: Token store the refresh hook writes to.
    """

    def __init__(self, credentials: OAuthCredentials, storage: TokenStorage, token: StoredToken) -> None:
        """Install a token and register the refresh hook.

        Args:
            credentials: Loaded OAuth client credentials.
            storage: Token store for persisting refreshed tokens.
            token: Token to install.
        """
        self.credentials = credentials
        self.storage = storage
        self._token = token
        self._google_credentials = self._build_google_credentials(token)
        self._refresh_lock = asyncio.Lock()
        self._listeners: list[TokenListener] = []

    @classmethod
    def authenticate(cls, credentials: OAuthCredentials, storage: TokenStorage | Path) -> "AuthSession":
        """Create a session from the stored token.

        Args:
            credentials: Loaded OAuth client credentials.
            storage: Token store, or the path of the token file.

        Returns:
            Authenticated session.

        Raises:
            TokenMissingError: If no usable token is stored.
        """
        if not isinstance(storage, TokenStorage):
            storage = TokenStorage(storage)

        token = storage.load()
        if token is None:
            raise TokenMissingError(
                f"No tokens found at {storage.token_path}. "
                "Please run 'gmcp auth' to authenticate first."
            )

        logger.info("Loaded OAuth token from %s", storage.token_path)
        return cls(credentials, storage, token)

    @property
    def token(self) -> StoredToken:
        """The current in-memory token."""
        return self._token

    @property
    def access_token(self) -> str:
        """Access token currently installed in the credential."""
        return self._google_credentials.token

    @property
    def google_credentials(self) -> Credentials:
        """The google-auth credential the token is installed into."""
        return self._google_credentials

    def _build_google_credentials(self, token: StoredToken) -> Credentials:
        client = self.credentials.installed
        return Credentials(
            token=token.access_token,
            refresh_token=token.refresh_token,
            token_uri=client.token_uri,
            client_id=client.client_id,
            client_secret=client.client_secret,
            scopes=token.scope.split() or None,
            expiry=_expiry_from_ms(token.expiry_date),
        )

    def on_tokens(self, listener: TokenListener) -> None:
        """Register a callback invoked with every merged token after a refresh."""
        self._listeners.append(listener)

    def needs_refresh(self) -> bool:
        """Whether the installed access token is missing or expired."""
        return not self._google_credentials.valid

    def handle_token_refresh(self, new_tokens: dict[str, Any]) -> StoredToken:
        """Refresh hook: apply and persist tokens reported by a refresh.

        The merged token replaces the in-memory token and credential before
        anything is written, so a failed save never rolls back a refresh.
        Listeners run only after the save, so a failing listener cannot
        leave the new token unpersisted.

        Args:
            new_tokens: Fields from the refresh (any subset of the token fields).

        Returns:
            The merged token now in effect.

        Raises:
            TokenSaveError: If persisting the merged token fails.
        """
        merged = merge_tokens(self._token, new_tokens)
        self._token = merged
        self._google_credentials = self._build_google_credentials(merged)

        logger.info(
            "Tokens refreshed (expiry_date=%s, has_refresh_token=%s)",
            merged.expiry_date,
            bool(new_tokens.get("refresh_token")),
        )

        self.storage.save(merged)

        for listener in self._listeners:
            listener(merged)
        return merged

    def _refresh_sync(self) -> dict[str, Any]:
        """Refresh the credential against the token endpoint (blocking)."""
        previous_refresh_token = self._google_credentials.refresh_token
        try:
            self._google_credentials.refresh(Request())
        except RefreshError as e:
            raise TokenInvalidError(
                f"Token refresh failed: {e}. Please re-authenticate using: gmcp auth", e
            ) from e

        creds = self._google_credentials
        new_refresh_token = creds.refresh_token
        granted = getattr(creds, "granted_scopes", None)
        return {
            "access_token": creds.token,
            "expiry_date": _ms_from_expiry(creds.expiry),
            # google-auth keeps the old value when none is returned
            "refresh_token": (
                new_refresh_token if new_refresh_token != previous_refresh_token else None
            ),
            "scope": " ".join(granted) if granted else None,
        }

    async def refresh(self, stale_token: str | None = None) -> StoredToken:
        """Refresh the access token and run the refresh hook.

        Concurrent callers serialize on a lock; a caller that saw ``stale_token``
        rejected skips the refresh if another caller already replaced it.

        Args:
            stale_token: Access token that triggered the refresh, if any.

        Returns:
            The token in effect after the call.

        Raises:
            TokenInvalidError: If the provider refused the refresh.
            TokenSaveError: If the refreshed token could not be persisted.
        """
        async with self._refresh_lock:
            if stale_token is not None and self.access_token != stale_token:
                return self._token
            if stale_token is None and not self.needs_refresh():
                return self._token

            logger.info("Access token expired, refreshing")
            new_tokens = await asyncio.to_thread(self._refresh_sync)
            return self.handle_token_refresh(new_tokens)

    async def get_access_token(self) -> str:
        """Return a valid access token, refreshing first if needed."""
        if self.needs_refresh():
            await self.refresh()
        return self.access_token


def create_authenticated_session(credentials_path: Path | str, token_path: Path | str) -> AuthSession:
    """Load the credential file and the stored token into a session.

    Args:
        credentials_path: OAuth client credential file.
        token_path: Token file written by ``gmcp auth``.

    Returns:
        Authenticated session.

    Raises:
        CredentialLoadError: If the credential file is unusable.
        TokenMissingError: If no token is stored.
    """
    credentials = load_credentials(credentials_path)
    return AuthSession.authenticate(credentials, TokenStorage(Path(token_path)))
