"""Unit tests for the authenticated session and its refresh hook."""

import asyncio
import time
from datetime import datetime
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from google.auth.exceptions import RefreshError

from gmcp.auth.models import OAuthCredentials, StoredToken
from gmcp.auth.session import AuthSession, create_authenticated_session, merge_tokens
from gmcp.auth.token_storage import TokenStorage
from gmcp.errors import TokenInvalidError, TokenMissingError, TokenSaveError


def _fresh_expiry() -> int:
    return int((time.time() + 3600) * 1000)


@pytest.mark.unit
class TestMergeTokens:
    """Tests for merge_tokens()."""

    def test_should_keep_refresh_token_when_response_has_none(self, valid_token: StoredToken) -> None:
        merged = merge_tokens(
            valid_token, {"access_token": "new_access", "expiry_date": 1893499200000}
        )

        assert merged.access_token == "new_access"
        assert merged.expiry_date == 1893499200000
        assert merged.refresh_token == valid_token.refresh_token
        assert merged.scope == valid_token.scope

    def test_should_replace_refresh_token_when_rotated(self, valid_token: StoredToken) -> None:
        merged = merge_tokens(valid_token, {"refresh_token": "rotated"})

        assert merged.refresh_token == "rotated"
        assert merged.access_token == valid_token.access_token

    def test_should_ignore_empty_values(self, valid_token: StoredToken) -> None:
        merged = merge_tokens(valid_token, {"access_token": "", "scope": None})

        assert merged == valid_token

    def test_should_not_modify_current_token(self, valid_token: StoredToken) -> None:
        original = valid_token.model_copy()

        merge_tokens(valid_token, {"access_token": "new_access"})

        assert valid_token == original


@pytest.mark.unit
class TestAuthenticate:
    """Tests for building a session from the stored token."""

    def test_should_load_stored_token(
        self, oauth_credentials: OAuthCredentials, stored_token_path: Path, valid_token: StoredToken
    ) -> None:
        session = AuthSession.authenticate(oauth_credentials, stored_token_path)

        assert session.token == valid_token
        assert session.access_token == valid_token.access_token
        assert not session.needs_refresh()

    def test_should_raise_when_no_token_stored(
        self, oauth_credentials: OAuthCredentials, token_storage: TokenStorage
    ) -> None:
        with pytest.raises(TokenMissingError) as exc_info:
            AuthSession.authenticate(oauth_credentials, token_storage)

        assert exc_info.value.code == "AUTH_TOKEN_MISSING"
        assert "gmcp auth" in exc_info.value.message

    def test_should_create_session_from_paths(
        self, credentials_path: Path, stored_token_path: Path, valid_token: StoredToken
    ) -> None:
        session = create_authenticated_session(credentials_path, stored_token_path)

        assert session.token == valid_token
        assert session.credentials.installed.client_id.startswith("test-client-id")

    def test_should_install_token_into_google_credentials(self, auth_session: AuthSession) -> None:
        creds = auth_session.google_credentials

        assert creds.token == "test_access_token_abc123"
        assert creds.refresh_token == "test_refresh_token_xyz789"
        assert creds.client_secret == "test-client-secret"

    def test_should_report_expired_token(self, expired_session: AuthSession) -> None:
        assert expired_session.needs_refresh()


@pytest.mark.unit
class TestHandleTokenRefresh:
    """Tests for the refresh hook."""

    def test_should_persist_merged_token(
        self, auth_session: AuthSession, token_storage: TokenStorage
    ) -> None:
        expiry = _fresh_expiry()

        merged = auth_session.handle_token_refresh({"access_token": "refreshed", "expiry_date": expiry})

        stored = token_storage.load()
        assert stored == merged
        assert stored.access_token == "refreshed"
        assert stored.refresh_token == "test_refresh_token_xyz789"
        assert auth_session.access_token == "refreshed"

    def test_should_notify_listeners(self, auth_session: AuthSession) -> None:
        listener = MagicMock()
        auth_session.on_tokens(listener)

        merged = auth_session.handle_token_refresh({"access_token": "refreshed"})

        listener.assert_called_once_with(merged)

    def test_should_save_before_failing_listener(
        self, auth_session: AuthSession, token_storage: TokenStorage
    ) -> None:
        auth_session.on_tokens(MagicMock(side_effect=RuntimeError("listener failed")))

        with pytest.raises(RuntimeError):
            auth_session.handle_token_refresh({"access_token": "refreshed"})

        assert token_storage.load().access_token == "refreshed"

    def test_should_keep_in_memory_token_when_save_fails(
        self, oauth_credentials: OAuthCredentials, expired_token: StoredToken
    ) -> None:
        storage = MagicMock(spec=TokenStorage)
        storage.save.side_effect = TokenSaveError("disk full")
        session = AuthSession(oauth_credentials, storage, expired_token)

        with pytest.raises(TokenSaveError):
            session.handle_token_refresh(
                {"access_token": "refreshed", "expiry_date": _fresh_expiry()}
            )

        assert session.token.access_token == "refreshed"
        assert session.access_token == "refreshed"
        assert not session.needs_refresh()


@pytest.mark.unit
class TestRefresh:
    """Tests for refreshing through google-auth."""

    @pytest.mark.asyncio
    async def test_should_refresh_expired_token(
        self, expired_session: AuthSession, token_storage: TokenStorage
    ) -> None:
        new_tokens = {"access_token": "refreshed", "expiry_date": _fresh_expiry()}

        with patch.object(AuthSession, "_refresh_sync", return_value=new_tokens) as mock_refresh:
            access_token = await expired_session.get_access_token()

        assert access_token == "refreshed"
        mock_refresh.assert_called_once()
        assert token_storage.load().access_token == "refreshed"

    @pytest.mark.asyncio
    async def test_should_not_refresh_valid_token(self, auth_session: AuthSession) -> None:
        with patch.object(AuthSession, "_refresh_sync") as mock_refresh:
            access_token = await auth_session.get_access_token()

        assert access_token == "test_access_token_abc123"
        mock_refresh.assert_not_called()

    @pytest.mark.asyncio
    async def test_should_refresh_once_for_concurrent_callers(self, expired_session: AuthSession) -> None:
        new_tokens = {"access_token": "refreshed", "expiry_date": _fresh_expiry()}

        with patch.object(AuthSession, "_refresh_sync", return_value=new_tokens) as mock_refresh:
            tokens = await asyncio.gather(*(expired_session.get_access_token() for _ in range(5)))

        assert tokens == ["refreshed"] * 5
        mock_refresh.assert_called_once()

    @pytest.mark.asyncio
    async def test_should_skip_refresh_when_stale_token_already_replaced(
        self, auth_session: AuthSession
    ) -> None:
        with patch.object(AuthSession, "_refresh_sync") as mock_refresh:
            token = await auth_session.refresh(stale_token="some_older_token")

        mock_refresh.assert_not_called()
        assert token == auth_session.token

    @pytest.mark.asyncio
    async def test_should_force_refresh_for_rejected_token(self, auth_session: AuthSession) -> None:
        new_tokens = {"access_token": "replacement", "expiry_date": _fresh_expiry()}

        with patch.object(AuthSession, "_refresh_sync", return_value=new_tokens):
            token = await auth_session.refresh(stale_token="test_access_token_abc123")

        assert token.access_token == "replacement"


@pytest.mark.unit
class TestRefreshSync:
    """Tests for the blocking google-auth refresh."""

    def test_should_report_new_access_token(self, expired_session: AuthSession) -> None:
        creds = expired_session.google_credentials

        def fake_refresh(request: object) -> None:
            creds.token = "from_google"
            creds.expiry = datetime(2031, 6, 1, 8, 30, 0)

        with patch.object(creds, "refresh", side_effect=fake_refresh):
            new_tokens = expired_session._refresh_sync()

        assert new_tokens["access_token"] == "from_google"
        assert new_tokens["expiry_date"] == 1938069000000
        # Unchanged refresh token is reported as absent so the merge keeps it
        assert new_tokens["refresh_token"] is None

    def test_should_convert_refresh_error(self, expired_session: AuthSession) -> None:
        creds = expired_session.google_credentials

        with patch.object(creds, "refresh", side_effect=RefreshError("invalid_grant")):
            with pytest.raises(TokenInvalidError) as exc_info:
                expired_session._refresh_sync()

        assert "gmcp auth" in exc_info.value.message
        assert isinstance(exc_info.value.cause, RefreshError)
