"""Shared pytest fixtures for gmcp-server tests.

This module provides reusable fixtures for OAuth credentials, token storage,
authenticated sessions and Gmail/Calendar API payloads.
"""

import base64
import json
import time
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from click.testing import CliRunner

from gmcp.auth.models import OAuthCredentials, StoredToken
from gmcp.auth.session import AuthSession
from gmcp.auth.token_storage import TokenStorage
from gmcp.transport import AuthorizedTransport

# =============================================================================
# Credential Fixtures
# =============================================================================


@pytest.fixture
def client_config() -> dict[str, Any]:
    """Credential file contents for a desktop OAuth client."""
    return {
        "installed": {
            "client_id": "test-client-id.apps.googleusercontent.com",
            "client_secret": "test-client-secret",
            "project_id": "gmcp-test",
            "auth_uri": "https://accounts.google.com/o/oauth2/auth",
            "token_uri": "https://oauth2.googleapis.com/token",
            "auth_provider_x509_cert_url": "https://www.googleapis.com/oauth2/v1/certs",
            "redirect_uris": ["http://localhost"],
        }
    }


@pytest.fixture
def credentials_path(tmp_path: Path, client_config: dict[str, Any]) -> Path:
    """Write the client config to a temporary credential file."""
    path = tmp_path / "credentials.json"
    path.write_text(json.dumps(client_config))
    return path


@pytest.fixture
def oauth_credentials(client_config: dict[str, Any]) -> OAuthCredentials:
    return OAuthCredentials.model_validate(client_config)


# =============================================================================
# Token Fixtures
# =============================================================================


def _ms_from_now(seconds: float) -> int:
    return int((time.time() + seconds) * 1000)


@pytest.fixture
def valid_token() -> StoredToken:
    """Create a valid, non-expired OAuth token."""
    return StoredToken(
        access_token="test_access_token_abc123",
        refresh_token="test_refresh_token_xyz789",
        scope="https://www.googleapis.com/auth/gmail.modify",
        token_type="Bearer",
        expiry_date=_ms_from_now(3600),
    )


@pytest.fixture
def expired_token() -> StoredToken:
    """Create an expired OAuth token."""
    return StoredToken(
        access_token="expired_access_token",
        refresh_token="test_refresh_token",
        scope="https://www.googleapis.com/auth/gmail.readonly",
        token_type="Bearer",
        expiry_date=_ms_from_now(-3600),
    )


@pytest.fixture
def temp_token_path(tmp_path: Path) -> Path:
    """Path of a token file inside a not-yet-created directory."""
    return tmp_path / ".gmcp" / "token.json"


@pytest.fixture
def token_storage(temp_token_path: Path) -> TokenStorage:
    """Create a TokenStorage instance with temporary storage."""
    return TokenStorage(temp_token_path)


@pytest.fixture
def stored_token_path(token_storage: TokenStorage, valid_token: StoredToken) -> Path:
    """Token file already holding the valid token."""
    token_storage.save(valid_token)
    return token_storage.token_path


# =============================================================================
# Session and Transport Fixtures
# =============================================================================


@pytest.fixture
def auth_session(
    oauth_credentials: OAuthCredentials, token_storage: TokenStorage, valid_token: StoredToken
) -> AuthSession:
    """Session with a valid token installed."""
    return AuthSession(oauth_credentials, token_storage, valid_token)


@pytest.fixture
def expired_session(
    oauth_credentials: OAuthCredentials, token_storage: TokenStorage, expired_token: StoredToken
) -> AuthSession:
    """Session whose installed token has expired."""
    return AuthSession(oauth_credentials, token_storage, expired_token)


@pytest.fixture
def mock_transport() -> AsyncMock:
    """Transport double; set ``request.side_effect`` or ``return_value`` per test."""
    transport = AsyncMock(spec=AuthorizedTransport)
    transport.request = AsyncMock(return_value={})
    return transport


def http_status_error(status_code: int, url: str = "https://example.test/") -> httpx.HTTPStatusError:
    """Build the error httpx raises from ``raise_for_status``."""
    request = httpx.Request("GET", url)
    response = httpx.Response(status_code, request=request)
    return httpx.HTTPStatusError(f"HTTP {status_code}", request=request, response=response)


# =============================================================================
# Gmail Payload Fixtures
# =============================================================================


def b64url(text: str) -> str:
    """Encode text the way Gmail does (base64url, no padding)."""
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def make_message(
    message_id: str,
    subject: str = "Test Subject",
    sender: str = "alice@example.com",
    to: str = "bob@example.com",
    payload: dict[str, Any] | None = None,
    label_ids: list[str] | None = None,
) -> dict[str, Any]:
    """Build a Gmail message resource with standard headers."""
    headers = [
        {"name": "Subject", "value": subject},
        {"name": "From", "value": sender},
        {"name": "To", "value": to},
        {"name": "Date", "value": "Mon, 10 Feb 2025 09:00:00 -0500"},
    ]
    message_payload = dict(payload or {"mimeType": "text/plain"})
    message_payload["headers"] = headers
    message: dict[str, Any] = {
        "id": message_id,
        "threadId": f"thread_{message_id}",
        "snippet": f"Snippet of {message_id}",
        "payload": message_payload,
    }
    if label_ids is not None:
        message["labelIds"] = label_ids
    return message


@pytest.fixture
def multipart_payload() -> dict[str, Any]:
    """multipart/mixed message with alternative bodies and nested attachments."""
    return {
        "mimeType": "multipart/mixed",
        "parts": [
            {
                "mimeType": "multipart/alternative",
                "parts": [
                    {"mimeType": "text/plain", "body": {"data": b64url("Plain body")}},
                    {"mimeType": "text/html", "body": {"data": b64url("<p>HTML body</p>")}},
                ],
            },
            {
                "mimeType": "application/pdf",
                "filename": "report.pdf",
                "body": {"attachmentId": "att_1", "size": 2048},
            },
            {
                "mimeType": "multipart/related",
                "parts": [
                    {
                        "mimeType": "image/png",
                        "filename": "chart.png",
                        "body": {"attachmentId": "att_2", "size": 512},
                    },
                    {
                        "filename": "blob",
                        "body": {"attachmentId": "att_3"},
                    },
                ],
            },
        ],
    }


# =============================================================================
# CLI Fixtures
# =============================================================================


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def cli_env(credentials_path: Path, temp_token_path: Path) -> dict[str, str]:
    """Environment pointing the CLI at temporary credential and token files."""
    return {
        "GOOGLE_CREDENTIALS_PATH": str(credentials_path),
        "GOOGLE_TOKEN_PATH": str(temp_token_path),
        "GOOGLE_SCOPES": "gmail.modify,calendar",
    }


@pytest.fixture
def mock_google_credentials() -> MagicMock:
    """Create a mock google-auth Credentials object after a code exchange."""
    mock_creds = MagicMock()
    mock_creds.token = "mock_access_token"
    mock_creds.refresh_token = "mock_refresh_token"
    mock_creds.expiry = None
    mock_creds.granted_scopes = None
    mock_creds.scopes = ["https://www.googleapis.com/auth/gmail.modify"]
    return mock_creds
