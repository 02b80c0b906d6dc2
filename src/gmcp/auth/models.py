"""Pydantic models for OAuth credentials and tokens."""

import time
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from gmcp.constants import GOOGLE_AUTH_URI, GOOGLE_TOKEN_URI


class TokenStatus(str, Enum):
    """State of the token file on disk."""

    VALID = "valid"
    EXPIRED = "expired"
    MISSING = "missing"
    INVALID = "invalid"


class InstalledClient(BaseModel):
    """OAuth client identity for a desktop ("installed") application."""

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(min_length=1)
    client_secret: str = Field(min_length=1)
    redirect_uris: list[str] = Field(min_length=1)
    project_id: str | None = None
    auth_uri: str = GOOGLE_AUTH_URI
    token_uri: str = GOOGLE_TOKEN_URI
    auth_provider_x509_cert_url: str | None = None


class OAuthCredentials(BaseModel):
    """Credential file contents as downloaded from Google Cloud Console."""

    model_config = ConfigDict(frozen=True)

    installed: InstalledClient

    def to_client_config(self) -> dict:
        """Return the client config dict expected by google-auth-oauthlib."""
        return {"installed": self.installed.model_dump(exclude_none=True)}


class StoredToken(BaseModel):
    """OAuth token as persisted in the token file.

    ``expiry_date`` is milliseconds since the Unix epoch.
    """

    access_token: str = Field(min_length=1)
    refresh_token: str = Field(min_length=1)
    scope: str = ""
    token_type: str = "Bearer"
    expiry_date: int = Field(gt=0)

    def is_expired(self, buffer_seconds: int = 60) -> bool:
        """Check whether the access token is expired or about to expire.

        Args:
            buffer_seconds: Treat tokens expiring within this window as expired.

        Returns:
            True if the token should be refreshed before use.
        """
        return self.expiry_date <= (time.time() + buffer_seconds) * 1000
