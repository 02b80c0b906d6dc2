"""OAuth2 authorization flow for gmcp-server.

Loads the OAuth client credential file, builds the consent URL and exchanges
the returned authorization code for a token using google-auth-oauthlib.
The interactive flow either receives the code on a loopback callback server
or accepts it pasted by the user.
"""

import asyncio
import json
import logging
import secrets
import time
import webbrowser
from collections.abc import Callable
from datetime import timezone
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path
from urllib.parse import parse_qs, urlparse

from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from pydantic import ValidationError

from gmcp.auth.models import OAuthCredentials, StoredToken
from gmcp.auth.token_storage import TokenStorage
from gmcp.errors import CredentialLoadError, TokenInvalidError

logger = logging.getLogger(__name__)

# Loopback port used when the registered redirect URI has none
DEFAULT_OAUTH_PORT = 3000

LOOPBACK_HOSTS = ("localhost", "127.0.0.1")

# Seconds to wait for the browser to hit the callback server
CALLBACK_TIMEOUT = 300


def load_credentials(path: Path | str) -> OAuthCredentials:
    """Load and validate the OAuth client credential file.

    Args:
        path: Path to the credential JSON downloaded from Google Cloud Console.

    Returns:
        Validated OAuthCredentials.

    Raises:
        CredentialLoadError: If the file is missing, not JSON, or lacks
            client id, client secret or redirect URIs.
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        return OAuthCredentials.model_validate(data)
    except (OSError, ValueError, ValidationError) as e:
        raise CredentialLoadError(f"Failed to load credentials from {path}: {e}", e) from e


def normalize_redirect_uri(redirect_uri: str) -> tuple[str, int]:
    """Ensure a redirect URI names an explicit port.

    Google allows any port on loopback for desktop clients, so a bare
    ``http://localhost`` gets :data:`DEFAULT_OAUTH_PORT`.

    Args:
        redirect_uri: Registered redirect URI.

    Returns:
        Tuple of (uri, port).
    """
    try:
        parsed = urlparse(redirect_uri)
        port = parsed.port
        if not parsed.scheme or not parsed.hostname:
            raise ValueError(f"not an absolute URI: {redirect_uri!r}")
    except ValueError:
        return f"http://localhost:{DEFAULT_OAUTH_PORT}", DEFAULT_OAUTH_PORT

    if port is not None:
        return redirect_uri, port

    host = parsed.hostname.lower()
    if host in LOOPBACK_HOSTS:
        netloc = f"{parsed.hostname}:{DEFAULT_OAUTH_PORT}"
        uri = parsed._replace(netloc=netloc).geturl().rstrip("/")
        return uri, DEFAULT_OAUTH_PORT

    return redirect_uri, 443 if parsed.scheme == "https" else 80


def credentials_to_token(credentials: Credentials, scopes: list[str]) -> StoredToken:
    """Convert google-auth Credentials to a StoredToken.

    Args:
        credentials: Credentials produced by the code exchange.
        scopes: Requested scopes, used when the provider did not echo them.

    Returns:
        StoredToken ready to persist.

    Raises:
        TokenInvalidError: If the access token or refresh token is missing.
    """
    if not (credentials.token and credentials.refresh_token):
        raise TokenInvalidError(
            "Failed to obtain access_token or refresh_token from OAuth2 code exchange"
        )

    if credentials.expiry:
        # google-auth keeps expiry as naive UTC
        expiry_date = int(credentials.expiry.replace(tzinfo=timezone.utc).timestamp() * 1000)
    else:
        # Default to 1 hour expiration
        expiry_date = int((time.time() + 3600) * 1000)

    granted = getattr(credentials, "granted_scopes", None) or credentials.scopes or scopes
    return StoredToken(  # nosec B106 - "Bearer" is OAuth token type, not a password
        access_token=credentials.token,
        refresh_token=credentials.refresh_token,
        scope=" ".join(granted),
        token_type="Bearer",
        expiry_date=expiry_date,
    )


class OAuthManager:
    """Runs the OAuth2 consent flow and stores the resulting token.

    Attributes:
        credentials: OAuth client identity.
        storage: Token storage the obtained token is written to.
        scopes: Scopes requested during consent.

    Example:
        ```python
        manager = OAuthManager(load_credentials(path), TokenStorage(token_path), scopes)
        token = await manager.authenticate()
        ```
    """

    def __init__(
        self,
        credentials: OAuthCredentials,
        storage: TokenStorage,
        scopes: list[str],
        redirect_uri: str | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            credentials: Loaded OAuth client credentials.
            storage: Destination for the token.
            scopes: OAuth scopes to request.
            redirect_uri: Override for the first registered redirect URI.
        """
        self.credentials = credentials
        self.storage = storage
        self.scopes = scopes
        self.redirect_uri, self.port = normalize_redirect_uri(
            redirect_uri or credentials.installed.redirect_uris[0]
        )
        self._flow: Flow | None = None

    def _create_flow(self) -> Flow:
        return Flow.from_client_config(
            self.credentials.to_client_config(),
            scopes=self.scopes,
            redirect_uri=self.redirect_uri,
        )

    def get_authorization_url(self) -> str:
        """Build the consent URL.

        Requests offline access with a forced consent prompt so that Google
        issues a refresh token.

        Returns:
            URL the user must visit.
        """
        self._flow = self._create_flow()
        auth_url, _ = self._flow.authorization_url(
            access_type="offline",
            prompt="consent",
            state=secrets.token_urlsafe(32),
        )
        return auth_url

    def exchange_code(self, code: str) -> StoredToken:
        """Exchange an authorization code for a token and store it.

        Args:
            code: Authorization code from the redirect.

        Returns:
            The stored token.

        Raises:
            TokenInvalidError: If the provider response lacks a refresh token.
            TokenSaveError: If the token cannot be written.
        """
        flow = self._flow or self._create_flow()
        flow.fetch_token(code=code)

        token = credentials_to_token(flow.credentials, self.scopes)
        self.storage.save(token)
        logger.info("Tokens saved to %s", self.storage.token_path)
        return token

    async def authenticate(self, open_browser: bool = True) -> StoredToken:
        """Run the full consent flow with a loopback callback server.

        Args:
            open_browser: Open the consent URL in the default browser.

        Returns:
            The stored token.
        """
        auth_url = self.get_authorization_url()
        code = await asyncio.to_thread(self._wait_for_code, auth_url, open_browser)
        return await asyncio.to_thread(self.exchange_code, code)

    def authenticate_manual(self, read_code: Callable[[str], str]) -> StoredToken:
        """Run the consent flow with a user-pasted authorization code.

        Args:
            read_code: Called with the consent URL; returns the pasted code.

        Returns:
            The stored token.
        """
        auth_url = self.get_authorization_url()
        code = read_code(auth_url).strip()
        if not code:
            raise TokenInvalidError("No authorization code provided")
        return self.exchange_code(code)

    def _wait_for_code(self, auth_url: str, open_browser: bool) -> str:
        """Serve one callback request and return the authorization code (blocking)."""
        parsed = urlparse(self.redirect_uri)
        host = parsed.hostname or "localhost"
        callback_path = parsed.path or "/"

        auth_code: list[str | None] = [None]
        error_message: list[str | None] = [None]

        class OAuthCallbackHandler(BaseHTTPRequestHandler):
            """HTTP handler for the OAuth redirect."""

            def log_message(self, format: str, *args) -> None:
                """Suppress HTTP server logs."""

            def _respond(self, status: int, body: bytes) -> None:
                self.send_response(status)
                self.send_header("Content-type", "text/html")
                self.end_headers()
                self.wfile.write(body)

            def do_GET(self) -> None:
                request_parsed = urlparse(self.path)
                if request_parsed.path.rstrip("/") != callback_path.rstrip("/"):
                    self._respond(404, b"Not Found")
                    return

                query_params = parse_qs(request_parsed.query)
                if "error" in query_params:
                    error_message[0] = query_params["error"][0]
                    self._respond(
                        400,
                        b"<html><body><h1>Authorization Failed</h1>"
                        b"<p>Please close this window and try again.</p></body></html>",
                    )
                elif "code" in query_params:
                    auth_code[0] = query_params["code"][0]
                    self._respond(
                        200,
                        b"<html><body><h1>Authorization Successful</h1>"
                        b"<p>You can close this window and return to the terminal.</p>"
                        b"</body></html>",
                    )
                else:
                    self._respond(
                        400,
                        b"<html><body><h1>Authorization Failed</h1>"
                        b"<p>No authorization code received.</p></body></html>",
                    )

        server = HTTPServer((host, self.port), OAuthCallbackHandler)
        server.timeout = CALLBACK_TIMEOUT

        print("Opening browser for Google authorization...")
        print(f"If the browser doesn't open, visit: {auth_url}")
        if open_browser:
            webbrowser.open(auth_url)

        try:
            server.handle_request()
        finally:
            server.server_close()

        if error_message[0]:
            raise TokenInvalidError(f"OAuth authorization failed: {error_message[0]}")
        if not auth_code[0]:
            raise TokenInvalidError("No authorization code received from Google")
        return auth_code[0]
