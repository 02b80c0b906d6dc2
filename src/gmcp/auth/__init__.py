"""OAuth authentication for gmcp-server.

Quick Start:
    ```python
    from gmcp.auth import create_authenticated_session

    session = create_authenticated_session("credentials.json", "token.json")
    access_token = await session.get_access_token()
    ```
"""

from gmcp.auth.models import InstalledClient, OAuthCredentials, StoredToken, TokenStatus
from gmcp.auth.oauth_manager import OAuthManager, load_credentials, normalize_redirect_uri
from gmcp.auth.session import AuthSession, create_authenticated_session, merge_tokens
from gmcp.auth.token_storage import TokenStorage

__all__ = [
    "AuthSession",
    "InstalledClient",
    "OAuthCredentials",
    "OAuthManager",
    "StoredToken",
    "TokenStatus",
    "TokenStorage",
    "create_authenticated_session",
    "load_credentials",
    "merge_tokens",
    "normalize_redirect_uri",
]
