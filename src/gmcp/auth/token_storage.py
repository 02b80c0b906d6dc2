"""JSON-file persistence for the OAuth token.

The token file holds a single token object::

    {
        "access_token": "...",
        "refresh_token": "...",
        "scope": "...",
        "token_type": "Bearer",
        "expiry_date": 1700000000000
    }

It is overwritten wholesale on every save and kept readable by the owner only.
"""

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from gmcp.auth.models import StoredToken, TokenStatus
from gmcp.errors import TokenSaveError

logger = logging.getLogger(__name__)


class TokenStorage:
    """Load and save the OAuth token at a fixed path.

    Attributes:
        token_path: Path to the token JSON file.

    Example:
        ```python
        storage = TokenStorage(Path("~/.gmcp/token.json").expanduser())
        token = storage.load()
        if token is None:
            print("Run 'gmcp auth' first")
        ```
    """

    def __init__(self, token_path: Path) -> None:
        """Initialize token storage.

        Args:
            token_path: Location of the token file. The parent directory is
                created on first save if it does not exist.
        """
        self.token_path = Path(token_path)

    def _ensure_parent_dir(self) -> None:
        """Create the token directory with owner-only permissions if needed."""
        parent = self.token_path.parent
        if not parent.exists():
            parent.mkdir(parents=True, mode=0o700)

    def _read_raw(self) -> dict | None:
        if not self.token_path.exists():
            return None
        with open(self.token_path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("token file does not contain a JSON object")
        return data

    def load(self) -> StoredToken | None:
        """Load the stored token.

        Returns:
            StoredToken if the file exists and is valid, None otherwise.
            Unreadable or malformed files are logged and treated as absent.
        """
        try:
            data = self._read_raw()
            if data is None:
                return None
            return StoredToken.model_validate(data)
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(
                "Failed to load tokens from %s (%s): %s",
                self.token_path,
                type(e).__name__,
                e,
            )
            return None

    def save(self, token: StoredToken) -> None:
        """Persist the token, replacing any previous file contents.

        Args:
            token: Token to write.

        Raises:
            TokenSaveError: If the file cannot be written.
        """
        try:
            self._ensure_parent_dir()
            with open(self.token_path, "w", encoding="utf-8") as f:
                json.dump(token.model_dump(), f, indent=2)
            # Owner read/write only (600)
            self.token_path.chmod(0o600)
        except OSError as e:
            raise TokenSaveError(f"Failed to save tokens to {self.token_path}: {e}", e) from e

    def get_status(self) -> TokenStatus:
        """Classify the token file.

        Returns:
            MISSING if there is no file, INVALID if it cannot be parsed,
            EXPIRED if the access token needs refreshing, VALID otherwise.
        """
        if not self.token_path.exists():
            return TokenStatus.MISSING

        stored = self.load()
        if stored is None:
            return TokenStatus.INVALID

        if stored.is_expired():
            return TokenStatus.EXPIRED

        return TokenStatus.VALID

    def delete(self) -> bool:
        """Remove the token file.

        Returns:
            True if a file was deleted, False if none existed.
        """
        if not self.token_path.exists():
            return False
        self.token_path.unlink()
        return True
