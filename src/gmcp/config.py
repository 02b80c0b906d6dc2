"""Environment configuration for gmcp-server.

Environment Variables:
    GOOGLE_CREDENTIALS_PATH: Path to the OAuth client credential JSON (required)
    GOOGLE_TOKEN_PATH: Path where OAuth tokens are stored (required)
    GOOGLE_SCOPES: Comma-separated scopes, short names or full URLs
        (default: gmail.readonly)
    LOG_LEVEL: Logging level (default: INFO)
"""

import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from gmcp.errors import ConfigurationError

SCOPE_URL_PREFIX = "https://www.googleapis.com/auth/"

DEFAULT_GMAIL_SCOPE = f"{SCOPE_URL_PREFIX}gmail.readonly"

# Short scope names accepted in GOOGLE_SCOPES
SCOPE_MAP: dict[str, str] = {
    name: f"{SCOPE_URL_PREFIX}{name}"
    for name in (
        "gmail.readonly",
        "gmail.modify",
        "gmail.send",
        "gmail.labels",
        "gmail.metadata",
        "gmail.compose",
        "gmail.insert",
        "gmail.settings.basic",
        "gmail.settings.sharing",
        "calendar",
        "calendar.readonly",
        "calendar.events",
    )
}


class EnvConfig(BaseModel):
    """Resolved runtime configuration."""

    model_config = ConfigDict(frozen=True)

    credentials_path: Path
    token_path: Path
    scopes: list[str]
    log_level: str = "INFO"


def parse_scopes(scopes_env: str | None) -> list[str]:
    """Parse a comma-separated scope list.

    Short names such as ``gmail.modify`` are expanded to full scope URLs;
    anything else is assumed to already be a URL and kept as given.

    Args:
        scopes_env: Raw GOOGLE_SCOPES value.

    Returns:
        List of scope URLs. Defaults to read-only Gmail access.
    """
    if not scopes_env:
        return [DEFAULT_GMAIL_SCOPE]

    scopes = []
    for scope in scopes_env.split(","):
        trimmed = scope.strip()
        if not trimmed:
            continue
        scopes.append(SCOPE_MAP.get(trimmed, trimmed))
    return scopes or [DEFAULT_GMAIL_SCOPE]


def get_env_config(environ: dict[str, str] | None = None) -> EnvConfig:
    """Read configuration from the environment.

    Args:
        environ: Mapping to read from. Defaults to ``os.environ``.

    Returns:
        EnvConfig with paths, scopes and log level.

    Raises:
        ConfigurationError: If a required variable is not set.
    """
    env = os.environ if environ is None else environ

    credentials_path = env.get("GOOGLE_CREDENTIALS_PATH")
    if not credentials_path:
        raise ConfigurationError(
            "GOOGLE_CREDENTIALS_PATH environment variable is required",
            code="CONFIG_MISSING_ENV",
        )

    token_path = env.get("GOOGLE_TOKEN_PATH")
    if not token_path:
        raise ConfigurationError(
            "GOOGLE_TOKEN_PATH environment variable is required",
            code="CONFIG_MISSING_ENV",
        )

    return EnvConfig(
        credentials_path=Path(credentials_path).expanduser(),
        token_path=Path(token_path).expanduser(),
        scopes=parse_scopes(env.get("GOOGLE_SCOPES")),
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
    )
