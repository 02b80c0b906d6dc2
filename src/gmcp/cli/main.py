"""Command-line interface for gmcp-server."""

import asyncio
import os
import sys
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import click

from gmcp.__version__ import __version__
from gmcp.config import EnvConfig, get_env_config
from gmcp.errors import GmcpError


def config_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Add the path and scope options shared by every command."""
    func = click.option(
        "--scopes",
        envvar="GOOGLE_SCOPES",
        help="Comma-separated OAuth scopes (short names or URLs)",
    )(func)
    func = click.option(
        "--token-path",
        envvar="GOOGLE_TOKEN_PATH",
        help="Where the OAuth token is stored",
    )(func)
    func = click.option(
        "--credentials-path",
        envvar="GOOGLE_CREDENTIALS_PATH",
        help="OAuth client credential JSON downloaded from Google Cloud",
    )(func)
    return func


def _resolve_config(
    credentials_path: str | None, token_path: str | None, scopes: str | None
) -> EnvConfig:
    """Build the configuration, exiting with a message when incomplete."""
    environ = dict(os.environ)
    overrides = {
        "GOOGLE_CREDENTIALS_PATH": credentials_path,
        "GOOGLE_TOKEN_PATH": token_path,
        "GOOGLE_SCOPES": scopes,
    }
    environ.update({key: value for key, value in overrides.items() if value})

    try:
        return get_env_config(environ)
    except GmcpError as e:
        click.echo(f"❌ Configuration error: {e.message}", err=True)
        click.echo("", err=True)
        click.echo("Set environment variables:", err=True)
        click.echo("  export GOOGLE_CREDENTIALS_PATH=/path/to/credentials.json", err=True)
        click.echo("  export GOOGLE_TOKEN_PATH=/path/to/token.json", err=True)
        sys.exit(1)


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """gmcp - Gmail and Google Calendar MCP server.

    Exposes Gmail (search, read, send, labels) and Calendar (calendars,
    events) as MCP tools over stdio.
    """
    pass


@main.command()
@config_options
@click.option("--manual", is_flag=True, help="Paste the authorization code instead of using a local callback")
@click.option("--no-browser", is_flag=True, help="Print the consent URL without opening a browser")
def auth(
    credentials_path: str | None,
    token_path: str | None,
    scopes: str | None,
    manual: bool,
    no_browser: bool,
) -> None:
    """Authorize access to your Google account.

    This will:
    1. Open the Google consent page
    2. Receive the authorization code (local callback, or pasted with --manual)
    3. Store the OAuth token at GOOGLE_TOKEN_PATH
    """
    from gmcp.auth import OAuthManager, TokenStatus, TokenStorage, load_credentials

    config = _resolve_config(credentials_path, token_path, scopes)
    storage = TokenStorage(config.token_path)

    if storage.get_status() == TokenStatus.VALID:
        click.echo("✓ Already authenticated!")
        click.echo(f"Token stored at: {config.token_path}")
        click.echo("")

        if not click.confirm("Re-authenticate?"):
            return

    try:
        credentials = load_credentials(config.credentials_path)
    except GmcpError as e:
        click.echo(f"❌ {e.message}")
        sys.exit(1)

    manager = OAuthManager(credentials, storage, config.scopes)

    def read_code(auth_url: str) -> str:
        click.echo("Visit this URL to authorize gmcp:")
        click.echo("")
        click.echo(f"  {auth_url}")
        click.echo("")
        return str(click.prompt("Paste the authorization code"))

    click.echo("Starting OAuth authentication flow...")
    click.echo(f"Scopes: {', '.join(config.scopes)}")
    click.echo("")

    try:
        if manual:
            manager.authenticate_manual(read_code)
        else:
            asyncio.run(manager.authenticate(open_browser=not no_browser))
        click.echo("✓ Authentication successful!")
        click.echo(f"Token stored at: {config.token_path}")
        click.echo("")
        click.echo("Run 'gmcp doctor' to verify setup.")
    except Exception as e:
        click.echo(f"❌ Authentication failed: {e}")
        sys.exit(1)


@main.command()
@config_options
def start(credentials_path: str | None, token_path: str | None, scopes: str | None) -> None:
    """Start the MCP server on stdio.

    Authentication is required before starting the server.
    Run 'gmcp auth' if not already authenticated.

    This command is typically invoked by an MCP client, not by hand.
    """
    from gmcp.auth import TokenStatus, TokenStorage
    from gmcp.logger import configure_logging
    from gmcp.server import create_server

    config = _resolve_config(credentials_path, token_path, scopes)
    status = TokenStorage(config.token_path).get_status()

    if status == TokenStatus.MISSING:
        click.echo("❌ Not authenticated. Run 'gmcp auth' first.", err=True)
        sys.exit(1)

    if status == TokenStatus.INVALID:
        click.echo("❌ Token file corrupted. Run 'gmcp auth' to re-authenticate.", err=True)
        sys.exit(1)

    # stdout carries the MCP protocol; everything else goes to stderr
    logger = configure_logging(config.log_level)
    logger.info(
        "Configuration: credentials=%s token=%s scopes=%d",
        config.credentials_path,
        config.token_path,
        len(config.scopes),
    )

    try:
        server = create_server(config)
        click.echo("Starting gmcp MCP server...", err=True)
        asyncio.run(server.run())
    except KeyboardInterrupt:
        click.echo("\nServer stopped.", err=True)
    except Exception as e:
        click.echo(f"❌ Server error: {e}", err=True)
        sys.exit(1)


@main.command()
@config_options
def doctor(credentials_path: str | None, token_path: str | None, scopes: str | None) -> None:
    """Check configuration and authentication status.

    Verifies:
    1. Environment configuration
    2. OAuth client credentials
    3. Token validity
    """
    from gmcp.auth import TokenStatus, TokenStorage, load_credentials

    click.echo("gmcp Status:")
    click.echo("")

    config = _resolve_config(credentials_path, token_path, scopes)

    click.echo("Configuration:")
    click.echo(f"  Credentials file: {config.credentials_path}")
    click.echo(f"  Token file: {config.token_path}")
    click.echo(f"  Scopes: {len(config.scopes)} configured")
    for scope in config.scopes:
        click.echo(f"    - {scope}")
    click.echo("")

    click.echo("Credentials:")
    credentials_ok = True
    try:
        credentials = load_credentials(config.credentials_path)
        click.echo(f"  ✓ Valid (client {credentials.installed.client_id})")
    except GmcpError as e:
        credentials_ok = False
        click.echo(f"  ❌ {e.message}")
    click.echo("")

    storage = TokenStorage(config.token_path)
    status = storage.get_status()

    click.echo("Authentication:")
    click.echo(f"  Token status: {status.value}")

    if status == TokenStatus.MISSING:
        click.echo("  ❌ Not authenticated")
    elif status == TokenStatus.INVALID:
        click.echo("  ❌ Token file corrupted")
    elif status == TokenStatus.EXPIRED:
        click.echo("  ⚠️  Token expired (will refresh automatically on use)")
    elif status == TokenStatus.VALID:
        click.echo("  ✓ Authenticated")
        stored = storage.load()
        if stored:
            expires_at = datetime.fromtimestamp(stored.expiry_date / 1000, tz=timezone.utc)
            click.echo(f"  Token expires: {expires_at.strftime('%Y-%m-%d %H:%M:%S UTC')}")

    click.echo("")

    if credentials_ok and status in (TokenStatus.VALID, TokenStatus.EXPIRED):
        click.echo("✓ Ready to use!")
    else:
        click.echo("❌ Setup required. Run 'gmcp auth' to authenticate.")
        sys.exit(1)


if __name__ == "__main__":
    main()
