"""Command-line interface for twitch-credentials.

Environment Variables:
    TWITCH_CLIENT_ID: Application client ID
    TWITCH_CLIENT_SECRET: Application client secret
    TWITCH_REFRESH_TOKEN: Refresh token for the User Access Token
    TWITCH_OAUTH_TOKEN_URL: Token endpoint override
"""

import asyncio
import logging
import sys

import click

from twitch_credentials.__version__ import __version__
from twitch_credentials.auth import (
    CredentialKind,
    CredentialManager,
    CredentialStatus,
    InitialTokens,
    ManagerOptions,
)
from twitch_credentials.exceptions import ValidationError

client_id_option = click.option(
    "--client-id", envvar="TWITCH_CLIENT_ID", help="Twitch application client ID"
)
client_secret_option = click.option(
    "--client-secret", envvar="TWITCH_CLIENT_SECRET", help="Twitch application client secret"
)
refresh_token_option = click.option(
    "--refresh-token", envvar="TWITCH_REFRESH_TOKEN", help="Refresh token for the user token"
)


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def main(verbose: bool) -> None:
    """Twitch credentials - obtain and renew Twitch API access tokens."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)


def _build_manager(
    client_id: str | None,
    tokens: InitialTokens | None = None,
    options: ManagerOptions | None = None,
) -> CredentialManager:
    """Create a manager, exiting with an error message on invalid input."""
    if not client_id:
        click.echo("❌ Error: client ID required")
        click.echo("")
        click.echo("Set TWITCH_CLIENT_ID or pass --client-id=...")
        sys.exit(1)

    try:
        return CredentialManager(client_id, tokens=tokens, options=options)
    except ValidationError as e:
        click.echo(f"❌ Error: {e}")
        sys.exit(1)


def _fail_if_not_renewed(manager: CredentialManager, kind: CredentialKind) -> None:
    slot = manager.slot(kind)
    if slot.last_error is not None:
        click.echo(f"❌ Failed to obtain {kind.value} access token: {slot.last_error}")
        sys.exit(1)


@main.command("app-token")
@client_id_option
@client_secret_option
def app_token(client_id: str | None, client_secret: str | None) -> None:
    """Fetch an App Access Token once and print it."""
    if not client_secret:
        click.echo("❌ Error: client secret required")
        click.echo("")
        click.echo("Set TWITCH_CLIENT_SECRET or pass --client-secret=...")
        sys.exit(1)

    manager = _build_manager(client_id, options=ManagerOptions(client_secret=client_secret))

    async def fetch() -> None:
        try:
            await manager.renew_application_token_once()
        finally:
            await manager.close()

    asyncio.run(fetch())
    _fail_if_not_renewed(manager, CredentialKind.APPLICATION)
    click.echo(manager.app_access_token)


@main.command()
@client_id_option
@client_secret_option
@refresh_token_option
def refresh(client_id: str | None, client_secret: str | None, refresh_token: str | None) -> None:
    """Exchange a refresh token for a new User Access Token."""
    if not refresh_token:
        click.echo("❌ Error: refresh token required")
        click.echo("")
        click.echo("Set TWITCH_REFRESH_TOKEN or pass --refresh-token=...")
        sys.exit(1)

    manager = _build_manager(
        client_id,
        tokens=InitialTokens(refresh_token=refresh_token),
        options=ManagerOptions(client_secret=client_secret),
    )

    async def fetch() -> None:
        try:
            await manager.renew_user_token_once()
        finally:
            await manager.close()

    asyncio.run(fetch())
    _fail_if_not_renewed(manager, CredentialKind.USER)
    click.echo(f"access_token: {manager.user_access_token}")
    click.echo(f"refresh_token: {manager.refresh_token}")


@main.command()
@client_id_option
@client_secret_option
@refresh_token_option
@click.option("--app-token", help="Existing App Access Token")
@click.option("--user-token", help="Existing User Access Token")
def status(
    client_id: str | None,
    client_secret: str | None,
    refresh_token: str | None,
    app_token: str | None,
    user_token: str | None,
) -> None:
    """Renew what can be renewed and report the state of both credentials."""
    manager = _build_manager(
        client_id,
        tokens=InitialTokens(
            app_access_token=app_token,
            user_access_token=user_token,
            refresh_token=refresh_token,
        ),
        options=ManagerOptions(
            client_secret=client_secret,
            refresh_app_access_token=True,
            refresh_user_access_token=True,
        ),
    )

    async def check() -> None:
        try:
            await manager.initialize()
        finally:
            await manager.close()

    asyncio.run(check())

    for kind in CredentialKind:
        slot_status = manager.status(kind)
        marker = "✓" if slot_status == CredentialStatus.VALID else "❌"
        click.echo(f"{marker} {kind.value}: {slot_status.value}")


if __name__ == "__main__":
    main()
