"""Credential lifecycle management for the Twitch API.

This package caches and autonomously renews Twitch App Access Tokens
(client-credentials grant) and User Access Tokens (refresh-token grant).

Quick Start:
    ```python
    from twitch_credentials.auth import CredentialKind, CredentialManager, ManagerOptions

    manager = CredentialManager(
        "your-client-id",
        options=ManagerOptions(
            client_secret="your-client-secret",  # pragma: allowlist secret
            refresh_app_access_token=True,
        ),
    )
    await manager.initialize()

    token = manager.get_credential(CredentialKind.APPLICATION)
    ```
"""

from twitch_credentials.auth.models import (
    ClientCredentialsGrant,
    CredentialKind,
    CredentialStatus,
    InitialTokens,
    ManagerOptions,
    RefreshTokenGrant,
    TokenResponse,
)
from twitch_credentials.auth.timer import RenewalTimer
from twitch_credentials.auth.token_manager import CredentialManager, CredentialSlot
from twitch_credentials.auth.transport import TokenRequester, TokenTransport

__all__ = [
    "CredentialManager",
    "CredentialSlot",
    "CredentialKind",
    "CredentialStatus",
    "InitialTokens",
    "ManagerOptions",
    "ClientCredentialsGrant",
    "RefreshTokenGrant",
    "TokenResponse",
    "TokenRequester",
    "TokenTransport",
    "RenewalTimer",
]
