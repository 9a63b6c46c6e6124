"""Shared pytest fixtures for twitch-credentials tests.

This module provides reusable fixtures for token responses, a mocked token
transport and credential managers.
"""

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock

import pytest

from twitch_credentials.auth.models import InitialTokens, ManagerOptions, TokenResponse
from twitch_credentials.auth.token_manager import CredentialManager
from twitch_credentials.auth.transport import TokenTransport

TEST_CLIENT_ID = "abcdefghij0123456789"

# =============================================================================
# Token Fixtures
# =============================================================================


@pytest.fixture
def app_token_response() -> TokenResponse:
    """Create a client-credentials token response."""
    return TokenResponse(  # nosec B106 - test token, not a password
        access_token="app_access_token_1",
        expires_in=5011271,
        token_type="bearer",
    )


@pytest.fixture
def user_token_response() -> TokenResponse:
    """Create a refresh-token response with a rotated refresh token."""
    return TokenResponse(  # nosec B106 - test token, not a password
        access_token="user_access_token_1",
        refresh_token="rotated_refresh_token",
        expires_in=14400,
        scope=["channel:edit:commercial", "user:read:email"],
        token_type="bearer",
    )


# =============================================================================
# Transport Fixtures
# =============================================================================


@pytest.fixture
def mock_transport() -> AsyncMock:
    """Create a mocked token transport; set request_token's result per test."""
    return AsyncMock(spec=TokenTransport)


# =============================================================================
# Credential Manager Fixtures
# =============================================================================


@pytest.fixture
def make_manager(mock_transport: AsyncMock) -> Callable[..., CredentialManager]:
    """Factory for managers wired to the mocked transport.

    Keyword arguments are split between InitialTokens and ManagerOptions.
    """

    def factory(client_id: str = TEST_CLIENT_ID, **kwargs: Any) -> CredentialManager:
        token_fields = {k: kwargs.pop(k) for k in list(kwargs) if k in InitialTokens.model_fields}
        return CredentialManager(
            client_id,
            tokens=InitialTokens(**token_fields),
            options=ManagerOptions(**kwargs),
            transport=mock_transport,
        )

    return factory
