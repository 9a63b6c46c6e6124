"""Data models for Twitch credential management.

This module defines Pydantic models for token grants, token endpoint
responses, constructor bundles and credential state reporting.
"""

from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, Field, StringConstraints

MIN_CLIENT_ID_LENGTH = 10

ClientId = Annotated[str, StringConstraints(min_length=MIN_CLIENT_ID_LENGTH)]


class CredentialKind(str, Enum):
    """The two classes of bearer credentials managed independently."""

    APPLICATION = "application"
    USER = "user"


class CredentialStatus(str, Enum):
    """Observable state of a credential slot."""

    MISSING = "missing"
    VALID = "valid"
    STALE = "stale"
    FAILED = "failed"


class ClientCredentialsGrant(BaseModel):
    """Client-credentials grant used to obtain an App Access Token."""

    client_id: str = Field(..., description="Application client ID")
    client_secret: str = Field(..., description="Application client secret")
    grant_type: Literal["client_credentials"] = "client_credentials"

    def to_form(self) -> dict[str, str]:
        """Return the grant as form fields for the token endpoint."""
        return self.model_dump()


class RefreshTokenGrant(BaseModel):
    """Refresh-token grant used to renew a User Access Token."""

    client_id: str = Field(..., description="Application client ID")
    refresh_token: str = Field(..., description="Refresh token issued with the user token")
    client_secret: str | None = Field(default=None, description="Application client secret")
    grant_type: Literal["refresh_token"] = "refresh_token"

    def to_form(self) -> dict[str, str]:
        """Return the grant as form fields, omitting an absent client secret."""
        return self.model_dump(exclude_none=True)


TokenGrant = ClientCredentialsGrant | RefreshTokenGrant


class TokenResponse(BaseModel):
    """Body returned by the identity provider's token endpoint.

    Attributes:
        access_token: The new bearer token.
        refresh_token: Rotated refresh token, only present for user grants.
        expires_in: Token lifetime in seconds, if reported.
        scope: Granted scopes.
        token_type: Token type, always "bearer" for Twitch.
    """

    access_token: str = Field(..., min_length=1, description="Bearer token")
    refresh_token: str | None = Field(default=None, description="Rotated refresh token")
    expires_in: int | None = Field(default=None, description="Lifetime in seconds")
    scope: list[str] = Field(default_factory=list, description="Granted scopes")
    token_type: str = Field(default="bearer", description="Token type")


class InitialTokens(BaseModel):
    """Tokens that already exist when the manager is constructed."""

    user_access_token: str | None = Field(default=None, description="Existing User Access Token")
    app_access_token: str | None = Field(default=None, description="Existing App Access Token")
    refresh_token: str | None = Field(default=None, description="Refresh token for the user token")


class ManagerOptions(BaseModel):
    """Renewal options for the credential manager.

    Attributes:
        client_secret: Application secret, enables App Access Token renewal.
        refresh_app_access_token: Start the app renewal cycle on ``initialize()``.
        refresh_user_access_token: Start the user renewal cycle on ``initialize()``.
    """

    client_secret: str | None = Field(default=None, description="Application client secret")
    refresh_app_access_token: bool = Field(default=False, description="Auto-renew app token")
    refresh_user_access_token: bool = Field(default=False, description="Auto-renew user token")
