"""HTTP transport for the Twitch identity provider.

The credential manager depends only on the ``TokenRequester`` protocol;
``TokenTransport`` is the default implementation backed by httpx.

Environment Variables:
    TWITCH_OAUTH_TOKEN_URL: Token endpoint (default: https://id.twitch.tv/oauth2/token)
"""

import logging
import os
from typing import Protocol

import httpx

from twitch_credentials.auth.models import TokenGrant, TokenResponse
from twitch_credentials.exceptions import TransportError

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_URL = "https://id.twitch.tv/oauth2/token"


class TokenRequester(Protocol):
    """Anything that can exchange a grant for a token."""

    async def request_token(self, grant: TokenGrant) -> TokenResponse: ...


class TokenTransport:
    """POSTs token grants to the Twitch OAuth2 token endpoint.

    Attributes:
        token_url: Endpoint the grants are posted to.

    Example:
        ```python
        transport = TokenTransport()
        token = await transport.request_token(
            ClientCredentialsGrant(client_id="...", client_secret="...")
        )
        await transport.close()
        ```
    """

    def __init__(
        self,
        token_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            token_url: Token endpoint. Falls back to TWITCH_OAUTH_TOKEN_URL,
                then to the public Twitch endpoint.
            http_client: Client to use. When omitted one is created lazily and
                owned by the transport.
        """
        self.token_url = token_url or os.environ.get("TWITCH_OAUTH_TOKEN_URL", DEFAULT_TOKEN_URL)
        self._http_client = http_client
        self._owns_client = http_client is None

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP client.

        Returns:
            Shared httpx.AsyncClient instance.
        """
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                http2=True,
                limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
                timeout=httpx.Timeout(30.0, connect=10.0),
            )
        return self._http_client

    async def close(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    async def request_token(self, grant: TokenGrant) -> TokenResponse:
        """Exchange a grant for a new token.

        Args:
            grant: Client-credentials or refresh-token grant.

        Returns:
            Parsed token endpoint response.

        Raises:
            TransportError: On network failure, a non-2xx status or a body
                that is not a valid token response.
        """
        client = await self._get_http_client()

        try:
            response = await client.post(
                self.token_url,
                data=grant.to_form(),
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            raise TransportError(f"Token request to {self.token_url} failed: {e}") from e

        if response.is_error:
            raise TransportError(
                f"Token endpoint returned {response.status_code}: {_error_message(response)}",
                status_code=response.status_code,
            )

        try:
            token = TokenResponse.model_validate(response.json())
        except ValueError as e:  # includes pydantic.ValidationError
            raise TransportError(
                f"Malformed token response: {e}", status_code=response.status_code
            ) from e

        logger.debug(f"Received {grant.grant_type} token (expires_in={token.expires_in})")
        return token


def _error_message(response: httpx.Response) -> str:
    """Extract the provider's error message, falling back to the raw body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.text
