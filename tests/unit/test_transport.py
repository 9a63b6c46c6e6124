"""Unit tests for TokenTransport.

HTTP traffic is served by httpx.MockTransport; no network access is needed.
"""

from urllib.parse import parse_qs

import httpx
import pytest

from twitch_credentials.auth.models import ClientCredentialsGrant, RefreshTokenGrant
from twitch_credentials.auth.transport import DEFAULT_TOKEN_URL, TokenTransport
from twitch_credentials.exceptions import TransportError

TOKEN_URL = "https://id.example.test/oauth2/token"


def _transport(handler) -> TokenTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TokenTransport(token_url=TOKEN_URL, http_client=client)


def _app_grant() -> ClientCredentialsGrant:
    return ClientCredentialsGrant(
        client_id="abcdefghij0123", client_secret="secret"  # pragma: allowlist secret
    )


@pytest.mark.unit
class TestTokenTransportInit:
    """Tests for TokenTransport configuration."""

    def test_should_use_twitch_endpoint_by_default(self, monkeypatch) -> None:
        """Verify the public Twitch token URL is the default."""
        monkeypatch.delenv("TWITCH_OAUTH_TOKEN_URL", raising=False)
        assert TokenTransport().token_url == DEFAULT_TOKEN_URL

    def test_should_read_token_url_from_environment(self, monkeypatch) -> None:
        """Verify TWITCH_OAUTH_TOKEN_URL overrides the default."""
        monkeypatch.setenv("TWITCH_OAUTH_TOKEN_URL", "http://localhost:9999/token")
        assert TokenTransport().token_url == "http://localhost:9999/token"

    def test_should_prefer_explicit_token_url(self, monkeypatch) -> None:
        """Verify an explicit URL wins over the environment."""
        monkeypatch.setenv("TWITCH_OAUTH_TOKEN_URL", "http://localhost:9999/token")
        assert TokenTransport(token_url=TOKEN_URL).token_url == TOKEN_URL


@pytest.mark.unit
class TestTokenTransportRequestToken:
    """Tests for TokenTransport.request_token()."""

    @pytest.mark.asyncio
    async def test_should_post_grant_as_form_data(self) -> None:
        """Verify the grant is sent form-encoded to the token URL."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"access_token": "app_token", "expires_in": 5000})

        transport = _transport(handler)
        token = await transport.request_token(_app_grant())

        assert token.access_token == "app_token"
        assert token.expires_in == 5000
        assert len(seen) == 1
        assert seen[0].method == "POST"
        assert str(seen[0].url) == TOKEN_URL
        form = parse_qs(seen[0].content.decode())
        assert form == {
            "client_id": ["abcdefghij0123"],
            "client_secret": ["secret"],  # pragma: allowlist secret
            "grant_type": ["client_credentials"],
        }

    @pytest.mark.asyncio
    async def test_should_return_rotated_refresh_token(self) -> None:
        """Verify refresh responses keep the new refresh token."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={
                    "access_token": "user_token",
                    "refresh_token": "next_refresh",
                    "expires_in": 14000,
                    "scope": ["user:read:email"],
                    "token_type": "bearer",
                },
            )

        transport = _transport(handler)
        token = await transport.request_token(
            RefreshTokenGrant(client_id="abcdefghij0123", refresh_token="old_refresh")
        )

        assert token.refresh_token == "next_refresh"

    @pytest.mark.asyncio
    async def test_should_raise_transport_error_on_error_status(self) -> None:
        """Verify a 400 response becomes TransportError with the provider message."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"status": 400, "message": "Invalid refresh token"})

        transport = _transport(handler)

        with pytest.raises(TransportError, match="Invalid refresh token") as exc_info:
            await transport.request_token(
                RefreshTokenGrant(client_id="abcdefghij0123", refresh_token="bad")
            )

        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_should_raise_transport_error_on_non_json_error(self) -> None:
        """Verify an error body that is not JSON is still reported."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, text="upstream unavailable")

        transport = _transport(handler)

        with pytest.raises(TransportError, match="upstream unavailable") as exc_info:
            await transport.request_token(_app_grant())

        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_should_raise_transport_error_on_network_failure(self) -> None:
        """Verify connection errors are wrapped in TransportError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        transport = _transport(handler)

        with pytest.raises(TransportError, match="connection refused") as exc_info:
            await transport.request_token(_app_grant())

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_should_raise_transport_error_on_malformed_body(self) -> None:
        """Verify a 200 response without access_token is rejected."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"unexpected": True})

        transport = _transport(handler)

        with pytest.raises(TransportError, match="Malformed token response"):
            await transport.request_token(_app_grant())

    @pytest.mark.asyncio
    async def test_should_raise_transport_error_on_invalid_json(self) -> None:
        """Verify a 200 response that is not JSON is rejected."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>oops</html>")

        transport = _transport(handler)

        with pytest.raises(TransportError, match="Malformed token response"):
            await transport.request_token(_app_grant())


@pytest.mark.unit
class TestTokenTransportClose:
    """Tests for TokenTransport.close()."""

    @pytest.mark.asyncio
    async def test_should_close_owned_client(self) -> None:
        """Verify a lazily created client is closed and released."""
        transport = TokenTransport(token_url=TOKEN_URL)
        client = await transport._get_http_client()

        await transport.close()

        assert client.is_closed
        assert transport._http_client is None

    @pytest.mark.asyncio
    async def test_should_not_close_injected_client(self) -> None:
        """Verify a caller-provided client is left open."""
        client = httpx.AsyncClient()
        transport = TokenTransport(token_url=TOKEN_URL, http_client=client)

        await transport.close()

        assert not client.is_closed
        await client.aclose()
