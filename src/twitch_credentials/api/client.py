"""Thin Helix API client built on the credential manager.

Endpoint methods only read cached tokens from ``CredentialManager``; they never
trigger a token renewal themselves.
"""

import logging
from typing import Any

import httpx

from twitch_credentials.api.models import CommercialResult, HelixStream, HelixUser
from twitch_credentials.auth.models import CredentialKind
from twitch_credentials.auth.token_manager import CredentialManager
from twitch_credentials.exceptions import UnauthorizedError, UnexpectedResponseError

logger = logging.getLogger(__name__)

HELIX_API_BASE = "https://api.twitch.tv/helix"

# Helix caps page size at 100
MAX_PAGE_SIZE = 100

USER_ONLY = (CredentialKind.USER,)
USER_OR_APP = (CredentialKind.USER, CredentialKind.APPLICATION)
APP_OR_USER = (CredentialKind.APPLICATION, CredentialKind.USER)


class HelixClient:
    """Client for a subset of the Twitch Helix API.

    Attributes:
        manager: Credential manager supplying bearer tokens.
        base_url: Helix API base URL.

    Example:
        ```python
        client = HelixClient(manager)
        users = await client.get_users(logins=["twitchdev"])
        await client.close()
        ```
    """

    def __init__(
        self,
        manager: CredentialManager,
        base_url: str = HELIX_API_BASE,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.manager = manager
        self.base_url = base_url.rstrip("/")
        self._http_client = http_client
        self._owns_client = http_client is None

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                http2=True,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
                timeout=httpx.Timeout(30.0, connect=10.0),
            )
        return self._http_client

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    def _headers(self, token_kinds: tuple[CredentialKind, ...]) -> dict[str, str]:
        """Build auth headers from the first cached token of the accepted kinds.

        Raises:
            UnauthorizedError: If none of the accepted tokens is cached.
        """
        for kind in token_kinds:
            token = self.manager.get_credential(kind)
            if token:
                return {
                    "Authorization": f"Bearer {token}",
                    "Client-Id": self.manager.client_id,
                    "Accept": "application/json",
                }

        names = " or ".join(f"{kind.value} access token" for kind in token_kinds)
        raise UnauthorizedError(f"No {names} available")

    async def _make_request(
        self,
        method: str,
        path: str,
        token_kinds: tuple[CredentialKind, ...],
        params: dict[str, Any] | list[tuple[str, Any]] | None = None,
        json_data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make an authenticated request to the Helix API.

        Args:
            method: HTTP method.
            path: Path below the Helix base URL, e.g. "/users".
            token_kinds: Accepted credential kinds, in order of preference.
            params: Query parameters. A list of pairs allows repeated keys.
            json_data: Optional JSON body.

        Returns:
            JSON response as a dictionary.

        Raises:
            UnauthorizedError: If no token is cached or Twitch answers 401.
            httpx.HTTPStatusError: For any other failed request.
        """
        headers = self._headers(token_kinds)
        client = await self._get_http_client()

        response = await client.request(
            method=method,
            url=f"{self.base_url}{path}",
            params=params,
            json=json_data,
            headers=headers,
        )
        if response.status_code == httpx.codes.UNAUTHORIZED:
            raise UnauthorizedError(f"{method} {path} was rejected by Twitch")
        response.raise_for_status()
        result: dict[str, Any] = response.json()
        return result

    async def _paginate(
        self,
        path: str,
        token_kinds: tuple[CredentialKind, ...],
        params: list[tuple[str, Any]],
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Follow Helix cursors until exhausted or ``limit`` items were read."""
        if limit is not None and limit <= 0:
            return []

        page_size = MAX_PAGE_SIZE if limit is None else min(limit, MAX_PAGE_SIZE)
        items: list[dict[str, Any]] = []
        cursor: str | None = None

        while True:
            page_params = [*params, ("first", page_size)]
            if cursor:
                page_params.append(("after", cursor))

            response = await self._make_request("GET", path, token_kinds, params=page_params)
            items.extend(response.get("data", []))

            cursor = response.get("pagination", {}).get("cursor")
            if not cursor or (limit is not None and len(items) >= limit):
                break

        return items if limit is None else items[:limit]

    async def get_users(
        self, ids: list[str] | None = None, logins: list[str] | None = None
    ) -> list[HelixUser]:
        """Get users by ID or login.

        With neither argument, returns the user owning the User Access Token.

        Args:
            ids: User IDs, at most 100 combined with logins.
            logins: Login names.

        Returns:
            Matching users.
        """
        params = [("id", user_id) for user_id in ids or []]
        params += [("login", login) for login in logins or []]

        response = await self._make_request("GET", "/users", USER_OR_APP, params=params)
        return [HelixUser.model_validate(item) for item in response.get("data", [])]

    async def get_streams(
        self,
        user_logins: list[str] | None = None,
        game_ids: list[str] | None = None,
        limit: int | None = None,
    ) -> list[HelixStream]:
        """Get live streams, most viewers first.

        Args:
            user_logins: Only streams of these broadcasters.
            game_ids: Only streams in these categories.
            limit: Maximum number of streams to return.

        Returns:
            Live streams.
        """
        params = [("user_login", login) for login in user_logins or []]
        params += [("game_id", game_id) for game_id in game_ids or []]

        items = await self._paginate("/streams", APP_OR_USER, params, limit=limit)
        return [HelixStream.model_validate(item) for item in items]

    async def start_commercial(self, broadcaster_id: str, length: int) -> CommercialResult:
        """Start a commercial on the broadcaster's channel.

        Requires a User Access Token with the channel:edit:commercial scope.

        Args:
            broadcaster_id: Channel to run the commercial on.
            length: Requested length in seconds, at most 180.

        Returns:
            The commercial that was started.

        Raises:
            UnexpectedResponseError: If Twitch returns no commercial.
        """
        response = await self._make_request(
            "POST",
            "/channels/commercial",
            USER_ONLY,
            json_data={"broadcaster_id": broadcaster_id, "length": length},
        )
        data = response.get("data") or []
        if not data:
            raise UnexpectedResponseError("POST /channels/commercial returned no commercial")

        result = CommercialResult.model_validate(data[0])
        logger.info(
            f"Started {result.length}s commercial for {broadcaster_id}; "
            f"next in {result.retry_after}s"
        )
        return result
