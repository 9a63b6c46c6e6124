"""Credential manager for Twitch App and User Access Tokens.

The manager owns two independent credential slots. Each slot caches a bearer
token, optionally holds the secret needed to renew it (client secret for the
App Access Token, refresh token for the User Access Token) and, while
automatic renewal is running, a recurring ``RenewalTimer``.

Callers read cached tokens synchronously through ``get_credential``. Network
calls happen only inside the renewal routines, which never raise: failures are
logged, recorded on the slot and leave the previous token in place.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from twitch_credentials.auth.models import (
    MIN_CLIENT_ID_LENGTH,
    ClientCredentialsGrant,
    ClientId,
    CredentialKind,
    CredentialStatus,
    InitialTokens,
    ManagerOptions,
    RefreshTokenGrant,
    TokenGrant,
    TokenResponse,
)
from twitch_credentials.auth.timer import RenewalTimer
from twitch_credentials.auth.transport import TokenRequester, TokenTransport
from twitch_credentials.exceptions import (
    MissingCapabilityError,
    TransportError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# App Access Tokens live for roughly 60 days and report no expiry we act on
APP_TOKEN_RENEWAL_INTERVAL = 60 * 60 * 24 * 10

# Renew User Access Tokens this long before they expire
USER_TOKEN_EXPIRY_MARGIN = 60 * 60

# Used when the token endpoint omits expires_in for a user token
DEFAULT_USER_TOKEN_LIFETIME = 4 * 60 * 60

MIN_RENEWAL_DELAY = 1.0

_client_id_adapter = TypeAdapter(ClientId)


def user_renewal_delay(expires_in: int | None) -> float:
    """Compute the delay before the next User Access Token renewal.

    Normally ``expires_in - USER_TOKEN_EXPIRY_MARGIN``. Lifetimes shorter than
    the margin are renewed halfway through, never sooner than
    ``MIN_RENEWAL_DELAY``.

    Args:
        expires_in: Lifetime reported by the token endpoint, in seconds.

    Returns:
        Delay in seconds, always positive.
    """
    lifetime = DEFAULT_USER_TOKEN_LIFETIME if expires_in is None else expires_in
    delay = float(lifetime - USER_TOKEN_EXPIRY_MARGIN)
    if delay <= 0:
        delay = max(lifetime / 2, MIN_RENEWAL_DELAY)
        logger.warning(
            f"User access token lifetime ({lifetime}s) is shorter than the "
            f"{USER_TOKEN_EXPIRY_MARGIN}s renewal margin; renewing in {delay}s"
        )
    return delay


@dataclass
class CredentialSlot:
    """State for one credential kind.

    Attributes:
        kind: Which credential this slot holds.
        current_value: Cached bearer token, None until one is known.
        renewal_secret: Client secret or refresh token; enables renewal.
        auto_renew_enabled: Whether ``initialize()`` starts the renewal cycle.
        timer: Active recurring renewal, if any.
        last_error: Error from the most recent failed renewal attempt.
        last_renewed_at: Time of the most recent successful renewal.
    """

    kind: CredentialKind
    current_value: str | None = None
    renewal_secret: str | None = None
    auto_renew_enabled: bool = False
    timer: RenewalTimer | None = None
    last_error: Exception | None = None
    last_renewed_at: datetime | None = None

    @property
    def status(self) -> CredentialStatus:
        if self.current_value is None:
            return CredentialStatus.FAILED if self.last_error else CredentialStatus.MISSING
        return CredentialStatus.STALE if self.last_error else CredentialStatus.VALID

    @property
    def timer_active(self) -> bool:
        return self.timer is not None and self.timer.active

    def cancel_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None


class CredentialManager:
    """Caches and renews Twitch App and User Access Tokens.

    Attributes:
        application_slot: State of the App Access Token.
        user_slot: State of the User Access Token.

    Example:
        ```python
        manager = CredentialManager(
            "abcdefghij0123456789",
            tokens=InitialTokens(refresh_token="..."),
            options=ManagerOptions(
                client_secret="...",  # pragma: allowlist secret
                refresh_app_access_token=True,
                refresh_user_access_token=True,
            ),
        )
        await manager.initialize()

        token = manager.get_credential(CredentialKind.USER)
        ```
    """

    def __init__(
        self,
        client_id: str,
        tokens: InitialTokens | None = None,
        options: ManagerOptions | None = None,
        transport: TokenRequester | None = None,
    ) -> None:
        """Initialize the manager. No network calls are made here.

        Args:
            client_id: Twitch application client ID.
            tokens: Tokens that already exist.
            options: Client secret and auto-renewal opt-ins.
            transport: Token requester. A ``TokenTransport`` owned by the
                manager is created when omitted.

        Raises:
            ValidationError: If the client ID is shorter than 10 characters.
        """
        try:
            self._client_id: str = _client_id_adapter.validate_python(client_id)
        except PydanticValidationError as e:
            raise ValidationError(
                f"client_id must be a string of at least {MIN_CLIENT_ID_LENGTH} characters"
            ) from e

        tokens = tokens or InitialTokens()
        options = options or ManagerOptions()
        _log_capabilities(tokens, options)

        self.application_slot = CredentialSlot(
            kind=CredentialKind.APPLICATION,
            current_value=tokens.app_access_token,
            renewal_secret=options.client_secret or None,
            auto_renew_enabled=bool(options.client_secret)
            and options.refresh_app_access_token,
        )
        self.user_slot = CredentialSlot(
            kind=CredentialKind.USER,
            current_value=tokens.user_access_token,
            renewal_secret=tokens.refresh_token or None,
            auto_renew_enabled=bool(tokens.refresh_token)
            and options.refresh_user_access_token,
        )

        self._owned_transport: TokenTransport | None = None
        if transport is None:
            transport = self._owned_transport = TokenTransport()
        self._transport: TokenRequester = transport
        self._background_tasks: set[asyncio.Task] = set()

    async def initialize(self) -> None:
        """Run the first renewal for every slot that opted into auto-renewal."""
        if self.application_slot.auto_renew_enabled:
            await self.start_application_token_refresh()

        if self.user_slot.auto_renew_enabled:
            await self.start_user_token_refresh()

    async def close(self) -> None:
        """Cancel all timers and pending restarts, and close an owned transport.

        Waits for an in-flight renewal to finish before the transport is closed.
        """
        pending = [slot.timer.task for slot in (self.application_slot, self.user_slot) if slot.timer]
        self.application_slot.cancel_timer()
        self.user_slot.cancel_timer()
        for task in self._background_tasks:
            task.cancel()
        pending.extend(self._background_tasks)

        current = asyncio.current_task()
        await asyncio.gather(*(t for t in pending if t is not current), return_exceptions=True)

        if self._owned_transport is not None:
            await self._owned_transport.close()

    # ------------------------------------------------------------------
    # Control API
    # ------------------------------------------------------------------

    async def start_application_token_refresh(self) -> None:
        """Renew the App Access Token now and (re)start its renewal timer."""
        self.application_slot.cancel_timer()
        await self._renew_application_token()

    def stop_application_token_refresh(self) -> None:
        """Stop the App Access Token renewal timer, if running."""
        self.application_slot.cancel_timer()

    async def renew_application_token_once(self) -> None:
        """Renew the App Access Token without touching its timer."""
        await self._renew_application_token(single_shot=True)

    async def start_user_token_refresh(self) -> None:
        """Renew the User Access Token now and (re)start its renewal timer."""
        self.user_slot.cancel_timer()
        await self._renew_user_token()

    def stop_user_token_refresh(self) -> None:
        """Stop the User Access Token renewal timer, if running."""
        self.user_slot.cancel_timer()

    async def renew_user_token_once(self) -> None:
        """Renew the User Access Token without touching its timer."""
        await self._renew_user_token(single_shot=True)

    def get_credential(self, kind: CredentialKind) -> str | None:
        """Return the cached token of the given kind."""
        return self.slot(kind).current_value

    def status(self, kind: CredentialKind) -> CredentialStatus:
        """Return the observable state of the given credential."""
        return self.slot(kind).status

    # ------------------------------------------------------------------
    # Accessors and mutators
    # ------------------------------------------------------------------

    @property
    def client_id(self) -> str:
        return self._client_id

    @property
    def app_access_token(self) -> str | None:
        return self.application_slot.current_value

    @app_access_token.setter
    def app_access_token(self, token: str | None) -> None:
        self.application_slot.current_value = token

    @property
    def user_access_token(self) -> str | None:
        return self.user_slot.current_value

    @user_access_token.setter
    def user_access_token(self, token: str | None) -> None:
        self.user_slot.current_value = token

    @property
    def client_secret(self) -> str | None:
        return self.application_slot.renewal_secret

    @client_secret.setter
    def client_secret(self, secret: str | None) -> None:
        self._set_renewal_secret(
            self.application_slot, secret, self.start_application_token_refresh
        )

    @property
    def refresh_token(self) -> str | None:
        return self.user_slot.renewal_secret

    @refresh_token.setter
    def refresh_token(self, token: str | None) -> None:
        self._set_renewal_secret(self.user_slot, token, self.start_user_token_refresh)

    # ------------------------------------------------------------------
    # Renewal
    # ------------------------------------------------------------------

    async def _renew_application_token(
        self, single_shot: bool = False, timer: RenewalTimer | None = None
    ) -> None:
        """Obtain a new App Access Token via the client-credentials grant.

        Args:
            single_shot: Renew once without arming the timer.
            timer: The timer whose tick triggered this renewal, if any.
        """
        slot = self.application_slot
        if slot.renewal_secret is None:
            self._report_missing(slot, "client secret")
            return

        grant = ClientCredentialsGrant(client_id=self._client_id, client_secret=slot.renewal_secret)
        token = await self._request(slot, grant)
        if token is None:
            return

        self._store(slot, token)
        if single_shot:
            return

        self._arm(slot, APP_TOKEN_RENEWAL_INTERVAL, self._renew_application_token, timer)

    async def _renew_user_token(
        self, single_shot: bool = False, timer: RenewalTimer | None = None
    ) -> None:
        """Obtain a new User Access Token via the refresh-token grant.

        Args:
            single_shot: Renew once without arming the timer.
            timer: The timer whose tick triggered this renewal, if any.
        """
        slot = self.user_slot
        if slot.renewal_secret is None:
            self._report_missing(slot, "refresh token")
            return

        grant = RefreshTokenGrant(
            client_id=self._client_id,
            refresh_token=slot.renewal_secret,
            client_secret=self.application_slot.renewal_secret,
        )
        token = await self._request(slot, grant)
        if token is None:
            return

        self._store(slot, token)

        # Twitch may rotate the refresh token; keep the newest unless the secret
        # was cleared or replaced while the request was in flight
        if token.refresh_token and slot.renewal_secret == grant.refresh_token:
            slot.renewal_secret = token.refresh_token

        if single_shot:
            return

        self._arm(slot, user_renewal_delay(token.expires_in), self._renew_user_token, timer)

    async def _request(self, slot: CredentialSlot, grant: TokenGrant) -> TokenResponse | None:
        """Send a grant, recording and logging a failure instead of raising."""
        try:
            return await self._transport.request_token(grant)
        except TransportError as e:
            slot.last_error = e
            logger.error(f"Failed to renew {slot.kind.value} access token: {e}")
            return None

    def _store(self, slot: CredentialSlot, token: TokenResponse) -> None:
        slot.current_value = token.access_token
        slot.last_error = None
        slot.last_renewed_at = datetime.now(timezone.utc)
        logger.info(f"Renewed {slot.kind.value} access token")

    def _arm(
        self,
        slot: CredentialSlot,
        delay: float,
        renew: Callable[..., Awaitable[None]],
        origin: RenewalTimer | None,
    ) -> None:
        """Schedule the next renewal of ``slot`` in ``delay`` seconds.

        A tick of the slot's own timer just updates that timer's interval. A
        tick of a timer that was cancelled while it was in flight arms nothing.
        Any other caller replaces the slot's timer.
        """
        if slot.renewal_secret is None:
            return

        if origin is not None:
            if not origin.active:
                return
            if slot.timer is origin:
                origin.interval = delay
                logger.debug(f"Next {slot.kind.value} token renewal in {delay}s")
                return

        slot.cancel_timer()
        slot.timer = RenewalTimer(
            delay,
            lambda timer: renew(timer=timer),
            name=f"{slot.kind.value}-token",
        )
        logger.debug(f"Next {slot.kind.value} token renewal in {delay}s")

    def _report_missing(self, slot: CredentialSlot, secret_name: str) -> None:
        error = MissingCapabilityError(slot.kind.value, secret_name)
        slot.last_error = error
        logger.error(str(error))

    def _set_renewal_secret(
        self,
        slot: CredentialSlot,
        secret: str | None,
        restart: Callable[[], Awaitable[None]],
    ) -> None:
        """Replace a slot's renewal secret.

        Clearing the secret stops the slot's timer. Replacing an existing
        secret restarts the renewal cycle in the background.
        """
        if not secret:
            slot.cancel_timer()
            slot.renewal_secret = None
            logger.info(f"Cleared {slot.kind.value} renewal secret; automatic renewal stopped")
            return

        had_secret = slot.renewal_secret is not None
        slot.renewal_secret = secret
        if had_secret:
            self._spawn(restart, f"{slot.kind.value}-token-restart")

    def _spawn(self, factory: Callable[[], Awaitable[None]], name: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.info(f"No running event loop; {name} deferred until a refresh is started")
            return

        task = loop.create_task(factory(), name=name)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    def slot(self, kind: CredentialKind) -> CredentialSlot:
        """Return the slot holding the given credential kind."""
        if kind is CredentialKind.APPLICATION:
            return self.application_slot
        return self.user_slot


def _log_capabilities(tokens: InitialTokens, options: ManagerOptions) -> None:
    """Warn about credential classes that can never be obtained."""
    has_app = bool(tokens.app_access_token or options.client_secret)
    has_user = bool(tokens.user_access_token or tokens.refresh_token)

    if not has_app and not has_user:
        logger.warning(
            "No token or client secret provided. Only calls that accept a JWT "
            "(Extensions endpoints) will be possible."
        )
        return

    if not has_app:
        logger.info(
            "No App Access Token or client secret provided. Calls that only accept "
            "App Access Tokens will fail."
        )
    if not has_user:
        logger.info(
            "No User Access Token or refresh token provided. Calls that only accept "
            "User Access Tokens will fail."
        )
