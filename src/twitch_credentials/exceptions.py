"""Exception hierarchy for twitch-credentials.

Only ``ValidationError`` is ever raised to callers of the credential manager.
Renewal failures are caught inside the manager, logged, and recorded on the
affected slot so callers can inspect them through ``CredentialManager.status``.
"""


class TwitchCredentialsError(Exception):
    """Base class for all errors raised by this package."""


class ValidationError(TwitchCredentialsError, ValueError):
    """Constructor input was malformed (e.g. a client ID that is too short)."""


class MissingCapabilityError(TwitchCredentialsError):
    """A renewal was requested for a slot that has no renewal secret.

    The manager reports this instead of raising it.
    """

    def __init__(self, kind: str, secret_name: str) -> None:
        self.kind = kind
        self.secret_name = secret_name
        super().__init__(f"Cannot renew {kind} access token: missing {secret_name}")


class TransportError(TwitchCredentialsError):
    """The identity provider could not be reached or rejected a token request.

    Attributes:
        status_code: HTTP status code, or None for network failures.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class UnauthorizedError(TwitchCredentialsError):
    """The Helix API rejected the request, or no usable credential was cached."""

    reason = "Unauthorized"

    def __init__(self, message: str) -> None:
        super().__init__(f"{self.reason} - {message}")


class UnexpectedResponseError(TwitchCredentialsError):
    """The Helix API answered successfully but without the expected data."""
