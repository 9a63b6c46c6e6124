"""Helix API client consuming cached Twitch credentials."""

from twitch_credentials.api.client import HELIX_API_BASE, HelixClient
from twitch_credentials.api.models import CommercialResult, HelixStream, HelixUser

__all__ = [
    "HelixClient",
    "HelixUser",
    "HelixStream",
    "CommercialResult",
    "HELIX_API_BASE",
]
