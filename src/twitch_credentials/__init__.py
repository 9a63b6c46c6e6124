"""Twitch API credential management."""

from twitch_credentials.__version__ import __version__

__all__ = ["__version__"]
