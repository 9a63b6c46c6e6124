"""Command-line interface for twitch-credentials."""
