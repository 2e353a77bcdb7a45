"""LobeSter — local skill manager and OpenClaw config connector."""

__version__ = "0.1.0"
