"""Runs — the durable history of apply attempts."""
