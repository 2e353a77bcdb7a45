"""Entitlements — cached plan limits validated against the cloud service."""
