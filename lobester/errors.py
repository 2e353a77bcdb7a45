"""Error taxonomy for LobeSter.

Every domain error carries a stable ``code`` and an HTTP ``status_code`` so
the API boundary can surface it unchanged.
"""

from __future__ import annotations

from typing import Any, Optional


class LobesterError(Exception):
    """Base class for all domain errors."""

    code = "internal_error"
    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details


class InvalidRequestError(LobesterError):
    code = "invalid_request"
    status_code = 400


class PresetNotFoundError(LobesterError):
    code = "preset_not_found"
    status_code = 404


class SkillNotFoundError(LobesterError):
    code = "skill_not_found"
    status_code = 404


class RunNotFoundError(LobesterError):
    code = "run_not_found"
    status_code = 404


class AmbiguousReferenceError(LobesterError):
    code = "ambiguous_reference"
    status_code = 409


class CorruptStateError(LobesterError):
    """A persisted state file is unreadable or does not match its schema."""

    code = "corrupt_state"
    status_code = 500


class BaseConfigError(LobesterError):
    """The externally-owned base config is missing or malformed."""

    code = "base_config_unavailable"
    status_code = 400


class SkillInstallError(LobesterError):
    code = "skill_install_failed"
    status_code = 400


class UnknownAdapterError(LobesterError):
    code = "unknown_adapter"
    status_code = 400


class ApplyFailedError(LobesterError):
    """Catch-all for unexpected failures during an apply."""

    code = "apply_failed"
    status_code = 400


class RemoteValidationError(LobesterError):
    """The entitlement service could not be reached or answered garbage.

    Absorbed by ``EntitlementCache``; never surfaced to callers.
    """

    code = "remote_validation_failed"
    status_code = 502
