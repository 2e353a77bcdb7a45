"""Entitlement cache with staged grace windows.

Effective limits are evaluated on every query, in order:

1. Cached limits still inside their window -> returned as ``cache``.
2. No token stored -> free limits as ``free_fallback``.
3. Otherwise ask the cloud service:
   - valid: store plan and limits for 7 days, return as ``cloud``;
   - invalid: store free limits for 1 hour, return as ``cloud``;
   - unreachable: extend stale limits by 24 hours and return them as
     ``cache``, or fall back to free limits when nothing was cached.

Remote failures never propagate out of ``get_effective_limits``.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional

import httpx

from lobester.errors import RemoteValidationError
from lobester.license.models import (
    FREE_LIMITS,
    EffectiveLimits,
    LicenseCacheRecord,
    Limits,
    LimitsSource,
    ValidationResponse,
)
from lobester.storage import write_json_atomic

logger = logging.getLogger(__name__)

VALID_WINDOW = timedelta(days=7)
OUTAGE_WINDOW = timedelta(hours=24)
INVALID_WINDOW = timedelta(hours=1)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _is_pro(plan: Optional[str]) -> bool:
    return (plan or "free") != "free"


class CloudLicenseClient:
    """Talks to the LobeSter cloud license endpoint."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def validate(self, token: str) -> ValidationResponse:
        """POST the token for validation.

        Raises ``RemoteValidationError`` on transport errors, 5xx responses,
        or a body that is not a JSON object.
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    f"{self.base_url}/api/license/validate",
                    json={"token": token},
                )
        except httpx.HTTPError as exc:
            raise RemoteValidationError(f"License service unreachable: {exc}") from exc

        if resp.status_code >= 500:
            raise RemoteValidationError(f"License service error: {resp.status_code}")

        try:
            data = resp.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise RemoteValidationError("License service returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise RemoteValidationError("License service returned an unexpected payload")

        limits = data.get("limits")
        try:
            parsed_limits = Limits.from_wire(limits) if isinstance(limits, dict) else None
        except (KeyError, TypeError, ValueError) as exc:
            raise RemoteValidationError(f"License service returned malformed limits: {exc}") from exc

        return ValidationResponse(
            valid=bool(data.get("valid")),
            plan=data.get("plan"),
            status=data.get("status"),
            limits=parsed_limits,
            current_period_end=data.get("currentPeriodEnd"),
        )


class EntitlementCache:
    """Caches remote entitlement checks in ``state/license.json``."""

    def __init__(
        self,
        path: str | Path,
        client: CloudLicenseClient,
        clock: Optional[Clock] = None,
    ) -> None:
        self.path = Path(path)
        self.client = client
        self._now = clock or _utcnow

    def load(self) -> LicenseCacheRecord:
        """Read the cache; an absent or unreadable file is an empty cache."""
        if not self.path.exists():
            return LicenseCacheRecord()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError("license cache is not an object")
            return LicenseCacheRecord.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Ignoring unreadable license cache %s: %s", self.path, exc)
            return LicenseCacheRecord()

    def save(self, record: LicenseCacheRecord) -> None:
        write_json_atomic(self.path, record.to_dict())

    def set_token(self, token: str) -> None:
        """Store a new token and force re-validation on the next query."""
        record = self.load()
        record.token = token
        record.last_validated_at = None
        record.cached_until = None
        self.save(record)

    def _is_within(self, until: Optional[str]) -> bool:
        deadline = _parse_timestamp(until)
        return deadline is not None and self._now() < deadline

    async def get_effective_limits(self) -> EffectiveLimits:
        record = self.load()

        if record.limits is not None and self._is_within(record.cached_until):
            return EffectiveLimits(_is_pro(record.plan), record.limits, LimitsSource.CACHE)

        if not record.token:
            return EffectiveLimits(False, FREE_LIMITS, LimitsSource.FREE_FALLBACK)

        try:
            result = await self.client.validate(record.token)
        except RemoteValidationError as exc:
            logger.warning("License validation failed: %s", exc)
            return self._degrade(record)

        now = self._now()
        if not result.valid or result.limits is None:
            self.save(
                LicenseCacheRecord(
                    token=record.token,
                    last_validated_at=now.isoformat(),
                    cached_until=(now + INVALID_WINDOW).isoformat(),
                    plan="free",
                    status="invalid",
                    limits=FREE_LIMITS,
                )
            )
            return EffectiveLimits(False, FREE_LIMITS, LimitsSource.CLOUD)

        self.save(
            LicenseCacheRecord(
                token=record.token,
                last_validated_at=now.isoformat(),
                cached_until=(now + VALID_WINDOW).isoformat(),
                plan=result.plan,
                status=result.status,
                limits=result.limits,
            )
        )
        return EffectiveLimits(_is_pro(result.plan), result.limits, LimitsSource.CLOUD)

    def _degrade(self, record: LicenseCacheRecord) -> EffectiveLimits:
        if record.limits is None:
            return EffectiveLimits(False, FREE_LIMITS, LimitsSource.FREE_FALLBACK)

        record.cached_until = (self._now() + OUTAGE_WINDOW).isoformat()
        try:
            self.save(record)
        except OSError as exc:
            logger.warning("Could not extend license cache window: %s", exc)
        return EffectiveLimits(_is_pro(record.plan), record.limits, LimitsSource.CACHE)
