"""Entitlement data models."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Optional


class LimitsSource(str, Enum):
    CACHE = "cache"
    CLOUD = "cloud"
    FREE_FALLBACK = "free_fallback"


@dataclass(frozen=True)
class Limits:
    """Usage limits granted by a plan."""

    max_presets: int
    max_runs: int
    can_auto_update_skills: bool = False
    can_cloud_backup: bool = False
    can_conflict_warnings: bool = False

    def to_wire(self) -> dict[str, Any]:
        return {
            "maxPresets": self.max_presets,
            "maxRuns": self.max_runs,
            "canAutoUpdateSkills": self.can_auto_update_skills,
            "canCloudBackup": self.can_cloud_backup,
            "canConflictWarnings": self.can_conflict_warnings,
        }

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "Limits":
        return cls(
            max_presets=int(data["maxPresets"]),
            max_runs=int(data["maxRuns"]),
            can_auto_update_skills=bool(data.get("canAutoUpdateSkills", False)),
            can_cloud_backup=bool(data.get("canCloudBackup", False)),
            can_conflict_warnings=bool(data.get("canConflictWarnings", False)),
        )


FREE_LIMITS = Limits(
    max_presets=1,
    max_runs=10,
    can_auto_update_skills=False,
    can_cloud_backup=False,
    can_conflict_warnings=False,
)


_TEXT_FIELDS = ("token", "last_validated_at", "cached_until", "plan", "status")


@dataclass
class LicenseCacheRecord:
    """Persisted state of the last entitlement check.

    ``limits`` are trustworthy only while now < ``cached_until``.
    """

    token: Optional[str] = None
    last_validated_at: Optional[str] = None
    cached_until: Optional[str] = None
    plan: Optional[str] = None
    status: Optional[str] = None
    limits: Optional[Limits] = None

    def to_dict(self) -> dict[str, Any]:
        data = {k: v for k, v in asdict(self).items() if v is not None and k != "limits"}
        if self.limits is not None:
            data["limits"] = self.limits.to_wire()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LicenseCacheRecord":
        for field_name in _TEXT_FIELDS:
            value = data.get(field_name)
            if value is not None and not isinstance(value, str):
                raise ValueError(f"license cache field {field_name!r} must be a string")
        limits = data.get("limits")
        return cls(
            token=data.get("token"),
            last_validated_at=data.get("last_validated_at"),
            cached_until=data.get("cached_until"),
            plan=data.get("plan"),
            status=data.get("status"),
            limits=Limits.from_wire(limits) if isinstance(limits, dict) else None,
        )


@dataclass
class ValidationResponse:
    """Body returned by the cloud ``/api/license/validate`` endpoint."""

    valid: bool
    plan: Optional[str] = None
    status: Optional[str] = None
    limits: Optional[Limits] = None
    current_period_end: Optional[str] = None


@dataclass
class EffectiveLimits:
    is_pro: bool
    limits: Limits
    source: LimitsSource
