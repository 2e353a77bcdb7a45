"""License router -- effective limits and token storage."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from lobester.errors import InvalidRequestError
from lobester.license.models import EffectiveLimits
from lobester.workspace import Workspace
from web.backend.app.dependencies import get_workspace
from web.backend.app.models.api import LicenseStatusResponse, LimitsResponse, SetTokenRequest

router = APIRouter(prefix="/api/license", tags=["license"])


def _status_response(result: EffectiveLimits) -> LicenseStatusResponse:
    limits = result.limits
    return LicenseStatusResponse(
        is_pro=result.is_pro,
        limits=LimitsResponse(
            max_presets=limits.max_presets,
            max_runs=limits.max_runs,
            can_auto_update_skills=limits.can_auto_update_skills,
            can_cloud_backup=limits.can_cloud_backup,
            can_conflict_warnings=limits.can_conflict_warnings,
        ),
        source=result.source.value,
    )


@router.get("/status", response_model=LicenseStatusResponse)
async def license_status(workspace: Workspace = Depends(get_workspace)):
    return _status_response(await workspace.entitlements.get_effective_limits())


@router.post("/token", response_model=LicenseStatusResponse)
@router.post("/setToken", response_model=LicenseStatusResponse, include_in_schema=False)
async def set_token(body: SetTokenRequest, workspace: Workspace = Depends(get_workspace)):
    """Store a license token and return the freshly validated limits."""
    token = body.token.strip()
    if not token:
        raise InvalidRequestError("Token is required", code="invalid_token")
    workspace.entitlements.set_token(token)
    return _status_response(await workspace.entitlements.get_effective_limits())
