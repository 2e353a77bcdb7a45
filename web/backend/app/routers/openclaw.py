"""OpenClaw router -- apply a preset to the generated config."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from lobester.errors import InvalidRequestError
from lobester.workspace import Workspace
from web.backend.app.dependencies import get_workspace
from web.backend.app.models.api import (
    ApplyPresetRequest,
    ApplyPresetResponse,
    ConflictResponse,
    EnvVarResponse,
)
from web.backend.app.routers.runs import run_response

router = APIRouter(prefix="/api/openclaw", tags=["openclaw"])


@router.post("/applyPreset", response_model=ApplyPresetResponse)
async def apply_preset(body: ApplyPresetRequest, workspace: Workspace = Depends(get_workspace)):
    """Merge the preset's skills over the base config and write the result.

    Accepts ``preset_ref`` (id or name) or the older ``preset_id`` field.
    """
    if not body.preset_ref:
        raise InvalidRequestError("Missing preset_ref")

    outcome = workspace.orchestrator.apply_preset(body.preset_ref)
    response = outcome.response
    return ApplyPresetResponse(
        base_config_path=response.base_config_path,
        generated_config_path=response.generated_config_path,
        overlay_path=response.overlay_path,
        managed_skills_dir=response.managed_skills_dir,
        env_var=EnvVarResponse(key=response.env_var.key, value=response.env_var.value),
        wrapper_snippets=response.wrapper_snippets,
        conflicts=[
            ConflictResponse(key=c.key, reason=c.reason.value, message=c.message)
            for c in response.conflicts
        ],
        run=run_response(outcome.run),
    )
