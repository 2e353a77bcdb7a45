"""Presets router -- CRUD for named skill presets (engrams)."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from lobester.errors import PresetNotFoundError
from lobester.presets.models import Preset
from lobester.workspace import Workspace
from web.backend.app.dependencies import get_workspace
from web.backend.app.models.api import (
    CreatePresetRequest,
    PresetEnvelope,
    PresetListResponse,
    PresetResponse,
    RemovedResponse,
    UpdatePresetRequest,
)

router = APIRouter(prefix="/api/presets", tags=["presets"])


def _preset_response(preset: Preset) -> PresetResponse:
    return PresetResponse(
        id=preset.id,
        name=preset.name,
        skill_ids=preset.skill_ids,
        graph=preset.graph,
        created_at=preset.created_at,
        updated_at=preset.updated_at,
    )


@router.get("", response_model=PresetListResponse)
async def list_presets(workspace: Workspace = Depends(get_workspace)):
    return PresetListResponse(presets=[_preset_response(p) for p in workspace.presets.list()])


@router.post("", response_model=PresetEnvelope)
async def create_preset(body: CreatePresetRequest, workspace: Workspace = Depends(get_workspace)):
    """Create a preset. Skill ids are stored as given."""
    preset = workspace.presets.create(name=body.name, skill_ids=body.skill_ids, graph=body.graph)
    return PresetEnvelope(preset=_preset_response(preset))


@router.patch("/{preset_id}", response_model=PresetEnvelope)
async def update_preset(
    preset_id: str,
    body: UpdatePresetRequest,
    workspace: Workspace = Depends(get_workspace),
):
    preset = workspace.presets.update(
        preset_id,
        name=body.name,
        skill_ids=body.skill_ids,
        graph=body.graph,
    )
    if preset is None:
        raise PresetNotFoundError(f"Preset not found: {preset_id}")
    return PresetEnvelope(preset=_preset_response(preset))


@router.delete("/{preset_id}", response_model=RemovedResponse)
async def delete_preset(preset_id: str, workspace: Workspace = Depends(get_workspace)):
    if not workspace.presets.remove(preset_id):
        raise PresetNotFoundError(f"Preset not found: {preset_id}")
    return RemovedResponse(removed_id=preset_id)
