"""Skills router -- list, install, and remove managed skills."""

from __future__ import annotations

import asyncio
import tempfile
from pathlib import Path

from fastapi import APIRouter, Depends

from lobester.errors import InvalidRequestError, SkillNotFoundError
from lobester.skills.models import BatchInstallResult, Skill, SkillSource, SourceKind
from lobester.workspace import Workspace
from web.backend.app.dependencies import get_workspace
from web.backend.app.models.api import (
    BatchResultResponse,
    InstallBatchRequest,
    InstallBatchResponse,
    InstallSkillRequest,
    InstallSkillResponse,
    RemovedResponse,
    SkillListResponse,
    SkillResponse,
    SkillSourceModel,
)

router = APIRouter(prefix="/api/skills", tags=["skills"])


def _skill_response(skill: Skill) -> SkillResponse:
    """Convert a Skill dataclass to a Pydantic response model."""
    return SkillResponse(
        id=skill.id,
        name=skill.name,
        key=skill.key,
        local_path=skill.local_path,
        source=SkillSourceModel(kind=skill.source.kind.value, ref=skill.source.ref),
        installed_at=skill.installed_at,
        version=skill.version,
        updated_at=skill.updated_at,
    )


def _batch_response(result: BatchInstallResult) -> BatchResultResponse:
    return BatchResultResponse(
        ref=result.ref,
        status=result.status.value,
        skill=_skill_response(result.skill) if result.skill else None,
        error=result.error,
    )


@router.get("", response_model=SkillListResponse)
async def list_skills(workspace: Workspace = Depends(get_workspace)):
    """List installed skills."""
    return SkillListResponse(skills=[_skill_response(s) for s in workspace.skills.list()])


@router.post("/install", response_model=InstallSkillResponse)
async def install_skill(body: InstallSkillRequest, workspace: Workspace = Depends(get_workspace)):
    """Install a skill from a local folder or a public GitHub repo."""
    if not body.source.kind.strip() or not body.source.ref.strip():
        raise InvalidRequestError("Missing source.kind or source.ref")
    try:
        kind = SourceKind(body.source.kind.strip().lower())
    except ValueError:
        raise InvalidRequestError(
            "Only local and public github sources are supported",
            code="unsupported_source",
        )
    source = SkillSource(kind=kind, ref=body.source.ref)
    if kind == SourceKind.GITHUB:
        # The download runs on a worker thread; state writes stay on the loop.
        with tempfile.TemporaryDirectory(prefix="lobester-gh-") as tmp:
            extracted = await asyncio.to_thread(workspace.skills.fetch_github, source.ref, Path(tmp))
            skill = workspace.skills.install_fetched(extracted, source)
    else:
        skill = workspace.skills.install(source)
    workspace.runtime_log.info("skill.installed", skill_id=skill.id, key=skill.key)
    return InstallSkillResponse(skill=_skill_response(skill))


@router.post("/install-local-batch", response_model=InstallBatchResponse)
async def install_local_batch(body: InstallBatchRequest, workspace: Workspace = Depends(get_workspace)):
    """Install every skill folder found under ``root_path``."""
    if not body.root_path.strip():
        raise InvalidRequestError("Missing root_path")
    results = workspace.skills.install_local_batch(body.root_path)
    return InstallBatchResponse(results=[_batch_response(r) for r in results])


@router.delete("/{skill_id}", response_model=RemovedResponse)
async def remove_skill(skill_id: str, workspace: Workspace = Depends(get_workspace)):
    """Remove a skill record and its managed content."""
    if not workspace.skills.remove(skill_id):
        raise SkillNotFoundError(f"Skill not found: {skill_id}")
    workspace.runtime_log.info("skill.removed", skill_id=skill_id)
    return RemovedResponse(removed_id=skill_id)
