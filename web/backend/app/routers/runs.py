"""Runs router -- apply history."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from lobester.errors import InvalidRequestError, RunNotFoundError
from lobester.runs.models import Run, RunStatus
from lobester.workspace import Workspace
from web.backend.app.dependencies import get_workspace
from web.backend.app.models.api import (
    CreateRunRequest,
    RunEnvelope,
    RunListResponse,
    RunResponse,
    UpdateRunRequest,
)

router = APIRouter(prefix="/api/runs", tags=["runs"])


def run_response(run: Run) -> RunResponse:
    return RunResponse(
        id=run.id,
        title=run.title,
        preset_id=run.preset_id,
        status=run.status.value,
        created_at=run.created_at,
        updated_at=run.updated_at,
        output_markdown=run.output_markdown,
    )


def _parse_status(value: Optional[str]) -> Optional[RunStatus]:
    if value is None:
        return None
    try:
        return RunStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in RunStatus)
        raise InvalidRequestError(
            f"Unknown run status '{value}' (expected one of: {allowed})",
            code="invalid_run_payload",
        )


@router.get("", response_model=RunListResponse)
async def list_runs(workspace: Workspace = Depends(get_workspace)):
    """List runs, newest first."""
    return RunListResponse(runs=[run_response(r) for r in workspace.runs.list()])


@router.post("", response_model=RunEnvelope)
async def create_run(body: CreateRunRequest, workspace: Workspace = Depends(get_workspace)):
    if not body.title.strip() or not body.preset_id.strip():
        raise InvalidRequestError(
            "Run title and preset_id are required", code="invalid_run_payload"
        )
    run = workspace.runs.create(title=body.title, preset_id=body.preset_id)
    return RunEnvelope(run=run_response(run))


@router.patch("/{run_id}", response_model=RunEnvelope)
async def update_run(
    run_id: str,
    body: UpdateRunRequest,
    workspace: Workspace = Depends(get_workspace),
):
    run = workspace.runs.update(
        run_id,
        status=_parse_status(body.status),
        output_markdown=body.output_markdown,
    )
    if run is None:
        raise RunNotFoundError(f"Run not found: {run_id}")
    return RunEnvelope(run=run_response(run))
