"""Run data models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class RunStatus(str, Enum):
    """queued -> running -> done | failed."""

    QUEUED = "queued"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


@dataclass
class Run:
    """One apply attempt and its outcome."""

    id: str
    title: str
    preset_id: str
    status: RunStatus = RunStatus.QUEUED
    created_at: str = ""
    updated_at: str = ""
    output_markdown: Optional[str] = None

    def __post_init__(self) -> None:
        if isinstance(self.status, str) and not isinstance(self.status, RunStatus):
            self.status = RunStatus(self.status)


def run_to_dict(run: Run) -> dict:
    data = {
        "id": run.id,
        "title": run.title,
        "preset_id": run.preset_id,
        "status": run.status.value,
        "created_at": run.created_at,
        "updated_at": run.updated_at,
    }
    if run.output_markdown is not None:
        data["output_markdown"] = run.output_markdown
    return data


def dict_to_run(data: dict) -> Run:
    return Run(
        id=data["id"],
        title=data.get("title", ""),
        preset_id=data.get("preset_id", ""),
        status=RunStatus(data.get("status", "queued")),
        created_at=data.get("created_at", ""),
        updated_at=data.get("updated_at", ""),
        output_markdown=data.get("output_markdown"),
    )
