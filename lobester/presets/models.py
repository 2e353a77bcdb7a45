"""Preset ("engram") data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class Preset:
    """A named, ordered selection of skill ids.

    ``skill_ids`` may reference skills that were removed since; the apply
    flow reports those as ``missing_skill`` conflicts. ``graph`` is the
    dashboard's node/edge layout and is stored as-is.
    """

    id: str
    name: str
    skill_ids: list[str] = field(default_factory=list)
    graph: Optional[dict[str, Any]] = None
    created_at: str = ""
    updated_at: str = ""


def preset_to_dict(preset: Preset) -> dict:
    data = {
        "id": preset.id,
        "name": preset.name,
        "skill_ids": list(preset.skill_ids),
        "created_at": preset.created_at,
        "updated_at": preset.updated_at,
    }
    if preset.graph is not None:
        data["graph"] = preset.graph
    return data


def dict_to_preset(data: dict) -> Preset:
    return Preset(
        id=data["id"],
        name=data.get("name", ""),
        skill_ids=list(data.get("skill_ids", [])),
        graph=data.get("graph"),
        created_at=data.get("created_at", ""),
        updated_at=data.get("updated_at", ""),
    )
