"""Merge engine — reconcile a user-owned base config with managed skills.

The base config is never mutated and its entries always win: a skill whose
key is already declared becomes an ``existing_entry`` conflict instead of an
overwrite. Output order follows skill input order.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Iterable

from lobester.skills.models import Skill


class ConflictReason(str, Enum):
    EXISTING_ENTRY = "existing_entry"
    MISSING_SKILL = "missing_skill"


@dataclass
class Conflict:
    """A non-fatal merge finding, reported alongside a successful result."""

    key: str
    reason: ConflictReason
    message: str


@dataclass
class MergeResult:
    overlay_config: dict[str, Any]
    generated_config: dict[str, Any]
    conflicts: list[Conflict] = field(default_factory=list)


def _as_object(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [entry for entry in value if isinstance(entry, str)]


class MergeEngine:
    """Pure reconciliation of ``skills.load.extraDirs`` and ``skills.entries``."""

    def build(
        self,
        base_config: dict[str, Any],
        skills: Iterable[Skill],
        managed_skills_dir: str | Path,
    ) -> MergeResult:
        managed_dir = str(managed_skills_dir)
        generated = copy.deepcopy(base_config)
        generated_skills = dict(_as_object(generated.get("skills")))
        generated_load = dict(_as_object(generated_skills.get("load")))
        generated_entries = dict(_as_object(generated_skills.get("entries")))

        extra_dirs = _as_string_list(generated_load.get("extraDirs"))
        if managed_dir not in extra_dirs:
            extra_dirs.append(managed_dir)

        base_keys = set(generated_entries)
        seen: set[str] = set()
        overlay_entries: dict[str, Any] = {}
        conflicts: list[Conflict] = []

        for skill in skills:
            if skill.key in seen:
                continue
            seen.add(skill.key)
            if skill.key in base_keys:
                conflicts.append(
                    Conflict(
                        key=skill.key,
                        reason=ConflictReason.EXISTING_ENTRY,
                        message="Base config already contains this entry key; kept base value.",
                    )
                )
                continue

            generated_entries[skill.key] = {"enabled": True, "path": skill.local_path}
            overlay_entries[skill.key] = {"enabled": True, "path": skill.local_path}

        generated_load["extraDirs"] = extra_dirs
        generated_skills["load"] = generated_load
        generated_skills["entries"] = generated_entries
        generated["skills"] = generated_skills

        overlay = {
            "skills": {
                "load": {"extraDirs": list(extra_dirs)},
                "entries": overlay_entries,
            },
            "lobester": {
                "generatedAt": datetime.now(timezone.utc).isoformat(),
                "managedSkillsDir": managed_dir,
            },
        }

        return MergeResult(
            overlay_config=overlay,
            generated_config=generated,
            conflicts=conflicts,
        )
