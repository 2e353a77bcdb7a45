"""Apply orchestration — turn a preset into a generated OpenClaw config.

One ``apply_preset`` call resolves the preset, tracks the attempt as a Run,
reconciles the preset's skills with the base config through the configured
adapter, and writes the overlay and generated config atomically. A failure
after the Run exists always leaves it ``failed`` before the error reaches the
caller.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from lobester.config import LobesterConfig
from lobester.errors import ApplyFailedError, InvalidRequestError, LobesterError, PresetNotFoundError
from lobester.presets.models import Preset
from lobester.presets.store import PresetRepository
from lobester.runs.models import Run, RunStatus
from lobester.runs.store import RunRepository
from lobester.runtime_log import RuntimeLog
from lobester.skills.models import Skill
from lobester.skills.store import SkillRepository
from lobester.storage import write_file_atomic
from lobester.sync.adapters import LoadoutAdapter
from lobester.sync.merge import Conflict, ConflictReason
from lobester.sync.wrappers import build_wrapper_snippets

logger = logging.getLogger(__name__)

MISSING_SKILL_MESSAGE = "Preset references a skill that is no longer installed."


@dataclass
class EnvVarHint:
    key: str
    value: str


@dataclass
class ApplyResponse:
    """What a caller needs to wire a downstream process to the new config."""

    base_config_path: Optional[str]
    generated_config_path: str
    overlay_path: str
    managed_skills_dir: str
    env_var: EnvVarHint
    wrapper_snippets: dict[str, dict[str, str]] = field(default_factory=dict)
    conflicts: list[Conflict] = field(default_factory=list)


@dataclass
class ApplyOutcome:
    response: ApplyResponse
    run: Run


def _dump(data: dict[str, Any]) -> str:
    return json.dumps(data, indent=2)


class ApplyOrchestrator:
    """Executes one "apply a preset" operation end to end."""

    def __init__(
        self,
        config: LobesterConfig,
        presets: PresetRepository,
        skills: SkillRepository,
        runs: RunRepository,
        adapter: LoadoutAdapter,
        runtime_log: Optional[RuntimeLog] = None,
    ) -> None:
        self.config = config
        self.presets = presets
        self.skills = skills
        self.runs = runs
        self.adapter = adapter
        self.runtime_log = runtime_log

    def resolve_preset(self, preset_ref: str) -> Preset:
        ref = (preset_ref or "").strip()
        if not ref:
            raise InvalidRequestError("Missing preset reference", code="invalid_preset_ref")
        preset = self.presets.get_by_ref(ref)
        if preset is None:
            raise PresetNotFoundError(f"Preset not found: {preset_ref}")
        return preset

    def apply_preset(self, preset_ref: str) -> ApplyOutcome:
        preset = self.resolve_preset(preset_ref)

        run = self.runs.create(title=f"Apply {preset.name}", preset_id=preset.id)
        self.runs.update(run.id, status=RunStatus.RUNNING)

        try:
            response = self._apply(preset)
        except Exception as exc:
            message = str(exc) or "Unknown apply failure"
            self._mark_failed(run, message)
            if isinstance(exc, LobesterError):
                raise
            raise ApplyFailedError(message) from exc

        summary = "\n".join(
            [
                f"Applied preset: {preset.name}",
                f"Generated config: {response.generated_config_path}",
                f"Overlay: {response.overlay_path}",
                f"Conflicts: {len(response.conflicts)}",
            ]
        )
        finished = self.runs.update(run.id, status=RunStatus.DONE, output_markdown=summary)
        self._record(
            "info",
            "apply.done",
            run_id=run.id,
            preset_id=preset.id,
            conflicts=len(response.conflicts),
        )
        return ApplyOutcome(response=response, run=finished or run)

    def _apply(self, preset: Preset) -> ApplyResponse:
        base_config_path, base_config = self.adapter.load_base_config()

        by_id: dict[str, Skill] = {skill.id: skill for skill in self.skills.list()}
        selected: list[Skill] = []
        missing: list[Conflict] = []
        for skill_id in preset.skill_ids:
            skill = by_id.get(skill_id)
            if skill is None:
                missing.append(
                    Conflict(
                        key=skill_id,
                        reason=ConflictReason.MISSING_SKILL,
                        message=MISSING_SKILL_MESSAGE,
                    )
                )
                continue
            selected.append(skill)

        managed_dir = self.config.skills_dir
        merge = self.adapter.build(base_config, selected, managed_dir)

        self.config.ensure_runtime_dirs()
        write_file_atomic(self.config.overlay_path, _dump(merge.overlay_config))
        write_file_atomic(self.config.generated_config_path, _dump(merge.generated_config))

        generated_path = str(self.config.generated_config_path)
        return ApplyResponse(
            base_config_path=str(base_config_path),
            generated_config_path=generated_path,
            overlay_path=str(self.config.overlay_path),
            managed_skills_dir=str(managed_dir),
            env_var=EnvVarHint(key=self.adapter.env_var_key, value=generated_path),
            wrapper_snippets=build_wrapper_snippets(self.adapter.env_var_key, generated_path),
            conflicts=missing + merge.conflicts,
        )

    def _mark_failed(self, run: Run, message: str) -> None:
        try:
            self.runs.update(run.id, status=RunStatus.FAILED, output_markdown=message)
        except Exception:
            logger.exception("Could not record failed run %s", run.id)
        self._record("error", "apply.failed", run_id=run.id, preset_id=run.preset_id, error=message)

    def _record(self, level: str, event: str, **meta: Any) -> None:
        """Write a runtime log event; a failing log never changes the outcome."""
        if self.runtime_log is None:
            return
        try:
            self.runtime_log.log(level, event, **meta)
        except Exception:
            logger.warning("Could not write runtime log event %s", event, exc_info=True)
