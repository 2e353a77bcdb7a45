"""Pydantic models for API request/response serialization.

These models mirror the LobeSter dataclasses and provide JSON
serialization for the FastAPI endpoints.  Every successful response
carries ``ok: true``; failures use ``ErrorResponse``.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field


class ErrorResponse(BaseModel):
    ok: bool = False
    code: str
    error: str
    request_id: str = ""
    details: Optional[Any] = None


# ---------------------------------------------------------------------------
# Skill models
# ---------------------------------------------------------------------------


class SkillSourceModel(BaseModel):
    kind: str
    ref: str


class SkillResponse(BaseModel):
    """Mirrors lobester.skills.models.Skill."""

    id: str
    name: str
    key: str
    local_path: str
    source: SkillSourceModel
    installed_at: str
    version: Optional[str] = None
    updated_at: Optional[str] = None


class SkillListResponse(BaseModel):
    ok: bool = True
    skills: list[SkillResponse] = Field(default_factory=list)


class InstallSkillRequest(BaseModel):
    source: SkillSourceModel


class InstallSkillResponse(BaseModel):
    ok: bool = True
    skill: SkillResponse


class InstallBatchRequest(BaseModel):
    root_path: str


class BatchResultResponse(BaseModel):
    ref: str
    status: str
    skill: Optional[SkillResponse] = None
    error: str = ""


class InstallBatchResponse(BaseModel):
    ok: bool = True
    results: list[BatchResultResponse] = Field(default_factory=list)


class RemovedResponse(BaseModel):
    ok: bool = True
    removed_id: str


# ---------------------------------------------------------------------------
# Preset models
# ---------------------------------------------------------------------------


class PresetResponse(BaseModel):
    """Mirrors lobester.presets.models.Preset."""

    id: str
    name: str
    skill_ids: list[str] = Field(default_factory=list)
    graph: Optional[dict[str, Any]] = None
    created_at: str = ""
    updated_at: str = ""


class PresetListResponse(BaseModel):
    ok: bool = True
    presets: list[PresetResponse] = Field(default_factory=list)


class PresetEnvelope(BaseModel):
    ok: bool = True
    preset: PresetResponse


class CreatePresetRequest(BaseModel):
    name: str
    skill_ids: list[str]
    graph: Optional[dict[str, Any]] = None


class UpdatePresetRequest(BaseModel):
    name: Optional[str] = None
    skill_ids: Optional[list[str]] = None
    graph: Optional[dict[str, Any]] = None


# ---------------------------------------------------------------------------
# Run models
# ---------------------------------------------------------------------------


class RunResponse(BaseModel):
    """Mirrors lobester.runs.models.Run."""

    id: str
    title: str
    preset_id: str
    status: str
    created_at: str = ""
    updated_at: str = ""
    output_markdown: Optional[str] = None


class RunListResponse(BaseModel):
    ok: bool = True
    runs: list[RunResponse] = Field(default_factory=list)


class RunEnvelope(BaseModel):
    ok: bool = True
    run: RunResponse


class CreateRunRequest(BaseModel):
    title: str
    preset_id: str


class UpdateRunRequest(BaseModel):
    status: Optional[str] = None
    output_markdown: Optional[str] = None


# ---------------------------------------------------------------------------
# Apply models
# ---------------------------------------------------------------------------


class ApplyPresetRequest(BaseModel):
    preset_ref: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("preset_ref", "preset_id"),
    )


class ConflictResponse(BaseModel):
    key: str
    reason: str
    message: str


class EnvVarResponse(BaseModel):
    key: str
    value: str


class ApplyPresetResponse(BaseModel):
    ok: bool = True
    base_config_path: Optional[str] = None
    generated_config_path: str
    overlay_path: str
    managed_skills_dir: str
    env_var: EnvVarResponse
    wrapper_snippets: dict[str, dict[str, str]] = Field(default_factory=dict)
    conflicts: list[ConflictResponse] = Field(default_factory=list)
    run: RunResponse


# ---------------------------------------------------------------------------
# License models
# ---------------------------------------------------------------------------


class LimitsResponse(BaseModel):
    max_presets: int
    max_runs: int
    can_auto_update_skills: bool = False
    can_cloud_backup: bool = False
    can_conflict_warnings: bool = False


class LicenseStatusResponse(BaseModel):
    ok: bool = True
    is_pro: bool
    limits: LimitsResponse
    source: str


class SetTokenRequest(BaseModel):
    token: str = ""
