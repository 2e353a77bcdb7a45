"""Tests for applying a preset to the OpenClaw config."""

import json
import logging
from pathlib import Path

import pytest

from lobester.errors import (
    ApplyFailedError,
    BaseConfigError,
    CorruptStateError,
    InvalidRequestError,
    PresetNotFoundError,
)
from lobester.runs.models import RunStatus
from lobester.skills.models import SkillSource
from lobester.sync.apply import MISSING_SKILL_MESSAGE
from lobester.sync.merge import ConflictReason


def _install(workspace, make_skill, folder, **kwargs):
    return workspace.skills.install(SkillSource(kind="local", ref=str(make_skill(folder, **kwargs))))


def test_apply_writes_generated_and_overlay(workspace, base_config, make_skill):
    writer = _install(workspace, make_skill, "writer", key="writer")
    preset = workspace.presets.create("Writing", [writer.id])

    outcome = workspace.orchestrator.apply_preset(preset.id)
    response = outcome.response
    cfg = workspace.config

    generated = json.loads(Path(response.generated_config_path).read_text())
    overlay = json.loads(Path(response.overlay_path).read_text())

    assert response.generated_config_path == str(cfg.generated_config_path)
    assert response.base_config_path == str(cfg.base_config_path.resolve())
    assert generated["agents"] == {"default": "main"}
    assert generated["skills"]["load"]["extraDirs"] == ["/opt/shared-skills", str(cfg.skills_dir)]
    assert generated["skills"]["entries"]["writer"] == {"enabled": True, "path": writer.local_path}
    assert generated["skills"]["entries"]["git_helper"] == {"enabled": False}
    assert overlay["skills"]["entries"] == {"writer": {"enabled": True, "path": writer.local_path}}
    assert response.conflicts == []

    # The base config is never written.
    assert json.loads(cfg.base_config_path.read_text()) == base_config

    assert response.env_var.key == "OPENCLAW_CONFIG_PATH"
    assert response.env_var.value == response.generated_config_path
    assert response.generated_config_path in response.wrapper_snippets["bash"]["snippet"]

    run = outcome.run
    assert run.status == RunStatus.DONE
    assert run.title == "Apply Writing"
    assert run.preset_id == preset.id
    assert "Conflicts: 0" in run.output_markdown
    assert workspace.runs.get(run.id).status == RunStatus.DONE


def test_apply_by_name_reports_missing_and_existing(workspace, base_config, make_skill):
    clash = _install(workspace, make_skill, "git", key="git_helper")
    preset = workspace.presets.create("Mixed", [clash.id, "deleted-skill"])

    response = workspace.orchestrator.apply_preset("mixed").response

    assert [(c.key, c.reason) for c in response.conflicts] == [
        ("deleted-skill", ConflictReason.MISSING_SKILL),
        ("git_helper", ConflictReason.EXISTING_ENTRY),
    ]
    assert response.conflicts[0].message == MISSING_SKILL_MESSAGE
    overlay = json.loads(Path(response.overlay_path).read_text())
    assert overlay["skills"]["entries"] == {}
    assert workspace.runs.list()[0].preset_id == preset.id


def test_unknown_preset_creates_no_run(workspace, base_config):
    with pytest.raises(PresetNotFoundError) as excinfo:
        workspace.orchestrator.apply_preset("ghost")

    assert excinfo.value.status_code == 404
    assert workspace.runs.list() == []


def test_blank_preset_ref(workspace):
    with pytest.raises(InvalidRequestError) as excinfo:
        workspace.orchestrator.apply_preset("   ")
    assert excinfo.value.code == "invalid_preset_ref"


def test_missing_base_config_marks_run_failed(workspace):
    preset = workspace.presets.create("Writing", [])

    with pytest.raises(BaseConfigError) as excinfo:
        workspace.orchestrator.apply_preset(preset.id)

    assert excinfo.value.code == "base_config_unavailable"
    [run] = workspace.runs.list()
    assert run.status == RunStatus.FAILED
    assert "not found" in run.output_markdown
    assert not workspace.config.generated_config_path.exists()


def test_unexpected_error_is_wrapped(workspace, base_config, monkeypatch):
    preset = workspace.presets.create("Writing", [])

    def explode(*args, **kwargs):
        raise RuntimeError("merge blew up")

    monkeypatch.setattr(workspace.adapter, "build", explode)

    with pytest.raises(ApplyFailedError) as excinfo:
        workspace.orchestrator.apply_preset(preset.id)

    assert excinfo.value.message == "merge blew up"
    assert isinstance(excinfo.value.__cause__, RuntimeError)
    [run] = workspace.runs.list()
    assert run.status == RunStatus.FAILED
    assert run.output_markdown == "merge blew up"


def test_apply_is_recorded_in_runtime_log(workspace, base_config):
    preset = workspace.presets.create("Writing", [])
    workspace.orchestrator.apply_preset(preset.id)

    messages = [event["message"] for event in workspace.runtime_log.tail()]
    assert "apply.done" in messages


def test_reapply_replaces_generated_config(workspace, base_config, make_skill):
    first = _install(workspace, make_skill, "one", key="one")
    second = _install(workspace, make_skill, "two", key="two")
    preset = workspace.presets.create("Swap", [first.id])
    workspace.orchestrator.apply_preset(preset.id)

    workspace.presets.update(preset.id, skill_ids=[second.id])
    response = workspace.orchestrator.apply_preset(preset.id).response

    entries = json.loads(Path(response.generated_config_path).read_text())["skills"]["entries"]
    assert "one" not in entries
    assert "two" in entries
    assert len(workspace.runs.list()) == 2


def test_missing_and_valid_skill_still_completes(workspace, base_config, make_skill):
    valid = _install(workspace, make_skill, "valid", key="valid_one")
    preset = workspace.presets.create("Partial", ["gone-123", valid.id])

    outcome = workspace.orchestrator.apply_preset(preset.id)

    assert [(c.key, c.reason) for c in outcome.response.conflicts] == [
        ("gone-123", ConflictReason.MISSING_SKILL)
    ]
    generated = json.loads(Path(outcome.response.generated_config_path).read_text())
    assert generated["skills"]["entries"]["valid_one"]["path"] == valid.local_path
    assert outcome.run.status == RunStatus.DONE


def test_failed_apply_is_recorded_in_runtime_log(workspace):
    preset = workspace.presets.create("Writing", [])

    with pytest.raises(BaseConfigError):
        workspace.orchestrator.apply_preset(preset.id)

    [event] = [e for e in workspace.runtime_log.tail() if e["message"] == "apply.failed"]
    assert event["level"] == "error"
    assert event["preset_id"] == preset.id
    assert "not found" in event["error"]


def test_unrecordable_failure_keeps_original_error(workspace, monkeypatch, caplog):
    preset = workspace.presets.create("Writing", [])
    original_update = workspace.runs.update

    def update(run_id, status=None, output_markdown=None):
        if status == RunStatus.FAILED:
            raise CorruptStateError("runs.json is unreadable")
        return original_update(run_id, status=status, output_markdown=output_markdown)

    monkeypatch.setattr(workspace.runs, "update", update)

    with caplog.at_level(logging.ERROR, logger="lobester.sync.apply"):
        with pytest.raises(BaseConfigError):
            workspace.orchestrator.apply_preset(preset.id)

    assert "Could not record failed run" in caplog.text
    assert workspace.runs.list()[0].status == RunStatus.RUNNING


def test_broken_runtime_log_does_not_change_outcome(workspace, base_config, monkeypatch):
    preset = workspace.presets.create("Writing", [])

    def broken(*args, **kwargs):
        raise RuntimeError("log sink gone")

    monkeypatch.setattr(workspace.runtime_log, "log", broken)

    outcome = workspace.orchestrator.apply_preset(preset.id)
    assert outcome.run.status == RunStatus.DONE

    workspace.config.base_config_path.unlink()
    with pytest.raises(BaseConfigError):
        workspace.orchestrator.apply_preset(preset.id)


def test_duplicate_skill_ids_are_not_reported_as_base_conflicts(workspace, base_config, make_skill):
    skill = _install(workspace, make_skill, "twice", key="twice")
    preset = workspace.presets.create("Repeat", [skill.id, skill.id])

    response = workspace.orchestrator.apply_preset(preset.id).response

    assert response.conflicts == []
    generated = json.loads(Path(response.generated_config_path).read_text())
    assert generated["skills"]["entries"]["twice"]["path"] == skill.local_path
