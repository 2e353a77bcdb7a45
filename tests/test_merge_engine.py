"""Tests for the overlay merge engine."""

import copy

from lobester.skills.models import Skill, SkillSource
from lobester.sync.merge import ConflictReason, MergeEngine

MANAGED = "/home/u/.lobester/skills"


def _skill(key: str, path: str = "") -> Skill:
    return Skill(
        id=f"id-{key}",
        name=key.title(),
        key=key,
        local_path=path or f"{MANAGED}/{key}",
        source=SkillSource(kind="local", ref=f"/src/{key}"),
        installed_at="2026-01-01T00:00:00+00:00",
    )


def test_empty_base_gets_managed_dir_and_entries():
    result = MergeEngine().build({}, [_skill("writer")], MANAGED)

    skills = result.generated_config["skills"]
    assert skills["load"]["extraDirs"] == [MANAGED]
    assert skills["entries"] == {"writer": {"enabled": True, "path": f"{MANAGED}/writer"}}
    assert result.overlay_config["skills"]["entries"] == skills["entries"]
    assert result.overlay_config["lobester"]["managedSkillsDir"] == MANAGED
    assert result.overlay_config["lobester"]["generatedAt"]
    assert result.conflicts == []


def test_existing_extra_dirs_are_kept_and_managed_dir_not_duplicated():
    base = {"skills": {"load": {"extraDirs": ["/opt/a", MANAGED, 7]}}}
    result = MergeEngine().build(base, [], MANAGED)

    assert result.generated_config["skills"]["load"]["extraDirs"] == ["/opt/a", MANAGED]
    assert result.overlay_config["skills"]["load"]["extraDirs"] == ["/opt/a", MANAGED]


def test_base_entry_wins_and_is_reported():
    base = {"skills": {"entries": {"writer": {"enabled": False, "custom": 1}}}}
    result = MergeEngine().build(base, [_skill("writer"), _skill("reader")], MANAGED)

    entries = result.generated_config["skills"]["entries"]
    assert entries["writer"] == {"enabled": False, "custom": 1}
    assert entries["reader"]["enabled"] is True
    assert "writer" not in result.overlay_config["skills"]["entries"]

    assert len(result.conflicts) == 1
    conflict = result.conflicts[0]
    assert conflict.key == "writer"
    assert conflict.reason == ConflictReason.EXISTING_ENTRY
    assert "kept base value" in conflict.message



def test_repeated_skill_is_merged_once_without_conflict():
    base = {"skills": {"entries": {"git_helper": {"enabled": False}}}}
    writer = _skill("writer")
    result = MergeEngine().build(base, [writer, writer, _skill("git_helper"), _skill("git_helper")], MANAGED)

    assert result.generated_config["skills"]["entries"]["writer"] == {"enabled": True, "path": writer.local_path}
    assert list(result.overlay_config["skills"]["entries"]) == ["writer"]
    assert [(c.key, c.reason) for c in result.conflicts] == [("git_helper", ConflictReason.EXISTING_ENTRY)]

def test_base_config_is_not_mutated():
    base = {"model": "x", "skills": {"load": {"extraDirs": []}, "entries": {}}}
    snapshot = copy.deepcopy(base)
    MergeEngine().build(base, [_skill("writer")], MANAGED)

    assert base == snapshot


def test_unrelated_keys_are_preserved():
    base = {"model": "x", "skills": {"other": True}}
    result = MergeEngine().build(base, [], MANAGED)

    assert result.generated_config["model"] == "x"
    assert result.generated_config["skills"]["other"] is True


def test_non_object_skills_section_is_replaced():
    result = MergeEngine().build({"skills": ["bogus"]}, [_skill("writer")], MANAGED)

    assert result.generated_config["skills"]["entries"]["writer"]["enabled"] is True
