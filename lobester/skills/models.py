"""Skill data models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SourceKind(str, Enum):
    LOCAL = "local"
    GITHUB = "github"
    ZIP = "zip"


class BatchStatus(str, Enum):
    INSTALLED = "installed"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class SkillSource:
    """Where a skill was installed from."""

    kind: SourceKind
    ref: str

    def __post_init__(self) -> None:
        if isinstance(self.kind, str) and not isinstance(self.kind, SourceKind):
            self.kind = SourceKind(self.kind)


@dataclass
class Skill:
    """An installed unit of content, addressed in configs by ``key``."""

    id: str
    name: str
    key: str
    local_path: str
    source: SkillSource
    installed_at: str
    version: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class BatchInstallResult:
    ref: str
    status: BatchStatus
    skill: Optional[Skill] = None
    error: str = ""


@dataclass
class SkillMetadata:
    """Metadata shipped inside a skill directory."""

    name: str = ""
    key: str = ""
    version: Optional[str] = None


def skill_to_dict(skill: Skill) -> dict:
    data = {
        "id": skill.id,
        "name": skill.name,
        "key": skill.key,
        "local_path": skill.local_path,
        "source": {"kind": skill.source.kind.value, "ref": skill.source.ref},
        "installed_at": skill.installed_at,
    }
    if skill.version is not None:
        data["version"] = skill.version
    if skill.updated_at is not None:
        data["updated_at"] = skill.updated_at
    return data


def dict_to_skill(data: dict) -> Skill:
    source = data.get("source", {})
    return Skill(
        id=data["id"],
        name=data.get("name", ""),
        key=data["key"],
        local_path=data.get("local_path", ""),
        source=SkillSource(
            kind=SourceKind(source.get("kind", "local")),
            ref=source.get("ref", ""),
        ),
        installed_at=data.get("installed_at", ""),
        version=data.get("version"),
        updated_at=data.get("updated_at"),
    )
