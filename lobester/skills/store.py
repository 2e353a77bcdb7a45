"""Skill repository — install, list, and remove managed skills.

Installed content is copied under the managed skills directory
(``<home>/skills/<id>``); records live in ``state/skills.json``.
"""

from __future__ import annotations

import json
import logging
import os
import re
import shutil
import sys
import tempfile
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import yaml

from lobester.errors import InvalidRequestError, SkillInstallError
from lobester.skills.models import (
    BatchInstallResult,
    BatchStatus,
    Skill,
    SkillMetadata,
    SkillSource,
    SourceKind,
    dict_to_skill,
    skill_to_dict,
)
from lobester.skills.sources import GitHubArchiveFetcher, parse_github_ref
from lobester.storage import AtomicCollectionStore

logger = logging.getLogger(__name__)

METADATA_FILENAME = "lobester.json"
SKILL_MARKERS = ("SKILL.md", METADATA_FILENAME)
BATCH_SCAN_DEPTH = 3

_FRONT_MATTER_RE = re.compile(r"\A---\s*\n(.*?)\n---\s*(?:\n|\Z)", re.DOTALL)


def strip_wrapping_quotes(value: str) -> str:
    """Remove matching quote pairs pasted around a path."""
    value = value.strip()
    while len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        value = value[1:-1].strip()
    return value


def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "_", value.lower()).strip("_")
    return slug or "skill"


def normalize_local_path(path: str | Path) -> str:
    """Normalize a path for equality checks between install sources."""
    normalized = os.path.normpath(os.path.abspath(str(path))).rstrip("\\/")
    if sys.platform == "win32":
        return normalized.lower()
    return normalized or "/"


def is_skill_directory(path: Path) -> bool:
    return any((path / marker).is_file() for marker in SKILL_MARKERS)


def collect_skill_directories(root: Path, depth: int = BATCH_SCAN_DEPTH) -> list[Path]:
    """Find skill folders under *root*; a skill folder is not descended into."""
    results: list[Path] = []
    seen: set[str] = set()

    def walk(directory: Path, remaining: int) -> None:
        key = normalize_local_path(directory)
        if key in seen:
            return
        seen.add(key)

        if is_skill_directory(directory):
            results.append(directory.resolve())
            return
        if remaining <= 0:
            return
        try:
            children = sorted(directory.iterdir())
        except OSError:
            return
        for child in children:
            if child.is_dir():
                walk(child, remaining - 1)

    walk(root, depth)
    return results


def read_skill_metadata(directory: Path) -> SkillMetadata:
    """Read ``lobester.json``, falling back to ``SKILL.md`` front matter."""
    metadata_path = directory / METADATA_FILENAME
    if metadata_path.is_file():
        try:
            data = json.loads(metadata_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError):
            data = None
        if isinstance(data, dict):
            return SkillMetadata(
                name=str(data.get("name") or "").strip(),
                key=str(data.get("openclawKey") or "").strip(),
                version=data.get("version"),
            )

    skill_md = directory / "SKILL.md"
    if skill_md.is_file():
        try:
            match = _FRONT_MATTER_RE.match(skill_md.read_text(encoding="utf-8"))
            front = yaml.safe_load(match.group(1)) if match else None
        except (yaml.YAMLError, OSError, UnicodeDecodeError):
            front = None
        if isinstance(front, dict):
            version = front.get("version")
            return SkillMetadata(
                name=str(front.get("name") or "").strip(),
                version=str(version) if version is not None else None,
            )

    return SkillMetadata()


class SkillRepository:
    """Installed skills backed by an ``AtomicCollectionStore``."""

    def __init__(
        self,
        store: AtomicCollectionStore,
        skills_dir: str | Path,
        fetcher: Optional[GitHubArchiveFetcher] = None,
    ) -> None:
        self._store = store
        self.skills_dir = Path(skills_dir)
        self._fetcher = fetcher or GitHubArchiveFetcher()

    def ensure(self) -> None:
        self.skills_dir.mkdir(parents=True, exist_ok=True)
        self._store.ensure()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list(self) -> list[Skill]:
        return [dict_to_skill(d) for d in self._store.read_all()]

    def get(self, skill_id: str) -> Optional[Skill]:
        data = self._store.get_by_id(skill_id)
        return dict_to_skill(data) if data else None

    # ------------------------------------------------------------------
    # Install
    # ------------------------------------------------------------------

    def install(self, source: SkillSource) -> Skill:
        """Install a skill from a local directory or a public GitHub repo."""
        self.ensure()
        if source.kind == SourceKind.LOCAL:
            local = Path(strip_wrapping_quotes(source.ref)).expanduser().resolve()
            if not local.is_dir():
                raise SkillInstallError("Local path must be an existing directory")
            return self._install_from_directory(
                local, SkillSource(kind=SourceKind.LOCAL, ref=str(local))
            )

        if source.kind == SourceKind.GITHUB:
            with tempfile.TemporaryDirectory(prefix="lobester-gh-") as tmp:
                extracted = self.fetch_github(source.ref, Path(tmp))
                return self.install_fetched(extracted, source)

        raise InvalidRequestError(
            "Only local and public github sources are supported",
            code="unsupported_source",
        )

    def fetch_github(self, ref: str, workdir: Path) -> Path:
        """Download and unpack a GitHub repo under *workdir*."""
        return self._fetcher.fetch(ref, workdir)

    def install_fetched(self, extracted: Path, source: SkillSource) -> Skill:
        """Copy a directory produced by :meth:`fetch_github` into the managed dir."""
        self.ensure()
        return self._install_from_directory(
            extracted, source, fallback_name=parse_github_ref(source.ref).repo
        )

    def install_local_batch(self, root_path: str) -> list[BatchInstallResult]:
        """Install every skill folder found under *root_path*.

        Folders already installed from the same local path are skipped.
        """
        self.ensure()
        root = Path(strip_wrapping_quotes(root_path)).expanduser().resolve()
        if not root.is_dir():
            raise SkillInstallError("Local path must be an existing directory")

        directories = collect_skill_directories(root)
        if not directories:
            raise InvalidRequestError("No skill folders found under the provided root path")

        known_refs = {
            normalize_local_path(skill.source.ref)
            for skill in self.list()
            if skill.source.kind == SourceKind.LOCAL
        }

        results: list[BatchInstallResult] = []
        for directory in directories:
            key = normalize_local_path(directory)
            if key in known_refs:
                results.append(BatchInstallResult(ref=str(directory), status=BatchStatus.SKIPPED))
                continue
            try:
                skill = self.install(SkillSource(kind=SourceKind.LOCAL, ref=str(directory)))
            except (SkillInstallError, OSError) as exc:
                logger.warning("Batch install failed for %s: %s", directory, exc)
                results.append(
                    BatchInstallResult(ref=str(directory), status=BatchStatus.FAILED, error=str(exc))
                )
                continue
            known_refs.add(key)
            results.append(
                BatchInstallResult(ref=str(directory), status=BatchStatus.INSTALLED, skill=skill)
            )
        return results

    def _install_from_directory(
        self,
        source_path: Path,
        source: SkillSource,
        fallback_name: Optional[str] = None,
    ) -> Skill:
        current = self._store.read_all()
        skill_id = uuid.uuid4().hex[:12]
        destination = self.skills_dir / skill_id

        try:
            shutil.copytree(source_path, destination)
        except OSError as exc:
            raise SkillInstallError(f"Could not copy skill content: {exc}") from exc

        metadata = read_skill_metadata(destination)
        name = metadata.name or fallback_name or source_path.name or skill_id
        key = metadata.key or slugify(name)

        existing_keys = {item.get("key") for item in current}
        if key in existing_keys:
            suffix = 2
            while f"{key}_{suffix}" in existing_keys:
                suffix += 1
            key = f"{key}_{suffix}"

        now = datetime.now(timezone.utc).isoformat()
        skill = Skill(
            id=skill_id,
            name=name,
            key=key,
            local_path=str(destination),
            source=source,
            installed_at=now,
            version=metadata.version,
            updated_at=now,
        )
        current.append(skill_to_dict(skill))
        self._store.write_all(current)
        logger.info("Installed skill %s (%s) from %s", skill.name, skill.key, source.ref)
        return skill

    # ------------------------------------------------------------------
    # Remove
    # ------------------------------------------------------------------

    def remove(self, skill_id: str) -> bool:
        """Delete a skill record and its managed content."""
        skill = self.get(skill_id)
        if skill is None:
            return False

        content = Path(skill.local_path).resolve()
        managed = self.skills_dir.resolve()
        if managed in content.parents:
            shutil.rmtree(content, ignore_errors=True)
        else:
            logger.warning("Not deleting %s: outside managed skills dir", content)
        return self._store.remove_by_id(skill_id)
