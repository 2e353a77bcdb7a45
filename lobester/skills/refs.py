"""Resolve user-typed skill references (id, key, or name) to skill ids."""

from __future__ import annotations

import re
from typing import Iterable, Optional

from lobester.errors import InvalidRequestError
from lobester.skills.models import Skill

_SKILL_PREFIX_RE = re.compile(r"^skill\s+", re.IGNORECASE)


def parse_skill_refs(value: Optional[str]) -> list[str]:
    """Split a comma-separated list, dropping a leading ``skill`` word."""
    if not value:
        return []
    refs = []
    for part in value.split(","):
        part = _SKILL_PREFIX_RE.sub("", part.strip()).strip()
        if part:
            refs.append(part)
    return refs


def resolve_skill_refs(refs: Iterable[str], skills: Iterable[Skill]) -> list[str]:
    """Map each ref to exactly one installed skill id.

    Lookup order: exact id, case-insensitive key, case-insensitive name.
    Unknown and ambiguous refs are reported together.
    """
    by_id: set[str] = set()
    by_key: dict[str, list[str]] = {}
    by_name: dict[str, list[str]] = {}
    for skill in skills:
        by_id.add(skill.id)
        by_key.setdefault(skill.key.lower(), []).append(skill.id)
        by_name.setdefault(skill.name.lower(), []).append(skill.id)

    resolved: list[str] = []
    missing: list[str] = []
    ambiguous: list[tuple[str, list[str]]] = []

    for ref in refs:
        if ref in by_id:
            resolved.append(ref)
            continue
        for index in (by_key, by_name):
            matches = index.get(ref.lower(), [])
            if len(matches) == 1:
                resolved.append(matches[0])
                break
            if len(matches) > 1:
                ambiguous.append((ref, matches))
                break
        else:
            missing.append(ref)

    if missing or ambiguous:
        parts = []
        if missing:
            parts.append(f"Unknown skills: {', '.join(missing)}")
        if ambiguous:
            detail = "; ".join(f"{ref} -> [{', '.join(ids)}]" for ref, ids in ambiguous)
            parts.append(f"Ambiguous skills: {detail}")
        parts.append("Use an explicit skill ID for ambiguous names (run: lobe skill list).")
        raise InvalidRequestError(
            " ".join(parts),
            code="invalid_skill_refs",
            details={"missing": missing, "ambiguous": {ref: ids for ref, ids in ambiguous}},
        )
    return resolved
