"""Preset repository backed by ``state/presets.json``."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from lobester.errors import AmbiguousReferenceError, InvalidRequestError
from lobester.presets.models import Preset, dict_to_preset, preset_to_dict
from lobester.storage import AtomicCollectionStore

logger = logging.getLogger(__name__)


class PresetRepository:
    """CRUD and reference lookup for presets."""

    def __init__(self, store: AtomicCollectionStore) -> None:
        self._store = store

    def ensure(self) -> None:
        self._store.ensure()

    def list(self) -> list[Preset]:
        return [dict_to_preset(d) for d in self._store.read_all()]

    def get(self, preset_id: str) -> Optional[Preset]:
        data = self._store.get_by_id(preset_id)
        return dict_to_preset(data) if data else None

    def get_by_ref(self, ref: str, strict: bool = False) -> Optional[Preset]:
        """Resolve an id or a case-insensitive name.

        An exact id wins. Otherwise the first preset with a matching name is
        returned; with ``strict=True`` several matches raise
        ``AmbiguousReferenceError`` instead.
        """
        ref = ref.strip()
        presets = self.list()
        for preset in presets:
            if preset.id == ref:
                return preset

        needle = ref.lower()
        matches = [p for p in presets if p.name.lower() == needle]
        if not matches:
            return None
        if len(matches) > 1:
            ids = [p.id for p in matches]
            if strict:
                raise AmbiguousReferenceError(
                    f"Several presets are named '{ref}'; use an id",
                    details={"ids": ids},
                )
            logger.warning("Preset name '%s' is ambiguous %s; using %s", ref, ids, ids[0])
        return matches[0]

    def create(
        self,
        name: str,
        skill_ids: list[str],
        graph: Optional[dict[str, Any]] = None,
    ) -> Preset:
        name = name.strip()
        if not name:
            raise InvalidRequestError(
                "Preset name is required", code="invalid_preset_payload"
            )
        now = datetime.now(timezone.utc).isoformat()
        preset = Preset(
            id=uuid.uuid4().hex[:12],
            name=name,
            skill_ids=list(skill_ids),
            graph=graph,
            created_at=now,
            updated_at=now,
        )
        items = self._store.read_all()
        items.append(preset_to_dict(preset))
        self._store.write_all(items)
        return preset

    def update(
        self,
        preset_id: str,
        name: Optional[str] = None,
        skill_ids: Optional[list[str]] = None,
        graph: Optional[dict[str, Any]] = None,
    ) -> Optional[Preset]:
        """Apply the given fields. Returns ``None`` for an unknown id."""
        items = self._store.read_all()
        for idx, data in enumerate(items):
            if data.get("id") != preset_id:
                continue
            preset = dict_to_preset(data)
            if name is not None:
                if not name.strip():
                    raise InvalidRequestError(
                        "Preset name must not be empty", code="invalid_preset_payload"
                    )
                preset.name = name.strip()
            if skill_ids is not None:
                preset.skill_ids = list(skill_ids)
            if graph is not None:
                preset.graph = graph
            preset.updated_at = datetime.now(timezone.utc).isoformat()
            items[idx] = preset_to_dict(preset)
            self._store.write_all(items)
            return preset
        return None

    def remove(self, preset_id: str) -> bool:
        return self._store.remove_by_id(preset_id)
