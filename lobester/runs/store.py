"""Run repository backed by ``state/runs.json``."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from lobester.runs.models import Run, RunStatus, dict_to_run, run_to_dict
from lobester.storage import AtomicCollectionStore


class RunRepository:
    """Create, update, and list runs. Runs are never deleted."""

    def __init__(self, store: AtomicCollectionStore) -> None:
        self._store = store

    def ensure(self) -> None:
        self._store.ensure()

    def list(self) -> list[Run]:
        """Return all runs, newest first."""
        runs = [dict_to_run(d) for d in self._store.read_all()]
        runs.sort(key=lambda r: r.created_at, reverse=True)
        return runs

    def get(self, run_id: str) -> Optional[Run]:
        data = self._store.get_by_id(run_id)
        return dict_to_run(data) if data else None

    def create(self, title: str, preset_id: str) -> Run:
        now = datetime.now(timezone.utc).isoformat()
        run = Run(
            id=uuid.uuid4().hex[:12],
            title=title.strip(),
            preset_id=preset_id,
            status=RunStatus.QUEUED,
            created_at=now,
            updated_at=now,
        )
        items = self._store.read_all()
        items.append(run_to_dict(run))
        self._store.write_all(items)
        return run

    def update(
        self,
        run_id: str,
        status: Optional[RunStatus] = None,
        output_markdown: Optional[str] = None,
    ) -> Optional[Run]:
        """Update status and/or output. Returns ``None`` for an unknown id."""
        items = self._store.read_all()
        for idx, data in enumerate(items):
            if data.get("id") != run_id:
                continue
            run = dict_to_run(data)
            if status is not None:
                run.status = RunStatus(status)
            if output_markdown is not None:
                run.output_markdown = output_markdown
            run.updated_at = datetime.now(timezone.utc).isoformat()
            items[idx] = run_to_dict(run)
            self._store.write_all(items)
            return run
        return None
