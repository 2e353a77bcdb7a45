"""Connector runtime log.

Appends newline-delimited JSON events to ``<home>/logs/connector.log``.
Writing is best-effort: I/O errors are dropped so that logging never changes
the outcome of the operation being logged.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal

logger = logging.getLogger(__name__)

LogLevel = Literal["info", "warn", "error"]


class RuntimeLog:
    """File-based JSONL event log."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def log(self, level: LogLevel, message: str, **meta: Any) -> None:
        entry = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "message": message,
            **meta,
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(entry, default=str) + "\n")
        except (OSError, TypeError, ValueError) as exc:
            logger.debug("runtime log write failed: %s", exc)

    def info(self, message: str, **meta: Any) -> None:
        self.log("info", message, **meta)

    def warn(self, message: str, **meta: Any) -> None:
        self.log("warn", message, **meta)

    def error(self, message: str, **meta: Any) -> None:
        self.log("error", message, **meta)

    def tail(self, limit: int = 50) -> list[dict[str, Any]]:
        """Return the newest *limit* events, oldest first."""
        if not self.path.exists():
            return []
        events: list[dict[str, Any]] = []
        for line in self.path.read_text(encoding="utf-8").splitlines()[-limit:]:
            line = line.strip()
            if not line:
                continue
            try:
                events.append(json.loads(line))
            except json.JSONDecodeError:
                continue
        return events
