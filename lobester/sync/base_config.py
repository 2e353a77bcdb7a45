"""Reader for the externally-owned OpenClaw base config."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from lobester.errors import BaseConfigError


class BaseConfigReader:
    """Reads the base config; never writes it."""

    def __init__(self, base_config_path: str | Path) -> None:
        self.base_config_path = Path(base_config_path)

    def resolve_path(self) -> Path:
        return self.base_config_path.expanduser().resolve()

    def read(self) -> tuple[Path, dict[str, Any]]:
        resolved = self.resolve_path()
        try:
            raw = resolved.read_text(encoding="utf-8")
        except OSError as exc:
            raise BaseConfigError(f"OpenClaw base config not found at {resolved}") from exc

        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise BaseConfigError(f"OpenClaw base config is not valid JSON: {resolved}") from exc

        if not isinstance(parsed, dict):
            raise BaseConfigError("OpenClaw base config must be a JSON object")
        return resolved, parsed
