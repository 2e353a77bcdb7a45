"""File-based versioned collection store.

Each logical entity type lives in one JSON file shaped
``{"version": 1, "items": [...]}``. Every write replaces the file through a
temporary sibling and ``os.replace``, so a reader sees either the old or the
new complete file.

Mutations are read-modify-write with no locking. Callers must serialize
writers to the same file; concurrent writers lose updates.
"""

from __future__ import annotations

import json
import os
import stat
import tempfile
from pathlib import Path
from typing import Any, Optional

from lobester.errors import CorruptStateError

SCHEMA_VERSION = 1


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


def _target_mode(target: Path) -> int:
    """Keep an existing file's mode; new files get the umask default."""
    try:
        return stat.S_IMODE(target.stat().st_mode)
    except FileNotFoundError:
        return 0o666 & ~_current_umask()


def write_file_atomic(path: str | Path, content: str) -> None:
    """Replace *path* with *content* via write-to-temp-then-rename."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        dir=target.parent, prefix=f".{target.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
            fh.flush()
            os.fsync(fh.fileno())
        os.chmod(tmp_name, _target_mode(target))
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def write_json_atomic(path: str | Path, data: Any) -> None:
    write_file_atomic(path, json.dumps(data, indent=2))


class AtomicCollectionStore:
    """Durable storage for one ``{version, items}`` collection.

    Items are JSON objects identified by their ``"id"`` key; list order is
    insertion order.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def ensure(self) -> None:
        """Create the backing file if it does not exist yet."""
        if self.path.exists():
            return
        write_json_atomic(self.path, {"version": SCHEMA_VERSION, "items": []})

    def read_all(self) -> list[dict]:
        self.ensure()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise CorruptStateError(
                f"Invalid state file: {self.path}", details={"reason": str(exc)}
            ) from exc

        if not isinstance(data, dict):
            raise CorruptStateError(f"Invalid state file: {self.path}")
        version = data.get("version")
        if isinstance(version, bool) or not isinstance(version, (int, float)):
            raise CorruptStateError(f"Invalid state file: {self.path}")
        if not isinstance(data.get("items"), list):
            raise CorruptStateError(f"Invalid state file: {self.path}")
        return data["items"]

    def write_all(self, items: list[dict]) -> None:
        write_json_atomic(self.path, {"version": SCHEMA_VERSION, "items": items})

    def get_by_id(self, item_id: str) -> Optional[dict]:
        for item in self.read_all():
            if item.get("id") == item_id:
                return item
        return None

    def upsert(self, item: dict) -> None:
        items = self.read_all()
        for idx, existing in enumerate(items):
            if existing.get("id") == item["id"]:
                items[idx] = item
                break
        else:
            items.append(item)
        self.write_all(items)

    def remove_by_id(self, item_id: str) -> bool:
        items = self.read_all()
        remaining = [item for item in items if item.get("id") != item_id]
        if len(remaining) == len(items):
            return False
        self.write_all(remaining)
        return True
