"""Loadout adapters — ecosystem-specific reconciliation behind one contract.

An adapter knows where its ecosystem keeps the base config, how to merge
managed skills into it, and which environment variable downstream
processes read. Adapters are registered explicitly on an
``AdapterRegistry``; there is no implicit global map.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterable, Protocol

from lobester.config import LobesterConfig
from lobester.errors import UnknownAdapterError
from lobester.skills.models import Skill
from lobester.sync.base_config import BaseConfigReader
from lobester.sync.merge import MergeEngine, MergeResult

DEFAULT_ADAPTER = "openclaw"


class AdapterKind(str, Enum):
    OPENCLAW = "openclaw"


class LoadoutAdapter(Protocol):
    kind: AdapterKind
    env_var_key: str

    def load_base_config(self) -> tuple[Path, dict[str, Any]]:
        ...

    def build(
        self,
        base_config: dict[str, Any],
        skills: Iterable[Skill],
        managed_skills_dir: str | Path,
    ) -> MergeResult:
        ...


AdapterFactory = Callable[[], LoadoutAdapter]


class OpenClawAdapter:
    """OpenClaw: ``skills.entries`` keyed by skill key, read via OPENCLAW_CONFIG_PATH."""

    kind = AdapterKind.OPENCLAW
    env_var_key = "OPENCLAW_CONFIG_PATH"

    def __init__(self, reader: BaseConfigReader, engine: MergeEngine | None = None) -> None:
        self._reader = reader
        self._engine = engine or MergeEngine()

    def load_base_config(self) -> tuple[Path, dict[str, Any]]:
        return self._reader.read()

    def build(
        self,
        base_config: dict[str, Any],
        skills: Iterable[Skill],
        managed_skills_dir: str | Path,
    ) -> MergeResult:
        return self._engine.build(base_config, skills, managed_skills_dir)


class AdapterRegistry:
    """Maps each ``AdapterKind`` to a factory."""

    def __init__(self) -> None:
        self._factories: dict[AdapterKind, AdapterFactory] = {}

    def register(self, kind: AdapterKind, factory: AdapterFactory) -> None:
        self._factories[AdapterKind(kind)] = factory

    def kinds(self) -> list[str]:
        return sorted(kind.value for kind in self._factories)

    def create(self, kind: AdapterKind) -> LoadoutAdapter:
        factory = self._factories.get(kind)
        if factory is None:
            raise UnknownAdapterError(
                f"No adapter registered for {kind.value}. "
                f"Supported adapters: {', '.join(self.kinds()) or '(none)'}"
            )
        return factory()


def register_builtin_adapters(registry: AdapterRegistry, config: LobesterConfig) -> AdapterRegistry:
    """Register the adapters shipped with LobeSter."""
    registry.register(
        AdapterKind.OPENCLAW,
        lambda: OpenClawAdapter(BaseConfigReader(config.base_config_path)),
    )
    return registry


def resolve_adapter_kind(raw: str | None) -> AdapterKind:
    """Normalize a configured adapter name; empty means the default."""
    normalized = (raw or "").strip().lower() or DEFAULT_ADAPTER
    try:
        return AdapterKind(normalized)
    except ValueError:
        supported = ", ".join(kind.value for kind in AdapterKind)
        raise UnknownAdapterError(
            f"Unknown LOBESTER_ADAPTER: {normalized}. Supported adapters: {supported}"
        ) from None
