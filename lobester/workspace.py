"""Workspace — the set of stores and services built once from a config.

Both the CLI and the HTTP app build one ``Workspace`` at startup and share
its repositories instead of constructing them per operation.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from lobester.config import LobesterConfig
from lobester.license.cache import CloudLicenseClient, EntitlementCache
from lobester.presets.store import PresetRepository
from lobester.runs.store import RunRepository
from lobester.runtime_log import RuntimeLog
from lobester.skills.sources import GitHubArchiveFetcher
from lobester.skills.store import SkillRepository
from lobester.storage import AtomicCollectionStore, write_file_atomic
from lobester.sync.adapters import (
    AdapterRegistry,
    LoadoutAdapter,
    register_builtin_adapters,
    resolve_adapter_kind,
)
from lobester.sync.apply import ApplyOrchestrator


@dataclass
class DoctorCheck:
    label: str
    path: Path
    ok: bool
    missing_label: str = "missing"

    @property
    def status(self) -> str:
        return "ok" if self.ok else self.missing_label


class Workspace:
    """Shared repositories, adapter, orchestrator, and entitlement cache."""

    def __init__(
        self,
        config: LobesterConfig,
        skills: SkillRepository,
        presets: PresetRepository,
        runs: RunRepository,
        adapter: LoadoutAdapter,
        entitlements: EntitlementCache,
        runtime_log: RuntimeLog,
    ) -> None:
        self.config = config
        self.skills = skills
        self.presets = presets
        self.runs = runs
        self.adapter = adapter
        self.entitlements = entitlements
        self.runtime_log = runtime_log
        self.orchestrator = ApplyOrchestrator(
            config=config,
            presets=presets,
            skills=skills,
            runs=runs,
            adapter=adapter,
            runtime_log=runtime_log,
        )

    @classmethod
    def from_config(
        cls,
        config: LobesterConfig,
        registry: Optional[AdapterRegistry] = None,
        license_client: Optional[CloudLicenseClient] = None,
        fetcher: Optional[GitHubArchiveFetcher] = None,
    ) -> "Workspace":
        registry = registry or register_builtin_adapters(AdapterRegistry(), config)
        adapter = registry.create(resolve_adapter_kind(config.adapter))
        return cls(
            config=config,
            skills=SkillRepository(
                AtomicCollectionStore(config.skills_state_path),
                config.skills_dir,
                fetcher=fetcher,
            ),
            presets=PresetRepository(AtomicCollectionStore(config.presets_state_path)),
            runs=RunRepository(AtomicCollectionStore(config.runs_state_path)),
            adapter=adapter,
            entitlements=EntitlementCache(
                config.license_path,
                license_client or CloudLicenseClient(config.cloud_url),
            ),
            runtime_log=RuntimeLog(config.log_path),
        )

    def init_state(self) -> None:
        """Create runtime directories and empty state files."""
        self.config.ensure_runtime_dirs()
        self.skills.ensure()
        self.presets.ensure()
        self.runs.ensure()
        if not self.config.license_path.exists():
            write_file_atomic(self.config.license_path, "{}")

    def doctor(self) -> list[DoctorCheck]:
        cfg = self.config
        return [
            DoctorCheck("stateDir", cfg.home, cfg.home.is_dir()),
            DoctorCheck("skillsDir", cfg.skills_dir, cfg.skills_dir.is_dir()),
            DoctorCheck("openclawDir", cfg.openclaw_dir, cfg.openclaw_dir.is_dir()),
            DoctorCheck("baseConfig", cfg.base_config_path, cfg.base_config_path.is_file()),
            DoctorCheck(
                "connectorLog",
                cfg.log_path,
                cfg.log_path.is_file(),
                missing_label="not-yet-created",
            ),
        ]
