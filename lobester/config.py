"""Configuration loading from environment variables and lobester.yaml."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

_DEFAULT_HOME = Path.home() / ".lobester"
_DEFAULT_BASE_CONFIG = Path.home() / ".openclaw" / "openclaw.json"
_DEFAULT_CLOUD_URL = "https://yourapp.vercel.app"
_CONFIG_FILENAME = "lobester.yaml"


@dataclass
class LobesterConfig:
    """Top-level LobeSter configuration.

    Built once at startup and handed to every store and repository. All
    state paths derive from ``home``.
    """

    home: Path = field(default_factory=lambda: _DEFAULT_HOME)
    base_config_path: Path = field(default_factory=lambda: _DEFAULT_BASE_CONFIG)
    cloud_url: str = _DEFAULT_CLOUD_URL
    adapter: str = "openclaw"
    port: int = 3210
    log_level: str = "INFO"

    @property
    def state_dir(self) -> Path:
        return self.home / "state"

    @property
    def skills_dir(self) -> Path:
        """Managed skills folder."""
        return self.home / "skills"

    @property
    def logs_dir(self) -> Path:
        return self.home / "logs"

    @property
    def log_path(self) -> Path:
        return self.logs_dir / "connector.log"

    @property
    def openclaw_dir(self) -> Path:
        return self.home / "openclaw"

    @property
    def overlay_path(self) -> Path:
        return self.openclaw_dir / "overlay.json"

    @property
    def generated_config_path(self) -> Path:
        return self.openclaw_dir / "openclaw.generated.json"

    @property
    def skills_state_path(self) -> Path:
        return self.state_dir / "skills.json"

    @property
    def presets_state_path(self) -> Path:
        return self.state_dir / "presets.json"

    @property
    def runs_state_path(self) -> Path:
        return self.state_dir / "runs.json"

    @property
    def license_path(self) -> Path:
        return self.state_dir / "license.json"

    def ensure_runtime_dirs(self) -> None:
        for directory in (
            self.home,
            self.state_dir,
            self.skills_dir,
            self.openclaw_dir,
            self.logs_dir,
        ):
            directory.mkdir(parents=True, exist_ok=True)


def _read_settings_file(path: Path) -> dict:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    return data if isinstance(data, dict) else {}


def load_config(config_path: Optional[Path] = None) -> LobesterConfig:
    """Load configuration from environment variables and optional lobester.yaml.

    Priority: environment variables > lobester.yaml > defaults.
    """
    env_home = os.getenv("LOBESTER_HOME")
    home = Path(env_home).expanduser() if env_home else _DEFAULT_HOME

    file_data: dict = {}
    candidate = config_path or home / _CONFIG_FILENAME
    if candidate.exists():
        file_data = _read_settings_file(candidate)

    if not env_home and file_data.get("home"):
        home = Path(file_data["home"]).expanduser()

    base_config = os.getenv("OPENCLAW_CONFIG_PATH") or file_data.get("base_config_path")

    return LobesterConfig(
        home=home,
        base_config_path=Path(base_config).expanduser() if base_config else _DEFAULT_BASE_CONFIG,
        cloud_url=os.getenv("LOBESTER_CLOUD_URL") or file_data.get("cloud_url", _DEFAULT_CLOUD_URL),
        adapter=os.getenv("LOBESTER_ADAPTER") or file_data.get("adapter", "openclaw"),
        port=int(os.getenv("LOBESTER_PORT", file_data.get("port", 3210))),
        log_level=os.getenv("LOBESTER_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
