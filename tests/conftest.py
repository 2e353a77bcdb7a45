"""Shared fixtures: an isolated LobeSter home under tmp_path."""

import json
from pathlib import Path

import httpx
import pytest

from lobester.config import LobesterConfig
from lobester.license.cache import CloudLicenseClient
from lobester.workspace import Workspace


def write_skill_dir(root: Path, folder: str, name: str = "", key: str = "", marker: str = "lobester.json") -> Path:
    """Create a skill folder with either lobester.json or SKILL.md metadata."""
    directory = root / folder
    directory.mkdir(parents=True, exist_ok=True)
    if marker == "lobester.json":
        data = {"name": name or folder}
        if key:
            data["openclawKey"] = key
        (directory / "lobester.json").write_text(json.dumps(data))
    else:
        (directory / "SKILL.md").write_text(f"---\nname: {name or folder}\nversion: 1.2\n---\n\n# {folder}\n")
    (directory / "prompt.md").write_text("Do the thing.\n")
    return directory


def _offline_transport() -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    return httpx.MockTransport(handler)


@pytest.fixture
def config(tmp_path):
    return LobesterConfig(
        home=tmp_path / "home",
        base_config_path=tmp_path / "openclaw.json",
        cloud_url="https://license.test",
    )


@pytest.fixture
def base_config(config):
    """Write a small base config and return its parsed content."""
    data = {
        "agents": {"default": "main"},
        "skills": {
            "load": {"extraDirs": ["/opt/shared-skills"]},
            "entries": {"git_helper": {"enabled": False}},
        },
    }
    config.base_config_path.write_text(json.dumps(data))
    return data


@pytest.fixture
def workspace(config):
    ws = Workspace.from_config(
        config,
        license_client=CloudLicenseClient(config.cloud_url, transport=_offline_transport()),
    )
    ws.init_state()
    return ws


@pytest.fixture
def skill_source(tmp_path):
    """Directory holding source folders to install skills from."""
    root = tmp_path / "sources"
    root.mkdir()
    return root


@pytest.fixture
def make_skill(skill_source):
    def _make(folder: str, **kwargs) -> Path:
        return write_skill_dir(skill_source, folder, **kwargs)

    return _make
