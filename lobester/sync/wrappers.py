"""Shell snippets that point a downstream process at the generated config."""

from __future__ import annotations

from pathlib import Path


def build_wrapper_snippets(env_key: str, config_path: str | Path) -> dict[str, dict[str, str]]:
    path = str(config_path)
    return {
        "bash": {"title": "Bash/Zsh", "snippet": f'export {env_key}="{path}"'},
        "powershell": {"title": "PowerShell", "snippet": f'$env:{env_key}="{path}"'},
        "dotenv": {"title": ".env", "snippet": f"{env_key}={path}"},
        "docker": {"title": "Docker Run Flag", "snippet": f"-e {env_key}={path}"},
    }
