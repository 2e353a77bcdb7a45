"""FastAPI dependencies shared by the routers."""

from __future__ import annotations

from fastapi import FastAPI, Request

from lobester.config import load_config
from lobester.workspace import Workspace


def workspace_for(app: FastAPI) -> Workspace:
    """Return the app's Workspace, building it from config on first use."""
    workspace = getattr(app.state, "workspace", None)
    if workspace is None:
        workspace = Workspace.from_config(load_config())
        workspace.init_state()
        app.state.workspace = workspace
    return workspace


def get_workspace(request: Request) -> Workspace:
    return workspace_for(request.app)
