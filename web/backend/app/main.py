"""FastAPI application for the LobeSter local connector.

Provides REST API endpoints wrapping the LobeSter package for:
- Skill install and removal
- Preset (engram) management
- Run history
- Applying a preset to the OpenClaw config
- License status and token storage
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from lobester import __version__
from lobester.errors import LobesterError
from lobester.workspace import Workspace
from web.backend.app.dependencies import workspace_for
from web.backend.app.routers import license, openclaw, presets, runs, skills

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "")


def _error_response(
    request: Request,
    status_code: int,
    code: str,
    error: str,
    details: Any = None,
) -> JSONResponse:
    body: dict[str, Any] = {
        "ok": False,
        "code": code,
        "error": error,
        "request_id": _request_id(request),
    }
    if details is not None:
        body["details"] = jsonable_encoder(details)
    return JSONResponse(status_code=status_code, content=body)


def create_app(workspace: Optional[Workspace] = None) -> FastAPI:
    """Build the connector app; ``workspace`` defaults to one built from config."""
    app = FastAPI(
        title="LobeSter Connector API",
        description=(
            "Local REST API for LobeSter. Manages installed skills and presets "
            "and writes the generated OpenClaw config."
        ),
        version=__version__,
    )
    if workspace is not None:
        app.state.workspace = workspace

    # -----------------------------------------------------------------------
    # CORS middleware (the dashboard is served from another local port)
    # -----------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        request.state.request_id = request_id
        runtime_log = workspace_for(app).runtime_log
        started = time.perf_counter()
        runtime_log.info(
            "request.start",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        response = await call_next(request)
        runtime_log.info(
            "request.end",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    # -----------------------------------------------------------------------
    # Error envelope
    # -----------------------------------------------------------------------

    @app.exception_handler(LobesterError)
    async def handle_lobester_error(request: Request, exc: LobesterError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _error_response(request, exc.status_code, exc.code, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return _error_response(request, 400, "invalid_request", "Invalid request body", exc.errors())

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return _error_response(request, 404, "not_found", f"Route not found: {request.url.path}")
        if exc.status_code == 405:
            return _error_response(request, 405, "method_not_allowed", str(exc.detail))
        return _error_response(request, exc.status_code, "http_error", str(exc.detail))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        workspace_for(app).runtime_log.error(
            "request.error",
            request_id=_request_id(request),
            path=request.url.path,
            error=str(exc),
        )
        return _error_response(request, 500, "internal_error", str(exc) or "Internal server error")

    # -----------------------------------------------------------------------
    # Include routers
    # -----------------------------------------------------------------------
    app.include_router(skills.router)
    app.include_router(presets.router)
    app.include_router(runs.router)
    app.include_router(openclaw.router)
    app.include_router(license.router)

    @app.get("/health", tags=["meta"])
    async def health_check():
        """Health check endpoint."""
        return {"ok": True, "service": "lobester-connector", "version": __version__}

    return app


app = create_app()
