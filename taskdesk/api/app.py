"""
FastAPI application factory for TaskDesk.

This module creates the HTTP app with:
- Services lifecycle (schema creation and seeding on start-up)
- In-memory session registry
- CORS configuration for a local frontend
- Mapping of TaskDeskError codes to HTTP status codes

Usage:
    uvicorn taskdesk.api.app:create_app --factory --port 8765
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .._version import __version__
from ..config import AppConfig
from ..errors import TaskDeskError
from ..services import Services
from .config import Settings
from .routes import router
from .sessions import SessionRegistry

logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    "NOT_FOUND": 404,
    "UNAUTHORIZED": 403,
    "INVALID_CREDENTIALS": 401,
    "ACCOUNT_LOCKED": 423,
    "INVALID_OPERATION": 400,
    "STORAGE_FAILURE": 500,
    "SESSION_REQUIRED": 401,
}


async def taskdesk_error_handler(request: Request, exc: TaskDeskError) -> JSONResponse:
    status = STATUS_BY_CODE.get(exc.code, 500)
    if status >= 500:
        logger.error(
            "Request failed",
            extra={"path": request.url.path, "error_code": exc.code},
            exc_info=exc,
        )
    return JSONResponse(status_code=status, content={"error": exc.message, "error_code": exc.code})


def create_app(config: AppConfig | None = None, settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Core configuration (defaults to AppConfig.from_env())
        settings: HTTP settings (defaults to Settings())
    """
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        services = Services.build(config or AppConfig.from_env())
        await services.start()

        app.state.services = services
        app.state.sessions = SessionRegistry()
        app.state.settings = settings

        yield

        logger.info("TaskDesk API stopped")

    app = FastAPI(
        title="TaskDesk",
        description="Personal task, category and agenda manager with role-based administration.",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(TaskDeskError, taskdesk_error_handler)
    app.include_router(router, prefix="/api/v1")

    @app.get("/health")
    async def health():
        return {"status": "healthy", "service": "taskdesk", "version": __version__}

    return app
