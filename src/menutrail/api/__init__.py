"""MenuTrail API service.

FastAPI application providing the DoorDash sandbox delivery API used by
the restaurant dashboard's delivery test page and the tracking page.

This module provides the app factory pattern for creating configured
FastAPI instances suitable for testing and production deployment.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from menutrail.api.middleware import ErrorHandlerMiddleware, RequestIDMiddleware
from menutrail.api.routers import sandbox_router
from menutrail.core.config import SandboxSettings
from menutrail.services.sandbox import SandboxDeliveryStore

if TYPE_CHECKING:
    from menutrail.core.config import Settings

logger = logging.getLogger(__name__)

API_TITLE = "MenuTrail Delivery Sandbox API"
API_DESCRIPTION = """
Offline simulation of DoorDash Drive deliveries.

## Namespaces

- **/api/sandbox-deliveries/** - Create, track, override and cancel sandbox deliveries

## Documentation

- OpenAPI spec: `/api/openapi.json`
- Swagger UI: `/api/docs`
- ReDoc: `/api/redoc`
"""


def create_app(
    settings: Settings | None = None,
    store: SandboxDeliveryStore | None = None,
) -> FastAPI:
    """Create and configure a FastAPI application instance.

    Each application owns one SandboxDeliveryStore, kept on `app.state`
    for the lifetime of the process.

    Args:
        settings: Optional Settings instance. Defaults apply when omitted.
        store: Optional store to serve; a fresh one is created otherwise.

    Returns:
        Configured FastAPI application ready to serve requests.

    Example:
        app = create_app()

        # Sharing a store with a test
        store = SandboxDeliveryStore(clock=fake_clock)
        app = create_app(store=store)
    """
    version = settings.app_version if settings else "0.1.0"

    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=version,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    app.state.settings = settings
    if store is None:
        store = SandboxDeliveryStore(settings.sandbox if settings else SandboxSettings())
    app.state.sandbox_store = store

    # Add middleware (order matters - last added is outermost)
    _add_middleware(app, settings)

    app.include_router(sandbox_router, prefix="/api")

    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint for container orchestration."""
        return {"status": "healthy"}

    logger.info("MenuTrail API application created (version=%s)", version)

    return app


def _add_middleware(app: FastAPI, settings: Settings | None) -> None:
    """Add middleware to the application.

    Args:
        app: The FastAPI application instance.
        settings: Optional settings for middleware configuration.
    """
    # Request IDs wrap the error handler so error responses carry one too
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # The Next.js dashboard runs on :3000 in development
    allowed_origins = ["http://localhost:3000", "http://localhost:8000"]
    if settings and settings.is_production:
        allowed_origins = []

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
