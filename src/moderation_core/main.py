# src/moderation_core/main.py
"""Application factory for the moderation core HTTP adapter."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from moderation_core import __version__
from moderation_core.api.v1 import (
    appeals_router,
    content_flags_router,
    moderation_queue_router,
    reports_router,
)
from moderation_core.api.v1.dependencies import status_for
from moderation_core.core.logging_config import configure_logging
from moderation_core.core.settings import Settings
from moderation_core.db.session import create_db_engine, create_session_factory, create_tables
from moderation_core.services.errors import ModerationError
from moderation_core.services.events import EventDispatcher, EventPublisher, ModerationMetrics

logger = logging.getLogger(__name__)


async def moderation_error_handler(request: Request, exc: ModerationError) -> JSONResponse:
    """Render a service error as a JSON error response."""
    code = status_for(exc)
    logger.info("%s %s -> %d: %s", request.method, request.url.path, code, exc.message)
    return JSONResponse(status_code=code, content={"detail": exc.message})


def create_app(
    settings: Settings | None = None,
    dispatcher: EventDispatcher | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Configuration; loaded from the environment when omitted
        dispatcher: Transport for domain events; events are only logged when omitted

    Returns:
        Configured FastAPI application with its engine, session factory and
        event publisher stored on ``app.state``
    """
    settings = settings or Settings()
    configure_logging(settings.log_level)

    engine = create_db_engine(settings.effective_database_url, echo=settings.sql_debug)
    create_tables(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("%s %s started", settings.app_name, settings.app_version)
        yield
        engine.dispose()

    app = FastAPI(
        title=settings.app_name,
        description="Reports, content flags, moderation queue and appeals",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.publisher = EventPublisher(dispatcher, ModerationMetrics())

    app.add_exception_handler(ModerationError, moderation_error_handler)

    app.include_router(reports_router, prefix="/api/v1")
    app.include_router(content_flags_router, prefix="/api/v1")
    app.include_router(moderation_queue_router, prefix="/api/v1")
    app.include_router(appeals_router, prefix="/api/v1")

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint to verify the service is running."""
        return {"status": "ok"}

    @app.get("/metrics")
    async def metrics() -> dict[str, object]:
        """Return the in-process moderation event counters."""
        return app.state.publisher.metrics.snapshot()

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "moderation_core.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=Settings().debug,
    )
