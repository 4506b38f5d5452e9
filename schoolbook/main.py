"""FastAPI application entry point — wires everything together.

Usage:
    python -m schoolbook.main

Startup order: database, event system (+ subscribers), Telegram notifier,
notification dispatcher. Shutdown runs in reverse.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from schoolbook import __version__
from schoolbook.api import appointments, auth, availabilities, live, questionnaires, users
from schoolbook.config import Settings, settings
from schoolbook.db.engine import Database, db_lifespan
from schoolbook.notifications.dispatcher import NotificationDispatcher
from schoolbook.notifications.telegram import TelegramNotifier
from schoolbook.realtime.events import (
    emit,
    log_event,
    start_event_system,
    stop_event_system,
    subscribe,
    unsubscribe,
)
from schoolbook.realtime.hub import WebSocketHub
from schoolbook.scheduling.errors import SchedulingError, StorageError
from schoolbook.schemas.events import EventType, SystemEvent

# ── Logging setup ────────────────────────────────────────────────────

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    stream=sys.stdout,
)
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = logging.getLogger(__name__)
access_log = structlog.get_logger("schoolbook.access")

# ── FastAPI lifespan ─────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup and shutdown lifecycle."""
    cfg: Settings = app.state.settings
    cfg.validate_runtime()
    logger.info("Starting Schoolbook (env=%s)", cfg.environment)

    database: Database = getattr(app.state, "database", None) or Database.from_settings(cfg.db)
    app.state.database = database

    # 1. Database
    async with db_lifespan(database, create_tables=not cfg.is_production):
        # 2. Event system + subscribers
        hub = WebSocketHub()
        app.state.hub = hub
        subscribe(log_event)
        subscribe(hub.broadcast)
        await start_event_system()
        await emit(SystemEvent(
            event_type=EventType.SYSTEM_STARTUP,
            data={"environment": cfg.environment, "version": __version__},
            source_module="main",
        ))

        # 3. Telegram notifier (disabled when no token)
        notifier: TelegramNotifier = getattr(app.state, "notifier", None) or TelegramNotifier(
            cfg.telegram.telegram_bot_token
        )
        await notifier.start()

        # 4. Background notification dispatch
        dispatcher = NotificationDispatcher(notifier, timeout=cfg.telegram.notification_timeout)
        app.state.dispatcher = dispatcher

        try:
            yield
        finally:
            logger.info("Shutting down Schoolbook...")

            await dispatcher.shutdown()
            await notifier.stop()

            await hub.close_all()
            await emit(SystemEvent(event_type=EventType.SYSTEM_SHUTDOWN, source_module="main"))
            await stop_event_system()
            unsubscribe(hub.broadcast)
            unsubscribe(log_event)

    logger.info("Schoolbook shutdown complete")


# ── Error mapping ────────────────────────────────────────────────────


async def scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    """Translate core errors into HTTP responses using each class's status code."""
    if isinstance(exc, StorageError):
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.public_message})
    access_log.info(
        "request_refused",
        method=request.method,
        path=request.url.path,
        status=exc.status_code,
        error=type(exc).__name__,
    )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


# ── FastAPI app ──────────────────────────────────────────────────────


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Build the application. Tests pass their own settings."""
    app_settings = app_settings or settings
    app = FastAPI(
        title="Schoolbook API",
        description="Tutoring appointment scheduling for students, teachers and managers",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = app_settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(SchedulingError, scheduling_error_handler)  # type: ignore[arg-type]

    for module in (auth, users, availabilities, appointments, questionnaires, live):
        app.include_router(module.router)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {
            "status": "ok",
            "environment": app_settings.environment,
            "version": __version__,
        }

    return app


app = create_app()


# ── Entry point ──────────────────────────────────────────────────────

if __name__ == "__main__":
    uvicorn.run(
        "schoolbook.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
