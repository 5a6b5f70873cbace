"""FastAPI application factory."""

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI
from sqlalchemy import text
from sqlalchemy.orm import Session

from sermon_audio.api.v1.router import api_router
from sermon_audio.config import settings
from sermon_audio.core.database.base import Base
from sermon_audio.core.database.session import engine, get_db
from sermon_audio.core.events.bus import get_event_bus
from sermon_audio.core.events.types import EventType
from sermon_audio.core.logging import LoggingMiddleware, get_logger, setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifecycle management."""

    # === STARTUP ===
    setup_logging(
        log_level=settings.log_level,
        log_format=settings.log_format,
        is_development=settings.is_development,
        logs_dir=settings.logs_dir,
        log_to_file=settings.log_to_file,
        log_file_max_bytes=settings.log_file_max_bytes,
        log_file_backup_count=settings.log_file_backup_count,
    )

    logger = get_logger(__name__)
    logger.info("application_starting", app_name=settings.app_name, environment=settings.app_env)

    Base.metadata.create_all(bind=engine)

    event_bus = get_event_bus()
    app.state.event_bus = event_bus
    app.state.start_time = time.time()

    event_bus.publish(
        EventType.SYSTEM_STARTUP,
        source="system",
        payload={"app_name": settings.app_name, "environment": settings.app_env},
    )
    logger.info("application_started_successfully", app_name=settings.app_name)

    yield

    # === SHUTDOWN ===
    logger.info("application_shutting_down", app_name=settings.app_name)
    event_bus.publish(
        EventType.SYSTEM_SHUTDOWN,
        source="system",
        payload={
            "app_name": settings.app_name,
            "uptime_seconds": time.time() - app.state.start_time,
        },
    )
    engine.dispose()
    logger.info("application_shutdown_complete", app_name=settings.app_name)


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        description="Refresh service for sermon audio derived artifacts",
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
        openapi_url="/api/openapi.json" if settings.debug else None,
    )

    # Logging middleware (adds correlation IDs and request context)
    app.add_middleware(LoggingMiddleware)

    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health")
    def health_check(db: Annotated[Session, Depends(get_db)]) -> dict:
        """Liveness and database connectivity - NO AUTH REQUIRED."""
        logger = get_logger(__name__)
        db_status = "connected"
        try:
            db.execute(text("SELECT 1"))
        except Exception as e:
            db_status = "error"
            logger.error("health_check_database_failed", error=str(e))

        return {
            "status": "healthy" if db_status == "connected" else "degraded",
            "app_name": settings.app_name,
            "database": db_status,
        }

    return app


app = create_app()
