"""Application factory helpers to keep ecoscan/main.py lightweight."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

import orjson
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ecoscan.api.router import api_router
from ecoscan.core.config import settings
from ecoscan.core.database import get_db
from ecoscan.core.error_handlers import create_error_response, register_exception_handlers
from ecoscan.core.events import event_bus, install_default_subscribers
from ecoscan.core.logging_config import setup_logging
from ecoscan.core.middleware import LoggingMiddleware, limiter

logger = logging.getLogger(__name__)


def _configure_app(app: FastAPI) -> None:
    # Logs all requests and responses with timing
    app.add_middleware(LoggingMiddleware)

    origins = settings.cors_origin_list or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)
    _mount_uploads(app)


def _register_routes(app: FastAPI) -> None:
    # Liveness: is the process running?
    @app.get("/livez", tags=["Health"])
    async def livez():
        return {"status": "ok"}

    # Readiness: can we reach the database?
    @app.get("/readyz", tags=["Health"])
    def readyz(db: Session = Depends(get_db)):
        try:
            db.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.error(f"Readiness check failed (Database): {e}")
            return create_error_response(
                status_code=503,
                error_code="not_ready",
                message="Database unavailable",
                details={"database": "disconnected"},
                path="/readyz",
            )
        return {"status": "ready", "details": {"database": "connected"}}


def _mount_uploads(app: FastAPI) -> None:
    uploads_dir = Path(settings.uploads_root)
    uploads_dir.mkdir(parents=True, exist_ok=True)
    app.mount(
        settings.uploads_base_url,
        StaticFiles(directory=uploads_dir, check_dir=False),
        name="uploads",
    )


def _lifespan_factory():
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        install_default_subscribers(event_bus)
        logger.info(f"{settings.SITE_NAME} ready ({settings.environment})")

        yield

        # Shutdown
        logger.info("Application shutdown")

    return lifespan


def create_app() -> FastAPI:
    """
    Application Factory to create and configure the FastAPI application.
    Integrates Logging, Error Handling, Rate Limiting, and Middleware.
    """
    setup_logging(
        log_level=settings.log_level,
        log_dir=settings.log_dir,
        app_name="ecoscan",
        max_bytes=10 * 1024 * 1024,  # 10 MB
        backup_count=5,
        use_json=settings.use_json_logs,
        use_colors=True,
    )

    app = FastAPI(
        title=f"{settings.SITE_NAME} API",
        description="Recycling rewards, guest progress migration and a points marketplace",
        version="1.0.0",
        lifespan=_lifespan_factory(),
        default_response_class=ORJSONResponse,
        json_dumps=lambda v, *, default: orjson.dumps(v, default=default),
        json_loads=orjson.loads,
    )

    app.state.environment = settings.environment
    # The RateLimitExceeded handler lives in register_exception_handlers.
    app.state.limiter = limiter

    _configure_app(app)
    _register_routes(app)
    register_exception_handlers(app)

    logger.info("Application startup complete")
    return app


__all__ = ["create_app"]
