"""FastAPI application entry point for the pet lifecycle service.

Lifecycle:
    1. Startup: Initialize logging and the database, create tables (dev mode).
    2. Running: Serve the REST API at /api/v1/* on a single Uvicorn process.
    3. Shutdown: Close database connections gracefully.

Run with:
    uv run uvicorn pet_lifecycle.main:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from pet_lifecycle import __version__
from pet_lifecycle.config import get_settings
from pet_lifecycle.logging_config import get_logger, setup_logging

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle."""
    settings = get_settings()

    # 1. Setup structured logging
    setup_logging(
        log_level=settings.app_log_level,
        json_logs=not settings.is_development,
    )
    logger = get_logger(__name__)
    logger.info(
        "app.starting",
        env=settings.app_env,
        debug=settings.app_debug,
    )

    # 2. Initialize database (skipped when a session factory was injected)
    from pet_lifecycle.infrastructure.database.engine import close_db, init_db

    if getattr(app.state, "session_factory", None) is None:
        await init_db()

    logger.info("app.started", host=settings.app_host, port=settings.app_port)

    yield

    # Shutdown
    logger.info("app.shutting_down")
    await close_db()
    logger.info("app.stopped")


def create_app(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> FastAPI:
    """Application factory — creates and configures the FastAPI app."""
    settings = get_settings()

    app = FastAPI(
        title="Pet Lifecycle",
        description=(
            "Adoption, custody and escrow lifecycle for a pet adoption platform."
        ),
        version=__version__,
        lifespan=lifespan,
        debug=settings.app_debug,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )
    app.state.session_factory = session_factory

    # --- Middleware ---
    from pet_lifecycle.api.middleware import setup_middleware

    setup_middleware(app)

    # --- REST API Routes ---
    from pet_lifecycle.api.routes.adoptions import router as adoptions_router
    from pet_lifecycle.api.routes.custody import router as custody_router
    from pet_lifecycle.api.routes.escrow import router as escrow_router
    from pet_lifecycle.api.routes.events import router as events_router
    from pet_lifecycle.api.routes.health import router as health_router
    from pet_lifecycle.api.routes.pets import router as pets_router

    app.include_router(health_router)
    app.include_router(adoptions_router)
    app.include_router(custody_router)
    app.include_router(escrow_router)
    app.include_router(pets_router)
    app.include_router(events_router)

    return app


# The app instance used by Uvicorn
app = create_app()
