"""
FastAPI application factory.

``create_app()`` assembles the application with CORS, error handlers,
routers, and the health endpoint. The module-level ``app`` instance
allows ``uvicorn voicebro.api.app:app --reload``.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from voicebro import __version__
from voicebro.api import websocket
from voicebro.api.middleware.error_handler import register_error_handlers
from voicebro.api.routes import catalog, insights, session
from voicebro.core.config import get_settings
from voicebro.core.models import HealthResponse
from voicebro.services.session import create_session
from voicebro.services.storage.database import close_db, init_db


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown lifecycle.

    Startup: initialize the async SQLite database, then build and start the
    session state machine.
    Shutdown: cancel pending session work and release capture, then dispose
    the DB engine.
    """
    await init_db()
    machine = create_session(get_settings())
    machine.start()
    app.state.session = machine
    yield
    await machine.close()
    app.state.session = None
    await close_db()


def create_app() -> FastAPI:
    """Build and return a fully configured FastAPI application.

    Returns:
        FastAPI: The configured application, ready for ``uvicorn``.
    """

    app = FastAPI(
        title="VoiceBro",
        description="Turn a spoken note into six perspective-based commentaries.",
        version=__version__,
        lifespan=lifespan,
    )

    # -- CORS --
    settings = get_settings()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -- Error handlers --
    register_error_handlers(app)

    # -- Health check (root-level, not under /api/v1) --
    @app.get("/health", response_model=HealthResponse, tags=["system"])
    async def health() -> HealthResponse:
        return HealthResponse(version=__version__, timestamp=datetime.now(UTC))

    # -- REST routes --
    app.include_router(session.router, prefix="/api/v1")
    app.include_router(insights.router, prefix="/api/v1")
    app.include_router(catalog.router, prefix="/api/v1")

    # -- WebSocket --
    app.include_router(websocket.router)

    return app


app = create_app()
