"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance with its own RealtimeHub on app.state. Lifespan handles
shutdown (ring timers, database engine). Middleware, CORS, the REST
routers and the WebSocket route are all registered here.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lumina import __version__
from lumina.api import api_router
from lumina.config import Settings, settings
from lumina.realtime.hub import RealtimeHub, build_realtime

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info(
        "lumina.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        ring_timeout=settings.ring_timeout_seconds,
    )

    yield

    logger.info("lumina.shutdown", **app.state.realtime.stats())
    app.state.realtime.shutdown()

    from lumina.db.engine import engine
    await engine.dispose()


def create_app(
    config: Optional[Settings] = None,
    hub: Optional[RealtimeHub] = None,
) -> FastAPI:
    """Build and return the FastAPI application."""
    config = config or settings
    app = FastAPI(
        title="Lumina Realtime",
        description="Notification fan-out, presence and call signaling for Lumina",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.realtime = hub or build_realtime(
        ring_timeout_seconds=config.ring_timeout_seconds,
        end_call_on_disconnect=config.end_call_on_disconnect,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → Security → CORS → handler

    from lumina.middleware.request_id import RequestIdMiddleware
    from lumina.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router)

    from lumina.realtime.websocket import router as ws_router
    app.include_router(ws_router)

    return app


# Default app instance (used by uvicorn: lumina.main:app)
app = create_app()
