# Uvicorn application factory <https://www.uvicorn.org/#application-factories>
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ws_relay.logging import logger
from ws_relay.managers.connection_manager import ConnectionManager
from ws_relay.routing import collect_subrouters
from ws_relay.settings import Settings, app_settings

__version__ = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan context manager for startup and shutdown.

    Startup operations:
    - Logs the active fan-out configuration

    Shutdown operations:
    - Closes every open session with 1001 (going away) so clients see a
      clean close instead of a reset
    """
    # Startup
    settings: Settings = app.state.settings
    logger.info(
        f"Relay started (policy={settings.BROADCAST_POLICY.value}, "
        f"envelope={settings.ENVELOPE.value}, "
        f"python={sys.version_info.major}.{sys.version_info.minor})"
    )

    yield

    # Shutdown
    logger.info("Relay shutdown initiated")

    closed = await app.state.connection_manager.close_all()
    if closed:
        logger.info(f"Closed {closed} open sessions")

    logger.info("Relay shutdown complete")


def application(settings: Settings | None = None) -> FastAPI:
    """
    Initializes and configures the relay application.

    A single ConnectionManager is built from the settings and stored on
    ``app.state``, together with the settings themselves; endpoints read
    both from there. Routers are collected from ``api/http`` and
    ``api/ws/consumers``. CORS is enabled for CORS_ORIGINS so browser
    clients served from another origin can reach the HTTP endpoints.

    Args:
        settings: Optional settings, defaults to the environment-derived
            ``app_settings``.

    Returns:
        The configured FastAPI application.
    """
    settings = settings or app_settings

    # Initialize application with lifespan context manager
    app = FastAPI(
        title="WebSocket relay",
        description="Real-time message relay",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.connection_manager = ConnectionManager.from_settings(settings)

    app.include_router(collect_subrouters())

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["GET", "POST"],
    )

    return app
