"""FastAPI application factory for the termrelay server."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .state import get_chat_relay, get_terminal_registry, init_start_time
from .api.routes import health, terminals, chat, config, ws

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan context manager."""
    init_start_time()

    yield

    # Shutdown: stop chat streams and kill every shell we spawned
    await get_chat_relay().shutdown()
    registry = get_terminal_registry()
    if registry.count():
        logger.info("Shutting down %d terminal session(s)", registry.count())
    registry.destroy_all()


def create_app(
    title: str = "termrelay",
    debug: bool = False,
    cors_origins: list[str] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        title: Application title for OpenAPI docs
        debug: Enable debug mode
        cors_origins: List of allowed CORS origins (None = allow all)

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title=title,
        description="Terminal session and AI chat relay for a desktop coding tool",
        version=__version__,
        debug=debug,
        lifespan=lifespan,
    )

    if cors_origins is None:
        # Default: allow all origins for local desktop front-ends
        cors_origins = ["*"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(terminals.router, prefix="/api/v1/terminals", tags=["Terminals"])
    app.include_router(chat.router, prefix="/api/v1/chat", tags=["Chat"])
    app.include_router(config.router, prefix="/api/v1/config", tags=["Config"])
    app.include_router(ws.router, prefix="/api/v1", tags=["WebSocket"])

    return app
