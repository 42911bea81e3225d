"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from whiteboard.board.router import router as board_router
from whiteboard.config import get_settings
from whiteboard.database import close_db, get_session, init_db
from whiteboard.engagement.router import router as engagement_router
from whiteboard.engagement.seed import seed_catalog
from whiteboard.health.router import router as health_router
from whiteboard.middleware import setup_middleware
from whiteboard.redis_client import close_redis, init_redis

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    # Boards, flairs, achievements, collections (idempotent)
    try:
        async for db in get_session():
            await seed_catalog(db)
            break
    except Exception:
        logger.warning("Catalog seeding failed (tables may not exist yet)", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Whiteboard API",
        description="Daily posts, comments and the Whiteboard engagement economy",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(board_router)
    app.include_router(engagement_router)

    return app


app = create_app()
