# =============================================================================
# Application Entry Point — FastAPI App Factory
# =============================================================================
#
# create_app() wires:
#   - routers under /api (chat, insights, health)
#   - middleware: GZip compression, request logging
#   - JSON error envelope handlers
#   - lifespan: logging config + database init on startup, engine dispose
#     on shutdown
#
# Run locally:
#   uvicorn app.main:app --reload --port 4000
#   python -m app.main
# =============================================================================

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.gzip import GZipMiddleware

from app.api import chat, health, insights
from app.api.errors import register_exception_handlers
from app.api.request_log import RequestLoggingMiddleware
from app.config import settings
from app.db.engine import async_engine, init_db

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging(settings.log_level)
    logger.info(
        "Starting %s %s (%s, provider=%s)",
        settings.app_name, settings.app_version,
        settings.environment, settings.llm_provider,
    )
    await init_db()
    yield
    await async_engine.dispose()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Ask questions, keep the answers.",
        lifespan=lifespan,
    )

    app.add_middleware(GZipMiddleware, minimum_size=settings.gzip_minimum_size)
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)

    app.include_router(chat.router, prefix="/api")
    app.include_router(insights.router, prefix="/api")
    app.include_router(health.router, prefix="/api")

    return app


app = create_app()


def main() -> None:
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
