# =============================================================================
# Database Engine & Session Management
# =============================================================================
#
# Async SQLAlchemy engine shared by all request handlers.
#
# SESSION LIFECYCLE:
# 1. FastAPI request arrives
# 2. `get_async_session` dependency creates a new session
# 3. Route handler uses session for DB operations
# 4. Session auto-commits on exit and is closed when the request completes
# 5. On exception, the transaction is rolled back
#
# RECONNECTS:
# `pool_pre_ping=True` tests each pooled connection before handing it out and
# transparently replaces connections the server has dropped. The only other
# retry is the bounded connection loop in `init_db()` at startup.
# =============================================================================

import asyncio
import logging
from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.config import settings
from app.db.models import Base

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Async Engine
# ---------------------------------------------------------------------------
# - echo=debug: logs all SQL statements.
# - pool_size / max_overflow only apply to pooled dialects (not SQLite).
# ---------------------------------------------------------------------------
_engine_kwargs: dict = {"echo": settings.debug, "pool_pre_ping": True}
if not settings.database_url.startswith("sqlite"):
    _engine_kwargs.update(pool_size=5, max_overflow=10)

async_engine = create_async_engine(settings.database_url, **_engine_kwargs)

# ---------------------------------------------------------------------------
# Session Factory
# ---------------------------------------------------------------------------
# expire_on_commit=False: attributes stay loaded after commit, so handlers
# can build responses without triggering lazy loads outside the session.
# ---------------------------------------------------------------------------
async_session_factory = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_db(
    engine: AsyncEngine | None = None,
    retries: int | None = None,
    delay: float | None = None,
) -> None:
    """
    Create tables, retrying the initial connection a fixed number of times.

    Raises the last connection error once all attempts are exhausted.
    """
    engine = engine or async_engine
    attempts = max(1, retries if retries is not None else settings.db_connect_retries)
    delay = settings.db_connect_retry_delay if delay is None else delay

    for attempt in range(1, attempts + 1):
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Connected to database (attempt %d/%d)", attempt, attempts)
            return
        except Exception as e:
            if attempt == attempts:
                logger.error("Database connection failed: %s", e)
                raise
            logger.warning(
                "Database connection attempt %d/%d failed: %s. "
                "Retrying in %.1fs...",
                attempt, attempts, e, delay,
            )
            await asyncio.sleep(delay)


async def ping_database(session: AsyncSession) -> bool:
    """Return True when a trivial query succeeds on the session's connection."""
    try:
        await session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning("Database ping failed: %s", e)
        await session.rollback()
        return False


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    Usage in route handlers:
        @router.get("/items")
        async def list_items(session: AsyncSession = Depends(get_async_session)):
            result = await session.execute(select(Item))
            return result.scalars().all()

    The session is automatically closed when the request completes.
    If an exception occurs, the transaction is rolled back.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
