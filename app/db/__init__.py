# =============================================================================
# Database Package
# =============================================================================
# Provides async SQLAlchemy engine, session management, and ORM models.
#
# Key exports:
#   - get_async_session: FastAPI dependency for database sessions
#   - init_db: table creation with bounded connection retries
#   - Base: SQLAlchemy declarative base for ORM models
#   - Exchange: ORM model for question/answer exchanges
# =============================================================================
