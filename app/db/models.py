# =============================================================================
# Database Models — SQLAlchemy ORM
# =============================================================================
#
# SCHEMA OVERVIEW:
#
# ┌────────────────────────────────────┐
# │  exchanges                         │
# ├────────────────────────────────────┤
# │ pk (PK, internal)                  │
# │ id (public id, unique)             │
# │ question (text)                    │
# │ answer (text)                      │
# │ formatted_answer (text, html)      │
# │ metadata_ (json)                   │
# │ tags (json list)                   │
# │ rating (int 1..5, nullable)        │
# │ is_starred (bool)                  │
# │ timestamp                          │
# │ updated_at                         │
# └────────────────────────────────────┘
#
# One row per question/answer exchange. There are no relationships.
#
# The public `id` is a timestamp-based string handed out to clients; `pk` is
# the surrogate key the database indexes on and is never exposed.
#
# JSON columns use JSONB on PostgreSQL and the generic JSON type elsewhere,
# so the same models run against SQLite in tests.
# =============================================================================

from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Portable JSON column type: JSONB on PostgreSQL, JSON everywhere else.
JSONType = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base class. All ORM models inherit from this."""

    pass


class Exchange(Base):
    """
    One question/answer pair produced by the AI provider.

    Lifecycle:
        created on a successful provider call → optionally annotated
        (star/rate/tag) → deleted by id.
    """

    __tablename__ = "exchanges"

    pk: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Public identifier, e.g. "1718031234567890042"
    id: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)

    question: Mapped[str] = mapped_column(Text, nullable=False)
    answer: Mapped[str] = mapped_column(Text, nullable=False)

    # Sanitized HTML rendering of `answer`
    formatted_answer: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Descriptive only: model, provider, timings, lengths, client info.
    # The trailing underscore avoids conflict with SQLAlchemy's `.metadata`.
    metadata_: Mapped[dict] = mapped_column(
        "metadata", JSONType, nullable=False, default=dict,
    )

    # User annotations
    tags: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_starred: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint(
            "rating IS NULL OR (rating >= 1 AND rating <= 5)",
            name="ck_exchanges_rating_range",
        ),
        CheckConstraint("length(question) > 0", name="ck_exchanges_question"),
        CheckConstraint("length(answer) > 0", name="ck_exchanges_answer"),
        Index("ix_exchanges_timestamp", "timestamp"),
        Index("ix_exchanges_is_starred", "is_starred"),
    )

    def __repr__(self) -> str:
        return f"<Exchange(id='{self.id}', question='{self.question[:40]}')>"
