# =============================================================================
# Exchange Service — Persistence Queries for Question/Answer Exchanges
# =============================================================================
#
# All database access for the `exchanges` table lives here. Route handlers
# pass in the request-scoped AsyncSession; functions flush but never commit,
# the session dependency commits when the request succeeds.
#
#   create_exchange()    → insert a new row with a timestamp-based id
#   get_exchange()       → lookup by public id (None when absent)
#   list_exchanges()     → filtered, sorted, paginated page + total count
#   update_exchange()    → whitelisted patch (is_starred / rating / tags)
#   delete_exchange()    → remove by public id
#   search_exchanges()   → full-text (PostgreSQL) or substring (others)
#   compute_analytics()  → aggregate statistics
#   export_exchanges()   → every row, oldest first
#   exchanges_to_csv()   → CSV rendering for the export endpoint
# =============================================================================

from __future__ import annotations

import csv
import io
import logging
import secrets
import time
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import case, func, or_, select, true
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import Exchange

logger = logging.getLogger(__name__)

# Metadata keys never returned by list/search/export.
SENSITIVE_METADATA_FIELDS = frozenset({"ipAddress", "userAgent"})

# Fields a client may change after creation.
UPDATABLE_FIELDS = ("is_starred", "rating", "tags")

SORT_COLUMNS = {
    "timestamp": Exchange.timestamp,
    "rating": Exchange.rating,
    "question": Exchange.question,
}

CSV_COLUMNS = ["id", "timestamp", "question", "answer", "rating", "isStarred", "tags"]


@dataclass
class ExchangePage:
    """One page of exchanges plus the unpaginated match count."""

    items: list[Exchange]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.total else 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def new_exchange_id() -> str:
    """Microseconds since the epoch followed by three random digits."""
    return f"{time.time_ns() // 1000}{secrets.randbelow(1000):03d}"


def public_metadata(metadata: dict | None) -> dict:
    """Copy of `metadata` without the sensitive client fields."""
    return {
        key: value
        for key, value in (metadata or {}).items()
        if key not in SENSITIVE_METADATA_FIELDS
    }


def normalize_tags(tags: list[str]) -> list[str]:
    """Trim, lower-case and de-duplicate tags, keeping first-seen order."""
    seen: dict[str, None] = {}
    for tag in tags:
        cleaned = tag.strip().lower()
        if cleaned:
            seen.setdefault(cleaned, None)
    return list(seen)


def _dialect_name(session: AsyncSession) -> str:
    return session.get_bind().dialect.name


def _tag_elements(session: AsyncSession):
    """One row per tag of each exchange, exposed as column `value`."""
    if _dialect_name(session) == "postgresql":
        elements = func.jsonb_array_elements_text(Exchange.tags)
    else:
        elements = func.json_each(Exchange.tags)
    return elements.table_valued("value", name="tag")


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


async def create_exchange(
    session: AsyncSession,
    question: str,
    answer: str,
    formatted_answer: str,
    metadata: dict[str, Any] | None = None,
) -> Exchange:
    """Insert a new exchange and return it with its generated id."""
    exchange = Exchange(
        id=new_exchange_id(),
        question=question,
        answer=answer,
        formatted_answer=formatted_answer,
        metadata_=metadata or {},
        tags=[],
        rating=None,
        is_starred=False,
        timestamp=datetime.now(UTC),
    )
    session.add(exchange)
    await session.flush()
    logger.info("Exchange created: id=%s", exchange.id)
    return exchange


async def get_exchange(session: AsyncSession, exchange_id: str) -> Exchange | None:
    result = await session.execute(select(Exchange).where(Exchange.id == exchange_id))
    return result.scalar_one_or_none()


async def list_exchanges(
    session: AsyncSession,
    page: int = 1,
    limit: int = 10,
    starred: bool | None = None,
    min_rating: int | None = None,
    sort: str = "timestamp",
    order: str = "desc",
) -> ExchangePage:
    """
    Return one page of exchanges.

    `sort` must be a key of SORT_COLUMNS; unknown keys fall back to
    timestamp. Ties are broken by insertion order.
    """
    filters = []
    if starred is not None:
        filters.append(Exchange.is_starred.is_(starred))
    if min_rating is not None:
        filters.append(Exchange.rating >= min_rating)

    column = SORT_COLUMNS.get(sort, Exchange.timestamp)
    if order == "asc":
        ordering = [column.asc().nulls_last(), Exchange.pk.asc()]
    else:
        ordering = [column.desc().nulls_last(), Exchange.pk.desc()]

    stmt = (
        select(Exchange)
        .where(*filters)
        .order_by(*ordering)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await session.execute(stmt)
    items = list(result.scalars().all())

    count_stmt = select(func.count(Exchange.pk)).where(*filters)
    total = (await session.execute(count_stmt)).scalar() or 0

    return ExchangePage(items=items, total=total, page=page, limit=limit)


async def update_exchange(
    session: AsyncSession,
    exchange: Exchange,
    changes: dict[str, Any],
) -> Exchange:
    """
    Apply whitelisted changes to an exchange.

    Keys outside UPDATABLE_FIELDS are ignored.
    """
    applied = []
    for field in UPDATABLE_FIELDS:
        if field not in changes:
            continue
        value = changes[field]
        if field == "tags":
            value = normalize_tags(value or [])
        setattr(exchange, field, value)
        applied.append(field)

    exchange.updated_at = datetime.now(UTC)
    await session.flush()
    await session.refresh(exchange)
    logger.info("Exchange updated: id=%s, fields=%s", exchange.id, applied)
    return exchange


async def delete_exchange(session: AsyncSession, exchange_id: str) -> bool:
    """Delete by public id. Returns False when nothing matched."""
    exchange = await get_exchange(session, exchange_id)
    if exchange is None:
        return False
    await session.delete(exchange)
    await session.flush()
    logger.info("Exchange deleted: id=%s", exchange_id)
    return True


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def search_exchanges(
    session: AsyncSession,
    query: str,
    limit: int = 20,
) -> list[Exchange]:
    """
    Find exchanges whose question or answer matches `query`.

    PostgreSQL: `to_tsvector` / `plainto_tsquery`, ranked by `ts_rank`.
    Other dialects: case-insensitive substring match, newest first.
    """
    if _dialect_name(session) == "postgresql":
        document = func.to_tsvector(
            "english", Exchange.question + " " + Exchange.answer,
        )
        ts_query = func.plainto_tsquery("english", query)
        stmt = (
            select(Exchange)
            .where(document.op("@@")(ts_query))
            .order_by(func.ts_rank(document, ts_query).desc(), Exchange.timestamp.desc())
            .limit(limit)
        )
    else:
        pattern = f"%{_escape_like(query)}%"
        stmt = (
            select(Exchange)
            .where(or_(
                Exchange.question.ilike(pattern, escape="\\"),
                Exchange.answer.ilike(pattern, escape="\\"),
            ))
            .order_by(Exchange.timestamp.desc(), Exchange.pk.desc())
            .limit(limit)
        )

    result = await session.execute(stmt)
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------


async def compute_analytics(
    session: AsyncSession,
    days: int = 7,
    top_tags: int = 10,
) -> dict[str, Any]:
    """Aggregate statistics over all exchanges."""
    totals_stmt = select(
        func.count(Exchange.pk),
        func.coalesce(func.sum(case((Exchange.is_starred.is_(True), 1), else_=0)), 0),
        func.count(Exchange.rating),
        func.avg(Exchange.rating),
        func.avg(func.length(Exchange.question)),
        func.avg(func.length(Exchange.answer)),
    )
    (
        total,
        starred,
        rated,
        avg_rating,
        avg_question_length,
        avg_answer_length,
    ) = (await session.execute(totals_stmt)).one()

    distribution_stmt = (
        select(Exchange.rating, func.count(Exchange.pk))
        .where(Exchange.rating.is_not(None))
        .group_by(Exchange.rating)
    )
    distribution = {str(score): 0 for score in range(1, 6)}
    for rating, count in (await session.execute(distribution_stmt)).all():
        distribution[str(rating)] = count

    cutoff = datetime.now(UTC) - timedelta(days=days)
    day = func.date(Exchange.timestamp)
    daily_stmt = (
        select(day, func.count(Exchange.pk))
        .where(Exchange.timestamp >= cutoff)
        .group_by(day)
        .order_by(day)
    )
    daily = [
        {"date": str(bucket), "count": count}
        for bucket, count in (await session.execute(daily_stmt)).all()
    ]

    tag = _tag_elements(session)
    uses = func.count(tag.c.value)
    tags_stmt = (
        select(tag.c.value, uses)
        .select_from(Exchange)
        .join(tag, true())
        .group_by(tag.c.value)
        .order_by(uses.desc(), tag.c.value)
        .limit(top_tags)
    )
    popular_tags = (await session.execute(tags_stmt)).all()

    return {
        "total_exchanges": total or 0,
        "starred_exchanges": int(starred or 0),
        "rated_exchanges": rated or 0,
        "average_rating": round(float(avg_rating), 2) if avg_rating is not None else None,
        "average_question_length": round(float(avg_question_length or 0), 1),
        "average_answer_length": round(float(avg_answer_length or 0), 1),
        "rating_distribution": distribution,
        "daily_activity": daily,
        "top_tags": [
            {"tag": name, "count": count}
            for name, count in popular_tags
        ],
    }


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


async def export_exchanges(session: AsyncSession) -> list[Exchange]:
    stmt = select(Exchange).order_by(Exchange.timestamp.asc(), Exchange.pk.asc())
    result = await session.execute(stmt)
    return list(result.scalars().all())


def exchanges_to_csv(exchanges: list[Exchange]) -> str:
    """Render exchanges as RFC-4180 CSV with a header row; tags joined by ';'."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\r\n")
    writer.writerow(CSV_COLUMNS)
    for exchange in exchanges:
        writer.writerow([
            exchange.id,
            exchange.timestamp.isoformat() if exchange.timestamp else "",
            exchange.question,
            exchange.answer,
            "" if exchange.rating is None else exchange.rating,
            "true" if exchange.is_starred else "false",
            ";".join(exchange.tags or []),
        ])
    return buffer.getvalue()
