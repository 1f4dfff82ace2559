# =============================================================================
# Insights API — Search, Analytics & Export
# =============================================================================
#
#   GET /search     → full-text search over questions and answers
#   GET /analytics  → aggregate statistics computed by the database
#   GET /export     → every exchange as a JSON or CSV attachment
#
# Listings here never include client ip / user agent metadata.
# =============================================================================

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.chat import to_exchange_response
from app.api.deps import clamp_limit
from app.config import settings
from app.db.engine import get_async_session
from app.models.responses import (
    AnalyticsResponse,
    ErrorResponse,
    ExportResponse,
    SearchResponse,
)
from app.services import exchanges as exchange_store
from app.services.errors import ValidationFailed

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Insights"])


# ---------------------------------------------------------------------------
# GET /search
# ---------------------------------------------------------------------------


@router.get(
    "/search",
    response_model=SearchResponse,
    summary="Search exchanges",
    description=(
        "Full-text search over questions and answers. Uses PostgreSQL text "
        "search when available, substring matching otherwise."
    ),
    responses={400: {"model": ErrorResponse}},
)
async def search(
    q: str = Query(..., max_length=200),
    limit: int = Query(default=20, ge=1),
    session: AsyncSession = Depends(get_async_session),
) -> SearchResponse:
    query = q.strip()
    if not query:
        raise ValidationFailed("Search query is required")

    limit = clamp_limit(limit, settings.max_search_results)
    results = await exchange_store.search_exchanges(session, query, limit=limit)

    logger.info("Search '%s' matched %d exchanges", query[:80], len(results))

    return SearchResponse(
        query=query,
        count=len(results),
        results=[to_exchange_response(e, hide_sensitive=True) for e in results],
    )


# ---------------------------------------------------------------------------
# GET /analytics
# ---------------------------------------------------------------------------


@router.get(
    "/analytics",
    response_model=AnalyticsResponse,
    summary="Usage analytics",
    description="Counts, averages, rating distribution, daily activity and top tags.",
)
async def analytics(
    days: int = Query(default=7, ge=1, le=90),
    session: AsyncSession = Depends(get_async_session),
) -> AnalyticsResponse:
    stats = await exchange_store.compute_analytics(session, days=days)
    return AnalyticsResponse(**stats)


# ---------------------------------------------------------------------------
# GET /export
# ---------------------------------------------------------------------------


@router.get(
    "/export",
    summary="Export all exchanges",
    description="Download every exchange as JSON (default) or CSV.",
    responses={
        200: {
            "content": {
                "application/json": {},
                "text/csv": {},
            },
        },
    },
)
async def export(
    export_format: Literal["json", "csv"] = Query(default="json", alias="format"),
    session: AsyncSession = Depends(get_async_session),
) -> Response:
    rows = await exchange_store.export_exchanges(session)
    now = datetime.now(UTC)
    filename = f"chatmosaic-export-{now.strftime('%Y%m%dT%H%M%SZ')}.{export_format}"
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}

    logger.info("Exporting %d exchanges as %s", len(rows), export_format)

    if export_format == "csv":
        return Response(
            content=exchange_store.exchanges_to_csv(rows),
            media_type="text/csv; charset=utf-8",
            headers=headers,
        )

    body = ExportResponse(
        exported_at=now,
        count=len(rows),
        exchanges=[to_exchange_response(e, hide_sensitive=True) for e in rows],
    )
    return JSONResponse(
        content=body.model_dump(mode="json", by_alias=True),
        headers=headers,
    )
