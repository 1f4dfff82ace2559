# =============================================================================
# Chat API — Exchange CRUD Endpoints
# =============================================================================
#
#   POST   /chat        → ask the AI provider, persist, return the exchange
#   GET    /chat        → paginated, filterable, sortable listing
#   GET    /chat/{id}   → one exchange (404 when absent)
#   PUT    /chat/{id}   → whitelisted patch: isStarred / rating / tags
#   DELETE /chat/{id}   → remove (404 when absent)
#
# Question validation (empty, too long, blocked content) happens before the
# provider is called, so rejected requests cost nothing.
# =============================================================================

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import clamp_limit, client_metadata, get_provider
from app.config import settings
from app.db.engine import get_async_session
from app.db.models import Exchange
from app.models.requests import ChatRequest, UpdateExchangeRequest
from app.models.responses import (
    DeleteResponse,
    ErrorResponse,
    ExchangeListResponse,
    ExchangeResponse,
    Pagination,
)
from app.services import exchanges as exchange_store
from app.services.chat import ask
from app.services.content_filter import check_question
from app.services.errors import ExchangeNotFound, ServiceUnavailable, ValidationFailed
from app.services.llm import LLMProvider

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Chat"])

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


def to_exchange_response(exchange: Exchange, hide_sensitive: bool = False) -> ExchangeResponse:
    """Convert an Exchange ORM row to its API representation."""
    metadata = exchange.metadata_ or {}
    if hide_sensitive:
        metadata = exchange_store.public_metadata(metadata)
    return ExchangeResponse(
        id=exchange.id,
        question=exchange.question,
        answer=exchange.answer,
        formatted_answer=exchange.formatted_answer,
        metadata=metadata,
        tags=exchange.tags or [],
        rating=exchange.rating,
        is_starred=exchange.is_starred,
        timestamp=exchange.timestamp,
    )


async def _get_or_404(session: AsyncSession, exchange_id: str) -> Exchange:
    exchange = await exchange_store.get_exchange(session, exchange_id)
    if exchange is None:
        raise ExchangeNotFound(exchange_id)
    return exchange


# ---------------------------------------------------------------------------
# POST /chat — Ask a question
# ---------------------------------------------------------------------------


@router.post(
    "/chat",
    response_model=ExchangeResponse,
    summary="Ask a question",
    description=(
        "Send a question to the AI provider. The answer is rendered to "
        "sanitized HTML, stored, and returned with its new id."
    ),
    responses={
        **_ERROR_RESPONSES,
        429: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def create_chat(
    http_request: Request,
    request: ChatRequest,
    provider: LLMProvider = Depends(get_provider),
    session: AsyncSession = Depends(get_async_session),
) -> ExchangeResponse:
    question = check_question(request.question, settings.max_question_length)

    logger.info(
        "Chat request: question='%s', history=%d",
        question[:80], len(request.history),
    )

    result = await ask(
        provider,
        question,
        history=[turn.model_dump() for turn in request.history],
    )

    metadata = {**result.metadata, **client_metadata(http_request)}
    try:
        exchange = await exchange_store.create_exchange(
            session,
            question=question,
            answer=result.answer,
            formatted_answer=result.formatted_answer,
            metadata=metadata,
        )
    except SQLAlchemyError as e:
        logger.exception("Failed to save exchange: %s", e)
        raise ServiceUnavailable(
            "Failed to save response", code="DATABASE_ERROR",
        ) from e

    return to_exchange_response(exchange)


# ---------------------------------------------------------------------------
# GET /chat — List exchanges
# ---------------------------------------------------------------------------


@router.get(
    "/chat",
    response_model=ExchangeListResponse,
    summary="List exchanges",
    description=(
        "Paginated listing. `limit` is capped at the configured maximum. "
        "Client ip and user agent are omitted from metadata."
    ),
    responses=_ERROR_RESPONSES,
)
async def list_chats(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_size, ge=1),
    starred: bool | None = Query(default=None),
    min_rating: int | None = Query(default=None, alias="minRating", ge=1, le=5),
    sort: str = Query(default="timestamp", pattern="^(timestamp|rating|question)$"),
    order: str = Query(default="desc", pattern="^(asc|desc)$"),
    session: AsyncSession = Depends(get_async_session),
) -> ExchangeListResponse:
    limit = clamp_limit(limit)
    result = await exchange_store.list_exchanges(
        session,
        page=page,
        limit=limit,
        starred=starred,
        min_rating=min_rating,
        sort=sort,
        order=order,
    )

    return ExchangeListResponse(
        items=[to_exchange_response(e, hide_sensitive=True) for e in result.items],
        pagination=Pagination(
            page=result.page,
            limit=result.limit,
            total=result.total,
            pages=result.pages,
            has_next=result.page < result.pages,
            has_prev=result.page > 1,
        ),
    )


# ---------------------------------------------------------------------------
# GET /chat/{id} — Get one exchange
# ---------------------------------------------------------------------------


@router.get(
    "/chat/{exchange_id}",
    response_model=ExchangeResponse,
    summary="Get an exchange",
    responses=_ERROR_RESPONSES,
)
async def get_chat(
    exchange_id: str,
    session: AsyncSession = Depends(get_async_session),
) -> ExchangeResponse:
    exchange = await _get_or_404(session, exchange_id)
    return to_exchange_response(exchange)


# ---------------------------------------------------------------------------
# PUT /chat/{id} — Star / rate / tag
# ---------------------------------------------------------------------------


@router.put(
    "/chat/{exchange_id}",
    response_model=ExchangeResponse,
    summary="Update an exchange",
    description=(
        "Only `isStarred`, `rating` and `tags` can change. Other keys are "
        "ignored. `rating: null` clears the rating."
    ),
    responses=_ERROR_RESPONSES,
)
async def update_chat(
    exchange_id: str,
    request: UpdateExchangeRequest,
    session: AsyncSession = Depends(get_async_session),
) -> ExchangeResponse:
    changes = request.model_dump(exclude_unset=True)
    # Only rating may be cleared with null.
    changes = {
        key: value
        for key, value in changes.items()
        if value is not None or key == "rating"
    }
    if not changes:
        raise ValidationFailed(
            "No updatable fields provided. Allowed: isStarred, rating, tags",
        )

    exchange = await _get_or_404(session, exchange_id)
    exchange = await exchange_store.update_exchange(session, exchange, changes)
    return to_exchange_response(exchange)


# ---------------------------------------------------------------------------
# DELETE /chat/{id}
# ---------------------------------------------------------------------------


@router.delete(
    "/chat/{exchange_id}",
    response_model=DeleteResponse,
    summary="Delete an exchange",
    responses=_ERROR_RESPONSES,
)
async def delete_chat(
    exchange_id: str,
    session: AsyncSession = Depends(get_async_session),
) -> DeleteResponse:
    deleted = await exchange_store.delete_exchange(session, exchange_id)
    if not deleted:
        raise ExchangeNotFound(exchange_id)
    return DeleteResponse(id=exchange_id)
