# =============================================================================
# API Response Models — Pydantic V2 Schemas
# =============================================================================
#
# These models define the shape of data coming OUT of the API and serve as
# the contract with the browser client. FastAPI serialises them by alias, so
# the wire format is camelCase (`formattedAnswer`, `isStarred`).
#
# Response models are kept separate from the ORM model so internal columns
# (the surrogate `pk`, `updated_at`) never leak to clients.
# =============================================================================

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(_CamelModel):
    """JSON envelope returned for every error."""

    error: str
    code: str
    details: Any | None = None


class HealthResponse(_CamelModel):
    """Response for GET /api/health."""

    status: str = Field(description="'ok' or 'degraded'")
    service: str
    version: str
    environment: str
    database: str = Field(description="'connected' or 'disconnected'")
    timestamp: datetime


class ExchangeResponse(_CamelModel):
    """A single question/answer exchange."""

    id: str
    question: str
    answer: str
    formatted_answer: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    rating: int | None = None
    is_starred: bool = False
    timestamp: datetime


class Pagination(_CamelModel):
    page: int
    limit: int
    total: int
    pages: int
    has_next: bool
    has_prev: bool


class ExchangeListResponse(_CamelModel):
    """Response for GET /api/chat."""

    items: list[ExchangeResponse]
    pagination: Pagination


class DeleteResponse(_CamelModel):
    """Response for DELETE /api/chat/{id}."""

    message: str = "Response deleted successfully"
    id: str


class SearchResponse(_CamelModel):
    """Response for GET /api/search."""

    query: str
    count: int
    results: list[ExchangeResponse]


class TagCount(_CamelModel):
    tag: str
    count: int


class DailyCount(_CamelModel):
    date: str
    count: int


class AnalyticsResponse(_CamelModel):
    """Response for GET /api/analytics."""

    total_exchanges: int
    starred_exchanges: int
    rated_exchanges: int
    average_rating: float | None
    average_question_length: float
    average_answer_length: float
    rating_distribution: dict[str, int]
    daily_activity: list[DailyCount]
    top_tags: list[TagCount]


class ExportResponse(_CamelModel):
    """JSON body for GET /api/export?format=json."""

    exported_at: datetime
    count: int
    exchanges: list[ExchangeResponse]
