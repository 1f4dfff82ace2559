# =============================================================================
# API Dependencies — Shared FastAPI Dependency Injection
# =============================================================================
#
#   get_provider()     → configured LLMProvider, misconfiguration → 503
#   client_metadata()  → client ip / user agent recorded with each exchange
#   clamp_limit()      → caps page sizes at the configured maximum
#
# Tests replace `get_provider` through app.dependency_overrides.
# =============================================================================

from __future__ import annotations

import logging

from fastapi import Request

from app.config import settings
from app.services.errors import ServiceUnavailable
from app.services.llm import LLMProvider, get_llm_provider

logger = logging.getLogger(__name__)


def get_provider() -> LLMProvider:
    """
    FastAPI dependency returning the configured LLM provider.

    Raises:
        ServiceUnavailable: Unknown provider name or missing API key.
    """
    try:
        return get_llm_provider()
    except ValueError as e:
        logger.error("LLM provider configuration error: %s", e)
        raise ServiceUnavailable(
            "AI service is not configured.", details=str(e),
        ) from e


def client_metadata(request: Request) -> dict[str, str | None]:
    """Client details stored in exchange metadata (stripped from listings)."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip_address = forwarded.split(",")[0].strip()
    else:
        ip_address = request.client.host if request.client else None
    return {
        "ipAddress": ip_address,
        "userAgent": request.headers.get("user-agent"),
    }


def clamp_limit(limit: int, maximum: int | None = None) -> int:
    """Silently cap a requested page size."""
    return min(limit, maximum or settings.max_page_size)
