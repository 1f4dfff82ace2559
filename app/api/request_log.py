# =============================================================================
# Request Logging Middleware — Request/Response Lifecycle Logging
# =============================================================================
#
# Logs one line per API request: method, path, status code, elapsed time and
# client ip. Elapsed time is also returned in the `X-Response-Time` header.
#
# Starlette middleware (not a FastAPI dependency) so it wraps the entire
# request lifecycle, sees the final status code, and needs no opt-in from
# individual endpoints.
# =============================================================================

from __future__ import annotations

import logging
import time

from starlette.middleware.base import (
    BaseHTTPMiddleware,
    RequestResponseEndpoint,
)
from starlette.requests import Request
from starlette.responses import Response

from app.config import settings

logger = logging.getLogger(__name__)

# Endpoints to skip (health probes, docs)
_SKIP_PATHS = {"/api/health", "/docs", "/redoc", "/openapi.json"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request outside _SKIP_PATHS and stamp X-Response-Time."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        if not settings.request_logging_enabled:
            return await call_next(request)

        if request.url.path in _SKIP_PATHS:
            return await call_next(request)

        start_time = time.monotonic()
        response = await call_next(request)
        elapsed_ms = (time.monotonic() - start_time) * 1000

        response.headers["X-Response-Time"] = f"{elapsed_ms:.1f}ms"

        client_ip = request.client.host if request.client else None
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "%s %s → %d (%.1f ms) client=%s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            client_ip,
        )

        return response
