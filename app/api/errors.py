# =============================================================================
# Exception Handlers — JSON Error Envelope
# =============================================================================
#
# Every error leaves the API as:
#
#   {"error": "<message>", "code": "<CODE>", "details": <optional>}
#
#   ChatMosaicError          → its own status/code
#   RequestValidationError   → 400 VALIDATION_ERROR (field errors in details)
#   HTTPException            → its status, code HTTP_<status>
#   anything else            → 500 INTERNAL_ERROR (traceback logged)
# =============================================================================

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.services.errors import ChatMosaicError

logger = logging.getLogger(__name__)


def _envelope(status_code: int, error: str, code: str, details=None, headers=None) -> JSONResponse:
    body = {"error": error, "code": code}
    if details is not None:
        body["details"] = jsonable_encoder(details)
    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def chatmosaic_error_handler(request: Request, exc: ChatMosaicError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed: %s (%s) %s",
            request.method, request.url.path, exc.message, exc.code, exc.details,
        )
    return _envelope(exc.status_code, exc.message, exc.code, exc.details)


async def validation_error_handler(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    return _envelope(400, "Invalid request", "VALIDATION_ERROR", errors)


async def http_error_handler(
    request: Request, exc: StarletteHTTPException,
) -> JSONResponse:
    return _envelope(
        exc.status_code,
        str(exc.detail),
        f"HTTP_{exc.status_code}",
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    return _envelope(500, "Internal server error", "INTERNAL_ERROR")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ChatMosaicError, chatmosaic_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
