# =============================================================================
# Service Errors — Typed Failures & Provider Error Classification
# =============================================================================
#
# Every failure the API reports carries an HTTP status, a machine-readable
# code and a human-readable message. The exception handlers in
# app/api/errors.py turn these into the JSON envelope:
#
#   {"error": "<message>", "code": "<CODE>", "details": ...}
#
# Provider SDKs (google-genai, anthropic, openai) raise their own exception
# types with different shapes, so classification is done by string matching
# on the exception's code/status/message rather than on its class.
# =============================================================================

from __future__ import annotations

import re
from typing import Any


class ChatMosaicError(Exception):
    """Base exception for all errors surfaced to API clients."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        details: Any = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details
        if code is not None:
            self.code = code

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationFailed(ChatMosaicError):
    """Request data failed validation."""

    status_code = 400
    code = "VALIDATION_ERROR"


class ContentRejected(ChatMosaicError):
    """Question matched a blocked content pattern."""

    status_code = 400
    code = "CONTENT_REJECTED"


class ExchangeNotFound(ChatMosaicError):
    """No exchange with the requested id."""

    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, exchange_id: str) -> None:
        super().__init__(f"Exchange '{exchange_id}' not found")
        self.exchange_id = exchange_id


class QuotaExceeded(ChatMosaicError):
    """Provider quota or rate limit exhausted."""

    status_code = 429
    code = "QUOTA_EXCEEDED"


class EmptyProviderResponse(ChatMosaicError):
    """Provider returned no text."""

    status_code = 502
    code = "EMPTY_RESPONSE"


class ServiceUnavailable(ChatMosaicError):
    """Provider or database temporarily unavailable or misconfigured."""

    status_code = 503
    code = "SERVICE_UNAVAILABLE"


class InternalError(ChatMosaicError):
    """Anything not otherwise classified."""

    status_code = 500
    code = "INTERNAL_ERROR"


# ---------------------------------------------------------------------------
# Provider Error Classification
# ---------------------------------------------------------------------------
# Checked in order; the first group with a matching marker wins.
# Patterns are searched in the lower-cased "code status type message" text.
# ---------------------------------------------------------------------------

_QUOTA_PATTERN = re.compile(
    r"quota|rate.?limit|resource.?exhausted|too many requests|\b429\b"
)
_UNAVAILABLE_PATTERN = re.compile(
    r"unavailable|overloaded|time.?out|timed out|deadline|\b50[234]\b"
    r"|api.?key|permission.?denied|unauthenticated|connection"
)
_VALIDATION_PATTERN = re.compile(
    r"invalid.?argument|invalid.?request|bad request|\b400\b|safety|blocked"
)


def _error_text(exc: BaseException) -> str:
    """Collect code/status/message attributes into one searchable string."""
    parts: list[str] = []
    for attr in ("code", "status", "status_code"):
        value = getattr(exc, attr, None)
        if value is not None:
            parts.append(str(value))
    parts.append(type(exc).__name__)
    parts.append(str(exc))
    return " ".join(parts).lower()


def classify_provider_error(exc: BaseException) -> ChatMosaicError:
    """
    Map an exception raised by an AI provider SDK to a ChatMosaicError.

    Rules (first match wins):
        quota / rate limit / exhausted       → QuotaExceeded (429)
        unavailable / timeout / key problem  → ServiceUnavailable (503)
        invalid argument / safety block      → ValidationFailed (400)
        anything else                        → InternalError (500)

    ChatMosaicError instances pass through unchanged.
    """
    if isinstance(exc, ChatMosaicError):
        return exc

    text = _error_text(exc)

    if _QUOTA_PATTERN.search(text):
        return QuotaExceeded(
            "AI service quota exceeded. Please try again later.",
        )
    if _UNAVAILABLE_PATTERN.search(text):
        return ServiceUnavailable(
            "AI service is temporarily unavailable.", details=str(exc),
        )
    if _VALIDATION_PATTERN.search(text):
        return ValidationFailed(
            "The question could not be processed by the AI service.",
            details=str(exc),
        )
    return InternalError(
        "Failed to fetch response from AI service", details=str(exc),
    )
