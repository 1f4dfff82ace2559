# =============================================================================
# Content Filter — Question Normalisation & Blocked Patterns
# =============================================================================
#
# Runs before any provider call. Questions are trimmed (inner whitespace is
# left alone) and checked against a small set of regular expressions that
# catch markup and script injection attempts. A match rejects the request
# with CONTENT_REJECTED; nothing is sent to the provider.
# =============================================================================

from __future__ import annotations

import logging
import re

from app.services.errors import ContentRejected, ValidationFailed

logger = logging.getLogger(__name__)

BLOCKED_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("script tag", re.compile(r"<\s*/?\s*script\b", re.IGNORECASE)),
    ("iframe tag", re.compile(r"<\s*/?\s*iframe\b", re.IGNORECASE)),
    ("javascript url", re.compile(r"javascript\s*:", re.IGNORECASE)),
    ("inline event handler", re.compile(r"<[a-z][^>]*\son[a-z]+\s*=", re.IGNORECASE)),
    ("data url", re.compile(r"data\s*:\s*text/html", re.IGNORECASE)),
)

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def normalize_question(text: str) -> str:
    """
    Strip control characters and trim.

    Inner whitespace is kept as sent so pasted code keeps its indentation.
    """
    text = _CONTROL_CHARS.sub("", text.replace("\r\n", "\n"))
    return text.strip()


def find_blocked_content(text: str) -> str | None:
    """Return the name of the first blocked pattern found, or None."""
    for name, pattern in BLOCKED_PATTERNS:
        if pattern.search(text):
            return name
    return None


def check_question(text: str, max_length: int) -> str:
    """
    Normalise and validate a question.

    Returns the cleaned question.

    Raises:
        ValidationFailed: empty after trimming, or longer than max_length.
        ContentRejected: a blocked pattern matched.
    """
    cleaned = normalize_question(text or "")
    if not cleaned:
        raise ValidationFailed("Question is required and cannot be empty")
    if len(cleaned) > max_length:
        raise ValidationFailed(
            f"Question must be at most {max_length} characters",
            details={"length": len(cleaned), "max_length": max_length},
        )

    blocked = find_blocked_content(cleaned)
    if blocked is not None:
        logger.warning("Question rejected by content filter: %s", blocked)
        raise ContentRejected(
            "Question contains disallowed content",
            details={"reason": blocked},
        )
    return cleaned
