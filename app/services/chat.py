# =============================================================================
# Chat Service — Ask the Provider, Format the Answer
# =============================================================================
#
# FLOW:
#   1. Build the message list: seed conversation → client history → question
#   2. Call the provider (errors classified into ChatMosaicError subclasses)
#   3. Reject empty answers
#   4. Render the markdown answer to sanitized HTML
#   5. Return the answer with timing/usage metadata for persistence
# =============================================================================

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from app.config import settings
from app.services.errors import EmptyProviderResponse, classify_provider_error
from app.services.formatter import format_answer
from app.services.llm import LLMProvider

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are ChatMosaic, a friendly and concise assistant. "
    "Answer in markdown. Use fenced code blocks with a language tag for code."
)

# Priming turns sent before any client history.
SEED_HISTORY: list[dict[str, str]] = [
    {"role": "user", "content": "Hello, I have 2 dogs in my house."},
    {"role": "assistant", "content": "Great to meet you. What would you like to know?"},
]


@dataclass
class ChatResult:
    """Provider answer plus everything needed to persist it."""

    answer: str
    formatted_answer: str
    metadata: dict = field(default_factory=dict)


def build_messages(
    question: str,
    history: list[dict[str, str]] | None = None,
) -> list[dict[str, str]]:
    """
    Assemble provider messages.

    History roles "model" and "assistant" are both mapped to "assistant";
    only the most recent `max_history_messages` turns are kept.
    """
    messages = [dict(m) for m in SEED_HISTORY]
    recent = (history or [])[-settings.max_history_messages:] if settings.max_history_messages else []
    for turn in recent:
        role = "user" if turn["role"] == "user" else "assistant"
        messages.append({"role": role, "content": turn["content"]})
    messages.append({"role": "user", "content": question})
    return messages


async def ask(
    provider: LLMProvider,
    question: str,
    history: list[dict[str, str]] | None = None,
) -> ChatResult:
    """
    Send a validated question to the provider and format the reply.

    Raises:
        ChatMosaicError: classified provider failure or empty answer.
    """
    messages = build_messages(question, history)
    start_time = time.monotonic()

    try:
        response = await provider.complete(
            messages=messages,
            system=SYSTEM_PROMPT,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
        )
    except Exception as e:
        error = classify_provider_error(e)
        logger.error(
            "AI provider call failed (%s): %s", error.code, e,
        )
        raise error from e

    response_time_ms = int((time.monotonic() - start_time) * 1000)
    answer = (response.content or "").strip()
    if not answer:
        raise EmptyProviderResponse("AI service returned an empty answer")

    formatted = format_answer(answer)

    logger.info(
        "AI answer received: model=%s, %d ms, tokens in/out=%d/%d",
        response.model, response_time_ms,
        response.input_tokens, response.output_tokens,
    )

    return ChatResult(
        answer=answer,
        formatted_answer=formatted,
        metadata={
            "model": response.model,
            "provider": settings.llm_provider,
            "responseTimeMs": response_time_ms,
            "inputTokens": response.input_tokens,
            "outputTokens": response.output_tokens,
            "questionLength": len(question),
            "answerLength": len(answer),
            "historyLength": len(history or []),
        },
    )
