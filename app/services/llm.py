# =============================================================================
# Multi-Provider LLM Abstraction — Pluggable AI Backend
# =============================================================================
#
# Provides a common interface for LLM completions, with concrete
# implementations for Google Gemini, Anthropic (Claude) and OpenAI-compatible
# APIs (OpenAI, DeepSeek, Qwen, ...).
#
# Messages are passed in a neutral form: dicts with "role" ("user" or
# "assistant") and "content". Each provider translates them into its own
# request shape:
#   - Gemini:    role "assistant" → "model", content → parts[{text}],
#                system prompt as `system_instruction`
#   - Anthropic: system prompt as top-level `system=` kwarg
#   - OpenAI:    system prompt prepended as a {"role": "system"} message
#
# ARCHITECTURE:
#   LLMProvider (Protocol)
#   ├── GeminiProvider           — Gemini via google-genai
#   ├── AnthropicProvider        — Claude via native Anthropic SDK
#   ├── OpenAICompatibleProvider — Any OpenAI-compatible API
#   └── get_llm_provider()       — Singleton factory, reads from config
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from app.config import settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass
class LLMResponse:
    """
    Standardised response from any LLM provider.

    Normalises the different response formats into a single structure
    that downstream code can consume.
    """

    content: str           # The generated text
    model: str             # Model identifier (e.g., "gemini-1.5-flash")
    input_tokens: int      # Tokens consumed by the prompt
    output_tokens: int     # Tokens generated in the response


# ---------------------------------------------------------------------------
# Protocol Definition
# ---------------------------------------------------------------------------


class LLMProvider(Protocol):
    """Interface every provider implements. Checked statically by mypy."""

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """
        Generate a completion from the LLM.

        Args:
            messages: Conversation messages as dicts with "role" and "content".
                Roles: "user", "assistant" (pass system prompts via `system`).
            system: System prompt for the LLM.
            temperature: Override sampling temperature (default from config).
            max_tokens: Override max output tokens (default from config).

        Returns:
            LLMResponse with generated text and usage metrics.
        """
        ...


# ---------------------------------------------------------------------------
# Implementation 1: Google Gemini
# ---------------------------------------------------------------------------


class GeminiProvider:
    """
    Google Gemini provider using the google-genai SDK.

    Calls go through `client.aio`, the SDK's async surface, so the event
    loop is never blocked.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
    ) -> None:
        from google import genai

        resolved_key = api_key or settings.llm_api_key
        if not resolved_key:
            raise ValueError(
                "No Gemini API key configured. Set LLM_API_KEY "
                "(or API_KEY / GOOGLE_API_KEY) in .env"
            )

        self._client = genai.Client(api_key=resolved_key)
        self._model = model or settings.llm_model
        self._temperature = settings.llm_temperature
        self._max_tokens = settings.llm_max_tokens

        logger.info("Initialized GeminiProvider (model=%s)", self._model)

    @staticmethod
    def _to_contents(messages: list[dict[str, str]]) -> list[dict]:
        """Convert neutral messages to Gemini `contents`."""
        return [
            {
                "role": "model" if m["role"] == "assistant" else "user",
                "parts": [{"text": m["content"]}],
            }
            for m in messages
        ]

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """Generate a completion using Gemini."""
        from google.genai import types

        config = types.GenerateContentConfig(
            temperature=self._temperature if temperature is None else temperature,
            max_output_tokens=max_tokens or self._max_tokens,
            system_instruction=system or None,
        )

        response = await self._client.aio.models.generate_content(
            model=self._model,
            contents=self._to_contents(messages),
            config=config,
        )

        usage = response.usage_metadata
        input_tokens = (usage.prompt_token_count or 0) if usage else 0
        output_tokens = (usage.candidates_token_count or 0) if usage else 0

        return LLMResponse(
            content=response.text or "",
            model=getattr(response, "model_version", None) or self._model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )


# ---------------------------------------------------------------------------
# Implementation 2: Anthropic (Claude)
# ---------------------------------------------------------------------------


class AnthropicProvider:
    """
    Anthropic Claude provider using the native SDK.

    The system prompt goes in the top-level `system=` kwarg. Claude expects
    alternating user/assistant turns, so consecutive turns from the same role
    (possible in client-supplied history) are merged before sending.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
    ) -> None:
        from anthropic import AsyncAnthropic

        resolved_key = api_key or settings.llm_api_key or settings.anthropic_api_key
        if not resolved_key:
            raise ValueError(
                "No Anthropic API key configured. Set LLM_API_KEY or "
                "ANTHROPIC_API_KEY in .env"
            )

        self._client = AsyncAnthropic(api_key=resolved_key)
        self._model = model or settings.llm_model
        self._temperature = settings.llm_temperature
        self._max_tokens = settings.llm_max_tokens

        logger.info("Initialized AnthropicProvider (model=%s)", self._model)

    @staticmethod
    def _merge_turns(messages: list[dict[str, str]]) -> list[dict[str, str]]:
        """Join consecutive same-role messages with a blank line."""
        merged: list[dict[str, str]] = []
        for m in messages:
            if merged and merged[-1]["role"] == m["role"]:
                merged[-1]["content"] += "\n\n" + m["content"]
            else:
                merged.append({"role": m["role"], "content": m["content"]})
        return merged

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """Generate a completion using Claude."""
        kwargs: dict = {
            "model": self._model,
            "messages": self._merge_turns(messages),
            "max_tokens": max_tokens or self._max_tokens,
            "temperature": self._temperature if temperature is None else temperature,
        }
        if system:
            kwargs["system"] = system

        response = await self._client.messages.create(**kwargs)

        # Answers may be split over several text blocks; tool/thinking
        # blocks carry no answer text.
        content = "".join(
            block.text for block in response.content if block.type == "text"
        )

        usage = response.usage
        return LLMResponse(
            content=content,
            model=response.model or self._model,
            input_tokens=usage.input_tokens if usage else 0,
            output_tokens=usage.output_tokens if usage else 0,
        )


# ---------------------------------------------------------------------------
# Implementation 3: OpenAI-Compatible
# ---------------------------------------------------------------------------


class OpenAICompatibleProvider:
    """
    OpenAI-compatible provider for any API that mirrors the OpenAI chat API.

    Switching providers is a config change:
        LLM_PROVIDER=openai_compatible
        LLM_BASE_URL=https://api.deepseek.com/v1
        LLM_API_KEY=your-key
        LLM_MODEL=deepseek-chat
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
    ) -> None:
        from openai import AsyncOpenAI

        resolved_key = api_key or settings.llm_api_key or settings.openai_api_key
        if not resolved_key:
            raise ValueError(
                "No API key configured for OpenAI-compatible provider. "
                "Set LLM_API_KEY in .env"
            )

        client_kwargs: dict = {"api_key": resolved_key}
        resolved_base_url = base_url or settings.llm_base_url
        if resolved_base_url:
            client_kwargs["base_url"] = resolved_base_url

        self._client = AsyncOpenAI(**client_kwargs)
        self._model = model or settings.llm_model
        self._temperature = settings.llm_temperature
        self._max_tokens = settings.llm_max_tokens

        logger.info(
            "Initialized OpenAICompatibleProvider (model=%s, base_url=%s)",
            self._model,
            resolved_base_url or "https://api.openai.com/v1",
        )

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """Generate a completion using an OpenAI-compatible API."""
        all_messages: list[dict[str, str]] = []
        if system:
            all_messages.append({"role": "system", "content": system})
        all_messages.extend(messages)

        response = await self._client.chat.completions.create(
            model=self._model,
            messages=all_messages,
            max_tokens=max_tokens or self._max_tokens,
            temperature=self._temperature if temperature is None else temperature,
        )

        content = response.choices[0].message.content or ""

        usage = response.usage
        input_tokens = usage.prompt_tokens if usage else 0
        output_tokens = usage.completion_tokens if usage else 0

        return LLMResponse(
            content=content,
            model=response.model or self._model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

_PROVIDERS = {
    "gemini": GeminiProvider,
    "anthropic": AnthropicProvider,
    "openai_compatible": OpenAICompatibleProvider,
}

# Lazy singleton — avoid re-creating the client on every request
_provider: LLMProvider | None = None


def get_llm_provider() -> LLMProvider:
    """
    Return the configured LLM provider (FastAPI dependency).

    Reads `llm_provider` from settings:
    - "gemini" → GeminiProvider
    - "anthropic" → AnthropicProvider
    - "openai_compatible" → OpenAICompatibleProvider

    Raises:
        ValueError: Unknown provider name or missing API key.
    """
    global _provider
    if _provider is None:
        provider_cls = _PROVIDERS.get(settings.llm_provider)
        if provider_cls is None:
            raise ValueError(
                f"Unknown LLM provider '{settings.llm_provider}'. "
                f"Supported: {sorted(_PROVIDERS)}"
            )
        _provider = provider_cls()
    return _provider


def reset_llm_provider() -> None:
    """Drop the cached provider so the next call re-reads settings."""
    global _provider
    _provider = None
