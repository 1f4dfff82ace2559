# =============================================================================
# Unit Tests — LLM Providers
# =============================================================================
#
# SDK clients are patched out; no network or API keys needed.
# =============================================================================

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.services import llm
from app.services.llm import GeminiProvider, get_llm_provider, reset_llm_provider


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


@pytest.fixture(autouse=True)
def _fresh_provider_singleton():
    reset_llm_provider()
    yield
    reset_llm_provider()


class TestGeminiProvider:
    """Tests for GeminiProvider with a mocked google-genai client."""

    def test_missing_key_raises(self, monkeypatch):
        monkeypatch.setattr(llm.settings, "llm_api_key", "")
        with pytest.raises(ValueError, match="API key"):
            GeminiProvider()

    def test_to_contents_maps_roles(self):
        contents = GeminiProvider._to_contents([
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "hello"},
        ])
        assert contents == [
            {"role": "user", "parts": [{"text": "hi"}]},
            {"role": "model", "parts": [{"text": "hello"}]},
        ]

    def test_complete(self):
        response = SimpleNamespace(
            text="An answer",
            model_version="gemini-1.5-flash-002",
            usage_metadata=SimpleNamespace(prompt_token_count=7, candidates_token_count=3),
        )
        with patch("google.genai.Client") as client_cls:
            client = MagicMock()
            client.aio.models.generate_content = AsyncMock(return_value=response)
            client_cls.return_value = client

            provider = GeminiProvider(api_key="test-key", model="gemini-1.5-flash")
            result = _run(provider.complete(
                [{"role": "user", "content": "Question?"}],
                system="Be brief.",
                temperature=0.2,
                max_tokens=50,
            ))

        client_cls.assert_called_once_with(api_key="test-key")
        kwargs = client.aio.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-1.5-flash"
        assert kwargs["contents"] == [{"role": "user", "parts": [{"text": "Question?"}]}]
        assert kwargs["config"].temperature == 0.2
        assert kwargs["config"].max_output_tokens == 50
        assert kwargs["config"].system_instruction == "Be brief."

        assert result.content == "An answer"
        assert result.model == "gemini-1.5-flash-002"
        assert result.input_tokens == 7
        assert result.output_tokens == 3

    def test_complete_without_usage_or_text(self):
        response = SimpleNamespace(text=None, model_version=None, usage_metadata=None)
        with patch("google.genai.Client") as client_cls:
            client_cls.return_value.aio.models.generate_content = AsyncMock(
                return_value=response,
            )
            provider = GeminiProvider(api_key="test-key", model="gemini-1.5-flash")
            result = _run(provider.complete([{"role": "user", "content": "Q"}]))

        assert result.content == ""
        assert result.model == "gemini-1.5-flash"
        assert result.input_tokens == 0
        assert result.output_tokens == 0

    def test_sdk_errors_propagate(self):
        with patch("google.genai.Client") as client_cls:
            client_cls.return_value.aio.models.generate_content = AsyncMock(
                side_effect=RuntimeError("503 UNAVAILABLE"),
            )
            provider = GeminiProvider(api_key="test-key")
            with pytest.raises(RuntimeError, match="UNAVAILABLE"):
                _run(provider.complete([{"role": "user", "content": "Q"}]))


class TestAnthropicProvider:
    """Tests for AnthropicProvider with a mocked AsyncAnthropic client."""

    def _response(self, blocks, usage=None, model="claude-3-5-haiku-latest"):
        return SimpleNamespace(
            content=blocks,
            model=model,
            usage=usage or SimpleNamespace(input_tokens=9, output_tokens=4),
        )

    def test_missing_key_raises(self, monkeypatch):
        monkeypatch.setattr(llm.settings, "llm_api_key", "")
        monkeypatch.setattr(llm.settings, "anthropic_api_key", "")
        with pytest.raises(ValueError, match="Anthropic API key"):
            llm.AnthropicProvider()

    def test_system_prompt_is_top_level_kwarg(self):
        response = self._response([SimpleNamespace(type="text", text="Hi")])
        with patch("anthropic.AsyncAnthropic") as client_cls:
            create = AsyncMock(return_value=response)
            client_cls.return_value.messages.create = create
            provider = llm.AnthropicProvider(api_key="k", model="claude-3-5-haiku-latest")
            _run(provider.complete(
                [{"role": "user", "content": "Hello"}],
                system="Be nice.",
                temperature=0.1,
                max_tokens=64,
            ))

        kwargs = create.call_args.kwargs
        assert kwargs["system"] == "Be nice."
        assert kwargs["messages"] == [{"role": "user", "content": "Hello"}]
        assert all(m["role"] != "system" for m in kwargs["messages"])
        assert kwargs["temperature"] == 0.1
        assert kwargs["max_tokens"] == 64

    def test_no_system_kwarg_when_empty(self):
        response = self._response([SimpleNamespace(type="text", text="Hi")])
        with patch("anthropic.AsyncAnthropic") as client_cls:
            create = AsyncMock(return_value=response)
            client_cls.return_value.messages.create = create
            provider = llm.AnthropicProvider(api_key="k")
            _run(provider.complete([{"role": "user", "content": "Hello"}]))

        assert "system" not in create.call_args.kwargs

    def test_consecutive_turns_merged(self):
        merged = llm.AnthropicProvider._merge_turns([
            {"role": "user", "content": "one"},
            {"role": "user", "content": "two"},
            {"role": "assistant", "content": "three"},
            {"role": "user", "content": "four"},
        ])
        assert merged == [
            {"role": "user", "content": "one\n\ntwo"},
            {"role": "assistant", "content": "three"},
            {"role": "user", "content": "four"},
        ]

    def test_text_blocks_joined_and_usage_mapped(self):
        response = self._response([
            SimpleNamespace(type="thinking", thinking="hmm"),
            SimpleNamespace(type="text", text="Part one. "),
            SimpleNamespace(type="text", text="Part two."),
        ])
        with patch("anthropic.AsyncAnthropic") as client_cls:
            client_cls.return_value.messages.create = AsyncMock(return_value=response)
            provider = llm.AnthropicProvider(api_key="k")
            result = _run(provider.complete([{"role": "user", "content": "Q"}]))

        assert result.content == "Part one. Part two."
        assert result.model == "claude-3-5-haiku-latest"
        assert result.input_tokens == 9
        assert result.output_tokens == 4

    def test_selected_by_factory(self, monkeypatch):
        monkeypatch.setattr(llm.settings, "llm_provider", "anthropic")
        monkeypatch.setattr(llm.settings, "llm_api_key", "test-key")
        with patch("anthropic.AsyncAnthropic"):
            assert isinstance(get_llm_provider(), llm.AnthropicProvider)


class TestOpenAICompatibleProvider:
    """System prompt is sent as the first message."""

    def test_complete_prepends_system(self):
        response = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="Hi there"))],
            model="gpt-4o-mini",
            usage=SimpleNamespace(prompt_tokens=5, completion_tokens=2),
        )
        with patch("openai.AsyncOpenAI") as client_cls:
            client_cls.return_value.chat.completions.create = AsyncMock(return_value=response)
            provider = llm.OpenAICompatibleProvider(api_key="k", model="gpt-4o-mini")
            result = _run(provider.complete(
                [{"role": "user", "content": "Hello"}], system="Be nice.",
            ))

        messages = client_cls.return_value.chat.completions.create.call_args.kwargs["messages"]
        assert messages[0] == {"role": "system", "content": "Be nice."}
        assert messages[1] == {"role": "user", "content": "Hello"}
        assert result.content == "Hi there"
        assert result.output_tokens == 2


class TestProviderFactory:
    """Tests for get_llm_provider()."""

    def test_unknown_provider_raises(self, monkeypatch):
        monkeypatch.setattr(llm.settings, "llm_provider", "nope")
        with pytest.raises(ValueError, match="Unknown LLM provider"):
            get_llm_provider()

    def test_singleton(self, monkeypatch):
        monkeypatch.setattr(llm.settings, "llm_provider", "gemini")
        monkeypatch.setattr(llm.settings, "llm_api_key", "test-key")
        with patch("google.genai.Client"):
            first = get_llm_provider()
            second = get_llm_provider()
        assert first is second
        assert isinstance(first, GeminiProvider)

    def test_reset_rebuilds(self, monkeypatch):
        monkeypatch.setattr(llm.settings, "llm_provider", "gemini")
        monkeypatch.setattr(llm.settings, "llm_api_key", "test-key")
        with patch("google.genai.Client"):
            first = get_llm_provider()
            reset_llm_provider()
            second = get_llm_provider()
        assert first is not second
