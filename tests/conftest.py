# =============================================================================
# Shared Test Fixtures
# =============================================================================
#
# API tests run the real FastAPI app against an in-memory SQLite database
# (sqlite+aiosqlite, one shared connection via StaticPool). The LLM provider
# is replaced by FakeProvider, so no API keys or network are needed.
# =============================================================================

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.main as main_module
from app.api.deps import get_provider
from app.db.engine import get_async_session, init_db
from app.services.llm import LLMResponse


class FakeProvider:
    """LLMProvider stand-in that records calls and returns a canned answer."""

    def __init__(
        self,
        content: str = "Use `reversed()` or **slicing**:\n\n```python\nitems[::-1]\n```",
        error: Exception | None = None,
    ) -> None:
        self.content = content
        self.error = error
        self.calls: list[dict] = []

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        self.calls.append({
            "messages": messages,
            "system": system,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        if self.error is not None:
            raise self.error
        return LLMResponse(
            content=self.content,
            model="fake-model",
            input_tokens=12,
            output_tokens=34,
        )


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def client(monkeypatch, fake_provider):
    """TestClient for a fresh app backed by an empty in-memory database."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    async def _session():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    # Lifespan creates tables on the test engine and disposes it on exit.
    monkeypatch.setattr(main_module, "init_db", lambda: init_db(engine, retries=1))
    monkeypatch.setattr(main_module, "async_engine", engine)

    application = main_module.create_app()
    application.dependency_overrides[get_async_session] = _session
    application.dependency_overrides[get_provider] = lambda: fake_provider

    with TestClient(application) as test_client:
        yield test_client


@pytest.fixture
def create_exchange(client):
    """Helper: POST a question and return the JSON body."""

    def _create(question: str = "How do I reverse a list?", **extra) -> dict:
        response = client.post("/api/chat", json={"question": question, **extra})
        assert response.status_code == 200, response.text
        return response.json()

    return _create
