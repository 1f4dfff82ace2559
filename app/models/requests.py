# =============================================================================
# API Request Models — Pydantic V2 Schemas
# =============================================================================
#
# These models define the shape of data coming INTO the API.
#
# Wire format is camelCase (`isStarred`); Python attributes stay snake_case.
# `populate_by_name=True` accepts either spelling on input.
#
# Question length and content are NOT enforced here: they are checked by
# app.services.content_filter so the limit follows MAX_QUESTION_LENGTH and
# the rejection carries the right error code.
# =============================================================================

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Upper bound on turns accepted per request; only the most recent
# MAX_HISTORY_MESSAGES of them reach the provider.
MAX_HISTORY_TURNS = 50


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HistoryMessage(_CamelModel):
    """One prior conversation turn sent along with a new question."""

    role: Literal["user", "model", "assistant"] = Field(
        description="Who produced this turn. 'model' and 'assistant' are equivalent.",
    )
    content: str = Field(..., min_length=1, max_length=20000)


class ChatRequest(_CamelModel):
    """
    Request body for POST /api/chat.

    Example:
        {
            "question": "How do I reverse a list in Python?",
            "history": [
                {"role": "user", "content": "Hi"},
                {"role": "model", "content": "Hello! How can I help?"}
            ]
        }
    """

    question: str = Field(
        ...,
        description="The question to send to the AI provider",
        examples=["How do I reverse a list in Python?"],
    )
    history: list[HistoryMessage] = Field(
        default_factory=list,
        max_length=MAX_HISTORY_TURNS,
        description="Optional prior turns, oldest first.",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {"question": "How do I reverse a list in Python?"},
            ]
        }
    )


class UpdateExchangeRequest(_CamelModel):
    """
    Request body for PUT /api/chat/{id}.

    Only these three fields can change; any other key in the body is ignored.
    `rating: null` clears an existing rating.
    """

    is_starred: bool | None = Field(default=None)
    rating: int | None = Field(default=None, ge=1, le=5)
    tags: list[str] | None = Field(default=None, max_length=20)

    model_config = ConfigDict(extra="ignore")

    @field_validator("tags")
    @classmethod
    def _check_tag_lengths(cls, tags: list[str] | None) -> list[str] | None:
        if tags is None:
            return None
        for tag in tags:
            if len(tag.strip()) > 50:
                raise ValueError("each tag must be at most 50 characters")
        return tags
