"""Pydantic schemas for the proxy endpoints."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ChatCompletionRequest(BaseModel):
    """OpenAI-style chat-completion request relayed to the upstream router.

    Unknown fields are kept and forwarded untouched.
    """

    model_config = ConfigDict(extra="allow")

    model: str | None = Field(
        None,
        description="Upstream model name; the server default is used when omitted.",
    )
    messages: list[dict[str, Any]] = Field(
        ...,
        min_length=1,
        description="Conversation messages in OpenAI chat format.",
    )


class GenerateRequest(BaseModel):
    """Homework question, optionally with a photo of the exercise."""

    question: str = Field(
        ...,
        min_length=1,
        description="The question to answer.",
    )
    image: str | None = Field(
        None,
        description="Base64-encoded JPEG image (no data: prefix).",
    )


class GenerateResponse(BaseModel):
    """Answer text, rendered client-side as Markdown/LaTeX."""

    content: str


class RateLimitErrorResponse(BaseModel):
    """Body returned with HTTP 429."""

    model_config = ConfigDict(populate_by_name=True)

    error: str = Field("Rate limit exceeded")
    details: str = Field(..., description="Human-readable wait instruction.")
    retry_after: int = Field(..., alias="retryAfter", ge=1, description="Seconds to wait.")
