"""Chat relay service.

Forwards admitted requests to the upstream chat-completion API and closes
the feedback loop: when the upstream itself rate-limits, the client is
penalized locally so its next requests are rejected without an upstream
round-trip.
"""

from __future__ import annotations

import logging
from typing import Any

from homework_api.adapters.llm.base import AbstractLLMClient
from homework_api.adapters.rate_limit.base import AbstractRateLimiter
from homework_api.core.errors import LLMAppError, RateLimitExceeded, UpstreamRateLimitError, ValidationAppError
from homework_api.core.logging import hash_identifier
from homework_api.core.rate_limit import build_rate_limit_exceeded

logger = logging.getLogger(__name__)


def build_user_content(question: str, image: str | None = None) -> str | list[dict[str, Any]]:
    """Build the user message content for a question and optional image.

    Args:
        question: Question text.
        image: Base64-encoded JPEG, without the data: prefix.

    Returns:
        Plain text, or multimodal parts when an image is attached.
    """
    if not image:
        return question
    return [
        {"type": "text", "text": question},
        {
            "type": "image_url",
            "image_url": {"url": f"data:image/jpeg;base64,{image}"},
        },
    ]


class ChatService:
    """Relays chat completions and feeds upstream 429s back to the limiter."""

    def __init__(
        self,
        llm: AbstractLLMClient,
        limiter: AbstractRateLimiter,
        *,
        max_question_chars: int = 8000,
    ) -> None:
        self.llm = llm
        self.limiter = limiter
        self.max_question_chars = max_question_chars

    def _penalize(self, client_key: str, exc: UpstreamRateLimitError) -> RateLimitExceeded:
        decision = self.limiter.penalize(client_key, exc.retry_after_seconds)
        logger.warning(
            "chat.upstream_rate_limited",
            extra={
                "key_hash": hash_identifier(client_key),
                "retry_after_s": decision.retry_after_seconds,
            },
        )
        return build_rate_limit_exceeded(decision)

    async def relay(self, payload: dict[str, Any], *, client_key: str) -> dict[str, Any]:
        """Forward a chat-completion payload and return the upstream body.

        Raises:
            RateLimitExceeded: Upstream answered 429; the client is penalized.
            LLMAppError: Any other upstream failure.
        """
        try:
            return await self.llm.create_chat_completion(payload)
        except UpstreamRateLimitError as exc:
            raise self._penalize(client_key, exc) from exc

    async def answer(self, question: str, image: str | None = None, *, client_key: str) -> str:
        """Ask a single homework question and return the answer text.

        Raises:
            ValidationAppError: Empty or oversized question.
            RateLimitExceeded: Upstream answered 429.
            LLMAppError: Upstream failure or unusable response.
        """
        question = question.strip()
        if not question:
            raise ValidationAppError(code="question_required", message="Question is required")
        if len(question) > self.max_question_chars:
            raise ValidationAppError(
                code="question_too_long",
                message=f"Question exceeds {self.max_question_chars} characters",
                details={"actual_value": len(question)},
            )

        data = await self.relay(
            {"messages": [{"role": "user", "content": build_user_content(question, image)}]},
            client_key=client_key,
        )

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise LLMAppError(
                code="invalid_upstream_response",
                message="Failed to parse API response",
            ) from exc
        if not content:
            raise LLMAppError(code="empty_upstream_response", message="LLM returned empty response")
        return content
