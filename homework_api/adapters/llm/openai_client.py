"""OpenAI-compatible chat-completion client adapter."""

from typing import Any

import openai
from openai import AsyncOpenAI

from homework_api.adapters.llm.base import AbstractLLMClient
from homework_api.core.errors import (
    LLMAppError,
    UpstreamAPIError,
    UpstreamRateLimitError,
    UpstreamTimeoutError,
)

DEFAULT_UPSTREAM_RETRY_AFTER = 60

# Keyword arguments understood by chat.completions.create; anything else in
# the client payload travels in extra_body.
_SDK_PARAMS = {
    "frequency_penalty",
    "logit_bias",
    "max_tokens",
    "n",
    "presence_penalty",
    "response_format",
    "seed",
    "stop",
    "temperature",
    "tool_choice",
    "tools",
    "top_p",
    "user",
}


def parse_retry_after(value: str | None, default: int = DEFAULT_UPSTREAM_RETRY_AFTER) -> int:
    """Parse a Retry-After header given in seconds.

    HTTP-date values and garbage fall back to ``default``.
    """
    if not value:
        return default
    try:
        seconds = int(float(value.strip()))
    except ValueError:
        return default
    return seconds if seconds > 0 else default


def _error_message(exc: openai.APIStatusError) -> str:
    body = exc.body
    if isinstance(body, dict):
        error = body.get("error", body)
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return f"Status {exc.status_code}"


class OpenAIClient(AbstractLLMClient):
    """Relay chat completions through the official OpenAI async SDK.

    SDK retries default to 0: an upstream 429 must reach the caller so it
    can be fed back into the local rate limiter.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        timeout_seconds: float = 30.0,
        max_retries: int = 0,
    ) -> None:
        """Initialize the async client.

        Args:
            api_key: Shared upstream API key.
            model: Model used when the payload does not name one.
            base_url: Optional OpenAI-compatible endpoint.
            timeout_seconds: Timeout for requests in seconds.
            max_retries: SDK-level retry count.
        """
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
            max_retries=max_retries,
        )
        self.model = model

    def build_request(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Split a client payload into SDK keyword arguments."""
        body = dict(payload)
        # Responses are relayed whole; streaming is not proxied.
        body.pop("stream", None)

        request_params: dict[str, Any] = {
            "model": body.pop("model", None) or self.model,
            "messages": body.pop("messages"),
        }
        for param in _SDK_PARAMS & body.keys():
            request_params[param] = body.pop(param)
        if body:
            request_params["extra_body"] = body
        return request_params

    async def create_chat_completion(self, payload: dict[str, Any]) -> dict[str, Any]:
        request_params = self.build_request(payload)

        try:
            response = await self.client.chat.completions.create(**request_params)
        except openai.RateLimitError as exc:
            retry_after = parse_retry_after(exc.response.headers.get("retry-after"))
            raise UpstreamRateLimitError(
                code="upstream_rate_limited",
                message=f"Upstream rate limit reached, retry after {retry_after} seconds",
                details={"retry_after": retry_after, "model": request_params["model"]},
                retry_after_seconds=retry_after,
            ) from exc
        except openai.APITimeoutError as exc:
            raise UpstreamTimeoutError(
                code="upstream_timeout",
                message="The request took too long to complete",
                details={"model": request_params["model"]},
            ) from exc
        except openai.APIStatusError as exc:
            raise UpstreamAPIError(
                code="upstream_request_failed",
                message=_error_message(exc),
                details={"http_status": exc.status_code, "model": request_params["model"]},
                status_code=exc.status_code,
            ) from exc
        except openai.APIConnectionError as exc:
            raise LLMAppError(
                code="upstream_unreachable",
                message="Could not reach the upstream API",
            ) from exc

        return response.model_dump(exclude_none=True)
