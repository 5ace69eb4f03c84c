"""Chat relay and homework-question endpoints, guarded by the rate limiter."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request

from homework_api.adapters.llm.factory import create_llm_client
from homework_api.core.config import settings
from homework_api.core.rate_limit import enforce_rate_limit, get_client_key, get_rate_limiter
from homework_api.schemas.chat import (
    ChatCompletionRequest,
    GenerateRequest,
    GenerateResponse,
    RateLimitErrorResponse,
)
from homework_api.services.chat_service import ChatService

router = APIRouter(tags=["Chat"])

_rate_limited_responses: dict[int | str, dict[str, Any]] = {
    429: {"model": RateLimitErrorResponse, "description": "Rate limit exceeded"},
}


def get_chat_service(request: Request) -> ChatService:
    """Return the app's ChatService, building it on first use.

    Built lazily so a missing upstream key surfaces as a 500 on the
    request instead of preventing startup.
    """
    service = getattr(request.app.state, "chat_service", None)
    if service is None:
        service = ChatService(
            llm=create_llm_client(),
            limiter=get_rate_limiter(request),
            max_question_chars=settings.app.max_question_chars,
        )
        request.app.state.chat_service = service
    return service


@router.post(
    "/chat",
    dependencies=[Depends(enforce_rate_limit)],
    responses=_rate_limited_responses,
)
async def chat(
    body: ChatCompletionRequest,
    client_key: Annotated[str, Depends(get_client_key)],
    service: Annotated[ChatService, Depends(get_chat_service)],
) -> dict[str, Any]:
    """Relay a chat-completion request to the upstream router.

    Returns the upstream JSON unchanged. An upstream 429 locks the client
    out locally for the upstream's Retry-After and is answered with 429.
    """
    return await service.relay(body.model_dump(exclude_none=True), client_key=client_key)


@router.post(
    "/generate",
    response_model=GenerateResponse,
    dependencies=[Depends(enforce_rate_limit)],
    responses=_rate_limited_responses,
)
async def generate(
    body: GenerateRequest,
    client_key: Annotated[str, Depends(get_client_key)],
    service: Annotated[ChatService, Depends(get_chat_service)],
) -> GenerateResponse:
    """Answer a homework question, optionally with an image of the exercise."""
    content = await service.answer(body.question, body.image, client_key=client_key)
    return GenerateResponse(content=content)
