"""LLM adapter layer - upstream chat-completion clients."""

from homework_api.adapters.llm.base import AbstractLLMClient
from homework_api.adapters.llm.factory import create_llm_client
from homework_api.adapters.llm.openai_client import OpenAIClient

__all__ = [
    "AbstractLLMClient",
    "OpenAIClient",
    "create_llm_client",
]
