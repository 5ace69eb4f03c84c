"""Factory pattern for creating LLM client instances."""

from homework_api.adapters.llm.base import AbstractLLMClient
from homework_api.adapters.llm.openai_client import OpenAIClient
from homework_api.core.config import LLMSettings, settings
from homework_api.core.errors import ConfigurationError


def create_llm_client(llm_settings: LLMSettings | None = None) -> AbstractLLMClient:
    """Instantiate the upstream client for the configured provider.

    Args:
        llm_settings: Provider settings; defaults to the global settings.

    Returns:
        AbstractLLMClient: Configured LLM client instance.

    Raises:
        ConfigurationError: If the API key is missing or the provider is unknown.
    """
    cfg = llm_settings or settings.llm
    provider = cfg.provider.lower()

    if provider == "openai":
        if not cfg.api_key:
            raise ConfigurationError(
                code="llm_missing_api_key",
                message="API key not configured",
                details={"hint": "Set the LLM_API_KEY environment variable"},
            )
        return OpenAIClient(
            api_key=cfg.api_key,
            model=cfg.model,
            base_url=cfg.base_url,
            timeout_seconds=cfg.timeout_seconds,
            max_retries=cfg.max_retries,
        )

    raise ConfigurationError(
        code="llm_unknown_provider",
        message=f"Unknown LLM provider: '{provider}'. Supported providers: openai",
    )
