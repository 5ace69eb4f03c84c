from abc import ABC, abstractmethod
from typing import Any


class AbstractLLMClient(ABC):
	"""Interface for upstream chat-completion clients."""

	@abstractmethod
	async def create_chat_completion(self, payload: dict[str, Any]) -> dict[str, Any]:
		"""Forward a chat-completion request and return the upstream JSON.

		Args:
			payload: OpenAI-style request body (``messages`` required,
				``model`` optional, other fields passed through).

		Returns:
			dict[str, Any]: Upstream response body.

		Raises:
			UpstreamRateLimitError: Upstream answered 429.
			UpstreamTimeoutError: Upstream did not answer in time.
			UpstreamAPIError: Upstream answered another error status.
			LLMAppError: The upstream could not be reached.
		"""
		...
