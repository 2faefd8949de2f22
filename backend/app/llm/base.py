"""Abstract LLM provider interface."""
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class LLMResponse:
    """Response from LLM provider with content and usage metrics."""
    content: str
    tokens_used: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0


class LLMProvider(ABC):
    #: Display name used in errors and logs ("Perplexity", "OpenAI", ...)
    name: str = "LLM"

    @abstractmethod
    async def complete(self, prompt: str, timeout: int, system: str | None = None) -> LLMResponse:
        """Send a system+user message pair and return the response text with token usage.

        Raises ProviderError when the endpoint does not answer with a success status.
        """
        ...

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """Whether API key / endpoint is set."""
        ...
