"""OpenAI-compatible chat completions endpoint (OpenAI, Perplexity, ...)."""
import logging
from typing import Any

import httpx

from app.errors import ProviderError
from app.llm.base import LLMProvider, LLMResponse

logger = logging.getLogger(__name__)


class OpenAICompatibleProvider(LLMProvider):
    def __init__(
        self,
        name: str,
        base_url: str,
        api_key: str,
        model: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.name = name
        self._base_url = (base_url or "").rstrip("/")
        self._api_key = (api_key or "").strip()
        self._model = model
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self._base_url and self._api_key)

    async def complete(self, prompt: str, timeout: int, system: str | None = None) -> LLMResponse:
        if not self.is_configured:
            raise ProviderError(self.name, f"{self.name} API key is not set")
        url = f"{self._base_url}/chat/completions"
        messages: list[dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        payload: dict[str, Any] = {"model": self._model, "messages": messages}
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                resp = await client.post(url, json=payload, headers=headers)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "%s API error: %s %s. Response: %s",
                self.name,
                e.response.status_code,
                e.response.reason_phrase,
                e.response.text[:500],
            )
            raise ProviderError(
                self.name,
                f"{self.name} API error: {e.response.reason_phrase}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError(self.name, f"{self.name} API error: {e}") from e
        choice = (data.get("choices") or [None])[0]
        if not choice:
            raise ProviderError(self.name, f"No completion in {self.name} response")
        content = (choice.get("message") or {}).get("content") or ""
        usage = data.get("usage") or {}
        return LLMResponse(
            content=content,
            tokens_used=usage.get("total_tokens", 0),
            prompt_tokens=usage.get("prompt_tokens", 0),
            completion_tokens=usage.get("completion_tokens", 0),
        )
