"""Google Gemini generateContent provider."""
import logging
from typing import Any

import httpx

from app.config import settings
from app.errors import ProviderError
from app.llm.base import LLMProvider, LLMResponse

logger = logging.getLogger(__name__)


class GeminiProvider(LLMProvider):
    name = "Gemini"

    def __init__(
        self,
        api_key: str,
        model: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = (api_key or "").strip()
        self._model = model or settings.gemini_model
        self._base_url = settings.gemini_base_url.rstrip("/")
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def complete(self, prompt: str, timeout: int, system: str | None = None) -> LLMResponse:
        if not self._api_key:
            raise ProviderError(self.name, "GEMINI_API_KEY is not set")
        url = f"{self._base_url}/models/{self._model}:generateContent"
        payload: dict[str, Any] = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": settings.gemini_temperature,
                "maxOutputTokens": settings.gemini_max_output_tokens,
            },
        }
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}
        headers = {
            "x-goog-api-key": self._api_key,
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                resp = await client.post(url, json=payload, headers=headers)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Gemini API error: %s %s. Response: %s",
                e.response.status_code,
                e.response.reason_phrase,
                e.response.text[:500],
            )
            raise ProviderError(
                self.name,
                f"Gemini API error: {e.response.reason_phrase}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError(self.name, f"Gemini API error: {e}") from e
        candidate = (data.get("candidates") or [None])[0]
        parts = ((candidate or {}).get("content") or {}).get("parts") or []
        if not parts:
            raise ProviderError(self.name, "No candidates in Gemini response")
        content = "".join(p.get("text") or "" for p in parts)
        usage = data.get("usageMetadata") or {}
        return LLMResponse(
            content=content,
            tokens_used=usage.get("totalTokenCount", 0),
            prompt_tokens=usage.get("promptTokenCount", 0),
            completion_tokens=usage.get("candidatesTokenCount", 0),
        )
