"""Build the three analysis-stage providers from a user's credentials."""
from dataclasses import dataclass
from typing import Mapping

from app.config import settings
from app.credentials import GEMINI_API_KEY, OPENAI_API_KEY, PERPLEXITY_API_KEY, resolve_name
from app.errors import MissingCredential
from app.llm.base import LLMProvider
from app.llm.gemini_provider import GeminiProvider
from app.llm.openai_compatible_provider import OpenAICompatibleProvider

STAGE_KEYS = (PERPLEXITY_API_KEY, OPENAI_API_KEY, GEMINI_API_KEY)


@dataclass(frozen=True)
class StageProviders:
    research: LLMProvider
    specification: LLMProvider
    blueprint: LLMProvider


def get_stage_providers(credentials: Mapping[str, str]) -> StageProviders:
    if any(resolve_name(credentials, k) is None for k in STAGE_KEYS):
        raise MissingCredential(
            "Missing required API keys. Please add PERPLEXITY_API_KEY, OPENAI_API_KEY, "
            "and GEMINI_API_KEY in Settings.",
            keys=[k.primary for k in STAGE_KEYS],
        )
    return StageProviders(
        research=OpenAICompatibleProvider(
            "Perplexity",
            settings.perplexity_base_url,
            credentials[PERPLEXITY_API_KEY.primary],
            settings.perplexity_model,
        ),
        specification=OpenAICompatibleProvider(
            "OpenAI",
            settings.openai_base_url,
            credentials[OPENAI_API_KEY.primary],
            settings.openai_model,
        ),
        blueprint=GeminiProvider(credentials[GEMINI_API_KEY.primary]),
    )
