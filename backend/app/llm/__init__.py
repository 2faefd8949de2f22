"""LLM provider interface and implementations."""
from app.llm.base import LLMProvider, LLMResponse
from app.llm.factory import StageProviders, get_stage_providers

__all__ = ["LLMProvider", "LLMResponse", "StageProviders", "get_stage_providers"]
