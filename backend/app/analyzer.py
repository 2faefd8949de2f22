"""Three-stage AI analysis: research -> specification -> blueprint, then section extraction."""
from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Mapping

from app.blueprint import SECTION_LABELS, parse_blueprint
from app.config import settings
from app.llm import LLMProvider, LLMResponse, get_stage_providers
from app.prompt import (
    RESEARCH_SYSTEM,
    SPECIFICATION_SYSTEM,
    build_blueprint_prompt,
    build_research_prompt,
    build_specification_prompt,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisInput:
    project_name: str
    app_store_link: str | None = None
    feature_description: str | None = None
    screenshot_urls: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class AnalysisResult:
    perplexity_output: str = ""
    openai_output: str = ""
    gemini_master_prompt: str = ""
    db_schema: str = ""
    rls_policies: str = ""
    storage_buckets: str = ""
    api_logic: str = ""
    serverless_functions: str = ""
    prompt_library: str = ""
    tech_recommendations: str = ""

    def to_record(self) -> dict[str, str]:
        return asdict(self)

    def missing_sections(self) -> list[str]:
        """Labels of blueprint sections that came back empty."""
        by_label = {
            SECTION_LABELS[1]: self.tech_recommendations,
            SECTION_LABELS[2]: self.db_schema,
            SECTION_LABELS[3]: self.rls_policies,
            SECTION_LABELS[4]: self.storage_buckets,
            SECTION_LABELS[5]: self.serverless_functions,
            SECTION_LABELS[6]: self.prompt_library,
        }
        return [label for label, value in by_label.items() if not value]

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> AnalysisResult:
        """Build from a persisted analysis row; missing or null columns become ''."""
        return cls(**{f.name: record.get(f.name) or "" for f in fields(cls)})


class AnalysisPipeline:
    """Runs the stages strictly in order; any stage failure aborts the run."""

    def __init__(
        self,
        research: LLMProvider,
        specification: LLMProvider,
        blueprint: LLMProvider,
        timeout: int | None = None,
    ) -> None:
        self._research = research
        self._specification = specification
        self._blueprint = blueprint
        self._timeout = timeout or settings.request_timeout

    async def _call(self, stage: str, provider: LLMProvider, prompt: str, system: str | None = None) -> str:
        start_time = time.time()
        response: LLMResponse = await provider.complete(prompt, timeout=self._timeout, system=system)
        logger.info(
            "Stage %s (%s) finished in %d ms, %d tokens",
            stage,
            provider.name,
            int((time.time() - start_time) * 1000),
            response.tokens_used,
        )
        return response.content

    async def run(self, data: AnalysisInput) -> AnalysisResult:
        research = await self._call("research", self._research, build_research_prompt(data), RESEARCH_SYSTEM)
        specification = await self._call(
            "specification",
            self._specification,
            build_specification_prompt(research, data),
            SPECIFICATION_SYSTEM,
        )
        master = await self._call("blueprint", self._blueprint, build_blueprint_prompt(research, specification, data))

        sections = parse_blueprint(master)
        return AnalysisResult(
            perplexity_output=research,
            openai_output=specification,
            gemini_master_prompt=master,
            db_schema=sections.database_schema,
            rls_policies=sections.rls_policies,
            storage_buckets=sections.storage_buckets,
            # Mirrors the database-schema section; existing consumers read it from here
            api_logic=sections.database_schema,
            serverless_functions=sections.serverless_functions,
            prompt_library=sections.prompt_library,
            tech_recommendations=sections.overview,
        )


def build_pipeline(credentials: Mapping[str, str]) -> AnalysisPipeline:
    """Pipeline wired to the configured providers; raises MissingCredential when a stage key is absent."""
    providers = get_stage_providers(credentials)
    return AnalysisPipeline(providers.research, providers.specification, providers.blueprint)
