"""Run analysis and backend deployment for a project, persisting results."""
from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from app import locks
from app.analyzer import AnalysisInput, AnalysisPipeline, AnalysisResult, build_pipeline
from app.config import settings
from app.db.repository import AnalysisRepository, ProjectRepository
from app.deployment import DeploymentOrchestrator, DeploymentResult, DeploymentState, DeployMode
from app.errors import NotFoundError
from app.integrations import ProviderClients, default_provider_clients
from app.key_service import load_credentials
from app.project_service import get_project

logger = logging.getLogger(__name__)

PipelineFactory = Callable[[Mapping[str, str]], AnalysisPipeline]


async def run_analysis(
    session: AsyncSession,
    user_id: str,
    project_id: str,
    pipeline_factory: PipelineFactory = build_pipeline,
) -> tuple[str, list[str]]:
    """
    Run the three-stage analysis and store it as a new analysis row.
    Returns (analysis_id, labels of blueprint sections that came back empty).
    """
    project = await get_project(session, user_id, project_id)
    credentials = await load_credentials(session, user_id)
    pipeline = pipeline_factory(credentials)

    screenshots = await ProjectRepository(session).list_screenshots(project_id)
    data = AnalysisInput(
        project_name=project["name"],
        app_store_link=project.get("app_store_link"),
        feature_description=project.get("feature_description"),
        screenshot_urls=tuple(s["file_url"] for s in screenshots),
    )
    logger.info("Starting analysis for project %s", project["name"])
    result = await pipeline.run(data)

    analysis_id = await AnalysisRepository(session).create_analysis(project_id, result.to_record())
    await ProjectRepository(session).update_project(project_id, user_id, status="awaiting_design")
    missing = result.missing_sections()
    if missing:
        logger.warning("Analysis %s is missing sections: %s", analysis_id, ", ".join(missing))
    logger.info("Analysis %s stored for project %s", analysis_id, project_id)
    return analysis_id, missing


async def deploy_backend(
    session: AsyncSession,
    user_id: str,
    project_id: str,
    mode: DeployMode | str = DeployMode.auto,
    clients: ProviderClients | None = None,
) -> DeploymentResult:
    """Provision the backend from the project's latest analysis."""
    project = await get_project(session, user_id, project_id)
    analyses = AnalysisRepository(session)
    analysis = await analyses.get_latest_for_project(project_id)
    if not analysis:
        raise NotFoundError("Analysis not found. Please run analysis first.")

    credentials = await load_credentials(session, user_id)
    orchestrator = DeploymentOrchestrator(analyses, clients or default_provider_clients())

    async def _run() -> DeploymentResult:
        return await orchestrator.run(
            analysis["id"],
            project["name"],
            AnalysisResult.from_record(analysis),
            credentials,
            mode,
        )

    if not settings.deploy_single_flight:
        return await _run()
    async with locks.single_flight(locks.lock_key("deploy", project_id)):
        return await _run()


async def get_deployment_state(session: AsyncSession, user_id: str, project_id: str) -> dict[str, Any]:
    """Parsed deployment status and artifact URLs of the latest analysis."""
    await get_project(session, user_id, project_id)
    analysis = await AnalysisRepository(session).get_latest_for_project(project_id)
    if not analysis:
        raise NotFoundError("Analysis not found. Please run analysis first.")

    state = DeploymentState.parse(analysis.get("deployment_status"))
    return {
        "analysis_id": analysis["id"],
        "status": state.status.value if state else None,
        "failure_message": state.message if state else None,
        "is_terminal": state.is_terminal if state else False,
        "github_repo_url": analysis.get("github_repo_url"),
        "vercel_project_url": analysis.get("vercel_project_url"),
    }
