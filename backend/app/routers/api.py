"""API routes for AppForge."""
import logging
from typing import Any

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app import key_service, project_service, workflow_service
from app.analyzer import build_pipeline
from app.config import settings
from app.db.factory import get_session
from app.errors import (
    AppForgeError,
    ConfigError,
    DeploymentInProgress,
    DuplicateKeyError,
    MissingCredential,
    NotFoundError,
    ProviderError,
)
from app.integrations import ProviderClients, default_provider_clients
from app.models import (
    AnalysisRunResponse,
    ApiKeyCreate,
    ApiKeyItem,
    ApiKeyUpdate,
    DeploymentStatusResponse,
    DeployRequest,
    DeployResponse,
    HealthResponse,
    ProjectCreate,
    ProjectDetail,
    ProjectItem,
    ProjectUpdate,
    ScreenshotCreate,
    StepUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])

ERROR_STATUS = (
    (NotFoundError, 404),
    (MissingCredential, 400),
    (DuplicateKeyError, 409),
    (DeploymentInProgress, 409),
    (ProviderError, 502),
    (ConfigError, 500),
)


def _http_error(e: AppForgeError) -> HTTPException:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(e, error_type):
            return HTTPException(status_code=status_code, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


async def get_user_id(x_user_id: str | None = Header(default=None)) -> str:
    return x_user_id.strip() if x_user_id and x_user_id.strip() else settings.default_user_id


def get_provider_clients() -> ProviderClients:
    return default_provider_clients()


def get_pipeline_factory() -> workflow_service.PipelineFactory:
    return build_pipeline


@router.get("/health", response_model=HealthResponse)
async def health(session: AsyncSession = Depends(get_session)) -> HealthResponse:
    database = False
    try:
        await session.execute(text("SELECT 1"))
        database = True
    except Exception as e:
        logger.warning("Database check failed: %s", e)
    return HealthResponse(
        status="ok",
        database=database,
        encryption_configured=bool(settings.credentials_encryption_key),
        lock_backend="redis" if settings.redis_url else "memory",
    )


# --- API keys ---


@router.get("/api-keys", response_model=list[ApiKeyItem])
async def api_keys_list(
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(get_user_id),
) -> list[ApiKeyItem]:
    try:
        keys = await key_service.list_api_keys(session, user_id)
    except AppForgeError as e:
        raise _http_error(e)
    return [ApiKeyItem(**k) for k in keys]


@router.post("/api-keys")
async def api_keys_create(
    req: ApiKeyCreate,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(get_user_id),
) -> dict[str, Any]:
    try:
        key_id = await key_service.create_api_key(session, user_id, req.key_name, req.key_value)
    except AppForgeError as e:
        raise _http_error(e)
    return {"success": True, "id": key_id}


@router.patch("/api-keys/{key_id}")
async def api_keys_update(
    key_id: str,
    req: ApiKeyUpdate,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(get_user_id),
) -> dict[str, Any]:
    try:
        found = await key_service.update_api_key(session, user_id, key_id, req.key_value)
    except AppForgeError as e:
        raise _http_error(e)
    if not found:
        raise HTTPException(status_code=404, detail="API key not found")
    return {"success": True}


@router.delete("/api-keys/{key_id}")
async def api_keys_delete(
    key_id: str,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(get_user_id),
) -> dict[str, Any]:
    if not await key_service.delete_api_key(session, user_id, key_id):
        raise HTTPException(status_code=404, detail="API key not found")
    return {"success": True}


# --- Projects ---


@router.get("/projects", response_model=list[ProjectItem])
async def projects_list(
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(get_user_id),
) -> list[ProjectItem]:
    items = await project_service.list_projects(session, user_id)
    return [ProjectItem(**p) for p in items]


@router.post("/projects")
async def projects_create(
    req: ProjectCreate,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(get_user_id),
) -> dict[str, Any]:
    project_id = await project_service.create_project(
        session,
        user_id,
        req.name,
        app_store_link=req.app_store_link,
        feature_description=req.feature_description,
    )
    return {"success": True, "id": project_id}


@router.get("/projects/{project_id}", response_model=ProjectDetail)
async def projects_get(
    project_id: str,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(get_user_id),
) -> ProjectDetail:
    try:
        detail = await project_service.get_project_detail(session, user_id, project_id)
    except AppForgeError as e:
        raise _http_error(e)
    return ProjectDetail(**detail)


@router.patch("/projects/{project_id}")
async def projects_update(
    project_id: str,
    req: ProjectUpdate,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(get_user_id),
) -> dict[str, Any]:
    fields = req.model_dump(exclude_none=True)
    if "status" in fields:
        fields["status"] = req.status.value
    try:
        await project_service.update_project(session, user_id, project_id, **fields)
    except AppForgeError as e:
        raise _http_error(e)
    return {"success": True}


@router.delete("/projects/{project_id}")
async def projects_delete(
    project_id: str,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(get_user_id),
) -> dict[str, Any]:
    try:
        await project_service.delete_project(session, user_id, project_id)
    except AppForgeError as e:
        raise _http_error(e)
    return {"success": True}


@router.post("/projects/{project_id}/screenshots")
async def screenshots_create(
    project_id: str,
    req: ScreenshotCreate,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(get_user_id),
) -> dict[str, Any]:
    try:
        screenshot_id = await project_service.add_screenshot(session, user_id, project_id, req.file_url, req.file_key)
    except AppForgeError as e:
        raise _http_error(e)
    return {"success": True, "id": screenshot_id}


@router.patch("/projects/{project_id}/steps/{step_id}")
async def steps_update(
    project_id: str,
    step_id: str,
    req: StepUpdate,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(get_user_id),
) -> dict[str, Any]:
    try:
        await project_service.update_step(session, user_id, project_id, step_id, req.completed, req.data)
    except AppForgeError as e:
        raise _http_error(e)
    return {"success": True}


# --- Analysis / deployment ---


@router.post("/projects/{project_id}/analysis", response_model=AnalysisRunResponse)
async def analysis_run(
    project_id: str,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(get_user_id),
    pipeline_factory: workflow_service.PipelineFactory = Depends(get_pipeline_factory),
) -> AnalysisRunResponse:
    try:
        analysis_id, missing = await workflow_service.run_analysis(
            session, user_id, project_id, pipeline_factory=pipeline_factory
        )
    except AppForgeError as e:
        logger.warning("Analysis for project %s failed: %s", project_id, e)
        raise _http_error(e)
    return AnalysisRunResponse(success=True, analysis_id=analysis_id, missing_sections=missing)


@router.post("/projects/{project_id}/deploy", response_model=DeployResponse)
async def deploy(
    project_id: str,
    req: DeployRequest,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(get_user_id),
    clients: ProviderClients = Depends(get_provider_clients),
) -> DeployResponse:
    try:
        result = await workflow_service.deploy_backend(session, user_id, project_id, req.mode, clients=clients)
    except AppForgeError as e:
        raise _http_error(e)
    return DeployResponse(
        success=result.success,
        mode=result.mode,
        message=result.message,
        github_repo_url=result.github_repo_url,
        vercel_project_url=result.vercel_project_url,
    )


@router.get("/projects/{project_id}/deployment", response_model=DeploymentStatusResponse)
async def deployment_get(
    project_id: str,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(get_user_id),
) -> DeploymentStatusResponse:
    try:
        state = await workflow_service.get_deployment_state(session, user_id, project_id)
    except AppForgeError as e:
        raise _http_error(e)
    return DeploymentStatusResponse(**state)
