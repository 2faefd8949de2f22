"""Project CRUD, screenshots and workflow steps."""
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repository import AnalysisRepository, ProjectRepository
from app.errors import NotFoundError

logger = logging.getLogger(__name__)

WORKFLOW_STEPS = (
    (1, "Input Form"),
    (2, "Architecture Analysis"),
    (3, "UI Design"),
    (4, "Frontend Assembly"),
    (5, "Backend Deployment"),
    (6, "Completion"),
)


async def create_project(
    session: AsyncSession,
    user_id: str,
    name: str,
    app_store_link: str | None = None,
    feature_description: str | None = None,
) -> str:
    """Create project with the six workflow steps. Returns id."""
    project_id = await ProjectRepository(session).create_project(
        user_id,
        name,
        app_store_link=app_store_link,
        feature_description=feature_description,
        steps=WORKFLOW_STEPS,
    )
    logger.info("Created project %s (%s)", project_id, name)
    return project_id


async def list_projects(session: AsyncSession, user_id: str) -> list[dict[str, Any]]:
    return await ProjectRepository(session).list_projects(user_id)


async def get_project(session: AsyncSession, user_id: str, project_id: str) -> dict[str, Any]:
    """Project owned by user_id, or NotFoundError."""
    project = await ProjectRepository(session).get_project(project_id, user_id)
    if not project:
        raise NotFoundError("Project not found")
    return project


async def get_project_detail(session: AsyncSession, user_id: str, project_id: str) -> dict[str, Any]:
    """Project with screenshots, latest analysis and steps."""
    project = await get_project(session, user_id, project_id)
    repo = ProjectRepository(session)
    return {
        "project": project,
        "screenshots": await repo.list_screenshots(project_id),
        "analysis": await AnalysisRepository(session).get_latest_for_project(project_id),
        "steps": await repo.list_steps(project_id),
    }


async def update_project(session: AsyncSession, user_id: str, project_id: str, **fields: Any) -> None:
    if not await ProjectRepository(session).update_project(project_id, user_id, **fields):
        raise NotFoundError("Project not found")


async def delete_project(session: AsyncSession, user_id: str, project_id: str) -> None:
    if not await ProjectRepository(session).delete_project(project_id, user_id):
        raise NotFoundError("Project not found")
    logger.info("Deleted project %s", project_id)


async def add_screenshot(session: AsyncSession, user_id: str, project_id: str, file_url: str, file_key: str) -> str:
    await get_project(session, user_id, project_id)
    return await ProjectRepository(session).add_screenshot(project_id, file_url, file_key)


async def update_step(
    session: AsyncSession,
    user_id: str,
    project_id: str,
    step_id: str,
    completed: bool,
    data: str | None = None,
) -> None:
    await get_project(session, user_id, project_id)
    if not await ProjectRepository(session).update_step(step_id, project_id, completed, data):
        raise NotFoundError("Step not found")
