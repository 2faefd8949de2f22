"""Repository pattern for API keys, projects and analysis results."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence
from uuid import uuid4

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import ApiKey, Project, ProjectAnalysis, ProjectScreenshot, ProjectStep

logger = logging.getLogger(__name__)

ANALYSIS_FIELDS = (
    "perplexity_output",
    "openai_output",
    "gemini_master_prompt",
    "db_schema",
    "rls_policies",
    "storage_buckets",
    "api_logic",
    "serverless_functions",
    "prompt_library",
    "tech_recommendations",
)
PROJECT_UPDATABLE = frozenset({"name", "app_store_link", "feature_description", "status"})


def _now() -> str:
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat(timespec="microseconds") + "Z"


class ApiKeyRepository:
    """Stored (encrypted) API keys per user."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def _row(k: ApiKey) -> dict[str, Any]:
        return {
            "id": k.id,
            "key_name": k.key_name,
            "key_value": k.key_value,
            "created_at": k.created_at,
            "updated_at": k.updated_at,
        }

    async def list_keys(self, user_id: str) -> list[dict[str, Any]]:
        stmt = select(ApiKey).where(ApiKey.user_id == user_id).order_by(ApiKey.key_name)
        result = await self.session.execute(stmt)
        return [self._row(k) for k in result.scalars().all()]

    async def get_by_name(self, user_id: str, key_name: str) -> dict[str, Any] | None:
        stmt = select(ApiKey).where(ApiKey.user_id == user_id, ApiKey.key_name == key_name)
        result = await self.session.execute(stmt)
        key = result.scalar_one_or_none()
        return self._row(key) if key else None

    async def create_key(self, user_id: str, key_name: str, key_value: str) -> str:
        """Store an already-encrypted value. Returns key ID."""
        uid = str(uuid4())
        now = _now()
        self.session.add(
            ApiKey(id=uid, user_id=user_id, key_name=key_name, key_value=key_value, created_at=now, updated_at=now)
        )
        await self.session.commit()
        return uid

    async def _get_owned(self, key_id: str, user_id: str) -> ApiKey | None:
        stmt = select(ApiKey).where(ApiKey.id == key_id, ApiKey.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def update_key(self, key_id: str, user_id: str, key_value: str) -> bool:
        key = await self._get_owned(key_id, user_id)
        if not key:
            return False
        key.key_value = key_value
        key.updated_at = _now()
        await self.session.commit()
        return True

    async def delete_key(self, key_id: str, user_id: str) -> bool:
        key = await self._get_owned(key_id, user_id)
        if not key:
            return False
        await self.session.delete(key)
        await self.session.commit()
        return True


class ProjectRepository:
    """Projects with their screenshots and workflow steps."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_project(
        self,
        user_id: str,
        name: str,
        app_store_link: str | None = None,
        feature_description: str | None = None,
        steps: Sequence[tuple[int, str]] = (),
    ) -> str:
        """Create project and its workflow steps in one commit. Returns project ID."""
        project_id = str(uuid4())
        now = _now()
        self.session.add(
            Project(
                id=project_id,
                user_id=user_id,
                name=name,
                app_store_link=app_store_link,
                feature_description=feature_description,
                status="analyzing",
                created_at=now,
                updated_at=now,
            )
        )
        for number, step_name in steps:
            self.session.add(
                ProjectStep(
                    id=str(uuid4()),
                    project_id=project_id,
                    step_number=number,
                    step_name=step_name,
                    completed=False,
                    created_at=now,
                )
            )
        await self.session.commit()
        return project_id

    async def list_projects(self, user_id: str) -> list[dict[str, Any]]:
        try:
            stmt = select(Project).where(Project.user_id == user_id).order_by(Project.created_at.desc())
            result = await self.session.execute(stmt)
            return [p.to_dict() for p in result.scalars().all()]
        except Exception as e:
            logger.warning("list_projects failed: %s", e)
            return []

    async def _get_owned(self, project_id: str, user_id: str) -> Project | None:
        stmt = select(Project).where(Project.id == project_id, Project.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_project(self, project_id: str, user_id: str) -> dict[str, Any] | None:
        project = await self._get_owned(project_id, user_id)
        return project.to_dict() if project else None

    async def update_project(self, project_id: str, user_id: str, **fields: Any) -> bool:
        """Update the given fields (None values are ignored). Returns True if found."""
        project = await self._get_owned(project_id, user_id)
        if not project:
            return False
        for key, value in fields.items():
            if key not in PROJECT_UPDATABLE:
                raise ValueError(f"Field {key} cannot be updated")
            if value is not None:
                setattr(project, key, value)
        project.updated_at = _now()
        await self.session.commit()
        return True

    async def delete_project(self, project_id: str, user_id: str) -> bool:
        """Delete project with its screenshots, analyses and steps."""
        project = await self._get_owned(project_id, user_id)
        if not project:
            return False
        for model in (ProjectScreenshot, ProjectAnalysis, ProjectStep):
            await self.session.execute(delete(model).where(model.project_id == project_id))
        await self.session.delete(project)
        await self.session.commit()
        return True

    async def add_screenshot(self, project_id: str, file_url: str, file_key: str) -> str:
        uid = str(uuid4())
        self.session.add(
            ProjectScreenshot(id=uid, project_id=project_id, file_url=file_url, file_key=file_key, uploaded_at=_now())
        )
        await self.session.commit()
        return uid

    async def list_screenshots(self, project_id: str) -> list[dict[str, Any]]:
        stmt = (
            select(ProjectScreenshot)
            .where(ProjectScreenshot.project_id == project_id)
            .order_by(ProjectScreenshot.uploaded_at)
        )
        result = await self.session.execute(stmt)
        return [
            {"id": s.id, "file_url": s.file_url, "file_key": s.file_key, "uploaded_at": s.uploaded_at}
            for s in result.scalars().all()
        ]

    async def list_steps(self, project_id: str) -> list[dict[str, Any]]:
        stmt = select(ProjectStep).where(ProjectStep.project_id == project_id).order_by(ProjectStep.step_number)
        result = await self.session.execute(stmt)
        return [
            {
                "id": s.id,
                "step_number": s.step_number,
                "step_name": s.step_name,
                "completed": s.completed,
                "data": s.data,
                "completed_at": s.completed_at,
            }
            for s in result.scalars().all()
        ]

    async def update_step(self, step_id: str, project_id: str, completed: bool, data: str | None = None) -> bool:
        stmt = select(ProjectStep).where(ProjectStep.id == step_id, ProjectStep.project_id == project_id)
        result = await self.session.execute(stmt)
        step = result.scalar_one_or_none()
        if not step:
            return False
        step.completed = completed
        if data is not None:
            step.data = data
        step.completed_at = _now() if completed else None
        await self.session.commit()
        return True


class AnalysisRepository:
    """Analysis results and the deployment status/artifacts attached to them."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_analysis(self, project_id: str, result: Mapping[str, str]) -> str:
        """Insert a new analysis row (never patches an older one). Returns analysis ID."""
        uid = str(uuid4())
        analysis = ProjectAnalysis(
            id=uid,
            project_id=project_id,
            created_at=_now(),
            **{name: result.get(name) or None for name in ANALYSIS_FIELDS},
        )
        self.session.add(analysis)
        await self.session.commit()
        return uid

    async def get_analysis(self, analysis_id: str) -> dict[str, Any] | None:
        analysis = await self.session.get(ProjectAnalysis, analysis_id)
        return analysis.to_dict() if analysis else None

    async def get_latest_for_project(self, project_id: str) -> dict[str, Any] | None:
        stmt = (
            select(ProjectAnalysis)
            .where(ProjectAnalysis.project_id == project_id)
            .order_by(ProjectAnalysis.created_at.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        analysis = result.scalar_one_or_none()
        return analysis.to_dict() if analysis else None

    async def update_deployment_status(self, analysis_id: str, status: str) -> bool:
        analysis = await self.session.get(ProjectAnalysis, analysis_id)
        if not analysis:
            logger.warning("update_deployment_status: analysis %s not found", analysis_id)
            return False
        analysis.deployment_status = status
        await self.session.commit()
        return True

    async def update_artifacts(
        self,
        analysis_id: str,
        github_repo_url: str | None = None,
        vercel_project_url: str | None = None,
    ) -> bool:
        """Record artifact URLs; None leaves the stored value untouched (artifacts are never cleared)."""
        analysis = await self.session.get(ProjectAnalysis, analysis_id)
        if not analysis:
            logger.warning("update_artifacts: analysis %s not found", analysis_id)
            return False
        if github_repo_url is not None:
            analysis.github_repo_url = github_repo_url
        if vercel_project_url is not None:
            analysis.vercel_project_url = vercel_project_url
        await self.session.commit()
        return True
