"""Backend provisioning: drives GitHub, Vercel and Supabase in a fixed order.

The run is synchronous and one-shot. The status column is written before each
step starts, artifact URLs right after their create call succeeds. On the first
hard failure the status becomes "failed: <message>" and the error is re-raised;
nothing already provisioned is rolled back, and a retry starts from the top.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Protocol

from app import credentials as creds
from app.analyzer import AnalysisResult
from app.blueprint import extract_function_files, parse_bucket_specs
from app.integrations.base import ALL_TARGETS, ProviderClients
from app.naming import normalize_project_name

logger = logging.getLogger(__name__)

FAILED_PREFIX = "failed: "
REPO_SUFFIX = "-backend"
MANUAL_MESSAGE = "Supabase setup completed. Download serverless functions code and deploy manually."


class DeployMode(str, Enum):
    auto = "auto"
    manual = "manual"


class DeploymentStatus(str, Enum):
    CREATING_REPO = "creating_repo"
    PUSHING_CODE = "pushing_code"
    CREATING_VERCEL_PROJECT = "creating_vercel_project"
    SETTING_ENV_VARS = "setting_env_vars"
    EXECUTING_SQL = "executing_sql"
    CREATING_BUCKETS = "creating_buckets"
    COMPLETED = "completed"
    MANUAL_SETUP_COMPLETE = "manual_setup_complete"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset(
    {DeploymentStatus.COMPLETED, DeploymentStatus.MANUAL_SETUP_COMPLETE, DeploymentStatus.FAILED}
)


@dataclass(frozen=True)
class DeploymentState:
    """A checkpoint, or FAILED carrying the error message."""
    status: DeploymentStatus
    message: str | None = None

    @classmethod
    def failed(cls, message: str) -> DeploymentState:
        return cls(DeploymentStatus.FAILED, message)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def label(self) -> str:
        """The persisted form, e.g. "executing_sql" or "failed: quota exceeded"."""
        if self.status is DeploymentStatus.FAILED:
            return FAILED_PREFIX + (self.message or "")
        return self.status.value

    @classmethod
    def parse(cls, raw: str | None) -> DeploymentState | None:
        if not raw:
            return None
        if raw.startswith(FAILED_PREFIX) or raw == DeploymentStatus.FAILED.value:
            return cls.failed(raw[len(FAILED_PREFIX):])
        try:
            return cls(DeploymentStatus(raw))
        except ValueError:
            logger.warning("Unknown deployment status %r", raw)
            return None


@dataclass(frozen=True)
class DeploymentResult:
    success: bool
    mode: DeployMode
    message: str | None = None
    github_repo_url: str | None = None
    vercel_project_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        if self.mode is DeployMode.manual:
            return {"success": self.success, "mode": self.mode.value, "message": self.message}
        return {
            "success": self.success,
            "githubRepoUrl": self.github_repo_url,
            "vercelProjectUrl": self.vercel_project_url,
        }


class DeploymentStore(Protocol):
    """Where status and artifacts are written; each call is its own commit."""

    async def update_deployment_status(self, analysis_id: str, status: str) -> bool:
        ...

    async def update_artifacts(
        self,
        analysis_id: str,
        github_repo_url: str | None = None,
        vercel_project_url: str | None = None,
    ) -> bool:
        ...


@dataclass(frozen=True)
class _Secrets:
    supabase_url: str
    supabase_service_key: str
    supabase_anon_key: str = ""
    github_token: str = ""
    vercel_token: str = ""


class DeploymentOrchestrator:
    def __init__(self, store: DeploymentStore, clients: ProviderClients) -> None:
        self._store = store
        self._github = clients.github
        self._vercel = clients.vercel
        self._supabase = clients.supabase

    @staticmethod
    def _preflight(credentials: Mapping[str, str], mode: DeployMode) -> _Secrets:
        github_token = vercel_token = ""
        if mode is DeployMode.auto:
            github_token = creds.require(credentials, creds.GITHUB_TOKEN)
            vercel_token = creds.require(credentials, creds.VERCEL_TOKEN)
        return _Secrets(
            supabase_url=creds.require(credentials, creds.SUPABASE_URL),
            supabase_service_key=creds.require(credentials, creds.SUPABASE_SERVICE_KEY),
            supabase_anon_key=creds.resolve_name(credentials, creds.SUPABASE_ANON_KEY) or "",
            github_token=github_token,
            vercel_token=vercel_token,
        )

    async def _enter(self, analysis_id: str, state: DeploymentState) -> None:
        logger.info("Deployment %s -> %s", analysis_id, state.status.value)
        await self._store.update_deployment_status(analysis_id, state.label())

    async def run(
        self,
        analysis_id: str,
        project_name: str,
        analysis: AnalysisResult,
        credentials: Mapping[str, str],
        mode: DeployMode | str = DeployMode.auto,
    ) -> DeploymentResult:
        """
        Provision the backend for one analysis.
        Raises MissingCredential before any side effect; any other failure is
        persisted as the failed status and re-raised unchanged.
        """
        mode = DeployMode(mode)
        secrets = self._preflight(credentials, mode)
        try:
            if mode is DeployMode.manual:
                return await self._run_manual(analysis_id, analysis, secrets)
            return await self._run_auto(analysis_id, project_name, analysis, secrets)
        except Exception as e:
            logger.error("Deployment %s (%s) failed: %s", analysis_id, mode.value, e)
            try:
                await self._store.update_deployment_status(analysis_id, DeploymentState.failed(str(e)).label())
            except Exception as store_error:
                logger.error("Could not record failure of deployment %s: %s", analysis_id, store_error)
            raise

    async def _run_manual(self, analysis_id: str, analysis: AnalysisResult, secrets: _Secrets) -> DeploymentResult:
        await self._enter(analysis_id, DeploymentState(DeploymentStatus.EXECUTING_SQL))
        await self._execute_sql(analysis, secrets)
        await self._create_buckets(analysis.storage_buckets, secrets)
        await self._enter(analysis_id, DeploymentState(DeploymentStatus.MANUAL_SETUP_COMPLETE))
        return DeploymentResult(success=True, mode=DeployMode.manual, message=MANUAL_MESSAGE)

    async def _run_auto(
        self,
        analysis_id: str,
        project_name: str,
        analysis: AnalysisResult,
        secrets: _Secrets,
    ) -> DeploymentResult:
        await self._enter(analysis_id, DeploymentState(DeploymentStatus.CREATING_REPO))
        username = await self._github.get_username(secrets.github_token)
        repo_name = normalize_project_name(project_name) + REPO_SUFFIX
        repo = await self._github.create_repo(
            secrets.github_token,
            repo_name,
            description=f"Backend for {project_name}",
            private=True,
        )
        await self._store.update_artifacts(analysis_id, github_repo_url=repo.html_url)

        await self._enter(analysis_id, DeploymentState(DeploymentStatus.PUSHING_CODE))
        files = extract_function_files(analysis.serverless_functions)
        if files:
            await self._github.push_files(secrets.github_token, username, repo_name, files)
        else:
            logger.info("No serverless function files found for %s, skipping push", repo_name)

        await self._enter(analysis_id, DeploymentState(DeploymentStatus.CREATING_VERCEL_PROJECT))
        project = await self._vercel.create_project(secrets.vercel_token, repo_name, repo.full_name)
        await self._store.update_artifacts(analysis_id, vercel_project_url=project.url)

        await self._enter(analysis_id, DeploymentState(DeploymentStatus.SETTING_ENV_VARS))
        failed_vars = await self._vercel.set_env_vars(
            secrets.vercel_token,
            project.id,
            {
                "SUPABASE_URL": secrets.supabase_url,
                "SUPABASE_ANON_KEY": secrets.supabase_anon_key,
                "SUPABASE_SERVICE_KEY": secrets.supabase_service_key,
            },
            targets=ALL_TARGETS,
        )
        if failed_vars:
            logger.warning("Vercel env vars not set for %s: %s", project.name, ", ".join(failed_vars))

        await self._enter(analysis_id, DeploymentState(DeploymentStatus.EXECUTING_SQL))
        await self._execute_sql(analysis, secrets)

        await self._enter(analysis_id, DeploymentState(DeploymentStatus.CREATING_BUCKETS))
        await self._create_buckets(analysis.storage_buckets, secrets)

        await self._enter(analysis_id, DeploymentState(DeploymentStatus.COMPLETED))
        return DeploymentResult(
            success=True,
            mode=DeployMode.auto,
            github_repo_url=repo.html_url,
            vercel_project_url=project.url,
        )

    async def _execute_sql(self, analysis: AnalysisResult, secrets: _Secrets) -> None:
        # Schema first, then policies, as separate calls
        if analysis.db_schema:
            await self._supabase.execute_sql(secrets.supabase_url, secrets.supabase_service_key, analysis.db_schema)
        if analysis.rls_policies:
            await self._supabase.execute_sql(
                secrets.supabase_url, secrets.supabase_service_key, analysis.rls_policies
            )

    async def _create_buckets(self, raw_buckets: str, secrets: _Secrets) -> None:
        specs = parse_bucket_specs(raw_buckets)
        if not specs:
            return
        created = 0
        for spec in specs:
            try:
                await self._supabase.create_bucket(
                    secrets.supabase_url, secrets.supabase_service_key, spec.name, public=spec.public
                )
                created += 1
            except Exception as e:
                logger.warning("Failed to create bucket %s, continuing: %s", spec.name, e)
        logger.info("Created %d of %d storage buckets", created, len(specs))
