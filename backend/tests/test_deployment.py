"""Tests for the deployment orchestrator state machine."""
import httpx
import pytest

from app.analyzer import AnalysisResult
from app.deployment import (
    MANUAL_MESSAGE,
    DeploymentOrchestrator,
    DeploymentState,
    DeploymentStatus,
    DeployMode,
)
from app.errors import MissingCredential, ProviderError
from app.integrations.base import ProviderClients
from app.integrations.supabase import HttpSupabaseClient

SUPABASE_CREDENTIALS = {
    "SUPABASE_URL": "https://abc123.supabase.co",
    "SUPABASE_SERVICE_KEY": "service-key",
    "SUPABASE_ANON_KEY": "anon-key",
}
ALL_CREDENTIALS = {**SUPABASE_CREDENTIALS, "GITHUB_TOKEN": "gh-token", "VERCEL_TOKEN": "vc-token"}


@pytest.fixture
def analysis():
    return AnalysisResult(
        db_schema="CREATE TABLE habits (id uuid primary key);",
        rls_policies="ALTER TABLE habits ENABLE ROW LEVEL SECURITY;",
        storage_buckets='[{"name": "avatars", "public": true}, {"name": "exports"}]',
        serverless_functions="```javascript\n// api/habits.js\nexport default () => {};\n```",
    )


@pytest.fixture
def orchestrator(recording_store, fake_clients):
    return DeploymentOrchestrator(recording_store, fake_clients)


@pytest.mark.asyncio
async def test_auto_mode_call_order(orchestrator, recording_store, analysis, events):
    result = await orchestrator.run("an-1", "Habit Tracker", analysis, ALL_CREDENTIALS, DeployMode.auto)

    assert events == [
        ("status", "creating_repo"),
        ("github", "get_username"),
        ("github", "create_repo"),
        ("artifact", "github_repo_url"),
        ("status", "pushing_code"),
        ("github", "push_files"),
        ("status", "creating_vercel_project"),
        ("vercel", "create_project"),
        ("artifact", "vercel_project_url"),
        ("status", "setting_env_vars"),
        ("vercel", "set_env_vars"),
        ("status", "executing_sql"),
        ("supabase", "execute_sql"),
        ("supabase", "execute_sql"),
        ("status", "creating_buckets"),
        ("supabase", "create_bucket"),
        ("supabase", "create_bucket"),
        ("status", "completed"),
    ]
    assert result.success
    assert result.github_repo_url == "https://github.com/octo/habit-tracker-backend"
    assert result.vercel_project_url == "https://habit-tracker-backend.vercel.app"
    assert result.to_dict() == {
        "success": True,
        "githubRepoUrl": "https://github.com/octo/habit-tracker-backend",
        "vercelProjectUrl": "https://habit-tracker-backend.vercel.app",
    }


@pytest.mark.asyncio
async def test_auto_mode_pushes_function_files_and_env_vars(
    orchestrator, analysis, fake_github, fake_vercel, fake_supabase
):
    await orchestrator.run("an-1", "Habit Tracker", analysis, ALL_CREDENTIALS, "auto")

    assert [f.path for f in fake_github.pushed] == ["api/habits.js"]
    assert fake_vercel.env_vars == {
        "SUPABASE_URL": "https://abc123.supabase.co",
        "SUPABASE_ANON_KEY": "anon-key",
        "SUPABASE_SERVICE_KEY": "service-key",
    }
    assert fake_supabase.sql == [analysis.db_schema, analysis.rls_policies]
    assert fake_supabase.buckets == [("avatars", True), ("exports", False)]


@pytest.mark.asyncio
async def test_push_skipped_when_no_function_files(orchestrator, recording_store, events):
    analysis = AnalysisResult(db_schema="CREATE TABLE t();", storage_buckets="[]")
    await orchestrator.run("an-1", "Habit Tracker", analysis, ALL_CREDENTIALS, DeployMode.auto)
    assert ("github", "push_files") not in events
    assert "pushing_code" in recording_store.statuses
    assert recording_store.statuses[-1] == "completed"


@pytest.mark.asyncio
async def test_partial_bucket_failure_still_completes(orchestrator, recording_store, fake_supabase, events):
    analysis = AnalysisResult(
        db_schema="CREATE TABLE t();",
        storage_buckets='[{"name": "avatars"}, {"name": "exports"}, {"name": "receipts", "public": true}]',
    )
    fake_supabase.failing_buckets = {"exports"}

    result = await orchestrator.run("an-1", "Habit Tracker", analysis, ALL_CREDENTIALS, DeployMode.auto)

    assert result.success
    assert events.count(("supabase", "create_bucket")) == 3
    assert fake_supabase.buckets == [("avatars", False), ("receipts", True)]
    assert recording_store.statuses[-1] == "completed"


@pytest.mark.asyncio
async def test_unexpected_bucket_error_is_skipped(orchestrator, recording_store, fake_supabase, analysis):
    fake_supabase.failing_buckets = {"avatars"}
    fake_supabase.bucket_error = RuntimeError("connection reset")

    result = await orchestrator.run("an-1", "Habit Tracker", analysis, SUPABASE_CREDENTIALS, DeployMode.manual)

    assert result.success
    assert fake_supabase.buckets == [("exports", False)]
    assert recording_store.statuses == ["executing_sql", "manual_setup_complete"]


@pytest.mark.asyncio
async def test_invalid_bucket_url_does_not_fail_manual_setup(recording_store, fake_github, fake_vercel):
    seen: list = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={})

    supabase = HttpSupabaseClient(transport=httpx.MockTransport(handler))
    orchestrator = DeploymentOrchestrator(
        recording_store, ProviderClients(github=fake_github, vercel=fake_vercel, supabase=supabase)
    )
    analysis = AnalysisResult(storage_buckets='[{"name": "a"}]')
    credentials = {"SUPABASE_URL": "https://abc\x01def.supabase.co", "SUPABASE_SERVICE_KEY": "service-key"}

    result = await orchestrator.run("an-1", "Habit Tracker", analysis, credentials, DeployMode.manual)

    assert result.success
    assert seen == []
    assert recording_store.statuses == ["executing_sql", "manual_setup_complete"]


class _FailingStatusStore:
    """Accepts checkpoints but cannot record the failure status."""

    def __init__(self):
        self.statuses: list[str] = []

    async def update_deployment_status(self, analysis_id: str, status: str) -> bool:
        if status.startswith("failed"):
            raise RuntimeError("database is locked")
        self.statuses.append(status)
        return True

    async def update_artifacts(self, analysis_id, github_repo_url=None, vercel_project_url=None) -> bool:
        return True


@pytest.mark.asyncio
async def test_original_error_survives_failed_status_write(fake_clients, fake_vercel, analysis):
    fake_vercel.create_error = ProviderError("Vercel", "quota exceeded")
    store = _FailingStatusStore()
    orchestrator = DeploymentOrchestrator(store, fake_clients)

    with pytest.raises(ProviderError) as exc:
        await orchestrator.run("an-1", "Habit Tracker", analysis, ALL_CREDENTIALS, DeployMode.auto)

    assert str(exc.value) == "quota exceeded"
    assert store.statuses[-1] == "creating_vercel_project"



@pytest.mark.asyncio
async def test_unparseable_buckets_are_skipped(orchestrator, recording_store, events):
    analysis = AnalysisResult(db_schema="CREATE TABLE t();", storage_buckets="avatars and exports")
    result = await orchestrator.run("an-1", "Habit Tracker", analysis, SUPABASE_CREDENTIALS, DeployMode.manual)
    assert result.success
    assert ("supabase", "create_bucket") not in events


@pytest.mark.asyncio
async def test_env_var_failures_do_not_abort(orchestrator, recording_store, fake_vercel, analysis):
    fake_vercel.failing_vars = {"SUPABASE_ANON_KEY"}
    result = await orchestrator.run("an-1", "Habit Tracker", analysis, ALL_CREDENTIALS, DeployMode.auto)
    assert result.success
    assert recording_store.statuses[-1] == "completed"


@pytest.mark.asyncio
async def test_vercel_failure_persists_failed_status_and_keeps_repo_url(
    orchestrator, recording_store, fake_vercel, analysis, events
):
    fake_vercel.create_error = ProviderError("Vercel", "quota exceeded")

    with pytest.raises(ProviderError) as exc:
        await orchestrator.run("an-1", "Habit Tracker", analysis, ALL_CREDENTIALS, DeployMode.auto)

    assert str(exc.value) == "quota exceeded"
    assert recording_store.statuses[-2:] == ["creating_vercel_project", "failed: quota exceeded"]
    assert recording_store.artifacts["github_repo_url"] == "https://github.com/octo/habit-tracker-backend"
    assert recording_store.artifacts["vercel_project_url"] is None
    assert ("supabase", "execute_sql") not in events


@pytest.mark.asyncio
async def test_sql_failure_marks_failed(orchestrator, recording_store, fake_supabase, analysis):
    fake_supabase.sql_error = ProviderError("Supabase", "Supabase SQL execution error: syntax error")

    with pytest.raises(ProviderError):
        await orchestrator.run("an-1", "Habit Tracker", analysis, SUPABASE_CREDENTIALS, DeployMode.manual)

    assert recording_store.statuses == [
        "executing_sql",
        "failed: Supabase SQL execution error: syntax error",
    ]


@pytest.mark.asyncio
async def test_manual_mode_never_touches_github_or_vercel(orchestrator, recording_store, analysis, events):
    result = await orchestrator.run("an-1", "Habit Tracker", analysis, ALL_CREDENTIALS, DeployMode.manual)

    assert not [e for e in events if e[0] in ("github", "vercel")]
    assert recording_store.statuses == ["executing_sql", "manual_setup_complete"]
    assert recording_store.artifacts == {"github_repo_url": None, "vercel_project_url": None}
    assert result.mode is DeployMode.manual


@pytest.mark.asyncio
async def test_manual_end_to_end(orchestrator, recording_store, fake_supabase):
    analysis = AnalysisResult(db_schema="CREATE TABLE t();", rls_policies="", storage_buckets="[]")

    result = await orchestrator.run("an-1", "Anything", analysis, SUPABASE_CREDENTIALS, DeployMode.manual)

    assert recording_store.statuses == ["executing_sql", "manual_setup_complete"]
    assert fake_supabase.sql == ["CREATE TABLE t();"]
    assert fake_supabase.buckets == []
    assert result.to_dict() == {"success": True, "mode": "manual", "message": MANUAL_MESSAGE}


@pytest.mark.asyncio
async def test_missing_credential_writes_no_status(orchestrator, recording_store, analysis, events):
    with pytest.raises(MissingCredential) as exc:
        await orchestrator.run("an-1", "Habit Tracker", analysis, SUPABASE_CREDENTIALS, DeployMode.auto)

    assert "GITHUB_TOKEN" in str(exc.value)
    assert recording_store.statuses == []
    assert events == []


@pytest.mark.asyncio
async def test_manual_mode_requires_supabase_url(orchestrator, recording_store, analysis, events):
    credentials = {"SUPABASE_SERVICE_KEY": "service-key"}
    with pytest.raises(MissingCredential) as exc:
        await orchestrator.run("an-1", "Habit Tracker", analysis, credentials, DeployMode.manual)

    assert exc.value.keys == ["SUPABASE_URL"]
    assert events == []


@pytest.mark.asyncio
async def test_alias_credentials_are_used(orchestrator, fake_supabase, analysis):
    credentials = {
        "SUPABASE_URL": "https://abc123.supabase.co",
        "SUPABASE_SERVICE_ROLE_KEY": "role-key",
        "GITHUB_API_KEY": "gh",
        "VERCEL_API_TOKEN": "vc",
    }
    result = await orchestrator.run("an-1", "Habit Tracker", analysis, credentials, DeployMode.auto)
    assert result.success
    assert fake_supabase.service_keys == ["role-key", "role-key"]


def test_state_labels():
    assert DeploymentState(DeploymentStatus.EXECUTING_SQL).label() == "executing_sql"
    assert DeploymentState.failed("quota exceeded").label() == "failed: quota exceeded"


def test_state_parse():
    assert DeploymentState.parse(None) is None
    assert DeploymentState.parse("") is None
    assert DeploymentState.parse("creating_buckets") == DeploymentState(DeploymentStatus.CREATING_BUCKETS)
    failed = DeploymentState.parse("failed: quota exceeded")
    assert failed.status is DeploymentStatus.FAILED
    assert failed.message == "quota exceeded"
    assert failed.is_terminal
    assert DeploymentState.parse("something_else") is None


def test_terminal_states():
    assert DeploymentState(DeploymentStatus.COMPLETED).is_terminal
    assert DeploymentState(DeploymentStatus.MANUAL_SETUP_COMPLETE).is_terminal
    assert not DeploymentState(DeploymentStatus.PUSHING_CODE).is_terminal
