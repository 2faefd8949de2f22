"""Shared fixtures: in-memory database, encryption key and in-test provider fakes."""
from typing import Mapping, Sequence

import pytest
from cryptography.fernet import Fernet
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from app.config import settings
from app.db.models import Base
from app.errors import ProviderError
from app.integrations.base import (
    ALL_TARGETS,
    GitHubClient,
    GitHubRepo,
    ProviderClients,
    SupabaseClient,
    VercelClient,
    VercelProject,
)
from app.llm.base import LLMProvider, LLMResponse

MASTER_BLUEPRINT = """Intro text from the model.

## SECTION 1: OVERVIEW
A habit tracker backend.

## SECTION 2: DATABASE SCHEMA
CREATE TABLE habits (id uuid primary key);

## SECTION 3: RLS POLICIES
ALTER TABLE habits ENABLE ROW LEVEL SECURITY;

## SECTION 4: STORAGE BUCKETS
[{"name": "avatars", "public": true}, {"name": "exports"}]

## SECTION 5: SERVERLESS FUNCTIONS
```javascript
// api/habits.js
export default function handler(req, res) { res.json([]); }
```

## SECTION 6: PROMPT LIBRARY
Build the habits screen.
"""


@pytest.fixture
async def db_session():
    """Create an in-memory SQLite database session for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session_maker() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def encryption_key(monkeypatch):
    key = Fernet.generate_key().decode("utf-8")
    monkeypatch.setattr(settings, "credentials_encryption_key", key)
    return key


class FakeLLM(LLMProvider):
    """Returns a canned answer and records every prompt it receives."""

    def __init__(self, name: str, answer: str = "", error: Exception | None = None, calls: list | None = None):
        self.name = name
        self.answer = answer
        self.error = error
        self.calls = calls if calls is not None else []

    @property
    def is_configured(self) -> bool:
        return True

    async def complete(self, prompt: str, timeout: int, system: str | None = None) -> LLMResponse:
        self.calls.append((self.name, prompt, system))
        if self.error:
            raise self.error
        return LLMResponse(content=self.answer, tokens_used=10)


class RecordingStore:
    """DeploymentStore that keeps every status write and the current artifacts."""

    def __init__(self, events: list | None = None):
        self.events = events if events is not None else []
        self.statuses: list[str] = []
        self.artifacts: dict[str, str | None] = {"github_repo_url": None, "vercel_project_url": None}

    async def update_deployment_status(self, analysis_id: str, status: str) -> bool:
        self.statuses.append(status)
        self.events.append(("status", status))
        return True

    async def update_artifacts(self, analysis_id, github_repo_url=None, vercel_project_url=None) -> bool:
        if github_repo_url is not None:
            self.artifacts["github_repo_url"] = github_repo_url
            self.events.append(("artifact", "github_repo_url"))
        if vercel_project_url is not None:
            self.artifacts["vercel_project_url"] = vercel_project_url
            self.events.append(("artifact", "vercel_project_url"))
        return True


class FakeGitHub(GitHubClient):
    def __init__(self, events: list):
        self.events = events
        self.pushed: list = []

    async def get_username(self, token: str) -> str:
        self.events.append(("github", "get_username"))
        return "octo"

    async def create_repo(self, token: str, name: str, description: str = "", private: bool = True) -> GitHubRepo:
        self.events.append(("github", "create_repo"))
        return GitHubRepo(html_url=f"https://github.com/octo/{name}", full_name=f"octo/{name}")

    async def push_files(self, token, owner, repo, files, branch="main", message="Add serverless functions") -> str:
        self.events.append(("github", "push_files"))
        self.pushed.extend(files)
        return "commit-sha"


class FakeVercel(VercelClient):
    def __init__(self, events: list, create_error: Exception | None = None, failing_vars: Sequence[str] = ()):
        self.events = events
        self.create_error = create_error
        self.failing_vars = set(failing_vars)
        self.env_vars: dict[str, str] = {}

    async def create_project(self, token: str, name: str, repo_full_name: str) -> VercelProject:
        self.events.append(("vercel", "create_project"))
        if self.create_error:
            raise self.create_error
        return VercelProject(id="prj_1", name=name, url=f"https://{name}.vercel.app")

    async def set_env_vars(
        self,
        token: str,
        project_id: str,
        env_vars: Mapping[str, str],
        targets: Sequence[str] = ALL_TARGETS,
    ) -> list[str]:
        self.events.append(("vercel", "set_env_vars"))
        self.env_vars.update(env_vars)
        return [k for k in env_vars if k in self.failing_vars]


class FakeSupabase(SupabaseClient):
    def __init__(self, events: list, failing_buckets: Sequence[str] = (), sql_error: Exception | None = None):
        self.events = events
        self.failing_buckets = set(failing_buckets)
        self.bucket_error: Exception | None = None
        self.sql_error = sql_error
        self.sql: list[str] = []
        self.buckets: list[tuple[str, bool]] = []
        self.service_keys: list[str] = []

    async def execute_sql(self, supabase_url: str, service_key: str, sql: str) -> None:
        self.events.append(("supabase", "execute_sql"))
        self.service_keys.append(service_key)
        if self.sql_error:
            raise self.sql_error
        self.sql.append(sql)

    async def create_bucket(self, supabase_url: str, service_key: str, name: str, public: bool = False) -> None:
        self.events.append(("supabase", "create_bucket"))
        if name in self.failing_buckets:
            if self.bucket_error:
                raise self.bucket_error
            raise ProviderError("Supabase", f"Supabase bucket creation error: {name} rejected", status_code=400)
        self.buckets.append((name, public))


@pytest.fixture
def events() -> list:
    return []


@pytest.fixture
def fake_github(events):
    return FakeGitHub(events)


@pytest.fixture
def fake_vercel(events):
    return FakeVercel(events)


@pytest.fixture
def fake_supabase(events):
    return FakeSupabase(events)


@pytest.fixture
def fake_clients(fake_github, fake_vercel, fake_supabase) -> ProviderClients:
    return ProviderClients(github=fake_github, vercel=fake_vercel, supabase=fake_supabase)


@pytest.fixture
def recording_store(events) -> RecordingStore:
    return RecordingStore(events)


@pytest.fixture
def master_blueprint() -> str:
    return MASTER_BLUEPRINT


@pytest.fixture
def make_llm():
    """Factory for FakeLLM stages sharing one call log."""
    calls: list = []

    def _make(name: str, answer: str = "", error: Exception | None = None) -> FakeLLM:
        return FakeLLM(name, answer=answer, error=error, calls=calls)

    _make.calls = calls
    return _make
