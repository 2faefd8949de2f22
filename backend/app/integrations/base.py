"""Provisioning provider interfaces. Every call takes its credentials explicitly."""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Mapping, Sequence

from app.blueprint import RepoFile

ALL_TARGETS = ("production", "preview", "development")


@dataclass(frozen=True)
class GitHubRepo:
    html_url: str
    full_name: str  # owner/repo


@dataclass(frozen=True)
class VercelProject:
    id: str
    name: str
    url: str


class GitHubClient(ABC):
    @abstractmethod
    async def get_username(self, token: str) -> str:
        ...

    @abstractmethod
    async def create_repo(self, token: str, name: str, description: str = "", private: bool = True) -> GitHubRepo:
        ...

    @abstractmethod
    async def push_files(
        self,
        token: str,
        owner: str,
        repo: str,
        files: Sequence[RepoFile],
        branch: str = "main",
        message: str = "Add serverless functions",
    ) -> str:
        """Commit all files as one tree on top of branch. Returns the new commit sha."""
        ...


class VercelClient(ABC):
    @abstractmethod
    async def create_project(self, token: str, name: str, repo_full_name: str) -> VercelProject:
        ...

    @abstractmethod
    async def set_env_vars(
        self,
        token: str,
        project_id: str,
        env_vars: Mapping[str, str],
        targets: Sequence[str] = ALL_TARGETS,
    ) -> list[str]:
        """Create each variable independently. Returns the keys that failed."""
        ...


class SupabaseClient(ABC):
    @abstractmethod
    async def execute_sql(self, supabase_url: str, service_key: str, sql: str) -> None:
        ...

    @abstractmethod
    async def create_bucket(self, supabase_url: str, service_key: str, name: str, public: bool = False) -> None:
        ...


@dataclass(frozen=True)
class ProviderClients:
    github: GitHubClient
    vercel: VercelClient
    supabase: SupabaseClient
