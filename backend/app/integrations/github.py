"""GitHub REST adapter: repository creation and single-commit file pushes."""
from __future__ import annotations

import logging
from typing import Sequence

import httpx

from app.blueprint import RepoFile
from app.config import settings
from app.integrations.base import GitHubClient, GitHubRepo
from app.integrations.http import send

logger = logging.getLogger(__name__)

PROVIDER = "GitHub"
ERROR_PREFIX = "GitHub API error"


class HttpGitHubClient(GitHubClient):
    def __init__(
        self,
        base_url: str | None = None,
        timeout: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or settings.github_api_url).rstrip("/")
        self._timeout = timeout or settings.provider_timeout
        self._transport = transport

    def _client(self, token: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
            headers={
                "Authorization": f"token {token}",
                "Accept": "application/vnd.github.v3+json",
            },
        )

    async def get_username(self, token: str) -> str:
        async with self._client(token) as client:
            resp = await send(client, PROVIDER, "GET", "/user", "Failed to get GitHub user information")
        return resp.json()["login"]

    async def create_repo(self, token: str, name: str, description: str = "", private: bool = True) -> GitHubRepo:
        payload = {
            "name": name,
            "description": description or f"Backend for {name}",
            "private": private,
            "auto_init": True,  # README commit gives push_files a base tree
        }
        async with self._client(token) as client:
            resp = await send(client, PROVIDER, "POST", "/user/repos", ERROR_PREFIX, json=payload)
        data = resp.json()
        logger.info("Created GitHub repository %s", data.get("full_name"))
        return GitHubRepo(html_url=data["html_url"], full_name=data["full_name"])

    async def push_files(
        self,
        token: str,
        owner: str,
        repo: str,
        files: Sequence[RepoFile],
        branch: str = "main",
        message: str = "Add serverless functions",
    ) -> str:
        prefix = f"/repos/{owner}/{repo}"
        async with self._client(token) as client:
            resp = await send(
                client, PROVIDER, "GET", f"{prefix}/branches/{branch}", "Failed to get branch information"
            )
            head_sha = resp.json()["commit"]["sha"]

            resp = await send(client, PROVIDER, "GET", f"{prefix}/git/commits/{head_sha}", ERROR_PREFIX)
            base_tree_sha = resp.json()["tree"]["sha"]

            tree = []
            for f in files:
                resp = await send(
                    client,
                    PROVIDER,
                    "POST",
                    f"{prefix}/git/blobs",
                    ERROR_PREFIX,
                    json={"content": f.content, "encoding": "utf-8"},
                )
                tree.append({"path": f.path, "mode": "100644", "type": "blob", "sha": resp.json()["sha"]})

            resp = await send(
                client,
                PROVIDER,
                "POST",
                f"{prefix}/git/trees",
                ERROR_PREFIX,
                json={"base_tree": base_tree_sha, "tree": tree},
            )
            tree_sha = resp.json()["sha"]

            resp = await send(
                client,
                PROVIDER,
                "POST",
                f"{prefix}/git/commits",
                ERROR_PREFIX,
                json={"message": message, "tree": tree_sha, "parents": [head_sha]},
            )
            commit_sha = resp.json()["sha"]

            await send(
                client,
                PROVIDER,
                "PATCH",
                f"{prefix}/git/refs/heads/{branch}",
                ERROR_PREFIX,
                json={"sha": commit_sha},
            )
        logger.info("Pushed %d files to %s/%s@%s", len(files), owner, repo, branch)
        return commit_sha
