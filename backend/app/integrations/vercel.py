"""Vercel REST adapter: project creation and environment variables."""
from __future__ import annotations

import logging
from typing import Mapping, Sequence

import httpx

from app.config import settings
from app.integrations.base import ALL_TARGETS, VercelClient, VercelProject
from app.integrations.http import send

logger = logging.getLogger(__name__)

PROVIDER = "Vercel"


class HttpVercelClient(VercelClient):
    def __init__(
        self,
        base_url: str | None = None,
        timeout: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or settings.vercel_api_url).rstrip("/")
        self._timeout = timeout or settings.provider_timeout
        self._transport = transport

    def _client(self, token: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
            headers={"Authorization": f"Bearer {token}"},
        )

    async def create_project(self, token: str, name: str, repo_full_name: str) -> VercelProject:
        payload = {
            "name": name,
            "framework": None,  # plain serverless functions
            "gitRepository": {"type": "github", "repo": repo_full_name},
        }
        async with self._client(token) as client:
            resp = await send(client, PROVIDER, "POST", "/v9/projects", "Vercel API error", json=payload)
        data = resp.json()
        logger.info("Created Vercel project %s linked to %s", data.get("name"), repo_full_name)
        return VercelProject(id=data["id"], name=data["name"], url=f"https://{data['name']}.vercel.app")

    async def set_env_vars(
        self,
        token: str,
        project_id: str,
        env_vars: Mapping[str, str],
        targets: Sequence[str] = ALL_TARGETS,
    ) -> list[str]:
        failed: list[str] = []
        async with self._client(token) as client:
            for key, value in env_vars.items():
                try:
                    await send(
                        client,
                        PROVIDER,
                        "POST",
                        f"/v10/projects/{project_id}/env",
                        f"Failed to set env var {key}",
                        json={"key": key, "value": value, "type": "encrypted", "target": list(targets)},
                    )
                except Exception as e:
                    logger.warning("Env var %s not set, continuing with remaining variables: %s", key, e)
                    failed.append(key)
        return failed
