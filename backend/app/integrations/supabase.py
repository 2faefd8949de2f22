"""Supabase adapter: SQL execution over PostgREST and storage bucket creation."""
from __future__ import annotations

import logging
import re

import httpx

from app.config import settings
from app.errors import ProviderError
from app.integrations.base import SupabaseClient
from app.integrations.http import send

logger = logging.getLogger(__name__)

PROVIDER = "Supabase"
PROJECT_URL_PATTERN = re.compile(r"https://([^.]+)\.supabase\.co")


def project_ref(supabase_url: str) -> str:
    """abc123 for https://abc123.supabase.co."""
    match = PROJECT_URL_PATTERN.match(supabase_url or "")
    if not match:
        raise ProviderError(PROVIDER, "Invalid Supabase URL format")
    return match.group(1)


class HttpSupabaseClient(SupabaseClient):
    def __init__(self, timeout: int | None = None, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._timeout = timeout or settings.provider_timeout
        self._transport = transport

    def _client(self, supabase_url: str, service_key: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=supabase_url.rstrip("/"),
            timeout=self._timeout,
            transport=self._transport,
            headers={"apikey": service_key, "Authorization": f"Bearer {service_key}"},
        )

    async def execute_sql(self, supabase_url: str, service_key: str, sql: str) -> None:
        ref = project_ref(supabase_url)
        async with self._client(supabase_url, service_key) as client:
            try:
                resp = await client.post(
                    "/rest/v1/rpc/exec_sql",
                    json={"query": sql},
                    headers={"Prefer": "return=representation"},
                )
            except httpx.HTTPError as e:
                raise ProviderError(PROVIDER, f"Supabase SQL execution error: {e}") from e
        if resp.is_error:
            logger.error("Supabase SQL on %s failed with %s", ref, resp.status_code)
            raise ProviderError(
                PROVIDER, f"Supabase SQL execution error: {resp.text}", status_code=resp.status_code
            )
        logger.info("Executed %d chars of SQL on Supabase project %s", len(sql), ref)

    async def create_bucket(self, supabase_url: str, service_key: str, name: str, public: bool = False) -> None:
        payload = {
            "id": name,
            "name": name,
            "public": public,
            "file_size_limit": settings.supabase_bucket_size_limit,
            "allowed_mime_types": None,
        }
        async with self._client(supabase_url, service_key) as client:
            try:
                await send(
                    client, PROVIDER, "POST", "/storage/v1/bucket", "Supabase bucket creation error", json=payload
                )
            except ProviderError as e:
                if e.status_code is not None and _already_exists(e):
                    logger.info("Supabase bucket %s already exists", name)
                    return
                raise
        logger.info("Created Supabase bucket %s (public=%s)", name, public)


def _already_exists(err: ProviderError) -> bool:
    return "already exists" in str(err).lower()
