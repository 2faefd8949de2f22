"""Shared httpx plumbing for provider adapters."""
from __future__ import annotations

import logging
from typing import Any

import httpx

from app.errors import ProviderError

logger = logging.getLogger(__name__)


def error_detail(resp: httpx.Response) -> str:
    """Best human-readable message from an error response body."""
    try:
        body: Any = resp.json()
    except ValueError:
        return (resp.text or "").strip()[:500] or resp.reason_phrase
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        for key in ("message", "msg", "error"):
            if isinstance(body.get(key), str) and body[key]:
                return body[key]
    return resp.reason_phrase


async def send(
    client: httpx.AsyncClient,
    provider: str,
    method: str,
    url: str,
    error_prefix: str,
    **kwargs: Any,
) -> httpx.Response:
    """
    Issue one request. Transport failures and non-2xx answers become ProviderError
    with message "<error_prefix>: <detail>".
    """
    try:
        resp = await client.request(method, url, **kwargs)
    except httpx.HTTPError as e:
        logger.error("%s %s %s failed: %s", provider, method, url, e)
        raise ProviderError(provider, f"{error_prefix}: {e}") from e
    if resp.is_error:
        detail = error_detail(resp)
        logger.error("%s %s %s -> %s: %s", provider, method, url, resp.status_code, detail)
        raise ProviderError(provider, f"{error_prefix}: {detail}", status_code=resp.status_code)
    return resp
