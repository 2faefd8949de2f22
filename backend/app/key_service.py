"""Stored API keys: CRUD with encryption, and CredentialSet construction."""
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.credentials import build_credential_map
from app.db.repository import ApiKeyRepository
from app.encryption import decrypt_secret, encrypt_secret, mask_secret
from app.errors import DuplicateKeyError

logger = logging.getLogger(__name__)


async def list_api_keys(session: AsyncSession, user_id: str) -> list[dict[str, Any]]:
    """List keys with masked values."""
    keys = await ApiKeyRepository(session).list_keys(user_id)
    return [
        {
            "id": k["id"],
            "key_name": k["key_name"],
            "masked_value": mask_secret(decrypt_secret(k["key_value"])),
            "created_at": k["created_at"],
            "updated_at": k["updated_at"],
        }
        for k in keys
    ]


async def create_api_key(session: AsyncSession, user_id: str, key_name: str, key_value: str) -> str:
    repo = ApiKeyRepository(session)
    key_name = key_name.strip()
    if await repo.get_by_name(user_id, key_name):
        raise DuplicateKeyError("API key with this name already exists")
    key_id = await repo.create_key(user_id, key_name, encrypt_secret(key_value))
    logger.info("Stored API key %s for user %s", key_name, user_id)
    return key_id


async def update_api_key(session: AsyncSession, user_id: str, key_id: str, key_value: str) -> bool:
    return await ApiKeyRepository(session).update_key(key_id, user_id, encrypt_secret(key_value))


async def delete_api_key(session: AsyncSession, user_id: str, key_id: str) -> bool:
    return await ApiKeyRepository(session).delete_key(key_id, user_id)


async def load_credentials(session: AsyncSession, user_id: str) -> dict[str, str]:
    """Decrypted name -> value map for one operation. Built fresh each time, never cached."""
    keys = await ApiKeyRepository(session).list_keys(user_id)
    return build_credential_map((k["key_name"], decrypt_secret(k["key_value"])) for k in keys)
