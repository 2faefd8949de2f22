"""Encryption at rest for stored API keys (Fernet)."""
from __future__ import annotations

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken

from app.config import settings
from app.errors import ConfigError


def _fernet() -> Fernet:
    raw = (settings.credentials_encryption_key or "").strip()
    if not raw:
        raise ConfigError("CREDENTIALS_ENCRYPTION_KEY is not set")
    try:
        return Fernet(raw.encode("utf-8"))
    except ValueError:
        # Not a Fernet key: derive one from the passphrase
        digest = hashlib.sha256(raw.encode("utf-8")).digest()
        return Fernet(base64.urlsafe_b64encode(digest))


def encrypt_secret(value: str) -> str:
    return _fernet().encrypt(value.encode("utf-8")).decode("utf-8")


def decrypt_secret(ciphertext: str) -> str:
    if not ciphertext:
        return ""
    try:
        return _fernet().decrypt(ciphertext.encode("utf-8")).decode("utf-8")
    except InvalidToken as e:
        raise ConfigError("Stored API key could not be decrypted") from e


def mask_secret(value: str) -> str:
    """Show only the last four characters."""
    if not value:
        return ""
    return "***" + value[-4:] if len(value) > 4 else "***"
