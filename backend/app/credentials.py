"""Resolve named secrets from a user's decrypted API keys, honoring alias names."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

from app.errors import MissingCredential


@dataclass(frozen=True)
class CredentialName:
    """A logical secret: the preferred key name plus accepted aliases."""
    primary: str
    fallbacks: tuple[str, ...] = ()
    label: str = ""

    @property
    def names(self) -> tuple[str, ...]:
        return (self.primary, *self.fallbacks)


GITHUB_TOKEN = CredentialName("GITHUB_TOKEN", ("GITHUB_API_KEY",), "GitHub token")
VERCEL_TOKEN = CredentialName("VERCEL_TOKEN", ("VERCEL_API_TOKEN",), "Vercel token")
SUPABASE_URL = CredentialName("SUPABASE_URL", (), "Supabase URL")
SUPABASE_SERVICE_KEY = CredentialName(
    "SUPABASE_SERVICE_KEY", ("SUPABASE_SERVICE_ROLE_KEY",), "Supabase service key"
)
SUPABASE_ANON_KEY = CredentialName("SUPABASE_ANON_KEY", (), "Supabase anon key")

PERPLEXITY_API_KEY = CredentialName("PERPLEXITY_API_KEY", (), "Perplexity API key")
OPENAI_API_KEY = CredentialName("OPENAI_API_KEY", (), "OpenAI API key")
GEMINI_API_KEY = CredentialName("GEMINI_API_KEY", (), "Gemini API key")


def build_credential_map(keys: Iterable[tuple[str, str]]) -> dict[str, str]:
    """Build a name -> value map from (key_name, decrypted_value) pairs."""
    return {name: value for name, value in keys}


def resolve(
    credentials: Mapping[str, str],
    primary_name: str,
    fallback_names: Sequence[str] = (),
) -> str | None:
    """Return the first non-empty value among primary_name then fallback_names, in order."""
    for name in (primary_name, *fallback_names):
        value = credentials.get(name)
        if value:
            return value
    return None


def resolve_name(credentials: Mapping[str, str], name: CredentialName) -> str | None:
    return resolve(credentials, name.primary, name.fallbacks)


def require(credentials: Mapping[str, str], name: CredentialName) -> str:
    """Resolve or raise MissingCredential naming every accepted key."""
    value = resolve_name(credentials, name)
    if value is None:
        accepted = " or ".join(name.names)
        raise MissingCredential(
            f"Missing {name.label or name.primary}. Please add {accepted} in Settings.",
            keys=name.names,
        )
    return value
