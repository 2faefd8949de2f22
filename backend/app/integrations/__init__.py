"""Provisioning adapters for GitHub, Vercel and Supabase."""
from app.integrations.base import (
    GitHubClient,
    GitHubRepo,
    ProviderClients,
    SupabaseClient,
    VercelClient,
    VercelProject,
)
from app.integrations.github import HttpGitHubClient
from app.integrations.supabase import HttpSupabaseClient
from app.integrations.vercel import HttpVercelClient


def default_provider_clients() -> ProviderClients:
    return ProviderClients(
        github=HttpGitHubClient(),
        vercel=HttpVercelClient(),
        supabase=HttpSupabaseClient(),
    )


__all__ = [
    "GitHubClient",
    "GitHubRepo",
    "ProviderClients",
    "SupabaseClient",
    "VercelClient",
    "VercelProject",
    "default_provider_clients",
]
