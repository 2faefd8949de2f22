"""Error types surfaced by the analysis pipeline and deployment orchestrator."""
from __future__ import annotations

from typing import Sequence


class AppForgeError(Exception):
    """Base class for application errors. str(err) is shown to the user as-is."""


class MissingCredential(AppForgeError):
    """A required API key is not stored for the user. Raised before any side effect."""

    def __init__(self, message: str, keys: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.keys = list(keys)


class ProviderError(AppForgeError):
    """A remote provider call did not succeed."""

    def __init__(self, provider: str, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class NotFoundError(AppForgeError):
    pass


class DuplicateKeyError(AppForgeError):
    pass


class DeploymentInProgress(AppForgeError):
    pass


class ConfigError(AppForgeError):
    pass
