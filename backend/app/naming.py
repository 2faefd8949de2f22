"""Project name normalization for GitHub repos, Vercel projects and file names.

Rules (in order): lowercase, trim, whitespace runs become a hyphen, drop anything
outside [a-z0-9-_], collapse hyphen runs, strip edge hyphens, cut to 100 chars
(the Vercel limit).
"""
import re

MAX_NAME_LENGTH = 100

_WHITESPACE = re.compile(r"\s+")
_DISALLOWED = re.compile(r"[^a-z0-9\-_]")
_HYPHEN_RUN = re.compile(r"-{2,}")
_EDGE_HYPHENS = re.compile(r"^-+|-+$")


def _slugify(value: str) -> str:
    value = _DISALLOWED.sub("", value)
    value = _HYPHEN_RUN.sub("-", value)
    value = _EDGE_HYPHENS.sub("", value)
    # Cutting can expose a trailing hyphen again
    return value[:MAX_NAME_LENGTH].rstrip("-")


def normalize_project_name(name: str) -> str:
    """Turn a human project name into a slug GitHub and Vercel both accept."""
    return _slugify(_WHITESPACE.sub("-", name.lower().strip()))


def normalize_file_name(name: str, extension: str | None = None) -> str:
    """Like normalize_project_name, but dots become hyphens too."""
    value = _WHITESPACE.sub("-", name.lower().strip()).replace(".", "-")
    normalized = _slugify(value)
    return f"{normalized}.{extension}" if extension else normalized


def is_valid_project_name(name: str) -> bool:
    return 0 < len(name) <= MAX_NAME_LENGTH and normalize_project_name(name) == name
