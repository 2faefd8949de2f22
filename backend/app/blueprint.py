"""Extract structured parts from the freeform Master Blueprint text.

Everything here is best-effort: a missing or malformed part resolves to an empty
value and a log line, never an exception.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

SECTION_LABELS: dict[int, str] = {
    1: "OVERVIEW",
    2: "DATABASE SCHEMA",
    3: "RLS POLICIES",
    4: "STORAGE BUCKETS",
    5: "SERVERLESS FUNCTIONS",
    6: "PROMPT LIBRARY",
}

# ```js / ```javascript / ``` block whose first line is "// api/<file>"
FUNCTION_BLOCK_PATTERN = re.compile(r"```(?:javascript|js)?\n// (api/[^\n]+)\n(.*?)```", re.DOTALL)
FENCED_BLOCK_PATTERN = re.compile(r"```(?:json)?\s*\n?(.*?)```", re.DOTALL)


@dataclass(frozen=True)
class BlueprintSections:
    overview: str = ""
    database_schema: str = ""
    rls_policies: str = ""
    storage_buckets: str = ""
    serverless_functions: str = ""
    prompt_library: str = ""


@dataclass(frozen=True)
class RepoFile:
    path: str
    content: str


@dataclass(frozen=True)
class BucketSpec:
    name: str
    public: bool = False


def extract_section(text: str, number: int, label: str) -> str:
    """Body of "## SECTION <number>: <label>" up to the next section marker, trimmed."""
    pattern = rf"## SECTION {number}: {re.escape(label)}(.*?)(?=## SECTION |$)"
    match = re.search(pattern, text or "", re.DOTALL)
    if not match:
        logger.warning("Blueprint section %s (%s) not found", number, label)
        return ""
    return match.group(1).strip()


def parse_blueprint(text: str) -> BlueprintSections:
    sections = {n: extract_section(text, n, label) for n, label in SECTION_LABELS.items()}
    return BlueprintSections(
        overview=sections[1],
        database_schema=sections[2],
        rls_policies=sections[3],
        storage_buckets=sections[4],
        serverless_functions=sections[5],
        prompt_library=sections[6],
    )


def extract_function_files(text: str) -> list[RepoFile]:
    """Serverless function files annotated with a "// api/<name>" header line."""
    return [
        RepoFile(path=m.group(1).strip(), content=m.group(2).strip())
        for m in FUNCTION_BLOCK_PATTERN.finditer(text or "")
    ]


def _unwrap_fence(raw: str) -> str:
    raw = raw.strip()
    match = FENCED_BLOCK_PATTERN.search(raw)
    return match.group(1).strip() if match else raw


def parse_bucket_specs(text: str) -> list[BucketSpec] | None:
    """
    Parse the storage-buckets section as a JSON array of {name, public?}.
    Returns [] for empty input and None when the text is not a JSON array.
    """
    if not (text or "").strip():
        return []
    try:
        data: Any = json.loads(_unwrap_fence(text))
    except json.JSONDecodeError as e:
        logger.warning("Storage buckets are not valid JSON, skipping: %s", e)
        return None
    if not isinstance(data, list):
        logger.warning("Storage buckets JSON is %s, expected an array; skipping", type(data).__name__)
        return None
    specs: list[BucketSpec] = []
    for entry in data:
        name = entry.get("name") if isinstance(entry, dict) else None
        if not isinstance(name, str) or not name.strip():
            logger.warning("Skipping storage bucket entry without a name: %r", entry)
            continue
        specs.append(BucketSpec(name=name.strip(), public=bool(entry.get("public", False))))
    return specs
