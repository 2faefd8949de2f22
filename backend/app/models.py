"""Pydantic models for API requests and responses."""
from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from app.deployment import DeployMode


class ProjectStatus(str, Enum):
    analyzing = "analyzing"
    awaiting_design = "awaiting_design"
    awaiting_assembly = "awaiting_assembly"
    awaiting_backend = "awaiting_backend"
    completed = "completed"


class HealthResponse(BaseModel):
    status: str = "ok"
    database: bool = False
    encryption_configured: bool = False
    lock_backend: str = "memory"  # "memory" | "redis"


# --- API keys ---


class ApiKeyCreate(BaseModel):
    key_name: str = Field(..., min_length=1, max_length=100)
    key_value: str = Field(..., min_length=1)


class ApiKeyUpdate(BaseModel):
    key_value: str = Field(..., min_length=1)


class ApiKeyItem(BaseModel):
    id: str
    key_name: str
    masked_value: str = ""  # "***" + last 4 characters
    created_at: str | None = None
    updated_at: str | None = None


# --- Projects ---


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    app_store_link: str | None = None
    feature_description: str | None = None


class ProjectUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    app_store_link: str | None = None
    feature_description: str | None = None
    status: ProjectStatus | None = None


class ProjectItem(BaseModel):
    id: str
    name: str
    app_store_link: str | None = None
    feature_description: str | None = None
    status: ProjectStatus = ProjectStatus.analyzing
    created_at: str | None = None
    updated_at: str | None = None


class ScreenshotCreate(BaseModel):
    file_url: str = Field(..., min_length=1)
    file_key: str = Field(..., min_length=1)


class StepUpdate(BaseModel):
    completed: bool
    data: str | None = None


class ProjectDetail(BaseModel):
    project: ProjectItem
    screenshots: list[dict[str, Any]] = Field(default_factory=list)
    analysis: dict[str, Any] | None = None
    steps: list[dict[str, Any]] = Field(default_factory=list)


# --- Analysis / deployment ---


class AnalysisRunResponse(BaseModel):
    success: bool = True
    analysis_id: str
    missing_sections: list[str] = Field(default_factory=list)


class DeployRequest(BaseModel):
    mode: DeployMode = DeployMode.auto


class DeployResponse(BaseModel):
    success: bool
    mode: DeployMode
    message: str | None = None
    github_repo_url: str | None = None
    vercel_project_url: str | None = None


class DeploymentStatusResponse(BaseModel):
    analysis_id: str
    status: str | None = None  # checkpoint label, "failed", or None before the first run
    failure_message: str | None = None
    is_terminal: bool = False
    github_repo_url: str | None = None
    vercel_project_url: str | None = None
