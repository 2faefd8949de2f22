"""SQLAlchemy models for projects, stored API keys and analysis results."""
from __future__ import annotations

from typing import Any

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""


class ApiKey(Base):
    """A user's provider secret, encrypted at rest."""

    __tablename__ = "api_keys"
    __table_args__ = (UniqueConstraint("user_id", "key_name", name="uq_api_keys_user_key_name"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)  # UUID as string
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    key_name: Mapped[str] = mapped_column(String(100), nullable=False)  # e.g. GITHUB_TOKEN
    key_value: Mapped[str] = mapped_column(Text, nullable=False)  # Fernet token
    created_at: Mapped[str] = mapped_column(String(30), nullable=False)  # ISO format timestamp
    updated_at: Mapped[str] = mapped_column(String(30), nullable=False)


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    app_store_link: Mapped[str | None] = mapped_column(Text, nullable=True)
    feature_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # analyzing | awaiting_design | awaiting_assembly | awaiting_backend | completed
    status: Mapped[str] = mapped_column(String(30), nullable=False, server_default="analyzing")
    created_at: Mapped[str] = mapped_column(String(30), nullable=False)
    updated_at: Mapped[str] = mapped_column(String(30), nullable=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "app_store_link": self.app_store_link,
            "feature_description": self.feature_description,
            "status": self.status,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


class ProjectScreenshot(Base):
    __tablename__ = "project_screenshots"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    project_id: Mapped[str] = mapped_column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    file_url: Mapped[str] = mapped_column(Text, nullable=False)
    file_key: Mapped[str] = mapped_column(Text, nullable=False)
    uploaded_at: Mapped[str] = mapped_column(String(30), nullable=False)


class ProjectAnalysis(Base):
    """Output of one analysis run plus the deployment progress driven from it."""

    __tablename__ = "project_analyses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    project_id: Mapped[str] = mapped_column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    perplexity_output: Mapped[str | None] = mapped_column(Text, nullable=True)
    openai_output: Mapped[str | None] = mapped_column(Text, nullable=True)
    gemini_master_prompt: Mapped[str | None] = mapped_column(Text, nullable=True)
    db_schema: Mapped[str | None] = mapped_column(Text, nullable=True)
    rls_policies: Mapped[str | None] = mapped_column(Text, nullable=True)
    storage_buckets: Mapped[str | None] = mapped_column(Text, nullable=True)  # JSON array of {name, public}
    api_logic: Mapped[str | None] = mapped_column(Text, nullable=True)
    serverless_functions: Mapped[str | None] = mapped_column(Text, nullable=True)
    prompt_library: Mapped[str | None] = mapped_column(Text, nullable=True)
    tech_recommendations: Mapped[str | None] = mapped_column(Text, nullable=True)
    github_repo_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    vercel_project_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    deployment_status: Mapped[str | None] = mapped_column(Text, nullable=True)  # checkpoint or "failed: <message>"
    created_at: Mapped[str] = mapped_column(String(30), nullable=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "perplexity_output": self.perplexity_output,
            "openai_output": self.openai_output,
            "gemini_master_prompt": self.gemini_master_prompt,
            "db_schema": self.db_schema,
            "rls_policies": self.rls_policies,
            "storage_buckets": self.storage_buckets,
            "api_logic": self.api_logic,
            "serverless_functions": self.serverless_functions,
            "prompt_library": self.prompt_library,
            "tech_recommendations": self.tech_recommendations,
            "github_repo_url": self.github_repo_url,
            "vercel_project_url": self.vercel_project_url,
            "deployment_status": self.deployment_status,
            "created_at": self.created_at,
        }


class ProjectStep(Base):
    """One step of the six-step project workflow."""

    __tablename__ = "project_steps"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    project_id: Mapped[str] = mapped_column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    step_number: Mapped[int] = mapped_column(Integer, nullable=False)
    step_name: Mapped[str] = mapped_column(String(100), nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    data: Mapped[str | None] = mapped_column(Text, nullable=True)  # free-form JSON string
    completed_at: Mapped[str | None] = mapped_column(String(30), nullable=True)
    created_at: Mapped[str] = mapped_column(String(30), nullable=False)
