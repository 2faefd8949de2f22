"""Database layer with SQLAlchemy and Alembic support."""
from app.db.factory import close_database, get_db_engine, get_session, get_session_maker, init_database
from app.db.repository import AnalysisRepository, ApiKeyRepository, ProjectRepository

__all__ = [
    "get_db_engine",
    "get_session",
    "get_session_maker",
    "init_database",
    "close_database",
    "AnalysisRepository",
    "ApiKeyRepository",
    "ProjectRepository",
]
