"""Alembic environment for the AppForge schema."""
import os
import sys
from logging.config import fileConfig
from pathlib import Path

from sqlalchemy import create_engine, pool

from alembic import context

backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from app.config import settings  # noqa: E402
from app.db.models import Base  # noqa: E402

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

SYNC_DRIVER_PREFIXES = (
    ("postgresql+asyncpg://", "postgresql+psycopg2://"),
    ("postgres://", "postgresql+psycopg2://"),
    ("mysql+aiomysql://", "mysql+pymysql://"),
    ("mysql://", "mysql+pymysql://"),
)


def get_url() -> str:
    """Sync database URL. ALEMBIC_DATABASE_URL wins over DATABASE_URL (e.g. when migrating from the host)."""
    database_url = os.environ.get("ALEMBIC_DATABASE_URL") or settings.database_url
    if not database_url:
        db_path = settings.db_path
        if not os.path.isabs(db_path):
            db_path = os.path.join(backend_dir, db_path)
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        return f"sqlite:///{db_path}"

    for prefix, replacement in SYNC_DRIVER_PREFIXES:
        if database_url.startswith(prefix):
            return database_url.replace(prefix, replacement, 1)
    return database_url


def run_migrations_offline() -> None:
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    # Alembic runs on a sync engine; async URLs are rewritten in get_url
    connectable = create_engine(get_url(), poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
