import logging
from typing import Iterable, Optional

from psycopg_pool import ConnectionPool

from .config import settings

logger = logging.getLogger(__name__)

# created on first open_pool(); stays None when no DATABASE_URL is configured
pool: Optional[ConnectionPool] = None


SCHEMA_STATEMENTS: Iterable[str] = (
    """
    CREATE TABLE IF NOT EXISTS hse.indicator_datasets (
        project_id TEXT NOT NULL,
        month_id TEXT NOT NULL,
        table1 JSONB NOT NULL DEFAULT '{}'::jsonb,
        table2 JSONB NOT NULL DEFAULT '{}'::jsonb,
        last_updated TIMESTAMPTZ,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        PRIMARY KEY (project_id, month_id)
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_indicator_datasets_project_id ON hse.indicator_datasets(project_id)
    """,
)


def database_configured() -> bool:
    return bool(settings.database_url)


def open_pool() -> None:
    global pool
    if not database_configured():
        return
    if pool is None:
        pool = ConnectionPool(conninfo=settings.database_url, max_size=10, open=False)
    if pool.closed:
        pool.open(wait=True, timeout=10)


def close_pool() -> None:
    global pool
    if pool is not None:
        if not pool.closed:
            pool.close()
        # a closed pool cannot be reopened
        pool = None


def get_pool() -> ConnectionPool:
    if pool is None or pool.closed:
        raise RuntimeError("Database pool is not open")
    return pool


def initialize_database() -> None:
    try:
        ensure_schema()
    except Exception:  # pragma: no cover - surfaced to the lifespan fallback
        logger.exception("Database initialization failed")
        raise


def ensure_schema() -> None:
    with get_pool().connection() as conn:
        with conn.cursor() as cur:
            cur.execute("CREATE SCHEMA IF NOT EXISTS hse")
            for statement in SCHEMA_STATEMENTS:
                cur.execute(statement)
        conn.commit()
