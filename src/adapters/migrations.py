"""SQL migration runner shared by the PostgreSQL adapters."""

import logging
from pathlib import Path

from psycopg_pool import AsyncConnectionPool

logger = logging.getLogger(__name__)

# Structure: src/adapters/migrations.py -> migrations/
MIGRATIONS_ROOT = Path(__file__).parent.parent.parent / "migrations"


async def run_migrations(pool: AsyncConnectionPool, name: str) -> None:
    """
    Execute all SQL migration files from migrations/<name>.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 AsyncConnectionPool of the target store
        name: Migration subdirectory ("identity" or "documents")
    """
    migrations_dir = MIGRATIONS_ROOT / name

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} {name} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {name}/{sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            async with pool.connection() as conn:
                await conn.execute(sql_content)
                await conn.commit()

            logger.info(f"Migration complete: {name}/{sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {name}/{sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {name}/{sql_file.name}") from e
