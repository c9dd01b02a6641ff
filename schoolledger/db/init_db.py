"""
Create any missing tables from the ORM metadata.

Run once against a fresh database:
  DATABASE_URL=postgresql+asyncpg://... python -m schoolledger.db.init_db
"""
import asyncio
import logging
from typing import List

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncEngine

# Import all models so every table is registered on Base.metadata
from schoolledger.auth.models import User  # noqa: F401
from schoolledger.core import models  # noqa: F401
from schoolledger.db.session import Base, engine

logger = logging.getLogger(__name__)


async def ensure_tables(db_engine: AsyncEngine) -> List[str]:
    """Create tables that do not exist yet. Returns the names that were created."""
    async with db_engine.begin() as conn:
        existing = set(await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names()))
        missing = [t.name for t in Base.metadata.sorted_tables if t.name not in existing]
        await conn.run_sync(Base.metadata.create_all)

    if missing:
        logger.info("Created missing tables: %s", ", ".join(missing))
    else:
        logger.info("All tables already exist in the database.")
    return missing


async def main() -> None:
    await ensure_tables(engine)


if __name__ == "__main__":
    from schoolledger.core.config import settings
    from schoolledger.core.logging_config import configure_logging

    configure_logging(settings.log_level)
    asyncio.run(main())
