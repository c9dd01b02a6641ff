from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from schoolledger.core.config import settings


def _engine_options(url: str) -> Dict[str, Any]:
    if url.startswith("sqlite"):
        # Local runs and tests; SQLite connections are not pooled across threads
        return {"connect_args": {"check_same_thread": False}}
    # pool_pre_ping: check connection is alive before use (avoids "connection is closed" errors
    # when DB or network closed idle connections).
    # pool_recycle: discard connections after this many seconds to avoid stale connections.
    return {"pool_pre_ping": True, "pool_recycle": 300}


engine = create_async_engine(
    settings.database_url,
    echo=settings.database_echo,
    **_engine_options(settings.database_url),
)

# Objects stay readable after commit; services build their responses from them
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """One session per request. Services own commit/rollback; the context manager closes it."""
    async with AsyncSessionLocal() as session:
        yield session
