"""
Database engine and session factory. Requests get one AsyncSession each through get_db().
Tables are schema-qualified (core, auth, school).
"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from app.core.config import settings


def build_engine(database_url: str, **overrides: Any) -> AsyncEngine:
    options: Dict[str, Any] = {"echo": False, "future": True}
    if not database_url.startswith("sqlite"):
        # pool_pre_ping: check the connection is alive before use, the DB or network may
        # have closed idle connections. pool_recycle: drop connections older than 5 minutes.
        options.update(pool_pre_ping=True, pool_recycle=300)
    options.update(overrides)
    return create_async_engine(database_url, **options)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind=bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(settings.database_url)
AsyncSessionLocal = build_session_factory(engine)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session
