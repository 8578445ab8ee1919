import asyncio
import logging
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import AsyncIterator

from alembic import command
from alembic.config import Config
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from todo_api.core.config import get_settings
from todo_api.repositories.task_repository import SQLModelTaskRepository, TaskRepository

logger = logging.getLogger(__name__)


@lru_cache
def get_engine() -> AsyncEngine:
    settings = get_settings()
    return create_async_engine(
        settings.database_url,
        echo=settings.database_echo,
        future=True,
        pool_pre_ping=True,
    )


@lru_cache
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


# Dependency for getting DB session
async def get_db() -> AsyncIterator[AsyncSession]:
    async with get_session_factory()() as session:
        yield session


@asynccontextmanager
async def task_repository_scope() -> AsyncIterator[TaskRepository]:
    """Repository bound to a fresh session, for callers outside a request."""
    async with get_session_factory()() as session:
        yield SQLModelTaskRepository(session)


# Helper function to create tables (optional, useful for testing)
async def create_db_and_tables(engine: AsyncEngine | None = None):
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def apply_migrations_with_retry(
    max_retries: int = 30,
    delay_seconds: float = 2,
    config_path: str = "alembic.ini",
) -> None:
    """
    Run ``alembic upgrade head``, retrying while the database comes up.

    Each failed attempt is logged and followed by a fixed delay. The error of
    the last attempt propagates.
    """
    config = Config(config_path)
    config.attributes["configure_logger"] = False

    for attempt in range(1, max_retries + 1):
        try:
            # env.py drives its own event loop, so keep it off ours.
            await asyncio.to_thread(command.upgrade, config, "head")
            logger.info("Database migrations applied")
            return
        except Exception as e:
            logger.warning(
                f"Database unavailable (attempt {attempt}/{max_retries}): {e}"
            )
            if attempt == max_retries:
                raise
            await asyncio.sleep(delay_seconds)
