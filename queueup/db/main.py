from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from queueup.config import Config

# Under tests every session gets its own connection
engine_options = {"poolclass": NullPool} if Config.ENVIRONMENT == "test" else {}

async_engine = create_async_engine(url=Config.DATABASE_URL, **engine_options)

async_session_factory = async_sessionmaker(
    bind=async_engine, class_=AsyncSession, expire_on_commit=False
)


async def init_db() -> None:
    """
    Initializes the queueup database.
    """
    # Register table models with SQLModel.metadata
    from queueup.player.models import Player  # noqa: F401
    from queueup.tenant.models import TenantConfig  # noqa: F401

    async with async_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency to get an async session for the queueup database.
    """
    async with async_session_factory() as session:
        yield session
