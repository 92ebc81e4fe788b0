"""Async database engine and session management."""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from campibook.core.config import settings


def engine_options(database_url: str, statement_timeout: float) -> dict:
    """Engine keyword arguments for the given URL.

    asyncpg connections get a ``command_timeout`` so a stuck query is
    abandoned by the driver itself.
    """
    options: dict = {"echo": settings.database_echo, "pool_pre_ping": True}
    if database_url.startswith("postgresql+asyncpg"):
        options["connect_args"] = {"command_timeout": statement_timeout}
    return options


engine = create_async_engine(
    settings.database_url,
    **engine_options(settings.database_url, settings.store_timeout_seconds),
)

async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session. Used as a FastAPI dependency."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
