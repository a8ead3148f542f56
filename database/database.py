from fastapi import Request
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from config import Config
from database.models import Base


def build_engine(database_url: str) -> AsyncEngine:
    if database_url.startswith("sqlite"):
        # aiosqlite connections are bound to the loop that opened them
        return create_async_engine(database_url, echo=False, poolclass=NullPool)
    return create_async_engine(
        database_url,
        echo=False,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20
    )


def build_sessionmaker(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False
    )


DATABASE_URL = Config.from_env().database_url

engine = build_engine(DATABASE_URL)

AsyncSessionLocal = build_sessionmaker(engine)


async def init_db(bind: AsyncEngine = None):
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db(request: Request) -> AsyncSession:
    session_factory = getattr(request.app.state, "session_factory", AsyncSessionLocal)
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
