# carelink/core/db.py
from collections.abc import AsyncGenerator
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool
from carelink.core.config import settings

def _engine_options(url: str) -> dict:
    # sqlite (tests / dev local) no comparte conexiones entre event loops
    if url.startswith("sqlite"):
        return {"echo": settings.DB_ECHO, "poolclass": NullPool}
    return {"echo": settings.DB_ECHO, "pool_pre_ping": True}

engine = create_async_engine(settings.async_database_url, **_engine_options(settings.async_database_url))
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

class Base(DeclarativeBase):
    pass

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with SessionLocal() as session:
        yield session
