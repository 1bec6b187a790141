from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase as _DeclarativeBase
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from tipjar_common.core.config_service import ConfigService
from tipjar_common.db.db_utils import DateTimeUTC

config_service = ConfigService()
DATABASE_URL = config_service.get_database_url()


def to_async_url(url: str) -> str:
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


def to_sync_url(url: str) -> str:
    if url.startswith("postgresql+asyncpg://"):
        return url.replace("postgresql+asyncpg://", "postgresql://", 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    if url.startswith("sqlite+aiosqlite://"):
        return url.replace("sqlite+aiosqlite://", "sqlite://", 1)
    return url


def create_engine_for_url(url: str) -> AsyncEngine:
    async_url = to_async_url(url)
    if async_url.startswith("sqlite"):
        return create_async_engine(async_url, connect_args={"check_same_thread": False}, echo=False)
    return create_async_engine(
        async_url,
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
        pool_pre_ping=True,
    )


engine = create_engine_for_url(DATABASE_URL)

AsyncSessionLocal = async_sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)


class Base(_DeclarativeBase):
    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(DateTimeUTC(), server_default=func.current_timestamp())
    updated_at: Mapped[datetime] = mapped_column(
        DateTimeUTC(),
        server_default=func.current_timestamp(),
        server_onupdate=func.current_timestamp(),
        onupdate=func.current_timestamp(),
    )
