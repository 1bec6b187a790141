"""Shared pytest setup.

The engine in ``tipjar_db.db`` is created at import time from ``DATABASE_URL``, so the test environment is
configured here before any test module imports the packages.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import AsyncGenerator

os.environ["APP_ENV"] = "test"
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_tipjar")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_tipjar")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret-with-enough-length-for-hs256")

import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from tipjar_common.ids import UserId  # noqa: E402
from tipjar_db import models  # noqa: E402,F401
from tipjar_db.crud.profile import ProfileDAO  # noqa: E402
from tipjar_db.db import Base  # noqa: E402
from tipjar_db.schemas.profile import ProfileResponse  # noqa: E402


@pytest_asyncio.fixture
async def db() -> AsyncGenerator[AsyncSession]:
    """A fresh in-memory database per test."""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False})
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await engine.dispose()


@pytest_asyncio.fixture
async def creator(db: AsyncSession) -> ProfileResponse:
    """A freshly provisioned creator profile."""
    profile = await ProfileDAO().create(db, user_id=UserId(uuid.uuid4()), username="magda", display_name="Magda")
    await db.commit()
    return profile
