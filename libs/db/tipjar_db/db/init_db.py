from sqlalchemy.exc import SQLAlchemyError

from tipjar_common.core.config_service import ConfigService
from tipjar_common.utils.utils import get_logger
from tipjar_db import models  # noqa: F401
from tipjar_db.db import Base, engine
from tipjar_db.db.create_database import create_database
from tipjar_db.db.run_migrations import run_migrations

logger = get_logger()


async def _create_all() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db() -> bool:
    """Initialize the database:
    1. SQLite (tests, local tooling): create tables directly
    2. PostgreSQL: create the database if missing, then run migrations
    3. Fall back to create_all() if migrations fail
    """
    db_url = ConfigService().get_database_url()

    try:
        if db_url.startswith("sqlite"):
            logger.info("Using SQLite - creating tables with create_all()", operation="create_sqlite_tables")
            await _create_all()
            return True

        logger.info("Creating database if it doesn't exist", operation="create_database")
        if not create_database(db_url):
            logger.error("Failed to create database", operation="create_database", status="error")
            return False

        logger.info("Running database migrations", operation="run_migrations")
        if run_migrations():
            return True

        logger.warning("Migrations failed, falling back to create_all()", operation="run_migrations", status="warning")
        await _create_all()
        logger.info("Database tables created using fallback method", operation="create_tables_fallback", status="success")
        return True
    except SQLAlchemyError as e:
        logger.exception("Error during database initialization", operation="init_db", status="error", error=str(e))
        return False
