from pathlib import Path

from alembic import command
from alembic.config import Config

from tipjar_common.utils.utils import get_logger

logger = get_logger(__name__)

# libs/db
DB_LIB_ROOT = Path(__file__).resolve().parent.parent.parent


def run_migrations(revision: str = "head") -> bool:
    """Run Alembic migrations. The database URL is resolved by alembic/env.py through the config service."""
    try:
        alembic_cfg = Config(str(DB_LIB_ROOT / "alembic.ini"))
        alembic_cfg.set_main_option("script_location", str(DB_LIB_ROOT / "alembic"))
        # Keep Alembic from replacing our structured logging config
        alembic_cfg.attributes["configure_logger"] = False

        logger.info("Starting database migrations", operation="run_migrations", revision=revision)
        command.upgrade(alembic_cfg, revision)
        logger.info("Database migrations completed successfully", operation="run_migrations", status="success")
        return True
    except Exception as e:
        logger.exception("Migration failed", operation="run_migrations", status="failed", error=str(e))
        return False
