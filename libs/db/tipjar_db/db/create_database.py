from urllib.parse import unquote, urlsplit

import psycopg2
from psycopg2 import sql
from psycopg2.extensions import ISOLATION_LEVEL_AUTOCOMMIT

from tipjar_common.utils.utils import get_logger
from tipjar_db.db import to_sync_url

logger = get_logger()


def create_database(db_url: str) -> bool:
    """Create the PostgreSQL database named in the URL if it doesn't exist."""
    parts = urlsplit(to_sync_url(db_url))
    db_name = parts.path.lstrip("/") or "tipjar"
    host = parts.hostname or "localhost"
    port = parts.port or 5432

    logger.info("Database creation parameters", database_name=db_name, host=host, port=port)

    try:
        conn = psycopg2.connect(
            host=host,
            port=port,
            user=unquote(parts.username or "postgres"),
            password=unquote(parts.password or ""),
            dbname="postgres",
        )
        conn.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)
        try:
            with conn.cursor() as cursor:
                cursor.execute("SELECT 1 FROM pg_catalog.pg_database WHERE datname = %s", (db_name,))
                if cursor.fetchone():
                    logger.info("Database already exists", database_name=db_name, status="exists")
                else:
                    logger.info("Creating database", database_name=db_name)
                    cursor.execute(sql.SQL("CREATE DATABASE {}").format(sql.Identifier(db_name)))
                    logger.info("Database created successfully", database_name=db_name, status="created")
        finally:
            conn.close()
        return True
    except psycopg2.Error as e:
        logger.exception("PostgreSQL error during database creation", error=str(e), error_code=e.pgcode)
        return False
