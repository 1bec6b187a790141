import asyncio

import typer

from tipjar_common.utils.utils import get_logger
from tipjar_db.crud.profile import ProfileDAO
from tipjar_db.db import AsyncSessionLocal
from tipjar_db.db.init_db import init_db
from tipjar_db.db.run_migrations import run_migrations

# Get logger for this module
logger = get_logger(__name__)

# Create a Typer app
app = typer.Typer(help="Database management commands")


@app.command()
def init() -> None:
    """Initialize the database by creating all tables."""
    logger.info("Initializing database...")
    if not asyncio.run(init_db()):
        logger.error("Database initialization failed!")
        raise typer.Exit(code=1)
    logger.info("Database initialized successfully!")


@app.command()
def migrate(revision: str = typer.Option("head", help="Target alembic revision")) -> None:
    """Run database migrations using Alembic."""
    logger.info("Running database migrations...", revision=revision)
    success = run_migrations(revision)
    if success:
        logger.info("Database migrations completed successfully!")
    else:
        logger.error("Database migrations failed!")
        raise typer.Exit(code=1)


async def _recompute_totals() -> int:
    dao = ProfileDAO()
    async with AsyncSessionLocal() as db:
        user_ids = await dao.list_ids(db)
        for user_id in user_ids:
            profile = await dao.refresh_aggregates(db, user_id)
            if profile is not None:
                logger.debug(
                    "Profile aggregates refreshed",
                    user_id=user_id,
                    total_donations=profile.total_donations,
                    available_balance=profile.available_balance,
                )
        await db.commit()
    return len(user_ids)


@app.command("recompute-totals")
def recompute_totals() -> None:
    """Re-sync cached profile totals and balances from payment and payout rows."""
    logger.info("Recomputing profile aggregates...")
    count = asyncio.run(_recompute_totals())
    logger.info("Profile aggregates recomputed", profiles=count)


if __name__ == "__main__":
    app()
