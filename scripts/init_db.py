"""Script to initialize the database."""

import asyncio

import structlog
from dotenv import load_dotenv

load_dotenv()

from medclinic.database import engine  # noqa: E402
from medclinic.middleware.logging import configure_logging  # noqa: E402
from medclinic.models import metadata  # noqa: E402

logger = structlog.get_logger()


async def init_db() -> None:
    """Create every table that does not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    logger.info("database_initialized", tables=sorted(metadata.tables))
    await engine.dispose()


if __name__ == "__main__":
    configure_logging()
    asyncio.run(init_db())
