"""
Draft Assistant application lifecycle

The routing layer owns requests; this module owns process startup and
shutdown of shared resources (logging, database, provider client, Redis).
Running it directly prepares the database schema.
"""
import asyncio
from contextlib import asynccontextmanager

from api.client import cleanup_global_client
from config import get_config
from db.session import cleanup_global_engine, create_schema, get_engine
from utils.logging import setup_logging
from utils.rate_limit import close_redis_client


async def startup():
    """Configure logging and make sure the database schema exists."""
    logger = setup_logging()
    config = get_config()

    logger.info("Starting Draft Assistant")
    logger.info(f"Environment: {config.environment}")
    if not config.has_ai_provider:
        logger.warning("No generation provider key configured - recommendations will use ADP fallback")

    await create_schema(get_engine())
    return logger


async def shutdown():
    """Release shared clients and connections. Safe to call more than once."""
    await cleanup_global_client()
    await close_redis_client()
    await cleanup_global_engine()


@asynccontextmanager
async def lifespan():
    """Startup/shutdown pair for hosting frameworks."""
    await startup()
    try:
        yield
    finally:
        await shutdown()


async def main():
    """Main entry point."""
    logger = await startup()
    try:
        logger.info("Database schema ready")
    finally:
        await shutdown()


if __name__ == "__main__":
    asyncio.run(main())
