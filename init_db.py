import asyncio
import logging
import sys

from backend.app.core.logging import setup_logging
from backend.app.db.base import Base
from backend.app.db.session import engine
# Import models so Base.metadata knows every table
from backend.app.models import User, BreachRecord, BreachSource, RecommendedAction  # noqa: F401

logger = logging.getLogger(__name__)


async def init_models(drop: bool = False):
    try:
        async with engine.begin() as conn:
            if drop:
                # DEV MODE ONLY
                await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Tables created successfully")
    except Exception as e:
        logger.error("Table creation failed: %s", e)
        raise
    finally:
        await engine.dispose()


if __name__ == "__main__":
    setup_logging()
    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    asyncio.run(init_models(drop="--drop" in sys.argv))
