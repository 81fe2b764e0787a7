"""FastAPI application entry point."""

import sys
import asyncio
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from loguru import logger

from lottery_recommender.config import settings

# Windows asyncio policy for asyncpg compatibility
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configure loguru
Path("logs").mkdir(exist_ok=True)
logger.remove()
logger.add(sys.stderr, level="DEBUG" if settings.DEBUG else "INFO")
logger.add("logs/app.log", rotation="10 MB", retention="7 days", level="INFO")


async def seed_lottery_types() -> int:
    """Insert or refresh the configured lottery types."""
    from lottery_recommender.db.crud import lottery_type as lottery_crud
    from lottery_recommender.db.engine import async_session_factory

    async with async_session_factory() as session:
        created = await lottery_crud.seed(
            session, [seed.model_dump(exclude_none=True) for seed in settings.LOTTERY_TYPES]
        )
        await session.commit()
    logger.info("Seeded lottery types: {} new, {} configured", created, len(settings.LOTTERY_TYPES))
    return created


def build_scheduler():
    from lottery_recommender.db.engine import async_session_factory
    from lottery_recommender.generator.backend import OpenAICompatibleBackend
    from lottery_recommender.generator.number_generator import NumberGenerator
    from lottery_recommender.scraper.scheduler import LotteryScheduler

    generator = NumberGenerator(OpenAICompatibleBackend())
    scheduler = LotteryScheduler(async_session_factory, generator)
    scheduler.add_listener(_log_failed_job)
    return scheduler


def _log_failed_job(outcome) -> None:
    if outcome.status != "success":
        logger.warning("Job {} finished with {}: {}", outcome.task_key, outcome.status, outcome.error)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    logger.info("Starting {} ...", settings.APP_NAME)

    from lottery_recommender.db.engine import create_tables
    await create_tables()
    await seed_lottery_types()

    app.state.scheduler = build_scheduler()
    if settings.SCHEDULER_ENABLED:
        await app.state.scheduler.start()

    yield

    # Shutdown
    await app.state.scheduler.stop()

    from lottery_recommender.db.engine import engine
    await engine.dispose()
    logger.info("Application shutdown complete")


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="AI 彩票号码推荐与开奖分析系统",
    lifespan=lifespan,
)

# Include API routers
from lottery_recommender.api.v1.router import api_router  # noqa: E402
app.include_router(api_router, prefix="/api/v1")
