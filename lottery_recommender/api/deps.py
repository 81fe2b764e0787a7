"""Dependency injection for FastAPI."""

from collections.abc import AsyncGenerator

from fastapi import HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from lottery_recommender.db.engine import async_session_factory
from lottery_recommender.errors import (
    InvalidCombinationError,
    LotteryError,
    LotteryNotFoundError,
    MissingDrawResultError,
    ScheduleError,
    UnsupportedFormatError,
)
from lottery_recommender.scraper.scheduler import LotteryScheduler

VALIDATION_ERRORS = (ScheduleError, InvalidCombinationError, UnsupportedFormatError)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session for request scope."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_scheduler(request: Request) -> LotteryScheduler:
    """The application's scheduler, created during lifespan startup."""
    return request.app.state.scheduler


def http_error(e: LotteryError) -> HTTPException:
    """Map a domain error onto an HTTP status."""
    if isinstance(e, (LotteryNotFoundError, MissingDrawResultError)):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, VALIDATION_ERRORS):
        return HTTPException(status_code=400, detail=str(e))
    return HTTPException(status_code=502, detail=str(e))
