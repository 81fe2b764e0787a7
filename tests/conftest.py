import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("DEBUG", "false")

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from lottery_recommender.db import models  # noqa: E402,F401
from lottery_recommender.db.base import Base  # noqa: E402
from lottery_recommender.db.crud import lottery_type as lottery_crud  # noqa: E402


class FakeBackend:
    """Chat backend returning queued replies; exceptions in the queue are raised."""

    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.calls = []

    async def complete(self, model, system_prompt, user_prompt, *, temperature=0.7, timeout=None):
        self.calls.append({
            "model": model,
            "system_prompt": system_prompt,
            "user_prompt": user_prompt,
            "temperature": temperature,
            "timeout": timeout,
        })
        if not self.replies:
            return ""
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def lotteries(session):
    """Seeded fc_ssq and tc_dlt lottery types, keyed by code."""
    await lottery_crud.seed(session, [
        {
            "code": "fc_ssq",
            "name": "双色球",
            "schedule_cron": "0 0 9 * * 2,4,0",
            "model_name": "test-model",
            "results_api_id": 11,
        },
        {
            "code": "tc_dlt",
            "name": "大乐透",
            "schedule_cron": "0 0 9 * * 1,3,6",
            "model_name": "test-model",
            "results_api_id": 14,
        },
    ])
    await session.commit()
    return {lt.code: lt for lt in await lottery_crud.list_all(session)}


@pytest.fixture
def fake_backend():
    return FakeBackend()
