"""CRUD operations for lottery types."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lottery_recommender.db.models.lottery_type import LotteryType

EDITABLE_FIELDS = (
    "code",
    "name",
    "schedule_cron",
    "model_name",
    "is_active",
    "api_endpoint",
    "results_api_id",
    "results_endpoint",
)


async def get_by_id(session: AsyncSession, lottery_type_id: int) -> LotteryType | None:
    return await session.get(LotteryType, lottery_type_id)


async def get_by_code(session: AsyncSession, code: str) -> LotteryType | None:
    result = await session.execute(
        select(LotteryType).where(LotteryType.code == code)
    )
    return result.scalar_one_or_none()


async def list_all(session: AsyncSession) -> list[LotteryType]:
    result = await session.execute(select(LotteryType).order_by(LotteryType.id))
    return list(result.scalars().all())


async def list_active(session: AsyncSession) -> list[LotteryType]:
    result = await session.execute(
        select(LotteryType)
        .where(LotteryType.is_active == True)  # noqa: E712
        .order_by(LotteryType.id)
    )
    return list(result.scalars().all())


async def list_active_with_results_api(session: AsyncSession) -> list[LotteryType]:
    result = await session.execute(
        select(LotteryType)
        .where(
            LotteryType.is_active == True,  # noqa: E712
            LotteryType.results_api_id > 0,
        )
        .order_by(LotteryType.id)
    )
    return list(result.scalars().all())


async def create(session: AsyncSession, values: dict) -> LotteryType:
    obj = LotteryType(**values)
    session.add(obj)
    await session.flush()
    return obj


async def update(session: AsyncSession, obj: LotteryType, values: dict) -> LotteryType:
    for field in EDITABLE_FIELDS:
        if field in values:
            setattr(obj, field, values[field])
    await session.flush()
    return obj


async def seed(session: AsyncSession, seeds: list[dict]) -> int:
    """Create or refresh configured lottery types by code. Returns rows created."""
    created = 0
    for values in seeds:
        existing = await get_by_code(session, values["code"])
        if existing is None:
            await create(session, values)
            created += 1
        else:
            await update(session, existing, values)
    return created
