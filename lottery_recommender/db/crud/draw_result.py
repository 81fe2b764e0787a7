"""CRUD operations for official draw results."""

from datetime import date, datetime, time

from sqlalchemy import select, func, desc
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.dialects import postgresql, sqlite

from lottery_recommender.db.models.draw_result import DrawResult

# Columns overwritten when a known (lottery, period) is fetched again
UPSERT_FIELDS = (
    "results_api_id",
    "main_numbers",
    "special_numbers",
    "draw_date",
    "sale_amount",
    "pool_amount",
    "official_open_date",
    "deadline",
    "prize_info",
    "prize_breakdown",
)

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


async def get_by_period(
    session: AsyncSession, lottery_type_id: int, period: str
) -> DrawResult | None:
    result = await session.execute(
        select(DrawResult)
        .where(
            DrawResult.lottery_type_id == lottery_type_id,
            DrawResult.period == period,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_latest(session: AsyncSession, lottery_type_id: int) -> DrawResult | None:
    result = await session.execute(
        select(DrawResult)
        .where(DrawResult.lottery_type_id == lottery_type_id)
        .order_by(desc(DrawResult.draw_date), desc(DrawResult.period))
        .limit(1)
    )
    return result.scalar_one_or_none()


async def count_for_period(
    session: AsyncSession, lottery_type_id: int, period: str
) -> int:
    result = await session.execute(
        select(func.count(DrawResult.id)).where(
            DrawResult.lottery_type_id == lottery_type_id,
            DrawResult.period == period,
        )
    )
    return result.scalar() or 0


async def get_draws(
    session: AsyncSession,
    *,
    page: int = 1,
    page_size: int = 20,
    lottery_type_id: int | None = None,
    period: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> tuple[list[DrawResult], int]:
    query = select(DrawResult)
    count_query = select(func.count(DrawResult.id))

    filters = []
    if lottery_type_id:
        filters.append(DrawResult.lottery_type_id == lottery_type_id)
    if period:
        filters.append(DrawResult.period == period)
    if date_from:
        filters.append(DrawResult.draw_date >= datetime.combine(date_from, time.min))
    if date_to:
        # Include the whole end day
        filters.append(DrawResult.draw_date <= datetime.combine(date_to, time.max))

    if filters:
        query = query.where(*filters)
        count_query = count_query.where(*filters)

    total = (await session.execute(count_query)).scalar() or 0

    query = query.order_by(desc(DrawResult.draw_date))
    query = query.offset((page - 1) * page_size).limit(page_size)

    result = await session.execute(query)
    return list(result.scalars().all()), total


async def upsert(session: AsyncSession, draw: dict) -> DrawResult:
    """Insert a draw result or overwrite the row with the same (lottery, period)."""
    insert = _DIALECT_INSERTS.get(session.bind.dialect.name)
    if insert is None:
        return await _upsert_generic(session, draw)

    stmt = insert(DrawResult).values(**draw)
    updates = {f: getattr(stmt.excluded, f) for f in UPSERT_FIELDS if f in draw}
    updates["updated_at"] = func.now()
    stmt = stmt.on_conflict_do_update(
        index_elements=["lottery_type_id", "period"],
        set_=updates,
    )
    await session.execute(stmt)
    return await get_by_period(session, draw["lottery_type_id"], draw["period"])


async def _upsert_generic(session: AsyncSession, draw: dict) -> DrawResult:
    existing = await get_by_period(session, draw["lottery_type_id"], draw["period"])
    if existing is None:
        existing = DrawResult(**draw)
        session.add(existing)
    else:
        for field in UPSERT_FIELDS:
            if field in draw:
                setattr(existing, field, draw[field])
    await session.flush()
    return existing
