"""CRUD operations for recommendations."""

from sqlalchemy import select, desc, or_
from sqlalchemy.ext.asyncio import AsyncSession

from lottery_recommender.db.models.draw_result import DrawResult
from lottery_recommender.db.models.lottery_type import LotteryType
from lottery_recommender.db.models.recommendation import Recommendation
from lottery_recommender.formats import UNKNOWN

# Outcome not yet known: never analysed, or analysis was indeterminate
OUTCOME_UNKNOWN = or_(
    Recommendation.win_status.is_(None),
    Recommendation.win_status == "",
    Recommendation.win_status == UNKNOWN,
)


async def create(session: AsyncSession, values: dict) -> Recommendation:
    obj = Recommendation(**values)
    session.add(obj)
    await session.flush()
    return obj


async def get_by_id(session: AsyncSession, recommendation_id: int) -> Recommendation | None:
    return await session.get(Recommendation, recommendation_id)


async def list_recommendations(
    session: AsyncSession,
    *,
    code: str | None = None,
    period: str | None = None,
    limit: int = 100,
) -> list[Recommendation]:
    query = select(Recommendation).order_by(desc(Recommendation.created_at), desc(Recommendation.id))
    if code:
        query = query.join(
            LotteryType, Recommendation.lottery_type_id == LotteryType.id
        ).where(LotteryType.code == code)
    if period:
        query = query.where(Recommendation.target_period == period)
    result = await session.execute(query.limit(limit))
    return list(result.scalars().all())


async def list_unknown_for_period(
    session: AsyncSession, lottery_type_id: int, period: str
) -> list[Recommendation]:
    result = await session.execute(
        select(Recommendation)
        .where(
            Recommendation.lottery_type_id == lottery_type_id,
            Recommendation.target_period == period,
            OUTCOME_UNKNOWN,
        )
        .order_by(Recommendation.id)
    )
    return list(result.scalars().all())


async def list_unknown_with_results(
    session: AsyncSession, lottery_type_id: int
) -> list[tuple[Recommendation, DrawResult]]:
    """Unknown-outcome recommendations whose period already has a stored result."""
    result = await session.execute(
        select(Recommendation, DrawResult)
        .join(
            DrawResult,
            (DrawResult.lottery_type_id == Recommendation.lottery_type_id)
            & (DrawResult.period == Recommendation.target_period),
        )
        .where(
            Recommendation.lottery_type_id == lottery_type_id,
            OUTCOME_UNKNOWN,
        )
        .order_by(Recommendation.id)
    )
    return [(rec, draw) for rec, draw in result.all()]


async def set_purchased(
    session: AsyncSession, recommendation: Recommendation, is_purchased: bool
) -> Recommendation:
    recommendation.is_purchased = is_purchased
    await session.flush()
    return recommendation
