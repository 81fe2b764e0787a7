"""Recommendation service: resolves the target draw and stores generated numbers."""

from datetime import datetime

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from lottery_recommender.db.crud import recommendation as rec_crud
from lottery_recommender.db.models.lottery_type import LotteryType
from lottery_recommender.db.models.recommendation import Recommendation
from lottery_recommender.draw.draw_info import DrawInfoResolver
from lottery_recommender.generator.number_generator import NumberGenerator


async def generate_recommendations(
    session: AsyncSession,
    lottery_type: LotteryType,
    resolver: DrawInfoResolver,
    generator: NumberGenerator,
    count: int = 1,
    now: datetime | None = None,
) -> list[Recommendation]:
    """Resolve the next draw, generate ``count`` combinations and persist them."""
    info = await resolver.resolve(
        session,
        lottery_type.code,
        lottery_type.schedule_cron,
        lottery_type.api_endpoint,
        now=now,
    )

    if count > 1:
        combinations = await generator.generate_batch(lottery_type.code, lottery_type.model_name, count)
    else:
        combinations = [await generator.generate(lottery_type.code, lottery_type.model_name)]

    created = []
    for numbers in combinations:
        rec = await rec_crud.create(session, {
            "lottery_type_id": lottery_type.id,
            "numbers": numbers,
            "model_name": lottery_type.model_name,
            "target_period": info.period,
            "expected_draw_time": info.draw_date,
        })
        created.append(rec)
        logger.info(
            "[{}] Saved recommendation {}: {} for period {}",
            lottery_type.code, rec.id, numbers, info.period,
        )
    return created
