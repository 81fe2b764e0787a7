"""Win analysis — matches recommendations against official draw results.

Prize amounts are fixed reference values per tier, not the provider's
pool-derived payout.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from lottery_recommender.db.crud import draw_result as draw_crud
from lottery_recommender.db.crud import recommendation as rec_crud
from lottery_recommender.db.models.draw_result import DrawResult
from lottery_recommender.db.models.lottery_type import LotteryType
from lottery_recommender.db.models.recommendation import Recommendation
from lottery_recommender.errors import InvalidCombinationError, MissingDrawResultError
from lottery_recommender.formats import (
    MALFORMED,
    NO_WIN,
    get_format,
    split_combination,
    split_draw_numbers,
)


def _normalize(value: str) -> str:
    return value.zfill(2) if value.isdigit() else value


def count_matches(picked: list[str], drawn: list[str]) -> int:
    return len({_normalize(v) for v in picked} & {_normalize(v) for v in drawn})


def analyze(
    code: str, numbers: str, main_numbers: str, special_numbers: str
) -> tuple[str, float]:
    """Return (tier label, reference amount) for one combination.

    Raises UnsupportedFormatError for lottery codes without a tier table.
    """
    fmt = get_format(code)
    try:
        picked_main, picked_special = split_combination(numbers)
    except InvalidCombinationError:
        return MALFORMED, 0.0

    main_hits = count_matches(picked_main, split_draw_numbers(main_numbers))
    special_hits = count_matches(picked_special, split_draw_numbers(special_numbers))

    for tier in fmt.tiers:
        if tier.matches(main_hits, special_hits):
            return tier.label, tier.amount
    return NO_WIN, 0.0


def official_result(draw: DrawResult) -> str:
    return f"{draw.main_numbers}+{draw.special_numbers}"


def apply_outcome(code: str, recommendation: Recommendation, draw: DrawResult) -> str:
    tier, amount = analyze(code, recommendation.numbers, draw.main_numbers, draw.special_numbers)
    recommendation.official_result = official_result(draw)
    recommendation.win_status = tier
    recommendation.win_amount = amount
    return tier


async def reanalyze_period(
    session: AsyncSession,
    lottery_type: LotteryType,
    period: str,
    draw: DrawResult | None = None,
) -> int:
    """Analyse every unknown-outcome recommendation for one period.

    Recommendations that already carry a concrete tier are left alone.
    Returns the number of recommendations updated.
    """
    get_format(lottery_type.code)
    if draw is None:
        draw = await draw_crud.get_by_period(session, lottery_type.id, period)
        if draw is None:
            raise MissingDrawResultError(
                f"No draw result for {lottery_type.code} period {period}"
            )

    pending = await rec_crud.list_unknown_for_period(session, lottery_type.id, period)
    logger.info(
        "[{}] Analysing {} recommendations for period {}",
        lottery_type.code, len(pending), period,
    )
    for i, rec in enumerate(pending, start=1):
        tier = apply_outcome(lottery_type.code, rec, draw)
        logger.info(
            "[{}] Recommendation {} ({}/{}): {} -> {} ({})",
            lottery_type.code, rec.id, i, len(pending), rec.numbers, tier, rec.win_amount,
        )
    await session.flush()
    return len(pending)


async def reanalyze_pending(session: AsyncSession, lottery_type: LotteryType) -> int:
    """Sweep unknown-outcome recommendations whose period result is already stored.

    Picks up recommendations created after their period's result was fetched.
    """
    get_format(lottery_type.code)
    rows = await rec_crud.list_unknown_with_results(session, lottery_type.id)
    for rec, draw in rows:
        tier = apply_outcome(lottery_type.code, rec, draw)
        logger.info(
            "[{}] Late recommendation {} for period {}: {}",
            lottery_type.code, rec.id, rec.target_period, tier,
        )
    if rows:
        await session.flush()
    return len(rows)
