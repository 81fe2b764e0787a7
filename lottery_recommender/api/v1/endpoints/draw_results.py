"""Draw result API endpoints."""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from lottery_recommender.api.deps import get_db, get_scheduler, http_error
from lottery_recommender.db.crud import draw_result as crud
from lottery_recommender.db.crud import lottery_type as lottery_crud
from lottery_recommender.errors import LotteryError
from lottery_recommender.schemas.lottery import (
    CrawlSummary,
    DrawResultSchema,
    PaginatedResponse,
)
from lottery_recommender.scraper.scheduler import LotteryScheduler

router = APIRouter()


@router.get("", response_model=PaginatedResponse)
async def get_draws(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    lottery_type_id: int | None = None,
    period: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    db: AsyncSession = Depends(get_db),
):
    """查询历史开奖结果（分页）."""
    draws, total = await crud.get_draws(
        db,
        page=page,
        page_size=page_size,
        lottery_type_id=lottery_type_id,
        period=period,
        date_from=date_from,
        date_to=date_to,
    )
    total_pages = (total + page_size - 1) // page_size if total > 0 else 0
    return PaginatedResponse(
        items=[DrawResultSchema.model_validate(d) for d in draws],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages,
    )


@router.post("/crawl", response_model=CrawlSummary)
async def crawl(
    lottery_type_id: int | None = None,
    db: AsyncSession = Depends(get_db),
    scheduler: LotteryScheduler = Depends(get_scheduler),
):
    """手动抓取开奖结果并分析中奖情况；不指定彩票时处理全部启用的彩票."""
    if lottery_type_id is None:
        summary = await scheduler.fetcher.fetch_all_active(db)
        return CrawlSummary(processed=summary.processed, failed=summary.failed)

    lottery_type = await lottery_crud.get_by_id(db, lottery_type_id)
    if not lottery_type:
        raise HTTPException(status_code=404, detail=f"Lottery type {lottery_type_id} not found")
    try:
        await scheduler.trigger_fetch(lottery_type_id)
    except LotteryError as e:
        raise http_error(e) from e
    return CrawlSummary(processed=[lottery_type.code], failed={})
