"""Recommendation API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from lottery_recommender.api.deps import get_db, get_scheduler, http_error
from lottery_recommender.db.crud import recommendation as crud
from lottery_recommender.errors import LotteryError
from lottery_recommender.schemas.lottery import PurchaseUpdate, RecommendationSchema
from lottery_recommender.scraper.scheduler import LotteryScheduler

router = APIRouter()


@router.get("", response_model=list[RecommendationSchema])
async def list_recommendations(
    code: str | None = Query(None, description="彩票代码，如 fc_ssq"),
    period: str | None = Query(None, description="目标期号"),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    """查询推荐号码记录."""
    return await crud.list_recommendations(db, code=code, period=period, limit=limit)


@router.put("/{recommendation_id}/purchase", response_model=RecommendationSchema)
async def update_purchase(
    recommendation_id: int,
    request: PurchaseUpdate,
    db: AsyncSession = Depends(get_db),
):
    """标记推荐是否已购买."""
    rec = await crud.get_by_id(db, recommendation_id)
    if not rec:
        raise HTTPException(status_code=404, detail=f"Recommendation {recommendation_id} not found")
    return await crud.set_purchased(db, rec, request.is_purchased)


@router.post("/generate", response_model=list[RecommendationSchema])
async def generate(
    lottery_type_id: int = Query(...),
    count: int = Query(1, ge=1, le=20, description="生成注数"),
    scheduler: LotteryScheduler = Depends(get_scheduler),
):
    """手动触发号码生成."""
    try:
        return await scheduler.trigger_generation(lottery_type_id, count)
    except LotteryError as e:
        raise http_error(e) from e
