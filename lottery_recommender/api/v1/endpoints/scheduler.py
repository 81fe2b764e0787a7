"""Scheduler status API endpoints."""

from fastapi import APIRouter, Depends, Query

from lottery_recommender.api.deps import get_scheduler
from lottery_recommender.schemas.lottery import JobOutcomeSchema, SchedulerStatusSchema
from lottery_recommender.scraper.scheduler import LotteryScheduler

router = APIRouter()


@router.get("/status", response_model=SchedulerStatusSchema)
async def scheduler_status(
    recent: int = Query(20, ge=0, le=200, description="最近任务执行记录条数"),
    scheduler: LotteryScheduler = Depends(get_scheduler),
):
    """取得排程任务状态与最近执行结果."""
    outcomes = scheduler.recent_outcomes[-recent:] if recent else []
    return SchedulerStatusSchema(
        running=scheduler.running,
        jobs=scheduler.status(),
        failure_counts=scheduler.failure_counts(),
        recent_outcomes=[JobOutcomeSchema.model_validate(o) for o in reversed(outcomes)],
    )
