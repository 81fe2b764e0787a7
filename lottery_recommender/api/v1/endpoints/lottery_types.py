"""Lottery type admin API endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from lottery_recommender.api.deps import get_db, get_scheduler, http_error
from lottery_recommender.db.crud import lottery_type as crud
from lottery_recommender.draw.schedule import build_trigger
from lottery_recommender.errors import ScheduleError
from lottery_recommender.schemas.lottery import (
    LotteryTypeCreate,
    LotteryTypeSchema,
    LotteryTypeUpdate,
)
from lottery_recommender.scraper.scheduler import LotteryScheduler

router = APIRouter()

NULLABLE_FIELDS = ("api_endpoint", "results_endpoint")


def _validate_cron(expression: str):
    try:
        build_trigger(expression)
    except ScheduleError as e:
        raise http_error(e) from e


@router.get("", response_model=list[LotteryTypeSchema])
async def list_lottery_types(db: AsyncSession = Depends(get_db)):
    """列出所有彩票类型."""
    return await crud.list_all(db)


@router.get("/{lottery_type_id}", response_model=LotteryTypeSchema)
async def get_lottery_type(lottery_type_id: int, db: AsyncSession = Depends(get_db)):
    lottery_type = await crud.get_by_id(db, lottery_type_id)
    if not lottery_type:
        raise HTTPException(status_code=404, detail=f"Lottery type {lottery_type_id} not found")
    return lottery_type


@router.post("", response_model=LotteryTypeSchema, status_code=201)
async def create_lottery_type(
    request: LotteryTypeCreate,
    db: AsyncSession = Depends(get_db),
    scheduler: LotteryScheduler = Depends(get_scheduler),
):
    """新增彩票类型并注册生成任务."""
    _validate_cron(request.schedule_cron)
    if await crud.get_by_code(db, request.code):
        raise HTTPException(status_code=400, detail=f"Code {request.code} already exists")

    lottery_type = await crud.create(db, request.model_dump())
    await db.commit()
    await scheduler.reload(lottery_type)
    return lottery_type


@router.put("/{lottery_type_id}", response_model=LotteryTypeSchema)
async def update_lottery_type(
    lottery_type_id: int,
    request: LotteryTypeUpdate,
    db: AsyncSession = Depends(get_db),
    scheduler: LotteryScheduler = Depends(get_scheduler),
):
    """修改彩票类型；日程或启用状态变更后立即重载任务."""
    lottery_type = await crud.get_by_id(db, lottery_type_id)
    if not lottery_type:
        raise HTTPException(status_code=404, detail=f"Lottery type {lottery_type_id} not found")

    values = {
        k: v for k, v in request.model_dump(exclude_unset=True).items()
        if v is not None or k in NULLABLE_FIELDS
    }
    if "schedule_cron" in values:
        _validate_cron(values["schedule_cron"])

    lottery_type = await crud.update(db, lottery_type, values)
    await db.commit()
    await scheduler.reload(lottery_type)
    return lottery_type
