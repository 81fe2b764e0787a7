"""Aggregate API v1 router."""

from fastapi import APIRouter

from lottery_recommender.api.v1.endpoints import (
    lottery_types,
    recommendations,
    draw_results,
    scheduler,
)

api_router = APIRouter()

api_router.include_router(lottery_types.router, prefix="/lottery-types", tags=["彩票类型"])
api_router.include_router(recommendations.router, prefix="/recommendations", tags=["推荐号码"])
api_router.include_router(draw_results.router, prefix="/draw-results", tags=["开奖结果"])
api_router.include_router(scheduler.router, prefix="/scheduler", tags=["排程"])
