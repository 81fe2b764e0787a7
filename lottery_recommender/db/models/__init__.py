"""ORM models package."""

from lottery_recommender.db.models.lottery_type import LotteryType
from lottery_recommender.db.models.recommendation import Recommendation
from lottery_recommender.db.models.draw_result import DrawResult

__all__ = [
    "LotteryType",
    "Recommendation",
    "DrawResult",
]
