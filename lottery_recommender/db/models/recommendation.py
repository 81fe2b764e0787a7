"""Recommendation ORM model."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from lottery_recommender.db.base import Base


class Recommendation(Base):
    """推荐号码记录，开奖后写入中奖分析结果."""

    __tablename__ = "recommendations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    lottery_type_id: Mapped[int] = mapped_column(
        ForeignKey("lottery_types.id"), nullable=False
    )
    numbers: Mapped[str] = mapped_column(String(100), nullable=False)  # 01,05,...+07
    model_name: Mapped[str] = mapped_column(String(100), nullable=False)
    target_period: Mapped[str] = mapped_column(String(20), nullable=False)
    expected_draw_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    is_purchased: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Filled in by win analysis
    official_result: Mapped[str | None] = mapped_column(String(100), nullable=True)
    win_status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    win_amount: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_recommendations_lottery_period", "lottery_type_id", "target_period"),
    )

    def __repr__(self) -> str:
        return (
            f"<Recommendation id={self.id} period={self.target_period} "
            f"numbers={self.numbers} status={self.win_status}>"
        )
