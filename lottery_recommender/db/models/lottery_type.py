"""Lottery type ORM model."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from lottery_recommender.db.base import Base


class LotteryType(Base):
    """彩票类型配置：开奖日程、生成模型与结果接口."""

    __tablename__ = "lottery_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    schedule_cron: Mapped[str] = mapped_column(String(50), nullable=False)
    model_name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Draw info API (next date / period), optional
    api_endpoint: Mapped[str | None] = mapped_column(String(500), nullable=True)
    # Results API lottery id, 0 = not configured
    results_api_id: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    results_endpoint: Mapped[str | None] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<LotteryType code={self.code} cron={self.schedule_cron} active={self.is_active}>"
