"""Draw result ORM model."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from lottery_recommender.db.base import Base


class DrawResult(Base):
    """官方开奖结果，按 (彩票类型, 期号) 唯一."""

    __tablename__ = "draw_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    lottery_type_id: Mapped[int] = mapped_column(
        ForeignKey("lottery_types.id"), nullable=False, index=True
    )
    results_api_id: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    period: Mapped[str] = mapped_column(String(20), nullable=False)

    main_numbers: Mapped[str] = mapped_column(String(100), nullable=False)  # "03 05 18 27 40"
    special_numbers: Mapped[str] = mapped_column(String(50), nullable=False)
    draw_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)

    sale_amount: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    pool_amount: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    official_open_date: Mapped[str | None] = mapped_column(String(50), nullable=True)
    deadline: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Raw provider prize list and the tier_N / tier_N_add breakdown
    prize_info: Mapped[list | None] = mapped_column(JSON, nullable=True)
    prize_breakdown: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("lottery_type_id", "period", name="uq_draw_results_lottery_period"),
    )

    def __repr__(self) -> str:
        return (
            f"<DrawResult lottery={self.lottery_type_id} period={self.period} "
            f"numbers={self.main_numbers}+{self.special_numbers}>"
        )
