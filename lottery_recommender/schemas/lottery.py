"""Pydantic schemas for lottery data."""

from datetime import datetime
from pydantic import BaseModel, Field


# --- Lottery types ---

class LotteryTypeSchema(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    code: str
    name: str
    schedule_cron: str
    model_name: str
    is_active: bool
    api_endpoint: str | None
    results_api_id: int
    results_endpoint: str | None


class LotteryTypeCreate(BaseModel):
    code: str = Field(min_length=1, max_length=20)
    name: str = Field(min_length=1, max_length=50)
    schedule_cron: str  # "0 0 9 * * 1,3,6"
    model_name: str
    is_active: bool = True
    api_endpoint: str | None = None
    results_api_id: int = 0
    results_endpoint: str | None = None


class LotteryTypeUpdate(BaseModel):
    name: str | None = None
    schedule_cron: str | None = None
    model_name: str | None = None
    is_active: bool | None = None
    api_endpoint: str | None = None
    results_api_id: int | None = None
    results_endpoint: str | None = None


# --- Recommendations ---

class RecommendationSchema(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    lottery_type_id: int
    numbers: str
    model_name: str
    target_period: str
    expected_draw_time: datetime | None
    is_purchased: bool
    official_result: str | None
    win_status: str | None
    win_amount: float
    created_at: datetime | None


class PurchaseUpdate(BaseModel):
    is_purchased: bool = True


# --- Draw results ---

class DrawResultSchema(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    lottery_type_id: int
    period: str
    main_numbers: str
    special_numbers: str
    draw_date: datetime
    sale_amount: float
    pool_amount: float
    official_open_date: str | None
    deadline: str | None
    prize_breakdown: dict | None


class CrawlSummary(BaseModel):
    processed: list[str]
    failed: dict[str, str]


# --- Paginated response ---

class PaginatedResponse(BaseModel):
    items: list
    total: int
    page: int
    page_size: int
    total_pages: int


# --- Scheduler ---

class ScheduledJobSchema(BaseModel):
    id: str
    name: str
    next_run: str | None
    trigger: str


class JobOutcomeSchema(BaseModel):
    model_config = {"from_attributes": True}

    task_key: str
    status: str  # success / partial / error
    started_at: datetime
    finished_at: datetime
    error: str | None


class SchedulerStatusSchema(BaseModel):
    running: bool
    jobs: list[ScheduledJobSchema]
    failure_counts: dict[str, int]
    recent_outcomes: list[JobOutcomeSchema]
