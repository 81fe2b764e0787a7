"""APScheduler cron jobs for recommendation generation and result fetching."""

import asyncio
from collections import Counter, deque
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from loguru import logger
from sqlalchemy.ext.asyncio import async_sessionmaker

from lottery_recommender.config import settings
from lottery_recommender.db.crud import lottery_type as lottery_crud
from lottery_recommender.db.models.draw_result import DrawResult
from lottery_recommender.db.models.lottery_type import LotteryType
from lottery_recommender.db.models.recommendation import Recommendation
from lottery_recommender.draw.draw_info import DrawInfoResolver
from lottery_recommender.draw.schedule import build_trigger
from lottery_recommender.errors import LotteryNotFoundError, ResultFetchError
from lottery_recommender.generator.number_generator import NumberGenerator
from lottery_recommender.scraper.result_fetcher import FetchSummary, ResultFetcher
from lottery_recommender.services.recommendation_service import generate_recommendations

FETCH_TASK_KEY = "fetch_all_results"


def generation_task_key(lottery_type_id: int) -> str:
    return f"generate_{lottery_type_id}"


@dataclass(frozen=True)
class JobOutcome:
    task_key: str
    status: str  # success / partial / error
    started_at: datetime
    finished_at: datetime
    error: str | None = None


OutcomeListener = Callable[[JobOutcome], None]


class LotteryScheduler:
    """Owns the cron engine and the task registry for every active lottery."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        generator: NumberGenerator,
        resolver: DrawInfoResolver | None = None,
        fetcher: ResultFetcher | None = None,
        fetch_cron: str | None = None,
        history_size: int | None = None,
    ):
        self.session_factory = session_factory
        self.generator = generator
        self.resolver = resolver or DrawInfoResolver()
        self.fetcher = fetcher or ResultFetcher()
        self.fetch_cron = fetch_cron or settings.RESULT_FETCH_CRON

        self._lock = asyncio.Lock()
        self._engine: AsyncIOScheduler | None = None
        self._entries: dict[str, str] = {}
        self._history: deque[JobOutcome] = deque(
            maxlen=history_size or settings.JOB_HISTORY_SIZE
        )
        self._listeners: list[OutcomeListener] = []

    @property
    def running(self) -> bool:
        return self._engine is not None and self._engine.running

    @property
    def entries(self) -> dict[str, str]:
        return dict(self._entries)

    # --- Lifecycle ---

    async def start(self) -> None:
        """(Re)build the engine from the active lottery types and start it.

        Every trigger is built before anything is registered, so a bad cron
        expression raises ScheduleError and leaves no engine running.
        """
        async with self._lock:
            if self._engine is not None:
                self._engine.shutdown(wait=False)
                self._engine = None
                self._entries.clear()

            async with self.session_factory() as session:
                lotteries = [
                    (lt.id, lt.code, lt.schedule_cron)
                    for lt in await lottery_crud.list_active(session)
                ]

            triggers = {
                lottery_type_id: build_trigger(cron)
                for lottery_type_id, _, cron in lotteries
            }
            fetch_trigger = build_trigger(self.fetch_cron)

            engine = AsyncIOScheduler()
            for lottery_type_id, code, cron in lotteries:
                self._add_generation_job(engine, lottery_type_id, triggers[lottery_type_id])
                logger.info("[{}] Generation scheduled: {}", code, cron)
            self._add_job(engine, FETCH_TASK_KEY, self._fetch_job, fetch_trigger)
            logger.info("Result fetch scheduled: {}", self.fetch_cron)

            engine.start()
            self._engine = engine
            logger.info("Scheduler started with {} jobs", len(engine.get_jobs()))

    async def stop(self) -> None:
        """Shut down without waiting; running job coroutines finish on their own."""
        async with self._lock:
            if self._engine is None:
                return
            self._engine.shutdown(wait=False)
            self._engine = None
            self._entries.clear()
            logger.info("Scheduler stopped")

    async def reload(self, lottery_type: LotteryType) -> None:
        """Replace the generation job of one lottery after it was edited."""
        task_key = generation_task_key(lottery_type.id)
        async with self._lock:
            trigger = build_trigger(lottery_type.schedule_cron) if lottery_type.is_active else None
            if self._engine is None:
                logger.debug("[{}] Scheduler not running, reload skipped", lottery_type.code)
                return

            job_id = self._entries.pop(task_key, None)
            if job_id is not None:
                try:
                    self._engine.remove_job(job_id)
                except JobLookupError:
                    logger.warning("Job {} already gone", job_id)

            if trigger is None:
                logger.info("[{}] Generation job removed (inactive)", lottery_type.code)
                return
            self._add_generation_job(self._engine, lottery_type.id, trigger)
            logger.info(
                "[{}] Generation job reloaded: {}", lottery_type.code, lottery_type.schedule_cron
            )

    def _add_generation_job(
        self, engine: AsyncIOScheduler, lottery_type_id: int, trigger: CronTrigger
    ) -> None:
        self._add_job(
            engine,
            generation_task_key(lottery_type_id),
            self._generate_job,
            trigger,
            args=[lottery_type_id],
        )

    def _add_job(
        self,
        engine: AsyncIOScheduler,
        task_key: str,
        func,
        trigger: CronTrigger,
        args: list | None = None,
    ) -> None:
        job = engine.add_job(
            self._run_job,
            trigger,
            args=[task_key, func, *(args or [])],
            id=task_key,
            name=task_key,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._entries[task_key] = job.id

    # --- Job bodies ---

    async def _run_job(self, task_key: str, func, *args) -> None:
        """Run one job body and record its outcome. Never raises."""
        started_at = datetime.now()
        status, error = "success", None
        try:
            result = await func(*args)
            if isinstance(result, FetchSummary) and result.failed:
                status = "partial"
                error = "; ".join(f"{code}: {msg}" for code, msg in result.failed.items())
        except Exception as e:
            status, error = "error", str(e)[:1000]
            logger.error("Scheduled job {} failed: {}", task_key, e)

        self._record(JobOutcome(task_key, status, started_at, datetime.now(), error))

    async def _generate_job(self, lottery_type_id: int) -> list[Recommendation]:
        async with self.session_factory() as session:
            lottery_type = await lottery_crud.get_by_id(session, lottery_type_id)
            if lottery_type is None:
                raise LotteryNotFoundError(lottery_type_id)
            if not lottery_type.is_active:
                logger.info("[{}] Inactive, generation skipped", lottery_type.code)
                return []
            try:
                recs = await generate_recommendations(
                    session, lottery_type, self.resolver, self.generator
                )
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            return recs

    async def _fetch_job(self) -> FetchSummary:
        async with self.session_factory() as session:
            return await self.fetcher.fetch_all_active(session)

    # --- Manual operations ---

    async def trigger_generation(
        self, lottery_type_id: int, count: int = 1
    ) -> list[Recommendation]:
        """Generate immediately outside the schedule. Errors propagate."""
        async with self.session_factory() as session:
            lottery_type = await lottery_crud.get_by_id(session, lottery_type_id)
            if lottery_type is None:
                raise LotteryNotFoundError(lottery_type_id)
            try:
                recs = await generate_recommendations(
                    session, lottery_type, self.resolver, self.generator, count
                )
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            return recs

    async def trigger_fetch(self, lottery_type_id: int) -> DrawResult:
        """Fetch, store and analyse the latest result of one lottery.

        An analysis error is raised after the result itself was committed.
        """
        async with self.session_factory() as session:
            lottery_type = await lottery_crud.get_by_id(session, lottery_type_id)
            if lottery_type is None:
                raise LotteryNotFoundError(lottery_type_id)
            if lottery_type.results_api_id <= 0:
                raise ResultFetchError(f"{lottery_type.code} has no results API id configured")
            try:
                draw = await self.fetcher.fetch_and_process(session, lottery_type)
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            return draw

    # --- Observability ---

    def add_listener(self, listener: OutcomeListener) -> None:
        self._listeners.append(listener)

    def _record(self, outcome: JobOutcome) -> None:
        self._history.append(outcome)
        for listener in self._listeners:
            try:
                listener(outcome)
            except Exception as e:
                logger.warning("Job outcome listener failed: {}", e)

    @property
    def recent_outcomes(self) -> list[JobOutcome]:
        return list(self._history)

    def failure_counts(self) -> dict[str, int]:
        """Error and partial outcomes per task key in the retained history."""
        return dict(Counter(o.task_key for o in self._history if o.status != "success"))

    def status(self) -> list[dict]:
        """Registered jobs with their next run time."""
        if self._engine is None:
            return []

        jobs = []
        for job in self._engine.get_jobs():
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": str(job.next_run_time) if getattr(job, "next_run_time", None) else None,
                "trigger": str(job.trigger),
            })
        return jobs
