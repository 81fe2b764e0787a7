import pytest

from conftest import FakeBackend
from lottery_recommender.db.crud import draw_result as draw_crud
from lottery_recommender.db.crud import lottery_type as lottery_crud
from lottery_recommender.db.crud import recommendation as rec_crud
from lottery_recommender.draw.draw_info import DrawInfoResolver
from lottery_recommender.errors import (
    LotteryNotFoundError,
    ResultFetchError,
    ScheduleError,
    UnsupportedFormatError,
)
from lottery_recommender.generator.number_generator import NumberGenerator
from lottery_recommender.scraper.result_fetcher import ResultFetcher
from lottery_recommender.scraper.scheduler import (
    FETCH_TASK_KEY,
    LotteryScheduler,
    generation_task_key,
)
from test_result_fetcher import dlt_payload

DLT_REPLY = "<NUMBER>03,05,18,27,34+08,11</NUMBER>"


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
async def scheduler(session_factory, lotteries, backend):
    scheduler = LotteryScheduler(
        session_factory,
        NumberGenerator(backend, max_retries=2, backoff=0, timeout=5),
        resolver=DrawInfoResolver(parsers={}),
        fetcher=ResultFetcher(base_url="https://results.example", app_key="k"),
        fetch_cron="0 30 21 * * *",
        history_size=10,
    )
    yield scheduler
    await scheduler.stop()


async def test_start_registers_jobs(scheduler, lotteries):
    await scheduler.start()

    assert scheduler.running
    expected = {
        generation_task_key(lotteries["fc_ssq"].id),
        generation_task_key(lotteries["tc_dlt"].id),
        FETCH_TASK_KEY,
    }
    assert set(scheduler.entries) == expected
    assert {job["id"] for job in scheduler.status()} == expected
    assert all(job["next_run"] for job in scheduler.status())


async def test_restart_replaces_engine(scheduler):
    await scheduler.start()
    await scheduler.start()
    assert len(scheduler.status()) == 3


async def test_stop(scheduler):
    await scheduler.start()
    await scheduler.stop()
    assert not scheduler.running
    assert scheduler.entries == {}
    assert scheduler.status() == []


async def test_start_rejects_bad_schedule(scheduler, session, lotteries):
    lotteries["fc_ssq"].schedule_cron = "0 0 9 * * funday"
    await session.commit()

    with pytest.raises(ScheduleError):
        await scheduler.start()
    assert not scheduler.running
    assert scheduler.entries == {}


async def test_reload_deactivated_lottery(scheduler, session, lotteries):
    await scheduler.start()
    dlt = lotteries["tc_dlt"]
    key = generation_task_key(dlt.id)

    dlt = await lottery_crud.update(session, dlt, {"is_active": False})
    await session.commit()
    await scheduler.reload(dlt)

    assert key not in scheduler.entries
    assert len(scheduler.status()) == 2


async def test_reload_changed_schedule(scheduler, session, lotteries):
    await scheduler.start()
    dlt = lotteries["tc_dlt"]
    key = generation_task_key(dlt.id)

    dlt = await lottery_crud.update(session, dlt, {"schedule_cron": "0 15 8 * * 2"})
    await session.commit()
    await scheduler.reload(dlt)

    job = next(job for job in scheduler.status() if job["id"] == key)
    assert "day_of_week='tue'" in job["trigger"]
    assert "hour='8'" in job["trigger"]
    assert len(scheduler.status()) == 3


async def test_reload_reactivates_lottery(scheduler, session, lotteries):
    ssq = lotteries["fc_ssq"]
    await lottery_crud.update(session, ssq, {"is_active": False})
    await session.commit()
    await scheduler.start()
    assert generation_task_key(ssq.id) not in scheduler.entries

    await lottery_crud.update(session, ssq, {"is_active": True})
    await session.commit()
    await scheduler.reload(ssq)
    assert generation_task_key(ssq.id) in scheduler.entries


async def test_reload_invalid_schedule_keeps_registry(scheduler, lotteries):
    await scheduler.start()
    dlt = lotteries["tc_dlt"]
    dlt.schedule_cron = "bad"
    with pytest.raises(ScheduleError):
        await scheduler.reload(dlt)
    assert generation_task_key(dlt.id) in scheduler.entries


async def test_reload_before_start_is_noop(scheduler, lotteries):
    await scheduler.reload(lotteries["tc_dlt"])
    assert scheduler.entries == {}


async def test_generation_job_records_success(scheduler, session_factory, lotteries, backend):
    backend.replies.append(DLT_REPLY)
    dlt = lotteries["tc_dlt"]
    key = generation_task_key(dlt.id)

    await scheduler._run_job(key, scheduler._generate_job, dlt.id)

    outcome = scheduler.recent_outcomes[-1]
    assert outcome.task_key == key
    assert outcome.status == "success"
    assert outcome.error is None
    async with session_factory() as session:
        recs = await rec_crud.list_recommendations(session, code="tc_dlt")
    assert [r.numbers for r in recs] == ["03,05,18,27,34+08,11"]
    assert recs[0].target_period


async def test_generation_job_failure_is_recorded(scheduler, lotteries):
    seen = []

    def broken_listener(outcome):
        raise RuntimeError("listener down")

    scheduler.add_listener(broken_listener)
    scheduler.add_listener(seen.append)
    key = generation_task_key(lotteries["tc_dlt"].id)

    await scheduler._run_job(key, scheduler._generate_job, lotteries["tc_dlt"].id)

    assert [o.status for o in seen] == ["error"]
    assert "failed after 2 attempts" in seen[0].error
    assert scheduler.failure_counts() == {key: 1}


async def test_generation_job_skips_inactive(scheduler, session, lotteries, backend):
    dlt = lotteries["tc_dlt"]
    await lottery_crud.update(session, dlt, {"is_active": False})
    await session.commit()

    result = await scheduler._generate_job(dlt.id)
    assert result == []
    assert backend.calls == []


async def test_fetch_job_partial_outcome(scheduler, monkeypatch):
    async def fake_request(lottery_type):
        if lottery_type.code == "fc_ssq":
            raise ResultFetchError("Results API returned 500")
        return dlt_payload()

    monkeypatch.setattr(scheduler.fetcher, "_request", fake_request)
    await scheduler._run_job(FETCH_TASK_KEY, scheduler._fetch_job)

    outcome = scheduler.recent_outcomes[-1]
    assert outcome.status == "partial"
    assert "fc_ssq" in outcome.error
    assert scheduler.failure_counts() == {FETCH_TASK_KEY: 1}


async def test_history_is_bounded(scheduler):
    async def noop():
        return None

    for _ in range(15):
        await scheduler._run_job("noop", noop)
    assert len(scheduler.recent_outcomes) == 10


async def test_trigger_generation_batch(scheduler, lotteries, backend):
    backend.replies.append(
        "<NUMBER>03,05,18,27,34+08,11</NUMBER><NUMBER>01,02,03,04,05+01,02</NUMBER>"
    )
    recs = await scheduler.trigger_generation(lotteries["tc_dlt"].id, count=2)
    assert [r.numbers for r in recs] == ["03,05,18,27,34+08,11", "01,02,03,04,05+01,02"]
    assert len({r.target_period for r in recs}) == 1


async def test_trigger_generation_unknown_lottery(scheduler):
    with pytest.raises(LotteryNotFoundError):
        await scheduler.trigger_generation(999)


async def test_trigger_fetch(scheduler, lotteries, monkeypatch):
    async def fake_request(lottery_type):
        return dlt_payload()

    monkeypatch.setattr(scheduler.fetcher, "_request", fake_request)
    draw = await scheduler.trigger_fetch(lotteries["tc_dlt"].id)
    assert draw.period == "24099"


async def test_trigger_fetch_requires_results_api(scheduler, session, lotteries):
    await lottery_crud.update(session, lotteries["tc_dlt"], {"results_api_id": 0})
    await session.commit()
    with pytest.raises(ResultFetchError):
        await scheduler.trigger_fetch(lotteries["tc_dlt"].id)


async def test_trigger_fetch_keeps_result_when_analysis_fails(
    scheduler, session, session_factory, monkeypatch
):
    fc3d = await lottery_crud.create(session, {
        "code": "fc_3d",
        "name": "福彩3D",
        "schedule_cron": "0 0 9 * * *",
        "model_name": "test-model",
        "results_api_id": 12,
    })
    await session.commit()

    async def fake_request(lottery_type):
        return dlt_payload()

    monkeypatch.setattr(scheduler.fetcher, "_request", fake_request)
    with pytest.raises(UnsupportedFormatError):
        await scheduler.trigger_fetch(fc3d.id)

    async with session_factory() as fresh:
        assert await draw_crud.count_for_period(fresh, fc3d.id, "24099") == 1
