import pytest

from conftest import FakeBackend
from lottery_recommender.errors import (
    BackendTransportError,
    GenerationFailed,
    InvalidCombinationError,
    UnsupportedFormatError,
)
from lottery_recommender.generator import number_generator
from lottery_recommender.generator.number_generator import NumberGenerator, extract_combinations

GOOD = "03,05,18,27,34+08,11"
OTHER = "01,02,03,04,05+01,02"
THIRD = "07,14,21,28,35+03,09"


def make_generator(replies):
    backend = FakeBackend(replies)
    return NumberGenerator(backend, max_retries=3, backoff=0, timeout=5), backend


def test_extract_combinations():
    text = f"好的<NUMBER> {GOOD} </NUMBER>\n<NUMBER>{OTHER}</NUMBER>"
    assert extract_combinations(text) == [GOOD, OTHER]
    assert extract_combinations("") == []


async def test_generate_first_attempt():
    generator, backend = make_generator([f"<NUMBER>{GOOD}</NUMBER>"])
    assert await generator.generate("tc_dlt", "test-model") == GOOD
    assert len(backend.calls) == 1
    call = backend.calls[0]
    assert call["model"] == "test-model"
    assert call["temperature"] == 0.7
    assert call["timeout"] == 5
    assert "01-35" in call["system_prompt"]


async def test_generate_retries_transport_and_invalid_replies():
    generator, backend = make_generator([
        BackendTransportError("down"),
        "no marker here",
        "<NUMBER>05,03,18,27,34+08,11</NUMBER>",
        f"<NUMBER>{GOOD}</NUMBER>",
    ])
    generator.max_retries = 4
    assert await generator.generate("tc_dlt", "test-model") == GOOD
    assert len(backend.calls) == 4


async def test_generate_gives_up_after_max_retries():
    generator, backend = make_generator([
        "<NUMBER>01,02</NUMBER>",
        "<NUMBER>01,02</NUMBER>",
        "<NUMBER>01,02</NUMBER>",
        f"<NUMBER>{GOOD}</NUMBER>",
    ])
    with pytest.raises(GenerationFailed) as exc_info:
        await generator.generate("tc_dlt", "test-model")
    assert exc_info.value.attempts == 3
    assert isinstance(exc_info.value.last_error, InvalidCombinationError)
    assert len(backend.calls) == 3


async def test_generate_backoff_is_linear(monkeypatch):
    delays = []

    async def fake_sleep(delay):
        delays.append(delay)

    monkeypatch.setattr(number_generator.asyncio, "sleep", fake_sleep)
    backend = FakeBackend(["<NUMBER>bad</NUMBER>"] * 3)
    generator = NumberGenerator(backend, max_retries=3, backoff=1.0, timeout=5)

    with pytest.raises(GenerationFailed):
        await generator.generate("tc_dlt", "test-model")
    assert delays == [1.0, 2.0]
    assert len(backend.calls) == 3


async def test_generate_reports_transport_error_first():
    generator, _ = make_generator([
        BackendTransportError("timeout"),
        "<NUMBER>bad</NUMBER>",
        "<NUMBER>bad</NUMBER>",
    ])
    with pytest.raises(GenerationFailed) as exc_info:
        await generator.generate("tc_dlt", "test-model")
    assert isinstance(exc_info.value.last_error, BackendTransportError)


async def test_generate_unsupported_format():
    generator, backend = make_generator([])
    with pytest.raises(UnsupportedFormatError):
        await generator.generate("game-x", "test-model")
    assert backend.calls == []


async def test_batch_dedups_and_tops_up():
    generator, backend = make_generator([
        f"<NUMBER>{GOOD}</NUMBER><NUMBER>{GOOD}</NUMBER><NUMBER>01,02</NUMBER>",
        f"<NUMBER>{OTHER}</NUMBER>",
        f"<NUMBER>{THIRD}</NUMBER>",
    ])
    numbers = await generator.generate_batch("tc_dlt", "test-model", 3)
    assert numbers == [GOOD, OTHER, THIRD]
    assert backend.calls[0]["temperature"] == 0.9
    assert backend.calls[0]["timeout"] == 10
    assert len(backend.calls) == 3


async def test_batch_single_request_enough():
    generator, backend = make_generator([
        f"<NUMBER>{GOOD}</NUMBER>\n<NUMBER>{OTHER}</NUMBER>\n<NUMBER>{THIRD}</NUMBER>",
    ])
    assert await generator.generate_batch("tc_dlt", "test-model", 2) == [GOOD, OTHER]
    assert len(backend.calls) == 1


async def test_batch_returns_partial_when_top_up_fails():
    generator, _ = make_generator([f"<NUMBER>{GOOD}</NUMBER>"])
    assert await generator.generate_batch("tc_dlt", "test-model", 3) == [GOOD]


async def test_batch_raises_when_nothing_generated():
    generator, _ = make_generator([BackendTransportError("down")])
    with pytest.raises(GenerationFailed):
        await generator.generate_batch("tc_dlt", "test-model", 2)


async def test_batch_stops_on_repeated_duplicates():
    generator, backend = make_generator(
        [f"<NUMBER>{GOOD}</NUMBER>"] + [f"<NUMBER>{GOOD}</NUMBER>"] * 10
    )
    assert await generator.generate_batch("tc_dlt", "test-model", 2) == [GOOD]
    # batch call plus count * max_retries duplicate singles
    assert len(backend.calls) == 1 + 2 * 3


async def test_batch_of_one_is_single_generation():
    generator, backend = make_generator([f"<NUMBER>{GOOD}</NUMBER>"])
    assert await generator.generate_batch("tc_dlt", "test-model", 1) == [GOOD]
    assert backend.calls[0]["temperature"] == 0.7
