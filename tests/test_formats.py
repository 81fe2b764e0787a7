import pytest

from lottery_recommender.errors import InvalidCombinationError, UnsupportedFormatError
from lottery_recommender.formats import (
    DLT,
    SSQ,
    get_format,
    is_valid_combination,
    split_combination,
    split_draw_numbers,
    validate_combination,
)


@pytest.mark.parametrize("text", [
    "01,05,13,22,29,33+07",
    "01,02,03,04,05,06+16",
    " 10,11,12,13,14,15+01 ",
])
def test_valid_ssq(text):
    assert validate_combination(text, SSQ) == text.strip()


@pytest.mark.parametrize("text", [
    "03,05,18,27,34+08,11",
    "01,02,03,04,35+01,12",
])
def test_valid_dlt(text):
    assert is_valid_combination(text, DLT)


@pytest.mark.parametrize("text,check", [
    ("01,05,13,22,29,33", "structure"),
    ("01,05,13,22,29,33+07+08", "structure"),
    ("01,05,,22,29,33+07", "structure"),
    ("01,05,13,22,29+07", "count"),
    ("01,05,13,22,29,33+07,08", "count"),
    ("1,05,13,22,29,33+07", "format"),
    ("01,05,13,22,29,AB+07", "format"),
    ("05,01,13,22,29,33+07", "order"),
    ("01,05,13,22,29,34+07", "range"),
    ("00,05,13,22,29,33+07", "range"),
    ("01,05,13,22,29,33+17", "range"),
    ("01,05,13,22,33,33+07", "duplicate"),
])
def test_invalid_ssq(text, check):
    with pytest.raises(InvalidCombinationError) as exc_info:
        validate_combination(text, SSQ)
    assert exc_info.value.check == check
    assert not is_valid_combination(text, SSQ)


def test_dlt_back_zone_rules():
    assert not is_valid_combination("03,05,18,27,34+11,08", DLT)
    assert not is_valid_combination("03,05,18,27,34+08,13", DLT)
    assert not is_valid_combination("03,05,18,27,34+08,08", DLT)


def test_get_format_unknown_code():
    assert get_format("tc_dlt") is DLT
    with pytest.raises(UnsupportedFormatError):
        get_format("game-x")


def test_split_helpers():
    assert split_combination("01,02+03") == (["01", "02"], ["03"])
    assert split_draw_numbers("03 05  18") == ["03", "05", "18"]
    assert split_draw_numbers("03,05,18") == ["03", "05", "18"]
    assert split_draw_numbers(None) == []


def test_describe_mentions_ranges():
    rule = DLT.describe()
    assert "01-35" in rule
    assert "01-12" in rule
    assert DLT.example in rule


def test_formats_are_hashable():
    assert len({SSQ, DLT, get_format("fc_ssq")}) == 2
    assert SSQ.ordinals == {2: 1, 4: 2, 0: 3}
    assert DLT.draws_per_week == 3
