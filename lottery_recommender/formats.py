"""Lottery format rules and prize tier tables.

Adding a lottery is a matter of registering another ``LotteryFormat`` in
``FORMATS``; generation, validation and win analysis all read from it.
"""

import re
from dataclasses import dataclass

from lottery_recommender.errors import InvalidCombinationError, UnsupportedFormatError

NO_WIN = "未中奖"
UNKNOWN = "未知"
MALFORMED = "格式错误"

_TWO_DIGITS = re.compile(r"^\d{2}$")
_DRAW_SEPARATORS = re.compile(r"[\s,]+")


@dataclass(frozen=True)
class TierRule:
    """One row of a prize table: any (main, special) match pair in ``combos``."""

    label: str
    amount: float
    combos: frozenset[tuple[int, int]]

    def matches(self, main_hits: int, special_hits: int) -> bool:
        return (main_hits, special_hits) in self.combos


@dataclass(frozen=True)
class LotteryFormat:
    code: str
    name: str
    main_count: int
    main_max: int
    special_count: int
    special_max: int
    example: str
    # (weekday 0=Sunday, draw ordinal within the ISO week) pairs
    weekday_ordinals: tuple[tuple[int, int], ...] = ()
    tiers: tuple[TierRule, ...] = ()

    @property
    def ordinals(self) -> dict[int, int]:
        return dict(self.weekday_ordinals)

    @property
    def draws_per_week(self) -> int:
        return len(self.weekday_ordinals)

    def describe(self) -> str:
        """Human readable rule used in generation prompts."""
        return (
            f"{self.code}：{self.main_count}个前区号码(01-{self.main_max:02d})"
            f"+{self.special_count}个后区号码(01-{self.special_max:02d})，"
            f"格式如 {self.example}"
        )


def _tier(label: str, amount: float, *combos: tuple[int, int]) -> TierRule:
    return TierRule(label=label, amount=amount, combos=frozenset(combos))


# 双色球: 6 red (01-33) + 1 blue (01-16), drawn Tue/Thu/Sun
SSQ = LotteryFormat(
    code="fc_ssq",
    name="双色球",
    main_count=6,
    main_max=33,
    special_count=1,
    special_max=16,
    example="01,05,13,22,29,33+07",
    weekday_ordinals=((2, 1), (4, 2), (0, 3)),
    tiers=(
        _tier("一等奖", 5_000_000, (6, 1)),
        _tier("二等奖", 100_000, (6, 0)),
        _tier("三等奖", 3_000, (5, 1)),
        _tier("四等奖", 200, (5, 0), (4, 1)),
        _tier("五等奖", 10, (4, 0), (3, 1)),
        _tier("六等奖", 5, (2, 1), (1, 1), (0, 1)),
    ),
)

# 大乐透: 5 front (01-35) + 2 back (01-12), drawn Mon/Wed/Sat
DLT = LotteryFormat(
    code="tc_dlt",
    name="大乐透",
    main_count=5,
    main_max=35,
    special_count=2,
    special_max=12,
    example="03,05,18,27,34+08,11",
    weekday_ordinals=((1, 1), (3, 2), (6, 3)),
    tiers=(
        _tier("一等奖", 10_000_000, (5, 2)),
        _tier("二等奖", 200_000, (5, 1)),
        _tier("三等奖", 10_000, (5, 0)),
        _tier("四等奖", 3_000, (4, 2)),
        _tier("五等奖", 300, (4, 1)),
        _tier("六等奖", 200, (3, 2)),
        _tier("七等奖", 100, (4, 0)),
        _tier("八等奖", 15, (3, 1), (2, 2)),
        _tier("九等奖", 5, (3, 0), (1, 2), (2, 1), (0, 2)),
    ),
)

FORMATS: dict[str, LotteryFormat] = {fmt.code: fmt for fmt in (SSQ, DLT)}


def get_format(code: str) -> LotteryFormat:
    fmt = FORMATS.get(code)
    if fmt is None:
        raise UnsupportedFormatError(code)
    return fmt


def split_combination(text: str) -> tuple[list[str], list[str]]:
    """Split ``"01,02+03"`` into its main and special groups.

    Raises InvalidCombinationError when the text is not exactly two
    non-empty comma separated groups joined by ``+``.
    """
    parts = text.strip().split("+")
    if len(parts) != 2:
        raise InvalidCombinationError("structure", text)
    main = [n.strip() for n in parts[0].split(",")]
    special = [n.strip() for n in parts[1].split(",")]
    if any(not n for n in main) or any(not n for n in special):
        raise InvalidCombinationError("structure", text)
    return main, special


def split_draw_numbers(text: str | None) -> list[str]:
    """Split official draw numbers (``"03 05 18"`` or ``"03,05,18"``)."""
    if not text:
        return []
    return [n for n in _DRAW_SEPARATORS.split(text.strip()) if n]


def _check_group(
    values: list[str], expected: int, max_num: int, text: str
) -> None:
    if len(values) != expected:
        raise InvalidCombinationError("count", text)

    if not all(_TWO_DIGITS.match(v) for v in values):
        raise InvalidCombinationError("format", text)
    nums = [int(v) for v in values]
    if any(a > b for a, b in zip(nums, nums[1:])):
        raise InvalidCombinationError("order", text)

    if any(n < 1 or n > max_num for n in nums):
        raise InvalidCombinationError("range", text)

    if len(set(nums)) != len(nums):
        raise InvalidCombinationError("duplicate", text)


def validate_combination(text: str, fmt: LotteryFormat) -> str:
    """Validate a generated combination against a format.

    Checks run in order: structure, group counts, two-digit ascending
    values, numeric ranges, duplicates. Returns the stripped text.
    """
    text = text.strip()
    main, special = split_combination(text)

    if len(main) != fmt.main_count or len(special) != fmt.special_count:
        raise InvalidCombinationError("count", text)
    _check_group(main, fmt.main_count, fmt.main_max, text)
    _check_group(special, fmt.special_count, fmt.special_max, text)
    return text


def is_valid_combination(text: str, fmt: LotteryFormat) -> bool:
    try:
        validate_combination(text, fmt)
    except InvalidCombinationError:
        return False
    return True
