"""Draw period (期号) arithmetic.

Periods are ``YY`` + a 3-digit sequence within the year, e.g. ``24099``.
Some providers prefix the full year (``2024099``); only the trailing three
digits are treated as the sequence.
"""

from datetime import date, datetime

from lottery_recommender.config import settings
from lottery_recommender.formats import LotteryFormat


def _year_prefix(draw_date: date | datetime) -> str:
    return draw_date.strftime("%y")


def synthesize_period(
    draw_date: date | datetime,
    weekdays: frozenset[int],
    fmt: LotteryFormat | None = None,
) -> str:
    """Derive a period from the ISO week and the draw's slot within that week.

    The slot comes from the format's weekday ordinals when the weekday is
    mapped there; otherwise from the weekday's position in the schedule,
    counting from Monday.
    """
    iso_year, iso_week, _ = draw_date.isocalendar()
    weekday = draw_date.isoweekday() % 7  # 0=Sunday

    ordinals = fmt.ordinals if fmt is not None else {}
    if weekday in ordinals:
        ordinal = ordinals[weekday]
        per_week = fmt.draws_per_week
    else:
        monday_first = sorted(weekdays | {weekday}, key=lambda d: (d + 6) % 7)
        ordinal = monday_first.index(weekday) + 1
        per_week = max(len(weekdays), 1)

    sequence = (iso_week - 1) * per_week + ordinal
    return f"{iso_year % 100:02d}{sequence:03d}"


def next_period(
    previous: str,
    draw_date: date | datetime,
    rollover_threshold: int | None = None,
) -> str | None:
    """Increment a period, resetting to ``YY001`` when a new year starts.

    The reset only happens once the previous year reached
    ``rollover_threshold`` draws, so a late-December draw dated into the
    new year does not restart numbering early. Returns None when the
    previous period cannot be parsed.
    """
    if rollover_threshold is None:
        rollover_threshold = settings.PERIOD_ROLLOVER_THRESHOLD

    previous = (previous or "").strip()
    if len(previous) < 4 or not previous.isdigit():
        return None

    year_part, sequence = previous[:-3], int(previous[-3:])
    current_year = _year_prefix(draw_date)

    if year_part[-2:] != current_year and sequence >= rollover_threshold:
        if len(year_part) == 4:
            return f"{draw_date.year}001"
        return f"{current_year}001"
    return f"{year_part}{sequence + 1:03d}"
