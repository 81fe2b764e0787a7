"""Draw weekday extraction and APScheduler triggers for schedule cron expressions.

Lottery schedules use cron weekday numbering (0 or 7 = Sunday). APScheduler's
``CronTrigger`` numbers weekdays from Monday, so numeric weekdays are rewritten
as names before building a trigger.
"""

from dataclasses import dataclass

from apscheduler.triggers.cron import CronTrigger

from lottery_recommender.errors import ScheduleError

WEEKDAY_NAMES = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")
_NAME_TO_DAY = {name: i for i, name in enumerate(WEEKDAY_NAMES)}
ALL_WEEKDAYS = frozenset(range(7))


@dataclass(frozen=True)
class Schedule:
    """A parsed 5- or 6-field cron expression."""

    expression: str
    second: str
    minute: str
    hour: str
    day: str
    month: str
    weekdays: frozenset[int]  # 0=Sunday

    @property
    def day_of_week(self) -> str:
        """APScheduler day_of_week field for the weekday set."""
        if self.weekdays == ALL_WEEKDAYS:
            return "*"
        # Monday first, Sunday last
        ordered = sorted(self.weekdays, key=lambda d: (d + 6) % 7)
        return ",".join(WEEKDAY_NAMES[d] for d in ordered)

    def to_trigger(self) -> CronTrigger:
        try:
            return CronTrigger(
                second=self.second,
                minute=self.minute,
                hour=self.hour,
                day=self.day,
                month=self.month,
                day_of_week=self.day_of_week,
            )
        except ValueError as e:
            raise ScheduleError(f"Invalid cron expression {self.expression!r}: {e}") from e


def _weekday_value(token: str, expression: str) -> int:
    token = token.strip().lower()
    if token.isdigit():
        value = int(token)
        if value > 7:
            raise ScheduleError(f"Weekday {token} out of range in {expression!r}")
        return value % 7
    if token[:3] in _NAME_TO_DAY:
        return _NAME_TO_DAY[token[:3]]
    raise ScheduleError(f"Unknown weekday {token!r} in {expression!r}")


def parse_weekdays(field_value: str, expression: str = "") -> frozenset[int]:
    """Parse a cron day-of-week field into a set of weekdays (0=Sunday)."""
    expression = expression or field_value
    days: set[int] = set()

    for part in field_value.split(","):
        part = part.strip()
        if not part:
            raise ScheduleError(f"Empty weekday entry in {expression!r}")

        step = 1
        if "/" in part:
            part, step_str = part.split("/", 1)
            if not step_str.isdigit() or int(step_str) == 0:
                raise ScheduleError(f"Invalid weekday step in {expression!r}")
            step = int(step_str)

        if part in ("*", "?"):
            start, end = 0, 6
        elif "-" in part:
            lo, hi = part.split("-", 1)
            start = _weekday_value(lo, expression)
            # "5-7" means Friday through Sunday
            end = 7 if hi.strip() == "7" else _weekday_value(hi, expression)
            if start > end:
                raise ScheduleError(f"Descending weekday range in {expression!r}")
        else:
            days.add(_weekday_value(part, expression))
            continue

        days.update(d % 7 for d in range(start, end + 1, step))

    if not days:
        raise ScheduleError(f"No draw weekdays in {expression!r}")
    return frozenset(days)


def parse_schedule(expression: str) -> Schedule:
    """Parse a 6-field (with seconds) or 5-field cron expression."""
    if not expression or not expression.strip():
        raise ScheduleError("Empty cron expression")

    fields = expression.split()
    if len(fields) == 6:
        second, minute, hour, day, month, dow = fields
    elif len(fields) == 5:
        second = "0"
        minute, hour, day, month, dow = fields
    else:
        raise ScheduleError(
            f"Expected 5 or 6 cron fields, got {len(fields)}: {expression!r}"
        )

    if day == "?":
        day = "*"

    return Schedule(
        expression=expression,
        second=second,
        minute=minute,
        hour=hour,
        day=day,
        month=month,
        weekdays=parse_weekdays(dow, expression),
    )


def build_trigger(expression: str) -> CronTrigger:
    """Parse and validate a cron expression into an APScheduler trigger."""
    return parse_schedule(expression).to_trigger()
