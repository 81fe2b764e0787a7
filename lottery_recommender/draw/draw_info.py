"""Draw info resolver — next draw date and period (期号) for a lottery.

Two tiers: a per-lottery provider API when one is configured, otherwise a
computation from the lottery's draw weekdays. Provider problems are never
fatal; they only cause the computed path to be used.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

import aiohttp
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from lottery_recommender.config import settings
from lottery_recommender.db.crud import draw_result as draw_crud
from lottery_recommender.db.crud import lottery_type as lottery_crud
from lottery_recommender.draw.periods import next_period, synthesize_period
from lottery_recommender.draw.schedule import parse_schedule
from lottery_recommender.errors import DrawInfoParseError, LotteryNotFoundError
from lottery_recommender.formats import FORMATS

HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Accept": "application/json",
}


@dataclass(frozen=True)
class ProviderDrawInfo:
    """Canonical draw record extracted from a provider envelope."""

    period: str
    draw_date: datetime


@dataclass(frozen=True)
class DrawInfo:
    code: str
    name: str
    draw_date: datetime
    period: str
    is_draw_today: bool
    source: str  # "api" / "computed"


def _parse_draw_time(value, draw_hour: int) -> datetime:
    """Parse a provider date or datetime; bare dates get the draw hour."""
    text = str(value or "").strip()
    if not text:
        raise DrawInfoParseError("Missing draw date")
    for fmt in ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M:%S"):
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        day = datetime.strptime(text[:10], "%Y-%m-%d")
    except ValueError as e:
        raise DrawInfoParseError(f"Unparsable draw date {text!r}") from e
    return day.replace(hour=draw_hour)


def parse_flat_envelope(payload: dict, draw_hour: int = 20) -> ProviderDrawInfo:
    """``{"code": 0, "message": "...", "data": {"drawDate", "drawNumber"}}``"""
    if not isinstance(payload, dict):
        raise DrawInfoParseError("Payload is not an object")
    if str(payload.get("code")) != "0":
        raise DrawInfoParseError(
            f"Provider error {payload.get('code')}: {payload.get('message')}"
        )
    data = payload.get("data")
    if not isinstance(data, dict):
        raise DrawInfoParseError("Missing data object")

    period = str(data.get("drawNumber") or "").strip()
    if not period:
        raise DrawInfoParseError("Missing drawNumber")
    return ProviderDrawInfo(period=period, draw_date=_parse_draw_time(data.get("drawDate"), draw_hour))


def parse_pool_envelope(payload: dict, draw_hour: int = 20) -> ProviderDrawInfo:
    """``{"success": true, "errorCode": "0", "value": {"lastPoolDraw": {...}}}``"""
    if not isinstance(payload, dict):
        raise DrawInfoParseError("Payload is not an object")
    if str(payload.get("success")).lower() != "true":
        raise DrawInfoParseError(f"Provider reported failure: {payload.get('errorMessage')}")
    if str(payload.get("errorCode", "0")) != "0":
        raise DrawInfoParseError(f"Provider error code {payload.get('errorCode')}")

    value = payload.get("value")
    draw = value.get("lastPoolDraw") if isinstance(value, dict) else None
    if not isinstance(draw, dict):
        raise DrawInfoParseError("Missing value.lastPoolDraw")

    period = str(draw.get("lotteryDrawNum") or "").strip()
    if not period:
        raise DrawInfoParseError("Missing lotteryDrawNum")
    return ProviderDrawInfo(
        period=period, draw_date=_parse_draw_time(draw.get("lotteryDrawTime"), draw_hour)
    )


DRAW_INFO_PARSERS: dict[str, Callable[[dict, int], ProviderDrawInfo]] = {
    "fc_ssq": parse_flat_envelope,
    "tc_dlt": parse_pool_envelope,
}


def next_draw_datetime(now: datetime, weekdays: frozenset[int], draw_hour: int) -> datetime:
    """Today if it is a draw day and the draw has not happened, else the next draw day."""
    draw_today = now.replace(hour=draw_hour, minute=0, second=0, microsecond=0)
    if now.isoweekday() % 7 in weekdays and now < draw_today:
        return draw_today
    for offset in range(1, 8):
        candidate = draw_today + timedelta(days=offset)
        if candidate.isoweekday() % 7 in weekdays:
            return candidate
    raise ValueError("Empty weekday set")


class DrawInfoResolver:
    """Resolves the upcoming draw date and period for a lottery."""

    def __init__(
        self,
        parsers: dict[str, Callable[[dict, int], ProviderDrawInfo]] | None = None,
        draw_hour: int | None = None,
        timeout: float | None = None,
    ):
        self.parsers = parsers if parsers is not None else DRAW_INFO_PARSERS
        self.draw_hour = draw_hour if draw_hour is not None else settings.DRAW_HOUR
        self.timeout = timeout if timeout is not None else settings.DRAW_API_TIMEOUT

    async def _request_json(self, url: str) -> dict:
        async with aiohttp.ClientSession(headers=HEADERS) as client:
            async with client.get(
                url, timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as resp:
                if resp.status // 100 != 2:
                    raise DrawInfoParseError(f"Draw info API returned {resp.status}")
                return await resp.json(content_type=None)

    async def lookup(self, code: str, endpoint: str) -> ProviderDrawInfo | None:
        """Ask the provider API; None on any failure."""
        parser = self.parsers.get(code)
        if parser is None:
            logger.debug("[{}] No draw info parser registered, using computed schedule", code)
            return None
        try:
            payload = await self._request_json(endpoint)
            info = parser(payload, self.draw_hour)
        except (aiohttp.ClientError, asyncio.TimeoutError, DrawInfoParseError, ValueError) as e:
            logger.warning("[{}] Draw info API failed, falling back: {}", code, e)
            return None
        logger.debug("[{}] Draw info API: period={} date={}", code, info.period, info.draw_date)
        return info

    async def resolve(
        self,
        session: AsyncSession,
        code: str,
        schedule: str,
        endpoint: str | None = None,
        now: datetime | None = None,
    ) -> DrawInfo:
        now = now or datetime.now()
        lottery = await lottery_crud.get_by_code(session, code)
        if lottery is None:
            raise LotteryNotFoundError(code)

        weekdays = parse_schedule(schedule).weekdays
        fmt = FORMATS.get(code)
        draw_date = next_draw_datetime(now, weekdays, self.draw_hour)

        provider = await self.lookup(code, endpoint) if endpoint else None
        if provider is not None:
            if provider.draw_date > now:
                draw_date, period = provider.draw_date, provider.period
            else:
                # Provider reported the last completed draw
                period = next_period(provider.period, draw_date) or synthesize_period(
                    draw_date, weekdays, fmt
                )
            source = "api"
        else:
            latest = await draw_crud.get_latest(session, lottery.id)
            period = None
            if latest is not None:
                period = next_period(latest.period, draw_date)
            if period is None:
                period = synthesize_period(draw_date, weekdays, fmt)
            source = "computed"

        info = DrawInfo(
            code=code,
            name=lottery.name,
            draw_date=draw_date,
            period=period,
            is_draw_today=draw_date.date() == now.date(),
            source=source,
        )
        logger.info(
            "[{}] Next draw: date={} period={} today={} ({})",
            code, info.draw_date, info.period, info.is_draw_today, source,
        )
        return info
