"""Official draw results via the 极速数据 lottery API.

Response shape::

    {"status": 0, "msg": "ok", "result": {
        "caipiaoid": 14, "issueno": "24099", "number": "03 05 18 27 40",
        "refernumber": "08 12", "opendate": "2024-08-26", "officialopendate": "...",
        "deadline": "...", "saleamount": 312345678, "totalmoney": "812345678.00",
        "prize": [{"prizename": "一等奖", "require": "5+2", "num": 3, "singlebonus": 10000000}]}}
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime

import aiohttp
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from lottery_recommender.config import settings
from lottery_recommender.db.crud import draw_result as draw_crud
from lottery_recommender.db.crud import lottery_type as lottery_crud
from lottery_recommender.db.models.draw_result import DrawResult
from lottery_recommender.db.models.lottery_type import LotteryType
from lottery_recommender.errors import LotteryNotFoundError, ResultFetchError, ResultParseError
from lottery_recommender.services.win_analyzer import reanalyze_pending, reanalyze_period

PRIZE_TIERS = (
    "一等奖", "二等奖", "三等奖", "四等奖", "五等奖",
    "六等奖", "七等奖", "八等奖", "九等奖",
)
ADD_ON = "追加"

HEADERS = {
    "Content-Type": "application/x-www-form-urlencoded",
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
}


def prize_tier_key(prize_name: str) -> str | None:
    """Map a provider prize name to ``tier_N`` or ``tier_N_add``."""
    name = prize_name or ""
    for n, label in enumerate(PRIZE_TIERS, start=1):
        if label in name and ADD_ON not in name:
            return f"tier_{n}"
        if label in name and ADD_ON in name:
            return f"tier_{n}_add"
    return None


def _to_float(value) -> float:
    if value is None:
        return 0.0
    try:
        return float(str(value).replace(",", "").strip() or 0)
    except ValueError:
        return 0.0


def _to_int(value) -> int:
    return int(_to_float(value))


def build_prize_breakdown(prizes: list[dict] | None) -> dict:
    """Per-tier amount and winner count; unknown prize names are dropped."""
    breakdown = {}
    for prize in prizes or []:
        if not isinstance(prize, dict):
            continue
        key = prize_tier_key(str(prize.get("prizename", "")))
        if key is None:
            logger.debug("Ignoring unknown prize entry: {}", prize)
            continue
        breakdown[key] = {
            "amount": _to_float(prize.get("singlebonus")),
            "winners": _to_int(prize.get("num")),
            "require": prize.get("require"),
        }
    return breakdown


def parse_result(payload: dict, lottery_type_id: int, results_api_id: int) -> dict:
    """Parse an API envelope into a row dict for ``draw_result.upsert``."""
    if not isinstance(payload, dict):
        raise ResultParseError("Payload is not an object")
    if str(payload.get("status")) != "0":
        raise ResultFetchError(f"API error {payload.get('status')}: {payload.get('msg')}")

    result = payload.get("result")
    if not isinstance(result, dict):
        raise ResultParseError("Missing result object")

    period = str(result.get("issueno") or "").strip()
    if not period:
        raise ResultParseError("Missing issueno")

    try:
        draw_date = datetime.strptime(str(result.get("opendate", ""))[:10], "%Y-%m-%d")
    except ValueError as e:
        raise ResultParseError(f"Unparsable opendate {result.get('opendate')!r}") from e

    prizes = result.get("prize") or []
    if not isinstance(prizes, list):
        prizes = []
    if not prizes:
        logger.warning("Period {} has no prize information", period)

    return {
        "lottery_type_id": lottery_type_id,
        "results_api_id": results_api_id,
        "period": period,
        "main_numbers": str(result.get("number") or "").strip(),
        "special_numbers": str(result.get("refernumber") or "").strip(),
        "draw_date": draw_date,
        "sale_amount": _to_float(result.get("saleamount")),
        "pool_amount": _to_float(result.get("totalmoney")),
        "official_open_date": result.get("officialopendate"),
        "deadline": result.get("deadline"),
        "prize_info": prizes,
        "prize_breakdown": build_prize_breakdown(prizes),
    }


@dataclass
class FetchSummary:
    processed: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)


class ResultFetcher:
    """Fetches, stores and analyses the latest draw for each lottery."""

    def __init__(
        self,
        base_url: str | None = None,
        app_key: str | None = None,
        timeout: float | None = None,
    ):
        self.base_url = base_url or settings.RESULTS_API_BASE_URL
        self.app_key = app_key if app_key is not None else settings.RESULTS_API_APP_KEY
        self.timeout = timeout or settings.RESULTS_API_TIMEOUT

    async def _request(self, lottery_type: LotteryType) -> dict:
        url = lottery_type.results_endpoint or self.base_url
        params = {"appkey": self.app_key, "caipiaoid": str(lottery_type.results_api_id)}
        try:
            async with aiohttp.ClientSession(headers=HEADERS) as client:
                async with client.post(
                    url,
                    params=params,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as resp:
                    if resp.status != 200:
                        raise ResultFetchError(f"Results API returned {resp.status}")
                    return await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ResultFetchError(f"Results API request failed: {e!r}") from e
        except ValueError as e:
            raise ResultParseError(f"Results API returned invalid JSON: {e}") from e

    async def fetch_latest(self, lottery_type: LotteryType) -> dict:
        if lottery_type.results_api_id <= 0:
            raise ResultFetchError(f"{lottery_type.code} has no results API id configured")

        logger.info("[{}] Fetching latest draw result", lottery_type.code)
        payload = await self._request(lottery_type)
        draw = parse_result(payload, lottery_type.id, lottery_type.results_api_id)
        logger.info(
            "[{}] Period {}: {}+{}",
            lottery_type.code, draw["period"], draw["main_numbers"], draw["special_numbers"],
        )
        return draw

    async def store(self, session: AsyncSession, draw: dict) -> DrawResult:
        """Upsert by (lottery_type_id, period)."""
        return await draw_crud.upsert(session, draw)

    async def fetch_and_process(
        self, session: AsyncSession, lottery_type: LotteryType
    ) -> DrawResult:
        """Fetch, store, then analyse the period's pending recommendations.

        The stored result is committed before analysis starts. If analysis
        fails, the result stays and the recommendations remain unknown for
        a later sweep; the caller commits or rolls back the analysis.
        """
        draw = await self.store(session, await self.fetch_latest(lottery_type))
        await session.commit()
        logger.info("[{}] Stored draw result for period {}", lottery_type.code, draw.period)

        await reanalyze_period(session, lottery_type, draw.period, draw)
        return draw

    async def fetch_all_active(self, session: AsyncSession) -> FetchSummary:
        """Process every active lottery with a results API id.

        Each lottery commits on its own. A failure rolls back only the work
        after the stored result, is logged, and the loop moves on.
        """
        targets = [
            (lt.id, lt.code)
            for lt in await lottery_crud.list_active_with_results_api(session)
        ]
        logger.info("Fetching draw results for {} lotteries", len(targets))

        summary = FetchSummary()
        for lottery_type_id, code in targets:
            try:
                lottery_type = await lottery_crud.get_by_id(session, lottery_type_id)
                if lottery_type is None:
                    raise LotteryNotFoundError(lottery_type_id)
                await self.fetch_and_process(session, lottery_type)
                swept = await reanalyze_pending(session, lottery_type)
                await session.commit()
                if swept:
                    logger.info("[{}] Reconciled {} late recommendations", code, swept)
                summary.processed.append(code)
            except Exception as e:
                await session.rollback()
                logger.error("[{}] Draw result processing failed: {}", code, e)
                summary.failed[code] = str(e)[:1000]

        logger.info(
            "Draw result fetch complete: {} ok, {} failed",
            len(summary.processed), len(summary.failed),
        )
        return summary
