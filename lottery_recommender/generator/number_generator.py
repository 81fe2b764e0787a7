"""Asks a chat backend for lottery combinations and validates them."""

import asyncio
import re
import time

from loguru import logger

from lottery_recommender.config import settings
from lottery_recommender.errors import (
    BackendTransportError,
    GenerationFailed,
    InvalidCombinationError,
)
from lottery_recommender.formats import LotteryFormat, get_format, validate_combination
from lottery_recommender.generator.backend import ChatBackend

NUMBER_MARKER = re.compile(r"<NUMBER>(.*?)</NUMBER>", re.S)

SINGLE_SYSTEM_PROMPT = """你是一个专业的彩票号码生成器。请严格按照以下要求生成号码：

1. 必须使用这个格式输出：<NUMBER>你生成的号码</NUMBER>
2. 严格按照下面的格式规范生成号码：
   - {rule}
3. 所有数字必须按从小到大排序
4. 所有数字必须补零，保持两位数格式
5. 除了<NUMBER>标签内的内容外，不要输出任何其他文字
6. 确保生成的号码是有效且符合规则的随机组合"""

BATCH_SYSTEM_PROMPT = """你是一个专业的彩票号码生成器。请严格按照以下要求生成{count}组彩票号码：

1. 必须使用这个格式输出每一组号码：<NUMBER>号码</NUMBER>
2. 严格按照下面的格式规范生成号码：
   - {rule}
3. 所有数字必须按从小到大排序
4. 所有数字必须补零，保持两位数格式
5. 不要输出任何额外的解释文字，只需要输出用<NUMBER>标签包裹的号码
6. 确保生成的每一组号码都是有效且符合规则的随机组合
7. 一共必须生成{count}组不同的号码"""


def extract_combinations(text: str) -> list[str]:
    """All ``<NUMBER>`` marker contents, stripped."""
    return [m.strip() for m in NUMBER_MARKER.findall(text or "")]


class NumberGenerator:
    """Generates validated combinations for a lottery format."""

    def __init__(
        self,
        backend: ChatBackend,
        max_retries: int | None = None,
        backoff: float | None = None,
        timeout: float | None = None,
    ):
        self.backend = backend
        self.max_retries = max(1, max_retries if max_retries is not None else settings.AI_MAX_RETRIES)
        self.backoff = backoff if backoff is not None else settings.AI_RETRY_BACKOFF
        self.timeout = timeout or settings.AI_TIMEOUT

    async def generate(self, code: str, model: str) -> str:
        """Generate one combination, retrying with linear backoff.

        Raises:
            UnsupportedFormatError: no rules registered for ``code``.
            GenerationFailed: every attempt failed transport or validation.
        """
        fmt = get_format(code)
        logger.info("[{}] Generating numbers with model {}", code, model)

        system_prompt = SINGLE_SYSTEM_PROMPT.format(rule=fmt.describe())
        user_prompt = f"请生成一注{fmt.name}({code})彩票号码，务必包含在<NUMBER></NUMBER>标签内"

        last_error: Exception | None = None
        last_invalid: Exception | None = None
        for attempt in range(1, self.max_retries + 1):
            start = time.monotonic()
            try:
                text = await self.backend.complete(
                    model, system_prompt, user_prompt,
                    temperature=0.7, timeout=self.timeout,
                )
            except BackendTransportError as e:
                last_error = e
                logger.error("[{}] Attempt {} failed: {}", code, attempt, e)
            else:
                combination = self._accept_first(text, fmt)
                if isinstance(combination, str):
                    logger.info(
                        "[{}] Valid numbers {} (attempt {}, {:.2f}s)",
                        code, combination, attempt, time.monotonic() - start,
                    )
                    return combination
                last_invalid = combination

            if attempt < self.max_retries:
                delay = attempt * self.backoff
                logger.info("[{}] Retrying in {}s", code, delay)
                await asyncio.sleep(delay)

        logger.error("[{}] Generation failed after {} attempts", code, self.max_retries)
        raise GenerationFailed(self.max_retries, last_error or last_invalid)

    def _accept_first(self, text: str, fmt: LotteryFormat) -> str | Exception:
        """The validated first marker, or the reason it was rejected."""
        match = NUMBER_MARKER.search(text or "")
        if match is None:
            logger.error("[{}] No <NUMBER> marker in reply: {}", fmt.code, text)
            return InvalidCombinationError("marker", text or "")
        try:
            return validate_combination(match.group(1), fmt)
        except InvalidCombinationError as e:
            logger.error("[{}] Rejected numbers ({})", fmt.code, e)
            return e

    async def generate_batch(self, code: str, model: str, count: int) -> list[str]:
        """Generate ``count`` distinct combinations.

        One batch request first; any shortfall is topped up with single
        generations. If a top-up fails, whatever was collected is returned,
        or the error is raised when nothing was collected.
        """
        if count <= 1:
            return [await self.generate(code, model)]

        fmt = get_format(code)
        logger.info("[{}] Generating {} combinations with model {}", code, count, model)

        numbers: list[str] = []
        system_prompt = BATCH_SYSTEM_PROMPT.format(count=count, rule=fmt.describe())
        user_prompt = f"请生成{count}组不同的{fmt.name}({code})彩票号码，每组号码必须用<NUMBER></NUMBER>标签包裹"
        try:
            text = await self.backend.complete(
                model, system_prompt, user_prompt,
                temperature=0.9, timeout=self.timeout * 2,
            )
        except BackendTransportError as e:
            logger.error("[{}] Batch request failed: {}", code, e)
        else:
            for candidate in extract_combinations(text):
                try:
                    combination = validate_combination(candidate, fmt)
                except InvalidCombinationError as e:
                    logger.error("[{}] Rejected batch numbers ({})", code, e)
                    continue
                if combination not in numbers:
                    numbers.append(combination)
                if len(numbers) == count:
                    break

        if len(numbers) < count:
            logger.info(
                "[{}] Batch returned {}/{} combinations, topping up",
                code, len(numbers), count,
            )
        duplicates = 0
        while len(numbers) < count:
            try:
                combination = await self.generate(code, model)
            except GenerationFailed:
                if numbers:
                    logger.warning(
                        "[{}] Returning {} of {} requested combinations",
                        code, len(numbers), count,
                    )
                    return numbers
                raise
            if combination in numbers:
                duplicates += 1
                if duplicates >= count * self.max_retries:
                    logger.warning("[{}] Backend keeps repeating combinations, stopping", code)
                    return numbers
                continue
            numbers.append(combination)

        logger.info("[{}] Generated {} combinations", code, len(numbers))
        return numbers
