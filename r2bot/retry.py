import asyncio
from typing import Awaitable, Callable

from r2bot.exceptions import RetryExhaustedError
from r2bot.logger import logger
from r2bot.results import StepResult
from r2bot.utils import short_jitter

BACKOFF_STEP = 10
BACKOFF_CAP = 30


def backoff_delay(attempt: int) -> int:
    """Seconds to wait after failed attempt number `attempt` (1-based)."""
    return min(attempt * BACKOFF_STEP, BACKOFF_CAP)


async def execute_with_retry(
    operation: Callable[[], Awaitable[StepResult]],
    name: str,
    max_attempts: int = 3,
) -> StepResult:
    """Run `operation` until it returns a non-fault result.

    SUCCESS and SKIPPED results come back on the first attempt that produces
    them. A raised exception counts as a fault. After `max_attempts` faults
    RetryExhaustedError is raised.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    last_error = None
    for attempt in range(1, max_attempts + 1):
        logger.step(f"Attempt {attempt} of {max_attempts} for {name}")
        await short_jitter()
        try:
            result = await operation()
        except Exception as e:
            result = StepResult.fault(str(e) or e.__class__.__name__)

        if not result.is_fault:
            return result

        last_error = result.message
        logger.error(f"Attempt {attempt} failed: {last_error}")
        if attempt < max_attempts:
            delay = backoff_delay(attempt)
            logger.info(f"Waiting {delay} seconds before retry...")
            await asyncio.sleep(delay)

    raise RetryExhaustedError(name, max_attempts, last_error)
