"""
Retry mechanism for resilient operations.
"""

import asyncio
import random
from typing import Any, Awaitable, Callable, Optional

from shared.logging import get_logger


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(self,
                 max_attempts: int = 3,
                 base_delay: float = 1.0,
                 max_delay: float = 60.0,
                 exponential_base: float = 2.0,
                 jitter: bool = True,
                 backoff_strategy: str = "exponential"):
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.backoff_strategy = backoff_strategy


NO_RETRY = RetryConfig(max_attempts=1, base_delay=0.0, jitter=False)


async def retry_async(func: Callable[[], Awaitable[Any]],
                      config: RetryConfig,
                      exceptions: tuple = (Exception,),
                      should_retry: Optional[Callable[[BaseException], bool]] = None,
                      sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
                      name: Optional[str] = None) -> Any:
    """Call ``func`` until it succeeds or attempts run out.

    The last exception is re-raised unchanged once attempts are exhausted or
    ``should_retry`` rejects it.
    """
    label = name or getattr(func, "__name__", "call")
    logger = get_logger(f"retry.{label}")

    for attempt in range(1, config.max_attempts + 1):
        try:
            result = await func()
            if attempt > 1:
                logger.info("Retry succeeded", attempt=attempt, function=label)
            return result

        except exceptions as e:
            if attempt == config.max_attempts or (should_retry is not None and not should_retry(e)):
                if attempt > 1:
                    logger.error(
                        "All retry attempts exhausted",
                        attempt=attempt,
                        max_attempts=config.max_attempts,
                        function=label,
                        error=str(e)
                    )
                raise

            delay = calculate_delay(attempt, config)
            logger.warning(
                "Retry attempt failed, waiting before next attempt",
                attempt=attempt,
                delay=delay,
                function=label,
                error=str(e)
            )
            await sleep(delay)


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """Calculate delay between retry attempts."""
    if config.backoff_strategy == "exponential":
        delay = config.base_delay * (config.exponential_base ** (attempt - 1))
    elif config.backoff_strategy == "linear":
        delay = config.base_delay * attempt
    else:
        delay = config.base_delay

    delay = min(delay, config.max_delay)

    if config.jitter:
        jitter_amount = delay * 0.1  # 10% jitter
        delay += random.uniform(-jitter_amount, jitter_amount)

    return max(0.0, delay)
