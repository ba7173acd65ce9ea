"""
Retry mechanism for resilient fetch operations.
"""

import asyncio
import random
from typing import Optional, Callable, Awaitable, TypeVar

from .errors import AbortError
from .logging import get_logger

T = TypeVar("T")


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(self,
                 max_attempts: int = 2,
                 base_delay: float = 1.0,
                 max_delay: float = 30.0,
                 exponential_base: float = 2.0,
                 jitter: bool = False,
                 backoff_strategy: str = "exponential"):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.backoff_strategy = backoff_strategy

    def with_attempts(self, max_attempts: int) -> "RetryConfig":
        """Copy of this config with a different attempt budget."""
        return RetryConfig(
            max_attempts=max_attempts,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            exponential_base=self.exponential_base,
            jitter=self.jitter,
            backoff_strategy=self.backoff_strategy
        )


async def retry(operation: Callable[[], Awaitable[T]],
                config: Optional[RetryConfig] = None,
                name: str = "operation") -> T:
    """Run ``operation`` until it succeeds, aborts, or runs out of attempts.

    An :class:`AbortError` is raised immediately. Any other exception is
    retried after a backoff delay; once attempts are exhausted the last
    exception is raised unchanged.
    """
    if config is None:
        config = RetryConfig()

    logger = get_logger(f"request_cache.retry.{name}")

    for attempt in range(1, config.max_attempts + 1):
        try:
            logger.debug(
                "Retry attempt",
                attempt=attempt,
                max_attempts=config.max_attempts,
                operation=name
            )

            result = await operation()

            if attempt > 1:
                logger.info(
                    "Retry succeeded",
                    attempt=attempt,
                    operation=name
                )

            return result

        except AbortError as e:
            logger.info(
                "Retry aborted",
                attempt=attempt,
                operation=name,
                error=str(e)
            )
            raise

        except Exception as e:
            if attempt == config.max_attempts:
                logger.error(
                    "All retry attempts exhausted",
                    attempt=attempt,
                    max_attempts=config.max_attempts,
                    operation=name,
                    error=str(e)
                )
                raise

            delay = _calculate_delay(attempt, config)

            logger.warning(
                "Retry attempt failed, waiting before next attempt",
                attempt=attempt,
                delay=delay,
                operation=name,
                error=str(e)
            )

            await asyncio.sleep(delay)

    raise AssertionError("unreachable")  # pragma: no cover


def _calculate_delay(attempt: int, config: RetryConfig) -> float:
    """Calculate delay between retry attempts."""
    if config.backoff_strategy == "exponential":
        delay = config.base_delay * (config.exponential_base ** (attempt - 1))
    elif config.backoff_strategy == "linear":
        delay = config.base_delay * attempt
    elif config.backoff_strategy == "fixed":
        delay = config.base_delay
    else:
        delay = config.base_delay

    delay = min(delay, config.max_delay)

    if config.jitter:
        jitter_amount = delay * 0.1  # 10% jitter
        jitter = random.uniform(-jitter_amount, jitter_amount)
        delay += jitter

    return max(0.0, delay)
