"""Bounded retry with a fixed delay between attempts.

Built on the backoff library. Every fallible network operation in
mongorecon (connect-and-verify, administrative commands) goes through
RetryPolicy so the attempt budget and delay come from one place.
"""

from collections.abc import Callable, Mapping
from typing import Any, TypeVar

import backoff
from loguru import logger

from mongorecon.config.models import RetryConfig

T = TypeVar("T")


def on_backoff(details: Mapping[str, Any]) -> None:
    """Log retry attempts."""
    logger.warning(
        "Retrying {}: attempt={} wait={}s error={}",
        details["target"].__name__,
        details["tries"],
        details["wait"],
        details["exception"],
    )


def on_giveup(details: Mapping[str, Any]) -> None:
    """Log when retries are exhausted."""
    logger.error(
        "Gave up on {}: attempts={} error={}",
        details["target"].__name__,
        details["tries"],
        details["exception"],
    )


def with_retry(
    operation: Callable[[], T],
    *,
    max_tries: int,
    delay: float,
    exceptions: type[Exception] | tuple[type[Exception], ...] = Exception,
    giveup: Callable[[Exception], bool] | None = None,
) -> T:
    """
    Call ``operation`` until it succeeds or the attempt budget runs out.

    Args:
        operation: Zero-argument callable to invoke.
        max_tries: Total number of attempts (first call included).
        delay: Seconds to sleep between attempts.
        exceptions: Exception types that trigger another attempt.
        giveup: Predicate; when it returns True the exception is re-raised at once.

    Returns:
        The operation's result.

    Raises:
        The last exception raised by ``operation`` once the budget is spent.
    """
    retrying = backoff.on_exception(
        backoff.constant,
        exceptions,
        max_tries=max(1, max_tries),
        interval=delay,
        jitter=None,
        giveup=giveup or (lambda _e: False),
        on_backoff=on_backoff,
        on_giveup=on_giveup,
    )(operation)
    return retrying()


class RetryPolicy:
    """Uniform retry policy: ``max_retries`` retries after the first attempt."""

    def __init__(self, max_retries: int = 3, delay_seconds: float = 1.5) -> None:
        self.max_retries = max_retries
        self.delay_seconds = delay_seconds

    @classmethod
    def from_config(cls, config: RetryConfig) -> "RetryPolicy":
        return cls(max_retries=config.max_retries, delay_seconds=config.delay_seconds)

    @property
    def max_tries(self) -> int:
        return self.max_retries + 1

    def call(
        self,
        operation: Callable[[], T],
        exceptions: type[Exception] | tuple[type[Exception], ...] = Exception,
        giveup: Callable[[Exception], bool] | None = None,
    ) -> T:
        return with_retry(
            operation,
            max_tries=self.max_tries,
            delay=self.delay_seconds,
            exceptions=exceptions,
            giveup=giveup,
        )
