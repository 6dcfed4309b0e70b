"""mongorecon utility modules."""

from mongorecon.utils.logging import configure_logging
from mongorecon.utils.retry import RetryPolicy, on_backoff, on_giveup, with_retry

__all__ = [
    "RetryPolicy",
    "configure_logging",
    "on_backoff",
    "on_giveup",
    "with_retry",
]
