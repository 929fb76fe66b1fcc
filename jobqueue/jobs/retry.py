"""
Retry classification for failed job attempts.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta


@dataclass(frozen=True)
class RetryDecision:
    """Outcome of classifying a failed attempt."""

    retry: bool
    run_at: datetime | None = None
    delay_ms: int = 0


@dataclass(frozen=True)
class RetryPolicy:
    """
    Linear backoff: the k-th failed attempt waits ``retry_delay_ms * k``.

    There is no jitter and no upper bound, so jobs failing at the same
    attempt count become eligible again on the same tick.
    """

    retry_delay_ms: int

    def backoff_ms(self, attempts: int) -> int:
        """Delay before the next attempt after ``attempts`` failed attempts."""
        return self.retry_delay_ms * max(attempts, 0)

    def decide(self, attempts: int, max_attempts: int, now: datetime) -> RetryDecision:
        """Decide whether a job that just failed its latest attempt runs again."""
        if attempts >= max_attempts:
            return RetryDecision(retry=False)

        delay_ms = self.backoff_ms(attempts)
        return RetryDecision(
            retry=True,
            run_at=now + timedelta(milliseconds=delay_ms),
            delay_ms=delay_ms,
        )
