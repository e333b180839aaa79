"""Retry policy and attempt bookkeeping.

RetryManager decides whether a failed delivery is retried and computes
when. It does not run anything itself: the orchestrator re-invokes the
send through the deferred task scheduler at the returned time.
"""

import random
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List

from notifier.logging import get_module_logger
from notifier.operations import OperationResult, is_retryable
from notifier.resilience.retry.config import RetryConfig
from notifier.resilience.retry.models import RetryAttempt

logger = get_module_logger()


class RetryManager:
    """Thread-safe retry policy with exponential backoff.

    Delay for retry n (1-based): min(base * 2 ** (n - 1), max), optionally
    randomized by +/-25% and re-capped.

    Attributes:
        config: RetryConfig controlling attempts and backoff
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        rng: Callable[[], float] = random.random,
    ) -> None:
        self.config = config or RetryConfig()
        self._clock = clock
        self._rng = rng
        self._history: Dict[str, List[RetryAttempt]] = {}
        self._lock = threading.Lock()

    def should_retry(self, request_id: str, error_code: str | None) -> bool:
        """Decide whether a failure should be retried.

        True iff the error code is retryable and fewer than max_attempts
        retries have been scheduled for the request.
        """
        if not is_retryable(error_code):
            return False
        return self.get_attempt_count(request_id) < self.config.max_attempts

    def schedule_retry(self, request_id: str, failure: OperationResult) -> RetryAttempt:
        """Record the next retry for a request and compute its time.

        Args:
            request_id: Request being retried
            failure: Failed gateway result that triggered the retry

        Returns:
            RetryAttempt carrying the attempt number and scheduled time

        Raises:
            ValueError: If max_attempts retries were already scheduled
        """
        with self._lock:
            history = self._history.setdefault(request_id, [])
            attempt_number = len(history) + 1
            if attempt_number > self.config.max_attempts:
                raise ValueError(
                    f"Request {request_id} already used {self.config.max_attempts} retries"
                )

            delay = self.calculate_delay(attempt_number)
            attempt = RetryAttempt(
                request_id=request_id,
                attempt_number=attempt_number,
                scheduled_at=self._clock() + timedelta(seconds=delay),
                delay_seconds=delay,
                error_code=failure.error_code,
                error_message=failure.message,
            )
            history.append(attempt)

        logger.info(
            "retry_scheduled",
            request_id=request_id,
            attempt_number=attempt.attempt_number,
            delay_seconds=delay,
            error_code=failure.error_code,
        )
        return attempt

    def calculate_delay(self, attempt_number: int) -> float:
        """Backoff delay in seconds for a 1-based retry number."""
        delay = self.config.base_delay_seconds * (2 ** (attempt_number - 1))
        delay = min(delay, self.config.max_delay_seconds)
        if self.config.jitter:
            delay = min(delay * (0.75 + 0.5 * self._rng()), self.config.max_delay_seconds)
        return delay

    def get_attempt_count(self, request_id: str) -> int:
        """Number of retries scheduled so far for the request."""
        with self._lock:
            return len(self._history.get(request_id, ()))

    def get_retry_history(self, request_id: str) -> List[RetryAttempt]:
        """Retries scheduled for the request, oldest first."""
        with self._lock:
            return list(self._history.get(request_id, ()))

    def clear(self, request_id: str) -> None:
        """Forget the retry history of a request."""
        with self._lock:
            self._history.pop(request_id, None)

    def get_stats(self) -> Dict[str, int]:
        """Get retry statistics."""
        with self._lock:
            return {
                "tracked_requests": len(self._history),
                "scheduled_retries": sum(len(h) for h in self._history.values()),
                "max_attempts": self.config.max_attempts,
            }
