"""Circuit breaker for gateway calls.

The circuit breaker keeps a failing gateway from being hammered:
1. CLOSED state: Normal operation, calls pass through
2. OPEN state: Fast-fail calls without reaching the gateway
3. HALF_OPEN state: Test recovery with a limited number of calls

State transitions:
- CLOSED -> OPEN: After failure_threshold consecutive failures
- OPEN -> HALF_OPEN: After timeout period expires
- HALF_OPEN -> CLOSED: After a successful call
- HALF_OPEN -> OPEN: If the call fails

A call counts as failed when it raises, or when it returns an
OperationResult with a transient status. Permanent errors (invalid
token, oversized payload) say nothing about gateway health and count as
successes.
"""

import threading
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from notifier.logging import get_module_logger
from notifier.operations import OperationResult

logger = get_module_logger()


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpenError(Exception):
    """Raised when the circuit breaker is open and the call is rejected."""


class CircuitBreaker:
    """Circuit breaker for async gateway operations.

    Args:
        name: Name of the circuit (typically the channel name)
        failure_threshold: Number of consecutive failures before opening
        timeout_seconds: Seconds to wait before attempting recovery (HALF_OPEN)
        half_open_max_calls: Max calls to allow in HALF_OPEN state
        clock: Monotonic clock, injectable for tests
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        timeout_seconds: float = 60,
        half_open_max_calls: int = 3,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.timeout_seconds = timeout_seconds
        self.half_open_max_calls = half_open_max_calls
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._last_failure_time: Optional[float] = None
        self._half_open_calls = 0

        self._lock = threading.Lock()

    @property
    def state(self) -> CircuitState:
        """Get current circuit state."""
        with self._lock:
            return self._state

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """Await a coroutine function through the circuit breaker.

        Args:
            func: Coroutine function to call
            *args, **kwargs: Arguments to pass to function

        Returns:
            Result from function

        Raises:
            CircuitBreakerOpenError: If circuit is open
            Exception: Any exception raised by func
        """
        self._before_call()
        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            self._on_failure(str(e))
            raise
        else:
            if isinstance(result, OperationResult) and result.is_transient:
                self._on_failure(result.message)
            else:
                self._on_success()
            return result
        finally:
            with self._lock:
                if self._state == CircuitState.HALF_OPEN and self._half_open_calls > 0:
                    self._half_open_calls -= 1

    def _before_call(self) -> None:
        with self._lock:
            if self._state == CircuitState.OPEN:
                if self._should_attempt_reset():
                    self._transition_to_half_open()
                else:
                    remaining = self.timeout_seconds - (
                        self._clock() - (self._last_failure_time or 0.0)
                    )
                    logger.warning(
                        "circuit_breaker_open",
                        name=self.name,
                        failure_count=self._failure_count,
                        retry_in_seconds=int(remaining),
                    )
                    raise CircuitBreakerOpenError(
                        f"Circuit breaker '{self.name}' is OPEN. "
                        f"Retry in {int(remaining)} seconds."
                    )

            if self._state == CircuitState.HALF_OPEN:
                if self._half_open_calls >= self.half_open_max_calls:
                    raise CircuitBreakerOpenError(
                        f"Circuit breaker '{self.name}' is HALF_OPEN "
                        f"(max concurrent calls reached)."
                    )
                self._half_open_calls += 1

    def _on_success(self) -> None:
        with self._lock:
            self._success_count += 1
            if self._state == CircuitState.HALF_OPEN:
                self._transition_to_closed()
            elif self._failure_count > 0:
                self._failure_count = 0

    def _on_failure(self, error: str) -> None:
        with self._lock:
            self._failure_count += 1
            self._last_failure_time = self._clock()

            if self._state == CircuitState.HALF_OPEN:
                logger.warning(
                    "circuit_breaker_recovery_failed", name=self.name, error=error
                )
                self._transition_to_open()
            elif self._state == CircuitState.CLOSED:
                if self._failure_count >= self.failure_threshold:
                    logger.error(
                        "circuit_breaker_threshold_exceeded",
                        name=self.name,
                        failure_count=self._failure_count,
                        threshold=self.failure_threshold,
                        error=error,
                    )
                    self._transition_to_open()
                else:
                    logger.warning(
                        "circuit_breaker_failure",
                        name=self.name,
                        failure_count=self._failure_count,
                        threshold=self.failure_threshold,
                        error=error,
                    )

    def _should_attempt_reset(self) -> bool:
        if self._last_failure_time is None:
            return True
        return self._clock() - self._last_failure_time >= self.timeout_seconds

    def _transition_to_closed(self) -> None:
        logger.info("circuit_breaker_closed", name=self.name)
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._half_open_calls = 0

    def _transition_to_open(self) -> None:
        logger.error(
            "circuit_breaker_opened",
            name=self.name,
            timeout_seconds=self.timeout_seconds,
        )
        self._state = CircuitState.OPEN
        self._half_open_calls = 0

    def _transition_to_half_open(self) -> None:
        logger.info("circuit_breaker_half_open", name=self.name)
        self._state = CircuitState.HALF_OPEN
        self._failure_count = 0
        self._success_count = 0
        self._half_open_calls = 0

    def get_stats(self) -> Dict[str, Any]:
        """Get circuit breaker statistics."""
        with self._lock:
            return {
                "name": self.name,
                "state": self._state.value,
                "failure_count": self._failure_count,
                "success_count": self._success_count,
                "half_open_calls": self._half_open_calls,
            }

    def reset(self) -> None:
        """Manually reset the circuit breaker."""
        with self._lock:
            logger.info("circuit_breaker_manual_reset", name=self.name)
            self._transition_to_closed()
