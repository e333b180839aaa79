"""Resilience primitives: rate limiting, retry policy, circuit breaking and
deferred task scheduling."""

from notifier.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerOpenError,
    CircuitState,
)
from notifier.resilience.rate_limiter import (
    RateLimitConfig,
    RateLimitDecision,
    RateLimiter,
)
from notifier.resilience.retry import RetryAttempt, RetryConfig, RetryManager
from notifier.resilience.scheduler import (
    DeferredTask,
    DeferredTaskScheduler,
    TaskState,
)

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerOpenError",
    "CircuitState",
    "RateLimitConfig",
    "RateLimitDecision",
    "RateLimiter",
    "RetryAttempt",
    "RetryConfig",
    "RetryManager",
    "DeferredTask",
    "DeferredTaskScheduler",
    "TaskState",
]
