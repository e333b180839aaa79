"""Retry policy for failed deliveries.

Components:
- RetryConfig: attempts and backoff configuration
- RetryAttempt: a scheduled retry
- RetryManager: retry decisions, backoff and per-request history

Usage:
    from notifier.resilience.retry import RetryConfig, RetryManager

    manager = RetryManager(RetryConfig(max_attempts=3))
    if manager.should_retry(request_id, failure.error_code):
        attempt = manager.schedule_retry(request_id, failure)
"""

from notifier.resilience.retry.config import RetryConfig
from notifier.resilience.retry.manager import RetryManager
from notifier.resilience.retry.models import RetryAttempt

__all__ = ["RetryConfig", "RetryAttempt", "RetryManager"]
