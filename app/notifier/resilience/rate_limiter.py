"""Per-recipient rate limiting.

Sliding-window log limiter: each recipient keeps the timestamps of its
admitted sends inside the current window. A check admits the send (and
records it) only while fewer than ``max_requests`` timestamps remain in
the window.

Idle recipients are dropped at most once per window, during a check, so
memory stays proportional to the recipients seen in recent windows.

Usage:
    limiter = RateLimiter(RateLimitConfig(max_requests=60, window_seconds=60))

    decision = limiter.check_rate_limit(recipient)
    if not decision.allowed:
        ...
"""

import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Deque, Dict, Optional

from notifier.logging import get_module_logger

if TYPE_CHECKING:
    from notifier.notifications.models import NotificationRecipient

logger = get_module_logger()


@dataclass
class RateLimitConfig:
    """Configuration for the rate limiter.

    Attributes:
        max_requests: Sends admitted per recipient within one window
        window_seconds: Window length in seconds
        bulk_delay_seconds: Pause advised between sequential bulk sends
        max_tracked_recipients: Tracked recipients above which the limiter
            reports itself unhealthy
    """

    max_requests: int = 60
    window_seconds: float = 60.0
    bulk_delay_seconds: float = 0.1
    max_tracked_recipients: int = 10000

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if self.window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        if self.bulk_delay_seconds < 0:
            raise ValueError("bulk_delay_seconds must not be negative")


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a rate limit check.

    Attributes:
        allowed: True when the send was admitted
        remaining: Sends left for the recipient in the current window
        retry_after: Seconds until a slot frees up (denied checks only)
        reason: Human-readable reason for a denial
    """

    allowed: bool
    remaining: int
    retry_after: Optional[float] = None
    reason: Optional[str] = None


class RateLimiter:
    """Thread-safe per-recipient rate limiter.

    Attributes:
        config: RateLimitConfig controlling limits and pacing
    """

    def __init__(
        self,
        config: RateLimitConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or RateLimitConfig()
        self._clock = clock
        self._windows: Dict[str, Deque[float]] = {}
        self._deliveries: Dict[str, int] = {}
        self._lock = threading.Lock()
        self._next_prune = clock() + self.config.window_seconds

    @staticmethod
    def _key(recipient: "NotificationRecipient | str") -> str:
        if isinstance(recipient, str):
            return recipient
        return recipient.id

    def check_rate_limit(
        self, recipient: "NotificationRecipient | str"
    ) -> RateLimitDecision:
        """Check, and on admission consume, a slot for the recipient.

        Args:
            recipient: Recipient (or recipient id) to check

        Returns:
            RateLimitDecision describing the outcome
        """
        key = self._key(recipient)
        now = self._clock()

        with self._lock:
            if now >= self._next_prune:
                self._prune(now)
                self._next_prune = now + self.config.window_seconds
            window = self._windows.setdefault(key, deque())
            self._expire(window, now)

            if len(window) >= self.config.max_requests:
                retry_after = max(0.0, window[0] + self.config.window_seconds - now)
                logger.warning(
                    "rate_limit_exceeded",
                    recipient_id=key,
                    limit=self.config.max_requests,
                    window_seconds=self.config.window_seconds,
                    retry_after=retry_after,
                )
                return RateLimitDecision(
                    allowed=False,
                    remaining=0,
                    retry_after=retry_after,
                    reason=(
                        f"Rate limit of {self.config.max_requests} per "
                        f"{self.config.window_seconds:g}s exceeded for recipient {key}"
                    ),
                )

            window.append(now)
            return RateLimitDecision(
                allowed=True,
                remaining=self.config.max_requests - len(window),
            )

    def record_delivery(self, recipient: "NotificationRecipient | str") -> None:
        """Record a confirmed gateway delivery for the recipient."""
        key = self._key(recipient)
        with self._lock:
            self._deliveries[key] = self._deliveries.get(key, 0) + 1

    def get_delivery_count(self, recipient: "NotificationRecipient | str") -> int:
        """Number of confirmed deliveries recorded for the recipient."""
        with self._lock:
            return self._deliveries.get(self._key(recipient), 0)

    def requires_delay(self) -> bool:
        """True when bulk dispatch should pause between sends."""
        return self.config.bulk_delay_seconds > 0

    def delay_amount(self) -> float:
        """Seconds bulk dispatch should pause between sends."""
        return self.config.bulk_delay_seconds

    def is_healthy(self) -> bool:
        """Report health; unhealthy when tracking too many recipients."""
        now = self._clock()
        with self._lock:
            if len(self._windows) >= self.config.max_tracked_recipients:
                self._prune(now)
            return len(self._windows) < self.config.max_tracked_recipients

    def get_stats(self) -> Dict[str, int]:
        """Get limiter statistics."""
        with self._lock:
            return {
                "tracked_recipients": len(self._windows),
                "total_deliveries": sum(self._deliveries.values()),
            }

    def reset(self, recipient: "NotificationRecipient | str | None" = None) -> None:
        """Reset state for one recipient, or for all recipients."""
        with self._lock:
            if recipient is None:
                self._windows.clear()
            else:
                self._windows.pop(self._key(recipient), None)

    def _expire(self, window: Deque[float], now: float) -> None:
        cutoff = now - self.config.window_seconds
        while window and window[0] <= cutoff:
            window.popleft()

    def _prune(self, now: float) -> None:
        for key in list(self._windows):
            window = self._windows[key]
            self._expire(window, now)
            if not window:
                del self._windows[key]
