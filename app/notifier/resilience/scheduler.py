"""Deferred task scheduler.

Runs coroutine callbacks at a wall-clock time without blocking: pending
tasks sit in a min-heap keyed by fire time, and a single runner task
sleeps until the earliest one is due. Used for scheduled sends and for
retry backoff.

Firing and cancellation race on the task state: whichever moves a task
out of PENDING first wins, the other is a no-op.

Finished tasks (completed, failed or cancelled) stay queryable until
``max_finished_tasks`` newer ones have finished; their callbacks are
released as soon as they finish.

Usage:
    scheduler = DeferredTaskScheduler()
    task_id = scheduler.schedule(fire_at, lambda: orchestrator.send(request))
    scheduler.cancel(task_id)
    await scheduler.shutdown()
"""

import asyncio
import heapq
import itertools
import threading
import uuid
from collections import deque
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Set, Tuple

from notifier.logging import get_module_logger

logger = get_module_logger()


class TaskState(Enum):
    """Lifecycle of a deferred task."""

    PENDING = "pending"
    FIRED = "fired"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class DeferredTask:
    """A callback registered to run at ``fire_at``."""

    task_id: str
    fire_at: datetime
    callback: Optional[Callable[[], Awaitable[Any]]]
    kind: str = "scheduled"
    context: Dict[str, Any] = field(default_factory=dict)
    state: TaskState = TaskState.PENDING
    result: Any = None
    error: Optional[str] = None


class DeferredTaskScheduler:
    """Min-heap scheduler for deferred coroutine callbacks.

    The runner starts lazily on the first schedule() call, which must
    happen inside a running event loop.

    Args:
        clock: Returns the current timezone-aware time
        max_finished_tasks: Finished tasks kept for get_state() and get_task()
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        max_finished_tasks: int = 1000,
    ) -> None:
        if max_finished_tasks < 0:
            raise ValueError("max_finished_tasks must not be negative")
        self._clock = clock
        self._max_finished = max_finished_tasks
        self._heap: List[Tuple[datetime, int, DeferredTask]] = []
        self._tasks: Dict[str, DeferredTask] = {}
        self._finished: Deque[DeferredTask] = deque()
        self._sequence = itertools.count()
        self._lock = threading.Lock()
        self._wakeup: Optional[asyncio.Event] = None
        self._runner: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()
        self._closed = False

    def schedule(
        self,
        fire_at: datetime,
        callback: Callable[[], Awaitable[Any]],
        task_id: Optional[str] = None,
        kind: str = "scheduled",
        context: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Register a callback to run at ``fire_at``.

        Args:
            fire_at: Timezone-aware time at which to run the callback
            callback: Zero-argument coroutine function
            task_id: Optional id; generated when omitted
            kind: Label for logs and stats (e.g. "scheduled", "retry")
            context: Free-form data kept with the task (e.g. request id)

        Returns:
            The task id, usable with cancel()

        Raises:
            RuntimeError: If the scheduler was shut down
            ValueError: If a pending task already uses task_id
        """
        if self._closed:
            raise RuntimeError("Scheduler has been shut down")

        task_id = task_id or f"task_{uuid.uuid4().hex}"
        with self._lock:
            existing = self._tasks.get(task_id)
            if existing is not None and existing.state == TaskState.PENDING:
                raise ValueError(f"Task {task_id} is already pending")
            task = DeferredTask(
                task_id=task_id,
                fire_at=fire_at,
                callback=callback,
                kind=kind,
                context=dict(context or {}),
            )
            self._tasks[task_id] = task
            heapq.heappush(self._heap, (fire_at, next(self._sequence), task))

        self._ensure_running()
        self._wakeup.set()
        logger.debug(
            "deferred_task_scheduled",
            task_id=task_id,
            kind=kind,
            fire_at=fire_at.isoformat(),
        )
        return task_id

    def cancel(self, task_id: str) -> bool:
        """Cancel a pending task.

        Returns:
            True if the task was pending and is now cancelled; False for
            unknown, already fired or already cancelled tasks
        """
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None or task.state != TaskState.PENDING:
                return False
            task.state = TaskState.CANCELLED
            self._retire(task)

        logger.info("deferred_task_cancelled", task_id=task_id, kind=task.kind)
        return True

    def get_state(self, task_id: str) -> Optional[TaskState]:
        """Current state of a task, or None if unknown."""
        with self._lock:
            task = self._tasks.get(task_id)
            return task.state if task else None

    def get_task(self, task_id: str) -> Optional[DeferredTask]:
        """Snapshot of a task, or None if unknown."""
        with self._lock:
            task = self._tasks.get(task_id)
            return replace(task) if task else None

    def pending_count(self) -> int:
        """Number of tasks still waiting to fire."""
        with self._lock:
            return sum(1 for t in self._tasks.values() if t.state == TaskState.PENDING)

    def is_healthy(self) -> bool:
        """True unless shut down or the runner died."""
        if self._closed:
            return False
        return self._runner is None or not self._runner.done()

    async def start(self) -> None:
        """Start the runner ahead of the first schedule() call."""
        self._ensure_running()

    async def shutdown(self) -> None:
        """Stop the runner and cancel in-flight callbacks."""
        self._closed = True
        tasks = [t for t in (self._runner, *self._inflight) if t is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._runner = None
        logger.info("scheduler_shutdown", pending=self.pending_count())

    def _ensure_running(self) -> None:
        loop = asyncio.get_running_loop()
        if self._wakeup is None:
            self._wakeup = asyncio.Event()
        if self._runner is None or self._runner.done():
            self._runner = loop.create_task(self._run())

    async def _run(self) -> None:
        while True:
            self._wakeup.clear()
            delay = self._seconds_until_next()
            if delay is None:
                await self._wakeup.wait()
                continue
            if delay > 0:
                try:
                    await asyncio.wait_for(self._wakeup.wait(), timeout=delay)
                    continue
                except asyncio.TimeoutError:
                    pass
            self._fire_due()

    def _seconds_until_next(self) -> Optional[float]:
        with self._lock:
            while self._heap:
                if self._heap[0][2].state == TaskState.PENDING:
                    return (self._heap[0][0] - self._clock()).total_seconds()
                heapq.heappop(self._heap)
            return None

    def _fire_due(self) -> None:
        now = self._clock()
        due: List[DeferredTask] = []
        with self._lock:
            while self._heap and self._heap[0][0] <= now:
                _, _, task = heapq.heappop(self._heap)
                if task.state == TaskState.PENDING:
                    task.state = TaskState.FIRED
                    due.append(task)

        for task in due:
            running = asyncio.create_task(self._execute(task))
            self._inflight.add(running)
            running.add_done_callback(self._inflight.discard)

    async def _execute(self, task: DeferredTask) -> None:
        logger.debug("deferred_task_fired", task_id=task.task_id, kind=task.kind)
        try:
            task.result = await task.callback()
            task.state = TaskState.COMPLETED
        except asyncio.CancelledError:
            task.state = TaskState.FAILED
            task.error = "cancelled during shutdown"
            raise
        except Exception as e:
            task.state = TaskState.FAILED
            task.error = str(e)
            logger.error(
                "deferred_task_failed",
                task_id=task.task_id,
                kind=task.kind,
                error=str(e),
                exc_info=True,
            )
        finally:
            with self._lock:
                self._retire(task)

    def _retire(self, task: DeferredTask) -> None:
        """Release a finished task's callback and evict the oldest finished
        tasks beyond the retention bound. Caller holds the lock."""
        task.callback = None
        self._finished.append(task)
        while len(self._finished) > self._max_finished:
            old = self._finished.popleft()
            if self._tasks.get(old.task_id) is old:
                del self._tasks[old.task_id]
