"""
TaskRegistry: the indexed collection of Tasks for one execution context.

Responsibilities:
- Duplicate suppression: at most one PENDING|RUNNING task per
  (operation_type, content_fingerprint)
- Lookup and cancellation by task id
- Periodic eviction of tasks that have been terminal for longer than the
  retention window

All access happens on one event loop, so no locking is needed.
"""

import asyncio
import contextlib
import time
from collections.abc import Callable
from typing import Any

from studyscribe.config import TASK_RETENTION_SECONDS, TASK_SWEEP_INTERVAL_SECONDS, PipelineConfig
from studyscribe.logging_config import debug_log, info
from studyscribe.timing_estimator import TimingEstimator

from .task import OperationType, Task, content_fingerprint


class TaskRegistry:
    """
    Registry of tasks keyed by id.

    Example:
        registry = TaskRegistry(estimator=TimingEstimator(store))
        task = registry.create_task(OperationType.SUMMARIZE, text)
        if task is None:
            ...  # same content is already being summarized
    """

    def __init__(
        self,
        estimator: TimingEstimator | None = None,
        retention_seconds: float = TASK_RETENTION_SECONDS,
        sweep_interval_seconds: float = TASK_SWEEP_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.estimator = estimator
        self.retention_seconds = retention_seconds
        self.sweep_interval_seconds = sweep_interval_seconds
        self._clock = clock
        self._tasks: dict[str, Task] = {}
        self._sweeper: asyncio.Task | None = None

    @classmethod
    def from_config(cls, config: PipelineConfig, estimator: TimingEstimator | None = None) -> 'TaskRegistry':
        """Build a registry using the retention and sweep settings of a PipelineConfig."""
        return cls(
            estimator=estimator,
            retention_seconds=config.task_retention_seconds,
            sweep_interval_seconds=config.task_sweep_interval_seconds,
        )

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_id: str) -> bool:
        return task_id in self._tasks

    def find_duplicate(self, operation_type: OperationType, fingerprint: str) -> Task | None:
        """Return the active task for (operation_type, fingerprint), if any."""
        operation_type = OperationType(operation_type)
        for task in self._tasks.values():
            if (
                task.operation_type == operation_type
                and task.content_fingerprint == fingerprint
                and task.is_active
            ):
                return task
        return None

    def create_task(
        self,
        operation_type: OperationType,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> Task | None:
        """
        Register a new PENDING task.

        Args:
            operation_type: OperationType of the work
            content: Normalized content (fingerprinted for duplicate detection)
            metadata: Free-form metadata stored on the task

        Returns:
            The new Task, or None if an equivalent task is already active
        """
        fingerprint = content_fingerprint(content)

        duplicate = self.find_duplicate(operation_type, fingerprint)
        if duplicate is not None:
            info(f"[TASKS] Duplicate task detected: {duplicate.id}")
            return None

        task = Task(
            operation_type,
            fingerprint,
            metadata=metadata,
            estimator=self.estimator,
            clock=self._clock,
        )
        self._tasks[task.id] = task
        debug_log(f"[TASKS] Created task {task.id} ({task.operation_type.value})")
        self._ensure_sweeper()
        return task

    def get(self, task_id: str) -> Task | None:
        return self._tasks.get(task_id)

    def active_tasks(self) -> list[Task]:
        """Tasks that are PENDING or RUNNING."""
        return [task for task in self._tasks.values() if task.is_active]

    def all_tasks(self) -> list[Task]:
        return list(self._tasks.values())

    def cancel(self, task_id: str) -> bool:
        """
        Cancel a task by id.

        The task stays registered (so the UI can read its final state) until
        the sweeper evicts it.

        Returns:
            True if the task existed and was active
        """
        task = self._tasks.get(task_id)
        if task is None:
            debug_log(f"[TASKS] Cancel requested for unknown task {task_id}")
            return False
        return task.cancel()

    def remove(self, task_id: str) -> None:
        """Drop a task from the registry, releasing its resources."""
        task = self._tasks.pop(task_id, None)
        if task is not None:
            task.cleanup()
            debug_log(f"[TASKS] Removed task {task_id}")

    def sweep(self, now: float | None = None) -> int:
        """
        Evict tasks that have been terminal for longer than the retention window.

        Returns:
            Number of tasks removed
        """
        if now is None:
            now = self._clock()
        cutoff = now - self.retention_seconds

        expired = [
            task_id
            for task_id, task in self._tasks.items()
            if task.is_terminal and task.completed_at is not None and task.completed_at < cutoff
        ]
        for task_id in expired:
            self.remove(task_id)

        if expired:
            debug_log(f"[TASKS] Swept {len(expired)} old tasks ({len(self._tasks)} remaining)")
        return len(expired)

    # ------------------------------------------------------------------
    # Periodic sweeping
    # ------------------------------------------------------------------

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    def start_sweeper(self) -> None:
        """
        Run sweep() every sweep_interval_seconds on the running event loop.

        Must be called from within a coroutine.
        """
        if self.sweeper_running:
            return
        self._sweeper = asyncio.get_running_loop().create_task(self._sweep_loop())
        debug_log(f"[TASKS] Sweeper started (every {self.sweep_interval_seconds}s)")

    def _ensure_sweeper(self) -> None:
        """Start the sweeper on the running loop, if there is one."""
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # Synchronous caller; sweep() stays available for manual use
            return
        self.start_sweeper()

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._sweeper
        self._sweeper = None
        debug_log("[TASKS] Sweeper stopped")

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_seconds)
            self.sweep()
