"""
Task: one pipeline operation and its lifecycle.

State machine:

    PENDING ──start()──> RUNNING ──complete()──> COMPLETED
       │                    │
       │                    └────set_error()──> ERRORED
       │                                           ^
       ├──────────────set_error()──────────────────┘
       └──cancel()──> CANCELLED <──cancel()── RUNNING

Terminal states (COMPLETED, CANCELLED, ERRORED) are final: later calls to
complete(), set_error() or cancel() are no-ops. This is what discards late
results from service calls that finish after the task was cancelled.

On entering any terminal state the task releases every generation session
it holds and clears its cancel hooks.
"""

import hashlib
import math
import time
import uuid
from collections.abc import Callable
from enum import Enum
from typing import Any

from studyscribe.errors import describe_error
from studyscribe.logging_config import debug_log, debug_timing, warning
from studyscribe.timing_estimator import TaskTimer, TimingEstimator

from .cancellation import CancellationToken


class OperationType(str, Enum):
    SUMMARIZE = "summarize"
    FLASHCARDS = "flashcards"
    REPORT = "report"


class TaskStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ERRORED = "errored"


ACTIVE_STATUSES = frozenset({TaskStatus.PENDING, TaskStatus.RUNNING})
TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.CANCELLED, TaskStatus.ERRORED})


def content_fingerprint(content: str) -> str:
    """SHA-256 hex digest of the whitespace-normalized content."""
    normalized = " ".join((content or "").split())
    return hashlib.sha256(normalized.encode('utf-8')).hexdigest()


def generate_task_id(now: float) -> str:
    return f"task_{int(now * 1000)}_{uuid.uuid4().hex[:9]}"


def _is_abort_error(exc: Exception) -> bool:
    return type(exc).__name__ == 'AbortError' or 'abort' in str(exc).lower()


class Task:
    """
    A single summarize / flashcards / report operation.

    Attributes:
        id: Unique task id
        operation_type: OperationType
        content_fingerprint: Hash of the normalized content (duplicate key)
        metadata: Free-form caller metadata (title, url, ...)
        status: TaskStatus
        progress_percent: 0-100
        progress_message: Latest progress message
        created_at / started_at / completed_at: Epoch seconds (None until reached)
        unit_count: Chunks or sources processed
        estimated_seconds: Initial estimate from the TimingEstimator
        result: Result object once COMPLETED
        error: Exception once ERRORED
        token: CancellationToken passed to service calls as `signal`
    """

    def __init__(
        self,
        operation_type: OperationType,
        content_fingerprint: str,
        metadata: dict[str, Any] | None = None,
        estimator: TimingEstimator | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._clock = clock
        self._estimator = estimator

        self.id = generate_task_id(clock())
        self.operation_type = OperationType(operation_type)
        self.content_fingerprint = content_fingerprint
        self.metadata = dict(metadata or {})

        self.status = TaskStatus.PENDING
        self.progress_percent = 0.0
        self.progress_message = ""

        self.created_at = clock()
        self.started_at: float | None = None
        self.completed_at: float | None = None

        self.unit_count = 0
        self.estimated_seconds = 0
        self.result = None
        self.error: BaseException | None = None

        self.token = CancellationToken()
        self._timer: TaskTimer | None = None
        self._sessions: list = []

    def __repr__(self) -> str:
        return f"Task({self.id}, {self.operation_type.value}, {self.status.value}, {self.progress_percent:.0f}%)"

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def error_message(self) -> str | None:
        """Readable error for display, never a traceback."""
        if self.error is None:
            return None
        return describe_error(self.error)

    async def start(self, unit_count: int = 1) -> None:
        """
        Move PENDING -> RUNNING and fetch the initial time estimate.

        Args:
            unit_count: Chunks (or report sources) the operation will process
        """
        if self.status != TaskStatus.PENDING:
            debug_log(f"[TASKS] Ignoring start() on {self.id} in state {self.status.value}")
            return

        self.status = TaskStatus.RUNNING
        self.started_at = self._clock()
        self.unit_count = unit_count

        if self._estimator is not None:
            self._timer = TaskTimer(self._estimator, self.operation_type, unit_count, clock=self._clock)
            self.estimated_seconds = await self._estimator.estimate(self.operation_type, unit_count)

        debug_log(f"[TASKS] Started {self.id}: {unit_count} units, estimate {self.estimated_seconds}s")

    def update_progress(self, percent: float, message: str = "") -> None:
        """Record progress, clamped to [0, 100]. Ignored once terminal."""
        if self.is_terminal:
            return
        self.progress_percent = min(100.0, max(0.0, float(percent)))
        self.progress_message = message

    async def complete(self, result) -> bool:
        """
        Move RUNNING -> COMPLETED, record the duration and release resources.

        Returns:
            False if the task was not running (the result is discarded)
        """
        if self.status != TaskStatus.RUNNING:
            debug_log(f"[TASKS] Discarding late result for {self.id} ({self.status.value})")
            return False

        self.status = TaskStatus.COMPLETED
        self.result = result
        self.progress_percent = 100.0
        self.completed_at = self._clock()

        try:
            if self._timer is not None:
                await self._timer.stop()
        finally:
            self.cleanup()

        debug_timing(f"[TASKS] Task {self.id} ({self.operation_type.value})", self.elapsed_seconds)
        return True

    def cancel(self) -> bool:
        """
        Move PENDING|RUNNING -> CANCELLED, fire cancel hooks, release resources.

        Returns:
            False if the task was already terminal
        """
        if self.is_terminal:
            return False

        self.status = TaskStatus.CANCELLED
        self.completed_at = self._clock()
        self.token.cancel()
        self.cleanup()

        debug_log(f"[TASKS] Cancelled {self.id}")
        return True

    def set_error(self, error: BaseException) -> bool:
        """
        Move PENDING|RUNNING -> ERRORED and release resources.

        Returns:
            False if the task was already terminal
        """
        if self.is_terminal:
            debug_log(f"[TASKS] Ignoring error for {self.id} ({self.status.value}): {error}")
            return False

        self.status = TaskStatus.ERRORED
        self.error = error
        self.completed_at = self._clock()
        self.cleanup()

        debug_log(f"[TASKS] Errored {self.id}: {describe_error(error)}")
        return True

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    def on_cancel(self, hook: Callable[[], None]) -> None:
        self.token.on_cancel(hook)

    def hold_session(self, session) -> None:
        """
        Take ownership of a generation session.

        Sessions handed over after the task reached a terminal state are
        released immediately.
        """
        self._sessions.append(session)
        if self.is_terminal:
            self.cleanup()

    def release_session(self, session) -> None:
        """Destroy one held session early (e.g. after its chunk is done)."""
        if session in self._sessions:
            self._sessions.remove(session)
            self._destroy(session)

    @property
    def held_sessions(self) -> tuple:
        return tuple(self._sessions)

    def cleanup(self) -> None:
        """Release every held session and clear cancel hooks. Idempotent."""
        sessions, self._sessions = self._sessions, []
        for session in sessions:
            self._destroy(session)
        self.token.clear_hooks()

    def _destroy(self, session) -> None:
        try:
            session.destroy()
        except Exception as e:
            if _is_abort_error(e):
                debug_log(f"[TASKS] Session for {self.id} already aborted: {e}")
            else:
                warning(f"[TASKS] Error destroying session for {self.id}: {e}")

    # ------------------------------------------------------------------
    # Timing
    # ------------------------------------------------------------------

    @property
    def elapsed_seconds(self) -> float:
        if self.started_at is None:
            return 0.0
        end_time = self.completed_at if self.completed_at is not None else self._clock()
        return max(0.0, end_time - self.started_at)

    @property
    def remaining_seconds(self) -> float:
        """
        Remaining time extrapolated from progress so far.

        Before any progress is reported the initial estimate is returned.
        """
        if self.status != TaskStatus.RUNNING:
            return 0.0

        fraction = self.progress_percent / 100
        if fraction == 0:
            return float(self.estimated_seconds)

        elapsed = self.elapsed_seconds
        return max(0.0, elapsed / fraction - elapsed)

    def formatted_remaining_time(self) -> str:
        """Remaining time as '~Ns', '~Nm' or '~Hh Mm'."""
        seconds = math.ceil(self.remaining_seconds)

        if seconds < 60:
            return f"~{seconds}s"
        if seconds < 3600:
            return f"~{math.ceil(seconds / 60)}m"

        hours = seconds // 3600
        minutes = math.ceil((seconds % 3600) / 60)
        return f"~{hours}h {minutes}m"
