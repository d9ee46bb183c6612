"""
Tests for tasks, cancellation tokens and the task registry.

Tests cover:
- Task state machine and late-result discarding
- Cancel hooks (best effort) and session release
- Duplicate suppression by (operation, content)
- Remaining-time formatting
- Sweeping of old terminal tasks
"""

import asyncio

import pytest

from studyscribe.config import PipelineConfig
from studyscribe.errors import CancellationSignal, ContentTooShortError
from studyscribe.storage import InMemoryStore
from studyscribe.tasks import (
    CancellationToken,
    OperationType,
    Task,
    TaskRegistry,
    TaskStatus,
    content_fingerprint,
)
from studyscribe.timing_estimator import TimingEstimator


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


class RecordingSession:
    def __init__(self, fail_with=None):
        self.destroy_calls = 0
        self.fail_with = fail_with

    def destroy(self):
        self.destroy_calls += 1
        if self.fail_with is not None:
            raise self.fail_with


class AbortError(Exception):
    pass


def make_task(clock=None, estimator=None):
    return Task(OperationType.SUMMARIZE, content_fingerprint("content"), estimator=estimator,
                clock=clock or FakeClock())


class TestContentFingerprint:
    def test_whitespace_insensitive(self):
        assert content_fingerprint("a  b\n\nc") == content_fingerprint(" a b c ")

    def test_different_content_differs(self):
        assert content_fingerprint("alpha") != content_fingerprint("beta")


class TestCancellationToken:
    """Flag and hooks."""

    def test_cancel_runs_hooks_once(self):
        token = CancellationToken()
        calls = []
        token.on_cancel(lambda: calls.append("a"))
        token.on_cancel(lambda: calls.append("b"))

        token.cancel()
        token.cancel()

        assert token.cancelled
        assert calls == ["a", "b"]

    def test_failing_hook_does_not_block_others(self):
        token = CancellationToken()
        calls = []

        def broken():
            raise RuntimeError("hook failed")

        token.on_cancel(broken)
        token.on_cancel(lambda: calls.append("ran"))
        token.cancel()

        assert calls == ["ran"]

    def test_hook_after_cancel_runs_immediately(self):
        token = CancellationToken()
        token.cancel()
        calls = []
        token.on_cancel(lambda: calls.append("late"))

        assert calls == ["late"]

    def test_raise_if_cancelled(self):
        token = CancellationToken()
        token.raise_if_cancelled()
        token.cancel()
        with pytest.raises(CancellationSignal):
            token.raise_if_cancelled()


class TestTaskLifecycle:
    """State transitions."""

    def test_new_task_is_pending(self):
        task = make_task()
        assert task.status == TaskStatus.PENDING
        assert task.is_active
        assert task.id.startswith("task_")

    def test_start_then_complete(self):
        task = make_task()

        async def scenario():
            await task.start(2)
            return await task.complete("done")

        assert asyncio.run(scenario()) is True
        assert task.status == TaskStatus.COMPLETED
        assert task.result == "done"
        assert task.progress_percent == 100

    def test_complete_requires_running(self):
        task = make_task()
        assert asyncio.run(task.complete("result")) is False
        assert task.status == TaskStatus.PENDING

    def test_cancel_pending_then_late_complete_is_discarded(self):
        """A result arriving after cancellation is dropped."""
        task = make_task()
        assert task.cancel() is True

        assert asyncio.run(task.complete("late result")) is False
        assert task.status == TaskStatus.CANCELLED
        assert task.result is None

    def test_cancel_running_then_late_complete_is_discarded(self):
        task = make_task()

        async def scenario():
            await task.start(1)
            task.cancel()
            return await task.complete("late")

        assert asyncio.run(scenario()) is False
        assert task.status == TaskStatus.CANCELLED

    def test_terminal_states_are_final(self):
        task = make_task()
        task.set_error(ContentTooShortError(10))

        assert task.cancel() is False
        assert task.set_error(RuntimeError("again")) is False
        assert task.status == TaskStatus.ERRORED
        assert task.error_message == "Content too short (minimum 50 characters)"

    def test_set_error_from_pending(self):
        task = make_task()
        assert task.set_error(RuntimeError("boom")) is True
        assert task.status == TaskStatus.ERRORED
        assert task.error_message == "Unexpected error: boom"

    def test_progress_is_clamped_and_frozen_when_terminal(self):
        task = make_task()
        task.update_progress(150, "too far")
        assert task.progress_percent == 100

        task.update_progress(-5, "too low")
        assert task.progress_percent == 0

        task.cancel()
        task.update_progress(40, "ignored")
        assert task.progress_percent == 0
        assert task.progress_message == "too low"

    def test_start_records_estimate(self):
        estimator = TimingEstimator(InMemoryStore())
        task = make_task(estimator=estimator)

        asyncio.run(task.start(3))

        assert task.status == TaskStatus.RUNNING
        assert task.unit_count == 3
        assert task.estimated_seconds == 5 * 3 + 2

    def test_complete_records_timing(self):
        clock = FakeClock()
        estimator = TimingEstimator(InMemoryStore(), clock=clock)
        task = make_task(clock=clock, estimator=estimator)

        async def scenario():
            await task.start(2)
            clock.now += 9
            await task.complete("ok")
            return await estimator.get_records("summarize")

        records = asyncio.run(scenario())
        assert len(records) == 1
        assert records[0].unit_count == 2
        assert records[0].actual_seconds == 9


class TestTaskResources:
    """Sessions and cancel hooks."""

    def test_cancel_fires_hooks_and_destroys_sessions(self):
        task = make_task()
        session = RecordingSession()
        hooks = []
        task.hold_session(session)
        task.on_cancel(lambda: hooks.append("cancelled"))

        task.cancel()

        assert hooks == ["cancelled"]
        assert session.destroy_calls == 1
        assert task.held_sessions == ()
        assert task.token.cancelled

    def test_abort_errors_on_destroy_are_tolerated(self):
        task = make_task()
        aborted = RecordingSession(fail_with=AbortError("The operation was aborted"))
        broken = RecordingSession(fail_with=RuntimeError("device lost"))
        healthy = RecordingSession()
        for session in (aborted, broken, healthy):
            task.hold_session(session)

        task.set_error(RuntimeError("failed"))

        assert [s.destroy_calls for s in (aborted, broken, healthy)] == [1, 1, 1]

    def test_session_held_after_terminal_is_released(self):
        task = make_task()
        task.cancel()
        late = RecordingSession()

        task.hold_session(late)

        assert late.destroy_calls == 1
        assert task.held_sessions == ()

    def test_release_session(self):
        task = make_task()
        session = RecordingSession()
        task.hold_session(session)

        task.release_session(session)
        task.cleanup()

        assert session.destroy_calls == 1


class TestRemainingTime:
    """Time remaining extrapolation and formatting."""

    def setup_method(self):
        self.clock = FakeClock()
        self.task = make_task(clock=self.clock, estimator=TimingEstimator(InMemoryStore()))
        asyncio.run(self.task.start(1))

    def test_uses_estimate_before_progress(self):
        assert self.task.remaining_seconds == 7
        assert self.task.formatted_remaining_time() == "~7s"

    def test_seconds(self):
        self.clock.now += 30
        self.task.update_progress(50)
        assert self.task.formatted_remaining_time() == "~30s"

    def test_minutes_round_up(self):
        self.clock.now += 90
        self.task.update_progress(50)
        assert self.task.formatted_remaining_time() == "~2m"

    def test_hours_and_minutes(self):
        self.clock.now += 4500
        self.task.update_progress(50)
        assert self.task.formatted_remaining_time() == "~1h 15m"

    def test_zero_when_not_running(self):
        self.task.cancel()
        assert self.task.formatted_remaining_time() == "~0s"


class TestDuplicateSuppression:
    """One active task per (operation, content)."""

    def test_second_identical_request_is_rejected(self):
        registry = TaskRegistry()
        first = registry.create_task(OperationType.SUMMARIZE, "Same page text")
        second = registry.create_task(OperationType.SUMMARIZE, "Same  page\ntext")

        assert first is not None
        assert second is None
        assert len(registry) == 1

    def test_allowed_again_after_first_finishes(self):
        registry = TaskRegistry()
        first = registry.create_task(OperationType.SUMMARIZE, "Same page text")
        first.set_error(RuntimeError("failed"))

        third = registry.create_task(OperationType.SUMMARIZE, "Same page text")

        assert third is not None
        assert third.id != first.id

    def test_different_operation_is_not_a_duplicate(self):
        registry = TaskRegistry()
        registry.create_task(OperationType.SUMMARIZE, "Same page text")

        assert registry.create_task(OperationType.FLASHCARDS, "Same page text") is not None

    def test_find_duplicate(self):
        registry = TaskRegistry()
        task = registry.create_task("report", "Sources")

        assert registry.find_duplicate(OperationType.REPORT, content_fingerprint("Sources")) is task


class TestRegistryLookup:
    def test_get_and_contains(self):
        registry = TaskRegistry()
        task = registry.create_task(OperationType.FLASHCARDS, "text")

        assert task.id in registry
        assert registry.get(task.id) is task
        assert registry.get("task_missing") is None

    def test_cancel_keeps_task_registered(self):
        registry = TaskRegistry()
        task = registry.create_task(OperationType.SUMMARIZE, "text")

        assert registry.cancel(task.id) is True
        assert registry.cancel(task.id) is False
        assert registry.get(task.id).status == TaskStatus.CANCELLED
        assert registry.active_tasks() == []
        assert registry.all_tasks() == [task]

    def test_cancel_unknown_task(self):
        assert TaskRegistry().cancel("task_unknown") is False

    def test_remove_releases_sessions(self):
        registry = TaskRegistry()
        task = registry.create_task(OperationType.SUMMARIZE, "text")
        session = RecordingSession()
        task.hold_session(session)

        registry.remove(task.id)

        assert task.id not in registry
        assert session.destroy_calls == 1


class TestSweeping:
    """Eviction of old terminal tasks."""

    def test_sweep_removes_only_old_terminal_tasks(self):
        clock = FakeClock()
        registry = TaskRegistry(retention_seconds=300, clock=clock)
        old = registry.create_task(OperationType.SUMMARIZE, "old")
        recent = registry.create_task(OperationType.SUMMARIZE, "recent")
        running = registry.create_task(OperationType.SUMMARIZE, "running")

        old.cancel()
        clock.now += 200
        recent.cancel()
        clock.now += 150

        assert registry.sweep() == 1
        assert old.id not in registry
        assert recent.id in registry
        assert running.id in registry

    def test_background_sweeper(self):
        registry = TaskRegistry(retention_seconds=0, sweep_interval_seconds=0.01)

        async def scenario():
            task = registry.create_task(OperationType.SUMMARIZE, "text")
            task.cancel()
            registry.start_sweeper()
            running = registry.sweeper_running
            await asyncio.sleep(0.1)
            await registry.stop_sweeper()
            return task, running

        task, running = asyncio.run(scenario())

        assert running is True
        assert registry.sweeper_running is False
        assert task.id not in registry

    def test_sweeper_starts_with_first_task_on_a_loop(self):
        registry = TaskRegistry(retention_seconds=0, sweep_interval_seconds=0.01)

        async def scenario():
            task = registry.create_task(OperationType.SUMMARIZE, "text")
            running = registry.sweeper_running
            task.cancel()
            await asyncio.sleep(0.1)
            evicted = task.id not in registry
            await registry.stop_sweeper()
            return running, evicted

        assert asyncio.run(scenario()) == (True, True)

    def test_no_sweeper_without_a_loop(self):
        registry = TaskRegistry()
        registry.create_task(OperationType.SUMMARIZE, "text")

        assert registry.sweeper_running is False

    def test_from_config(self):
        config = PipelineConfig(task_retention_seconds=1, task_sweep_interval_seconds=2)
        estimator = TimingEstimator(InMemoryStore())

        registry = TaskRegistry.from_config(config, estimator=estimator)

        assert registry.retention_seconds == 1
        assert registry.sweep_interval_seconds == 2
        assert registry.estimator is estimator
