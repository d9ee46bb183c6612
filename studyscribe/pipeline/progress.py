"""
Progress reporting shared by the pipeline operations.

The host UI receives (message, percent) events. Once a task is attached,
every event is also recorded on the task (clamped to [0, 100]).
"""

from collections.abc import Callable

ProgressCallback = Callable[[str, float], None]


class ProgressReporter:
    """
    Forwards progress to the task and the caller's callback.

    Example:
        progress = ProgressReporter(progress_callback)
        progress.attach(task)
        progress("Summarizing chunk 1/3...", 20)
    """

    def __init__(self, callback: ProgressCallback | None = None):
        self.callback = callback
        self.task = None

    def attach(self, task) -> None:
        self.task = task

    def __call__(self, message: str, percent: float) -> None:
        percent = min(100.0, max(0.0, float(percent)))
        if self.task is not None:
            if self.task.is_terminal:
                return
            self.task.update_progress(percent, message)
        if self.callback:
            self.callback(message, percent)


def silent_progress(message: str, percent: float) -> None:
    """Progress sink for nested work that should not surface its own events."""
