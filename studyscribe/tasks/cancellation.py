"""
Cooperative cancellation token.

A token is created per Task and passed down the call chain as `signal`.
Cancelling it runs every registered hook (a failing hook never blocks the
others); pipeline code polls raise_if_cancelled() between steps.
"""

import threading
from collections.abc import Callable

from studyscribe.errors import CancellationSignal
from studyscribe.logging_config import warning


class CancellationToken:
    """
    Cancellation flag plus hooks.

    Example:
        token = CancellationToken()
        token.on_cancel(lambda: session.destroy())
        ...
        token.raise_if_cancelled()   # between pipeline steps
    """

    def __init__(self):
        self._cancel_event = threading.Event()
        self._hooks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def on_cancel(self, hook: Callable[[], None]) -> None:
        """
        Register a hook to run on cancellation.

        Hooks registered after cancellation run immediately.
        """
        if self.cancelled:
            self._run_hook(hook)
            return
        self._hooks.append(hook)

    def cancel(self) -> None:
        """Set the flag and run every hook once."""
        if self.cancelled:
            return
        self._cancel_event.set()

        hooks, self._hooks = self._hooks, []
        for hook in hooks:
            self._run_hook(hook)

    def raise_if_cancelled(self) -> None:
        """
        Raises:
            CancellationSignal: If the token has been cancelled
        """
        if self.cancelled:
            raise CancellationSignal()

    def clear_hooks(self) -> None:
        self._hooks.clear()

    @staticmethod
    def _run_hook(hook: Callable[[], None]) -> None:
        try:
            hook()
        except Exception as e:
            warning(f"[TASKS] Cancel hook error: {e}")
