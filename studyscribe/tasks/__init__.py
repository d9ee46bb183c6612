"""
Task management for StudyScribe.

Components:
- Task: One operation with its state machine, sessions and timing
- TaskRegistry: Indexed task collection with duplicate suppression and sweeping
- CancellationToken: Cooperative cancellation passed to service calls
"""

from .cancellation import CancellationToken
from .registry import TaskRegistry
from .task import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    OperationType,
    Task,
    TaskStatus,
    content_fingerprint,
)

__all__ = [
    'ACTIVE_STATUSES',
    'TERMINAL_STATUSES',
    'CancellationToken',
    'OperationType',
    'Task',
    'TaskRegistry',
    'TaskStatus',
    'content_fingerprint',
]
