"""
Learning Time Estimator

Tracks how long pipeline operations actually take and uses that history to
estimate future durations on this machine.

- Fewer than TIMING_MIN_RECORDS_FOR_LEARNING records: fixed per-unit
  baseline plus overhead (see config.BASELINE_TIMES)
- Otherwise: average seconds per unit over the most recent
  TIMING_RECENT_WINDOW records, times the unit count, plus the baseline
  overhead, floored at TIMING_MIN_ESTIMATE_SECONDS

History lives in the key-value store under TIMING_STORAGE_KEY as:
    {"summarize": [{"unit_count": 3, "actual_seconds": 14.2,
                    "recorded_at": 1730000000.0}, ...],
     "flashcards": [...], "report": [...], "last_cleanup": 1730000000.0}
"""

import math
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass

import numpy as np

from studyscribe.config import (
    BASELINE_TIMES,
    DEFAULT_BASELINE,
    TIMING_MAX_RECORDS_PER_TYPE,
    TIMING_MIN_ESTIMATE_SECONDS,
    TIMING_MIN_RECORDS_FOR_LEARNING,
    TIMING_RECENT_WINDOW,
    TIMING_RETENTION_DAYS,
    TIMING_STORAGE_KEY,
)
from studyscribe.logging_config import debug_log
from studyscribe.storage.key_value_store import KeyValueStore

LAST_CLEANUP_KEY = "last_cleanup"


def _operation_key(operation_type) -> str:
    """Accept either an OperationType member or its string value."""
    return str(getattr(operation_type, 'value', operation_type))


@dataclass
class TimingRecord:
    """One observed operation duration."""
    operation_type: str
    unit_count: int
    actual_seconds: float
    recorded_at: float

    def to_dict(self) -> dict:
        data = asdict(self)
        del data['operation_type']
        return data


class TimingEstimator:
    """
    Estimates operation durations from recorded history.

    Example:
        estimator = TimingEstimator(JsonFileStore())
        seconds = await estimator.estimate("summarize", 4)
        ...
        await estimator.record_timing("summarize", 4, 21.7)
    """

    def __init__(self, store: KeyValueStore, clock: Callable[[], float] = time.time):
        self.store = store
        self._clock = clock

    async def _load(self) -> dict:
        data = await self.store.get(TIMING_STORAGE_KEY)
        if not isinstance(data, dict):
            data = {op: [] for op in BASELINE_TIMES}
            data[LAST_CLEANUP_KEY] = self._clock()
        return data

    async def _save(self, data: dict) -> None:
        await self.store.set(TIMING_STORAGE_KEY, data)

    async def get_records(self, operation_type) -> list[TimingRecord]:
        """Return the stored history for an operation type, oldest first."""
        op = _operation_key(operation_type)
        data = await self._load()
        return [
            TimingRecord(
                operation_type=op,
                unit_count=int(record['unit_count']),
                actual_seconds=float(record['actual_seconds']),
                recorded_at=float(record['recorded_at']),
            )
            for record in data.get(op, [])
        ]

    async def record_timing(self, operation_type, unit_count: int, actual_seconds: float) -> None:
        """
        Append an observed duration, keeping the most recent records only.

        Args:
            operation_type: 'summarize', 'flashcards' or 'report'
            unit_count: Chunks (or report sources) processed
            actual_seconds: Wall-clock duration
        """
        op = _operation_key(operation_type)
        data = await self._load()

        history = data.setdefault(op, [])
        record = TimingRecord(
            operation_type=op,
            unit_count=max(int(unit_count), 0),
            actual_seconds=max(float(actual_seconds), 0.0),
            recorded_at=self._clock(),
        )
        history.append(record.to_dict())

        if len(history) > TIMING_MAX_RECORDS_PER_TYPE:
            data[op] = history[-TIMING_MAX_RECORDS_PER_TYPE:]

        await self._save(data)
        debug_log(
            f"[TIMING] Recorded {op}: {record.unit_count} units in "
            f"{record.actual_seconds:.1f}s ({len(data[op])} records)"
        )

    def _recent_totals(self, history: list[dict]) -> tuple[float, float]:
        recent = history[-TIMING_RECENT_WINDOW:]
        seconds = np.array([r['actual_seconds'] for r in recent], dtype=float)
        units = np.array([r['unit_count'] for r in recent], dtype=float)
        return float(np.sum(seconds)), float(np.sum(units))

    async def estimate(self, operation_type, unit_count: int) -> int:
        """
        Estimate seconds needed to process unit_count units.

        Args:
            operation_type: 'summarize', 'flashcards' or 'report'
            unit_count: Chunks (or report sources) to process

        Returns:
            Estimated whole seconds (never below TIMING_MIN_ESTIMATE_SECONDS)
        """
        op = _operation_key(operation_type)
        baseline = BASELINE_TIMES.get(op, DEFAULT_BASELINE)
        history = (await self._load()).get(op, [])

        if len(history) >= TIMING_MIN_RECORDS_FOR_LEARNING:
            total_seconds, total_units = self._recent_totals(history)
            if total_units > 0:
                avg_per_unit = total_seconds / total_units
                estimate = avg_per_unit * unit_count + baseline['overhead']
                result = max(math.ceil(estimate), TIMING_MIN_ESTIMATE_SECONDS)
                debug_log(f"[TIMING] Learned estimate for {op} x{unit_count}: {result}s ({avg_per_unit:.2f}s/unit)")
                return result

        result = max(baseline['per_unit'] * unit_count + baseline['overhead'], TIMING_MIN_ESTIMATE_SECONDS)
        debug_log(f"[TIMING] Baseline estimate for {op} x{unit_count}: {result}s")
        return result

    async def average_seconds_per_unit(self, operation_type) -> float:
        """
        Average seconds per unit over recent history.

        Falls back to the baseline per-unit cost when there is no history.
        """
        op = _operation_key(operation_type)
        history = (await self._load()).get(op, [])
        if history:
            total_seconds, total_units = self._recent_totals(history)
            if total_units > 0:
                return total_seconds / total_units
        return float(BASELINE_TIMES.get(op, DEFAULT_BASELINE)['per_unit'])

    async def cleanup_old_records(self) -> bool:
        """
        Purge records older than TIMING_RETENTION_DAYS.

        Returns:
            True if anything was removed
        """
        data = await self._load()
        cutoff = self._clock() - TIMING_RETENTION_DAYS * 24 * 3600

        removed = 0
        for op, history in data.items():
            if not isinstance(history, list):
                continue
            kept = [r for r in history if r['recorded_at'] > cutoff]
            removed += len(history) - len(kept)
            data[op] = kept

        if removed:
            data[LAST_CLEANUP_KEY] = self._clock()
            await self._save(data)
            debug_log(f"[TIMING] Purged {removed} records older than {TIMING_RETENTION_DAYS} days")

        return removed > 0


class TaskTimer:
    """
    Measures one operation and records it with the estimator when stopped.

    Example:
        timer = TaskTimer(estimator, "flashcards", 2)
        ...
        elapsed = await timer.stop()
    """

    def __init__(
        self,
        estimator: TimingEstimator,
        operation_type,
        unit_count: int,
        clock: Callable[[], float] = time.time,
    ):
        self.estimator = estimator
        self.operation_type = operation_type
        self.unit_count = unit_count
        self._clock = clock
        self.start_time = clock()

    def elapsed(self) -> float:
        return self._clock() - self.start_time

    async def stop(self) -> float:
        """Record the elapsed time and return it."""
        elapsed = self.elapsed()
        await self.estimator.record_timing(self.operation_type, self.unit_count, elapsed)
        return elapsed
