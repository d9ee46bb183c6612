"""
Content-hash keyed cache of pipeline results.

Callers consult the cache before starting an operation, so re-running the
same operation on the same content across sessions returns the stored
result instead of calling the generation service again. This is separate
from the task registry's duplicate suppression, which only covers work
that is currently in flight.

Entries are stored as:
    {"result": <result dict>, "cached_at": <epoch seconds>}
under the key  RESULT_CACHE_PREFIX + "<operation>:<fingerprint>".
"""

import time
from collections.abc import Callable

from studyscribe.config import RESULT_CACHE_EXPIRATION_HOURS, RESULT_CACHE_PREFIX
from studyscribe.logging_config import debug_log, warning
from studyscribe.pipeline.result_types import PipelineResult, result_from_dict

from .key_value_store import KeyValueStore


class ResultCache:
    """
    Expiring cache of SummaryResult / FlashcardResult / ReportResult.

    Example:
        cache = ResultCache(JsonFileStore())
        cached = await cache.get("summarize", fingerprint)
        if cached is None:
            task = await orchestrator.summarize(...)
            await cache.put("summarize", fingerprint, task.result)
    """

    def __init__(
        self,
        store: KeyValueStore,
        expiration_hours: float = RESULT_CACHE_EXPIRATION_HOURS,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.expiration_seconds = expiration_hours * 3600
        self._clock = clock

    @staticmethod
    def make_key(operation: str, fingerprint: str) -> str:
        return f"{RESULT_CACHE_PREFIX}{operation}:{fingerprint}"

    def _is_expired(self, entry: dict) -> bool:
        cached_at = entry.get('cached_at', 0)
        return self._clock() - cached_at > self.expiration_seconds

    async def get(self, operation: str, fingerprint: str) -> PipelineResult | None:
        """
        Return the cached result, or None if missing, expired or unreadable.

        Expired and unreadable entries are removed.
        """
        key = self.make_key(operation, fingerprint)
        entry = await self.store.get(key)
        if not entry:
            return None

        if self._is_expired(entry):
            debug_log(f"[CACHE] Entry expired: {key}")
            await self.store.delete(key)
            return None

        try:
            result = result_from_dict(entry['result'])
        except (KeyError, TypeError, ValueError) as e:
            warning(f"[CACHE] Dropping unreadable entry {key}: {e}")
            await self.store.delete(key)
            return None

        debug_log(f"[CACHE] Hit: {key}")
        return result

    async def put(self, operation: str, fingerprint: str, result: PipelineResult) -> None:
        key = self.make_key(operation, fingerprint)
        await self.store.set(key, {'result': result.to_dict(), 'cached_at': self._clock()})
        debug_log(f"[CACHE] Stored: {key}")

    async def invalidate(self, operation: str, fingerprint: str) -> None:
        await self.store.delete(self.make_key(operation, fingerprint))

    async def clear(self) -> int:
        """Remove every cached result. Returns the number removed."""
        keys = await self.store.keys(RESULT_CACHE_PREFIX)
        for key in keys:
            await self.store.delete(key)
        debug_log(f"[CACHE] Cleared {len(keys)} entries")
        return len(keys)

    async def purge_expired(self) -> int:
        """Remove expired entries. Returns the number removed."""
        removed = 0
        for key in await self.store.keys(RESULT_CACHE_PREFIX):
            entry = await self.store.get(key)
            if not isinstance(entry, dict) or self._is_expired(entry):
                await self.store.delete(key)
                removed += 1
        if removed:
            debug_log(f"[CACHE] Purged {removed} expired entries")
        return removed
