"""
Tests for the key-value stores and the result cache.
"""

import asyncio
import json

import pytest

from studyscribe.config import RESULT_CACHE_PREFIX
from studyscribe.pipeline import (
    Citation,
    Flashcard,
    FlashcardResult,
    ReportResult,
    SummaryResult,
    result_from_dict,
)
from studyscribe.storage import InMemoryStore, JsonFileStore
from studyscribe.storage.result_cache import ResultCache


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


def sample_flashcards():
    return FlashcardResult(
        flashcards=(
            Flashcard("What is ATP?", ("Energy carrier", "Enzyme", "Hormone", "Lipid"), 0, "ATP stores energy."),
        ),
        requested_count=1,
        difficulty="easy",
        title="Cells",
        url="https://example.com/cells",
    )


class TestInMemoryStore:
    def test_basic_operations(self):
        store = InMemoryStore({"a.one": 1})

        async def scenario():
            await store.set("a.two", {"x": 2})
            await store.set("b.three", 3)
            await store.delete("missing")
            await store.delete("b.three")
            return (
                await store.get("a.two"),
                await store.get("b.three", "gone"),
                sorted(await store.keys("a.")),
            )

        assert asyncio.run(scenario()) == ({"x": 2}, "gone", ["a.one", "a.two"])


class TestJsonFileStore:
    """File-backed persistence."""

    def test_values_survive_a_new_instance(self, tmp_path):
        path = tmp_path / "data" / "store.json"

        async def write():
            store = JsonFileStore(path)
            await store.set("timing", {"summarize": [1, 2]})
            await store.set("other", "value")
            await store.delete("other")

        asyncio.run(write())

        assert json.loads(path.read_text(encoding="utf-8")) == {"timing": {"summarize": [1, 2]}}
        assert asyncio.run(JsonFileStore(path).get("timing")) == {"summarize": [1, 2]}
        assert not path.with_suffix(".json.tmp").exists()

    def test_each_mutation_is_on_disk_when_it_returns(self, tmp_path):
        path = tmp_path / "store.json"
        store = JsonFileStore(path)

        async def scenario():
            await store.set("first", 1)
            after_set = json.loads(path.read_text(encoding="utf-8"))
            await store.delete("first")
            after_delete = json.loads(path.read_text(encoding="utf-8"))
            return after_set, after_delete

        assert asyncio.run(scenario()) == ({"first": 1}, {})

    def test_missing_file_is_empty(self, tmp_path):
        store = JsonFileStore(tmp_path / "absent.json")
        assert asyncio.run(store.keys()) == []

    def test_corrupted_file_starts_empty(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{not json", encoding="utf-8")
        store = JsonFileStore(path)

        async def scenario():
            before = await store.get("anything")
            await store.set("fresh", True)
            return before

        assert asyncio.run(scenario()) is None
        assert json.loads(path.read_text(encoding="utf-8")) == {"fresh": True}


class TestResultSerialization:
    """Results rebuild from their dict form."""

    def test_each_kind_rebuilds(self):
        results = [
            SummaryResult("Summary text", "tldr", "short", "markdown", warnings=("w",)),
            sample_flashcards(),
            ReportResult("Report", (Citation("Title", "https://x", "selection"),), language="de"),
        ]

        for result in results:
            assert result_from_dict(result.to_dict()) == result

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValueError, match="poem"):
            result_from_dict({"kind": "poem"})


class TestResultCache:
    """Expiring cache of results."""

    def setup_method(self):
        self.clock = FakeClock()
        self.store = InMemoryStore()
        self.cache = ResultCache(self.store, expiration_hours=24, clock=self.clock)

    def test_hit_returns_equal_result(self):
        result = sample_flashcards()

        async def scenario():
            await self.cache.put("flashcards", "abc", result)
            return await self.cache.get("flashcards", "abc")

        assert asyncio.run(scenario()) == result

    def test_miss(self):
        assert asyncio.run(self.cache.get("summarize", "nothing")) is None

    def test_keys_are_prefixed_per_operation(self):
        asyncio.run(self.cache.put("summarize", "abc", SummaryResult("s", "tldr", "short", "markdown")))

        assert asyncio.run(self.store.keys()) == [f"{RESULT_CACHE_PREFIX}summarize:abc"]
        assert asyncio.run(self.cache.get("flashcards", "abc")) is None

    def test_expired_entry_is_removed(self):
        async def scenario():
            await self.cache.put("summarize", "abc", SummaryResult("s", "tldr", "short", "markdown"))
            self.clock.now += 25 * 3600
            return await self.cache.get("summarize", "abc"), await self.store.keys()

        assert asyncio.run(scenario()) == (None, [])

    def test_unreadable_entry_is_removed(self):
        key = ResultCache.make_key("summarize", "abc")
        store = InMemoryStore({key: {"result": {"kind": "poem"}, "cached_at": self.clock()}})
        cache = ResultCache(store, clock=self.clock)

        assert asyncio.run(cache.get("summarize", "abc")) is None
        assert asyncio.run(store.keys()) == []

    def test_invalidate_clear_and_purge(self):
        summary = SummaryResult("s", "tldr", "short", "markdown")

        async def scenario():
            await self.store.set("studyscribe.timing_data", {"summarize": []})
            await self.cache.put("summarize", "old", summary)
            self.clock.now += 23 * 3600
            await self.cache.put("summarize", "new", summary)
            await self.cache.put("report", "gone", summary)
            await self.cache.invalidate("report", "gone")
            self.clock.now += 2 * 3600
            purged = await self.cache.purge_expired()
            remaining = sorted(await self.store.keys(RESULT_CACHE_PREFIX))
            cleared = await self.cache.clear()
            return purged, remaining, cleared, await self.store.keys()

        purged, remaining, cleared, all_keys = asyncio.run(scenario())

        assert purged == 1
        assert remaining == [f"{RESULT_CACHE_PREFIX}summarize:new"]
        assert cleared == 1
        assert all_keys == ["studyscribe.timing_data"]
