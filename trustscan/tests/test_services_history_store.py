"""Tests for the scan history store and the result cache."""

import asyncio
import json
from datetime import datetime, timedelta, timezone

import pytest

from trustscan.models.schemas import Badge, FilterType, HistoryEntry, ScanResult, UserSettings
from trustscan.services.history_store import HISTORY_KEY, MAX_HISTORY, HistoryStore, entry_from_result
from trustscan.services.scan_cache import INDEX_KEY, ResultCache, cache_key


def make_result(scan_id: str = "scan_1", badge: Badge = Badge.VERIFIED, score: int = 90) -> ScanResult:
    return ScanResult(
        id=scan_id,
        url="https://www.example.com/item",
        domain="example.com",
        badge=badge,
        score=score,
        timestamp=1_700_000_000_000,
        title="Example item",
    )


class TestHistoryStore:
    @pytest.fixture
    def history(self, kv):
        return HistoryStore(kv)

    @pytest.mark.asyncio
    async def test_record_inserts_newest_first(self, history):
        await history.record(HistoryEntry(scan_id="a", score=90))
        await history.record(HistoryEntry(scan_id="b", score=40))
        entries = await history.load()
        assert [entry.scan_id for entry in entries] == ["b", "a"]

    @pytest.mark.asyncio
    async def test_record_replaces_same_scan_id(self, history):
        await history.record(HistoryEntry(scan_id="a", score=10))
        await history.record(HistoryEntry(scan_id="b", score=20))
        await history.record(HistoryEntry(scan_id="a", score=30))
        entries = await history.load()
        assert [entry.scan_id for entry in entries] == ["a", "b"]
        assert entries[0].score == 30

    @pytest.mark.asyncio
    async def test_history_is_capped(self, history):
        for i in range(MAX_HISTORY + 5):
            await history.record(HistoryEntry(scan_id=f"s{i}"))
        entries = await history.load()
        assert len(entries) == MAX_HISTORY
        assert entries[0].scan_id == f"s{MAX_HISTORY + 4}"

    @pytest.mark.asyncio
    async def test_privacy_mode_redacts(self, history):
        entry = entry_from_result(make_result())
        await history.record(entry, privacy_mode=True)
        stored = (await history.load())[0]
        assert stored.url is None
        assert stored.title is None
        assert stored.reasons is None
        assert stored.domain == "example.com"
        assert stored.score == 90

    @pytest.mark.asyncio
    async def test_record_result_respects_save_history(self, history):
        recorded = await history.record_result(make_result(), UserSettings(save_history=False))
        assert recorded is False
        assert await history.load() == []

    @pytest.mark.asyncio
    async def test_filter_by_badge(self, history):
        await history.record(HistoryEntry(scan_id="v", badge=Badge.VERIFIED, score=90))
        await history.record(HistoryEntry(scan_id="h", badge=Badge.HIGH_RISK, score=10))
        risky = await history.load(FilterType.HIGH_RISK)
        assert [entry.scan_id for entry in risky] == ["h"]
        assert len(await history.load(FilterType.ALL)) == 2

    @pytest.mark.asyncio
    async def test_corrupt_history_loads_empty(self, kv, history):
        await kv.set(HISTORY_KEY, "{not json")
        assert await history.load() == []
        assert await history.last() is None

    @pytest.mark.asyncio
    async def test_non_numeric_score_becomes_zero(self, kv, history):
        await kv.set(HISTORY_KEY, json.dumps([{"scan_id": "x", "score": "abc"}]))
        assert (await history.load())[0].score == 0

    @pytest.mark.asyncio
    async def test_purge_older_than(self, history):
        now = datetime(2026, 1, 31, tzinfo=timezone.utc)
        await history.save(
            [
                HistoryEntry(scan_id="old", created_at=(now - timedelta(days=10)).isoformat()),
                HistoryEntry(scan_id="new", created_at=(now - timedelta(days=2)).isoformat()),
                HistoryEntry(scan_id="bad", created_at="yesterday"),
            ]
        )
        kept = await history.purge_older_than(7, now=now)
        assert [entry.scan_id for entry in kept] == ["new"]

    @pytest.mark.asyncio
    async def test_purge_with_non_positive_days_is_noop(self, history):
        await history.record(HistoryEntry(scan_id="a", created_at="garbage"))
        assert len(await history.purge_older_than(0)) == 1

    @pytest.mark.asyncio
    async def test_apply_retention_never_keeps_everything(self, history):
        await history.record(HistoryEntry(scan_id="a", created_at="2000-01-01T00:00:00+00:00"))
        await history.apply_retention(UserSettings(auto_delete="never"))
        assert len(await history.load()) == 1
        await history.apply_retention(UserSettings(auto_delete="30"))
        assert await history.load() == []

    @pytest.mark.asyncio
    async def test_concurrent_records_are_not_lost(self, history):
        await asyncio.gather(*(history.record(HistoryEntry(scan_id=f"c{i}")) for i in range(25)))
        entries = await history.load()
        assert {entry.scan_id for entry in entries} == {f"c{i}" for i in range(25)}


class TestResultCache:
    @pytest.fixture
    def cache(self, kv):
        return ResultCache(kv)

    @pytest.mark.asyncio
    async def test_put_and_get_result(self, cache):
        result = make_result()
        await cache.put_result(result, UserSettings(privacy_mode=False))
        cached = await cache.get_result("scan_1")
        assert cached == result

    @pytest.mark.asyncio
    async def test_privacy_mode_drops_title_and_origin(self, cache):
        await cache.put_result(make_result(), UserSettings(privacy_mode=True))
        cached = await cache.get_result("scan_1")
        assert cached is not None
        assert cached.url is None
        assert cached.title is None
        assert cached.domain == "example.com"
        assert cached.score == 90

    @pytest.mark.asyncio
    async def test_save_history_off_skips_cache(self, cache):
        stored = await cache.put_result(make_result(), UserSettings(save_history=False))
        assert stored is False
        assert await cache.get("scan_1") is None

    @pytest.mark.asyncio
    async def test_index_moves_id_to_front(self, cache):
        await cache.put("a", {"x": 1})
        await cache.put("b", {"x": 2})
        await cache.put("a", {"x": 3})
        assert await cache.ids() == ["a", "b"]
        assert await cache.get("a") == {"x": 3}

    @pytest.mark.asyncio
    async def test_index_is_capped_but_entries_remain(self, kv):
        cache = ResultCache(kv, max_index=3)
        for i in range(5):
            await cache.put(f"s{i}", {"i": i})
        assert await cache.ids() == ["s4", "s3", "s2"]
        assert await cache.get("s0") == {"i": 0}

    @pytest.mark.asyncio
    async def test_corrupt_entry_reads_as_missing(self, kv, cache):
        await kv.set(cache_key("broken"), "<<<")
        assert await cache.get("broken") is None
        assert await cache.get_result("broken") is None

    @pytest.mark.asyncio
    async def test_corrupt_index_is_rebuilt(self, kv, cache):
        await kv.set(INDEX_KEY, "not a list")
        await cache.put("a", {"x": 1})
        assert await cache.ids() == ["a"]
