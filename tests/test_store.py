"""
Tests for the session store

Tests cover:
- History upsert, ordering, cap and deletion
- Daily usage counting, day rollover and limits
- Recovery from corrupt or unavailable storage
"""

import asyncio
import json
from datetime import date

import pytest

from app.core.store import (
    HISTORY_KEY,
    USAGE_KEY,
    DailyLimitReached,
    InMemoryKeyValueBackend,
    SessionStore,
)
from app.modules.study.generator import stamp_session
from app.modules.study.models import StudyMaterial, UsageCounter


def make_session(title):
    return stamp_session(StudyMaterial(title=title))


class FailingBackend:
    async def get(self, key):
        raise RuntimeError("storage offline")

    async def set(self, key, value):
        raise RuntimeError("storage offline")

    async def delete(self, key):
        raise RuntimeError("storage offline")


class YieldingBackend(InMemoryKeyValueBackend):
    """Suspends on every call, like a real database round trip."""

    async def get(self, key):
        await asyncio.sleep(0)
        return await super().get(key)

    async def set(self, key, value):
        await asyncio.sleep(0)
        await super().set(key, value)


class Clock:
    def __init__(self, day):
        self.day = day

    def __call__(self):
        return self.day


class TestHistory:
    """Test session history."""

    async def test_empty(self):
        store = SessionStore(InMemoryKeyValueBackend())
        assert await store.get_history() == []

    async def test_most_recent_first_and_upsert(self):
        store = SessionStore(InMemoryKeyValueBackend())
        first, second = make_session("one"), make_session("two")
        await store.save_session(first)
        await store.save_session(second)
        assert [s.title for s in await store.get_history()] == ["two", "one"]

        renamed = first.model_copy(update={"title": "one again"})
        await store.save_session(renamed)
        history = await store.get_history()
        assert [s.title for s in history] == ["one again", "two"]

    async def test_zero_history_limit_keeps_nothing(self):
        store = SessionStore(InMemoryKeyValueBackend(), history_limit=0)
        assert await store.save_session(make_session("gone")) == []
        assert await store.get_history() == []

    async def test_capped_length(self):
        store = SessionStore(InMemoryKeyValueBackend(), history_limit=3)
        for i in range(5):
            await store.save_session(make_session(f"s{i}"))
        assert [s.title for s in await store.get_history()] == ["s4", "s3", "s2"]

    async def test_get_and_delete(self):
        store = SessionStore(InMemoryKeyValueBackend())
        session = make_session("keep")
        await store.save_session(session)
        assert (await store.get_session(session.id)).title == "keep"
        assert await store.delete_session(session.id) is True
        assert await store.delete_session(session.id) is False
        assert await store.get_session(session.id) is None


class TestCorruption:
    """Test recovery from bad data."""

    @pytest.mark.parametrize("raw", ["not json", '{"a": 1}', "42"])
    async def test_unreadable_history_is_empty(self, raw):
        store = SessionStore(InMemoryKeyValueBackend({HISTORY_KEY: raw}))
        assert await store.get_history() == []

    async def test_malformed_entries_are_skipped(self):
        good = make_session("good")
        raw = json.dumps([{"title": "missing id"}, good.model_dump()])
        store = SessionStore(InMemoryKeyValueBackend({HISTORY_KEY: raw}))
        assert [s.title for s in await store.get_history()] == ["good"]

    async def test_unreadable_usage_resets(self):
        store = SessionStore(InMemoryKeyValueBackend({USAGE_KEY: "{broken"}))
        usage = await store.get_daily_usage()
        assert usage.count == 0

    async def test_unavailable_backend_degrades(self):
        store = SessionStore(FailingBackend())
        assert await store.get_history() == []
        assert (await store.get_daily_usage()).count == 0
        saved = await store.save_session(make_session("offline"))
        assert [s.title for s in saved] == ["offline"]
        assert (await store.reserve_usage()).count == 1


class TestDailyUsage:
    """Test the daily counter."""

    async def test_counts_up(self):
        clock = Clock(date(2026, 3, 1))
        store = SessionStore(InMemoryKeyValueBackend(), today=clock)
        await store.reserve_usage()
        usage = await store.reserve_usage()
        assert usage == UsageCounter(count=2, last_date="2026-03-01")
        assert (await store.get_daily_usage()).count == 2

    async def test_new_day_resets(self):
        clock = Clock(date(2026, 3, 1))
        store = SessionStore(InMemoryKeyValueBackend(), today=clock)
        await store.reserve_usage()
        clock.day = date(2026, 3, 2)
        usage = await store.get_daily_usage()
        assert usage == UsageCounter(count=0, last_date="2026-03-02")
        assert (await store.reserve_usage()).count == 1

    async def test_limit(self):
        store = SessionStore(InMemoryKeyValueBackend(), daily_limit=2)
        await store.reserve_usage()
        await store.reserve_usage()
        with pytest.raises(DailyLimitReached) as exc:
            await store.reserve_usage()
        assert exc.value.limit == 2
        assert (await store.get_daily_usage()).count == 2

    async def test_concurrent_reservations_respect_the_limit(self):
        store = SessionStore(YieldingBackend(), daily_limit=1)
        results = await asyncio.gather(
            *(store.reserve_usage() for _ in range(3)), return_exceptions=True
        )
        granted = [r for r in results if isinstance(r, UsageCounter)]
        refused = [r for r in results if isinstance(r, DailyLimitReached)]
        assert len(granted) == 1
        assert len(refused) == 2
        assert (await store.get_daily_usage()).count == 1

    async def test_release_gives_the_slot_back(self):
        store = SessionStore(InMemoryKeyValueBackend(), daily_limit=1)
        await store.reserve_usage()
        await store.release_usage()
        assert (await store.get_daily_usage()).count == 0
        await store.reserve_usage()

    async def test_release_never_goes_negative(self):
        store = SessionStore(InMemoryKeyValueBackend())
        assert (await store.release_usage()).count == 0

    async def test_zero_limit_is_honoured(self):
        store = SessionStore(InMemoryKeyValueBackend(), daily_limit=0)
        assert store.daily_limit == 0
        with pytest.raises(DailyLimitReached):
            await store.reserve_usage()

    async def test_set_daily_usage(self):
        clock = Clock(date(2026, 3, 1))
        store = SessionStore(InMemoryKeyValueBackend(), today=clock)
        await store.set_daily_usage(UsageCounter(count=4, last_date="2026-03-01"))
        assert (await store.get_daily_usage()).count == 4
