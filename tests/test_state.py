"""
Tests for the live game registry

Tests cover:
- State pushes to joined sockets
- Broadcast tasks being held until they finish
- Idle sweeping
"""

import asyncio
import json
from datetime import timedelta


class FakeSocket:
    def __init__(self):
        self.accepted = False
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def send_text(self, data):
        await asyncio.sleep(0)
        self.sent.append(json.loads(data))


class TestPublish:
    """Test state pushes."""

    async def test_broadcast_task_is_held_until_done(self, manager, study_session):
        entry = manager.create_practice(study_session)
        ws = FakeSocket()
        await manager.conns.join(entry.id, ws)

        manager.publish(entry.id)
        assert len(manager._broadcasts) == 1
        await asyncio.gather(*manager._broadcasts)
        await asyncio.sleep(0)

        assert manager._broadcasts == set()
        assert ws.sent[0]["type"] == "state"
        assert ws.sent[0]["data"]["id"] == entry.id

    async def test_no_sockets_no_task(self, manager, study_session):
        entry = manager.create_practice(study_session)
        manager.publish(entry.id)
        assert manager._broadcasts == set()

    async def test_engine_changes_are_pushed(self, manager, study_session, scheduler):
        entry = manager.create_dash(study_session)
        ws = FakeSocket()
        await manager.conns.join(entry.id, ws)

        entry.engine.start()
        scheduler.advance(1)
        await asyncio.gather(*manager._broadcasts)

        phases = [m["data"]["state"]["phase"] for m in ws.sent]
        assert phases == ["playing", "playing"]
        assert ws.sent[-1]["data"]["state"]["time_left"] == entry.engine.time_limit - 1
        entry.engine.close()


class TestSweep:
    """Test idle cleanup."""

    def test_idle_games_without_sockets_are_removed(self, manager, study_session):
        entry = manager.create_match(study_session)
        later = entry.last_activity + timedelta(seconds=manager._idle_seconds + 1)
        assert manager.sweep(later) == [entry.id]
        assert manager.get_game(entry.id) is None

    def test_recent_games_are_kept(self, manager, study_session):
        entry = manager.create_match(study_session)
        assert manager.sweep(entry.last_activity) == []
        assert manager.get_game(entry.id) is entry
