"""In-memory registry of live game instances.

Games are kept in-process only. Each entry wraps one engine built from a
stored study session; WebSocket subscribers receive a fresh snapshot whenever
the engine changes (answers, ticks, settle delays). Idle games are swept by a
background loop, which also closes their engines so no timer outlives them.
"""

from __future__ import annotations

import asyncio
import json
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Union
from uuid import uuid4

from fastapi import WebSocket

from app.core.logging import get_logger
from app.core.scheduler import AsyncioScheduler, Scheduler
from app.modules.games.fact_check import FactCheckEngine
from app.modules.games.matching import MatchingEngine
from app.modules.games.models import GameKind
from app.modules.games.pairs import extract_pairs
from app.modules.games.practice import PracticeSession
from app.modules.study.models import ExamQuestions, StudySession

logger = get_logger(__name__)

Engine = Union[FactCheckEngine, MatchingEngine, PracticeSession]


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _short_id() -> str:
    # 8-char slice from uuid4
    return uuid4().hex[:8]


@dataclass
class GameEntry:
    id: str
    kind: GameKind
    session_id: str
    engine: Engine
    created_at: datetime = field(default_factory=_now_utc)
    last_activity: datetime = field(default_factory=_now_utc)

    def snapshot(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "session_id": self.session_id,
            "state": self.engine.snapshot().model_dump(mode="json"),
        }


class Connections:
    """Tracks active WS connections per game."""

    def __init__(self) -> None:
        self._by_game: dict[str, set[WebSocket]] = {}

    async def join(self, game_id: str, ws: WebSocket) -> None:
        await ws.accept()
        self._by_game.setdefault(game_id, set()).add(ws)

    def leave(self, game_id: str, ws: WebSocket) -> None:
        game_set = self._by_game.get(game_id)
        if not game_set:
            return
        game_set.discard(ws)
        if not game_set:
            self._by_game.pop(game_id, None)

    async def broadcast(self, game_id: str, payload: dict) -> None:
        data = json.dumps(payload, ensure_ascii=False)
        dead: list[WebSocket] = []
        for ws in list(self._by_game.get(game_id, set())):
            try:
                await ws.send_text(data)
            except Exception:  # noqa: BLE001
                dead.append(ws)
        for ws in dead:
            self.leave(game_id, ws)

    def count(self, game_id: str) -> int:
        return len(self._by_game.get(game_id, set()))

    def drop(self, game_id: str) -> None:
        self._by_game.pop(game_id, None)


class GameManager:
    def __init__(
        self,
        *,
        scheduler: Optional[Scheduler] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.games: dict[str, GameEntry] = {}
        self.conns = Connections()
        self.scheduler = scheduler or AsyncioScheduler()
        self.rng = rng or random.Random()
        self._cleanup_task: Optional[asyncio.Task] = None
        # Strong refs so in-flight broadcasts are not garbage collected
        self._broadcasts: set[asyncio.Task] = set()
        self._idle_seconds: int = 1800
        self._sweep_interval: int = 60

    # Creation -----------------------------------------------------------
    def _register(self, kind: GameKind, session: StudySession, engine: Engine) -> GameEntry:
        entry = GameEntry(id=_short_id(), kind=kind, session_id=session.id, engine=engine)
        self.games[entry.id] = entry
        if hasattr(engine, "subscribe"):
            engine.subscribe(lambda: self._publish(entry))
        logger.info(
            "Created %s game", kind.value, extra={"game": entry.id, "session": session.id}
        )
        return entry

    def create_dash(self, session: StudySession) -> GameEntry:
        engine = FactCheckEngine(
            extract_pairs(session.clean_notes, session.flashcards),
            scheduler=self.scheduler,
            rng=self.rng,
        )
        return self._register(GameKind.DASH, session, engine)

    def create_match(self, session: StudySession) -> GameEntry:
        engine = MatchingEngine(
            session.clean_notes, scheduler=self.scheduler, rng=self.rng
        )
        return self._register(GameKind.MATCH, session, engine)

    def create_practice(self, session: StudySession) -> GameEntry:
        engine = PracticeSession(session.exam_questions)
        return self._register(GameKind.PRACTICE, session, engine)

    # Lookup -------------------------------------------------------------
    def get_game(self, game_id: str) -> Optional[GameEntry]:
        return self.games.get(game_id)

    def require(self, game_id: str, kind: Optional[GameKind] = None) -> GameEntry:
        entry = self.games.get(game_id)
        if not entry or (kind is not None and entry.kind != kind):
            raise ValueError("game_not_found")
        entry.last_activity = _now_utc()
        return entry

    def remove(self, game_id: str) -> bool:
        entry = self.games.pop(game_id, None)
        if not entry:
            return False
        if hasattr(entry.engine, "close"):
            entry.engine.close()
        self.conns.drop(game_id)
        logger.info("Removed game", extra={"game": game_id})
        return True

    def refresh_session(self, session: StudySession, added: ExamQuestions) -> None:
        """Push regenerated session content into games built from it."""
        for entry in self.games.values():
            if entry.session_id != session.id:
                continue
            if isinstance(entry.engine, MatchingEngine):
                entry.engine.set_notes(session.clean_notes)
            elif isinstance(entry.engine, FactCheckEngine):
                entry.engine.set_pool(
                    extract_pairs(session.clean_notes, session.flashcards)
                )
            elif isinstance(entry.engine, PracticeSession):
                entry.engine.extend(added)
                self._publish(entry)

    # Broadcasting -------------------------------------------------------
    def _publish(self, entry: GameEntry) -> None:
        if not self.conns.count(entry.id):
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; skipping broadcast", extra={"game": entry.id})
            return
        task = loop.create_task(
            self.conns.broadcast(entry.id, {"type": "state", "data": entry.snapshot()})
        )
        self._broadcasts.add(task)
        task.add_done_callback(self._broadcasts.discard)

    def publish(self, game_id: str) -> None:
        entry = self.games.get(game_id)
        if entry:
            self._publish(entry)

    # Cleanup loop -------------------------------------------------------
    def start(self, *, idle_seconds: int = 1800, sweep_interval: int = 60) -> None:
        self._idle_seconds = max(60, int(idle_seconds))
        self._sweep_interval = max(5, int(sweep_interval))
        if self._cleanup_task and not self._cleanup_task.done():
            return
        self._cleanup_task = asyncio.create_task(self._cleanup_loop())

    async def stop(self) -> None:
        if self._cleanup_task and not self._cleanup_task.done():
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
        self._cleanup_task = None
        for game_id in list(self.games):
            self.remove(game_id)

    def sweep(self, now: Optional[datetime] = None) -> list[str]:
        """Remove games idle for longer than the threshold with no sockets."""
        now = now or _now_utc()
        stale = [
            game_id
            for game_id, entry in self.games.items()
            if (now - entry.last_activity).total_seconds() > self._idle_seconds
            and self.conns.count(game_id) == 0
        ]
        for game_id in stale:
            self.remove(game_id)
        return stale

    async def _cleanup_loop(self) -> None:
        try:
            while True:
                await asyncio.sleep(self._sweep_interval)
                self.sweep()
        except asyncio.CancelledError:
            return


# Singleton manager used by API/WS layer
game_manager = GameManager()
