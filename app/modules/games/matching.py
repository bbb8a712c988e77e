"""Concept Matcher: flip two tiles, find the term that goes with a definition."""

from __future__ import annotations

import random
from typing import Callable, Iterable, Optional

from app.core.config import settings
from app.core.logging import get_logger
from app.core.scheduler import Scheduler, TimerHandle
from app.modules.games.models import GameTile, MatchState, Pair, TileKind, TileView
from app.modules.games.pairs import extract_game_pairs
from app.modules.study.models import StudyNote

logger = get_logger(__name__)


def build_tiles(pairs: Iterable[Pair], rng: random.Random) -> list[GameTile]:
    """Two tiles per pair (term ``2i``, definition ``2i+1``), shuffled once."""
    tiles: list[GameTile] = []
    for idx, pair in enumerate(pairs):
        tiles.append(
            GameTile(id=idx * 2, content=pair.term, kind=TileKind.TERM, pair_id=idx)
        )
        tiles.append(
            GameTile(
                id=idx * 2 + 1,
                content=pair.definition,
                kind=TileKind.DEFINITION,
                pair_id=idx,
            )
        )
    rng.shuffle(tiles)
    return tiles


class MatchingEngine:
    def __init__(
        self,
        notes: Iterable[StudyNote],
        *,
        scheduler: Scheduler,
        rng: Optional[random.Random] = None,
        pair_count: Optional[int] = None,
        match_delay: Optional[float] = None,
        mismatch_delay: Optional[float] = None,
    ) -> None:
        cfg = settings.games
        self.notes: list[StudyNote] = list(notes)
        self.scheduler = scheduler
        self.rng = rng or random.Random()
        self.pair_count = pair_count if pair_count is not None else cfg.match_pair_count
        self.match_delay = match_delay if match_delay is not None else cfg.match_delay
        self.mismatch_delay = (
            mismatch_delay if mismatch_delay is not None else cfg.mismatch_delay
        )
        if self.mismatch_delay < self.match_delay:
            raise ValueError("mismatch_delay must not be shorter than match_delay")

        self.tiles: list[GameTile] = []
        self.selected: list[int] = []
        self.moves = 0
        self.matches = 0

        self._generation = 0
        self._pending: Optional[TimerHandle] = None
        self._listeners: list[Callable[[], None]] = []
        self.init_game()

    # Observers ----------------------------------------------------------
    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    # Lifecycle ----------------------------------------------------------
    def init_game(self) -> None:
        """Deal a fresh board from the current notes."""
        self._cancel_pending()
        self._generation += 1
        candidates = extract_game_pairs(self.notes)
        self.rng.shuffle(candidates)
        self.tiles = build_tiles(candidates[: self.pair_count], self.rng)
        self.selected = []
        self.moves = 0
        self.matches = 0
        logger.debug(
            "Dealt %d tiles (generation %d)",
            len(self.tiles),
            self._generation,
            extra={"game": "match"},
        )
        self._notify()

    def set_notes(self, notes: Iterable[StudyNote]) -> bool:
        """Replace the source notes; re-deals only if they actually changed."""
        notes = list(notes)
        if notes == self.notes:
            return False
        self.notes = notes
        self.init_game()
        return True

    def close(self) -> None:
        self._cancel_pending()
        self._generation += 1
        self._listeners.clear()

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
        self._pending = None

    # Play ---------------------------------------------------------------
    def _tile(self, tile_id: int) -> Optional[GameTile]:
        for tile in self.tiles:
            if tile.id == tile_id:
                return tile
        return None

    def select(self, tile_id: int) -> bool:
        """Flip ``tile_id``. False when the flip is not allowed right now."""
        tile = self._tile(tile_id)
        if (
            len(self.selected) >= 2
            or tile is None
            or tile.matched
            or tile_id in self.selected
        ):
            return False

        self.selected.append(tile_id)
        if len(self.selected) == 2:
            self.moves += 1
            first, second = (self._tile(i) for i in self.selected)
            generation = self._generation
            if first.pair_id == second.pair_id:
                ids = (first.id, second.id)
                self._pending = self.scheduler.call_later(
                    self.match_delay, lambda: self._resolve_match(generation, ids)
                )
            else:
                self._pending = self.scheduler.call_later(
                    self.mismatch_delay, lambda: self._resolve_mismatch(generation)
                )
        self._notify()
        return True

    def _resolve_match(self, generation: int, ids: tuple[int, int]) -> None:
        if generation != self._generation:
            logger.debug("Dropping stale match for generation %d", generation)
            return
        self._pending = None
        for tile in self.tiles:
            if tile.id in ids:
                tile.matched = True
        self.selected = []
        self.matches += 1
        if self.is_complete:
            logger.info(
                "Board cleared in %d moves", self.moves, extra={"game": "match"}
            )
        self._notify()

    def _resolve_mismatch(self, generation: int) -> None:
        if generation != self._generation:
            logger.debug("Dropping stale mismatch for generation %d", generation)
            return
        self._pending = None
        self.selected = []
        self._notify()

    # Views --------------------------------------------------------------
    @property
    def total_pairs(self) -> int:
        return len(self.tiles) // 2

    @property
    def is_complete(self) -> bool:
        return self.matches > 0 and self.matches == self.total_pairs

    def snapshot(self) -> MatchState:
        tiles = []
        for tile in self.tiles:
            face_up = tile.matched or tile.id in self.selected
            tiles.append(
                TileView(
                    id=tile.id,
                    kind=tile.kind,
                    pair_id=tile.pair_id if tile.matched else None,
                    content=tile.content if face_up else None,
                    face_up=face_up,
                    matched=tile.matched,
                )
            )
        return MatchState(
            tiles=tiles,
            selected=list(self.selected),
            moves=self.moves,
            matches=self.matches,
            total_pairs=self.total_pairs,
            complete=self.is_complete,
        )
