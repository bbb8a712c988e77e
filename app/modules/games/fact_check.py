"""Knowledge Dash: a timed true/false game over term/definition pairs.

Each round shows a term with either its own definition (fact) or another
term's definition (fake). The player has a fixed number of lives and a global
countdown; correct answers score ``10 * (streak + 1)``.

Time only moves through the injected ``Scheduler``: a tick every
``tick_interval`` seconds and a settle delay after each answer. Every
scheduled callback carries the round id it was created for and is dropped if
the round has since been restarted or closed.
"""

from __future__ import annotations

import random
from typing import Callable, Optional, Sequence

from app.core.config import settings
from app.core.logging import get_logger
from app.core.scheduler import Scheduler, TimerHandle
from app.modules.games.models import (
    AnswerOutcome,
    DashPhase,
    DashResult,
    DashState,
    Feedback,
    Pair,
    Question,
    QuestionView,
)

logger = get_logger(__name__)

POINTS_PER_ANSWER = 10
MIN_POOL_SIZE = 2


def make_question(
    pool: Sequence[Pair],
    rng: random.Random,
    *,
    force_correct: Optional[bool] = None,
) -> Optional[Question]:
    """Draw one fact-or-fake question from ``pool``.

    Returns None when the pool is too small to play. A fake pairs the base
    term with the definition of a pair whose term differs; if every pair
    shares the base term no fake exists and a fact is returned instead.
    """
    if len(pool) < MIN_POOL_SIZE:
        return None
    is_correct = rng.random() > 0.5 if force_correct is None else force_correct
    base = rng.choice(pool)
    if is_correct:
        return Question(term=base.term, definition=base.definition, is_correct=True)

    if all(p.term == base.term for p in pool):
        return Question(term=base.term, definition=base.definition, is_correct=True)

    other = rng.choice(pool)
    while other.term == base.term:
        other = rng.choice(pool)
    return Question(term=base.term, definition=other.definition, is_correct=False)


class FactCheckEngine:
    def __init__(
        self,
        pairs: Sequence[Pair],
        *,
        scheduler: Scheduler,
        rng: Optional[random.Random] = None,
        time_limit: Optional[int] = None,
        lives: Optional[int] = None,
        settle_delay: Optional[float] = None,
        tick_interval: Optional[float] = None,
    ) -> None:
        cfg = settings.games
        self.pool: list[Pair] = list(pairs)
        self.scheduler = scheduler
        self.rng = rng or random.Random()
        self.time_limit = time_limit if time_limit is not None else cfg.dash_time_limit
        self.max_lives = lives if lives is not None else cfg.dash_lives
        self.settle_delay = (
            settle_delay if settle_delay is not None else cfg.dash_settle_delay
        )
        self.tick_interval = (
            tick_interval if tick_interval is not None else cfg.dash_tick_interval
        )

        self.phase = DashPhase.IDLE
        self.score = 0
        self.streak = 0
        self.peak_streak = 0
        self.lives = self.max_lives
        self.time_left = self.time_limit
        self.feedback = Feedback.NONE
        self.question: Optional[Question] = None

        self._round_id = 0
        self._tick_handle: Optional[TimerHandle] = None
        self._settle_handle: Optional[TimerHandle] = None
        self._listeners: list[Callable[[], None]] = []

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
    @property
    def can_start(self) -> bool:
        return len(self.pool) >= MIN_POOL_SIZE

    @property
    def round_id(self) -> int:
        return self._round_id

    def start(self) -> bool:
        """Start (or restart) a round. False when the pool is too small."""
        if not self.can_start:
            logger.info(
                "Not enough pairs to start (%d)", len(self.pool), extra={"game": "dash"}
            )
            return False
        self._cancel_timers()
        self._round_id += 1
        self.score = 0
        self.streak = 0
        self.peak_streak = 0
        self.lives = self.max_lives
        self.time_left = self.time_limit
        self.feedback = Feedback.NONE
        self.question = make_question(self.pool, self.rng)
        self.phase = DashPhase.PLAYING
        self._schedule_tick()
        self._notify()
        return True

    def set_pool(self, pairs: Sequence[Pair]) -> None:
        """Swap the pair pool; the next drawn question uses it."""
        self.pool = list(pairs)
        self._notify()

    def close(self) -> None:
        """Tear down: cancel timers and invalidate anything still in flight."""
        self._cancel_timers()
        self._round_id += 1
        self._listeners.clear()

    def _cancel_timers(self) -> None:
        for handle in (self._tick_handle, self._settle_handle):
            if handle is not None:
                handle.cancel()
        self._tick_handle = None
        self._settle_handle = None

    def _end(self, reason: str) -> None:
        self.phase = DashPhase.ENDED
        self.feedback = Feedback.NONE
        self.question = None
        self._cancel_timers()
        logger.info(
            "Round %d ended (%s): score=%d streak=%d",
            self._round_id,
            reason,
            self.score,
            self.streak,
            extra={"game": "dash"},
        )

    # Countdown ----------------------------------------------------------
    def _schedule_tick(self) -> None:
        round_id = self._round_id
        self._tick_handle = self.scheduler.call_later(
            self.tick_interval, lambda: self._on_tick(round_id)
        )

    def _on_tick(self, round_id: int) -> None:
        if round_id != self._round_id or self.phase != DashPhase.PLAYING:
            logger.debug("Dropping stale tick for round %d", round_id)
            return
        self.time_left = max(0, self.time_left - 1)
        if self.time_left == 0:
            self._end("timeout")
        else:
            self._schedule_tick()
        self._notify()

    # Answers ------------------------------------------------------------
    def answer(self, choice: bool) -> Optional[AnswerOutcome]:
        """Judge ``choice`` (True = fact) against the current question.

        Ignored while feedback from the previous answer is still showing.
        """
        if (
            self.phase != DashPhase.PLAYING
            or self.question is None
            or self.feedback != Feedback.NONE
        ):
            return None

        correct = bool(choice) == self.question.is_correct
        points = 0
        if correct:
            points = POINTS_PER_ANSWER * (self.streak + 1)
            self.score += points
            self.streak += 1
            self.peak_streak = max(self.peak_streak, self.streak)
            self.feedback = Feedback.CORRECT
        else:
            self.lives = max(0, self.lives - 1)
            self.streak = 0
            self.feedback = Feedback.WRONG

        outcome = AnswerOutcome(
            round_id=self._round_id,
            correct=correct,
            points=points,
            streak_after=self.streak,
            lives_after=self.lives,
        )
        self._settle_handle = self.scheduler.call_later(
            self.settle_delay, lambda: self._settle(outcome)
        )
        self._notify()
        return outcome

    def _settle(self, outcome: AnswerOutcome) -> None:
        if outcome.round_id != self._round_id or self.phase != DashPhase.PLAYING:
            logger.debug("Dropping stale settle for round %d", outcome.round_id)
            return
        self._settle_handle = None
        self.feedback = Feedback.NONE
        if outcome.lives_after <= 0:
            self._end("lives")
        else:
            self.question = make_question(self.pool, self.rng)
        self._notify()

    # Views --------------------------------------------------------------
    @property
    def result(self) -> Optional[DashResult]:
        if self.phase != DashPhase.ENDED:
            return None
        # best_streak is the streak at the end of the round, not the peak
        return DashResult(
            score=self.score, best_streak=self.streak, peak_streak=self.peak_streak
        )

    def snapshot(self) -> DashState:
        question = None
        if self.question is not None:
            question = QuestionView(
                term=self.question.term, definition=self.question.definition
            )
        return DashState(
            phase=self.phase,
            score=self.score,
            streak=self.streak,
            peak_streak=self.peak_streak,
            lives=self.lives,
            max_lives=self.max_lives,
            time_left=self.time_left,
            feedback=self.feedback,
            question=question,
            pool_size=len(self.pool),
            can_start=self.can_start,
        )
