"""Models shared by the study games.

Engine-internal records are dataclasses; the ``*State`` models are the
pydantic snapshots handed to the API/WS layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


@dataclass(frozen=True)
class Pair:
    term: str
    definition: str


@dataclass(frozen=True)
class Question:
    term: str
    definition: str
    is_correct: bool


class DashPhase(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"
    ENDED = "ended"


class Feedback(str, Enum):
    NONE = "none"
    CORRECT = "correct"
    WRONG = "wrong"


@dataclass(frozen=True)
class AnswerOutcome:
    """Snapshot of an answer taken at decision time.

    The delayed transition consumes this record instead of re-reading engine
    state that may have moved on in the meantime.
    """

    round_id: int
    correct: bool
    points: int
    streak_after: int
    lives_after: int


class TileKind(str, Enum):
    TERM = "term"
    DEFINITION = "definition"


@dataclass
class GameTile:
    id: int
    content: str
    kind: TileKind
    pair_id: int
    matched: bool = False


class OptionState(str, Enum):
    NEUTRAL = "neutral"
    CORRECT = "correct"
    INCORRECT = "incorrect"


class GameKind(str, Enum):
    DASH = "dash"
    MATCH = "match"
    PRACTICE = "practice"


# Snapshots -------------------------------------------------------------


class QuestionView(BaseModel):
    term: str
    definition: str


class DashState(BaseModel):
    phase: DashPhase
    score: int = 0
    streak: int = 0
    peak_streak: int = 0
    lives: int = 0
    max_lives: int = 3
    time_left: int = 0
    feedback: Feedback = Feedback.NONE
    question: Optional[QuestionView] = None
    pool_size: int = 0
    can_start: bool = False


class DashResult(BaseModel):
    score: int
    best_streak: int  # streak at the moment the round ended
    peak_streak: int  # highest streak reached during the round


class TileView(BaseModel):
    id: int
    kind: TileKind
    pair_id: Optional[int] = None  # only revealed once matched
    content: Optional[str] = None  # only present when face up
    face_up: bool = False
    matched: bool = False


class MatchState(BaseModel):
    tiles: list[TileView] = Field(default_factory=list)
    selected: list[int] = Field(default_factory=list)
    moves: int = 0
    matches: int = 0
    total_pairs: int = 0
    complete: bool = False


class OptionView(BaseModel):
    text: str
    state: OptionState = OptionState.NEUTRAL


class MCQView(BaseModel):
    question: str
    options: list[OptionView] = Field(default_factory=list)
    selected: Optional[str] = None
    answered: bool = False
    locked: bool = False
    is_correct: Optional[bool] = None


class ShortView(BaseModel):
    question: str
    draft: str = ""
    revealed: bool = False
    answer: Optional[str] = None


class PracticeState(BaseModel):
    show_all: bool = False
    mcq: list[MCQView] = Field(default_factory=list)
    short: list[ShortView] = Field(default_factory=list)
