"""Study games module exports."""

from .fact_check import FactCheckEngine, make_question
from .matching import MatchingEngine, build_tiles
from .pairs import extract_game_pairs, extract_pairs
from .practice import PracticeSession

__all__ = [
    "FactCheckEngine",
    "make_question",
    "MatchingEngine",
    "build_tiles",
    "extract_game_pairs",
    "extract_pairs",
    "PracticeSession",
]
