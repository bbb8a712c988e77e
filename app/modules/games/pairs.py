"""Term/definition mining over generated study material.

Bullet points written as ``Term: definition`` (or with ``-``, ``–``, ``—``)
become pairs; flashcards are already pairs. Both games quiz over the result.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

from app.modules.games.models import Pair
from app.modules.study.models import Flashcard, StudyNote

DELIMITERS = re.compile(r"[:\-–—]")

GAME_TERM_MAX = 40
GAME_DEFINITION_MIN = 6
GAME_DEFINITION_MAX = 100
GAME_FALLBACK_MIN_PAIRS = 3
GAME_FALLBACK_NOTES = 4


def split_point(point: str) -> Optional[Pair]:
    """Split on the first delimiter; None unless both sides are non-empty."""
    parts = DELIMITERS.split(point, maxsplit=1)
    if len(parts) < 2:
        return None
    term, definition = parts[0].strip(), parts[1].strip()
    if not term or not definition:
        return None
    return Pair(term=term, definition=definition)


def extract_pairs(
    notes: Iterable[StudyNote], flashcards: Iterable[Flashcard] = ()
) -> list[Pair]:
    """Build the pair pool: every flashcard, then every splittable bullet.

    Duplicates are kept. Never raises; unusable input gives an empty list.
    """
    pairs = [Pair(term=f.front, definition=f.back) for f in flashcards]
    for note in notes:
        for point in note.points:
            pair = split_point(point)
            if pair:
                pairs.append(pair)
    return pairs


def truncate(text: str, limit: int = GAME_DEFINITION_MAX) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def extract_game_pairs(notes: Iterable[StudyNote]) -> list[Pair]:
    """Pairs short enough to print on a tile.

    Falls back to heading/first-point pairs when the notes are too loosely
    structured to yield at least three real ones.
    """
    notes = list(notes)
    pairs: list[Pair] = []
    for note in notes:
        for point in note.points:
            pair = split_point(point)
            if not pair:
                continue
            if len(pair.term) > GAME_TERM_MAX:
                continue
            if len(pair.definition) < GAME_DEFINITION_MIN:
                continue
            pairs.append(Pair(term=pair.term, definition=truncate(pair.definition)))

    if len(pairs) < GAME_FALLBACK_MIN_PAIRS:
        for note in notes[:GAME_FALLBACK_NOTES]:
            if not note.points:
                continue
            term, definition = note.heading.strip(), note.points[0].strip()
            if term and definition:
                # plain cut, no ellipsis
                pairs.append(
                    Pair(term=term, definition=definition[:GAME_DEFINITION_MAX])
                )
    return pairs
