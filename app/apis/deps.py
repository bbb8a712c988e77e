from __future__ import annotations

from typing import Awaitable, Callable, Optional

from app.core.store import SessionStore, SqlKeyValueBackend
from app.modules.games.state import GameManager, game_manager
from app.modules.study.generator import generate_more, generate_study_session
from app.modules.study.models import MoreContentKind, StudySession

SessionGenerator = Callable[[str], Awaitable[StudySession]]
MoreGenerator = Callable[[StudySession, MoreContentKind, Optional[str]], Awaitable[StudySession]]

_store: SessionStore | None = None


def get_store() -> SessionStore:
    """Process-wide store over the ``kv_entries`` table."""
    global _store
    if _store is None:
        _store = SessionStore(SqlKeyValueBackend())
    return _store


def get_game_manager() -> GameManager:
    return game_manager


def get_session_generator() -> SessionGenerator:
    return generate_study_session


def get_more_generator() -> MoreGenerator:
    return generate_more
