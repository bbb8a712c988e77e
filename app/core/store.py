"""Session history and daily usage persisted through a key-value backend.

The games never touch storage. The API layer reads and writes generated
sessions and the daily counter through ``SessionStore``; the backend is either
an in-memory dict (tests, ephemeral runs) or the ``kv_entries`` table.

Unavailable or corrupt storage degrades to empty history / a fresh counter.
"""

from __future__ import annotations

import asyncio
import json
from datetime import date
from typing import Callable, Optional, Protocol

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.core.logging import get_logger
from app.modules.study.models import StudySession, UsageCounter

logger = get_logger(__name__)

HISTORY_KEY = "study_buddy_history"
USAGE_KEY = "study_buddy_usage"


class DailyLimitReached(Exception):
    def __init__(self, limit: int) -> None:
        super().__init__(
            f"You've reached your daily limit of {limit} study sessions. "
            "Take a break and come back tomorrow."
        )
        self.limit = limit


class KeyValueBackend(Protocol):
    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> None: ...


class InMemoryKeyValueBackend:
    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


class SqlKeyValueBackend:
    """Stores values as text rows in ``kv_entries``."""

    def __init__(
        self, session_maker: Optional[async_sessionmaker[AsyncSession]] = None
    ) -> None:
        if session_maker is None:
            from app.core.db.base import async_session_maker

            session_maker = async_session_maker
        self.session_maker = session_maker

    async def get(self, key: str) -> Optional[str]:
        from app.core.db.schemas.store import KeyValueEntry

        async with self.session_maker() as session:
            row = await session.get(KeyValueEntry, key)
            return row.value if row else None

    async def set(self, key: str, value: str) -> None:
        from app.core.db.schemas.store import KeyValueEntry

        async with self.session_maker() as session:
            await session.merge(KeyValueEntry(key=key, value=value))
            await session.commit()

    async def delete(self, key: str) -> None:
        from app.core.db.schemas.store import KeyValueEntry

        async with self.session_maker() as session:
            row = await session.get(KeyValueEntry, key)
            if row:
                await session.delete(row)
                await session.commit()


class SessionStore:
    def __init__(
        self,
        backend: KeyValueBackend,
        *,
        history_limit: Optional[int] = None,
        daily_limit: Optional[int] = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.backend = backend
        self.history_limit = (
            history_limit if history_limit is not None else settings.store.history_limit
        )
        self.daily_limit = (
            daily_limit if daily_limit is not None else settings.store.daily_limit
        )
        self._today = today
        # Serializes read-modify-write of the usage counter
        self._usage_lock = asyncio.Lock()

    def _today_str(self) -> str:
        return self._today().isoformat()

    async def _read(self, key: str) -> Optional[str]:
        try:
            return await self.backend.get(key)
        except Exception as e:  # noqa: BLE001
            logger.warning(f"Store read failed for {key}: {e}")
            return None

    async def _write(self, key: str, value: str) -> bool:
        try:
            await self.backend.set(key, value)
            return True
        except Exception:  # noqa: BLE001
            logger.exception(f"Store write failed for {key}")
            return False

    # History ------------------------------------------------------------
    async def get_history(self) -> list[StudySession]:
        raw = await self._read(HISTORY_KEY)
        if not raw:
            return []
        try:
            items = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Failed to load history; starting empty")
            return []
        if not isinstance(items, list):
            logger.warning("History is not a list; starting empty")
            return []
        sessions: list[StudySession] = []
        for item in items:
            try:
                sessions.append(StudySession.model_validate(item))
            except ValidationError:
                logger.warning("Skipping malformed history entry")
        return sessions

    async def _write_history(self, sessions: list[StudySession]) -> bool:
        payload = json.dumps([s.model_dump() for s in sessions], ensure_ascii=False)
        return await self._write(HISTORY_KEY, payload)

    async def get_session(self, session_id: str) -> Optional[StudySession]:
        for session in await self.get_history():
            if session.id == session_id:
                return session
        return None

    async def save_session(self, session: StudySession) -> list[StudySession]:
        """Upsert by id at the front of history, capped at ``history_limit``."""
        history = [s for s in await self.get_history() if s.id != session.id]
        updated = [session, *history][: self.history_limit]
        await self._write_history(updated)
        return updated

    async def delete_session(self, session_id: str) -> bool:
        history = await self.get_history()
        updated = [s for s in history if s.id != session_id]
        if len(updated) == len(history):
            return False
        await self._write_history(updated)
        return True

    # Daily usage --------------------------------------------------------
    async def get_daily_usage(self) -> UsageCounter:
        today = self._today_str()
        raw = await self._read(USAGE_KEY)
        if raw:
            try:
                usage = UsageCounter.model_validate_json(raw)
                if usage.last_date == today:
                    return usage
            except ValidationError:
                logger.warning("Failed to load daily usage; resetting")
        return UsageCounter(count=0, last_date=today)

    async def set_daily_usage(self, usage: UsageCounter) -> None:
        await self._write(USAGE_KEY, usage.model_dump_json())

    async def _bump_usage(self, delta: int) -> UsageCounter:
        usage = await self.get_daily_usage()
        updated = UsageCounter(
            count=max(0, usage.count + delta), last_date=self._today_str()
        )
        await self.set_daily_usage(updated)
        return updated

    async def reserve_usage(self) -> UsageCounter:
        """Take one generation slot for today or raise ``DailyLimitReached``.

        Check and increment happen under one lock, so concurrent callers can
        never push the count past ``daily_limit``. Pair with
        ``release_usage`` when the generation the slot was taken for fails.
        """
        async with self._usage_lock:
            usage = await self.get_daily_usage()
            if usage.count >= self.daily_limit:
                raise DailyLimitReached(self.daily_limit)
            return await self._bump_usage(1)

    async def release_usage(self) -> UsageCounter:
        """Give back a slot taken by ``reserve_usage``."""
        async with self._usage_lock:
            return await self._bump_usage(-1)
