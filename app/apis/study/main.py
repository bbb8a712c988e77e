from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from app.apis.deps import (
    MoreGenerator,
    SessionGenerator,
    get_game_manager,
    get_more_generator,
    get_session_generator,
    get_store,
)
from app.core.config import settings
from app.core.logging import get_logger
from app.core.store import DailyLimitReached, SessionStore
from app.modules.games.state import GameManager
from app.modules.study.models import ExamQuestions, StudySession, UsageCounter
from .schemas import (
    DeleteResponse,
    GenerateRequest,
    GenerateResponse,
    MoreContentRequest,
    SessionSummary,
    UsageResponse,
)

logger = get_logger(__name__)
router = APIRouter()


def _usage_response(usage: UsageCounter, limit: int) -> UsageResponse:
    return UsageResponse(
        count=usage.count,
        last_date=usage.last_date,
        limit=limit,
        remaining=max(0, limit - usage.count),
    )


@router.post(
    f"/{settings.app.version}/study/generate",
    response_model=GenerateResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["study"],
)
async def generate_session(
    req: GenerateRequest,
    store: SessionStore = Depends(get_store),
    generate: SessionGenerator = Depends(get_session_generator),
) -> GenerateResponse:
    try:
        usage = await store.reserve_usage()
    except DailyLimitReached as e:
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=str(e))

    try:
        session = await generate(req.text)
    except Exception as e:
        logger.exception("Study generation failed")
        await store.release_usage()
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    await store.save_session(session)
    return GenerateResponse(
        session=session, usage=_usage_response(usage, store.daily_limit)
    )


@router.get(
    f"/{settings.app.version}/study/sessions",
    response_model=list[SessionSummary],
    tags=["study"],
)
async def list_sessions(store: SessionStore = Depends(get_store)) -> list[SessionSummary]:
    return [
        SessionSummary(
            id=s.id,
            title=s.title,
            timestamp=s.timestamp,
            notes=len(s.clean_notes),
            flashcards=len(s.flashcards),
            mcq=len(s.exam_questions.mcq),
            short=len(s.exam_questions.short),
        )
        for s in await store.get_history()
    ]


@router.get(
    f"/{settings.app.version}/study/sessions/{{session_id}}",
    response_model=StudySession,
    tags=["study"],
)
async def get_session(
    session_id: str, store: SessionStore = Depends(get_store)
) -> StudySession:
    session = await store.get_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


@router.delete(
    f"/{settings.app.version}/study/sessions/{{session_id}}",
    response_model=DeleteResponse,
    tags=["study"],
)
async def delete_session(
    session_id: str, store: SessionStore = Depends(get_store)
) -> DeleteResponse:
    if not await store.delete_session(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return DeleteResponse(ok=True)


@router.post(
    f"/{settings.app.version}/study/sessions/{{session_id}}/more",
    response_model=StudySession,
    tags=["study"],
)
async def generate_more_content(
    session_id: str,
    req: MoreContentRequest,
    store: SessionStore = Depends(get_store),
    generate: MoreGenerator = Depends(get_more_generator),
    manager: GameManager = Depends(get_game_manager),
) -> StudySession:
    session = await store.get_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    try:
        updated = await generate(session, req.kind, req.source_text)
    except Exception as e:
        logger.exception("More content generation failed", extra={"session": session_id})
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    await store.save_session(updated)
    added = ExamQuestions(
        mcq=updated.exam_questions.mcq[len(session.exam_questions.mcq) :],
        short=updated.exam_questions.short[len(session.exam_questions.short) :],
    )
    manager.refresh_session(updated, added)
    return updated


@router.get(
    f"/{settings.app.version}/study/usage",
    response_model=UsageResponse,
    tags=["study"],
)
async def get_usage(store: SessionStore = Depends(get_store)) -> UsageResponse:
    usage = await store.get_daily_usage()
    return _usage_response(usage, store.daily_limit)
