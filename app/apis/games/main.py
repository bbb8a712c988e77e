from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect

from app.apis.deps import get_game_manager, get_store
from app.core.config import settings
from app.core.logging import get_logger
from app.core.store import SessionStore
from app.modules.games.fact_check import FactCheckEngine
from app.modules.games.matching import MatchingEngine
from app.modules.games.models import GameKind
from app.modules.games.practice import PracticeSession
from app.modules.games.state import GameEntry, GameManager
from .schemas import (
    ActionResponse,
    AnswerRequest,
    AnswerResponse,
    CreateGameRequest,
    CreateGameResponse,
    DraftRequest,
    GameStateResponse,
    RevealRequest,
    SelectOptionRequest,
    SelectTileRequest,
    ShowAllRequest,
)

logger = get_logger(__name__)
router = APIRouter()

PREFIX = f"/{settings.app.version}/games"


def _require(manager: GameManager, game_id: str, kind: GameKind | None = None) -> GameEntry:
    try:
        return manager.require(game_id, kind)
    except ValueError:
        raise HTTPException(status_code=404, detail="Game not found")


def _state(entry: GameEntry) -> GameStateResponse:
    return GameStateResponse(**entry.snapshot())


def _acted(manager: GameManager, entry: GameEntry, accepted: bool) -> ActionResponse:
    # Timed engines publish through their own listeners
    if isinstance(entry.engine, PracticeSession):
        manager.publish(entry.id)
    return ActionResponse(accepted=accepted, game=_state(entry))


@router.post(f"{PREFIX}/{{kind}}", response_model=CreateGameResponse, tags=["games"])
async def create_game(
    kind: GameKind,
    req: CreateGameRequest,
    store: SessionStore = Depends(get_store),
    manager: GameManager = Depends(get_game_manager),
) -> CreateGameResponse:
    session = await store.get_session(req.session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    if kind == GameKind.DASH:
        entry = manager.create_dash(session)
    elif kind == GameKind.MATCH:
        entry = manager.create_match(session)
    else:
        entry = manager.create_practice(session)
    return CreateGameResponse(
        game_id=entry.id, ws_url=f"{PREFIX}/ws/{entry.id}", game=_state(entry)
    )


@router.get(f"{PREFIX}/{{game_id}}", response_model=GameStateResponse, tags=["games"])
async def get_game_state(
    game_id: str, manager: GameManager = Depends(get_game_manager)
) -> GameStateResponse:
    return _state(_require(manager, game_id))


@router.delete(f"{PREFIX}/{{game_id}}", tags=["games"])
async def delete_game(
    game_id: str, manager: GameManager = Depends(get_game_manager)
) -> dict:
    if not manager.remove(game_id):
        raise HTTPException(status_code=404, detail="Game not found")
    return {"ok": True}


# Knowledge Dash ---------------------------------------------------------


@router.post(f"{PREFIX}/dash/{{game_id}}/start", response_model=ActionResponse, tags=["games"])
async def start_dash(
    game_id: str, manager: GameManager = Depends(get_game_manager)
) -> ActionResponse:
    entry = _require(manager, game_id, GameKind.DASH)
    return _acted(manager, entry, entry.engine.start())


@router.post(f"{PREFIX}/dash/{{game_id}}/answer", response_model=AnswerResponse, tags=["games"])
async def answer_dash(
    game_id: str, req: AnswerRequest, manager: GameManager = Depends(get_game_manager)
) -> AnswerResponse:
    entry = _require(manager, game_id, GameKind.DASH)
    outcome = entry.engine.answer(req.choice)
    if outcome is None:
        return AnswerResponse(accepted=False, game=_state(entry))
    return AnswerResponse(
        accepted=True,
        correct=outcome.correct,
        points=outcome.points,
        game=_state(entry),
    )


# Concept Matcher --------------------------------------------------------


@router.post(f"{PREFIX}/match/{{game_id}}/select", response_model=ActionResponse, tags=["games"])
async def select_tile(
    game_id: str, req: SelectTileRequest, manager: GameManager = Depends(get_game_manager)
) -> ActionResponse:
    entry = _require(manager, game_id, GameKind.MATCH)
    return _acted(manager, entry, entry.engine.select(req.tile_id))


@router.post(f"{PREFIX}/match/{{game_id}}/restart", response_model=ActionResponse, tags=["games"])
async def restart_match(
    game_id: str, manager: GameManager = Depends(get_game_manager)
) -> ActionResponse:
    entry = _require(manager, game_id, GameKind.MATCH)
    entry.engine.init_game()
    return _acted(manager, entry, True)


# Practice ---------------------------------------------------------------


@router.post(f"{PREFIX}/practice/{{game_id}}/select", response_model=ActionResponse, tags=["games"])
async def select_option(
    game_id: str, req: SelectOptionRequest, manager: GameManager = Depends(get_game_manager)
) -> ActionResponse:
    entry = _require(manager, game_id, GameKind.PRACTICE)
    return _acted(manager, entry, entry.engine.select_option(req.index, req.option))


@router.post(f"{PREFIX}/practice/{{game_id}}/draft", response_model=ActionResponse, tags=["games"])
async def set_draft(
    game_id: str, req: DraftRequest, manager: GameManager = Depends(get_game_manager)
) -> ActionResponse:
    entry = _require(manager, game_id, GameKind.PRACTICE)
    return _acted(manager, entry, entry.engine.set_draft(req.index, req.text))


@router.post(f"{PREFIX}/practice/{{game_id}}/reveal", response_model=ActionResponse, tags=["games"])
async def toggle_reveal(
    game_id: str, req: RevealRequest, manager: GameManager = Depends(get_game_manager)
) -> ActionResponse:
    entry = _require(manager, game_id, GameKind.PRACTICE)
    return _acted(manager, entry, entry.engine.toggle_reveal(req.index))


@router.post(f"{PREFIX}/practice/{{game_id}}/show-all", response_model=ActionResponse, tags=["games"])
async def show_all(
    game_id: str, req: ShowAllRequest, manager: GameManager = Depends(get_game_manager)
) -> ActionResponse:
    entry = _require(manager, game_id, GameKind.PRACTICE)
    entry.engine.set_show_all(req.value)
    return _acted(manager, entry, True)


@router.post(f"{PREFIX}/practice/{{game_id}}/reset", response_model=ActionResponse, tags=["games"])
async def reset_practice(
    game_id: str, manager: GameManager = Depends(get_game_manager)
) -> ActionResponse:
    entry = _require(manager, game_id, GameKind.PRACTICE)
    entry.engine.reset()
    return _acted(manager, entry, True)


# Live updates -----------------------------------------------------------


def apply_message(entry: GameEntry, msg: dict) -> bool:
    """Route a WS message to the engine. Unknown or malformed messages are ignored."""
    mtype = msg.get("type")
    engine = entry.engine
    if isinstance(engine, FactCheckEngine):
        if mtype == "start":
            return engine.start()
        if mtype == "answer" and isinstance(msg.get("choice"), bool):
            return engine.answer(msg["choice"]) is not None
    elif isinstance(engine, MatchingEngine):
        if mtype == "select" and isinstance(msg.get("tile_id"), int):
            return engine.select(msg["tile_id"])
        if mtype == "restart":
            engine.init_game()
            return True
    elif isinstance(engine, PracticeSession):
        index = msg.get("index")
        if mtype == "select" and isinstance(index, int):
            return engine.select_option(index, str(msg.get("option", "")))
        if mtype == "draft" and isinstance(index, int):
            return engine.set_draft(index, str(msg.get("text", "")))
        if mtype == "reveal" and isinstance(index, int):
            return engine.toggle_reveal(index)
        if mtype == "show_all":
            value = msg.get("value")
            engine.set_show_all(value if isinstance(value, bool) else None)
            return True
        if mtype == "reset":
            engine.reset()
            return True
    return False


@router.websocket(f"{PREFIX}/ws/{{game_id}}")
async def ws_game(
    websocket: WebSocket, game_id: str, manager: GameManager = Depends(get_game_manager)
) -> None:
    entry = manager.get_game(game_id)
    if not entry:
        await websocket.close(code=4404)
        return

    await manager.conns.join(game_id, websocket)
    await websocket.send_json({"type": "state", "data": entry.snapshot()})

    try:
        while True:
            msg = await websocket.receive_json()
            if not isinstance(msg, dict):
                continue
            try:
                entry = manager.require(game_id)
            except ValueError:
                await websocket.close(code=4404)
                return
            accepted = apply_message(entry, msg)
            await websocket.send_json(
                {"type": "ack", "data": {"accepted": accepted, "action": msg.get("type")}}
            )
            if isinstance(entry.engine, PracticeSession):
                manager.publish(game_id)
    except WebSocketDisconnect:
        manager.conns.leave(game_id, websocket)
    except Exception:
        logger.exception("WS error", extra={"game": game_id})
        manager.conns.leave(game_id, websocket)
