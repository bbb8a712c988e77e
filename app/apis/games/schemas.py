from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from app.modules.games.models import GameKind


class CreateGameRequest(BaseModel):
    session_id: str = Field(..., description="Id of a stored study session")


class GameStateResponse(BaseModel):
    id: str
    kind: GameKind
    session_id: str
    state: dict


class CreateGameResponse(BaseModel):
    game_id: str
    ws_url: str
    game: GameStateResponse


class ActionResponse(BaseModel):
    accepted: bool
    game: GameStateResponse


class AnswerRequest(BaseModel):
    choice: bool = Field(..., description="True for fact, False for fake")


class AnswerResponse(ActionResponse):
    correct: Optional[bool] = None
    points: int = 0


class SelectTileRequest(BaseModel):
    tile_id: int


class SelectOptionRequest(BaseModel):
    index: int
    option: str


class DraftRequest(BaseModel):
    index: int
    text: str = ""


class RevealRequest(BaseModel):
    index: int


class ShowAllRequest(BaseModel):
    value: Optional[bool] = None
