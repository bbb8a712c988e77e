from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from app.modules.study.models import MoreContentKind, StudySession


class GenerateRequest(BaseModel):
    text: str = Field(..., min_length=1, description="Pasted study material")


class UsageResponse(BaseModel):
    count: int
    last_date: str
    limit: int
    remaining: int


class GenerateResponse(BaseModel):
    session: StudySession
    usage: UsageResponse


class SessionSummary(BaseModel):
    id: str
    title: str
    timestamp: int
    notes: int = 0
    flashcards: int = 0
    mcq: int = 0
    short: int = 0


class MoreContentRequest(BaseModel):
    kind: MoreContentKind
    source_text: Optional[str] = None


class DeleteResponse(BaseModel):
    ok: bool
