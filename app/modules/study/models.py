"""Pydantic models for generated study material and usage tracking.

Note: To keep the structured output schema simple for the LLM provider, the
generated models avoid constraints (min/max lengths, formats, etc.).
``StudySession`` adds the id/timestamp stamped after generation.
"""

from __future__ import annotations

from datetime import date
from enum import Enum

from pydantic import BaseModel, Field


class StudyNote(BaseModel):
    """A heading with its bullet points."""

    heading: str
    points: list[str] = Field(default_factory=list)


class Flashcard(BaseModel):
    front: str
    back: str


class MCQQuestion(BaseModel):
    question: str
    options: list[str] = Field(default_factory=list)
    correct_answer: str


class ShortQuestion(BaseModel):
    question: str
    answer: str


class ExamQuestions(BaseModel):
    mcq: list[MCQQuestion] = Field(default_factory=list)
    short: list[ShortQuestion] = Field(default_factory=list)


class DiagramExplanation(BaseModel):
    diagram_title: str
    explanation: list[str] = Field(default_factory=list)


class StudyMaterial(BaseModel):
    """Structured output requested from the model."""

    title: str
    clean_notes: list[StudyNote] = Field(default_factory=list)
    flashcards: list[Flashcard] = Field(default_factory=list)
    exam_questions: ExamQuestions = Field(default_factory=ExamQuestions)
    diagram_explanation: list[DiagramExplanation] = Field(default_factory=list)


class StudySession(StudyMaterial):
    """A generated study material entry as kept in history."""

    id: str
    timestamp: int  # epoch milliseconds


class MoreContentKind(str, Enum):
    FLASHCARDS = "flashcards"
    MCQ_ONLY = "mcq_only"
    EXAM_QUESTIONS = "exam_questions"


class UsageCounter(BaseModel):
    count: int = 0
    last_date: str = Field(default_factory=lambda: date.today().isoformat())
