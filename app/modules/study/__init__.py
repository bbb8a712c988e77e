"""Study material module exports."""

from .models import (
    DiagramExplanation,
    ExamQuestions,
    Flashcard,
    MCQQuestion,
    MoreContentKind,
    ShortQuestion,
    StudyMaterial,
    StudyNote,
    StudySession,
    UsageCounter,
)

__all__ = [
    "DiagramExplanation",
    "ExamQuestions",
    "Flashcard",
    "MCQQuestion",
    "MoreContentKind",
    "ShortQuestion",
    "StudyMaterial",
    "StudyNote",
    "StudySession",
    "UsageCounter",
]
