"""Study material generators backed by pydantic-ai.

Provides:
- async generate_study_session(text) -> StudySession
- async generate_more(session, kind, source_text=None) -> StudySession
- merge_more_content(session, kind, batch): pure merge used by generate_more

Imports for the LLM provider are kept lazy to avoid import-time errors when
credentials are missing.
"""

from __future__ import annotations

import time
from typing import Iterable
from uuid import uuid4

from pydantic import BaseModel, Field
from pydantic_ai import Agent

from app.core.config import settings
from app.core.logging import get_logger
from app.modules.study.models import (
    ExamQuestions,
    Flashcard,
    MCQQuestion,
    MoreContentKind,
    StudyMaterial,
    StudySession,
)

logger = get_logger(__name__)


class MoreContentBatch(BaseModel):
    """Structured output for incremental generation."""

    flashcards: list[Flashcard] = Field(default_factory=list)
    exam_questions: ExamQuestions = Field(default_factory=ExamQuestions)


def _build_google_model():
    """Build Google Gemini model for pydantic-ai (lazy import)."""
    from pydantic_ai.models.google import GoogleModel
    from pydantic_ai.providers.google import GoogleProvider

    if not settings.gemini_api_key:
        raise RuntimeError(
            "Gemini API key not configured. Set GEMINI_API_KEY in your environment."
        )
    provider = GoogleProvider(api_key=settings.gemini_api_key)
    return GoogleModel(settings.google_model, provider=provider)


def _build_openrouter_model():
    """Build OpenRouter model via OpenAI-compatible provider (lazy import)."""
    from pydantic_ai.models.openai import OpenAIChatModel
    from pydantic_ai.providers.openai import OpenAIProvider

    if not settings.openrouter_api_key:
        raise RuntimeError(
            "OpenRouter API key not configured. Set OPENROUTER_API_KEY in your environment."
        )

    provider = OpenAIProvider(
        api_key=settings.openrouter_api_key,
        base_url="https://openrouter.ai/api/v1",
    )
    return OpenAIChatModel(settings.openrouter_model, provider=provider)


def _build_model_by_settings():
    provider = (settings.model_provider or "google").lower()
    if provider == "openrouter":
        return _build_openrouter_model()
    return _build_google_model()


SYSTEM_PROMPT = (
    'You are "Study Buddy", a study assistant. Your job is to help students learn '
    "from notes, textbook excerpts or pasted text. "
    "Return a JSON object that validates as StudyMaterial: "
    "{title, clean_notes, flashcards, exam_questions, diagram_explanation}. Rules: "
    "- clean_notes: clean headings, each with short bullet points. Where a point "
    "defines a concept, write it as 'Term: definition'. "
    "- flashcards: front/back pairs suitable for exams and revision. "
    "- exam_questions: {mcq, short}. Each MCQ has question, options and a "
    "correct_answer that is copied EXACTLY from options. Short questions have a "
    "model answer. "
    "- diagram_explanation: only when the material describes a diagram. "
    "- Simple, student-friendly language. No markdown, no extra commentary."
)

MORE_SYSTEM_PROMPT = (
    "You are a helpful study assistant. Return a JSON object that validates as "
    "MoreContentBatch: {flashcards, exam_questions}. Only fill the fields the "
    "instruction asks for; leave the others empty. Never repeat existing items."
)

_MORE_INSTRUCTIONS = {
    MoreContentKind.FLASHCARDS: "Generate 5 NEW and UNIQUE flashcards.",
    MoreContentKind.MCQ_ONLY: (
        "Generate 5 NEW and UNIQUE multiple choice questions (exam_questions.mcq)."
    ),
    MoreContentKind.EXAM_QUESTIONS: (
        "Generate 3 NEW multiple choice questions and 2 NEW short answer questions."
    ),
}


def _build_instruction(text: str) -> str:
    return (
        "Analyze the following study material and generate structured notes, "
        "flashcards, and exam questions. Return only the JSON object.\n\n"
        f"{text}"
    )


def _existing_summary(session: StudySession, kind: MoreContentKind) -> str:
    if kind == MoreContentKind.FLASHCARDS:
        items = [f.front for f in session.flashcards]
    else:
        items = [q.question for q in session.exam_questions.mcq]
        items += [q.question for q in session.exam_questions.short]
    return ", ".join(items)


def _build_more_instruction(
    session: StudySession, kind: MoreContentKind, source_text: str | None
) -> str:
    context = source_text or "\n".join(
        f"{n.heading}: " + "; ".join(n.points) for n in session.clean_notes
    )
    return (
        f"Context material:\n{context}\n\n"
        f"{_MORE_INSTRUCTIONS[kind]} "
        f"Do NOT repeat these existing ones: {_existing_summary(session, kind)}"
    )


def answerable_mcq(questions: Iterable[MCQQuestion]) -> list[MCQQuestion]:
    """Drop MCQs whose correct_answer is not copied exactly from options."""
    return [q for q in questions if q.correct_answer in q.options]


def stamp_session(material: StudyMaterial) -> StudySession:
    """Attach a fresh id and timestamp to generated material.

    Unanswerable MCQs are dropped here so they never reach history.
    """
    data = material.model_dump()
    mcq = material.exam_questions.mcq
    valid = answerable_mcq(mcq)
    if len(valid) != len(mcq):
        logger.warning("Dropped %d MCQs with no matching option", len(mcq) - len(valid))
    data["exam_questions"]["mcq"] = [q.model_dump() for q in valid]
    return StudySession(
        **data,
        id=str(uuid4()),
        timestamp=int(time.time() * 1000),
    )


async def generate_study_session(text: str) -> StudySession:
    """Generate notes, flashcards and exam questions for ``text``."""
    model = _build_model_by_settings()
    agent: Agent[None, StudyMaterial] = Agent[None, StudyMaterial](
        model=model,
        output_type=StudyMaterial,
        system_prompt=SYSTEM_PROMPT,
        retries=2,
    )
    res = await agent.run(_build_instruction(text))
    session = stamp_session(res.output)
    logger.info(
        "Generated study session (%d notes, %d flashcards, %d mcq)",
        len(session.clean_notes),
        len(session.flashcards),
        len(session.exam_questions.mcq),
        extra={"session": session.id},
    )
    return session


def merge_more_content(
    session: StudySession, kind: MoreContentKind, batch: MoreContentBatch
) -> StudySession:
    """Append the fields ``kind`` asked for; everything else is left alone."""
    data = session.model_copy(deep=True)
    if kind == MoreContentKind.FLASHCARDS:
        data.flashcards.extend(batch.flashcards)
        return data
    data.exam_questions.mcq.extend(answerable_mcq(batch.exam_questions.mcq))
    if kind == MoreContentKind.EXAM_QUESTIONS:
        data.exam_questions.short.extend(batch.exam_questions.short)
    return data


async def generate_more(
    session: StudySession,
    kind: MoreContentKind,
    source_text: str | None = None,
) -> StudySession:
    """Generate additional flashcards or questions and merge them in."""
    model = _build_model_by_settings()
    agent: Agent[None, MoreContentBatch] = Agent[None, MoreContentBatch](
        model=model,
        output_type=MoreContentBatch,
        system_prompt=MORE_SYSTEM_PROMPT,
        retries=2,
    )
    res = await agent.run(_build_more_instruction(session, kind, source_text))
    return merge_more_content(session, kind, res.output)
