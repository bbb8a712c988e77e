"""Interactive practice over pre-generated exam questions.

No timer, no score. Tracks which MCQ option was picked (once, until reset),
scratch text for short answers, per-question reveal flags and a global
"show all answers" switch that overrides per-question state without
discarding it.
"""

from __future__ import annotations

from typing import Optional

from app.core.logging import get_logger
from app.modules.games.models import (
    MCQView,
    OptionState,
    OptionView,
    PracticeState,
    ShortView,
)
from app.modules.study.models import ExamQuestions

logger = get_logger(__name__)


class PracticeSession:
    def __init__(self, questions: ExamQuestions) -> None:
        self.questions = questions.model_copy(deep=True)
        self.selected: dict[int, str] = {}
        self.drafts: dict[int, str] = {}
        self.revealed: dict[int, bool] = {}
        self.show_all = False

    # Multiple choice -------------------------------------------------------
    def select_option(self, index: int, option: str) -> bool:
        if self.show_all or index in self.selected:
            return False
        if not 0 <= index < len(self.questions.mcq):
            return False
        question = self.questions.mcq[index]
        if option not in question.options:
            return False
        self.selected[index] = option
        return True

    def is_answered(self, index: int) -> bool:
        return index in self.selected or self.show_all

    def is_locked(self, index: int) -> bool:
        return index in self.selected and not self.show_all

    def is_correct(self, index: int) -> Optional[bool]:
        choice = self.selected.get(index)
        if choice is None:
            return None
        return choice == self.questions.mcq[index].correct_answer

    def option_state(self, index: int, option: str) -> OptionState:
        correct_answer = self.questions.mcq[index].correct_answer
        if self.show_all:
            if option == correct_answer:
                return OptionState.CORRECT
            return OptionState.NEUTRAL
        if self.selected.get(index) == option:
            if option == correct_answer:
                return OptionState.CORRECT
            return OptionState.INCORRECT
        return OptionState.NEUTRAL

    # Short answer ----------------------------------------------------------
    def set_draft(self, index: int, text: str) -> bool:
        if not 0 <= index < len(self.questions.short):
            return False
        self.drafts[index] = text
        return True

    def toggle_reveal(self, index: int) -> bool:
        if not 0 <= index < len(self.questions.short):
            return False
        self.revealed[index] = not self.revealed.get(index, False)
        return True

    def is_revealed(self, index: int) -> bool:
        return self.revealed.get(index, False) or self.show_all

    # Session-wide ----------------------------------------------------------
    def set_show_all(self, value: Optional[bool] = None) -> bool:
        """Set the global reveal; toggles when ``value`` is None."""
        self.show_all = (not self.show_all) if value is None else bool(value)
        return self.show_all

    def reset(self) -> None:
        self.selected = {}
        self.drafts = {}
        self.revealed = {}
        self.show_all = False

    def extend(self, questions: ExamQuestions) -> None:
        """Append freshly generated questions; existing answers are untouched."""
        self.questions.mcq.extend(q.model_copy() for q in questions.mcq)
        self.questions.short.extend(q.model_copy() for q in questions.short)
        logger.debug(
            "Practice extended to %d mcq / %d short",
            len(self.questions.mcq),
            len(self.questions.short),
            extra={"game": "practice"},
        )

    # Views -----------------------------------------------------------------
    def snapshot(self) -> PracticeState:
        mcq = [
            MCQView(
                question=q.question,
                options=[
                    OptionView(text=opt, state=self.option_state(i, opt))
                    for opt in q.options
                ],
                selected=self.selected.get(i),
                answered=self.is_answered(i),
                locked=self.is_locked(i),
                is_correct=self.is_correct(i),
            )
            for i, q in enumerate(self.questions.mcq)
        ]
        short = [
            ShortView(
                question=q.question,
                draft=self.drafts.get(i, ""),
                revealed=self.is_revealed(i),
                answer=q.answer if self.is_revealed(i) else None,
            )
            for i, q in enumerate(self.questions.short)
        ]
        return PracticeState(show_all=self.show_all, mcq=mcq, short=short)
