"""
Tests for interactive practice

Tests cover:
- One-shot MCQ answers and option colouring
- Short answer drafts and reveal toggles
- The global "show all answers" switch
- Reset
"""

import pytest

from app.modules.games.models import OptionState
from app.modules.games.practice import PracticeSession
from app.modules.study.models import ExamQuestions, MCQQuestion, ShortQuestion


@pytest.fixture
def practice(exam):
    return PracticeSession(exam)


def states(practice, index):
    q = practice.questions.mcq[index]
    return [practice.option_state(index, opt) for opt in q.options]


class TestMultipleChoice:
    """Test MCQ answering."""

    def test_first_choice_is_final(self, practice):
        assert practice.select_option(0, "Ribosome") is True
        assert practice.select_option(0, "Mitochondria") is False
        assert practice.selected[0] == "Ribosome"
        assert practice.is_locked(0) is True

    def test_wrong_choice_colouring(self, practice):
        practice.select_option(0, "Ribosome")
        assert practice.is_correct(0) is False
        assert states(practice, 0) == [
            OptionState.NEUTRAL, OptionState.INCORRECT, OptionState.NEUTRAL,
        ]

    def test_right_choice_colouring(self, practice):
        practice.select_option(1, "Ribosome")
        assert practice.is_correct(1) is True
        assert states(practice, 1) == [OptionState.NEUTRAL, OptionState.CORRECT]

    def test_unanswered_question(self, practice):
        assert practice.is_correct(0) is None
        assert practice.is_answered(0) is False
        assert set(states(practice, 0)) == {OptionState.NEUTRAL}

    def test_invalid_selections_are_ignored(self, practice):
        assert practice.select_option(0, "Chloroplast") is False
        assert practice.select_option(7, "Ribosome") is False
        assert practice.select_option(-1, "Ribosome") is False
        assert practice.selected == {}


class TestShortAnswer:
    """Test short answer scratch state."""

    def test_drafts_are_kept_per_question(self, practice):
        practice.set_draft(0, "water moves")
        assert practice.snapshot().short[0].draft == "water moves"
        assert practice.snapshot().short[1].draft == ""

    def test_reveal_is_independent_per_question(self, practice):
        practice.toggle_reveal(1)
        assert practice.is_revealed(0) is False
        assert practice.is_revealed(1) is True
        view = practice.snapshot().short
        assert view[0].answer is None
        assert view[1].answer == "A unit of heredity."
        practice.toggle_reveal(1)
        assert practice.is_revealed(1) is False

    def test_out_of_range(self, practice):
        assert practice.set_draft(5, "x") is False
        assert practice.toggle_reveal(5) is False


class TestShowAll:
    """Test the global reveal switch."""

    def test_recolours_without_clearing_selections(self, practice):
        practice.select_option(0, "Ribosome")
        practice.set_show_all(True)
        assert practice.selected == {0: "Ribosome"}
        assert states(practice, 0) == [
            OptionState.CORRECT, OptionState.NEUTRAL, OptionState.NEUTRAL,
        ]
        assert states(practice, 1) == [OptionState.NEUTRAL, OptionState.CORRECT]
        assert practice.is_answered(1) is True
        assert practice.is_locked(0) is False

    def test_turning_it_off_restores_previous_state(self, practice):
        practice.select_option(0, "Ribosome")
        practice.toggle_reveal(0)
        practice.set_draft(1, "heredity")
        before = practice.snapshot()
        practice.set_show_all()
        assert practice.snapshot() != before
        practice.set_show_all()
        assert practice.snapshot() == before

    def test_reveals_every_short_answer(self, practice):
        practice.set_show_all(True)
        assert all(s.revealed and s.answer for s in practice.snapshot().short)

    def test_no_new_answers_while_revealed(self, practice):
        practice.set_show_all(True)
        assert practice.select_option(1, "Ribosome") is False
        practice.set_show_all(False)
        assert practice.select_option(1, "Ribosome") is True


class TestReset:
    """Test reset."""

    def test_reset_clears_everything(self, practice):
        practice.select_option(0, "Ribosome")
        practice.set_draft(0, "draft")
        practice.toggle_reveal(0)
        practice.set_show_all(True)
        practice.reset()
        assert practice.selected == {}
        assert practice.drafts == {}
        assert practice.revealed == {}
        assert practice.show_all is False
        assert practice.select_option(0, "Mitochondria") is True

    def test_reset_is_idempotent(self, practice, exam):
        practice.select_option(1, "Golgi body")
        practice.reset()
        once = practice.snapshot()
        practice.reset()
        assert practice.snapshot() == once
        assert once == PracticeSession(exam).snapshot()


class TestExtend:
    """Test appending generated questions."""

    def test_existing_answers_survive(self, practice):
        practice.select_option(0, "Mitochondria")
        practice.extend(ExamQuestions(
            mcq=[MCQQuestion(question="New?", options=["a", "b"], correct_answer="a")],
            short=[ShortQuestion(question="Why?", answer="Because.")],
        ))
        assert len(practice.questions.mcq) == 3
        assert len(practice.questions.short) == 3
        assert practice.selected == {0: "Mitochondria"}
        assert practice.select_option(2, "b") is True

    def test_source_questions_are_not_mutated(self, exam):
        practice = PracticeSession(exam)
        practice.extend(ExamQuestions(mcq=[exam.mcq[0]]))
        assert len(exam.mcq) == 2
