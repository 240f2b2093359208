"""
Unit tests for practice grading and study session bookkeeping.
"""

import pytest

from lexideck.core.mastery import MasteryStatus
from lexideck.delivery.enrichment import QuizQuestion
from lexideck.delivery.practice import (
    PracticeSession,
    StudyAction,
    grade_quiz,
    grade_spelling,
    resolve_quiz_choice,
)


@pytest.fixture
def quiz():
    return QuizQuestion(
        question="What does apple mean?",
        options=["a vegetable", "a round fruit", "a tree", "a tool"],
        correct_answer="a round fruit",
    )


class TestGrading:
    @pytest.mark.parametrize("answer", ["apple", " Apple ", "APPLE"])
    def test_spelling_accepts_case_and_whitespace(self, answer):
        assert grade_spelling("apple", answer) is True

    def test_spelling_rejects_typos(self):
        assert grade_spelling("apple", "aple") is False

    @pytest.mark.parametrize("choice", ["B", "b", " b ", "a round fruit"])
    def test_quiz_correct_choices(self, quiz, choice):
        assert grade_quiz(quiz, choice) is True

    def test_quiz_wrong_choice(self, quiz):
        assert grade_quiz(quiz, "A") is False

    def test_unknown_choice_resolves_to_none(self, quiz):
        assert resolve_quiz_choice(quiz, "E") is None
        assert grade_quiz(quiz, "E") is False


class TestStudyAction:
    def test_from_key(self):
        assert StudyAction.from_key("c") == StudyAction.COMPLETE
        assert StudyAction.from_key("needs-practice") == StudyAction.NEEDS_PRACTICE
        with pytest.raises(ValueError):
            StudyAction.from_key("x")


class TestPracticeSession:
    def test_actions_update_mastery(self, store):
        session = PracticeSession(word_ids=["apple", "book", "family", "borrow", "journey"])

        session.apply(store, StudyAction.COMPLETE)
        session.apply(store, StudyAction.GOT_IT)
        session.apply(store, StudyAction.SKIP)
        session.apply(store, StudyAction.FOCUS)
        session.apply(store, StudyAction.NEEDS_PRACTICE)

        assert store.get_state("apple").encounters == 1
        assert store.status_of("apple") == MasteryStatus.LEARNING
        assert store.status_of("book") == MasteryStatus.KNOWN
        assert store.status_of("family") == MasteryStatus.SKIPPED
        assert store.status_of("borrow") == MasteryStatus.FOCUS
        assert store.status_of("journey") == MasteryStatus.LEARNING
        assert store.review_queue.ids() == ["apple", "family", "journey"]
        assert session.is_finished

    def test_quit_leaves_word_untouched(self, store):
        session = PracticeSession(word_ids=["apple", "book"])

        assert session.apply(store, StudyAction.QUIT) is None

        assert session.is_finished
        assert session.quit_early
        assert store.get_state("apple").encounters == 0

    def test_upcoming_and_current(self):
        session = PracticeSession(word_ids=["apple", "book"])
        assert session.current == "apple"
        assert session.upcoming == "book"

    def test_summary(self, store):
        session = PracticeSession(word_ids=["apple", "book", "family"])
        session.apply(store, StudyAction.COMPLETE, correct=True)
        session.apply(store, StudyAction.NEEDS_PRACTICE, correct=False)
        session.apply(store, StudyAction.GOT_IT)

        summary = session.summary()

        assert summary["words_practiced"] == 3
        assert summary["graded"] == 2
        assert summary["correct"] == 1
        assert summary["accuracy_percent"] == 50.0
        assert summary["marked_known"] == 1
