"""
Practice modalities and session bookkeeping.

Tracks what happened during one study session:
- Which practice mode is active (flashcard, quiz, spelling)
- Answer grading for quiz and spelling rounds
- Learner actions and their effect on mastery
- A summary for the end-of-session panel
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from loguru import logger

from lexideck.core.mastery import MasteryStatus

from .enrichment import QuizQuestion

if TYPE_CHECKING:
    from .word_store import WordStore

OPTION_LETTERS = "ABCD"

# =============================================================================
# Modes & Actions
# =============================================================================


class PracticeMode(str, Enum):
    FLASHCARD = "flashcard"
    QUIZ = "quiz"
    SPELLING = "spelling"

    @property
    def display_name(self) -> str:
        return self.value.title()

    @property
    def color(self) -> str:
        return {
            PracticeMode.FLASHCARD: "blue",
            PracticeMode.QUIZ: "green",
            PracticeMode.SPELLING: "magenta",
        }[self]


class StudyAction(str, Enum):
    """What the learner does with the current word."""

    COMPLETE = "complete"  # one more encounter
    GOT_IT = "got-it"  # mark known now
    SKIP = "skip"
    FOCUS = "focus"
    NEEDS_PRACTICE = "needs-practice"
    QUIT = "quit"

    @property
    def key(self) -> str:
        """Single-letter shortcut used by the terminal prompt."""
        return {
            StudyAction.COMPLETE: "c",
            StudyAction.GOT_IT: "g",
            StudyAction.SKIP: "s",
            StudyAction.FOCUS: "f",
            StudyAction.NEEDS_PRACTICE: "p",
            StudyAction.QUIT: "q",
        }[self]

    @classmethod
    def from_key(cls, key: str) -> StudyAction:
        """
        Raises:
            ValueError: If key matches no action shortcut or value
        """
        text = key.strip().lower()
        for action in cls:
            if text in (action.key, action.value):
                return action
        raise ValueError(f"Unknown action: {key!r}")


# =============================================================================
# Grading
# =============================================================================


def grade_spelling(word: str, answer: str) -> bool:
    """Case-insensitive comparison of the trimmed answer with the word."""
    return answer.strip().lower() == word.strip().lower()


def option_letter(index: int) -> str:
    return OPTION_LETTERS[index]


def resolve_quiz_choice(quiz: QuizQuestion, choice: str) -> str | None:
    """
    Map a learner's input to an option text.

    Accepts an option letter (a-d, any case) or the option text itself.

    Returns:
        The chosen option, or None if the input matches nothing
    """
    text = choice.strip()
    if len(text) == 1 and text.upper() in OPTION_LETTERS:
        index = OPTION_LETTERS.index(text.upper())
        return quiz.options[index] if index < len(quiz.options) else None
    for option in quiz.options:
        if option.strip().lower() == text.lower():
            return option
    return None


def grade_quiz(quiz: QuizQuestion, choice: str) -> bool:
    return resolve_quiz_choice(quiz, choice) == quiz.correct_answer


# =============================================================================
# Session Progress
# =============================================================================


@dataclass
class PracticeResult:
    """One word's outcome within a session."""

    word_id: str
    action: StudyAction
    correct: bool | None = None  # None for ungraded (flashcard) rounds


@dataclass
class PracticeSession:
    """Progress through a planned list of words."""

    word_ids: list[str]
    mode: PracticeMode = PracticeMode.FLASHCARD
    started_at: datetime = field(default_factory=datetime.now)
    results: list[PracticeResult] = field(default_factory=list)
    position: int = 0
    quit_early: bool = False

    @property
    def total(self) -> int:
        return len(self.word_ids)

    @property
    def current(self) -> str | None:
        if self.position >= self.total:
            return None
        return self.word_ids[self.position]

    @property
    def upcoming(self) -> str | None:
        """The word after the current one (prefetch target)."""
        nxt = self.position + 1
        return self.word_ids[nxt] if nxt < self.total else None

    @property
    def is_finished(self) -> bool:
        return self.quit_early or self.position >= self.total

    def apply(
        self,
        store: WordStore,
        action: StudyAction,
        correct: bool | None = None,
    ) -> PracticeResult | None:
        """
        Apply an action to the current word and advance.

        complete        -> increment encounters
        got-it          -> status known
        skip            -> status skipped, requeued for review
        focus           -> status focus
        needs-practice  -> status learning (queues for review)
        quit            -> end the session, current word untouched

        Returns:
            The recorded result, or None when quitting or already finished
        """
        word_id = self.current
        if word_id is None:
            return None
        if action == StudyAction.QUIT:
            self.quit_early = True
            logger.info(f"Session ended early at {self.position}/{self.total}")
            return None

        if action == StudyAction.COMPLETE:
            store.increment_encounters(word_id)
        elif action == StudyAction.GOT_IT:
            store.update_word_status(word_id, MasteryStatus.KNOWN)
        elif action == StudyAction.SKIP:
            store.update_word_status(word_id, MasteryStatus.SKIPPED)
            store.add_to_review_queue(word_id)
        elif action == StudyAction.FOCUS:
            store.update_word_status(word_id, MasteryStatus.FOCUS)
        elif action == StudyAction.NEEDS_PRACTICE:
            store.update_word_status(word_id, MasteryStatus.LEARNING)

        result = PracticeResult(word_id=word_id, action=action, correct=correct)
        self.results.append(result)
        self.position += 1
        return result

    def summary(self) -> dict[str, float | int]:
        """End-of-session numbers for display."""
        graded = [r for r in self.results if r.correct is not None]
        correct = sum(1 for r in graded if r.correct)
        actions = Counter(r.action for r in self.results)
        duration = (datetime.now() - self.started_at).total_seconds() / 60
        return {
            "duration_minutes": duration,
            "words_practiced": len(self.results),
            "completed": actions[StudyAction.COMPLETE],
            "marked_known": actions[StudyAction.GOT_IT],
            "skipped": actions[StudyAction.SKIP],
            "graded": len(graded),
            "correct": correct,
            "accuracy_percent": (correct / len(graded) * 100) if graded else 0.0,
        }
