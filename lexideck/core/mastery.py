"""
Core Mastery Module.

Per-word learning state and the rules that move a word between states.

Design:
- MasteryStatus: Enum of the five learning states
- MasteryState: Dataclass holding one word's mutable progress
- MasteryTracker: Owns every MasteryState and applies transitions

Automatic transitions:
    new -> learning      on the first encounter
    * -> known           once encounters reach REQUIRED_ENCOUNTERS
Manual transitions (learner override) are always allowed:
    * -> focus, * -> skipped, * -> known ("Got it"), * -> learning

focus and skipped are sticky: further encounters never move them back to
learning, only the threshold promotion to known applies.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from loguru import logger

from .review_queue import ReviewQueue

REQUIRED_ENCOUNTERS = 5


class MasteryStatus(str, Enum):
    """Learning status of a single word."""

    NEW = "new"
    LEARNING = "learning"
    FOCUS = "focus"
    KNOWN = "known"
    SKIPPED = "skipped"

    @classmethod
    def parse(cls, value: MasteryStatus | str | None) -> MasteryStatus:
        """
        Coerce a stored or user-supplied value into a status.

        None and empty strings map to NEW (words that were never touched).

        Raises:
            ValueError: If the value names no status
        """
        if isinstance(value, MasteryStatus):
            return value
        if not value:
            return cls.NEW
        return cls(str(value).strip().lower())

    @property
    def display_name(self) -> str:
        """Human-readable name."""
        return self.value.title()

    @property
    def color(self) -> str:
        """Rich color for CLI display."""
        return {
            MasteryStatus.NEW: "white",
            MasteryStatus.LEARNING: "blue",
            MasteryStatus.FOCUS: "magenta",
            MasteryStatus.KNOWN: "green",
            MasteryStatus.SKIPPED: "dim",
        }[self]

    @property
    def in_session(self) -> bool:
        """Whether words in this status may be scheduled into a session."""
        return self not in (MasteryStatus.KNOWN, MasteryStatus.SKIPPED)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class MasteryState:
    """Mutable progress for one word."""

    word_id: str
    status: MasteryStatus = MasteryStatus.NEW
    encounters: int = 0
    last_seen_at: str | None = None  # ISO format
    last_updated_at: str | None = None  # ISO format

    @property
    def progress(self) -> float:
        """Fraction of REQUIRED_ENCOUNTERS reached, capped at 1.0."""
        return min(1.0, self.encounters / REQUIRED_ENCOUNTERS)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "encounters": self.encounters,
            "last_seen_at": self.last_seen_at,
            "last_updated_at": self.last_updated_at,
        }

    @classmethod
    def from_dict(cls, word_id: str, data: Mapping[str, Any]) -> MasteryState:
        """Create from a snapshot record, tolerating missing or bad fields."""
        try:
            status = MasteryStatus.parse(data.get("status"))
        except ValueError:
            status = MasteryStatus.NEW
        try:
            encounters = max(0, int(data.get("encounters") or 0))
        except (TypeError, ValueError):
            encounters = 0
        return cls(
            word_id=word_id,
            status=status,
            encounters=encounters,
            last_seen_at=data.get("last_seen_at"),
            last_updated_at=data.get("last_updated_at"),
        )


class MasteryTracker:
    """
    Owns the MasteryState of every catalog word.

    Mutations on ids the tracker has never seen are silent no-ops: a word can
    be deleted while a session that still references it is open, and that is
    not a caller error.
    """

    def __init__(
        self,
        review_queue: ReviewQueue | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize the tracker.

        Args:
            review_queue: Queue receiving words that need more practice
            clock: Source of "now" (injectable for tests)
        """
        self.review_queue = review_queue if review_queue is not None else ReviewQueue()
        self._clock = clock or _utcnow
        self._states: dict[str, MasteryState] = {}

    # =========================================================================
    # Registry
    # =========================================================================

    def register(self, word_id: str, last_updated_at: str | None = None) -> bool:
        """
        Create a fresh state for word_id unless one already exists.

        Returns:
            True if a new state was created
        """
        state = self._states.get(word_id)
        if state is not None:
            if state.last_updated_at is None and last_updated_at:
                state.last_updated_at = last_updated_at
            return False
        self._states[word_id] = MasteryState(word_id=word_id, last_updated_at=last_updated_at)
        return True

    def register_all(self, word_ids: Iterable[str]) -> int:
        """Register many ids. Returns the number of new states."""
        return sum(1 for word_id in word_ids if self.register(word_id))

    def discard(self, word_id: str) -> None:
        """Forget a word entirely (used when a custom word is deleted)."""
        self._states.pop(word_id, None)
        self.review_queue.remove(word_id)

    def get(self, word_id: str) -> MasteryState | None:
        return self._states.get(word_id)

    @property
    def states(self) -> Mapping[str, MasteryState]:
        return self._states

    def __contains__(self, word_id: object) -> bool:
        return word_id in self._states

    def __len__(self) -> int:
        return len(self._states)

    # =========================================================================
    # Transitions
    # =========================================================================

    def _now(self) -> str:
        return self._clock().isoformat()

    def increment_encounters(self, word_id: str) -> MasteryState | None:
        """
        Record one completed practice exposure.

        encounters += 1; at REQUIRED_ENCOUNTERS the word becomes known,
        otherwise a new word becomes learning and any other status is kept.
        Words still below the threshold are pushed onto the review queue.

        Returns:
            The updated state, or None for an unknown id
        """
        state = self._states.get(word_id)
        if state is None:
            logger.debug(f"increment_encounters ignored for unknown word {word_id!r}")
            return None

        state.encounters += 1
        if state.encounters >= REQUIRED_ENCOUNTERS:
            state.status = MasteryStatus.KNOWN
        elif state.status == MasteryStatus.NEW:
            state.status = MasteryStatus.LEARNING
        state.last_seen_at = self._now()

        if state.encounters < REQUIRED_ENCOUNTERS:
            self.review_queue.push(word_id)
        else:
            self.review_queue.remove(word_id)

        logger.debug(
            f"Encounter recorded for {word_id!r}: {state.encounters}/{REQUIRED_ENCOUNTERS} "
            f"({state.status.value})"
        )
        return state

    def set_status(self, word_id: str, status: MasteryStatus | str) -> MasteryState | None:
        """
        Override the status of a word.

        learning is an explicit "needs more practice" signal and queues the
        word for review; known removes it from the queue.

        Raises:
            ValueError: If status names no MasteryStatus
        """
        new_status = MasteryStatus.parse(status)
        state = self._states.get(word_id)
        if state is None:
            logger.debug(f"set_status ignored for unknown word {word_id!r}")
            return None

        now = self._now()
        state.status = new_status
        state.last_seen_at = now
        state.last_updated_at = now

        if new_status == MasteryStatus.LEARNING:
            self.review_queue.push(word_id)
        elif new_status == MasteryStatus.KNOWN:
            self.review_queue.remove(word_id)
        return state

    def touch(self, word_id: str) -> MasteryState | None:
        """Stamp last_updated_at without changing progress."""
        state = self._states.get(word_id)
        if state is None:
            return None
        state.last_updated_at = self._now()
        return state

    def reset_all(self) -> int:
        """
        Wipe all learning progress.

        Every word goes back to new with zero encounters and no last-seen time,
        and the review queue is emptied. Catalog data and notes are untouched.

        Returns:
            Number of states reset
        """
        for state in self._states.values():
            state.encounters = 0
            state.status = MasteryStatus.NEW
            state.last_seen_at = None
        self.review_queue.clear()
        logger.info(f"Progress reset for {len(self._states)} words")
        return len(self._states)

    # =========================================================================
    # Snapshot
    # =========================================================================

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {word_id: state.to_dict() for word_id, state in self._states.items()}

    def load_dict(self, data: Mapping[str, Mapping[str, Any]]) -> None:
        """Replace all states with those from a snapshot."""
        self._states = {
            str(word_id): MasteryState.from_dict(str(word_id), record)
            for word_id, record in data.items()
            if isinstance(record, Mapping)
        }

    def last_updated_map(self) -> dict[str, str]:
        """{word_id: last_updated_at} for every word that has one."""
        return {
            word_id: state.last_updated_at
            for word_id, state in self._states.items()
            if state.last_updated_at
        }
