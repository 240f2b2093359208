"""
Word Store: the single state object behind every LexiDeck view.

Owns the catalog, mastery tracker, review queue, filters, session selector and
both enrichment caches, and persists them to a KeyValueStore after every
mutation. One WordStore is created per process and handed to the front end.

Lifecycle:
    store = WordStore(kv)        # init
    store.load()                 # restore snapshot, merge catalog
    store.increment_encounters() # mutate (persisted immediately)
    store.reset_progress()       # reset

Snapshot record (<ns>:state):
    {
        "version": 1,
        "mastery": {word_id: {...}},
        "review_queue": [word_id, ...],
        "filters": {...},
        "levels": [...],
        "definitions": {word_id: {...}},
        "quizzes": {word_id: {...}}
    }
"""

from __future__ import annotations

import json
import random
import unicodedata
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger

from lexideck.core.mastery import MasteryState, MasteryStatus, MasteryTracker
from lexideck.core.review_queue import ReviewQueue

from .content_cache import ContentCache
from .enrichment import QuizQuestion, WordDefinition
from .preferences import MAX_SESSION_LENGTH, FilterState
from .session_selector import SessionPlan, SessionSelector
from .state_store import KeyValueStore, SqliteKeyValueStore, StorageKeys
from .word_catalog import CatalogEvent, WordCatalog, WordEntry

if TYPE_CHECKING:
    from config import Settings

SNAPSHOT_VERSION = 1


def normalize_no_accent(text: str) -> str:
    """Lowercase and strip diacritics ("Đường" -> "duong")."""
    lowered = text.lower().replace("đ", "d")
    decomposed = unicodedata.normalize("NFD", lowered)
    return "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")


def percent(part: int, total: int) -> int:
    """Integer percentage, rounded half up. 0 when total is 0."""
    if total <= 0:
        return 0
    return (part * 200 + total) // (total * 2)


# =============================================================================
# Stats
# =============================================================================


@dataclass
class WordStats:
    """Counts over the browse-filtered word list."""

    total: int
    known: int
    learning: int
    percent_complete: int


@dataclass
class CompletionStats:
    """Counts over the whole catalog."""

    total: int
    completed: int
    in_progress: int
    percent_complete: int

    @property
    def not_started(self) -> int:
        return max(0, self.total - self.completed - self.in_progress)


# =============================================================================
# Word Store
# =============================================================================


class WordStore:
    """
    Explicit application state with automatic persistence.

    Mutations on unknown word ids are no-ops. Catalog changes are forwarded to
    subscribers registered with subscribe().
    """

    def __init__(
        self,
        kv: KeyValueStore,
        dataset_path: Path | None = None,
        namespace: str = "lexideck",
        rng: random.Random | None = None,
        default_session_length: int | None = None,
        max_session_length: int = MAX_SESSION_LENGTH,
        default_smart: bool = True,
    ):
        """
        Initialize the store (nothing is read until load()).

        Args:
            kv: Durable key-value store
            dataset_path: Static dataset override
            namespace: Record name prefix
            rng: Random source for smart sessions
            default_session_length: Session length before any saved preference
            max_session_length: Upper clamp for session length
            default_smart: Smart mode before any saved preference
        """
        self.kv = kv
        self.keys = StorageKeys(namespace=namespace)

        self.review_queue = ReviewQueue()
        self.tracker = MasteryTracker(review_queue=self.review_queue)
        self.catalog = WordCatalog(kv, self.tracker, dataset_path=dataset_path, keys=self.keys)
        self.selector = SessionSelector(rng=rng)

        self._default_filters = FilterState(
            smart=default_smart,
            max_session_length=max_session_length,
        )
        if default_session_length is not None:
            self._default_filters.set_session_length(default_session_length)
        self.filters = FilterState.from_dict({}, max_session_length, self._default_filters)

        self.definitions: ContentCache[WordDefinition] = ContentCache("definition")
        self.quizzes: ContentCache[QuizQuestion] = ContentCache("quiz")

    @classmethod
    def from_settings(cls, settings: Settings, kv: KeyValueStore | None = None) -> WordStore:
        """Build a store wired to the configured SQLite database and dataset."""
        return cls(
            kv if kv is not None else SqliteKeyValueStore(settings.resolved_state_db_path),
            dataset_path=settings.dataset_path,
            namespace=settings.storage_namespace,
            default_session_length=settings.default_session_length,
            max_session_length=settings.max_session_length,
            default_smart=settings.default_smart_mode,
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def load(self) -> int:
        """
        Restore the snapshot, then merge the catalog.

        Safe to call more than once: existing mastery state is kept.

        Returns:
            Number of words in the catalog
        """
        self._restore_snapshot()
        count = self.catalog.load()
        self.save()
        return count

    def save(self) -> None:
        """Write the full snapshot record."""
        snapshot = {
            "version": SNAPSHOT_VERSION,
            "mastery": self.tracker.to_dict(),
            "review_queue": self.review_queue.ids(),
            "filters": self.filters.to_dict(),
            "levels": self.levels,
            "definitions": self.definitions.to_dict(lambda d: d.model_dump(by_alias=True)),
            "quizzes": self.quizzes.to_dict(lambda q: q.model_dump(by_alias=True)),
        }
        self.kv.write_key(self.keys.state, json.dumps(snapshot, ensure_ascii=False))

    def _restore_snapshot(self) -> None:
        raw = self.kv.read_key(self.keys.state)
        if not raw:
            logger.debug("No saved state, starting fresh")
            return
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring corrupt state record: {e}")
            return
        if not isinstance(data, dict):
            return

        mastery = data.get("mastery")
        if isinstance(mastery, dict):
            self.tracker.load_dict(mastery)

        queue = data.get("review_queue")
        self.review_queue.clear()
        for word_id in queue if isinstance(queue, list) else []:
            if isinstance(word_id, str):
                self.review_queue.push(word_id)

        filters = data.get("filters")
        if isinstance(filters, dict):
            self.filters = FilterState.from_dict(
                filters, self.filters.max_session_length, self._default_filters
            )

        definitions = data.get("definitions")
        if isinstance(definitions, dict):
            self.definitions.load_dict(definitions, WordDefinition.model_validate)
        quizzes = data.get("quizzes")
        if isinstance(quizzes, dict):
            self.quizzes.load_dict(quizzes, QuizQuestion.model_validate)

        logger.info(
            f"Restored state: {len(self.tracker)} words, {len(self.review_queue)} queued, "
            f"{len(self.definitions)} definitions, {len(self.quizzes)} quizzes"
        )

    def subscribe(self, listener: Callable[[CatalogEvent], None]) -> Callable[[], None]:
        """Listen for catalog changes. Returns an unsubscribe callable."""
        return self.catalog.subscribe(listener)

    # =========================================================================
    # Reading
    # =========================================================================

    @property
    def words(self) -> list[WordEntry]:
        return self.catalog.get_all()

    @property
    def levels(self) -> list[str]:
        return self.catalog.levels

    def get_word(self, word_id: str) -> WordEntry | None:
        return self.catalog.get(word_id)

    def get_state(self, word_id: str) -> MasteryState | None:
        return self.tracker.get(word_id)

    def status_of(self, word_id: str) -> MasteryStatus:
        return self.selector.status_of(word_id, self.tracker.states)

    def get_filtered_words(self) -> list[WordEntry]:
        """Catalog filtered by the browse level, status and search term."""
        level = self.filters.level
        status = self.filters.status
        needle = normalize_no_accent(self.filters.search_term)

        result: list[WordEntry] = []
        for word in self.catalog:
            if level and word.level != level:
                continue
            if status and self.status_of(word.id).value != status:
                continue
            if needle and needle not in normalize_no_accent(word.id) and needle not in (
                normalize_no_accent(word.meaning)
            ):
                continue
            result.append(word)
        return result

    def build_session(self, length: int | None = None, smart: bool | None = None) -> SessionPlan:
        """Plan a session using the saved preferences unless overridden."""
        plan = self.selector.build_session(
            self.catalog.get_all(),
            self.tracker.states,
            self.review_queue.ids(),
            self.filters,
            length=self.filters.session_length if length is None else length,
            smart=self.filters.smart if smart is None else smart,
        )
        logger.info(f"Session prepared with {plan.total_words} words")
        return plan

    def get_session_words(self, length: int | None = None, smart: bool | None = None) -> list[WordEntry]:
        return self.build_session(length, smart).words

    # =========================================================================
    # Filters
    # =========================================================================

    def set_selected_level(self, level: str | None) -> None:
        self.filters.set_level(level)
        self.save()

    def set_selected_status(self, status: MasteryStatus | str | None) -> None:
        self.filters.set_status(status)
        self.save()

    def set_search_term(self, term: str | None) -> None:
        self.filters.set_search_term(term)
        self.save()

    def set_learning_levels(self, levels: Iterable[str]) -> None:
        self.filters.set_levels(levels)
        self.save()

    def set_learning_statuses(self, statuses: Iterable[MasteryStatus | str]) -> None:
        self.filters.set_statuses(statuses)
        self.save()

    def set_session_length(self, length: int) -> int:
        value = self.filters.set_session_length(length)
        self.save()
        return value

    def set_use_smart(self, smart: bool) -> None:
        self.filters.set_smart(smart)
        self.save()

    # =========================================================================
    # Mastery
    # =========================================================================

    def increment_encounters(self, word_id: str) -> MasteryState | None:
        state = self.tracker.increment_encounters(word_id)
        if state is not None:
            self.save()
        return state

    def update_word_status(self, word_id: str, status: MasteryStatus | str) -> MasteryState | None:
        """
        Override a word's status.

        Raises:
            ValueError: If status names no MasteryStatus
        """
        state = self.tracker.set_status(word_id, status)
        if state is None:
            return None
        if state.last_updated_at:
            self.catalog.record_timestamp(word_id, state.last_updated_at)
        self.save()
        return state

    def add_to_review_queue(self, word_id: str) -> bool:
        """Queue a word for review. Unknown ids are ignored."""
        if word_id not in self.tracker:
            return False
        self.review_queue.push(word_id)
        self.save()
        return True

    def reset_progress(self) -> int:
        """
        Reset every word to new, empty the review queue and both caches.

        Catalog words, custom words and notes are kept.
        """
        count = self.tracker.reset_all()
        self.definitions.clear()
        self.quizzes.clear()
        self.save()
        return count

    # =========================================================================
    # Catalog
    # =========================================================================

    def add_custom_word(self, entry: WordEntry) -> WordEntry:
        """
        Raises:
            CatalogError: If the entry has no word text
        """
        stored = self.catalog.add_custom_word(entry)
        self.save()
        return stored

    def remove_word(self, word_id: str) -> bool:
        """Delete a custom word with its caches, note and progress."""
        if not self.catalog.remove_word(word_id):
            return False
        self.definitions.discard(word_id)
        self.quizzes.discard(word_id)
        self.save()
        return True

    def get_note(self, word_id: str) -> str | None:
        return self.catalog.get_note(word_id)

    def set_note(self, word_id: str, note: str | None) -> bool:
        if not self.catalog.set_note(word_id, note):
            return False
        self.save()
        return True

    # =========================================================================
    # Content Cache
    # =========================================================================

    def cache_definition(self, word_id: str, definition: WordDefinition) -> None:
        self.definitions.put(word_id, definition)
        self.save()

    def get_cached_definition(self, word_id: str) -> WordDefinition | None:
        return self.definitions.get(word_id)

    def cache_quiz_question(self, word_id: str, quiz: QuizQuestion) -> None:
        self.quizzes.put(word_id, quiz)
        self.save()

    def get_cached_quiz_question(self, word_id: str) -> QuizQuestion | None:
        return self.quizzes.get(word_id)

    # =========================================================================
    # Statistics
    # =========================================================================

    def get_word_stats(self) -> WordStats:
        words = self.get_filtered_words()
        known = sum(1 for w in words if self.status_of(w.id) == MasteryStatus.KNOWN)
        learning = sum(1 for w in words if self.status_of(w.id) == MasteryStatus.LEARNING)
        return WordStats(
            total=len(words),
            known=known,
            learning=learning,
            percent_complete=percent(known, len(words)),
        )

    def get_completion_stats(self) -> CompletionStats:
        words = self.catalog.get_all()
        completed = sum(1 for w in words if self.status_of(w.id) == MasteryStatus.KNOWN)
        in_progress = sum(1 for w in words if self.status_of(w.id) == MasteryStatus.LEARNING)
        return CompletionStats(
            total=len(words),
            completed=completed,
            in_progress=in_progress,
            percent_complete=percent(completed, len(words)),
        )

    def status_breakdown(self) -> dict[str, int]:
        """Word count per status over the whole catalog."""
        counts = {status.value: 0 for status in MasteryStatus}
        for word in self.catalog:
            counts[self.status_of(word.id).value] += 1
        return counts

    def to_dict(self) -> dict[str, Any]:
        """Summary used by the status command."""
        completion = self.get_completion_stats()
        return {
            "words": len(self.catalog),
            "custom_words": self.catalog.custom_count,
            "review_queue": len(self.review_queue),
            "definitions_cached": len(self.definitions),
            "quizzes_cached": len(self.quizzes),
            "percent_complete": completion.percent_complete,
            "filters": self.filters.to_dict(),
        }
