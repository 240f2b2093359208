"""
Word Catalog: Vocabulary Loader.

Builds the in-memory vocabulary from three sources:
- The static dataset (JSON shipped with the package, or a configured path)
- Learner-added custom words (persisted record)
- Notes and last-updated timestamps (persisted records, keyed by word)

Features:
- Pure merge with custom-over-builtin precedence (merge_catalog)
- Idempotent reload that never resets mastery progress
- Change notifications for views that show catalog contents
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any

from loguru import logger

from lexideck.core.errors import CatalogError
from lexideck.core.mastery import MasteryTracker

from .state_store import KeyValueStore, StorageKeys

DEFAULT_DATASET_PATH = Path(__file__).resolve().parent.parent / "data" / "core_words.json"
DEFAULT_LEVELS = ["A1", "A2", "B1", "B2", "C1", "C2"]

# =============================================================================
# Word Data Class
# =============================================================================


class WordOrigin(str, Enum):
    BUILTIN = "builtin"
    CUSTOM = "custom"


@dataclass
class WordEntry:
    """
    A vocabulary entry.

    The id is the literal word as entered; it is unique across builtin and
    custom words and compared case-sensitively. Descriptive fields are fixed
    once loaded; only the note is edited in place.
    """

    id: str
    level: str | None = None
    part_of_speech: str | None = None
    phonetics: str | None = None
    meaning: str = ""
    explanation: str = ""
    examples: list[str] = field(default_factory=list)
    origin: WordOrigin = WordOrigin.BUILTIN

    # Overlays from the notes / timestamps records
    note: str | None = None
    last_updated: str | None = None

    @property
    def is_custom(self) -> bool:
        return self.origin == WordOrigin.CUSTOM

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], origin: WordOrigin = WordOrigin.BUILTIN) -> WordEntry:
        """
        Create a WordEntry from a dataset or persisted record.

        Accepts both dataset keys (word, pos, vn_meaning, eng_explanation,
        example) and the keys written by to_dict.

        Raises:
            KeyError: If the record has no word text
        """
        word = data.get("word", data.get("id"))
        if word is None:
            raise KeyError("word")
        word = str(word).strip()
        if not word:
            raise KeyError("word")

        examples = data.get("examples")
        if isinstance(examples, list):
            example_list = [str(e).strip() for e in examples if str(e).strip()]
        else:
            single = str(data.get("example") or "").strip()
            example_list = [single] if single else []

        raw_origin = data.get("origin") or data.get("type")
        if raw_origin in (WordOrigin.CUSTOM.value, WordOrigin.BUILTIN.value):
            origin = WordOrigin(raw_origin)

        return cls(
            id=word,
            level=data.get("level") or None,
            part_of_speech=data.get("part_of_speech") or data.get("pos") or None,
            phonetics=data.get("phonetics") or None,
            meaning=str(data.get("meaning") or data.get("vn_meaning") or ""),
            explanation=str(data.get("explanation") or data.get("eng_explanation") or ""),
            examples=example_list,
            origin=origin,
            note=data.get("note") or None,
            last_updated=data.get("last_updated") or None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "word": self.id,
            "level": self.level,
            "part_of_speech": self.part_of_speech,
            "phonetics": self.phonetics,
            "meaning": self.meaning,
            "explanation": self.explanation,
            "examples": list(self.examples),
            "origin": self.origin.value,
            "note": self.note,
        }


# =============================================================================
# Merge
# =============================================================================


def merge_catalog(
    builtin: Sequence[WordEntry],
    custom: Mapping[str, WordEntry],
    notes: Mapping[str, str],
    last_updated: Mapping[str, str],
) -> list[WordEntry]:
    """
    Merge the static dataset with the persisted overlays.

    Builtin words keep their dataset order; custom-only words follow in
    insertion order. A custom word with the same id replaces the builtin
    one. Non-empty notes and timestamps overlay whichever entry they name.
    Inputs are not mutated.

    Returns:
        Deduplicated list of entries
    """
    merged: dict[str, WordEntry] = {}
    for entry in builtin:
        if entry.id not in merged:
            merged[entry.id] = entry
    for word_id, entry in custom.items():
        merged[word_id] = entry

    result: list[WordEntry] = []
    for word_id, entry in merged.items():
        result.append(
            replace(
                entry,
                examples=list(entry.examples),
                note=notes.get(word_id) or entry.note,
                last_updated=last_updated.get(word_id) or entry.last_updated,
            )
        )
    return result


# =============================================================================
# Change Events
# =============================================================================


@dataclass(frozen=True)
class CatalogEvent:
    """Emitted after the catalog changes."""

    kind: str  # 'loaded', 'added', 'updated', 'removed', 'note'
    word_id: str | None = None


CatalogListener = Callable[[CatalogEvent], None]


# =============================================================================
# Word Catalog
# =============================================================================


class WordCatalog:
    """
    Manages the vocabulary collection.

    Features:
    - Loads and merges builtin, custom, note and timestamp sources
    - Registers every word with the mastery tracker
    - Persists custom words and notes on every mutation
    - Notifies subscribers when words are added or removed
    """

    def __init__(
        self,
        store: KeyValueStore,
        tracker: MasteryTracker,
        dataset_path: Path | None = None,
        keys: StorageKeys | None = None,
    ):
        """
        Initialize the catalog.

        Args:
            store: Durable key-value store for custom words and notes
            tracker: Mastery tracker that receives new word ids
            dataset_path: Static dataset JSON (default: bundled core_words.json)
            keys: Record names (default namespace "lexideck")
        """
        self.store = store
        self.tracker = tracker
        self.dataset_path = dataset_path or DEFAULT_DATASET_PATH
        self.keys = keys or StorageKeys()

        self._words: dict[str, WordEntry] = {}
        self._listeners: list[CatalogListener] = []
        self.is_loaded = False

    # =========================================================================
    # Loading
    # =========================================================================

    def load_dataset(self) -> list[WordEntry]:
        """
        Read the static dataset.

        Returns:
            Builtin entries (empty if the file is missing or unreadable)
        """
        try:
            with open(self.dataset_path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load dataset {self.dataset_path}: {e}")
            return []

        records = data.get("words") if isinstance(data, dict) else data
        if not isinstance(records, list):
            logger.error(f"Dataset {self.dataset_path} has no word list, got {type(records).__name__}")
            return []

        entries: list[WordEntry] = []
        for record in records:
            try:
                entries.append(WordEntry.from_dict(record, origin=WordOrigin.BUILTIN))
            except (KeyError, TypeError, AttributeError) as e:
                logger.warning(f"Invalid word record in {self.dataset_path.name}: {e}")
        return entries

    def load(self) -> int:
        """
        (Re)build the catalog from all sources.

        Mastery states are created only for ids the tracker has never seen,
        so calling load repeatedly leaves existing progress untouched.

        Returns:
            Number of words in the catalog
        """
        builtin = self.load_dataset()
        custom = self._read_custom()
        notes = self._read_map(self.keys.notes)
        last_updated = self._read_map(self.keys.last_updated)

        merged = merge_catalog(builtin, custom, notes, last_updated)
        self._words = {entry.id: entry for entry in merged}

        created = 0
        for entry in merged:
            if self.tracker.register(entry.id, last_updated_at=entry.last_updated):
                created += 1

        self.is_loaded = True
        logger.info(
            f"WordCatalog loaded: {len(self._words)} words "
            f"({len(builtin)} builtin, {len(custom)} custom, {created} new states)"
        )
        self._emit(CatalogEvent("loaded"))
        return len(self._words)

    def _read_json(self, key: str, default: Any) -> Any:
        raw = self.store.read_key(key)
        if not raw:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring corrupt record {key}: {e}")
            return default

    def _read_map(self, key: str) -> dict[str, str]:
        data = self._read_json(key, {})
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items() if isinstance(v, str) and v}

    def _read_custom(self) -> dict[str, WordEntry]:
        data = self._read_json(self.keys.custom_words, [])
        custom: dict[str, WordEntry] = {}
        for record in data if isinstance(data, list) else []:
            try:
                entry = WordEntry.from_dict(record, origin=WordOrigin.CUSTOM)
            except (KeyError, TypeError, AttributeError) as e:
                logger.warning(f"Invalid custom word record: {e}")
                continue
            entry.origin = WordOrigin.CUSTOM
            custom[entry.id] = entry
        return custom

    def _write_custom(self, custom: Mapping[str, WordEntry]) -> None:
        payload = [entry.to_dict() for entry in custom.values()]
        self.store.write_key(self.keys.custom_words, json.dumps(payload, ensure_ascii=False))

    def _write_map(self, key: str, data: Mapping[str, str]) -> None:
        self.store.write_key(key, json.dumps(dict(data), ensure_ascii=False, sort_keys=True))

    # =========================================================================
    # Mutations
    # =========================================================================

    def add_custom_word(self, entry: WordEntry) -> WordEntry:
        """
        Insert or update a custom word.

        The word is visible to readers immediately and subscribers receive
        an 'added' (or 'updated') event.

        Raises:
            CatalogError: If the entry has no word text
        """
        word_id = (entry.id or "").strip()
        if not word_id:
            raise CatalogError("A custom word needs non-empty text")

        existing = self._words.get(word_id)
        note = entry.note if entry.note is not None else (existing.note if existing else None)
        stored = replace(
            entry,
            id=word_id,
            origin=WordOrigin.CUSTOM,
            examples=list(entry.examples),
            note=note,
            last_updated=existing.last_updated if existing else entry.last_updated,
        )

        custom = self._read_custom()
        custom[word_id] = stored
        self._write_custom(custom)

        if entry.note:
            notes = self._read_map(self.keys.notes)
            notes[word_id] = entry.note
            self._write_map(self.keys.notes, notes)

        self._words[word_id] = stored
        self.tracker.register(word_id)

        kind = "updated" if existing is not None else "added"
        logger.info(f"Custom word {kind}: {word_id!r}")
        self._emit(CatalogEvent(kind, word_id))
        return stored

    def remove_word(self, word_id: str) -> bool:
        """
        Delete a custom word.

        Builtin and unknown words are left alone. A custom word that shadowed
        a builtin id gives way to the dataset entry with fresh progress.

        Returns:
            True if the word was removed
        """
        entry = self._words.get(word_id)
        if entry is None or not entry.is_custom:
            logger.debug(f"remove_word refused for {word_id!r} (missing or builtin)")
            return False

        builtin = next((e for e in self.load_dataset() if e.id == word_id), None)
        if builtin is None:
            del self._words[word_id]
        else:
            self._words[word_id] = builtin

        custom = self._read_custom()
        custom.pop(word_id, None)
        self._write_custom(custom)

        for key in (self.keys.notes, self.keys.last_updated):
            record = self._read_map(key)
            if record.pop(word_id, None) is not None:
                self._write_map(key, record)

        self.tracker.discard(word_id)
        if builtin is not None:
            self.tracker.register(word_id)

        logger.info(f"Custom word removed: {word_id!r}")
        self._emit(CatalogEvent("removed", word_id))
        return True

    def get_note(self, word_id: str) -> str | None:
        entry = self._words.get(word_id)
        return entry.note if entry else None

    def set_note(self, word_id: str, note: str | None) -> bool:
        """
        Set (or clear, with an empty value) the learner's note on a word.

        Returns:
            False for unknown words
        """
        entry = self._words.get(word_id)
        if entry is None:
            return False

        text = (note or "").strip() or None
        entry.note = text

        notes = self._read_map(self.keys.notes)
        if text:
            notes[word_id] = text
        else:
            notes.pop(word_id, None)
        self._write_map(self.keys.notes, notes)

        state = self.tracker.touch(word_id)
        if state is not None and state.last_updated_at:
            self.record_timestamp(word_id, state.last_updated_at)

        self._emit(CatalogEvent("note", word_id))
        return True

    def record_timestamp(self, word_id: str, timestamp: str) -> None:
        """Persist a word's last-updated time."""
        entry = self._words.get(word_id)
        if entry is None:
            return
        entry.last_updated = timestamp
        record = self._read_map(self.keys.last_updated)
        record[word_id] = timestamp
        self._write_map(self.keys.last_updated, record)

    # =========================================================================
    # Observers
    # =========================================================================

    def subscribe(self, listener: CatalogListener) -> Callable[[], None]:
        """
        Register a change listener.

        Returns:
            Callable that unsubscribes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: CatalogEvent) -> None:
        for listener in list(self._listeners):
            listener(event)

    # =========================================================================
    # Access Methods
    # =========================================================================

    def get(self, word_id: str) -> WordEntry | None:
        return self._words.get(word_id)

    def get_all(self) -> list[WordEntry]:
        return list(self._words.values())

    def get_by_ids(self, word_ids: Sequence[str]) -> list[WordEntry]:
        """Entries for the given ids, skipping missing ones."""
        return [self._words[w] for w in word_ids if w in self._words]

    @property
    def levels(self) -> list[str]:
        """Known levels: the CEFR defaults plus any extra level found in the data."""
        extra = sorted({e.level for e in self._words.values() if e.level} - set(DEFAULT_LEVELS))
        return DEFAULT_LEVELS + extra

    @property
    def custom_count(self) -> int:
        return sum(1 for e in self._words.values() if e.is_custom)

    def __iter__(self) -> Iterator[WordEntry]:
        return iter(list(self._words.values()))

    def __len__(self) -> int:
        return len(self._words)

    def __contains__(self, word_id: object) -> bool:
        return word_id in self._words
