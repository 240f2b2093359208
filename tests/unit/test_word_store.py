"""
Unit tests for the WordStore state object.

Covers persistence round trips, reset completeness, custom word removal,
browse filtering and statistics.
"""

import json
import random

import pytest

from lexideck.core.errors import CatalogError
from lexideck.core.mastery import REQUIRED_ENCOUNTERS, MasteryStatus
from lexideck.delivery.enrichment import QuizQuestion, WordDefinition
from lexideck.delivery.state_store import SqliteKeyValueStore
from lexideck.delivery.word_catalog import WordEntry, WordOrigin
from lexideck.delivery.word_store import WordStore, normalize_no_accent, percent


@pytest.fixture
def definition():
    return WordDefinition(english_definition="a fruit", vietnamese_definition="quả táo", examples=["x"])


@pytest.fixture
def quiz():
    return QuizQuestion(question="?", options=["a", "b", "c", "d"], correct_answer="a")


def reopen(kv, dataset_path):
    fresh = WordStore(kv, dataset_path=dataset_path, rng=random.Random(0))
    fresh.load()
    return fresh


class TestHelpers:
    @pytest.mark.parametrize(
        "text,expected",
        [("Gia Đình", "gia dinh"), ("quả táo", "qua tao"), ("Hành trình", "hanh trinh"), ("apple", "apple")],
    )
    def test_normalize_no_accent(self, text, expected):
        assert normalize_no_accent(text) == expected

    @pytest.mark.parametrize(
        "part,total,expected",
        [(0, 0, 0), (1, 8, 13), (1, 3, 33), (2, 3, 67), (1, 200, 1), (1, 201, 0), (5, 5, 100)],
    )
    def test_percent_rounds_half_up(self, part, total, expected):
        assert percent(part, total) == expected


class TestPersistence:
    def test_snapshot_round_trip(self, kv, dataset_path, store, definition, quiz):
        store.increment_encounters("apple")
        store.update_word_status("book", "focus")
        store.add_to_review_queue("family")
        store.set_learning_levels(["A1", "B1"])
        store.set_session_length(12)
        store.set_use_smart(False)
        store.cache_definition("apple", definition)
        store.cache_quiz_question("apple", quiz)

        fresh = reopen(kv, dataset_path)

        assert fresh.get_state("apple").encounters == 1
        assert fresh.status_of("book") == MasteryStatus.FOCUS
        assert fresh.review_queue.ids() == ["apple", "family"]
        assert fresh.filters.levels == {"A1", "B1"}
        assert fresh.filters.session_length == 12
        assert fresh.filters.smart is False
        assert fresh.get_cached_definition("apple") == definition
        assert fresh.get_cached_quiz_question("apple") == quiz

    def test_sqlite_round_trip(self, tmp_path, dataset_path):
        db = SqliteKeyValueStore(tmp_path / "state.db")
        store = WordStore(db, dataset_path=dataset_path)
        store.load()
        store.increment_encounters("apple")
        db.close()

        reopened = SqliteKeyValueStore(tmp_path / "state.db")
        fresh = WordStore(reopened, dataset_path=dataset_path)
        fresh.load()

        assert fresh.get_state("apple").encounters == 1
        assert "lexideck:state" in reopened.keys("lexideck:")
        reopened.close()

    def test_reload_is_idempotent(self, store):
        store.increment_encounters("apple")
        store.load()
        store.load()
        assert store.get_state("apple").encounters == 1

    def test_corrupt_snapshot_is_ignored(self, kv, dataset_path):
        kv.write_key("lexideck:state", "{not json")
        store = WordStore(kv, dataset_path=dataset_path)

        assert store.load() == 10
        assert store.status_of("apple") == MasteryStatus.NEW

    def test_every_mutation_is_saved(self, kv, store):
        store.increment_encounters("apple")
        saved = json.loads(kv.read_key("lexideck:state"))
        assert saved["mastery"]["apple"]["encounters"] == 1


class TestMutations:
    def test_unknown_word_mutations_are_noops(self, store):
        assert store.increment_encounters("ghost") is None
        assert store.update_word_status("ghost", "known") is None
        assert store.add_to_review_queue("ghost") is False
        assert "ghost" not in store.review_queue

    def test_update_status_records_timestamp(self, kv, store):
        state = store.update_word_status("apple", "known")

        stamps = json.loads(kv.read_key("lexideck:word-last-updated"))
        assert stamps["apple"] == state.last_updated_at
        assert store.get_word("apple").last_updated == state.last_updated_at

    def test_invalid_status_raises(self, store):
        with pytest.raises(ValueError):
            store.update_word_status("apple", "mastered")

    def test_known_word_leaves_sessions(self, store):
        for _ in range(REQUIRED_ENCOUNTERS - 1):
            store.increment_encounters("apple")
        store.increment_encounters("apple")

        assert store.status_of("apple") == MasteryStatus.KNOWN
        assert "apple" not in [w.id for w in store.get_session_words(length=50)]

    def test_reset_progress_is_complete(self, store, definition, quiz):
        store.increment_encounters("apple")
        store.update_word_status("book", "known")
        store.update_word_status("family", "skipped")
        store.add_to_review_queue("family")
        store.cache_definition("apple", definition)
        store.cache_quiz_question("apple", quiz)
        store.set_note("apple", "keep me")

        store.reset_progress()

        for word in store.words:
            state = store.get_state(word.id)
            assert state.encounters == 0
            assert state.status == MasteryStatus.NEW
        assert len(store.review_queue) == 0
        assert len(store.definitions) == 0
        assert len(store.quizzes) == 0
        assert store.get_note("apple") == "keep me"


class TestCustomWords:
    def test_add_and_remove(self, store, definition, quiz):
        store.add_custom_word(WordEntry(id="serendipity", meaning="tình cờ"))
        store.increment_encounters("serendipity")
        store.set_note("serendipity", "lucky")
        store.cache_definition("serendipity", definition)
        store.cache_quiz_question("serendipity", quiz)

        assert store.remove_word("serendipity") is True

        assert store.get_word("serendipity") is None
        assert store.get_state("serendipity") is None
        assert "serendipity" not in store.review_queue
        assert store.get_cached_definition("serendipity") is None
        assert store.get_cached_quiz_question("serendipity") is None
        assert store.get_note("serendipity") is None

    def test_builtin_cannot_be_removed(self, store):
        assert store.remove_word("apple") is False
        assert store.get_word("apple") is not None

    def test_empty_custom_word_rejected(self, store):
        with pytest.raises(CatalogError):
            store.add_custom_word(WordEntry(id=""))

    def test_custom_word_overrides_builtin(self, kv, dataset_path, store):
        store.add_custom_word(WordEntry(id="apple", meaning="my apple"))

        fresh = reopen(kv, dataset_path)

        assert fresh.get_word("apple").meaning == "my apple"
        assert fresh.get_word("apple").origin == WordOrigin.CUSTOM
        assert len(fresh.words) == 10

    def test_subscribers_hear_about_changes(self, store):
        events = []
        store.subscribe(events.append)

        store.add_custom_word(WordEntry(id="serendipity"))

        assert events[-1].kind == "added"


class TestFilteringAndStats:
    def test_search_is_accent_insensitive(self, store):
        store.set_search_term("gia dinh")
        assert [w.id for w in store.get_filtered_words()] == ["family"]

        store.set_search_term("BOR")
        assert [w.id for w in store.get_filtered_words()] == ["borrow"]

    def test_level_and_status_filters(self, store):
        store.update_word_status("book", "known")
        store.set_selected_level("A1")
        store.set_selected_status("known")

        assert [w.id for w in store.get_filtered_words()] == ["book"]

    def test_word_stats_follow_browse_filters(self, store):
        store.update_word_status("apple", "known")
        store.increment_encounters("book")
        store.set_selected_level("A1")

        stats = store.get_word_stats()

        assert stats.total == 3
        assert stats.known == 1
        assert stats.learning == 1
        assert stats.percent_complete == 33

    def test_completion_stats(self, store):
        store.update_word_status("apple", "known")
        store.update_word_status("book", "known")
        store.increment_encounters("family")

        stats = store.get_completion_stats()

        assert stats.total == 10
        assert stats.completed == 2
        assert stats.in_progress == 1
        assert stats.not_started == 7
        assert stats.percent_complete == 20

    def test_empty_catalog_stats(self, kv, tmp_path):
        store = WordStore(kv, dataset_path=tmp_path / "none.json")
        store.load()

        assert store.get_completion_stats().percent_complete == 0
        assert store.get_session_words(length=10) == []

    def test_session_uses_saved_preferences(self, store):
        store.set_session_length(4)
        store.set_learning_levels(["A1"])

        session = store.get_session_words()

        assert len(session) == 3
        assert all(w.level == "A1" for w in session)

    def test_session_length_clamped(self, store):
        assert store.set_session_length(0) == 1
        assert store.set_session_length(80) == 50
