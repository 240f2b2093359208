"""
Unit tests for the mastery state machine.

Covers automatic promotion at REQUIRED_ENCOUNTERS, manual overrides,
sticky focus/skipped states and review queue side effects.
"""

import pytest

from lexideck.core.mastery import (
    REQUIRED_ENCOUNTERS,
    MasteryState,
    MasteryStatus,
    MasteryTracker,
)


class TestMasteryStatus:
    def test_parse_values(self):
        assert MasteryStatus.parse("known") == MasteryStatus.KNOWN
        assert MasteryStatus.parse(" Focus ") == MasteryStatus.FOCUS
        assert MasteryStatus.parse(MasteryStatus.SKIPPED) == MasteryStatus.SKIPPED

    def test_parse_empty_is_new(self):
        assert MasteryStatus.parse(None) == MasteryStatus.NEW
        assert MasteryStatus.parse("") == MasteryStatus.NEW

    def test_parse_invalid_raises(self):
        with pytest.raises(ValueError):
            MasteryStatus.parse("mastered")

    @pytest.mark.parametrize(
        "status,expected",
        [
            (MasteryStatus.NEW, True),
            (MasteryStatus.LEARNING, True),
            (MasteryStatus.FOCUS, True),
            (MasteryStatus.KNOWN, False),
            (MasteryStatus.SKIPPED, False),
        ],
    )
    def test_in_session(self, status, expected):
        assert status.in_session is expected


class TestMasteryState:
    def test_round_trip(self):
        state = MasteryState("apple", MasteryStatus.FOCUS, 3, "2024-01-01T00:00:00+00:00", None)
        restored = MasteryState.from_dict("apple", state.to_dict())
        assert restored == state

    def test_from_dict_tolerates_bad_fields(self):
        state = MasteryState.from_dict("apple", {"status": "bogus", "encounters": "x"})
        assert state.status == MasteryStatus.NEW
        assert state.encounters == 0

    def test_progress_caps_at_one(self):
        assert MasteryState("a", encounters=REQUIRED_ENCOUNTERS + 3).progress == 1.0


class TestIncrementEncounters:
    def test_first_encounter_moves_new_to_learning(self, tracker):
        tracker.register("apple")

        state = tracker.increment_encounters("apple")

        assert state.encounters == 1
        assert state.status == MasteryStatus.LEARNING
        assert state.last_seen_at is not None
        assert tracker.review_queue.ids() == ["apple"]

    def test_encounters_never_decrease(self, tracker):
        tracker.register("apple")
        previous = 0
        for _ in range(REQUIRED_ENCOUNTERS + 2):
            state = tracker.increment_encounters("apple")
            assert state.encounters >= previous
            previous = state.encounters

    def test_threshold_promotes_to_known(self, tracker):
        tracker.register("apple")
        for _ in range(REQUIRED_ENCOUNTERS - 1):
            tracker.increment_encounters("apple")
        assert tracker.get("apple").status == MasteryStatus.LEARNING
        assert "apple" in tracker.review_queue

        state = tracker.increment_encounters("apple")

        assert state.encounters == REQUIRED_ENCOUNTERS
        assert state.status == MasteryStatus.KNOWN
        assert "apple" not in tracker.review_queue

    @pytest.mark.parametrize("sticky", [MasteryStatus.FOCUS, MasteryStatus.SKIPPED])
    def test_manual_states_are_sticky(self, tracker, sticky):
        tracker.register("apple")
        tracker.set_status("apple", sticky)

        state = tracker.increment_encounters("apple")

        assert state.status == sticky

    def test_sticky_state_still_promotes_at_threshold(self, tracker):
        tracker.register("apple")
        tracker.set_status("apple", MasteryStatus.FOCUS)
        for _ in range(REQUIRED_ENCOUNTERS):
            state = tracker.increment_encounters("apple")
        assert state.status == MasteryStatus.KNOWN

    def test_unknown_id_is_noop(self, tracker):
        assert tracker.increment_encounters("ghost") is None
        assert len(tracker.review_queue) == 0


class TestSetStatus:
    def test_known_removes_from_queue(self, tracker):
        tracker.register("apple")
        tracker.increment_encounters("apple")

        state = tracker.set_status("apple", "known")

        assert state.status == MasteryStatus.KNOWN
        assert "apple" not in tracker.review_queue
        assert state.last_updated_at is not None

    def test_learning_queues_for_review(self, tracker):
        tracker.register("apple")
        tracker.register("book")
        tracker.set_status("apple", MasteryStatus.LEARNING)
        tracker.set_status("book", MasteryStatus.LEARNING)
        tracker.set_status("apple", MasteryStatus.LEARNING)

        assert tracker.review_queue.ids() == ["book", "apple"]

    def test_invalid_status_raises(self, tracker):
        tracker.register("apple")
        with pytest.raises(ValueError):
            tracker.set_status("apple", "mastered")

    def test_unknown_id_is_noop(self, tracker):
        assert tracker.set_status("ghost", "known") is None


class TestRegistryAndReset:
    def test_register_is_idempotent(self, tracker):
        assert tracker.register("apple") is True
        tracker.increment_encounters("apple")

        assert tracker.register("apple") is False
        assert tracker.get("apple").encounters == 1

    def test_reset_all(self, tracker):
        tracker.register_all(["apple", "book"])
        tracker.increment_encounters("apple")
        tracker.set_status("book", "known")

        assert tracker.reset_all() == 2

        for word_id in ("apple", "book"):
            state = tracker.get(word_id)
            assert state.encounters == 0
            assert state.status == MasteryStatus.NEW
            assert state.last_seen_at is None
        assert len(tracker.review_queue) == 0

    def test_discard_forgets_state_and_queue(self, tracker):
        tracker.register("apple")
        tracker.increment_encounters("apple")

        tracker.discard("apple")

        assert "apple" not in tracker
        assert "apple" not in tracker.review_queue

    def test_snapshot_round_trip(self, tracker, clock):
        tracker.register_all(["apple", "book"])
        tracker.increment_encounters("apple")
        tracker.set_status("book", "focus")

        other = MasteryTracker(clock=clock)
        other.load_dict(tracker.to_dict())

        assert other.get("apple").encounters == 1
        assert other.get("book").status == MasteryStatus.FOCUS
        assert set(other.last_updated_map()) == {"book"}
