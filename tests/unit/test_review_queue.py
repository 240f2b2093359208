"""
Unit tests for the review queue.
"""

from lexideck.core.review_queue import ReviewQueue


class TestReviewQueue:
    def test_push_appends_in_order(self):
        queue = ReviewQueue()
        queue.push("apple")
        queue.push("book")

        assert queue.ids() == ["apple", "book"]

    def test_push_twice_keeps_single_entry_at_tail(self):
        queue = ReviewQueue(["apple", "book", "family"])

        queue.push("apple")
        queue.push("apple")

        assert queue.ids() == ["book", "family", "apple"]
        assert queue.ids().count("apple") == 1

    def test_constructor_deduplicates(self):
        queue = ReviewQueue(["a", "b", "a"])
        assert queue.ids() == ["b", "a"]

    def test_remove(self):
        queue = ReviewQueue(["apple", "book"])

        assert queue.remove("apple") is True
        assert queue.remove("apple") is False
        assert "apple" not in queue
        assert len(queue) == 1

    def test_clear(self):
        queue = ReviewQueue(["apple", "book"])
        queue.clear()
        assert len(queue) == 0
        assert queue.ids() == []

    def test_iteration_is_non_destructive(self):
        queue = ReviewQueue(["apple", "book"])

        assert list(queue) == ["apple", "book"]
        assert list(queue) == ["apple", "book"]

    def test_ids_returns_a_copy(self):
        queue = ReviewQueue(["apple"])
        snapshot = queue.ids()
        snapshot.append("book")
        assert queue.ids() == ["apple"]
