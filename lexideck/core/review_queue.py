"""
Review Queue.

An ordered, duplicate-free queue of word ids awaiting reinforcement.
The front holds the word that was requeued longest ago; pushing an id that
is already queued moves it to the tail.

Reads are non-destructive: the session selector walks the queue and filters
it against current mastery, it never dequeues.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator


class ReviewQueue:
    """Move-to-tail queue of word ids."""

    def __init__(self, ids: Iterable[str] | None = None):
        self._ids: list[str] = []
        for word_id in ids or []:
            self.push(word_id)

    def push(self, word_id: str) -> None:
        """Append word_id, removing any earlier occurrence first."""
        if word_id in self._ids:
            self._ids.remove(word_id)
        self._ids.append(word_id)

    def remove(self, word_id: str) -> bool:
        """Drop word_id if queued. Returns True when something was removed."""
        if word_id in self._ids:
            self._ids.remove(word_id)
            return True
        return False

    def clear(self) -> None:
        self._ids.clear()

    def ids(self) -> list[str]:
        """Snapshot of the queue, front first."""
        return list(self._ids)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._ids))

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, word_id: object) -> bool:
        return word_id in self._ids
