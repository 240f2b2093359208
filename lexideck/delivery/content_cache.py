"""
Content cache for enrichment payloads.

Maps a word id to the last payload fetched for it. There is no expiry:
entries leave the cache only through discard (word deleted), clear
(progress reset) or an overwrite. Writes are last-write-wins, so two
overlapping fetches for the same word are harmless.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from typing import Any, Generic, TypeVar

from loguru import logger

T = TypeVar("T")


class ContentCache(Generic[T]):
    """Word id -> payload mapping with overwrite semantics."""

    def __init__(self, name: str = "content"):
        self.name = name
        self._entries: dict[str, T] = {}

    def get(self, word_id: str) -> T | None:
        payload = self._entries.get(word_id)
        logger.debug(f"{self.name} cache {'hit' if payload is not None else 'miss'}: {word_id!r}")
        return payload

    def put(self, word_id: str, payload: T) -> None:
        self._entries[word_id] = payload

    def discard(self, word_id: str) -> bool:
        return self._entries.pop(word_id, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, word_id: object) -> bool:
        return word_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self, dump: Callable[[T], Any]) -> dict[str, Any]:
        return {word_id: dump(payload) for word_id, payload in self._entries.items()}

    def load_dict(self, data: Mapping[str, Any], parse: Callable[[Any], T]) -> int:
        """
        Replace the contents from a snapshot.

        Records that parse raises on are dropped.

        Returns:
            Number of entries restored
        """
        self._entries.clear()
        for word_id, raw in data.items():
            try:
                self._entries[str(word_id)] = parse(raw)
            except (TypeError, ValueError) as e:
                logger.warning(f"Dropping unreadable {self.name} cache entry {word_id!r}: {e}")
        return len(self._entries)
