"""
Unit tests for the enrichment content cache.
"""

from lexideck.delivery.content_cache import ContentCache
from lexideck.delivery.enrichment import WordDefinition


def definition(text):
    return WordDefinition(english_definition=text, vietnamese_definition="vi", examples=[])


class TestContentCache:
    def test_put_then_get_returns_same_payload(self):
        cache = ContentCache("definition")
        payload = definition("first")

        cache.put("apple", payload)

        assert cache.get("apple") is payload
        assert "apple" in cache

    def test_overwrite_wins(self):
        cache = ContentCache()
        cache.put("apple", definition("first"))
        cache.put("apple", definition("second"))

        assert cache.get("apple").english_definition == "second"
        assert len(cache) == 1

    def test_miss_returns_none(self):
        assert ContentCache().get("apple") is None

    def test_discard_and_clear(self):
        cache = ContentCache()
        cache.put("apple", definition("a"))
        cache.put("book", definition("b"))

        assert cache.discard("apple") is True
        assert cache.discard("apple") is False
        cache.clear()
        assert len(cache) == 0

    def test_serialization_round_trip(self):
        cache = ContentCache()
        cache.put("apple", definition("a fruit"))

        data = cache.to_dict(lambda d: d.model_dump(by_alias=True))
        restored = ContentCache()
        restored.load_dict(data, WordDefinition.model_validate)

        assert restored.get("apple").english_definition == "a fruit"

    def test_load_dict_drops_bad_entries(self):
        cache = ContentCache()
        count = cache.load_dict(
            {"apple": {"englishDefinition": "ok"}, "book": {"examples": 42}},
            WordDefinition.model_validate,
        )
        assert count == 1
        assert "book" not in cache
