"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import json
import random
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from lexideck.core.mastery import MasteryTracker  # noqa: E402
from lexideck.core.review_queue import ReviewQueue  # noqa: E402
from lexideck.delivery.state_store import MemoryKeyValueStore  # noqa: E402
from lexideck.delivery.word_catalog import WordEntry  # noqa: E402
from lexideck.delivery.word_store import WordStore  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


SAMPLE_WORDS = [
    {"word": "apple", "level": "A1", "pos": "noun", "vn_meaning": "quả táo", "eng_explanation": "a round fruit", "example": "I ate an apple."},
    {"word": "book", "level": "A1", "pos": "noun", "vn_meaning": "quyển sách", "eng_explanation": "printed pages in a cover", "example": "Read a book."},
    {"word": "family", "level": "A1", "pos": "noun", "vn_meaning": "gia đình", "eng_explanation": "related people", "example": "My family is big."},
    {"word": "borrow", "level": "A2", "pos": "verb", "vn_meaning": "mượn", "eng_explanation": "take and return", "example": "Can I borrow it?"},
    {"word": "journey", "level": "A2", "pos": "noun", "vn_meaning": "hành trình", "eng_explanation": "travelling somewhere", "example": "A long journey."},
    {"word": "improve", "level": "B1", "pos": "verb", "vn_meaning": "cải thiện", "eng_explanation": "make better", "example": "Improve your English."},
    {"word": "opinion", "level": "B1", "pos": "noun", "vn_meaning": "ý kiến", "eng_explanation": "a belief", "example": "In my opinion..."},
    {"word": "reluctant", "level": "B2", "pos": "adjective", "vn_meaning": "miễn cưỡng", "eng_explanation": "not willing", "example": "She was reluctant."},
    {"word": "ambiguous", "level": "C1", "pos": "adjective", "vn_meaning": "mơ hồ", "eng_explanation": "unclear meaning", "example": "An ambiguous answer."},
    {"word": "ephemeral", "level": "C2", "pos": "adjective", "vn_meaning": "phù du", "eng_explanation": "short-lived", "example": "Ephemeral fame."},
]


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def sample_records():
    """Raw dataset records (ten words, A1-C2)."""
    return [dict(record) for record in SAMPLE_WORDS]


@pytest.fixture
def dataset_path(tmp_path, sample_records):
    """Dataset JSON file with the sample records."""
    path = tmp_path / "words.json"
    path.write_text(json.dumps(sample_records, ensure_ascii=False), encoding="utf-8")
    return path


@pytest.fixture
def sample_entries(sample_records):
    """Sample records as WordEntry objects."""
    return [WordEntry.from_dict(record) for record in sample_records]


@pytest.fixture
def kv():
    """Empty in-memory key-value store."""
    return MemoryKeyValueStore()


@pytest.fixture
def rng():
    """Seeded random source."""
    return random.Random(1234)


@pytest.fixture
def clock():
    """Deterministic clock advancing one minute per call."""
    start = datetime(2024, 1, 1, 9, 0, tzinfo=UTC)
    ticks = iter(range(10_000))
    return lambda: start + timedelta(minutes=next(ticks))


@pytest.fixture
def tracker(clock):
    """Mastery tracker with its own review queue."""
    return MasteryTracker(review_queue=ReviewQueue(), clock=clock)


@pytest.fixture
def store(kv, dataset_path, rng):
    """Loaded WordStore over the sample dataset."""
    word_store = WordStore(kv, dataset_path=dataset_path, rng=rng)
    word_store.load()
    return word_store


@pytest.fixture
def sample_definition_payload():
    """Definition JSON as the model returns it."""
    return {
        "englishDefinition": "noun: a round fruit with red or green skin",
        "vietnameseDefinition": "quả táo",
        "examples": ["She ate an apple.", "Apples grow on trees."],
    }


@pytest.fixture
def sample_quiz_text():
    """Quiz text in the line-based format the model returns."""
    return (
        'Question: What is the meaning of "apple"?\n'
        "A: A kind of vegetable\n"
        "B: A round fruit\n"
        "C: A type of tree bark\n"
        "D: A kitchen tool\n"
        "Correct: B\n"
    )
