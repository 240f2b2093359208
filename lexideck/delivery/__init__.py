"""
LexiDeck delivery layer: everything between the core state and the terminal.

Components:
- WordCatalog: dataset loading, custom words, notes
- SessionSelector: smart and traditional session building
- ContentCache / EnrichmentService: Gemini definitions and quizzes
- KeyValueStore: SQLite (or in-memory) persistence
- WordStore: the application state object
- PracticeSession: study loop bookkeeping and answer grading
- lexideck_cli: Main terminal interface
"""

from .content_cache import ContentCache
from .enrichment import (
    EnrichmentService,
    GeminiEnrichmentClient,
    QuizQuestion,
    WordDefinition,
)
from .practice import PracticeMode, PracticeSession, StudyAction
from .preferences import FilterState
from .session_selector import SessionPlan, SessionSelector
from .state_store import KeyValueStore, MemoryKeyValueStore, SqliteKeyValueStore, StorageKeys
from .word_catalog import CatalogEvent, WordCatalog, WordEntry, WordOrigin, merge_catalog
from .word_store import CompletionStats, WordStats, WordStore

__all__ = [
    # Catalog
    "WordCatalog",
    "WordEntry",
    "WordOrigin",
    "CatalogEvent",
    "merge_catalog",
    # Persistence
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SqliteKeyValueStore",
    "StorageKeys",
    # Selection
    "FilterState",
    "SessionSelector",
    "SessionPlan",
    # Enrichment
    "ContentCache",
    "EnrichmentService",
    "GeminiEnrichmentClient",
    "WordDefinition",
    "QuizQuestion",
    # State
    "WordStore",
    "WordStats",
    "CompletionStats",
    # Practice
    "PracticeMode",
    "PracticeSession",
    "StudyAction",
]
