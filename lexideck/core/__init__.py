"""
Core Module - Learning state shared by the delivery layer.

Components:
- mastery: MasteryStatus, MasteryState, MasteryTracker, REQUIRED_ENCOUNTERS
- review_queue: ReviewQueue (move-to-tail reinforcement queue)
- errors: LexiDeckError hierarchy
"""

from lexideck.core.errors import (
    CatalogError,
    EnrichmentError,
    EnrichmentParseError,
    LexiDeckError,
)
from lexideck.core.mastery import (
    REQUIRED_ENCOUNTERS,
    MasteryState,
    MasteryStatus,
    MasteryTracker,
)
from lexideck.core.review_queue import ReviewQueue

__all__ = [
    # Errors
    "LexiDeckError",
    "CatalogError",
    "EnrichmentError",
    "EnrichmentParseError",
    # Mastery
    "REQUIRED_ENCOUNTERS",
    "MasteryStatus",
    "MasteryState",
    "MasteryTracker",
    # Queue
    "ReviewQueue",
]
