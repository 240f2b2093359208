"""
Exception hierarchy shared by LexiDeck modules.

Recoverable failures (enrichment) are caught inside the delivery layer and
turned into fallback payloads; these classes exist so that the boundary
between "recovered" and "caller bug" stays explicit.
"""

from __future__ import annotations


class LexiDeckError(Exception):
    """Base class for all LexiDeck errors."""


class CatalogError(LexiDeckError):
    """Raised for invalid catalog operations (e.g. a custom word with no text)."""


class EnrichmentError(LexiDeckError):
    """The enrichment service could not be reached or answered with an error."""


class EnrichmentParseError(EnrichmentError):
    """The enrichment service answered, but the payload had an unexpected shape."""

    def __init__(self, message: str, raw: str | None = None):
        super().__init__(message)
        self.raw = raw
