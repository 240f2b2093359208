"""
Filter and session preferences.

Two groups of filters live here:
- Session filters (levels, statuses) decide which words a study session
  may draw from. An empty set means "any".
- Browse filters (level, status, search term) drive the word list view.

Session configuration (length, smart mode) is stored alongside.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from lexideck.core.mastery import MasteryStatus

DEFAULT_SESSION_LENGTH = 20
MAX_SESSION_LENGTH = 50


def clamp_session_length(length: int, maximum: int = MAX_SESSION_LENGTH) -> int:
    """Clamp a requested session length into [1, maximum]."""
    try:
        value = int(length)
    except (TypeError, ValueError):
        return 1
    return max(1, min(value, max(1, maximum)))


def _parse_statuses(values: Iterable[MasteryStatus | str]) -> set[str]:
    return {MasteryStatus.parse(v).value for v in values}


@dataclass
class FilterState:
    """Active filters and session configuration."""

    # Session filters
    levels: set[str] = field(default_factory=set)
    statuses: set[str] = field(default_factory=set)

    # Browse filters
    level: str | None = None
    status: str | None = None
    search_term: str = ""

    # Session configuration
    smart: bool = True
    session_length: int = DEFAULT_SESSION_LENGTH
    max_session_length: int = MAX_SESSION_LENGTH

    def __post_init__(self) -> None:
        self.session_length = clamp_session_length(self.session_length, self.max_session_length)

    # =========================================================================
    # Setters
    # =========================================================================

    def set_levels(self, levels: Iterable[str]) -> None:
        self.levels = {str(level) for level in levels if str(level).strip()}

    def set_statuses(self, statuses: Iterable[MasteryStatus | str]) -> None:
        """
        Raises:
            ValueError: If a value names no MasteryStatus
        """
        self.statuses = _parse_statuses(statuses)

    def set_level(self, level: str | None) -> None:
        self.level = level or None

    def set_status(self, status: MasteryStatus | str | None) -> None:
        self.status = MasteryStatus.parse(status).value if status else None

    def set_search_term(self, term: str | None) -> None:
        self.search_term = (term or "").strip()

    def set_session_length(self, length: int) -> int:
        self.session_length = clamp_session_length(length, self.max_session_length)
        return self.session_length

    def set_smart(self, smart: bool) -> None:
        self.smart = bool(smart)

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        return {
            "selected_learning_levels": sorted(self.levels),
            "selected_learning_statuses": sorted(self.statuses),
            "selected_level": self.level,
            "selected_status": self.status,
            "search_term": self.search_term,
            "use_smart": self.smart,
            "session_length": self.session_length,
        }

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        max_session_length: int = MAX_SESSION_LENGTH,
        defaults: FilterState | None = None,
    ) -> FilterState:
        """Restore from a snapshot, falling back to defaults for bad values."""
        base = defaults or cls(max_session_length=max_session_length)
        state = cls(
            levels=set(base.levels),
            statuses=set(base.statuses),
            smart=base.smart,
            session_length=base.session_length,
            max_session_length=max_session_length,
        )

        levels = data.get("selected_learning_levels")
        if isinstance(levels, list):
            state.set_levels(levels)

        statuses = data.get("selected_learning_statuses")
        if isinstance(statuses, list):
            try:
                state.set_statuses(statuses)
            except ValueError:
                state.statuses = set()

        state.set_level(data.get("selected_level"))
        try:
            state.set_status(data.get("selected_status"))
        except ValueError:
            state.status = None
        state.set_search_term(data.get("search_term"))

        if isinstance(data.get("use_smart"), bool):
            state.smart = data["use_smart"]
        if data.get("session_length") is not None:
            state.set_session_length(data["session_length"])
        return state
