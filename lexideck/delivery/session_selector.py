"""
Session word selection.

Implements:
- Smart mode: ratio-based bucket allocation (new / focus / review) with
  backfilling and a final uniform shuffle
- Traditional mode: fewest-encounters-first, no shuffle

Smart mode targets for a session of N words:
    new    = ceil(N * 0.5)
    focus  = ceil(N * 0.3)
    review = N - new - focus   (never negative)

Review slots are filled from the review queue first (front to back), then
from the learning bucket. Any slot still empty is filled with unused new
words, so a small pool still yields as long a session as it can.
"""

from __future__ import annotations

import math
import random
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from loguru import logger

from lexideck.core.mastery import MasteryState, MasteryStatus

from .preferences import FilterState
from .word_catalog import WordEntry

# =============================================================================
# Configuration
# =============================================================================


@dataclass
class SelectorConfig:
    """Bucket ratios for smart sessions."""

    new_ratio: float = 0.5
    focus_ratio: float = 0.3


@dataclass
class SessionPlan:
    """A prepared study session."""

    words: list[WordEntry] = field(default_factory=list)
    smart: bool = True
    pool_size: int = 0

    # Where the words came from (smart mode only)
    from_new: int = 0
    from_focus: int = 0
    from_review_queue: int = 0
    from_learning: int = 0
    from_new_backfill: int = 0

    @property
    def total_words(self) -> int:
        return len(self.words)

    @property
    def word_ids(self) -> list[str]:
        return [w.id for w in self.words]

    @property
    def estimated_minutes(self) -> int:
        """Estimate study time (30 sec per word average)."""
        return max(1, self.total_words // 2)


# =============================================================================
# Selector
# =============================================================================


class SessionSelector:
    """
    Builds bounded, duplicate-free session word lists.

    Words whose status is known or skipped never enter a session. The random
    source is injectable so tests can pin the sample.
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        config: SelectorConfig | None = None,
    ):
        """
        Initialize the selector.

        Args:
            rng: Random source (default: a fresh unseeded random.Random)
            config: Bucket ratios
        """
        self.rng = rng or random.Random()
        self.config = config or SelectorConfig()

    @staticmethod
    def status_of(word_id: str, states: Mapping[str, MasteryState]) -> MasteryStatus:
        state = states.get(word_id)
        return state.status if state is not None else MasteryStatus.NEW

    def eligible_pool(
        self,
        words: Iterable[WordEntry],
        states: Mapping[str, MasteryState],
        filters: FilterState | None = None,
    ) -> list[WordEntry]:
        """
        Apply session filters and drop known / skipped words.

        Words without a level pass any level filter.
        """
        levels = filters.levels if filters else set()
        statuses = filters.statuses if filters else set()

        pool: list[WordEntry] = []
        seen: set[str] = set()
        for word in words:
            if word.id in seen:
                continue
            status = self.status_of(word.id, states)
            if levels and word.level and word.level not in levels:
                continue
            if statuses and status.value not in statuses:
                continue
            if not status.in_session:
                continue
            seen.add(word.id)
            pool.append(word)
        return pool

    def select(
        self,
        words: Iterable[WordEntry],
        states: Mapping[str, MasteryState],
        review_ids: Sequence[str],
        filters: FilterState | None = None,
        length: int = 20,
        smart: bool = True,
    ) -> list[WordEntry]:
        """
        Select the words for one session.

        Args:
            words: Full catalog
            states: Mastery state per word id
            review_ids: Review queue, front first
            filters: Session filters (None = no filtering)
            length: Requested session length (values below 1 are treated as 1)
            smart: Smart (bucketed) or traditional (encounter-sorted) mode

        Returns:
            At most min(length, eligible pool size) distinct words
        """
        return self.build_session(words, states, review_ids, filters, length, smart).words

    def build_session(
        self,
        words: Iterable[WordEntry],
        states: Mapping[str, MasteryState],
        review_ids: Sequence[str],
        filters: FilterState | None = None,
        length: int = 20,
        smart: bool = True,
    ) -> SessionPlan:
        """Same as select, but also reports where the words came from."""
        n = max(1, int(length))
        pool = self.eligible_pool(words, states, filters)
        plan = SessionPlan(smart=smart, pool_size=len(pool))

        if not pool:
            logger.debug("Session selection: eligible pool is empty")
            return plan

        if smart:
            self._fill_smart(plan, pool, states, review_ids, n)
        else:
            plan.words = self._traditional(pool, states, n)

        logger.debug(
            f"Session built ({'smart' if smart else 'traditional'}): "
            f"{plan.total_words}/{n} words from a pool of {plan.pool_size}"
        )
        return plan

    # =========================================================================
    # Strategies
    # =========================================================================

    def _traditional(
        self,
        pool: list[WordEntry],
        states: Mapping[str, MasteryState],
        n: int,
    ) -> list[WordEntry]:
        def encounters(word: WordEntry) -> int:
            state = states.get(word.id)
            return state.encounters if state is not None else 0

        return sorted(pool, key=encounters)[:n]

    def _fill_smart(
        self,
        plan: SessionPlan,
        pool: list[WordEntry],
        states: Mapping[str, MasteryState],
        review_ids: Sequence[str],
        n: int,
    ) -> None:
        new_target = math.ceil(n * self.config.new_ratio)
        focus_target = math.ceil(n * self.config.focus_ratio)
        review_target = max(0, n - new_target - focus_target)

        new_bucket: list[WordEntry] = []
        learning_bucket: list[WordEntry] = []
        focus_bucket: list[WordEntry] = []
        for word in pool:
            status = self.status_of(word.id, states)
            if status == MasteryStatus.NEW:
                new_bucket.append(word)
            elif status == MasteryStatus.LEARNING:
                learning_bucket.append(word)
            elif status == MasteryStatus.FOCUS:
                focus_bucket.append(word)

        chosen: list[WordEntry] = []
        chosen_ids: set[str] = set()

        def take(candidates: Iterable[WordEntry], limit: int) -> int:
            taken = 0
            for word in candidates:
                if taken >= limit:
                    break
                if word.id in chosen_ids:
                    continue
                chosen.append(word)
                chosen_ids.add(word.id)
                taken += 1
            return taken

        shuffled_new = self.rng.sample(new_bucket, len(new_bucket))
        plan.from_new = take(shuffled_new, new_target)
        plan.from_focus = take(self.rng.sample(focus_bucket, len(focus_bucket)), focus_target)

        pool_by_id = {word.id: word for word in pool}
        review_words = [
            pool_by_id[word_id]
            for word_id in review_ids
            if word_id in pool_by_id
            and self.status_of(word_id, states) != MasteryStatus.KNOWN
        ]
        plan.from_review_queue = take(review_words, review_target)

        remaining_review = review_target - plan.from_review_queue
        if remaining_review > 0:
            plan.from_learning = take(
                self.rng.sample(learning_bucket, len(learning_bucket)), remaining_review
            )

        if len(chosen) < n:
            plan.from_new_backfill = take(shuffled_new, n - len(chosen))

        self.rng.shuffle(chosen)
        plan.words = chosen[: min(n, len(pool))]
