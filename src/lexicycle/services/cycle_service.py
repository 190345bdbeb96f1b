"""Service for managing rotating learning cycles."""
import logging
import threading
import weakref
from datetime import date, timedelta
from typing import ClassVar, List, Optional

from lexicycle.clock import Clock, utc_today
from lexicycle.config import CycleSettings, settings
from lexicycle.errors import CycleConflictError, EmptyVocabularyPoolError
from lexicycle.models.domain import (
    Cycle,
    CycleInfo,
    CycleProgress,
    SharedMoodState,
    VocabularyItem,
)
from lexicycle.monitoring import cycle_conflicts, cycles_created, cycles_rotated
from lexicycle.repositories.base import LearningRepository

logger = logging.getLogger(__name__)

# Joins the two ids of a pairing key
PAIRING_SEPARATOR = "_"


def pairing_key(learner_id: str, partner_id: Optional[str] = None) -> str:
    """Get the key scoping cycles and shared mood of a learner or a pair.

    A solo learner is paired with themself. Both partners of a pair derive
    the same key regardless of who asks. Ids holding the separator are
    refused, since "a_b" alone and "a" with "b_a_b" would share a key.
    """
    learner = str(learner_id).strip() if learner_id is not None else ""
    if not learner:
        raise ValueError("learner_id is required to build a pairing key")
    partner = str(partner_id).strip() if partner_id is not None else ""
    if not partner:
        partner = learner
    for value in (learner, partner):
        if PAIRING_SEPARATOR in value:
            raise ValueError(f"id {value!r} must not contain {PAIRING_SEPARATOR!r}")
    return PAIRING_SEPARATOR.join(sorted([learner, partner]))


class CycleManager:
    """Owns the lifecycle of the cycles of each pairing key."""

    # Per-key locks shared by every manager of the process. A key's lock
    # is dropped once no caller holds it, so idle keys do not pile up.
    _locks: ClassVar["weakref.WeakValueDictionary[str, threading.Lock]"] = (
        weakref.WeakValueDictionary()
    )
    _locks_guard: ClassVar[threading.Lock] = threading.Lock()

    def __init__(
        self,
        repository: LearningRepository,
        config: Optional[CycleSettings] = None,
        clock: Clock = utc_today,
    ):
        """Initialize the manager with a repository."""
        self.repository = repository
        self.config = config or settings.cycle
        self.clock = clock

    @classmethod
    def _lock_for(cls, key: str) -> threading.Lock:
        with cls._locks_guard:
            lock = cls._locks.get(key)
            if lock is None:
                lock = cls._locks[key] = threading.Lock()
            return lock

    def _info(self, cycle: Cycle, today: date, created: bool = False) -> CycleInfo:
        return CycleInfo(
            cycle=cycle,
            is_expired=cycle.is_expired(today),
            days_remaining=cycle.days_remaining(today),
            created=created,
        )

    def choose_words_for_cycle(self, key: str) -> List[VocabularyItem]:
        """Choose the words of the next cycle of a pairing key."""
        size = self.config.words_per_cycle
        recent = self.repository.recent_cycle_word_ids(key, self.config.recent_cycles_excluded)
        words = self.repository.list_vocabulary(exclude_ids=recent, limit=size)
        logger.debug(f"{len(words)} fresh words for {key} after excluding {len(recent)} recent ones")
        if len(words) < size:
            # Small pool: allow repeats from recent cycles
            logger.info(f"Only {len(words)} fresh words for {key}, falling back to the whole pool")
            words = self.repository.list_vocabulary(limit=size)
        if not words:
            raise EmptyVocabularyPoolError(f"No vocabulary available for a new cycle of {key}")
        return words

    def _create_cycle(
        self, key: str, sequence_number: int, today: date, words: List[VocabularyItem]
    ) -> Cycle:
        cycle = self.repository.create_cycle(
            pairing_key=key,
            sequence_number=sequence_number,
            start_date=today,
            end_date=today + timedelta(days=self.config.cycle_length_days),
            word_ids=[word.id for word in words],
        )
        cycles_created.inc()
        logger.info(f"Created cycle {sequence_number} for {key} with words {cycle.word_ids}")
        self.ensure_mood_state(key)
        return cycle

    def _create_or_join(
        self, key: str, sequence_number: int, today: date, words: List[VocabularyItem]
    ) -> CycleInfo:
        try:
            cycle = self._create_cycle(key, sequence_number, today, words)
        except CycleConflictError:
            # Another writer created it first
            cycle_conflicts.inc()
            winner = self.repository.get_active_cycle(key)
            if winner is None:
                raise
            logger.info(f"Cycle for {key} was created concurrently, using cycle {winner.sequence_number}")
            return self._info(winner, today)
        return self._info(cycle, today, created=True)

    def ensure_cycle(self, key: str, today: Optional[date] = None) -> CycleInfo:
        """Get the active cycle of a pairing key, creating or rotating it when needed."""
        today = today or self.clock()
        active = self.repository.get_active_cycle(key)
        if active is not None and not active.is_expired(today):
            return self._info(active, today)

        with self._lock_for(key):
            # Re-check under the lock
            active = self.repository.get_active_cycle(key)
            if active is not None and not active.is_expired(today):
                return self._info(active, today)

            # An empty pool fails here, before the current cycle is touched
            words = self.choose_words_for_cycle(key)
            if active is None:
                logger.info(f"No active cycle for {key}, creating one")
            else:
                logger.info(f"Cycle {active.sequence_number} of {key} expired on {active.end_date}")
                self.repository.deactivate_cycle(active.id)
                cycles_rotated.labels(reason="expired").inc()

            sequence_number = self.repository.last_cycle_number(key) + 1
            return self._create_or_join(key, sequence_number, today, words)

    def force_rotate(self, key: str, today: Optional[date] = None) -> CycleInfo:
        """Deactivate every active cycle of a pairing key and start the next one."""
        today = today or self.clock()
        with self._lock_for(key):
            words = self.choose_words_for_cycle(key)
            for cycle in self.repository.get_active_cycles(key):
                self.repository.deactivate_cycle(cycle.id)
                cycles_rotated.labels(reason="forced").inc()
                logger.info(f"Force-deactivated cycle {cycle.sequence_number} of {key}")
            sequence_number = self.repository.last_cycle_number(key) + 1
            return self._create_or_join(key, sequence_number, today, words)

    def ensure_mood_state(self, key: str) -> bool:
        """Create the shared mood record of a pairing key if it is missing."""
        created = self.repository.create_mood_state(
            SharedMoodState(
                pairing_key=key,
                happiness=self.config.initial_happiness,
                health=self.config.initial_health,
            )
        )
        if created:
            logger.info(f"Created shared mood state for {key}")
        return created

    def get_cycle_words(self, cycle: Cycle) -> List[VocabularyItem]:
        """Get the words of a cycle ordered by position."""
        return self.repository.get_vocabulary(cycle.word_ids)

    def cycle_progress(
        self, learner_id: str, partner_id: Optional[str] = None, today: Optional[date] = None
    ) -> CycleProgress:
        """Get how many cycle words each partner has reviewed."""
        info = self.ensure_cycle(pairing_key(learner_id, partner_id), today)
        cycle_id = info.cycle.id
        learner_progress = len(self.repository.get_progress(learner_id, cycle_id))
        partner_progress = 0
        if partner_id and partner_id != learner_id:
            partner_progress = len(self.repository.get_progress(partner_id, cycle_id))
        return CycleProgress(
            info=info,
            learner_progress=learner_progress,
            partner_progress=partner_progress,
        )
