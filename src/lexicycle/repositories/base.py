"""Storage interface the engine depends on."""
from abc import ABC, abstractmethod
from datetime import date
from typing import Dict, Iterable, List, Optional, Set

from lexicycle.models.domain import (
    Cycle,
    DailyStat,
    ProgressRecord,
    ReviewEvent,
    SharedMoodState,
    VocabularyItem,
)


class LearningRepository(ABC):
    """Capability set of the store holding vocabulary, cycles and progress.

    Implementations return detached domain objects; mutating them has no
    effect until they are passed back to a write method.
    """

    # Vocabulary

    @abstractmethod
    def list_vocabulary(
        self, exclude_ids: Iterable[int] = (), limit: Optional[int] = None
    ) -> List[VocabularyItem]:
        """List vocabulary ordered by ascending difficulty, then id."""

    @abstractmethod
    def get_vocabulary(self, word_ids: Iterable[int]) -> List[VocabularyItem]:
        """Get vocabulary items in the order of the given ids, skipping unknown ids."""

    @abstractmethod
    def find_vocabulary_by_term(self, term: str) -> Optional[VocabularyItem]:
        """Get a vocabulary item by its source term."""

    @abstractmethod
    def add_vocabulary(
        self, term: str, translations: Dict[str, str], difficulty: int
    ) -> VocabularyItem:
        """Insert a vocabulary item."""

    # Cycles

    @abstractmethod
    def get_active_cycle(self, pairing_key: str) -> Optional[Cycle]:
        """Get the active cycle of a pairing key."""

    @abstractmethod
    def get_active_cycles(self, pairing_key: str) -> List[Cycle]:
        """Get every cycle of a pairing key still flagged active."""

    @abstractmethod
    def last_cycle_number(self, pairing_key: str) -> int:
        """Get the highest sequence number used by a pairing key, 0 if none."""

    @abstractmethod
    def recent_cycle_word_ids(self, pairing_key: str, cycles: int) -> Set[int]:
        """Get the word ids assigned to the key's most recent cycles."""

    @abstractmethod
    def create_cycle(
        self,
        pairing_key: str,
        sequence_number: int,
        start_date: date,
        end_date: date,
        word_ids: List[int],
    ) -> Cycle:
        """Create an active cycle with its word assignments.

        Raises CycleConflictError when the key already has an active cycle.
        """

    @abstractmethod
    def deactivate_cycle(self, cycle_id: int) -> None:
        """Flag a cycle inactive."""

    # Progress

    @abstractmethod
    def get_progress(
        self, learner_id: str, cycle_id: int, word_ids: Optional[Iterable[int]] = None
    ) -> List[ProgressRecord]:
        """Get a learner's progress records within a cycle."""

    @abstractmethod
    def upsert_progress(self, record: ProgressRecord) -> ProgressRecord:
        """Insert the record or update the one with the same (learner, word, cycle)."""

    @abstractmethod
    def delete_progress(self, learner_id: str, cycle_id: Optional[int] = None) -> int:
        """Delete a learner's progress records and return how many were removed."""

    @abstractmethod
    def add_review_event(self, event: ReviewEvent) -> None:
        """Append a review to the log."""

    @abstractmethod
    def get_review_events(
        self, learner_id: str, cycle_id: Optional[int] = None
    ) -> List[ReviewEvent]:
        """Get a learner's review log in insertion order."""

    # Daily statistics

    @abstractmethod
    def get_daily_stat(self, learner_id: str, day: date) -> Optional[DailyStat]:
        """Get a learner's statistics for one day."""

    @abstractmethod
    def save_daily_stat(self, stat: DailyStat) -> DailyStat:
        """Insert or replace a learner's statistics for one day."""

    @abstractmethod
    def list_daily_stats(
        self, learner_id: str, since: Optional[date] = None
    ) -> List[DailyStat]:
        """List a learner's daily statistics ordered by date."""

    # Shared mood

    @abstractmethod
    def get_mood_state(self, pairing_key: str) -> Optional[SharedMoodState]:
        """Get the shared mood record of a pairing key."""

    @abstractmethod
    def create_mood_state(self, state: SharedMoodState) -> bool:
        """Create the shared mood record; return False when it already exists."""

    @abstractmethod
    def save_mood_state(self, state: SharedMoodState) -> SharedMoodState:
        """Update the shared mood record."""
