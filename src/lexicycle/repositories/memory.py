"""Thread-safe in-memory repository."""
import itertools
import logging
import threading
from dataclasses import replace
from datetime import UTC, date, datetime
from typing import Dict, Iterable, List, Optional, Set, Tuple

from lexicycle.errors import CycleConflictError
from lexicycle.models.domain import (
    Cycle,
    CycleWordAssignment,
    DailyStat,
    ProgressRecord,
    ReviewEvent,
    SharedMoodState,
    VocabularyItem,
)
from lexicycle.repositories.base import LearningRepository

logger = logging.getLogger(__name__)


class InMemoryRepository(LearningRepository):
    """Repository keeping everything in process memory."""

    def __init__(self, vocabulary: Iterable[VocabularyItem] = ()):
        self._lock = threading.RLock()
        self._ids = itertools.count(1)
        self._vocabulary: Dict[int, VocabularyItem] = {}
        self._cycles: Dict[int, Cycle] = {}
        self._progress: Dict[Tuple[str, int, int], ProgressRecord] = {}
        self._events: List[ReviewEvent] = []
        self._daily_stats: Dict[Tuple[str, date], DailyStat] = {}
        self._moods: Dict[str, SharedMoodState] = {}
        for item in vocabulary:
            self._vocabulary[item.id] = item

    def _next_id(self) -> int:
        return next(self._ids)

    # Vocabulary

    def list_vocabulary(
        self, exclude_ids: Iterable[int] = (), limit: Optional[int] = None
    ) -> List[VocabularyItem]:
        excluded = set(exclude_ids)
        with self._lock:
            items = sorted(
                (item for item in self._vocabulary.values() if item.id not in excluded),
                key=lambda item: (item.difficulty, item.id),
            )
        return items if limit is None else items[:limit]

    def get_vocabulary(self, word_ids: Iterable[int]) -> List[VocabularyItem]:
        with self._lock:
            return [self._vocabulary[i] for i in word_ids if i in self._vocabulary]

    def find_vocabulary_by_term(self, term: str) -> Optional[VocabularyItem]:
        with self._lock:
            return next((item for item in self._vocabulary.values() if item.term == term), None)

    def add_vocabulary(
        self, term: str, translations: Dict[str, str], difficulty: int
    ) -> VocabularyItem:
        with self._lock:
            item_id = max(self._vocabulary, default=0) + 1
            item = VocabularyItem(
                id=item_id, term=term, translations=dict(translations), difficulty=difficulty
            )
            self._vocabulary[item_id] = item
            return item

    # Cycles

    def get_active_cycle(self, pairing_key: str) -> Optional[Cycle]:
        active = self.get_active_cycles(pairing_key)
        return active[-1] if active else None

    def get_active_cycles(self, pairing_key: str) -> List[Cycle]:
        with self._lock:
            return [
                replace(cycle)
                for cycle in sorted(self._cycles.values(), key=lambda c: c.sequence_number)
                if cycle.pairing_key == pairing_key and cycle.active
            ]

    def last_cycle_number(self, pairing_key: str) -> int:
        with self._lock:
            return max(
                (c.sequence_number for c in self._cycles.values() if c.pairing_key == pairing_key),
                default=0,
            )

    def recent_cycle_word_ids(self, pairing_key: str, cycles: int) -> Set[int]:
        if cycles <= 0:
            return set()
        with self._lock:
            recent = sorted(
                (c for c in self._cycles.values() if c.pairing_key == pairing_key),
                key=lambda c: c.sequence_number,
                reverse=True,
            )[:cycles]
            return {word_id for cycle in recent for word_id in cycle.word_ids}

    def create_cycle(
        self,
        pairing_key: str,
        sequence_number: int,
        start_date: date,
        end_date: date,
        word_ids: List[int],
    ) -> Cycle:
        with self._lock:
            if any(c.pairing_key == pairing_key and c.active for c in self._cycles.values()):
                logger.debug(f"Refusing second active cycle for {pairing_key}")
                raise CycleConflictError(pairing_key)
            cycle_id = self._next_id()
            cycle = Cycle(
                id=cycle_id,
                pairing_key=pairing_key,
                sequence_number=sequence_number,
                start_date=start_date,
                end_date=end_date,
                active=True,
                assignments=tuple(
                    CycleWordAssignment(cycle_id=cycle_id, word_id=word_id, position=index + 1)
                    for index, word_id in enumerate(word_ids)
                ),
            )
            self._cycles[cycle_id] = cycle
            return replace(cycle)

    def deactivate_cycle(self, cycle_id: int) -> None:
        with self._lock:
            cycle = self._cycles.get(cycle_id)
            if cycle is None:
                raise ValueError(f"Cycle {cycle_id} not found")
            cycle.active = False

    # Progress

    def get_progress(
        self, learner_id: str, cycle_id: int, word_ids: Optional[Iterable[int]] = None
    ) -> List[ProgressRecord]:
        wanted = set(word_ids) if word_ids is not None else None
        with self._lock:
            return [
                replace(record)
                for (learner, word_id, cycle), record in self._progress.items()
                if learner == learner_id and cycle == cycle_id
                and (wanted is None or word_id in wanted)
            ]

    def upsert_progress(self, record: ProgressRecord) -> ProgressRecord:
        key = (record.learner_id, record.word_id, record.cycle_id)
        with self._lock:
            self._progress[key] = replace(record)
        return replace(record)

    def delete_progress(self, learner_id: str, cycle_id: Optional[int] = None) -> int:
        with self._lock:
            keys = [
                key for key in self._progress
                if key[0] == learner_id and (cycle_id is None or key[2] == cycle_id)
            ]
            for key in keys:
                del self._progress[key]
        return len(keys)

    def add_review_event(self, event: ReviewEvent) -> None:
        with self._lock:
            self._events.append(replace(event))

    def get_review_events(
        self, learner_id: str, cycle_id: Optional[int] = None
    ) -> List[ReviewEvent]:
        with self._lock:
            return [
                replace(event) for event in self._events
                if event.learner_id == learner_id and (cycle_id is None or event.cycle_id == cycle_id)
            ]

    # Daily statistics

    def get_daily_stat(self, learner_id: str, day: date) -> Optional[DailyStat]:
        with self._lock:
            stat = self._daily_stats.get((learner_id, day))
            return replace(stat) if stat else None

    def save_daily_stat(self, stat: DailyStat) -> DailyStat:
        with self._lock:
            self._daily_stats[(stat.learner_id, stat.date)] = replace(stat)
        return replace(stat)

    def list_daily_stats(
        self, learner_id: str, since: Optional[date] = None
    ) -> List[DailyStat]:
        with self._lock:
            return [
                replace(stat)
                for (learner, day), stat in sorted(self._daily_stats.items(), key=lambda kv: kv[0][1])
                if learner == learner_id and (since is None or day >= since)
            ]

    # Shared mood

    def get_mood_state(self, pairing_key: str) -> Optional[SharedMoodState]:
        with self._lock:
            state = self._moods.get(pairing_key)
            return replace(state) if state else None

    def create_mood_state(self, state: SharedMoodState) -> bool:
        with self._lock:
            if state.pairing_key in self._moods:
                return False
            self._moods[state.pairing_key] = replace(state, updated_at=datetime.now(UTC))
            return True

    def save_mood_state(self, state: SharedMoodState) -> SharedMoodState:
        with self._lock:
            if state.pairing_key not in self._moods:
                raise ValueError(f"No mood state for pairing key {state.pairing_key}")
            saved = replace(state, updated_at=datetime.now(UTC))
            self._moods[state.pairing_key] = saved
            return replace(saved)
