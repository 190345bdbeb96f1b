"""SQLAlchemy-backed repository."""
import logging
from datetime import date
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import and_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from lexicycle.errors import CycleConflictError, RepositoryError
from lexicycle.models import models
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


def _to_item(row: models.VocabularyWord) -> VocabularyItem:
    return VocabularyItem(
        id=row.id,
        term=row.term,
        translations=dict(row.translations or {}),
        difficulty=row.difficulty,
    )


def _to_cycle(row: models.LearningCycle) -> Cycle:
    return Cycle(
        id=row.id,
        pairing_key=row.pairing_key,
        sequence_number=row.cycle_number,
        start_date=row.start_date,
        end_date=row.end_date,
        active=row.is_active,
        assignments=tuple(
            CycleWordAssignment(cycle_id=row.id, word_id=cw.word_id, position=cw.position)
            for cw in row.cycle_words
        ),
    )


def _to_progress(row: models.UserProgress) -> ProgressRecord:
    return ProgressRecord(
        learner_id=row.learner_id,
        word_id=row.word_id,
        cycle_id=row.cycle_id,
        ease=row.ease_factor,
        interval=row.interval,
        repetitions=row.repetitions,
        next_due_date=row.next_review_date,
        last_reviewed_at=row.last_reviewed_at,
        last_quality=row.quality_score,
        times_reviewed=row.times_reviewed,
    )


def _to_stat(row: models.DailyStat) -> DailyStat:
    return DailyStat(
        learner_id=row.learner_id,
        date=row.date,
        words_reviewed=row.words_reviewed,
        perfect_answers=row.perfect_answers,
        goal_met=row.completed_daily_goal,
    )


def _to_mood(row: models.MoodState) -> SharedMoodState:
    return SharedMoodState(
        pairing_key=row.pairing_key,
        happiness=row.happiness_level,
        health=row.health_level,
        current_streak_days=row.current_streak_days,
        longest_streak_days=row.longest_streak_days,
        updated_at=row.updated_at,
    )


class SqlRepository(LearningRepository):
    """Repository over an SQLAlchemy session."""

    def __init__(self, db: Session):
        """Initialize the repository with a database session."""
        self.db = db

    def _commit(self, operation: str) -> None:
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error during {operation}: {e}")
            raise RepositoryError(f"{operation} failed") from e

    # Vocabulary

    def list_vocabulary(
        self, exclude_ids: Iterable[int] = (), limit: Optional[int] = None
    ) -> List[VocabularyItem]:
        query = self.db.query(models.VocabularyWord)
        excluded = list(exclude_ids)
        if excluded:
            query = query.filter(~models.VocabularyWord.id.in_(excluded))
        query = query.order_by(models.VocabularyWord.difficulty, models.VocabularyWord.id)
        if limit is not None:
            query = query.limit(limit)
        return [_to_item(row) for row in query.all()]

    def get_vocabulary(self, word_ids: Iterable[int]) -> List[VocabularyItem]:
        ids = list(word_ids)
        if not ids:
            return []
        rows = (
            self.db.query(models.VocabularyWord)
            .filter(models.VocabularyWord.id.in_(ids))
            .all()
        )
        by_id = {row.id: _to_item(row) for row in rows}
        return [by_id[i] for i in ids if i in by_id]

    def find_vocabulary_by_term(self, term: str) -> Optional[VocabularyItem]:
        row = (
            self.db.query(models.VocabularyWord)
            .filter(models.VocabularyWord.term == term)
            .first()
        )
        return _to_item(row) if row else None

    def add_vocabulary(
        self, term: str, translations: Dict[str, str], difficulty: int
    ) -> VocabularyItem:
        row = models.VocabularyWord(
            term=term, translations=dict(translations), difficulty=difficulty
        )
        self.db.add(row)
        try:
            self._commit("add_vocabulary")
        except IntegrityError as e:
            raise RepositoryError(f"Vocabulary term {term!r} already exists") from e
        self.db.refresh(row)
        return _to_item(row)

    # Cycles

    def _active_cycle_rows(self, pairing_key: str) -> List[models.LearningCycle]:
        return (
            self.db.query(models.LearningCycle)
            .filter(
                and_(
                    models.LearningCycle.pairing_key == pairing_key,
                    models.LearningCycle.is_active == True,  # noqa: E712
                )
            )
            .order_by(models.LearningCycle.cycle_number)
            .all()
        )

    def get_active_cycle(self, pairing_key: str) -> Optional[Cycle]:
        rows = self._active_cycle_rows(pairing_key)
        return _to_cycle(rows[-1]) if rows else None

    def get_active_cycles(self, pairing_key: str) -> List[Cycle]:
        return [_to_cycle(row) for row in self._active_cycle_rows(pairing_key)]

    def last_cycle_number(self, pairing_key: str) -> int:
        row = (
            self.db.query(models.LearningCycle)
            .filter(models.LearningCycle.pairing_key == pairing_key)
            .order_by(models.LearningCycle.cycle_number.desc())
            .first()
        )
        return row.cycle_number if row else 0

    def recent_cycle_word_ids(self, pairing_key: str, cycles: int) -> Set[int]:
        if cycles <= 0:
            return set()
        recent_ids = [
            row.id
            for row in self.db.query(models.LearningCycle)
            .filter(models.LearningCycle.pairing_key == pairing_key)
            .order_by(models.LearningCycle.cycle_number.desc())
            .limit(cycles)
            .all()
        ]
        if not recent_ids:
            return set()
        rows = (
            self.db.query(models.CycleWord.word_id)
            .filter(models.CycleWord.cycle_id.in_(recent_ids))
            .all()
        )
        return {row.word_id for row in rows}

    def create_cycle(
        self,
        pairing_key: str,
        sequence_number: int,
        start_date: date,
        end_date: date,
        word_ids: List[int],
    ) -> Cycle:
        cycle = models.LearningCycle(
            pairing_key=pairing_key,
            cycle_number=sequence_number,
            start_date=start_date,
            end_date=end_date,
            is_active=True,
        )
        cycle.cycle_words = [
            models.CycleWord(word_id=word_id, position=index + 1)
            for index, word_id in enumerate(word_ids)
        ]
        self.db.add(cycle)
        try:
            self._commit("create_cycle")
        except IntegrityError as e:
            logger.debug(f"Store refused cycle {sequence_number} for {pairing_key}: {e}")
            raise CycleConflictError(pairing_key) from e
        self.db.refresh(cycle)
        return _to_cycle(cycle)

    def deactivate_cycle(self, cycle_id: int) -> None:
        cycle = (
            self.db.query(models.LearningCycle)
            .filter(models.LearningCycle.id == cycle_id)
            .first()
        )
        if not cycle:
            raise ValueError(f"Cycle {cycle_id} not found")
        cycle.is_active = False
        self._commit("deactivate_cycle")

    # Progress

    def _progress_row(self, learner_id: str, word_id: int, cycle_id: int) -> Optional[models.UserProgress]:
        return (
            self.db.query(models.UserProgress)
            .filter(
                and_(
                    models.UserProgress.learner_id == learner_id,
                    models.UserProgress.word_id == word_id,
                    models.UserProgress.cycle_id == cycle_id,
                )
            )
            .first()
        )

    def get_progress(
        self, learner_id: str, cycle_id: int, word_ids: Optional[Iterable[int]] = None
    ) -> List[ProgressRecord]:
        query = self.db.query(models.UserProgress).filter(
            and_(
                models.UserProgress.learner_id == learner_id,
                models.UserProgress.cycle_id == cycle_id,
            )
        )
        if word_ids is not None:
            query = query.filter(models.UserProgress.word_id.in_(list(word_ids)))
        return [_to_progress(row) for row in query.all()]

    def upsert_progress(self, record: ProgressRecord) -> ProgressRecord:
        row = self._progress_row(record.learner_id, record.word_id, record.cycle_id)
        if row is None:
            row = models.UserProgress(
                learner_id=record.learner_id,
                word_id=record.word_id,
                cycle_id=record.cycle_id,
            )
            self.db.add(row)
        row.ease_factor = record.ease
        row.interval = record.interval
        row.repetitions = record.repetitions
        row.next_review_date = record.next_due_date
        row.last_reviewed_at = record.last_reviewed_at
        row.quality_score = record.last_quality
        row.times_reviewed = record.times_reviewed
        try:
            self._commit("upsert_progress")
        except IntegrityError as e:
            raise RepositoryError(f"Progress for word {record.word_id} could not be saved") from e
        self.db.refresh(row)
        return _to_progress(row)

    def delete_progress(self, learner_id: str, cycle_id: Optional[int] = None) -> int:
        query = self.db.query(models.UserProgress).filter(
            models.UserProgress.learner_id == learner_id
        )
        if cycle_id is not None:
            query = query.filter(models.UserProgress.cycle_id == cycle_id)
        deleted = query.delete(synchronize_session=False)
        self._commit("delete_progress")
        return deleted

    def add_review_event(self, event: ReviewEvent) -> None:
        self.db.add(
            models.ReviewEvent(
                learner_id=event.learner_id,
                word_id=event.word_id,
                cycle_id=event.cycle_id,
                quality_score=event.quality,
                was_correct=event.was_correct,
                reviewed_at=event.reviewed_at,
            )
        )
        self._commit("add_review_event")

    def get_review_events(
        self, learner_id: str, cycle_id: Optional[int] = None
    ) -> List[ReviewEvent]:
        query = self.db.query(models.ReviewEvent).filter(
            models.ReviewEvent.learner_id == learner_id
        )
        if cycle_id is not None:
            query = query.filter(models.ReviewEvent.cycle_id == cycle_id)
        return [
            ReviewEvent(
                learner_id=row.learner_id,
                word_id=row.word_id,
                cycle_id=row.cycle_id,
                quality=row.quality_score,
                was_correct=row.was_correct,
                reviewed_at=row.reviewed_at,
            )
            for row in query.order_by(models.ReviewEvent.id).all()
        ]

    # Daily statistics

    def _stat_row(self, learner_id: str, day: date) -> Optional[models.DailyStat]:
        return (
            self.db.query(models.DailyStat)
            .filter(
                and_(
                    models.DailyStat.learner_id == learner_id,
                    models.DailyStat.date == day,
                )
            )
            .first()
        )

    def get_daily_stat(self, learner_id: str, day: date) -> Optional[DailyStat]:
        row = self._stat_row(learner_id, day)
        return _to_stat(row) if row else None

    def save_daily_stat(self, stat: DailyStat) -> DailyStat:
        row = self._stat_row(stat.learner_id, stat.date)
        if row is None:
            row = models.DailyStat(learner_id=stat.learner_id, date=stat.date)
            self.db.add(row)
        row.words_reviewed = stat.words_reviewed
        row.perfect_answers = stat.perfect_answers
        row.completed_daily_goal = stat.goal_met
        try:
            self._commit("save_daily_stat")
        except IntegrityError as e:
            raise RepositoryError(f"Daily stat for {stat.learner_id} on {stat.date} could not be saved") from e
        self.db.refresh(row)
        return _to_stat(row)

    def list_daily_stats(
        self, learner_id: str, since: Optional[date] = None
    ) -> List[DailyStat]:
        query = self.db.query(models.DailyStat).filter(
            models.DailyStat.learner_id == learner_id
        )
        if since is not None:
            query = query.filter(models.DailyStat.date >= since)
        return [_to_stat(row) for row in query.order_by(models.DailyStat.date).all()]

    # Shared mood

    def _mood_row(self, pairing_key: str) -> Optional[models.MoodState]:
        return (
            self.db.query(models.MoodState)
            .filter(models.MoodState.pairing_key == pairing_key)
            .first()
        )

    def get_mood_state(self, pairing_key: str) -> Optional[SharedMoodState]:
        row = self._mood_row(pairing_key)
        return _to_mood(row) if row else None

    def create_mood_state(self, state: SharedMoodState) -> bool:
        if self._mood_row(state.pairing_key) is not None:
            return False
        self.db.add(
            models.MoodState(
                pairing_key=state.pairing_key,
                happiness_level=state.happiness,
                health_level=state.health,
                current_streak_days=state.current_streak_days,
                longest_streak_days=state.longest_streak_days,
            )
        )
        try:
            self._commit("create_mood_state")
        except IntegrityError:
            # Created concurrently by the partner
            return False
        return True

    def save_mood_state(self, state: SharedMoodState) -> SharedMoodState:
        row = self._mood_row(state.pairing_key)
        if row is None:
            raise ValueError(f"No mood state for pairing key {state.pairing_key}")
        row.happiness_level = state.happiness
        row.health_level = state.health
        row.current_streak_days = state.current_streak_days
        row.longest_streak_days = state.longest_streak_days
        self._commit("save_mood_state")
        self.db.refresh(row)
        return _to_mood(row)
