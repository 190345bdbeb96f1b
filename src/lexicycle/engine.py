"""Entry point wiring the engine's services together."""
import logging
import random
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from lexicycle.clock import Clock, utc_today
from lexicycle.config import Settings, settings as default_settings
from lexicycle.models.domain import CommitReport, CycleInfo, CycleProgress, SharedMoodState
from lexicycle.monitoring import start_monitoring
from lexicycle.repositories.base import LearningRepository
from lexicycle.repositories.sql import SqlRepository
from lexicycle.services.activity_sequencer import ActivitySequencer
from lexicycle.services.cycle_service import CycleManager, pairing_key
from lexicycle.services.due_selector import DueSelector
from lexicycle.services.mood_service import MoodScorer, MoodService
from lexicycle.services.progress_service import ProgressAggregator
from lexicycle.services.scheduler import IntervalScheduler
from lexicycle.services.session_service import LearningSession, SessionService
from lexicycle.services.vocabulary_service import VocabularyService

logger = logging.getLogger(__name__)


class LearningEngine:
    """Facade over cycles, sessions, progress and mood for one store."""

    def __init__(
        self,
        repository: LearningRepository,
        config: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
        clock: Clock = utc_today,
    ):
        """Initialize every service on top of the repository."""
        self.repository = repository
        self.settings = config or default_settings
        self.clock = clock
        self.scheduler = IntervalScheduler(self.settings.scheduling)
        self.cycles = CycleManager(repository, self.settings.cycle, clock=clock)
        self.progress = ProgressAggregator(
            repository,
            self.scheduler,
            self.settings.session,
            clock=clock,
            mood_config=self.settings.mood,
        )
        self.scorer = MoodScorer(self.settings.mood)
        self.mood = MoodService(
            repository, self.progress, self.scorer, clock=clock, cycles=self.cycles
        )
        self.sessions = SessionService(
            repository,
            cycles=self.cycles,
            selector=DueSelector(),
            sequencer=ActivitySequencer(self.settings.session, rng),
            progress=self.progress,
            mood=self.mood,
            clock=clock,
        )
        self.vocabulary = VocabularyService(repository)

    @classmethod
    def from_database(cls, db: Session, **kwargs) -> "LearningEngine":
        """Create an engine over an SQLAlchemy session."""
        return cls(SqlRepository(db), **kwargs)

    def start_monitoring(self) -> None:
        """Expose Prometheus metrics if enabled in the settings."""
        if self.settings.monitoring.enabled:
            start_monitoring(self.settings.monitoring.port)
            logger.info(f"Metrics exposed on port {self.settings.monitoring.port}")

    def cycle_for(
        self, learner_id: str, partner_id: Optional[str] = None, today: Optional[date] = None
    ) -> CycleInfo:
        """Get the learner's active cycle, rotating it when it expired."""
        return self.cycles.ensure_cycle(pairing_key(learner_id, partner_id), today)

    def cycle_progress(
        self, learner_id: str, partner_id: Optional[str] = None, today: Optional[date] = None
    ) -> CycleProgress:
        return self.cycles.cycle_progress(learner_id, partner_id, today)

    def reset_cycle(
        self, learner_id: str, partner_id: Optional[str] = None, today: Optional[date] = None
    ) -> CycleInfo:
        """Start a new cycle regardless of the current one's expiry."""
        return self.cycles.force_rotate(pairing_key(learner_id, partner_id), today)

    def start_session(
        self,
        learner_id: str,
        language: str,
        partner_id: Optional[str] = None,
        today: Optional[date] = None,
        supports_pronunciation: bool = False,
    ) -> LearningSession:
        return self.sessions.start_session(
            learner_id, language, partner_id, today, supports_pronunciation
        )

    def finish_session(self, session: LearningSession, today: Optional[date] = None) -> CommitReport:
        return self.sessions.finish(session, today)

    def mood_for(
        self, learner_id: str, partner_id: Optional[str] = None, today: Optional[date] = None
    ) -> int:
        """Get the current happiness of a learner or a pair."""
        return self.mood.current_mood(learner_id, partner_id, today)

    def refresh_mood(
        self, learner_id: str, partner_id: Optional[str] = None, today: Optional[date] = None
    ) -> SharedMoodState:
        return self.mood.refresh(learner_id, partner_id, today)

    def reset_progress(self, learner_id: str, cycle_id: Optional[int] = None) -> int:
        return self.progress.reset_progress(learner_id, cycle_id)
