"""Building and finishing learning sessions."""
import logging
import random
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from lexicycle.clock import Clock, utc_today
from lexicycle.errors import LexicycleError
from lexicycle.models.domain import (
    Activity,
    ActivityResult,
    AdaptedWord,
    CommitReport,
    VocabularyItem,
)
from lexicycle.monitoring import sessions_started
from lexicycle.repositories.base import LearningRepository
from lexicycle.services.activity_sequencer import ActivitySequencer, incorrect_options
from lexicycle.services.cycle_service import CycleManager, pairing_key
from lexicycle.services.due_selector import DueSelector
from lexicycle.services.mood_service import MoodService
from lexicycle.services.progress_service import ProgressAggregator
from lexicycle.services.scheduler import clamp_quality

logger = logging.getLogger(__name__)


@dataclass
class LearningSession:
    """State of one learner's pass through a planned list of activities."""
    learner_id: str
    partner_id: Optional[str]
    pairing_key: str
    cycle_id: int
    words: List[AdaptedWord]
    activities: List[Activity]
    is_practice: bool = False  # nothing was due, all cycle words were loaded
    position: int = 0
    results: List[ActivityResult] = field(default_factory=list)

    @property
    def current(self) -> Optional[Activity]:
        """The activity to present next, None once the plan is done."""
        if self.position >= len(self.activities):
            return None
        return self.activities[self.position]

    @property
    def remaining(self) -> int:
        return len(self.activities) - self.position

    @property
    def is_complete(self) -> bool:
        return self.position >= len(self.activities)

    def record(self, quality) -> ActivityResult:
        """Store the quality of the current activity and move on."""
        activity = self.current
        if activity is None:
            raise LexicycleError("Session has no activity left to answer")
        result = ActivityResult(word_id=activity.word_id, quality=clamp_quality(quality))
        self.results.append(result)
        self.position += 1
        return result


def adapt_word(item: VocabularyItem, language: str, repetitions: int = 0) -> AdaptedWord:
    """Present a vocabulary item in the learner's target language."""
    term = item.translation_for(language)
    if term is None:
        logger.warning(f"Word {item.id} has no '{language}' translation, using the source term")
        term = item.term
    return AdaptedWord(id=item.id, term=term, translation=item.term, mastery_repetitions=repetitions)


class SessionService:
    """Plans sessions from the active cycle and commits their outcome."""

    def __init__(
        self,
        repository: LearningRepository,
        cycles: Optional[CycleManager] = None,
        selector: Optional[DueSelector] = None,
        sequencer: Optional[ActivitySequencer] = None,
        progress: Optional[ProgressAggregator] = None,
        mood: Optional[MoodService] = None,
        clock: Clock = utc_today,
    ):
        """Initialize the service with a repository and optional collaborators."""
        self.repository = repository
        self.clock = clock
        self.cycles = cycles or CycleManager(repository, clock=clock)
        self.selector = selector or DueSelector()
        self.sequencer = sequencer or ActivitySequencer()
        self.progress = progress or ProgressAggregator(repository, clock=clock)
        self.mood = mood or MoodService(
            repository, progress=self.progress, clock=clock, cycles=self.cycles
        )

    def start_session(
        self,
        learner_id: str,
        language: str,
        partner_id: Optional[str] = None,
        today: Optional[date] = None,
        supports_pronunciation: bool = False,
    ) -> LearningSession:
        """Plan a session over the due words of the active cycle."""
        today = today or self.clock()
        key = pairing_key(learner_id, partner_id)
        info = self.cycles.ensure_cycle(key, today)
        cycle_words = self.cycles.get_cycle_words(info.cycle)
        progress = self.repository.get_progress(learner_id, info.cycle.id, [w.id for w in cycle_words])

        due = self.selector.select(cycle_words, progress, today)
        is_practice = not due
        if is_practice:
            # Nothing due: practice the whole cycle
            logger.info(f"No words due for learner {learner_id}, loading all cycle words for practice")
            due = cycle_words

        repetitions = {record.word_id: record.repetitions for record in progress}
        words = [adapt_word(item, language, repetitions.get(item.id, 0)) for item in due]
        activities = self.sequencer.build_session(words, supports_pronunciation)
        sessions_started.labels(kind="practice" if is_practice else "review").inc()

        return LearningSession(
            learner_id=learner_id,
            partner_id=partner_id,
            pairing_key=key,
            cycle_id=info.cycle.id,
            words=words,
            activities=activities,
            is_practice=is_practice,
        )

    def options_for(
        self, session: LearningSession, activity: Activity, rng: Optional[random.Random] = None
    ) -> List[str]:
        """Get distractor translations for a multiple choice activity."""
        word = next(w for w in session.words if w.id == activity.word_id)
        count = self.sequencer.config.distractor_count
        return incorrect_options(word, session.words, count, rng or self.sequencer.rng)

    def finish(self, session: LearningSession, today: Optional[date] = None) -> CommitReport:
        """Commit the answered activities and refresh the shared mood."""
        today = today or self.clock()
        if not session.is_complete:
            logger.info(
                f"Learner {session.learner_id} left after {session.position} of "
                f"{len(session.activities)} activities, committing partial results"
            )
        report = self.progress.commit_session(
            session.learner_id, session.cycle_id, session.results, today
        )
        if report.committed:
            try:
                self.mood.refresh(session.learner_id, session.partner_id, today)
            except Exception as e:
                logger.error(f"Error refreshing mood of {session.pairing_key}: {e}")
        return report
