"""Folding session results into progress records and daily statistics."""
import logging
from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from lexicycle.clock import Clock, utc_now, utc_today
from lexicycle.config import MoodSettings, SessionSettings, settings
from lexicycle.models.domain import (
    ActivityResult,
    CommitReport,
    DailyStat,
    LearnerStats,
    ProgressRecord,
    ReviewEvent,
)
from lexicycle.monitoring import progress_failures, progress_upserts, sessions_committed
from lexicycle.repositories.base import LearningRepository
from lexicycle.services.scheduler import (
    MAX_QUALITY,
    IntervalScheduler,
    clamp_quality,
    round_half_up,
)

logger = logging.getLogger(__name__)


def streak_from_stats(stats: Iterable[DailyStat], today: date) -> int:
    """Count consecutive goal-met days ending today.

    When today's goal is not met yet the streak may still end yesterday.
    Any calendar day without a met goal breaks it.
    """
    met_days = {stat.date for stat in stats if stat.goal_met}
    day = today if today in met_days else today - timedelta(days=1)
    streak = 0
    while day in met_days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def longest_streak(stats: Iterable[DailyStat]) -> int:
    """Get the longest run of consecutive goal-met days."""
    met_days = sorted({stat.date for stat in stats if stat.goal_met})
    longest = current = 0
    previous: Optional[date] = None
    for day in met_days:
        current = current + 1 if previous is not None and day - previous == timedelta(days=1) else 1
        longest = max(longest, current)
        previous = day
    return longest


class ProgressAggregator:
    """Commits session results through the interval scheduler."""

    def __init__(
        self,
        repository: LearningRepository,
        scheduler: Optional[IntervalScheduler] = None,
        config: Optional[SessionSettings] = None,
        clock: Clock = utc_today,
        mood_config: Optional[MoodSettings] = None,
    ):
        """Initialize the aggregator with a repository."""
        self.repository = repository
        self.scheduler = scheduler or IntervalScheduler()
        self.config = config or settings.session
        self.mood_config = mood_config or settings.mood
        self.clock = clock

    @staticmethod
    def group_qualities(results: Iterable[ActivityResult]) -> Dict[int, List[int]]:
        """Group clamped activity qualities by word, in first-seen order."""
        grouped: Dict[int, List[int]] = defaultdict(list)
        for result in results:
            grouped[result.word_id].append(clamp_quality(result.quality))
        return grouped

    def _commit_word(
        self, learner_id: str, cycle_id: int, word_id: int, quality: int, today: date
    ) -> ProgressRecord:
        existing = self.repository.get_progress(learner_id, cycle_id, [word_id])
        prior = existing[0] if existing else None
        defaults = self.scheduler.config
        result = self.scheduler.advance(
            quality,
            prior.ease if prior else defaults.default_ease,
            prior.interval if prior else defaults.default_interval,
            prior.repetitions if prior else 0,
            today,
        )
        now = utc_now()
        record = self.repository.upsert_progress(
            ProgressRecord(
                learner_id=learner_id,
                word_id=word_id,
                cycle_id=cycle_id,
                ease=result.ease,
                interval=result.interval,
                repetitions=result.repetitions,
                next_due_date=result.next_due_date,
                last_reviewed_at=now,
                last_quality=quality,
                times_reviewed=(prior.times_reviewed if prior else 0) + 1,
            )
        )
        try:
            self.repository.add_review_event(
                ReviewEvent(
                    learner_id=learner_id,
                    word_id=word_id,
                    cycle_id=cycle_id,
                    quality=quality,
                    was_correct=quality >= defaults.passing_quality,
                    reviewed_at=now,
                )
            )
        except Exception as e:
            # The progress update already stands
            logger.error(f"Error logging review of word {word_id} for learner {learner_id}: {e}")
        return record

    def commit_session(
        self,
        learner_id: str,
        cycle_id: int,
        results: Iterable[ActivityResult],
        today: Optional[date] = None,
    ) -> CommitReport:
        """Apply one scheduling update per reviewed word and roll the daily statistics."""
        today = today or self.clock()
        grouped = self.group_qualities(results)
        report = CommitReport()

        for word_id, qualities in grouped.items():
            quality = round_half_up(sum(qualities) / len(qualities))
            try:
                self._commit_word(learner_id, cycle_id, word_id, quality, today)
            except Exception as e:
                # Isolated failure: the other words still commit
                logger.error(f"Error committing word {word_id} for learner {learner_id}: {e}")
                progress_failures.inc()
                report.failed[word_id] = str(e)
                continue
            progress_upserts.inc()
            report.committed.append(word_id)
            # Only committed words count towards perfect answers
            report.perfect_answers += sum(1 for q in qualities if q == MAX_QUALITY)

        if report.committed:
            try:
                report.daily_stat = self.update_daily_stat(
                    learner_id, len(report.committed), report.perfect_answers, today
                )
            except Exception as e:
                logger.error(f"Error updating daily stats for learner {learner_id}: {e}")

        sessions_committed.labels(status=report.status.value).inc()
        logger.info(
            f"Committed session for learner {learner_id} in cycle {cycle_id}: "
            f"{len(report.committed)} words, {len(report.failed)} failures"
        )
        return report

    def update_daily_stat(
        self, learner_id: str, words_reviewed: int, perfect_answers: int, today: Optional[date] = None
    ) -> DailyStat:
        """Add a session's counts to the learner's statistics of the day."""
        today = today or self.clock()
        stat = self.repository.get_daily_stat(learner_id, today) or DailyStat(
            learner_id=learner_id, date=today
        )
        stat.words_reviewed += words_reviewed
        stat.perfect_answers += perfect_answers
        stat.goal_met = stat.words_reviewed >= self.config.daily_goal_words
        return self.repository.save_daily_stat(stat)

    def current_streak(self, learner_id: str, today: Optional[date] = None) -> int:
        """Get the learner's streak of consecutive goal-met days."""
        today = today or self.clock()
        return streak_from_stats(self.repository.list_daily_stats(learner_id), today)

    def learner_stats(
        self, learner_id: str, today: Optional[date] = None, target_words: Optional[int] = None
    ) -> LearnerStats:
        """Get the statistics the mood scorer needs."""
        today = today or self.clock()
        if target_words is None:
            target_words = self.mood_config.target_words_per_day
        stats = self.repository.list_daily_stats(learner_id)
        todays = next((stat for stat in stats if stat.date == today), None)
        return LearnerStats(
            words_today=todays.words_reviewed if todays else 0,
            target_words=target_words,
            streak_days=streak_from_stats(stats, today),
        )

    def reset_progress(self, learner_id: str, cycle_id: Optional[int] = None) -> int:
        """Delete a learner's progress records, in one cycle or everywhere."""
        deleted = self.repository.delete_progress(learner_id, cycle_id)
        logger.info(f"Reset {deleted} progress records for learner {learner_id}")
        return deleted
