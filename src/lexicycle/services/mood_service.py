"""Happiness scoring derived from learning statistics."""
import logging
from dataclasses import replace
from datetime import date
from typing import Optional

from lexicycle.clock import Clock, utc_today
from lexicycle.config import MoodSettings, settings
from lexicycle.models.domain import LearnerStats, SharedMoodState
from lexicycle.monitoring import mood_scores
from lexicycle.repositories.base import LearningRepository
from lexicycle.services.cycle_service import CycleManager, pairing_key
from lexicycle.services.progress_service import ProgressAggregator, longest_streak
from lexicycle.services.scheduler import round_half_up

logger = logging.getLogger(__name__)


def _daily_ratio(stats: LearnerStats) -> float:
    words = max(0, stats.words_today)
    if stats.target_words <= 0:
        # Nothing to do today
        return 1.0
    return min(1.0, words / stats.target_words)


class MoodScorer:
    """Pure scoring of the shared mood, 0..100."""

    def __init__(self, config: Optional[MoodSettings] = None):
        self.config = config or settings.mood

    def score(self, self_stats: LearnerStats, partner_stats: Optional[LearnerStats] = None) -> int:
        """Score one learner alone, or a pair of learners together."""
        if partner_stats is None:
            happiness = self._solo(self_stats)
        else:
            happiness = self._paired(self_stats, partner_stats)
        result = max(0, min(100, round_half_up(happiness)))
        mood_scores.labels(mode="solo" if partner_stats is None else "paired").observe(result)
        return result

    def _solo(self, stats: LearnerStats) -> float:
        c = self.config
        streak = max(0, stats.streak_days)
        happiness = c.solo_daily_points * _daily_ratio(stats)
        happiness += min(c.solo_streak_max_points, streak / 7 * c.solo_streak_points_per_week)
        if max(0, stats.words_today) >= stats.target_words * c.solo_consistency_ratio:
            happiness += c.solo_consistency_points
        return happiness

    def _paired(self, learner: LearnerStats, partner: LearnerStats) -> float:
        c = self.config
        happiness = c.paired_daily_points_each * (_daily_ratio(learner) + _daily_ratio(partner))
        # The weaker partner's streak counts
        shared_streak = max(0, min(learner.streak_days, partner.streak_days))
        happiness += min(c.paired_streak_max_points, shared_streak / 7 * c.paired_streak_points_per_week)
        difference = abs(max(0, learner.words_today) - max(0, partner.words_today))
        if difference <= c.paired_sync_max_difference:
            happiness += c.paired_sync_points
        return happiness

    def emotion(self, happiness: int) -> str:
        """Get the emotion to render for a happiness value."""
        if happiness >= self.config.happy_threshold:
            return "happy"
        if happiness >= self.config.neutral_threshold:
            return "neutral"
        if happiness >= self.config.sad_threshold:
            return "sad"
        return "angry"

    def description(self, happiness: int, solo: bool) -> str:
        """Describe the mood for the dashboard."""
        emotion = self.emotion(happiness)
        if emotion == "happy":
            return (
                "Your cat is thrilled! You're doing amazing!" if solo
                else "Your cat is thrilled! Both of you are doing great!"
            )
        if emotion == "neutral":
            return (
                "Your cat is content. Keep up the good work!" if solo
                else "Your cat is content. Both partners are making progress!"
            )
        if emotion == "sad":
            return (
                "Your cat is getting worried. Time to study!" if solo
                else "Your cat is getting worried. Time to study together!"
            )
        return (
            "Your cat is very upset! Time to catch up on learning!" if solo
            else "Your cat is very upset! Both partners need to catch up!"
        )

    def target_happiness(self, target_words: int, streak_days: int, solo: bool) -> int:
        """Happiness reached if today's goal is met and the streak goes on."""
        goal = LearnerStats(
            words_today=target_words, target_words=target_words, streak_days=streak_days + 1
        )
        return self.score(goal, None if solo else replace(goal))

    @staticmethod
    def encouragement(words_completed: int, target_words: int, solo: bool) -> str:
        """Get a motivation message for today's progress."""
        progress = 1.0 if target_words <= 0 else words_completed / target_words
        if progress >= 1:
            return "Goal completed! Your cat is proud of you!" if solo else "Daily goal reached! Your cat is purring with joy!"
        if progress >= 0.75:
            return "Almost there! Just a bit more!" if solo else "Both of you are so close! Keep going!"
        if progress >= 0.5:
            return "Halfway there! You're doing great!" if solo else "You're both making good progress!"
        if progress >= 0.25:
            return "Good start! Keep the momentum going!" if solo else "Good start team! Your cat believes in you!"
        return "Ready to start learning? Your cat is waiting!" if solo else "Ready to learn together? Your cat misses you!"


class MoodService:
    """Keeps the shared mood record of a pairing key up to date."""

    def __init__(
        self,
        repository: LearningRepository,
        progress: Optional[ProgressAggregator] = None,
        scorer: Optional[MoodScorer] = None,
        clock: Clock = utc_today,
        cycles: Optional[CycleManager] = None,
    ):
        self.repository = repository
        self.scorer = scorer or MoodScorer()
        self.progress = progress or ProgressAggregator(
            repository, clock=clock, mood_config=self.scorer.config
        )
        self.cycles = cycles or CycleManager(repository, clock=clock)
        self.clock = clock

    def current_mood(
        self, learner_id: str, partner_id: Optional[str] = None, today: Optional[date] = None
    ) -> int:
        """Score the mood from stored statistics without persisting it."""
        today = today or self.clock()
        target = self.scorer.config.target_words_per_day
        learner = self.progress.learner_stats(learner_id, today, target)
        partner = None
        if partner_id and partner_id != learner_id:
            partner = self.progress.learner_stats(partner_id, today, target)
        return self.scorer.score(learner, partner)

    def refresh(
        self, learner_id: str, partner_id: Optional[str] = None, today: Optional[date] = None
    ) -> SharedMoodState:
        """Recompute the mood and streaks and store them on the shared record."""
        today = today or self.clock()
        key = pairing_key(learner_id, partner_id)
        state = self.repository.get_mood_state(key)
        if state is None:
            self.cycles.ensure_mood_state(key)
            state = self.repository.get_mood_state(key)

        happiness = self.current_mood(learner_id, partner_id, today)
        stats = self.repository.list_daily_stats(learner_id)
        streak = self.progress.current_streak(learner_id, today)
        longest = longest_streak(stats)
        if partner_id and partner_id != learner_id:
            streak = min(streak, self.progress.current_streak(partner_id, today))
            longest = min(longest, longest_streak(self.repository.list_daily_stats(partner_id)))

        state = replace(
            state,
            happiness=happiness,
            current_streak_days=streak,
            longest_streak_days=max(state.longest_streak_days, longest, streak),
        )
        logger.info(f"Mood of {key} is now {happiness} (streak {streak})")
        return self.repository.save_mood_state(state)
