"""Tests for mood scoring."""
import random
from datetime import timedelta

import pytest

from lexicycle.config import CycleSettings, MoodSettings, Settings
from lexicycle.engine import LearningEngine
from lexicycle.models.domain import LearnerStats
from lexicycle.services.cycle_service import CycleManager, pairing_key
from lexicycle.services.mood_service import MoodScorer, MoodService
from lexicycle.services.progress_service import ProgressAggregator


@pytest.fixture
def scorer() -> MoodScorer:
    return MoodScorer()


def stats(words: int, target: int = 5, streak: int = 0) -> LearnerStats:
    return LearnerStats(words_today=words, target_words=target, streak_days=streak)


def test_solo_full_day_with_week_streak(scorer: MoodScorer) -> None:
    assert scorer.score(stats(5, 5, 7)) == 80


def test_solo_streak_bonus_is_capped(scorer: MoodScorer) -> None:
    assert scorer.score(stats(5, 5, 21)) == 100
    assert scorer.score(stats(5, 5, 100)) == 100


def test_solo_without_progress(scorer: MoodScorer) -> None:
    assert scorer.score(stats(0, 5, 0)) == 0


def test_solo_partial_progress(scorer: MoodScorer) -> None:
    # 60 * 3/5 + 10 consistency
    assert scorer.score(stats(3, 5, 0)) == 46
    # 60 * 2/5, below the consistency threshold
    assert scorer.score(stats(2, 5, 0)) == 24


def test_zero_target_counts_as_done(scorer: MoodScorer) -> None:
    assert scorer.score(stats(0, 0, 0)) == 70


def test_paired_full_days(scorer: MoodScorer) -> None:
    assert scorer.score(stats(5, 5, 14), stats(5, 5, 14)) == 95


def test_paired_uses_weaker_streak(scorer: MoodScorer) -> None:
    assert scorer.score(stats(5, 5, 14), stats(5, 5, 0)) == 85


def test_paired_sync_bonus_needs_close_counts(scorer: MoodScorer) -> None:
    assert scorer.score(stats(5), stats(2)) == 56
    assert scorer.score(stats(4), stats(2)) == 53


def test_paired_ratio_is_capped_per_learner(scorer: MoodScorer) -> None:
    assert scorer.score(stats(20), stats(0)) == 40


def test_scores_stay_in_range(scorer: MoodScorer) -> None:
    rng = random.Random(7)
    for _ in range(500):
        learner = stats(rng.randint(-5, 40), rng.randint(0, 20), rng.randint(-3, 400))
        partner = stats(rng.randint(-5, 40), rng.randint(0, 20), rng.randint(-3, 400))
        assert 0 <= scorer.score(learner) <= 100
        assert 0 <= scorer.score(learner, partner) <= 100


def test_constants_are_configurable() -> None:
    scorer = MoodScorer(MoodSettings(solo_daily_points=50.0, solo_consistency_points=0.0))
    assert scorer.score(stats(5, 5, 0)) == 50


@pytest.mark.parametrize(
    "happiness,emotion",
    [(100, "happy"), (75, "happy"), (74, "neutral"), (50, "neutral"), (49, "sad"), (25, "sad"), (0, "angry")],
)
def test_emotion(scorer: MoodScorer, happiness: int, emotion: str) -> None:
    assert scorer.emotion(happiness) == emotion


def test_description_mentions_partners(scorer: MoodScorer) -> None:
    assert "Both" in scorer.description(90, solo=False)
    assert "Both" not in scorer.description(90, solo=True)


def test_target_happiness(scorer: MoodScorer) -> None:
    assert scorer.target_happiness(5, 6, solo=True) == 80
    assert scorer.target_happiness(5, 6, solo=False) == 90


def test_encouragement() -> None:
    assert MoodScorer.encouragement(5, 5, True).startswith("Goal completed")
    assert MoodScorer.encouragement(0, 5, True).startswith("Ready to start")
    assert MoodScorer.encouragement(3, 5, False) == "You're both making good progress!"


def test_refresh_persists_mood(repository, learner_id, today) -> None:
    progress = ProgressAggregator(repository)
    for offset in range(3):
        progress.update_daily_stat(learner_id, 5, 5, today - timedelta(days=offset))
    service = MoodService(repository, progress)

    state = service.refresh(learner_id, today=today)

    assert state.pairing_key == pairing_key(learner_id)
    # 60 + 3/7 * 10 + 10
    assert state.happiness == 74
    assert state.current_streak_days == 3
    assert state.longest_streak_days == 3
    assert repository.get_mood_state(pairing_key(learner_id)).happiness == 74


def test_refresh_pair_keeps_weaker_streak(repository, learner_id, partner_id, today) -> None:
    progress = ProgressAggregator(repository)
    for offset in range(3):
        progress.update_daily_stat(learner_id, 5, 5, today - timedelta(days=offset))
    progress.update_daily_stat(partner_id, 5, 5, today)
    service = MoodService(repository, progress)

    state = service.refresh(learner_id, partner_id, today)

    assert state.current_streak_days == 1
    assert state.longest_streak_days == 1
    assert service.current_mood(partner_id, learner_id, today) == state.happiness


def test_refresh_creates_state_with_injected_cycle_settings(repository, learner_id, today) -> None:
    cycles = CycleManager(repository, CycleSettings(initial_happiness=30, initial_health=80))
    service = MoodService(repository, cycles=cycles)

    state = service.refresh(learner_id, today=today)

    assert state.health == 80
    assert state.happiness == 0


def test_engine_passes_its_settings_to_mood(repository, learner_id, today) -> None:
    config = Settings(
        cycle=CycleSettings(initial_health=70),
        mood=MoodSettings(target_words_per_day=8),
    )
    engine = LearningEngine(repository, config=config)
    engine.progress.update_daily_stat(learner_id, 4, 4, today)

    state = engine.refresh_mood(learner_id, today=today)

    assert state.health == 70
    assert engine.progress.learner_stats(learner_id, today).target_words == 8
    # 60 * 4/8 + 10 consistency, no streak below the daily goal of 5
    assert state.happiness == 40


def test_current_mood_does_not_persist(repository, learner_id, today) -> None:
    service = MoodService(repository)
    assert service.current_mood(learner_id, today=today) == 0
    assert repository.get_mood_state(pairing_key(learner_id)) is None
