"""Tests for the SQLAlchemy repository."""
import random
from datetime import timedelta

import pytest

from lexicycle.engine import LearningEngine
from lexicycle.errors import CycleConflictError, RepositoryError
from lexicycle.models.domain import DailyStat, ProgressRecord, SharedMoodState
from lexicycle.repositories.sql import SqlRepository
from lexicycle.services.vocabulary_service import VocabularyService
from lexicycle.tests.factories import fake

KEY = "alice_bob"


def seed(repository: SqlRepository, count: int = 12):
    items = [
        {
            "term": f"{fake.word()}-{i}",
            "translations": {"fr": f"fr-{i}", "ko": f"ko-{i}"},
            "difficulty": (i - 1) // 5 + 1,
        }
        for i in range(1, count + 1)
    ]
    return VocabularyService(repository).seed(items)


def test_seed_skips_existing_terms(sql_repository: SqlRepository) -> None:
    service = VocabularyService(sql_repository)
    added = service.seed([
        {"term": "cat", "translations": {"fr": "chat"}},
        {"term": "dog", "translations": {"fr": "chien"}, "difficulty": 2},
    ])
    assert [item.term for item in added] == ["cat", "dog"]
    assert added[0].difficulty == 1
    assert sql_repository.find_vocabulary_by_term("cat").translation_for("fr") == "chat"

    again = service.seed([{"term": "cat"}, {"term": "bird", "translations": {"fr": "oiseau"}}])
    assert [item.term for item in again] == ["bird"]
    assert len(sql_repository.list_vocabulary()) == 3


def test_seed_rejects_items_without_term(sql_repository: SqlRepository) -> None:
    with pytest.raises(ValueError):
        VocabularyService(sql_repository).seed([{"translations": {"fr": "rien"}}])


def test_duplicate_term_is_a_repository_error(sql_repository: SqlRepository) -> None:
    sql_repository.add_vocabulary("cat", {}, 1)
    with pytest.raises(RepositoryError):
        sql_repository.add_vocabulary("cat", {}, 1)


def test_list_vocabulary_orders_and_excludes(sql_repository: SqlRepository) -> None:
    sql_repository.add_vocabulary("hard", {}, 3)
    easy = sql_repository.add_vocabulary("easy", {}, 1)
    sql_repository.add_vocabulary("medium", {}, 2)
    assert [w.term for w in sql_repository.list_vocabulary()] == ["easy", "medium", "hard"]
    assert [w.term for w in sql_repository.list_vocabulary(exclude_ids=[easy.id], limit=1)] == ["medium"]


def test_get_vocabulary_keeps_requested_order(sql_repository: SqlRepository) -> None:
    words = seed(sql_repository, 4)
    ids = [words[2].id, words[0].id, 999, words[3].id]
    assert [w.id for w in sql_repository.get_vocabulary(ids)] == [words[2].id, words[0].id, words[3].id]


def test_one_active_cycle_per_key(sql_repository: SqlRepository, today) -> None:
    words = seed(sql_repository, 10)
    first = sql_repository.create_cycle(KEY, 1, today, today + timedelta(days=2), [w.id for w in words[:5]])
    assert first.word_ids == [w.id for w in words[:5]]
    assert [a.position for a in first.assignments] == [1, 2, 3, 4, 5]

    with pytest.raises(CycleConflictError) as excinfo:
        sql_repository.create_cycle(KEY, 2, today, today + timedelta(days=2), [w.id for w in words[5:]])
    assert excinfo.value.pairing_key == KEY

    # The session is still usable after the refused insert
    assert sql_repository.get_active_cycle(KEY).id == first.id

    sql_repository.deactivate_cycle(first.id)
    second = sql_repository.create_cycle(KEY, 2, today, today + timedelta(days=2), [w.id for w in words[5:]])
    assert [c.id for c in sql_repository.get_active_cycles(KEY)] == [second.id]
    assert sql_repository.last_cycle_number(KEY) == 2
    assert sql_repository.recent_cycle_word_ids(KEY, 1) == {w.id for w in words[5:]}
    assert sql_repository.recent_cycle_word_ids(KEY, 3) == {w.id for w in words}
    assert sql_repository.recent_cycle_word_ids(KEY, 0) == set()


def test_deactivate_unknown_cycle(sql_repository: SqlRepository) -> None:
    with pytest.raises(ValueError):
        sql_repository.deactivate_cycle(404)


def test_progress_upsert_and_delete(sql_repository: SqlRepository, learner_id, today) -> None:
    words = seed(sql_repository, 3)
    cycle = sql_repository.create_cycle(KEY, 1, today, today, [w.id for w in words])
    record = ProgressRecord(learner_id, words[0].id, cycle.id, 2.5, 1, 1, today + timedelta(days=1), times_reviewed=1)
    sql_repository.upsert_progress(record)

    record.repetitions = 2
    record.interval = 6
    record.times_reviewed = 2
    saved = sql_repository.upsert_progress(record)

    assert saved.repetitions == 2
    assert saved.times_reviewed == 2
    stored = sql_repository.get_progress(learner_id, cycle.id)
    assert len(stored) == 1
    assert stored[0].interval == 6
    assert sql_repository.get_progress(learner_id, cycle.id, [words[1].id]) == []

    assert sql_repository.delete_progress(learner_id, cycle.id) == 1
    assert sql_repository.get_progress(learner_id, cycle.id) == []


def test_daily_stats(sql_repository: SqlRepository, learner_id, today) -> None:
    sql_repository.save_daily_stat(DailyStat(learner_id, today - timedelta(days=1), 5, 3, True))
    sql_repository.save_daily_stat(DailyStat(learner_id, today, 2, 1, False))
    sql_repository.save_daily_stat(DailyStat(learner_id, today, 6, 4, True))

    assert sql_repository.get_daily_stat(learner_id, today).words_reviewed == 6
    stats = sql_repository.list_daily_stats(learner_id)
    assert [s.date for s in stats] == [today - timedelta(days=1), today]
    assert [s.date for s in sql_repository.list_daily_stats(learner_id, since=today)] == [today]


def test_mood_state_is_created_once(sql_repository: SqlRepository) -> None:
    assert sql_repository.create_mood_state(SharedMoodState(KEY)) is True
    assert sql_repository.create_mood_state(SharedMoodState(KEY, happiness=10)) is False
    assert sql_repository.get_mood_state(KEY).happiness == 50

    saved = sql_repository.save_mood_state(
        SharedMoodState(KEY, happiness=82, current_streak_days=2, longest_streak_days=4)
    )
    assert saved.happiness == 82
    assert saved.longest_streak_days == 4

    with pytest.raises(ValueError):
        sql_repository.save_mood_state(SharedMoodState("nobody_nobody"))


def test_engine_over_database(db, learner_id, partner_id, today) -> None:
    engine = LearningEngine.from_database(db, rng=random.Random(3))
    seed(engine.repository, 12)

    session = engine.start_session(learner_id, "ko", partner_id=partner_id, today=today)
    assert len(session.activities) == 15
    while not session.is_complete:
        session.record(5)
    report = engine.finish_session(session, today)

    assert len(report.committed) == 5
    assert report.daily_stat.goal_met is True
    assert len(engine.repository.get_review_events(learner_id, session.cycle_id)) == 5
    # The partner has not studied yet
    assert engine.mood_for(learner_id, partner_id, today) == 40
    assert engine.repository.get_mood_state(session.pairing_key).happiness == 40

    later = today + timedelta(days=3)
    rotated = engine.cycle_for(partner_id, learner_id, later)
    assert rotated.created is True
    assert rotated.cycle.sequence_number == 2
    assert set(rotated.cycle.word_ids).isdisjoint(session.words[i].id for i in range(5))
