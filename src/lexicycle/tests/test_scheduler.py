"""Tests for the interval scheduler."""
import itertools
from datetime import date, timedelta

import pytest

from lexicycle.errors import InvalidQualityError
from lexicycle.services.scheduler import (
    IntervalScheduler,
    clamp_quality,
    round_half_up,
)

EASES = [1.3, 1.7, 2.1, 2.5]
INTERVALS = [1, 6, 30, 200, 365]
REPETITIONS = [0, 1, 2, 5, 20]


@pytest.fixture
def scheduler() -> IntervalScheduler:
    return IntervalScheduler()


def test_first_perfect_review(scheduler: IntervalScheduler, today: date) -> None:
    """A perfect first review keeps the ease at its maximum."""
    result = scheduler.advance(5, 2.5, 1, 0, today)
    assert result.repetitions == 1
    assert result.interval == 1
    assert result.ease == 2.5
    assert result.next_due_date == today + timedelta(days=1)


def test_failure_resets_learning_curve(scheduler: IntervalScheduler, today: date) -> None:
    result = scheduler.advance(2, 2.0, 10, 4, today)
    assert result.repetitions == 0
    assert result.interval == 1
    assert result.ease == pytest.approx(1.68)
    assert result.ease >= 1.3


def test_third_success_multiplies_interval(scheduler: IntervalScheduler, today: date) -> None:
    result = scheduler.advance(4, 2.0, 6, 2, today)
    assert result.interval == 12
    assert result.repetitions == 3
    assert result.ease == pytest.approx(2.0)
    assert result.next_due_date == today + timedelta(days=12)


def test_second_success_uses_six_days(scheduler: IntervalScheduler, today: date) -> None:
    result = scheduler.advance(3, 2.5, 1, 1, today)
    assert result.repetitions == 2
    assert result.interval == 6


def test_ease_never_drops_below_floor(scheduler: IntervalScheduler, today: date) -> None:
    result = scheduler.advance(0, 1.3, 1, 0, today)
    assert result.ease == 1.3


def test_interval_is_capped(scheduler: IntervalScheduler, today: date) -> None:
    result = scheduler.advance(5, 2.5, 300, 10, today)
    assert result.interval == 365
    assert result.next_due_date == today + timedelta(days=365)


@pytest.mark.parametrize("quality", [0, 1, 2])
def test_any_failure_resets_regardless_of_prior_state(
    scheduler: IntervalScheduler, today: date, quality: int
) -> None:
    for ease, interval, repetitions in itertools.product(EASES, INTERVALS, REPETITIONS):
        result = scheduler.advance(quality, ease, interval, repetitions, today)
        assert result.repetitions == 0
        assert result.interval == 1


def test_results_stay_within_bounds(scheduler: IntervalScheduler, today: date) -> None:
    for quality, ease, interval, repetitions in itertools.product(
        range(6), EASES, INTERVALS, REPETITIONS
    ):
        result = scheduler.advance(quality, ease, interval, repetitions, today)
        assert 1.3 <= result.ease <= 2.5
        assert 1 <= result.interval <= 365


def test_advance_is_deterministic(scheduler: IntervalScheduler, today: date) -> None:
    first = scheduler.advance(4, 2.2, 15, 3, today)
    second = scheduler.advance(4, 2.2, 15, 3, today)
    assert first == second


def test_out_of_range_quality_is_clamped(scheduler: IntervalScheduler, today: date) -> None:
    assert scheduler.advance(9, 2.0, 6, 2, today) == scheduler.advance(5, 2.0, 6, 2, today)
    assert scheduler.advance(-3, 2.0, 6, 2, today) == scheduler.advance(0, 2.0, 6, 2, today)


def test_clamp_quality() -> None:
    assert clamp_quality(3) == 3
    assert clamp_quality(4.5) == 5
    assert clamp_quality(7) == 5
    assert clamp_quality(-1) == 0
    with pytest.raises(InvalidQualityError):
        clamp_quality("five")
    with pytest.raises(InvalidQualityError):
        clamp_quality(None)
    with pytest.raises(InvalidQualityError):
        clamp_quality(True)


def test_round_half_up() -> None:
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(4.49) == 4
    assert round_half_up(0.0) == 0


def test_initial_state(scheduler: IntervalScheduler, today: date) -> None:
    state = scheduler.initial_state(today)
    assert (state.ease, state.interval, state.repetitions) == (2.5, 1, 0)
    assert state.next_due_date == today + timedelta(days=1)


def test_days_overdue(today: date) -> None:
    assert IntervalScheduler.days_overdue(today - timedelta(days=3), today) == 3
    assert IntervalScheduler.days_overdue(today + timedelta(days=2), today) == 0
