"""SM-2 interval scheduling."""
import logging
import math
from dataclasses import dataclass
from datetime import date, timedelta
from numbers import Real
from typing import Optional

from lexicycle.config import SchedulingSettings, settings
from lexicycle.errors import InvalidQualityError

logger = logging.getLogger(__name__)

MIN_QUALITY = 0
MAX_QUALITY = 5


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(math.floor(abs(value) + 0.5)) * (1 if value >= 0 else -1)


def clamp_quality(quality) -> int:
    """Coerce a reported quality into the 0..5 scale.

    Raises InvalidQualityError for values that are not numbers at all.
    """
    if isinstance(quality, bool) or not isinstance(quality, Real):
        raise InvalidQualityError(f"Quality must be a number, got {quality!r}")
    if isinstance(quality, float) and math.isnan(quality):
        raise InvalidQualityError("Quality must be a number, got NaN")
    return max(MIN_QUALITY, min(MAX_QUALITY, round_half_up(float(quality))))


@dataclass(frozen=True)
class SchedulingResult:
    """Scheduling state produced by one review."""
    ease: float
    interval: int
    repetitions: int
    next_due_date: date


class IntervalScheduler:
    """Computes the next review of a word from the quality of the last one.

    Quality scores:
    5 - perfect response
    4 - correct response after hesitation
    3 - correct response with difficulty
    2 - incorrect, but the answer seemed easy to recall
    1 - incorrect, the answer was hard to recall
    0 - complete blackout
    """

    def __init__(self, config: Optional[SchedulingSettings] = None):
        self.config = config or settings.scheduling

    def _clamp_ease(self, ease: float) -> float:
        return round(min(self.config.max_ease, max(self.config.min_ease, ease)), 2)

    def _clamp_interval(self, interval: int) -> int:
        return min(self.config.max_interval, max(self.config.min_interval, interval))

    def initial_state(self, today: date) -> SchedulingResult:
        """State of a word that has never been reviewed."""
        return SchedulingResult(
            ease=self.config.default_ease,
            interval=self.config.default_interval,
            repetitions=0,
            next_due_date=today + timedelta(days=self.config.default_interval),
        )

    def advance(
        self,
        quality,
        prior_ease: float,
        prior_interval: int,
        prior_repetitions: int,
        today: date,
    ) -> SchedulingResult:
        """Compute the scheduling state after a review of the given quality."""
        q = clamp_quality(quality)
        prior_ease = self._clamp_ease(prior_ease)
        prior_interval = self._clamp_interval(int(prior_interval))
        prior_repetitions = max(0, int(prior_repetitions))

        if q < self.config.passing_quality:
            # Failure resets the learning curve
            repetitions = 0
            interval = self.config.default_interval
        else:
            repetitions = prior_repetitions + 1
            if repetitions == 1:
                interval = self.config.default_interval
            elif repetitions == 2:
                interval = self.config.second_interval
            else:
                interval = round_half_up(prior_interval * prior_ease)

        ease = self._clamp_ease(prior_ease + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)))
        interval = self._clamp_interval(interval)

        logger.debug(
            f"Quality {q}: ease {prior_ease} -> {ease}, interval {prior_interval} -> {interval}, "
            f"repetitions {prior_repetitions} -> {repetitions}"
        )
        return SchedulingResult(
            ease=ease,
            interval=interval,
            repetitions=repetitions,
            next_due_date=today + timedelta(days=interval),
        )

    @staticmethod
    def days_overdue(next_due_date: date, today: date) -> int:
        """How many days a review is overdue, 0 when it is not due yet."""
        return max(0, (today - next_due_date).days)
