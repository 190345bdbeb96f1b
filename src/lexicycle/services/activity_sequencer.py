"""Exercise selection and interleaving for a learning session."""
import difflib
import logging
import random
import re
from typing import Dict, Iterable, List, Optional, Sequence

from lexicycle.config import SessionSettings, settings
from lexicycle.models.domain import Activity, ActivityMode, AdaptedWord, MasteryTier
from lexicycle.monitoring import activities_generated, session_size

logger = logging.getLogger(__name__)

_PUNCTUATION = re.compile(r"[.,!?]")


def quality_from_attempts(attempts: int, skipped: bool = False) -> int:
    """Map the attempt on which an answer was correct to a quality score.

    First attempt 5, second 4, third or later 3, skip or timeout 0.
    """
    if skipped or attempts < 1:
        return 0
    if attempts == 1:
        return 5
    if attempts == 2:
        return 4
    return 3


def _normalize(text: str) -> str:
    return _PUNCTUATION.sub("", text.lower()).strip()


def pronunciation_quality(transcript: str, target: str, attempt: int = 1) -> int:
    """Grade a recognized utterance against the expected word."""
    spoken = _normalize(transcript or "")
    expected = _normalize(target)
    if not spoken:
        return 0
    if spoken == expected:
        return 5 if attempt <= 1 else 4
    if spoken in expected or expected in spoken:
        return 3
    if difflib.SequenceMatcher(None, spoken, expected).ratio() > 0.6:
        return 2
    return 1


def incorrect_options(
    word: AdaptedWord,
    pool: Iterable[AdaptedWord],
    count: int = 3,
    rng: Optional[random.Random] = None,
) -> List[str]:
    """Pick distractor translations for a multiple choice exercise."""
    rng = rng or random.Random()
    candidates = sorted(
        {other.translation for other in pool if other.id != word.id and other.translation != word.translation}
    )
    rng.shuffle(candidates)
    return candidates[:count]


class ActivitySequencer:
    """Expands due words into an interleaved list of activities."""

    def __init__(
        self,
        config: Optional[SessionSettings] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config or settings.session
        self.rng = rng or random.Random()

    def tier_for(self, repetitions: int) -> MasteryTier:
        """Get the mastery tier of a repetition count."""
        if repetitions <= self.config.new_tier_max_repetitions:
            return MasteryTier.NEW
        if repetitions <= self.config.learning_tier_max_repetitions:
            return MasteryTier.LEARNING
        return MasteryTier.FAMILIAR

    def _eligible_modes(
        self, tier: MasteryTier, supports_pronunciation: bool
    ) -> Dict[ActivityMode, float]:
        weights = {
            ActivityMode(mode): weight
            for mode, weight in self.config.mode_weights[tier.value].items()
        }
        if not supports_pronunciation:
            weights.pop(ActivityMode.PRONUNCIATION, None)
        return weights

    def _activity_count(self, tier: MasteryTier, repetitions: int) -> int:
        if tier is MasteryTier.NEW:
            return self.config.very_new_activities if repetitions == 0 else self.config.new_activities
        if tier is MasteryTier.LEARNING:
            count = self.config.learning_activities
            if self.rng.random() < self.config.learning_extra_probability:
                count += 1
            return count
        return self.config.familiar_activities

    def _weighted_sample(self, weights: Dict[ActivityMode, float], count: int) -> List[ActivityMode]:
        remaining = dict(weights)
        chosen = []
        while remaining and len(chosen) < count:
            modes = list(remaining)
            mode = self.rng.choices(modes, weights=[remaining[m] for m in modes], k=1)[0]
            chosen.append(mode)
            del remaining[mode]
        return chosen

    def select_modes(self, word: AdaptedWord, supports_pronunciation: bool = False) -> List[ActivityMode]:
        """Choose distinct exercise modes for one word."""
        repetitions = max(0, word.mastery_repetitions)
        tier = self.tier_for(repetitions)
        weights = self._eligible_modes(tier, supports_pronunciation)
        modes = self._weighted_sample(weights, self._activity_count(tier, repetitions))
        logger.debug(f"Word {word.id} ({tier.value}): {[m.value for m in modes]}")
        return modes

    def build_session(
        self, due_words: Sequence[AdaptedWord], supports_pronunciation: bool = False
    ) -> List[Activity]:
        """Generate the activities of every word, then interleave them."""
        activities = []
        for word in due_words:
            for index, mode in enumerate(self.select_modes(word, supports_pronunciation)):
                activities.append(
                    Activity(
                        word_id=word.id,
                        term=word.term,
                        translation=word.translation,
                        mode=mode,
                        activity_id=f"{word.id}-{mode.value}-{index}",
                    )
                )
                activities_generated.labels(mode=mode.value).inc()

        # Interleave words instead of blocking them
        self.rng.shuffle(activities)
        session_size.observe(len(activities))
        logger.info(f"Built session of {len(activities)} activities for {len(due_words)} words")
        return activities
