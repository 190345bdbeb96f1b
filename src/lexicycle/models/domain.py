"""Storage-agnostic data structures exchanged by the engine."""
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class VocabularyItem:
    """Immutable vocabulary reference data."""
    id: int
    term: str  # source language term
    translations: Dict[str, str] = field(default_factory=dict)  # language code -> translation
    difficulty: int = 1

    def translation_for(self, language: str) -> Optional[str]:
        """Get the translation for a target language, if any."""
        return self.translations.get(language)


@dataclass
class ProgressRecord:
    """Scheduling state of one word for one learner within one cycle."""
    learner_id: str
    word_id: int
    cycle_id: int
    ease: float
    interval: int
    repetitions: int
    next_due_date: date
    last_reviewed_at: Optional[datetime] = None
    last_quality: Optional[int] = None
    times_reviewed: int = 0


@dataclass(frozen=True)
class CycleWordAssignment:
    """Position of a word within a cycle."""
    cycle_id: int
    word_id: int
    position: int


@dataclass
class Cycle:
    """A bounded-lifetime batch of vocabulary for a pairing key."""
    id: int
    pairing_key: str
    sequence_number: int
    start_date: date
    end_date: date
    active: bool = True
    assignments: Tuple[CycleWordAssignment, ...] = ()

    @property
    def word_ids(self) -> List[int]:
        """Word ids ordered by position."""
        return [a.word_id for a in sorted(self.assignments, key=lambda a: a.position)]

    def is_expired(self, today: date) -> bool:
        """A cycle expires the day after its end date."""
        return today > self.end_date

    def days_remaining(self, today: date) -> int:
        return max(0, (self.end_date - today).days)


@dataclass
class CycleInfo:
    """Active cycle as seen by a caller on a given day."""
    cycle: Cycle
    is_expired: bool
    days_remaining: int
    created: bool = False


@dataclass
class CycleProgress:
    """How far both partners got within the active cycle."""
    info: CycleInfo
    learner_progress: int
    partner_progress: int


@dataclass
class DailyStat:
    """Per-learner statistics of one calendar day."""
    learner_id: str
    date: date
    words_reviewed: int = 0
    perfect_answers: int = 0
    goal_met: bool = False


@dataclass
class ReviewEvent:
    """One committed review of a word."""
    learner_id: str
    word_id: int
    cycle_id: int
    quality: int
    was_correct: bool
    reviewed_at: datetime


@dataclass
class SharedMoodState:
    """Persisted mood companion of a pairing key."""
    pairing_key: str
    happiness: int = 50
    health: int = 100
    current_streak_days: int = 0
    longest_streak_days: int = 0
    updated_at: Optional[datetime] = None


@dataclass
class LearnerStats:
    """Aggregated statistics the mood scorer works on."""
    words_today: int
    target_words: int
    streak_days: int


class ActivityMode(Enum):
    """Available exercise modes."""
    LISTENING = "listening"  # Hear the word, pick its meaning
    MULTIPLE_CHOICE_TO_NATIVE = "multiple_choice_to_native"  # Target word -> native options
    MULTIPLE_CHOICE_FROM_NATIVE = "multiple_choice_from_native"  # Native word -> target options
    SENTENCE_BUILDER = "sentence_builder"  # Write a sentence with the word
    PRONUNCIATION = "pronunciation"  # Say the word out loud

    @property
    def is_production(self) -> bool:
        return self in (ActivityMode.SENTENCE_BUILDER, ActivityMode.PRONUNCIATION)


class MasteryTier(Enum):
    """Coarse mastery bucket derived from the repetition count."""
    NEW = "new"
    LEARNING = "learning"
    FAMILIAR = "familiar"


@dataclass(frozen=True)
class AdaptedWord:
    """A due word prepared for one learner's session."""
    id: int
    term: str  # shown in the target language
    translation: str  # meaning in the learner's language
    mastery_repetitions: int = 0


@dataclass(frozen=True)
class Activity:
    """One exercise mode applied to one word."""
    word_id: int
    term: str
    translation: str
    mode: ActivityMode
    activity_id: str


@dataclass(frozen=True)
class ActivityResult:
    """Quality reported back by the presentation layer for one activity."""
    word_id: int
    quality: int


class CommitStatus(Enum):
    """Outcome of a session commit."""
    OK = "ok"
    PARTIAL = "partial"
    FAILED = "failed"
    EMPTY = "empty"


@dataclass
class CommitReport:
    """Per-word outcome of a session commit."""
    committed: List[int] = field(default_factory=list)
    failed: Dict[int, str] = field(default_factory=dict)
    perfect_answers: int = 0
    daily_stat: Optional[DailyStat] = None

    @property
    def status(self) -> CommitStatus:
        if not self.committed and not self.failed:
            return CommitStatus.EMPTY
        if not self.failed:
            return CommitStatus.OK
        if not self.committed:
            return CommitStatus.FAILED
        return CommitStatus.PARTIAL
