"""Database models for the learning engine."""
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship

from lexicycle.models.base import Base, TimestampMixin


class VocabularyWord(Base, TimestampMixin):
    """Vocabulary reference data."""

    __tablename__ = "vocabulary_words"

    id = Column(Integer, primary_key=True)
    term = Column(String, nullable=False, unique=True)
    translations = Column(JSON, nullable=False, default=dict)  # e.g. {"fr": "chat"}
    difficulty = Column(Integer, nullable=False, default=1)

    # Relationships
    cycle_words = relationship("CycleWord", back_populates="word")


class LearningCycle(Base, TimestampMixin):
    """Learning cycle model."""

    __tablename__ = "learning_cycles"
    __table_args__ = (
        UniqueConstraint("pairing_key", "cycle_number", name="uq_cycle_number_per_key"),
        # One active cycle per pairing key
        Index(
            "uq_active_cycle_per_key",
            "pairing_key",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

    id = Column(Integer, primary_key=True)
    pairing_key = Column(String, nullable=False, index=True)
    cycle_number = Column(Integer, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    # Relationships
    cycle_words = relationship(
        "CycleWord", back_populates="cycle", order_by="CycleWord.position"
    )


class CycleWord(Base, TimestampMixin):
    """Cycle-word assignment model."""

    __tablename__ = "cycle_words"
    __table_args__ = (
        UniqueConstraint("cycle_id", "position", name="uq_cycle_position"),
        UniqueConstraint("cycle_id", "word_id", name="uq_cycle_word"),
    )

    id = Column(Integer, primary_key=True)
    cycle_id = Column(Integer, ForeignKey("learning_cycles.id"), nullable=False)
    word_id = Column(Integer, ForeignKey("vocabulary_words.id"), nullable=False)
    position = Column(Integer, nullable=False)

    # Relationships
    cycle = relationship("LearningCycle", back_populates="cycle_words")
    word = relationship("VocabularyWord", back_populates="cycle_words")


class UserProgress(Base, TimestampMixin):
    """Spaced repetition state of one word for one learner within a cycle."""

    __tablename__ = "user_progress"
    __table_args__ = (
        UniqueConstraint("learner_id", "word_id", "cycle_id", name="uq_progress_key"),
    )

    id = Column(Integer, primary_key=True)
    learner_id = Column(String, nullable=False, index=True)
    word_id = Column(Integer, ForeignKey("vocabulary_words.id"), nullable=False)
    cycle_id = Column(Integer, ForeignKey("learning_cycles.id"), nullable=False)
    ease_factor = Column(Float, nullable=False, default=2.5)
    interval = Column(Integer, nullable=False, default=1)  # in days
    repetitions = Column(Integer, nullable=False, default=0)
    next_review_date = Column(Date, nullable=False)
    last_reviewed_at = Column(DateTime(timezone=True))
    quality_score = Column(Integer)
    times_reviewed = Column(Integer, nullable=False, default=0)


class ReviewEvent(Base, TimestampMixin):
    """Append-only log of committed reviews."""

    __tablename__ = "review_events"

    id = Column(Integer, primary_key=True)
    learner_id = Column(String, nullable=False, index=True)
    word_id = Column(Integer, ForeignKey("vocabulary_words.id"), nullable=False)
    cycle_id = Column(Integer, ForeignKey("learning_cycles.id"), nullable=False)
    quality_score = Column(Integer, nullable=False)
    was_correct = Column(Boolean, nullable=False)
    reviewed_at = Column(DateTime(timezone=True), nullable=False)


class DailyStat(Base, TimestampMixin):
    """Per-learner daily statistics."""

    __tablename__ = "daily_stats"
    __table_args__ = (
        UniqueConstraint("learner_id", "date", name="uq_daily_stat"),
    )

    id = Column(Integer, primary_key=True)
    learner_id = Column(String, nullable=False, index=True)
    date = Column(Date, nullable=False)
    words_reviewed = Column(Integer, nullable=False, default=0)
    perfect_answers = Column(Integer, nullable=False, default=0)
    completed_daily_goal = Column(Boolean, nullable=False, default=False)


class MoodState(Base, TimestampMixin):
    """Shared mood record of a pairing key."""

    __tablename__ = "mood_states"

    id = Column(Integer, primary_key=True)
    pairing_key = Column(String, nullable=False, unique=True)
    happiness_level = Column(Integer, nullable=False, default=50)
    health_level = Column(Integer, nullable=False, default=100)
    current_streak_days = Column(Integer, nullable=False, default=0)
    longest_streak_days = Column(Integer, nullable=False, default=0)
