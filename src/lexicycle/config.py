"""Configuration settings for the learning engine."""
import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

from dotenv import load_dotenv

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)


# Scheduling bounds
MIN_EASE = 1.3
MAX_EASE = 2.5
MIN_INTERVAL_DAYS = 1
MAX_INTERVAL_DAYS = 365


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///lexicycle.db")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = os.getenv("LOG_FILE", None)
    max_bytes: int = int(os.getenv("LOG_MAX_BYTES", str(10 * 1024 * 1024)))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "5"))
    # Third-party loggers kept at WARNING
    quiet_loggers: Tuple[str, ...] = ("sqlalchemy.engine", "sqlalchemy.pool")


@dataclass
class SchedulingSettings:
    """Spaced repetition settings."""
    min_ease: float = MIN_EASE
    max_ease: float = MAX_EASE
    default_ease: float = float(os.getenv("DEFAULT_EASE", "2.5"))
    min_interval: int = MIN_INTERVAL_DAYS
    max_interval: int = int(os.getenv("MAX_INTERVAL_DAYS", str(MAX_INTERVAL_DAYS)))
    default_interval: int = 1
    second_interval: int = 6  # days after the second successful review
    passing_quality: int = 3


@dataclass
class CycleSettings:
    """Learning cycle settings."""
    words_per_cycle: int = int(os.getenv("WORDS_PER_CYCLE", "5"))
    cycle_length_days: int = int(os.getenv("CYCLE_LENGTH_DAYS", "2"))
    recent_cycles_excluded: int = int(os.getenv("RECENT_CYCLES_EXCLUDED", "3"))
    initial_happiness: int = 50
    initial_health: int = 100


def get_default_mode_weights() -> dict[str, dict[str, float]]:
    """Get the default exercise mode weights per mastery tier."""
    return {
        "new": {
            "listening": 1.0,
            "multiple_choice_to_native": 1.0,
            "multiple_choice_from_native": 0.5,
        },
        "learning": {
            "listening": 1.0,
            "multiple_choice_from_native": 1.0,
            "sentence_builder": 0.7,
        },
        "familiar": {
            "sentence_builder": 1.5,
            "pronunciation": 1.5,
            "multiple_choice_from_native": 1.0,
            "listening": 0.5,
        },
    }


@dataclass
class SessionSettings:
    """Session building and daily goal settings."""
    daily_goal_words: int = int(os.getenv("DAILY_GOAL_WORDS", "5"))
    new_tier_max_repetitions: int = 2
    learning_tier_max_repetitions: int = 5
    very_new_activities: int = 3
    new_activities: int = 2
    learning_activities: int = 2
    learning_extra_probability: float = 0.7
    familiar_activities: int = 2
    distractor_count: int = 3
    mode_weights: dict[str, dict[str, float]] = field(default_factory=get_default_mode_weights)


@dataclass
class MoodSettings:
    """Mood scoring constants."""
    target_words_per_day: int = int(os.getenv("TARGET_WORDS_PER_DAY", "5"))
    solo_daily_points: float = 60.0
    solo_streak_points_per_week: float = 10.0
    solo_streak_max_points: float = 30.0
    solo_consistency_points: float = 10.0
    solo_consistency_ratio: float = 0.5
    paired_daily_points_each: float = 40.0
    paired_streak_points_per_week: float = 5.0
    paired_streak_max_points: float = 15.0
    paired_sync_points: float = 5.0
    paired_sync_max_difference: int = 2
    happy_threshold: int = 75
    neutral_threshold: int = 50
    sad_threshold: int = 25


@dataclass
class MonitoringSettings:
    """Prometheus metrics settings."""
    enabled: bool = os.getenv("METRICS_ENABLED", "false").lower() == "true"
    port: int = int(os.getenv("METRICS_PORT", "9090"))


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_scheduling_settings() -> SchedulingSettings:
    """Get scheduling settings."""
    return SchedulingSettings()


def get_cycle_settings() -> CycleSettings:
    """Get cycle settings."""
    return CycleSettings()


def get_session_settings() -> SessionSettings:
    """Get session settings."""
    return SessionSettings()


def get_mood_settings() -> MoodSettings:
    """Get mood settings."""
    return MoodSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    scheduling: SchedulingSettings = field(default_factory=get_scheduling_settings)
    cycle: CycleSettings = field(default_factory=get_cycle_settings)
    session: SessionSettings = field(default_factory=get_session_settings)
    mood: MoodSettings = field(default_factory=get_mood_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        if not self.scheduling.min_ease <= self.scheduling.default_ease <= self.scheduling.max_ease:
            raise ValueError("DEFAULT_EASE must be between 1.3 and 2.5")

        if self.scheduling.max_interval < self.scheduling.min_interval:
            raise ValueError("MAX_INTERVAL_DAYS cannot be lower than the minimum interval")

        if self.cycle.words_per_cycle < 1:
            raise ValueError("WORDS_PER_CYCLE must be positive")

        if self.cycle.cycle_length_days < 0:
            raise ValueError("CYCLE_LENGTH_DAYS cannot be negative")

        if self.cycle.recent_cycles_excluded < 0:
            raise ValueError("RECENT_CYCLES_EXCLUDED cannot be negative")

        if self.session.daily_goal_words < 1:
            raise ValueError("DAILY_GOAL_WORDS must be positive")

        if self.session.learning_extra_probability < 0 or self.session.learning_extra_probability > 1:
            raise ValueError("learning_extra_probability must be between 0 and 1")

        for tier in ("new", "learning", "familiar"):
            weights = self.session.mode_weights.get(tier)
            if not weights:
                raise ValueError(f"No mode weights configured for tier '{tier}'")
            if any(weight <= 0 for weight in weights.values()):
                raise ValueError(f"Mode weights for tier '{tier}' must be positive")

        if self.mood.target_words_per_day < 0:
            raise ValueError("TARGET_WORDS_PER_DAY cannot be negative")


# Create global settings instance
settings = Settings()
settings.validate()
