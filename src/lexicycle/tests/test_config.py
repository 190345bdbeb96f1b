"""Tests for configuration settings."""
import logging
import logging.handlers

import pytest

from lexicycle.config import LoggingSettings, Settings, settings
from lexicycle.logging_config import get_logger, setup_logging


def test_settings_defaults():
    """Test default settings values."""
    assert settings.scheduling.min_ease == 1.3
    assert settings.scheduling.max_ease == 2.5
    assert settings.scheduling.default_ease == 2.5
    assert settings.scheduling.max_interval == 365
    assert settings.cycle.words_per_cycle == 5
    assert settings.cycle.cycle_length_days == 2
    assert settings.cycle.recent_cycles_excluded == 3
    assert settings.session.daily_goal_words == 5
    assert settings.mood.target_words_per_day == 5
    assert settings.mood.paired_sync_points == 5.0


def test_validate_rejects_bad_cycle_size():
    """Test that a non-positive cycle size is rejected."""
    test_settings = Settings()
    test_settings.cycle.words_per_cycle = 0
    with pytest.raises(ValueError, match="WORDS_PER_CYCLE"):
        test_settings.validate()


def test_validate_rejects_default_ease_out_of_bounds():
    test_settings = Settings()
    test_settings.scheduling.default_ease = 3.0
    with pytest.raises(ValueError, match="DEFAULT_EASE"):
        test_settings.validate()


def test_validate_rejects_missing_tier_weights():
    test_settings = Settings()
    test_settings.session.mode_weights = {"new": {"listening": 1.0}}
    with pytest.raises(ValueError, match="learning"):
        test_settings.validate()


def test_setup_logging_configures_root_logger():
    """Test that repeated setup leaves a single console handler."""
    setup_logging("WARNING")
    setup_logging("DEBUG")
    root_logger = logging.getLogger()
    assert root_logger.level == logging.DEBUG
    assert len(root_logger.handlers) == 1
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING


def test_setup_logging_writes_rotating_file(tmp_path):
    log_file = tmp_path / "logs" / "engine.log"
    setup_logging("INFO", LoggingSettings(file=str(log_file), max_bytes=1024, backup_count=2))
    try:
        handlers = logging.getLogger().handlers
        rotating = [h for h in handlers if isinstance(h, logging.handlers.RotatingFileHandler)]
        assert len(rotating) == 1
        assert rotating[0].maxBytes == 1024
        get_logger("cycles").info("cycle created")
        rotating[0].flush()
        assert "lexicycle.cycles" in log_file.read_text(encoding="utf-8")
    finally:
        setup_logging("INFO", LoggingSettings(file=None))


def test_get_logger_is_scoped_to_the_package():
    assert get_logger("lexicycle.services.scheduler").name == "lexicycle.services.scheduler"
    assert get_logger("engine").name == "lexicycle.engine"
    assert get_logger("lexicycle").name == "lexicycle"
