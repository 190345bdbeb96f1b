"""Logging configuration for the learning engine."""
import logging
import logging.handlers
from pathlib import Path
from typing import List, Optional

from lexicycle.config import LoggingSettings, settings

# Logger of the engine's own modules
PACKAGE_LOGGER = "lexicycle"


def _build_handlers(config: LoggingSettings) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if config.file:
        Path(config.file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                config.file,
                maxBytes=config.max_bytes,
                backupCount=config.backup_count,
                encoding="utf-8",
            )
        )
    formatter = logging.Formatter(config.format)
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def setup_logging(level: Optional[str] = None, config: Optional[LoggingSettings] = None) -> None:
    """Configure the root logger for an application embedding the engine.

    Calling it again replaces the handlers installed by the previous call.
    """
    config = config or settings.logging
    root_logger = logging.getLogger()
    root_logger.setLevel(level or config.level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        if isinstance(handler, logging.FileHandler):
            handler.close()
    for handler in _build_handlers(config):
        root_logger.addHandler(handler)

    # Engine modules follow the root level
    logging.getLogger(PACKAGE_LOGGER).setLevel(logging.NOTSET)
    for name in config.quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(PACKAGE_LOGGER).info(
        f"Logging configured at {logging.getLevelName(root_logger.level)}"
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger below the engine's package logger."""
    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)
