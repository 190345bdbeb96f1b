"""Exceptions raised by the learning engine."""


class LexicycleError(Exception):
    """Base class for engine errors."""


class InvalidQualityError(LexicycleError, ValueError):
    """A quality score that cannot be interpreted as a number."""


class EmptyVocabularyPoolError(LexicycleError):
    """No vocabulary is available to fill a new cycle."""


class CycleConflictError(LexicycleError):
    """The store already holds an active cycle for the pairing key."""

    def __init__(self, pairing_key: str):
        super().__init__(f"Pairing key {pairing_key} already has an active cycle")
        self.pairing_key = pairing_key


class RepositoryError(LexicycleError):
    """A persistence operation failed."""
