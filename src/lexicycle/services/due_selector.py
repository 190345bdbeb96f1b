"""Due word selection."""
import logging
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Union

from lexicycle.models.domain import ProgressRecord, VocabularyItem

logger = logging.getLogger(__name__)


def as_calendar_date(value: Union[date, datetime, str]) -> date:
    """Normalize a date, datetime or ISO string to its calendar date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value).date()
        except ValueError as e:
            raise ValueError(f"Malformed date: {value!r}") from e
    raise TypeError(f"Expected a date, got {type(value).__name__}")


def is_due(next_due_date: Optional[Union[date, datetime, str]], today: date) -> bool:
    """Check if a review is due, comparing calendar dates only."""
    if next_due_date is None:
        return True
    return as_calendar_date(next_due_date) <= as_calendar_date(today)


class DueSelector:
    """Decides which cycle words a learner should review now."""

    def select(
        self,
        cycle_words: Iterable[VocabularyItem],
        progress: Iterable[ProgressRecord],
        today: date,
    ) -> List[VocabularyItem]:
        """Get the due words, keeping the order of the cycle."""
        by_word: Dict[int, ProgressRecord] = {record.word_id: record for record in progress}
        due = []
        for word in cycle_words:
            record = by_word.get(word.id)
            # Never reviewed in this cycle
            if record is None or is_due(record.next_due_date, today):
                due.append(word)
        logger.debug(f"{len(due)} due words out of {len(by_word)} with progress")
        return due
