"""Vocabulary seeding."""
import logging
from typing import Any, Dict, Iterable, List

from lexicycle.models.domain import VocabularyItem
from lexicycle.repositories.base import LearningRepository

logger = logging.getLogger(__name__)


class VocabularyService:
    """Service for loading reference vocabulary into the store."""

    def __init__(self, repository: LearningRepository):
        self.repository = repository

    def seed(self, items: Iterable[Dict[str, Any]]) -> List[VocabularyItem]:
        """Insert the items whose term is not stored yet.

        Each item is a mapping with ``term``, ``translations`` and an optional
        ``difficulty`` (defaults to 1).
        """
        added = []
        for item in items:
            term = (item.get("term") or "").strip()
            if not term:
                raise ValueError(f"Vocabulary item without a term: {item!r}")
            if self.repository.find_vocabulary_by_term(term) is not None:
                logger.debug(f"Skipping existing term {term!r}")
                continue
            difficulty = int(item.get("difficulty", 1))
            added.append(
                self.repository.add_vocabulary(term, dict(item.get("translations") or {}), difficulty)
            )
        logger.info(f"Seeded {len(added)} vocabulary words")
        return added
