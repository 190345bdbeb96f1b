"""Test configuration."""
import os
import random
from datetime import date
from pathlib import Path
from typing import Generator, List

import pytest
from dotenv import load_dotenv

# Set test environment before any imports
os.environ["ENV"] = "test"

# Load test environment variables
test_env_path = Path(__file__).parents[3] / ".env.test"
load_dotenv(test_env_path)

# Import after environment setup
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from lexicycle.models.base import init_db
from lexicycle.models.domain import VocabularyItem
from lexicycle.repositories.memory import InMemoryRepository
from lexicycle.repositories.sql import SqlRepository
from lexicycle.tests.factories import fake, make_vocabulary


@pytest.fixture
def today() -> date:
    """A fixed calendar day."""
    return date(2024, 3, 10)


@pytest.fixture
def vocabulary() -> List[VocabularyItem]:
    """Twenty vocabulary items."""
    return make_vocabulary(20)


@pytest.fixture
def repository(vocabulary: List[VocabularyItem]) -> InMemoryRepository:
    """Create an in-memory repository holding the vocabulary."""
    return InMemoryRepository(vocabulary)


@pytest.fixture
def learner_id() -> str:
    return fake.uuid4()


@pytest.fixture
def partner_id() -> str:
    return fake.uuid4()


@pytest.fixture
def rng() -> random.Random:
    """A seeded random source."""
    return random.Random(1234)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create a fresh in-memory database session for each test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    db = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture
def sql_repository(db: Session) -> SqlRepository:
    """Create an SQL repository instance."""
    return SqlRepository(db)
