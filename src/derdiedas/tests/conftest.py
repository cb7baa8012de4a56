"""Test configuration."""
import os
import random
from pathlib import Path
from typing import Callable, List

import pytest
from dotenv import load_dotenv
from faker import Faker

# Set test environment before any imports
os.environ["ENV"] = "test"

# Load test environment variables
test_env_path = Path(__file__).parent.parent.parent.parent / ".env.test"
load_dotenv(test_env_path)

# Import after environment setup
from derdiedas.config import ARTICLES, DrillSettings
from derdiedas.models.vocab_models import VocabItem
from derdiedas.services.statistics_service import StatisticsStore
from derdiedas.services.storage_service import InMemoryStatsStorage

fake = Faker("de_DE")
Faker.seed(4321)

TAGS = ["haus", "essen", "tier", "schule", "verkehr"]


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_item(index: int, article: str = None, tags=None, clues=None) -> VocabItem:
    """Create a catalog item with generated text."""
    article = article or ARTICLES[index % len(ARTICLES)]
    lemma = f"{fake.word().capitalize()}{index}"
    return VocabItem(
        id=f"item{index}",
        article=article,
        lemma=lemma,
        display=f"{article} {lemma}",
        tags=frozenset(tags if tags is not None else [TAGS[index % len(TAGS)]]),
        clues=tuple(clues or [fake.sentence(), fake.sentence()]),
    )


@pytest.fixture
def item_factory() -> Callable[..., VocabItem]:
    return make_item


@pytest.fixture
def catalog() -> List[VocabItem]:
    """A catalog of 24 items over five tags and all three articles."""
    return [make_item(i) for i in range(24)]


@pytest.fixture
def drill() -> DrillSettings:
    return DrillSettings(
        target_sets=20,
        recent_penalty_hours=24,
        new_item_bonus=3.0,
        error_weight=4.0,
        recent_min_factor=0.25,
        requeue_min_offset=2,
        requeue_max_offset=6,
    )


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> InMemoryStatsStorage:
    return InMemoryStatsStorage()


@pytest.fixture
def stats(storage: InMemoryStatsStorage, clock: FakeClock) -> StatisticsStore:
    return StatisticsStore(storage, clock)
