"""Tests for the statistics store and its storage backends."""
import json
from typing import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from derdiedas.models.base import init_db
from derdiedas.models.models import StoredValue
from derdiedas.models.vocab_models import ItemStatistics, Phase
from derdiedas.services.statistics_service import StatisticsStore
from derdiedas.services.storage_service import InMemoryStatsStorage, SqlStatsStorage


@pytest.fixture
def session_factory() -> Generator[sessionmaker, None, None]:
    """Create a session factory bound to a fresh in-memory database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


def test_statistics_created_lazily(stats: StatisticsStore) -> None:
    """Test that unknown ids get default-zeroed statistics."""
    assert stats.get("tisch") is None
    st = stats.ensure("tisch")
    assert st == ItemStatistics()
    assert stats.ensure("tisch") is st


def test_record_seen(stats: StatisticsStore, storage: InMemoryStatsStorage, clock) -> None:
    """Test that presentations are counted and timestamped."""
    stats.record_seen("tisch")
    clock.advance(60)
    st = stats.record_seen("tisch")

    assert st.seen == 2
    assert st.last_seen_at == clock.now
    assert storage.writes == 2


def test_record_result_per_phase(stats: StatisticsStore) -> None:
    """Test that answers are counted per phase."""
    stats.record_result("tisch", Phase.MEANING, True)
    stats.record_result("tisch", Phase.MEANING, False)
    stats.record_result("tisch", Phase.ARTICLE, False)
    stats.record_result("tisch", Phase.ARTICLE, False)
    st = stats.record_result("tisch", Phase.ARTICLE, True)

    assert (st.correct_meaning, st.wrong_meaning) == (1, 1)
    assert (st.correct_article, st.wrong_article) == (1, 2)
    assert st.total_wrong == 3
    assert st.total_answers == 5


def test_record_result_unknown_phase(stats: StatisticsStore) -> None:
    """Test that an invalid phase is rejected."""
    with pytest.raises(ValueError):
        stats.record_result("tisch", "meaning", True)


def test_statistics_survive_a_new_session(storage: InMemoryStatsStorage, clock) -> None:
    """Test that a new store sees what the previous one saved."""
    first = StatisticsStore(storage, clock)
    first.record_seen("tisch")
    first.record_result("tisch", Phase.ARTICLE, False)

    second = StatisticsStore(storage, clock)
    st = second.get("tisch")
    assert st.seen == 1
    assert st.wrong_article == 1
    assert st.last_seen_at == clock.now


@pytest.mark.parametrize("raw", ["not json", "[1, 2, 3]", "42", "null"])
def test_corrupt_storage_loads_empty(raw: str) -> None:
    """Test that corrupt stored data is treated as no statistics."""
    assert InMemoryStatsStorage(raw).load() == {}


def test_malformed_records_are_dropped() -> None:
    """Test that only the readable records are kept."""
    raw = json.dumps({
        "tisch": {"seen": 2, "wrong_meaning": 1, "unknown": "ignored"},
        "stuhl": "garbage",
        "lampe": {"seen": "many"},
        "tasse": {"seen": 3, "correct_meaning": 1, "wrong_meaning": -5},
        "kanne": {"seen": 1, "last_seen_at": -1},
    })
    stats = InMemoryStatsStorage(raw).load()
    assert list(stats) == ["tisch"]
    assert stats["tisch"].seen == 2
    assert stats["tisch"].wrong_meaning == 1
    assert stats["tisch"].correct_article == 0


def test_non_finite_record_drops_only_itself() -> None:
    """Test that an infinite counter does not wipe the other records."""
    raw = '{"tisch": {"seen": 1}, "stuhl": {"seen": Infinity}, "lampe": {"seen": 1, "last_seen_at": NaN}}'
    stats = InMemoryStatsStorage(raw).load()
    assert list(stats) == ["tisch"]
    assert stats["tisch"].seen == 1


@pytest.mark.parametrize("record", [
    {"wrong_meaning": -1},
    {"seen": -3},
    {"correct_article": 2, "wrong_article": -2},
])
def test_negative_counters_are_rejected(record: dict) -> None:
    """Test that a record with a negative counter is not loaded."""
    with pytest.raises(ValueError):
        ItemStatistics.from_dict(record)


def test_sql_storage_roundtrip(session_factory: sessionmaker) -> None:
    """Test saving and loading through the key-value table."""
    storage = SqlStatsStorage(session_factory, key="test_stats")
    assert storage.load() == {}

    storage.save({"tisch": ItemStatistics(seen=3, wrong_article=2, last_seen_at=123.5)})
    storage.save({"tisch": ItemStatistics(seen=4, wrong_article=2, last_seen_at=124.5)})

    loaded = SqlStatsStorage(session_factory, key="test_stats").load()
    assert loaded == {"tisch": ItemStatistics(seen=4, wrong_article=2, last_seen_at=124.5)}

    db: Session = session_factory()
    try:
        assert db.query(StoredValue).count() == 1
    finally:
        db.close()


def test_sql_storage_failures_are_swallowed() -> None:
    """Test that an unavailable database never breaks the session."""
    def broken_factory():
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    storage = SqlStatsStorage(broken_factory, key="test_stats")
    assert storage.load() == {}
    storage.save({"tisch": ItemStatistics(seen=1)})

    stats = StatisticsStore(storage)
    stats.record_seen("tisch")
    assert stats.get("tisch").seen == 1


def test_summary_and_most_missed(stats: StatisticsStore) -> None:
    """Test totals over all items."""
    stats.record_seen("tisch")
    stats.record_seen("stuhl")
    stats.record_result("tisch", Phase.MEANING, True)
    stats.record_result("tisch", Phase.ARTICLE, False)
    stats.record_result("stuhl", Phase.MEANING, False)
    stats.record_result("stuhl", Phase.MEANING, False)
    stats.record_result("stuhl", Phase.ARTICLE, True)
    stats.ensure("lampe")

    summary = stats.summary()
    assert summary["items_seen"] == 2
    assert summary["answers"] == 5
    assert summary["meaning_accuracy"] == pytest.approx(1 / 3)
    assert summary["article_accuracy"] == pytest.approx(1 / 2)

    missed = stats.most_missed()
    assert [item_id for item_id, _ in missed] == ["stuhl", "tisch"]
