"""Persistent key-value storage for item statistics."""
import json
import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, final

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from derdiedas.config import settings
from derdiedas.models.base import SessionLocal
from derdiedas.models.models import StoredValue
from derdiedas.models.vocab_models import ItemStatistics
from derdiedas.monitoring import storage_errors

logger = logging.getLogger(__name__)


def decode_statistics(raw: Optional[str]) -> Dict[str, ItemStatistics]:
    """Decode a JSON document into statistics. Malformed records are dropped."""
    if not raw:
        return {}
    parsed = json.loads(raw)
    if not isinstance(parsed, dict):
        logger.warning("Stored statistics are not an object, ignoring them")
        return {}

    stats = {}
    for item_id, record in parsed.items():
        try:
            stats[str(item_id)] = ItemStatistics.from_dict(record)
        except (TypeError, ValueError, OverflowError) as e:
            logger.warning(f"Dropping malformed statistics for item {item_id}: {e}")
    return stats


def encode_statistics(stats: Dict[str, ItemStatistics]) -> str:
    """Encode statistics as a JSON document."""
    return json.dumps({item_id: st.to_dict() for item_id, st in stats.items()}, ensure_ascii=False)


class StatsStorage(ABC):
    """Base class for statistics storage backends.

    Subclasses only read and write the raw JSON document. Decoding, encoding
    and error recovery happen here: a broken medium reads as no statistics.
    """

    @abstractmethod
    def _read(self) -> Optional[str]:
        """Return the stored JSON document, or None if nothing was stored yet."""
        raise NotImplementedError("Subclasses must implement this method")

    @abstractmethod
    def _write(self, raw: str) -> None:
        """Store the JSON document."""
        raise NotImplementedError("Subclasses must implement this method")

    @final
    def load(self) -> Dict[str, ItemStatistics]:
        """Load statistics. Returns an empty mapping on missing or corrupt data."""
        try:
            stats = decode_statistics(self._read())
        except Exception as e:
            logger.warning(f"Could not load statistics, starting fresh: {e}")
            storage_errors.labels(operation="load").inc()
            return {}
        logger.debug(f"Loaded statistics for {len(stats)} items")
        return stats

    @final
    def save(self, stats: Dict[str, ItemStatistics]) -> None:
        """Save statistics. Failures are logged and swallowed."""
        try:
            self._write(encode_statistics(stats))
        except Exception as e:
            logger.warning(f"Could not save statistics: {e}")
            storage_errors.labels(operation="save").inc()


class InMemoryStatsStorage(StatsStorage):
    """Storage kept in process memory."""

    def __init__(self, raw: Optional[str] = None):
        self.raw = raw
        self.writes = 0

    def _read(self) -> Optional[str]:
        return self.raw

    def _write(self, raw: str) -> None:
        self.raw = raw
        self.writes += 1


class SqlStatsStorage(StatsStorage):
    """Storage backed by a single row of the local key-value table."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        key: Optional[str] = None,
    ):
        """Initialize the storage with a session factory and storage key."""
        self.session_factory = session_factory
        self.key = key or settings.storage.key

    def _read(self) -> Optional[str]:
        db = self.session_factory()
        try:
            row = db.query(StoredValue).filter(StoredValue.key == self.key).first()
            return row.value if row else None
        finally:
            db.close()

    def _write(self, raw: str) -> None:
        db = self.session_factory()
        try:
            row = db.query(StoredValue).filter(StoredValue.key == self.key).first()
            if row:
                row.value = raw
            else:
                db.add(StoredValue(key=self.key, value=raw))
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise
        finally:
            db.close()
