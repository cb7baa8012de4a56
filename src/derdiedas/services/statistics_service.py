"""Per-item statistics shared by all rounds of a session."""
import logging
import time
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from derdiedas.models.vocab_models import ItemStatistics, Phase
from derdiedas.services.storage_service import StatsStorage

logger = logging.getLogger(__name__)


class StatisticsStore:
    """Process-wide statistics, persisted through a StatsStorage after every change."""

    def __init__(self, storage: StatsStorage, clock: Callable[[], float] = time.time):
        """Initialize the store and load persisted statistics."""
        self.storage = storage
        self.clock = clock
        self.stats: Dict[str, ItemStatistics] = storage.load()

    def ensure(self, item_id: str) -> ItemStatistics:
        """Get statistics for an item, creating default-zeroed ones on first reference."""
        st = self.stats.get(item_id)
        if st is None:
            st = self.stats[item_id] = ItemStatistics()
        return st

    def ensure_all(self, item_ids: Iterable[str]) -> None:
        """Create statistics for every given item."""
        for item_id in item_ids:
            self.ensure(item_id)

    def get(self, item_id: str) -> Optional[ItemStatistics]:
        return self.stats.get(item_id)

    def record_seen(self, item_id: str, now: Optional[float] = None) -> ItemStatistics:
        """Count a presentation of the item and remember when it happened."""
        st = self.ensure(item_id)
        st.seen += 1
        st.last_seen_at = self.clock() if now is None else now
        self.save()
        return st

    def record_result(self, item_id: str, phase: Phase, is_correct: bool) -> ItemStatistics:
        """Count an answer for the given phase."""
        st = self.ensure(item_id)
        if phase == Phase.MEANING:
            if is_correct:
                st.correct_meaning += 1
            else:
                st.wrong_meaning += 1
        elif phase == Phase.ARTICLE:
            if is_correct:
                st.correct_article += 1
            else:
                st.wrong_article += 1
        else:
            raise ValueError(f"Unknown phase: {phase!r}")
        self.save()
        return st

    def save(self) -> None:
        self.storage.save(self.stats)

    def summary(self) -> Dict[str, float]:
        """Totals over all items."""
        records = list(self.stats.values())
        correct_meaning = sum(st.correct_meaning for st in records)
        wrong_meaning = sum(st.wrong_meaning for st in records)
        correct_article = sum(st.correct_article for st in records)
        wrong_article = sum(st.wrong_article for st in records)
        meaning_total = correct_meaning + wrong_meaning
        article_total = correct_article + wrong_article
        return {
            "items_seen": sum(1 for st in records if st.seen > 0),
            "presentations": sum(st.seen for st in records),
            "answers": meaning_total + article_total,
            "meaning_accuracy": correct_meaning / meaning_total if meaning_total else 0.0,
            "article_accuracy": correct_article / article_total if article_total else 0.0,
        }

    def most_missed(self, limit: int = 5) -> List[Tuple[str, ItemStatistics]]:
        """Items with the most wrong answers, most missed first."""
        missed = [(item_id, st) for item_id, st in self.stats.items() if st.total_wrong > 0]
        missed.sort(key=lambda pair: (-pair[1].total_wrong, pair[0]))
        return missed[:limit]
