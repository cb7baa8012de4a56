"""Adaptive item selection: weighting, weighted sampling and requeueing."""
import logging
import random
from typing import Callable, List, Optional, Sequence, TypeVar

from derdiedas.config import DrillSettings, settings
from derdiedas.models.vocab_models import ItemStatistics, VocabItem

logger = logging.getLogger(__name__)

T = TypeVar("T")

SECONDS_PER_HOUR = 60 * 60


def error_rate(st: ItemStatistics) -> float:
    """Share of wrong answers over both phases, 0 when never answered."""
    total = st.total_answers
    if total == 0:
        return 0.0
    return st.total_wrong / total


def recency_factor(st: ItemStatistics, now: float, drill: Optional[DrillSettings] = None) -> float:
    """Suppression factor for items seen within the recent window.

    Grows linearly from ``recent_min_factor`` (seen just now) to 1.0 at the
    window boundary. Never 0, so a recently seen item stays reachable.
    """
    drill = drill or settings.drill
    if not st.last_seen_at:
        return 1.0
    hours = (now - st.last_seen_at) / SECONDS_PER_HOUR
    if hours >= drill.recent_penalty_hours:
        return 1.0

    x = max(0.0, hours / drill.recent_penalty_hours)
    return drill.recent_min_factor + (1.0 - drill.recent_min_factor) * x


def item_weight(
    item: VocabItem,
    st: ItemStatistics,
    now: float,
    drill: Optional[DrillSettings] = None,
) -> float:
    """Relative draw weight of an item: new bonus x error boost x recency factor."""
    drill = drill or settings.drill

    new_bonus = drill.new_item_bonus if st.seen == 0 else 1.0
    err_boost = 1.0 + error_rate(st) * drill.error_weight
    rec = recency_factor(st, now, drill)

    weight = new_bonus * err_boost * rec
    logger.debug(f"Weight of {item.id}: {weight:.3f} (new={new_bonus}, err={err_boost:.3f}, rec={rec:.3f})")
    return weight


def pick_weighted_unique(
    items: Sequence[T],
    k: int,
    weight_fn: Callable[[T], float],
    rng: Optional[random.Random] = None,
) -> List[T]:
    """Draw up to k distinct items, each draw proportional to the recomputed weights.

    Weights are recomputed on every draw since removing an item changes the
    shares of the remaining ones. If all remaining weights are non-positive
    the first remaining item is taken.
    """
    rng = rng or random.Random()
    pool = list(items)
    picked: List[T] = []

    while len(picked) < k and pool:
        weights = [max(0.0, weight_fn(candidate)) for candidate in pool]
        total = sum(weights)

        if total <= 0:
            picked.append(pool.pop(0))
            continue

        r = rng.random() * total
        cumulative = 0.0
        idx = None
        for i, w in enumerate(weights):
            cumulative += w
            if w > 0 and cumulative >= r:
                idx = i
                break
        if idx is None:
            # Float rounding left r just above the last cumulative sum
            idx = max(i for i, w in enumerate(weights) if w > 0)

        picked.append(pool.pop(idx))

    return picked


def requeue_distance(st: ItemStatistics, drill: Optional[DrillSettings] = None) -> int:
    """Offset from the queue front at which a missed item is reinserted.

    Items missed more often come back sooner: 6 for a fresh miss, down to 2.
    """
    drill = drill or settings.drill
    offset = drill.requeue_max_offset - st.total_wrong // 2
    return max(drill.requeue_min_offset, min(drill.requeue_max_offset, offset))


def requeue(queue: List[T], item: T, st: ItemStatistics, drill: Optional[DrillSettings] = None) -> int:
    """Splice the item back into the queue, never past its current end."""
    insert_at = min(len(queue), requeue_distance(st, drill))
    queue.insert(insert_at, item)
    return insert_at
