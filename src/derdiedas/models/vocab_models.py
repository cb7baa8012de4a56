"""Models for vocabulary items, their statistics and drill outcomes."""
import math
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple


class Phase(Enum):
    """Sub-steps of a single item's presentation."""
    MEANING = "meaning"  # Pick the item matching a clue among distractors
    ARTICLE = "article"  # Pick the item's article


class RoundState(Enum):
    """States of a drill round."""
    AWAITING_MEANING = "awaiting_meaning"
    AWAITING_ARTICLE = "awaiting_article"
    COMPLETE = "complete"


@dataclass(frozen=True)
class VocabItem:
    """A catalog entry. Immutable for the lifetime of the process."""
    id: str
    article: str
    lemma: str
    display: str
    tags: FrozenSet[str] = frozenset()
    clues: Tuple[str, ...] = ()

    def shares_tag_with(self, other: "VocabItem") -> bool:
        """Check whether both items have at least one tag in common."""
        return not self.tags.isdisjoint(other.tags)


COUNTERS = ("seen", "correct_meaning", "wrong_meaning", "correct_article", "wrong_article")


@dataclass
class ItemStatistics:
    """Per-item counters, persisted between sessions."""
    seen: int = 0
    correct_meaning: int = 0
    wrong_meaning: int = 0
    correct_article: int = 0
    wrong_article: int = 0
    last_seen_at: float = 0.0  # epoch seconds, 0 means never seen

    @property
    def total_answers(self) -> int:
        return self.correct_meaning + self.wrong_meaning + self.correct_article + self.wrong_article

    @property
    def total_wrong(self) -> int:
        return self.wrong_meaning + self.wrong_article

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ItemStatistics":
        """Create statistics from stored data. Unknown keys are ignored, missing counters default to 0.

        Raises:
            TypeError: If data is not a mapping.
            ValueError: If a counter is negative or a value is not a finite number.
            OverflowError: If a counter is infinite.
        """
        if not isinstance(data, dict):
            raise TypeError(f"Expected a mapping, got {type(data).__name__}")
        stats = cls(
            seen=int(data.get("seen", 0)),
            correct_meaning=int(data.get("correct_meaning", 0)),
            wrong_meaning=int(data.get("wrong_meaning", 0)),
            correct_article=int(data.get("correct_article", 0)),
            wrong_article=int(data.get("wrong_article", 0)),
            last_seen_at=float(data.get("last_seen_at", 0.0) or 0.0),
        )
        for name in COUNTERS:
            if getattr(stats, name) < 0:
                raise ValueError(f"Counter {name} is negative")
        if not math.isfinite(stats.last_seen_at) or stats.last_seen_at < 0:
            raise ValueError(f"Invalid last_seen_at {stats.last_seen_at}")
        return stats


@dataclass(frozen=True)
class Choice:
    """One answer option of the meaning phase."""
    id: str
    display: str
    is_correct: bool


@dataclass
class AnswerOutcome:
    """Result of an answer submission, handed to the presentation layer."""
    item: VocabItem
    phase: Phase
    is_correct: bool
    correct_answer: str
    chosen: str
    round_state: RoundState
    awaiting_next: bool
    score: int = 0
    streak: int = 0

    @property
    def message(self) -> str:
        """Short feedback line for the learner."""
        if self.is_correct:
            return f"✅ Richtig: {self.item.display}"
        if self.phase == Phase.ARTICLE:
            return f"❌ Falsch. Richtig: {self.item.article} ({self.item.lemma})"
        return f"❌ Falsch. Richtig: {self.item.display}"


@dataclass
class RoundSnapshot:
    """Read-only view of the round for rendering."""
    state: RoundState
    target: int
    done: int
    score: int
    streak: int
    item: Optional[VocabItem]
    clue: str
    choices: Tuple[Choice, ...]
    articles: Tuple[str, ...]
