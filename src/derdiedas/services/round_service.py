"""Round scheduling: builds the queue, walks through it and requeues misses."""
import logging
import random
from typing import Callable, List, Optional, Sequence, Tuple

from derdiedas.config import DrillSettings, settings
from derdiedas.models.vocab_models import (
    AnswerOutcome,
    Choice,
    Phase,
    RoundSnapshot,
    RoundState,
    VocabItem,
)
from derdiedas.monitoring import (
    answers,
    items_completed,
    queue_length,
    requeues,
    rounds_completed,
    rounds_started,
)
from derdiedas.services.choice_service import article_choices, build_meaning_choices
from derdiedas.services.selection import item_weight, pick_weighted_unique, requeue
from derdiedas.services.statistics_service import StatisticsStore

logger = logging.getLogger(__name__)


class RoundScheduler:
    """Drives a drill round.

    Every drawn item is asked in the meaning phase first, then in the article
    phase. It leaves the round only after both are answered correctly in one
    go; a miss in either phase puts it back into the queue, and it restarts at
    the meaning phase when drawn again. Except after a correct meaning answer,
    the caller has to call ``next_item`` to move on.
    """

    def __init__(
        self,
        catalog: Sequence[VocabItem],
        stats: StatisticsStore,
        rng: Optional[random.Random] = None,
        drill: Optional[DrillSettings] = None,
        clock: Optional[Callable[[], float]] = None,
        on_outcome: Optional[Callable[[AnswerOutcome], None]] = None,
    ):
        """Initialize the scheduler. The catalog and statistics must already be loaded."""
        self.catalog = list(catalog)
        self.stats = stats
        self.rng = rng or random.Random()
        self.drill = drill or settings.drill
        self.clock = clock or stats.clock
        self.on_outcome = on_outcome

        self.state = RoundState.COMPLETE
        self.target = 0
        self.done = 0
        self.score = 0
        self.streak = 0
        self.queue: List[VocabItem] = []
        self.current: Optional[VocabItem] = None
        self.clue = ""
        self.choices: Tuple[Choice, ...] = ()
        self.awaiting_next = False
        self._busy = False

    @property
    def is_complete(self) -> bool:
        return self.state == RoundState.COMPLETE

    def build_round_queue(self, target: int) -> List[VocabItem]:
        """Pick the round's items, favouring new, error-prone and not recently seen ones."""
        self.stats.ensure_all(item.id for item in self.catalog)
        now = self.clock()
        return pick_weighted_unique(
            self.catalog,
            target,
            lambda item: item_weight(item, self.stats.ensure(item.id), now, self.drill),
            self.rng,
        )

    def start_round(self, target: Optional[int] = None) -> RoundSnapshot:
        """Discard any current round state and start a new round."""
        target = self.drill.target_sets if target is None else target
        self.queue = self.build_round_queue(target)
        # A catalog smaller than the target gives a shorter round
        self.target = len(self.queue)
        self.done = 0
        self.score = 0
        self.streak = 0
        self.current = None
        self.awaiting_next = False
        self._busy = False
        rounds_started.inc()
        logger.info(f"Round started with {self.target} items (requested {target})")

        self._advance()
        return self.snapshot()

    def next_item(self) -> RoundSnapshot:
        """Move on after an answer that finished the current presentation."""
        if not self.awaiting_next:
            logger.debug("Ignoring next_item, current presentation is not finished")
            return self.snapshot()
        self._advance()
        return self.snapshot()

    def _advance(self) -> None:
        self.awaiting_next = False
        if self.done >= self.target or not self.queue:
            if self.state != RoundState.COMPLETE:
                rounds_completed.inc()
                logger.info(f"Round complete: {self.done}/{self.target}, score {self.score}")
            self.state = RoundState.COMPLETE
            self.current = None
            self.clue = ""
            self.choices = ()
            queue_length.set(len(self.queue))
            return

        self.current = self.queue.pop(0)
        queue_length.set(len(self.queue))
        self.stats.record_seen(self.current.id, self.clock())
        self.state = RoundState.AWAITING_MEANING
        self.clue = self.rng.choice(self.current.clues)
        self.choices = build_meaning_choices(self.current, self.catalog, self.rng, self.drill)
        logger.debug(f"Presenting {self.current.id}, {len(self.queue)} items left in queue")

    def _accepts(self, state: RoundState) -> bool:
        if self._busy:
            logger.debug("Ignoring answer, another answer is being processed")
            return False
        if self.state != state or self.awaiting_next or self.current is None:
            logger.debug(f"Ignoring answer in state {self.state.value}")
            return False
        return True

    def answer_meaning(self, choice_id: str) -> Optional[AnswerOutcome]:
        """Answer the meaning phase. Returns None if no answer is expected right now."""
        if not self._accepts(RoundState.AWAITING_MEANING):
            return None
        chosen = next((c.display for c in self.choices if c.id == choice_id), None)
        if chosen is None:
            logger.debug(f"Ignoring answer {choice_id}, it is not one of the offered choices")
            return None

        self._busy = True
        try:
            item = self.current
            is_correct = choice_id == item.id
            self._record(item, Phase.MEANING, is_correct)

            if is_correct:
                self.state = RoundState.AWAITING_ARTICLE
            else:
                self._requeue(item)
                self.awaiting_next = True

            return self._emit(item, Phase.MEANING, is_correct, item.display, chosen)
        finally:
            self._busy = False

    def answer_article(self, article: str) -> Optional[AnswerOutcome]:
        """Answer the article phase. Returns None if no answer is expected right now."""
        if not self._accepts(RoundState.AWAITING_ARTICLE):
            return None
        if article not in self.drill.articles:
            logger.debug(f"Ignoring answer {article}, it is not one of the offered articles")
            return None

        self._busy = True
        try:
            item = self.current
            is_correct = article == item.article
            self._record(item, Phase.ARTICLE, is_correct)

            if is_correct:
                self.done += 1
                items_completed.inc()
            else:
                self._requeue(item)
            self.awaiting_next = True

            return self._emit(item, Phase.ARTICLE, is_correct, item.article, article)
        finally:
            self._busy = False

    def _record(self, item: VocabItem, phase: Phase, is_correct: bool) -> None:
        self.stats.record_result(item.id, phase, is_correct)
        answers.labels(phase=phase.value, result="correct" if is_correct else "wrong").inc()
        if is_correct:
            self.score += self.drill.score_correct
            self.streak += 1
        else:
            self.score = max(0, self.score - self.drill.score_wrong)
            self.streak = 0
        logger.debug(f"{phase.value} answer for {item.id}: {'correct' if is_correct else 'wrong'}")

    def _requeue(self, item: VocabItem) -> None:
        position = requeue(self.queue, item, self.stats.ensure(item.id), self.drill)
        requeues.inc()
        queue_length.set(len(self.queue))
        logger.debug(f"Requeued {item.id} at position {position}")

    def _emit(self, item: VocabItem, phase: Phase, is_correct: bool, correct_answer: str, chosen: str) -> AnswerOutcome:
        outcome = AnswerOutcome(
            item=item,
            phase=phase,
            is_correct=is_correct,
            correct_answer=correct_answer,
            chosen=chosen,
            round_state=self.state,
            awaiting_next=self.awaiting_next,
            score=self.score,
            streak=self.streak,
        )
        if self.on_outcome:
            self.on_outcome(outcome)
        return outcome

    def snapshot(self) -> RoundSnapshot:
        """Current view of the round for the presentation layer."""
        return RoundSnapshot(
            state=self.state,
            target=self.target,
            done=self.done,
            score=self.score,
            streak=self.streak,
            item=self.current,
            clue=self.clue,
            choices=self.choices if self.state == RoundState.AWAITING_MEANING else (),
            articles=article_choices(self.drill) if self.state == RoundState.AWAITING_ARTICLE else (),
        )
