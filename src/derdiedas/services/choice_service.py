"""Answer options for both phases of a presentation."""
import logging
import random
from typing import List, Optional, Sequence, Tuple

from derdiedas.config import DrillSettings, settings
from derdiedas.models.vocab_models import Choice, VocabItem

logger = logging.getLogger(__name__)


def shuffled(items: Sequence, rng: random.Random) -> list:
    """Return a shuffled copy."""
    result = list(items)
    rng.shuffle(result)
    return result


def pick_distractors(
    item: VocabItem,
    catalog: Sequence[VocabItem],
    rng: random.Random,
    drill: Optional[DrillSettings] = None,
) -> List[VocabItem]:
    """Choose wrong options for the meaning phase.

    Items sharing a tag with the target are preferred; with too few of them the
    rest of the catalog is added. Among the candidates, items with a different
    article are preferred so the meaning phase does not give the article away.
    """
    drill = drill or settings.drill
    others = [x for x in catalog if x.id != item.id]

    same_tag = [x for x in others if x.shares_tag_with(item)]
    if len(same_tag) >= drill.same_tag_min_candidates:
        candidates = same_tag
    else:
        candidates = same_tag + others

    diff_article = [x for x in candidates if x.article != item.article]
    preferred = diff_article if len(diff_article) >= drill.min_different_article_candidates else candidates

    distractors: List[VocabItem] = []
    chosen_ids = set()
    for candidate in shuffled(preferred, rng):
        if candidate.id in chosen_ids:
            continue
        distractors.append(candidate)
        chosen_ids.add(candidate.id)
        if len(distractors) >= drill.distractor_count:
            return distractors

    rest = [x for x in others if x.id not in chosen_ids]
    missing = drill.distractor_count - len(distractors)
    distractors.extend(shuffled(rest, rng)[:missing])
    return distractors


def build_meaning_choices(
    item: VocabItem,
    catalog: Sequence[VocabItem],
    rng: Optional[random.Random] = None,
    drill: Optional[DrillSettings] = None,
) -> Tuple[Choice, ...]:
    """The target item among its distractors, in random order."""
    rng = rng or random.Random()
    distractors = pick_distractors(item, catalog, rng, drill)
    logger.debug(f"Distractors for {item.id}: {[d.id for d in distractors]}")
    return tuple(
        Choice(id=x.id, display=x.display, is_correct=x.id == item.id)
        for x in shuffled([item, *distractors], rng)
    )


def article_choices(drill: Optional[DrillSettings] = None) -> Tuple[str, ...]:
    """Options for the article phase, always in the same order."""
    drill = drill or settings.drill
    return tuple(drill.articles)
