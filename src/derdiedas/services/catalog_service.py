"""Service for loading the vocabulary catalog."""
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from derdiedas.config import settings
from derdiedas.models.vocab_models import VocabItem

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("id", "article", "lemma", "display", "clues")


class CatalogError(Exception):
    """Raised when the catalog cannot be read or is malformed."""


def parse_item(record: Dict[str, Any], articles: Sequence[str]) -> VocabItem:
    """Build a VocabItem from a raw catalog record."""
    if not isinstance(record, dict):
        raise CatalogError(f"Catalog record must be an object, got {type(record).__name__}")

    missing = [name for name in REQUIRED_FIELDS if name not in record]
    if missing:
        raise CatalogError(f"Catalog record {record.get('id')!r} is missing fields: {', '.join(missing)}")

    if record["article"] not in articles:
        raise CatalogError(f"Catalog record {record['id']!r} has unknown article {record['article']!r}")

    clues = record["clues"]
    if isinstance(clues, str) or not clues:
        raise CatalogError(f"Catalog record {record['id']!r} needs a non-empty list of clues")

    return VocabItem(
        id=str(record["id"]),
        article=record["article"],
        lemma=record["lemma"],
        display=record["display"],
        tags=frozenset(record.get("tags") or ()),
        clues=tuple(clues),
    )


def parse_catalog(data: Any, articles: Optional[Sequence[str]] = None) -> List[VocabItem]:
    """Parse a decoded catalog document of the form {"items": [...]}."""
    articles = articles or settings.drill.articles
    if not isinstance(data, dict) or not isinstance(data.get("items"), list):
        raise CatalogError("Catalog must be an object with an 'items' list")

    items = [parse_item(record, articles) for record in data["items"]]

    seen_ids = set()
    for item in items:
        if item.id in seen_ids:
            raise CatalogError(f"Duplicate catalog id {item.id!r}")
        seen_ids.add(item.id)

    return items


def load_catalog(path: Optional[Path] = None) -> List[VocabItem]:
    """Read the catalog from a JSON file. Any failure is fatal to the caller."""
    path = Path(path or settings.catalog.path)
    logger.info(f"Loading catalog from {path}")
    try:
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise CatalogError(f"Could not read catalog {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise CatalogError(f"Catalog {path} is not valid JSON: {e}") from e

    items = parse_catalog(data)
    logger.info(f"Loaded {len(items)} catalog items")
    return items
