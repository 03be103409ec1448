"""
Catalog query engine.

Turns the full list of dresses into the list the browsing UI renders:
category filter, then fuzzy text search, then sort. Every call is independent;
nothing is remembered between calls and the input records are never mutated.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Sequence

from . import fuzzy, variants
from .config import FUZZY_THRESHOLD

ALL_CATEGORIES = "All"

SEARCH_FIELDS = ("name", "code", "category", "note")


class SortKey(str, Enum):
    """Sort orders offered by the catalog."""
    NEWEST = "newest"
    PRICE_ASCENDING = "price_asc"
    PRICE_DESCENDING = "price_desc"


def filter_by_category(records: Sequence, category: Optional[str]) -> List:
    """
    Keep records whose category equals ``category`` exactly.

    ``"All"`` (or no category at all) keeps everything.
    """
    if not category or category == ALL_CATEGORIES:
        return list(records)
    return [record for record in records if record.category == category]


def search(records: Sequence, search_text: Optional[str], threshold: float = FUZZY_THRESHOLD) -> List:
    """
    Fuzzy search over name, code, category and note.

    Records whose best field score exceeds ``threshold`` are dropped; the rest
    are ordered best match first (ties keep their input order). A blank
    ``search_text`` returns the input unchanged.

    Where a hit falls inside a field does not matter: a close match deep in
    a long note scores the same as one at the start of the name.
    """
    pattern = (search_text or "").strip()
    if not pattern:
        return list(records)

    scored = []
    for record in records:
        score = fuzzy.best_score(pattern, (getattr(record, field, None) for field in SEARCH_FIELDS))
        if score <= threshold:
            scored.append((score, record))
    scored.sort(key=lambda pair: pair[0])
    return [record for _score, record in scored]


def _created_at(record) -> datetime:
    """Creation time as naive UTC; missing or unparseable values are oldest."""
    value = getattr(record, "created_at", None)
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            value = None
    if not isinstance(value, datetime):
        return datetime.min
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def sort_records(records: Sequence, sort_key: SortKey) -> List:
    """
    Stable sort by recency or by lowest size price.

    Dresses without sizes have no known price; they are kept, after every
    priced dress, in both price orders.
    """
    sort_key = SortKey(sort_key)
    if sort_key is SortKey.NEWEST:
        return sorted(records, key=_created_at, reverse=True)

    priced = []
    unpriced = []
    for record in records:
        price = variants.min_price(record.sizes)
        if price is None:
            unpriced.append(record)
        else:
            priced.append((price, record))
    descending = sort_key is SortKey.PRICE_DESCENDING
    priced.sort(key=lambda pair: pair[0], reverse=descending)
    return [record for _price, record in priced] + unpriced


class CatalogQueryEngine:
    """
    Applies category filter, fuzzy search and sort, in that order.

    Example usage:
        engine = CatalogQueryEngine()
        visible = engine.apply(dresses, category="Summer", search_text="flral", sort_key="price_asc")
    """

    def __init__(self, threshold: float = FUZZY_THRESHOLD) -> None:
        self.threshold = threshold

    def apply(
        self,
        records: Sequence,
        category: Optional[str] = ALL_CATEGORIES,
        search_text: Optional[str] = "",
        sort_key: SortKey = SortKey.NEWEST,
    ) -> List:
        result = filter_by_category(records, category)
        result = search(result, search_text, self.threshold)
        return sort_records(result, sort_key)
