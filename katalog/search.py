"""
Katalog: Search/Filter

Pure functions deriving the visible list from the full collection.
Matching is a normalized, case-insensitive substring test over each
searchable field. Results keep collection order; there is no relevance
ranking.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable, Sequence
from typing import Protocol, TypeVar

from katalog.types import Kata, KataCategory

_WHITESPACE = re.compile(r"\s+")

_PUNCTUATION_FOLDS = str.maketrans(
    {
        "\u2018": "'",
        "\u2019": "'",
        "\u201c": '"',
        "\u201d": '"',
        "\u2013": "-",
        "\u2014": "-",
    }
)


class Searchable(Protocol):
    def searchable_fields(self) -> Iterable[str]: ...


T = TypeVar("T", bound=Searchable)


def normalize_search_text(text: str) -> str:
    """
    Lowercase, strip diacritics, fold smart quotes and dashes, and collapse
    whitespace, so "Café  Kankū" and "cafe kanku" compare equal.
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFKD", text.lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    stripped = stripped.translate(_PUNCTUATION_FOLDS)
    return _WHITESPACE.sub(" ", stripped).strip()


def matches(item: Searchable, query: str) -> bool:
    """True if any searchable field contains the query."""
    needle = normalize_search_text(query)
    if not needle:
        return True
    return any(needle in normalize_search_text(value) for value in item.searchable_fields())


def filter_items(
    items: Sequence[T],
    query: str,
    category: KataCategory | None = None,
) -> list[T]:
    """
    Order-preserving subsequence of `items` matching `query`.

    The category filter only applies to katas and runs before the text
    match. An empty query with no category returns the whole collection.
    """
    filtered: list[T] = list(items)

    if category is not None and category != KataCategory.ALL:
        filtered = [
            item for item in filtered if isinstance(item, Kata) and KataCategory.from_style(item.style) == category
        ]

    needle = normalize_search_text(query)
    if not needle:
        return filtered

    return [item for item in filtered if any(needle in normalize_search_text(v) for v in item.searchable_fields())]
