"""
MovieFinder — Result ordering

Pure, non-network transforms over an already-fetched result list.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Sequence

from moviefinder.models import EnrichedMovie, SortKey

_SORT_FIELDS: Dict[str, Callable[[EnrichedMovie], float]] = {
    "rating": lambda m: m.rating,
    "year": lambda m: m.release_year,
}


def sort_movies(movies: Sequence[EnrichedMovie], by: SortKey) -> List[EnrichedMovie]:
    """
    Return a new list ordered by ``by``, highest first.

    Stable: movies with equal keys keep their relative order. The input
    sequence and the records in it are left untouched.
    """
    try:
        key = _SORT_FIELDS[by]
    except KeyError:
        raise ValueError(f"Unknown sort key {by!r}; expected one of {sorted(_SORT_FIELDS)}") from None
    return sorted(movies, key=key, reverse=True)
