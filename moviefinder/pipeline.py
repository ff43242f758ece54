"""
MovieFinder — Search Pipeline

Design patterns:
  - Strategy: MovieSource picks catalog search or generative completion
  - Facade: run_search() is the single resolve → enrich entry point
  - Single Writer: SearchController owns the displayed result list and
    only lets the most recent search publish to it

Pipeline flow:
  Resolve (search / completion) → Enrich (credits, trailer, providers) → Publish
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, List, Optional, Protocol, Sequence

from moviefinder.agents.enrichment import enrich_candidates
from moviefinder.agents.resolver import resolve_from_catalog, resolve_from_model
from moviefinder.config import settings
from moviefinder.errors import MovieSearchError
from moviefinder.models import EnrichedMovie, SearchOutcome, SortKey
from moviefinder.sorting import sort_movies

logger = logging.getLogger(__name__)

ResultsCallback = Callable[[List[EnrichedMovie]], None]
ErrorCallback = Callable[[str, str], None]
PhaseCallback = Callable[[str], None]


# ── Sources (Strategy) ────────────────────────────────────


class MovieSource(Protocol):
    name: str

    async def resolve(self, query: str) -> List[Any]: ...

    async def enrich(self, items: Sequence[Any]) -> List[EnrichedMovie]: ...


class CatalogSource:
    """TMDB keyword search followed by per-movie enrichment."""

    name = "catalog"

    def __init__(self, max_results: Optional[int] = None) -> None:
        self.max_results = max_results or settings.max_results

    async def resolve(self, query: str) -> List[Any]:
        return await resolve_from_catalog(query, limit=self.max_results)

    async def enrich(self, items: Sequence[Any]) -> List[EnrichedMovie]:
        return await enrich_candidates(items)


class GenerativeSource:
    """One LLM completion that already yields complete movies."""

    name = "generative"

    def __init__(self, max_results: Optional[int] = None) -> None:
        self.max_results = max_results or settings.max_results

    async def resolve(self, query: str) -> List[Any]:
        return await resolve_from_model(query, limit=self.max_results)

    async def enrich(self, items: Sequence[Any]) -> List[EnrichedMovie]:
        return list(items)


def get_source(name: Optional[str] = None) -> MovieSource:
    """Factory: build the source named in settings (or ``name``)."""
    name = name or settings.movie_source
    if name == "catalog":
        return CatalogSource()
    if name == "generative":
        return GenerativeSource()
    raise ValueError(f"Unknown movie source: {name!r}")


# ── Facade ────────────────────────────────────────────────


async def run_search(
    query: str,
    source: MovieSource,
    *,
    on_phase: Optional[PhaseCallback] = None,
) -> List[EnrichedMovie]:
    """
    Resolve ``query`` and enrich the results. Raises MovieSearchError.

    ``on_phase`` is called with "resolving" and "enriching" just before
    each step starts.
    """
    t0 = time.perf_counter()

    if on_phase:
        on_phase("resolving")
    logger.info("Phase 1 — Resolve (%s): query=%r", source.name, query[:80])
    items = await source.resolve(query)

    logger.info("Phase 2 — Enrich %d results", len(items))
    if on_phase:
        on_phase("enriching")
    movies = await source.enrich(items)

    logger.info("Search complete in %d ms", int((time.perf_counter() - t0) * 1000))
    return movies


# ── Controller (single writer of the displayed list) ──────


class SearchController:
    """
    Owns the currently displayed result list.

    Every search takes a new generation number. A search only publishes
    (results or error) if no newer search has started since; older
    completions are discarded. Searches are never cancelled.
    """

    def __init__(
        self,
        source: MovieSource,
        on_results: Optional[ResultsCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self.source = source
        self.on_results = on_results
        self.on_error = on_error
        self.results: List[EnrichedMovie] = []
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def search(
        self,
        query: str,
        *,
        on_phase: Optional[PhaseCallback] = None,
    ) -> Optional[SearchOutcome]:
        """
        Run one search. Blank queries are ignored and return None.

        ``on_phase`` reports progress for this search only; it is not
        subject to the generation check.
        """
        query = query.strip()
        if not query:
            return None

        self._generation += 1
        generation = self._generation

        try:
            movies = await run_search(query, self.source, on_phase=on_phase)
        except MovieSearchError as exc:
            outcome = SearchOutcome(
                generation=generation,
                error_kind=exc.kind,
                error_message=exc.message,
            )
            if not self._is_current(generation):
                logger.debug("Dropping stale error from search #%d (%s)", generation, exc.kind)
                return outcome
            outcome.published = True
            self.results = []
            if self.on_error:
                self.on_error(exc.kind, exc.message)
            return outcome

        if not self._is_current(generation):
            logger.debug("Dropping stale results from search #%d (current #%d)", generation, self._generation)
            return SearchOutcome(generation=generation, movies=movies)

        self.results = movies
        if self.on_results:
            self.on_results(self.results)
        return SearchOutcome(generation=generation, published=True, movies=movies)

    def sort(self, by: SortKey) -> List[EnrichedMovie]:
        """Reorder the displayed list and republish it."""
        self.results = sort_movies(self.results, by)
        if self.on_results:
            self.on_results(self.results)
        return self.results
