"""
MovieFinder — Detail Aggregator

Design patterns:
  - Parallel Aggregator: credits + videos + providers fetched concurrently
  - Batch Processor: all candidates enriched in parallel
  - Builder: merge_movie() assembles an EnrichedMovie from a Candidate
    and its enrichment outcome

A candidate whose lookups fail is never dropped: it becomes a
``Degraded`` outcome and keeps its base fields.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import List, Optional, Sequence

from moviefinder.clients.tmdb import get_movie_credits, get_movie_videos, get_watch_providers
from moviefinder.config import settings
from moviefinder.models import (
    NO_DIRECTOR,
    NO_PLOT,
    UNKNOWN_TITLE,
    Candidate,
    Degraded,
    EnrichedMovie,
    Enrichment,
    EnrichmentOutcome,
)
from moviefinder.payloads import (
    CreditsPayload,
    MalformedPayload,
    ProvidersPayload,
    VideosPayload,
    decode,
)

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"\s*(\d+)")


def _extract_year(date_str: Optional[str]) -> int:
    if not date_str:
        return 0
    match = _LEADING_INT.match(date_str.split("-")[0])
    return int(match.group(1)) if match else 0


def _poster_url(poster_path: Optional[str]) -> str:
    if poster_path:
        return f"{settings.tmdb_image_base}{poster_path}"
    return settings.poster_placeholder_url


# ── Field selection (pure) ───────────────────────────────


def _top_cast(credits: CreditsPayload, limit: int) -> List[str]:
    names = [member.name for member in credits.cast if member.name]
    return names[:limit]


def _director(credits: CreditsPayload) -> str:
    for member in credits.crew:
        if member.job == "Director" and member.name:
            return member.name
    return NO_DIRECTOR


def _trailer_key(videos: VideosPayload) -> str:
    """First YouTube trailer in upstream order, or ""."""
    for video in videos.results:
        if video.site == "YouTube" and video.type == "Trailer" and video.key:
            return video.key
    return ""


def _flatrate_platforms(providers: ProvidersPayload, region: str) -> List[str]:
    return [p.provider_name for p in providers.region(region).flatrate if p.provider_name]


# ── Enrich a single candidate ────────────────────────────


async def fetch_enrichment(candidate: Candidate) -> EnrichmentOutcome:
    """Run the three lookups for one candidate and fold them into an outcome."""
    movie_id = candidate.id
    raw_credits, raw_videos, raw_providers = await asyncio.gather(
        get_movie_credits(movie_id),
        get_movie_videos(movie_id),
        get_watch_providers(movie_id),
        return_exceptions=True,
    )

    for raw in (raw_credits, raw_videos, raw_providers):
        if isinstance(raw, asyncio.CancelledError):
            raise raw
        if isinstance(raw, Exception):
            logger.warning("Enrichment degraded for movie %d: %r", movie_id, raw)
            return Degraded(reason=f"{type(raw).__name__}: {raw}")

    try:
        credits = decode(CreditsPayload, raw_credits)
        videos = decode(VideosPayload, raw_videos)
        providers = decode(ProvidersPayload, raw_providers)
    except MalformedPayload as exc:
        logger.warning("Enrichment degraded for movie %d: %s", movie_id, exc)
        return Degraded(reason=str(exc))

    return Enrichment(
        cast=_top_cast(credits, settings.cast_limit),
        director=_director(credits),
        streaming_platforms=_flatrate_platforms(providers, settings.watch_region),
        trailer_id=_trailer_key(videos),
    )


def merge_movie(candidate: Candidate, outcome: EnrichmentOutcome) -> EnrichedMovie:
    """Combine base fields with an enrichment outcome. Degraded → defaults."""
    enrichment = outcome if isinstance(outcome, Enrichment) else Enrichment()
    return EnrichedMovie(
        title=candidate.title or UNKNOWN_TITLE,
        plot=candidate.overview or NO_PLOT,
        rating=candidate.vote_average if candidate.vote_average is not None else 0.0,
        release_year=_extract_year(candidate.release_date),
        poster_url=_poster_url(candidate.poster_path),
        cast=list(enrichment.cast),
        director=enrichment.director,
        streaming_platforms=list(enrichment.streaming_platforms),
        trailer_id=enrichment.trailer_id,
    )


async def enrich_movie(candidate: Candidate) -> EnrichedMovie:
    return merge_movie(candidate, await fetch_enrichment(candidate))


# ── Batch enrichment ─────────────────────────────────────


async def enrich_candidates(candidates: Sequence[Candidate]) -> List[EnrichedMovie]:
    """
    Enrich every candidate in parallel.

    Output has the same length and order as the input; the list is only
    returned once every candidate has finished.
    """
    if not candidates:
        return []

    outcomes = await asyncio.gather(*[fetch_enrichment(c) for c in candidates])
    movies = [merge_movie(c, o) for c, o in zip(candidates, outcomes)]

    degraded = sum(1 for o in outcomes if isinstance(o, Degraded))
    logger.info("Enriched %d movies (%d degraded)", len(movies), degraded)
    return movies
