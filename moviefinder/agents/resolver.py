"""
MovieFinder — Query Resolver

Design patterns:
  - Strategy: catalog keyword search vs. generative completion
  - Adapter: upstream results → Candidate / EnrichedMovie

Turns a free-text query into a bounded, upstream-ordered list of movies.
Transport or parse failures raise ``ResolveFailed``; a well-formed empty
answer raises ``NoMatches``.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from moviefinder.clients import chat_completion
from moviefinder.clients.tmdb import search_movies
from moviefinder.config import settings
from moviefinder.errors import NoMatches, ResolveFailed
from moviefinder.models import (
    NO_DIRECTOR,
    NO_PLOT,
    UNKNOWN_TITLE,
    Candidate,
    EnrichedMovie,
)
from moviefinder.payloads import GeneratedMovie, MalformedPayload, SearchPayload, decode

logger = logging.getLogger(__name__)


# ── Strategy A: catalog search ────────────────────────────


async def resolve_from_catalog(query: str, *, limit: Optional[int] = None) -> List[Candidate]:
    """Search TMDB by title and return at most ``limit`` candidates."""
    query = query.strip()
    if not query:
        return []
    limit = limit or settings.max_results

    try:
        raw = await search_movies(query)
        payload = decode(SearchPayload, raw)
    except (httpx.HTTPError, ValueError) as exc:
        # MalformedPayload and JSONDecodeError are both ValueErrors
        logger.error("Catalog search failed for %r: %s", query, exc)
        raise ResolveFailed() from exc

    candidates = [
        Candidate(
            id=item.id,
            title=item.title,
            overview=item.overview,
            vote_average=item.vote_average,
            release_date=item.release_date,
            poster_path=item.poster_path,
        )
        for item in payload.results
        if item.id is not None
    ]
    if not candidates:
        raise NoMatches()

    logger.info("Catalog search %r: %d results, keeping %d", query, len(candidates), min(len(candidates), limit))
    return candidates[:limit]


# ── Strategy B: generative completion ─────────────────────

_SYSTEM_PROMPT = """\
You are a film expert. Find movies that match the user's request.

Reply ONLY with a valid JSON array, no markdown and no extra text. Each element:
{"title": "...", "plot": "...", "rating": <0-10>, "releaseYear": <int>,
 "posterUrl": "...", "cast": ["..."], "director": "...",
 "streamingPlatforms": ["..."], "trailerId": "<YouTube video id>"}

Rules:
- At most {limit} movies, best match first.
- "cast": the {cast_limit} main actors.
- "streamingPlatforms": subscription services in region {region}; empty list if unsure.
- Use an empty string for any value you do not know.
"""


def _movies_schema(limit: int) -> Dict[str, Any]:
    return {
        "type": "array",
        "maxItems": limit,
        "items": EnrichedMovie.model_json_schema(by_alias=True),
    }


def _build_prompt(query: str, limit: int) -> List[Dict[str, str]]:
    system = (
        _SYSTEM_PROMPT
        .replace("{limit}", str(limit))
        .replace("{cast_limit}", str(settings.cast_limit))
        .replace("{region}", settings.watch_region)
    )
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": f'Movies for: "{query}"'},
    ]


def _extract_array(raw: str) -> Any:
    """Strip markdown fences, locate the JSON array and parse it."""
    cleaned = raw.strip()
    cleaned = re.sub(r"^```(?:json)?\s*", "", cleaned)
    cleaned = re.sub(r"\s*```$", "", cleaned)

    match = re.search(r"\[.*\]", cleaned, re.DOTALL)
    if match:
        cleaned = match.group(0)
    return json.loads(cleaned)


def _to_movie(item: GeneratedMovie) -> EnrichedMovie:
    return EnrichedMovie(
        title=item.title or UNKNOWN_TITLE,
        plot=item.plot or NO_PLOT,
        rating=item.rating or 0.0,
        release_year=item.release_year or 0,
        poster_url=item.poster_url or settings.poster_placeholder_url,
        cast=item.cast[: settings.cast_limit],
        director=item.director or NO_DIRECTOR,
        streaming_platforms=item.streaming_platforms,
        trailer_id=item.trailer_id or "",
    )


async def resolve_from_model(query: str, *, limit: Optional[int] = None) -> List[EnrichedMovie]:
    """
    Ask the LLM for a JSON array of fully-formed movies.

    The result needs no further enrichment.
    """
    query = query.strip()
    if not query:
        return []
    limit = limit or settings.max_results

    try:
        raw = await chat_completion(
            _build_prompt(query, limit),
            temperature=0.3,
            json_schema=_movies_schema(limit),
        )
    except Exception as exc:
        logger.exception("Generative search failed for %r", query)
        raise ResolveFailed() from exc

    try:
        items = _extract_array(raw)
    except json.JSONDecodeError as exc:
        logger.error("Generative search returned invalid JSON: %s", raw[:500])
        raise ResolveFailed() from exc

    if not isinstance(items, list):
        logger.error("Generative search returned %s, expected an array", type(items).__name__)
        raise ResolveFailed()
    if not items:
        raise NoMatches()

    movies: List[EnrichedMovie] = []
    for item in items:
        try:
            movies.append(_to_movie(decode(GeneratedMovie, item)))
        except MalformedPayload as exc:
            logger.warning("Skipping malformed generated movie: %s", exc)

    if not movies:
        raise ResolveFailed()

    logger.info("Generative search %r: %d movies, keeping %d", query, len(movies), min(len(movies), limit))
    return movies[:limit]
