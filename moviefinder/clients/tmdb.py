"""
MovieFinder — TMDB Client

Design patterns:
  - Repository: abstracts TMDB API behind a clean interface
  - Singleton: shared httpx client with connection pooling

Thin async client for the four TMDB v3 endpoints the search uses.
Responses are returned as raw JSON; decoding happens in
``moviefinder.payloads``. No caching and no retries: every error
propagates to the caller.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from moviefinder.config import settings

logger = logging.getLogger(__name__)

# ── Shared client ─────────────────────────────────────────

_client: Optional[httpx.AsyncClient] = None


async def get_client() -> httpx.AsyncClient:
    global _client
    if _client is None or _client.is_closed:
        _client = httpx.AsyncClient(
            base_url=settings.tmdb_base_url,
            headers=settings.tmdb_headers,
            timeout=httpx.Timeout(connect=10.0, read=30.0, write=10.0, pool=10.0),
        )
    return _client


async def close_client() -> None:
    global _client
    if _client and not _client.is_closed:
        await _client.aclose()
        _client = None


async def _get(path: str, params: Optional[Dict[str, Any]] = None) -> Any:
    """GET ``path`` with the API credential and return the decoded JSON body."""
    client = await get_client()
    query = {**settings.tmdb_auth_params, **(params or {})}
    resp = await client.get(path, params=query)
    resp.raise_for_status()
    logger.debug("TMDB %s → %d", path, resp.status_code)
    return resp.json()


# ── Public helpers ────────────────────────────────────────


async def search_movies(query: str, language: Optional[str] = None, page: int = 1) -> Any:
    """Execute /search/movie."""
    return await _get(
        "/search/movie",
        {
            "query": query,
            "include_adult": "false",
            "language": language or settings.search_language,
            "page": page,
        },
    )


async def get_movie_credits(movie_id: int) -> Any:
    """Cast and crew for a movie."""
    return await _get(f"/movie/{movie_id}/credits")


async def get_movie_videos(movie_id: int) -> Any:
    """Videos (trailers, teasers, clips) attached to a movie."""
    return await _get(f"/movie/{movie_id}/videos")


async def get_watch_providers(movie_id: int) -> Any:
    """Streaming/rent/buy availability for a movie, keyed by region code."""
    return await _get(f"/movie/{movie_id}/watch/providers")


async def get_configuration() -> Any:
    """API configuration document; used as a connectivity check."""
    return await _get("/configuration")
