"""
MovieFinder — Pydantic Models

Shared data models used across the search pipeline.
"""

from __future__ import annotations

from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

UNKNOWN_TITLE = "Unknown Title"
NO_PLOT = "No plot available."
NO_DIRECTOR = "N/A"

SortKey = Literal["rating", "year"]


# ── Query Resolver output ────────────────────────────────


class Candidate(BaseModel):
    """Minimal movie record from /search/movie, before enrichment."""

    model_config = ConfigDict(frozen=True)

    id: int
    title: Optional[str] = None
    overview: Optional[str] = None
    vote_average: Optional[float] = None
    release_date: Optional[str] = None
    poster_path: Optional[str] = None


# ── Detail Aggregator outcome ────────────────────────────


class Enrichment(BaseModel):
    """Successful credits + videos + providers lookup for one candidate."""

    cast: List[str] = Field(default_factory=list)
    director: str = NO_DIRECTOR
    streaming_platforms: List[str] = Field(default_factory=list)
    trailer_id: str = ""


class Degraded(BaseModel):
    """At least one lookup failed; the candidate keeps only its base fields."""

    reason: str


EnrichmentOutcome = Union[Enrichment, Degraded]


# ── Display record ───────────────────────────────────────


class EnrichedMovie(BaseModel):
    """A fully assembled movie, serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str = UNKNOWN_TITLE
    plot: str = NO_PLOT
    rating: float = 0.0
    release_year: int = 0
    poster_url: str
    cast: List[str] = Field(default_factory=list)
    director: str = NO_DIRECTOR
    streaming_platforms: List[str] = Field(default_factory=list)
    trailer_id: str = ""


# ── API Contract ─────────────────────────────────────────


class SearchRequest(BaseModel):
    query: str = Field(..., max_length=500)
    session_id: Optional[str] = None
    sort_by: Optional[SortKey] = None


class SearchResponse(BaseModel):
    session_id: str
    generation: int
    published: bool
    movies: List[EnrichedMovie]
    processing_time_ms: int


class SessionView(BaseModel):
    session_id: str
    generation: int
    movies: List[EnrichedMovie] = Field(default_factory=list)
    error: Optional[Dict[str, str]] = None


class SearchOutcome(BaseModel):
    """What one call to ``SearchController.search`` ended with."""

    generation: int
    published: bool = False
    movies: List[EnrichedMovie] = Field(default_factory=list)
    error_kind: Optional[str] = None
    error_message: Optional[str] = None
