"""
Tests for the detail aggregator.
"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from moviefinder.agents.enrichment import (
    _director,
    _extract_year,
    _flatrate_platforms,
    _top_cast,
    _trailer_key,
    enrich_candidates,
    enrich_movie,
    fetch_enrichment,
    merge_movie,
)
from moviefinder.config import settings
from moviefinder.models import Candidate, Degraded, Enrichment
from moviefinder.payloads import CreditsPayload, ProvidersPayload, VideosPayload, decode

PLACEHOLDER = settings.poster_placeholder_url


def _candidate(movie_id: int, title: str = "Batman", **kwargs) -> Candidate:
    fields = {
        "overview": f"Overview of {title}",
        "vote_average": 7.0,
        "release_date": "1989-06-21",
        "poster_path": f"/{movie_id}.jpg",
    }
    fields.update(kwargs)
    return Candidate(id=movie_id, title=title, **fields)


class TestExtractYear:

    def test_normal_date(self):
        assert _extract_year("2023-05-12") == 2023

    def test_partial_date(self):
        assert _extract_year("1999") == 1999

    def test_none(self):
        assert _extract_year(None) == 0

    def test_empty(self):
        assert _extract_year("") == 0

    def test_unparseable(self):
        assert _extract_year("unknown") == 0


class TestFieldSelection:

    def test_top_cast_limit(self):
        credits = decode(CreditsPayload, {"cast": [{"name": n} for n in "ABCDEF"]})
        assert _top_cast(credits, 4) == ["A", "B", "C", "D"]

    def test_top_cast_skips_nameless(self):
        credits = decode(CreditsPayload, {"cast": [{"name": None}, {"name": "Michael Keaton"}]})
        assert _top_cast(credits, 4) == ["Michael Keaton"]

    def test_director_first_match(self):
        credits = decode(CreditsPayload, {"crew": [
            {"name": "Danny Elfman", "job": "Original Music Composer"},
            {"name": "Tim Burton", "job": "Director"},
            {"name": "Someone Else", "job": "Director"},
        ]})
        assert _director(credits) == "Tim Burton"

    def test_director_missing(self):
        credits = decode(CreditsPayload, {"cast": [], "crew": [{"name": "X", "job": "Producer"}]})
        assert _director(credits) == "N/A"

    def test_trailer_first_youtube_trailer(self):
        videos = decode(VideosPayload, {"results": [
            {"site": "Vimeo", "type": "Trailer", "key": "vimeo1"},
            {"site": "YouTube", "type": "Teaser", "key": "teaser1"},
            {"site": "YouTube", "type": "Trailer", "key": "first"},
            {"site": "YouTube", "type": "Trailer", "key": "second"},
        ]})
        assert _trailer_key(videos) == "first"

    def test_trailer_none(self):
        videos = decode(VideosPayload, {"results": [{"site": "YouTube", "type": "Clip", "key": "c"}]})
        assert _trailer_key(videos) == ""

    def test_flatrate_only_for_region(self):
        providers = decode(ProvidersPayload, {"results": {
            "IN": {
                "flatrate": [{"provider_name": "JioCinema"}, {"provider_name": "Netflix"}],
                "rent": [{"provider_name": "Apple TV"}],
            },
            "US": {"flatrate": [{"provider_name": "Max"}]},
        }})
        assert _flatrate_platforms(providers, "IN") == ["JioCinema", "Netflix"]
        assert _flatrate_platforms(providers, "US") == ["Max"]
        assert _flatrate_platforms(providers, "FR") == []


class TestMergeMovie:

    def test_enriched(self):
        movie = merge_movie(
            _candidate(268),
            Enrichment(cast=["Michael Keaton"], director="Tim Burton", streaming_platforms=["Netflix"], trailer_id="abc"),
        )
        assert movie.title == "Batman"
        assert movie.release_year == 1989
        assert movie.poster_url == f"{settings.tmdb_image_base}/268.jpg"
        assert movie.director == "Tim Burton"
        assert movie.trailer_id == "abc"

    def test_degraded_keeps_base_fields(self):
        candidate = _candidate(268)
        movie = merge_movie(candidate, Degraded(reason="timeout"))
        assert movie.title == "Batman"
        assert movie.plot == "Overview of Batman"
        assert movie.rating == 7.0
        assert movie.release_year == 1989
        assert movie.cast == []
        assert movie.director == "N/A"
        assert movie.streaming_platforms == []
        assert movie.trailer_id == ""

    def test_missing_base_fields_fall_back(self):
        candidate = Candidate(id=1)
        movie = merge_movie(candidate, Enrichment())
        assert movie.title == "Unknown Title"
        assert movie.plot == "No plot available."
        assert movie.rating == 0.0
        assert movie.release_year == 0
        assert movie.poster_url == PLACEHOLDER


# ── Async enrichment with mocked TMDB ─────────────────────


_CREDITS = {
    "cast": [{"name": "Michael Keaton"}, {"name": "Jack Nicholson"}, {"name": "Kim Basinger"},
             {"name": "Robert Wuhl"}, {"name": "Pat Hingle"}],
    "crew": [{"name": "Tim Burton", "job": "Director"}],
}
_VIDEOS = {"results": [{"site": "YouTube", "type": "Trailer", "key": "dgC9Q0uhX70"}]}
_PROVIDERS = {"results": {"IN": {"flatrate": [{"provider_name": "JioCinema"}]}}}


@pytest.fixture
def mock_tmdb_calls(monkeypatch):
    """Patch the three TMDB lookups; movie 13 times out on credits."""
    calls = []

    async def _credits(movie_id):
        calls.append(("credits", movie_id))
        if movie_id == 13:
            raise httpx.ReadTimeout("timed out")
        return _CREDITS

    async def _videos(movie_id):
        calls.append(("videos", movie_id))
        return _VIDEOS

    async def _providers(movie_id):
        calls.append(("providers", movie_id))
        return _PROVIDERS

    monkeypatch.setattr("moviefinder.agents.enrichment.get_movie_credits", _credits)
    monkeypatch.setattr("moviefinder.agents.enrichment.get_movie_videos", _videos)
    monkeypatch.setattr("moviefinder.agents.enrichment.get_watch_providers", _providers)
    monkeypatch.setattr(settings, "watch_region", "IN")
    monkeypatch.setattr(settings, "cast_limit", 4)
    return calls


@pytest.mark.asyncio
async def test_enrich_movie(mock_tmdb_calls):
    movie = await enrich_movie(_candidate(268))
    assert movie.cast == ["Michael Keaton", "Jack Nicholson", "Kim Basinger", "Robert Wuhl"]
    assert movie.director == "Tim Burton"
    assert movie.trailer_id == "dgC9Q0uhX70"
    assert movie.streaming_platforms == ["JioCinema"]
    assert {kind for kind, _ in mock_tmdb_calls} == {"credits", "videos", "providers"}


@pytest.mark.asyncio
async def test_fetch_enrichment_timeout_is_degraded(mock_tmdb_calls):
    outcome = await fetch_enrichment(_candidate(13))
    assert isinstance(outcome, Degraded)
    assert "ReadTimeout" in outcome.reason


@pytest.mark.asyncio
async def test_one_timeout_degrades_only_that_movie(mock_tmdb_calls):
    candidates = [_candidate(i, title=f"Batman {i}") for i in range(10, 18)]
    movies = await enrich_candidates(candidates)

    assert len(movies) == 8
    assert [m.title for m in movies] == [c.title for c in candidates]

    failed = movies[3]  # id 13
    assert failed.title == "Batman 13"
    assert failed.poster_url.endswith("/13.jpg")
    assert failed.rating == 7.0
    assert failed.director == "N/A"
    assert failed.cast == []
    assert failed.streaming_platforms == []
    assert failed.trailer_id == ""

    for movie in movies[:3] + movies[4:]:
        assert movie.director == "Tim Burton"


@pytest.mark.asyncio
async def test_malformed_payload_is_degraded(monkeypatch, mock_tmdb_calls):
    async def _bad_videos(movie_id):
        return ["not", "an", "object"]

    monkeypatch.setattr("moviefinder.agents.enrichment.get_movie_videos", _bad_videos)
    movie = await enrich_movie(_candidate(268))
    assert movie.title == "Batman"
    assert movie.director == "N/A"
    assert movie.cast == []
    assert movie.trailer_id == ""


@pytest.mark.asyncio
async def test_missing_sub_fields_use_defaults(monkeypatch, mock_tmdb_calls):
    async def _empty(movie_id):
        return {}

    monkeypatch.setattr("moviefinder.agents.enrichment.get_movie_credits", _empty)
    monkeypatch.setattr("moviefinder.agents.enrichment.get_watch_providers", _empty)
    outcome = await fetch_enrichment(_candidate(268))
    assert isinstance(outcome, Enrichment)
    assert outcome.cast == []
    assert outcome.director == "N/A"
    assert outcome.streaming_platforms == []
    assert outcome.trailer_id == "dgC9Q0uhX70"


@pytest.mark.asyncio
async def test_order_kept_regardless_of_completion_order(monkeypatch, mock_tmdb_calls):
    async def _slow_credits(movie_id):
        # earlier candidates finish last
        await asyncio.sleep(0.01 * (20 - movie_id))
        return {"cast": [{"name": f"Actor {movie_id}"}], "crew": []}

    monkeypatch.setattr("moviefinder.agents.enrichment.get_movie_credits", _slow_credits)
    candidates = [_candidate(i, title=f"Movie {i}") for i in range(14, 20)]
    movies = await enrich_candidates(candidates)
    assert [m.cast for m in movies] == [[f"Actor {i}"] for i in range(14, 20)]


@pytest.mark.asyncio
async def test_enrich_is_idempotent(mock_tmdb_calls):
    candidates = [_candidate(i) for i in (11, 13, 15)]
    first = await enrich_candidates(candidates)
    second = await enrich_candidates(candidates)
    assert first == second


@pytest.mark.asyncio
async def test_empty_batch(mock_tmdb_calls):
    assert await enrich_candidates([]) == []
    assert mock_tmdb_calls == []


@pytest.mark.asyncio
async def test_cancelled_lookup_is_not_degraded(monkeypatch, mock_tmdb_calls):
    async def _cancelled(movie_id):
        raise asyncio.CancelledError()

    monkeypatch.setattr("moviefinder.agents.enrichment.get_watch_providers", _cancelled)
    with pytest.raises(asyncio.CancelledError):
        await fetch_enrichment(_candidate(268))
