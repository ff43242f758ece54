"""
MovieFinder — Search errors

Only the resolve step raises; a failed enrichment never does, it is
carried as a ``Degraded`` outcome instead (see ``moviefinder.models``).
"""

from __future__ import annotations

from typing import Optional


class MovieSearchError(Exception):
    """Base class for failures surfaced to the user."""

    kind: str = "MovieSearchError"
    default_message: str = "Something went wrong."

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ResolveFailed(MovieSearchError):
    """The search/completion call failed or returned unparseable data."""

    kind = "ResolveFailed"
    default_message = "Something went wrong fetching movies."


class NoMatches(MovieSearchError):
    """The upstream answered correctly but with zero movies."""

    kind = "NoMatches"
    default_message = "No movies found. Try another search."
