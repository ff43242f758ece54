"""
MovieFinder — Upstream payload decoding

Every loosely-typed upstream JSON document passes through this module.
Fields that are missing or carry the wrong type decode to ``None`` (or an
empty container) instead of raising; only a document that is not a JSON
object at all is rejected with ``MalformedPayload``.
"""

from __future__ import annotations

import math
from typing import Annotated, Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

_M = TypeVar("_M", bound=BaseModel)


class MalformedPayload(ValueError):
    """The upstream body is not a JSON object."""


# ── Permissive coercions ─────────────────────────────────


def _as_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _dicts_only(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _strings_only(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _dict_or_empty(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


LooseStr = Annotated[Optional[str], BeforeValidator(_as_str)]
LooseFloat = Annotated[Optional[float], BeforeValidator(_as_float)]
LooseInt = Annotated[Optional[int], BeforeValidator(_as_int)]
LooseStrList = Annotated[List[str], BeforeValidator(_strings_only)]


class _Loose(BaseModel):
    model_config = ConfigDict(extra="ignore")


# ── /search/movie ────────────────────────────────────────


class SearchItem(_Loose):
    id: LooseInt = None
    title: LooseStr = None
    overview: LooseStr = None
    vote_average: LooseFloat = None
    release_date: LooseStr = None
    poster_path: LooseStr = None


class SearchPayload(_Loose):
    results: Annotated[List[SearchItem], BeforeValidator(_dicts_only)] = Field(default_factory=list)


# ── /movie/{id}/credits ──────────────────────────────────


class CastMember(_Loose):
    name: LooseStr = None


class CrewMember(_Loose):
    name: LooseStr = None
    job: LooseStr = None


class CreditsPayload(_Loose):
    cast: Annotated[List[CastMember], BeforeValidator(_dicts_only)] = Field(default_factory=list)
    crew: Annotated[List[CrewMember], BeforeValidator(_dicts_only)] = Field(default_factory=list)


# ── /movie/{id}/videos ───────────────────────────────────


class Video(_Loose):
    site: LooseStr = None
    type: LooseStr = None
    key: LooseStr = None


class VideosPayload(_Loose):
    results: Annotated[List[Video], BeforeValidator(_dicts_only)] = Field(default_factory=list)


# ── /movie/{id}/watch/providers ──────────────────────────


class Provider(_Loose):
    provider_name: LooseStr = None


class RegionProviders(_Loose):
    flatrate: Annotated[List[Provider], BeforeValidator(_dicts_only)] = Field(default_factory=list)


class ProvidersPayload(_Loose):
    results: Annotated[Dict[str, Any], BeforeValidator(_dict_or_empty)] = Field(default_factory=dict)

    def region(self, code: str) -> RegionProviders:
        return decode(RegionProviders, self.results.get(code), strict=False)


# ── Generative completion item ───────────────────────────


class GeneratedMovie(_Loose):
    """One element of the model-emitted array (camelCase keys)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    title: LooseStr = None
    plot: LooseStr = None
    rating: LooseFloat = None
    release_year: LooseInt = Field(default=None, alias="releaseYear")
    poster_url: LooseStr = Field(default=None, alias="posterUrl")
    cast: LooseStrList = Field(default_factory=list)
    director: LooseStr = None
    streaming_platforms: LooseStrList = Field(default_factory=list, alias="streamingPlatforms")
    trailer_id: LooseStr = Field(default=None, alias="trailerId")


# ── Entry point ──────────────────────────────────────────


def decode(model: Type[_M], data: Any, *, strict: bool = True) -> _M:
    """
    Decode ``data`` into ``model``.

    With ``strict`` a non-object body raises ``MalformedPayload``;
    otherwise it decodes to an all-defaults instance.
    """
    if not isinstance(data, dict):
        if strict:
            raise MalformedPayload(
                f"{model.__name__}: expected a JSON object, got {type(data).__name__}"
            )
        data = {}
    return model.model_validate(data)
