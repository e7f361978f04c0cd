from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from mediashelf.core.config import settings
from mediashelf.core.constants import MEDIA_MOVIE, MEDIA_TV, WATCHLIST_MEDIA_TYPES
from mediashelf.core.exceptions import TMDBError
from mediashelf.core.rate_limiter import tmdb_limiter
from mediashelf.integrations.http import extract_year, get_json, safe_float, safe_int

logger = logging.getLogger(__name__)

POSTER_BASE_URL = "https://image.tmdb.org/t/p/w500"
THUMB_BASE_URL = "https://image.tmdb.org/t/p/w200"
TOP_CAST = 5


def _poster(path: Optional[str], base: str = POSTER_BASE_URL) -> Optional[str]:
    return f"{base}{path}" if path else None


@dataclass(frozen=True)
class MediaCandidate:
    external_id: str
    media_type: str
    title: str
    year: Optional[int]
    release_date: Optional[str] = None
    poster_url: Optional[str] = None
    overview: Optional[str] = None
    vote_average: float | None = None
    popularity: float | None = None


@dataclass(frozen=True)
class MediaDetails:
    external_id: str
    media_type: str
    title: str
    poster_url: Optional[str]
    release_date: Optional[str]
    overview: Optional[str]
    director: Optional[str]
    cast: list[str] = field(default_factory=list)
    genres: list[str] = field(default_factory=list)
    vote_average: float | None = None
    vote_count: int | None = None
    runtime: int | None = None
    awards: list[str] = field(default_factory=list)
    imdb_id: Optional[str] = None


async def _tmdb_get(path: str, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    """
    Low-level GET to TMDB through ``tmdb_limiter``.
    Uses the v3 API key (query param api_key).
    """
    final_params = dict(params or {})
    final_params["api_key"] = settings.tmdb_api_key
    final_params.setdefault("language", settings.tmdb_language)
    return await get_json(
        settings.tmdb_base_url,
        path,
        final_params,
        limiter=tmdb_limiter,
        error_cls=TMDBError,
        service="TMDB",
    )


def _parse_candidate(r: Any, media_type: Optional[str] = None) -> Optional[MediaCandidate]:
    if not isinstance(r, dict):
        return None
    mt = media_type or r.get("media_type")
    if mt not in WATCHLIST_MEDIA_TYPES:
        # search/multi also returns people
        return None
    tmdb_id = safe_int(r.get("id"))
    title = r.get("title") or r.get("name") or r.get("original_title") or r.get("original_name")
    if not tmdb_id or not title:
        return None

    release_date = r.get("release_date") or r.get("first_air_date") or None
    return MediaCandidate(
        external_id=str(tmdb_id),
        media_type=mt,
        title=str(title),
        year=extract_year(release_date),
        release_date=release_date,
        poster_url=_poster(r.get("poster_path"), THUMB_BASE_URL),
        overview=r.get("overview") or None,
        vote_average=safe_float(r.get("vote_average")),
        popularity=safe_float(r.get("popularity")),
    )


def _parse_candidate_list(results: Any, media_type: Optional[str] = None) -> list[MediaCandidate]:
    if not isinstance(results, list):
        return []
    candidates = []
    for r in results:
        c = _parse_candidate(r, media_type)
        if c is not None:
            candidates.append(c)
    return candidates


def _awards(media_type: str, vote_average: float | None, vote_count: int | None) -> list[str]:
    """
    Badges inferred from ratings; TMDB carries no real award data.
    """
    avg = vote_average or 0
    votes = vote_count or 0
    awards: list[str] = []
    if avg >= 8.5 and votes >= 10000:
        awards.append("Oscar-Worthy" if media_type == MEDIA_MOVIE else "Emmy-Worthy")
    if avg >= 8.0 and votes >= 5000:
        awards.append("Critically Acclaimed")
    if avg >= 7.5 and votes >= 20000:
        awards.append("Fan Favorite")
    return awards


def parse_details(data: dict[str, Any], media_type: str) -> MediaDetails:
    credits = data.get("credits") or {}
    crew = credits.get("crew") or []
    cast_raw = credits.get("cast") or []

    # movies: the director; TV: the creator (or an executive producer)
    jobs = ("Director",) if media_type == MEDIA_MOVIE else ("Creator", "Executive Producer")
    director = None
    for c in crew:
        if isinstance(c, dict) and c.get("job") in jobs and c.get("name"):
            director = str(c["name"])
            break
    if director is None and media_type == MEDIA_TV:
        creators = data.get("created_by") or []
        if creators and isinstance(creators[0], dict):
            director = creators[0].get("name")

    cast = [str(a["name"]) for a in cast_raw[:TOP_CAST] if isinstance(a, dict) and a.get("name")]
    genres = [str(g["name"]) for g in data.get("genres") or [] if isinstance(g, dict) and g.get("name")]

    runtime = safe_int(data.get("runtime"))
    if runtime is None and data.get("episode_run_time"):
        runtime = safe_int(data["episode_run_time"][0])

    vote_average = safe_float(data.get("vote_average")) or None
    vote_count = safe_int(data.get("vote_count")) or None
    external_ids = data.get("external_ids") or {}

    return MediaDetails(
        external_id=str(data.get("id")),
        media_type=media_type,
        title=str(data.get("title") or data.get("name") or "Unknown Title"),
        poster_url=_poster(data.get("poster_path")),
        release_date=data.get("release_date") or data.get("first_air_date") or None,
        overview=data.get("overview") or None,
        director=director,
        cast=cast,
        genres=genres,
        vote_average=vote_average,
        vote_count=vote_count,
        runtime=runtime or None,
        awards=_awards(media_type, vote_average, vote_count),
        imdb_id=data.get("imdb_id") or external_ids.get("imdb_id"),
    )


# -------------------------
# Public functions
# -------------------------

async def search_multi(query: str, page: int = 1) -> list[MediaCandidate]:
    """Movies and TV shows matching ``query`` (people are dropped)."""
    data = await _tmdb_get("/search/multi", params={"query": query, "page": page, "include_adult": False})
    return _parse_candidate_list(data.get("results", []))


async def search_movies(query: str, year: Optional[int] = None, page: int = 1) -> list[MediaCandidate]:
    params: dict[str, Any] = {"query": query, "page": page, "include_adult": False}
    if year is not None:
        params["year"] = year
    data = await _tmdb_get("/search/movie", params=params)
    return _parse_candidate_list(data.get("results", []), MEDIA_MOVIE)


async def search_tv(query: str, page: int = 1) -> list[MediaCandidate]:
    data = await _tmdb_get("/search/tv", params={"query": query, "page": page, "include_adult": False})
    return _parse_candidate_list(data.get("results", []), MEDIA_TV)


async def get_details(external_id: str, media_type: str) -> MediaDetails:
    """
    Full details for a movie or TV show, with credits and external ids in the same request.
    """
    if media_type not in WATCHLIST_MEDIA_TYPES:
        raise TMDBError(f"TMDB has no details for media type {media_type!r}")
    data = await _tmdb_get(
        f"/{media_type}/{external_id}",
        params={"append_to_response": "credits,external_ids"},
    )
    return parse_details(data, media_type)


async def get_similar(external_id: str, media_type: str = MEDIA_MOVIE, page: int = 1) -> list[MediaCandidate]:
    data = await _tmdb_get(f"/{media_type}/{external_id}/similar", params={"page": page})
    return _parse_candidate_list(data.get("results", []), media_type)


async def get_trending(media_type: str = "all", time_window: str = "day", page: int = 1) -> list[MediaCandidate]:
    if time_window not in ("day", "week"):
        time_window = "day"
    if media_type not in ("all", MEDIA_MOVIE, MEDIA_TV):
        media_type = "all"
    data = await _tmdb_get(f"/trending/{media_type}/{time_window}", params={"page": page})
    return _parse_candidate_list(data.get("results", []), None if media_type == "all" else media_type)
