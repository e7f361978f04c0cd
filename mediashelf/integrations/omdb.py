from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from mediashelf.core.config import settings
from mediashelf.core.exceptions import OMDBError
from mediashelf.core.rate_limiter import omdb_limiter
from mediashelf.integrations.http import get_json, safe_float, safe_int


@dataclass(frozen=True)
class OmdbRatings:
    imdb_id: str
    imdb_rating: float | None
    imdb_votes: int | None
    metascore: int | None
    rotten_tomatoes: Optional[str]
    awards: Optional[str]


def is_configured() -> bool:
    return bool(settings.omdb_api_key)


def _na(value: Any) -> Any:
    # OMDB uses "N/A" for missing values
    return None if value in (None, "", "N/A") else value


async def _omdb_get(params: dict[str, Any]) -> dict[str, Any]:
    if not settings.omdb_api_key:
        raise OMDBError("OMDB_API_KEY is not set")
    final_params = dict(params)
    final_params["apikey"] = settings.omdb_api_key
    data = await get_json(
        settings.omdb_base_url,
        "/",
        final_params,
        limiter=omdb_limiter,
        error_cls=OMDBError,
        service="OMDB",
    )
    if data.get("Response") == "False":
        raise OMDBError(f"OMDB error: {data.get('Error', 'unknown')}", user_message="Not found")
    return data


def parse_ratings(data: dict[str, Any]) -> OmdbRatings:
    rotten = None
    for r in data.get("Ratings") or []:
        if isinstance(r, dict) and r.get("Source") == "Rotten Tomatoes":
            rotten = _na(r.get("Value"))
            break

    votes = _na(data.get("imdbVotes"))
    return OmdbRatings(
        imdb_id=str(data.get("imdbID")),
        imdb_rating=safe_float(_na(data.get("imdbRating"))),
        imdb_votes=safe_int(votes.replace(",", "")) if isinstance(votes, str) else None,
        metascore=safe_int(_na(data.get("Metascore"))),
        rotten_tomatoes=rotten,
        awards=_na(data.get("Awards")),
    )


async def get_by_imdb_id(imdb_id: str) -> OmdbRatings:
    """Critic and audience ratings for one IMDb title id (``tt...``)."""
    data = await _omdb_get({"i": imdb_id})
    return parse_ratings(data)
