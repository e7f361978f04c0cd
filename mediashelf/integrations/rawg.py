from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from mediashelf.core.config import settings
from mediashelf.core.exceptions import RAWGError
from mediashelf.core.rate_limiter import rawg_limiter
from mediashelf.integrations.http import get_json, safe_float, safe_int


@dataclass(frozen=True)
class Game:
    external_id: str
    title: str
    release_date: Optional[str] = None
    poster_url: Optional[str] = None
    platforms: list[str] = field(default_factory=list)
    genres: list[str] = field(default_factory=list)
    developers: list[str] = field(default_factory=list)
    metacritic: int | None = None
    rating: float | None = None
    playtime: int | None = None
    description: Optional[str] = None


async def _rawg_get(path: str, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    if not settings.rawg_api_key:
        raise RAWGError("RAWG_API_KEY is not set", user_message="Game search is not configured")
    final_params = dict(params or {})
    final_params["key"] = settings.rawg_api_key
    return await get_json(
        settings.rawg_base_url,
        path,
        final_params,
        limiter=rawg_limiter,
        error_cls=RAWGError,
        service="RAWG",
    )


def _names(items: Any, inner: Optional[str] = None) -> list[str]:
    # platforms come wrapped: [{"platform": {"name": ...}}]
    names = []
    for item in items or []:
        if not isinstance(item, dict):
            continue
        if inner is not None:
            item = item.get(inner) or {}
        if item.get("name"):
            names.append(str(item["name"]))
    return names


def parse_game(r: Any) -> Optional[Game]:
    if not isinstance(r, dict):
        return None
    game_id = safe_int(r.get("id"))
    if not game_id or not r.get("name"):
        return None
    return Game(
        external_id=str(game_id),
        title=str(r["name"]),
        release_date=r.get("released"),
        poster_url=r.get("background_image"),
        platforms=_names(r.get("platforms"), "platform"),
        genres=_names(r.get("genres")),
        developers=_names(r.get("developers")),
        metacritic=safe_int(r.get("metacritic")),
        rating=safe_float(r.get("rating")),
        playtime=safe_int(r.get("playtime")),
        description=r.get("description_raw"),
    )


async def search_games(query: str, page_size: int = 20) -> list[Game]:
    data = await _rawg_get("/games", {"search": query, "page_size": page_size})
    games = []
    for r in data.get("results") or []:
        game = parse_game(r)
        if game is not None:
            games.append(game)
    return games


async def get_game(external_id: str) -> Game:
    data = await _rawg_get(f"/games/{external_id}")
    game = parse_game(data)
    if game is None:
        raise RAWGError(f"RAWG game {external_id} has no usable data", user_message="Not found")
    return game
