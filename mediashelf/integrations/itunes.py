from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from mediashelf.core.config import settings
from mediashelf.core.constants import MEDIA_ALBUM, MEDIA_SONG
from mediashelf.core.exceptions import ITunesError
from mediashelf.core.rate_limiter import itunes_limiter
from mediashelf.integrations.http import get_json, safe_int

# iTunes artwork comes as 100x100; the size is part of the URL
ARTWORK_SIZE = 600

ENTITIES = {MEDIA_SONG: "song", MEDIA_ALBUM: "album"}


@dataclass(frozen=True)
class MusicItem:
    external_id: str
    media_type: str
    title: str
    artist: str
    album: Optional[str]
    release_date: Optional[str]
    poster_url: Optional[str]
    genre: Optional[str]
    track_duration_ms: int | None = None
    track_count: int | None = None
    preview_url: Optional[str] = None
    store_url: Optional[str] = None


def high_res_artwork(url: Optional[str], size: int = ARTWORK_SIZE) -> Optional[str]:
    return url.replace("100x100", f"{size}x{size}") if url else None


async def _itunes_get(path: str, params: dict[str, Any]) -> dict[str, Any]:
    return await get_json(
        settings.itunes_base_url,
        path,
        params,
        limiter=itunes_limiter,
        error_cls=ITunesError,
        service="iTunes",
    )


def _parse(r: Any, media_type: str) -> Optional[MusicItem]:
    if not isinstance(r, dict):
        return None
    release = r.get("releaseDate")
    if media_type == MEDIA_SONG:
        track_id = safe_int(r.get("trackId"))
        if not track_id or not r.get("trackName"):
            return None
        return MusicItem(
            external_id=str(track_id),
            media_type=MEDIA_SONG,
            title=str(r["trackName"]),
            artist=str(r.get("artistName") or ""),
            album=r.get("collectionName"),
            release_date=release[:10] if release else None,
            poster_url=high_res_artwork(r.get("artworkUrl100")),
            genre=r.get("primaryGenreName"),
            track_duration_ms=safe_int(r.get("trackTimeMillis")),
            preview_url=r.get("previewUrl"),
            store_url=r.get("trackViewUrl"),
        )

    collection_id = safe_int(r.get("collectionId"))
    if not collection_id or not r.get("collectionName"):
        return None
    return MusicItem(
        external_id=str(collection_id),
        media_type=MEDIA_ALBUM,
        title=str(r["collectionName"]),
        artist=str(r.get("artistName") or ""),
        album=None,
        release_date=release[:10] if release else None,
        poster_url=high_res_artwork(r.get("artworkUrl100")),
        genre=r.get("primaryGenreName"),
        track_count=safe_int(r.get("trackCount")),
        store_url=r.get("collectionViewUrl"),
    )


async def search_music(term: str, entity: str = MEDIA_SONG, limit: int = 25) -> list[MusicItem]:
    """Songs or albums matching ``term``. ``entity`` is ``song`` or ``album``."""
    if entity not in ENTITIES:
        raise ITunesError(f"Unsupported iTunes entity {entity!r}")
    data = await _itunes_get(
        "/search",
        {"term": term, "media": "music", "entity": ENTITIES[entity], "limit": limit, "country": "US"},
    )
    items = []
    for r in data.get("results") or []:
        item = _parse(r, entity)
        if item is not None:
            items.append(item)
    return items


async def lookup(external_id: str, entity: str = MEDIA_SONG) -> Optional[MusicItem]:
    data = await _itunes_get("/lookup", {"id": external_id, "entity": ENTITIES.get(entity, "song")})
    for r in data.get("results") or []:
        item = _parse(r, entity)
        if item is not None and item.external_id == str(external_id):
            return item
    return None
