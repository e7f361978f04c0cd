from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from mediashelf.core.constants import WATCHLIST_MEDIA_TYPES
from mediashelf.core.exceptions import ExternalAPIError, OMDBError
from mediashelf.core.validation import validate_media_type
from mediashelf.db.repositories import media_cache
from mediashelf.db.repositories.watchlist import list_watchlist_keys
from mediashelf.integrations import omdb, tmdb

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WarmResult:
    considered: int
    already_cached: int
    cached: int
    failed: int


async def fetch_details(external_id: str, media_type: str, include_omdb: bool = True) -> dict[str, Any]:
    """
    Live details from TMDB, enriched with OMDB ratings when a key is configured.

    OMDB is optional: its failures are logged and the TMDB data is returned alone.
    """
    data = asdict(await tmdb.get_details(external_id, media_type))

    if include_omdb and omdb.is_configured() and data.get("imdb_id"):
        try:
            ratings = await omdb.get_by_imdb_id(data["imdb_id"])
        except OMDBError as e:
            logger.warning("OMDB lookup failed for %s: %s", data["imdb_id"], e)
        else:
            data["omdb"] = asdict(ratings)

    return data


async def get_media_details(
    session: AsyncSession,
    external_id: str,
    media_type: str,
    force: bool = False,
) -> dict[str, Any]:
    """
    Details for a movie/TV title, cache first.

    A miss (or ``force``) goes to the APIs and refreshes the shared cache row.
    """
    validate_media_type(media_type, WATCHLIST_MEDIA_TYPES)

    if not force:
        cached = await media_cache.get_cached(session, external_id, media_type)
        if cached is not None:
            return cached

    data = await fetch_details(external_id, media_type)
    await media_cache.upsert_cached(session, external_id, media_type, data)
    return data


async def warm_cache(session: AsyncSession, user_id: int | None = None, force: bool = False) -> WarmResult:
    """
    Fill the details cache for titles on watchlists (one user's, or everyone's).

    Without ``force`` only titles missing from the cache are fetched.
    Titles are fetched one by one; the TMDB limiter spaces the requests.
    """
    pairs = [(eid, mt) for eid, mt in await list_watchlist_keys(session, user_id) if mt in WATCHLIST_MEDIA_TYPES]
    existing = await media_cache.list_cached_keys(session, {eid for eid, _ in pairs})
    to_fetch = pairs if force else [p for p in pairs if p not in existing]

    logger.info(
        "Warming media details cache: %d title(s), %d already cached, fetching %d%s",
        len(pairs),
        len(existing),
        len(to_fetch),
        " (force)" if force else "",
    )

    ok = 0
    failed = 0
    for external_id, media_type in to_fetch:
        try:
            data = await fetch_details(external_id, media_type)
        except ExternalAPIError as e:
            failed += 1
            logger.warning("Failed to fetch %s %s: %s", media_type, external_id, e)
            continue

        if await media_cache.upsert_cached(session, external_id, media_type, data):
            ok += 1
            logger.info("Cached %s %s", media_type, external_id)
        else:
            failed += 1

    return WarmResult(considered=len(pairs), already_cached=len(existing), cached=ok, failed=failed)
