from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any

from mediashelf.core.constants import (
    CATALOG_BOOKS,
    CATALOG_FOR_LIBRARY_DOMAIN,
    CATALOG_GAMES,
    CATALOG_MOVIES_TV,
    LIST_DOMAINS,
    MEDIA_ALBUM,
    MEDIA_SONG,
)
from mediashelf.core.exceptions import ExternalAPIError, ValidationError
from mediashelf.core.validation import validate_search_query
from mediashelf.integrations import google_books, itunes, rawg, tmdb

logger = logging.getLogger(__name__)

SEARCH_DOMAINS = LIST_DOMAINS


def catalog_domain(domain: str) -> str:
    """
    Accept both the catalogue names ("books") and the library names ("book").
    """
    domain = (domain or "").strip().lower()
    domain = CATALOG_FOR_LIBRARY_DOMAIN.get(domain, domain)
    if domain not in SEARCH_DOMAINS:
        raise ValidationError(f"Unknown search domain {domain!r}", user_message=f"Search must be one of: {', '.join(SEARCH_DOMAINS)}")
    return domain


async def search_or_raise(domain: str, query: str, entity: str = MEDIA_SONG) -> list[dict[str, Any]]:
    """Like ``search`` but lets ``ExternalAPIError`` through (batch import retries on it)."""
    query = validate_search_query(query)
    domain = catalog_domain(domain)

    if domain == CATALOG_MOVIES_TV:
        results = await tmdb.search_multi(query)
    elif domain == CATALOG_BOOKS:
        results = await google_books.search_books(query)
    elif domain == CATALOG_GAMES:
        results = await rawg.search_games(query)
    else:
        if entity not in (MEDIA_SONG, MEDIA_ALBUM):
            raise ValidationError(f"Unknown music entity {entity!r}", user_message="Music search is for songs or albums")
        results = await itunes.search_music(query, entity)
    return [asdict(r) for r in results]


async def search(domain: str, query: str, entity: str = MEDIA_SONG) -> list[dict[str, Any]]:
    """
    Search the metadata API behind ``domain``.

    API failures are logged and come back as an empty result; bad input still raises.
    """
    try:
        return await search_or_raise(domain, query, entity)
    except ExternalAPIError as e:
        logger.warning("%s search failed for %r: %s", domain, query, e)
        return []
