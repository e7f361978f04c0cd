"""
Warm Media Details Cache

Fetches TMDB (+ OMDB) details for every movie/TV title on a watchlist and
stores them in media_details_cache, so detail pages open without waiting on
the external APIs.

Usage:
    python -m mediashelf.scripts.warm_media_details_cache
    python -m mediashelf.scripts.warm_media_details_cache --user-id 42
    python -m mediashelf.scripts.warm_media_details_cache --force  # refetch cached titles too
"""

from __future__ import annotations

import argparse
import asyncio

from mediashelf.core.logging import setup_logging
from mediashelf.db.utils import get_session
from mediashelf.services.media_details_service import warm_cache


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Pre-fetch media details for watchlist titles.")
    p.add_argument("--user-id", type=int, default=None, help="Only this user's watchlist")
    p.add_argument("--force", action="store_true", help="Refetch titles that are already cached")
    return p.parse_args()


async def main() -> None:
    args = parse_args()
    setup_logging()

    async with get_session() as session:
        result = await warm_cache(session, user_id=args.user_id, force=args.force)

    print(
        f"✅ Titles: {result.considered}, already cached: {result.already_cached}, "
        f"cached now: {result.cached}, failed: {result.failed}"
    )


if __name__ == "__main__":
    asyncio.run(main())
