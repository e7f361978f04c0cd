"""
Delete stale sign in / sign up / invite attempt counters.

Meant for a daily cron job.

Usage:
    python -m mediashelf.scripts.cleanup_rate_limits
    python -m mediashelf.scripts.cleanup_rate_limits --max-age-hours 48
"""

from __future__ import annotations

import argparse
import asyncio

from mediashelf.core.logging import setup_logging
from mediashelf.db.repositories.rate_limits import cleanup_rate_limits
from mediashelf.db.utils import get_session


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Remove old rate limit rows.")
    p.add_argument("--max-age-hours", type=int, default=24)
    return p.parse_args()


async def main() -> None:
    args = parse_args()
    setup_logging()

    async with get_session() as session:
        removed = await cleanup_rate_limits(session, max_age_seconds=args.max_age_hours * 3600)

    print(f"✅ Removed {removed} rate limit row(s)")


if __name__ == "__main__":
    asyncio.run(main())
