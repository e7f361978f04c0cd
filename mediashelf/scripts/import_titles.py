"""
Import a list of titles (.txt / .csv / .json) into a user's watchlist or library.

Usage:
    python -m mediashelf.scripts.import_titles --user-id 42 --file watchlist.txt --target movies-tv
    python -m mediashelf.scripts.import_titles --user-id 42 --file books.csv --target book
    python -m mediashelf.scripts.import_titles --user-id 42 --file albums.json --target music --entity album --dry-run
"""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from mediashelf.core.logging import setup_logging
from mediashelf.db.utils import get_session
from mediashelf.services import import_service


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Bulk import titles, matching each one against the metadata APIs.")
    p.add_argument("--user-id", required=True, type=int)
    p.add_argument("--file", required=True, help="Path to a .txt, .csv or .json list of titles")
    p.add_argument("--target", required=True, choices=import_service.IMPORT_TARGETS)
    p.add_argument("--entity", default="song", choices=("song", "album"), help="Music only")
    p.add_argument("--dry-run", action="store_true", help="Do not write to DB, only print the matches")
    return p.parse_args()


def _progress(done: int, total: int) -> None:
    if done % 25 == 0 or done == total:
        print(f"Progress: {done}/{total}")


async def main() -> None:
    args = parse_args()
    setup_logging()

    path = Path(args.file).expanduser().resolve()
    if not path.exists():
        raise SystemExit(f"File not found: {path}")
    import_service.validate_import_file(path.name, path.stat().st_size)

    parsed = import_service.parse_import_data(path.read_text(encoding="utf-8"), path.name)
    for err in parsed.errors:
        print(f"⚠️  {err}")
    if not parsed.titles:
        raise SystemExit(1)

    if args.dry_run:
        matches = await import_service.batch_search(parsed.titles, args.target, args.entity, on_progress=_progress)
        for m in matches:
            chosen = m.result["title"] if m.result else "-"
            print(f"[DRY RUN] {m.query!r} -> {m.status}: {chosen}")
        return

    async with get_session() as session:
        report = await import_service.import_titles(
            session, args.user_id, args.target, parsed.titles, args.entity, on_progress=_progress
        )

    print("\n=== Import finished ===")
    print(f"Added:     {len(report.added)}")
    print(f"Skipped:   {len(report.skipped)}")
    print(f"Not found: {len(report.not_found)}")
    print(f"Failed:    {len(report.failed)}")
    for title in report.not_found + report.failed:
        print(f"  - {title}")


if __name__ == "__main__":
    asyncio.run(main())
