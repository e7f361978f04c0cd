"""
Bulk import of titles from a user's file (.txt / .csv / .json).

The flow is: parse the file into a list of titles, search each one through
``search_service`` (API calls go through the per-API rate limiters), then add
the matches to the watchlist or to a library domain.
"""

from __future__ import annotations

import asyncio
import csv
import io
import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from mediashelf.core.constants import (
    CATALOG_MOVIES_TV,
    DOMAIN_BOOKS,
    DOMAIN_GAMES,
    DOMAIN_MUSIC,
    LIBRARY_DOMAINS,
    MEDIA_SONG,
)
from mediashelf.core.exceptions import ExternalAPIError, ValidationError
from mediashelf.db.repositories import library as library_repo
from mediashelf.db.repositories import watchlist as watchlist_repo
from mediashelf.services import search_service

logger = logging.getLogger(__name__)

MAX_IMPORT_FILE_BYTES = 5 * 1024 * 1024
IMPORT_EXTENSIONS = (".txt", ".csv", ".json")
MAX_ALTERNATIVES = 5
RETRY_BASE_DELAY_SECONDS = 1.0

MATCH_EXACT = "exact"
MATCH_FUZZY = "fuzzy"
MATCH_NOT_FOUND = "not_found"
MATCH_ERROR = "error"

IMPORT_TARGETS = (CATALOG_MOVIES_TV,) + LIBRARY_DOMAINS

_SPLIT_RE = re.compile(r"[\n\r;|]+")
_NOT_A_TITLE_RE = re.compile(r"^[\d\s\-_.,;:!?]+$")
_JSON_TITLE_KEYS = ("title", "name", "Title", "Name")


@dataclass
class ParseResult:
    titles: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass
class SearchMatch:
    query: str
    status: str
    result: Optional[dict[str, Any]] = None
    alternatives: list[dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class ImportReport:
    added: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    not_found: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


def normalize_title(s: str) -> str:
    """Lower-case, drop punctuation, collapse whitespace."""
    s = s.strip().lower()
    s = re.sub(r"[’'`]", "", s)
    s = re.sub(r"[^\w\s]", " ", s)
    s = re.sub(r"\s+", " ", s).strip()
    return s


def validate_import_file(filename: str, size: int) -> None:
    if size > MAX_IMPORT_FILE_BYTES:
        raise ValidationError(
            f"Import file too large ({size} bytes)",
            user_message="File is too large (maximum 5MB)",
        )
    if PurePath(filename or "").suffix.lower() not in IMPORT_EXTENSIONS:
        raise ValidationError(
            f"Unsupported import file {filename!r}",
            user_message="Unsupported file type. Use .txt, .csv or .json",
        )


def _titles_from_json(content: str, errors: list[str]) -> list[str]:
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        errors.append(f"Invalid JSON: {e.msg}")
        return []

    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        errors.append("JSON must be an array of titles or objects with a title")
        return []

    titles = []
    for i, item in enumerate(data):
        if isinstance(item, str):
            titles.append(item)
        elif isinstance(item, dict):
            title = next((item[k] for k in _JSON_TITLE_KEYS if isinstance(item.get(k), str)), None)
            if title is None:
                errors.append(f"Item {i + 1} has no title")
            else:
                titles.append(title)
        else:
            errors.append(f"Item {i + 1} is not a title")
    return titles


def _titles_from_csv(content: str) -> list[str]:
    titles = []
    for row in csv.reader(io.StringIO(content)):
        titles.extend(cell.strip().strip('"') for cell in row)
    return titles


def parse_import_data(content: str, filename: str) -> ParseResult:
    """
    Split an uploaded file into titles.

    JSON takes an array of strings or of objects with ``title``/``name``.
    CSV takes every cell. Anything else is split on newlines, ``;`` and ``|``.
    Blank entries, number-only entries and duplicates are dropped; what was
    dropped is reported in ``errors``.
    """
    result = ParseResult()
    content = (content or "").lstrip("\ufeff")
    if not content.strip():
        result.errors.append("File is empty")
        return result

    suffix = PurePath(filename or "").suffix.lower()
    if suffix == ".json":
        raw = _titles_from_json(content, result.errors)
    elif suffix == ".csv":
        raw = _titles_from_csv(content)
    else:
        raw = _SPLIT_RE.split(content)

    seen: set[str] = set()
    duplicates = 0
    for title in raw:
        title = title.strip()
        if not title:
            continue
        if _NOT_A_TITLE_RE.match(title):
            result.errors.append(f'Skipped invalid title: "{title}"')
            continue
        key = title.lower()
        if key in seen:
            duplicates += 1
            continue
        seen.add(key)
        result.titles.append(title)

    if duplicates:
        result.errors.append(f"Removed {duplicates} duplicate titles")
    if not result.titles:
        result.errors.append("No valid titles found after parsing")
    return result


def _is_rate_limited(e: Exception) -> bool:
    text = str(e).lower()
    return "429" in text or "rate limit" in text


def choose_match(query: str, results: list[dict[str, Any]]) -> SearchMatch:
    if not results:
        return SearchMatch(query, MATCH_NOT_FOUND)

    wanted = normalize_title(query)
    for r in results:
        if normalize_title(r.get("title") or "") == wanted:
            return SearchMatch(query, MATCH_EXACT, result=r)

    return SearchMatch(query, MATCH_FUZZY, result=results[0], alternatives=results[1 : 1 + MAX_ALTERNATIVES])


async def search_title(domain: str, query: str, entity: str = MEDIA_SONG, max_retries: int = 2) -> SearchMatch:
    """Search one title, backing off on 429s (1s, 2s, ...). Other API errors are not retried."""
    attempt = 0
    while True:
        try:
            results = await search_service.search_or_raise(domain, query, entity)
            return choose_match(query, results)
        except ExternalAPIError as e:
            if _is_rate_limited(e) and attempt < max_retries:
                delay = RETRY_BASE_DELAY_SECONDS * (2**attempt)
                logger.info("Rate limited searching %r, retrying in %.0fs", query, delay)
                await asyncio.sleep(delay)
                attempt += 1
                continue
            logger.warning("Import search failed for %r: %s", query, e)
            return SearchMatch(query, MATCH_ERROR, error=e.user_message)
        except ValidationError as e:
            return SearchMatch(query, MATCH_ERROR, error=e.user_message)


async def batch_search(
    titles: list[str],
    domain: str,
    entity: str = MEDIA_SONG,
    max_retries: int = 2,
    on_progress: Callable[[int, int], None] | None = None,
) -> list[SearchMatch]:
    """Search titles one after another, in order; ``on_progress(done, total)`` after each."""
    domain = search_service.catalog_domain(domain)
    matches = []
    for i, title in enumerate(titles, start=1):
        matches.append(await search_title(domain, title, entity, max_retries))
        if on_progress is not None:
            on_progress(i, len(titles))
    return matches


def _joined(values: list[str] | None) -> str | None:
    return ", ".join(values) if values else None


def watchlist_row(r: dict[str, Any]) -> dict[str, Any]:
    return {
        "external_id": r["external_id"],
        "media_type": r["media_type"],
        "title": r["title"],
        "poster_url": r.get("poster_url"),
        "release_date": r.get("release_date"),
        "overview": r.get("overview"),
        "vote_average": r.get("vote_average"),
    }


def library_row(domain: str, r: dict[str, Any]) -> dict[str, Any]:
    row = {
        "external_id": r["external_id"],
        "title": r["title"],
        "release_date": r.get("release_date"),
        "poster_url": r.get("poster_url"),
    }
    if domain == DOMAIN_BOOKS:
        row.update(
            creator=_joined(r.get("authors")),
            media_type="book",
            genres=r.get("categories") or [],
            extra={"isbn": r.get("isbn"), "page_count": r.get("page_count"), "publisher": r.get("publisher")},
        )
    elif domain == DOMAIN_GAMES:
        row.update(
            creator=_joined(r.get("developers")),
            media_type="game",
            genres=r.get("genres") or [],
            extra={"platforms": r.get("platforms") or [], "metacritic": r.get("metacritic")},
        )
    elif domain == DOMAIN_MUSIC:
        row.update(
            creator=r.get("artist"),
            media_type=r.get("media_type"),
            genres=[r["genre"]] if r.get("genre") else [],
            extra={"album": r.get("album"), "preview_url": r.get("preview_url")},
        )
    return row


def _validate_target(target: str) -> str:
    target = (target or "").strip().lower()
    if target not in IMPORT_TARGETS:
        raise ValidationError(
            f"Unknown import target {target!r}",
            user_message=f"Import into one of: {', '.join(IMPORT_TARGETS)}",
        )
    return target


async def import_matches(
    session: AsyncSession,
    user_id: int,
    target: str,
    matches: list[SearchMatch],
) -> ImportReport:
    """
    Add the chosen result of each match. Items already in the watchlist or
    library are reported as skipped.
    """
    target = _validate_target(target)
    report = ImportReport()

    for m in matches:
        if m.status == MATCH_NOT_FOUND:
            report.not_found.append(m.query)
            continue
        if m.status == MATCH_ERROR or m.result is None:
            report.failed.append(m.query)
            continue

        try:
            if target == CATALOG_MOVIES_TV:
                await watchlist_repo.add_to_watchlist(session, user_id, watchlist_row(m.result))
            else:
                await library_repo.add_entry(session, user_id, target, library_row(target, m.result))
        except ValidationError as e:
            if e.user_message.startswith("Already in"):
                report.skipped.append(m.query)
            else:
                logger.warning("Import of %r failed: %s", m.query, e)
                report.failed.append(m.query)
            continue
        report.added.append(m.query)

    logger.info(
        "Import for user %s into %s: %d added, %d skipped, %d not found, %d failed",
        user_id,
        target,
        len(report.added),
        len(report.skipped),
        len(report.not_found),
        len(report.failed),
    )
    return report


async def import_titles(
    session: AsyncSession,
    user_id: int,
    target: str,
    titles: list[str],
    entity: str = MEDIA_SONG,
    on_progress: Callable[[int, int], None] | None = None,
) -> ImportReport:
    target = _validate_target(target)
    matches = await batch_search(titles, target, entity, on_progress=on_progress)
    return await import_matches(session, user_id, target, matches)
