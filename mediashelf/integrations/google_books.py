from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from mediashelf.core.config import settings
from mediashelf.core.exceptions import GoogleBooksError
from mediashelf.core.rate_limiter import google_books_limiter
from mediashelf.integrations.http import get_json, safe_float, safe_int


@dataclass(frozen=True)
class Book:
    external_id: str
    title: str
    authors: list[str] = field(default_factory=list)
    publisher: Optional[str] = None
    release_date: Optional[str] = None
    description: Optional[str] = None
    isbn: Optional[str] = None
    page_count: int | None = None
    categories: list[str] = field(default_factory=list)
    average_rating: float | None = None
    poster_url: Optional[str] = None
    language: Optional[str] = None


async def _books_get(path: str, params: dict[str, Any]) -> dict[str, Any]:
    final_params = dict(params)
    if settings.google_books_api_key:
        final_params["key"] = settings.google_books_api_key
    return await get_json(
        settings.google_books_base_url,
        path,
        final_params,
        limiter=google_books_limiter,
        error_cls=GoogleBooksError,
        service="Google Books",
    )


def parse_volume(volume: Any) -> Optional[Book]:
    if not isinstance(volume, dict) or not volume.get("id"):
        return None
    info = volume.get("volumeInfo") or {}
    if not info.get("title"):
        return None

    # prefer ISBN_13, fall back to ISBN_10
    ids = {i.get("type"): i.get("identifier") for i in info.get("industryIdentifiers") or [] if isinstance(i, dict)}
    images = info.get("imageLinks") or {}

    return Book(
        external_id=str(volume["id"]),
        title=str(info["title"]),
        authors=[str(a) for a in info.get("authors") or []],
        publisher=info.get("publisher"),
        release_date=info.get("publishedDate"),
        description=info.get("description"),
        isbn=ids.get("ISBN_13") or ids.get("ISBN_10"),
        page_count=safe_int(info.get("pageCount")),
        categories=[str(c) for c in info.get("categories") or []],
        average_rating=safe_float(info.get("averageRating")),
        poster_url=images.get("thumbnail") or images.get("smallThumbnail"),
        language=info.get("language"),
    )


async def search_books(query: str, max_results: int = 20) -> list[Book]:
    data = await _books_get("/volumes", {"q": query, "maxResults": max_results, "printType": "books"})
    books = []
    for v in data.get("items") or []:
        book = parse_volume(v)
        if book is not None:
            books.append(book)
    return books


async def search_by_isbn(isbn: str) -> Optional[Book]:
    books = await search_books(f"isbn:{isbn}", max_results=1)
    return books[0] if books else None


async def get_volume(volume_id: str) -> Book:
    data = await _books_get(f"/volumes/{volume_id}", {})
    book = parse_volume(data)
    if book is None:
        raise GoogleBooksError(f"Google Books volume {volume_id} has no usable data", user_message="Not found")
    return book
