from __future__ import annotations

from typing import Any, Optional

import httpx

from mediashelf.core.config import settings
from mediashelf.core.exceptions import ExternalAPIError
from mediashelf.core.rate_limiter import RateLimiter


async def get_json(
    base_url: str,
    path: str,
    params: Optional[dict[str, Any]],
    *,
    limiter: RateLimiter,
    error_cls: type[ExternalAPIError],
    service: str,
) -> dict[str, Any]:
    """
    Low-level GET to a metadata API, dispatched through the API's rate limiter.

    Network failures, HTTP errors and non-object JSON bodies are all raised as ``error_cls``.
    """

    async def _request() -> httpx.Response:
        timeout = httpx.Timeout(settings.http_timeout_secs, connect=settings.http_timeout_secs)
        async with httpx.AsyncClient(base_url=base_url, timeout=timeout) as client:
            try:
                return await client.get(path, params=params)
            except httpx.HTTPError as e:
                raise error_cls(
                    f"{service} network error: {e!r}",
                    user_message=f"{service} is unavailable right now, please try again later",
                ) from e

    resp = await limiter.add(_request)

    if resp.status_code == 401:
        raise error_cls(f"{service} 401 Unauthorized: check the API key")
    if resp.status_code == 404:
        raise error_cls(f"{service} 404 Not Found: {path}", user_message="Not found")
    if resp.status_code == 429:
        raise error_cls(f"{service} 429 Too Many Requests", user_message=f"{service} is busy, please try again shortly")
    if resp.status_code >= 400:
        raise error_cls(f"{service} HTTP {resp.status_code}: {resp.text[:300]}")

    try:
        data = resp.json()
    except ValueError as e:
        raise error_cls(f"{service} invalid JSON response") from e

    if not isinstance(data, dict):
        raise error_cls(f"{service} response is not a JSON object")

    return data


def safe_int(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def safe_float(value: Any) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def extract_year(release_date: Optional[str]) -> Optional[int]:
    # dates come as "YYYY-MM-DD" or just "YYYY"
    if not release_date:
        return None
    if len(release_date) >= 4 and release_date[:4].isdigit():
        return int(release_date[:4])
    return None
