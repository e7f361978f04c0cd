"""
Async HTTP client for the MediaShelf API.

Error responses are turned back into the same exception types the server
raised, so callers handle ``NotFoundError`` etc. the same way on both sides.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from mediashelf.core.exceptions import (
    AuthenticationError,
    ExternalAPIError,
    InviteCodeError,
    MediaShelfError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _error_for(resp: httpx.Response) -> MediaShelfError:
    try:
        detail = resp.json().get("detail")
    except ValueError:
        detail = None
    if not isinstance(detail, str):
        # FastAPI request validation returns a list of problems
        detail = "Invalid request" if resp.status_code == 422 else resp.text[:300] or resp.reason_phrase

    message = f"{resp.request.method} {resp.request.url.path} -> {resp.status_code}: {detail}"
    status = resp.status_code
    if status == 422:
        return ValidationError(message, user_message=detail)
    if status == 404:
        return NotFoundError(message, user_message=detail)
    if status == 403:
        return PermissionDeniedError(message, user_message=detail)
    if status == 401:
        return AuthenticationError(message, user_message=detail)
    if status == 400:
        return InviteCodeError(message)
    if status == 429:
        try:
            retry_after = int(resp.headers.get("Retry-After", "0"))
        except ValueError:
            retry_after = 0
        return RateLimitError(retry_after)
    if status == 502:
        return ExternalAPIError(message, user_message=detail)
    return MediaShelfError(message, user_message="Something went wrong, please try again")


class MediaShelfClient:
    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            base_url: API root, e.g. ``http://localhost:8000``
            token: Bearer token from sign in / sign up
            transport: Custom httpx transport (``ASGITransport`` in tests)
        """
        self.token = token
        self._http = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "MediaShelfClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def request(self, method: str, path: str, *, json: Any = None, params: Optional[dict[str, Any]] = None) -> Any:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        try:
            resp = await self._http.request(method, path, json=json, params=params, headers=headers)
        except httpx.HTTPError as e:
            raise MediaShelfError(f"Network error calling {method} {path}: {e!r}", user_message="Network error, please try again") from e

        if resp.status_code >= 400:
            raise _error_for(resp)
        if resp.status_code == 204 or not resp.content:
            return None
        return resp.json()

    # -------------------------
    # Auth
    # -------------------------

    async def sign_up(self, email: str, password: str, invite_code: str, display_name: str | None = None) -> dict[str, Any]:
        data = await self.request(
            "POST",
            "/api/auth/signup",
            json={"email": email, "password": password, "invite_code": invite_code, "display_name": display_name},
        )
        self.token = data["access_token"]
        return data["user"]

    async def sign_in(self, email: str, password: str) -> dict[str, Any]:
        data = await self.request("POST", "/api/auth/signin", json={"email": email, "password": password})
        self.token = data["access_token"]
        return data["user"]

    async def me(self) -> dict[str, Any]:
        return await self.request("GET", "/api/auth/me")

    # -------------------------
    # Watchlist
    # -------------------------

    async def get_watchlist(self) -> list[dict[str, Any]]:
        return await self.request("GET", "/api/watchlist")

    async def add_to_watchlist(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self.request("POST", "/api/watchlist", json=data)

    async def toggle_watched(self, item_id: int) -> dict[str, Any]:
        return await self.request("POST", f"/api/watchlist/{item_id}/toggle-watched")

    async def update_watchlist_notes(self, item_id: int, notes: str | None) -> dict[str, Any]:
        return await self.request("PUT", f"/api/watchlist/{item_id}/notes", json={"notes": notes})

    async def delete_from_watchlist(self, item_id: int) -> None:
        await self.request("DELETE", f"/api/watchlist/{item_id}")

    async def is_in_watchlist(self, external_id: str) -> bool:
        data = await self.request("GET", f"/api/watchlist/contains/{external_id}")
        return bool(data["in_watchlist"])

    # -------------------------
    # Library
    # -------------------------

    async def get_library(self, domain: str, status: str | None = None) -> list[dict[str, Any]]:
        return await self.request("GET", f"/api/library/{domain}", params={"status": status})

    async def add_to_library(self, domain: str, data: dict[str, Any]) -> dict[str, Any]:
        return await self.request("POST", f"/api/library/{domain}", json=data)

    async def update_library_entry(self, domain: str, entry_id: int, updates: dict[str, Any]) -> dict[str, Any]:
        return await self.request("PATCH", f"/api/library/{domain}/{entry_id}", json=updates)

    async def set_library_status(self, domain: str, entry_id: int, status: str) -> dict[str, Any]:
        return await self.request("PUT", f"/api/library/{domain}/{entry_id}/status", json={"status": status})

    async def toggle_library_done(self, domain: str, entry_id: int) -> dict[str, Any]:
        return await self.request("POST", f"/api/library/{domain}/{entry_id}/toggle-done")

    async def delete_library_entry(self, domain: str, entry_id: int) -> None:
        await self.request("DELETE", f"/api/library/{domain}/{entry_id}")
