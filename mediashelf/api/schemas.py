"""
Pydantic request/response models for the HTTP API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# -------------------------
# Auth / users
# -------------------------

class SignUpIn(BaseModel):
    email: str = Field(min_length=3, max_length=320)
    password: str = Field(min_length=1, max_length=256)
    invite_code: str = Field(min_length=1, max_length=32)
    display_name: str | None = Field(None, max_length=128)


class SignInIn(BaseModel):
    email: str = Field(min_length=3, max_length=320)
    password: str = Field(min_length=1, max_length=256)


class InviteCheckIn(BaseModel):
    code: str = Field(min_length=1, max_length=32)
    email: str | None = Field(None, max_length=320)


class InviteCheckOut(BaseModel):
    valid: bool


class UserOut(ORMModel):
    id: int
    email: str
    display_name: str
    role: str
    created_at: datetime


class FriendOut(ORMModel):
    id: int
    display_name: str


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


# -------------------------
# Watchlist
# -------------------------

class WatchlistItemIn(BaseModel):
    external_id: str = Field(min_length=1, max_length=64)
    media_type: Literal["movie", "tv"]
    title: str = Field(min_length=1, max_length=512)
    poster_url: str | None = None
    release_date: str | None = Field(None, max_length=16)
    overview: str | None = None
    director: str | None = None
    cast_members: list[str] | None = None
    genres: list[str] | None = None
    vote_average: float | None = None
    vote_count: int | None = None
    runtime: int | None = None
    list_order: int | None = None
    notes: str | None = None


class WatchlistItemUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=512)
    poster_url: str | None = None
    release_date: str | None = Field(None, max_length=16)
    overview: str | None = None
    director: str | None = None
    cast_members: list[str] | None = None
    genres: list[str] | None = None
    vote_average: float | None = None
    vote_count: int | None = None
    runtime: int | None = None
    list_order: int | None = None
    notes: str | None = None


class NotesIn(BaseModel):
    notes: str | None = None


class WatchlistItemOut(ORMModel):
    id: int
    external_id: str
    media_type: str
    title: str
    poster_url: str | None
    release_date: str | None
    overview: str | None
    director: str | None
    cast_members: list[str] | None
    genres: list[str] | None
    vote_average: float | None
    vote_count: int | None
    runtime: int | None
    watched: bool
    watched_at: datetime | None
    list_order: int | None
    notes: str | None
    added_at: datetime
    updated_at: datetime


# -------------------------
# Library (books / games / music)
# -------------------------

class LibraryEntryIn(BaseModel):
    external_id: str = Field(min_length=1, max_length=128)
    title: str = Field(min_length=1, max_length=512)
    creator: str | None = None
    media_type: str | None = None
    release_date: str | None = Field(None, max_length=16)
    poster_url: str | None = None
    genres: list[str] | None = None
    status: str | None = None
    personal_rating: int | None = None
    notes: str | None = None
    extra: dict[str, Any] = Field(default_factory=dict)


class LibraryEntryUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=512)
    creator: str | None = None
    poster_url: str | None = None
    genres: list[str] | None = None
    status: str | None = None
    personal_rating: int | None = None
    notes: str | None = None
    extra: dict[str, Any] | None = None


class StatusIn(BaseModel):
    status: str


class LibraryEntryOut(ORMModel):
    id: int
    domain: str
    external_id: str
    title: str
    creator: str | None
    media_type: str | None
    release_date: str | None
    poster_url: str | None
    genres: list[str] | None
    status: str
    done: bool
    done_at: datetime | None
    personal_rating: int | None
    notes: str | None
    extra: dict[str, Any]
    created_at: datetime
    updated_at: datetime


# -------------------------
# Reviews
# -------------------------

class ReviewIn(BaseModel):
    external_id: str = Field(min_length=1, max_length=128)
    media_type: str
    title: str = Field(min_length=1, max_length=512)
    rating: int | None = None
    liked: bool | None = None
    review_text: str | None = None
    is_public: bool = True
    watched_at: datetime | None = None


class ReviewOut(ORMModel):
    id: int
    user_id: int
    external_id: str
    media_type: str
    title: str
    rating: int | None
    liked: bool | None
    review_text: str | None
    is_public: bool
    watched_at: datetime | None
    is_edited: bool
    edited_at: datetime | None
    created_at: datetime
    updated_at: datetime
    display_name: str | None = None


# -------------------------
# Recommendations
# -------------------------

class RecommendationIn(BaseModel):
    to_user_id: int
    external_id: str = Field(min_length=1, max_length=128)
    media_type: str
    title: str = Field(min_length=1, max_length=512)
    poster_url: str | None = None
    release_date: str | None = None
    overview: str | None = None
    recommendation_type: str = "watch"
    sent_message: str | None = None


class RecommendationOut(ORMModel):
    id: int
    from_user_id: int
    to_user_id: int
    external_id: str
    media_type: str
    title: str
    poster_url: str | None
    release_date: str | None
    overview: str | None
    recommendation_type: str
    status: str
    sent_message: str | None
    sender_note: str | None
    recipient_note: str | None
    created_at: datetime
    consumed_at: datetime | None


class NoteIn(BaseModel):
    note: str | None = None


class FriendStatsOut(ORMModel):
    user_id: int
    display_name: str
    pending_count: int
    total_count: int
    hit_count: int
    miss_count: int


class QuickStatsOut(ORMModel):
    hits: int
    misses: int
    queue: int
    sent: int


# -------------------------
# Media lists
# -------------------------

class MediaListIn(BaseModel):
    media_domain: Literal["movies-tv", "books", "games", "music"]
    title: str = Field(min_length=1, max_length=128)
    description: str | None = None
    is_public: bool = False


class MediaListUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=128)
    description: str | None = None
    is_public: bool | None = None


class MediaListOut(ORMModel):
    id: int
    owner_id: int
    media_domain: str
    title: str
    description: str | None
    is_public: bool
    created_at: datetime
    updated_at: datetime
    item_count: int | None = None


class MediaListItemIn(BaseModel):
    external_id: str = Field(min_length=1, max_length=128)
    media_type: str
    title: str = Field(min_length=1, max_length=512)
    subtitle: str | None = None
    poster_url: str | None = None
    release_date: str | None = None
    year: int | None = None


class MediaListItemOut(ORMModel):
    id: int
    list_id: int
    added_by: int | None
    external_id: str
    media_type: str
    title: str
    subtitle: str | None
    poster_url: str | None
    year: int | None
    added_at: datetime


class ShareIn(BaseModel):
    user_ids: list[int] = Field(min_length=1)
    role: Literal["viewer", "editor"] = "viewer"


class MemberRoleIn(BaseModel):
    role: Literal["viewer", "editor"]


class MemberOut(BaseModel):
    user_id: int
    display_name: str
    role: str


class MyRoleOut(BaseModel):
    role: str | None


# -------------------------
# Admin
# -------------------------

class RoleIn(BaseModel):
    role: Literal["user", "admin"]


class UserPageOut(BaseModel):
    users: list[UserOut]
    total_pages: int


class InviteCodeIn(BaseModel):
    max_uses: int = Field(1, ge=1, le=1000)
    expires_in_days: int | None = Field(None, ge=1, le=3650)
    notes: str | None = Field(None, max_length=500)
    intended_email: str | None = Field(None, max_length=320)


class InviteCodeOut(ORMModel):
    id: int
    code: str
    created_by: int | None
    used_by: int | None
    is_active: bool
    max_uses: int
    current_uses: int
    expires_at: datetime | None
    created_at: datetime
    used_at: datetime | None
    notes: str | None
    intended_email: str | None


class AuditLogOut(ORMModel):
    id: int
    admin_user_id: int
    action: str
    target_user_id: int | None
    details: dict[str, Any] | None
    created_at: datetime


class DashboardStatsOut(ORMModel):
    total_users: int
    total_watchlist_items: int
    total_watched: int
    total_invite_codes: int
    new_users_this_week: int
    new_users_this_month: int
    active_users: int


class PopularMediaOut(ORMModel):
    external_id: str
    title: str
    media_type: str
    tracking_count: int


class WarmCacheOut(ORMModel):
    considered: int
    already_cached: int
    cached: int
    failed: int


# -------------------------
# Bulk import
# -------------------------

class ImportIn(BaseModel):
    filename: str = Field(min_length=1, max_length=255)
    content: str
    entity: Literal["song", "album"] = "song"


class ImportOut(ORMModel):
    added: list[str]
    skipped: list[str]
    not_found: list[str]
    failed: list[str]
    parse_errors: list[str]
