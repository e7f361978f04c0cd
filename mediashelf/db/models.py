from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    false,
    func,
    true,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mediashelf.core.constants import ADMIN_ROLES
from mediashelf.db.base import Base, JSONType, utcnow


class UserProfile(Base):
    __tablename__ = "user_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    display_name: Mapped[str] = mapped_column(String(128), nullable=False)

    # user / admin / super_admin
    role: Mapped[str] = mapped_column(String(16), nullable=False, server_default="user", default="user")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), default=utcnow)

    watchlist: Mapped[List["WatchlistItem"]] = relationship(back_populates="user", cascade="all, delete-orphan")
    library: Mapped[List["LibraryEntry"]] = relationship(back_populates="user", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("role IN ('user','admin','super_admin')", name="chk_user_role"),
        Index("ix_user_profiles_role", "role"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


class Connection(Base):
    __tablename__ = "connections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    friend_id: Mapped[int] = mapped_column(ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), default=utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "friend_id", name="ux_connections_pair"),
        CheckConstraint("user_id <> friend_id", name="chk_connection_not_self"),
    )


class InviteCode(Base):
    __tablename__ = "invite_codes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    created_by: Mapped[Optional[int]] = mapped_column(ForeignKey("user_profiles.id", ondelete="SET NULL"), nullable=True)
    used_by: Mapped[Optional[int]] = mapped_column(ForeignKey("user_profiles.id", ondelete="SET NULL"), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=true(), default=True)
    max_uses: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1", default=1)
    current_uses: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0", default=0)

    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), default=utcnow)
    used_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # when set, only this address may sign up with the code
    intended_email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)

    __table_args__ = (
        CheckConstraint("max_uses >= 1", name="chk_invite_max_uses"),
        CheckConstraint("current_uses >= 0", name="chk_invite_current_uses"),
    )


class WatchlistItem(Base):
    __tablename__ = "user_watchlist"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True)

    # TMDB data
    external_id: Mapped[str] = mapped_column(String(64), nullable=False)
    media_type: Mapped[str] = mapped_column(String(16), nullable=False)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    poster_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    release_date: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    overview: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    director: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    cast_members: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    genres: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    vote_average: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    vote_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    runtime: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    watched: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=false(), default=False)
    watched_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    list_order: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), default=utcnow)

    user: Mapped["UserProfile"] = relationship(back_populates="watchlist")

    __table_args__ = (
        CheckConstraint("media_type IN ('movie','tv')", name="chk_watchlist_media_type"),
        UniqueConstraint("user_id", "external_id", name="ux_watchlist_user_external"),
        Index("ix_watchlist_user_added", "user_id", "added_at"),
    )


class LibraryEntry(Base):
    """Books, games and music share one table, told apart by ``domain``."""

    __tablename__ = "library_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True)

    # book / game / music
    domain: Mapped[str] = mapped_column(String(16), nullable=False)
    external_id: Mapped[str] = mapped_column(String(128), nullable=False)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    # author / developer / artist
    creator: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    # song / album for music, null otherwise
    media_type: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    release_date: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    poster_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    genres: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)

    status: Mapped[str] = mapped_column(String(16), nullable=False)
    done: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=false(), default=False)
    done_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    personal_rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # source-specific fields (isbn, page_count, platforms, metacritic, preview_url, ...)
    extra: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), default=utcnow)

    user: Mapped["UserProfile"] = relationship(back_populates="library")

    __table_args__ = (
        CheckConstraint("domain IN ('book','game','music')", name="chk_library_domain"),
        CheckConstraint(
            "personal_rating IS NULL OR (personal_rating >= 1 AND personal_rating <= 5)",
            name="chk_library_rating_range",
        ),
        UniqueConstraint("user_id", "domain", "external_id", name="ux_library_user_domain_external"),
        Index("ix_library_user_domain_created", "user_id", "domain", "created_at"),
    )


class MediaReview(Base):
    __tablename__ = "media_reviews"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True)

    external_id: Mapped[str] = mapped_column(String(128), nullable=False)
    media_type: Mapped[str] = mapped_column(String(16), nullable=False)
    title: Mapped[str] = mapped_column(String(512), nullable=False)

    rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    # thumbs up / thumbs down / neutral (null)
    liked: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    review_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=true(), default=True)
    watched_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    is_edited: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=false(), default=False)
    edited_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), default=utcnow)

    __table_args__ = (
        CheckConstraint("rating IS NULL OR (rating >= 1 AND rating <= 5)", name="chk_review_rating_range"),
        CheckConstraint(
            "media_type IN ('movie','tv','song','album','book','game')",
            name="chk_review_media_type",
        ),
        UniqueConstraint("user_id", "external_id", "media_type", name="ux_review_user_media"),
        Index("ix_reviews_external_media", "external_id", "media_type"),
    )


class Recommendation(Base):
    __tablename__ = "recommendations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    from_user_id: Mapped[int] = mapped_column(ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    to_user_id: Mapped[int] = mapped_column(ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True)

    external_id: Mapped[str] = mapped_column(String(128), nullable=False)
    media_type: Mapped[str] = mapped_column(String(16), nullable=False)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    poster_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    release_date: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    overview: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # watch / rewatch / read / play / listen
    recommendation_type: Mapped[str] = mapped_column(String(16), nullable=False, server_default="watch", default="watch")
    # pending / consumed / hit / miss
    status: Mapped[str] = mapped_column(String(16), nullable=False, server_default="pending", default="pending")

    sent_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sender_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    recipient_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), default=utcnow)
    consumed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    sender: Mapped["UserProfile"] = relationship(foreign_keys=[from_user_id])
    recipient: Mapped["UserProfile"] = relationship(foreign_keys=[to_user_id])

    __table_args__ = (
        CheckConstraint("status IN ('pending','consumed','hit','miss')", name="chk_rec_status"),
        CheckConstraint("from_user_id <> to_user_id", name="chk_rec_not_self"),
        UniqueConstraint("from_user_id", "to_user_id", "external_id", "media_type", name="ux_rec_pair_media"),
        Index("ix_rec_to_status", "to_user_id", "status"),
    )


class MediaDetailsCache(Base):
    __tablename__ = "media_details_cache"

    external_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    media_type: Mapped[str] = mapped_column(String(16), primary_key=True)
    data: Mapped[dict] = mapped_column(JSONType, nullable=False)
    fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), default=utcnow)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), default=utcnow)

    __table_args__ = (
        Index("ix_media_details_expires", "expires_at"),
    )


class MediaList(Base):
    __tablename__ = "media_lists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[int] = mapped_column(ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    # movies-tv / books / games / music
    media_domain: Mapped[str] = mapped_column(String(16), nullable=False)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=false(), default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), default=utcnow)

    items: Mapped[List["MediaListItem"]] = relationship(back_populates="media_list", cascade="all, delete-orphan")
    members: Mapped[List["MediaListMember"]] = relationship(back_populates="media_list", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("media_domain IN ('movies-tv','books','games','music')", name="chk_list_domain"),
    )


class MediaListItem(Base):
    __tablename__ = "media_list_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    list_id: Mapped[int] = mapped_column(ForeignKey("media_lists.id", ondelete="CASCADE"), nullable=False, index=True)
    added_by: Mapped[Optional[int]] = mapped_column(ForeignKey("user_profiles.id", ondelete="SET NULL"), nullable=True)

    external_id: Mapped[str] = mapped_column(String(128), nullable=False)
    media_type: Mapped[str] = mapped_column(String(16), nullable=False)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    subtitle: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    poster_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), default=utcnow)

    media_list: Mapped["MediaList"] = relationship(back_populates="items")

    __table_args__ = (
        UniqueConstraint("list_id", "external_id", "media_type", name="ux_list_item_media"),
    )


class MediaListMember(Base):
    __tablename__ = "media_list_members"

    list_id: Mapped[int] = mapped_column(ForeignKey("media_lists.id", ondelete="CASCADE"), primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user_profiles.id", ondelete="CASCADE"), primary_key=True)
    # viewer / editor
    role: Mapped[str] = mapped_column(String(16), nullable=False, server_default="viewer", default="viewer")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), default=utcnow)

    media_list: Mapped["MediaList"] = relationship(back_populates="members")

    __table_args__ = (
        CheckConstraint("role IN ('viewer','editor')", name="chk_list_member_role"),
    )


class RateLimit(Base):
    """Attempt counters for sign in / sign up / invite checks, shared by every worker."""

    __tablename__ = "rate_limits"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # "<action>:<email or client>"
    key: Mapped[str] = mapped_column(String(400), unique=True, nullable=False)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1", default=1)
    first_attempt: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), default=utcnow)
    blocked_until: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), default=utcnow)

    __table_args__ = (
        Index("ix_rate_limits_blocked_until", "blocked_until"),
        Index("ix_rate_limits_first_attempt", "first_attempt"),
    )


class AdminAuditLog(Base):
    __tablename__ = "admin_audit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    admin_user_id: Mapped[int] = mapped_column(ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    # e.g. update_user_role / create_invite_code / deactivate_invite_code / delete_invite_code
    action: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    target_user_id: Mapped[Optional[int]] = mapped_column(ForeignKey("user_profiles.id", ondelete="SET NULL"), nullable=True, index=True)
    details: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), default=utcnow)

    __table_args__ = (
        Index("ix_admin_audit_log_created_at", "created_at"),
    )
