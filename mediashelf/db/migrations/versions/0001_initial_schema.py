"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-01-15
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    if nullable:
        return sa.Column(name, sa.DateTime(timezone=True), nullable=True)
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False)


def upgrade() -> None:
    op.create_table(
        "user_profiles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("password_hash", sa.String(length=256), nullable=False),
        sa.Column("display_name", sa.String(length=128), nullable=False),
        sa.Column("role", sa.String(length=16), server_default="user", nullable=False),
        _timestamp("created_at"),
        sa.CheckConstraint("role IN ('user','admin','super_admin')", name="chk_user_role"),
    )
    op.create_index("ix_user_profiles_email", "user_profiles", ["email"], unique=True)
    op.create_index("ix_user_profiles_role", "user_profiles", ["role"], unique=False)

    op.create_table(
        "connections",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("friend_id", sa.Integer(), sa.ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False),
        _timestamp("created_at"),
        sa.UniqueConstraint("user_id", "friend_id", name="ux_connections_pair"),
        sa.CheckConstraint("user_id <> friend_id", name="chk_connection_not_self"),
    )
    op.create_index("ix_connections_user_id", "connections", ["user_id"], unique=False)
    op.create_index("ix_connections_friend_id", "connections", ["friend_id"], unique=False)

    op.create_table(
        "invite_codes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(length=32), nullable=False),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("user_profiles.id", ondelete="SET NULL"), nullable=True),
        sa.Column("used_by", sa.Integer(), sa.ForeignKey("user_profiles.id", ondelete="SET NULL"), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("max_uses", sa.Integer(), server_default="1", nullable=False),
        sa.Column("current_uses", sa.Integer(), server_default="0", nullable=False),
        _timestamp("expires_at", nullable=True),
        _timestamp("created_at"),
        _timestamp("used_at", nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.CheckConstraint("max_uses >= 1", name="chk_invite_max_uses"),
        sa.CheckConstraint("current_uses >= 0", name="chk_invite_current_uses"),
    )
    op.create_index("ix_invite_codes_code", "invite_codes", ["code"], unique=True)

    op.create_table(
        "user_watchlist",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("external_id", sa.String(length=64), nullable=False),
        sa.Column("media_type", sa.String(length=16), nullable=False),
        sa.Column("title", sa.String(length=512), nullable=False),
        sa.Column("poster_url", sa.Text(), nullable=True),
        sa.Column("release_date", sa.String(length=16), nullable=True),
        sa.Column("overview", sa.Text(), nullable=True),
        sa.Column("director", sa.String(length=256), nullable=True),
        sa.Column("cast_members", JSONB(), nullable=True),
        sa.Column("genres", JSONB(), nullable=True),
        sa.Column("vote_average", sa.Float(), nullable=True),
        sa.Column("vote_count", sa.Integer(), nullable=True),
        sa.Column("runtime", sa.Integer(), nullable=True),
        sa.Column("watched", sa.Boolean(), server_default=sa.false(), nullable=False),
        _timestamp("watched_at", nullable=True),
        sa.Column("list_order", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _timestamp("added_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint("media_type IN ('movie','tv')", name="chk_watchlist_media_type"),
        sa.UniqueConstraint("user_id", "external_id", name="ux_watchlist_user_external"),
    )
    op.create_index("ix_user_watchlist_user_id", "user_watchlist", ["user_id"], unique=False)
    op.create_index("ix_watchlist_user_added", "user_watchlist", ["user_id", "added_at"], unique=False)

    op.create_table(
        "library_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("domain", sa.String(length=16), nullable=False),
        sa.Column("external_id", sa.String(length=128), nullable=False),
        sa.Column("title", sa.String(length=512), nullable=False),
        sa.Column("creator", sa.String(length=512), nullable=True),
        sa.Column("media_type", sa.String(length=16), nullable=True),
        sa.Column("release_date", sa.String(length=16), nullable=True),
        sa.Column("poster_url", sa.Text(), nullable=True),
        sa.Column("genres", JSONB(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("done", sa.Boolean(), server_default=sa.false(), nullable=False),
        _timestamp("done_at", nullable=True),
        sa.Column("personal_rating", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("extra", JSONB(), server_default=sa.text("'{}'::jsonb"), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint("domain IN ('book','game','music')", name="chk_library_domain"),
        sa.CheckConstraint(
            "personal_rating IS NULL OR (personal_rating >= 1 AND personal_rating <= 5)",
            name="chk_library_rating_range",
        ),
        sa.UniqueConstraint("user_id", "domain", "external_id", name="ux_library_user_domain_external"),
    )
    op.create_index("ix_library_entries_user_id", "library_entries", ["user_id"], unique=False)
    op.create_index("ix_library_user_domain_created", "library_entries", ["user_id", "domain", "created_at"], unique=False)

    op.create_table(
        "media_reviews",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("external_id", sa.String(length=128), nullable=False),
        sa.Column("media_type", sa.String(length=16), nullable=False),
        sa.Column("title", sa.String(length=512), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=True),
        sa.Column("liked", sa.Boolean(), nullable=True),
        sa.Column("review_text", sa.Text(), nullable=True),
        sa.Column("is_public", sa.Boolean(), server_default=sa.true(), nullable=False),
        _timestamp("watched_at", nullable=True),
        sa.Column("is_edited", sa.Boolean(), server_default=sa.false(), nullable=False),
        _timestamp("edited_at", nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint("rating IS NULL OR (rating >= 1 AND rating <= 5)", name="chk_review_rating_range"),
        sa.CheckConstraint(
            "media_type IN ('movie','tv','song','album','book','game')",
            name="chk_review_media_type",
        ),
        sa.UniqueConstraint("user_id", "external_id", "media_type", name="ux_review_user_media"),
    )
    op.create_index("ix_media_reviews_user_id", "media_reviews", ["user_id"], unique=False)
    op.create_index("ix_reviews_external_media", "media_reviews", ["external_id", "media_type"], unique=False)

    op.create_table(
        "recommendations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("from_user_id", sa.Integer(), sa.ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("to_user_id", sa.Integer(), sa.ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("external_id", sa.String(length=128), nullable=False),
        sa.Column("media_type", sa.String(length=16), nullable=False),
        sa.Column("title", sa.String(length=512), nullable=False),
        sa.Column("poster_url", sa.Text(), nullable=True),
        sa.Column("release_date", sa.String(length=16), nullable=True),
        sa.Column("overview", sa.Text(), nullable=True),
        sa.Column("recommendation_type", sa.String(length=16), server_default="watch", nullable=False),
        sa.Column("status", sa.String(length=16), server_default="pending", nullable=False),
        sa.Column("sent_message", sa.Text(), nullable=True),
        sa.Column("sender_note", sa.Text(), nullable=True),
        sa.Column("recipient_note", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("consumed_at", nullable=True),
        sa.CheckConstraint("status IN ('pending','consumed','hit','miss')", name="chk_rec_status"),
        sa.CheckConstraint("from_user_id <> to_user_id", name="chk_rec_not_self"),
        sa.UniqueConstraint("from_user_id", "to_user_id", "external_id", "media_type", name="ux_rec_pair_media"),
    )
    op.create_index("ix_recommendations_from_user_id", "recommendations", ["from_user_id"], unique=False)
    op.create_index("ix_recommendations_to_user_id", "recommendations", ["to_user_id"], unique=False)
    op.create_index("ix_rec_to_status", "recommendations", ["to_user_id", "status"], unique=False)

    op.create_table(
        "media_details_cache",
        sa.Column("external_id", sa.String(length=64), nullable=False),
        sa.Column("media_type", sa.String(length=16), nullable=False),
        sa.Column("data", JSONB(), nullable=False),
        _timestamp("fetched_at"),
        _timestamp("expires_at", nullable=True),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("external_id", "media_type"),
    )
    op.create_index("ix_media_details_expires", "media_details_cache", ["expires_at"], unique=False)

    op.create_table(
        "media_lists",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("media_domain", sa.String(length=16), nullable=False),
        sa.Column("title", sa.String(length=128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_public", sa.Boolean(), server_default=sa.false(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint("media_domain IN ('movies-tv','books','games','music')", name="chk_list_domain"),
    )
    op.create_index("ix_media_lists_owner_id", "media_lists", ["owner_id"], unique=False)

    op.create_table(
        "media_list_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("list_id", sa.Integer(), sa.ForeignKey("media_lists.id", ondelete="CASCADE"), nullable=False),
        sa.Column("added_by", sa.Integer(), sa.ForeignKey("user_profiles.id", ondelete="SET NULL"), nullable=True),
        sa.Column("external_id", sa.String(length=128), nullable=False),
        sa.Column("media_type", sa.String(length=16), nullable=False),
        sa.Column("title", sa.String(length=512), nullable=False),
        sa.Column("subtitle", sa.String(length=512), nullable=True),
        sa.Column("poster_url", sa.Text(), nullable=True),
        sa.Column("year", sa.Integer(), nullable=True),
        _timestamp("added_at"),
        sa.UniqueConstraint("list_id", "external_id", "media_type", name="ux_list_item_media"),
    )
    op.create_index("ix_media_list_items_list_id", "media_list_items", ["list_id"], unique=False)

    op.create_table(
        "media_list_members",
        sa.Column("list_id", sa.Integer(), sa.ForeignKey("media_lists.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role", sa.String(length=16), server_default="viewer", nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("list_id", "user_id"),
        sa.CheckConstraint("role IN ('viewer','editor')", name="chk_list_member_role"),
    )


def downgrade() -> None:
    op.drop_table("media_list_members")
    op.drop_index("ix_media_list_items_list_id", table_name="media_list_items")
    op.drop_table("media_list_items")
    op.drop_index("ix_media_lists_owner_id", table_name="media_lists")
    op.drop_table("media_lists")
    op.drop_index("ix_media_details_expires", table_name="media_details_cache")
    op.drop_table("media_details_cache")
    op.drop_index("ix_rec_to_status", table_name="recommendations")
    op.drop_index("ix_recommendations_to_user_id", table_name="recommendations")
    op.drop_index("ix_recommendations_from_user_id", table_name="recommendations")
    op.drop_table("recommendations")
    op.drop_index("ix_reviews_external_media", table_name="media_reviews")
    op.drop_index("ix_media_reviews_user_id", table_name="media_reviews")
    op.drop_table("media_reviews")
    op.drop_index("ix_library_user_domain_created", table_name="library_entries")
    op.drop_index("ix_library_entries_user_id", table_name="library_entries")
    op.drop_table("library_entries")
    op.drop_index("ix_watchlist_user_added", table_name="user_watchlist")
    op.drop_index("ix_user_watchlist_user_id", table_name="user_watchlist")
    op.drop_table("user_watchlist")
    op.drop_index("ix_invite_codes_code", table_name="invite_codes")
    op.drop_table("invite_codes")
    op.drop_index("ix_connections_friend_id", table_name="connections")
    op.drop_index("ix_connections_user_id", table_name="connections")
    op.drop_table("connections")
    op.drop_index("ix_user_profiles_role", table_name="user_profiles")
    op.drop_index("ix_user_profiles_email", table_name="user_profiles")
    op.drop_table("user_profiles")
