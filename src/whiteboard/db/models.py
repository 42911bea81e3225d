"""ORM models for the board content tables and the engagement economy.

User-created rows use UUID string keys; catalog rows (achievements, flairs,
collections) use stable slug keys so seed data can reference them.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    false,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from whiteboard.db.base import Base


def _uuid() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Local mirror of an identity-provider account, provisioned from token claims."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    username: Mapped[str | None] = mapped_column(String(32), nullable=True, unique=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


# ---------------------------------------------------------------------------
# Board content
# ---------------------------------------------------------------------------


class Board(Base):
    __tablename__ = "boards"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Post(Base):
    """A daily post. UNIQUE(user_id, post_date) enforces one post per user per day."""

    __tablename__ = "posts"
    __table_args__ = (
        UniqueConstraint("user_id", "post_date", name="posts_user_id_post_date_key"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    board_id: Mapped[str] = mapped_column(String(64), ForeignKey("boards.id"), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    push_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    post_date: Mapped[Any] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    author: Mapped[User] = relationship("User", lazy="joined")


class PostCommenter(Base):
    """Distinct commenters of a post; drives push_count."""

    __tablename__ = "post_commenters"
    __table_args__ = (
        UniqueConstraint("post_id", "user_id", name="post_commenters_post_id_user_id_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[str] = mapped_column(String(36), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    first_commented_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class Comment(Base):
    __tablename__ = "comments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    post_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    author: Mapped[User] = relationship("User", lazy="joined")


class Thumb(Base):
    """A like on exactly one of a post or a comment."""

    __tablename__ = "thumbs"
    __table_args__ = (
        CheckConstraint(
            "(post_id IS NULL) <> (comment_id IS NULL)",
            name="thumbs_exactly_one_target",
        ),
        UniqueConstraint("user_id", "post_id", name="thumbs_user_id_post_id_key"),
        UniqueConstraint("user_id", "comment_id", name="thumbs_user_id_comment_id_key"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    post_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("posts.id", ondelete="CASCADE"), nullable=True, index=True
    )
    comment_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Currency ledger
# ---------------------------------------------------------------------------


class CurrencyAccount(Base):
    """Denormalized balances, one row per user, never negative."""

    __tablename__ = "currency_accounts"
    __table_args__ = (
        CheckConstraint("ink_points >= 0", name="currency_accounts_ink_non_negative"),
        CheckConstraint("prismatic_ink >= 0", name="currency_accounts_prismatic_non_negative"),
    )

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    ink_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    prismatic_ink: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class CurrencyTransaction(Base):
    """Immutable currency movement log."""

    __tablename__ = "currency_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ink_delta: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    prismatic_delta: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    source: Mapped[str] = mapped_column(String(32), nullable=False)
    source_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    description: Mapped[str | None] = mapped_column(String(256), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Daily activity & streaks
# ---------------------------------------------------------------------------


class DailyActivity(Base):
    """One row per (user, calendar day). all_completed is derived, never stored."""

    __tablename__ = "daily_activities"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="daily_activities_user_id_date_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    date: Mapped[Any] = mapped_column(Date, nullable=False)
    check_in: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    posted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    commented: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    liked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    completion_bonus_granted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    @property
    def all_completed(self) -> bool:
        return self.check_in and self.posted and self.commented and self.liked


class StreakState(Base):
    __tablename__ = "streak_states"

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    streak_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    last_check_in: Mapped[Any] = mapped_column(Date, nullable=True)


class StreakMilestoneReward(Base):
    """Streak milestone bonuses already granted. UNIQUE(user_id, milestone)."""

    __tablename__ = "streak_milestone_rewards"
    __table_args__ = (
        UniqueConstraint("user_id", "milestone", name="streak_milestone_rewards_user_id_milestone_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    milestone: Mapped[int] = mapped_column(Integer, nullable=False)
    granted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Flairs
# ---------------------------------------------------------------------------


class FlairItem(Base):
    """Cosmetic catalog entry."""

    __tablename__ = "flair_items"
    __table_args__ = (
        CheckConstraint(
            "type IN ('border', 'background', 'effect', 'badge', 'trim')",
            name="flair_items_type_check",
        ),
        CheckConstraint(
            "rarity IN ('common', 'rare', 'epic', 'legendary')",
            name="flair_items_rarity_check",
        ),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    rarity: Mapped[str] = mapped_column(String(16), nullable=False)
    ink_price: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    prismatic_price: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    css_class: Mapped[str] = mapped_column(String(128), nullable=False)
    preview_image_url: Mapped[str | None] = mapped_column(String(256), nullable=True)


class InventoryItem(Base):
    """Owned copy of a flair. Duplicates are allowed."""

    __tablename__ = "inventory_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    flair_id: Mapped[str] = mapped_column(String(64), ForeignKey("flair_items.id"), nullable=False)
    source: Mapped[str] = mapped_column(String(16), nullable=False, default="grant")
    acquired_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    flair: Mapped[FlairItem] = relationship("FlairItem", lazy="joined")


class PostFlairApplication(Base):
    """Flair applied to a post. UNIQUE(post_id, flair_id)."""

    __tablename__ = "post_flair_applications"
    __table_args__ = (
        UniqueConstraint("post_id", "flair_id", name="post_flair_applications_post_id_flair_id_key"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    post_id: Mapped[str] = mapped_column(String(36), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False)
    flair_id: Mapped[str] = mapped_column(String(64), ForeignKey("flair_items.id"), nullable=False)
    applied_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    flair: Mapped[FlairItem] = relationship("FlairItem", lazy="joined")


# ---------------------------------------------------------------------------
# Achievements
# ---------------------------------------------------------------------------


class AchievementDefinition(Base):
    """Achievement catalog, seeded on startup and read-only at runtime."""

    __tablename__ = "achievement_definitions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    required_progress: Mapped[int] = mapped_column(Integer, nullable=False)
    ink_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    prismatic_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    flair_reward: Mapped[str | None] = mapped_column(String(64), ForeignKey("flair_items.id"), nullable=True)
    icon: Mapped[str | None] = mapped_column(String(64), nullable=True)
    trigger_event: Mapped[str | None] = mapped_column(String(32), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))


class UserAchievement(Base):
    """Per-user progress. UNIQUE(user_id, achievement_id)."""

    __tablename__ = "user_achievements"
    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="user_achievements_user_id_achievement_id_key"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    achievement_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("achievement_definitions.id"), nullable=False
    )
    current_progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reward_claimed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# ---------------------------------------------------------------------------
# Gacha
# ---------------------------------------------------------------------------


class GachaCollection(Base):
    __tablename__ = "gacha_collections"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_date: Mapped[Any] = mapped_column(Date, nullable=True)
    end_date: Mapped[Any] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    items: Mapped[list[CollectionItem]] = relationship(
        "CollectionItem", back_populates="collection", lazy="selectin"
    )


class CollectionItem(Base):
    """Flair membership in a collection with its in-tier draw weight."""

    __tablename__ = "collection_items"
    __table_args__ = (
        UniqueConstraint("collection_id", "flair_id", name="collection_items_collection_id_flair_id_key"),
        CheckConstraint("weight > 0", name="collection_items_weight_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    collection_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("gacha_collections.id", ondelete="CASCADE"), nullable=False
    )
    flair_id: Mapped[str] = mapped_column(String(64), ForeignKey("flair_items.id"), nullable=False)
    weight: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)

    collection: Mapped[GachaCollection] = relationship("GachaCollection", back_populates="items")
    flair: Mapped[FlairItem] = relationship("FlairItem", lazy="joined")


class GachaPullRecord(Base):
    """Append-only pull audit log."""

    __tablename__ = "gacha_pull_records"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    collection_id: Mapped[str] = mapped_column(String(64), ForeignKey("gacha_collections.id"), nullable=False)
    flair_id: Mapped[str] = mapped_column(String(64), ForeignKey("flair_items.id"), nullable=False)
    was_premium: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    ink_spent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    prismatic_spent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    pull_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    flair: Mapped[FlairItem] = relationship("FlairItem", lazy="joined")
