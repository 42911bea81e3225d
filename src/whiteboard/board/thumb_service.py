"""Thumbs (likes) on posts and comments."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from whiteboard.db.models import Comment, Post, Thumb
from whiteboard.engagement import achievement_service, activity_service, events
from whiteboard.engagement.day_utils import utc_now

logger = logging.getLogger(__name__)

ADDED = "added"
REMOVED = "removed"


def _target_filter(post_id: str | None, comment_id: str | None):
    if post_id is not None:
        return Thumb.post_id == post_id
    return Thumb.comment_id == comment_id


def check_target(post_id: str | None, comment_id: str | None) -> None:
    """Raise ValueError unless exactly one of post_id / comment_id is set."""
    if (post_id is None) == (comment_id is None):
        raise ValueError("Exactly one of post_id or comment_id is required")


async def count_thumbs(
    db: AsyncSession,
    post_id: str | None = None,
    comment_id: str | None = None,
) -> int:
    check_target(post_id, comment_id)
    result = await db.execute(
        select(func.count()).select_from(Thumb).where(_target_filter(post_id, comment_id))
    )
    return result.scalar() or 0


async def toggle_thumb(
    db: AsyncSession,
    user_id: str,
    post_id: str | None = None,
    comment_id: str | None = None,
    redis: object = None,
    now: datetime | None = None,
) -> tuple[str, int]:
    """Add the user's thumb to a target, or remove it if present.

    Returns (action, new thumb count). Only the add transition records the
    daily "liked" activity.
    """
    check_target(post_id, comment_id)
    if post_id is not None:
        exists = await db.execute(select(Post.id).where(Post.id == post_id))
    else:
        exists = await db.execute(select(Comment.id).where(Comment.id == comment_id))
    if exists.scalar_one_or_none() is None:
        raise LookupError("Thumb target not found")

    removed = await db.execute(
        delete(Thumb).where(Thumb.user_id == user_id, _target_filter(post_id, comment_id))
    )
    if removed.rowcount:
        action = REMOVED
    else:
        created = now or utc_now()
        db.add(Thumb(user_id=user_id, post_id=post_id, comment_id=comment_id, created_at=created))
        try:
            await db.flush()
        except IntegrityError:
            # A concurrent request added it first; the toggle resolves to that add
            await events.rollback(db)
            return ADDED, await count_thumbs(db, post_id, comment_id)
        action = ADDED
        await activity_service.record_activity(db, user_id, "liked", now=created)
        await achievement_service.advance_for_event(db, user_id, "thumb_added")

    await events.commit_and_publish(db, redis)
    return action, await count_thumbs(db, post_id, comment_id)
