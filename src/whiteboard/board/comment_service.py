"""Comments and the post bump they trigger."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from whiteboard.db.models import Comment, Post, PostCommenter, Thumb
from whiteboard.db.upsert import insert_or_ignore
from whiteboard.engagement import achievement_service, activity_service, events
from whiteboard.engagement.day_utils import utc_now

logger = logging.getLogger(__name__)


async def bump_post_on_comment(
    db: AsyncSession,
    post_id: str,
    user_id: str,
    now: datetime | None = None,
) -> Post:
    """Move a post back to the top of the feed after a comment.

    updated_at is always touched; push_count goes up only the first time
    user_id comments on the post. Does not commit.
    """
    now = now or utc_now()
    new_commenter = await insert_or_ignore(
        db,
        PostCommenter,
        post_id=post_id,
        user_id=user_id,
        first_commented_at=now,
    )
    values: dict = {"updated_at": now}
    if new_commenter:
        values["push_count"] = Post.push_count + 1
    result = await db.execute(
        update(Post)
        .where(Post.id == post_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise LookupError(f"Post not found: {post_id}")

    post_result = await db.execute(
        select(Post).where(Post.id == post_id).execution_options(populate_existing=True)
    )
    return post_result.scalar_one()


async def create_comment(
    db: AsyncSession,
    user_id: str,
    post_id: str,
    content: str,
    redis: object = None,
    now: datetime | None = None,
) -> Comment:
    """Comment on a post, bump it and record the daily activity, in one transaction."""
    content = content.strip()
    if not content:
        raise ValueError("Content is required")
    post_result = await db.execute(select(Post.id).where(Post.id == post_id))
    if post_result.scalar_one_or_none() is None:
        raise LookupError(f"Post not found: {post_id}")

    created = now or utc_now()
    comment = Comment(post_id=post_id, user_id=user_id, content=content, created_at=created)
    db.add(comment)
    await db.flush()

    await bump_post_on_comment(db, post_id, user_id, now=created)
    await activity_service.record_activity(db, user_id, "commented", now=created)
    await achievement_service.advance_for_event(db, user_id, "comment_created")

    await events.commit_and_publish(db, redis)
    logger.info("Comment %s on post %s by user %s", comment.id, post_id, user_id)
    return comment


async def list_comments(db: AsyncSession, post_id: str) -> list[Comment]:
    """Comments on a post, oldest first."""
    result = await db.execute(
        select(Comment)
        .where(Comment.post_id == post_id)
        .order_by(Comment.created_at.asc())
    )
    return list(result.scalars().all())


async def get_comment(db: AsyncSession, comment_id: str) -> Comment | None:
    result = await db.execute(
        select(Comment).where(Comment.id == comment_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def decorate_comments(
    db: AsyncSession,
    comments: list[Comment],
    viewer_id: str | None = None,
) -> list[dict]:
    """Attach each comment's thumb count and whether the viewer thumbed it."""
    if not comments:
        return []
    ids = [c.id for c in comments]

    thumb_counts = dict((await db.execute(
        select(Thumb.comment_id, func.count())
        .where(Thumb.comment_id.in_(ids))
        .group_by(Thumb.comment_id)
    )).all())

    thumbed: set[str] = set()
    if viewer_id is not None:
        thumbed = set((await db.execute(
            select(Thumb.comment_id).where(Thumb.user_id == viewer_id, Thumb.comment_id.in_(ids))
        )).scalars().all())

    return [
        {
            "comment": c,
            "thumb_count": thumb_counts.get(c.id, 0),
            "user_has_thumbed": c.id in thumbed,
        }
        for c in comments
    ]
