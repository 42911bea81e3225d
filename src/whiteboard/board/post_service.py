"""Posts, the one-post-per-day limit and the post feed.

Rules:
- One post per user per calendar day, enforced by UNIQUE(user_id, post_date)
- A first-ever post completes the first_post achievement (unclaimed)
- Flair requested at creation is applied after the post commits; a failure
  there is reported in the result and never undoes the post
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from whiteboard.db.models import Board, Comment, FlairItem, Post, PostFlairApplication, Thumb
from whiteboard.engagement import achievement_service, activity_service, events, flair_service, ledger
from whiteboard.engagement.day_utils import get_day, utc_now

logger = logging.getLogger(__name__)

ALREADY_POSTED = "You can only make one post per day"

FLAIR_APPLIED = "applied"
FLAIR_FAILED = "failed"
FLAIR_NOT_REQUESTED = "not_requested"


@dataclass
class PostCreation:
    """A created post plus the outcome of its optional flair application."""

    post: Post
    flair_outcome: str = FLAIR_NOT_REQUESTED
    flair: FlairItem | None = None
    first_post: bool = False
    currency: dict[str, int] = field(default_factory=dict)


async def list_boards(db: AsyncSession) -> list[Board]:
    result = await db.execute(select(Board).order_by(Board.name))
    return list(result.scalars().all())


async def get_board(db: AsyncSession, board_id: str) -> Board | None:
    result = await db.execute(select(Board).where(Board.id == board_id))
    return result.scalar_one_or_none()


async def can_post_today(db: AsyncSession, user_id: str, now: datetime | None = None) -> bool:
    """True iff the user has no post dated today."""
    result = await db.execute(
        select(func.count()).select_from(Post).where(
            Post.user_id == user_id,
            Post.post_date == get_day(now),
        )
    )
    return (result.scalar() or 0) == 0


async def create_post(
    db: AsyncSession,
    user_id: str,
    board_id: str,
    content: str,
    flair_id: str | None = None,
    redis: object = None,
    now: datetime | None = None,
) -> PostCreation | None:
    """Create the user's post for today. None if they already posted today.

    Raises LookupError for an unknown board and PermissionError for a flair
    the user does not own, before anything is written.
    """
    content = content.strip()
    if not content:
        raise ValueError("Content is required")
    if await get_board(db, board_id) is None:
        raise LookupError(f"Board not found: {board_id}")
    if flair_id and not await flair_service.owns_flair(db, user_id, flair_id):
        raise PermissionError("You do not own this flair")
    if not await can_post_today(db, user_id, now):
        return None

    created = now or utc_now()
    post = Post(
        board_id=board_id,
        user_id=user_id,
        content=content,
        push_count=0,
        post_date=get_day(created),
        created_at=created,
        updated_at=created,
    )
    db.add(post)
    try:
        await db.flush()
    except IntegrityError:
        # Lost the race against a concurrent post for the same day
        await events.rollback(db)
        logger.info("Duplicate daily post rejected for user %s", user_id)
        return None

    await activity_service.record_activity(db, user_id, "posted", now=created)

    count_result = await db.execute(
        select(func.count()).select_from(Post).where(Post.user_id == user_id)
    )
    first_post = False
    if count_result.scalar() == 1:
        first_post = await achievement_service.grant_first_post_achievement(db, user_id)
    await achievement_service.advance_for_event(db, user_id, "post_created")

    await events.commit_and_publish(db, redis)
    logger.info("Post %s created by user %s on board %s", post.id, user_id, board_id)

    outcome = PostCreation(post=post, first_post=first_post)
    if flair_id:
        try:
            outcome.flair = await flair_service.apply_flair(db, user_id, post.id, flair_id)
        except SQLAlchemyError:
            await db.rollback()
            logger.warning("Failed to apply flair %s to post %s", flair_id, post.id, exc_info=True)
        outcome.flair_outcome = FLAIR_APPLIED if outcome.flair else FLAIR_FAILED

    outcome.currency = await ledger.get_balance(db, user_id)
    return outcome


async def update_post(db: AsyncSession, user_id: str, post_id: str, content: str) -> Post | None:
    """Edit a post's content. None if the caller is not the author."""
    post = await _get_post_row(db, post_id)
    if post is None:
        raise LookupError(f"Post not found: {post_id}")
    if post.user_id != user_id:
        return None
    content = content.strip()
    if not content:
        raise ValueError("Content is required")
    post.content = content
    await db.commit()
    return post


async def _get_post_row(db: AsyncSession, post_id: str) -> Post | None:
    result = await db.execute(
        select(Post).where(Post.id == post_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _decorate(db: AsyncSession, posts: list[Post], viewer_id: str | None) -> list[dict]:
    """Attach comment/thumb counts, the viewer's thumb and applied flairs."""
    if not posts:
        return []
    ids = [p.id for p in posts]

    comment_counts = dict((await db.execute(
        select(Comment.post_id, func.count())
        .where(Comment.post_id.in_(ids))
        .group_by(Comment.post_id)
    )).all())
    thumb_counts = dict((await db.execute(
        select(Thumb.post_id, func.count())
        .where(Thumb.post_id.in_(ids))
        .group_by(Thumb.post_id)
    )).all())

    thumbed: set[str] = set()
    if viewer_id is not None:
        thumbed = set((await db.execute(
            select(Thumb.post_id).where(Thumb.user_id == viewer_id, Thumb.post_id.in_(ids))
        )).scalars().all())

    applications = (await db.execute(
        select(PostFlairApplication).where(PostFlairApplication.post_id.in_(ids))
    )).scalars().unique().all()
    flairs: dict[str, list[FlairItem]] = {}
    for app in applications:
        flairs.setdefault(app.post_id, []).append(app.flair)

    return [
        {
            "post": p,
            "comment_count": comment_counts.get(p.id, 0),
            "thumb_count": thumb_counts.get(p.id, 0),
            "user_has_thumbed": p.id in thumbed,
            "flairs": flairs.get(p.id, []),
        }
        for p in posts
    ]


async def list_posts(
    db: AsyncSession,
    board_id: str | None = None,
    page: int = 1,
    per_page: int = 20,
    viewer_id: str | None = None,
) -> tuple[list[dict], int]:
    """Feed of posts, most recently active first."""
    filters = [Post.board_id == board_id] if board_id else []
    total_result = await db.execute(select(func.count()).select_from(Post).where(*filters))
    total = total_result.scalar_one()

    result = await db.execute(
        select(Post)
        .where(*filters)
        .order_by(Post.updated_at.desc(), Post.created_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    posts = list(result.scalars().all())
    return await _decorate(db, posts, viewer_id), total


async def get_post(db: AsyncSession, post_id: str, viewer_id: str | None = None) -> dict | None:
    post = await _get_post_row(db, post_id)
    if post is None:
        return None
    decorated = await _decorate(db, [post], viewer_id)
    return decorated[0]
