"""Flair inventory and post flair application.

Rules:
- Ownership is boolean: holding at least one inventory copy of a flair
- Applying needs the caller to own both the post and the flair
- At most one application per (post, flair); re-applying is a no-op success
- Removing an absent application is a no-op
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timezone

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from whiteboard.db.models import FlairItem, InventoryItem, Post, PostFlairApplication
from whiteboard.db.upsert import insert_or_ignore

logger = logging.getLogger(__name__)


async def get_flair(db: AsyncSession, flair_id: str) -> FlairItem | None:
    result = await db.execute(select(FlairItem).where(FlairItem.id == flair_id))
    return result.scalar_one_or_none()


async def owns_flair(db: AsyncSession, user_id: str, flair_id: str) -> bool:
    """True if the user holds at least one copy of the flair."""
    result = await db.execute(
        select(func.count()).select_from(InventoryItem).where(
            InventoryItem.user_id == user_id,
            InventoryItem.flair_id == flair_id,
        )
    )
    return (result.scalar() or 0) > 0


async def grant_flair(
    db: AsyncSession,
    user_id: str,
    flair_id: str,
    source: str = "grant",
) -> InventoryItem:
    """Add one copy of a flair to the user's inventory. Does not commit."""
    item = InventoryItem(
        user_id=user_id,
        flair_id=flair_id,
        source=source,
        acquired_at=datetime.now(timezone.utc),
    )
    db.add(item)
    await db.flush()
    return item


async def _get_owned_post(db: AsyncSession, user_id: str, post_id: str) -> Post | None:
    result = await db.execute(
        select(Post).where(Post.id == post_id, Post.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def apply_flair(
    db: AsyncSession,
    user_id: str,
    post_id: str,
    flair_id: str,
) -> FlairItem | None:
    """Apply an owned flair to an owned post.

    Returns the applied flair, or None when the caller does not own the post
    or the flair.
    """
    if await _get_owned_post(db, user_id, post_id) is None:
        return None
    if not await owns_flair(db, user_id, flair_id):
        return None
    flair = await get_flair(db, flair_id)
    if flair is None:
        return None

    inserted = await insert_or_ignore(
        db,
        PostFlairApplication,
        post_id=post_id,
        flair_id=flair_id,
        applied_at=datetime.now(timezone.utc),
    )
    await db.commit()
    if inserted:
        logger.info("Flair %s applied to post %s by %s", flair_id, post_id, user_id)
    return flair


async def remove_flair(
    db: AsyncSession,
    user_id: str,
    post_id: str,
    flair_id: str,
) -> bool:
    """Remove a flair from a post. False if the caller does not own the post."""
    if await _get_owned_post(db, user_id, post_id) is None:
        return False
    await db.execute(
        delete(PostFlairApplication).where(
            PostFlairApplication.post_id == post_id,
            PostFlairApplication.flair_id == flair_id,
        )
    )
    await db.commit()
    return True


async def get_inventory(db: AsyncSession, user_id: str) -> list[dict]:
    """Owned items with their flair and the ids of the user's posts carrying it."""
    result = await db.execute(
        select(InventoryItem)
        .where(InventoryItem.user_id == user_id)
        .order_by(InventoryItem.acquired_at.desc())
    )
    items = result.scalars().unique().all()

    applied = await db.execute(
        select(PostFlairApplication.flair_id, PostFlairApplication.post_id)
        .join(Post, Post.id == PostFlairApplication.post_id)
        .where(Post.user_id == user_id)
    )
    applied_to: dict[str, list[str]] = defaultdict(list)
    for flair_id, post_id in applied:
        applied_to[flair_id].append(post_id)

    return [
        {"item": item, "flair": item.flair, "applied_to": applied_to.get(item.flair_id, [])}
        for item in items
    ]


async def get_post_flairs(db: AsyncSession, post_id: str) -> list[PostFlairApplication]:
    result = await db.execute(
        select(PostFlairApplication)
        .where(PostFlairApplication.post_id == post_id)
        .order_by(PostFlairApplication.applied_at)
    )
    return list(result.scalars().unique().all())


def group_by_type(flairs: list[FlairItem]) -> dict[str, list[FlairItem]]:
    """Group flairs by their type, preserving order."""
    grouped: dict[str, list[FlairItem]] = defaultdict(list)
    for flair in flairs:
        grouped[flair.type].append(flair)
    return dict(grouped)
