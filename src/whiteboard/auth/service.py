"""
User provisioning.

Sign-up and login happen at the identity provider; the API keeps a local
users row keyed by the token subject so content can reference it.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select

from whiteboard.db.models import User
from whiteboard.db.upsert import insert_or_ignore

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def get_user_by_id(db: AsyncSession, user_id: str) -> User | None:
    """Fetch a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_or_create_user(db: AsyncSession, user_id: str, email: str | None = None) -> User:
    """Return the local user for a token subject, creating it on first sight."""
    user = await get_user_by_id(db, user_id)
    if user is not None:
        return user

    inserted = await insert_or_ignore(
        db,
        User,
        id=user_id,
        email=email,
        created_at=datetime.now(timezone.utc),
    )
    await db.commit()
    if inserted:
        logger.info("user_provisioned", user_id=user_id)

    user = await get_user_by_id(db, user_id)
    if user is None:
        msg = f"Failed to provision user {user_id}"
        raise RuntimeError(msg)
    return user
