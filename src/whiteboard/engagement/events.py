"""Best-effort pub/sub broadcasts of engagement events.

Services queue events on the session while their transaction is open; the
queue is only sent once the commit has succeeded, so clients are never told
about state that was rolled back.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

CHANNEL_ACHIEVEMENT_COMPLETED = "pubsub:achievement_completed"
CHANNEL_GACHA_PULL = "pubsub:gacha_pull"
CHANNEL_DAILY_COMPLETED = "pubsub:daily_completed"

_PENDING_KEY = "pending_events"


async def publish(redis: object, channel: str, payload: dict[str, Any]) -> None:
    """Publish payload as JSON. Never raises; a missing client is a no-op."""
    if redis is None:
        return
    try:
        await redis.publish(channel, json.dumps(payload, default=str))  # type: ignore[attr-defined]
    except Exception:
        logger.warning("Failed to publish %s broadcast", channel, exc_info=True)


def queue(db: AsyncSession, channel: str, payload: dict[str, Any]) -> None:
    """Hold an event until the session's transaction commits."""
    db.info.setdefault(_PENDING_KEY, []).append((channel, payload))


def pending(db: AsyncSession) -> list[tuple[str, dict[str, Any]]]:
    return list(db.info.get(_PENDING_KEY, []))


def discard_pending(db: AsyncSession) -> None:
    db.info.pop(_PENDING_KEY, None)


async def commit_and_publish(db: AsyncSession, redis: object = None) -> None:
    """Commit, then send every queued event. A failed commit drops the queue."""
    try:
        await db.commit()
    except Exception:
        discard_pending(db)
        raise
    for channel, payload in db.info.pop(_PENDING_KEY, []):
        await publish(redis, channel, payload)


async def rollback(db: AsyncSession) -> None:
    """Roll back and forget anything queued in the aborted transaction."""
    discard_pending(db)
    await db.rollback()
