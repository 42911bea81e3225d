"""Achievement progress, completion and reward claiming.

Progress is clamped at the definition's required_progress and completion is
monotonic. Completing never grants the reward by itself; the user claims it
explicitly, and the claim is a conditional update so concurrent duplicates
credit at most once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from whiteboard.db.models import AchievementDefinition, FlairItem, UserAchievement
from whiteboard.db.upsert import insert_or_ignore
from whiteboard.engagement import events, ledger
from whiteboard.engagement.flair_service import get_flair, grant_flair

logger = logging.getLogger(__name__)

FIRST_POST = "first_post"


@dataclass
class RewardBundle:
    """What a successful claim credited, for client display."""

    achievement_id: str
    ink_points: int = 0
    prismatic_ink: int = 0
    flair: FlairItem | None = None
    currency: dict[str, int] = field(default_factory=dict)


async def get_definition(db: AsyncSession, achievement_id: str) -> AchievementDefinition | None:
    result = await db.execute(
        select(AchievementDefinition).where(AchievementDefinition.id == achievement_id)
    )
    return result.scalar_one_or_none()


async def _lock_user_achievement(
    db: AsyncSession,
    user_id: str,
    achievement_id: str,
) -> UserAchievement:
    """Get or create the user's progress row and lock it for this transaction."""
    now = datetime.now(timezone.utc)
    await insert_or_ignore(
        db,
        UserAchievement,
        user_id=user_id,
        achievement_id=achievement_id,
        current_progress=0,
        completed=False,
        reward_claimed=False,
        created_at=now,
        updated_at=now,
    )
    result = await db.execute(
        select(UserAchievement)
        .where(
            UserAchievement.user_id == user_id,
            UserAchievement.achievement_id == achievement_id,
        )
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def progress(
    db: AsyncSession,
    user_id: str,
    achievement_id: str,
    delta: int,
) -> bool:
    """Advance progress by delta. Returns True if this call completed the achievement.

    Does not commit; the completion event is queued for the caller's commit.
    """
    if delta < 0:
        raise ValueError("Progress delta must be non-negative")
    definition = await get_definition(db, achievement_id)
    if definition is None:
        raise LookupError(f"Unknown achievement: {achievement_id}")

    ua = await _lock_user_achievement(db, user_id, achievement_id)
    if ua.completed or delta == 0:
        return False

    now = datetime.now(timezone.utc)
    ua.current_progress = min(definition.required_progress, ua.current_progress + delta)
    ua.updated_at = now
    just_completed = ua.current_progress >= definition.required_progress
    if just_completed:
        ua.completed = True
        ua.completed_at = now
    await db.flush()

    if just_completed:
        logger.info("Achievement %s completed by user %s", achievement_id, user_id)
        events.queue(db, events.CHANNEL_ACHIEVEMENT_COMPLETED, {
            "user_id": user_id,
            "achievement_id": achievement_id,
            "name": definition.name,
        })
    return just_completed


async def advance_for_event(
    db: AsyncSession,
    user_id: str,
    trigger_event: str,
    delta: int = 1,
) -> list[str]:
    """Advance every achievement driven by trigger_event. Returns ids completed now."""
    result = await db.execute(
        select(AchievementDefinition.id).where(AchievementDefinition.trigger_event == trigger_event)
    )
    completed: list[str] = []
    for achievement_id in result.scalars().all():
        if await progress(db, user_id, achievement_id, delta):
            completed.append(achievement_id)
    return completed


async def sync_streak_achievements(
    db: AsyncSession,
    user_id: str,
    streak_days: int,
) -> list[str]:
    """Raise streak achievements to the current streak length.

    Progress never drops when a streak resets.
    """
    result = await db.execute(
        select(AchievementDefinition.id).where(AchievementDefinition.trigger_event == "streak")
    )
    completed: list[str] = []
    for achievement_id in result.scalars().all():
        ua = await _lock_user_achievement(db, user_id, achievement_id)
        delta = max(0, streak_days - ua.current_progress)
        if await progress(db, user_id, achievement_id, delta):
            completed.append(achievement_id)
    return completed


async def grant_first_post_achievement(db: AsyncSession, user_id: str) -> bool:
    """Mark the first-post achievement completed (unclaimed).

    Returns False if the user already had it completed, so retries never
    award it twice. Does not commit.
    """
    definition = await get_definition(db, FIRST_POST)
    if definition is None:
        logger.warning("Achievement not found: %s", FIRST_POST)
        return False

    now = datetime.now(timezone.utc)
    inserted = await insert_or_ignore(
        db,
        UserAchievement,
        user_id=user_id,
        achievement_id=FIRST_POST,
        current_progress=definition.required_progress,
        completed=True,
        completed_at=now,
        reward_claimed=False,
        created_at=now,
        updated_at=now,
    )
    if not inserted:
        # Row exists; complete it if a partial one was left behind
        result = await db.execute(
            update(UserAchievement)
            .where(
                UserAchievement.user_id == user_id,
                UserAchievement.achievement_id == FIRST_POST,
                UserAchievement.completed.is_(False),
            )
            .values(
                current_progress=definition.required_progress,
                completed=True,
                completed_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return False

    logger.info("First-post achievement granted to user %s", user_id)
    events.queue(db, events.CHANNEL_ACHIEVEMENT_COMPLETED, {
        "user_id": user_id,
        "achievement_id": FIRST_POST,
        "name": definition.name,
    })
    return True


async def claim(db: AsyncSession, user_id: str, achievement_id: str) -> RewardBundle | None:
    """Claim a completed achievement's reward.

    Returns None when the achievement is not completed or already claimed.
    Flag flip, currency credit and flair grant commit together.
    """
    definition = await get_definition(db, achievement_id)
    if definition is None:
        return None

    now = datetime.now(timezone.utc)
    result = await db.execute(
        update(UserAchievement)
        .where(
            UserAchievement.user_id == user_id,
            UserAchievement.achievement_id == achievement_id,
            UserAchievement.completed.is_(True),
            UserAchievement.reward_claimed.is_(False),
        )
        .values(reward_claimed=True, claimed_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        return None

    await ledger.credit(
        db,
        user_id,
        ink=definition.ink_reward,
        prismatic=definition.prismatic_reward,
        source="achievement",
        source_id=achievement_id,
        description=f'Claimed achievement: "{definition.name}"',
    )

    flair = None
    if definition.flair_reward:
        flair = await get_flair(db, definition.flair_reward)
        await grant_flair(db, user_id, definition.flair_reward, source="achievement")

    await db.commit()
    logger.info("Achievement %s claimed by user %s", achievement_id, user_id)

    return RewardBundle(
        achievement_id=achievement_id,
        ink_points=definition.ink_reward,
        prismatic_ink=definition.prismatic_reward,
        flair=flair,
        currency=await ledger.get_balance(db, user_id),
    )


def progress_percentage(current: int, required: int) -> int:
    """Completion percentage, 0-100, rounded."""
    if required <= 0:
        return 100
    return min(100, round(current / required * 100))


async def list_achievements(db: AsyncSession, user_id: str) -> tuple[list[dict], list[str]]:
    """Every catalog entry merged with the user's progress, plus the categories."""
    defs_result = await db.execute(
        select(AchievementDefinition).order_by(
            AchievementDefinition.sort_order, AchievementDefinition.id
        )
    )
    definitions = defs_result.scalars().all()

    ua_result = await db.execute(
        select(UserAchievement)
        .where(UserAchievement.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    by_id = {ua.achievement_id: ua for ua in ua_result.scalars()}

    items = []
    categories: list[str] = []
    for d in definitions:
        if d.category not in categories:
            categories.append(d.category)
        ua = by_id.get(d.id)
        current = ua.current_progress if ua else 0
        items.append({
            "definition": d,
            "current_progress": current,
            "completed": ua.completed if ua else False,
            "completed_at": ua.completed_at if ua else None,
            "reward_claimed": ua.reward_claimed if ua else False,
            "progress_percentage": progress_percentage(current, d.required_progress),
        })
    return items, categories
