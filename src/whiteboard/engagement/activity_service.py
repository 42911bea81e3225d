"""Daily activity tracking: check-ins, streaks and the completion bonus.

Rules:
- One DailyActivity row per (user, calendar day) with four flags
- A flag's ink reward is paid only on its false -> true flip
- The +1 prismatic completion bonus is paid once, on the day all four flags are set
- Streak milestones (7, 30 days) pay out at most once per user, ever
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from whiteboard.db.models import DailyActivity, StreakMilestoneReward, StreakState
from whiteboard.db.upsert import insert_or_ignore
from whiteboard.engagement import achievement_service, events, ledger
from whiteboard.engagement.day_utils import get_day, get_previous_day, next_streak, utc_now
from whiteboard.engagement.rates import (
    ACTIVITY_INK_REWARDS,
    ACTIVITY_KINDS,
    DAILY_COMPLETION_PRISMATIC_BONUS,
    STREAK_MILESTONES,
)

logger = logging.getLogger(__name__)

ALREADY_CHECKED_IN = "You have already checked in today"


@dataclass
class CheckInResult:
    success: bool
    streak: int
    currency: dict[str, int]
    message: str = ""
    milestone_rewards: list[int] = field(default_factory=list)
    completion_bonus: bool = False


async def _get_or_create_daily(db: AsyncSession, user_id: str, day: date) -> DailyActivity:
    await insert_or_ignore(db, DailyActivity, user_id=user_id, date=day)
    result = await db.execute(
        select(DailyActivity)
        .where(DailyActivity.user_id == user_id, DailyActivity.date == day)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def _lock_streak(db: AsyncSession, user_id: str) -> StreakState:
    await insert_or_ignore(db, StreakState, user_id=user_id, streak_days=0, longest_streak=0)
    result = await db.execute(
        select(StreakState)
        .where(StreakState.user_id == user_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def _flip_flag(db: AsyncSession, user_id: str, day: date, kind: str) -> bool:
    """Set one flag if it is still false. True if this call flipped it."""
    column = getattr(DailyActivity, kind)
    result = await db.execute(
        update(DailyActivity)
        .where(
            DailyActivity.user_id == user_id,
            DailyActivity.date == day,
            column.is_(False),
        )
        .values({kind: True})
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def _grant_completion_bonus(db: AsyncSession, user_id: str, day: date) -> bool:
    """Pay the all-four bonus on the rising edge of all_completed."""
    result = await db.execute(
        update(DailyActivity)
        .where(
            DailyActivity.user_id == user_id,
            DailyActivity.date == day,
            DailyActivity.check_in.is_(True),
            DailyActivity.posted.is_(True),
            DailyActivity.commented.is_(True),
            DailyActivity.liked.is_(True),
            DailyActivity.completion_bonus_granted.is_(False),
        )
        .values(completion_bonus_granted=True)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return False

    await ledger.credit(
        db,
        user_id,
        prismatic=DAILY_COMPLETION_PRISMATIC_BONUS,
        source="daily_bonus",
        source_id=day.isoformat(),
        description="All daily activities completed",
    )
    await achievement_service.advance_for_event(db, user_id, "daily_completed")
    logger.info("Daily activities completed by user %s on %s", user_id, day)
    events.queue(db, events.CHANNEL_DAILY_COMPLETED, {
        "user_id": user_id,
        "date": day.isoformat(),
    })
    return True


async def _grant_streak_milestones(db: AsyncSession, user_id: str, streak_days: int) -> list[int]:
    granted: list[int] = []
    for milestone, (ink, prismatic) in sorted(STREAK_MILESTONES.items()):
        if streak_days < milestone:
            continue
        inserted = await insert_or_ignore(
            db,
            StreakMilestoneReward,
            user_id=user_id,
            milestone=milestone,
            granted_at=utc_now(),
        )
        if not inserted:
            continue
        await ledger.credit(
            db,
            user_id,
            ink=ink,
            prismatic=prismatic,
            source="streak_milestone",
            source_id=str(milestone),
            description=f"{milestone}-day check-in streak",
        )
        granted.append(milestone)
        logger.info("Streak milestone %d reached by user %s", milestone, user_id)
    return granted


async def _apply_check_in(db: AsyncSession, user_id: str, day: date) -> CheckInResult | None:
    """Check-in steps without committing. None if already checked in on day."""
    await _get_or_create_daily(db, user_id, day)
    state = await _lock_streak(db, user_id)

    if not await _flip_flag(db, user_id, day, "check_in"):
        return None

    state.streak_days = next_streak(state.last_check_in, state.streak_days, day)
    state.longest_streak = max(state.longest_streak, state.streak_days)
    state.last_check_in = day
    await db.flush()

    await ledger.credit(
        db,
        user_id,
        ink=ACTIVITY_INK_REWARDS["check_in"],
        source="check_in",
        source_id=day.isoformat(),
        description="Daily check-in",
    )
    milestones = await _grant_streak_milestones(db, user_id, state.streak_days)
    await achievement_service.sync_streak_achievements(db, user_id, state.streak_days)
    bonus = await _grant_completion_bonus(db, user_id, day)

    return CheckInResult(
        success=True,
        streak=state.streak_days,
        currency={},
        milestone_rewards=milestones,
        completion_bonus=bonus,
    )


async def check_in(
    db: AsyncSession,
    user_id: str,
    redis: object = None,
    now: datetime | None = None,
) -> CheckInResult:
    """Daily check-in as one transaction.

    A second call on the same day returns success=False with streak and
    currency unchanged.
    """
    day = get_day(now)
    outcome = await _apply_check_in(db, user_id, day)
    if outcome is None:
        await events.rollback(db)
        status = await get_status(db, user_id, now)
        return CheckInResult(
            success=False,
            streak=status["streak"],
            currency=status["currency"],
            message=ALREADY_CHECKED_IN,
        )

    await events.commit_and_publish(db, redis)
    outcome.currency = await ledger.get_balance(db, user_id)
    outcome.message = f"Checked in! Streak: {outcome.streak} day{'s' if outcome.streak != 1 else ''}"
    logger.info("User %s checked in on %s (streak %d)", user_id, day, outcome.streak)
    return outcome


async def record_activity(
    db: AsyncSession,
    user_id: str,
    kind: str,
    now: datetime | None = None,
) -> bool:
    """Mark an activity done today. Returns True if the flag was newly set.

    Idempotent per day. Does not commit; the caller's transaction carries it,
    along with any queued events.
    """
    if kind not in ACTIVITY_KINDS:
        raise ValueError(f"Unknown activity kind: {kind}")
    day = get_day(now)

    if kind == "check_in":
        return await _apply_check_in(db, user_id, day) is not None

    await _get_or_create_daily(db, user_id, day)
    if not await _flip_flag(db, user_id, day, kind):
        return False

    await ledger.credit(
        db,
        user_id,
        ink=ACTIVITY_INK_REWARDS[kind],
        source=kind,
        source_id=day.isoformat(),
        description=f"Daily activity: {kind}",
    )
    await _grant_completion_bonus(db, user_id, day)
    return True


async def get_status(db: AsyncSession, user_id: str, now: datetime | None = None) -> dict:
    """Today's flags, streak and balances. Creates nothing."""
    day = get_day(now)
    result = await db.execute(
        select(DailyActivity)
        .where(DailyActivity.user_id == user_id, DailyActivity.date == day)
        .execution_options(populate_existing=True)
    )
    activity = result.scalar_one_or_none()

    streak_result = await db.execute(
        select(StreakState)
        .where(StreakState.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    state = streak_result.scalar_one_or_none()

    streak = 0
    longest = 0
    last_check_in = None
    if state is not None:
        longest = state.longest_streak
        last_check_in = state.last_check_in
        # A streak whose last check-in is older than yesterday is already broken
        if last_check_in is not None and last_check_in >= get_previous_day(day):
            streak = state.streak_days

    flags = {kind: bool(activity and getattr(activity, kind)) for kind in ACTIVITY_KINDS}
    return {
        "date": day,
        **flags,
        "all_completed": all(flags.values()),
        "streak": streak,
        "longest_streak": longest,
        "last_check_in": last_check_in,
        "currency": await ledger.get_balance(db, user_id),
    }
